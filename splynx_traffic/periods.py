"""
Stats window resolution and service relevance.

A service is billed in one-month cycles anchored on the day of month it
started. Unless an explicit window is given, traffic is reported for the
last cycle that closed on or before the reference end date:

  billing day 15, reference 2025-08-20 -> 2025-07-16 .. 2025-08-15
  billing day 15, reference 2025-08-10 -> 2025-06-16 .. 2025-07-15

Anchor days past the end of a short month are clamped to its last day
(billing day 31 in February anchors on the 28th/29th). All values are
plain calendar dates; no time zones are involved.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Tuple

from dateutil.relativedelta import relativedelta

# Values the API uses for "no date"
NULL_DATES = {"", "0000-00-00", "-0001-11-30"}


@dataclass(frozen=True)
class StatsWindow:
    """Closed date interval [start, end]."""

    start: date
    end: date

    def __post_init__(self):
        if self.start > self.end:
            raise ValueError(
                f"Stats window start {self.start.isoformat()} is after end {self.end.isoformat()}")

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def labels(self) -> Tuple[str, str]:
        return self.start.isoformat(), self.end.isoformat()


def parse_api_date(value: Any) -> date | None:
    """
    Parse a YYYY-MM-DD (optionally followed by a time) API value.
    Returns None for missing values, the API's null-date sentinels and
    anything unparseable.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if text in NULL_DATES:
        return None
    try:
        return datetime.strptime(text[:10], "%Y-%m-%d").date()
    except ValueError:
        return None


def default_reference_end(today: date | None = None) -> date:
    """Yesterday: the last fully recorded day."""
    return (today or date.today()) - timedelta(days=1)


def billing_anchor(year: int, month: int, billing_day: int) -> date:
    """
    The date in the given month whose day is billing_day, clamped to the
    month's last day.
    """
    if not 1 <= billing_day <= 31:
        raise ValueError(f"Billing day must be between 1 and 31, got {billing_day}")
    return date(year, month, 1) + relativedelta(day=billing_day)


def billing_cycle_window(billing_day: int, reference_end: date) -> StatsWindow:
    """
    Last complete billing cycle for billing_day that closed on or before
    reference_end.
    """
    anchor = billing_anchor(reference_end.year, reference_end.month, billing_day)
    if reference_end < anchor:
        previous = reference_end.replace(day=1) - relativedelta(months=1)
        anchor = billing_anchor(previous.year, previous.month, billing_day)

    # The current cycle starts the day after the anchor, so the anchor day
    # itself closes the reported cycle.
    period_end = anchor
    preceding = anchor.replace(day=1) - relativedelta(months=1)
    period_start = billing_anchor(preceding.year, preceding.month, billing_day) + timedelta(days=1)
    return StatsWindow(period_start, period_end)


def resolve_stats_window(
    reference_end: date,
    service_start: date | None = None,
    start_override: date | None = None,
    end_override: date | None = None,
) -> StatsWindow | None:
    """
    Window over which a service's traffic is summed.

    A complete (start_override, end_override) pair wins for every service.
    Otherwise the billing day comes from service_start; without it no window
    can be derived and None is returned (the service is skipped).
    """
    if start_override is not None and end_override is not None:
        return StatsWindow(start_override, end_override)
    if service_start is None:
        return None
    return billing_cycle_window(service_start.day, reference_end)


def is_service_relevant(service_start: date | None, service_end: date | None, window: StatsWindow) -> bool:
    """
    True if the service lifetime [service_start, service_end] overlaps the
    window. No end date means the service is ongoing; no start date puts no
    lower bound on it.
    """
    if service_start is not None and service_start > window.end:
        return False
    if service_end is not None and service_end < window.start:
        return False
    return True
