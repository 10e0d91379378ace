"""
Traffic counter aggregation.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable

from splynx_traffic.periods import StatsWindow, parse_api_date

BYTES_PER_GB = 1024 ** 3


@dataclass(frozen=True)
class TrafficTotals:
    upload_bytes: int = 0
    download_bytes: int = 0

    @property
    def upload_gb(self) -> str:
        return bytes_to_gb(self.upload_bytes)

    @property
    def download_gb(self) -> str:
        return bytes_to_gb(self.download_bytes)


def bytes_to_gb(num_bytes: int) -> str:
    """
    Format a byte count as gigabytes (2**30) with exactly two decimals:
      1073741824 -> "1.00"
    """
    return f"{num_bytes / BYTES_PER_GB:.2f}"


def _counter_value(value: Any) -> int:
    if value is None or value == "":
        return 0
    try:
        number = int(value)
    except (TypeError, ValueError):
        try:
            number = int(float(value))
        except (TypeError, ValueError, OverflowError):
            return 0
    return max(number, 0)


def sum_traffic(counters: Iterable[Dict[str, Any]], window: StatsWindow) -> TrafficTotals:
    """
    Sum upload ("up") and download ("down") bytes of the daily counters that
    fall inside the window. Counters are expected unfiltered; anything outside
    the window or without a usable date is ignored.
    """
    upload = 0
    download = 0
    skipped = 0
    for counter in counters:
        day = parse_api_date(counter.get("date"))
        if day is None:
            skipped += 1
            continue
        if not window.contains(day):
            continue
        upload += _counter_value(counter.get("up"))
        download += _counter_value(counter.get("down"))
    if skipped:
        logging.debug(f"sum_traffic: ignored {skipped} counters without a valid date")
    return TrafficTotals(upload_bytes=upload, download_bytes=download)
