"""
Report assembly: one CSV row per relevant internet service.

Lookups that fail for a single customer or service (services, tariff,
router, geo address, traffic counters) are logged and treated as "no data";
the run always moves on to the next item.
"""

import csv
import os
import logging
from datetime import date
from typing import Any, Callable, Dict, Iterable, Iterator, List, Tuple

from splynx_traffic.client import SplynxApiError, SplynxClient
from splynx_traffic.periods import StatsWindow, is_service_relevant, parse_api_date, resolve_stats_window
from splynx_traffic.traffic import TrafficTotals, sum_traffic

REPORT_FIELDS = [
    "Customer ID", "Name", "Login", "Email", "Status",
    "Internet Plan Name", "Internet Plan Status",
    "Service ID", "Service Start Date", "Service End Date",
    "IPv4", "Router", "Street", "Town",
    "Total Upload (GB)", "Total Download (GB)",
    "Calculated Stats Start Date", "Calculated Stats End Date",
]

NOT_AVAILABLE = "N/A"
PLAN_UNAVAILABLE = "Plan no longer available"

PROGRESS_STEP_PERCENT = 5

# ------------------------------------------------------------------------------
# Output folder helpers
# ------------------------------------------------------------------------------


def report_filename(end_date: date) -> str:
    return f"splynx_customers_traffic_data_{end_date.isoformat()}.csv"


def ensure_output_folder(folder: str) -> str:
    """
    Create the output folder if it doesn't exist and return its absolute path.
    Validates write permissions before returning.
    """
    try:
        if not os.path.exists(folder):
            os.makedirs(folder, exist_ok=True)
            logging.debug(f"Created output folder: {folder}")

        if not os.access(folder, os.W_OK):
            raise PermissionError(f"No write permission for directory: {folder}")

        return os.path.abspath(folder)
    except OSError as e:
        raise RuntimeError(
            f"Failed to prepare output folder '{folder}': {e}. "
            f"Check that the path exists and you have write permissions."
        ) from e


# ------------------------------------------------------------------------------
# Lookups
# ------------------------------------------------------------------------------


def _lookup(fetch: Callable[..., Any], what: str, *args: Any) -> Any:
    """
    Run a per-item lookup; API failures become None so the caller falls back
    to placeholder values.
    """
    try:
        return fetch(*args)
    except SplynxApiError as e:
        logging.warning(f"{what} lookup failed: {e}")
        return None


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def resolve_plan_name(client: SplynxClient, service: Dict[str, Any]) -> str:
    tariff_id = service.get("tariff_id")
    if tariff_id in (None, ""):
        return NOT_AVAILABLE
    tariff = _lookup(client.get_tariff, f"Tariff {tariff_id}", tariff_id)
    return _text((tariff or {}).get("title")) or PLAN_UNAVAILABLE


def resolve_router_title(client: SplynxClient, service: Dict[str, Any]) -> str:
    router_id = service.get("router_id")
    if router_id in (None, ""):
        return NOT_AVAILABLE
    router = _lookup(client.get_router, f"Router {router_id}", router_id)
    return _text((router or {}).get("title")) or NOT_AVAILABLE


def split_address(address: str | None, customer: Dict[str, Any]) -> Tuple[str, str]:
    """
    Street and town of an install address ("Street 1, Town, ...").

    Without a comma the whole address is the street and the town comes from
    the customer profile; without an address both come from the profile.
    Anything still blank is reported as N/A.
    """
    city = _text(customer.get("city"))
    address = _text(address)
    if not address:
        return _text(customer.get("street_1")) or NOT_AVAILABLE, city or NOT_AVAILABLE

    parts = address.split(",")
    if len(parts) > 1:
        street, town = parts[0].strip(), parts[1].strip()
    else:
        street, town = address, city
    return street or NOT_AVAILABLE, town or NOT_AVAILABLE


def resolve_install_address(client: SplynxClient, customer: Dict[str, Any], service: Dict[str, Any]) -> Tuple[str, str]:
    geo = _lookup(client.get_service_geo, f"Geo address of service {service.get('id')}",
                  customer.get("id"), service.get("id"))
    return split_address((geo or {}).get("address"), customer)


def fetch_traffic(client: SplynxClient, service: Dict[str, Any], window: StatsWindow) -> TrafficTotals:
    counters = _lookup(client.list_traffic_counters, f"Traffic of service {service.get('id')}", service.get("id"))
    return sum_traffic(counters or [], window)


# ------------------------------------------------------------------------------
# Rows
# ------------------------------------------------------------------------------


def build_row(
    customer: Dict[str, Any],
    service: Dict[str, Any],
    window: StatsWindow,
    plan_name: str,
    router_title: str,
    street: str,
    town: str,
    totals: TrafficTotals,
) -> Dict[str, Any]:
    service_start = parse_api_date(service.get("start_date"))
    service_end = parse_api_date(service.get("end_date"))
    stats_start, stats_end = window.labels()
    return {
        "Customer ID": _text(customer.get("id")),
        "Name": _text(customer.get("name")),
        "Login": _text(customer.get("login")),
        "Email": _text(customer.get("email")),
        "Status": _text(customer.get("status")),
        "Internet Plan Name": plan_name,
        "Internet Plan Status": _text(service.get("status")),
        "Service ID": _text(service.get("id")),
        "Service Start Date": service_start.isoformat() if service_start else NOT_AVAILABLE,
        "Service End Date": service_end.isoformat() if service_end else NOT_AVAILABLE,
        "IPv4": _text(service.get("ipv4")),
        "Router": router_title,
        "Street": street,
        "Town": town,
        "Total Upload (GB)": totals.upload_gb,
        "Total Download (GB)": totals.download_gb,
        "Calculated Stats Start Date": stats_start,
        "Calculated Stats End Date": stats_end,
    }


def service_rows(
    client: SplynxClient,
    customer: Dict[str, Any],
    reference_end: date,
    start_override: date | None = None,
    end_override: date | None = None,
) -> Iterator[Dict[str, Any]]:
    """
    Rows for the relevant internet services of one customer, in API order.
    """
    customer_id = customer.get("id")
    services = _lookup(client.list_internet_services, f"Services of customer {customer_id}", customer_id)
    for service in services or []:
        service_start = parse_api_date(service.get("start_date"))
        service_end = parse_api_date(service.get("end_date"))

        window = resolve_stats_window(reference_end, service_start, start_override, end_override)
        if window is None:
            logging.debug(f"Service {service.get('id')} of customer {customer_id}: no start date, skipped")
            continue
        if not is_service_relevant(service_start, service_end, window):
            logging.debug(
                f"Service {service.get('id')} of customer {customer_id}: inactive during "
                f"{window.start.isoformat()}..{window.end.isoformat()}, skipped")
            continue

        plan_name = resolve_plan_name(client, service)
        router_title = resolve_router_title(client, service)
        street, town = resolve_install_address(client, customer, service)
        totals = fetch_traffic(client, service, window)
        yield build_row(customer, service, window, plan_name, router_title, street, town, totals)


def build_report_rows(
    client: SplynxClient,
    customers: List[Dict[str, Any]],
    reference_end: date,
    start_override: date | None = None,
    end_override: date | None = None,
) -> Iterator[Dict[str, Any]]:
    """
    Rows for every customer in listing order, logging progress every 5%.
    Customers without an id are ignored.
    """
    total = len(customers)
    next_mark = 0
    for processed, customer in enumerate(customers, start=1):
        progress = processed * 100 // total
        if progress >= next_mark:
            logging.info(f"Progress: {progress}% ({processed} of {total} customers processed)")
            while next_mark <= progress:
                next_mark += PROGRESS_STEP_PERCENT

        if customer.get("id") in (None, ""):
            logging.debug("Customer without id skipped")
            continue
        yield from service_rows(client, customer, reference_end, start_override, end_override)


# ------------------------------------------------------------------------------
# Output
# ------------------------------------------------------------------------------


def write_report(filepath: str, rows: Iterable[Dict[str, Any]]) -> int:
    """
    Write the header and then each row as it is produced. Returns the number
    of data rows written.
    """
    count = 0
    with open(filepath, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=REPORT_FIELDS)
        writer.writeheader()
        for row in rows:
            writer.writerow(row)
            count += 1
    logging.info(f"Wrote CSV: {filepath} (rows={count})")
    return count
