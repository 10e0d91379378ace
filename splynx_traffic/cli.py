"""
Splynx Traffic Report

Writes splynx_customers_traffic_data_<end date>.csv with one row per internet
service that was active during its stats window, including the upload and
download totals for that window.

Stats window per service:
- --start and --end together: that exact window for every service.
- Otherwise the last complete billing cycle (anchored on the day of month
  the service started) closed on or before --end (default: yesterday).

Credentials come from .env / environment (see splynx_traffic.config).
"""

import os
import sys
import logging
import argparse
from datetime import date, datetime
from typing import List

from splynx_traffic.client import SplynxApiError, SplynxClient
from splynx_traffic.config import SplynxConfig, load_config
from splynx_traffic.periods import default_reference_end
from splynx_traffic.report import build_report_rows, ensure_output_folder, report_filename, write_report

CLI_DATE_FORMAT = "%d/%m/%Y"

# ------------------------------------------------------------------------------
# Argument parsing
# ------------------------------------------------------------------------------


def parse_cli_date(value: str) -> date:
    """
    Parse a DD/MM/YYYY CLI date. argparse reports the failure against the
    flag being parsed.
    """
    try:
        return datetime.strptime(value, CLI_DATE_FORMAT).date()
    except ValueError as e:
        raise argparse.ArgumentTypeError(
            f"invalid date '{value}', please use DD/MM/YYYY") from e


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="splynx-traffic-report",
        description="Splynx customer traffic report (CSV)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  splynx-traffic-report                                  # Last billing cycle of each service up to yesterday
  splynx-traffic-report --end 20/08/2025                 # Last billing cycle closed by 20/08/2025
  splynx-traffic-report --start 01/07/2025 --end 31/07/2025  # Same window for every service
  splynx-traffic-report --silent                         # Warnings and errors only
  splynx-traffic-report --validate                       # Pre-flight checks only
""")

    time_group = parser.add_argument_group("time window")
    time_group.add_argument("--end", type=parse_cli_date, metavar="DD/MM/YYYY",
                            help="End of the reporting period. Default: yesterday")
    time_group.add_argument("--start", type=parse_cli_date, metavar="DD/MM/YYYY",
                            help="Start of the reporting period. Together with --end this "
                                 "overrides the billing cycle logic")

    mode_group = parser.add_argument_group("mode")
    mode_group.add_argument("--silent", action="store_true",
                            help="Suppress informational and progress output")
    mode_group.add_argument("--validate", action="store_true",
                            help="Run pre-flight validation checks only (no report)")
    mode_group.add_argument("--dry-run", action="store_true",
                            help="Build the report rows but do not write the CSV file")
    mode_group.add_argument("--log", default="INFO",
                            choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
                            help="Set the logging level (default: INFO)")
    return parser


def parse_args(argv: List[str] | None = None) -> argparse.Namespace:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.start and args.end and args.start > args.end:
        parser.error("argument --start: must not be after --end")
    return args


def configure_logging(args: argparse.Namespace) -> None:
    level = "WARNING" if args.silent else args.log.upper()
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(message)s", force=True)


# ------------------------------------------------------------------------------
# Validation
# ------------------------------------------------------------------------------


def validate_configuration(config: SplynxConfig, client: SplynxClient) -> bool:
    """
    Run pre-flight validation checks. Returns True if all checks pass.
    Raises RuntimeError if a check fails.
    """
    logging.info("Running pre-flight validation checks...")

    if not config.has_credentials:
        raise RuntimeError("SPLYNX_API_KEY and SPLYNX_API_SECRET must be set in .env or environment")
    logging.info("✓ API credentials configured")

    try:
        client.list_customers()
        logging.info("✓ API connectivity OK")
    except SplynxApiError as e:
        raise RuntimeError(f"Failed to connect to API: {e}") from e

    ensure_output_folder(config.output_folder)
    logging.info("✓ Output folder is writable")

    logging.info("✓ All validation checks passed")
    return True


# ------------------------------------------------------------------------------
# Main
# ------------------------------------------------------------------------------


def run(args: argparse.Namespace, config: SplynxConfig, client: SplynxClient) -> int:
    """
    Fetch customers, build rows and write the CSV. Returns the exit code.
    """
    reference_end = args.end or default_reference_end()
    start_override = args.start if args.start and args.end else None
    end_override = args.end if args.start and args.end else None

    if start_override:
        logging.info(f"Stats window for all services: {start_override.isoformat()} to {end_override.isoformat()}")
    else:
        if args.start:
            logging.info("--start without --end is ignored; using billing cycles")
        logging.info(f"Billing cycles closed on or before {reference_end.isoformat()}")

    filepath = None
    if not args.dry_run:
        filepath = os.path.join(ensure_output_folder(config.output_folder), report_filename(reference_end))

    try:
        customers = client.list_customers()
    except SplynxApiError as e:
        logging.error(f"Failed to retrieve customer data ({e}). "
                      "Please check your API key, secret and Splynx API URL.")
        if filepath:
            write_report(filepath, [])
        return 1

    if not customers:
        logging.info("No customers found.")
    else:
        logging.info(f"Found {len(customers)} customers. Processing...")

    rows = build_report_rows(client, customers, reference_end, start_override, end_override)
    if filepath:
        count = write_report(filepath, rows)
    else:
        count = sum(1 for _ in rows)
        logging.info("--dry-run mode: skipping file write")
    logging.info(f"Processing complete: {count} services reported")
    return 0


def main(argv: List[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging(args)

    try:
        config = load_config()
    except RuntimeError as e:
        logging.error(str(e))
        return 1
    if not args.validate and not config.has_credentials:
        logging.error("Set SPLYNX_API_KEY and SPLYNX_API_SECRET in your .env")
        return 1

    client = SplynxClient(config)
    try:
        if args.validate:
            validate_configuration(config, client)
            logging.info("Validation passed. Exiting.")
            return 0
        return run(args, config, client)
    except RuntimeError as e:
        logging.error(str(e))
        return 1
    finally:
        client.close()


if __name__ == "__main__":
    sys.exit(main())
