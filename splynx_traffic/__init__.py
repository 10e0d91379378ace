"""
Splynx customer traffic report.

Lists every customer and internet service from a Splynx instance, sums the
daily traffic counters over each service's last complete billing cycle (or
an explicit window) and writes one CSV row per relevant service.
"""

__version__ = "1.0.0"
