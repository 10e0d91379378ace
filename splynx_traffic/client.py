"""
Thin Splynx REST API wrapper (Basic auth, JSON in/out).
"""

import logging
from typing import Any, Dict, List, Tuple

import requests
from requests.auth import HTTPBasicAuth

from splynx_traffic.config import SplynxConfig

# Endpoints that legitimately answer 404 when there is simply nothing to return
# (no counters recorded yet, plan deleted).
NOT_FOUND_IS_EMPTY = ("customer-traffic-counter", "tariffs/internet")

CUSTOMERS_PATH = "admin/customers/customer"
TRAFFIC_COUNTER_PATH = "admin/customers/customer-traffic-counter"


class SplynxApiError(RuntimeError):
    """Non-success answer (or transport failure) for a single API call."""

    def __init__(self, path: str, status_code: int | None, detail: str = ""):
        self.path = path
        self.status_code = status_code
        self.detail = detail
        status = status_code if status_code is not None else "no response"
        message = f"GET {path} failed ({status})"
        if detail:
            message += f": {detail}"
        super().__init__(message)


def flatten_params(params: Dict[str, Any] | None, prefix: str = "") -> List[Tuple[str, Any]]:
    """
    Encode nested dicts the way PHP's http_build_query does, which is what
    the API expects for filters:

      {"main_attributes": {"service_id": 7}} -> [("main_attributes[service_id]", 7)]
    """
    pairs: List[Tuple[str, Any]] = []
    for key, value in (params or {}).items():
        name = f"{prefix}[{key}]" if prefix else str(key)
        if isinstance(value, dict):
            pairs.extend(flatten_params(value, name))
        elif isinstance(value, (list, tuple)):
            for i, item in enumerate(value):
                if isinstance(item, dict):
                    pairs.extend(flatten_params(item, f"{name}[{i}]"))
                else:
                    pairs.append((f"{name}[{i}]", item))
        elif value is not None:
            pairs.append((name, value))
    return pairs


class SplynxClient:
    """
    Blocking GET client. One instance (and one HTTP session) per run.

    get() returns the decoded JSON body, [] for a 404 on the traffic counter
    and internet tariff endpoints, and raises SplynxApiError for anything else.
    """

    def __init__(self, config: SplynxConfig, session: requests.Session | None = None):
        self.base_url = config.api_url.rstrip("/")
        self.timeout = config.http_timeout
        self.session = session or requests.Session()
        self.session.auth = HTTPBasicAuth(config.api_key, config.api_secret)
        self.session.headers.update({
            "Accept": "application/json",
            "User-Agent": "Splynx-API-Client",
        })

    def url_for(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def get(self, path: str, params: Dict[str, Any] | None = None) -> Any:
        url = self.url_for(path)
        try:
            resp = self.session.get(url, params=flatten_params(params), timeout=self.timeout)
        except requests.RequestException as e:
            raise SplynxApiError(path, None, str(e)) from e

        if 200 <= resp.status_code < 300:
            try:
                return resp.json()
            except ValueError as e:
                raise SplynxApiError(path, resp.status_code, "response is not valid JSON") from e

        if resp.status_code == 404 and any(marker in path for marker in NOT_FOUND_IS_EMPTY):
            logging.debug(f"GET {path}: 404, treating as empty result")
            return []

        raise SplynxApiError(path, resp.status_code, resp.text[:200])

    # --------------------------------------------------------------------------
    # Endpoint helpers
    # --------------------------------------------------------------------------

    def list_customers(self) -> List[Dict[str, Any]]:
        return as_list(self.get(CUSTOMERS_PATH))

    def list_internet_services(self, customer_id: Any) -> List[Dict[str, Any]]:
        return as_list(self.get(f"{CUSTOMERS_PATH}/{customer_id}/internet-services"))

    def get_tariff(self, tariff_id: Any) -> Dict[str, Any]:
        return as_dict(self.get(f"admin/tariffs/internet/{tariff_id}"))

    def get_router(self, router_id: Any) -> Dict[str, Any]:
        return as_dict(self.get(f"admin/networking/routers/{router_id}"))

    def get_service_geo(self, customer_id: Any, service_id: Any) -> Dict[str, Any]:
        return as_dict(self.get(f"{CUSTOMERS_PATH}/{customer_id}/geo-internet-service--{service_id}"))

    def list_traffic_counters(self, service_id: Any) -> List[Dict[str, Any]]:
        """
        All daily counters of a service. The API's date filter is unreliable,
        so no date range is sent; callers filter by date themselves.
        """
        params = {"main_attributes": {"service_id": service_id}}
        return as_list(self.get(TRAFFIC_COUNTER_PATH, params))

    def close(self) -> None:
        self.session.close()


def as_list(data: Any) -> List[Dict[str, Any]]:
    """
    Normalize a listing response to a list of dicts.
    """
    if not data:
        return []
    if isinstance(data, list):
        return [item for item in data if isinstance(item, dict)]
    if isinstance(data, dict):
        return [data]
    return []


def as_dict(data: Any) -> Dict[str, Any]:
    return data if isinstance(data, dict) else {}
