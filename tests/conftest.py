"""Shared fixtures: an in-memory stand-in for the Splynx HTTP API."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Dict, List, Tuple

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from splynx_traffic.client import SplynxClient  # noqa: E402
from splynx_traffic.config import SplynxConfig  # noqa: E402

BASE_URL = "https://isp.example.com/api/2.0"


class FakeResponse:
    def __init__(self, status_code: int, payload: Any = None, text: str = ""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self) -> Any:
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class FakeSession:
    """
    Routes GET requests by API path. Values are either a payload (served with
    200), a (status, payload) tuple, or an exception to raise. Unknown paths
    answer 404.
    """

    def __init__(self, routes: Dict[str, Any] | None = None):
        self.routes = routes or {}
        self.headers: Dict[str, str] = {}
        self.auth = None
        self.calls: List[Tuple[str, Any]] = []
        self.closed = False

    def get(self, url: str, params: Any = None, timeout: float | None = None) -> FakeResponse:
        path = url[len(BASE_URL) + 1:] if url.startswith(BASE_URL) else url
        self.calls.append((path, params))
        route = self.routes.get(path)
        if isinstance(route, Exception):
            raise route
        if route is None:
            return FakeResponse(404, {"error": "not found"}, text="Not Found")
        if isinstance(route, tuple):
            status, payload = route
            return FakeResponse(status, payload, text=str(payload))
        return FakeResponse(200, route)

    def close(self) -> None:
        self.closed = True

    def paths(self) -> List[str]:
        return [path for path, _ in self.calls]


@pytest.fixture
def config(tmp_path: Path) -> SplynxConfig:
    return SplynxConfig(
        api_url=BASE_URL,
        api_key="key-123456",
        api_secret="secret-abcdef",
        output_folder=str(tmp_path / "reports"),
        http_timeout=5,
    )


@pytest.fixture
def make_client(config: SplynxConfig):
    def _make(routes: Dict[str, Any] | None = None) -> SplynxClient:
        return SplynxClient(config, session=FakeSession(routes))
    return _make


def customer(cid: int = 1, **extra: Any) -> Dict[str, Any]:
    data = {
        "id": cid,
        "name": f"Customer {cid}",
        "login": f"login{cid}",
        "email": f"c{cid}@example.com",
        "status": "active",
        "street_1": "1 Profile Road",
        "city": "Profiletown",
    }
    data.update(extra)
    return data


def service(sid: int = 10, start: str = "2024-01-15", end: str = "0000-00-00", **extra: Any) -> Dict[str, Any]:
    data = {
        "id": sid,
        "status": "active",
        "ipv4": f"10.0.0.{sid}",
        "tariff_id": 3,
        "router_id": 4,
        "start_date": start,
        "end_date": end,
    }
    data.update(extra)
    return data
