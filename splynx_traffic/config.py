"""
Runtime configuration loaded from .env / environment.

  SPLYNX_API_URL        Base URL of the API, e.g. https://isp.example.com/api/2.0
  SPLYNX_API_KEY        API key
  SPLYNX_API_SECRET     API secret
  SPLYNX_OUTPUT_FOLDER  Folder for CSV reports (default: ./traffic_reports)
  SPLYNX_HTTP_TIMEOUT   Per-request timeout in seconds (default: 60)
"""

import os
import logging
from dataclasses import dataclass, field

from dotenv import find_dotenv, load_dotenv

DEFAULT_OUTPUT_FOLDER = "./traffic_reports"
DEFAULT_HTTP_TIMEOUT = 60.0


@dataclass(frozen=True)
class SplynxConfig:
    api_url: str
    api_key: str = field(repr=False)
    api_secret: str = field(repr=False)
    output_folder: str = DEFAULT_OUTPUT_FOLDER
    http_timeout: float = DEFAULT_HTTP_TIMEOUT

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key and self.api_secret)


def load_config(env_file: str | None = None) -> SplynxConfig:
    """
    Read configuration from the environment after loading .env (existing
    environment variables win over .env values).
    Raises RuntimeError if the base URL is missing or not HTTP(S).
    """
    load_dotenv(env_file or find_dotenv(usecwd=True))

    api_url = os.getenv("SPLYNX_API_URL", "").strip().rstrip("/")
    if not api_url or not api_url.startswith(("http://", "https://")):
        raise RuntimeError(
            "SPLYNX_API_URL must be set to a valid HTTP(S) URL in .env or environment. "
            "Example: SPLYNX_API_URL=https://isp.example.com/api/2.0"
        )

    timeout_raw = os.getenv("SPLYNX_HTTP_TIMEOUT", str(DEFAULT_HTTP_TIMEOUT))
    try:
        http_timeout = float(timeout_raw)
    except ValueError as e:
        raise RuntimeError(
            f"SPLYNX_HTTP_TIMEOUT must be a number of seconds, got '{timeout_raw}'") from e

    config = SplynxConfig(
        api_url=api_url,
        api_key=os.getenv("SPLYNX_API_KEY", ""),
        api_secret=os.getenv("SPLYNX_API_SECRET", ""),
        output_folder=os.getenv("SPLYNX_OUTPUT_FOLDER", DEFAULT_OUTPUT_FOLDER),
        http_timeout=http_timeout,
    )
    logging.debug(f"Loaded configuration: {config}")
    return config
