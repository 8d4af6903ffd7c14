from __future__ import annotations

"""Runtime settings for the sheet client.

Every value is looked up when requested: the environment variable wins,
then the ``"sheets"`` section of ``secrets.json``, then the default below.
Malformed numbers fall back to the default with a warning.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

from . import secrets as secrets_cfg

__all__ = [
    "DEFAULT_REFETCH_INTERVAL",
    "DEFAULT_SUPPRESS_REFETCH",
    "api_token",
    "api_url",
    "environment",
    "http_timeout",
    "in_development",
    "in_production",
    "in_testing",
    "is_building_for_prod",
    "on_prod_branch",
    "refetch_interval",
    "remembered_file",
    "site_url",
    "suppress_refetch",
]

logger = logging.getLogger(__name__)

# Milliseconds between refetches of the open sheet.
DEFAULT_REFETCH_INTERVAL = 3000
# Milliseconds during which snapshots are ignored after a local edit.
DEFAULT_SUPPRESS_REFETCH = 5000
DEFAULT_API_URL = "http://localhost:3000/api"
DEFAULT_SITE_URL = "http://localhost:3000"
DEFAULT_HTTP_TIMEOUT = 10.0
DEFAULT_REMEMBERED_FILE = Path("cache/remembered_sheets.json")

_ENVIRONMENTS = ("production", "development", "test")


def _setting(env_var: str, secrets_key: str) -> Optional[str]:
    value = os.getenv(env_var)
    if isinstance(value, str) and value.strip():
        return value.strip()
    section = secrets_cfg.load_secrets().get("sheets")
    if isinstance(section, dict):
        stored = section.get(secrets_key)
        if stored is not None and str(stored).strip():
            return str(stored).strip()
    return None


def _number(env_var: str, secrets_key: str, default: Any, cast: type) -> Any:
    raw = _setting(env_var, secrets_key)
    if raw is None:
        return default
    try:
        value = cast(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r, using %s", env_var, raw, default)
        return default
    if value < 0:
        logger.warning("Ignoring negative %s=%r, using %s", env_var, raw, default)
        return default
    return value


def refetch_interval() -> int:
    """Return the poll interval in milliseconds."""

    return _number("SHEETS_REFETCH_INTERVAL", "refetchInterval", DEFAULT_REFETCH_INTERVAL, int)


def suppress_refetch() -> int:
    """Return how long (ms) snapshots are ignored after a local edit."""

    return _number("SHEETS_SUPPRESS_REFETCH", "suppressRefetch", DEFAULT_SUPPRESS_REFETCH, int)


def http_timeout() -> float:
    return _number("SHEETS_HTTP_TIMEOUT", "httpTimeout", DEFAULT_HTTP_TIMEOUT, float)


def api_url() -> str:
    return (_setting("SHEETS_API_URL", "apiUrl") or DEFAULT_API_URL).rstrip("/")


def site_url() -> str:
    return (_setting("SHEETS_SITE_URL", "siteUrl") or DEFAULT_SITE_URL).rstrip("/")


def api_token() -> Optional[str]:
    return _setting("SHEETS_API_TOKEN", "apiToken")


def remembered_file() -> Path:
    raw = _setting("SHEETS_REMEMBERED_FILE", "rememberedFile")
    return Path(raw).expanduser() if raw else DEFAULT_REMEMBERED_FILE


def environment() -> str:
    """Return ``production``, ``development`` or ``test``."""

    raw = (os.getenv("SHEETS_ENV") or "development").strip().lower()
    if raw not in _ENVIRONMENTS:
        logger.warning("Unknown SHEETS_ENV=%r, assuming development", raw)
        return "development"
    return raw


def in_production() -> bool:
    return environment() == "production"


def in_development() -> bool:
    return environment() == "development"


def in_testing() -> bool:
    return environment() == "test"


def on_prod_branch() -> bool:
    """Return ``True`` when ``ON_PROD_BRANCH`` holds the JSON literal ``true``."""

    raw = os.getenv("ON_PROD_BRANCH")
    if not raw:
        return False
    try:
        return json.loads(raw) is True
    except json.JSONDecodeError:
        return False


def is_building_for_prod() -> bool:
    return on_prod_branch() and in_production()
