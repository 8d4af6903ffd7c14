from __future__ import annotations

"""HTTP access to the sheet API.

:func:`fetch_sheet` is the refetch collaborator used by
:class:`sheets.poller.SheetPoller`; :func:`fetch_sheet_state` loads the
full sheet (including its id) when a page is opened.  Both issue a single
``GET {api_url}/sheets/{id}`` and translate every transport problem into
:class:`~sheets.errors.SheetFetchError`.
"""

import logging
from typing import Any
from urllib.parse import quote

import requests
from requests.exceptions import HTTPError, RequestException, Timeout

from config import sheets as sheets_cfg

from .errors import SheetFetchError, ValidationError
from .models import InventorySheetState, SheetSnapshot

__all__ = ["fetch_sheet", "fetch_sheet_json", "fetch_sheet_state", "sheet_url"]

logger = logging.getLogger(__name__)


def sheet_url(sheet_id: str, base_url: str | None = None) -> str:
    base = (base_url or sheets_cfg.api_url()).rstrip("/")
    return f"{base}/sheets/{quote(str(sheet_id), safe='')}"


def _headers() -> dict[str, str]:
    headers = {"Accept": "application/json"}
    token = sheets_cfg.api_token()
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def fetch_sheet_json(
    sheet_id: str,
    *,
    base_url: str | None = None,
    timeout: float | None = None,
) -> dict[str, Any]:
    """Return the raw JSON object served for ``sheet_id``."""

    url = sheet_url(sheet_id, base_url)
    try:
        resp = requests.get(
            url,
            headers=_headers(),
            timeout=timeout if timeout is not None else sheets_cfg.http_timeout(),
        )
        resp.raise_for_status()
    except Timeout as exc:
        raise SheetFetchError(f"Request for sheet {sheet_id} timed out") from exc
    except HTTPError as exc:
        response = exc.response
        status = response.status_code if response is not None else "unknown"
        raise SheetFetchError(f"Sheet API HTTP {status} for sheet {sheet_id}") from exc
    except RequestException as exc:
        raise SheetFetchError(f"Request for sheet {sheet_id} failed: {exc}") from exc

    try:
        data = resp.json()
    except ValueError as exc:
        raise SheetFetchError(f"Invalid JSON payload for sheet {sheet_id}") from exc
    if not isinstance(data, dict):
        raise SheetFetchError(f"Unexpected payload for sheet {sheet_id}")
    logger.debug("Fetched sheet %s from %s", sheet_id, url)
    return data


def fetch_sheet(
    sheet_id: str,
    *,
    base_url: str | None = None,
    timeout: float | None = None,
) -> SheetSnapshot:
    """Return the server's current snapshot of ``sheet_id``."""

    data = fetch_sheet_json(sheet_id, base_url=base_url, timeout=timeout)
    try:
        return SheetSnapshot.from_dict(data)
    except (ValidationError, TypeError, ValueError, OverflowError) as exc:
        raise SheetFetchError(f"Malformed snapshot for sheet {sheet_id}: {exc}") from exc


def fetch_sheet_state(
    sheet_id: str,
    *,
    base_url: str | None = None,
    timeout: float | None = None,
) -> InventorySheetState:
    """Load ``sheet_id`` as a fresh page state."""

    data = fetch_sheet_json(sheet_id, base_url=base_url, timeout=timeout)
    data.setdefault("_id", sheet_id)
    try:
        return InventorySheetState.from_dict(data)
    except (ValidationError, TypeError, ValueError, OverflowError) as exc:
        raise SheetFetchError(f"Malformed sheet {sheet_id}: {exc}") from exc
