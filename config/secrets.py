"""Locate and read the optional ``secrets.json`` holding sheet settings.

Two places are searched, first match wins: ``secrets.json`` at the project
root, then ``party-sheets/secrets.json`` under the user's config folder
(``$XDG_CONFIG_HOME`` or ``~/.config``).
"""

from __future__ import annotations

from collections.abc import Iterator
import json
import logging
import os
from pathlib import Path
from typing import Any

__all__ = [
    "SECRETS_FILE_NAME",
    "APP_IDENTIFIER",
    "PROJECT_ROOT",
    "iter_candidate_files",
    "load_secrets",
]

logger = logging.getLogger(__name__)

SECRETS_FILE_NAME = "secrets.json"
APP_IDENTIFIER = "party-sheets"

PROJECT_ROOT = Path(__file__).resolve().parent.parent


def user_config_dir() -> Path:
    base = os.environ.get("XDG_CONFIG_HOME")
    root = Path(base) if base else Path.home() / ".config"
    return root / APP_IDENTIFIER


def iter_candidate_files(project_root: Path | None = None) -> Iterator[Path]:
    """Yield the ``secrets.json`` paths in lookup order."""

    yield (project_root or PROJECT_ROOT) / SECRETS_FILE_NAME
    yield user_config_dir() / SECRETS_FILE_NAME


def load_secrets() -> dict[str, Any]:
    """Return the first readable secrets mapping, or ``{}``."""

    for path in iter_candidate_files():
        data = _read_json(path)
        if data is not None:
            return data
    return {}


def _read_json(path: Path) -> dict[str, Any] | None:
    if not path.exists():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.warning("Ignoring unreadable secrets file %s: %s", path, exc)
        return None
    if not isinstance(data, dict):
        logger.warning("Ignoring secrets file %s: top level is not an object", path)
        return None
    return data
