"""Recently viewed sheets, most recent first."""

from __future__ import annotations

import json
from pathlib import Path
from threading import Lock
from typing import Any, Iterable

from config import sheets as sheets_cfg

__all__ = ["MAX_REMEMBERED", "forget_sheet", "load_remembered", "remember_sheet"]

MAX_REMEMBERED = 10

_LOCK = Lock()


def _path(path: Path | None) -> Path:
    return Path(path) if path is not None else sheets_cfg.remembered_file()


def _load(path: Path) -> list[dict[str, Any]]:
    if not path.exists():
        return []
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except Exception:
        # Corrupt or unreadable history is treated as empty.
        return []
    if not isinstance(data, list):
        return []
    return [entry for entry in data if isinstance(entry, dict) and entry.get("_id")]


def _save(path: Path, entries: list[dict[str, Any]]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(entries[:MAX_REMEMBERED], indent=2), encoding="utf-8")


def load_remembered(path: Path | None = None) -> list[dict[str, Any]]:
    """Return remembered sheets as ``{"_id", "name", "members"}`` dictionaries."""

    with _LOCK:
        return _load(_path(path))


def remember_sheet(
    sheet_id: str,
    name: str,
    members: Iterable[str] = (),
    *,
    path: Path | None = None,
) -> list[dict[str, Any]]:
    """Move ``sheet_id`` to the front of the list, updating its name and members."""

    target = _path(path)
    entry = {"_id": sheet_id, "name": name, "members": list(members)}
    with _LOCK:
        entries = [e for e in _load(target) if e.get("_id") != sheet_id]
        entries.insert(0, entry)
        _save(target, entries)
        return entries[:MAX_REMEMBERED]


def forget_sheet(sheet_id: str, *, path: Path | None = None) -> bool:
    """Remove ``sheet_id``; return ``True`` if it was remembered."""

    target = _path(path)
    with _LOCK:
        entries = _load(target)
        kept = [e for e in entries if e.get("_id") != sheet_id]
        if len(kept) == len(entries):
            return False
        _save(target, kept)
        return True
