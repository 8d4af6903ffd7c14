"""Action vocabulary understood by :mod:`sheets.reducer`.

Actions are small frozen records tagged with a ``type`` string.  Code that
builds actions directly uses the classes; payloads arriving as plain
mappings (from a UI bridge, a test fixture or a log replay) go through
:func:`parse_action`, which reports unknown tags and missing fields as
:class:`~sheets.errors.InvalidAction`.

Mapping shapes::

    {"type": "item_add", "item": {...}}
    {"type": "item_edit", "id": "...", "patch": {...}}
    {"type": "item_remove", "id": "..."}
    {"type": "members_set", "members": [...]}
    {"type": "name_set", "name": "..."}
    {"type": "sheet_update", "data": {"items": [...], "name": ..., "members": [...]}}
    {"type": "suppress_refetch", "duration": 5000}
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, ClassVar, Mapping, Union

from .errors import InvalidAction
from .models import InventoryItem, SheetSnapshot, validate_members

__all__ = [
    "Action",
    "ACTION_TYPES",
    "LOCAL_ACTIONS",
    "ItemAdd",
    "ItemEdit",
    "ItemRemove",
    "MembersSet",
    "NameSet",
    "SheetUpdate",
    "SuppressRefetch",
    "parse_action",
]


@dataclass(frozen=True, slots=True)
class ItemAdd:
    type: ClassVar[str] = "item_add"

    item: InventoryItem


@dataclass(frozen=True, slots=True)
class ItemEdit:
    type: ClassVar[str] = "item_edit"

    id: str
    patch: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ItemRemove:
    type: ClassVar[str] = "item_remove"

    id: str


@dataclass(frozen=True, slots=True)
class MembersSet:
    type: ClassVar[str] = "members_set"

    members: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class NameSet:
    type: ClassVar[str] = "name_set"

    name: str


@dataclass(frozen=True, slots=True)
class SheetUpdate:
    """Snapshot fetched by the poller, to be reconciled with local state."""

    type: ClassVar[str] = "sheet_update"

    snapshot: SheetSnapshot


@dataclass(frozen=True, slots=True)
class SuppressRefetch:
    """Ignore snapshots for ``duration_ms`` from the moment it is applied."""

    type: ClassVar[str] = "suppress_refetch"

    duration_ms: int


Action = Union[ItemAdd, ItemEdit, ItemRemove, MembersSet, NameSet, SheetUpdate, SuppressRefetch]

ACTION_TYPES: tuple[type, ...] = (
    ItemAdd,
    ItemEdit,
    ItemRemove,
    MembersSet,
    NameSet,
    SheetUpdate,
    SuppressRefetch,
)

# Actions that originate from the user on this client.
LOCAL_ACTIONS: tuple[type, ...] = (ItemAdd, ItemEdit, ItemRemove, MembersSet, NameSet)


# ---------------------------------------------------------------------------
# Mapping payloads.


def _require(payload: Mapping[str, Any], key: str) -> Any:
    if key not in payload:
        raise InvalidAction(f"{payload.get('type')} action is missing '{key}'")
    return payload[key]


def _require_mapping(payload: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = _require(payload, key)
    if not isinstance(value, Mapping):
        raise InvalidAction(f"{payload.get('type')} action field '{key}' must be an object")
    return value


def _require_str(payload: Mapping[str, Any], key: str) -> str:
    value = _require(payload, key)
    if not isinstance(value, str):
        raise InvalidAction(f"{payload.get('type')} action field '{key}' must be a string")
    return value


def _parse_suppress(payload: Mapping[str, Any]) -> SuppressRefetch:
    duration = _require(payload, "duration")
    if not isinstance(duration, int) or isinstance(duration, bool):
        raise InvalidAction("suppress_refetch duration must be whole milliseconds")
    return SuppressRefetch(duration)


def _parse_members(payload: Mapping[str, Any]) -> MembersSet:
    members = _require(payload, "members")
    if not isinstance(members, (list, tuple)):
        raise InvalidAction("members_set action field 'members' must be a list")
    return MembersSet(validate_members(members))


_PARSERS: dict[str, Callable[[Mapping[str, Any]], Any]] = {
    ItemAdd.type: lambda p: ItemAdd(InventoryItem.from_dict(_require_mapping(p, "item"))),
    ItemEdit.type: lambda p: ItemEdit(_require_str(p, "id"), dict(_require_mapping(p, "patch"))),
    ItemRemove.type: lambda p: ItemRemove(_require_str(p, "id")),
    MembersSet.type: _parse_members,
    NameSet.type: lambda p: NameSet(_require_str(p, "name")),
    SheetUpdate.type: lambda p: SheetUpdate(SheetSnapshot.from_dict(_require_mapping(p, "data"))),
    SuppressRefetch.type: _parse_suppress,
}


def parse_action(payload: Mapping[str, Any]) -> Action:
    """Build an action from a tagged mapping.

    Raises
    ------
    InvalidAction
        If the tag is unknown or a required field is missing or mistyped.
    ValidationError
        If an embedded item, member list or snapshot is invalid.
    """

    if not isinstance(payload, Mapping):
        raise InvalidAction("action must be a mapping with a 'type'")
    tag = payload.get("type")
    parser = _PARSERS.get(tag) if isinstance(tag, str) else None
    if parser is None:
        raise InvalidAction(f"unknown action type: {tag!r}")
    return parser(payload)
