"""Data model for a party inventory sheet.

A sheet is a named list of inventory items shared by a party.  Each item may
name the party member carrying it; that reference is deliberately weak: an
item may point at somebody who has since left ``members`` and is then shown
as carried by "Nobody".

All records are frozen dataclasses holding tuples so that a state value can
be shared freely between the store, the poller and any view.  The
``from_dict``/``to_dict`` helpers speak the JSON shape served by the sheet
API (``_id``, ``carriedBy`` ...), which is also the shape accepted in
action payloads.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
import math
from typing import Any, Iterable, Mapping

from .errors import ValidationError

__all__ = [
    "ITEM_FIELDS",
    "BlockRefetch",
    "InventoryItem",
    "InventorySheetState",
    "SheetSnapshot",
    "coerce_item_fields",
    "utc_now",
    "validate_items",
    "validate_members",
]

# Item attributes an edit may touch.
ITEM_FIELDS = ("name", "quantity", "weight", "value", "carried_by", "description")

# Wire names that differ from attribute names.
_WIRE_ALIASES = {
    "_id": "id",
    "carriedBy": "carried_by",
}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Coercion helpers.


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _to_number(value: Any, name: str) -> float | int:
    if _is_number(value):
        num = value
    else:
        try:
            num = float(str(value).strip())
        except (TypeError, ValueError):
            raise ValidationError(f"item {name} must be a number") from None
        if num.is_integer():
            num = int(num)
    try:
        finite = math.isfinite(num)
    except OverflowError:
        finite = False
    if not finite:
        raise ValidationError(f"item {name} must be finite")
    if num < 0:
        raise ValidationError(f"item {name} cannot be negative")
    return num


def _to_quantity(value: Any) -> int:
    num = _to_number(value, "quantity")
    if isinstance(num, float):
        if not num.is_integer():
            raise ValidationError("item quantity must be a whole number")
        num = int(num)
    return num


def _to_carrier(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _unwire(data: Mapping[str, Any]) -> dict[str, Any]:
    """Return ``data`` with wire keys translated to attribute names."""

    return {_WIRE_ALIASES.get(key, key): value for key, value in data.items()}


def coerce_item_fields(data: Mapping[str, Any], *, strict: bool = True) -> dict[str, Any]:
    """Normalise a (partial) mapping of item fields.

    Only keys present in ``data`` are returned.  With ``strict`` unknown keys
    raise :class:`ValidationError` so that a typo in an edit patch is
    reported instead of silently dropped; otherwise they are ignored.
    """

    fields = _unwire(data)
    unknown = sorted(set(fields) - set(ITEM_FIELDS) - {"id"})
    if unknown and strict:
        raise ValidationError(f"unknown item field(s): {', '.join(unknown)}")

    output: dict[str, Any] = {}
    if "id" in fields:
        output["id"] = str(fields["id"] or "").strip()
    if "name" in fields:
        name = str(fields["name"] or "").strip()
        if not name:
            raise ValidationError("item name is required")
        output["name"] = name
    if "quantity" in fields:
        output["quantity"] = _to_quantity(fields["quantity"])
    if "weight" in fields:
        output["weight"] = _to_number(fields["weight"], "weight")
    if "value" in fields:
        output["value"] = _to_number(fields["value"], "value")
    if "carried_by" in fields:
        output["carried_by"] = _to_carrier(fields["carried_by"])
    if "description" in fields:
        output["description"] = str(fields["description"] or "")
    return output


# ---------------------------------------------------------------------------
# Records.


@dataclass(frozen=True, slots=True)
class InventoryItem:
    """A single line on the sheet; ``weight`` and ``value`` are per unit."""

    id: str
    name: str
    quantity: int = 1
    weight: float = 0
    value: float = 0
    carried_by: str | None = None
    description: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.id, str):
            raise ValidationError("item id must be a string")
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValidationError("item name is required")
        if not isinstance(self.quantity, int) or isinstance(self.quantity, bool):
            raise ValidationError("item quantity must be a whole number")
        if self.quantity < 0:
            raise ValidationError("item quantity cannot be negative")
        for name in ("weight", "value"):
            num = getattr(self, name)
            if not _is_number(num):
                raise ValidationError(f"item {name} must be a number")
            try:
                finite = math.isfinite(num)
            except OverflowError:
                finite = False
            if not finite:
                raise ValidationError(f"item {name} must be finite")
            if num < 0:
                raise ValidationError(f"item {name} cannot be negative")
        if self.carried_by is not None and not isinstance(self.carried_by, str):
            raise ValidationError("item carriedBy must be a member name")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "InventoryItem":
        if not isinstance(data, Mapping):
            raise ValidationError("item must be an object")
        fields = coerce_item_fields(data, strict=False)
        fields.setdefault("id", "")
        if "name" not in fields:
            raise ValidationError("item name is required")
        return cls(**fields)

    def to_dict(self) -> dict[str, Any]:
        return {
            "_id": self.id,
            "name": self.name,
            "quantity": self.quantity,
            "weight": self.weight,
            "value": self.value,
            "carriedBy": self.carried_by,
            "description": self.description,
        }

    def merged(self, patch: Mapping[str, Any]) -> "InventoryItem":
        """Return a copy with ``patch`` (item fields, wire or attribute names) applied."""

        fields = coerce_item_fields(patch)
        if "id" in fields and fields["id"] != self.id:
            raise ValidationError("item id cannot be changed")
        fields.pop("id", None)
        return replace(self, **fields)


@dataclass(frozen=True, slots=True)
class BlockRefetch:
    """Window during which incoming snapshots are ignored.

    The window opens at ``from_time`` and lasts ``for_ms`` milliseconds.
    """

    for_ms: int = 0
    from_time: datetime = field(default_factory=utc_now)

    @property
    def until(self) -> datetime:
        return self.from_time + timedelta(milliseconds=self.for_ms)

    def active(self, now: datetime) -> bool:
        until = self.until
        if until.tzinfo is None:
            until = until.replace(tzinfo=timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return now < until

    def to_dict(self) -> dict[str, Any]:
        return {"for": self.for_ms, "from": self.from_time.isoformat()}


def validate_members(members: Iterable[Any]) -> tuple[str, ...]:
    """Return ``members`` as a tuple, rejecting blanks and duplicates."""

    if not isinstance(members, (list, tuple)):
        raise ValidationError("members must be a list of names")
    output: list[str] = []
    seen: set[str] = set()
    for member in members:
        if not isinstance(member, str) or not member.strip():
            raise ValidationError("member names must be non-empty strings")
        if member in seen:
            raise ValidationError(f"duplicate member '{member}'")
        seen.add(member)
        output.append(member)
    return tuple(output)


def validate_items(items: Iterable[InventoryItem]) -> tuple[InventoryItem, ...]:
    """Return ``items`` as a tuple, rejecting duplicate ids."""

    if not isinstance(items, (list, tuple)):
        raise ValidationError("items must be a list")
    output = tuple(items)
    seen: set[str] = set()
    for item in output:
        if not isinstance(item, InventoryItem):
            raise ValidationError("items must be InventoryItem records")
        if item.id in seen:
            raise ValidationError(f"duplicate item id '{item.id}'")
        seen.add(item.id)
    return output


@dataclass(frozen=True, slots=True)
class SheetSnapshot:
    """The server's view of a sheet as returned by a refetch."""

    name: str
    members: tuple[str, ...] = ()
    items: tuple[InventoryItem, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SheetSnapshot":
        if not isinstance(data, Mapping):
            raise ValidationError("sheet snapshot must be an object")
        raw_items = data.get("items")
        raw_members = data.get("members")
        raw_items = [] if raw_items is None else raw_items
        raw_members = [] if raw_members is None else raw_members
        if not isinstance(raw_items, (list, tuple)):
            raise ValidationError("sheet items must be a list")
        if not isinstance(raw_members, (list, tuple)):
            raise ValidationError("sheet members must be a list")
        return cls(
            name=str(data.get("name") or ""),
            members=validate_members(raw_members),
            items=validate_items([InventoryItem.from_dict(item) for item in raw_items]),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "members": list(self.members),
            "items": [item.to_dict() for item in self.items],
        }


@dataclass(frozen=True, slots=True)
class InventorySheetState:
    """Client-side state for one sheet page."""

    id: str
    name: str
    members: tuple[str, ...] = ()
    items: tuple[InventoryItem, ...] = ()
    block_refetch: BlockRefetch = field(default_factory=lambda: BlockRefetch(0))

    @classmethod
    def create(
        cls,
        sheet_id: str,
        name: str,
        members: Iterable[str] = (),
        items: Iterable[InventoryItem] = (),
        *,
        now: datetime | None = None,
    ) -> "InventorySheetState":
        """Build the initial state for a freshly loaded sheet."""

        return cls(
            id=sheet_id,
            name=name,
            members=validate_members(tuple(members)),
            items=validate_items(tuple(items)),
            block_refetch=BlockRefetch(0, now or utc_now()),
        )

    @classmethod
    def from_dict(
        cls, data: Mapping[str, Any], *, now: datetime | None = None
    ) -> "InventorySheetState":
        if not isinstance(data, Mapping):
            raise ValidationError("sheet must be an object")
        sheet_id = str(data.get("_id") or data.get("id") or "").strip()
        if not sheet_id:
            raise ValidationError("sheet id is required")
        snapshot = SheetSnapshot.from_dict(data)
        return cls.create(
            sheet_id, snapshot.name, snapshot.members, snapshot.items, now=now
        )

    def to_dict(self) -> dict[str, Any]:
        data = self.snapshot().to_dict()
        data["_id"] = self.id
        data["blockRefetch"] = self.block_refetch.to_dict()
        return data

    def snapshot(self) -> SheetSnapshot:
        return SheetSnapshot(name=self.name, members=self.members, items=self.items)

    def matches(self, snapshot: SheetSnapshot) -> bool:
        """Return ``True`` when ``snapshot`` holds exactly the current fields."""

        return (
            self.items == snapshot.items
            and self.name == snapshot.name
            and self.members == snapshot.members
        )

    def find_item(self, item_id: str) -> InventoryItem | None:
        for item in self.items:
            if item.id == item_id:
                return item
        return None
