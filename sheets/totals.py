"""Derived sheet figures.

Nothing here is stored on the state; totals are recomputed from the items on
every read.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from .models import InventoryItem

__all__ = [
    "NOBODY",
    "MemberTotal",
    "carrier_label",
    "item_value",
    "item_weight",
    "member_totals",
    "total_value",
    "total_weight",
]

# Label used for unassigned items and items carried by a former member.
NOBODY = "Nobody"


def item_weight(item: InventoryItem) -> float:
    return item.weight * item.quantity


def item_value(item: InventoryItem) -> float:
    return item.value * item.quantity


def total_weight(items: Iterable[InventoryItem]) -> float:
    return sum(item_weight(item) for item in items)


def total_value(items: Iterable[InventoryItem]) -> float:
    return sum(item_value(item) for item in items)


def carrier_label(item: InventoryItem, members: Sequence[str]) -> str:
    """Return who carries ``item``, or ``"Nobody"`` for unknown carriers."""

    if item.carried_by and item.carried_by in members:
        return item.carried_by
    return NOBODY


@dataclass(frozen=True, slots=True)
class MemberTotal:
    member: str
    weight: float = 0
    value: float = 0
    item_count: int = 0


def member_totals(
    items: Iterable[InventoryItem], members: Sequence[str]
) -> list[MemberTotal]:
    """Return carry totals per member in ``members`` order.

    A trailing ``"Nobody"`` row collects unassigned items as well as items
    whose carrier is no longer a member.  A member literally named
    ``"Nobody"`` shares that row.
    """

    rows: dict[str, list[float]] = {member: [0, 0, 0] for member in members}
    rows.setdefault(NOBODY, [0, 0, 0])
    for item in items:
        row = rows[carrier_label(item, members)]
        row[0] += item_weight(item)
        row[1] += item_value(item)
        row[2] += 1
    return [
        MemberTotal(member, weight, value, int(count))
        for member, (weight, value, count) in rows.items()
    ]
