"""Search and carrier filtering for the sheet item list."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Iterable, Sequence

from .models import InventoryItem
from .totals import carrier_label

__all__ = ["ItemFilter", "filter_items"]


@dataclass(frozen=True, slots=True)
class ItemFilter:
    """Active filters.

    ``search`` is matched case-insensitively against item names and
    descriptions.  ``carriers`` limits the list to items carried by the named
    members; ``"Nobody"`` selects unassigned items.  Empty values disable the
    corresponding filter.
    """

    search: str = ""
    carriers: frozenset[str] = field(default_factory=frozenset)

    @property
    def active(self) -> bool:
        return bool(self.search.strip() or self.carriers)

    def with_search(self, text: str) -> "ItemFilter":
        return replace(self, search=text)

    def toggle_carrier(self, name: str) -> "ItemFilter":
        carriers = set(self.carriers)
        if name in carriers:
            carriers.remove(name)
        else:
            carriers.add(name)
        return replace(self, carriers=frozenset(carriers))


def _matches_search(item: InventoryItem, needle: str) -> bool:
    return needle in item.name.casefold() or needle in item.description.casefold()


def filter_items(
    items: Iterable[InventoryItem],
    members: Sequence[str],
    item_filter: ItemFilter | None = None,
) -> list[InventoryItem]:
    """Return the items passing ``item_filter`` in their original order."""

    item_filter = item_filter or ItemFilter()
    needle = item_filter.search.strip().casefold()
    output: list[InventoryItem] = []
    for item in items:
        if needle and not _matches_search(item, needle):
            continue
        if item_filter.carriers and carrier_label(item, members) not in item_filter.carriers:
            continue
        output.append(item)
    return output
