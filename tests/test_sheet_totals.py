from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sheets.filters import ItemFilter, filter_items
from sheets.models import InventoryItem
from sheets.totals import NOBODY, MemberTotal, carrier_label, member_totals, total_weight

MEMBERS = ("Alice", "Bob")

ITEMS = (
    InventoryItem(id="1", name="Longsword", quantity=1, weight=3, value=15, carried_by="Alice"),
    InventoryItem(id="2", name="Rations", quantity=5, weight=2, value=1, carried_by="Bob"),
    InventoryItem(id="3", name="Tent", quantity=1, weight=20, value=2, carried_by="Dorn"),
    InventoryItem(id="4", name="Gem", quantity=2, weight=0, value=50, description="A sword-cut ruby"),
)


def test_carrier_label_resolves_dangling_references() -> None:
    assert carrier_label(ITEMS[0], MEMBERS) == "Alice"
    assert carrier_label(ITEMS[2], MEMBERS) == NOBODY
    assert carrier_label(ITEMS[3], MEMBERS) == NOBODY


def test_member_totals() -> None:
    rows = member_totals(ITEMS, MEMBERS)

    assert rows == [
        MemberTotal("Alice", weight=3, value=15, item_count=1),
        MemberTotal("Bob", weight=10, value=5, item_count=1),
        MemberTotal(NOBODY, weight=20, value=102, item_count=2),
    ]
    assert sum(row.weight for row in rows) == total_weight(ITEMS)


def test_member_totals_without_members() -> None:
    assert member_totals([], ()) == [MemberTotal(NOBODY)]


def test_filter_by_search() -> None:
    names = [i.name for i in filter_items(ITEMS, MEMBERS, ItemFilter(search="  SWORD "))]
    assert names == ["Longsword", "Gem"]


def test_filter_by_carrier() -> None:
    item_filter = ItemFilter().toggle_carrier("Bob").toggle_carrier(NOBODY)
    names = [i.name for i in filter_items(ITEMS, MEMBERS, item_filter)]
    assert names == ["Rations", "Tent", "Gem"]

    item_filter = item_filter.toggle_carrier("Bob")
    assert [i.name for i in filter_items(ITEMS, MEMBERS, item_filter)] == ["Tent", "Gem"]


def test_empty_filter_keeps_everything() -> None:
    assert not ItemFilter().active
    assert filter_items(ITEMS, MEMBERS) == list(ITEMS)
