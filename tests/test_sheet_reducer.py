from datetime import datetime, timedelta, timezone
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import pytest

from sheets import reducer
from sheets.actions import (
    ItemAdd,
    ItemEdit,
    ItemRemove,
    MembersSet,
    NameSet,
    SheetUpdate,
    SuppressRefetch,
)
from sheets.errors import InvalidAction, ValidationError
from sheets.models import BlockRefetch, InventoryItem, InventorySheetState, SheetSnapshot
from sheets.totals import total_value, total_weight

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def at(ms: int) -> datetime:
    return T0 + timedelta(milliseconds=ms)


def sword(**overrides) -> InventoryItem:
    fields = {"id": "1", "name": "Sword", "quantity": 1, "weight": 3, "value": 50}
    fields.update(overrides)
    return InventoryItem(**fields)


@pytest.fixture()
def loot() -> InventorySheetState:
    return InventorySheetState.create("sheet-1", "Loot", now=T0)


def test_item_add_appends(loot: InventorySheetState) -> None:
    state = reducer.apply(loot, ItemAdd(sword()), now=T0)
    assert [item.name for item in state.items] == ["Sword"]
    assert state.items[0].id == "1"
    assert loot.items == ()


def test_item_add_reassigns_colliding_id(loot: InventorySheetState) -> None:
    state = reducer.apply(loot, ItemAdd(sword(id="x")), now=T0)
    state = reducer.apply(state, ItemAdd(sword(id="x", name="Dagger")), now=T0)

    assert len(state.items) == 2
    ids = {item.id for item in state.items}
    assert len(ids) == 2
    assert "x" in ids
    assert {item.name for item in state.items} == {"Sword", "Dagger"}


def test_item_add_assigns_id_when_blank(loot: InventorySheetState) -> None:
    state = reducer.apply(loot, ItemAdd(sword(id="")), now=T0)
    assert state.items[0].id


def test_item_edit_merges_patch(loot: InventorySheetState) -> None:
    state = reducer.apply(loot, ItemAdd(sword()), now=T0)
    result = reducer.reduce(state, ItemEdit("1", {"quantity": 4, "carriedBy": "Alice"}), now=T0)

    assert result.ok and result.applied
    item = result.state.items[0]
    assert item.quantity == 4
    assert item.carried_by == "Alice"
    assert item.name == "Sword"


def test_item_edit_missing_id_is_noop(loot: InventorySheetState) -> None:
    state = reducer.apply(loot, ItemAdd(sword()), now=T0)
    result = reducer.reduce(state, ItemEdit("missing", {"name": "Axe"}), now=T0)

    assert result.state is state
    assert result.state == state
    assert not result.applied
    assert result.error is None


def test_item_edit_rejects_invalid_patch(loot: InventorySheetState) -> None:
    state = reducer.apply(loot, ItemAdd(sword()), now=T0)

    negative = reducer.reduce(state, ItemEdit("1", {"quantity": -2}), now=T0)
    assert isinstance(negative.error, ValidationError)
    assert negative.state is state

    unknown = reducer.reduce(state, ItemEdit("1", {"colour": "red"}), now=T0)
    assert isinstance(unknown.error, ValidationError)

    rename_id = reducer.reduce(state, ItemEdit("1", {"_id": "2"}), now=T0)
    assert isinstance(rename_id.error, ValidationError)
    assert rename_id.state.items[0].id == "1"


def test_item_remove(loot: InventorySheetState) -> None:
    state = reducer.apply(loot, ItemAdd(sword()), now=T0)
    assert reducer.apply(state, ItemRemove("1"), now=T0).items == ()

    result = reducer.reduce(state, ItemRemove("nope"), now=T0)
    assert result.state is state
    assert not result.applied


def test_members_set_leaves_dangling_carrier(loot: InventorySheetState) -> None:
    state = reducer.apply(loot, MembersSet(("Alice", "Bob")), now=T0)
    state = reducer.apply(state, ItemAdd(sword(carried_by="Bob")), now=T0)

    state = reducer.apply(state, MembersSet(("Alice",)), now=T0)

    assert state.members == ("Alice",)
    assert state.items[0].carried_by == "Bob"


def test_members_set_rejects_duplicates(loot: InventorySheetState) -> None:
    result = reducer.reduce(loot, MembersSet(("Alice", "Alice")), now=T0)
    assert isinstance(result.error, ValidationError)
    assert result.state is loot


def test_name_set(loot: InventorySheetState) -> None:
    assert reducer.apply(loot, NameSet("Dragon Hoard"), now=T0).name == "Dragon Hoard"
    assert reducer.reduce(loot, NameSet("Loot"), now=T0).state is loot


def test_suppress_refetch_sets_window(loot: InventorySheetState) -> None:
    state = reducer.apply(loot, SuppressRefetch(5000), now=at(100))
    assert state.block_refetch == BlockRefetch(5000, at(100))

    result = reducer.reduce(loot, SuppressRefetch(-1), now=T0)
    assert isinstance(result.error, ValidationError)


def test_sheet_update_with_equal_snapshot_keeps_state(loot: InventorySheetState) -> None:
    state = reducer.apply(loot, ItemAdd(sword()), now=T0)
    result = reducer.reduce(state, SheetUpdate(state.snapshot()), now=at(60_000))

    assert result.state is state
    assert not result.applied


def test_sheet_update_honours_suppression_window(loot: InventorySheetState) -> None:
    state = reducer.apply(loot, SuppressRefetch(5000), now=T0)
    remote = SheetSnapshot(name="Remote", members=("Cara",), items=(sword(id="r"),))

    early = reducer.apply(state, SheetUpdate(remote), now=at(2000))
    assert early is state
    assert early.name == "Loot"

    late = reducer.apply(state, SheetUpdate(remote), now=at(6000))
    assert late.name == "Remote"
    assert late.members == ("Cara",)
    assert [item.id for item in late.items] == ["r"]
    assert late.id == "sheet-1"
    assert not late.block_refetch.active(at(6000))


def test_sheet_update_rejects_duplicate_ids(loot: InventorySheetState) -> None:
    bad = SheetSnapshot(name="Bad", items=(sword(), sword()))
    result = reducer.reduce(loot, SheetUpdate(bad), now=T0)

    assert isinstance(result.error, ValidationError)
    assert result.state is loot


def test_unknown_and_malformed_actions_are_reported(loot: InventorySheetState) -> None:
    unknown = reducer.reduce(loot, {"type": "item_explode"}, now=T0)
    assert isinstance(unknown.error, InvalidAction)
    assert unknown.state is loot

    missing = reducer.reduce(loot, {"type": "item_remove"}, now=T0)
    assert isinstance(missing.error, InvalidAction)

    not_an_action = reducer.reduce(loot, object(), now=T0)
    assert isinstance(not_an_action.error, InvalidAction)


def test_mapping_actions_are_accepted(loot: InventorySheetState) -> None:
    state = reducer.apply(
        loot,
        {"type": "item_add", "item": {"_id": "1", "name": "Rope", "quantity": 2, "weight": 1}},
        now=T0,
    )
    assert state.items[0].name == "Rope"
    assert state.items[0].quantity == 2


def test_every_action_type_has_a_handler() -> None:
    from sheets.actions import ACTION_TYPES

    assert set(ACTION_TYPES) == set(reducer._HANDLERS)


def test_totals_are_derived() -> None:
    items = [
        InventoryItem(id="a", name="Rations", weight=2, quantity=3, value=5),
        InventoryItem(id="b", name="Lantern", weight=1, quantity=1, value=10),
    ]
    assert total_weight(items) == 7
    assert total_value(items) == 25


def test_end_to_end_suppression_scenario(loot: InventorySheetState) -> None:
    state = reducer.apply(loot, ItemAdd(sword()), now=T0)
    state = reducer.apply(state, SuppressRefetch(5000), now=T0)
    assert len(state.items) == 1

    empty = SheetSnapshot(name="Loot", members=(), items=())
    state = reducer.apply(state, SheetUpdate(empty), now=at(1000))
    assert [item.name for item in state.items] == ["Sword"]

    state = reducer.apply(state, SheetUpdate(empty), now=at(5001))
    assert state.items == ()


def test_snapshot_applies_exactly_when_window_ends(loot: InventorySheetState) -> None:
    state = reducer.apply(loot, SuppressRefetch(5000), now=T0)
    remote = SheetSnapshot(name="Remote")

    assert reducer.apply(state, SheetUpdate(remote), now=at(4999)) is state
    assert reducer.apply(state, SheetUpdate(remote), now=at(5000)).name == "Remote"


@pytest.mark.parametrize(
    "data",
    [
        {"name": "x", "items": 5},
        {"name": "x", "items": True},
        {"name": "x", "items": {"_id": "1", "name": "Rope"}},
        {"name": "x", "members": 7},
        {"name": "x", "members": "Alice"},
    ],
)
def test_malformed_snapshot_containers_are_rejected(loot: InventorySheetState, data) -> None:
    result = reducer.reduce(loot, {"type": "sheet_update", "data": data}, now=at(60_000))

    assert isinstance(result.error, (InvalidAction, ValidationError))
    assert result.state is loot
    assert not result.applied


def test_out_of_range_weight_is_rejected(loot: InventorySheetState) -> None:
    payload = {"type": "item_add", "item": {"name": "Anvil", "weight": 10**400}}
    result = reducer.reduce(loot, payload, now=T0)

    assert isinstance(result.error, ValidationError)
    assert result.state is loot

    with pytest.raises(ValidationError):
        InventoryItem(id="a", name="Anvil", value=10**400)


def test_non_list_members_set_is_rejected(loot: InventorySheetState) -> None:
    result = reducer.reduce(loot, MembersSet(7), now=T0)

    assert isinstance(result.error, ValidationError)
    assert result.state is loot


def test_naive_now_is_read_as_utc(loot: InventorySheetState) -> None:
    state = reducer.apply(loot, SuppressRefetch(5000), now=T0)
    naive_t0 = T0.replace(tzinfo=None)

    during = reducer.reduce(state, {"type": "sheet_update", "data": {"name": "y"}}, now=naive_t0)
    assert during.ok
    assert during.state is state

    after = reducer.reduce(
        state,
        {"type": "sheet_update", "data": {"name": "y"}},
        now=naive_t0 + timedelta(seconds=6),
    )
    assert after.ok
    assert after.state.name == "y"
