"""State transitions for a sheet page.

``reduce(state, action) -> ReducerResult`` is a pure function: it never
mutates ``state`` and never raises.  Rejected actions come back as a result
carrying the unchanged state plus the error, so callers can surface the
problem without unwinding through the reducer.  :func:`apply` is the plain
``(state, action) -> state`` form.

Two writers feed the same state: the user (immediate) and the refetch poller
(lagged).  ``suppress_refetch`` opens a window in which incoming snapshots
are ignored so a local edit is not reverted by a snapshot taken before the
server saw it.  Once the window has passed the server wins again.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
import logging
from typing import Any, Callable, Mapping
import uuid

from .actions import (
    ACTION_TYPES,
    Action,
    ItemAdd,
    ItemEdit,
    ItemRemove,
    MembersSet,
    NameSet,
    SheetUpdate,
    SuppressRefetch,
    parse_action,
)
from .errors import InvalidAction, SheetError, ValidationError
from .models import (
    BlockRefetch,
    InventoryItem,
    InventorySheetState,
    SheetSnapshot,
    utc_now,
    validate_items,
    validate_members,
)

__all__ = ["ReducerResult", "apply", "reduce", "new_item_id"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ReducerResult:
    """Outcome of one transition.

    ``applied`` is ``False`` when the state object is returned unchanged,
    either because the action was a no-op or because it was rejected
    (``error`` is then set).
    """

    state: InventorySheetState
    applied: bool = True
    error: SheetError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def new_item_id(taken: set[str] | frozenset[str] = frozenset()) -> str:
    """Return a fresh item id not present in ``taken``."""

    while True:
        candidate = uuid.uuid4().hex
        if candidate not in taken:
            return candidate


# ---------------------------------------------------------------------------
# Handlers.  Each returns the new state, or the same object for a no-op, and
# raises SheetError subclasses to reject the action.


def _item_add(state: InventorySheetState, action: ItemAdd, now: datetime) -> InventorySheetState:
    item = action.item
    if not isinstance(item, InventoryItem):
        raise InvalidAction("item_add expects an InventoryItem")
    taken = {existing.id for existing in state.items}
    if not item.id or item.id in taken:
        fresh = new_item_id(taken)
        logger.debug("Item id %r already taken, assigned %s", item.id, fresh)
        item = replace(item, id=fresh)
    return replace(state, items=state.items + (item,))


def _item_edit(state: InventorySheetState, action: ItemEdit, now: datetime) -> InventorySheetState:
    if not isinstance(action.patch, Mapping):
        raise InvalidAction("item_edit patch must be a mapping")
    current = state.find_item(action.id)
    if current is None:
        return state
    updated = current.merged(action.patch)
    if updated == current:
        return state
    items = tuple(updated if item.id == action.id else item for item in state.items)
    return replace(state, items=items)


def _item_remove(state: InventorySheetState, action: ItemRemove, now: datetime) -> InventorySheetState:
    if state.find_item(action.id) is None:
        return state
    return replace(state, items=tuple(item for item in state.items if item.id != action.id))


def _members_set(state: InventorySheetState, action: MembersSet, now: datetime) -> InventorySheetState:
    members = validate_members(action.members)
    if members == state.members:
        return state
    # carried_by may now dangle; views resolve it to "Nobody".
    return replace(state, members=members)


def _name_set(state: InventorySheetState, action: NameSet, now: datetime) -> InventorySheetState:
    if not isinstance(action.name, str):
        raise InvalidAction("name_set name must be a string")
    if action.name == state.name:
        return state
    return replace(state, name=action.name)


def _sheet_update(state: InventorySheetState, action: SheetUpdate, now: datetime) -> InventorySheetState:
    if state.block_refetch.active(now):
        logger.debug(
            "Ignoring snapshot for sheet %s until %s",
            state.id,
            state.block_refetch.until.isoformat(),
        )
        return state
    snapshot = action.snapshot
    if not isinstance(snapshot, SheetSnapshot):
        raise InvalidAction("sheet_update expects a SheetSnapshot")
    if state.matches(snapshot):
        return state
    return replace(
        state,
        name=snapshot.name,
        members=validate_members(snapshot.members),
        items=validate_items(snapshot.items),
        block_refetch=BlockRefetch(0, now),
    )


def _suppress_refetch(state: InventorySheetState, action: SuppressRefetch, now: datetime) -> InventorySheetState:
    duration = action.duration_ms
    if not isinstance(duration, int) or isinstance(duration, bool):
        raise InvalidAction("suppress_refetch duration must be whole milliseconds")
    if duration < 0:
        raise ValidationError("suppress_refetch duration cannot be negative")
    return replace(state, block_refetch=BlockRefetch(duration, now))


_Handler = Callable[[InventorySheetState, Any, datetime], InventorySheetState]

_HANDLERS: dict[type, _Handler] = {
    ItemAdd: _item_add,
    ItemEdit: _item_edit,
    ItemRemove: _item_remove,
    MembersSet: _members_set,
    NameSet: _name_set,
    SheetUpdate: _sheet_update,
    SuppressRefetch: _suppress_refetch,
}

_missing = [cls.__name__ for cls in ACTION_TYPES if cls not in _HANDLERS]
if _missing:  # pragma: no cover - guards new action types
    raise RuntimeError(f"no reducer handler for: {', '.join(_missing)}")
del _missing


# ---------------------------------------------------------------------------
# Public API.


def _aware(now: datetime | None) -> datetime:
    """Return ``now`` as an aware datetime; naive values are taken as UTC."""

    if now is None:
        return utc_now()
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now


def reduce(
    state: InventorySheetState,
    action: Action | Mapping[str, Any],
    *,
    now: datetime | None = None,
) -> ReducerResult:
    """Apply ``action`` to ``state`` and report the outcome.

    ``action`` may be an action record or a tagged mapping accepted by
    :func:`sheets.actions.parse_action`.  ``now`` defaults to the current
    UTC time and only matters for the refetch window; a naive value is
    read as UTC.
    """

    try:
        if isinstance(action, Mapping):
            action = parse_action(action)
        handler = _HANDLERS.get(type(action))
        if handler is None:
            raise InvalidAction(f"unsupported action: {action!r}")
        new_state = handler(state, action, _aware(now))
    except SheetError as exc:
        return ReducerResult(state=state, applied=False, error=exc)
    except (TypeError, ValueError, OverflowError) as exc:
        logger.debug("Malformed %s payload: %s", type(action).__name__, exc)
        error = InvalidAction(f"malformed {type(action).__name__} payload: {exc}")
        return ReducerResult(state=state, applied=False, error=error)
    return ReducerResult(state=new_state, applied=new_state is not state)


def apply(
    state: InventorySheetState,
    action: Action | Mapping[str, Any],
    *,
    now: datetime | None = None,
) -> InventorySheetState:
    """Return the state after ``action``; rejected actions leave it unchanged."""

    return reduce(state, action, now=now).state
