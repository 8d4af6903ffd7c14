"""Client-side state handling for shared party inventory sheets."""

from .actions import (
    ItemAdd,
    ItemEdit,
    ItemRemove,
    MembersSet,
    NameSet,
    SheetUpdate,
    SuppressRefetch,
    parse_action,
)
from .errors import InvalidAction, SheetError, SheetFetchError, ValidationError
from .models import BlockRefetch, InventoryItem, InventorySheetState, SheetSnapshot
from .reducer import ReducerResult, apply, reduce
from .store import SheetStore
from .totals import member_totals, total_value, total_weight

__all__ = [
    "BlockRefetch",
    "InvalidAction",
    "InventoryItem",
    "InventorySheetState",
    "ItemAdd",
    "ItemEdit",
    "ItemRemove",
    "MembersSet",
    "NameSet",
    "ReducerResult",
    "SheetError",
    "SheetFetchError",
    "SheetSnapshot",
    "SheetStore",
    "SheetUpdate",
    "SuppressRefetch",
    "ValidationError",
    "apply",
    "member_totals",
    "parse_action",
    "reduce",
    "total_value",
    "total_weight",
]
