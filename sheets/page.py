"""Controller for an open sheet.

:func:`load_sheet_page` fetches the sheet, builds its :class:`SheetStore`
and returns a :class:`SheetPage` that also owns the refetch poller, the
page-level UI state (open dialog, search text, carrier filters) and the
"recently viewed" bookkeeping.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from pathlib import Path
from typing import Callable, Optional

from config import sheets as sheets_cfg

from .client import fetch_sheet_state
from .filters import ItemFilter, filter_items
from .models import InventoryItem, InventorySheetState
from .poller import Fetcher, SheetPoller
from .remembered import remember_sheet
from .store import SheetStore
from .totals import MemberTotal, member_totals, total_value, total_weight

__all__ = [
    "DIALOGS",
    "SheetPage",
    "SheetPageState",
    "load_sheet_page",
    "sheet_link",
]

logger = logging.getLogger(__name__)

DIALOGS = ("welcome", "sheetOptions", "item.new", "item.edit", "filter")


def sheet_link(sheet_id: str, absolute: bool = False) -> str:
    path = f"/sheets/{sheet_id}"
    return f"{sheets_cfg.site_url()}{path}" if absolute else path


@dataclass
class SheetPageState:
    """Which dialog is open and which filters are applied."""

    dialog: Optional[str] = None
    dialog_item: Optional[InventoryItem] = None
    item_filter: ItemFilter = field(default_factory=ItemFilter)

    def open_dialog(self, name: str, item: InventoryItem | None = None) -> None:
        if name not in DIALOGS:
            raise ValueError(f"unknown dialog: {name}")
        self.dialog = name
        self.dialog_item = item

    def close_dialog(self) -> None:
        self.dialog = None
        self.dialog_item = None

    def set_search(self, text: str) -> None:
        self.item_filter = self.item_filter.with_search(text)

    def toggle_carrier(self, name: str) -> None:
        self.item_filter = self.item_filter.toggle_carrier(name)

    def reset_filters(self) -> None:
        self.item_filter = ItemFilter()

    def visible_items(self, state: InventorySheetState) -> list[InventoryItem]:
        return filter_items(state.items, state.members, self.item_filter)


class SheetPage:
    """Wire a store to its poller, UI state and the remembered-sheets list."""

    def __init__(
        self,
        store: SheetStore,
        *,
        fetch: Optional[Fetcher] = None,
        interval_ms: int | None = None,
        is_new: bool = False,
        remembered_path: Path | None = None,
    ) -> None:
        self.store = store
        self.poller = SheetPoller(store, fetch, interval_ms=interval_ms)
        self.ui = SheetPageState()
        self.remembered_path = remembered_path
        self._remembered_key: tuple | None = None
        if is_new:
            self.ui.open_dialog("welcome")
        self._remember(store.state)
        self._unsubscribe: Callable[[], None] = store.subscribe(self._remember)

    @property
    def state(self) -> InventorySheetState:
        return self.store.state

    @property
    def link(self) -> str:
        return sheet_link(self.state.id, absolute=True)

    def _remember(self, state: InventorySheetState) -> None:
        key = (state.id, state.name, state.members)
        if key == self._remembered_key:
            return
        self._remembered_key = key
        try:
            remember_sheet(state.id, state.name, state.members, path=self.remembered_path)
        except OSError as exc:
            logger.warning("Could not remember sheet %s: %s", state.id, exc)

    def visible_items(self) -> list[InventoryItem]:
        return self.ui.visible_items(self.state)

    def totals(self) -> tuple[float, float]:
        """Return ``(total_weight, total_value)`` over all items."""

        items = self.state.items
        return total_weight(items), total_value(items)

    def member_totals(self) -> list[MemberTotal]:
        return member_totals(self.state.items, self.state.members)

    def start(self) -> None:
        self.poller.start()

    async def close(self) -> None:
        await self.poller.stop()
        self._unsubscribe()
        self.store.close()


def load_sheet_page(
    sheet_id: str,
    *,
    is_new: bool = False,
    fetch_state: Callable[[str], InventorySheetState] = fetch_sheet_state,
    fetch: Optional[Fetcher] = None,
    interval_ms: int | None = None,
    suppress_ms: int | None = None,
    remembered_path: Path | None = None,
) -> SheetPage:
    """Fetch ``sheet_id`` and return a ready (not yet polling) page."""

    state = fetch_state(sheet_id)
    store = SheetStore(state, suppress_ms=suppress_ms)
    return SheetPage(
        store,
        fetch=fetch,
        interval_ms=interval_ms,
        is_new=is_new,
        remembered_path=remembered_path,
    )
