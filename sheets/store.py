"""Owner of the live sheet state.

A :class:`SheetStore` is handed explicitly to whatever needs to read the
sheet or change it (views, the poller, the CLI); nothing reaches it through
module globals.  All changes go through :meth:`SheetStore.dispatch`, which
runs the reducer under a lock so actions apply strictly in dispatch order.

Every local edit that changes the sheet is followed, in the same critical
section, by a ``suppress_refetch`` for the configured window.  Snapshots
fetched while the server may not have stored that edit yet are then
ignored instead of reverting it.
"""

from __future__ import annotations

from datetime import datetime
import logging
import threading
from typing import Any, Callable, Mapping

from config import sheets as sheets_cfg

from .actions import LOCAL_ACTIONS, Action, SuppressRefetch, parse_action
from .errors import SheetError
from .models import InventorySheetState, utc_now
from .reducer import ReducerResult, reduce

__all__ = ["Listener", "SheetStore"]

logger = logging.getLogger(__name__)

Listener = Callable[[InventorySheetState], None]


class SheetStore:
    """Serialise reducer calls for one sheet and notify subscribers."""

    def __init__(
        self,
        initial: InventorySheetState,
        *,
        suppress_ms: int | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._state = initial
        self.suppress_ms = sheets_cfg.suppress_refetch() if suppress_ms is None else suppress_ms
        self.clock = clock
        self._lock = threading.Lock()
        self._listeners: list[Listener] = []
        self._closed = False

    @property
    def state(self) -> InventorySheetState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` with every new state; returns an unsubscribe handle."""

        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def dispatch(self, action: Action | Mapping[str, Any]) -> ReducerResult:
        """Apply ``action`` and return the reducer outcome."""

        with self._lock:
            previous = self._state
            if self._closed:
                logger.debug("Dropping %r dispatched to closed store", action)
                return ReducerResult(state=previous, applied=False)
            if isinstance(action, Mapping):
                try:
                    action = parse_action(action)
                except SheetError as exc:
                    logger.warning("Rejected action for sheet %s: %s", previous.id, exc)
                    return ReducerResult(state=previous, applied=False, error=exc)

            now = self.clock()
            result = reduce(previous, action, now=now)
            if result.error is not None:
                logger.warning(
                    "Rejected %s for sheet %s: %s",
                    getattr(action, "type", type(action).__name__),
                    previous.id,
                    result.error,
                )
                return result
            if result.applied and isinstance(action, LOCAL_ACTIONS) and self.suppress_ms > 0:
                result = ReducerResult(
                    state=reduce(result.state, SuppressRefetch(self.suppress_ms), now=now).state
                )
            self._state = result.state
            listeners = list(self._listeners) if result.applied else []

        for listener in listeners:
            try:
                listener(result.state)
            except Exception:
                logger.exception("Sheet listener %r failed", listener)
        return result

    def close(self) -> None:
        """Stop accepting actions and drop all subscribers."""

        with self._lock:
            self._closed = True
            self._listeners.clear()
