"""Periodic refetch of the open sheet.

:class:`SheetPoller` wakes up every ``interval_ms``, fetches the server's
snapshot and dispatches ``sheet_update`` only when the snapshot differs
from what the store already shows.  Failed fetches are logged and simply
retried on the next tick.  Once :meth:`SheetPoller.stop` has been called (or
the store is closed) any fetch still in flight is discarded when it returns.
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from typing import Any, Awaitable, Callable, Mapping, Optional, Union

from config import sheets as sheets_cfg

from .actions import SheetUpdate
from .client import fetch_sheet
from .errors import SheetError
from .models import SheetSnapshot
from .store import SheetStore

__all__ = ["Fetcher", "SheetPoller"]

logger = logging.getLogger(__name__)

Fetcher = Callable[[str], Union[SheetSnapshot, Mapping[str, Any], Awaitable[Any]]]


class SheetPoller:
    """Keep a :class:`SheetStore` in step with the server."""

    def __init__(
        self,
        store: SheetStore,
        fetch: Optional[Fetcher] = None,
        *,
        interval_ms: int | None = None,
    ) -> None:
        self.store = store
        self.fetch = fetch or fetch_sheet
        self.interval_ms = sheets_cfg.refetch_interval() if interval_ms is None else interval_ms
        self.failures = 0
        self.last_error: Exception | None = None
        self._task: Optional[asyncio.Task[None]] = None
        self._stopped = False

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _fetch(self, sheet_id: str) -> SheetSnapshot:
        if inspect.iscoroutinefunction(self.fetch):
            result = await self.fetch(sheet_id)
        else:
            result = await asyncio.to_thread(self.fetch, sheet_id)
            if inspect.isawaitable(result):
                result = await result
        if isinstance(result, SheetSnapshot):
            return result
        if isinstance(result, Mapping):
            return SheetSnapshot.from_dict(result)
        raise SheetError(f"fetch returned {type(result).__name__}, expected a snapshot")

    async def poll_once(self) -> bool:
        """Fetch once and reconcile; return ``True`` if the sheet changed."""

        sheet_id = self.store.state.id
        try:
            snapshot = await self._fetch(sheet_id)
        except (SheetError, OSError, ValueError) as exc:
            # requests errors are OSError subclasses
            self.failures += 1
            self.last_error = exc
            logger.warning("Refetch of sheet %s failed: %s", sheet_id, exc)
            return False
        except Exception as exc:
            self.failures += 1
            self.last_error = exc
            logger.exception("Unexpected error refetching sheet %s", sheet_id)
            return False

        if self._stopped or self.store.closed:
            logger.debug("Discarding late snapshot for sheet %s", sheet_id)
            return False
        self.last_error = None
        if self.store.state.matches(snapshot):
            logger.debug("Sheet %s unchanged on server", sheet_id)
            return False

        result = self.store.dispatch(SheetUpdate(snapshot))
        if result.applied:
            logger.info("Applied server snapshot for sheet %s", sheet_id)
        return result.applied

    async def run(self) -> None:
        """Poll until stopped.  The first fetch happens one interval after start."""

        logger.info(
            "Polling sheet %s every %d ms", self.store.state.id, self.interval_ms
        )
        while not self._stopped:
            await asyncio.sleep(self.interval_ms / 1000.0)
            if self._stopped or self.store.closed:
                break
            await self.poll_once()

    def start(self) -> asyncio.Task[None]:
        """Schedule :meth:`run` on the running event loop."""

        if self.running:
            raise RuntimeError("poller already running")
        self._stopped = False
        self._task = asyncio.get_running_loop().create_task(self.run())
        return self._task

    async def stop(self) -> None:
        self._stopped = True
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        elif task is not None and not task.cancelled() and task.exception() is not None:
            exc = task.exception()
            self.last_error = exc
            logger.error("Polling of sheet %s had stopped: %s", self.store.state.id, exc)
        logger.info("Stopped polling sheet %s", self.store.state.id)
