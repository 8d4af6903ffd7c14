from __future__ import annotations

"""Follow a party inventory sheet from the terminal.

The sheet is loaded once, printed, and then reprinted whenever a refetch
brings in a newer snapshot from the server.  ``--once`` prints the sheet and
exits.
"""

import argparse
import asyncio
import logging
import sys

from sheets.errors import SheetFetchError
from sheets.page import SheetPage, load_sheet_page
from sheets.table import render_sheet

logger = logging.getLogger("sheet_watch")


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Print and follow an inventory sheet")
    parser.add_argument("sheet_id", help="Identifier of the sheet to open")
    parser.add_argument(
        "--interval",
        type=int,
        default=None,
        help="Refetch interval in milliseconds (default: SHEETS_REFETCH_INTERVAL or 3000)",
    )
    parser.add_argument(
        "--search",
        default="",
        help="Only list items whose name or description contains this text",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Print the sheet once and exit",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="Logging level (default: WARNING)",
    )
    return parser


def _print(page: SheetPage) -> None:
    print(render_sheet(page.state, page.visible_items()), flush=True)


async def _follow(page: SheetPage) -> None:
    page.store.subscribe(lambda _state: _print(page))
    page.start()
    try:
        # Runs until interrupted.
        await asyncio.Event().wait()
    finally:
        await page.close()


def main(argv: list[str] | None = None) -> int:
    parser = _build_arg_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=getattr(logging, str(args.log_level).upper(), logging.WARNING))
    try:
        page = load_sheet_page(args.sheet_id, interval_ms=args.interval)
    except SheetFetchError as exc:
        logger.error("Could not load sheet %s: %s", args.sheet_id, exc)
        return 1

    if args.search:
        page.ui.set_search(args.search)
    _print(page)
    if args.once:
        return 0
    try:
        asyncio.run(_follow(page))
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())
