"""Plain-text rendering of a sheet for terminals and logs."""

from __future__ import annotations

from typing import Iterable, Sequence

from .models import InventoryItem, InventorySheetState
from .totals import carrier_label, item_weight, member_totals, total_value, total_weight

__all__ = ["format_number", "render_items", "render_member_totals", "render_sheet"]

ITEM_HEADERS = ("Name", "Quantity", "Weight", "Value", "Carried By")
MEMBER_HEADERS = ("Member", "Weight", "Value", "Items")


def format_number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.2f}".rstrip("0").rstrip(".")


def _grid(headers: Sequence[str], rows: list[Sequence[str]]) -> list[str]:
    widths = [len(h) for h in headers]
    for row in rows:
        widths = [max(w, len(cell)) for w, cell in zip(widths, row)]

    def line(cells: Sequence[str]) -> str:
        return "  ".join(cell.ljust(width) for cell, width in zip(cells, widths)).rstrip()

    output = [line(headers), line(["-" * w for w in widths])]
    output.extend(line(row) for row in rows)
    return output


def render_items(items: Iterable[InventoryItem], members: Sequence[str]) -> str:
    """Render the item table followed by its Total row.

    Weight is shown per line (unit weight times quantity), value per unit;
    both totals multiply by quantity.
    """

    items = list(items)
    rows: list[Sequence[str]] = [
        (
            item.name,
            str(item.quantity),
            format_number(item_weight(item)),
            format_number(item.value),
            carrier_label(item, members),
        )
        for item in items
    ]
    rows.append(
        ("Total", "", format_number(total_weight(items)), format_number(total_value(items)), "")
    )
    return "\n".join(_grid(ITEM_HEADERS, rows))


def render_member_totals(items: Iterable[InventoryItem], members: Sequence[str]) -> str:
    rows = [
        (row.member, format_number(row.weight), format_number(row.value), str(row.item_count))
        for row in member_totals(items, members)
    ]
    return "\n".join(_grid(MEMBER_HEADERS, rows))


def render_sheet(
    state: InventorySheetState, items: Iterable[InventoryItem] | None = None
) -> str:
    """Render the sheet title, item table and party member totals.

    ``items`` restricts the item table (e.g. to filtered rows); member
    totals always cover the whole sheet.
    """

    members = ", ".join(state.members) if state.members else "(no members)"
    parts = [
        state.name,
        f"Members: {members}",
        "",
        render_items(state.items if items is None else items, state.members),
        "",
        "Party Member Totals",
        render_member_totals(state.items, state.members),
    ]
    return "\n".join(parts)
