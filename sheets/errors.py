"""Exceptions shared by the sheet state machine and its collaborators."""

from __future__ import annotations

__all__ = [
    "SheetError",
    "InvalidAction",
    "ValidationError",
    "SheetFetchError",
]


class SheetError(RuntimeError):
    """Base error for inventory sheet handling."""


class InvalidAction(SheetError):
    """Raised for actions with an unknown tag or missing/mistyped fields."""


class ValidationError(SheetError):
    """Raised when a change would leave the sheet structurally invalid."""


class SheetFetchError(SheetError):
    """Raised when a sheet snapshot cannot be retrieved from the server."""
