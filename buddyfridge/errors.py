"""Exceptions raised by inventory operations."""

from __future__ import annotations


class FridgeError(Exception):
    """Base class for every error the inventory core raises."""


class InvalidQuantity(FridgeError, ValueError):
    """A quantity or fraction outside its valid range."""


class InvalidOperation(FridgeError):
    """The operation does not apply to this batch in its current state."""


class NotFound(FridgeError, LookupError):
    """No available batch (or shopping entry) with the given id."""

    def __init__(self, kind: str, item_id: str) -> None:
        super().__init__(f"{kind} not found: {item_id}")
        self.kind = kind
        self.item_id = item_id


class DispatchUnavailable(FridgeError):
    """The notification dispatcher could not accept a request."""
