"""Domain-specific exceptions for the budget ledger."""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict

if TYPE_CHECKING:  # pragma: no cover
    from .validators import FieldError


class ValidationError(ValueError):
    """Raised when a candidate entry fails one or more field checks."""

    def __init__(self, errors: Dict[str, "FieldError"]) -> None:
        self.errors = dict(errors)
        summary = "; ".join(f"{field}: {error.message}" for field, error in self.errors.items())
        super().__init__(summary or "Invalid entry")


class PersistenceError(IOError):
    """Raised when a key-value store cannot complete a read or write."""


class PersistenceReadError(PersistenceError):
    """Persisted ledger data is unreadable or does not parse."""


class PersistenceWriteError(PersistenceError):
    """The ledger snapshot could not be written to the store."""
