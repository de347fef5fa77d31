"""Core ledger model for the budget tracker."""

from .exceptions import (
    PersistenceError,
    PersistenceReadError,
    PersistenceWriteError,
    ValidationError,
)
from .models import CategoryTotals, Entry, EntryType, Statistics, Totals, format_amount
from .services import STORAGE_KEY, LedgerStore
from .storage import JSONFileStore, KeyValueStore, MemoryStore
from .validators import ErrorCode, FieldError, ValidationResult

__all__ = [
    "CategoryTotals",
    "Entry",
    "EntryType",
    "ErrorCode",
    "FieldError",
    "JSONFileStore",
    "KeyValueStore",
    "LedgerStore",
    "MemoryStore",
    "PersistenceError",
    "PersistenceReadError",
    "PersistenceWriteError",
    "STORAGE_KEY",
    "Statistics",
    "Totals",
    "ValidationError",
    "ValidationResult",
    "format_amount",
]
