"""Framework-agnostic ledger service for the budget tracker."""

from __future__ import annotations

import logging
import threading
import time
from datetime import date
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

import simplejson

from .exceptions import (
    PersistenceError,
    PersistenceReadError,
    PersistenceWriteError,
    ValidationError,
)
from .models import ZERO, CategoryTotals, Entry, EntryType, Statistics, Totals
from .storage import KeyValueStore
from .validators import ValidationResult, validate_candidate

LOGGER = logging.getLogger(__name__)

STORAGE_KEY = "budget-entries"
SCHEMA_VERSION = 1
EXPORT_FILENAME_TEMPLATE = "budget-data-{date}.json"


def _millisecond_clock() -> int:
    return int(time.time() * 1000)


class LedgerStore:
    """Owns the ordered entry collection and mediates persistence.

    Every mutation re-persists the whole collection. Persistence is
    best-effort: read failures start an empty ledger and write failures keep
    the in-memory state, both logged and never raised to the caller.
    """

    def __init__(
        self,
        store: KeyValueStore,
        key: str = STORAGE_KEY,
        *,
        clock: Callable[[], int] = _millisecond_clock,
    ) -> None:
        self._store = store
        self._key = key
        self._clock = clock
        self._lock = threading.RLock()
        self._entries: List[Entry] = []
        self._last_id = 0
        self.last_persist_error: Optional[PersistenceWriteError] = None
        self.load()  # Hydrate in-memory state from persistence on construction.

    # Public API -----------------------------------------------------------
    def validate(self, payload: Mapping[str, object]) -> ValidationResult:
        return validate_candidate(payload)

    def add(self, payload: Mapping[str, object]) -> Entry:
        result = self.validate(payload)
        if not result.is_valid:
            raise ValidationError(result.errors)
        with self._lock:
            entry = Entry(id=self._next_id(), **result.cleaned)  # type: ignore[arg-type]
            self._entries.append(entry)
            LOGGER.info("Added %s entry %s (%s)", entry.type.value, entry.id, entry.category)
            self.persist(self._entries)
        return entry

    def delete(self, entry_id: int) -> None:
        with self._lock:
            remaining = [entry for entry in self._entries if entry.id != entry_id]
            if len(remaining) == len(self._entries):
                LOGGER.debug("Delete of unknown entry %s ignored", entry_id)
            else:
                LOGGER.info("Deleted entry %s", entry_id)
            self._entries = remaining
            self.persist(self._entries)

    def list(self, *, newest_first: bool = False) -> List[Entry]:
        with self._lock:
            entries = list(self._entries)
        if newest_first:
            entries.reverse()
        return entries

    def compute_totals(self) -> Totals:
        income = expense = ZERO
        for entry in self.list():
            if entry.type is EntryType.INCOME:
                income += entry.amount
            else:
                expense += entry.amount
        return Totals(income=income, expense=expense)

    def compute_category_breakdown(self) -> Dict[str, CategoryTotals]:
        """Group entries by exact category name, in order of first appearance."""
        breakdown: Dict[str, CategoryTotals] = {}
        for entry in self.list():
            breakdown.setdefault(entry.category, CategoryTotals()).add(entry)
        return breakdown

    def compute_statistics(self) -> Statistics:
        entries = self.list()
        totals = self.compute_totals()
        count = len(entries)
        average = (totals.income + totals.expense) / count if count else ZERO
        savings_rate = totals.balance / totals.income * 100 if totals.income > 0 else ZERO
        return Statistics(
            transaction_count=count,
            category_count=len({entry.category for entry in entries}),
            average_transaction=average,
            savings_rate=savings_rate,
        )

    def load(self) -> List[Entry]:
        """Replace the in-memory entries with the persisted snapshot."""
        with self._lock:
            try:
                entries = self._read_snapshot()
            except PersistenceReadError as exc:
                LOGGER.warning("No usable ledger data under '%s', starting empty: %s", self._key, exc)
                entries = []
            self._entries = entries
            self._last_id = max([self._last_id] + [entry.id for entry in entries])
            LOGGER.debug("Loaded %d entries from '%s'", len(entries), self._key)
            return list(entries)

    def persist(self, entries: Optional[Sequence[Entry]] = None) -> None:
        """Write the full entry sequence under the ledger key, overwriting prior data."""
        snapshot = list(self._entries if entries is None else entries)
        envelope = {
            "schemaVersion": SCHEMA_VERSION,
            "entries": [entry.to_dict() for entry in snapshot],
        }
        try:
            self._store.set(self._key, simplejson.dumps(envelope, use_decimal=True))
        except (PersistenceError, OSError) as exc:
            error = PersistenceWriteError(
                f"Unable to save {len(snapshot)} entries under '{self._key}'"
            )
            error.__cause__ = exc
            self.last_persist_error = error
            LOGGER.error("%s: %s", error, exc)
            return
        self.last_persist_error = None
        LOGGER.debug("Persisted %d entries under '%s'", len(snapshot), self._key)

    def export_snapshot(self) -> bytes:
        """Serialise the current entries as a pretty-printed UTF-8 JSON array."""
        records = [entry.to_dict() for entry in self.list()]
        return simplejson.dumps(
            records, indent=2, ensure_ascii=False, use_decimal=True
        ).encode("utf-8")

    @staticmethod
    def export_filename(today: Optional[date] = None) -> str:
        today = today or date.today()
        return EXPORT_FILENAME_TEMPLATE.format(date=today.isoformat())

    # Internal helpers -----------------------------------------------------
    def _next_id(self) -> int:
        # Strictly increasing even when two entries land in the same millisecond.
        candidate = max(self._clock(), self._last_id + 1)
        self._last_id = candidate
        return candidate

    def _read_snapshot(self) -> List[Entry]:
        try:
            raw = self._store.get(self._key)
        except (PersistenceError, OSError) as exc:
            raise PersistenceReadError(f"Unable to read '{self._key}': {exc}") from exc
        if raw is None or not raw.strip():
            return []

        try:
            payload = simplejson.loads(raw, use_decimal=True)
        except ValueError as exc:
            raise PersistenceReadError("Stored ledger data is not valid JSON") from exc

        records = _unwrap_envelope(payload)
        try:
            entries = [Entry.from_dict(record) for record in records]
        except (KeyError, TypeError, ValueError, ArithmeticError) as exc:
            raise PersistenceReadError(f"Stored entry is malformed: {exc!r}") from exc

        if len({entry.id for entry in entries}) != len(entries):
            raise PersistenceReadError("Stored entries contain duplicate ids")
        return entries


def _unwrap_envelope(payload: Any) -> List[Any]:
    # Bare arrays predate the versioned envelope.
    if isinstance(payload, list):
        return payload
    if not isinstance(payload, dict):
        raise PersistenceReadError("Expected a list or an envelope object")
    version = payload.get("schemaVersion")
    if version != SCHEMA_VERSION:
        raise PersistenceReadError(f"Unsupported schemaVersion {version!r}")
    records = payload.get("entries")
    if not isinstance(records, list):
        raise PersistenceReadError("Envelope is missing its entries list")
    return records
