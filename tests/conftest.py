from __future__ import annotations

from typing import Optional

import pytest

from ledger.exceptions import PersistenceError
from ledger.services import LedgerStore
from ledger.storage import MemoryStore


class FailingStore(MemoryStore):
    """Store whose reads and/or writes can be switched to fail."""

    def __init__(self, fail_get: bool = False, fail_set: bool = False) -> None:
        super().__init__()
        self.fail_get = fail_get
        self.fail_set = fail_set

    def get(self, key: str) -> Optional[str]:
        if self.fail_get:
            raise PersistenceError("store offline")
        return super().get(key)

    def set(self, key: str, value: str) -> None:
        if self.fail_set:
            raise PersistenceError("disk full")
        super().set(key, value)


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def ledger(store: MemoryStore) -> LedgerStore:
    # A frozen clock forces every id to come from the collision bump.
    return LedgerStore(store, clock=lambda: 1_700_000_000_000)


def make_payload(**overrides: object) -> dict:
    payload = {
        "type": "expense",
        "category": "Food",
        "amount": "12.50",
        "description": "Lunch",
        "date": "2024-05-01",
    }
    payload.update(overrides)
    return payload
