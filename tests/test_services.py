from __future__ import annotations

import json
import logging
from datetime import date
from decimal import Decimal

import pytest
import simplejson

from conftest import FailingStore, make_payload
from ledger.exceptions import PersistenceWriteError, ValidationError
from ledger.models import Entry, EntryType
from ledger.services import STORAGE_KEY, LedgerStore
from ledger.storage import MemoryStore


def test_add_assigns_unique_ids_and_lists_entry(ledger: LedgerStore) -> None:
    first = ledger.add(make_payload())
    second = ledger.add(make_payload(description="Dinner"))

    assert first.id != second.id
    assert second.id > first.id
    assert ledger.list() == [first, second]
    assert first.category == "Food"
    assert first.amount == Decimal("12.50")
    assert first.date == date(2024, 5, 1)


def test_ids_increase_with_the_clock() -> None:
    ticks = iter([500, 900, 900, 100])
    ledger = LedgerStore(MemoryStore(), clock=lambda: next(ticks))

    ids = [ledger.add(make_payload()).id for _ in range(4)]

    assert ids == [500, 900, 901, 902]


def test_invalid_add_does_not_mutate(ledger: LedgerStore, store: MemoryStore) -> None:
    with pytest.raises(ValidationError) as excinfo:
        ledger.add(make_payload(amount="0", category=""))

    assert set(excinfo.value.errors) == {"amount", "category"}
    assert ledger.list() == []
    assert store.get(STORAGE_KEY) is None


def test_list_newest_first_does_not_change_storage_order(ledger: LedgerStore) -> None:
    entries = [ledger.add(make_payload(description=str(i))) for i in range(3)]

    assert ledger.list(newest_first=True) == list(reversed(entries))
    assert ledger.list() == entries


def test_delete_removes_entry_and_persists(ledger: LedgerStore, store: MemoryStore) -> None:
    keep = ledger.add(make_payload())
    drop = ledger.add(make_payload(category="Rent"))

    ledger.delete(drop.id)

    assert ledger.list() == [keep]
    stored = json.loads(store.get(STORAGE_KEY))
    assert [record["id"] for record in stored["entries"]] == [keep.id]


def test_delete_unknown_id_is_a_no_op(ledger: LedgerStore) -> None:
    entry = ledger.add(make_payload())

    ledger.delete(entry.id + 1000)

    assert ledger.list() == [entry]


def test_delete_twice_matches_deleting_once(ledger: LedgerStore) -> None:
    keep = ledger.add(make_payload())
    drop = ledger.add(make_payload())

    ledger.delete(drop.id)
    after_once = ledger.list()
    ledger.delete(drop.id)

    assert ledger.list() == after_once == [keep]


def test_totals_on_empty_store(ledger: LedgerStore) -> None:
    totals = ledger.compute_totals()

    assert (totals.income, totals.expense, totals.balance) == (0, 0, 0)


def test_totals_sum_by_type(ledger: LedgerStore) -> None:
    ledger.add(make_payload(type="income", amount="100"))
    ledger.add(make_payload(type="expense", amount="40"))

    totals = ledger.compute_totals()

    assert totals.income == Decimal("100")
    assert totals.expense == Decimal("40")
    assert totals.balance == Decimal("60")


def test_balance_may_be_negative(ledger: LedgerStore) -> None:
    ledger.add(make_payload(type="expense", amount="25.005"))

    totals = ledger.compute_totals()

    assert totals.balance == Decimal("-25.005")
    assert totals.to_dict() == {"income": "0.00", "expense": "25.01", "balance": "-25.01"}


def test_category_breakdown(ledger: LedgerStore) -> None:
    ledger.add(make_payload(category="Food", type="expense", amount="20"))
    ledger.add(make_payload(category="Salary", type="income", amount="1000"))
    ledger.add(make_payload(category="Food", type="income", amount="5"))
    ledger.add(make_payload(category="food", type="expense", amount="1"))

    breakdown = ledger.compute_category_breakdown()

    assert list(breakdown) == ["Food", "Salary", "food"]
    assert breakdown["Food"].income == Decimal("5")
    assert breakdown["Food"].expense == Decimal("20")
    assert breakdown["Food"].balance == Decimal("-15")
    assert breakdown["Salary"].expense == Decimal("0")
    assert breakdown["food"].income == Decimal("0")


def test_statistics(ledger: LedgerStore) -> None:
    ledger.add(make_payload(category="Salary", type="income", amount="200"))
    ledger.add(make_payload(category="Food", type="expense", amount="50"))

    stats = ledger.compute_statistics()

    assert stats.transaction_count == 2
    assert stats.category_count == 2
    assert stats.average_transaction == Decimal("125")
    assert stats.savings_rate == Decimal("75")
    assert stats.to_dict()["savings_rate"] == "75.0"


def test_statistics_on_empty_store(ledger: LedgerStore) -> None:
    stats = ledger.compute_statistics()

    assert stats.to_dict() == {
        "transaction_count": 0,
        "category_count": 0,
        "average_transaction": "0.00",
        "savings_rate": "0.0",
    }


EXACT_AMOUNTS = [
    "1e-400",
    "0.12345678901234567890",
    "12345678901234567.25",
    "1E+30",
    "0.01",
]


def test_persist_then_load_round_trip(ledger: LedgerStore, store: MemoryStore) -> None:
    ledger.add(make_payload(type="income", category="Salary", amount="1234.5678"))
    ledger.add(make_payload(category="Café", description="Flat white", amount="3.1"))
    ledger.add(make_payload(amount="99", date="2023-12-31"))

    reloaded = LedgerStore(store)

    assert reloaded.list() == ledger.list()


@pytest.mark.parametrize("amount", EXACT_AMOUNTS)
def test_persist_then_load_keeps_every_digit(
    ledger: LedgerStore, store: MemoryStore, amount: str
) -> None:
    ledger.add(make_payload(type="income", amount="100"))
    added = ledger.add(make_payload(amount=amount))

    reloaded = LedgerStore(store).list()

    assert reloaded == ledger.list()
    assert str(reloaded[1].amount) == str(added.amount)
    assert reloaded[1].amount == Decimal(amount)


def test_load_accepts_legacy_bare_array() -> None:
    legacy = [
        {
            "id": 1714564800000,
            "type": "income",
            "category": "Salary",
            "amount": 2500,
            "description": "May pay",
            "date": "2024-05-01",
        }
    ]
    store = MemoryStore({STORAGE_KEY: json.dumps(legacy)})

    entries = LedgerStore(store).list()

    assert entries == [
        Entry(
            id=1714564800000,
            type=EntryType.INCOME,
            category="Salary",
            amount=Decimal("2500"),
            description="May pay",
            date=date(2024, 5, 1),
        )
    ]


def test_reload_never_reuses_ids(store: MemoryStore) -> None:
    first = LedgerStore(store, clock=lambda: 10)
    existing = first.add(make_payload())

    second = LedgerStore(store, clock=lambda: 1)
    added = second.add(make_payload())

    assert added.id > existing.id


@pytest.mark.parametrize(
    "raw",
    [
        "not json",
        '{"schemaVersion": 99, "entries": []}',
        '{"entries": []}',
        '"a string"',
        '[{"id": 1, "type": "expense"}]',
        '[{"id": 1, "type": "expense", "category": "A", "amount": -3,'
        ' "description": "x", "date": "2024-01-01"}]',
        '[{"id": 1, "type": "expense", "category": "A", "amount": 3,'
        ' "description": "x", "date": "20240101"}]',
    ],
)
def test_unreadable_data_starts_empty(raw: str, caplog: pytest.LogCaptureFixture) -> None:
    store = MemoryStore({STORAGE_KEY: raw})

    with caplog.at_level(logging.WARNING, logger="ledger.services"):
        ledger = LedgerStore(store)

    assert ledger.list() == []
    assert "starting empty" in caplog.text


def test_duplicate_ids_are_unreadable() -> None:
    record = {
        "id": 7,
        "type": "expense",
        "category": "A",
        "amount": 1,
        "description": "x",
        "date": "2024-01-01",
    }
    store = MemoryStore({STORAGE_KEY: json.dumps([record, record])})

    assert LedgerStore(store).list() == []


def test_read_failure_starts_empty(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="ledger.services"):
        ledger = LedgerStore(FailingStore(fail_get=True))

    assert ledger.list() == []
    assert "store offline" in caplog.text


def test_write_failure_keeps_memory(caplog: pytest.LogCaptureFixture) -> None:
    store = FailingStore(fail_set=True)
    ledger = LedgerStore(store)

    with caplog.at_level(logging.ERROR, logger="ledger.services"):
        entry = ledger.add(make_payload())

    assert ledger.list() == [entry]
    assert isinstance(ledger.last_persist_error, PersistenceWriteError)
    assert "disk full" in caplog.text

    store.fail_set = False
    ledger.delete(entry.id)

    assert ledger.last_persist_error is None
    assert json.loads(store.get(STORAGE_KEY))["entries"] == []


def test_persisted_envelope_is_versioned(ledger: LedgerStore, store: MemoryStore) -> None:
    entry = ledger.add(make_payload(amount="12.5"))

    stored = simplejson.loads(store.get(STORAGE_KEY), use_decimal=True)

    assert stored == {"schemaVersion": 1, "entries": [entry.to_dict()]}


def test_export_snapshot_round_trip(ledger: LedgerStore) -> None:
    ledger.add(make_payload(type="income", category="Salary", amount="1500"))
    ledger.add(make_payload(category="Food", amount="0.1", description="Gum"))

    exported = ledger.export_snapshot()
    parsed = simplejson.loads(exported.decode("utf-8"), use_decimal=True)

    assert parsed == [entry.to_dict() for entry in ledger.list()]
    assert [Entry.from_dict(record) for record in parsed] == ledger.list()
    assert exported.decode("utf-8").startswith("[\n  {")
    assert parsed[0]["amount"] == 1500
    assert parsed[1]["amount"] == Decimal("0.1")
    assert json.loads(exported)[1]["amount"] == 0.1


@pytest.mark.parametrize("amount", EXACT_AMOUNTS)
def test_export_snapshot_keeps_every_digit(ledger: LedgerStore, amount: str) -> None:
    entry = ledger.add(make_payload(amount=amount))

    parsed = simplejson.loads(ledger.export_snapshot().decode("utf-8"), use_decimal=True)

    assert parsed[0]["amount"] == Decimal(amount)
    assert str(parsed[0]["amount"]) == str(entry.amount)
    assert Entry.from_dict(parsed[0]) == entry


def test_export_snapshot_has_no_side_effects(ledger: LedgerStore, store: MemoryStore) -> None:
    ledger.add(make_payload())
    before = store.get(STORAGE_KEY)

    ledger.export_snapshot()

    assert store.get(STORAGE_KEY) == before


def test_export_of_empty_ledger(ledger: LedgerStore) -> None:
    assert ledger.export_snapshot() == b"[]"


def test_export_filename() -> None:
    assert LedgerStore.export_filename(date(2024, 5, 1)) == "budget-data-2024-05-01.json"
