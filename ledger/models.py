"""Data models for the budget ledger domain."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Context, Decimal
from enum import Enum
from typing import Any, Dict

__all__ = [
    "CategoryTotals",
    "Entry",
    "EntryType",
    "Statistics",
    "Totals",
    "format_amount",
    "parse_iso_date",
]

ZERO = Decimal("0")
ISO_DATE_PATTERN = re.compile(r"^[0-9]{4}-[0-9]{2}-[0-9]{2}$")


def format_amount(amount: Decimal) -> str:
    """Render an amount with exactly two fraction digits for display."""
    # Widen precision so large amounts keep every integer digit when quantized.
    context = Context(prec=max(28, amount.adjusted() + 3))
    return str(amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP, context=context))


def parse_iso_date(value: str) -> date:
    """Parse a strict ``YYYY-MM-DD`` calendar date, raising ``ValueError`` otherwise."""
    if not isinstance(value, str) or not ISO_DATE_PATTERN.fullmatch(value):
        raise ValueError(f"Expected a YYYY-MM-DD date, got {value!r}")
    return date.fromisoformat(value)


class EntryType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


@dataclass(frozen=True)
class Entry:
    id: int
    type: EntryType
    category: str
    amount: Decimal
    description: str
    date: date

    def to_dict(self) -> Dict[str, Any]:
        """Serialise the entry; ``amount`` stays a Decimal so encoders can write it exactly."""
        return {
            "id": self.id,
            "type": self.type.value,
            "category": self.category,
            "amount": self.amount,
            "description": self.description,
            "date": self.date.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Entry":
        """Hydrate an Entry from JSON-native data.

        Raises ``KeyError``, ``ValueError`` or ``TypeError`` when the payload
        is malformed; callers treat any of these as unreadable data.
        """
        entry_id = data["id"]
        if isinstance(entry_id, bool) or not isinstance(entry_id, int):
            raise TypeError(f"Entry id must be an integer, got {entry_id!r}")
        amount = Decimal(str(data["amount"]))
        if not amount.is_finite() or amount <= 0:
            raise ValueError(f"Entry {entry_id} has a non-positive amount")
        category = data["category"]
        description = data["description"]
        if not isinstance(category, str) or not category.strip():
            raise ValueError(f"Entry {entry_id} has an empty category")
        if not isinstance(description, str) or not description.strip():
            raise ValueError(f"Entry {entry_id} has an empty description")
        return cls(
            id=entry_id,
            type=EntryType(data["type"]),
            category=category,
            amount=amount,
            description=description,
            date=parse_iso_date(data["date"]),
        )


@dataclass(frozen=True)
class Totals:
    income: Decimal = ZERO
    expense: Decimal = ZERO

    @property
    def balance(self) -> Decimal:
        return self.income - self.expense

    def to_dict(self) -> Dict[str, str]:
        return {
            "income": format_amount(self.income),
            "expense": format_amount(self.expense),
            "balance": format_amount(self.balance),
        }


@dataclass
class CategoryTotals:
    """Running income/expense sums for one category."""

    income: Decimal = ZERO
    expense: Decimal = ZERO

    @property
    def balance(self) -> Decimal:
        return self.income - self.expense

    def add(self, entry: Entry) -> None:
        if entry.type is EntryType.INCOME:
            self.income += entry.amount
        else:
            self.expense += entry.amount

    def to_dict(self) -> Dict[str, str]:
        return {
            "income": format_amount(self.income),
            "expense": format_amount(self.expense),
            "balance": format_amount(self.balance),
        }


@dataclass(frozen=True)
class Statistics:
    transaction_count: int
    category_count: int
    average_transaction: Decimal
    savings_rate: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "transaction_count": self.transaction_count,
            "category_count": self.category_count,
            "average_transaction": format_amount(self.average_transaction),
            # Savings rate is a percentage shown with one decimal place.
            "savings_rate": str(
                self.savings_rate.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
            ),
        }
