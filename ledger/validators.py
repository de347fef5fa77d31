"""Validation helpers for candidate ledger entries."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Dict, Mapping, Optional, Tuple

from .models import EntryType, parse_iso_date

__all__ = [
    "ErrorCode",
    "FieldError",
    "ValidationResult",
    "parse_amount",
    "parse_date",
    "parse_entry_type",
    "validate_candidate",
    "validate_required_str",
]

MESSAGES = {
    "category": "Category is required",
    "amount": "Please enter a valid amount greater than 0",
    "description": "Description is required",
    "date": "Date is required",
}


class ErrorCode(str, Enum):
    EMPTY_FIELD = "EmptyField"
    INVALID_AMOUNT = "InvalidAmount"
    INVALID_DATE = "InvalidDate"
    INVALID_TYPE = "InvalidType"
    INVALID_TEXT = "InvalidText"


@dataclass(frozen=True)
class FieldError:
    code: ErrorCode
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"code": self.code.value, "message": self.message}


@dataclass
class ValidationResult:
    """Outcome of validating a candidate; empty ``errors`` means valid."""

    errors: Dict[str, FieldError] = field(default_factory=dict)
    cleaned: Dict[str, object] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, Dict[str, str]]:
        return {name: error.to_dict() for name, error in self.errors.items()}


def validate_required_str(
    value: object, name: str
) -> Tuple[Optional[str], Optional[FieldError]]:
    """Return the text untouched, or the field error when it is missing, blank or not a string."""
    if value is not None and not isinstance(value, str):
        return None, FieldError(ErrorCode.INVALID_TEXT, f"{name.capitalize()} must be text")
    if value is None or not value.strip():
        return None, FieldError(ErrorCode.EMPTY_FIELD, MESSAGES[name])
    return value, None


def parse_amount(raw: object) -> Optional[Decimal]:
    """Convert raw input to a positive, finite Decimal at full precision."""
    if raw is None or isinstance(raw, bool):
        return None
    text = str(raw).strip()
    if not text:
        return None
    try:
        amount = Decimal(text)
    except InvalidOperation:
        return None
    if not amount.is_finite() or amount <= 0:
        return None
    return amount


def parse_date(raw: object) -> Tuple[Optional[date], Optional[FieldError]]:
    if isinstance(raw, datetime):
        return raw.date(), None
    if isinstance(raw, date):
        return raw, None
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return None, FieldError(ErrorCode.EMPTY_FIELD, MESSAGES["date"])
    try:
        return parse_iso_date(str(raw).strip()), None
    except ValueError:
        return None, FieldError(ErrorCode.INVALID_DATE, "Date must be formatted as YYYY-MM-DD")


def parse_entry_type(raw: object) -> Optional[EntryType]:
    # The entry form preselects "expense".
    if raw is None or raw == "":
        return EntryType.EXPENSE
    if isinstance(raw, EntryType):
        return raw
    try:
        return EntryType(str(raw).strip().lower())
    except ValueError:
        return None


def validate_candidate(payload: Mapping[str, object]) -> ValidationResult:
    """Check every field of a candidate entry and report all violations together."""
    result = ValidationResult()

    category, category_error = validate_required_str(payload.get("category"), "category")
    if category_error is not None:
        result.errors["category"] = category_error

    amount = parse_amount(payload.get("amount"))
    if amount is None:
        result.errors["amount"] = FieldError(ErrorCode.INVALID_AMOUNT, MESSAGES["amount"])

    description, description_error = validate_required_str(
        payload.get("description"), "description"
    )
    if description_error is not None:
        result.errors["description"] = description_error

    entry_date, date_error = parse_date(payload.get("date"))
    if date_error is not None:
        result.errors["date"] = date_error

    entry_type = parse_entry_type(payload.get("type"))
    if entry_type is None:
        result.errors["type"] = FieldError(
            ErrorCode.INVALID_TYPE,
            "Type must be one of: " + ", ".join(member.value for member in EntryType),
        )

    if result.is_valid:
        result.cleaned = {
            "type": entry_type,
            "category": category,
            "amount": amount,
            "description": description,
            "date": entry_date,
        }
    return result
