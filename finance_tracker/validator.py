"""Post-hoc quality report over an already materialised transaction list."""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Union

from finance_tracker.coercion import parse_timestamp
from finance_tracker.models import Transaction, ValidationSummary

TransactionLike = Union[Transaction, Mapping[str, Any]]


def _field(transaction: TransactionLike, name: str) -> Any:
    if isinstance(transaction, Transaction):
        return getattr(transaction, name)
    return transaction.get(name)


def _is_blank_text(value: Any) -> bool:
    return value is None or not str(value).strip()


def validate_transactions(transactions: Iterable[TransactionLike]) -> ValidationSummary:
    """
    Re-check every transaction; warnings never make a transaction invalid.

    Plain dicts (as loaded from persistence) are accepted alongside
    ``Transaction`` objects, so a damaged stored record is reported instead of
    crashing the check.
    """
    items = list(transactions)
    errors: list[str] = []
    warnings: list[str] = []
    valid_count = 0

    for position, transaction in enumerate(items, start=1):
        label = f"Transaction {position}"
        is_valid = True

        if _is_blank_text(_field(transaction, "store")):
            errors.append(f"{label}: Empty store name")
            is_valid = False

        if _is_blank_text(_field(transaction, "purchase")):
            errors.append(f"{label}: Empty purchase description")
            is_valid = False

        if _field(transaction, "cost") == 0:
            warnings.append(f"{label}: Zero cost amount")

        if parse_timestamp(_field(transaction, "date")) is None:
            errors.append(f"{label}: Invalid date")
            is_valid = False

        if is_valid:
            valid_count += 1

    return ValidationSummary(
        total_rows=len(items),
        valid_rows=valid_count,
        errors=errors,
        warnings=warnings,
    )
