"""Canonical records shared by the import pipeline and the analytics helpers."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Literal, Mapping, Union

SortOrder = Literal["newest", "oldest"]

TRANSACTION_FIELDS = ("id", "date", "time", "store", "purchase", "cost")


# ── Cell values at the ingestion boundary ──────────────────────────────────────

@dataclass(frozen=True)
class EmptyCell:
    pass


@dataclass(frozen=True)
class NumberCell:
    value: float


@dataclass(frozen=True)
class TextCell:
    value: str


@dataclass(frozen=True)
class DateCell:
    value: datetime


Cell = Union[EmptyCell, NumberCell, TextCell, DateCell]
EMPTY = EmptyCell()


# ── Transactions and results ──────────────────────────────────────────────────

@dataclass(frozen=True)
class Transaction:
    """One normalized bank transaction. Negative cost is spending."""

    id: str
    date: str
    time: str
    store: str
    purchase: str
    cost: float

    @property
    def timestamp(self) -> datetime | None:
        from finance_tracker.coercion import parse_timestamp

        return parse_timestamp(self.date)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "date": self.date,
            "time": self.time,
            "store": self.store,
            "purchase": self.purchase,
            "cost": self.cost,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Transaction":
        missing = [name for name in TRANSACTION_FIELDS if name not in payload]
        if missing:
            raise ValueError(f"Transaction record is missing: {', '.join(missing)}")
        cost = payload["cost"]
        if isinstance(cost, bool) or not isinstance(cost, (int, float)):
            raise ValueError(f"Transaction cost must be a number, got {cost!r}")
        return cls(
            id=str(payload["id"]),
            date=str(payload["date"]),
            time=str(payload["time"]),
            store=str(payload["store"]),
            purchase=str(payload["purchase"]),
            cost=float(cost),
        )


@dataclass
class ParseResult:
    transactions: list[Transaction] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @classmethod
    def failed(cls, message: str) -> "ParseResult":
        return cls(transactions=[], errors=[message], warnings=[])

    def to_dict(self) -> dict[str, Any]:
        return {
            "transactions": [transaction.to_dict() for transaction in self.transactions],
            "errors": list(self.errors),
            "warnings": list(self.warnings),
        }


@dataclass
class ValidationSummary:
    total_rows: int
    valid_rows: int
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_rows": self.total_rows,
            "valid_rows": self.valid_rows,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
        }


@dataclass(frozen=True)
class Filters:
    """Query over a transaction list. ``None`` leaves a dimension unconstrained."""

    search_text: str = ""
    date_from: date | str | None = None
    date_to: date | str | None = None
    min_amount: float | None = None
    max_amount: float | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "date_from", _coerce_day(self.date_from, "date_from"))
        object.__setattr__(self, "date_to", _coerce_day(self.date_to, "date_to"))


@dataclass
class GroupedTransactions:
    date: str
    display_date: str
    transactions: list[Transaction] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "display_date": self.display_date,
            "transactions": [transaction.to_dict() for transaction in self.transactions],
        }


@dataclass
class Summary:
    balance: float
    spending: float
    income: float
    total_transactions: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "balance": self.balance,
            "spending": self.spending,
            "income": self.income,
            "total_transactions": self.total_transactions,
        }


def _coerce_day(value: date | str | None, name: str) -> date | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError as exc:
        raise ValueError(f"Invalid {name}: {value!r} (expected YYYY-MM-DD)") from exc
