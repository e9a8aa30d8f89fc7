"""
analytics.py — filtering, ordering, grouping and summaries over transactions.

All helpers are pure: they take a transaction list and return new lists or
values, never mutating their input. Calendar days are taken from the stored
timestamp as written (the UTC marker carries the original wall clock).
"""

from __future__ import annotations

import math
from datetime import date, datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from pathlib import Path
from typing import Iterable, Sequence

from finance_tracker.coercion import format_number, parse_timestamp
from finance_tracker.logging_setup import get_logger
from finance_tracker.models import Filters, GroupedTransactions, SortOrder, Summary, Transaction

logger = get_logger(__name__)

SORT_ORDERS = ("newest", "oldest")
CSV_HEADERS = ("Date", "Time", "Store", "Purchase", "Cost")
DEFAULT_EXPORT_FILENAME = "transactions.csv"

TODAY_LABEL = "Сьогодні"
YESTERDAY_LABEL = "Учора"
UK_MONTHS_ABBR = (
    "січ.", "лют.", "берез.", "квіт.", "трав.", "черв.",
    "лип.", "серп.", "верес.", "жовт.", "листоп.", "груд.",
)
CURRENCY_SYMBOL = "₴"
NBSP = "\u00a0"

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


# ── Display formatting ────────────────────────────────────────────────────────

def format_currency(amount: float) -> str:
    """Hryvnia in the uk-UA style: ``-1 500,75 ₴`` (non-breaking spaces)."""
    if not math.isfinite(amount):
        return f"{amount}{NBSP}{CURRENCY_SYMBOL}"
    quantized = Decimal(repr(float(amount))).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if quantized < 0 else ""
    whole, cents = f"{abs(quantized):,.2f}".split(".")
    return f"{sign}{whole.replace(',', NBSP)},{cents}{NBSP}{CURRENCY_SYMBOL}"


def format_day(day: date) -> str:
    return f"{day.day} {UK_MONTHS_ABBR[day.month - 1]} {day.year}"


def format_date_for_display(date_string: str, today: date | None = None) -> str:
    timestamp = parse_timestamp(date_string)
    if timestamp is None:
        return date_string
    today = today or date.today()
    day = timestamp.date()
    if day == today:
        return TODAY_LABEL
    if day == today - timedelta(days=1):
        return YESTERDAY_LABEL
    return format_day(day)


def format_time_for_display(date_string: str) -> str:
    timestamp = parse_timestamp(date_string)
    if timestamp is None:
        return "00:00"
    return timestamp.strftime("%H:%M")


# ── Queries ───────────────────────────────────────────────────────────────────

def _matches(transaction: Transaction, filters: Filters) -> bool:
    if filters.search_text:
        needle = filters.search_text.lower()
        if needle not in transaction.store.lower() and needle not in transaction.purchase.lower():
            return False

    if filters.date_from is not None or filters.date_to is not None:
        timestamp = transaction.timestamp
        if timestamp is None:
            return False
        day = timestamp.date()
        if filters.date_from is not None and day < filters.date_from:
            return False
        if filters.date_to is not None and day > filters.date_to:
            return False

    magnitude = abs(transaction.cost)
    if filters.min_amount is not None and magnitude < filters.min_amount:
        return False
    if filters.max_amount is not None and magnitude > filters.max_amount:
        return False
    return True


def filter_transactions(transactions: Iterable[Transaction], filters: Filters | None = None) -> list[Transaction]:
    """Keep transactions matching every active constraint in ``filters``."""
    filters = filters or Filters()
    return [transaction for transaction in transactions if _matches(transaction, filters)]


def _sort_key(transaction: Transaction) -> datetime:
    return transaction.timestamp or _OLDEST


def sort_transactions(transactions: Iterable[Transaction], order: SortOrder = "newest") -> list[Transaction]:
    """Stable sort by timestamp; unparseable dates count as the oldest."""
    if order not in SORT_ORDERS:
        raise ValueError(f"Unknown sort order {order!r}; expected one of {SORT_ORDERS}")
    return sorted(transactions, key=_sort_key, reverse=order == "newest")


def group_transactions_by_date(
    transactions: Iterable[Transaction],
    today: date | None = None,
) -> list[GroupedTransactions]:
    """One bucket per calendar day, newest day first, newest entry first."""
    buckets: dict[str, list[Transaction]] = {}
    for transaction in transactions:
        timestamp = transaction.timestamp
        if timestamp is None:
            logger.warning("Leaving transaction %s out of grouping: invalid date %r", transaction.id, transaction.date)
            continue
        buckets.setdefault(timestamp.date().isoformat(), []).append(transaction)

    return [
        GroupedTransactions(
            date=day_key,
            display_date=format_date_for_display(items[0].date, today=today),
            transactions=sort_transactions(items, "newest"),
        )
        for day_key, items in sorted(buckets.items(), key=lambda item: item[0], reverse=True)
    ]


def calculate_summary(transactions: Sequence[Transaction]) -> Summary:
    spending = sum(abs(t.cost) for t in transactions if t.cost < 0)
    income = sum(t.cost for t in transactions if t.cost > 0)
    return Summary(
        balance=income - spending,
        spending=spending,
        income=income,
        total_transactions=len(transactions),
    )


# ── CSV export ────────────────────────────────────────────────────────────────

def _quote(value: str) -> str:
    return '"' + value.replace('"', '""') + '"'


def _csv_line(transaction: Transaction) -> str:
    timestamp = transaction.timestamp
    return ",".join(
        [
            timestamp.date().isoformat() if timestamp else "",
            timestamp.strftime("%H:%M") if timestamp else "",
            _quote(transaction.store),
            _quote(transaction.purchase),
            format_number(transaction.cost),
        ]
    )


def export_to_csv(transactions: Iterable[Transaction]) -> str:
    lines = [",".join(CSV_HEADERS)]
    lines.extend(_csv_line(transaction) for transaction in transactions)
    return "\n".join(lines)


def save_csv(csv_content: str, path: str | Path = DEFAULT_EXPORT_FILENAME) -> Path:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(csv_content, encoding="utf-8")
    return target
