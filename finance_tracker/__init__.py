"""Personal finance tracker: import bank statement spreadsheets, then query them."""

__version__ = "1.0.0"

from finance_tracker.analytics import (
    calculate_summary,
    export_to_csv,
    filter_transactions,
    format_currency,
    format_date_for_display,
    format_time_for_display,
    group_transactions_by_date,
    sort_transactions,
)
from finance_tracker.models import Filters, ParseResult, Summary, Transaction, ValidationSummary
from finance_tracker.parser import parse_file, parse_rows, parse_workbook_bytes
from finance_tracker.validator import validate_transactions

__all__ = [
    "__version__",
    "Filters",
    "ParseResult",
    "Summary",
    "Transaction",
    "ValidationSummary",
    "calculate_summary",
    "export_to_csv",
    "filter_transactions",
    "format_currency",
    "format_date_for_display",
    "format_time_for_display",
    "group_transactions_by_date",
    "parse_file",
    "parse_rows",
    "parse_workbook_bytes",
    "sort_transactions",
    "validate_transactions",
]
