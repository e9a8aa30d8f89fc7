from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Sequence

from finance_tracker import __version__ as TOOL_VERSION
from finance_tracker.analytics import (
    SORT_ORDERS,
    calculate_summary,
    export_to_csv,
    filter_transactions,
    format_currency,
    format_date_for_display,
    format_time_for_display,
    group_transactions_by_date,
    save_csv,
    sort_transactions,
)
from finance_tracker.config import Settings, load_settings
from finance_tracker.contracts import build_run_summary, wrap_payload
from finance_tracker.logging_setup import configure_logging, get_logger
from finance_tracker.models import Filters, GroupedTransactions, ParseResult, Summary, Transaction
from finance_tracker.parser import parse_file
from finance_tracker.storage import TransactionStore
from finance_tracker.validator import validate_transactions

logger = get_logger(__name__)

EXIT_SUCCESS = 0
EXIT_COMMAND_ERROR = 1
EXIT_IMPORT_FAILED = 2
EXIT_IMPORT_ISSUES = 3
EXIT_VALIDATE_FAILED = 5


class CliError(Exception):
    def __init__(self, message: str, code: int = EXIT_COMMAND_ERROR) -> None:
        super().__init__(message)
        self.code = code


class FinanceTrackerArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:
        raise CliError(message, EXIT_COMMAND_ERROR)


def eprint(message: str) -> None:
    print(message, file=sys.stderr)


def emit_human(message: str, *, quiet: bool = False) -> None:
    if not quiet:
        eprint(message)


def json_dumps(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False, sort_keys=True)


def maybe_emit_json_stdout(payload: Any, enabled: bool) -> None:
    if enabled:
        print(json_dumps(payload))


def resolve_settings(args: argparse.Namespace) -> Settings:
    settings = load_settings().with_overrides(
        store_path=getattr(args, "store", None),
        log_level=getattr(args, "log_level", None),
        export_path=getattr(args, "output", None),
    )
    configure_logging(settings.log_level)
    return settings


def build_filters(args: argparse.Namespace) -> Filters:
    try:
        return Filters(
            search_text=args.search or "",
            date_from=args.date_from,
            date_to=args.date_to,
            min_amount=args.min_amount,
            max_amount=args.max_amount,
        )
    except ValueError as exc:
        raise CliError(str(exc), EXIT_COMMAND_ERROR) from exc


def load_selection(args: argparse.Namespace, store: TransactionStore) -> list[Transaction]:
    filters = build_filters(args)
    transactions = store.load()
    logger.debug("Loaded %d stored transactions from %s", len(transactions), store.path)
    return sort_transactions(filter_transactions(transactions, filters), args.order)


# ── Text rendering ────────────────────────────────────────────────────────────

def render_import_text(input_path: Path, result: ParseResult, saved_to: Path | None) -> str:
    lines = [
        "finance-tracker import",
        f"Input: {input_path}",
        f"Transactions: {len(result.transactions)}",
        f"Errors: {len(result.errors)}",
        f"Warnings: {len(result.warnings)}",
    ]
    lines.extend(f"- error: {message}" for message in result.errors)
    lines.extend(f"- warning: {message}" for message in result.warnings)
    if saved_to is not None:
        lines.append(f"Saved to: {saved_to}")
    return "\n".join(lines) + "\n"


def render_summary_text(summary: Summary) -> str:
    return "\n".join(
        [
            f"Balance:      {format_currency(summary.balance)}",
            f"Income:       {format_currency(summary.income)}",
            f"Spending:     {format_currency(summary.spending)}",
            f"Transactions: {summary.total_transactions}",
        ]
    ) + "\n"


def render_transaction_line(transaction: Transaction) -> str:
    return "  ".join(
        [
            format_time_for_display(transaction.date),
            transaction.store,
            transaction.purchase,
            format_currency(transaction.cost),
        ]
    )


def render_list_text(transactions: Sequence[Transaction]) -> str:
    lines = [
        f"{format_date_for_display(t.date)}  {render_transaction_line(t)}"
        for t in transactions
    ]
    return "\n".join(lines) + "\n" if lines else "No transactions.\n"


def render_groups_text(groups: Sequence[GroupedTransactions]) -> str:
    if not groups:
        return "No transactions.\n"
    lines: list[str] = []
    for group in groups:
        lines.append(group.display_date)
        lines.extend(f"  {render_transaction_line(t)}" for t in group.transactions)
    return "\n".join(lines) + "\n"


# ── Commands ──────────────────────────────────────────────────────────────────

def exit_code_for_import(result: ParseResult) -> int:
    if result.errors and not result.transactions:
        return EXIT_IMPORT_FAILED
    if result.errors or result.warnings:
        return EXIT_IMPORT_ISSUES
    return EXIT_SUCCESS


def run_import(args: argparse.Namespace) -> int:
    settings = resolve_settings(args)
    input_path = Path(args.input)
    if not input_path.exists():
        eprint(f"File not found: {input_path}")
        return EXIT_COMMAND_ERROR

    result = asyncio.run(parse_file(input_path, sheet_name=args.sheet_name))
    code = exit_code_for_import(result)

    saved_to = None
    if args.save and code != EXIT_IMPORT_FAILED:
        store = TransactionStore(settings.store_path)
        try:
            store.save(result.transactions)
        except OSError as exc:
            raise CliError(f"Could not save transactions to {store.path}: {exc}") from exc
        saved_to = store.path

    if args.json:
        payload = wrap_payload(
            "finance_tracker.import",
            {"result": result.to_dict(), "saved": saved_to is not None},
            build_run_summary(
                command="import",
                input_path=input_path,
                status="failed" if code == EXIT_IMPORT_FAILED else "ok",
                output_path=saved_to,
                metrics={"transactions": len(result.transactions)},
                errors=result.errors,
                warnings=result.warnings,
            ),
        )
        maybe_emit_json_stdout(payload, True)
    else:
        emit_human(render_import_text(input_path, result, saved_to).rstrip())
    return code


def run_validate(args: argparse.Namespace) -> int:
    settings = resolve_settings(args)
    store = TransactionStore(settings.store_path)
    summary = validate_transactions(store.load())
    if args.json:
        payload = wrap_payload(
            "finance_tracker.validate",
            {"validation": summary.to_dict()},
            build_run_summary(
                command="validate",
                input_path=store.path,
                status="ok" if not summary.errors else "invalid",
                metrics={"total_rows": summary.total_rows, "valid_rows": summary.valid_rows},
                errors=summary.errors,
                warnings=summary.warnings,
            ),
        )
        maybe_emit_json_stdout(payload, True)
    else:
        lines = [
            "finance-tracker validate",
            f"Store: {store.path}",
            f"Valid: {summary.valid_rows}/{summary.total_rows}",
        ]
        lines.extend(f"- error: {message}" for message in summary.errors)
        lines.extend(f"- warning: {message}" for message in summary.warnings)
        emit_human("\n".join(lines))
    return EXIT_VALIDATE_FAILED if summary.errors else EXIT_SUCCESS


def run_summary(args: argparse.Namespace) -> int:
    settings = resolve_settings(args)
    store = TransactionStore(settings.store_path)
    summary = calculate_summary(load_selection(args, store))
    if args.json:
        body = {
            "summary": summary.to_dict(),
            "formatted": {
                "balance": format_currency(summary.balance),
                "income": format_currency(summary.income),
                "spending": format_currency(summary.spending),
            },
        }
        maybe_emit_json_stdout(
            wrap_payload(
                "finance_tracker.summary",
                body,
                build_run_summary(
                    command="summary",
                    input_path=store.path,
                    metrics={"total_transactions": summary.total_transactions},
                ),
            ),
            True,
        )
    else:
        print(render_summary_text(summary), end="")
    return EXIT_SUCCESS


def run_list(args: argparse.Namespace) -> int:
    settings = resolve_settings(args)
    store = TransactionStore(settings.store_path)
    transactions = load_selection(args, store)
    groups = group_transactions_by_date(transactions) if args.group else None

    if args.json:
        if groups is not None:
            body: dict[str, Any] = {"groups": [group.to_dict() for group in groups]}
        else:
            body = {"transactions": [t.to_dict() for t in transactions]}
        maybe_emit_json_stdout(
            wrap_payload(
                "finance_tracker.list",
                body,
                build_run_summary(
                    command="list",
                    input_path=store.path,
                    metrics={"transactions": len(transactions)},
                ),
            ),
            True,
        )
    elif groups is not None:
        print(render_groups_text(groups), end="")
    else:
        print(render_list_text(transactions), end="")
    return EXIT_SUCCESS


def run_export(args: argparse.Namespace) -> int:
    settings = resolve_settings(args)
    store = TransactionStore(settings.store_path)
    transactions = load_selection(args, store)
    try:
        output_path = save_csv(export_to_csv(transactions), settings.export_path)
    except OSError as exc:
        raise CliError(f"Could not write {settings.export_path}: {exc}") from exc

    if args.json:
        maybe_emit_json_stdout(
            wrap_payload(
                "finance_tracker.export",
                {"exported": len(transactions)},
                build_run_summary(
                    command="export",
                    input_path=store.path,
                    output_path=output_path,
                    metrics={"transactions": len(transactions)},
                ),
            ),
            True,
        )
    else:
        emit_human(f"Exported {len(transactions)} transactions: {output_path}")
    return EXIT_SUCCESS


def run_clear(args: argparse.Namespace) -> int:
    settings = resolve_settings(args)
    store = TransactionStore(settings.store_path)
    try:
        store.clear()
    except OSError as exc:
        raise CliError(f"Could not clear {store.path}: {exc}") from exc
    emit_human(f"Cleared stored transactions: {store.path}")
    return EXIT_SUCCESS


def run_version() -> int:
    print(TOOL_VERSION)
    return EXIT_SUCCESS


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--store", help="Transaction store path (default: $FINANCE_TRACKER_STORE or ~/.finance-tracker/transactions.json)")
    common.add_argument("--log-level", dest="log_level", help="Logging level, e.g. DEBUG or INFO")

    filters = argparse.ArgumentParser(add_help=False)
    filters.add_argument("--search", help="Case-insensitive text to find in store or purchase")
    filters.add_argument("--from", dest="date_from", help="Earliest calendar day (YYYY-MM-DD)")
    filters.add_argument("--to", dest="date_to", help="Latest calendar day (YYYY-MM-DD)")
    filters.add_argument("--min", dest="min_amount", type=float, help="Smallest absolute amount")
    filters.add_argument("--max", dest="max_amount", type=float, help="Largest absolute amount")
    filters.add_argument("--order", choices=SORT_ORDERS, default="newest", help="Date order")

    parser = FinanceTrackerArgumentParser(prog="finance-tracker", description="Import bank statement spreadsheets and query your transactions.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    importer = subparsers.add_parser("import", parents=[common], help="Parse a statement file (.xlsx, .xls, .ods, .csv).")
    importer.add_argument("input", help="Input file path")
    importer.add_argument("--sheet", dest="sheet_name", help="Workbook sheet name (default: first sheet named like 'transactions')")
    importer.add_argument("--save", action="store_true", help="Replace the stored transactions with the imported ones")
    importer.add_argument("--json", action="store_true", help="Write machine JSON to stdout")

    validate = subparsers.add_parser("validate", parents=[common], help="Check stored transactions for quality problems.")
    validate.add_argument("--json", action="store_true", help="Write machine JSON to stdout")

    summary = subparsers.add_parser("summary", parents=[common, filters], help="Show balance, income and spending.")
    summary.add_argument("--json", action="store_true", help="Write machine JSON to stdout")

    listing = subparsers.add_parser("list", parents=[common, filters], help="List stored transactions.")
    listing.add_argument("--group", action="store_true", help="Group by calendar day")
    listing.add_argument("--json", action="store_true", help="Write machine JSON to stdout")

    export = subparsers.add_parser("export", parents=[common, filters], help="Export stored transactions as CSV.")
    export.add_argument("--output", help="CSV output path (default: $FINANCE_TRACKER_EXPORT_PATH or transactions.csv)")
    export.add_argument("--json", action="store_true", help="Write machine JSON to stdout")

    subparsers.add_parser("clear", parents=[common], help="Remove all stored transactions.")
    subparsers.add_parser("version", help="Print version")
    return parser


def main(argv: list[str] | None = None) -> int:
    try:
        parser = build_parser()
        args = parser.parse_args(argv)
        if args.command == "import":
            return run_import(args)
        if args.command == "validate":
            return run_validate(args)
        if args.command == "summary":
            return run_summary(args)
        if args.command == "list":
            return run_list(args)
        if args.command == "export":
            return run_export(args)
        if args.command == "clear":
            return run_clear(args)
        if args.command == "version":
            return run_version()
        raise CliError(f"Unknown command: {args.command}", EXIT_COMMAND_ERROR)
    except CliError as exc:
        eprint(str(exc))
        return exc.code


if __name__ == "__main__":
    raise SystemExit(main())
