"""
parser.py — import a statement workbook into canonical transactions.

Nothing in here raises for bad input. Every failure (undecodable bytes,
empty sheet, missing columns, bad rows) ends up in ``ParseResult.errors`` or
``ParseResult.warnings``; callers always receive a usable result.
"""

from __future__ import annotations

import asyncio
import os
import uuid
from pathlib import Path
from typing import BinaryIO, Sequence, Union

from finance_tracker.coercion import cell_text, is_falsy, parse_cost, parse_date_time, to_cell
from finance_tracker.headers import CANONICAL_FIELDS, duplicate_headers, missing_required, normalize_headers
from finance_tracker.loader import read_workbook
from finance_tracker.logging_setup import get_logger
from finance_tracker.models import EMPTY, Cell, EmptyCell, ParseResult, Transaction

logger = get_logger(__name__)

Source = Union[str, "os.PathLike[str]", BinaryIO]


def new_batch_token() -> str:
    return uuid.uuid4().hex[:12]


def _cell_at(cells: Sequence[Cell], index: int | None) -> Cell:
    if index is None or index >= len(cells):
        return EMPTY
    return cells[index]


def _duplicate_warnings(header_row: Sequence[object]) -> list[str]:
    warnings = []
    for name, indices in duplicate_headers(header_row).items():
        if name in CANONICAL_FIELDS:
            warnings.append(f"Duplicate column '{name}': using column {indices[-1] + 1}")
    return warnings


def parse_rows(rows: Sequence[Sequence[object]], batch_token: str | None = None) -> ParseResult:
    """
    Turn decoded sheet rows (header row first) into a ParseResult.

    Rows are numbered as in the spreadsheet: the header is row 1, so the
    first data row is row 2.
    """
    if not rows:
        return ParseResult.failed("Empty spreadsheet")

    header_row, data_rows = rows[0], rows[1:]
    header_map = normalize_headers(header_row)
    missing = missing_required(header_map)
    if missing:
        return ParseResult.failed(f"Missing required columns: {', '.join(missing)}")

    token = batch_token or new_batch_token()
    transactions: list[Transaction] = []
    errors: list[str] = []
    warnings = _duplicate_warnings(header_row)

    for offset, raw_row in enumerate(data_rows):
        row_number = offset + 2
        try:
            cells = [to_cell(value) for value in raw_row]
            if all(is_falsy(cell) for cell in cells):
                continue

            date_cell = _cell_at(cells, header_map["date"])
            time_cell = _cell_at(cells, header_map.get("time"))
            store_cell = _cell_at(cells, header_map["store"])
            purchase_cell = _cell_at(cells, header_map["purchase"])
            cost_cell = _cell_at(cells, header_map["cost"])

            if (
                is_falsy(date_cell)
                or is_falsy(store_cell)
                or is_falsy(purchase_cell)
                or isinstance(cost_cell, EmptyCell)
            ):
                warnings.append(f"Row {row_number}: Missing required data")
                continue

            parsed_date = parse_date_time(date_cell, time_cell)
            if parsed_date is None:
                errors.append(f"Row {row_number}: Could not parse date")
                continue

            transactions.append(
                Transaction(
                    id=f"{row_number}-{token}",
                    date=parsed_date,
                    time="" if is_falsy(time_cell) else cell_text(time_cell),
                    store=cell_text(store_cell).strip(),
                    purchase=cell_text(purchase_cell).strip(),
                    cost=parse_cost(cost_cell),
                )
            )
        except Exception as exc:
            logger.debug("Row %d failed", row_number, exc_info=True)
            errors.append(f"Row {row_number}: {str(exc) or 'Parse error'}")

    return ParseResult(transactions=transactions, errors=errors, warnings=warnings)


def parse_workbook_bytes(
    data: bytes,
    filename: str | None = None,
    sheet_name: str | None = None,
) -> ParseResult:
    """Decode a complete statement file and parse its transaction sheet."""
    try:
        sheet = read_workbook(data, filename=filename, sheet_name=sheet_name)
    except Exception as exc:
        logger.warning("Could not decode %s: %s", filename or "upload", exc)
        return ParseResult.failed(f"Failed to parse file: {str(exc) or 'Unknown error'}")

    for note in sheet.notes:
        logger.info(note)
    logger.debug(
        "Parsing %s sheet %r (%d rows)",
        sheet.detected_format,
        sheet.sheet_name,
        len(sheet.rows),
    )

    result = parse_rows(sheet.rows)
    logger.info(
        "Imported %d transactions from %s (%d errors, %d warnings)",
        len(result.transactions),
        filename or "upload",
        len(result.errors),
        len(result.warnings),
    )
    return result


async def parse_file(
    source: Source,
    filename: str | None = None,
    sheet_name: str | None = None,
) -> ParseResult:
    """
    Read an entire statement file, then parse it.

    The byte read is the only suspension point; parsing runs synchronously
    once the content is in memory. The coroutine always resolves with a
    ParseResult; a source that cannot be read yields "Failed to read file".
    """
    try:
        if hasattr(source, "read"):
            data = await asyncio.to_thread(source.read)
            name = getattr(source, "name", None)
        else:
            path = Path(source)
            data = await asyncio.to_thread(path.read_bytes)
            name = path.name
    except (OSError, ValueError) as exc:
        logger.warning("Could not read %s: %s", source, exc)
        return ParseResult.failed("Failed to read file")

    if not isinstance(data, (bytes, bytearray)):
        logger.warning("Source %r returned %s instead of bytes", source, type(data).__name__)
        return ParseResult.failed("Failed to read file")

    if filename is None and isinstance(name, str):
        filename = os.path.basename(name)
    return parse_workbook_bytes(bytes(data), filename=filename, sheet_name=sheet_name)
