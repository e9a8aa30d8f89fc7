"""
coercion.py — turn raw spreadsheet cells into canonical timestamps and amounts.

Every raw value is first classified into the closed cell union from
``finance_tracker.models`` (``to_cell``); the parsing helpers then branch on
that union only.
"""

from __future__ import annotations

import math
import numbers
import re
from datetime import date, datetime, time, timedelta, timezone

import pandas as pd

from finance_tracker.logging_setup import get_logger
from finance_tracker.models import EMPTY, Cell, DateCell, EmptyCell, NumberCell, TextCell

logger = get_logger(__name__)

# Spreadsheet serial 25569 is 1970-01-01; serial 0 is 1899-12-30.
UNIX_EPOCH_SERIAL = 25569
UNIX_EPOCH = datetime(1970, 1, 1)

DATE_FORMATS = (
    "%Y-%m-%d",
    "%d.%m.%Y",
    "%d/%m/%Y",
    "%m/%d/%Y",
    "%Y/%m/%d",
)

DEFAULT_TIME = "00:00"
TIME_PREFIX_RE = re.compile(r"^(\d{1,2}):(\d{2})")
CURRENCY_NOISE_RE = re.compile(r"[₴$€£\s]")
FLOAT_PREFIX_RE = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def to_cell(value: object) -> Cell:
    """Classify a raw workbook value (openpyxl, pandas or plain Python)."""
    if isinstance(value, (EmptyCell, NumberCell, TextCell, DateCell)):
        return value
    if value is None or value is pd.NaT:
        return EMPTY
    if isinstance(value, bool):
        return TextCell("TRUE" if value else "FALSE")
    if isinstance(value, pd.Timestamp):
        if pd.isna(value):
            return EMPTY
        if value.tzinfo is not None:
            value = value.tz_convert("UTC").tz_localize(None)
        return DateCell(value.to_pydatetime())
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return DateCell(value)
    if isinstance(value, date):
        return DateCell(datetime(value.year, value.month, value.day))
    if isinstance(value, time):
        return TextCell(value.strftime("%H:%M"))
    if isinstance(value, numbers.Real):
        number = float(value)
        if math.isnan(number):
            return EMPTY
        return NumberCell(number)
    text = str(value).replace("\x00", "")
    if text == "":
        return EMPTY
    return TextCell(text)


def is_falsy(cell: Cell) -> bool:
    """Blank, zero, NaN and empty-text cells count as missing."""
    if isinstance(cell, EmptyCell):
        return True
    if isinstance(cell, NumberCell):
        return cell.value == 0 or math.isnan(cell.value)
    if isinstance(cell, TextCell):
        return cell.value == ""
    return False


def format_number(value: float) -> str:
    if isinstance(value, float) and value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    return repr(value) if isinstance(value, float) else str(value)


def cell_text(cell: Cell) -> str:
    if isinstance(cell, EmptyCell):
        return ""
    if isinstance(cell, NumberCell):
        return format_number(cell.value)
    if isinstance(cell, TextCell):
        return cell.value
    return cell.value.isoformat(sep=" ")


def _serial_to_date(serial: float) -> date:
    return (UNIX_EPOCH + timedelta(days=serial - UNIX_EPOCH_SERIAL)).date()


def _text_to_date(text: str) -> date | None:
    candidate = text.strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(candidate, fmt).date()
        except ValueError:
            continue
    return None


def _cell_to_date(cell: Cell) -> date | None:
    if isinstance(cell, NumberCell):
        return _serial_to_date(cell.value)
    if isinstance(cell, DateCell):
        return cell.value.date()
    if isinstance(cell, TextCell):
        return _text_to_date(cell.value)
    return None


def _cell_to_time(cell: Cell) -> str:
    if is_falsy(cell):
        return DEFAULT_TIME
    if isinstance(cell, NumberCell):
        if 0 <= cell.value < 1:
            total_hours = cell.value * 24
            hours = math.floor(total_hours)
            minutes = math.floor(total_hours * 60) % 60
            return f"{hours:02d}:{minutes:02d}"
        return DEFAULT_TIME
    if isinstance(cell, TextCell):
        match = TIME_PREFIX_RE.match(cell.value)
        if match:
            return f"{match.group(1).zfill(2)}:{match.group(2)}"
    return DEFAULT_TIME


def parse_date_time(date_value: object, time_value: object = None) -> str | None:
    """
    Combine a date cell and an optional time cell into ``YYYY-MM-DDTHH:MM:00.000Z``.

    Wall-clock values are stamped with a UTC marker as-is; no timezone
    conversion happens. Returns ``None`` when no date can be derived.
    """
    try:
        parsed = _cell_to_date(to_cell(date_value))
    except (OverflowError, ValueError) as exc:
        logger.debug("Date value %r is out of range: %s", date_value, exc)
        return None
    if parsed is None:
        return None
    clock = _cell_to_time(to_cell(time_value))
    return f"{parsed.isoformat()}T{clock}:00.000Z"


def parse_cost(cost_value: object) -> float:
    """Signed amount from a cell; anything unparseable counts as 0."""
    cell = to_cell(cost_value)
    amount = 0.0
    if isinstance(cell, NumberCell):
        amount = cell.value
    elif isinstance(cell, TextCell):
        cleaned = CURRENCY_NOISE_RE.sub("", cell.value).replace(",", ".", 1)
        match = FLOAT_PREFIX_RE.match(cleaned)
        if match:
            amount = float(match.group(0))
    # Overflowing literals such as "1e999" parse to inf.
    return amount if math.isfinite(amount) else 0.0


def parse_timestamp(value: object) -> datetime | None:
    """Parse a stored ``date`` string into an aware UTC datetime, or None."""
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text[-1] in "Zz":
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)
