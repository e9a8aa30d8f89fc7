"""
loader.py — decode an uploaded statement file into raw sheet rows

Supports: .xlsx .xlsm .xls .ods and delimited text (.csv .tsv .txt)

Public API:
    sheet = read_workbook(raw_bytes, filename="statement.xlsx")
    rows  = sheet.rows          # list of raw cell lists, header row first

The container is recognised from its magic bytes, so the filename is only a
hint. Cell values are returned as the reader produced them (numbers, strings,
datetimes, None); classification into cells happens in ``coercion``.
"""

from __future__ import annotations

import csv
import io
import zipfile
from collections import Counter
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Optional

import pandas as pd

from finance_tracker.coercion import is_falsy, to_cell
from finance_tracker.logging_setup import get_logger

logger = get_logger(__name__)

# ── Format groups ──────────────────────────────────────────────────────────────
TEXT_FORMATS  = {".csv", ".tsv", ".txt"}
OOXML_FORMATS = {".xlsx", ".xlsm"}
LEGACY_FORMATS = {".xls"}
ODS_FORMATS   = {".ods"}
WORKBOOK_FORMATS = OOXML_FORMATS | LEGACY_FORMATS | ODS_FORMATS

ZIP_MAGIC = b"PK\x03\x04"
OLE_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"
ODS_MIMETYPE = b"application/vnd.oasis.opendocument.spreadsheet"

TRANSACTION_SHEET_HINT = "transaction"


@dataclass
class LoadedSheet:
    detected_format: str
    sheet_name: str | None
    sheet_names: list[str]
    rows: list[list[object]] = field(default_factory=list)
    encoding: str | None = None
    delimiter: str | None = None
    notes: list[str] = field(default_factory=list)


# ══════════════════════════════════════════════════════════════════════════════
# FORMAT DETECTION
# ══════════════════════════════════════════════════════════════════════════════

def detect_format(data: bytes, filename: str | None = None) -> str:
    """Return one of "xlsx", "ods", "xls" or "csv"."""
    suffix = PurePath(filename).suffix.lower() if filename else ""

    if data.startswith(ZIP_MAGIC):
        try:
            with zipfile.ZipFile(io.BytesIO(data)) as archive:
                names = set(archive.namelist())
                if "mimetype" in names and archive.read("mimetype").strip() == ODS_MIMETYPE:
                    return "ods"
        except zipfile.BadZipFile as exc:
            raise ValueError(f"Corrupt workbook archive: {exc}") from exc
        if {"EncryptedPackage", "EncryptionInfo"}.issubset(names):
            raise ValueError("Workbook is password-protected")
        return "xlsx"

    if data.startswith(OLE_MAGIC):
        return "xls"

    if suffix in WORKBOOK_FORMATS:
        raise ValueError(f"File content does not look like a {suffix} workbook")
    return "csv"


def select_sheet(sheet_names: list[str]) -> str:
    """Prefer a sheet named like "Transactions"; otherwise the first one."""
    if not sheet_names:
        raise ValueError("Workbook contains no sheets")
    for name in sheet_names:
        if TRANSACTION_SHEET_HINT in name.lower():
            return name
    return sheet_names[0]


# ══════════════════════════════════════════════════════════════════════════════
# ENCODING DETECTION
# ══════════════════════════════════════════════════════════════════════════════

def _detect_encoding(raw: bytes) -> str:
    import chardet

    result = chardet.detect(raw[:200_000])
    return result.get("encoding") or "utf-8"


def _read_text_safely(raw: bytes, preferred_encoding: str) -> str:
    """
    Decode raw bytes line-by-line.

    Strategy per line:
      1. Try UTF-8
      2. Try preferred_encoding (chardet result)
      3. CP1251, the usual non-UTF-8 encoding of Ukrainian bank exports
      4. CP1252 with replace (never crashes)

    Wide encodings (UTF-16/32) cannot be split on b"\\n" and are decoded whole.
    """
    if preferred_encoding.upper().replace("-", "").startswith(("UTF16", "UTF32")):
        return raw.decode(preferred_encoding, errors="replace").lstrip("\ufeff").replace("\x00", "")

    decoded_lines: list[str] = []
    for raw_line in raw.split(b"\n"):
        decoded: str | None = None
        for enc in ("utf-8", preferred_encoding, "cp1251"):
            try:
                decoded = raw_line.decode(enc)
                break
            except (LookupError, UnicodeDecodeError):
                continue
        if decoded is None:
            decoded = raw_line.decode("cp1252", errors="replace")
        decoded_lines.append(decoded.replace("\x00", ""))
    return "\n".join(decoded_lines).lstrip("\ufeff")


# ══════════════════════════════════════════════════════════════════════════════
# DELIMITER DETECTION
# ══════════════════════════════════════════════════════════════════════════════

def _score_delimiters(sample: str) -> tuple[str, int]:
    """Best (delimiter, modal width) by column-count consistency."""
    best_delim = ","
    best_width = 0
    best_score = float("-inf")
    for delim in (",", ";", "\t", "|"):
        rows = [row for row in csv.reader(io.StringIO(sample), delimiter=delim) if any(cell.strip() for cell in row)]
        if not rows:
            continue
        widths = Counter(len(row) for row in rows)
        mode_width, mode_count = widths.most_common(1)[0]
        score = mode_width * 2.0 + (mode_count / len(rows)) * mode_width
        if mode_width == 1:
            score -= 10.0
        if score > best_score:
            best_score = score
            best_delim = delim
            best_width = mode_width
    return best_delim, best_width


def _modal_width(sample: str, delim: str) -> int:
    widths = Counter(len(row) for row in csv.reader(io.StringIO(sample), delimiter=delim) if row)
    return widths.most_common(1)[0][0] if widths else 0


def _detect_delimiter(text: str) -> str:
    """
    Infer the delimiter from sample lines.

    Candidates are scored by column-count consistency. csv.Sniffer's guess is
    kept only when it splits rows at least as wide as the best score.
    """
    sample_lines = [line for line in text.splitlines() if line.strip()][:50]
    sample = "\n".join(sample_lines[:25])
    if not sample:
        return ","

    scored, scored_width = _score_delimiters(sample)
    try:
        sniffed = csv.Sniffer().sniff(sample, delimiters=",;\t|").delimiter
    except csv.Error:
        return scored
    if sniffed != scored and _modal_width(sample, sniffed) >= scored_width:
        return sniffed
    return scored


# ══════════════════════════════════════════════════════════════════════════════
# FORMAT LOADERS
# ══════════════════════════════════════════════════════════════════════════════

def _is_skippable(value: object) -> bool:
    return is_falsy(to_cell(value))


def _trim_trailing_blank_rows(rows: list[list[object]]) -> list[list[object]]:
    """Drop trailing rows the parser would skip anyway (blank, 0 or empty text)."""
    end = len(rows)
    while end and all(_is_skippable(value) for value in rows[end - 1]):
        end -= 1
    return rows[:end]


def _load_text(data: bytes, filename: str | None) -> LoadedSheet:
    encoding = _detect_encoding(data)
    text = _read_text_safely(data, encoding)

    suffix = PurePath(filename).suffix.lower() if filename else ""
    delimiter = "\t" if suffix == ".tsv" else _detect_delimiter(text)

    width = max((len(row) for row in csv.reader(io.StringIO(text), delimiter=delimiter)), default=0)
    if width == 0:
        rows: list[list[object]] = []
    else:
        df = pd.read_csv(
            io.StringIO(text),
            header=None,
            names=list(range(width)),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=False,
            sep=delimiter,
            engine="python",
        )
        rows = [list(row) for row in df.itertuples(index=False, name=None)]

    return LoadedSheet(
        detected_format="csv",
        sheet_name=None,
        sheet_names=[],
        rows=_trim_trailing_blank_rows(rows),
        encoding=encoding,
        delimiter=delimiter,
    )


def _load_ooxml(data: bytes, sheet_name: Optional[str]) -> LoadedSheet:
    from openpyxl import load_workbook

    try:
        workbook = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    except Exception as exc:
        raise ValueError(f"Could not read workbook: {exc}") from exc

    try:
        all_sheets = list(workbook.sheetnames)
        chosen = sheet_name or select_sheet(all_sheets)
        if chosen not in all_sheets:
            raise ValueError(f"Sheet '{chosen}' not found. Available: {all_sheets}")
        rows = [list(row) for row in workbook[chosen].iter_rows(values_only=True)]
    finally:
        workbook.close()

    return LoadedSheet(
        detected_format="xlsx",
        sheet_name=chosen,
        sheet_names=all_sheets,
        rows=_trim_trailing_blank_rows(rows),
        notes=_sheet_notes(all_sheets, chosen),
    )


def _load_with_pandas(data: bytes, detected_format: str, sheet_name: Optional[str]) -> LoadedSheet:
    """Load .xls (xlrd) or .ods (odfpy) through pandas."""
    if detected_format == "xls":
        engine = "xlrd"
        try:
            import xlrd  # noqa: F401
        except ImportError:
            raise ImportError(".xls files require xlrd — run: pip install xlrd")
    else:
        engine = "odf"
        try:
            import odf  # noqa: F401
        except ImportError:
            raise ImportError(".ods files require odfpy — run: pip install odfpy")

    try:
        with pd.ExcelFile(io.BytesIO(data), engine=engine) as xf:
            all_sheets = [str(name) for name in xf.sheet_names]
            chosen = sheet_name or select_sheet(all_sheets)
            if chosen not in all_sheets:
                raise ValueError(f"Sheet '{chosen}' not found. Available: {all_sheets}")
            df = xf.parse(chosen, header=None, keep_default_na=False)
    except (ImportError, ValueError):
        raise
    except Exception as exc:
        raise ValueError(f"Could not open .{detected_format} workbook: {exc}") from exc

    rows = [list(row) for row in df.astype(object).itertuples(index=False, name=None)]
    return LoadedSheet(
        detected_format=detected_format,
        sheet_name=chosen,
        sheet_names=all_sheets,
        rows=_trim_trailing_blank_rows(rows),
        notes=_sheet_notes(all_sheets, chosen),
    )


def _sheet_notes(all_sheets: list[str], chosen: str) -> list[str]:
    if len(all_sheets) <= 1:
        return []
    others = [name for name in all_sheets if name != chosen]
    return [f"Multiple sheets found ({len(all_sheets)} total); used '{chosen}'. Ignored: {others}"]


# ══════════════════════════════════════════════════════════════════════════════
# PUBLIC API
# ══════════════════════════════════════════════════════════════════════════════

def read_workbook(
    data: bytes,
    filename: str | None = None,
    sheet_name: Optional[str] = None,
) -> LoadedSheet:
    """
    Decode statement bytes and return the rows of the chosen sheet.

    Args:
        data:       Complete file content.
        filename:   Optional original name; only used as a format hint.
        sheet_name: Explicit sheet; None = prefer a "transaction" sheet,
                    else the first sheet.

    Raises:
        ValueError   if the content cannot be decoded.
        ImportError  if an optional reader (xlrd, odfpy) is missing.
    """
    detected = detect_format(data, filename)
    logger.debug("Detected %s content (%d bytes)", detected, len(data))

    if detected == "xlsx":
        return _load_ooxml(data, sheet_name)
    if detected in {"xls", "ods"}:
        return _load_with_pandas(data, detected, sheet_name)
    return _load_text(data, filename)
