"""
headers.py — map spreadsheet column headers onto canonical transaction fields.

Headers are compared case-, whitespace- and underscore-insensitively, so
"Date", "  DATE  ", "Дата" and "date_" all land on ``date``.
"""

from __future__ import annotations

import re
from types import MappingProxyType
from typing import Iterable

CANONICAL_FIELDS = ("date", "time", "store", "purchase", "cost")
REQUIRED_FIELDS = ("date", "store", "purchase", "cost")

HEADER_MAPPINGS = MappingProxyType({
    # English
    "date": "date",
    "time": "time",
    "store": "store",
    "purchase": "purchase",
    "cost": "cost",
    # Ukrainian
    "дата": "date",
    "час": "time",
    "магазин": "store",
    "покупка": "purchase",
    "вартість": "cost",
    # Variations
    "shop": "store",
    "merchant": "store",
    "amount": "cost",
    "price": "cost",
    "sum": "cost",
    "сума": "cost",
})

_COMPACT_RE = re.compile(r"[_\s]+")


def normalize_header(header: str) -> str:
    compact = _COMPACT_RE.sub("", header.lower().strip())
    return HEADER_MAPPINGS.get(compact, compact)


def normalize_headers(headers: Iterable[object]) -> dict[str, int]:
    """
    Build ``{field: column_index}`` from a header row.

    Non-string and empty headers are skipped. When two columns normalise to
    the same name the later column wins; see ``duplicate_headers``.
    """
    header_map: dict[str, int] = {}
    for index, header in enumerate(headers):
        if not header or not isinstance(header, str):
            continue
        header_map[normalize_header(header)] = index
    return header_map


def duplicate_headers(headers: Iterable[object]) -> dict[str, list[int]]:
    seen: dict[str, list[int]] = {}
    for index, header in enumerate(headers):
        if not header or not isinstance(header, str):
            continue
        seen.setdefault(normalize_header(header), []).append(index)
    return {name: indices for name, indices in seen.items() if len(indices) > 1}


def missing_required(header_map: dict[str, int]) -> list[str]:
    return [name for name in REQUIRED_FIELDS if name not in header_map]
