"""JSON-file persistence for imported transactions."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable

from finance_tracker.logging_setup import get_logger
from finance_tracker.models import Transaction

logger = get_logger(__name__)

STORAGE_KEY = "database-parser-transactions"


class TransactionStore:
    """
    Save, load and clear one transaction list under a fixed key.

    A missing or corrupt file loads as an empty list; a failed save raises.
    """

    def __init__(self, path: str | Path, key: str = STORAGE_KEY) -> None:
        self.path = Path(path).expanduser()
        self.key = key

    def __repr__(self) -> str:
        return f"TransactionStore({str(self.path)!r})"

    def _read_payload(self) -> dict:
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable store %s: %s", self.path, exc)
            return {}
        if not isinstance(payload, dict):
            logger.warning("Ignoring store %s: root is %s, not an object", self.path, type(payload).__name__)
            return {}
        return payload

    def save(self, transactions: Iterable[Transaction]) -> None:
        payload = self._read_payload()
        payload[self.key] = [transaction.to_dict() for transaction in transactions]
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        tmp_path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
        tmp_path.replace(self.path)
        logger.debug("Saved %d transactions to %s", len(payload[self.key]), self.path)

    def load(self) -> list[Transaction]:
        records = self._read_payload().get(self.key)
        if records is None:
            return []
        if not isinstance(records, list):
            logger.warning("Ignoring stored %r: expected a list, got %s", self.key, type(records).__name__)
            return []
        try:
            return [Transaction.from_dict(record) for record in records]
        except (TypeError, ValueError, AttributeError) as exc:
            logger.warning("Ignoring corrupt stored transactions in %s: %s", self.path, exc)
            return []

    def clear(self) -> None:
        payload = self._read_payload()
        if self.key not in payload:
            return
        del payload[self.key]
        if payload:
            self.path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
        else:
            self.path.unlink(missing_ok=True)
