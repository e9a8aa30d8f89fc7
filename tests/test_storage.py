from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path

from finance_tracker.models import Transaction
from finance_tracker.storage import STORAGE_KEY, TransactionStore

TRANSACTIONS = [
    Transaction("2-abc", "2023-12-01T10:30:00.000Z", "10:30", "АТБ", "Продукти", -150.5),
    Transaction("3-abc", "2023-12-02T16:30:00.000Z", "", "Зарплата", "Зарплата грудень", 15000.0),
]


class TransactionStoreTests(unittest.TestCase):
    def setUp(self):
        self._tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmpdir.cleanup)
        self.path = Path(self._tmpdir.name) / "nested" / "transactions.json"
        self.store = TransactionStore(self.path)

    def test_missing_file_loads_empty(self):
        self.assertEqual(self.store.load(), [])

    def test_save_then_load_round_trips(self):
        self.store.save(TRANSACTIONS)
        self.assertEqual(self.store.load(), TRANSACTIONS)
        payload = json.loads(self.path.read_text(encoding="utf-8"))
        self.assertEqual(payload[STORAGE_KEY][0]["store"], "АТБ")
        self.assertFalse(self.path.with_name("transactions.json.tmp").exists())

    def test_save_replaces_previous_list(self):
        self.store.save(TRANSACTIONS)
        self.store.save(TRANSACTIONS[:1])
        self.assertEqual(len(self.store.load()), 1)

    def test_corrupt_file_loads_empty_with_warning(self):
        self.path.parent.mkdir(parents=True)
        self.path.write_text("{not json", encoding="utf-8")
        with self.assertLogs("finance_tracker.storage", level="WARNING") as logs:
            self.assertEqual(self.store.load(), [])
        self.assertIn("Ignoring unreadable store", logs.output[0])

    def test_malformed_records_load_empty(self):
        self.path.parent.mkdir(parents=True)
        self.path.write_text(json.dumps({STORAGE_KEY: [{"id": "1", "cost": "lots"}]}), encoding="utf-8")
        with self.assertLogs("finance_tracker.storage", level="WARNING"):
            self.assertEqual(self.store.load(), [])

    def test_other_keys_survive_save_and_clear(self):
        self.path.parent.mkdir(parents=True)
        self.path.write_text(json.dumps({"settings": {"theme": "dark"}}), encoding="utf-8")
        self.store.save(TRANSACTIONS)
        self.store.clear()
        self.assertEqual(json.loads(self.path.read_text(encoding="utf-8")), {"settings": {"theme": "dark"}})

    def test_clear_removes_file_when_nothing_else_is_stored(self):
        self.store.save(TRANSACTIONS)
        self.store.clear()
        self.assertFalse(self.path.exists())
        self.assertEqual(self.store.load(), [])

    def test_clear_on_missing_store_is_a_no_op(self):
        self.store.clear()
        self.assertFalse(self.path.exists())

    def test_save_failure_propagates(self):
        blocker = Path(self._tmpdir.name) / "blocker"
        blocker.write_text("file, not a directory", encoding="utf-8")
        store = TransactionStore(blocker / "transactions.json")
        with self.assertRaises(OSError):
            store.save(TRANSACTIONS)

    def test_custom_key(self):
        other = TransactionStore(self.path, key="archive")
        other.save(TRANSACTIONS)
        self.assertEqual(self.store.load(), [])
        self.assertEqual(other.load(), TRANSACTIONS)


if __name__ == "__main__":
    unittest.main()
