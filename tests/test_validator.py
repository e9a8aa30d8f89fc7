from __future__ import annotations

import unittest

from finance_tracker.models import Transaction
from finance_tracker.validator import validate_transactions


def make(**overrides) -> Transaction:
    fields = {
        "id": "1",
        "date": "2023-12-01T10:30:00.000Z",
        "time": "10:30",
        "store": "АТБ",
        "purchase": "Продукти",
        "cost": -150.5,
    }
    fields.update(overrides)
    return Transaction(**fields)


class ValidateTransactionsTests(unittest.TestCase):
    def test_clean_transactions_are_all_valid(self):
        summary = validate_transactions([make(), make(id="2", cost=100.0)])
        self.assertEqual(summary.total_rows, 2)
        self.assertEqual(summary.valid_rows, 2)
        self.assertEqual(summary.errors, [])
        self.assertEqual(summary.warnings, [])

    def test_checks_are_independent(self):
        summary = validate_transactions([make(store="", cost=0.0)])
        self.assertEqual(summary.errors, ["Transaction 1: Empty store name"])
        self.assertEqual(summary.warnings, ["Transaction 1: Zero cost amount"])
        self.assertEqual(summary.valid_rows, 0)
        self.assertEqual(summary.total_rows, 1)

    def test_whitespace_only_text_is_empty(self):
        summary = validate_transactions([make(purchase="   ")])
        self.assertEqual(summary.errors, ["Transaction 1: Empty purchase description"])

    def test_invalid_date_is_an_error(self):
        summary = validate_transactions([make(), make(id="2", date="yesterday-ish")])
        self.assertEqual(summary.errors, ["Transaction 2: Invalid date"])
        self.assertEqual(summary.valid_rows, 1)

    def test_one_transaction_can_carry_several_errors(self):
        summary = validate_transactions([make(store="", purchase="", date="")])
        self.assertEqual(len(summary.errors), 3)
        self.assertEqual(summary.valid_rows, 0)

    def test_zero_cost_warning_does_not_invalidate(self):
        summary = validate_transactions([make(cost=0.0)])
        self.assertEqual(summary.valid_rows, 1)

    def test_plain_records_are_accepted(self):
        summary = validate_transactions([{"store": "ATB", "purchase": None, "cost": 5, "date": "2023-12-01"}])
        self.assertEqual(summary.errors, ["Transaction 1: Empty purchase description"])

    def test_empty_list(self):
        summary = validate_transactions([])
        self.assertEqual(summary.to_dict(), {"total_rows": 0, "valid_rows": 0, "errors": [], "warnings": []})


if __name__ == "__main__":
    unittest.main()
