from __future__ import annotations

import unittest

from finance_tracker.headers import (
    HEADER_MAPPINGS,
    duplicate_headers,
    missing_required,
    normalize_header,
    normalize_headers,
)


class NormalizeHeaderTests(unittest.TestCase):
    def test_english_headers_map_regardless_of_case_and_padding(self):
        self.assertEqual(normalize_header("Date"), "date")
        self.assertEqual(normalize_header("  STORE  "), "store")
        self.assertEqual(normalize_header("cost_"), "cost")

    def test_ukrainian_headers_map_to_canonical_fields(self):
        self.assertEqual(normalize_header("Дата"), "date")
        self.assertEqual(normalize_header("Час"), "time")
        self.assertEqual(normalize_header("Магазин"), "store")
        self.assertEqual(normalize_header("Покупка"), "purchase")
        self.assertEqual(normalize_header("Вартість"), "cost")
        self.assertEqual(normalize_header("Сума"), "cost")

    def test_variants_map_to_store_and_cost(self):
        self.assertEqual(normalize_header("Shop"), "store")
        self.assertEqual(normalize_header("Merchant"), "store")
        self.assertEqual(normalize_header("Amount"), "cost")
        self.assertEqual(normalize_header("Price"), "cost")
        self.assertEqual(normalize_header("SUM"), "cost")

    def test_unknown_header_returns_compact_form(self):
        self.assertEqual(normalize_header("Card Number"), "cardnumber")
        self.assertEqual(normalize_header("  Mcc_Code "), "mcccode")

    def test_mapping_table_is_read_only(self):
        with self.assertRaises(TypeError):
            HEADER_MAPPINGS["foo"] = "bar"


class NormalizeHeadersTests(unittest.TestCase):
    def test_builds_field_to_index_map_and_skips_blank_or_non_text_headers(self):
        header_map = normalize_headers(["Дата", None, "Магазин", 42, "", "Покупка", "Сума"])
        self.assertEqual(header_map, {"date": 0, "store": 2, "purchase": 5, "cost": 6})

    def test_later_duplicate_wins(self):
        header_map = normalize_headers(["Amount", "Date", "Cost"])
        self.assertEqual(header_map["cost"], 2)

    def test_duplicate_headers_lists_every_position(self):
        self.assertEqual(duplicate_headers(["Amount", "Date", "Cost", "date"]), {"cost": [0, 2], "date": [1, 3]})
        self.assertEqual(duplicate_headers(["Date", "Store"]), {})

    def test_missing_required_reports_in_field_order(self):
        self.assertEqual(missing_required({"date": 0, "store": 1}), ["purchase", "cost"])
        self.assertEqual(missing_required({"date": 0, "store": 1, "purchase": 2, "cost": 3}), [])


if __name__ == "__main__":
    unittest.main()
