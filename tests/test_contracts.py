from __future__ import annotations

import unittest
from pathlib import Path

from finance_tracker.contracts import CONTRACT_VERSIONS, build_contract, build_run_summary, wrap_payload


class ContractTests(unittest.TestCase):
    def test_wrapped_payload_carries_contract_and_run_summary(self):
        run_summary = build_run_summary(
            command="import",
            input_path=Path("statement.xlsx"),
            errors=["Row 3: Could not parse date"],
            warnings=[],
            metrics={"transactions": 2},
        )
        payload = wrap_payload("finance_tracker.import", {"result": {}}, run_summary)
        self.assertEqual(payload["contract"], {"name": "finance_tracker.import", "version": CONTRACT_VERSIONS["finance_tracker.import"]})
        self.assertEqual(payload["schema_version"], payload["contract"]["version"])
        self.assertEqual(payload["run_summary"]["tool"], "finance-tracker")
        self.assertEqual(payload["run_summary"]["input_file"], "statement.xlsx")
        self.assertEqual(payload["run_summary"]["errors_count"], 1)
        self.assertEqual(payload["run_summary"]["warnings_count"], 0)
        self.assertTrue(payload["run_summary"]["generated_at"].endswith("Z"))

    def test_unknown_contract_name(self):
        with self.assertRaises(KeyError):
            wrap_payload("finance_tracker.nope", {}, {})

    def test_every_command_contract_is_versioned(self):
        for name in ("import", "validate", "summary", "list", "export"):
            with self.subTest(name=name):
                self.assertEqual(build_contract(f"finance_tracker.{name}")["version"], "1.0.0")


if __name__ == "__main__":
    unittest.main()
