"""Tests for run artifact writer."""

import json
import tempfile
import unittest
from pathlib import Path

from core.run_artifacts import summarize_diagnostics, write_run_report


class TestRunArtifacts(unittest.TestCase):
    def test_write_run_report(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = write_run_report(
                report={"status": "success", "value": 1},
                build_id="build-123",
                output_dir=tmpdir,
            )
            self.assertTrue(Path(path).is_file())
            self.assertEqual(Path(path).name, "diagnostics.json")
            payload = json.loads(Path(path).read_text(encoding="utf-8"))
            self.assertEqual(payload["build_id"], "build-123")
            self.assertEqual(payload["status"], "success")
            self.assertEqual(payload["value"], 1)
            self.assertIn("timestamp_utc", payload)

    def test_write_run_report_custom_name(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = write_run_report({}, "b", str(Path(tmpdir) / "nested"), file_name="run.json")
            self.assertEqual(Path(path).name, "run.json")
            self.assertTrue(Path(path).is_file())

    def test_summarize_diagnostics(self) -> None:
        summary = summarize_diagnostics(
            [
                {"severity": "warning", "code": "parse-error"},
                {"severity": "warning", "code": "parse-error"},
                {"severity": "warning", "code": "merge-conflict"},
            ]
        )
        self.assertEqual(summary["total"], 3)
        self.assertEqual(summary["by_severity"], {"warning": 3})
        self.assertEqual(summary["by_code"], {"parse-error": 2, "merge-conflict": 1})


if __name__ == "__main__":
    unittest.main()
