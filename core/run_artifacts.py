"""Run artifact helpers for build reporting."""

from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from typing import Any

DIAGNOSTICS_REPORT_NAME = "diagnostics.json"


def write_run_report(
    report: dict[str, Any],
    build_id: str,
    output_dir: str,
    file_name: str = DIAGNOSTICS_REPORT_NAME,
) -> str:
    """Write a JSON build report and return its path."""
    os.makedirs(output_dir, exist_ok=True)
    payload = dict(report)
    payload.setdefault("build_id", build_id)
    payload.setdefault("timestamp_utc", datetime.now(timezone.utc).isoformat())
    path = os.path.join(output_dir, file_name)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, sort_keys=True)
    return path


def summarize_diagnostics(diagnostics: list[dict[str, Any]]) -> dict[str, Any]:
    """Count diagnostics per severity and code for the report header."""
    by_severity: dict[str, int] = {}
    by_code: dict[str, int] = {}
    for item in diagnostics:
        severity = str(item.get("severity", "warning"))
        code = str(item.get("code", "unknown"))
        by_severity[severity] = by_severity.get(severity, 0) + 1
        by_code[code] = by_code.get(code, 0) + 1
    return {
        "total": len(diagnostics),
        "by_severity": by_severity,
        "by_code": by_code,
    }
