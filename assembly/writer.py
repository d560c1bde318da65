"""
Site writer.

Layout of the output directory::

    <page identifier>/metadata.json
    <page identifier>/content.html
    functions.json
    nav.json
    diagnostics.json
"""

import json
import logging
import os
from typing import Any

from assembly.content import render_content_html
from assembly.models import SiteModel
from core.run_artifacts import summarize_diagnostics, write_run_report

logger = logging.getLogger(__name__)

METADATA_FILE = "metadata.json"
CONTENT_FILE = "content.html"
FUNCTIONS_FILE = "functions.json"
NAV_FILE = "nav.json"


def _write_json(path: str, payload: Any) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, ensure_ascii=False)


def write_site(site: SiteModel, output_dir: str, build_id: str = "") -> str:
    """Serialize ``site`` below ``output_dir``.

    Returns:
        Path of the diagnostics report.
    """
    os.makedirs(output_dir, exist_ok=True)

    for page in site.pages:
        page_dir = os.path.join(output_dir, *page.identifier.split("/"))
        os.makedirs(page_dir, exist_ok=True)
        _write_json(os.path.join(page_dir, METADATA_FILE), page.metadata.to_dict())
        with open(os.path.join(page_dir, CONTENT_FILE), "w", encoding="utf-8") as f:
            f.write(render_content_html(page))

    _write_json(os.path.join(output_dir, FUNCTIONS_FILE), list(site.function_index))
    _write_json(os.path.join(output_dir, NAV_FILE), site.navigation())

    diagnostics = [dict(d) for d in site.diagnostics]
    report = {
        "project": site.project,
        "pages": len(site.pages),
        "summary": summarize_diagnostics(diagnostics),
        "diagnostics": diagnostics,
    }
    path = write_run_report(report, build_id, output_dir)
    logger.info("Wrote %d page(s) to %s", len(site.pages), output_dir)
    return path
