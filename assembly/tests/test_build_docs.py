"""End-to-end documentation builds through ``run_docs``."""

import json
import tempfile
import unittest
from pathlib import Path

import pytest

from core.docs_config import ConfigurationError, load_docs_config
from run_docs import build_docs, main, prepare_output_dir

WIDGET_HPP = """#pragma once
#include "internal/base.hpp"

namespace ui {

/// A widget.
class Widget : public Base {
public:
    /// Draws it.
    /// @param scale zoom factor
    void draw(int scale) const;

private:
    int size_;
};

}  // namespace ui
"""

BASE_HPP = """#pragma once

/// Shared base.
class Base {};
"""

CONFIG = """project:
  name: Widgets
docs:
  include: ["api/*.hpp", "internal/*.hpp"]
  exclude: ["internal/**"]
  tree: https://example.com/widgets/blob/main
analysis:
  workers: 2
"""


class TestBuildDocs(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name).resolve() / "widgets"
        self.out = Path(self._tmp.name).resolve() / "site"
        self._write("api/widget.hpp", WIDGET_HPP)
        self._write("internal/base.hpp", BASE_HPP)
        self._write("docs.yml", CONFIG)

    def tearDown(self):
        self._tmp.cleanup()

    def _write(self, rel, text):
        path = self.root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")

    def _build(self, **kwargs):
        config = load_docs_config(str(self.root / "docs.yml"))
        return build_docs(config, str(self.out), **kwargs)

    def _json(self, *parts):
        return json.loads(self.out.joinpath(*parts).read_text(encoding="utf-8"))

    def test_excluded_base_is_linked_but_not_listed(self):
        report = self._build(build_id="e2e")

        self.assertEqual(report["diagnostics"], 0)
        self.assertEqual(report["extraction"]["files_processed"], 2)

        html = (self.out / "classes" / "ui" / "Widget" / "content.html").read_text(encoding="utf-8")
        self.assertIn('<a href="classes/Base">public Base</a>', html)
        self.assertIn("Draws it.", html)
        self.assertNotIn("size_", html)
        self.assertTrue((self.out / "classes" / "Base" / "metadata.json").is_file())

        nav = self._json("nav.json")
        self.assertEqual(
            nav["files"],
            [
                {
                    "name": "api",
                    "kind": "directory",
                    "identifier": None,
                    "children": [
                        {
                            "name": "widget.hpp",
                            "kind": "file",
                            "identifier": "files/api/widget.hpp",
                            "children": [],
                        }
                    ],
                }
            ],
        )
        self.assertEqual([n["name"] for n in nav["entities"]], ["ui"])
        self.assertEqual(self._json("functions.json"), ["ui::Widget::draw"])

        metadata = self._json("classes", "ui", "Widget", "metadata.json")
        self.assertEqual(metadata["source_url"], "https://example.com/widgets/blob/main/api/widget.hpp")
        self.assertEqual(self._json("diagnostics.json")["build_id"], "e2e")

    def test_existing_output_requires_overwrite(self):
        self.out.mkdir(parents=True)
        (self.out / "stale.txt").write_text("old", encoding="utf-8")

        with self.assertRaises(ConfigurationError):
            self._build()
        self.assertTrue((self.out / "stale.txt").exists())

        self._build(overwrite=True)
        self.assertFalse((self.out / "stale.txt").exists())
        self.assertTrue((self.out / "nav.json").is_file())

    def test_syntax_error_is_reported_not_fatal(self):
        self._write("api/broken.hpp", "class Broken {\n  void f(\n};\n")

        report = self._build()

        self.assertEqual(report["diagnostics"], 1)
        codes = [d["code"] for d in self._json("diagnostics.json")["diagnostics"]]
        self.assertEqual(codes, ["parse-error"])
        self.assertTrue((self.out / "classes" / "ui" / "Widget" / "content.html").is_file())


def test_prepare_output_dir_accepts_empty_directory(tmp_path) -> None:
    target = tmp_path / "site"
    target.mkdir()
    prepare_output_dir(str(target), overwrite=False)
    assert target.is_dir()


def test_main_exits_on_missing_config(tmp_path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["--input", str(tmp_path), "--output", str(tmp_path / "site")])
    assert excinfo.value.code == 1
    assert not (tmp_path / "site").exists()
