"""Tests for documentation config loading and validation."""

from __future__ import annotations

import json
import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from core.docs_config import (
    ConfigurationError,
    find_config_file,
    load_docs_config,
    resolve_workers,
    tree_url_for,
)


class TestDocsConfig(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _write(self, name: str, text: str) -> str:
        path = self.root / name
        path.write_text(text, encoding="utf-8")
        return str(path)

    def test_load_valid_yaml(self) -> None:
        path = self._write(
            "docs.yml",
            """
project:
  name: Widgets
  version: 1.2.0
docs:
  include: ["api/*.hpp"]
  exclude: ["api/detail/**"]
  tree: https://example.com/widgets/blob/main/
analysis:
  compile-args: ["-DWIDGETS_DOCS"]
  tolerate-syntax-errors: true
  workers: 3
cmake:
  infer-args-from: src/widget.cpp
""",
        )
        config = load_docs_config(path)
        self.assertEqual(config.input_dir, os.path.abspath(str(self.root)))
        self.assertEqual(config.project.name, "Widgets")
        self.assertEqual(config.project.version, "1.2.0")
        self.assertEqual(config.docs.include, ("api/*.hpp",))
        self.assertEqual(config.docs.exclude, ("api/detail/**",))
        self.assertEqual(config.docs.tree, "https://example.com/widgets/blob/main")
        self.assertEqual(config.analysis.compile_args, ("-DWIDGETS_DOCS",))
        self.assertTrue(config.analysis.tolerate_syntax_errors)
        self.assertEqual(config.analysis.workers, 3)
        self.assertIsNotNone(config.cmake)
        self.assertEqual(config.cmake.build_dir, "build")
        self.assertEqual(config.cmake.infer_args_from, "src/widget.cpp")

    def test_load_json(self) -> None:
        path = self._write(
            "docs.json",
            json.dumps({"project": {"name": "J"}, "docs": {"include": "include"}}),
        )
        config = load_docs_config(path)
        self.assertEqual(config.docs.include, ("include",))
        self.assertIsNone(config.cmake)

    def test_missing_include_raises(self) -> None:
        path = self._write("docs.yml", "project: {name: X}\ndocs: {include: []}\n")
        with self.assertRaises(ConfigurationError):
            load_docs_config(path)

    def test_missing_project_name_raises(self) -> None:
        path = self._write("docs.yml", "docs: {include: [a.hpp]}\n")
        with self.assertRaises(ConfigurationError):
            load_docs_config(path)

    def test_invalid_yaml_raises(self) -> None:
        path = self._write("docs.yml", "project: [unclosed\n")
        with self.assertRaises(ConfigurationError):
            load_docs_config(path)

    def test_cmake_requires_source(self) -> None:
        path = self._write(
            "docs.yml",
            "project: {name: X}\ndocs: {include: [a.hpp]}\ncmake: {build-dir: out}\n",
        )
        with self.assertRaises(ConfigurationError):
            load_docs_config(path)

    def test_bad_workers_raises(self) -> None:
        path = self._write(
            "docs.yml",
            "project: {name: X}\ndocs: {include: [a.hpp]}\nanalysis: {workers: 0}\n",
        )
        with self.assertRaises(ConfigurationError):
            load_docs_config(path)

    def test_find_config_file_prefers_yml(self) -> None:
        self._write("docs.json", "{}")
        self._write("docs.yml", "project: {name: X}\n")
        self.assertTrue(find_config_file(str(self.root)).endswith("docs.yml"))

    def test_find_config_file_missing_raises(self) -> None:
        with self.assertRaises(ConfigurationError):
            find_config_file(str(self.root))

    def test_resolve_workers_precedence(self) -> None:
        path = self._write(
            "docs.yml",
            "project: {name: X}\ndocs: {include: [a.hpp]}\nanalysis: {workers: 2}\n",
        )
        config = load_docs_config(path)
        with mock.patch.dict(os.environ, {"CXXDOCS_WORKERS": "5"}):
            self.assertEqual(resolve_workers(config), 5)
        with mock.patch.dict(os.environ, {"CXXDOCS_WORKERS": ""}):
            self.assertEqual(resolve_workers(config), 2)


def test_tree_url_for_appends_path() -> None:
    assert tree_url_for("https://host/repo/blob/main", "api/w.hpp") == "https://host/repo/blob/main/api/w.hpp"
    assert tree_url_for("https://host/{path}?plain=1", "api/w.hpp") == "https://host/api/w.hpp?plain=1"
    assert tree_url_for(None, "api/w.hpp") is None


if __name__ == "__main__":
    unittest.main()
