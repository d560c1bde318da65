"""Tests for compile-flag inference and merging."""

import json
import os
import tempfile
import unittest
from pathlib import Path

from core.docs_config import ConfigurationError
from extraction.flags import (
    command_arguments,
    include_directories,
    infer_flags,
    load_compile_commands,
    merge_flags,
    normalize_flags,
)


def test_command_arguments_prefers_argument_list() -> None:
    assert command_arguments({"arguments": ["c++", "-Iinc"], "command": "ignored"}) == ["c++", "-Iinc"]
    assert command_arguments({"command": 'c++ -DNAME="a b" -c x.cpp'}) == ["c++", "-DNAME=a b", "-c", "x.cpp"]
    assert command_arguments({}) == []


def test_merge_flags_explicit_wins() -> None:
    merged = merge_flags(
        ["-DMODE=1", "-I/a", "-std=c++14", "-UOLD"],
        ["-DMODE=2", "-I/a", "-I/b", "-std=c++20", "-DOLD"],
    )
    assert merged == ["-I/a", "-DMODE=2", "-I/b", "-std=c++20", "-DOLD"]


def test_merge_flags_keeps_include_pairs() -> None:
    merged = merge_flags(["-include", "/p/pre.h"], ["-include", "/p/pre.h", "-include", "/p/other.h"])
    assert merged == ["-include", "/p/pre.h", "-include", "/p/other.h"]


def test_include_directories_by_stage() -> None:
    search = include_directories(["-I/a", "-isystem/sys", "-iquote/q", "-DX", "-include", "/p/pre.h"])
    assert search.angled == ("/a",)
    assert search.system == ("/sys",)
    assert search.quote == ("/q",)


class TestNormalizeFlags(unittest.TestCase):
    def test_keeps_header_relevant_flags(self):
        flags = normalize_flags(
            [
                "-I", "include",
                "-isystem", "/usr/local/include",
                "-iquote./quoted",
                "-D", "FOO",
                "-DBAR=1",
                "-DEMPTY=\"\"",
                "-UBAZ",
                "-std=c++17",
                "-include", "config.h",
                "-Wall", "-O2", "-c", "-o", "out.o", "src/main.cpp",
            ],
            "/build",
        )
        self.assertEqual(
            flags,
            [
                "-I/build/include",
                "-isystem/usr/local/include",
                "-iquote/build/quoted",
                "-DFOO",
                "-DBAR=1",
                "-DEMPTY=",
                "-UBAZ",
                "-std=c++17",
                "-include", "/build/config.h",
            ],
        )

    def test_dangling_flag_is_dropped(self):
        self.assertEqual(normalize_flags(["-I"], "/build"), [])


class TestCompileCommands(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name).resolve()
        (self.root / "build").mkdir()
        (self.root / "src").mkdir()
        (self.root / "src" / "main.cpp").write_text("int main() {}\n", encoding="utf-8")

    def tearDown(self):
        self._tmp.cleanup()

    def _write_database(self, payload):
        path = self.root / "build" / "compile_commands.json"
        path.write_text(json.dumps(payload), encoding="utf-8")

    def test_missing_database(self):
        with self.assertRaises(ConfigurationError):
            load_compile_commands(str(self.root / "build"))

    def test_malformed_database(self):
        (self.root / "build" / "compile_commands.json").write_text("{not json", encoding="utf-8")
        with self.assertRaises(ConfigurationError):
            load_compile_commands(str(self.root / "build"))

    def test_database_must_be_a_list(self):
        self._write_database({"file": "x.cpp"})
        with self.assertRaises(ConfigurationError):
            load_compile_commands(str(self.root / "build"))

    def test_infer_flags_for_source(self):
        build_dir = str(self.root / "build")
        self._write_database([
            {
                "directory": build_dir,
                "file": str(self.root / "src" / "other.cpp"),
                "arguments": ["c++", "-DOTHER"],
            },
            {
                "directory": build_dir,
                "file": "../src/main.cpp",
                "command": "c++ -I../include -DMODE=2 -std=c++20 -c ../src/main.cpp",
            },
        ])

        flags = infer_flags(str(self.root), "build", "src/main.cpp")

        self.assertEqual(
            flags,
            [
                "-I" + os.path.join(str(self.root), "include"),
                "-DMODE=2",
                "-std=c++20",
                "-I" + str(self.root),
            ],
        )

    def test_infer_flags_expands_response_files(self):
        build_dir = self.root / "build"
        (build_dir / "flags.rsp").write_text("-DFROM_RSP -Igen\n", encoding="utf-8")
        self._write_database([
            {
                "directory": str(build_dir),
                "file": str(self.root / "src" / "main.cpp"),
                "arguments": ["c++", "@flags.rsp", "-c", "main.cpp"],
            },
        ])

        flags = infer_flags(str(self.root), str(build_dir), str(self.root / "src" / "main.cpp"))

        self.assertEqual(flags[:2], ["-DFROM_RSP", "-I" + str(build_dir / "gen")])

    def test_infer_flags_without_entry(self):
        self._write_database([])
        with self.assertRaises(ConfigurationError):
            infer_flags(str(self.root), "build", "src/main.cpp")


if __name__ == "__main__":
    unittest.main()
