"""Tests for build/phase logging context."""

import logging

from core.structured_logging import (
    _BuildContextFilter,
    get_build_id,
    get_phase,
    phase_scope,
    set_build_id,
)


def test_set_build_id_generates_value() -> None:
    value = set_build_id()
    assert len(value) == 12
    assert get_build_id() == value


def test_set_build_id_explicit() -> None:
    assert set_build_id("docs-1") == "docs-1"
    assert get_build_id() == "docs-1"


def test_phase_scope_sets_and_resets_phase() -> None:
    assert get_phase() == "-"
    with phase_scope("extract"):
        assert get_phase() == "extract"
        with phase_scope("link"):
            assert get_phase() == "link"
        assert get_phase() == "extract"
    assert get_phase() == "-"


def test_filter_injects_context() -> None:
    set_build_id("ctx-build")
    record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)
    with phase_scope("assemble"):
        assert _BuildContextFilter().filter(record)
    assert record.build_id == "ctx-build"
    assert record.phase == "assemble"
