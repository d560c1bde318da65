"""Shared symbol tables for the assembly tests."""

import os

import pytest

from crossref.resolver import link_symbols
from extraction.extractor import extract_symbols
from extraction.include_set import IncludeSet
from extraction.models import Declaration, Parameter, Signature, SourceSpan

ROOT = os.path.abspath("/widgets")


def decl(kind, scope, name, line, file="api/widget.hpp", access=None, comment=None, **signature):
    return Declaration(
        kind=kind,
        scope=tuple(scope),
        name=name,
        signature=Signature(**signature),
        raw_comment=comment,
        span=SourceSpan(file, line, line),
        access=access,
        is_definition=kind != "function",
    )


WIDGET_HEADER = [
    decl("namespace", (), "ui", 1),
    decl("class", ("ui",), "Widget", 3, comment="/// A widget.", bases=("public Base",)),
    decl(
        "function", ("ui", "Widget"), "create", 5, access="public",
        return_type="Widget", qualifiers=("static",),
    ),
    decl(
        "function", ("ui", "Widget"), "draw", 6, access="public",
        comment="/// Draws.\n/// @param scale zoom factor",
        return_type="void", parameters=(Parameter("int", "scale"),), qualifiers=("const",),
    ),
    decl("function", ("ui", "Widget"), "resize", 7, access="protected", return_type="void"),
    decl("variable", ("ui", "Widget"), "size_", 8, access="private", underlying_type="int"),
    decl("variable", ("ui", "Widget"), "id", 9, access="public", underlying_type="int"),
    decl("struct", ("ui", "Widget"), "Detail", 10, access="private"),
    decl("variable", ("ui", "Widget", "Detail"), "x", 11, access="public", underlying_type="int"),
    decl("enum", ("ui",), "Color", 13, enumerators=("Red", "Green"), qualifiers=("class",)),
    decl(
        "function", ("ui",), "add", 14, comment="/// Adds.",
        return_type="int", parameters=(Parameter("int", "a"), Parameter("int", "b")),
    ),
    decl(
        "function", ("ui",), "add", 15,
        return_type="double", parameters=(Parameter("double", "a"), Parameter("double", "b")),
    ),
    decl("variable", (), "counter", 17, underlying_type="int"),
    decl("namespace", ("ui",), "detail", 18),
]

BASE_HEADER = [
    decl("class", (), "Base", 1, file="internal/base.hpp", comment="/// Base class."),
    decl("function", (), "helper", 2, file="internal/base.hpp", return_type="void"),
]


class _Provider:
    def __init__(self, batches):
        self.batches = batches

    def parse(self, file_path, flags):
        rel = os.path.relpath(file_path, ROOT).replace(os.sep, "/")
        return list(self.batches.get(rel, ()))


def build_linked(batches, navigable, parse_only=(), includes=None, tree=None):
    include_set = IncludeSet(
        root=ROOT,
        navigable=tuple(navigable),
        parse_only=tuple(parse_only),
        includes=includes or {},
    )
    table = extract_symbols(include_set, provider=_Provider(batches), tree=tree)
    return link_symbols(table)


@pytest.fixture
def linked():
    """``api/widget.hpp`` documented, ``internal/base.hpp`` parse-only."""
    return build_linked(
        {"api/widget.hpp": WIDGET_HEADER, "internal/base.hpp": BASE_HEADER},
        navigable=("api/widget.hpp",),
        parse_only=("internal/base.hpp",),
        includes={"api/widget.hpp": ("internal/base.hpp",)},
        tree="https://example.com/widgets/blob/main",
    )
