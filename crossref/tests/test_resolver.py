"""
Unit tests for resolver.py

Tests scope-ordered type lookup, reference collection and identifier
assignment.
"""

import os
import unittest

from crossref.models import ROLE_BASE, ROLE_PARAMETER, ROLE_RETURN
from crossref.resolver import (
    assign_identifiers,
    entity_references,
    link_symbols,
    page_identifier,
    resolve_type,
)
from crossref.scope_index import build_scope_index
from extraction.extractor import extract_symbols
from extraction.include_set import IncludeSet
from extraction.models import Declaration, Parameter, Signature, SourceSpan

ROOT = os.path.abspath("/proj")


def _decl(kind, scope, name, file="a.hpp", line=1, **signature):
    return Declaration(
        kind=kind,
        scope=tuple(scope),
        name=name,
        signature=Signature(**signature),
        raw_comment=None,
        span=SourceSpan(file, line, line),
        is_definition=kind != "function",
    )


class _Provider:
    def __init__(self, batches):
        self.batches = batches

    def parse(self, file_path, flags):
        return list(self.batches.get(os.path.relpath(file_path, ROOT).replace(os.sep, "/"), ()))


def build_table(batches, navigable=("a.hpp",), parse_only=()):
    include_set = IncludeSet(root=ROOT, navigable=tuple(navigable), parse_only=tuple(parse_only))
    return extract_symbols(include_set, provider=_Provider(batches))


def _param(type_text, name=""):
    return Parameter(type_text, name)


class TestResolveType(unittest.TestCase):
    """Test innermost-first lookup."""

    def setUp(self):
        self.table = build_table({
            "a.hpp": [
                _decl("struct", (), "Item", line=1),
                _decl("namespace", (), "outer", line=2),
                _decl("struct", ("outer",), "Item", line=3),
                _decl("namespace", ("outer",), "inner", line=4),
                _decl("struct", ("outer", "inner"), "Item", line=5),
                _decl("function", ("outer",), "helper", line=6),
            ],
        })
        self.index = build_scope_index(self.table)
        self.global_item = self.table.lookup(("Item",))[0].key
        self.outer_item = self.table.lookup(("outer", "Item"))[0].key
        self.inner_item = self.table.lookup(("outer", "inner", "Item"))[0].key

    def test_innermost_scope_wins(self):
        ref = resolve_type(self.index, ("outer", "inner"), "const Item&")
        self.assertEqual(ref.target, self.inner_item)
        self.assertEqual(ref.key, "Item")
        self.assertEqual(ref.text, "const Item&")
        self.assertEqual(ref.role, ROLE_PARAMETER)

    def test_outer_scope_fallback(self):
        ref = resolve_type(self.index, ("outer",), "Item")
        self.assertEqual(ref.target, self.outer_item)
        self.assertEqual(resolve_type(self.index, (), "Item").target, self.global_item)

    def test_qualified_lookup(self):
        ref = resolve_type(self.index, ("outer", "inner"), "outer::Item")
        self.assertEqual(ref.target, self.outer_item)

    def test_global_qualifier_skips_scopes(self):
        ref = resolve_type(self.index, ("outer", "inner"), "::Item*")
        self.assertEqual(ref.target, self.global_item)

    def test_functions_are_not_types(self):
        self.assertFalse(resolve_type(self.index, ("outer",), "helper").resolved)

    def test_builtin_and_unknown(self):
        builtin = resolve_type(self.index, (), "unsigned int")
        self.assertIsNone(builtin.key)
        self.assertFalse(builtin.resolved)
        unknown = resolve_type(self.index, ("outer",), "std::string")
        self.assertEqual(unknown.key, "std::string")
        self.assertFalse(unknown.resolved)

    def test_template_arguments_resolved(self):
        ref = resolve_type(self.index, ("outer",), "std::vector<Item>", ROLE_RETURN)
        self.assertFalse(ref.resolved)
        self.assertEqual(len(ref.arguments), 1)
        self.assertEqual(ref.arguments[0].target, self.outer_item)
        self.assertEqual(ref.arguments[0].role, "template_argument")

    def test_template_parameter_stays_unresolved(self):
        ref = resolve_type(self.index, (), "Item", template_names=frozenset({"Item"}))
        self.assertFalse(ref.resolved)
        self.assertEqual(ref.key, "Item")


class TestEntityReferences(unittest.TestCase):
    """Test references collected per entity kind."""

    def setUp(self):
        self.table = build_table(
            {
                "a.hpp": [
                    _decl("namespace", (), "ns", line=1),
                    _decl("class", ("ns",), "Widget", line=2, bases=("public Base",)),
                    _decl(
                        "function", ("ns", "Widget"), "resize", line=3,
                        return_type="Size", parameters=(_param("Size", "w"), _param("int", "h")),
                    ),
                    _decl("alias", ("ns", "Widget"), "Size", line=4, underlying_type="unsigned long"),
                    _decl("variable", ("ns",), "current", line=5, underlying_type="Widget*"),
                    _decl("alias", ("ns",), "Handle", line=6, underlying_type="Widget"),
                    _decl(
                        "function", ("ns",), "largest", line=7,
                        return_type="T", parameters=(_param("T", "a"), _param("T", "b")),
                        template_parameter_names=("T",),
                    ),
                ],
                "internal/base.hpp": [_decl("class", (), "Base", file="internal/base.hpp")],
            },
            parse_only=("internal/base.hpp",),
        )
        self.index = build_scope_index(self.table)

    def _refs(self, *path):
        return entity_references(self.index, self.table.lookup(path)[0])

    def test_base_resolves_into_parse_only_header(self):
        (base,) = self._refs("ns", "Widget")
        self.assertEqual(base.role, ROLE_BASE)
        self.assertEqual(base.target, self.table.lookup(("Base",))[0].key)
        self.assertFalse(self.table[base.target].navigable)

    def test_member_signature_sees_member_types(self):
        refs = self._refs("ns", "Widget", "resize")
        size = self.table.lookup(("ns", "Widget", "Size"))[0].key
        self.assertEqual([r.role for r in refs], ["return", "parameter", "parameter"])
        self.assertEqual([r.target for r in refs], [size, size, None])
        self.assertEqual([r.position for r in refs], [None, 0, 1])

    def test_variable_and_alias(self):
        widget = self.table.lookup(("ns", "Widget"))[0].key
        (variable,) = self._refs("ns", "current")
        (alias,) = self._refs("ns", "Handle")
        self.assertEqual((variable.role, variable.target), ("variable_type", widget))
        self.assertEqual((alias.role, alias.target), ("alias_target", widget))

    def test_template_parameters_not_linked(self):
        refs = self._refs("ns", "largest")
        self.assertTrue(all(not r.resolved for r in refs))

    def test_link_symbols_keeps_only_referencing_entities(self):
        linked = link_symbols(self.table, workers=2)
        ns = self.table.lookup(("ns",))[0].key
        self.assertNotIn(ns, linked.references)
        self.assertEqual(linked.references_of(ns), ())
        self.assertEqual(
            linked.references_of(self.table.lookup(("ns", "Widget"))[0].key)[0].key, "Base"
        )
        self.assertEqual(
            dict(linked.file_identities),
            {"a.hpp": "files/a.hpp", "internal/base.hpp": "files/internal/base.hpp"},
        )


class TestIdentifiers(unittest.TestCase):
    """Test identifier, page and anchor assignment."""

    def setUp(self):
        self.table = build_table({
            "a.hpp": [
                _decl("namespace", (), "ns", line=1),
                _decl("class", ("ns",), "Widget", line=2),
                _decl("function", ("ns", "Widget"), "draw", line=3),
                _decl("enum", ("ns",), "Color", line=4, enumerators=("Red",)),
                _decl("function", ("ns",), "add", line=5, parameters=(_param("int"),)),
                _decl("function", ("ns",), "add", line=6, parameters=(_param("double"),)),
                _decl("alias", ("ns",), "Size", line=7, underlying_type="unsigned long"),
                _decl("variable", (), "counter", line=8, underlying_type="int"),
                _decl("function", (), "operator==", line=9, parameters=(_param("int"), _param("int"))),
            ],
        })
        self.identities = assign_identifiers(self.table)

    def _identity(self, *path, index=0):
        return self.identities[self.table.lookup(path)[index].key]

    def test_record_page_and_member(self):
        widget = self._identity("ns", "Widget")
        draw = self._identity("ns", "Widget", "draw")
        self.assertEqual(widget.identifier, "classes/ns/Widget")
        self.assertEqual(widget.page, "classes/ns/Widget")
        self.assertEqual(draw.identifier, "functions/ns/Widget/draw")
        self.assertEqual(draw.page, "classes/ns/Widget")
        self.assertEqual(draw.anchor, "functions.ns.Widget.draw")

    def test_overloads_share_cluster_page(self):
        first = self._identity("ns", "add", index=0)
        second = self._identity("ns", "add", index=1)
        self.assertEqual(first.identifier, "functions/ns/add")
        self.assertEqual(second.identifier, "functions/ns/add-2")
        self.assertEqual(first.page, second.page)
        self.assertEqual(second.page, "functions/ns/add")
        self.assertEqual(second.display_name, "add (2)")

    def test_members_of_namespace_and_file(self):
        self.assertEqual(self._identity("ns", "Color").page, "enums/ns/Color")
        self.assertEqual(self._identity("ns", "Size").page, "namespaces/ns")
        self.assertEqual(self._identity("counter").page, "files/a.hpp")

    def test_operator_is_quoted(self):
        self.assertEqual(self._identity("operator==").identifier, "functions/operator%3D%3D")

    def test_page_identifier_for_namespace(self):
        ns = self.table.lookup(("ns",))[0]
        self.assertEqual(page_identifier(self.table, ns), "namespaces/ns")

    def test_identifiers_are_deterministic(self):
        again = assign_identifiers(self.table)
        self.assertEqual(again, self.identities)


if __name__ == "__main__":
    unittest.main()
