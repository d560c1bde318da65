"""
Unit tests for traversal.py

Tests AST traversal, declaration extraction, comment association and scope
qualification.
"""

import unittest

from extraction.parser import parse_bytes
from extraction.traversal import (
    extract_declarations,
    get_preceding_comments,
    render_type_text,
    split_declared_name,
)


def _extract(source: bytes, path: str = "api/test.hpp"):
    tree = parse_bytes(source)
    return extract_declarations(tree, source, path)


def _find(declarations, name, kind=None):
    for declaration in declarations:
        if declaration.name == name and (kind is None or declaration.kind == kind):
            return declaration
    raise AssertionError(f"{kind or 'declaration'} {name} not found")


class TestHelpers(unittest.TestCase):
    """Test text helpers."""

    def test_render_type_text(self):
        self.assertEqual(render_type_text("const  std::vector< int > &"), "const std::vector<int>&")
        self.assertEqual(render_type_text("std::map<int,std::string>"), "std::map<int, std::string>")
        self.assertEqual(render_type_text("char * const"), "char* const")

    def test_split_declared_name(self):
        self.assertEqual(split_declared_name("draw", ("ns",)), (("ns",), "draw"))
        self.assertEqual(split_declared_name("Widget::draw", ("ns",)), (("ns", "Widget"), "draw"))
        self.assertEqual(split_declared_name("::g", ("ns",)), ((), "g"))
        self.assertEqual(split_declared_name("Box<T>::get", ()), (("Box",), "get"))


class TestCommentExtraction(unittest.TestCase):
    """Test extracting comments from AST nodes."""

    def test_adjacent_doc_comments(self):
        source = b"/// First\n/// Second\nvoid foo();\n"
        tree = parse_bytes(source)
        node = tree.root_node.named_children[-1]
        comment = get_preceding_comments(node, source)
        self.assertIn("First", comment)
        self.assertIn("Second", comment)

    def test_blank_line_breaks_attachment(self):
        source = b"/// Detached\n\nvoid foo();\n"
        tree = parse_bytes(source)
        node = tree.root_node.named_children[-1]
        self.assertIsNone(get_preceding_comments(node, source))

    def test_regular_comment_ignored(self):
        source = b"// plain\nvoid foo();\n"
        tree = parse_bytes(source)
        node = tree.root_node.named_children[-1]
        self.assertIsNone(get_preceding_comments(node, source))

    def test_trailing_member_comment_not_attached_to_next(self):
        source = b"struct Point {\n    int x; ///< The x coordinate.\n    int y;\n};\n"
        declarations = _extract(source)
        self.assertIsNone(_find(declarations, "y").raw_comment)
        self.assertIsNone(_find(declarations, "x").raw_comment)

    def test_trailing_comment_then_doc_block(self):
        source = b"struct Point {\n    int x; // x\n    /// The y coordinate.\n    int y;\n};\n"
        y = _find(_extract(source), "y")
        self.assertIn("The y coordinate.", y.raw_comment)
        self.assertNotIn("// x", y.raw_comment)


class TestClassExtraction(unittest.TestCase):
    """Test records and their members."""

    SOURCE = b"""namespace ns {
/// A widget.
class Widget : public Base {
public:
    /// Draws it.
    void draw() const;
    static Widget create(int size = 3);
private:
    int size_;
};
}
"""

    def setUp(self):
        self.declarations = _extract(self.SOURCE)

    def test_namespace(self):
        ns = _find(self.declarations, "ns", "namespace")
        self.assertEqual(ns.scope, ())
        self.assertTrue(ns.is_definition)

    def test_class(self):
        widget = _find(self.declarations, "Widget", "class")
        self.assertEqual(widget.scope, ("ns",))
        self.assertEqual(widget.signature.bases, ("public Base",))
        self.assertIn("A widget.", widget.raw_comment)
        self.assertTrue(widget.is_definition)
        self.assertEqual(widget.span.file, "api/test.hpp")
        self.assertEqual(widget.span.start_line, 3)
        self.assertEqual(widget.span.end_line, 10)

    def test_method(self):
        draw = _find(self.declarations, "draw", "function")
        self.assertEqual(draw.scope, ("ns", "Widget"))
        self.assertEqual(draw.access, "public")
        self.assertEqual(draw.signature.return_type, "void")
        self.assertEqual(draw.signature.qualifiers, ("const",))
        self.assertEqual(draw.signature.parameters, ())
        self.assertIn("Draws it.", draw.raw_comment)
        self.assertFalse(draw.is_definition)

    def test_static_method_with_default(self):
        create = _find(self.declarations, "create", "function")
        self.assertEqual(create.signature.qualifiers, ("static",))
        self.assertEqual(create.signature.return_type, "Widget")
        parameter = create.signature.parameters[0]
        self.assertEqual((parameter.type, parameter.name, parameter.default), ("int", "size", "3"))
        self.assertIsNone(create.raw_comment)

    def test_private_field(self):
        field = _find(self.declarations, "size_", "variable")
        self.assertEqual(field.access, "private")
        self.assertEqual(field.signature.underlying_type, "int")

    def test_struct_default_access(self):
        declarations = _extract(b"struct Point { int x; int y; };\n")
        self.assertEqual(_find(declarations, "Point").kind, "struct")
        self.assertEqual(_find(declarations, "x").access, "public")
        self.assertEqual(_find(declarations, "y").scope, ("Point",))

    def test_forward_declaration(self):
        declarations = _extract(b"namespace ns { struct Point; }\n")
        point = _find(declarations, "Point", "struct")
        self.assertFalse(point.is_definition)
        self.assertEqual(point.scope, ("ns",))


class TestFunctionExtraction(unittest.TestCase):
    """Test free functions."""

    def test_free_function_parameters(self):
        declarations = _extract(b"int add(int a, int b);\ndouble add(double, double);\n")
        adds = [d for d in declarations if d.name == "add"]
        self.assertEqual(len(adds), 2)
        self.assertEqual([p.name for p in adds[0].signature.parameters], ["a", "b"])
        self.assertEqual([p.type for p in adds[1].signature.parameters], ["double", "double"])
        self.assertEqual(adds[1].signature.return_type, "double")

    def test_reference_and_pointer_parameters(self):
        declarations = _extract(b"const char* name(const std::string& key, int* out);\n")
        fn = _find(declarations, "name", "function")
        self.assertEqual(fn.signature.return_type, "const char*")
        self.assertEqual(
            [(p.type, p.name) for p in fn.signature.parameters],
            [("const std::string&", "key"), ("int*", "out")],
        )

    def test_void_parameter_list(self):
        fn = _find(_extract(b"void reset(void);\n"), "reset")
        self.assertEqual(fn.signature.parameters, ())

    def test_out_of_line_definition(self):
        declarations = _extract(b"namespace ns {\nvoid Widget::draw() const {}\n}\n")
        draw = _find(declarations, "draw", "function")
        self.assertEqual(draw.scope, ("ns", "Widget"))
        self.assertIsNone(draw.access)
        self.assertTrue(draw.is_definition)

    def test_template_function(self):
        source = b"/// Largest.\ntemplate <typename T>\nT largest(T a, T b);\n"
        fn = _find(_extract(source), "largest", "function")
        self.assertEqual(fn.signature.template_parameters, ("typename T",))
        self.assertEqual(fn.signature.template_parameter_names, ("T",))
        self.assertEqual(fn.span.start_line, 2)
        self.assertIn("Largest.", fn.raw_comment)

    def test_out_of_line_member_of_class_template(self):
        source = (
            b"template <typename T>\n"
            b"class Box {\n"
            b"public:\n"
            b"    T get() const;\n"
            b"};\n"
            b"\n"
            b"template <typename T>\n"
            b"T Box<T>::get() const { return value; }\n"
        )
        gets = [d for d in _extract(source) if d.name == "get"]
        self.assertEqual(len(gets), 2)
        self.assertEqual(gets[1].scope, ("Box",))
        self.assertEqual(gets[1].signature.template_parameters, ())
        self.assertEqual(gets[1].signature.template_parameter_names, ())
        self.assertTrue(gets[1].is_definition)

    def test_extern_c_block(self):
        fn = _find(_extract(b'extern "C" {\nvoid c_api(int);\n}\n'), "c_api")
        self.assertEqual(fn.scope, ())


class TestOtherDeclarations(unittest.TestCase):
    """Test enums, aliases, variables and namespaces."""

    def test_scoped_enum(self):
        color = _find(_extract(b"enum class Color : std::uint8_t { Red, Green };\n"), "Color", "enum")
        self.assertEqual(color.signature.enumerators, ("Red", "Green"))
        self.assertEqual(color.signature.qualifiers, ("class",))
        self.assertEqual(color.signature.underlying_type, "std::uint8_t")

    def test_using_alias(self):
        alias = _find(_extract(b"namespace ns { using Size = unsigned long; }\n"), "Size", "alias")
        self.assertEqual(alias.scope, ("ns",))
        self.assertEqual(alias.signature.underlying_type, "unsigned long")

    def test_typedef_anonymous_struct(self):
        declarations = _extract(b"typedef struct { int x; } Point;\n")
        point = _find(declarations, "Point", "struct")
        self.assertTrue(point.is_definition)
        self.assertEqual(_find(declarations, "x").scope, ("Point",))
        self.assertFalse(any(d.kind == "alias" for d in declarations))

    def test_function_pointer_typedef(self):
        alias = _find(_extract(b"typedef void (*Callback)(int);\n"), "Callback", "alias")
        self.assertIn("(*)", alias.signature.underlying_type)

    def test_extern_variable(self):
        var = _find(_extract(b"extern int counter;\n"), "counter", "variable")
        self.assertFalse(var.is_definition)
        self.assertEqual(var.signature.qualifiers, ("extern",))

    def test_nested_namespace(self):
        declarations = _extract(b"namespace a::b { void f(); }\n")
        self.assertEqual(_find(declarations, "a", "namespace").scope, ())
        self.assertEqual(_find(declarations, "b", "namespace").scope, ("a",))
        self.assertEqual(_find(declarations, "f").scope, ("a", "b"))

    def test_anonymous_namespace(self):
        declarations = _extract(b"namespace { void hidden(); }\n")
        self.assertEqual(_find(declarations, "hidden").scope, ("(anonymous)",))

    def test_template_class(self):
        box = _find(_extract(b"template <typename T>\nclass Box { T value; };\n"), "Box", "class")
        self.assertEqual(box.signature.template_parameter_names, ("T",))
        self.assertEqual(box.span.start_line, 1)


if __name__ == "__main__":
    unittest.main()
