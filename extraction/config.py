"""
Configuration constants for C++ declaration extraction.

Defines the tree-sitter node type strings and the entity kind vocabulary.
"""

from typing import Set

# Entity kinds
NAMESPACE: str = "namespace"
CLASS: str = "class"
STRUCT: str = "struct"
FUNCTION: str = "function"
VARIABLE: str = "variable"
ENUM: str = "enum"
ALIAS: str = "alias"

ENTITY_KINDS: Set[str] = {NAMESPACE, CLASS, STRUCT, FUNCTION, VARIABLE, ENUM, ALIAS}

# Kinds that name a type and can be the target of a type reference
TYPE_KINDS: Set[str] = {CLASS, STRUCT, ENUM, ALIAS}

# Kinds whose members are nested under them
SCOPE_KINDS: Set[str] = {NAMESPACE, CLASS, STRUCT}

# Kinds sharing one identity within a scope; two of them with the same
# scope and name must merge or conflict.
KIND_TIERS: dict = {
    NAMESPACE: "namespace",
    CLASS: "type",
    STRUCT: "type",
    ENUM: "type",
    ALIAS: "type",
    FUNCTION: "function",
    VARIABLE: "variable",
}

# class and struct declare the same record; `class X;` then `struct X {}` is legal
RECORD_KINDS: Set[str] = {CLASS, STRUCT}

# Record node types (tree-sitter) -> entity kind
RECORD_NODE_KINDS: dict = {
    "class_specifier": CLASS,
    "struct_specifier": STRUCT,
    "union_specifier": STRUCT,
}

ENUM_NODE: str = "enum_specifier"

# Template wrapper node type
TEMPLATE_WRAPPER: str = "template_declaration"

# Namespace definition node type
NAMESPACE_NODE: str = "namespace_definition"

# Comment node type (includes //, /* */, /** */)
COMMENT_NODE: str = "comment"

# Preprocessor include directive
INCLUDE_NODE: str = "preproc_include"

# Container types whose children we scan
CONTAINER_TYPES: Set[str] = {
    "translation_unit",      # File root
    "declaration_list",      # Namespace body
}

# Wrapper types that should be treated as transparent
TRANSPARENT_WRAPPERS: Set[str] = {
    "linkage_specification",  # extern "C" { ... }
}

# Preprocessor directives that may contain code we need to traverse
PREPROCESSOR_CONTAINERS: Set[str] = {
    "preproc_ifdef",
    "preproc_ifndef",
    "preproc_if",
    "preproc_elif",
    "preproc_else",
    "preproc_elifdef",
}

# Declaration node types
DECLARATION_NODE: str = "declaration"
FIELD_DECLARATION_NODE: str = "field_declaration"
FUNCTION_DEFINITION_NODE: str = "function_definition"
ALIAS_DECLARATION_NODE: str = "alias_declaration"
TYPEDEF_NODE: str = "type_definition"
ACCESS_SPECIFIER_NODE: str = "access_specifier"

# Declarators that wrap the named declarator with a pointer/reference marker
WRAPPING_DECLARATORS: Set[str] = {
    "pointer_declarator",
    "reference_declarator",
    "init_declarator",
    "array_declarator",
    "attributed_declarator",
    "parenthesized_declarator",
}

FUNCTION_DECLARATOR: str = "function_declarator"

# Node types that can name a function in a function_declarator
FUNCTION_NAME_NODES: Set[str] = {
    "identifier",
    "field_identifier",
    "qualified_identifier",
    "destructor_name",
    "operator_name",
    "operator_cast",
}

# Declarator leaves that carry a variable or parameter name
NAME_NODES: Set[str] = {"identifier", "field_identifier"}

# Children of a function_declarator that follow the parameter list
TRAILING_QUALIFIER_NODES: Set[str] = {
    "type_qualifier",
    "ref_qualifier",
    "virtual_specifier",
    "noexcept",
    "throw_specifier",
}

# Body replacements of a function definition: `= default`, `= delete`
METHOD_CLAUSE_NODES: Set[str] = {
    "default_method_clause",
    "delete_method_clause",
    "pure_virtual_clause",
}

TEMPLATE_PARAMETER_NAME_NODES: Set[str] = {"type_identifier", "identifier"}

# Leading specifiers that end up in the qualifier list rather than the type
QUALIFIER_KEYWORDS: Set[str] = {
    "static",
    "extern",
    "inline",
    "virtual",
    "explicit",
    "constexpr",
    "consteval",
    "constinit",
    "friend",
    "mutable",
    "thread_local",
}

# Doc comment prefixes
DOC_COMMENT_PREFIXES: tuple = (
    "/**",
    "///",
    "//!",
    "/*!",
)

# C/C++ file extensions
CPP_EXTENSIONS: Set[str] = {
    ".cpp",
    ".cc",
    ".cxx",
    ".c",
    ".h",
    ".hh",
    ".hpp",
    ".hxx",
    ".inl",
    ".ipp",
}

# Extensions picked up when an include pattern names a whole directory
HEADER_EXTENSIONS: Set[str] = {".h", ".hh", ".hpp", ".hxx", ".inl", ".ipp"}

# Directories never walked during include glob expansion
SKIPPED_DIRECTORIES: Set[str] = {
    "build",
    "cmake-build-debug",
    "cmake-build-release",
    "node_modules",
    "venv",
    "__pycache__",
    "dist",
    "out",
}

# Default class member access
DEFAULT_ACCESS: dict = {
    "class_specifier": "private",
    "struct_specifier": "public",
    "union_specifier": "public",
}

# Diagnostic codes
DIAG_PARSE_ERROR: str = "parse-error"
DIAG_MERGE_CONFLICT: str = "merge-conflict"
DIAG_IMPLICIT_SCOPE: str = "implicit-scope"
DIAG_MALFORMED_COMMENT: str = "malformed-comment"
