"""
Layer 1: Extraction Engine

Tree-sitter-based C++ header parser, include-set resolver and entity
extractor. Extracts namespaces, records, functions, variables, enums and
aliases with their Doxygen comments into a deduplicated symbol table.
"""

from extraction.models import (
    Declaration,
    Diagnostic,
    DocComment,
    Entity,
    FileNode,
    Parameter,
    Signature,
    SourceSpan,
    SymbolTable,
)
from extraction.parser import (
    ParseError,
    count_error_nodes,
    create_parser,
    parse_bytes,
    parse_file,
    scan_includes,
)
from extraction.comments import parse_doc_comment
from extraction.traversal import extract_declarations
from extraction.provider import AstProvider, TreeSitterProvider
from extraction.flags import infer_flags, merge_flags
from extraction.include_set import IncludeSet, resolve_include_set
from extraction.extractor import ExtractionStats, extract_symbols

__all__ = [
    # Data models
    "Declaration",
    "Diagnostic",
    "DocComment",
    "Entity",
    "FileNode",
    "Parameter",
    "Signature",
    "SourceSpan",
    "SymbolTable",
    "ExtractionStats",
    "IncludeSet",
    # Low-level parsing
    "ParseError",
    "create_parser",
    "parse_file",
    "parse_bytes",
    "count_error_nodes",
    "scan_includes",
    # Mid-level extraction
    "parse_doc_comment",
    "extract_declarations",
    "AstProvider",
    "TreeSitterProvider",
    "infer_flags",
    "merge_flags",
    # High-level orchestration
    "resolve_include_set",
    "extract_symbols",
]
