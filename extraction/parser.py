"""
Tree-sitter parser initialization and file parsing utilities.

This module provides functions to initialize the C++ parser, parse source
files and list the ``#include`` directives of a parsed file.
"""

import logging
from dataclasses import dataclass
from typing import Iterator, List, Tuple

import tree_sitter_cpp as tscpp
from tree_sitter import Language, Node, Parser, Tree

from extraction.config import INCLUDE_NODE

# Configure logging
logger = logging.getLogger(__name__)

# Module-level language constant
CPP_LANGUAGE = Language(tscpp.language())


class ParseError(RuntimeError):
    """Raised when a file cannot be turned into declarations."""

    def __init__(self, file_path: str, reason: str):
        super().__init__(f"{file_path}: {reason}")
        self.file_path = file_path
        self.reason = reason


@dataclass(frozen=True)
class IncludeDirective:
    """One ``#include`` line.

    Attributes:
        target: The path between the quotes or angle brackets.
        is_system: True for ``<...>`` includes.
        line: 1-indexed line of the directive.
    """

    target: str
    is_system: bool
    line: int


def create_parser() -> Parser:
    """Create and configure a tree-sitter parser for C++.

    Parsers are not shared between threads; every worker creates its own.

    Returns:
        A Parser instance configured with the C++ language.
    """
    parser = Parser(CPP_LANGUAGE)
    logger.debug("Created tree-sitter C++ parser")
    return parser


def parse_bytes(source: bytes) -> Tree:
    """Parse raw bytes of C++ source code.

    Args:
        source: UTF-8 encoded bytes of C++ source code.

    Returns:
        A Tree object representing the parsed AST.

    Raises:
        TypeError: If source is not bytes.

    Example:
        >>> tree = parse_bytes(b"void foo();")
        >>> tree.root_node.type
        'translation_unit'
    """
    if not isinstance(source, bytes):
        raise TypeError(f"Source must be bytes, got {type(source).__name__}")

    parser = create_parser()
    tree = parser.parse(source)

    if tree.root_node.has_error:
        logger.debug("Parsed tree contains syntax errors")

    logger.debug("Parsed %d bytes of C++ code", len(source))
    return tree


def parse_file(file_path: str) -> Tuple[Tree, bytes]:
    """Parse a C++ source file from disk.

    Args:
        file_path: Path to the header or source file.

    Returns:
        A tuple of (Tree, source_bytes).

    Raises:
        FileNotFoundError: If the file does not exist.
        IOError: If the file cannot be read.
    """
    try:
        with open(file_path, "rb") as f:
            source_bytes = f.read()
    except FileNotFoundError:
        logger.error("File not found: %s", file_path)
        raise
    except IOError as e:
        logger.error("Error reading file %s: %s", file_path, e)
        raise

    tree = parse_bytes(source_bytes)
    logger.debug("Parsed file: %s", file_path)
    return tree, source_bytes


def iter_nodes(node: Node) -> Iterator[Node]:
    """Depth-first pre-order walk over ``node`` and its descendants."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def count_error_nodes(tree: Tree) -> int:
    """Count ERROR and missing nodes in a parsed tree."""
    if not tree.root_node.has_error:
        return 0
    return sum(1 for n in iter_nodes(tree.root_node) if n.type == "ERROR" or n.is_missing)


def first_error_line(tree: Tree) -> int:
    """1-indexed line of the first syntax error, 0 when there is none."""
    for node in iter_nodes(tree.root_node):
        if node.type == "ERROR" or node.is_missing:
            return node.start_point.row + 1
    return 0


def extract_include_directives(tree: Tree) -> List[IncludeDirective]:
    """List the ``#include`` directives of a parsed file in source order.

    Includes whose path is a macro are skipped since they cannot be followed
    without a preprocessor.
    """
    directives: List[IncludeDirective] = []
    for node in iter_nodes(tree.root_node):
        if node.type != INCLUDE_NODE:
            continue
        path_node = node.child_by_field_name("path")
        if path_node is None or not path_node.text:
            continue
        raw = path_node.text.decode("utf-8", errors="replace").strip()
        if len(raw) >= 2 and raw[0] == '"' and raw[-1] == '"':
            directives.append(IncludeDirective(raw[1:-1], False, node.start_point.row + 1))
        elif len(raw) >= 2 and raw[0] == "<" and raw[-1] == ">":
            directives.append(IncludeDirective(raw[1:-1], True, node.start_point.row + 1))
        else:
            logger.debug("Skipping computed include %r at line %d", raw, node.start_point.row + 1)
    return directives


def scan_includes(file_path: str) -> List[IncludeDirective]:
    """Parse ``file_path`` and return its ``#include`` directives.

    Raises:
        FileNotFoundError: If the file does not exist.
        IOError: If the file cannot be read.
    """
    tree, _ = parse_file(file_path)
    return extract_include_directives(tree)
