"""
AST provider: turns one header into a flat list of declarations.

The extractor only depends on the ``AstProvider`` protocol, so any object
with a matching ``parse`` method can stand in for the tree-sitter one.
"""

import logging
import os
import re
from typing import List, Protocol, Sequence, Set

from extraction.models import Declaration
from extraction.parser import ParseError, count_error_nodes, first_error_line, parse_bytes
from extraction.traversal import extract_declarations

logger = logging.getLogger(__name__)

# `#define API` or `#define API __attribute__((visibility("default")))`
_DEFINE_RE = re.compile(
    rb"^[ \t]*#[ \t]*define[ \t]+(?P<name>[A-Za-z_]\w*)(?:[ \t]+(?P<value>[^\r\n]*))?[ \t]*\r?$",
    re.MULTILINE,
)
_ATTRIBUTE_VALUE_RE = re.compile(r"^(?:__attribute__\s*\(\(.*\)\)|__declspec\s*\(.*\)|\[\[.*\]\])$")


class AstProvider(Protocol):
    """Anything that can parse a file into declarations."""

    def parse(self, file_path: str, flags: Sequence[str]) -> List[Declaration]:
        ...


def _is_annotation(value: str) -> bool:
    value = value.strip()
    return not value or bool(_ATTRIBUTE_VALUE_RE.match(value))


def annotation_macros(source_bytes: bytes, flags: Sequence[str]) -> Set[str]:
    """Macros that expand to nothing or to a bare attribute.

    These are the export/visibility macros (``API void f();``,
    ``class API Widget``) that tree-sitter cannot parse without a
    preprocessor. Definitions come from ``-D`` flags and from the file's own
    ``#define`` lines; a ``-U`` flag removes a name.
    """
    names: Set[str] = set()
    for match in _DEFINE_RE.finditer(source_bytes):
        value = (match.group("value") or b"").decode("utf-8", errors="replace")
        if _is_annotation(value):
            names.add(match.group("name").decode("utf-8"))

    args = list(flags)
    i = 0
    while i < len(args):
        flag = args[i]
        if flag in ("-D", "-U") and i + 1 < len(args):
            flag = flag + args[i + 1]
            i += 1
        i += 1
        if flag.startswith("-U"):
            names.discard(flag[2:])
            continue
        if not flag.startswith("-D"):
            continue
        name, separator, value = flag[2:].partition("=")
        if separator and _is_annotation(value):
            names.add(name)
    return names


def blank_macros(source_bytes: bytes, names: Set[str]) -> bytes:
    """Overwrite uses of ``names`` with spaces outside preprocessor lines.

    Byte offsets and rows are unchanged, so nodes of the blanked parse line up
    with the original source.
    """
    if not names:
        return source_bytes
    pattern = re.compile(
        rb"\b(?:" + b"|".join(re.escape(n.encode("utf-8")) for n in sorted(names)) + rb")\b"
    )
    lines: List[bytes] = []
    continued = False
    for line in source_bytes.splitlines(keepends=True):
        directive = continued or line.lstrip().startswith(b"#")
        if not directive:
            line = pattern.sub(lambda m: b" " * len(m.group(0)), line)
        continued = directive and line.rstrip(b"\r\n").endswith(b"\\")
        lines.append(line)
    return b"".join(lines)


class TreeSitterProvider:
    """Default AST provider built on tree-sitter-cpp.

    Tree-sitter parses headers without preprocessing. ``flags`` supply the
    ``-D`` definitions of annotation macros, which are blanked before parsing
    together with the ones the header defines itself.

    Args:
        root: Project root; spans are reported relative to it.
        tolerate_syntax_errors: Extract what tree-sitter recovered instead of
            raising ``ParseError`` on syntax errors.
    """

    def __init__(self, root: str, tolerate_syntax_errors: bool = False):
        self.root = os.path.abspath(root)
        self.tolerate_syntax_errors = tolerate_syntax_errors

    def relative_path(self, file_path: str) -> str:
        abs_path = os.path.abspath(file_path)
        try:
            rel = os.path.relpath(abs_path, self.root)
        except ValueError:
            logger.warning("Cannot compute relative path for %s from %s", abs_path, self.root)
            return abs_path.replace(os.sep, "/")
        if rel.startswith(".."):
            return abs_path.replace(os.sep, "/")
        return rel.replace(os.sep, "/")

    def parse(self, file_path: str, flags: Sequence[str]) -> List[Declaration]:
        """Parse ``file_path`` and extract its declarations.

        Raises:
            ParseError: If the file is unreadable, not UTF-8, or has syntax
                errors while ``tolerate_syntax_errors`` is off.
        """
        relative_path = self.relative_path(file_path)
        try:
            with open(file_path, "rb") as f:
                source_bytes = f.read()
        except OSError as e:
            raise ParseError(relative_path, f"cannot read file: {e}") from e

        try:
            source_bytes.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ParseError(relative_path, f"not valid UTF-8: {e}") from e

        macros = annotation_macros(source_bytes, flags)
        if macros:
            logger.debug("Blanking macros in %s: %s", relative_path, ", ".join(sorted(macros)))
        logger.debug("Parsing %s with %d flag(s)", relative_path, len(flags))
        tree = parse_bytes(blank_macros(source_bytes, macros))

        if tree.root_node.has_error:
            error_count = count_error_nodes(tree)
            line = first_error_line(tree)
            if not self.tolerate_syntax_errors:
                raise ParseError(
                    relative_path,
                    f"syntax error at line {line} ({error_count} error nodes)",
                )
            logger.warning(
                "File %s contains syntax errors (%d error nodes), extracting what was recovered",
                relative_path,
                error_count,
            )

        # Comments and names are read from the original text
        declarations = extract_declarations(tree, source_bytes, relative_path)
        logger.info("Extracted %d declarations from %s", len(declarations), relative_path)
        return declarations
