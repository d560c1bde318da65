"""Output identifier contract shared by the linking and assembly layers.

Every documented entity gets an identifier of the form
``<category>/<scope segment>/.../<name>`` where each segment is
percent-quoted. Overloaded functions append ``-<n>`` for the n-th member
(n >= 2) of their overload group. The identifier doubles as the relative
page path of the entity in the generated site.
"""

from __future__ import annotations

import re
from typing import Iterable, NotRequired, TypedDict
from urllib.parse import quote, unquote

IDENTIFIER_SEPARATOR = "/"
SCOPE_SEPARATOR = "::"
ANCHOR_SEPARATOR = "."
ANONYMOUS_SEGMENT = "(anonymous)"
FILES_CATEGORY = "files"

KIND_CATEGORIES: dict[str, str] = {
    "namespace": "namespaces",
    "class": "classes",
    "struct": "structs",
    "function": "functions",
    "variable": "variables",
    "enum": "enums",
    "alias": "aliases",
}
_CATEGORY_KINDS = {category: kind for kind, category in KIND_CATEGORIES.items()}

# ``~`` is kept for destructors, everything else that is not an identifier
# character is escaped so operators survive in a path segment.
_SAFE_CHARS = "~"

_WHITESPACE_RE = re.compile(r"\s+")
_SCOPE_SEPARATOR_RE = re.compile(r"\s*::\s*")
_DESTRUCTOR_SPACING_RE = re.compile(r"(^|::)\s*~\s*")
_OVERLOAD_SUFFIX_RE = re.compile(r"^(?P<name>.*)-(?P<index>[2-9]|[1-9][0-9]+)$")


class ParsedIdentifier(TypedDict):
    """Parsed identifier payload."""

    category: str
    scope: list[str]
    name: str
    overload_index: NotRequired[int]


def normalize_cpp_name(name: str) -> str:
    """Normalize C++ names into a canonical form.

    Collapses whitespace and spacing around ``::`` so the same name spelled
    slightly differently by two declarations maps to the same identity.
    """
    normalized = name.strip()
    normalized = _SCOPE_SEPARATOR_RE.sub("::", normalized)
    normalized = _DESTRUCTOR_SPACING_RE.sub(r"\1~", normalized)
    normalized = _WHITESPACE_RE.sub(" ", normalized)
    return normalized.strip()


def qualified_name(scope: Iterable[str], name: str) -> str:
    """Join scope segments and a name with ``::``."""
    return SCOPE_SEPARATOR.join([*scope, name])


def split_qualified_name(name: str) -> list[str]:
    """Split ``a::b<c::d>::e`` into ``["a", "b<c::d>", "e"]``.

    Separators nested inside template brackets do not split.
    """
    parts: list[str] = []
    depth = 0
    current: list[str] = []
    i = 0
    while i < len(name):
        ch = name[i]
        if ch == "<":
            depth += 1
        elif ch == ">" and depth > 0:
            depth -= 1
        if depth == 0 and name.startswith(SCOPE_SEPARATOR, i):
            parts.append("".join(current).strip())
            current = []
            i += len(SCOPE_SEPARATOR)
            continue
        current.append(ch)
        i += 1
    parts.append("".join(current).strip())
    return parts


def quote_segment(segment: str) -> str:
    """Percent-quote one path segment of an identifier."""
    return quote(segment or ANONYMOUS_SEGMENT, safe=_SAFE_CHARS)


def category_for_kind(kind: str) -> str:
    """Map an entity kind to its identifier category."""
    try:
        return KIND_CATEGORIES[kind]
    except KeyError:
        raise ValueError(f"Unknown entity kind: {kind}") from None


def build_identifier(
    kind: str,
    scope: Iterable[str],
    name: str,
    overload_index: int = 1,
) -> str:
    """Build the stable output identifier of an entity.

    Args:
        kind: Entity kind (``class``, ``function``, ...).
        scope: Qualified scope segments, root to leaf.
        name: Entity name.
        overload_index: 1-based position inside the overload group.

    Returns:
        Identifier such as ``functions/ns/add-2``.
    """
    if overload_index < 1:
        raise ValueError(f"overload_index must be >= 1, got {overload_index}")
    segments = [quote_segment(normalize_cpp_name(s)) for s in scope]
    leaf = quote_segment(normalize_cpp_name(name))
    if overload_index > 1:
        leaf = f"{leaf}-{overload_index}"
    return IDENTIFIER_SEPARATOR.join([category_for_kind(kind), *segments, leaf])


def file_identifier(path: str) -> str:
    """Identifier of the page documenting a header file."""
    parts = [quote_segment(p) for p in path.replace("\\", "/").split("/") if p]
    return IDENTIFIER_SEPARATOR.join([FILES_CATEGORY, *parts])


def anchor_for(identifier: str) -> str:
    """In-page anchor for an identifier."""
    return identifier.replace(IDENTIFIER_SEPARATOR, ANCHOR_SEPARATOR)


def display_name(name: str, overload_index: int = 1) -> str:
    """Human readable name, ``add (2)`` for the second overload."""
    if overload_index > 1:
        return f"{name} ({overload_index})"
    return name


def parse_identifier(identifier: str) -> ParsedIdentifier:
    """Parse an entity identifier back into its components.

    Raises:
        ValueError: If the identifier has no known category or no name.
    """
    parts = identifier.split(IDENTIFIER_SEPARATOR)
    if len(parts) < 2 or parts[0] not in _CATEGORY_KINDS:
        raise ValueError(f"Malformed identifier: {identifier}")

    leaf = parts[-1]
    payload = ParsedIdentifier(
        category=parts[0],
        scope=[unquote(p) for p in parts[1:-1]],
        name=unquote(leaf),
    )
    if parts[0] == KIND_CATEGORIES["function"]:
        match = _OVERLOAD_SUFFIX_RE.match(leaf)
        if match:
            payload["name"] = unquote(match.group("name"))
            payload["overload_index"] = int(match.group("index"))
    return payload
