"""
Type-name lookup keys.

A rendered type such as ``const std::vector<ns::Widget>&`` is reduced to the
qualified name that has to be looked up (``std::vector``) plus the texts of
its template arguments (``ns::Widget``), which are resolved recursively.
"""

import re
from dataclasses import dataclass
from typing import FrozenSet, List, Optional, Tuple

from core.identifiers import SCOPE_SEPARATOR, split_qualified_name

BUILTIN_TYPES: FrozenSet[str] = frozenset({
    "void",
    "bool",
    "char",
    "wchar_t",
    "char8_t",
    "char16_t",
    "char32_t",
    "short",
    "int",
    "long",
    "float",
    "double",
    "signed",
    "unsigned",
    "auto",
})

# Words that decorate a type without naming it
_DECORATION_WORDS: FrozenSet[str] = frozenset({
    "const",
    "volatile",
    "typename",
    "class",
    "struct",
    "enum",
    "union",
    "public",
    "protected",
    "private",
    "virtual",
    "mutable",
    "static",
    "constexpr",
    "inline",
    "extern",
})

_IDENTIFIER_RE = re.compile(r"^~?[A-Za-z_][A-Za-z0-9_]*$")


@dataclass(frozen=True)
class TypeKey:
    """What to look up for one type mention."""

    segments: Tuple[str, ...]
    arguments: Tuple[str, ...] = ()
    is_global: bool = False

    @property
    def text(self) -> str:
        prefix = SCOPE_SEPARATOR if self.is_global else ""
        return prefix + SCOPE_SEPARATOR.join(self.segments)


def split_template_arguments(text: str) -> List[str]:
    """Split ``int, std::map<K, V>`` at top-level commas."""
    arguments: List[str] = []
    depth = 0
    current: List[str] = []
    for ch in text:
        if ch in "<([":
            depth += 1
        elif ch in ">)]" and depth > 0:
            depth -= 1
        if ch == "," and depth == 0:
            arguments.append("".join(current).strip())
            current = []
            continue
        current.append(ch)
    tail = "".join(current).strip()
    if tail:
        arguments.append(tail)
    return [a for a in arguments if a]


def _split_segment(segment: str) -> Tuple[str, List[str]]:
    """``vector<int>`` -> (``vector``, [``int``])."""
    start = segment.find("<")
    if start == -1:
        return segment.strip(), []
    end = segment.rfind(">")
    if end < start:
        return segment[:start].strip(), []
    return segment[:start].strip(), split_template_arguments(segment[start + 1:end])


def _strip_declarator_marks(text: str) -> str:
    """Remove pointer, reference, array and pack marks outside template brackets."""
    kept: List[str] = []
    depth = 0
    square = 0
    for ch in text:
        if ch == "<":
            depth += 1
        elif ch == ">" and depth > 0:
            depth -= 1
        if depth == 0:
            if ch == "[":
                square += 1
                continue
            if ch == "]" and square > 0:
                square -= 1
                continue
            if square or ch in "*&":
                kept.append(" ")
                continue
        kept.append(ch)
    return "".join(kept).replace("...", " ")


def _top_level_words(text: str) -> List[str]:
    words: List[str] = []
    depth = 0
    current: List[str] = []
    for ch in text:
        if ch == "<":
            depth += 1
        elif ch == ">" and depth > 0:
            depth -= 1
        if ch.isspace() and depth == 0:
            if current:
                words.append("".join(current))
                current = []
            continue
        current.append(ch)
    if current:
        words.append("".join(current))
    return words


def _has_top_level_paren(text: str) -> bool:
    depth = 0
    for ch in text:
        if ch == "<":
            depth += 1
        elif ch == ">" and depth > 0:
            depth -= 1
        elif ch == "(" and depth == 0:
            return True
    return False


def type_lookup_key(text: str) -> Optional[TypeKey]:
    """Reduce a rendered type to its lookup key.

    Returns:
        The key, or None for builtin types and text that does not name a
        type (function types, ``decltype`` expressions, literals).

    Example:
        >>> type_lookup_key("const ns::Box<int>&")
        TypeKey(segments=('ns', 'Box'), arguments=('int',), is_global=False)
    """
    if not text or _has_top_level_paren(text):
        return None

    words = [
        w for w in _top_level_words(_strip_declarator_marks(text.strip()))
        if w not in _DECORATION_WORDS
    ]
    if not words:
        return None
    if all(w in BUILTIN_TYPES for w in words):
        return None
    if len(words) != 1:
        return None

    name = words[0]
    is_global = name.startswith(SCOPE_SEPARATOR)
    if is_global:
        name = name[len(SCOPE_SEPARATOR):]

    segments: List[str] = []
    arguments: List[str] = []
    for raw_segment in split_qualified_name(name):
        segment, segment_arguments = _split_segment(raw_segment)
        if not _IDENTIFIER_RE.match(segment):
            return None
        segments.append(segment)
        arguments.extend(segment_arguments)

    if len(segments) == 1 and segments[0] in BUILTIN_TYPES:
        return None
    return TypeKey(segments=tuple(segments), arguments=tuple(arguments), is_global=is_global)
