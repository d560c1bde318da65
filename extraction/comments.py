"""
Documentation comment parsing.

Turns the raw comment text attached to a declaration into a ``DocComment``.
The grammar is small: free text paragraphs plus ``@tag`` (or ``\\tag``)
fields whose value runs until a blank line or the next tag. It is handled
by a line-oriented state machine.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from extraction.config import DOC_COMMENT_PREFIXES
from extraction.models import EMPTY_DOC, DocComment

logger = logging.getLogger(__name__)

_TAG_RE = re.compile(r"^[@\\](?P<tag>[A-Za-z]+)(?:\[(?P<direction>[^\]]*)\])?(?:\s+|$)(?P<rest>.*)$")
_END_CODE_RE = re.compile(r"^[@\\]endcode\b")

_TAG_ALIASES: Dict[str, str] = {
    "brief": "brief",
    "short": "brief",
    "details": "details",
    "description": "details",
    "desc": "details",
    "param": "param",
    "arg": "param",
    "tparam": "tparam",
    "targ": "tparam",
    "return": "return",
    "returns": "return",
    "result": "return",
    "throws": "throws",
    "throw": "throws",
    "exception": "throws",
    "see": "see",
    "sa": "see",
    "note": "note",
    "info": "note",
    "remark": "note",
    "remarks": "note",
    "warning": "warning",
    "warn": "warning",
    "attention": "warning",
    "example": "example",
    "code": "code",
    "since": "since",
    "version": "version",
    "deprecated": "deprecated",
    "book": "book",
    "tutorial": "book",
}


def is_doc_comment(comment_text: str) -> bool:
    """Check if a comment is a documentation comment.

    Args:
        comment_text: The text content of the comment.

    Returns:
        True if the comment starts with ``///``, ``/**``, ``//!`` or ``/*!``.
        Trailing member comments (``///<`` and friends) document the
        declaration before them and are not doc comments here.
    """
    stripped = comment_text.strip()
    if stripped.startswith("/**/"):
        return False
    for prefix in DOC_COMMENT_PREFIXES:
        if stripped.startswith(prefix):
            return not stripped[len(prefix):].startswith("<")
    return False


def clean_doc_comment(comment_text: str) -> str:
    """Strip comment delimiters and leading asterisks.

    Blank lines inside the comment are kept since they separate paragraphs.

    Args:
        comment_text: Raw comment text with delimiters.

    Returns:
        Cleaned comment text.
    """
    cleaned_lines: List[str] = []
    in_block = False

    for line in comment_text.split("\n"):
        stripped = line.strip()

        if not in_block and stripped.startswith("//"):
            for marker in ("///", "//!", "//"):
                if stripped.startswith(marker):
                    stripped = stripped[len(marker):]
                    break
            cleaned_lines.append(stripped.strip())
            continue

        if not in_block:
            for marker in ("/**", "/*!", "/*"):
                if stripped.startswith(marker):
                    stripped = stripped[len(marker):]
                    break
            in_block = True

        stripped = stripped.strip()
        if stripped.endswith("*/"):
            stripped = stripped[:-2].rstrip()
            in_block = False

        # Continuation '*' in multiline block comments
        if stripped.startswith("*"):
            stripped = stripped.lstrip("*").lstrip()

        cleaned_lines.append(stripped)

    while cleaned_lines and not cleaned_lines[0]:
        cleaned_lines.pop(0)
    while cleaned_lines and not cleaned_lines[-1]:
        cleaned_lines.pop()
    return "\n".join(cleaned_lines)


@dataclass
class _PendingTag:
    tag: str
    lines: List[str] = field(default_factory=list)

    @property
    def text(self) -> str:
        return " ".join(part for part in self.lines if part).strip()


@dataclass
class _DocBuilder:
    paragraphs: List[List[str]] = field(default_factory=lambda: [[]])
    brief: Optional[str] = None
    details: List[str] = field(default_factory=list)
    params: List[Tuple[str, str]] = field(default_factory=list)
    tparams: List[Tuple[str, str]] = field(default_factory=list)
    returns: Optional[str] = None
    throws: List[str] = field(default_factory=list)
    see: List[str] = field(default_factory=list)
    notes: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    examples: List[str] = field(default_factory=list)
    book: List[str] = field(default_factory=list)
    since: Optional[str] = None
    version: Optional[str] = None
    deprecated: Optional[str] = None
    issues: List[str] = field(default_factory=list)

    def add_text(self, line: str) -> None:
        self.paragraphs[-1].append(line)

    def break_paragraph(self) -> None:
        if self.paragraphs[-1]:
            self.paragraphs.append([])

    def finish_tag(self, pending: _PendingTag) -> None:
        text = pending.text
        tag = pending.tag

        if tag in ("param", "tparam"):
            name, _, description = text.partition(" ")
            if not name:
                logger.debug("Ignoring @%s without a parameter name", tag)
                self.issues.append(f"@{tag} without a parameter name")
                return
            target = self.params if tag == "param" else self.tparams
            target.append((name.rstrip(":,"), description.strip()))
            return

        # "deprecated" may legitimately carry no text
        if tag == "deprecated":
            self.deprecated = text
            return
        if not text:
            logger.debug("Ignoring @%s without a value", tag)
            if tag != "unknown":
                self.issues.append(f"@{tag} without a value")
            return

        if tag == "brief":
            self.brief = text
        elif tag == "details":
            self.details.append(text)
        elif tag == "return":
            self.returns = text
        elif tag == "throws":
            self.throws.append(text)
        elif tag == "see":
            self.see.append(text)
        elif tag == "note":
            self.notes.append(text)
        elif tag == "warning":
            self.warnings.append(text)
        elif tag == "example":
            self.examples.append(text)
        elif tag == "book":
            self.book.append(text)
        elif tag == "since":
            self.since = text
        elif tag == "version":
            self.version = text

    def build(self) -> DocComment:
        paragraphs = [" ".join(p) for p in self.paragraphs if p]
        if self.brief is not None:
            summary: Optional[str] = self.brief
            discussion = paragraphs
        else:
            summary = paragraphs[0] if paragraphs else None
            discussion = paragraphs[1:]
        return DocComment(
            summary=summary,
            discussion=tuple(discussion + self.details),
            params=tuple(self.params),
            tparams=tuple(self.tparams),
            returns=self.returns,
            throws=tuple(self.throws),
            see=tuple(self.see),
            notes=tuple(self.notes),
            warnings=tuple(self.warnings),
            examples=tuple(self.examples),
            book=tuple(self.book),
            since=self.since,
            version=self.version,
            deprecated=self.deprecated,
        )


def parse_doc_comment(raw: Optional[str], issues: Optional[List[str]] = None) -> DocComment:
    """Parse a raw doc comment into a ``DocComment``.

    Malformed or unknown tags never raise; they simply contribute nothing.

    Args:
        raw: Comment text, with or without delimiters. ``None`` means no comment.
        issues: If given, receives a message for every malformed tag.

    Returns:
        The structured comment, ``EMPTY_DOC`` when nothing was found.
    """
    if not raw or not raw.strip():
        return EMPTY_DOC

    builder = _DocBuilder()
    pending: Optional[_PendingTag] = None
    code_lines: Optional[List[str]] = None

    for line in clean_doc_comment(raw).split("\n"):
        stripped = line.strip()

        if code_lines is not None:
            if _END_CODE_RE.match(stripped):
                builder.examples.append("\n".join(code_lines).strip("\n"))
                code_lines = None
            else:
                code_lines.append(line)
            continue

        match = _TAG_RE.match(stripped)
        if match:
            if pending is not None:
                builder.finish_tag(pending)
                pending = None
            name = match.group("tag").lower()
            rest = match.group("rest").strip()
            tag = _TAG_ALIASES.get(name)
            if tag == "code":
                code_lines = [rest] if rest else []
            elif tag is None:
                logger.debug("Ignoring unknown doc tag @%s", name)
                pending = _PendingTag("unknown", [rest])
            else:
                pending = _PendingTag(tag, [rest])
            continue

        if not stripped:
            if pending is not None:
                builder.finish_tag(pending)
                pending = None
            builder.break_paragraph()
            continue

        if pending is not None:
            pending.lines.append(stripped)
        else:
            builder.add_text(stripped)

    if pending is not None:
        builder.finish_tag(pending)
    if code_lines is not None:
        logger.debug("Unterminated @code block in doc comment")
        builder.issues.append("unterminated @code block")
        builder.examples.append("\n".join(code_lines).strip("\n"))

    if issues is not None:
        issues.extend(builder.issues)
    return builder.build()
