"""
High-level orchestrator for symbol extraction.

Parses every header of an include set (in parallel), then folds the
declaration batches into one canonical, deduplicated entity arena
(sequentially) and freezes it into a ``SymbolTable``.
"""

import logging
import os
import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Sequence, Tuple

from core.docs_config import ConfigurationError, tree_url_for
from core.identifiers import qualified_name
from extraction.comments import parse_doc_comment
from extraction.config import (
    DIAG_IMPLICIT_SCOPE,
    DIAG_MALFORMED_COMMENT,
    DIAG_MERGE_CONFLICT,
    DIAG_PARSE_ERROR,
    FUNCTION,
    KIND_TIERS,
    NAMESPACE,
    RECORD_KINDS,
    SCOPE_KINDS,
)
from extraction.include_set import IncludeSet
from extraction.models import (
    EMPTY_DOC,
    Declaration,
    Diagnostic,
    DocComment,
    Entity,
    FileNode,
    Parameter,
    Signature,
    SourceSpan,
    SymbolTable,
    freeze_names,
)
from extraction.parser import ParseError
from extraction.provider import AstProvider, TreeSitterProvider
from extraction.traversal import render_type_text

logger = logging.getLogger(__name__)

_METHOD_QUALIFIERS = ("const", "volatile", "&", "&&")
_TEMPLATE_ARGS_RE = re.compile(r"<[^<>]*>")
_TRAILING_NAME_RE = re.compile(r"^(?P<type>.*[\s*&.])[A-Za-z_]\w*$")


@dataclass
class FileBatch:
    """Declarations parsed from one file, or the error that stopped it."""

    path: str
    declarations: List[Declaration]
    error: Optional[ParseError] = None


class ExtractionStats:
    """Statistics for an extraction operation."""

    def __init__(self):
        self.files_processed = 0
        self.files_failed = 0
        self.declarations_seen = 0
        self.entities_extracted = 0
        self.merge_conflicts = 0

    def to_dict(self) -> Dict[str, int]:
        """Convert stats to dictionary."""
        return {
            "files_processed": self.files_processed,
            "files_failed": self.files_failed,
            "declarations_seen": self.declarations_seen,
            "entities_extracted": self.entities_extracted,
            "merge_conflicts": self.merge_conflicts,
        }

    def __str__(self) -> str:
        """String representation of stats."""
        return (
            f"ExtractionStats(processed={self.files_processed}, "
            f"failed={self.files_failed}, declarations={self.declarations_seen}, "
            f"entities={self.entities_extracted}, conflicts={self.merge_conflicts})"
        )


def _top_level_text(type_text: str) -> str:
    """Type text with template argument lists removed."""
    previous = None
    text = type_text
    while previous != text:
        previous = text
        text = _TEMPLATE_ARGS_RE.sub("", text)
    return text


def normalize_parameter_type(type_text: str) -> str:
    """Canonical spelling of a parameter type for signature comparison.

    Whitespace is collapsed and top-level ``const`` on by-value parameters is
    dropped, so ``const int``, ``int const`` and ``int`` compare equal, as do
    ``char* const`` and ``char*``.
    """
    text = render_type_text(type_text)
    top = _top_level_text(text)
    if top.endswith("*const") or top.endswith("* const"):
        return text[: -len("const")].rstrip()
    if "*" in top or "&" in top:
        return text
    tokens = text.split(" ")
    if tokens and tokens[0] == "const":
        tokens = tokens[1:]
    if tokens and tokens[-1] == "const":
        tokens = tokens[:-1]
    return " ".join(tokens)


def _template_parameter_kind(text: str) -> str:
    """``typename T = int`` -> ``typename``, ``std::size_t N`` -> ``std::size_t``."""
    head = render_type_text(text.split("=", 1)[0])
    if head.startswith("template"):
        return "template"
    for keyword in ("typename", "class"):
        if head == keyword or head.startswith(keyword + " ") or head.startswith(keyword + "..."):
            return "typename..." if "..." in head else "typename"
    match = _TRAILING_NAME_RE.match(head)
    return match.group("type").rstrip() if match else head


def normalize_signature_key(signature: Signature) -> str:
    """Key two function declarations must share to be the same function.

    Parameter names and defaults are ignored, ``(void)`` equals ``()``, and
    method ``const``/``&``/``&&`` qualifiers are significant. Templates are
    prefixed with their parameter kinds, and template parameter names are
    replaced by their position so ``T`` and ``U`` spellings compare equal.

    Example:
        >>> normalize_signature_key(Signature(parameters=(Parameter("const int", "a"),)))
        '(int)'
    """
    params = [normalize_parameter_type(p.type) for p in signature.parameters]
    if params == ["void"]:
        params = []
    for position, name in enumerate(signature.template_parameter_names):
        pattern = re.compile(r"\b" + re.escape(name) + r"\b")
        params = [pattern.sub(f"${position}", p) for p in params]
    method = [q for q in signature.qualifiers if q in _METHOD_QUALIFIERS]
    key = "(" + ",".join(params) + ")"
    if signature.template_parameters:
        kinds = [_template_parameter_kind(t) for t in signature.template_parameters]
        key = "template<" + ",".join(kinds) + ">" + key
    if method:
        key += " " + " ".join(method)
    return key


@dataclass
class _Draft:
    """Mutable entity under construction during the merge."""

    kind: str
    scope: Tuple[str, ...]
    name: str
    signature: Signature
    doc: DocComment
    source_span: SourceSpan
    spans: List[SourceSpan]
    access: Optional[str]
    defined: bool
    navigable: bool
    signature_key: str = ""
    group_key: Optional[str] = None
    overload_index: int = 1
    implicit: bool = False

    @property
    def path(self) -> Tuple[str, ...]:
        return self.scope + (self.name,)


def _merge_signature(draft: _Draft, declaration: Declaration) -> Signature:
    old, new = draft.signature, declaration.signature
    if draft.kind != FUNCTION:
        if declaration.is_definition and not draft.defined:
            return new
        return old

    # Functions keep their first signature, filling in what it left out
    parameters = tuple(
        Parameter(
            type=o.type,
            name=o.name or n.name,
            default=o.default if o.default is not None else n.default,
        )
        for o, n in zip(old.parameters, new.parameters)
    )
    qualifiers = old.qualifiers + tuple(q for q in new.qualifiers if q not in old.qualifiers)
    return replace(
        old,
        parameters=parameters,
        qualifiers=qualifiers,
        return_type=old.return_type or new.return_type,
        template_parameters=old.template_parameters or new.template_parameters,
        template_parameter_names=old.template_parameter_names or new.template_parameter_names,
    )


@dataclass
class _Merger:
    """Single-writer fold of declaration batches into entity drafts."""

    drafts: List[_Draft] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)
    stats: ExtractionStats = field(default_factory=ExtractionStats)
    _by_identity: Dict[Tuple, int] = field(default_factory=dict)
    _group_sizes: Dict[Tuple[str, ...], int] = field(default_factory=dict)
    # (path, span, surviving draft) of each declaration dropped on conflict
    _dropped: List[Tuple[Tuple[str, ...], SourceSpan, int]] = field(default_factory=list)

    def _dropped_owner(self, declaration: Declaration) -> Optional[Tuple[str, ...]]:
        """Path of a dropped declaration that ``declaration`` is a member of."""
        for path, span, survivor in self._dropped:
            if declaration.scope[: len(path)] != path:
                continue
            inside = (
                declaration.span.file == span.file
                and span.start_line <= declaration.span.start_line <= span.end_line
            )
            if inside or self.drafts[survivor].kind not in SCOPE_KINDS:
                return path
        return None

    def add(self, declaration: Declaration, navigable: bool) -> None:
        self.stats.declarations_seen += 1

        owner = self._dropped_owner(declaration)
        if owner is not None:
            message = (
                f"{declaration.qualified_name} at {declaration.span.file}:{declaration.span.start_line} "
                f"dropped with the conflicting declaration of {'::'.join(owner)}"
            )
            logger.warning("Merge conflict: %s", message)
            self.diagnostics.append(
                Diagnostic(
                    severity="warning",
                    code=DIAG_MERGE_CONFLICT,
                    message=message,
                    file=declaration.span.file,
                )
            )
            return

        tier = KIND_TIERS[declaration.kind]
        path = declaration.scope + (declaration.name,)
        signature_key = (
            normalize_signature_key(declaration.signature) if declaration.kind == FUNCTION else ""
        )
        identity = (tier, path, signature_key)

        issues: List[str] = []
        doc = parse_doc_comment(declaration.raw_comment, issues)
        for issue in issues:
            self.diagnostics.append(
                Diagnostic(
                    severity="warning",
                    code=DIAG_MALFORMED_COMMENT,
                    message=f"{declaration.qualified_name}: {issue}",
                    file=declaration.span.file,
                )
            )

        existing = self._by_identity.get(identity)
        if existing is None:
            self._create(declaration, doc, navigable, identity, signature_key)
            return

        draft = self.drafts[existing]
        if not self._compatible(draft.kind, declaration.kind):
            self.stats.merge_conflicts += 1
            message = (
                f"{declaration.qualified_name} declared as {declaration.kind} at "
                f"{declaration.span.file}:{declaration.span.start_line} conflicts with "
                f"{draft.kind} at {draft.source_span.file}:{draft.source_span.start_line}"
            )
            logger.warning("Merge conflict: %s", message)
            self.diagnostics.append(
                Diagnostic(
                    severity="warning",
                    code=DIAG_MERGE_CONFLICT,
                    message=message,
                    file=declaration.span.file,
                )
            )
            self._dropped.append((path, declaration.span, existing))
            return

        draft.signature = _merge_signature(draft, declaration)
        if declaration.span not in draft.spans:
            draft.spans.append(declaration.span)
        if declaration.is_definition and not draft.defined:
            draft.defined = True
            draft.source_span = declaration.span
            if draft.kind in RECORD_KINDS:
                # `class X;` then `struct X { ... };`: the definition's keyword wins
                draft.kind = declaration.kind
        if draft.doc.is_empty and not doc.is_empty:
            draft.doc = doc
        if draft.access is None:
            draft.access = declaration.access
        draft.navigable = draft.navigable or navigable

    @staticmethod
    def _compatible(existing: str, incoming: str) -> bool:
        if existing == incoming:
            return True
        return existing in RECORD_KINDS and incoming in RECORD_KINDS

    def _create(
        self,
        declaration: Declaration,
        doc: DocComment,
        navigable: bool,
        identity: Tuple,
        signature_key: str,
    ) -> None:
        draft = _Draft(
            kind=declaration.kind,
            scope=declaration.scope,
            name=declaration.name,
            signature=declaration.signature,
            doc=doc,
            source_span=declaration.span,
            spans=[declaration.span],
            access=declaration.access,
            defined=declaration.is_definition,
            navigable=navigable,
            signature_key=signature_key,
        )
        if declaration.kind == FUNCTION:
            path = draft.path
            draft.group_key = qualified_name(draft.scope, draft.name)
            draft.overload_index = self._group_sizes.get(path, 0) + 1
            self._group_sizes[path] = draft.overload_index
        self._by_identity[identity] = len(self.drafts)
        self.drafts.append(draft)

    def link_parents(self) -> List[Optional[int]]:
        """Parent index of every draft, synthesizing missing scopes."""
        scopes: Dict[Tuple[str, ...], int] = {}
        for index, draft in enumerate(self.drafts):
            if draft.kind in SCOPE_KINDS and draft.path not in scopes:
                scopes[draft.path] = index

        parents: List[Optional[int]] = []
        index = 0
        # Synthesized scopes are appended while iterating
        while index < len(self.drafts):
            draft = self.drafts[index]
            parents.append(self._ensure_scope(draft.scope, draft, scopes) if draft.scope else None)
            index += 1
        return parents

    def _ensure_scope(self, scope: Tuple[str, ...], child: _Draft, scopes: Dict[Tuple[str, ...], int]) -> int:
        found = scopes.get(scope)
        if found is not None:
            if child.navigable and self.drafts[found].implicit:
                self.drafts[found].navigable = True
            return found

        message = f"No declaration found for scope {'::'.join(scope)}; treating it as a namespace"
        logger.warning("Implicit scope: %s", message)
        self.diagnostics.append(
            Diagnostic(
                severity="warning",
                code=DIAG_IMPLICIT_SCOPE,
                message=message,
                file=child.source_span.file,
            )
        )
        draft = _Draft(
            kind=NAMESPACE,
            scope=scope[:-1],
            name=scope[-1],
            signature=Signature(),
            doc=EMPTY_DOC,
            source_span=child.source_span,
            spans=[],
            access=None,
            defined=False,
            navigable=child.navigable,
            implicit=True,
        )
        scopes[scope] = len(self.drafts)
        self.drafts.append(draft)
        return scopes[scope]


def _parse_batch(provider: AstProvider, include_set: IncludeSet, path: str, flags: Sequence[str]) -> FileBatch:
    """Parse one file; runs on a worker thread."""
    try:
        declarations = provider.parse(include_set.absolute(path), flags)
        return FileBatch(path=path, declarations=list(declarations))
    except ParseError as e:
        return FileBatch(path=path, declarations=[], error=e)


def _validate_flag_source(provider: AstProvider, root: str, flag_source: str, flags: Sequence[str]) -> None:
    source_path = flag_source if os.path.isabs(flag_source) else os.path.join(root, flag_source)
    try:
        provider.parse(source_path, flags)
    except ParseError as e:
        raise ConfigurationError(f"Cannot parse compile flag source {flag_source}: {e.reason}") from e


def _freeze(merger: _Merger, include_set: IncludeSet, tree: Optional[str]) -> SymbolTable:
    parents = merger.link_parents()
    drafts = merger.drafts

    def member_order(key: int) -> Tuple[str, int, int]:
        span = drafts[key].source_span
        return span.file, span.start_line, key

    children: Dict[int, List[int]] = {}
    names: Dict[Tuple[str, ...], List[int]] = {}
    for key, draft in enumerate(drafts):
        names.setdefault(draft.path, []).append(key)
        if parents[key] is not None:
            children.setdefault(parents[key], []).append(key)

    entities = tuple(
        Entity(
            key=key,
            kind=draft.kind,
            qualified_scope=draft.scope,
            name=draft.name,
            signature=draft.signature,
            doc=draft.doc,
            source_span=draft.source_span,
            declaration_spans=tuple(draft.spans),
            access=draft.access,
            parent=parents[key],
            children=tuple(sorted(children.get(key, ()), key=member_order)),
            group_key=draft.group_key,
            overload_index=draft.overload_index,
            navigable=draft.navigable,
            implicit=draft.implicit,
        )
        for key, draft in enumerate(drafts)
    )

    per_file: Dict[str, List[Tuple[int, int]]] = {}
    for entity in entities:
        if entity.kind == NAMESPACE:
            continue
        if entity.parent is not None and entities[entity.parent].kind != NAMESPACE:
            continue
        for span in entity.declaration_spans:
            per_file.setdefault(span.file, []).append((span.start_line, entity.key))

    files = tuple(
        FileNode(
            path=path,
            entities=tuple(dict.fromkeys(key for _, key in sorted(per_file.get(path, ())))),
            navigable=include_set.is_navigable(path),
            tree_url=tree_url_for(tree, path),
            includes=tuple(include_set.includes.get(path, ())),
        )
        for path in include_set.files()
    )

    return SymbolTable(
        entities=entities,
        names=freeze_names(names),
        files=files,
        diagnostics=tuple(dict.fromkeys(merger.diagnostics)),
    )


def extract_symbols(
    include_set: IncludeSet,
    flags: Sequence[str] = (),
    provider: Optional[AstProvider] = None,
    workers: int = 1,
    flag_source: Optional[str] = None,
    tree: Optional[str] = None,
    stats: Optional[ExtractionStats] = None,
) -> SymbolTable:
    """Extract the canonical symbol table of an include set.

    Args:
        include_set: Headers to parse.
        flags: Compiler flags passed to the provider.
        provider: AST provider. Defaults to ``TreeSitterProvider``.
        workers: Parser threads.
        flag_source: The file compile flags were inferred from; a parse
            failure there is fatal.
        tree: ``docs.tree`` URL template for file nodes.
        stats: Filled with extraction statistics when given.

    Raises:
        ConfigurationError: If ``flag_source`` cannot be parsed.
    """
    if provider is None:
        provider = TreeSitterProvider(include_set.root)
    merger = _Merger(stats=stats if stats is not None else ExtractionStats())

    if flag_source:
        _validate_flag_source(provider, include_set.root, flag_source, flags)

    files = include_set.files()
    logger.info("Parsing %d file(s) with %d worker(s)", len(files), workers)
    with ThreadPoolExecutor(max_workers=max(1, workers)) as executor:
        batches = list(
            executor.map(lambda path: _parse_batch(provider, include_set, path, flags), files)
        )

    for batch in batches:
        navigable = include_set.is_navigable(batch.path)
        if batch.error is not None:
            merger.stats.files_failed += 1
            logger.warning("Skipping %s: %s", batch.path, batch.error.reason)
            merger.diagnostics.append(
                Diagnostic(
                    severity="warning",
                    code=DIAG_PARSE_ERROR,
                    message=batch.error.reason,
                    file=batch.path,
                )
            )
            continue
        merger.stats.files_processed += 1
        for declaration in batch.declarations:
            merger.add(declaration, navigable)

    table = _freeze(merger, include_set, tree)
    merger.stats.entities_extracted = len(table)
    logger.info("Extraction complete: %s", merger.stats)
    return table
