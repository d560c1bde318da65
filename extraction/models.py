"""
Data models for declarations, entities and the frozen symbol table.
"""

from dataclasses import asdict, dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from core.identifiers import qualified_name


@dataclass(frozen=True)
class SourceSpan:
    """A line range inside a project file.

    Attributes:
        file: Path relative to the project root, ``/``-separated.
        start_line: 1-indexed first line.
        end_line: 1-indexed last line.
    """

    file: str
    start_line: int
    end_line: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Parameter:
    """One function parameter."""

    type: str
    name: str = ""
    default: Optional[str] = None


@dataclass(frozen=True)
class Signature:
    """The declared shape of an entity.

    Only the components that make sense for the entity's kind are filled:
    functions use ``return_type``/``parameters``/``qualifiers``, records use
    ``bases``, aliases and variables use ``underlying_type``, enums use
    ``enumerators``. Template parameters apply to any templated entity.
    """

    return_type: Optional[str] = None
    parameters: Tuple[Parameter, ...] = ()
    qualifiers: Tuple[str, ...] = ()
    template_parameters: Tuple[str, ...] = ()
    template_parameter_names: Tuple[str, ...] = ()
    bases: Tuple[str, ...] = ()
    underlying_type: Optional[str] = None
    enumerators: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class DocComment:
    """Structured documentation comment.

    Attributes:
        summary: First paragraph of free text (or ``@brief``).
        discussion: Remaining free-form paragraphs.
        params: (name, description) pairs from ``@param``.
        tparams: (name, description) pairs from ``@tparam``.
        returns: ``@return`` text.
        throws: ``@throws`` entries.
        see: ``@see`` references.
        notes: ``@note`` / ``@info`` annotations.
        warnings: ``@warning`` annotations.
        examples: ``@example`` / ``@code`` blocks.
        book: ``@book`` / ``@tutorial`` references.
    """

    summary: Optional[str] = None
    discussion: Tuple[str, ...] = ()
    params: Tuple[Tuple[str, str], ...] = ()
    tparams: Tuple[Tuple[str, str], ...] = ()
    returns: Optional[str] = None
    throws: Tuple[str, ...] = ()
    see: Tuple[str, ...] = ()
    notes: Tuple[str, ...] = ()
    warnings: Tuple[str, ...] = ()
    examples: Tuple[str, ...] = ()
    book: Tuple[str, ...] = ()
    since: Optional[str] = None
    version: Optional[str] = None
    deprecated: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return self == EMPTY_DOC

    def param_doc(self, name: str) -> Optional[str]:
        for param_name, description in self.params:
            if param_name == name:
                return description
        return None

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["params"] = [{"name": n, "description": d} for n, d in self.params]
        payload["tparams"] = [{"name": n, "description": d} for n, d in self.tparams]
        return payload


EMPTY_DOC = DocComment()


@dataclass(frozen=True)
class Declaration:
    """One declaration as reported by the AST provider.

    Attributes:
        kind: Entity kind (see ``extraction.config``).
        scope: Enclosing scope segments, root to leaf.
        name: Unqualified name.
        signature: Declared shape.
        raw_comment: Doc comment text attached right above, if any.
        span: Where the declaration appears.
        access: Member access inside a class, ``None`` at namespace scope.
        is_definition: Whether this declaration carries a body.
    """

    kind: str
    scope: Tuple[str, ...]
    name: str
    signature: Signature
    raw_comment: Optional[str]
    span: SourceSpan
    access: Optional[str] = None
    is_definition: bool = False

    @property
    def qualified_name(self) -> str:
        return qualified_name(self.scope, self.name)


@dataclass(frozen=True)
class Diagnostic:
    """A recoverable problem recorded during the build."""

    severity: str
    code: str
    message: str
    file: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Entity:
    """One documented symbol after deduplication.

    Entities live in an arena (``SymbolTable.entities``) and refer to each
    other by integer ``key``.
    """

    key: int
    kind: str
    qualified_scope: Tuple[str, ...]
    name: str
    signature: Signature
    doc: DocComment
    source_span: SourceSpan
    declaration_spans: Tuple[SourceSpan, ...]
    access: Optional[str] = None
    parent: Optional[int] = None
    children: Tuple[int, ...] = ()
    group_key: Optional[str] = None
    overload_index: int = 1
    navigable: bool = True
    implicit: bool = False

    @property
    def qualified_name(self) -> str:
        return qualified_name(self.qualified_scope, self.name)

    @property
    def path(self) -> Tuple[str, ...]:
        return self.qualified_scope + (self.name,)


@dataclass(frozen=True)
class FileNode:
    """One header of the include set."""

    path: str
    entities: Tuple[int, ...]
    navigable: bool
    tree_url: Optional[str] = None
    includes: Tuple[str, ...] = ()


@dataclass(frozen=True)
class SymbolTable:
    """Frozen arena of canonical entities produced by the extractor."""

    entities: Tuple[Entity, ...]
    names: Mapping[Tuple[str, ...], Tuple[int, ...]]
    files: Tuple[FileNode, ...]
    diagnostics: Tuple[Diagnostic, ...] = ()

    def __getitem__(self, key: int) -> Entity:
        return self.entities[key]

    def __len__(self) -> int:
        return len(self.entities)

    def lookup(self, path: Tuple[str, ...], kinds: Optional[set] = None) -> List[Entity]:
        """Entities whose scope + name equals ``path``, optionally filtered by kind."""
        found = [self.entities[k] for k in self.names.get(tuple(path), ())]
        if kinds is not None:
            found = [e for e in found if e.kind in kinds]
        return found

    def file(self, path: str) -> Optional[FileNode]:
        for node in self.files:
            if node.path == path:
                return node
        return None

    def roots(self) -> List[Entity]:
        return [e for e in self.entities if e.parent is None]


def freeze_names(names: Dict[Tuple[str, ...], List[int]]) -> Mapping[Tuple[str, ...], Tuple[int, ...]]:
    """Read-only view of a name index."""
    return MappingProxyType({k: tuple(v) for k, v in names.items()})
