"""
Data models produced by cross-reference resolution.

Resolution never touches the symbol table; references and identities live
in these side structures, keyed by entity key.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

from extraction.models import SymbolTable

# Reference roles
ROLE_RETURN = "return"
ROLE_PARAMETER = "parameter"
ROLE_BASE = "base"
ROLE_ALIAS_TARGET = "alias_target"
ROLE_VARIABLE_TYPE = "variable_type"
ROLE_TEMPLATE_ARGUMENT = "template_argument"


@dataclass(frozen=True)
class Reference:
    """A type mention and the entity it resolves to, if any.

    Attributes:
        role: Where the mention appears (``return``, ``parameter``, ...).
        text: Rendered type text, qualifiers and template arguments kept.
        key: Qualified lookup key, None for builtins and non-type text.
        target: Key of the resolved entity, None when unresolved.
        arguments: References for the template arguments of ``text``.
        position: Parameter index for ``parameter`` references.
    """

    role: str
    text: str
    key: Optional[str] = None
    target: Optional[int] = None
    arguments: Tuple["Reference", ...] = ()
    position: Optional[int] = None

    @property
    def resolved(self) -> bool:
        return self.target is not None


@dataclass(frozen=True)
class EntityIdentity:
    """Stable output naming of one entity.

    Attributes:
        identifier: ``<category>/<scope...>/<name>[-n]``.
        page: Identifier of the page that shows the entity.
        anchor: In-page anchor, the identifier with ``/`` replaced by ``.``.
        display_name: ``name`` or ``name (n)`` for later overloads.
    """

    identifier: str
    page: str
    anchor: str
    display_name: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "identifier": self.identifier,
            "page": self.page,
            "anchor": self.anchor,
            "display_name": self.display_name,
        }


@dataclass(frozen=True)
class LinkedSymbols:
    """Symbol table plus its resolved cross-references."""

    table: SymbolTable
    identities: Mapping[int, EntityIdentity]
    references: Mapping[int, Tuple[Reference, ...]] = field(default_factory=dict)
    file_identities: Mapping[str, str] = field(default_factory=dict)

    def identity(self, key: int) -> EntityIdentity:
        return self.identities[key]

    def references_of(self, key: int) -> Tuple[Reference, ...]:
        return self.references.get(key, ())
