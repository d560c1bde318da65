"""
Scope index over a frozen symbol table.

Maps every qualified name to the entities declaring it. Several kinds may
share one name (``struct stat`` and ``stat()``); callers filter by kind.
"""

import logging
from dataclasses import dataclass
from typing import AbstractSet, FrozenSet, Mapping, Optional, Tuple

from extraction.config import TYPE_KINDS
from extraction.models import Entity, SymbolTable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScopeIndex:
    """Read-only qualified-name index."""

    table: SymbolTable
    names: Mapping[Tuple[str, ...], Tuple[int, ...]]

    def candidates(self, path: Tuple[str, ...], kinds: AbstractSet[str] = TYPE_KINDS) -> Tuple[int, ...]:
        """Keys of entities named ``path`` whose kind is in ``kinds``, in arena order."""
        return tuple(
            key for key in self.names.get(tuple(path), ()) if self.table[key].kind in kinds
        )

    def first(self, path: Tuple[str, ...], kinds: AbstractSet[str] = TYPE_KINDS) -> Optional[Entity]:
        found = self.candidates(path, kinds)
        return self.table[found[0]] if found else None

    def template_names(self, key: int) -> FrozenSet[str]:
        """Template parameter names visible inside entity ``key``."""
        names = set()
        current: Optional[int] = key
        while current is not None:
            entity = self.table[current]
            names.update(entity.signature.template_parameter_names)
            current = entity.parent
        return frozenset(names)


def build_scope_index(table: SymbolTable) -> ScopeIndex:
    """Build the scope index of a frozen symbol table."""
    index = ScopeIndex(table=table, names=table.names)
    logger.debug("Scope index holds %d qualified names", len(index.names))
    return index
