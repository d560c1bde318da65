"""
Layer 2: Cross-Reference Resolver

Resolves type mentions in signatures to entities of the frozen symbol table
and assigns every entity its stable output identifier.
"""

from crossref.models import EntityIdentity, LinkedSymbols, Reference
from crossref.scope_index import ScopeIndex, build_scope_index
from crossref.type_names import TypeKey, type_lookup_key
from crossref.resolver import (
    assign_identifiers,
    entity_references,
    link_symbols,
    page_identifier,
    resolve_type,
)

__all__ = [
    # Data models
    "EntityIdentity",
    "LinkedSymbols",
    "Reference",
    "ScopeIndex",
    "TypeKey",
    # Lookup
    "build_scope_index",
    "type_lookup_key",
    "resolve_type",
    "entity_references",
    # Identifiers
    "assign_identifiers",
    "page_identifier",
    # High-level orchestration
    "link_symbols",
]
