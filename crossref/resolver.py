"""
Cross-reference resolution and identifier assignment.

Every type mention in a signature is looked up in the scope where the
entity is declared, then in each enclosing scope outward to the global
scope; the first match wins. Resolution only reads the frozen symbol table
and runs per entity on a thread pool.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from types import MappingProxyType
from typing import AbstractSet, Dict, List, Optional, Tuple

from core.identifiers import (
    anchor_for,
    build_identifier,
    display_name,
    file_identifier,
)
from crossref.models import (
    ROLE_ALIAS_TARGET,
    ROLE_BASE,
    ROLE_PARAMETER,
    ROLE_RETURN,
    ROLE_TEMPLATE_ARGUMENT,
    ROLE_VARIABLE_TYPE,
    EntityIdentity,
    LinkedSymbols,
    Reference,
)
from crossref.scope_index import ScopeIndex, build_scope_index
from crossref.type_names import type_lookup_key
from extraction.config import (
    ALIAS,
    CLASS,
    ENUM,
    FUNCTION,
    NAMESPACE,
    STRUCT,
    VARIABLE,
)
from extraction.models import Entity, SymbolTable

logger = logging.getLogger(__name__)

# Kinds that get a page of their own
PAGE_KINDS = {NAMESPACE, CLASS, STRUCT, ENUM}


def resolve_type(
    index: ScopeIndex,
    scope: Tuple[str, ...],
    text: str,
    role: str = ROLE_PARAMETER,
    template_names: AbstractSet[str] = frozenset(),
    position: Optional[int] = None,
) -> Reference:
    """Resolve one type mention made inside ``scope``.

    Args:
        index: Scope index of the frozen table.
        scope: Scope the mention is written in, root to leaf.
        text: Rendered type text.
        role: Reference role.
        template_names: Template parameter names visible at the mention;
            a bare mention of one stays unresolved.
        position: Parameter index, for parameter references.

    Returns:
        A Reference whose ``target`` is the first class, struct, enum or
        alias found, innermost scope first.
    """
    key = type_lookup_key(text)
    if key is None:
        return Reference(role=role, text=text, position=position)

    arguments = tuple(
        resolve_type(index, scope, argument, ROLE_TEMPLATE_ARGUMENT, template_names)
        for argument in key.arguments
    )

    if not key.is_global and key.segments[0] in template_names:
        return Reference(role=role, text=text, key=key.text, arguments=arguments, position=position)

    bases = [()] if key.is_global else [scope[:i] for i in range(len(scope), -1, -1)]
    for base in bases:
        found = index.first(base + key.segments)
        if found is not None:
            return Reference(
                role=role,
                text=text,
                key=key.text,
                target=found.key,
                arguments=arguments,
                position=position,
            )
    return Reference(role=role, text=text, key=key.text, arguments=arguments, position=position)


def entity_references(index: ScopeIndex, entity: Entity) -> Tuple[Reference, ...]:
    """All references made by the signature of ``entity``."""
    signature = entity.signature
    template_names = index.template_names(entity.key)
    # Member signatures see the class's own member types; a class head does not
    scope = entity.qualified_scope
    refs: List[Reference] = []

    if entity.kind == FUNCTION:
        if signature.return_type:
            refs.append(resolve_type(index, scope, signature.return_type, ROLE_RETURN, template_names))
        for position, parameter in enumerate(signature.parameters):
            refs.append(
                resolve_type(index, scope, parameter.type, ROLE_PARAMETER, template_names, position)
            )
    elif entity.kind in (CLASS, STRUCT):
        for base in signature.bases:
            refs.append(resolve_type(index, scope, base, ROLE_BASE, template_names))
    elif entity.kind == ALIAS and signature.underlying_type:
        refs.append(
            resolve_type(index, scope, signature.underlying_type, ROLE_ALIAS_TARGET, template_names)
        )
    elif entity.kind == VARIABLE and signature.underlying_type:
        refs.append(
            resolve_type(index, scope, signature.underlying_type, ROLE_VARIABLE_TYPE, template_names)
        )
    return tuple(refs)


def _is_free_function(table: SymbolTable, entity: Entity) -> bool:
    return entity.kind == FUNCTION and (
        entity.parent is None or table[entity.parent].kind == NAMESPACE
    )


def page_identifier(table: SymbolTable, entity: Entity) -> str:
    """Identifier of the page that shows ``entity``.

    Namespaces, records and enums have their own page; free functions share
    the page of their overload group; members are shown on their parent's
    page; global variables and aliases on the page of their header.
    """
    if entity.kind in PAGE_KINDS:
        return build_identifier(entity.kind, entity.qualified_scope, entity.name)
    if _is_free_function(table, entity):
        return build_identifier(FUNCTION, entity.qualified_scope, entity.name)
    if entity.parent is not None:
        return page_identifier(table, table[entity.parent])
    return file_identifier(entity.source_span.file)


def assign_identifiers(table: SymbolTable) -> Dict[int, EntityIdentity]:
    """Assign every entity its stable identifier, page and anchor.

    The identifier depends only on kind, scope, name and overload index, so
    unchanged input always yields the same identifiers.
    """
    identities: Dict[int, EntityIdentity] = {}
    for entity in table.entities:
        identifier = build_identifier(
            entity.kind,
            entity.qualified_scope,
            entity.name,
            entity.overload_index,
        )
        identities[entity.key] = EntityIdentity(
            identifier=identifier,
            page=page_identifier(table, entity),
            anchor=anchor_for(identifier),
            display_name=display_name(entity.name, entity.overload_index),
        )
    return identities


def link_symbols(table: SymbolTable, workers: int = 1) -> LinkedSymbols:
    """Resolve every reference of a frozen symbol table.

    Args:
        table: Output of the extractor.
        workers: Resolver threads.

    Returns:
        The table with identities and references attached alongside it.
    """
    index = build_scope_index(table)
    identities = assign_identifiers(table)

    with ThreadPoolExecutor(max_workers=max(1, workers)) as executor:
        results = list(executor.map(lambda e: entity_references(index, e), table.entities))

    references = {
        entity.key: refs for entity, refs in zip(table.entities, results) if refs
    }
    total = sum(len(refs) for refs in references.values())
    resolved = sum(1 for refs in references.values() for ref in refs if ref.resolved)
    logger.info("Resolved %d of %d type reference(s)", resolved, total)

    return LinkedSymbols(
        table=table,
        identities=MappingProxyType(identities),
        references=MappingProxyType(references),
        file_identities=MappingProxyType({f.path: file_identifier(f.path) for f in table.files}),
    )
