"""
Navigation trees and the flat function index.
"""

import logging
from typing import Dict, List, Optional, Set

from assembly.models import PAGE_FILE, PAGE_FUNCTION_CLUSTER, NavNode
from assembly.pages import is_documented, is_free_function
from crossref.models import LinkedSymbols
from crossref.resolver import PAGE_KINDS
from extraction.config import FUNCTION, NAMESPACE
from extraction.models import Entity

logger = logging.getLogger(__name__)

DIRECTORY = "directory"


def _sort_entity_nodes(nodes: List[NavNode]) -> List[NavNode]:
    """Namespaces first, then everything else, each by name then identifier."""
    return sorted(
        nodes,
        key=lambda n: (n.kind != NAMESPACE, n.name, n.identifier or ""),
    )


def _entity_children(linked: LinkedSymbols, keys, seen_clusters: Set[str]) -> List[NavNode]:
    nodes: List[NavNode] = []
    for key in keys:
        entity = linked.table[key]
        if not is_documented(linked, entity):
            continue
        node = _entity_node(linked, entity, seen_clusters)
        if node is not None:
            nodes.append(node)
    return _sort_entity_nodes(nodes)


def _entity_node(linked: LinkedSymbols, entity: Entity, seen_clusters: Set[str]) -> Optional[NavNode]:
    identity = linked.identity(entity.key)

    if is_free_function(linked, entity):
        if not entity.navigable or identity.page in seen_clusters:
            return None
        seen_clusters.add(identity.page)
        return NavNode(name=entity.name, kind=PAGE_FUNCTION_CLUSTER, identifier=identity.page)

    if entity.kind not in PAGE_KINDS:
        return None

    children = _entity_children(linked, entity.children, seen_clusters)
    if entity.kind == NAMESPACE:
        if not children:
            return None
    elif not entity.navigable:
        return None
    return NavNode(
        name=entity.name,
        kind=entity.kind,
        identifier=identity.identifier,
        children=children,
    )


def build_entity_tree(linked: LinkedSymbols) -> List[NavNode]:
    """Scope tree of navigable entities.

    Namespaces, classes, structs and enums nest by scope; free functions
    appear once per overload cluster. Namespaces without a navigable
    descendant are left out.
    """
    roots = [e.key for e in linked.table.entities if e.parent is None]
    return _entity_children(linked, roots, set())


def build_file_tree(linked: LinkedSymbols) -> List[NavNode]:
    """Directory tree of navigable headers; directories before files, by name."""
    root = NavNode(name="", kind=DIRECTORY)
    directories: Dict[str, NavNode] = {"": root}

    for node in linked.table.files:
        if not node.navigable:
            continue
        parts = node.path.split("/")
        parent = root
        for depth in range(1, len(parts)):
            path = "/".join(parts[:depth])
            if path not in directories:
                directory = NavNode(name=parts[depth - 1], kind=DIRECTORY)
                directories[path] = directory
                parent.children.append(directory)
            parent = directories[path]
        parent.children.append(
            NavNode(
                name=parts[-1],
                kind=PAGE_FILE,
                identifier=linked.file_identities[node.path],
            )
        )

    for directory in directories.values():
        directory.children.sort(key=lambda n: (n.kind != DIRECTORY, n.name))
    return root.children


def build_function_index(linked: LinkedSymbols) -> List[str]:
    """``::``-joined names of navigable, visible functions, one per overload group."""
    names: List[str] = []
    seen: Set[str] = set()
    for entity in linked.table.entities:
        if entity.kind != FUNCTION or not entity.navigable:
            continue
        if not is_documented(linked, entity):
            continue
        group = entity.group_key or entity.qualified_name
        if group in seen:
            continue
        seen.add(group)
        names.append(entity.qualified_name)
    logger.debug("Function index holds %d name(s)", len(names))
    return names
