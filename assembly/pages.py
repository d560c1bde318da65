"""
Per-page documentation records.

One page is produced for every class, struct, enum and namespace, one per
free-function cluster (all overloads of a name in one scope) and one per
navigable header. Private members, and everything nested inside them, are
left out of the output.
"""

import logging
import posixpath
from typing import Any, Dict, Iterable, List, Optional, Set

from assembly.models import (
    GROUP_FIELDS,
    GROUP_FUNCTIONS,
    GROUP_NAMESPACES,
    GROUP_OVERLOADS,
    GROUP_PROTECTED_MEMBER_FUNCTIONS,
    GROUP_PUBLIC_MEMBER_FUNCTIONS,
    GROUP_PUBLIC_STATIC_FUNCTIONS,
    GROUP_TITLES,
    GROUP_TYPES,
    GROUP_VARIABLES,
    PAGE_FILE,
    PAGE_FUNCTION_CLUSTER,
    PageMetadata,
    PageRecord,
)
from assembly.signatures import render_declaration
from crossref.models import LinkedSymbols, Reference
from crossref.resolver import PAGE_KINDS
from extraction.config import (
    ALIAS,
    CLASS,
    ENUM,
    FUNCTION,
    NAMESPACE,
    STRUCT,
    VARIABLE,
)
from extraction.models import Entity, FileNode, SourceSpan

logger = logging.getLogger(__name__)

PRIVATE = "private"
PROTECTED = "protected"

_TYPE_KINDS = {CLASS, STRUCT, ENUM, ALIAS}


def page_title(name: str, project: str) -> str:
    return f"{name} Docs in {project}"


def page_description(name: str, category: str, project: str) -> str:
    return f"Documentation for the {name} {category} in {project}"


def is_documented(linked: LinkedSymbols, entity: Entity) -> bool:
    """Whether ``entity`` and all of its ancestors are visible."""
    current: Optional[Entity] = entity
    while current is not None:
        if current.access == PRIVATE:
            return False
        current = linked.table[current.parent] if current.parent is not None else None
    return True


def is_free_function(linked: LinkedSymbols, entity: Entity) -> bool:
    return entity.kind == FUNCTION and (
        entity.parent is None or linked.table[entity.parent].kind == NAMESPACE
    )


class _PageBuilder:
    """Builds page records for one linked symbol table."""

    def __init__(self, linked: LinkedSymbols, project: str):
        self.linked = linked
        self.table = linked.table
        self.project = project
        self.page_ids: Set[str] = set()

    def url_for(self, key: int) -> Optional[str]:
        identity = self.linked.identity(key)
        if identity.page not in self.page_ids:
            return None
        if identity.page == identity.identifier:
            return identity.page
        return f"{identity.page}#{identity.anchor}"

    def source_url(self, span: SourceSpan) -> Optional[str]:
        node = self.table.file(span.file)
        return node.tree_url if node is not None else None

    def reference_record(self, ref: Reference) -> Dict[str, Any]:
        target = None
        url = None
        if ref.target is not None:
            target = self.linked.identity(ref.target).identifier
            url = self.url_for(ref.target)
        return {
            "role": ref.role,
            "text": ref.text,
            "key": ref.key,
            "target": target,
            "url": url,
            "position": ref.position,
            "arguments": [self.reference_record(arg) for arg in ref.arguments],
        }

    def span_record(self, span: SourceSpan) -> Dict[str, Any]:
        record = span.to_dict()
        record["url"] = self.source_url(span)
        return record

    def entity_record(self, entity: Entity) -> Dict[str, Any]:
        identity = self.linked.identity(entity.key)
        signature = entity.signature
        return {
            "identifier": identity.identifier,
            "anchor": identity.anchor,
            "url": self.url_for(entity.key),
            "kind": entity.kind,
            "name": entity.name,
            "display_name": identity.display_name,
            "qualified_name": entity.qualified_name,
            "declaration": render_declaration(entity),
            "access": entity.access,
            "implicit": entity.implicit,
            "template_parameters": list(signature.template_parameters),
            "parameters": [
                {
                    "type": p.type,
                    "name": p.name,
                    "default": p.default,
                    "description": entity.doc.param_doc(p.name) if p.name else None,
                }
                for p in signature.parameters
            ],
            "enumerators": list(signature.enumerators),
            "doc": entity.doc.to_dict(),
            "references": [self.reference_record(r) for r in self.linked.references_of(entity.key)],
            "declared_in": [self.span_record(s) for s in entity.declaration_spans],
        }

    def grouped(self, groups: Dict[str, List[Entity]]) -> Dict[str, Any]:
        return {
            name: {
                "title": GROUP_TITLES[name],
                "members": [self.entity_record(e) for e in groups[name]],
            }
            for name in GROUP_TITLES
            if groups.get(name)
        }

    def visible(self, keys: Iterable[int]) -> List[Entity]:
        return [
            self.table[key] for key in keys if is_documented(self.linked, self.table[key])
        ]

    @staticmethod
    def class_groups(members: Iterable[Entity]) -> Dict[str, List[Entity]]:
        groups: Dict[str, List[Entity]] = {}
        for member in members:
            if member.kind == FUNCTION:
                if member.access == PROTECTED:
                    group = GROUP_PROTECTED_MEMBER_FUNCTIONS
                elif "static" in member.signature.qualifiers:
                    group = GROUP_PUBLIC_STATIC_FUNCTIONS
                else:
                    group = GROUP_PUBLIC_MEMBER_FUNCTIONS
            elif member.kind == VARIABLE:
                group = GROUP_FIELDS
            elif member.kind in _TYPE_KINDS:
                group = GROUP_TYPES
            else:
                continue
            groups.setdefault(group, []).append(member)
        return groups

    @staticmethod
    def scope_groups(members: Iterable[Entity]) -> Dict[str, List[Entity]]:
        groups: Dict[str, List[Entity]] = {}
        for member in members:
            if member.kind == NAMESPACE:
                group = GROUP_NAMESPACES
            elif member.kind in _TYPE_KINDS:
                group = GROUP_TYPES
            elif member.kind == FUNCTION:
                group = GROUP_FUNCTIONS
            elif member.kind == VARIABLE:
                group = GROUP_VARIABLES
            else:
                continue
            groups.setdefault(group, []).append(member)
        return groups

    def entity_page(self, entity: Entity) -> PageRecord:
        members = self.visible(entity.children)
        if entity.kind in (CLASS, STRUCT):
            groups = self.class_groups(members)
        elif entity.kind == NAMESPACE:
            groups = self.scope_groups(members)
        else:
            groups = {}
        identity = self.linked.identity(entity.key)
        metadata = PageMetadata(
            title=page_title(entity.name, self.project),
            description=page_description(entity.name, entity.kind, self.project),
            identifier=identity.page,
            kind=entity.kind,
            source_url=self.source_url(entity.source_span),
        )
        return PageRecord(
            metadata=metadata,
            content={"entity": self.entity_record(entity), "members": self.grouped(groups)},
        )

    def cluster_page(self, page: str, overloads: List[Entity]) -> PageRecord:
        first = overloads[0]
        metadata = PageMetadata(
            title=page_title(first.name, self.project),
            description=page_description(first.name, PAGE_FUNCTION_CLUSTER, self.project),
            identifier=page,
            kind=PAGE_FUNCTION_CLUSTER,
            source_url=self.source_url(first.source_span),
        )
        return PageRecord(
            metadata=metadata,
            content={
                "entity": self.entity_record(first),
                "members": self.grouped({GROUP_OVERLOADS: overloads}),
            },
        )

    def file_page(self, node: FileNode) -> PageRecord:
        name = posixpath.basename(node.path)
        metadata = PageMetadata(
            title=page_title(name, self.project),
            description=f"Documentation for {node.path} in {self.project}",
            identifier=self.linked.file_identities[node.path],
            kind=PAGE_FILE,
            source_url=node.tree_url,
        )
        return PageRecord(
            metadata=metadata,
            content={
                "file": {
                    "path": node.path,
                    "url": node.tree_url,
                    "includes": list(node.includes),
                },
                "members": self.grouped(self.scope_groups(self.visible(node.entities))),
            },
        )


def build_pages(linked: LinkedSymbols, project: str) -> List[PageRecord]:
    """Build every page record of the site.

    Pages come in entity order (a function cluster at the position of its
    first overload), followed by file pages in path order.
    """
    builder = _PageBuilder(linked, project)
    table = linked.table

    owners: List[Any] = []
    clusters: Dict[str, List[Entity]] = {}
    for entity in table.entities:
        if not is_documented(linked, entity):
            continue
        if entity.kind in PAGE_KINDS:
            owners.append(entity)
        elif is_free_function(linked, entity):
            page = linked.identity(entity.key).page
            if page not in clusters:
                clusters[page] = []
                owners.append(page)
            clusters[page].append(entity)

    files = sorted((node for node in table.files if node.navigable), key=lambda n: n.path)

    builder.page_ids.update(
        linked.identity(o.key).page if isinstance(o, Entity) else o for o in owners
    )
    builder.page_ids.update(linked.file_identities[node.path] for node in files)

    pages: List[PageRecord] = []
    for owner in owners:
        if isinstance(owner, Entity):
            pages.append(builder.entity_page(owner))
        else:
            pages.append(builder.cluster_page(owner, clusters[owner]))
    pages.extend(builder.file_page(node) for node in files)

    logger.info("Built %d page(s)", len(pages))
    return pages
