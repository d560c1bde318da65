"""
Data models for the assembled documentation site.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

# Page kinds beyond the entity kinds
PAGE_FILE = "file"
PAGE_FUNCTION_CLUSTER = "function"

# Member groups, in page order
GROUP_PUBLIC_STATIC_FUNCTIONS = "public_static_functions"
GROUP_PUBLIC_MEMBER_FUNCTIONS = "public_member_functions"
GROUP_PROTECTED_MEMBER_FUNCTIONS = "protected_member_functions"
GROUP_FIELDS = "fields"
GROUP_TYPES = "types"
GROUP_NAMESPACES = "namespaces"
GROUP_FUNCTIONS = "functions"
GROUP_VARIABLES = "variables"
GROUP_OVERLOADS = "overloads"

GROUP_TITLES: Dict[str, str] = {
    GROUP_PUBLIC_STATIC_FUNCTIONS: "Public static methods",
    GROUP_PUBLIC_MEMBER_FUNCTIONS: "Public member functions",
    GROUP_PROTECTED_MEMBER_FUNCTIONS: "Protected member functions",
    GROUP_FIELDS: "Fields",
    GROUP_TYPES: "Types",
    GROUP_NAMESPACES: "Namespaces",
    GROUP_FUNCTIONS: "Functions",
    GROUP_VARIABLES: "Variables",
    GROUP_OVERLOADS: "Overloads",
}


@dataclass(frozen=True)
class PageMetadata:
    """What the client needs before fetching a page's content."""

    title: str
    description: str
    identifier: str
    kind: str
    source_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "identifier": self.identifier,
            "kind": self.kind,
            "source_url": self.source_url,
        }


@dataclass(frozen=True)
class PageRecord:
    """One self-contained documentation page.

    Attributes:
        metadata: Title, description and identifier of the page.
        content: Entity record, grouped members, references and declaration
            spans. Plain JSON-compatible data.
    """

    metadata: PageMetadata
    content: Dict[str, Any]

    @property
    def identifier(self) -> str:
        return self.metadata.identifier


@dataclass
class NavNode:
    """A node of the entity or file navigation tree."""

    name: str
    kind: str
    identifier: Optional[str] = None
    children: List["NavNode"] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "kind": self.kind,
            "identifier": self.identifier,
            "children": [child.to_dict() for child in self.children],
        }


@dataclass(frozen=True)
class SiteModel:
    """Everything the writer serializes."""

    project: str
    pages: Tuple[PageRecord, ...]
    entity_tree: Tuple[NavNode, ...]
    file_tree: Tuple[NavNode, ...]
    function_index: Tuple[str, ...]
    diagnostics: Tuple[Dict[str, Any], ...] = ()

    def page(self, identifier: str) -> Optional[PageRecord]:
        for record in self.pages:
            if record.identifier == identifier:
                return record
        return None

    def navigation(self) -> Dict[str, Any]:
        return {
            "entities": [node.to_dict() for node in self.entity_tree],
            "files": [node.to_dict() for node in self.file_tree],
        }
