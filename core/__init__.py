"""Core shared contracts and utilities."""

from core.identifiers import (
    ANONYMOUS_SEGMENT,
    IDENTIFIER_SEPARATOR,
    SCOPE_SEPARATOR,
    anchor_for,
    build_identifier,
    category_for_kind,
    display_name,
    file_identifier,
    normalize_cpp_name,
    parse_identifier,
    qualified_name,
    split_qualified_name,
)
from core.structured_logging import (
    configure_structured_logging,
    get_build_id,
    phase_scope,
    set_build_id,
)
from core.docs_config import (
    AnalysisSpec,
    CmakeSpec,
    ConfigurationError,
    DocsConfig,
    DocsSpec,
    ProjectSpec,
    find_config_file,
    load_docs_config,
    resolve_workers,
    tree_url_for,
)
from core.run_artifacts import summarize_diagnostics, write_run_report

__all__ = [
    "ANONYMOUS_SEGMENT",
    "IDENTIFIER_SEPARATOR",
    "SCOPE_SEPARATOR",
    "anchor_for",
    "build_identifier",
    "category_for_kind",
    "display_name",
    "file_identifier",
    "normalize_cpp_name",
    "parse_identifier",
    "qualified_name",
    "split_qualified_name",
    "configure_structured_logging",
    "get_build_id",
    "phase_scope",
    "set_build_id",
    "AnalysisSpec",
    "CmakeSpec",
    "ConfigurationError",
    "DocsConfig",
    "DocsSpec",
    "ProjectSpec",
    "find_config_file",
    "load_docs_config",
    "resolve_workers",
    "tree_url_for",
    "summarize_diagnostics",
    "write_run_report",
]
