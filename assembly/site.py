"""
Output assembly: turns linked symbols into the in-memory site model.
"""

import logging

from assembly.models import SiteModel
from assembly.navigation import build_entity_tree, build_file_tree, build_function_index
from assembly.pages import build_pages
from crossref.models import LinkedSymbols

logger = logging.getLogger(__name__)


def assemble_site(linked: LinkedSymbols, project: str) -> SiteModel:
    """Build pages, navigation trees and the function index.

    Args:
        linked: Output of ``crossref.link_symbols``.
        project: Project name used in page titles.
    """
    site = SiteModel(
        project=project,
        pages=tuple(build_pages(linked, project)),
        entity_tree=tuple(build_entity_tree(linked)),
        file_tree=tuple(build_file_tree(linked)),
        function_index=tuple(build_function_index(linked)),
        diagnostics=tuple(d.to_dict() for d in linked.table.diagnostics),
    )
    logger.info(
        "Assembled %d page(s), %d function(s), %d diagnostic(s)",
        len(site.pages),
        len(site.function_index),
        len(site.diagnostics),
    )
    return site
