"""
Layer 3: Output Assembler

Builds the page records, navigation trees and function index of the site
and writes them for the client-side renderer.
"""

from assembly.models import NavNode, PageMetadata, PageRecord, SiteModel
from assembly.pages import build_pages
from assembly.navigation import build_entity_tree, build_file_tree, build_function_index
from assembly.content import render_content_html
from assembly.site import assemble_site
from assembly.writer import write_site

__all__ = [
    # Data models
    "NavNode",
    "PageMetadata",
    "PageRecord",
    "SiteModel",
    # Pages and navigation
    "build_pages",
    "build_entity_tree",
    "build_file_tree",
    "build_function_index",
    "render_content_html",
    # High-level orchestration
    "assemble_site",
    "write_site",
]
