"""Link extraction and classification.

This module turns a fetched page into a flat list of categorized links:
- categorizer.py: URL-shape taxonomy (first matching rule wins)
- sections.py: content-section and section-title detection
- extractor.py: anchor walking, text derivation and description checks

Everything here is synchronous and performs no network I/O.
"""

from link_audit_mcp.extraction.categorizer import categorize_url
from link_audit_mcp.extraction.extractor import (
    INTRO_REGION_SELECTOR,
    MAIN_REGION_SELECTOR,
    check_has_description,
    extract_link_text,
    extract_links,
    extract_page_links,
    parse_html,
)
from link_audit_mcp.extraction.sections import (
    detect_section,
    get_section_title,
    iter_ancestors,
)

__all__ = [
    "categorize_url",
    "detect_section",
    "get_section_title",
    "iter_ancestors",
    "check_has_description",
    "extract_link_text",
    "extract_links",
    "extract_page_links",
    "parse_html",
    "INTRO_REGION_SELECTOR",
    "MAIN_REGION_SELECTOR",
]
