"""Content-section detection for anchors inside the audited page."""

from __future__ import annotations

from collections.abc import Iterator

from bs4 import Tag

from link_audit_mcp.models.links import INTRO_SECTION_TITLE
from link_audit_mcp.utils import collapse_whitespace

INTRO_SELECTOR = ".al-intro"
SECTION_CLASS_PREFIX = "al-sec-"
SECTION_TITLE_SELECTORS = (".al-sec-title h2", ".al-sec-title h3")
INTRO_SECTION = "intro"
UNKNOWN_SECTION = "unknown"

# Marker-prefixed classes that are section parts, not section types
NON_SECTION_CLASSES = frozenset({"al-sec", "al-sec-title", "al-sec-content"})

KNOWN_SECTION_CLASSES = (
    "al-sec-four",
    "al-sec-table",
    "al-sec-sumtiles",
    "al-sec-articles",
    "al-sec-stories",
    "al-sec-video",
    "al-sec-faqs",
    "al-sec-text",
    "al-sec-tiles",
)

DEFAULT_MAX_DEPTH = 15


def iter_ancestors(tag: Tag, max_depth: int = DEFAULT_MAX_DEPTH) -> Iterator[Tag]:
    """Yield the tag itself and then its ancestors, at most max_depth elements.

    Args:
        tag: Starting element (level 0)
        max_depth: Maximum number of elements to yield

    Yields:
        Elements from the tag upwards, stopping before the document root
    """
    current: Tag | None = tag
    level = 0
    while isinstance(current, Tag) and current.name != "[document]" and level < max_depth:
        yield current
        current = current.parent
        level += 1


def closest(tag: Tag, selector: str) -> Tag | None:
    """Return the nearest element matching selector, starting at tag itself."""
    return tag.css.closest(selector)


def _section_class(tag: Tag) -> str | None:
    for cls in tag.get("class") or ():
        if cls.startswith(SECTION_CLASS_PREFIX) and cls not in NON_SECTION_CLASSES:
            return cls
    return None


def find_section_element(
    tag: Tag, max_depth: int = DEFAULT_MAX_DEPTH
) -> tuple[Tag, str] | None:
    """Find the nearest ancestor carrying a section-type class.

    Args:
        tag: Element to start from
        max_depth: Maximum number of levels to walk

    Returns:
        Tuple of (section element, section class), or None if not found
    """
    for element in iter_ancestors(tag, max_depth):
        section_class = _section_class(element)
        if section_class:
            return element, section_class
    return None


def detect_section(tag: Tag, max_depth: int = DEFAULT_MAX_DEPTH) -> str:
    """Determine which content section an anchor belongs to.

    Args:
        tag: Anchor element
        max_depth: Maximum number of levels for the class walk

    Returns:
        "intro", a section type such as "four" or "articles", or "unknown"
    """
    if closest(tag, INTRO_SELECTOR) is not None:
        return INTRO_SECTION

    found = find_section_element(tag, max_depth)
    if found:
        return found[1][len(SECTION_CLASS_PREFIX):]

    for section_class in KNOWN_SECTION_CLASSES:
        if closest(tag, f".{section_class}") is not None:
            return section_class[len(SECTION_CLASS_PREFIX):]

    return UNKNOWN_SECTION


def get_section_title(tag: Tag, max_depth: int = DEFAULT_MAX_DEPTH) -> str | None:
    """Get the heading of the section an anchor belongs to.

    Intro links get a fixed title. Other sections use the first non-empty
    h2 in their title container, then the first h3.

    Args:
        tag: Anchor element
        max_depth: Maximum number of levels for the class walk

    Returns:
        Section title, or None if the section or its heading is missing
    """
    if closest(tag, INTRO_SELECTOR) is not None:
        return INTRO_SECTION_TITLE

    found = find_section_element(tag, max_depth)
    if not found:
        return None

    section_element = found[0]
    for selector in SECTION_TITLE_SELECTORS:
        heading = section_element.select_one(selector)
        if heading is not None:
            title = collapse_whitespace(heading.get_text())
            if title:
                return title

    return None
