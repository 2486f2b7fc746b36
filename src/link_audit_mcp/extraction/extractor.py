"""Link extraction from the audited page's content regions."""

from __future__ import annotations

import logging
from urllib.parse import urljoin

from bs4 import BeautifulSoup, NavigableString, Tag

from link_audit_mcp.extraction.categorizer import categorize_url
from link_audit_mcp.extraction.sections import closest, detect_section, get_section_title
from link_audit_mcp.models.links import DescriptionCheck, Link
from link_audit_mcp.utils import collapse_whitespace, extract_text_content, truncate_text

logger = logging.getLogger(__name__)

INTRO_REGION_SELECTOR = ".al-intro"
MAIN_REGION_SELECTOR = "#al-main"

# Elements inside an anchor that usually hold its label, most specific first
TITLE_SELECTORS = ", ".join(
    [
        ".tour-title",
        ".card-header",
        ".item-name",
        "h1",
        "h2",
        "h3",
        "h4",
        ".title",
        ".name",
        ".label",
        "strong",
        "b",
        "em",
    ]
)

IMAGE_LINK_TEXT = "Image Link"
NO_TEXT = "[No text]"


def parse_html(html: str) -> BeautifulSoup:
    """Parse an HTML document with the lxml parser."""
    return BeautifulSoup(html, "lxml")


def _is_skipped_href(href: str) -> bool:
    return not href or href == "#" or href.startswith("javascript:")


def _direct_text(anchor: Tag) -> str:
    """Concatenate the anchor's own text nodes, ignoring nested elements."""
    return "".join(
        str(child) for child in anchor.children if type(child) is NavigableString
    )


def extract_link_text(anchor: Tag) -> str:
    """Derive a display label for an anchor.

    Sources are tried in order until one yields text: a title-like child
    element, the alt text of a contained image, the aria-label attribute and
    finally the anchor's direct text nodes. The label is whitespace-collapsed
    and truncated to 120 characters.

    Args:
        anchor: Anchor element

    Returns:
        Display text, "Image Link" or "[No text]" when nothing was found
    """
    text = ""

    title_element = anchor.select_one(TITLE_SELECTORS)
    if title_element is not None:
        text = collapse_whitespace(title_element.get_text())

    image = anchor.find("img")
    if not text and image is not None:
        text = collapse_whitespace(image.get("alt", ""))

    if not text:
        text = collapse_whitespace(anchor.get("aria-label", ""))

    if not text:
        text = collapse_whitespace(_direct_text(anchor))

    text = truncate_text(text)

    if not text:
        return IMAGE_LINK_TEXT if image is not None else NO_TEXT
    return text


def check_has_description(anchor: Tag, section: str) -> DescriptionCheck:
    """Check whether a link tile shows a description for its section type.

    Section title links and buttons never need one. Tile sections (four,
    sumtiles) and tables carry their description in a dedicated element;
    article tiles are only checked when they sit in a titled div.

    Args:
        anchor: Anchor element
        section: Section label from :func:`detect_section`

    Returns:
        DescriptionCheck with the verdict and the reason code
    """
    in_section_title = closest(anchor, ".al-sec-title") is not None
    is_button = "al-btn" in (anchor.get("class") or ()) or anchor.select_one(".al-btn") is not None
    if in_section_title or is_button:
        return DescriptionCheck(has_description=False, reason="not_applicable")

    if section in ("four", "sumtiles"):
        details_selector = ".al-lnk-details"
    elif section == "table":
        details_selector = ".al-lp-table-summary"
    elif section == "articles":
        if closest(anchor, "div[title]") is None:
            return DescriptionCheck(has_description=False, reason="parent_no_title")
        details_selector = ".al-lnk-details"
    else:
        return DescriptionCheck(has_description=False, reason="not_applicable")

    details = anchor.select_one(details_selector)
    description = extract_text_content(details.decode_contents()) if details is not None else ""
    return DescriptionCheck(has_description=bool(description), reason="checked")


def extract_links(
    soup: BeautifulSoup,
    selector: str,
    base_url: str,
    domain: str | None = None,
) -> list[Link]:
    """Extract categorized links from every element matching selector.

    Args:
        soup: Parsed document
        selector: CSS selector of the content region(s)
        base_url: URL used to resolve relative hrefs
        domain: Site domain for categorization (default: configured site_domain)

    Returns:
        Links in document order, with category placeholders attached
    """
    links: list[Link] = []
    position = 0

    for region in soup.select(selector):
        for anchor in region.select("a[href]"):
            position += 1
            href = anchor.get("href", "").strip()
            if _is_skipped_href(href):
                continue

            try:
                href = urljoin(base_url, href)
            except ValueError as e:
                logger.warning(f"Invalid URL: {href} ({e})")
                continue

            section = detect_section(anchor)
            links.append(
                Link.create(
                    text=extract_link_text(anchor),
                    href=href,
                    position=position,
                    category=categorize_url(href, domain),
                    section=section,
                    section_title=get_section_title(anchor),
                    description=check_has_description(anchor, section),
                )
            )

    logger.debug(f"Extracted {len(links)} links from {selector} on {base_url}")
    return links


def extract_page_links(
    soup: BeautifulSoup, base_url: str, domain: str | None = None
) -> tuple[list[Link], list[Link]]:
    """Extract links from the intro region and the main region.

    Returns:
        Tuple of (intro links, main links)
    """
    intro_links = extract_links(soup, INTRO_REGION_SELECTOR, base_url, domain)
    main_links = extract_links(soup, MAIN_REGION_SELECTOR, base_url, domain)
    return intro_links, main_links
