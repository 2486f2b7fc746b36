"""URL categorization for links found on the audited site."""

from __future__ import annotations

import logging
import re
from urllib.parse import urlsplit

from link_audit_mcp.admin.service import get_config
from link_audit_mcp.models.links import (
    ARTICLE,
    CONTACT_PAGE,
    CRUISE_SHIP,
    CRUISE_WITH_ID,
    DESTINATION_PREFIX,
    DESTINATION_SPECIAL_PAGE,
    EXTERNAL_LINK,
    INVALID_URL,
    OPERATOR_WITH_ID,
    OTHER,
    STORIES_INDEX,
    STORY,
    TOUR_ACTIVITY,
    TOUR_WITH_ID,
    WRONG_CONTACT_PATH,
)

logger = logging.getLogger(__name__)

CONTACT_KEYWORDS = ("contact", "contact-us", "get-in-touch")
WRONG_CONTACT_KEYWORDS = ("contactt",)

SPECIAL_PAGE_KEYWORDS = frozenset(
    {
        "land-tours",
        "ships",
        "videos",
        "myTrips",
        "tours",
        "cruises",
        "hotels",
        "deals",
        "info",
        "articles",
        "stories",
    }
)

NON_DESTINATION_KEYWORDS = frozenset(
    {"articles", "stories", "deals", "tours", "cruises", "operators", "forms"}
)

_CRUISE_SHIP_RE = re.compile(r"^cruises/\d+/")
_CRUISE_WITH_ID_RE = re.compile(r"/cruises/\d+/")
_OPERATOR_WITH_ID_RE = re.compile(r"^operators/\d+(?:/|$)")
_NUMERIC_RE = re.compile(r"\d+")


def is_site_host(hostname: str | None, domain: str) -> bool:
    """Check if a hostname belongs to the site (with or without www.)."""
    if not hostname:
        return False
    hostname = hostname.lower()
    domain = domain.lower()
    return hostname == domain or hostname == f"www.{domain}"


def _followed_by_segment(segments: list[str], keyword: str) -> bool:
    """Check if keyword is a segment with at least one segment after it."""
    return keyword in segments[:-1]


def categorize_url(url: str, domain: str | None = None) -> str:
    """Map an absolute URL to one category of the link taxonomy.

    Rules are checked in a fixed order and the first match wins, so exactly
    one category applies to any URL.

    Args:
        url: Absolute URL to categorize
        domain: Site domain without "www." (default: configured site_domain)

    Returns:
        Category label, "invalid-url" if the URL cannot be parsed
    """
    if domain is None:
        domain = get_config("site_domain")

    try:
        parsed = urlsplit(url)
        hostname = parsed.hostname
    except ValueError as e:
        logger.warning(f"URL parsing error: {url} ({e})")
        return INVALID_URL

    if not parsed.scheme or (parsed.scheme in ("http", "https") and not parsed.netloc):
        logger.warning(f"URL parsing error: {url} (not an absolute URL)")
        return INVALID_URL

    if not is_site_host(hostname, domain):
        return EXTERNAL_LINK

    clean_path = parsed.path.strip("/")
    segments = clean_path.split("/")
    last_segment = segments[-1]

    if any(keyword in clean_path for keyword in WRONG_CONTACT_KEYWORDS):
        return WRONG_CONTACT_PATH

    if any(keyword in clean_path for keyword in CONTACT_KEYWORDS):
        return CONTACT_PAGE

    if _CRUISE_SHIP_RE.match(clean_path):
        return CRUISE_SHIP

    if _CRUISE_WITH_ID_RE.search(clean_path):
        return CRUISE_WITH_ID

    if last_segment in SPECIAL_PAGE_KEYWORDS:
        return DESTINATION_SPECIAL_PAGE

    if _followed_by_segment(segments, "articles"):
        return ARTICLE

    if _followed_by_segment(segments, "stories"):
        return STORY

    if last_segment == "stories" and len(segments) == 1:
        return STORIES_INDEX

    if _OPERATOR_WITH_ID_RE.match(clean_path):
        return OPERATOR_WITH_ID

    if "/tours/" in clean_path:
        tours_index = segments.index("tours")
        next_segment = segments[tours_index + 1]
        if _NUMERIC_RE.fullmatch(next_segment):
            return TOUR_WITH_ID
        return TOUR_ACTIVITY

    if not any(segment in NON_DESTINATION_KEYWORDS for segment in segments):
        return f"{DESTINATION_PREFIX}{len(segments)}"

    return OTHER
