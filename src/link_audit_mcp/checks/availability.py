"""Category-specific availability checks for validated links.

Each checker fetches one page (following redirects) and inspects it for
signs that the linked product is actually bookable: a positive price, a
matching filter option, or simply an HTTP 200. Checkers only run for links
whose validation succeeded. :func:`check_link_status` is the exception: it
serves extraction with availability checking and takes any link.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Awaitable, Callable
from urllib.parse import urlsplit

import requests

from link_audit_mcp.checks.matching import (
    activity_matches,
    normalize_activity,
    normalize_ship_name,
    ship_names_match,
)
from link_audit_mcp.checks.validators import BROWSER_USER_AGENT
from link_audit_mcp.extraction.extractor import parse_html
from link_audit_mcp.models.links import (
    CONTACT_PAGE,
    CRUISE_SHIP,
    CRUISE_WITH_ID,
    EXTERNAL_LINK,
    STATUS_AVAILABLE,
    STATUS_CLIENT_ERROR,
    STATUS_ERROR,
    STATUS_NOT_FOUND,
    STATUS_TIMEOUT,
    STORY,
    TOUR_ACTIVITY,
    TOUR_WITH_ID,
    ActivityAvailability,
    AvailabilityResult,
    LinkStatus,
    PageAvailability,
    PriceAvailability,
    ShipAvailability,
    TourAvailability,
)
from link_audit_mcp.providers.base import ScrapeResult, ScraperProvider

logger = logging.getLogger(__name__)

DEFAULT_CHECK_TIMEOUT = 8
EXTERNAL_CHECK_TIMEOUT = 12
LINK_STATUS_TIMEOUT = 10

DEFAULT_CURRENCY = "USD"

AMOUNT_SELECTOR = ".al-amount"

# Most specific first; the first selector with a match wins
TOUR_PRICE_SELECTORS = (
    ".al-price-summary .al-amount",
    ".al-price-summary .al-price-min .al-amount",
    ".al-price-summary .al-price .al-amount",
    ".al-price-min .al-amount",
    ".al-price .al-amount",
    '[class*="price"] .al-amount',
    ".al-amount",
)

INDEX_LIST_SELECTOR = ".al-indexlist"
EXPERIENCE_OPTION_SELECTOR = ".al-il-fields-experience > ul > li > label"
ACTIVITY_OPTION_SELECTOR = ".al-il-fields-activity > ul > li > label"
SHIP_OPTION_SELECTOR = ".al-il-fields-ship > ul > li > label"

PAGE_TYPE_LANDING = "landing"
PAGE_TYPE_INDEX = "index"

_NON_AMOUNT_RE = re.compile(r"[^\d.]")
_LEADING_NUMBER_RE = re.compile(r"\d+(?:\.\d*)?|\.\d+")
_CURRENCY_STRIP_RE = re.compile(r"[0-9.,\s]")
_TOUR_ID_RE = re.compile(r"/tours/(\d+)")
_SLASHES_RE = re.compile(r"/+")


async def _fetch(
    url: str, provider: ScraperProvider, timeout: float = DEFAULT_CHECK_TIMEOUT
) -> ScrapeResult:
    return await provider.scrape(
        url,
        timeout=timeout,
        max_retries=0,
        headers={"User-Agent": BROWSER_USER_AGENT},
    )


def parse_amount(text: str) -> float | None:
    """Read a price out of an amount label such as "$1,299".

    Everything but digits and dots is dropped, then the leading number is
    read, so "1.299.00" reads as 1.299.

    Returns:
        The number, or None if no digits were found
    """
    match = _LEADING_NUMBER_RE.match(_NON_AMOUNT_RE.sub("", text))
    if match is None:
        return None
    return float(match.group())


def parse_currency(text: str) -> str:
    """Return the non-numeric part of an amount label, "USD" if empty."""
    return _CURRENCY_STRIP_RE.sub("", text).strip() or DEFAULT_CURRENCY


def derive_tours_url(base_url: str) -> str:
    """Build the tours listing URL of the audited page.

    Example:
        https://www.adventure-life.com/galapagos/ ->
        https://www.adventure-life.com/galapagos/tours
    """
    parts = urlsplit(base_url)
    path = _SLASHES_RE.sub("/", f"{parts.path}/tours")
    return f"{parts.scheme}://{parts.netloc}{path}"


def _last_segment(url: str) -> str:
    segments = [segment for segment in urlsplit(url).path.split("/") if segment]
    return segments[-1] if segments else ""


def _option_labels(soup, selector: str) -> list[str]:
    labels = []
    for label in soup.select(selector):
        text = label.get_text().strip()
        if text:
            labels.append(text)
    return labels


async def check_cruise(
    url: str, provider: ScraperProvider, base_url: str | None = None
) -> PriceAvailability:
    """Check that a cruise page shows a positive price."""
    result = await _fetch(url, provider)
    if result.status_code != 200:
        return PriceAvailability(available=False, error=f"HTTP {result.status_code}")

    amount_element = parse_html(result.content).select_one(AMOUNT_SELECTOR)
    if amount_element is None:
        return PriceAvailability(available=False, error="No .al-amount element found")

    amount_text = amount_element.get_text().strip()
    amount = parse_amount(amount_text)
    available = amount is not None and amount > 0

    return PriceAvailability(
        available=available,
        price=amount if available else None,
        currency=parse_currency(amount_text) if available else None,
    )


async def check_tour(
    url: str, provider: ScraperProvider, base_url: str | None = None
) -> TourAvailability:
    """Check that a tour page shows a positive price, collecting tour details.

    The tour id comes from the URL; the price from the first of
    :data:`TOUR_PRICE_SELECTORS` that matches. Title, departure and duration
    are reported whatever the price.
    """
    tour_id_match = _TOUR_ID_RE.search(urlsplit(url).path)
    tour_id = int(tour_id_match.group(1)) if tour_id_match else None

    result = await _fetch(url, provider)
    if result.status_code != 200:
        return TourAvailability(available=False, error=f"HTTP {result.status_code}", tour_id=tour_id)

    soup = parse_html(result.content)

    price_element = None
    price_selector = None
    for selector in TOUR_PRICE_SELECTORS:
        price_element = soup.select_one(selector)
        if price_element is not None:
            price_selector = selector
            break

    if price_element is None:
        return TourAvailability(available=False, error="No price element found", tour_id=tour_id)

    amount_text = price_element.get_text().strip()
    amount = parse_amount(amount_text)
    available = amount is not None and amount > 0

    title = soup.select_one("h1")
    departure = "".join(el.get_text() for el in soup.select(".al-tour-departure")).strip()
    duration = "".join(el.get_text() for el in soup.select(".al-tour-duration")).strip()

    return TourAvailability(
        available=available,
        tour_id=tour_id,
        price=amount if available else None,
        currency=parse_currency(amount_text) if available else None,
        price_text=amount_text,
        price_selector=price_selector,
        page_title=(title.get_text().strip() or None) if title is not None else None,
        departure_info=departure or None,
        duration_info=duration or None,
    )


async def check_tour_activity(
    url: str, provider: ScraperProvider, base_url: str | None = None
) -> ActivityAvailability:
    """Check that a tour-activity page lists its own activity as a filter.

    A page without an index list is a landing page and counts as available.
    On an index page the URL's last path segment is matched against the
    experience and activity filter labels.
    """
    result = await _fetch(url, provider)
    if result.status_code != 200:
        return ActivityAvailability(
            available=False,
            error=f"HTTP {result.status_code}",
            experience_options=[],
            activity_options=[],
        )

    soup = parse_html(result.content)

    if soup.select_one(INDEX_LIST_SELECTOR) is None:
        return ActivityAvailability(
            available=True,
            page_type=PAGE_TYPE_LANDING,
            experience_options=[],
            activity_options=[],
        )

    experience_options = _option_labels(soup, EXPERIENCE_OPTION_SELECTOR)
    activity_options = _option_labels(soup, ACTIVITY_OPTION_SELECTOR)
    activity_path = _last_segment(url)

    in_experience = any(activity_matches(activity_path, option) for option in experience_options)
    in_activity = any(activity_matches(activity_path, option) for option in activity_options)

    return ActivityAvailability(
        available=in_experience or in_activity,
        page_type=PAGE_TYPE_INDEX,
        experience_options=experience_options,
        activity_options=activity_options,
        activity_path=activity_path,
        normalized_activity_path=normalize_activity(activity_path),
        is_available_in_experience=in_experience,
        is_available_in_activity=in_activity,
    )


async def check_cruise_ship(
    url: str, provider: ScraperProvider, base_url: str | None = None
) -> ShipAvailability:
    """Check that a ship appears among the ship filters of the tours listing.

    The listing is the audited page's own ``/tours`` sub-page, so base_url
    (the seed URL) is required.
    """
    if not base_url:
        raise ValueError("Cruise ship check needs the audited page URL")

    tours_url = derive_tours_url(base_url)
    result = await _fetch(tours_url, provider)
    if result.status_code != 200:
        return ShipAvailability(
            available=False,
            error=f"HTTP {result.status_code} when loading tours page",
            ship_options=[],
            tours_url=tours_url,
        )

    ship_options = _option_labels(parse_html(result.content), SHIP_OPTION_SELECTOR)
    ship_name = _last_segment(url)

    return ShipAvailability(
        available=any(ship_names_match(ship_name, option) for option in ship_options),
        ship_options=ship_options,
        ship_name=ship_name,
        normalized_ship_name=normalize_ship_name(ship_name),
        normalized_options=[
            {"original": option, "normalized": normalize_ship_name(option)}
            for option in ship_options
        ],
        tours_url=tours_url,
    )


async def check_page(
    url: str, provider: ScraperProvider, base_url: str | None = None
) -> PageAvailability:
    """Check that a page answers HTTP 200 after redirects."""
    result = await _fetch(url, provider)
    if result.status_code != 200:
        return PageAvailability(available=False, error=f"HTTP {result.status_code}")
    return PageAvailability(available=True)


async def check_external_page(
    url: str, provider: ScraperProvider, base_url: str | None = None
) -> PageAvailability:
    """Like :func:`check_page`, with the longer timeout off-site hosts get."""
    result = await _fetch(url, provider, timeout=EXTERNAL_CHECK_TIMEOUT)
    if result.status_code != 200:
        return PageAvailability(available=False, error=f"HTTP {result.status_code}")
    return PageAvailability(available=True)


async def check_link_status(url: str, provider: ScraperProvider) -> LinkStatus:
    """Check that a link loads, following redirects.

    Used by extraction when availability checking is requested, for every
    link regardless of category. A 404 is reported apart from other client
    errors. Transport failures are returned rather than raised.

    Args:
        url: Absolute link URL
        provider: Fetch provider

    Returns:
        LinkStatus with available, status label and message
    """
    try:
        result = await _fetch(url, provider, timeout=LINK_STATUS_TIMEOUT)
    except requests.Timeout:
        return LinkStatus(available=False, status=STATUS_TIMEOUT, message="Request timeout")
    except requests.RequestException as e:
        return LinkStatus(available=False, status=STATUS_ERROR, message=f"{type(e).__name__}: {e}")

    status = result.status_code
    if status == 404:
        return LinkStatus(available=False, status=STATUS_NOT_FOUND, message="Page not found")
    if 400 <= status < 500:
        return LinkStatus(available=False, status=STATUS_CLIENT_ERROR, message=f"HTTP {status}")
    if status >= 500:
        return LinkStatus(available=False, status=STATUS_ERROR, message=f"HTTP {status}")
    return LinkStatus(available=True, status=STATUS_AVAILABLE, message="Page loads successfully")


@dataclass(frozen=True)
class AvailabilityChecker:
    """A checker coroutine and the result type it produces."""

    check: Callable[..., Awaitable[AvailabilityResult]]
    result_type: type[AvailabilityResult]

    def failure(self, error: str) -> AvailabilityResult:
        """Build the unavailable result reported when the check raised."""
        return self.result_type(available=False, error=error)


AVAILABILITY_CHECKERS: dict[str, AvailabilityChecker] = {
    CRUISE_WITH_ID: AvailabilityChecker(check_cruise, PriceAvailability),
    TOUR_WITH_ID: AvailabilityChecker(check_tour, TourAvailability),
    TOUR_ACTIVITY: AvailabilityChecker(check_tour_activity, ActivityAvailability),
    CRUISE_SHIP: AvailabilityChecker(check_cruise_ship, ShipAvailability),
    STORY: AvailabilityChecker(check_page, PageAvailability),
    CONTACT_PAGE: AvailabilityChecker(check_page, PageAvailability),
    EXTERNAL_LINK: AvailabilityChecker(check_external_page, PageAvailability),
}
