"""Pytest configuration and fixtures for link-audit-mcp tests."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest
import requests

from link_audit_mcp.admin.service import reset_config
from link_audit_mcp.metrics import reset_metrics
from link_audit_mcp.providers import ScrapeResult, ScraperProvider

SITE = "https://www.adventure-life.com"
SEED_URL = f"{SITE}/peru"


class FakeProvider(ScraperProvider):
    """Provider answering from a table of canned responses.

    Responses are registered per URL; unknown URLs get a 404. An exception
    registered for a URL is raised instead. Every call is recorded, and the
    largest number of concurrent calls is tracked when a delay is set.
    """

    def __init__(self, delay: float = 0) -> None:
        self.delay = delay
        self.responses: dict[str, Any] = {}
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    def add(
        self,
        url: str,
        content: str = "<html></html>",
        status_code: int = 200,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.responses[url] = ScrapeResult(
            url=url,
            content=content,
            status_code=status_code,
            content_type="text/html",
            headers=headers or {},
        )

    def fail(self, url: str, error: Exception) -> None:
        self.responses[url] = error

    def urls_called(self) -> list[str]:
        return [url for url, _ in self.calls]

    def supports_url(self, url: str) -> bool:
        return url.startswith(("http://", "https://"))

    async def scrape(self, url: str, **kwargs: Any) -> ScrapeResult:
        self.calls.append((url, kwargs))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            response = self.responses.get(url)
            if isinstance(response, Exception):
                raise response
            if response is None:
                return ScrapeResult(
                    url=url, content="Not found", status_code=404, content_type="text/html"
                )
            return response
        finally:
            self.in_flight -= 1


@pytest.fixture(autouse=True)
def reset_state(monkeypatch: pytest.MonkeyPatch):
    """Give every test default config, fresh metrics and a fresh link gate."""
    reset_config()
    reset_metrics()
    monkeypatch.setattr("link_audit_mcp.scheduler._link_gate", None)
    yield
    reset_config()


@pytest.fixture
def fake_provider() -> FakeProvider:
    """Provider with no canned responses."""
    return FakeProvider()


@pytest.fixture
def audit_page_html() -> str:
    """Page with an intro region and two titled sections in the main region."""
    return """
    <html>
    <head><title>Peru Travel</title></head>
    <body>
        <div class="al-intro">
            <p>Start with the
            <a href="/peru/tours/18055/inca-trail-trek">Inca Trail Trek</a>
            or read <a href="https://www.lonelyplanet.com/peru">Lonely Planet</a>.</p>
        </div>
        <div id="al-main">
            <div class="al-sec al-sec-four">
                <div class="al-sec-title"><h2>Top   Cruises</h2></div>
                <div class="al-sec-content">
                    <a href="/galapagos/cruises/1234/sea-cloud">
                        <span class="item-name">Sea Cloud Cruise</span>
                        <div class="al-lnk-details">Seven nights &amp; five islands</div>
                    </a>
                    <a href="/cruises/77/wind-star"><img src="ws.jpg" alt="Wind Star"></a>
                    <a href="#">Back to top</a>
                    <a href="javascript:void(0)">Open map</a>
                </div>
            </div>
            <div class="al-sec al-sec-articles">
                <div class="al-sec-title"><h3>Travel Stories</h3></div>
                <div title="Stories">
                    <a href="/peru/stories/machu-picchu-sunrise"><strong>Sunrise</strong></a>
                </div>
                <a href="/contact">Contact us</a>
                <a href="/peru/tours/hiking-trekking">Hiking</a>
                <a href="/peru/machu-picchu">Machu Picchu</a>
            </div>
        </div>
    </body>
    </html>
    """


@pytest.fixture
def tour_page_html() -> str:
    """Tour detail page with a price summary."""
    return """
    <html><body>
        <h1> Inca Trail Trek </h1>
        <div class="al-price-summary"><span class="al-amount">$1,299</span></div>
        <div class="al-tour-departure">Daily departures</div>
        <div class="al-tour-duration">4 days</div>
    </body></html>
    """


@pytest.fixture
def tours_index_html() -> str:
    """Tours listing with experience, activity and ship filters."""
    return """
    <html><body>
        <div class="al-indexlist">
            <div class="al-il-fields-experience"><ul>
                <li><label>Hiking &amp; Trekking</label></li>
                <li><label>Wildlife</label></li>
            </ul></div>
            <div class="al-il-fields-activity"><ul>
                <li><label>Kayaking</label></li>
                <li><label> </label></li>
            </ul></div>
            <div class="al-il-fields-ship"><ul>
                <li><label>M/S Wind Star</label></li>
                <li><label>Sea Cloud</label></li>
            </ul></div>
        </div>
    </body></html>
    """


@pytest.fixture
def site_provider(
    audit_page_html: str, tour_page_html: str, tours_index_html: str
) -> FakeProvider:
    """Provider serving the sample page and every page it links to."""
    provider = FakeProvider()
    provider.add(SEED_URL, audit_page_html)
    provider.add(f"{SITE}/peru/tours/18055/inca-trail-trek", tour_page_html)
    provider.add("https://www.lonelyplanet.com/peru")
    provider.add(
        f"{SITE}/galapagos/cruises/1234/sea-cloud",
        '<html><body><span class="al-amount">0</span></body></html>',
    )
    provider.add(f"{SITE}/cruises/77/wind-star")
    provider.add(f"{SITE}/peru/tours", tours_index_html)
    provider.add(
        f"{SITE}/peru/stories/machu-picchu-sunrise",
        status_code=301,
        headers={"Location": f"{SITE}/stories/machu-picchu-sunrise"},
    )
    provider.add(f"{SITE}/contact")
    provider.add(f"{SITE}/peru/tours/hiking-trekking", tours_index_html)
    # /peru/machu-picchu is left unregistered and answers 404
    return provider


@pytest.fixture
def timeout_error() -> requests.Timeout:
    return requests.Timeout("Read timed out. (read timeout=8)")


@pytest.fixture
def slow_provider(audit_page_html: str) -> FakeProvider:
    """Provider that holds every call briefly so overlap can be measured."""
    provider = FakeProvider(delay=0.01)
    provider.add(SEED_URL, audit_page_html)
    return provider
