"""Tests for the audit service pipeline."""

from __future__ import annotations

import pytest
import pytest_asyncio
import requests

from link_audit_mcp.admin.service import update_config
from link_audit_mcp.audit.service import (
    audit_batch,
    audit_page,
    check_batch_urls,
    extract_page,
    fetch_page,
    validate_url,
)
from link_audit_mcp.errors import BatchSizeError, InvalidUrlError, PageFetchError
from link_audit_mcp.metrics import get_metrics
from link_audit_mcp.scheduler import ConcurrencyGate

SITE = "https://www.adventure-life.com"
SEED_URL = f"{SITE}/peru"

TOUR_URL = f"{SITE}/peru/tours/18055/inca-trail-trek"
STORY_URL = f"{SITE}/peru/stories/machu-picchu-sunrise"


def _only(links: list[dict]) -> dict:
    assert len(links) == 1
    return links[0]


class TestValidateUrl:
    """Tests for seed URL validation."""

    def test_accepts_http_and_https(self) -> None:
        assert validate_url(SEED_URL) == SEED_URL
        assert validate_url("http://example.com/") == "http://example.com/"

    @pytest.mark.parametrize("url", ["", "ftp://example.com/x", "/peru", None, "https://"])
    def test_rejects(self, url) -> None:
        with pytest.raises(InvalidUrlError) as exc_info:
            validate_url(url)

        assert exc_info.value.invalid_urls[0]["url"] == url


class TestFetchPage:
    """Tests for fetch_page function."""

    @pytest.mark.asyncio
    async def test_uses_page_settings(self, site_provider) -> None:
        update_config({"page_timeout": 30, "page_max_retries": 1})

        result = await fetch_page(SEED_URL, site_provider)

        assert result.status_code == 200
        _, kwargs = site_provider.calls[0]
        assert kwargs["timeout"] == 30
        assert kwargs["max_retries"] == 1
        assert get_metrics().requests_by_kind["page"] == 1

    @pytest.mark.asyncio
    async def test_error_status(self, fake_provider) -> None:
        with pytest.raises(PageFetchError) as exc_info:
            await fetch_page(SEED_URL, fake_provider)

        error = exc_info.value
        assert str(error) == "Failed to fetch URL. Status: 404"
        assert error.status_code == 404
        assert error.timed_out is False
        assert get_metrics().failures_by_kind["page"] == 1

    @pytest.mark.asyncio
    async def test_timeout(self, fake_provider, timeout_error) -> None:
        fake_provider.fail(SEED_URL, timeout_error)

        with pytest.raises(PageFetchError) as exc_info:
            await fetch_page(SEED_URL, fake_provider)

        assert exc_info.value.timed_out is True
        assert exc_info.value.status_code is None

    @pytest.mark.asyncio
    async def test_connection_error(self, fake_provider) -> None:
        fake_provider.fail(SEED_URL, requests.ConnectionError("Name or service not known"))

        with pytest.raises(PageFetchError) as exc_info:
            await fetch_page(SEED_URL, fake_provider)

        assert str(exc_info.value) == "ConnectionError: Name or service not known"
        assert exc_info.value.timed_out is False


class TestExtractPage:
    """Tests for extract_page function."""

    @pytest.mark.asyncio
    async def test_summary(self, site_provider) -> None:
        response = await extract_page(SEED_URL, site_provider)

        summary = response.summary
        assert response.message == "Links extracted successfully"
        assert summary.total_links == 8
        assert summary.intro_links == 2
        assert summary.main_links == 6
        assert {"pattern": "tour-with-id", "count": 1} in summary.links_by_pattern
        assert summary.links_by_section == [
            {"section": "intro", "count": 2},
            {"section": "four", "count": 2},
            {"section": "articles", "count": 4},
        ]
        assert summary.with_descriptions == 1
        assert summary.without_descriptions == 7

    @pytest.mark.asyncio
    async def test_does_not_check_links(self, site_provider) -> None:
        await extract_page(SEED_URL, site_provider)

        assert site_provider.urls_called() == [SEED_URL]

    @pytest.mark.asyncio
    async def test_link_records(self, site_provider) -> None:
        response = await extract_page(SEED_URL, site_provider)

        assert response.links[2] == {
            "text": "Sea Cloud Cruise",
            "href": f"{SITE}/galapagos/cruises/1234/sea-cloud",
            "position": 1,
            "category": "cruise-with-id",
            "section": "four",
            "sectionTitle": "Top Cruises",
            "hasDescription": True,
            "descriptionReason": "checked",
        }

    @pytest.mark.asyncio
    async def test_serializes_camel_case(self, site_provider) -> None:
        response = await extract_page(SEED_URL, site_provider)

        data = response.model_dump(by_alias=True)

        assert data["summary"]["totalLinks"] == 8
        assert "linksByPattern" in data["summary"]

    @pytest.mark.asyncio
    async def test_invalid_url(self, fake_provider) -> None:
        with pytest.raises(InvalidUrlError):
            await extract_page("not a url", fake_provider)

        assert fake_provider.calls == []

    @pytest.mark.asyncio
    async def test_grouped_links(self, site_provider) -> None:
        response = await extract_page(SEED_URL, site_provider)

        assert [link["href"] for link in response.links_by_pattern["tour-with-id"]] == [TOUR_URL]
        assert [len(group) for group in response.links_by_section.values()] == [2, 2, 4]
        assert response.summary.availability is None
        assert "availability" not in response.links[0]


class TestExtractPageAvailability:
    """Tests for extract_page with availability checking."""

    @pytest.mark.asyncio
    async def test_summary_rate(self, site_provider) -> None:
        response = await extract_page(SEED_URL, site_provider, check_availability=True)

        availability = response.summary.availability
        assert availability.checked is True
        assert availability.available == 7
        assert availability.unavailable == 1
        assert availability.availability_rate == "87.50%"

    @pytest.mark.asyncio
    async def test_broken_link(self, site_provider) -> None:
        response = await extract_page(SEED_URL, site_provider, check_availability=True)

        assert response.links[-1]["href"] == f"{SITE}/peru/machu-picchu"
        assert response.links[-1]["availability"] == {
            "available": False,
            "status": "broken_link_404",
            "message": "Page not found",
        }
        assert response.links[0]["availability"] == {
            "available": True,
            "status": "available",
            "message": "Page loads successfully",
        }

    @pytest.mark.asyncio
    async def test_timeout(self, site_provider, timeout_error) -> None:
        site_provider.fail(TOUR_URL, timeout_error)

        response = await extract_page(SEED_URL, site_provider, check_availability=True)

        assert response.links[0]["availability"] == {
            "available": False,
            "status": "timeout",
            "message": "Request timeout",
        }
        assert response.summary.availability.availability_rate == "75.00%"

    @pytest.mark.asyncio
    async def test_client_and_server_errors(self, site_provider) -> None:
        site_provider.add(f"{SITE}/contact", status_code=403)
        site_provider.add(f"{SITE}/cruises/77/wind-star", status_code=503)

        response = await extract_page(SEED_URL, site_provider, check_availability=True)

        by_href = {link["href"]: link["availability"] for link in response.links}
        assert by_href[f"{SITE}/contact"]["status"] == "client_error"
        assert by_href[f"{SITE}/contact"]["message"] == "HTTP 403"
        assert by_href[f"{SITE}/cruises/77/wind-star"]["status"] == "error"

    @pytest.mark.asyncio
    async def test_checks_each_href_once(self, site_provider, audit_page_html: str) -> None:
        site_provider.add(
            SEED_URL, audit_page_html.replace("/peru/machu-picchu", "/contact")
        )

        response = await extract_page(SEED_URL, site_provider, check_availability=True)

        assert site_provider.urls_called().count(f"{SITE}/contact") == 1
        assert response.summary.availability.available == 8
        assert response.summary.availability.availability_rate == "100.00%"

    @pytest.mark.asyncio
    async def test_follows_redirects(self, site_provider) -> None:
        await extract_page(SEED_URL, site_provider, check_availability=True)

        kwargs = dict(site_provider.calls)[TOUR_URL]
        assert kwargs.get("allow_redirects", True) is True
        assert kwargs["timeout"] == 10

    @pytest.mark.asyncio
    async def test_link_checks_bounded(self, slow_provider) -> None:
        gate = ConcurrencyGate(2)

        await extract_page(SEED_URL, slow_provider, check_availability=True, gate=gate)

        assert slow_provider.max_in_flight <= 2
        assert gate.stats()["submitted"] == 8

    @pytest.mark.asyncio
    async def test_metrics(self, site_provider, timeout_error) -> None:
        site_provider.fail(TOUR_URL, timeout_error)

        await extract_page(SEED_URL, site_provider, check_availability=True)

        assert get_metrics().failures_by_kind["availability"] == 1
        assert get_metrics().requests_by_kind["availability"] == 8


class TestAuditPage:
    """End-to-end tests for audit_page against the sample site."""

    @pytest_asyncio.fixture
    async def result(self, site_provider):
        return await audit_page(SEED_URL, site_provider)

    @pytest.mark.asyncio
    async def test_success(self, result) -> None:
        assert result.success is True
        assert result.error is None
        assert result.stats["totalLinks"] == 8
        assert result.stats["totalIntroLinks"] == 2
        assert result.stats["totalMainLinks"] == 6

    @pytest.mark.asyncio
    async def test_tour_price(self, result) -> None:
        tour = _only(result.links_by_category["tour-with-id"])

        assert tour["valid"] is True
        assert tour["available"] is True
        assert tour["tourId"] == 18055
        assert tour["price"] == 1299.0
        assert tour["currency"] == "$"
        assert "category" not in tour

    @pytest.mark.asyncio
    async def test_external_link(self, result) -> None:
        external = _only(result.links_by_category["external-link"])

        assert external["valid"] is True
        assert external["available"] is True

    @pytest.mark.asyncio
    async def test_zero_price_cruise_unavailable(self, result) -> None:
        cruise = _only(result.links_by_category["cruise-with-id"])

        assert cruise["valid"] is True
        assert cruise["available"] is False
        assert cruise["price"] is None
        assert result.stats["cruiseAvailability"] == {
            "total": 1,
            "valid": 1,
            "invalid": 0,
            "redirected": 0,
            "validationErrors": 0,
            "available": 0,
            "unavailable": 1,
            "availabilityErrors": 0,
        }

    @pytest.mark.asyncio
    async def test_ship_listed(self, result) -> None:
        ship = _only(result.links_by_category["cruise-ship"])

        assert ship["available"] is True
        assert ship["toursUrl"] == f"{SITE}/peru/tours"

    @pytest.mark.asyncio
    async def test_activity_in_experience_only(self, result) -> None:
        activity = _only(result.links_by_category["tour-activity"])

        assert activity["available"] is True
        assert activity["isAvailableInExperience"] is True
        assert activity["isAvailableInActivity"] is False
        assert result.stats["tourActivityValidation"]["availableInExperienceOnly"] == 1
        assert result.stats["tourActivityValidation"]["indexPages"] == 1

    @pytest.mark.asyncio
    async def test_redirected_story(self, result) -> None:
        story = _only(result.links_by_category["multi-level/stories/story-name"])

        assert story["valid"] is False
        assert story["status"] == 301
        assert story["redirected"] is True
        assert story["resolvedUrl"] == f"{SITE}/stories/machu-picchu-sunrise"
        assert story["available"] is None
        assert result.stats["storyValidation"]["redirected"] == 1

    @pytest.mark.asyncio
    async def test_missing_destination(self, result) -> None:
        destination = _only(result.links_by_category["multi-level/destination-2"])

        assert destination["valid"] is False
        assert destination["validationError"] == "HTTP 404"
        assert "available" not in destination
        assert result.stats["destinationValidation"] == {
            "total": 1,
            "valid": 0,
            "invalid": 1,
            "redirected": 0,
            "validationErrors": 1,
        }

    @pytest.mark.asyncio
    async def test_availability_requires_validity(self, site_provider) -> None:
        """Test that links failing validation are never availability-checked."""
        await audit_page(SEED_URL, site_provider)

        assert site_provider.urls_called().count(STORY_URL) == 1
        assert site_provider.urls_called().count(f"{SITE}/peru/machu-picchu") == 1
        assert site_provider.urls_called().count(TOUR_URL) == 2

    @pytest.mark.asyncio
    async def test_groupings(self, result) -> None:
        sections = result.links_by_section

        assert [group["title"] for group in sections["four"]] == ["Top Cruises"]
        assert [group["title"] for group in sections["intro"]] == ["Introduction Section"]
        assert result.section_category_matrix["four"] == {"cruise-with-id": 1, "cruise-ship": 1}
        assert result.stats["sectionStats"]["articles"]["titles"] == ["Travel Stories"]

    @pytest.mark.asyncio
    async def test_detailed_results(self, result) -> None:
        detailed = result.detailed_results

        assert len(detailed["tourWithIdLinks"]) == 1
        assert "position" not in detailed["cruiseLinks"][0]
        assert [entry["section"] for entry in detailed["sectionBreakdown"]] == [
            "intro",
            "four",
            "articles",
        ]
        assert detailed["sectionBreakdown"][2]["titleGroups"][0]["linkCount"] == 4

    @pytest.mark.asyncio
    async def test_checks_each_href_once(self, site_provider, audit_page_html: str) -> None:
        page = audit_page_html.replace(
            "</body>", '<div class="al-intro"><a href="/contact">Again</a></div></body>'
        )
        site_provider.add(SEED_URL, page)

        result = await audit_page(SEED_URL, site_provider)

        contacts = result.links_by_category["contact-page"]
        assert len(contacts) == 2
        assert all(link["valid"] is True for link in contacts)
        assert site_provider.urls_called().count(f"{SITE}/contact") == 2

    @pytest.mark.asyncio
    async def test_link_checks_bounded(self, slow_provider) -> None:
        await audit_page(SEED_URL, slow_provider, gate=ConcurrencyGate(2))

        assert slow_provider.max_in_flight == 2

    @pytest.mark.asyncio
    async def test_checker_exception_isolated(self, site_provider) -> None:
        site_provider.fail(f"{SITE}/peru/tours", RuntimeError("index exploded"))

        result = await audit_page(SEED_URL, site_provider)

        ship = _only(result.links_by_category["cruise-ship"])
        assert ship["available"] is False
        assert ship["availabilityError"] == "RuntimeError: index exploded"
        assert _only(result.links_by_category["contact-page"])["available"] is True

    @pytest.mark.asyncio
    async def test_metrics(self, site_provider) -> None:
        await audit_page(SEED_URL, site_provider)

        metrics = get_metrics()
        assert metrics.requests_by_kind["page"] == 1
        assert metrics.requests_by_kind["validation"] == 8
        assert metrics.requests_by_kind["availability"] == 6

    @pytest.mark.asyncio
    async def test_seed_fetch_failure(self, fake_provider) -> None:
        with pytest.raises(PageFetchError):
            await audit_page(SEED_URL, fake_provider)


class TestCheckBatchUrls:
    """Tests for check_batch_urls function."""

    def test_empty(self) -> None:
        with pytest.raises(BatchSizeError) as exc_info:
            check_batch_urls([])

        assert exc_info.value.provided == 0

    def test_too_many(self) -> None:
        with pytest.raises(BatchSizeError) as exc_info:
            check_batch_urls([SEED_URL] * 21)

        assert str(exc_info.value) == "Too many URLs. Maximum 20 URLs per batch request."
        assert exc_info.value.provided == 21
        assert exc_info.value.maximum == 20

    def test_not_a_list(self) -> None:
        with pytest.raises(BatchSizeError):
            check_batch_urls(SEED_URL)

    def test_invalid_entries(self) -> None:
        with pytest.raises(InvalidUrlError) as exc_info:
            check_batch_urls([SEED_URL, "peru", 42])

        assert [entry["index"] for entry in exc_info.value.invalid_urls] == [1, 2]


class TestAuditBatch:
    """Tests for audit_batch function."""

    @pytest.mark.asyncio
    async def test_rejects_oversized_batch_before_fetching(self, fake_provider) -> None:
        with pytest.raises(BatchSizeError):
            await audit_batch([f"{SITE}/page-{i}" for i in range(21)], fake_provider)

        assert fake_provider.calls == []

    @pytest.mark.asyncio
    async def test_accepts_maximum_batch(self, fake_provider) -> None:
        urls = [f"{SITE}/page-{i}" for i in range(20)]
        for url in urls:
            fake_provider.add(url)

        response = await audit_batch(urls, fake_provider)

        assert response.total_urls == 20
        assert response.successful_urls == 20
        assert response.failures == []

    @pytest.mark.asyncio
    async def test_partial_failure(self, site_provider) -> None:
        missing = f"{SITE}/nowhere"

        response = await audit_batch([SEED_URL, missing], site_provider)

        assert response.total_urls == 2
        assert response.successful_urls == 1
        assert response.failed_urls == 1
        assert [r.url for r in response.results] == [SEED_URL]
        assert response.failures[0].url == missing
        assert response.failures[0].error == "Failed to fetch URL. Status: 404"

    @pytest.mark.asyncio
    async def test_summary(self, site_provider) -> None:
        response = await audit_batch([SEED_URL, SEED_URL], site_provider)

        summary = response.summary
        assert summary.total_links_across_all_urls == 16
        assert summary.average_links_per_url == 8
        assert summary.aggregated_stats["totalRedirected"] == 2
        assert summary.top_sections[0] == {"section": "articles", "count": 8}
        assert response.batch_id.startswith("batch_")
        assert response.duration_minutes >= 0

    @pytest.mark.asyncio
    async def test_pages_bounded_by_batch_concurrency(self, slow_provider) -> None:
        urls = [f"{SITE}/page-{i}" for i in range(6)]
        for url in urls:
            slow_provider.add(url)

        await audit_batch(urls, slow_provider)

        assert slow_provider.max_in_flight == 2

    @pytest.mark.asyncio
    async def test_all_failed(self, fake_provider) -> None:
        response = await audit_batch([SEED_URL], fake_provider)

        assert response.successful_urls == 0
        assert response.results == []
        assert response.summary.average_links_per_url == 0
