"""Business logic for the link audit operations.

The pipeline for one page is fetch -> extract -> validate -> check ->
aggregate. Validation and availability checks are fanned out through a
:class:`ConcurrencyGate`; each call is wrapped so a failing link becomes a
failure result instead of aborting its siblings.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any
from urllib.parse import urlsplit

import requests

from link_audit_mcp.admin.service import get_config
from link_audit_mcp.audit.aggregator import (
    merge_availability,
    merge_validation,
    summarize_batch,
    summarize_page,
)
from link_audit_mcp.checks.availability import (
    AVAILABILITY_CHECKERS,
    AvailabilityChecker,
    check_link_status,
)
from link_audit_mcp.checks.validators import (
    BROWSER_USER_AGENT,
    ValidationPolicy,
    policy_for,
    validate_link,
)
from link_audit_mcp.core.providers import get_provider
from link_audit_mcp.errors import BatchSizeError, InvalidUrlError, PageFetchError
from link_audit_mcp.extraction.extractor import extract_page_links, parse_html
from link_audit_mcp.metrics import AVAILABILITY, PAGE, VALIDATION, record_request
from link_audit_mcp.models.audit import (
    AuditResult,
    BatchAuditResponse,
    BatchFailure,
    BatchSummary,
    ExtractAvailability,
    ExtractResponse,
    ExtractSummary,
)
from link_audit_mcp.models.links import (
    STATUS_ERROR,
    STATUS_TIMEOUT,
    AvailabilityResult,
    Link,
    LinkStatus,
    ValidationResult,
)
from link_audit_mcp.providers import ScrapeResult, ScraperProvider
from link_audit_mcp.scheduler import ConcurrencyGate, get_link_gate
from link_audit_mcp.utils import round_half_up

logger = logging.getLogger(__name__)


def validate_url(url: Any) -> str:
    """Check that a seed URL is an absolute http(s) URL.

    Raises:
        InvalidUrlError: If it is not
    """
    problem = _url_problem(url)
    if problem:
        raise InvalidUrlError(
            f"Invalid URL: {url!r}", [{"index": 0, "url": url, "error": problem}]
        )
    return url


def _url_problem(url: Any) -> str | None:
    if not isinstance(url, str) or not url.strip():
        return "URL must be a non-empty string"
    try:
        parts = urlsplit(url)
    except ValueError:
        return "Invalid URL format"
    if parts.scheme not in ("http", "https") or not parts.netloc:
        return "Invalid URL format"
    return None


async def fetch_page(url: str, provider: ScraperProvider) -> ScrapeResult:
    """Fetch the seed page of an audit.

    Args:
        url: Seed URL
        provider: Fetch provider

    Returns:
        ScrapeResult of an HTTP 200 response

    Raises:
        PageFetchError: On a timeout, transport failure or non-200 status
    """
    try:
        result = await provider.scrape(
            url,
            timeout=get_config("page_timeout"),
            max_retries=get_config("page_max_retries"),
            headers={"User-Agent": BROWSER_USER_AGENT},
        )
    except requests.Timeout as e:
        error_msg = f"{type(e).__name__}: {str(e)}"
        record_request(url=url, kind=PAGE, success=False, error=error_msg)
        raise PageFetchError(url, error_msg, timed_out=True) from e
    except requests.RequestException as e:
        error_msg = f"{type(e).__name__}: {str(e)}"
        record_request(url=url, kind=PAGE, success=False, error=error_msg)
        raise PageFetchError(url, error_msg) from e

    if result.status_code != 200:
        error_msg = f"Failed to fetch URL. Status: {result.status_code}"
        record_request(
            url=url,
            kind=PAGE,
            success=False,
            status_code=result.status_code,
            elapsed_ms=result.metadata.get("elapsed_ms"),
            error=error_msg,
        )
        raise PageFetchError(url, error_msg, status_code=result.status_code)

    record_request(
        url=url,
        kind=PAGE,
        success=True,
        status_code=result.status_code,
        elapsed_ms=result.metadata.get("elapsed_ms"),
    )
    return result


async def _load_links(
    url: str, provider: ScraperProvider, domain: str | None
) -> tuple[list[Link], list[Link]]:
    result = await fetch_page(url, provider)
    soup = parse_html(result.content)
    return extract_page_links(soup, url, domain)


_BASE_KEYS = ("text", "href", "position", "category", "section", "sectionTitle")


def _extraction_record(link: Link) -> dict[str, Any]:
    data = link.to_dict()
    record = {key: data[key] for key in _BASE_KEYS}
    description = link.description
    record["hasDescription"] = bool(description and description.has_description)
    record["descriptionReason"] = description.reason if description else None
    return record


async def check_link_status_safe(url: str, provider: ScraperProvider) -> LinkStatus:
    """Safely check that a link loads, with error handling.

    Returns:
        LinkStatus; an unexpected exception becomes an error status
    """
    try:
        result = await check_link_status(url, provider)
    except Exception as e:
        error_msg = f"{type(e).__name__}: {str(e)}"
        logger.warning(f"Link status check failed for {url}: {error_msg}")
        record_request(url=url, kind=AVAILABILITY, success=False, error=error_msg)
        return LinkStatus(available=False, status=STATUS_ERROR, message=error_msg)

    answered = result.status not in (STATUS_TIMEOUT, STATUS_ERROR)
    record_request(
        url=url,
        kind=AVAILABILITY,
        success=answered,
        error=None if answered else result.message,
    )
    return result


async def _check_record_links(
    records: list[dict[str, Any]], provider: ScraperProvider, gate: ConcurrencyGate
) -> ExtractAvailability:
    hrefs = list(dict.fromkeys(record["href"] for record in records))
    statuses = await asyncio.gather(
        *(gate.run(check_link_status_safe, href, provider) for href in hrefs)
    )
    by_href = dict(zip(hrefs, statuses))

    for record in records:
        record["availability"] = by_href[record["href"]].to_dict()

    available = sum(1 for record in records if record["availability"]["available"])
    rate = available / len(records) * 100 if records else 0.0
    return ExtractAvailability(
        available=available,
        unavailable=len(records) - available,
        availability_rate=f"{round_half_up(rate, 2):.2f}%",
    )


async def extract_page(
    url: str,
    provider: ScraperProvider | None = None,
    domain: str | None = None,
    check_availability: bool = False,
    gate: ConcurrencyGate | None = None,
) -> ExtractResponse:
    """Fetch a page and list its categorized links.

    Links are not requested unless check_availability is set. In that case
    every distinct href is fetched once through the link gate and each link
    record gains an ``availability`` entry.

    Args:
        url: Seed URL
        provider: Fetch provider (default: provider for the URL)
        domain: Site domain (default: configured site_domain)
        check_availability: Whether to check that every link loads
        gate: Gate bounding link checks (default: the shared link gate)

    Returns:
        ExtractResponse with a summary, the links in document order, and the
        links grouped by category and by section

    Raises:
        InvalidUrlError: If url is not an absolute http(s) URL
        PageFetchError: If the page cannot be fetched
    """
    validate_url(url)
    provider = provider or get_provider(url)

    intro_links, main_links = await _load_links(url, provider, domain)
    links = intro_links + main_links

    by_pattern: dict[str, int] = {}
    by_section: dict[str, int] = {}
    for link in links:
        by_pattern[link.category] = by_pattern.get(link.category, 0) + 1
        by_section[link.section] = by_section.get(link.section, 0) + 1

    records = [_extraction_record(link) for link in links]
    with_descriptions = sum(1 for record in records if record["hasDescription"])

    availability = None
    if check_availability:
        availability = await _check_record_links(records, provider, gate or get_link_gate())
        logger.info(
            f"Checked availability of {len(records)} links on {url}: "
            f"{availability.available} available ({availability.availability_rate})"
        )

    links_by_pattern: dict[str, list[dict[str, Any]]] = {}
    links_by_section: dict[str, list[dict[str, Any]]] = {}
    for record in records:
        links_by_pattern.setdefault(record["category"], []).append(record)
        links_by_section.setdefault(record["section"], []).append(record)

    logger.info(f"Extracted {len(links)} links from {url}")

    return ExtractResponse(
        url=url,
        summary=ExtractSummary(
            total_links=len(links),
            intro_links=len(intro_links),
            main_links=len(main_links),
            links_by_pattern=[{"pattern": p, "count": c} for p, c in by_pattern.items()],
            links_by_section=[{"section": s, "count": c} for s, c in by_section.items()],
            with_descriptions=with_descriptions,
            without_descriptions=len(records) - with_descriptions,
            availability=availability,
        ),
        links=records,
        links_by_pattern=links_by_pattern,
        links_by_section=links_by_section,
    )


async def validate_link_safe(
    url: str,
    policy: ValidationPolicy,
    provider: ScraperProvider,
) -> ValidationResult:
    """Safely validate a single link with error handling.

    Returns:
        ValidationResult; an unexpected exception becomes an invalid result
    """
    try:
        result = await validate_link(url, policy, provider)
    except Exception as e:
        error_msg = f"{type(e).__name__}: {str(e)}"
        logger.warning(f"Validation failed for {url}: {error_msg}")
        record_request(url=url, kind=VALIDATION, success=False, error=error_msg)
        return ValidationResult(
            valid=False, status=0, redirected=False, resolved_url=url, error=error_msg
        )

    # Status 0 means no response arrived
    record_request(
        url=url,
        kind=VALIDATION,
        success=bool(result.status),
        status_code=result.status or None,
        error=result.error if not result.status else None,
    )
    return result


async def check_availability_safe(
    url: str,
    checker: AvailabilityChecker,
    provider: ScraperProvider,
    base_url: str,
) -> AvailabilityResult:
    """Safely run an availability checker with error handling.

    Returns:
        The checker's result, or an unavailable result of the checker's type
        carrying the exception message
    """
    try:
        result = await checker.check(url, provider, base_url=base_url)
    except Exception as e:
        error_msg = f"{type(e).__name__}: {str(e)}"
        logger.warning(f"Availability check failed for {url}: {error_msg}")
        record_request(url=url, kind=AVAILABILITY, success=False, error=error_msg)
        return checker.failure(error_msg)

    record_request(url=url, kind=AVAILABILITY, success=True)
    return result


async def audit_page(
    url: str,
    provider: ScraperProvider | None = None,
    gate: ConcurrencyGate | None = None,
    domain: str | None = None,
) -> AuditResult:
    """Audit every link in a page's intro and main regions.

    Links are validated first; only links that validated are passed to
    their category's availability checker. Each distinct href is checked
    once and the outcome shared by all links with that href.

    Args:
        url: Seed URL
        provider: Fetch provider (default: provider for the URL)
        gate: Gate bounding link checks (default: the shared link gate)
        domain: Site domain (default: configured site_domain)

    Returns:
        AuditResult with stats, groupings and detailed results

    Raises:
        InvalidUrlError: If url is not an absolute http(s) URL
        PageFetchError: If the seed page cannot be fetched
    """
    validate_url(url)
    provider = provider or get_provider(url)
    gate = gate or get_link_gate()

    started = time.monotonic()
    intro_links, main_links = await _load_links(url, provider, domain)
    links = intro_links + main_links

    policies: dict[str, ValidationPolicy] = {}
    for link in links:
        policy = policy_for(link.category)
        if policy is not None and link.href not in policies:
            policies[link.href] = policy

    logger.info(f"Auditing {len(links)} links on {url} ({len(policies)} to validate)")

    hrefs = list(policies)
    validations = await asyncio.gather(
        *(gate.run(validate_link_safe, href, policies[href], provider) for href in hrefs)
    )
    merge_validation(links, dict(zip(hrefs, validations)))

    checkers: dict[str, AvailabilityChecker] = {}
    for link in links:
        checker = AVAILABILITY_CHECKERS.get(link.category)
        if checker is not None and link.valid is True and link.href not in checkers:
            checkers[link.href] = checker

    hrefs = list(checkers)
    availabilities = await asyncio.gather(
        *(gate.run(check_availability_safe, href, checkers[href], provider, url) for href in hrefs)
    )
    merge_availability(links, dict(zip(hrefs, availabilities)))

    logger.info(
        f"Audit of {url} finished in {time.monotonic() - started:.1f}s: "
        f"{len(policies)} validations, {len(checkers)} availability checks"
    )

    return AuditResult.model_validate(
        {"url": url, "success": True, "error": None, **summarize_page(intro_links, main_links)}
    )


async def audit_page_safe(
    url: str,
    provider: ScraperProvider | None,
) -> AuditResult:
    """Safely audit a single page with error handling.

    Returns:
        AuditResult with success=False and the error if the audit failed
    """
    try:
        return await audit_page(url, provider)
    except Exception as e:
        error_msg = str(e) if isinstance(e, PageFetchError) else f"{type(e).__name__}: {str(e)}"
        logger.error(f"Audit of {url} failed: {error_msg}")
        return AuditResult(url=url, success=False, error=error_msg)


def check_batch_urls(urls: Any) -> list[str]:
    """Validate the URL list of a batch audit before any network call.

    Raises:
        BatchSizeError: For zero URLs or more than max_batch_urls
        InvalidUrlError: If any entry is not an absolute http(s) URL
    """
    maximum = get_config("max_batch_urls")
    if not isinstance(urls, list) or not urls:
        provided = len(urls) if isinstance(urls, list) else 0
        raise BatchSizeError("At least one URL is required", provided=provided, maximum=maximum)
    if len(urls) > maximum:
        raise BatchSizeError(
            f"Too many URLs. Maximum {maximum} URLs per batch request.",
            provided=len(urls),
            maximum=maximum,
        )

    invalid = []
    for index, url in enumerate(urls):
        problem = _url_problem(url)
        if problem:
            invalid.append({"index": index, "url": url, "error": problem})
    if invalid:
        raise InvalidUrlError("Invalid URLs found", invalid)

    return urls


async def audit_batch(
    urls: list[str],
    provider: ScraperProvider | None = None,
) -> BatchAuditResponse:
    """Audit several pages, a few at a time.

    Pages are audited through a gate of batch_concurrency slots created for
    this call; their link checks still share the process-wide link gate. A
    failed page is listed under failures and never affects the others.

    Args:
        urls: Seed URLs (1 to max_batch_urls)
        provider: Fetch provider (default: provider for each URL)

    Returns:
        BatchAuditResponse with per-page results, failures and a summary

    Raises:
        BatchSizeError: For zero URLs or more than max_batch_urls
        InvalidUrlError: If any entry is not an absolute http(s) URL
    """
    check_batch_urls(urls)

    started = time.monotonic()
    batch_gate = ConcurrencyGate(get_config("batch_concurrency"))

    logger.info(f"Starting batch audit of {len(urls)} URLs")

    results = await asyncio.gather(
        *(batch_gate.run(audit_page_safe, url, provider) for url in urls)
    )

    successful = [r for r in results if r.success]
    failures = [BatchFailure(url=r.url, error=r.error or "Unknown error") for r in results if not r.success]

    duration_minutes = round_half_up((time.monotonic() - started) / 60, 2)
    logger.info(
        f"Batch audit finished: {len(successful)} succeeded, {len(failures)} failed "
        f"in {duration_minutes} min"
    )

    return BatchAuditResponse(
        batch_id=f"batch_{int(time.time() * 1000)}",
        completed_at=datetime.now(timezone.utc).isoformat(),
        duration_minutes=duration_minutes,
        total_urls=len(urls),
        successful_urls=len(successful),
        failed_urls=len(failures),
        results=successful,
        failures=failures,
        summary=BatchSummary.model_validate(summarize_batch([r.stats for r in successful])),
    )
