"""MCP tool and HTTP route definitions for link audits."""

from __future__ import annotations

import json
import logging
from typing import Any

from mcp.server.fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import JSONResponse

from link_audit_mcp.audit.service import audit_batch, audit_page, extract_page
from link_audit_mcp.errors import BatchSizeError, InvalidUrlError, PageFetchError
from link_audit_mcp.models.audit import AuditResult, BatchAuditResponse, ExtractResponse

logger = logging.getLogger(__name__)

EXAMPLE_URL = "https://www.adventure-life.com/bolivia/articles/witches-market-of-la-paz"
EXAMPLE_URLS = [
    EXAMPLE_URL,
    "https://www.adventure-life.com/peru/articles/cusco-witches-market",
]


async def extract_links(url: str, check_availability: bool = False) -> ExtractResponse:
    """Extract and categorize the links of a page.

    Args:
        url: Page to extract from (must be http:// or https://)
        check_availability: Also request every link and report whether it loads

    Returns:
        ExtractResponse with a per-category and per-section summary, and every
        link with its category, section, section title and description flag,
        also grouped by category and by section
    """
    return await extract_page(url, check_availability=check_availability)


async def audit_links(url: str) -> AuditResult:
    """Audit every link on a page: validate it, then check availability.

    Args:
        url: Page to audit (must be http:// or https://)

    Returns:
        AuditResult with stats, links grouped by category and by section, and
        per-category detailed results
    """
    return await audit_page(url)


async def audit_links_batch(urls: list[str]) -> BatchAuditResponse:
    """Audit the links of up to 20 pages.

    Args:
        urls: Pages to audit (1 to 20 http:// or https:// URLs)

    Returns:
        BatchAuditResponse with successful audits, failures and a summary
    """
    return await audit_batch(urls)


def register_audit_tools(mcp: FastMCP) -> None:
    """Register link audit tools on the MCP server.

    Args:
        mcp: FastMCP server instance to register tools on
    """
    mcp.tool()(extract_links)
    mcp.tool()(audit_links)
    mcp.tool()(audit_links_batch)


def error_response(error: Exception) -> JSONResponse:
    """Translate an audit exception into a JSON error response.

    Args:
        error: Exception raised by an audit operation

    Returns:
        JSONResponse with a status reflecting the failure class
    """
    if isinstance(error, BatchSizeError):
        return JSONResponse(
            {"error": str(error), "provided": error.provided, "maximum": error.maximum},
            status_code=400,
        )

    if isinstance(error, InvalidUrlError):
        return JSONResponse(
            {"error": str(error), "invalidUrls": error.invalid_urls},
            status_code=400,
        )

    if isinstance(error, PageFetchError):
        if error.timed_out:
            status_code = 504
        elif error.status_code == 404:
            status_code = 404
        else:
            status_code = 502
        return JSONResponse(
            {
                "error": "Failed to fetch the page",
                "message": str(error),
                "url": error.url,
                "upstreamStatus": error.status_code,
            },
            status_code=status_code,
        )

    logger.error(f"Unexpected audit error: {type(error).__name__}: {error}")
    return JSONResponse(
        {"error": "Internal server error", "message": str(error)},
        status_code=500,
    )


async def _read_body(request: Request) -> dict[str, Any] | None:
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    return body if isinstance(body, dict) else None


def _missing_field(field: str, example: Any) -> JSONResponse:
    return JSONResponse(
        {
            "error": f"Missing or invalid {field} in request body",
            "example": {field: example},
        },
        status_code=400,
    )


async def api_audit_script(request: Request) -> JSONResponse:
    """Extract the links of a page.

    Returns:
        JSONResponse with the extraction summary and links
    """
    body = await _read_body(request)
    if body is None or not isinstance(body.get("url"), str):
        return _missing_field("url", EXAMPLE_URL)

    check_availability = body.get("checkAvailability", False)
    if not isinstance(check_availability, bool):
        return _missing_field("checkAvailability", True)

    try:
        result = await extract_page(body["url"], check_availability=check_availability)
    except Exception as e:
        return error_response(e)
    return JSONResponse(result.model_dump(by_alias=True))


async def api_article_audit(request: Request) -> JSONResponse:
    """Audit the links of a single page.

    Returns:
        JSONResponse with the audit result
    """
    body = await _read_body(request)
    if body is None or not isinstance(body.get("url"), str):
        return _missing_field("url", EXAMPLE_URL)

    try:
        result = await audit_page(body["url"])
    except Exception as e:
        return error_response(e)
    return JSONResponse(result.model_dump(by_alias=True))


async def api_article_audit_batch(request: Request) -> JSONResponse:
    """Audit the links of several pages.

    Per-page failures are embedded in the response, which is a 200 as long
    as the request itself was acceptable.

    Returns:
        JSONResponse with the batch result
    """
    body = await _read_body(request)
    if body is None or not isinstance(body.get("urls"), list):
        return _missing_field("urls", EXAMPLE_URLS)

    try:
        result = await audit_batch(body["urls"])
    except Exception as e:
        return error_response(e)
    return JSONResponse(result.model_dump(by_alias=True))
