"""HTTP validation of extracted links.

Every validated category shares one strategy: a single GET with redirects
disabled, judged by a per-category :class:`ValidationPolicy`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import requests

from link_audit_mcp.models.links import (
    CONTACT_PAGE,
    CRUISE_SHIP,
    CRUISE_WITH_ID,
    DESTINATION_SPECIAL_PAGE,
    EXTERNAL_LINK,
    STORY,
    TOUR_ACTIVITY,
    TOUR_WITH_ID,
    WRONG_CONTACT_PATH,
    ValidationResult,
    is_destination,
)
from link_audit_mcp.providers.base import ScraperProvider

logger = logging.getLogger(__name__)

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/58.0.3029.110 Safari/537.3"
)

REDIRECT_CODES = frozenset({301, 302, 303, 307, 308})

DEFAULT_VALIDATION_TIMEOUT = 8
EXTERNAL_VALIDATION_TIMEOUT = 10


@dataclass(frozen=True)
class ValidationPolicy:
    """How a category's validation response is judged.

    Attributes:
        only_accept_200: Only HTTP 200 is valid; otherwise any 2xx is
        force_invalid: Mark even an accepted response invalid
        forced_error: Error reported when force_invalid applies
        redirect_label: Text placed before the Location in redirect errors
        error_prefix: Text placed before any other error message
        timeout: Request timeout in seconds
    """

    only_accept_200: bool = True
    force_invalid: bool = False
    forced_error: str | None = None
    redirect_label: str = "Redirected to"
    error_prefix: str = ""
    timeout: float = DEFAULT_VALIDATION_TIMEOUT

    def accepts(self, status: int) -> bool:
        if self.only_accept_200:
            return status == 200
        return 200 <= status < 300


DEFAULT_POLICY = ValidationPolicy()

VALIDATION_POLICIES: dict[str, ValidationPolicy] = {
    CRUISE_WITH_ID: DEFAULT_POLICY,
    TOUR_WITH_ID: DEFAULT_POLICY,
    TOUR_ACTIVITY: DEFAULT_POLICY,
    CRUISE_SHIP: DEFAULT_POLICY,
    DESTINATION_SPECIAL_PAGE: DEFAULT_POLICY,
    STORY: DEFAULT_POLICY,
    CONTACT_PAGE: DEFAULT_POLICY,
    WRONG_CONTACT_PATH: ValidationPolicy(
        force_invalid=True,
        forced_error="Wrong contact path detected - should probably be /contact instead of /contactt",
        redirect_label="Wrong contact path + redirected to",
        error_prefix="Wrong contact path (/contactt) + ",
    ),
    EXTERNAL_LINK: ValidationPolicy(
        redirect_label="External link redirected to",
        timeout=EXTERNAL_VALIDATION_TIMEOUT,
    ),
}


def policy_for(category: str) -> ValidationPolicy | None:
    """Get the validation policy of a category.

    Returns:
        The policy, or None if links of this category are not validated
    """
    if is_destination(category):
        return DEFAULT_POLICY
    return VALIDATION_POLICIES.get(category)


async def validate_link(
    url: str,
    policy: ValidationPolicy,
    provider: ScraperProvider,
) -> ValidationResult:
    """Issue one GET against a link and judge the response.

    Redirects are not followed; a redirect status makes the link invalid and
    reports the Location target. Transport failures are returned as status 0
    rather than raised.

    Args:
        url: Absolute link URL
        policy: Policy of the link's category
        provider: Fetch provider

    Returns:
        ValidationResult with valid, status, redirected, resolved_url, error
    """
    try:
        result = await provider.scrape(
            url,
            timeout=policy.timeout,
            max_retries=0,
            allow_redirects=False,
            headers={"User-Agent": BROWSER_USER_AGENT},
        )
    except requests.RequestException as e:
        logger.warning(f"Validation request failed for {url}: {type(e).__name__}: {e}")
        return ValidationResult(
            valid=False,
            status=0,
            redirected=False,
            resolved_url=url,
            error=f"{policy.error_prefix}{type(e).__name__}: {e}",
        )

    status = result.status_code

    if status in REDIRECT_CODES:
        location = result.header("Location")
        return ValidationResult(
            valid=False,
            status=status,
            redirected=True,
            resolved_url=location,
            error=f"{policy.redirect_label}: {location}",
        )

    if not policy.accepts(status):
        return ValidationResult(
            valid=False,
            status=status,
            redirected=False,
            resolved_url=url,
            error=f"{policy.error_prefix}HTTP {status}",
        )

    if policy.force_invalid:
        return ValidationResult(
            valid=False,
            status=status,
            redirected=False,
            resolved_url=url,
            error=policy.forced_error,
        )

    return ValidationResult(
        valid=True,
        status=status,
        redirected=False,
        resolved_url=url,
        error=None,
    )
