"""Page fetch provider using the Python requests library."""

from __future__ import annotations

import asyncio
import logging
from typing import Any
from urllib.parse import urlparse

import requests

from link_audit_mcp.providers.base import ScrapeResult, ScraperProvider

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
)


class RequestsProvider(ScraperProvider):
    """Fetcher using a shared requests session, run in the default executor.

    Status codes are never raised as errors: redirects and 4xx/5xx responses
    come back as results so callers can classify them. Timeouts and
    connection errors are retried with exponential backoff up to max_retries.
    """

    def __init__(
        self,
        timeout: float = 8,
        max_retries: int = 0,
        retry_delay: float = 1.0,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        """Initialize the requests provider.

        Args:
            timeout: Request timeout in seconds (default: 8)
            max_retries: Retries after transport failures (default: 0)
            retry_delay: Initial delay between retries in seconds (default: 1.0)
            user_agent: User agent string (default: Chrome on Windows)
        """
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.user_agent = user_agent

        self.session = requests.Session()

    def supports_url(self, url: str) -> bool:
        """Check if this provider supports the given URL.

        Args:
            url: The URL to check

        Returns:
            True if the URL uses http or https scheme
        """
        try:
            parsed = urlparse(url)
            return parsed.scheme in ("http", "https")
        except Exception:
            return False

    async def scrape(self, url: str, **kwargs: Any) -> ScrapeResult:
        """Fetch a URL with a single GET, retrying transport failures.

        Args:
            url: The URL to fetch
            **kwargs: Additional options
                - timeout: Request timeout in seconds
                - max_retries: Maximum number of retry attempts
                - allow_redirects: Follow redirects (default: True)
                - headers: Custom HTTP headers

        Returns:
            ScrapeResult with status, body and response headers

        Raises:
            requests.RequestException: If the request fails after all retries
        """
        timeout = kwargs.get("timeout", self.timeout)
        max_retries = kwargs.get("max_retries", self.max_retries)
        allow_redirects = kwargs.get("allow_redirects", True)
        headers = dict(kwargs.get("headers") or {})

        if "User-Agent" not in headers:
            headers["User-Agent"] = self.user_agent

        attempt = 0

        while True:
            try:
                # Run requests in thread pool to avoid blocking
                loop = asyncio.get_event_loop()
                response = await loop.run_in_executor(
                    None,
                    lambda: self.session.get(
                        url,
                        headers=headers,
                        timeout=timeout,
                        allow_redirects=allow_redirects,
                    ),
                )

                metadata = {
                    "encoding": response.encoding,
                    "elapsed_ms": response.elapsed.total_seconds() * 1000,
                    "attempts": attempt + 1,
                    "retries": attempt,
                    "final_url": response.url,
                }

                return ScrapeResult(
                    url=url,
                    content=response.text,
                    status_code=response.status_code,
                    content_type=response.headers.get("Content-Type"),
                    metadata=metadata,
                    headers=dict(response.headers),
                )

            except (requests.Timeout, requests.ConnectionError):
                attempt += 1

                if attempt > max_retries:
                    raise

                delay = self.retry_delay * (2 ** (attempt - 1))

                logger.debug(
                    f"Retry attempt {attempt}/{max_retries} for {url} "
                    f"after {delay:.2f}s delay"
                )

                await asyncio.sleep(delay)
