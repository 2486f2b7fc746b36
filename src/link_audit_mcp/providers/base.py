"""Base provider interface for fetching pages."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass
class ScrapeResult:
    """Result from a single page fetch."""

    url: str
    content: str
    status_code: int
    content_type: str | None
    metadata: dict[str, Any] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)

    def header(self, name: str) -> str | None:
        """Look up a response header case-insensitively.

        Args:
            name: Header name, e.g. "Location"

        Returns:
            Header value, or None if the response did not send it
        """
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return None


class ScraperProvider(ABC):
    """Abstract base class for page fetch providers.

    Providers report every HTTP response, including redirects and error
    statuses, through :class:`ScrapeResult`; only transport failures
    (timeouts, DNS, refused connections) are raised.
    """

    @abstractmethod
    async def scrape(self, url: str, **kwargs: Any) -> ScrapeResult:
        """Fetch a URL with a single GET.

        Args:
            url: The URL to fetch
            **kwargs: Provider options
                - timeout: Request timeout in seconds
                - max_retries: Retries after transport failures
                - allow_redirects: Follow redirects (default: True)
                - headers: Extra HTTP headers

        Returns:
            ScrapeResult with the final status, body and headers
        """
        pass

    @abstractmethod
    def supports_url(self, url: str) -> bool:
        """Check if this provider supports the given URL.

        Args:
            url: The URL to check

        Returns:
            True if this provider can handle the URL
        """
        pass
