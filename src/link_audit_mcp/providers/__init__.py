"""Page fetch providers for different HTTP backends."""

from link_audit_mcp.providers.base import ScraperProvider, ScrapeResult
from link_audit_mcp.providers.requests_provider import RequestsProvider

__all__ = ["ScraperProvider", "ScrapeResult", "RequestsProvider"]
