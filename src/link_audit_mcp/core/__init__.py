"""Core infrastructure shared across the audit modules.

This module provides the single source of truth for the fetch provider
instance used by the audit service.
"""

from link_audit_mcp.core.providers import (
    default_provider,
    get_provider,
)

__all__ = [
    "default_provider",
    "get_provider",
]
