"""Data models for link audits.

This module defines the data structures used throughout the auditor:
- Link records with category-specific payloads (links.py, dataclasses)
- Response models for the audit operations (audit.py, Pydantic v2)

The response models serialize to camelCase for the JSON routes and the MCP
tool interface.
"""

from link_audit_mcp.models.audit import (
    AuditResult,
    BatchAuditResponse,
    BatchFailure,
    BatchSummary,
    ExtractResponse,
    ExtractSummary,
)
from link_audit_mcp.models.links import (
    AvailabilityResult,
    DescriptionCheck,
    Link,
    ValidationResult,
)

__all__ = [
    # Link records
    "Link",
    "ValidationResult",
    "AvailabilityResult",
    "DescriptionCheck",
    # Response models
    "ExtractResponse",
    "ExtractSummary",
    "AuditResult",
    "BatchAuditResponse",
    "BatchFailure",
    "BatchSummary",
]
