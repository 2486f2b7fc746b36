"""Pydantic models for audit operation responses.

Fields are snake_case in Python and serialize to the camelCase keys the
audit JSON API uses (``model_dump(by_alias=True)``).
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class AuditModel(BaseModel):
    """Base model with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ExtractAvailability(AuditModel):
    """Totals of an extraction run with availability checking."""

    checked: bool = True
    available: int = Field(description="Links that loaded")
    unavailable: int = Field(description="Links that failed to load")
    availability_rate: str = Field(description="Share of links that loaded, e.g. \"87.50%\"")


class ExtractSummary(AuditModel):
    """Counts describing one link extraction."""

    total_links: int = Field(description="Links found in both regions")
    intro_links: int = Field(description="Links found in the intro region")
    main_links: int = Field(description="Links found in the main region")
    links_by_pattern: list[dict[str, Any]] = Field(
        description="Link count per category, as [{pattern, count}]"
    )
    links_by_section: list[dict[str, Any]] = Field(
        description="Link count per section, as [{section, count}]"
    )
    with_descriptions: int = Field(description="Links whose tile shows a description")
    without_descriptions: int = Field(description="Links without a description")
    availability: ExtractAvailability | None = Field(
        default=None, description="Availability totals, when links were checked"
    )


class ExtractResponse(AuditModel):
    """Response model for link extraction, optionally with availability checks."""

    url: str = Field(description="The audited page URL")
    message: str = Field(default="Links extracted successfully")
    summary: ExtractSummary
    links: list[dict[str, Any]] = Field(description="Extracted links in document order")
    links_by_pattern: dict[str, list[dict[str, Any]]] = Field(
        default_factory=dict, description="Links grouped by category"
    )
    links_by_section: dict[str, list[dict[str, Any]]] = Field(
        default_factory=dict, description="Links grouped by section"
    )


class AuditResult(AuditModel):
    """Audit of a single page."""

    url: str = Field(description="The audited page URL")
    success: bool = Field(description="Whether the page could be audited")
    error: str | None = Field(default=None, description="Error message if failed")
    stats: dict[str, Any] | None = Field(default=None, description="Counts and stat blocks")
    links_by_category: dict[str, list[dict[str, Any]]] | None = None
    links_by_section: dict[str, list[dict[str, Any]]] | None = None
    section_category_matrix: dict[str, dict[str, int]] | None = None
    detailed_results: dict[str, Any] | None = None


class BatchFailure(AuditModel):
    """A seed URL whose audit failed."""

    url: str
    error: str


class BatchSummary(AuditModel):
    """Totals across the successful audits of a batch."""

    total_links_across_all_urls: int
    aggregated_stats: dict[str, Any]
    average_links_per_url: int
    top_categories: list[dict[str, Any]]
    top_sections: list[dict[str, Any]]


class BatchAuditResponse(AuditModel):
    """Response model for batch audits."""

    batch_id: str = Field(description="Identifier of this batch run")
    completed_at: str = Field(description="ISO 8601 completion time (UTC)")
    duration_minutes: float = Field(description="Wall time, rounded to 0.01 minutes")
    total_urls: int
    successful_urls: int
    failed_urls: int
    results: list[AuditResult] = Field(description="Audits that succeeded")
    failures: list[BatchFailure] = Field(description="Seed URLs that failed, with the reason")
    summary: BatchSummary
