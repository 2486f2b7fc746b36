"""Merging of check outcomes into links and computation of audit statistics."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Any, Callable, Iterable

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
    ActivityAvailability,
    AvailabilityResult,
    Link,
    ValidationResult,
    is_destination,
)
from link_audit_mcp.utils import round_half_up

NO_TITLE = "No Title"
TOP_RANKING_SIZE = 5


def merge_validation(links: Iterable[Link], results: dict[str, ValidationResult]) -> None:
    """Attach validation outcomes to links by href.

    Links sharing an href all receive the same outcome. Links whose category
    has no Validator are left untouched.
    """
    for link in links:
        if link.validation is None:
            continue
        result = results.get(link.href)
        if result is not None:
            link.validation = result


def merge_availability(links: Iterable[Link], results: dict[str, AvailabilityResult]) -> None:
    """Attach availability outcomes to links by href.

    Only links that validated successfully and carry an availability payload
    of the same variant are updated.
    """
    for link in links:
        if link.availability is None or link.valid is not True:
            continue
        result = results.get(link.href)
        if result is not None and isinstance(result, type(link.availability)):
            link.availability = result


# Counting helpers over optional tri-state fields
def _count(links: list[Link], predicate: Callable[[Link], bool]) -> int:
    return sum(1 for link in links if predicate(link))


def _validation_counts(links: list[Link]) -> dict[str, int]:
    return {
        "valid": _count(links, lambda link: link.valid is True),
        "invalid": _count(links, lambda link: link.valid is False),
        "redirected": _count(links, lambda link: bool(link.validation and link.validation.redirected)),
        "validationErrors": _count(links, lambda link: bool(link.validation and link.validation.error)),
    }


def _availability_counts(links: list[Link]) -> dict[str, int]:
    return {
        "available": _count(links, lambda link: link.available is True),
        "unavailable": _count(links, lambda link: link.available is False),
        "availabilityErrors": _count(links, lambda link: bool(link.availability and link.availability.error)),
    }


def _activity_counts(links: list[Link]) -> dict[str, int]:
    payloads = [
        link.availability for link in links if isinstance(link.availability, ActivityAvailability)
    ]

    def bucket(experience: bool, activity: bool) -> int:
        return sum(
            1
            for p in payloads
            if p.is_available_in_experience is experience and p.is_available_in_activity is activity
        )

    return {
        "availableInExperienceOnly": bucket(True, False),
        "availableInActivityOnly": bucket(False, True),
        "availableInBoth": bucket(True, True),
        "landingPages": sum(1 for p in payloads if p.page_type == "landing"),
        "indexPages": sum(1 for p in payloads if p.page_type == "index"),
    }


@dataclass(frozen=True)
class StatGroup:
    """A family of categories reported together.

    Attributes:
        stats_key: Key of the group's block under "stats"
        links_key: Key of the group's link list under "detailedResults"
        matches: Category predicate
        availability: Whether the group has availability counters
        extra: Additional counters computed from the group's links
    """

    stats_key: str
    links_key: str
    matches: Callable[[str], bool]
    availability: bool = True
    extra: Callable[[list[Link]], dict[str, int]] | None = None

    def select(self, links: list[Link]) -> list[Link]:
        return [link for link in links if self.matches(link.category)]

    def stats(self, links: list[Link]) -> dict[str, int]:
        block = {"total": len(links)}
        block.update(_validation_counts(links))
        if self.availability:
            block.update(_availability_counts(links))
        if self.extra is not None:
            block.update(self.extra(links))
        return block


def _category(name: str) -> Callable[[str], bool]:
    return lambda category: category == name


STAT_GROUPS: tuple[StatGroup, ...] = (
    StatGroup("cruiseAvailability", "cruiseLinks", _category(CRUISE_WITH_ID)),
    StatGroup("destinationValidation", "destinationLinks", is_destination, availability=False),
    StatGroup("tourWithIdValidation", "tourWithIdLinks", _category(TOUR_WITH_ID)),
    StatGroup(
        "tourActivityValidation",
        "tourActivityLinks",
        _category(TOUR_ACTIVITY),
        extra=_activity_counts,
    ),
    StatGroup("cruiseShipValidation", "cruiseShipLinks", _category(CRUISE_SHIP)),
    StatGroup(
        "destinationSpecialPageValidation",
        "destinationSpecialPageLinks",
        _category(DESTINATION_SPECIAL_PAGE),
        availability=False,
    ),
    StatGroup("storyValidation", "storyLinks", _category(STORY)),
    StatGroup("contactPageValidation", "contactPageLinks", _category(CONTACT_PAGE)),
    StatGroup("wrongContactPathValidation", "wrongContactPathLinks", _category(WRONG_CONTACT_PATH)),
    StatGroup("externalLinkValidation", "externalLinkLinks", _category(EXTERNAL_LINK)),
)


def category_counts(links: list[Link]) -> dict[str, int]:
    return dict(Counter(link.category for link in links))


def section_counts(links: list[Link]) -> dict[str, int]:
    return dict(Counter(link.section for link in links))


def section_category_matrix(links: list[Link]) -> dict[str, dict[str, int]]:
    """Cross-tabulate link counts by section, then category."""
    matrix: dict[str, dict[str, int]] = {}
    for link in links:
        row = matrix.setdefault(link.section, {})
        row[link.category] = row.get(link.category, 0) + 1
    return matrix


def section_stats(links: list[Link]) -> dict[str, dict[str, Any]]:
    """Per-section totals, check outcomes and distinct section titles."""
    matrix = section_category_matrix(links)
    stats: dict[str, dict[str, Any]] = {}

    for section in matrix:
        members = [link for link in links if link.section == section]
        titles = list(dict.fromkeys(link.section_title for link in members if link.section_title))
        stats[section] = {
            "total": len(members),
            "categories": matrix[section],
            "available": _count(members, lambda link: link.available is True),
            "unavailable": _count(members, lambda link: link.available is False),
            "valid": _count(members, lambda link: link.valid is True),
            "invalid": _count(members, lambda link: link.valid is False),
            "titles": titles,
        }
    return stats


def links_by_category(links: list[Link]) -> dict[str, list[dict[str, Any]]]:
    grouped: dict[str, list[dict[str, Any]]] = {}
    for link in links:
        grouped.setdefault(link.category, []).append(link.to_dict(exclude=("category",)))
    return grouped


def links_by_section(links: list[Link]) -> dict[str, list[dict[str, Any]]]:
    """Group links by section, then by section title in first-seen order.

    Returns:
        Mapping of section to [{"title", "links"}], "No Title" for untitled
    """
    grouped: dict[str, dict[str, list[dict[str, Any]]]] = {}
    for link in links:
        titles = grouped.setdefault(link.section, {})
        title = link.section_title or NO_TITLE
        titles.setdefault(title, []).append(link.to_dict(exclude=("section", "sectionTitle")))

    return {
        section: [{"title": title, "links": members} for title, members in titles.items()]
        for section, titles in grouped.items()
    }


def build_stats(intro_links: list[Link], main_links: list[Link]) -> dict[str, Any]:
    """Compute the "stats" object of a single-page audit."""
    links = intro_links + main_links
    stats: dict[str, Any] = {
        "totalLinks": len(links),
        "totalIntroLinks": len(intro_links),
        "totalMainLinks": len(main_links),
        "categoryCounts": category_counts(links),
        "sectionCounts": section_counts(links),
        "sectionStats": section_stats(links),
    }
    for group in STAT_GROUPS:
        stats[group.stats_key] = group.stats(group.select(links))
    return stats


def build_detailed_results(
    links: list[Link],
    by_section: dict[str, list[dict[str, Any]]],
    stats_by_section: dict[str, dict[str, Any]],
) -> dict[str, Any]:
    """Per-group link lists plus a per-section breakdown."""
    detailed: dict[str, Any] = {
        group.links_key: [
            link.to_dict(exclude=("position", "category")) for link in group.select(links)
        ]
        for group in STAT_GROUPS
    }
    detailed["sectionBreakdown"] = [
        {
            "section": section,
            "totalLinks": stats_by_section[section]["total"],
            "categories": stats_by_section[section]["categories"],
            "titleGroups": [
                {"title": group["title"], "linkCount": len(group["links"]), "links": group["links"]}
                for group in title_groups
            ],
        }
        for section, title_groups in by_section.items()
    ]
    return detailed


def summarize_page(intro_links: list[Link], main_links: list[Link]) -> dict[str, Any]:
    """Build every derived view of a single-page audit.

    Returns:
        Dictionary with stats, linksByCategory, linksBySection,
        sectionCategoryMatrix and detailedResults
    """
    links = intro_links + main_links
    stats = build_stats(intro_links, main_links)
    by_section = links_by_section(links)
    return {
        "stats": stats,
        "linksByCategory": links_by_category(links),
        "linksBySection": by_section,
        "sectionCategoryMatrix": section_category_matrix(links),
        "detailedResults": build_detailed_results(links, by_section, stats["sectionStats"]),
    }


def _top(counts: dict[str, int], label: str) -> list[dict[str, Any]]:
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return [{label: name, "count": count} for name, count in ranked[:TOP_RANKING_SIZE]]


def summarize_batch(stats_list: list[dict[str, Any]]) -> dict[str, Any]:
    """Aggregate the stats of successful page audits.

    Valid/invalid/redirected and available/unavailable totals are summed
    over every stat group, as are validation and availability error counts.

    Args:
        stats_list: "stats" objects of the successful audits

    Returns:
        Summary with aggregatedStats, averageLinksPerUrl and top-5 rankings
    """
    totals: dict[str, Any] = {
        "totalLinksAcrossAllUrls": 0,
        "totalCategoryCounts": {},
        "totalSectionCounts": {},
        "totalAvailable": 0,
        "totalUnavailable": 0,
        "totalValid": 0,
        "totalInvalid": 0,
        "totalRedirected": 0,
        "totalErrors": 0,
    }
    category_totals: Counter[str] = Counter()
    section_totals: Counter[str] = Counter()

    for stats in stats_list:
        totals["totalLinksAcrossAllUrls"] += stats["totalLinks"]
        category_totals.update(stats["categoryCounts"])
        section_totals.update(stats["sectionCounts"])

        for group in STAT_GROUPS:
            block = stats[group.stats_key]
            totals["totalAvailable"] += block.get("available", 0)
            totals["totalUnavailable"] += block.get("unavailable", 0)
            totals["totalValid"] += block["valid"]
            totals["totalInvalid"] += block["invalid"]
            totals["totalRedirected"] += block["redirected"]
            totals["totalErrors"] += block["validationErrors"] + block.get("availabilityErrors", 0)

    totals["totalCategoryCounts"] = dict(category_totals)
    totals["totalSectionCounts"] = dict(section_totals)

    return {
        "totalLinksAcrossAllUrls": totals["totalLinksAcrossAllUrls"],
        "aggregatedStats": totals,
        "averageLinksPerUrl": (
            int(round_half_up(totals["totalLinksAcrossAllUrls"] / len(stats_list))) if stats_list else 0
        ),
        "topCategories": _top(totals["totalCategoryCounts"], "category"),
        "topSections": _top(totals["totalSectionCounts"], "section"),
    }
