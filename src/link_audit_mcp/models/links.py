"""Link records and their category-specific payloads.

A :class:`Link` always carries the same base fields. What else it exposes is
decided once, at construction, by its category: a ``validation`` payload when
the category has a Validator, and an ``availability`` payload whose class is
the category's availability variant. Unpopulated payload fields stay ``None``
until the merge steps fill them in, so every link of a category serializes to
the same set of keys.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, fields
from typing import Any, ClassVar

INTRO_SECTION_TITLE = "Introduction Section"

# Taxonomy labels, in categorization order
EXTERNAL_LINK = "external-link"
WRONG_CONTACT_PATH = "wrong-contact-path"
CONTACT_PAGE = "contact-page"
CRUISE_SHIP = "cruise-ship"
CRUISE_WITH_ID = "cruise-with-id"
DESTINATION_SPECIAL_PAGE = "destination-special-page"
ARTICLE = "multi-level/articles/article-name"
STORY = "multi-level/stories/story-name"
STORIES_INDEX = "multi-level/stories"
OPERATOR_WITH_ID = "operator-with-id"
TOUR_WITH_ID = "tour-with-id"
TOUR_ACTIVITY = "tour-activity"
DESTINATION_PREFIX = "multi-level/destination-"
OTHER = "other"
INVALID_URL = "invalid-url"

_CAMEL_RE = re.compile(r"_([a-z])")


def to_camel(name: str) -> str:
    """Convert a snake_case attribute name to its camelCase JSON key."""
    return _CAMEL_RE.sub(lambda m: m.group(1).upper(), name)


def is_destination(category: str) -> bool:
    """Check if a category is one of the multi-level/destination-N family."""
    return category.startswith(DESTINATION_PREFIX)


class _Payload:
    """Serialization shared by validation and availability payloads."""

    # Attribute names whose JSON key differs from the camelCase default
    key_overrides: ClassVar[dict[str, str]] = {}

    def to_dict(self) -> dict[str, Any]:
        return {
            self.key_overrides.get(f.name, to_camel(f.name)): getattr(self, f.name)
            for f in fields(self)  # type: ignore[arg-type]
        }


@dataclass
class ValidationResult(_Payload):
    """Outcome of one Validator call."""

    valid: bool | None = None
    status: int | None = None
    redirected: bool | None = None
    resolved_url: str | None = None
    error: str | None = None

    key_overrides: ClassVar[dict[str, str]] = {"error": "validationError"}


@dataclass
class AvailabilityResult(_Payload):
    """Fields every availability variant shares."""

    available: bool | None = None
    error: str | None = None

    key_overrides: ClassVar[dict[str, str]] = {"error": "availabilityError"}


@dataclass
class PageAvailability(AvailabilityResult):
    """Plain HTTP 200 check (stories, contact pages, external links)."""


@dataclass
class PriceAvailability(AvailabilityResult):
    """Price lookup on a cruise page."""

    price: float | None = None
    currency: str | None = None


@dataclass
class TourAvailability(AvailabilityResult):
    """Price lookup on a tour page, with tour metadata."""

    tour_id: int | None = None
    price: float | None = None
    currency: str | None = None
    price_text: str | None = None
    price_selector: str | None = None
    page_title: str | None = None
    departure_info: str | None = None
    duration_info: str | None = None


@dataclass
class ActivityAvailability(AvailabilityResult):
    """Activity/experience option matching on a tour index page."""

    page_type: str | None = None
    experience_options: list[str] | None = None
    activity_options: list[str] | None = None
    activity_path: str | None = None
    normalized_activity_path: str | None = None
    is_available_in_experience: bool | None = None
    is_available_in_activity: bool | None = None


@dataclass
class ShipAvailability(AvailabilityResult):
    """Ship name matching against the destination's tours listing."""

    ship_options: list[str] | None = None
    ship_name: str | None = None
    normalized_ship_name: str | None = None
    normalized_options: list[dict[str, str]] | None = None
    tours_url: str | None = None


# Categories whose links get a Validator run against them
VALIDATED_CATEGORIES = frozenset(
    {
        CRUISE_WITH_ID,
        TOUR_WITH_ID,
        TOUR_ACTIVITY,
        CRUISE_SHIP,
        DESTINATION_SPECIAL_PAGE,
        STORY,
        CONTACT_PAGE,
        WRONG_CONTACT_PATH,
        EXTERNAL_LINK,
    }
)

# Availability variant per category. wrong-contact-path carries the fields
# but has no Checker, so they stay null.
AVAILABILITY_TYPES: dict[str, type[AvailabilityResult]] = {
    CRUISE_WITH_ID: PriceAvailability,
    TOUR_WITH_ID: TourAvailability,
    TOUR_ACTIVITY: ActivityAvailability,
    CRUISE_SHIP: ShipAvailability,
    STORY: PageAvailability,
    CONTACT_PAGE: PageAvailability,
    WRONG_CONTACT_PATH: PageAvailability,
    EXTERNAL_LINK: PageAvailability,
}


def is_validated(category: str) -> bool:
    """Check if links of a category are validated."""
    return category in VALIDATED_CATEGORIES or is_destination(category)


@dataclass
class DescriptionCheck:
    """Whether a link's tile shows a description, and why it was judged so."""

    has_description: bool
    reason: str


# Link status labels reported by extraction with availability checking
STATUS_AVAILABLE = "available"
STATUS_NOT_FOUND = "broken_link_404"
STATUS_CLIENT_ERROR = "client_error"
STATUS_TIMEOUT = "timeout"
STATUS_ERROR = "error"


@dataclass
class LinkStatus(_Payload):
    """Whether a link loads at all, whatever its category."""

    available: bool
    status: str
    message: str


@dataclass
class Link:
    """One anchor discovered in a content region."""

    text: str
    href: str
    position: int
    category: str
    section: str
    section_title: str | None
    validation: ValidationResult | None = None
    availability: AvailabilityResult | None = None
    description: DescriptionCheck | None = field(default=None, repr=False)

    @classmethod
    def create(
        cls,
        text: str,
        href: str,
        position: int,
        category: str,
        section: str,
        section_title: str | None,
        description: DescriptionCheck | None = None,
    ) -> Link:
        """Build a link with the null payloads its category calls for."""
        availability_type = AVAILABILITY_TYPES.get(category)
        return cls(
            text=text,
            href=href,
            position=position,
            category=category,
            section=section,
            section_title=section_title,
            validation=ValidationResult() if is_validated(category) else None,
            availability=availability_type() if availability_type else None,
            description=description,
        )

    @property
    def valid(self) -> bool | None:
        return self.validation.valid if self.validation else None

    @property
    def available(self) -> bool | None:
        return self.availability.available if self.availability else None

    def to_dict(self, exclude: tuple[str, ...] = ()) -> dict[str, Any]:
        """Flatten the link and its payloads into camelCase JSON fields.

        Args:
            exclude: JSON keys to leave out (e.g. "category" when the caller
                     already groups by category)

        Returns:
            Dictionary with base, validation and availability fields
        """
        data: dict[str, Any] = {
            "text": self.text,
            "href": self.href,
            "position": self.position,
            "category": self.category,
            "section": self.section,
            "sectionTitle": self.section_title,
        }
        if self.validation is not None:
            data.update(self.validation.to_dict())
        if self.availability is not None:
            data.update(self.availability.to_dict())

        for key in exclude:
            data.pop(key, None)
        return data
