"""Follow-up HTTP checks run against extracted links.

- validators.py: one GET per link, redirects disabled, judged per category
- availability.py: category-specific page inspection for valid links
- matching.py: fuzzy activity and ship name matching
"""

from link_audit_mcp.checks.availability import (
    AVAILABILITY_CHECKERS,
    AvailabilityChecker,
    derive_tours_url,
    parse_amount,
)
from link_audit_mcp.checks.matching import (
    SHIP_WORD_MATCH_THRESHOLD,
    activity_matches,
    normalize_activity,
    normalize_ship_name,
    ship_names_match,
)
from link_audit_mcp.checks.validators import (
    VALIDATION_POLICIES,
    ValidationPolicy,
    policy_for,
    validate_link,
)

__all__ = [
    "AVAILABILITY_CHECKERS",
    "AvailabilityChecker",
    "derive_tours_url",
    "parse_amount",
    "SHIP_WORD_MATCH_THRESHOLD",
    "activity_matches",
    "normalize_activity",
    "normalize_ship_name",
    "ship_names_match",
    "VALIDATION_POLICIES",
    "ValidationPolicy",
    "policy_for",
    "validate_link",
]
