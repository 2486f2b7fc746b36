"""Fuzzy name matching used by the availability checkers.

Both matchers are pure functions over short labels: a URL slug on one side,
a filter label scraped from a tours index page on the other.
"""

from __future__ import annotations

import re

# Fraction of significant words that must overlap for two ship names to match
SHIP_WORD_MATCH_THRESHOLD = 0.6

# Words this short carry no signal ("of", "la", ...)
MIN_SIGNIFICANT_WORD_LENGTH = 3

_WHITESPACE_RE = re.compile(r"\s+")
_SHIP_SEPARATORS_RE = re.compile(r"[&+\-_/.]")
_SHIP_PREFIX_RE = re.compile(r"^(?:m [csv]|m[csv])\s+")
_NON_WORD_RE = re.compile(r"[^\w\s]")


def _collapse(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


def normalize_activity(text: str) -> str:
    """Normalize an activity slug or label for comparison.

    Lowercases, drops "&" and "+", turns hyphens into spaces and collapses
    whitespace, so "hiking-and-trekking" and "Hiking and Trekking" agree.
    """
    text = text.lower().replace("&", "").replace("+", "").replace("-", " ")
    return _collapse(text)


def activity_matches(activity_path: str, option: str) -> bool:
    """Check if an activity slug matches a filter label.

    Either normalized string may contain the other. An empty side never
    matches.
    """
    normalized_path = normalize_activity(activity_path)
    normalized_option = normalize_activity(option)
    if not normalized_path or not normalized_option:
        return False
    return normalized_option in normalized_path or normalized_path in normalized_option


def normalize_ship_name(text: str) -> str:
    """Normalize a ship slug or label for comparison.

    Separators become spaces, a leading vessel prefix (M/S, MS, M.V., MC, ...)
    is dropped and any remaining punctuation is removed.

    Examples:
        >>> normalize_ship_name("M/S Wind Star")
        'wind star'
        >>> normalize_ship_name("ms-wind-star")
        'wind star'
    """
    text = _collapse(_SHIP_SEPARATORS_RE.sub(" ", text.lower()))
    text = _SHIP_PREFIX_RE.sub("", text)
    text = _NON_WORD_RE.sub("", text)
    return _collapse(text)


def _significant_words(text: str) -> list[str]:
    return [word for word in text.split(" ") if len(word) >= MIN_SIGNIFICANT_WORD_LENGTH]


def ship_names_match(url_name: str, option_name: str) -> bool:
    """Decide whether a ship slug from a URL names the same ship as a label.

    After normalization the names match when equal, when one contains the
    other, or when enough significant words (3+ characters) of the URL name
    overlap with a word of the label. "Enough" is
    :data:`SHIP_WORD_MATCH_THRESHOLD` of the shorter name's significant words.

    Args:
        url_name: Last path segment of the cruise-ship link
        option_name: Ship filter label from the tours listing

    Returns:
        True if the names are judged to be the same ship
    """
    normalized_url = normalize_ship_name(url_name)
    normalized_option = normalize_ship_name(option_name)
    if not normalized_url or not normalized_option:
        return False

    if normalized_url == normalized_option:
        return True
    if normalized_option in normalized_url or normalized_url in normalized_option:
        return True

    url_words = _significant_words(normalized_url)
    option_words = _significant_words(normalized_option)
    min_words = min(len(url_words), len(option_words))
    if min_words == 0:
        return False

    match_count = sum(
        1
        for url_word in url_words
        if any(url_word in option_word or option_word in url_word for option_word in option_words)
    )
    return match_count / min_words >= SHIP_WORD_MATCH_THRESHOLD
