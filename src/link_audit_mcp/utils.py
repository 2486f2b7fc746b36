"""Utility functions for HTML text processing and report numbers."""

from __future__ import annotations

import math
import re

_TAG_RE = re.compile(r"<[^>]*>")
_WHITESPACE_RE = re.compile(r"\s+")

# Applied in order, so "&amp;lt;" decodes all the way to "<"
_ENTITIES = (
    ("&nbsp;", " "),
    ("&amp;", "&"),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&#39;", "'"),
)

DEFAULT_MAX_TEXT_LENGTH = 120
ELLIPSIS = "..."


def collapse_whitespace(text: str | None) -> str:
    """Collapse runs of whitespace to a single space and trim the result."""
    if not text:
        return ""
    return _WHITESPACE_RE.sub(" ", text).strip()


def _normalize_once(html: str) -> str:
    text = _TAG_RE.sub(" ", html)
    for entity, replacement in _ENTITIES:
        text = text.replace(entity, replacement)
    return collapse_whitespace(text)


def extract_text_content(html: str | None) -> str:
    """Convert an inner-HTML fragment to plain text.

    Tags are replaced by spaces, the common entities (``&nbsp; &amp; &lt;
    &gt; &quot; &#39;``) are decoded and whitespace is collapsed.

    Decoding can turn escaped markup such as ``&lt;b&gt;`` into a new tag, so
    the pass is repeated until the text is stable. Every pass that changes the
    text either shortens it or only rewrites whitespace, so the loop ends, and
    the result is a fixpoint: ``extract_text_content(extract_text_content(x))
    == extract_text_content(x)``.

    Args:
        html: Raw HTML fragment, may be None

    Returns:
        Plain text, or an empty string for empty input
    """
    if not html:
        return ""

    text = html
    while True:
        normalized = _normalize_once(text)
        if normalized == text:
            return normalized
        text = normalized


def truncate_text(text: str, max_length: int = DEFAULT_MAX_TEXT_LENGTH) -> str:
    """Truncate text at the last word boundary before max_length.

    Text without a usable space is cut at exactly max_length. An ellipsis is
    appended whenever the text was shortened, so the result never exceeds
    ``max_length + 3`` characters.

    Args:
        text: Text to truncate
        max_length: Maximum number of characters to keep (default: 120)

    Returns:
        The original text, or the truncated text followed by "..."
    """
    if len(text) <= max_length:
        return text

    cut = text.rfind(" ", 0, max_length + 1)
    if cut <= 0:
        cut = max_length

    return text[:cut].rstrip() + ELLIPSIS


def round_half_up(value: float, digits: int = 0) -> float:
    """Round value to digits decimals, with halves going up.

    Report figures use this instead of round(), which sends halves to the
    nearest even number (round(2.5) == 2).
    """
    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor
