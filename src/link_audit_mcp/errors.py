"""Exceptions raised by the audit operations."""

from __future__ import annotations


class AuditError(Exception):
    """Base class for audit failures that abort a whole operation."""


class PageFetchError(AuditError):
    """The seed page could not be fetched.

    Attributes:
        url: Seed URL
        status_code: Upstream HTTP status, None when no response arrived
        timed_out: True if the fetch gave up on a timeout
    """

    def __init__(
        self,
        url: str,
        message: str,
        status_code: int | None = None,
        timed_out: bool = False,
    ) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code
        self.timed_out = timed_out


class BatchSizeError(AuditError, ValueError):
    """A batch audit was asked for zero URLs or more than the limit.

    Attributes:
        provided: Number of URLs supplied
        maximum: Largest accepted batch
    """

    def __init__(self, message: str, provided: int, maximum: int) -> None:
        super().__init__(message)
        self.provided = provided
        self.maximum = maximum


class InvalidUrlError(AuditError, ValueError):
    """One or more seed URLs are not absolute http(s) URLs.

    Attributes:
        invalid_urls: Offending entries as {"index", "url", "error"}
    """

    def __init__(self, message: str, invalid_urls: list[dict]) -> None:
        super().__init__(message)
        self.invalid_urls = invalid_urls
