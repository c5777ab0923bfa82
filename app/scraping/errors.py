"""
Error taxonomy for scrape orchestration and deduplication.
"""

from __future__ import annotations


class ScrapeError(RuntimeError):
    """Base class for scraping pipeline failures."""


class ValidationError(ScrapeError):
    """Raised when start parameters are missing, malformed, or out of range."""


class StrategyNotFoundError(ScrapeError):
    """Raised when no strategy is registered for a (source, enforcement_type) pair."""

    def __init__(self, source: str, enforcement_type: str) -> None:
        super().__init__(
            f"No scrape strategy registered for source='{source}' "
            f"enforcement_type='{enforcement_type}'."
        )
        self.source = source
        self.enforcement_type = enforcement_type


class FetchError(ScrapeError):
    """Raised when a source page cannot be fetched after retries."""

    def __init__(self, message: str, *, url: str | None = None, status_code: int | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class FatalScrapeError(ScrapeError):
    """Raised for unrecoverable failures that must end the session."""


class ParseError(ScrapeError):
    """Raised when one raw record cannot be transformed."""

    def __init__(self, message: str, *, regulator_id: str | None = None) -> None:
        super().__init__(message)
        self.regulator_id = regulator_id


class DuplicateRecordError(ScrapeError):
    """Raised by the store when a uniqueness constraint rejects a create."""

    def __init__(self, message: str, *, existing_id: object | None = None) -> None:
        super().__init__(message)
        self.existing_id = existing_id


class RegistryUnavailableError(ScrapeError):
    """
    Raised when the company registry cannot answer.

    `reason` is one of: missing_credentials, unauthorized, rate_limited,
    not_found, unavailable.
    """

    def __init__(self, reason: str, message: str | None = None) -> None:
        super().__init__(message or f"Company registry unavailable: {reason}")
        self.reason = reason


class SessionNotFoundError(ScrapeError):
    """Raised when a scrape session id does not exist in the store."""


class ScrapingDisabledError(ScrapeError):
    """Raised when a run is requested while that trigger is disabled by configuration."""
