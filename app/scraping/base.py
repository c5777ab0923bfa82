"""
Strategy contract for source-specific scraping.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, ClassVar, Generic, TypeVar

from app.domain.enforcement import ProcessedRecord
from app.scraping.config.models import ScrapingSettings
from app.scraping.fetcher import PageFetcher
from app.scraping.session import ScrapeSessionState, SessionStatus
from app.scraping.types import FetchBatch

logger = logging.getLogger(__name__)

RawRecordT = TypeVar("RawRecordT")
ParamsT = TypeVar("ParamsT")


class ScrapeStrategy(ABC, Generic[RawRecordT, ParamsT]):
    """
    Uniform contract over one (source, enforcement_type) pair.

    Strategies are stateful only for per-run caches, so one instance serves
    exactly one session.
    """

    source_id: ClassVar[str]
    enforcement_type: ClassVar[str]
    display_name: ClassVar[str]
    cursor_kind: ClassVar[str]
    supports_early_exit: ClassVar[bool] = False

    def __init__(self, *, fetcher: PageFetcher, settings: ScrapingSettings) -> None:
        self.fetcher = fetcher
        self.settings = settings

    @abstractmethod
    def validate_params(self, raw_params: Mapping[str, Any]) -> ParamsT:
        """
        Coerce form-style inputs into typed parameters.

        Raises ValidationError for missing, malformed or out-of-range values.
        """

    @abstractmethod
    def serialize_params(self, params: ParamsT) -> dict[str, Any]:
        """
        JSON-safe form of validated parameters, accepted back by validate_params.
        """

    @abstractmethod
    def initial_cursor(self, params: ParamsT) -> int:
        """First cursor position for a fresh session."""

    @abstractmethod
    def fetch(self, params: ParamsT, cursor: int) -> FetchBatch[RawRecordT]:
        """
        Fetch the batch at `cursor`.

        Raises FetchError for recoverable failures and FatalScrapeError for
        authentication failures.
        """

    @abstractmethod
    def skip_cursor(self, params: ParamsT, cursor: int) -> int | None:
        """Next cursor after a failed fetch at `cursor`, or None when exhausted."""

    @abstractmethod
    def process_record(self, raw: RawRecordT, params: ParamsT, *, cursor: int | None = None) -> ProcessedRecord:
        """
        Convert one raw record into a ProcessedRecord, enriching it as needed.

        Raises ParseError when the raw shape cannot be transformed.
        """

    @abstractmethod
    def progress(self, session: ScrapeSessionState) -> float:
        """Completion percentage in [0.0, 100.0]."""

    def reported_progress(self, session: ScrapeSessionState) -> float:
        """`progress`, except that a completed session always reports 100."""
        if session.status == SessionStatus.COMPLETED:
            return 100.0
        return self.progress(session)

    def record_id(self, raw: RawRecordT) -> str:
        return str(getattr(raw, "regulator_id"))

    def describe(self, session: ScrapeSessionState) -> dict[str, Any]:
        counters = session.counters
        return {
            "strategy": self.display_name,
            "source": self.source_id,
            "enforcement_type": self.enforcement_type,
            "cursor_kind": self.cursor_kind,
            "status": session.status,
            "current_position": session.current_position,
            "progress": round(self.reported_progress(session), 1),
            "records_found": counters.records_found,
            "records_processed": counters.records_processed,
            "records_created": counters.records_created,
            "records_existing": counters.records_existing,
            "errors_count": counters.errors_count,
        }

    @classmethod
    def metadata(cls) -> dict[str, str]:
        return {
            "source": cls.source_id,
            "enforcement_type": cls.enforcement_type,
            "display_name": cls.display_name,
            "cursor_kind": cls.cursor_kind,
        }


def clamp_percentage(value: float) -> float:
    return max(0.0, min(100.0, value))
