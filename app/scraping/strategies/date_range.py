"""
Date-window strategy base: cursor is the offset into the category index.
"""

from __future__ import annotations

import logging
from abc import abstractmethod
from collections.abc import Callable, Mapping
from datetime import date, timedelta
from typing import Any, ClassVar

from app.scraping.base import ScrapeStrategy, clamp_percentage
from app.scraping.config.models import ScrapingSettings
from app.scraping.errors import FatalScrapeError, FetchError, ValidationError
from app.scraping.fetcher import PageFetcher
from app.scraping.logging_utils import describe_error, log_event
from app.scraping.session import ScrapeSessionState
from app.scraping.strategies.params import coerce_choices, coerce_date, coerce_int
from app.scraping.types import DateRangeParams, EaActionSummary, FetchBatch

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_DAYS = 30
MAX_BATCH_SIZE = 500


class DateRangeStrategy(ScrapeStrategy[EaActionSummary, DateRangeParams]):
    """
    The source returns every result for a category in one response, so the
    index for all categories is loaded on the first fetch and then served in
    slices of `batch_size`.
    """

    cursor_kind = "date_range"
    allowed_categories: ClassVar[tuple[str, ...]] = ()
    default_categories: ClassVar[tuple[str, ...]] = ()

    def __init__(
        self,
        *,
        fetcher: PageFetcher,
        settings: ScrapingSettings,
        today: Callable[[], date] = date.today,
    ) -> None:
        super().__init__(fetcher=fetcher, settings=settings)
        self._today = today
        self._index: list[EaActionSummary] | None = None

    def validate_params(self, raw_params: Mapping[str, Any]) -> DateRangeParams:
        today = self._today()
        date_to = coerce_date(raw_params, "date_to", default=today)
        date_from = coerce_date(raw_params, "date_from", default=today - timedelta(days=DEFAULT_WINDOW_DAYS))
        if date_to < date_from:
            raise ValidationError(
                f"date_to ({date_to.isoformat()}) must not precede date_from ({date_from.isoformat()})."
            )
        batch_size = coerce_int(
            raw_params,
            "batch_size",
            default=self.settings.batch_size,
            minimum=1,
            maximum=MAX_BATCH_SIZE,
        )
        return DateRangeParams(
            date_from=date_from,
            date_to=date_to,
            categories=self._resolve_categories(raw_params),
            batch_size=batch_size,
        )

    def serialize_params(self, params: DateRangeParams) -> dict[str, Any]:
        return {
            "date_from": params.date_from.isoformat(),
            "date_to": params.date_to.isoformat(),
            "categories": list(params.categories),
            "batch_size": params.batch_size,
        }

    def initial_cursor(self, params: DateRangeParams) -> int:
        return 0

    def fetch(self, params: DateRangeParams, cursor: int) -> FetchBatch[EaActionSummary]:
        newly_found = 0
        errors: list[str] = []
        if self._index is None:
            self._index, errors = self._load_index(params)
            newly_found = len(self._index)

        index = self._index
        batch = index[cursor : cursor + params.batch_size]
        end = cursor + len(batch)
        return FetchBatch(
            records=batch,
            cursor=cursor,
            next_cursor=end if batch and end < len(index) else None,
            newly_found=newly_found,
            total=len(index),
            errors=errors,
        )

    def skip_cursor(self, params: DateRangeParams, cursor: int) -> int | None:
        if self._index is None:
            return None
        following = cursor + params.batch_size
        return following if following < len(self._index) else None

    def progress(self, session: ScrapeSessionState) -> float:
        found = session.counters.records_found
        if found <= 0:
            return 0.0
        return clamp_percentage(session.counters.records_processed / found * 100.0)

    def _resolve_categories(self, raw_params: Mapping[str, Any]) -> tuple[str, ...]:
        return coerce_choices(
            raw_params,
            "categories",
            allowed=self.allowed_categories,
            default=self.default_categories,
        )

    def _load_index(self, params: DateRangeParams) -> tuple[list[EaActionSummary], list[str]]:
        index: list[EaActionSummary] = []
        seen: set[str] = set()
        errors: list[str] = []
        for category in params.categories:
            try:
                url, records = self.fetch_category_index(params, category)
            except FatalScrapeError:
                raise
            except FetchError as exc:
                message = f"category={category} {describe_error(exc)}"
                errors.append(message)
                log_event(logger, logging.WARNING, "category_index_failed", category=category, error=str(exc))
                continue

            for record in records:
                if record.regulator_id in seen:
                    continue
                seen.add(record.regulator_id)
                index.append(record)
            log_event(
                logger,
                logging.INFO,
                "category_index_loaded",
                category=category,
                url=url,
                records=len(records),
            )

        if errors and len(errors) == len(params.categories):
            raise FetchError("Every category index request failed: " + "; ".join(errors))
        return index, errors

    @abstractmethod
    def fetch_category_index(self, params: DateRangeParams, category: str) -> tuple[str, list[EaActionSummary]]:
        """Return (url, summaries) for one category across the whole window."""
