"""
Page-numbered strategy base: cursor is the page within [start_page, start_page + max_pages).
"""

from __future__ import annotations

from abc import abstractmethod
from collections.abc import Mapping
from typing import Any

from app.scraping.base import RawRecordT, ScrapeStrategy, clamp_percentage
from app.scraping.session import ScrapeSessionState
from app.scraping.strategies.params import coerce_int
from app.scraping.types import FetchBatch, PageParams

DEFAULT_START_PAGE = 1
DEFAULT_MAX_PAGES = 10


class PageStrategy(ScrapeStrategy[RawRecordT, PageParams]):
    cursor_kind = "page"
    supports_early_exit = True

    def validate_params(self, raw_params: Mapping[str, Any]) -> PageParams:
        start_page = coerce_int(raw_params, "start_page", default=DEFAULT_START_PAGE, minimum=1)
        max_pages = coerce_int(
            raw_params,
            "max_pages",
            default=min(DEFAULT_MAX_PAGES, self.settings.max_pages_per_session),
            minimum=1,
            maximum=self.settings.max_pages_per_session,
        )
        return self._build_params(raw_params, start_page=start_page, max_pages=max_pages)

    def serialize_params(self, params: PageParams) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "start_page": params.start_page,
            "max_pages": params.max_pages,
            "database": params.database,
        }
        if params.country is not None:
            payload["country"] = params.country
        return payload

    def initial_cursor(self, params: PageParams) -> int:
        return params.start_page

    def fetch(self, params: PageParams, cursor: int) -> FetchBatch[RawRecordT]:
        if cursor < params.start_page or cursor > params.end_page:
            raise ValueError(
                f"Page {cursor} is outside the window {params.start_page}..{params.end_page}."
            )
        url, records = self.fetch_page(params, cursor)
        has_more = bool(records) and cursor < params.end_page
        return FetchBatch(
            records=records,
            cursor=cursor,
            next_cursor=cursor + 1 if has_more else None,
            newly_found=len(records),
            source_url=url,
        )

    def skip_cursor(self, params: PageParams, cursor: int) -> int | None:
        return cursor + 1 if cursor < params.end_page else None

    def progress(self, session: ScrapeSessionState) -> float:
        max_pages = int(session.params.get("max_pages") or DEFAULT_MAX_PAGES)
        if max_pages <= 0:
            return 0.0
        return clamp_percentage(session.counters.pages_processed / max_pages * 100.0)

    @abstractmethod
    def _build_params(self, raw_params: Mapping[str, Any], *, start_page: int, max_pages: int) -> PageParams:
        """Add source-specific filters to the page window."""

    @abstractmethod
    def fetch_page(self, params: PageParams, page: int) -> tuple[str, list[RawRecordT]]:
        """Return (url, raw records) for one list page."""
