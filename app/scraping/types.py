"""
Shared scraping runtime data models.

Raw records are typed per source; `process_record` is the only place they are
converted into the canonical ProcessedRecord.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Generic, TypeVar


@dataclass(frozen=True)
class HseCaseRow:
    """
    One row of the HSE prosecution case list page.
    """

    regulator_id: str
    offender_name: str
    action_date: date | None
    local_authority: str | None
    main_activity: str | None
    page_number: int
    scraped_at: datetime


@dataclass(frozen=True)
class HseNoticeRow:
    """
    One row of the HSE enforcement notice list page.
    """

    regulator_id: str
    offender_name: str
    notice_type: str | None
    issue_date: date | None
    local_authority: str | None
    sic_code: str | None
    country: str
    page_number: int
    scraped_at: datetime


@dataclass(frozen=True)
class EaActionSummary:
    """
    One row of the EA enforcement action register results table.
    """

    regulator_id: str
    offender_name: str
    address: str | None
    action_date: date | None
    action_type: str
    detail_url: str
    scraped_at: datetime


RawRecordT = TypeVar("RawRecordT")


@dataclass(frozen=True)
class FetchBatch(Generic[RawRecordT]):
    """
    Outcome of one strategy fetch.

    `next_cursor` is None when the source has no further positions.
    `newly_found` is the number of records this fetch added to the session's
    records_found counter.
    """

    records: list[RawRecordT]
    cursor: int
    next_cursor: int | None
    newly_found: int
    total: int | None = None
    source_url: str | None = None
    errors: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class PageParams:
    start_page: int
    max_pages: int
    database: str = "convictions"
    country: str | None = None

    @property
    def end_page(self) -> int:
        """Last page in the window (inclusive)."""
        return self.start_page + self.max_pages - 1


@dataclass(frozen=True)
class DateRangeParams:
    date_from: date
    date_to: date
    categories: tuple[str, ...]
    batch_size: int = 50
