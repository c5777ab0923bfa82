"""
In-memory fakes: persisted store, company registry and source feeds.

No network and no database are touched by the suite.
"""

from __future__ import annotations

import threading
import uuid
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any

import requests

from app.connectors.companies_house import CompanyProfile
from app.domain.enforcement import (
    EnforcementType,
    LegislationEntity,
    LegislationKey,
    OffenderAttributes,
    ProcessedRecord,
    Provenance,
    ResolvedOffence,
)
from app.scraping.errors import (
    DuplicateRecordError,
    FatalScrapeError,
    FetchError,
    ParseError,
    RegistryUnavailableError,
    SessionNotFoundError,
)
from app.scraping.normalization.record_processor import build_offender_attributes
from app.scraping.session import (
    COUNTER_FIELDS,
    ProcessingLogEntry,
    ScrapeSessionState,
    SessionCounters,
    SessionStatus,
    ensure_transition,
)
from app.scraping.storage.base import EnforcementStore, validate_session_fields
from app.scraping.strategies.date_range import DateRangeStrategy
from app.scraping.strategies.page import PageStrategy
from app.scraping.types import DateRangeParams, EaActionSummary, PageParams

SCRAPED_AT = datetime(2026, 1, 15, 9, 30, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# In-memory store
# ---------------------------------------------------------------------------


class InMemoryEnforcementStore(EnforcementStore):
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.sessions: dict[str, ScrapeSessionState] = {}
        self.records: dict[tuple[str, str], dict[str, Any]] = {}
        self.offenders: dict[Any, dict[str, Any]] = {}
        self.legislation: dict[LegislationKey, LegislationEntity] = {}
        self.match_reviews: list[dict[str, Any]] = []
        self.exists_calls: list[tuple[str, list[str]]] = []
        self.processing_logs: list[ProcessingLogEntry] = []

    # Records and offenders

    def exists_by_external_id(self, source: str, regulator_ids: Sequence[str]) -> set[str]:
        self.exists_calls.append((source, list(regulator_ids)))
        return {regulator_id for regulator_id in regulator_ids if (source, regulator_id) in self.records}

    def find_offender(self, normalized_name: str, postcode: str | None) -> Any | None:
        for offender_id, offender in self.offenders.items():
            if offender["normalized_name"] == normalized_name and offender["postcode"] == (postcode or ""):
                return offender_id
        return None

    def create_offender(self, attrs: OffenderAttributes, *, normalized_name: str) -> Any:
        existing = self.find_offender(normalized_name, attrs.postcode)
        if existing is not None:
            raise DuplicateRecordError("Offender already exists.", existing_id=existing)
        offender_id = uuid.uuid4()
        self.offenders[offender_id] = {
            "attributes": attrs,
            "normalized_name": normalized_name,
            "postcode": attrs.postcode or "",
            "total_cases": 0,
            "total_notices": 0,
            "total_fines": Decimal("0.00"),
        }
        return offender_id

    def increment_offender_totals(
        self,
        offender_id: Any,
        *,
        cases: int = 0,
        notices: int = 0,
        fines: Decimal = Decimal("0.00"),
    ) -> None:
        offender = self.offenders[offender_id]
        offender["total_cases"] += cases
        offender["total_notices"] += notices
        offender["total_fines"] += fines

    def create_case_or_notice(
        self,
        record: ProcessedRecord,
        *,
        offender_id: Any | None,
        offences: Sequence[ResolvedOffence],
    ) -> Any:
        key = (record.source, record.regulator_id)
        with self._lock:
            if key in self.records:
                raise DuplicateRecordError("Record already exists.", existing_id=self.records[key]["id"])
            record_id = uuid.uuid4()
            self.records[key] = {
                "id": record_id,
                "record": record,
                "offender_id": offender_id,
                "offences": list(offences),
            }
        return record_id

    def update_case_or_notice(self, record: ProcessedRecord) -> bool:
        key = (record.source, record.regulator_id)
        if key not in self.records:
            return False
        self.records[key]["record"] = record
        return True

    def find_or_create_legislation(
        self,
        key: LegislationKey,
        *,
        title: str,
        number: int | None,
        legislation_type: str,
    ) -> LegislationEntity:
        with self._lock:
            entity = self.legislation.get(key)
            if entity is None:
                entity = LegislationEntity(
                    id=uuid.uuid4(),
                    title=title,
                    year=key.year,
                    number=number,
                    legislation_type=legislation_type,
                )
                self.legislation[key] = entity
            return entity

    def create_match_review(
        self,
        *,
        offender_id: Any,
        source: str,
        regulator_id: str,
        candidates: Sequence[Mapping[str, Any]],
        reason: str,
    ) -> Any:
        review_id = uuid.uuid4()
        self.match_reviews.append(
            {
                "id": review_id,
                "offender_id": offender_id,
                "source": source,
                "regulator_id": regulator_id,
                "candidates": [dict(candidate) for candidate in candidates],
                "reason": reason,
            }
        )
        return review_id

    # Sessions

    def create_session(
        self,
        *,
        source: str,
        enforcement_type: str,
        params: Mapping[str, Any],
        process_all_records: bool,
        current_position: int | None = None,
    ) -> ScrapeSessionState:
        now = datetime.now(timezone.utc)
        session = ScrapeSessionState(
            session_id=str(uuid.uuid4()),
            source=source,
            enforcement_type=enforcement_type,
            params=dict(params),
            process_all_records=process_all_records,
            current_position=current_position,
            created_at=now,
            updated_at=now,
        )
        self.sessions[session.session_id] = session
        return session

    def get_session(self, session_id: str) -> ScrapeSessionState:
        session = self.sessions.get(str(session_id))
        if session is None:
            raise SessionNotFoundError(f"Scrape session not found: {session_id}")
        return session

    def list_sessions(
        self,
        *,
        source: str | None = None,
        status: str | None = None,
        limit: int = 50,
    ) -> list[ScrapeSessionState]:
        sessions = [
            session
            for session in reversed(list(self.sessions.values()))
            if (source is None or session.source == source) and (status is None or session.status == status)
        ]
        return sessions[:limit]

    def update_session(self, session_id: str, **fields: Any) -> ScrapeSessionState:
        validate_session_fields(fields)
        session = self.get_session(session_id)
        if session.is_terminal:
            return session
        return self._save(replace(session, **fields))

    def increment_session_counters(
        self,
        session_id: str,
        deltas: Mapping[str, int],
        *,
        current_position: int | None = None,
    ) -> ScrapeSessionState:
        with self._lock:
            session = self.get_session(session_id)
            if session.status != SessionStatus.RUNNING:
                return session
            values = session.counters.as_dict()
            for name, delta in deltas.items():
                if name in COUNTER_FIELDS:
                    values[name] += int(delta)
            position = session.current_position
            if current_position is not None:
                position = current_position if position is None else max(position, current_position)
            return self._save(replace(session, counters=SessionCounters(**values), current_position=position))

    def transition_session(
        self,
        session_id: str,
        target: str,
        *,
        error_message: str | None = None,
    ) -> ScrapeSessionState:
        with self._lock:
            session = self.get_session(session_id)
            ensure_transition(session_id, session.status, target)
            now = datetime.now(timezone.utc)
            changes: dict[str, Any] = {"status": target}
            if target == SessionStatus.RUNNING:
                changes["started_at"] = now
            else:
                changes["completed_at"] = now
            if error_message is not None:
                changes["error_message"] = error_message
            return self._save(replace(session, **changes))

    def request_stop(self, session_id: str) -> ScrapeSessionState:
        session = self.get_session(session_id)
        if session.is_terminal:
            return session
        return self._save(replace(session, stop_requested=True))

    def is_stop_requested(self, session_id: str) -> bool:
        return self.get_session(session_id).stop_requested

    def append_recent_error(self, session_id: str, messages: Iterable[str], *, limit: int) -> None:
        session = self.get_session(session_id)
        combined = [*session.recent_errors, *messages]
        self._save(replace(session, recent_errors=combined[-limit:]))

    # Processing logs

    def record_processing_log(self, entry: ProcessingLogEntry) -> None:
        self.get_session(entry.session_id)
        self.processing_logs.append(replace(entry, created_at=datetime.now(timezone.utc)))

    def list_processing_logs(self, session_id: str) -> list[ProcessingLogEntry]:
        self.get_session(session_id)
        return [entry for entry in self.processing_logs if entry.session_id == str(session_id)]

    def _save(self, session: ScrapeSessionState) -> ScrapeSessionState:
        session = replace(session, updated_at=datetime.now(timezone.utc))
        self.sessions[session.session_id] = session
        return session


# ---------------------------------------------------------------------------
# Company registry
# ---------------------------------------------------------------------------


class FakeCompanyRegistry:
    def __init__(
        self,
        *,
        search_results: Mapping[str, list[CompanyProfile]] | None = None,
        profiles: Mapping[str, CompanyProfile] | None = None,
        error: RegistryUnavailableError | None = None,
    ) -> None:
        self.search_results = dict(search_results or {})
        self.profiles = dict(profiles or {})
        self.error = error
        self.searches: list[str] = []
        self.lookups: list[str] = []

    def lookup_by_number(self, number: str) -> CompanyProfile:
        self.lookups.append(number)
        if self.error is not None:
            raise self.error
        profile = self.profiles.get(number)
        if profile is None:
            raise RegistryUnavailableError("not_found")
        return profile

    def search_by_name(self, name: str, *, page_size: int | None = None) -> list[CompanyProfile]:
        self.searches.append(name)
        if self.error is not None:
            raise self.error
        return list(self.search_results.get(name, []))[: page_size or 5]


def company(
    name: str,
    number: str,
    *,
    company_type: str = "ltd",
    status: str = "active",
    postcode: str = "AB1 2CD",
) -> CompanyProfile:
    return CompanyProfile(
        company_name=name,
        company_number=number,
        company_status=status,
        company_type=company_type,
        address_snippet=f"1 High Street, Town, {postcode}",
        registered_office_address={
            "address_line_1": "1 High Street",
            "locality": "Town",
            "postal_code": postcode,
        },
    )


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------


def html_response(url: str, body: str = "", *, status_code: int = 200) -> requests.Response:
    response = requests.Response()
    response.status_code = status_code
    response._content = body.encode("utf-8")
    response.encoding = "utf-8"
    response.url = url
    response.reason = "OK" if status_code < 400 else "Error"
    return response


class FakeHttpSession:
    """
    Stands in for requests.Session. Each route maps a URL to an HTML body,
    a status code, an exception to raise, a callable taking the query params,
    or a list of those consumed in order (the last one repeats).
    """

    def __init__(self, routes: Mapping[str, Any] | None = None) -> None:
        self.routes = dict(routes or {})
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def get(
        self,
        url: str,
        *,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
        allow_redirects: bool = True,
    ) -> requests.Response:
        self.calls.append((url, dict(params or {})))
        route = self.routes.get(url, 404)
        if isinstance(route, list):
            route = route.pop(0) if len(route) > 1 else route[0]
        if callable(route):
            route = route(dict(params or {}))
        if isinstance(route, Exception):
            raise route
        if isinstance(route, int):
            return html_response(url, status_code=route)
        return html_response(url, route)


# ---------------------------------------------------------------------------
# Feed-driven strategies
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FeedRow:
    regulator_id: str
    offender_name: str = "Acme Widgets Ltd"
    postcode: str | None = "AB1 2CD"
    fine: Decimal = Decimal("0.00")
    costs: Decimal = Decimal("0.00")
    breaches: tuple[str, ...] = ()
    enrichment_errors: tuple[str, ...] = ()
    malformed: bool = False
    fatal: bool = False


def feed_record(row: FeedRow, *, source: str = "hse", cursor: int | None = None) -> ProcessedRecord:
    return ProcessedRecord(
        source=source,
        enforcement_type=EnforcementType.CASE,
        regulator_id=row.regulator_id,
        offender=build_offender_attributes(name=row.offender_name, postcode=row.postcode),
        provenance=Provenance(source_url=None, scraped_at=SCRAPED_AT, cursor_position=cursor),
        action_date=date(2026, 1, 10),
        fine=row.fine,
        costs=row.costs,
        breaches=list(row.breaches),
        enrichment_errors=list(row.enrichment_errors),
    )


@dataclass
class PageFeed:
    """Scripted list pages keyed by page number; missing pages are empty."""

    pages: dict[int, list[FeedRow]] = field(default_factory=dict)
    failing_pages: set[int] = field(default_factory=set)
    fatal_pages: set[int] = field(default_factory=set)
    crash_pages: set[int] = field(default_factory=set)
    on_fetch: Any = None
    fetched: list[int] = field(default_factory=list)


class FeedPageStrategy(PageStrategy[FeedRow]):
    source_id = "hse"
    enforcement_type = EnforcementType.CASE
    display_name = "Scripted page feed"
    feed: PageFeed = PageFeed()

    def _build_params(self, raw_params: Mapping[str, Any], *, start_page: int, max_pages: int) -> PageParams:
        return PageParams(start_page=start_page, max_pages=max_pages)

    def fetch_page(self, params: PageParams, page: int) -> tuple[str, list[FeedRow]]:
        self.feed.fetched.append(page)
        if self.feed.on_fetch is not None:
            self.feed.on_fetch(page)
        if page in self.feed.fatal_pages:
            raise FatalScrapeError(f"HTTP 401 for page {page}")
        if page in self.feed.failing_pages:
            raise FetchError(f"HTTP 503 for page {page}", status_code=503)
        if page in self.feed.crash_pages:
            raise RuntimeError(f"unexpected failure on page {page}")
        return f"https://feed.test/list?page={page}", list(self.feed.pages.get(page, []))

    def process_record(self, raw: FeedRow, params: PageParams, *, cursor: int | None = None) -> ProcessedRecord:
        if raw.malformed:
            raise ParseError("Row has no offender name.", regulator_id=raw.regulator_id)
        if raw.fatal:
            raise FatalScrapeError(f"HTTP 401 for detail page {raw.regulator_id}")
        return feed_record(raw, source=self.source_id, cursor=cursor)


def page_strategy_class(feed: PageFeed) -> type[FeedPageStrategy]:
    return type("ScriptedPageStrategy", (FeedPageStrategy,), {"feed": feed})


@dataclass
class IndexFeed:
    categories: dict[str, list[FeedRow]] = field(default_factory=dict)
    failing_categories: set[str] = field(default_factory=set)
    index_loads: int = 0


class FeedDateRangeStrategy(DateRangeStrategy):
    source_id = "ea"
    enforcement_type = EnforcementType.CASE
    display_name = "Scripted date-range feed"
    allowed_categories = ("court_case", "caution")
    default_categories = ("court_case",)
    feed: IndexFeed = IndexFeed()

    def fetch_category_index(self, params: DateRangeParams, category: str) -> tuple[str, list[EaActionSummary]]:
        self.feed.index_loads += 1
        if category in self.feed.failing_categories:
            raise FetchError(f"HTTP 503 for {category}", status_code=503)
        summaries = [
            EaActionSummary(
                regulator_id=row.regulator_id,
                offender_name=row.offender_name,
                address=None,
                action_date=date(2026, 1, 10),
                action_type=category,
                detail_url=f"https://feed.test/registration/{row.regulator_id}",
                scraped_at=SCRAPED_AT,
            )
            for row in self.feed.categories.get(category, [])
        ]
        return f"https://feed.test/index?category={category}", summaries

    def process_record(self, raw: EaActionSummary, params: DateRangeParams, *, cursor: int | None = None) -> ProcessedRecord:
        row = FeedRow(regulator_id=raw.regulator_id, offender_name=raw.offender_name)
        return feed_record(row, source=self.source_id, cursor=cursor)


def date_range_strategy_class(feed: IndexFeed) -> type[FeedDateRangeStrategy]:
    return type("ScriptedDateRangeStrategy", (FeedDateRangeStrategy,), {"feed": feed})


def rows(prefix: str, count: int, **overrides: Any) -> list[FeedRow]:
    return [FeedRow(regulator_id=f"{prefix}{index:03d}", **overrides) for index in range(1, count + 1)]
