"""
tests/test_coordinator.py

Scrape coordinator behaviour over scripted page and date-range feeds.

Coverage
--------
- Fresh run persists every record and completes
- Re-running the same feed creates nothing (idempotence)
- Early exit on consecutive existing records, reset by a created record
- process_all_records refreshes existing records and disables early exit
- Cooperative stop, fatal errors and unexpected exceptions
- Fetch, parse, enrichment, registry and per-record store errors are counted, not fatal
- Batch counters survive a fatal error raised mid-batch
- One processing log row per fetched batch
- Progress events are monotonic with exactly one terminal event
- Breach resolution, offender reuse and match review queueing
"""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
from typing import Any

import pytest
from sqlalchemy.exc import DataError

from app.dedup.offender import OffenderResolver
from app.scraping.config.models import ScrapingSettings
from app.scraping.coordinator import ScrapeCoordinator, ScrapeRunResult
from app.scraping.errors import RegistryUnavailableError
from app.scraping.fetcher import PageFetcher
from app.scraping.progress import InMemoryProgressBroker
from app.scraping.session import InvalidSessionTransition, SessionStatus
from fakes import (
    FakeCompanyRegistry,
    FeedRow,
    IndexFeed,
    InMemoryEnforcementStore,
    PageFeed,
    company,
    date_range_strategy_class,
    page_strategy_class,
    rows,
)

HSWA_CITATION = "Health and Safety at Work etc. Act 1974 / Section 2(1)"
HSWA_UPPER_CITATION = "HEALTH AND SAFETY AT WORK ACT 1974 / s.3"


class CountingPacer:
    def __init__(self) -> None:
        self.calls = 0

    def wait(self) -> float:
        self.calls += 1
        return 0.0


class RejectingStore(InMemoryEnforcementStore):
    """Raises a database error when inserting the named records."""

    def __init__(self, rejected: set[str]) -> None:
        super().__init__()
        self.rejected = rejected

    def create_case_or_notice(self, record, *, offender_id, offences):
        if record.regulator_id in self.rejected:
            raise DataError("INSERT INTO enforcement_records", {}, Exception("value too long for type"))
        return super().create_case_or_notice(record, offender_id=offender_id, offences=offences)


class Harness:
    """Creates a session for a strategy class and runs the coordinator over it."""

    def __init__(self, store: InMemoryEnforcementStore, settings: ScrapingSettings, fetcher: PageFetcher) -> None:
        self.store = store
        self.settings = settings
        self.fetcher = fetcher
        self.broker = InMemoryProgressBroker()
        self.session_id: str | None = None

    def create(self, strategy_class: type, params: dict[str, Any] | None = None, *, process_all: bool = False):
        strategy = strategy_class(fetcher=self.fetcher, settings=self.settings)
        validated = strategy.validate_params(params or {})
        session = self.store.create_session(
            source=strategy.source_id,
            enforcement_type=strategy.enforcement_type,
            params=strategy.serialize_params(validated),
            process_all_records=process_all,
            current_position=strategy.initial_cursor(validated),
        )
        self.session_id = session.session_id
        return strategy, session

    def run(
        self,
        strategy_class: type,
        params: dict[str, Any] | None = None,
        *,
        process_all: bool = False,
        resolver: OffenderResolver | None = None,
        pacer: Any = None,
    ) -> ScrapeRunResult:
        strategy, session = self.create(strategy_class, params, process_all=process_all)
        coordinator = ScrapeCoordinator(
            store=self.store,
            strategy=strategy,
            settings=self.settings,
            pacer=pacer,
            offender_resolver=resolver,
            publisher=self.broker,
        )
        return coordinator.run(session.session_id)

    def events(self) -> list:
        return self.broker.events_after(self.session_id or "", 0)


@pytest.fixture()
def harness(store: InMemoryEnforcementStore, settings: ScrapingSettings, fetcher: PageFetcher) -> Harness:
    return Harness(store, settings, fetcher)


# ---------------------------------------------------------------------------
# Page-based runs
# ---------------------------------------------------------------------------


class TestPageRuns:
    def test_fresh_run_persists_every_record(self, harness: Harness, store: InMemoryEnforcementStore) -> None:
        feed = PageFeed(pages={1: rows("A", 3), 2: rows("B", 3)})

        result = harness.run(page_strategy_class(feed), {"max_pages": 5})

        counters = result.session.counters
        assert result.status == SessionStatus.COMPLETED
        assert counters.pages_processed == 3
        assert counters.records_found == 6
        assert counters.records_processed == 6
        assert counters.records_created == 6
        assert counters.records_existing == 0
        assert counters.errors_count == 0
        assert len(store.records) == 6
        assert feed.fetched == [1, 2, 3]
        assert result.percentage == 100.0
        assert result.early_exit is False

    def test_records_share_one_offender_with_aggregates(
        self,
        harness: Harness,
        store: InMemoryEnforcementStore,
    ) -> None:
        feed = PageFeed(pages={1: rows("A", 3, fine=Decimal("1000.00"))})

        harness.run(page_strategy_class(feed), {"max_pages": 1})

        assert len(store.offenders) == 1
        offender = next(iter(store.offenders.values()))
        assert offender["normalized_name"] == "acme widgets limited"
        assert offender["total_cases"] == 3
        assert offender["total_notices"] == 0
        assert offender["total_fines"] == Decimal("3000.00")
        offender_ids = {entry["offender_id"] for entry in store.records.values()}
        assert offender_ids == set(store.offenders)

    def test_rerun_of_same_feed_creates_nothing(
        self,
        store: InMemoryEnforcementStore,
        settings: ScrapingSettings,
        fetcher: PageFetcher,
    ) -> None:
        relaxed = replace(settings, consecutive_existing_threshold=10)
        feed = PageFeed(pages={1: rows("A", 3), 2: rows("B", 3)})
        Harness(store, relaxed, fetcher).run(page_strategy_class(feed), {"max_pages": 5})

        second = Harness(store, relaxed, fetcher).run(page_strategy_class(feed), {"max_pages": 5})

        counters = second.session.counters
        assert second.status == SessionStatus.COMPLETED
        assert counters.records_created == 0
        assert counters.records_existing == 6
        assert counters.records_processed == 6
        assert len(store.records) == 6
        assert next(iter(store.offenders.values()))["total_cases"] == 6

    def test_early_exit_after_consecutive_existing_records(
        self,
        store: InMemoryEnforcementStore,
        settings: ScrapingSettings,
        fetcher: PageFetcher,
    ) -> None:
        feed = PageFeed(pages={1: rows("A", 5), 2: rows("B", 5)})
        Harness(store, settings, fetcher).run(page_strategy_class(feed), {"max_pages": 2})
        feed.fetched.clear()

        result = Harness(store, settings, fetcher).run(page_strategy_class(feed), {"max_pages": 2})

        assert result.early_exit is True
        assert result.status == SessionStatus.COMPLETED
        assert feed.fetched == [1]
        assert result.session.counters.pages_processed == 1
        assert result.session.counters.records_processed == 5
        assert result.session.counters.records_existing == 5

    def test_created_record_resets_consecutive_existing_count(
        self,
        store: InMemoryEnforcementStore,
        settings: ScrapingSettings,
        fetcher: PageFetcher,
    ) -> None:
        seed = PageFeed(pages={1: rows("A", 4)})
        Harness(store, settings, fetcher).run(page_strategy_class(seed), {"max_pages": 1})

        existing = rows("A", 4)
        mixed = PageFeed(pages={1: [existing[0], existing[1], FeedRow("C001"), existing[2], existing[3]]})
        result = Harness(store, settings, fetcher).run(page_strategy_class(mixed), {"max_pages": 3})

        assert result.early_exit is False
        assert mixed.fetched == [1, 2]
        assert result.session.counters.records_created == 1
        assert result.session.counters.records_existing == 4

    def test_process_all_records_refreshes_and_never_exits_early(
        self,
        store: InMemoryEnforcementStore,
        settings: ScrapingSettings,
        fetcher: PageFetcher,
    ) -> None:
        feed = PageFeed(pages={1: rows("A", 5), 2: rows("B", 5)})
        Harness(store, settings, fetcher).run(page_strategy_class(feed), {"max_pages": 2})
        feed.fetched.clear()
        store.exists_calls.clear()

        result = Harness(store, settings, fetcher).run(
            page_strategy_class(feed),
            {"max_pages": 2},
            process_all=True,
        )

        counters = result.session.counters
        assert result.early_exit is False
        assert feed.fetched == [1, 2]
        assert counters.records_updated == 10
        assert counters.records_created == 0
        assert counters.records_existing == 0
        assert store.exists_calls == []

    def test_prefilter_is_one_bulk_lookup_per_batch(
        self,
        harness: Harness,
        store: InMemoryEnforcementStore,
    ) -> None:
        feed = PageFeed(pages={1: rows("A", 4)})

        harness.run(page_strategy_class(feed), {"max_pages": 1})

        assert store.exists_calls == [("hse", ["A001", "A002", "A003", "A004"])]

    def test_pacer_waits_before_every_fetch(self, harness: Harness) -> None:
        pacer = CountingPacer()
        feed = PageFeed(pages={1: rows("A", 1), 2: rows("B", 1)})

        harness.run(page_strategy_class(feed), {"max_pages": 5}, pacer=pacer)

        assert pacer.calls == len(feed.fetched) == 3


# ---------------------------------------------------------------------------
# Cancellation and failures
# ---------------------------------------------------------------------------


class TestCancellationAndFailures:
    def test_stop_request_ends_run_after_in_flight_batch(
        self,
        harness: Harness,
        store: InMemoryEnforcementStore,
    ) -> None:
        feed = PageFeed(pages={1: rows("A", 2), 2: rows("B", 2), 3: rows("C", 2)})
        feed.on_fetch = lambda page: store.request_stop(harness.session_id) if page == 1 else None

        result = harness.run(page_strategy_class(feed), {"max_pages": 5})

        assert result.status == SessionStatus.STOPPED
        assert feed.fetched == [1]
        assert result.session.counters.records_created == 2
        terminal = [event for event in harness.events() if event.terminal]
        assert len(terminal) == 1
        assert terminal[0].phase == SessionStatus.STOPPED
        assert terminal[0].percentage == 20.0

    def test_fatal_error_fails_session_and_keeps_progress(self, harness: Harness) -> None:
        feed = PageFeed(pages={1: rows("A", 2), 2: rows("B", 2)}, fatal_pages={2})

        result = harness.run(page_strategy_class(feed), {"max_pages": 5})

        assert result.status == SessionStatus.FAILED
        assert result.session.error_message is not None
        assert result.session.error_message.startswith("FatalScrapeError")
        assert result.session.counters.records_created == 2
        assert any("FatalScrapeError" in message for message in result.session.recent_errors)

    def test_fatal_error_mid_batch_keeps_counters_for_persisted_records(
        self,
        harness: Harness,
        store: InMemoryEnforcementStore,
    ) -> None:
        page = [FeedRow("A001"), FeedRow("A002"), FeedRow("A003", fatal=True), FeedRow("A004")]
        feed = PageFeed(pages={1: page})

        result = harness.run(page_strategy_class(feed), {"max_pages": 2})

        counters = result.session.counters
        assert result.status == SessionStatus.FAILED
        assert counters.records_created == len(store.records) == 2
        assert counters.records_processed == 3
        assert counters.pages_processed == 1
        assert result.session.current_position == 1
        assert "A003" in (result.session.error_message or "")

    def test_store_failure_on_one_record_is_counted_and_run_continues(
        self,
        settings: ScrapingSettings,
        fetcher: PageFetcher,
    ) -> None:
        store = RejectingStore({"A002"})
        harness = Harness(store, settings, fetcher)
        feed = PageFeed(pages={1: rows("A", 4), 2: rows("B", 3)})

        result = harness.run(page_strategy_class(feed), {"max_pages": 2})

        counters = result.session.counters
        assert result.status == SessionStatus.COMPLETED
        assert feed.fetched == [1, 2]
        assert len(store.records) == 6
        assert ("hse", "A002") not in store.records
        assert counters.records_created == 6
        assert counters.records_processed == 7
        assert counters.errors_count == 1
        assert result.session.recent_errors[0].startswith("record=A002 DataError")

    def test_unexpected_exception_marks_session_failed_and_propagates(
        self,
        harness: Harness,
        store: InMemoryEnforcementStore,
    ) -> None:
        feed = PageFeed(pages={1: rows("A", 1)}, crash_pages={1})

        with pytest.raises(RuntimeError):
            harness.run(page_strategy_class(feed), {"max_pages": 2})

        session = store.get_session(harness.session_id)
        assert session.status == SessionStatus.FAILED
        assert "RuntimeError" in (session.error_message or "")
        assert [event.phase for event in harness.events() if event.terminal] == [SessionStatus.FAILED]

    def test_terminal_session_cannot_be_run_again(self, harness: Harness, store: InMemoryEnforcementStore) -> None:
        feed = PageFeed(pages={1: rows("A", 1)})
        strategy_class = page_strategy_class(feed)
        result = harness.run(strategy_class, {"max_pages": 1})
        strategy = strategy_class(fetcher=harness.fetcher, settings=harness.settings)
        coordinator = ScrapeCoordinator(store=store, strategy=strategy, settings=harness.settings)

        with pytest.raises(InvalidSessionTransition):
            coordinator.run(result.session.session_id)

    def test_fetch_error_is_counted_and_run_continues(self, harness: Harness) -> None:
        feed = PageFeed(
            pages={1: rows("A", 2), 2: rows("B", 2), 3: rows("C", 2)},
            failing_pages={2},
        )

        result = harness.run(page_strategy_class(feed), {"max_pages": 3})

        counters = result.session.counters
        assert result.status == SessionStatus.COMPLETED
        assert feed.fetched == [1, 2, 3]
        assert counters.pages_processed == 3
        assert counters.errors_count == 1
        assert counters.records_created == 4
        assert result.session.recent_errors[0].startswith("cursor=2")

    def test_parse_error_skips_only_that_record(self, harness: Harness, store: InMemoryEnforcementStore) -> None:
        feed = PageFeed(pages={1: [FeedRow("A001"), FeedRow("A002", malformed=True), FeedRow("A003")]})

        result = harness.run(page_strategy_class(feed), {"max_pages": 1})

        counters = result.session.counters
        assert counters.records_processed == 3
        assert counters.records_created == 2
        assert counters.errors_count == 1
        assert ("hse", "A002") not in store.records

    def test_enrichment_errors_keep_the_record(self, harness: Harness, store: InMemoryEnforcementStore) -> None:
        failure = "case_details A001: FetchError: HTTP 503"
        feed = PageFeed(pages={1: [FeedRow("A001", enrichment_errors=(failure,))]})

        result = harness.run(page_strategy_class(feed), {"max_pages": 1})

        assert ("hse", "A001") in store.records
        assert result.session.counters.records_created == 1
        assert result.session.counters.errors_count == 1
        assert result.session.recent_errors == [failure]

    def test_recent_errors_are_bounded(self, harness: Harness) -> None:
        feed = PageFeed(pages={1: [FeedRow(f"A{index:03d}", malformed=True) for index in range(8)]})

        result = harness.run(page_strategy_class(feed), {"max_pages": 1})

        assert result.session.counters.errors_count == 8
        assert len(result.session.recent_errors) == harness.settings.max_recent_errors
        assert "A007" in result.session.recent_errors[-1]


# ---------------------------------------------------------------------------
# Processing logs and session position
# ---------------------------------------------------------------------------


class TestProcessingLogs:
    def test_one_row_per_fetched_page(self, harness: Harness, store: InMemoryEnforcementStore) -> None:
        feed = PageFeed(
            pages={1: [FeedRow("A001"), FeedRow("A002", malformed=True)], 3: rows("C", 2)},
            failing_pages={2},
        )

        harness.run(page_strategy_class(feed), {"max_pages": 3})

        logs = store.list_processing_logs(harness.session_id)
        assert [entry.batch_or_page for entry in logs] == [1, 2, 3]
        assert all(entry.source == "hse" for entry in logs)
        assert all(entry.created_at is not None for entry in logs)

        first, failed_fetch, last = logs
        assert (first.items_found, first.items_created, first.items_failed) == (2, 1, 1)
        assert first.creation_errors[0].startswith("record=A002 ParseError")
        assert (failed_fetch.items_found, failed_fetch.items_created) == (0, 0)
        assert failed_fetch.creation_errors[0].startswith("cursor=2 FetchError")
        assert (last.items_found, last.items_created, last.creation_errors) == (2, 2, [])

    def test_rerun_logs_existing_items(
        self,
        store: InMemoryEnforcementStore,
        settings: ScrapingSettings,
        fetcher: PageFetcher,
    ) -> None:
        feed = PageFeed(pages={1: rows("A", 2)})
        Harness(store, settings, fetcher).run(page_strategy_class(feed), {"max_pages": 1})

        second = Harness(store, settings, fetcher)
        second.run(page_strategy_class(feed), {"max_pages": 1})

        (entry,) = store.list_processing_logs(second.session_id)
        assert (entry.items_created, entry.items_existing) == (0, 2)

    def test_batch_interrupted_by_fatal_error_is_still_logged(
        self,
        harness: Harness,
        store: InMemoryEnforcementStore,
    ) -> None:
        feed = PageFeed(pages={1: [FeedRow("A001"), FeedRow("A002", fatal=True)]})

        harness.run(page_strategy_class(feed), {"max_pages": 1})

        (entry,) = store.list_processing_logs(harness.session_id)
        assert entry.items_found == 2
        assert entry.items_created == 1

    def test_run_records_the_initial_cursor_before_fetching(
        self,
        settings: ScrapingSettings,
        fetcher: PageFetcher,
        store: InMemoryEnforcementStore,
    ) -> None:
        feed = PageFeed(pages={3: rows("A", 1)})
        strategy = page_strategy_class(feed)(fetcher=fetcher, settings=settings)
        session = store.create_session(
            source="hse",
            enforcement_type="case",
            params={"start_page": 3, "max_pages": 2},
            process_all_records=False,
        )
        store.request_stop(session.session_id)
        coordinator = ScrapeCoordinator(store=store, strategy=strategy, settings=settings)

        result = coordinator.run(session.session_id)

        assert result.status == SessionStatus.STOPPED
        assert feed.fetched == []
        assert result.session.current_position == 3
        assert store.list_processing_logs(session.session_id) == []


# ---------------------------------------------------------------------------
# Progress channel
# ---------------------------------------------------------------------------


class TestProgressEvents:
    def test_percentages_are_monotonic_with_one_terminal_event(self, harness: Harness) -> None:
        feed = PageFeed(pages={1: rows("A", 2), 2: rows("B", 2), 3: rows("C", 2)})

        harness.run(page_strategy_class(feed), {"max_pages": 5})

        events = harness.events()
        percentages = [event.percentage for event in events]
        assert percentages == sorted(percentages)
        assert [event.sequence for event in events] == list(range(1, len(events) + 1))
        assert [event.terminal for event in events].count(True) == 1
        assert events[-1].terminal is True
        assert events[-1].phase == SessionStatus.COMPLETED
        assert events[-1].percentage == 100.0
        assert all(event.percentage < 100.0 for event in events[:-1])

    def test_events_carry_counters_and_position(self, harness: Harness) -> None:
        feed = PageFeed(pages={1: rows("A", 2), 2: rows("B", 1)})

        harness.run(page_strategy_class(feed), {"max_pages": 5})

        first = harness.events()[0]
        assert first.phase == SessionStatus.RUNNING
        assert first.current_position == 1
        assert first.records_created == 2
        assert first.percentage == 20.0


# ---------------------------------------------------------------------------
# Deduplication during persistence
# ---------------------------------------------------------------------------


class TestDeduplication:
    def test_breaches_resolve_to_shared_legislation_with_apportioned_fines(
        self,
        harness: Harness,
        store: InMemoryEnforcementStore,
    ) -> None:
        row = FeedRow(
            "A001",
            fine=Decimal("10000.00"),
            costs=Decimal("100.00"),
            breaches=(HSWA_CITATION, HSWA_UPPER_CITATION),
        )
        feed = PageFeed(pages={1: [row]})

        harness.run(page_strategy_class(feed), {"max_pages": 1})

        offences = store.records[("hse", "A001")]["offences"]
        assert [offence.sequence_number for offence in offences] == [1, 2]
        assert [offence.fine for offence in offences] == [Decimal("5000.00"), Decimal("5000.00")]
        assert sum(offence.costs for offence in offences) == Decimal("100.00")
        assert offences[0].legislation_id == offences[1].legislation_id
        assert len(store.legislation) == 1
        assert offences[1].legislation_part == "Section 3"

    def test_ambiguous_registry_match_is_queued_once_per_new_offender(
        self,
        harness: Harness,
        store: InMemoryEnforcementStore,
    ) -> None:
        registry = FakeCompanyRegistry(
            search_results={
                "Acme Widgets Ltd": [
                    company("ACME WIDGETS LIMITED", "01234567"),
                    company("ACME WIDGETS (NORTH) LIMITED", "07654321"),
                ]
            }
        )
        resolver = OffenderResolver(registry=registry, match_threshold=0.9)
        feed = PageFeed(pages={1: rows("A", 2)})

        result = harness.run(page_strategy_class(feed), {"max_pages": 1}, resolver=resolver)

        assert result.session.counters.records_created == 2
        assert len(store.match_reviews) == 1
        review = store.match_reviews[0]
        assert review["regulator_id"] == "A001"
        assert {candidate["company_number"] for candidate in review["candidates"]} == {"01234567", "07654321"}

    def test_registry_outage_counts_errors_and_still_persists(
        self,
        harness: Harness,
        store: InMemoryEnforcementStore,
    ) -> None:
        registry = FakeCompanyRegistry(error=RegistryUnavailableError("rate_limited"))
        resolver = OffenderResolver(registry=registry)
        feed = PageFeed(pages={1: rows("A", 2)})

        result = harness.run(page_strategy_class(feed), {"max_pages": 1}, resolver=resolver)

        assert len(store.records) == 2
        assert result.session.counters.errors_count == 2
        assert all("rate_limited" in message for message in result.session.recent_errors)

    def test_matched_offender_takes_registry_identity(
        self,
        harness: Harness,
        store: InMemoryEnforcementStore,
    ) -> None:
        registry = FakeCompanyRegistry(
            search_results={"Acme Widgets Ltd": [company("ACME WIDGETS LIMITED", "01234567", postcode="ZZ9 9ZZ")]}
        )
        resolver = OffenderResolver(registry=registry)
        feed = PageFeed(pages={1: rows("A", 1)})

        harness.run(page_strategy_class(feed), {"max_pages": 1}, resolver=resolver)

        offender = next(iter(store.offenders.values()))
        assert offender["attributes"].registration_number == "01234567"
        assert offender["postcode"] == "ZZ9 9ZZ"
        assert store.match_reviews == []


# ---------------------------------------------------------------------------
# Date-range runs
# ---------------------------------------------------------------------------


class TestDateRangeRuns:
    def test_index_is_sliced_into_batches(self, harness: Harness) -> None:
        feed = IndexFeed(categories={"court_case": rows("E", 5)})

        result = harness.run(
            date_range_strategy_class(feed),
            {"date_from": "2026-01-01", "date_to": "2026-01-31", "batch_size": 2},
        )

        counters = result.session.counters
        assert result.status == SessionStatus.COMPLETED
        assert feed.index_loads == 1
        assert counters.pages_processed == 3
        assert counters.records_found == 5
        assert counters.records_created == 5
        assert result.session.current_position == 4
        assert [event.percentage for event in harness.events()] == [40.0, 80.0, 100.0]

    def test_existing_records_never_trigger_early_exit(
        self,
        store: InMemoryEnforcementStore,
        settings: ScrapingSettings,
        fetcher: PageFetcher,
    ) -> None:
        feed = IndexFeed(categories={"court_case": rows("E", 6)})
        params = {"date_from": "2026-01-01", "date_to": "2026-01-31", "batch_size": 2}
        Harness(store, settings, fetcher).run(date_range_strategy_class(feed), params)

        result = Harness(store, settings, fetcher).run(date_range_strategy_class(feed), params)

        assert result.early_exit is False
        assert result.iterations == 3
        assert result.session.counters.records_existing == 6

    def test_failed_category_is_an_error_not_a_failure(self, harness: Harness) -> None:
        feed = IndexFeed(
            categories={"court_case": rows("E", 2), "caution": rows("K", 2)},
            failing_categories={"caution"},
        )

        result = harness.run(
            date_range_strategy_class(feed),
            {"date_from": "2026-01-01", "date_to": "2026-01-31", "categories": ["court_case", "caution"]},
        )

        assert result.status == SessionStatus.COMPLETED
        assert result.session.counters.records_created == 2
        assert result.session.counters.errors_count == 1
        assert result.session.recent_errors[0].startswith("category=caution")

    def test_every_category_failing_leaves_nothing_to_process(self, harness: Harness) -> None:
        feed = IndexFeed(categories={"court_case": rows("E", 2)}, failing_categories={"court_case"})

        result = harness.run(
            date_range_strategy_class(feed),
            {"date_from": "2026-01-01", "date_to": "2026-01-31"},
        )

        assert result.status == SessionStatus.COMPLETED
        assert result.session.counters.errors_count == 1
        assert result.session.counters.records_found == 0
