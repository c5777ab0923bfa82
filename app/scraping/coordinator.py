"""
Scrape coordinator: drives one session from `running` to a terminal state.

Per iteration: pace, fetch, pre-filter, process, resolve breaches and
offender, persist, update counters, then publish progress or finish.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from app.dedup.legislation import resolve_breaches
from app.dedup.offender import MatchOutcome, OffenderResolution, OffenderResolver, normalize_company_name
from app.dedup.prefilter import check_existing
from app.domain.enforcement import EnforcementType, OffenderAttributes, ProcessedRecord
from app.scraping.base import ScrapeStrategy
from app.scraping.config.models import ScrapingSettings
from app.scraping.errors import DuplicateRecordError, FatalScrapeError, FetchError, ParseError
from app.scraping.logging_utils import describe_error, log_event
from app.scraping.progress import NullProgressPublisher, ProgressPublisher, build_event
from app.scraping.rate_limiter import RequestPacer
from app.scraping.session import (
    COUNTER_FIELDS,
    InvalidSessionTransition,
    ProcessingLogEntry,
    ScrapeSessionState,
    SessionStatus,
)
from app.scraping.storage.base import EnforcementStore

logger = logging.getLogger(__name__)


class PersistOutcome:
    CREATED = "created"
    UPDATED = "updated"
    EXISTING = "existing"
    ERROR = "error"


@dataclass(frozen=True)
class ScrapeRunResult:
    session: ScrapeSessionState
    iterations: int
    early_exit: bool
    percentage: float

    @property
    def status(self) -> str:
        return self.session.status


@dataclass
class _LoopState:
    iterations: int = 0
    sequence: int = 0
    consecutive_existing: int = 0
    last_percentage: float = 0.0
    early_exit: bool = False


@dataclass
class _IterationResult:
    next_cursor: int | None
    total: int | None = None
    errors: list[str] = field(default_factory=list)


@dataclass
class _BatchTally:
    """Counter deltas and errors accumulated over one fetched batch."""

    cursor: int
    deltas: dict[str, int] = field(default_factory=lambda: dict.fromkeys(COUNTER_FIELDS, 0))
    errors: list[str] = field(default_factory=list)
    items_found: int = 0
    items_failed: int = 0

    def record_error(self, message: str) -> None:
        self.deltas["errors_count"] += 1
        self.errors.append(message)


class ScrapeCoordinator:
    """
    Runs the fetch/process/persist loop for one session.

    The loop is sequential. Cancellation is checked between iterations and
    the batch in flight always finishes first.
    """

    def __init__(
        self,
        *,
        store: EnforcementStore,
        strategy: ScrapeStrategy,
        settings: ScrapingSettings,
        pacer: RequestPacer | None = None,
        offender_resolver: OffenderResolver | None = None,
        publisher: ProgressPublisher | None = None,
    ) -> None:
        self._store = store
        self._strategy = strategy
        self._settings = settings
        self._pacer = pacer
        self._offender_resolver = offender_resolver
        self._publisher = publisher or NullProgressPublisher()

    def run(self, session_id: str) -> ScrapeRunResult:
        session = self._store.get_session(session_id)
        if session.status == SessionStatus.PENDING:
            session = self._store.transition_session(session_id, SessionStatus.RUNNING)
        elif session.status != SessionStatus.RUNNING:
            raise InvalidSessionTransition(session_id, session.status, SessionStatus.RUNNING)

        params = self._strategy.validate_params(session.params)
        cursor: int | None = self._strategy.initial_cursor(params)
        session = self._store.update_session(session_id, current_position=cursor)
        loop = _LoopState()
        final_status = SessionStatus.COMPLETED
        error_message: str | None = None

        log_event(
            logger,
            logging.INFO,
            "scrape_session_started",
            session_id=session_id,
            source=session.source,
            enforcement_type=session.enforcement_type,
            cursor=cursor,
            process_all_records=session.process_all_records,
        )

        try:
            while cursor is not None:
                if self._store.is_stop_requested(session_id):
                    final_status = SessionStatus.STOPPED
                    break

                result = self._run_iteration(session, params, cursor, loop)
                loop.iterations += 1
                session = self._store.get_session(session_id)
                loop.last_percentage = max(loop.last_percentage, self._strategy.progress(session))

                if loop.early_exit or result.next_cursor is None:
                    break
                cursor = result.next_cursor
                self._publish(session, loop, phase=SessionStatus.RUNNING, total=result.total)
        except FatalScrapeError as exc:
            final_status = SessionStatus.FAILED
            error_message = describe_error(exc)
            self._store.append_recent_error(session_id, [error_message], limit=self._settings.max_recent_errors)
            log_event(logger, logging.ERROR, "scrape_session_fatal", session_id=session_id, error=error_message)
        except Exception as exc:
            self._finish(session_id, loop, SessionStatus.FAILED, describe_error(exc))
            raise

        return self._finish(session_id, loop, final_status, error_message)

    def _finish(
        self,
        session_id: str,
        loop: _LoopState,
        final_status: str,
        error_message: str | None,
    ) -> ScrapeRunResult:
        session = self._store.transition_session(session_id, final_status, error_message=error_message)
        percentage = 100.0 if final_status == SessionStatus.COMPLETED else loop.last_percentage
        loop.last_percentage = percentage
        self._publish(session, loop, phase=final_status, terminal=True)

        log_event(
            logger,
            logging.INFO,
            "scrape_session_finished",
            session_id=session_id,
            status=final_status,
            iterations=loop.iterations,
            early_exit=loop.early_exit,
            **session.counters.as_dict(),
        )
        return ScrapeRunResult(
            session=session,
            iterations=loop.iterations,
            early_exit=loop.early_exit,
            percentage=percentage,
        )

    def _run_iteration(
        self,
        session: ScrapeSessionState,
        params: Any,
        cursor: int,
        loop: _LoopState,
    ) -> _IterationResult:
        tally = _BatchTally(cursor=cursor)

        if self._pacer is not None:
            self._pacer.wait()

        try:
            batch = self._strategy.fetch(params, cursor)
        except FetchError as exc:
            message = f"cursor={cursor} {describe_error(exc)}"
            log_event(
                logger,
                logging.WARNING,
                "scrape_fetch_failed",
                session_id=session.session_id,
                cursor=cursor,
                error=str(exc),
            )
            tally.deltas["pages_processed"] = 1
            tally.deltas["errors_count"] = 1
            tally.errors.append(message)
            self._commit(session, tally)
            return _IterationResult(next_cursor=self._strategy.skip_cursor(params, cursor), errors=tally.errors)

        tally.deltas["pages_processed"] = 1
        tally.deltas["records_found"] = batch.newly_found
        tally.deltas["errors_count"] += len(batch.errors)
        tally.errors.extend(batch.errors)
        tally.items_found = len(batch.records)

        try:
            record_ids = [self._strategy.record_id(raw) for raw in batch.records]
            existing_ids: set[str] = set()
            if not session.process_all_records and record_ids:
                existing_ids = set(check_existing(self._store, session.source, record_ids).existing)

            for raw, record_id in zip(batch.records, record_ids):
                tally.deltas["records_processed"] += 1
                if record_id in existing_ids:
                    tally.deltas["records_existing"] += 1
                    loop.consecutive_existing += 1
                else:
                    outcome = self._handle_record(session, raw, params, cursor, tally)
                    if outcome == PersistOutcome.CREATED:
                        tally.deltas["records_created"] += 1
                        loop.consecutive_existing = 0
                    elif outcome == PersistOutcome.UPDATED:
                        tally.deltas["records_updated"] += 1
                    elif outcome == PersistOutcome.EXISTING:
                        tally.deltas["records_existing"] += 1
                        loop.consecutive_existing += 1
                    else:
                        tally.items_failed += 1

                if self._early_exit_reached(session, loop):
                    loop.early_exit = True
        finally:
            self._commit(session, tally)

        log_event(
            logger,
            logging.INFO,
            "scrape_iteration_completed",
            session_id=session.session_id,
            cursor=cursor,
            records=len(batch.records),
            created=tally.deltas["records_created"],
            existing=tally.deltas["records_existing"],
            errors=tally.deltas["errors_count"],
            early_exit=loop.early_exit,
        )
        return _IterationResult(next_cursor=batch.next_cursor, total=batch.total, errors=tally.errors)

    def _handle_record(
        self,
        session: ScrapeSessionState,
        raw: Any,
        params: Any,
        cursor: int,
        tally: _BatchTally,
    ) -> str:
        try:
            return self._persist_record(session, raw, params, cursor, tally)
        except FatalScrapeError:
            raise
        except ParseError as exc:
            message = f"record={exc.regulator_id or self._strategy.record_id(raw)} {describe_error(exc)}"
            tally.record_error(message)
            log_event(logger, logging.WARNING, "record_parse_failed", session_id=session.session_id, error=message)
            return PersistOutcome.ERROR
        except Exception as exc:
            message = f"record={self._strategy.record_id(raw)} {describe_error(exc)}"
            tally.record_error(message)
            log_event(logger, logging.ERROR, "record_persist_failed", session_id=session.session_id, error=message)
            return PersistOutcome.ERROR

    def _persist_record(
        self,
        session: ScrapeSessionState,
        raw: Any,
        params: Any,
        cursor: int,
        tally: _BatchTally,
    ) -> str:
        record = self._strategy.process_record(raw, params, cursor=cursor)
        if record.enrichment_errors:
            tally.deltas["errors_count"] += len(record.enrichment_errors)
            tally.errors.extend(record.enrichment_errors)

        breaches = resolve_breaches(self._store, record.breaches, fine=record.fine, costs=record.costs)
        resolution = self._resolve_offender(record.offender)
        if resolution.registry_error:
            tally.record_error(f"registry {record.regulator_id}: {resolution.registry_error}")

        offender_id, offender_created = self._persist_offender(resolution.attributes)
        try:
            self._store.create_case_or_notice(record, offender_id=offender_id, offences=breaches.offences)
        except DuplicateRecordError:
            if session.process_all_records and self._store.update_case_or_notice(record):
                return PersistOutcome.UPDATED
            return PersistOutcome.EXISTING

        self._attach_to_offender(offender_id, record)
        if offender_created and resolution.outcome == MatchOutcome.NEEDS_REVIEW:
            self._store.create_match_review(
                offender_id=offender_id,
                source=record.source,
                regulator_id=record.regulator_id,
                candidates=resolution.candidates,
                reason=f"{len(resolution.candidates)} registry candidates",
            )

        log_event(
            logger,
            logging.DEBUG,
            "record_persisted",
            session_id=session.session_id,
            regulator_id=record.regulator_id,
            offences=len(breaches.offences),
            offender_match=resolution.outcome,
        )
        return PersistOutcome.CREATED

    def _resolve_offender(self, attrs: OffenderAttributes) -> OffenderResolution:
        if self._offender_resolver is None:
            return OffenderResolution(attributes=attrs, outcome=MatchOutcome.SKIPPED)
        return self._offender_resolver.resolve(attrs)

    def _persist_offender(self, attrs: OffenderAttributes) -> tuple[Any, bool]:
        normalized = normalize_company_name(attrs.name)
        existing = self._store.find_offender(normalized, attrs.postcode)
        if existing is not None:
            return existing, False
        try:
            return self._store.create_offender(attrs, normalized_name=normalized), True
        except DuplicateRecordError as exc:
            return exc.existing_id, False

    def _attach_to_offender(self, offender_id: Any, record: ProcessedRecord) -> None:
        is_notice = record.enforcement_type == EnforcementType.NOTICE
        self._store.increment_offender_totals(
            offender_id,
            cases=0 if is_notice else 1,
            notices=1 if is_notice else 0,
            fines=record.fine,
        )

    def _early_exit_reached(self, session: ScrapeSessionState, loop: _LoopState) -> bool:
        if session.process_all_records or not self._strategy.supports_early_exit:
            return False
        return loop.consecutive_existing >= self._settings.consecutive_existing_threshold

    def _commit(self, session: ScrapeSessionState, tally: _BatchTally) -> None:
        session_id = session.session_id
        self._store.increment_session_counters(session_id, tally.deltas, current_position=tally.cursor)
        if tally.errors:
            self._store.append_recent_error(session_id, tally.errors, limit=self._settings.max_recent_errors)

        entry = ProcessingLogEntry(
            session_id=session_id,
            source=session.source,
            batch_or_page=tally.cursor,
            items_found=tally.items_found,
            items_created=tally.deltas["records_created"] + tally.deltas["records_updated"],
            items_existing=tally.deltas["records_existing"],
            items_failed=tally.items_failed,
            creation_errors=list(tally.errors),
        )
        try:
            self._store.record_processing_log(entry)
        except Exception as exc:
            log_event(
                logger,
                logging.WARNING,
                "processing_log_failed",
                session_id=session_id,
                cursor=tally.cursor,
                error=describe_error(exc),
            )

    def _publish(
        self,
        session: ScrapeSessionState,
        loop: _LoopState,
        *,
        phase: str,
        total: int | None = None,
        terminal: bool = False,
    ) -> None:
        loop.sequence += 1
        self._publisher.publish(
            build_event(
                session,
                sequence=loop.sequence,
                phase=phase,
                percentage=loop.last_percentage,
                total=total,
                terminal=terminal,
            )
        )
