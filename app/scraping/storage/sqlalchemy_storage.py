"""
SQLAlchemy-backed enforcement store.

Each operation runs in its own short transaction so the coordinator's
counter updates are visible to readers as soon as they return.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from contextlib import contextmanager
from decimal import Decimal
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.enforcement import (
    LegislationEntity,
    LegislationKey,
    OffenderAttributes,
    ProcessedRecord,
    ResolvedOffence,
)
from app.scraping.errors import DuplicateRecordError, SessionNotFoundError
from app.scraping.session import (
    InvalidSessionTransition,
    ProcessingLogEntry,
    ScrapeSessionState,
    SessionCounters,
    SessionStatus,
    ensure_transition,
)
from app.scraping.storage.base import EnforcementStore, validate_session_fields
from db.models.enforcement import Legislation
from db.models.processing_log import ProcessingLog
from db.models.scrape_session import ScrapeSession
from db.repositories.enforcement_repository import EnforcementRepository
from db.repositories.scrape_session_repository import ScrapeSessionRepository


def _parse_session_id(session_id: str) -> uuid.UUID:
    try:
        return uuid.UUID(str(session_id))
    except ValueError as exc:
        raise SessionNotFoundError(f"Scrape session not found: {session_id}") from exc


def to_session_state(row: ScrapeSession) -> ScrapeSessionState:
    return ScrapeSessionState(
        session_id=str(row.id),
        source=row.source,
        enforcement_type=row.enforcement_type,
        params=dict(row.params or {}),
        status=row.status,
        current_position=row.current_position,
        counters=SessionCounters(
            pages_processed=row.pages_processed,
            records_found=row.records_found,
            records_processed=row.records_processed,
            records_created=row.records_created,
            records_updated=row.records_updated,
            records_existing=row.records_existing,
            errors_count=row.errors_count,
        ),
        process_all_records=row.process_all_records,
        stop_requested=row.stop_requested,
        recent_errors=list(row.recent_errors or []),
        error_message=row.error_message,
        created_at=row.created_at,
        updated_at=row.updated_at,
        started_at=row.started_at,
        completed_at=row.completed_at,
    )


def to_processing_log_entry(row: ProcessingLog) -> ProcessingLogEntry:
    return ProcessingLogEntry(
        session_id=str(row.session_id),
        source=row.source,
        batch_or_page=row.batch_or_page,
        items_found=row.items_found,
        items_created=row.items_created,
        items_existing=row.items_existing,
        items_failed=row.items_failed,
        creation_errors=list(row.creation_errors or []),
        created_at=row.created_at,
    )


def _to_legislation_entity(row: Legislation) -> LegislationEntity:
    return LegislationEntity(
        id=row.id,
        title=row.title,
        year=row.year,
        number=row.number,
        legislation_type=row.legislation_type,
    )


def _record_payload(record: ProcessedRecord, offender_id: Any | None) -> dict[str, Any]:
    return {
        "source": record.source,
        "enforcement_type": record.enforcement_type,
        "regulator_id": record.regulator_id,
        "offender_id": offender_id,
        **_mutable_record_fields(record),
    }


def _mutable_record_fields(record: ProcessedRecord) -> dict[str, Any]:
    return {
        "action_type": record.action_type,
        "action_date": record.action_date,
        "hearing_date": record.hearing_date,
        "compliance_date": record.compliance_date,
        "fine": record.fine,
        "costs": record.costs,
        "result": record.result,
        "description": record.description,
        "regulator_function": record.regulator_function,
        "provenance": record.provenance.as_dict(),
        "extra": record.extra or None,
    }


class SQLAlchemyEnforcementStore(EnforcementStore):
    """
    Persist enforcement data and scrape sessions through the repositories.
    """

    def __init__(self, *, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    @contextmanager
    def _transaction(self) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            raise
        finally:
            session.close()

    # Records and offenders

    def exists_by_external_id(self, source: str, regulator_ids: Sequence[str]) -> set[str]:
        if not regulator_ids:
            return set()
        with self._transaction() as session:
            return EnforcementRepository(session).existing_regulator_ids(source, regulator_ids)

    def find_offender(self, normalized_name: str, postcode: str | None) -> Any | None:
        with self._transaction() as session:
            return EnforcementRepository(session).find_offender_id(normalized_name, postcode or "")

    def create_offender(self, attrs: OffenderAttributes, *, normalized_name: str) -> Any:
        payload = {
            "name": attrs.name,
            "normalized_name": normalized_name,
            "postcode": attrs.postcode or "",
            "address": attrs.address,
            "town": attrs.town,
            "county": attrs.county,
            "local_authority": attrs.local_authority,
            "country": attrs.country,
            "registration_number": attrs.registration_number,
            "main_activity": attrs.main_activity,
            "industry": attrs.industry,
            "sic_code": attrs.sic_code,
            "business_type": attrs.business_type,
        }
        with self._transaction() as session:
            repository = EnforcementRepository(session)
            offender_id = repository.insert_offender(payload)
            if offender_id is None:
                existing_id = repository.find_offender_id(normalized_name, attrs.postcode or "")
                raise DuplicateRecordError(
                    f"Offender already exists: {normalized_name!r}",
                    existing_id=existing_id,
                )
            return offender_id

    def increment_offender_totals(
        self,
        offender_id: Any,
        *,
        cases: int = 0,
        notices: int = 0,
        fines: Decimal = Decimal("0.00"),
    ) -> None:
        with self._transaction() as session:
            EnforcementRepository(session).increment_offender_totals(
                offender_id,
                cases=cases,
                notices=notices,
                fines=fines,
            )

    def create_case_or_notice(
        self,
        record: ProcessedRecord,
        *,
        offender_id: Any | None,
        offences: Sequence[ResolvedOffence],
    ) -> Any:
        with self._transaction() as session:
            repository = EnforcementRepository(session)
            record_id = repository.insert_record(_record_payload(record, offender_id))
            if record_id is None:
                raise DuplicateRecordError(
                    f"Record already exists: {record.source}/{record.regulator_id}",
                    existing_id=repository.record_id_for(record.source, record.regulator_id),
                )
            repository.insert_offences(
                [
                    {
                        "record_id": record_id,
                        "legislation_id": offence.legislation_id,
                        "sequence_number": offence.sequence_number,
                        "legislation_part": offence.legislation_part,
                        "description": offence.description,
                        "original_text": offence.original_text,
                        "fine": offence.fine,
                        "costs": offence.costs,
                    }
                    for offence in offences
                ]
            )
            return record_id

    def update_case_or_notice(self, record: ProcessedRecord) -> bool:
        with self._transaction() as session:
            return EnforcementRepository(session).update_record(
                record.source,
                record.regulator_id,
                _mutable_record_fields(record),
            )

    def find_or_create_legislation(
        self,
        key: LegislationKey,
        *,
        title: str,
        number: int | None,
        legislation_type: str,
    ) -> LegislationEntity:
        payload = {
            "title": title,
            "normalized_title": key.normalized_title,
            "year": key.year,
            "number": number,
            "legislation_type": legislation_type,
        }
        with self._transaction() as session:
            return _to_legislation_entity(EnforcementRepository(session).find_or_create_legislation(payload))

    def create_match_review(
        self,
        *,
        offender_id: Any,
        source: str,
        regulator_id: str,
        candidates: Sequence[Mapping[str, Any]],
        reason: str,
    ) -> Any:
        with self._transaction() as session:
            review = EnforcementRepository(session).create_match_review(
                {
                    "offender_id": offender_id,
                    "source": source,
                    "regulator_id": regulator_id,
                    "candidates": [dict(candidate) for candidate in candidates],
                    "reason": reason,
                }
            )
            return review.id

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
        with self._transaction() as session:
            row = ScrapeSessionRepository(session).create_session(
                source=source,
                enforcement_type=enforcement_type,
                params=dict(params),
                process_all_records=process_all_records,
                current_position=current_position,
            )
            return to_session_state(row)

    def get_session(self, session_id: str) -> ScrapeSessionState:
        with self._transaction() as session:
            return to_session_state(self._require(ScrapeSessionRepository(session), session_id))

    def list_sessions(
        self,
        *,
        source: str | None = None,
        status: str | None = None,
        limit: int = 50,
    ) -> list[ScrapeSessionState]:
        with self._transaction() as session:
            rows = ScrapeSessionRepository(session).list_sessions(limit=limit, source=source, status=status)
            return [to_session_state(row) for row in rows]

    def update_session(self, session_id: str, **fields: Any) -> ScrapeSessionState:
        validate_session_fields(fields)
        with self._transaction() as session:
            repository = ScrapeSessionRepository(session)
            row = repository.update_fields(_parse_session_id(session_id), fields)
            if row is None:
                raise SessionNotFoundError(f"Scrape session not found: {session_id}")
            return to_session_state(row)

    def increment_session_counters(
        self,
        session_id: str,
        deltas: Mapping[str, int],
        *,
        current_position: int | None = None,
    ) -> ScrapeSessionState:
        with self._transaction() as session:
            repository = ScrapeSessionRepository(session)
            row = repository.increment_counters(
                _parse_session_id(session_id),
                deltas,
                current_position=current_position,
            )
            if row is None:
                current = self._require(repository, session_id)
                raise InvalidSessionTransition(session_id, current.status, SessionStatus.RUNNING)
            return to_session_state(row)

    def transition_session(
        self,
        session_id: str,
        target: str,
        *,
        error_message: str | None = None,
    ) -> ScrapeSessionState:
        with self._transaction() as session:
            repository = ScrapeSessionRepository(session)
            current = self._require(repository, session_id)
            ensure_transition(session_id, current.status, target)
            row = repository.compare_and_set_status(
                current.id,
                expected=current.status,
                target=target,
                error_message=error_message,
            )
            if row is None:
                latest = self._require(repository, session_id)
                raise InvalidSessionTransition(session_id, latest.status, target)
            return to_session_state(row)

    def request_stop(self, session_id: str) -> ScrapeSessionState:
        with self._transaction() as session:
            repository = ScrapeSessionRepository(session)
            row = repository.request_stop(_parse_session_id(session_id))
            if row is None:
                current = self._require(repository, session_id)
                raise InvalidSessionTransition(session_id, current.status, SessionStatus.STOPPED)
            return to_session_state(row)

    def is_stop_requested(self, session_id: str) -> bool:
        return self.get_session(session_id).stop_requested

    def append_recent_error(self, session_id: str, messages: Iterable[str], *, limit: int) -> None:
        with self._transaction() as session:
            ScrapeSessionRepository(session).append_recent_errors(
                _parse_session_id(session_id),
                messages,
                limit=limit,
            )

    # Processing logs

    def record_processing_log(self, entry: ProcessingLogEntry) -> None:
        with self._transaction() as session:
            ScrapeSessionRepository(session).add_processing_log(
                {
                    "session_id": _parse_session_id(entry.session_id),
                    "source": entry.source,
                    "batch_or_page": entry.batch_or_page,
                    "items_found": entry.items_found,
                    "items_created": entry.items_created,
                    "items_existing": entry.items_existing,
                    "items_failed": entry.items_failed,
                    "creation_errors": list(entry.creation_errors),
                }
            )

    def list_processing_logs(self, session_id: str) -> list[ProcessingLogEntry]:
        with self._transaction() as session:
            repository = ScrapeSessionRepository(session)
            self._require(repository, session_id)
            rows = repository.list_processing_logs(_parse_session_id(session_id))
            return [to_processing_log_entry(row) for row in rows]

    @staticmethod
    def _require(repository: ScrapeSessionRepository, session_id: str) -> ScrapeSession:
        row = repository.get_session(_parse_session_id(session_id))
        if row is None:
            raise SessionNotFoundError(f"Scrape session not found: {session_id}")
        return row
