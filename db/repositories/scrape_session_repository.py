"""
Repository for scrape session lifecycle persistence and atomic counter updates.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Select, func, select, update
from sqlalchemy.orm import Session

from db.models.processing_log import ProcessingLog
from db.models.scrape_session import ScrapeSession

COUNTER_COLUMNS = (
    "pages_processed",
    "records_found",
    "records_processed",
    "records_created",
    "records_updated",
    "records_existing",
    "errors_count",
)
TERMINAL = ("completed", "failed", "stopped")


class ScrapeSessionRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create_session(
        self,
        *,
        source: str,
        enforcement_type: str,
        params: dict[str, Any],
        process_all_records: bool = False,
        current_position: int | None = None,
    ) -> ScrapeSession:
        row = ScrapeSession(
            source=source,
            enforcement_type=enforcement_type,
            status="pending",
            params=params,
            process_all_records=process_all_records,
            current_position=current_position,
            recent_errors=[],
        )
        self._session.add(row)
        self._session.flush()
        self._session.refresh(row)
        return row

    def get_session(self, session_id: uuid.UUID) -> ScrapeSession | None:
        return self._session.get(ScrapeSession, session_id)

    def list_sessions(
        self,
        *,
        limit: int = 50,
        source: str | None = None,
        status: str | None = None,
    ) -> list[ScrapeSession]:
        stmt: Select[tuple[ScrapeSession]] = select(ScrapeSession)

        if source:
            stmt = stmt.where(ScrapeSession.source == source)
        if status:
            stmt = stmt.where(ScrapeSession.status == status)

        stmt = stmt.order_by(ScrapeSession.created_at.desc()).limit(max(1, limit))
        return list(self._session.scalars(stmt).all())

    def increment_counters(
        self,
        session_id: uuid.UUID,
        deltas: Mapping[str, int],
        *,
        current_position: int | None = None,
    ) -> ScrapeSession | None:
        """
        Single `UPDATE ... SET x = x + :delta ... RETURNING` on a running session.
        """

        values: dict[str, Any] = {
            name: getattr(ScrapeSession, name) + int(delta)
            for name, delta in deltas.items()
            if name in COUNTER_COLUMNS and delta
        }
        if current_position is not None:
            values["current_position"] = func.greatest(
                func.coalesce(ScrapeSession.current_position, current_position),
                current_position,
            )
        values["updated_at"] = func.now()

        stmt = (
            update(ScrapeSession)
            .where(ScrapeSession.id == session_id, ScrapeSession.status == "running")
            .values(**values)
            .returning(ScrapeSession)
            .execution_options(populate_existing=True)
        )
        return self._session.scalars(stmt).one_or_none()

    def compare_and_set_status(
        self,
        session_id: uuid.UUID,
        *,
        expected: str,
        target: str,
        error_message: str | None = None,
    ) -> ScrapeSession | None:
        now = datetime.now(timezone.utc)
        values: dict[str, Any] = {"status": target, "updated_at": now}
        if target == "running":
            values["started_at"] = now
        if target in TERMINAL:
            values["completed_at"] = now
        if error_message is not None:
            values["error_message"] = error_message

        stmt = (
            update(ScrapeSession)
            .where(ScrapeSession.id == session_id, ScrapeSession.status == expected)
            .values(**values)
            .returning(ScrapeSession)
            .execution_options(populate_existing=True)
        )
        return self._session.scalars(stmt).one_or_none()

    def request_stop(self, session_id: uuid.UUID) -> ScrapeSession | None:
        stmt = (
            update(ScrapeSession)
            .where(ScrapeSession.id == session_id, ScrapeSession.status.not_in(TERMINAL))
            .values(stop_requested=True, updated_at=func.now())
            .returning(ScrapeSession)
            .execution_options(populate_existing=True)
        )
        return self._session.scalars(stmt).one_or_none()

    def update_fields(self, session_id: uuid.UUID, fields: Mapping[str, Any]) -> ScrapeSession | None:
        row = self._locked(session_id)
        if row is None or row.status in TERMINAL:
            return row
        for name, value in fields.items():
            setattr(row, name, value)
        return row

    def append_recent_errors(self, session_id: uuid.UUID, messages: Iterable[str], *, limit: int) -> None:
        row = self._locked(session_id)
        if row is None:
            return
        combined = list(row.recent_errors or []) + [str(message) for message in messages]
        row.recent_errors = combined[-max(1, limit) :]

    def _locked(self, session_id: uuid.UUID) -> ScrapeSession | None:
        stmt = select(ScrapeSession).where(ScrapeSession.id == session_id).with_for_update()
        return self._session.scalars(stmt).one_or_none()

    def add_processing_log(self, payload: Mapping[str, Any]) -> ProcessingLog:
        row = ProcessingLog(**payload)
        self._session.add(row)
        self._session.flush()
        return row

    def list_processing_logs(self, session_id: uuid.UUID) -> list[ProcessingLog]:
        stmt = (
            select(ProcessingLog)
            .where(ProcessingLog.session_id == session_id)
            .order_by(ProcessingLog.created_at.asc(), ProcessingLog.batch_or_page.asc())
        )
        return list(self._session.scalars(stmt).all())
