"""
Persisted store interface used by the coordinator and dedup stages.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping, Sequence
from decimal import Decimal
from typing import Any

from app.domain.enforcement import (
    LegislationEntity,
    LegislationKey,
    OffenderAttributes,
    ProcessedRecord,
    ResolvedOffence,
)
from app.scraping.session import ProcessingLogEntry, ScrapeSessionState

SESSION_UPDATABLE_FIELDS = frozenset({"current_position", "error_message", "params"})


class EnforcementStore(ABC):
    """
    Storage abstraction for enforcement records and scrape sessions.

    Record creation is guarded by a uniqueness constraint on
    (source, regulator_id); a rejected create raises DuplicateRecordError.
    """

    # Records and offenders

    @abstractmethod
    def exists_by_external_id(self, source: str, regulator_ids: Sequence[str]) -> set[str]:
        """
        Return the subset of `regulator_ids` already stored for `source`
        using a single bulk lookup.
        """

    @abstractmethod
    def find_offender(self, normalized_name: str, postcode: str | None) -> Any | None:
        """Return the id of an offender with this normalized name and postcode."""

    @abstractmethod
    def create_offender(self, attrs: OffenderAttributes, *, normalized_name: str) -> Any:
        """
        Insert an offender and return its id.

        Raises DuplicateRecordError (carrying the existing id) when the
        (normalized_name, postcode) pair already exists.
        """

    @abstractmethod
    def increment_offender_totals(
        self,
        offender_id: Any,
        *,
        cases: int = 0,
        notices: int = 0,
        fines: Decimal = Decimal("0.00"),
    ) -> None:
        """Atomically add to an offender's aggregate counters."""

    @abstractmethod
    def create_case_or_notice(
        self,
        record: ProcessedRecord,
        *,
        offender_id: Any | None,
        offences: Sequence[ResolvedOffence],
    ) -> Any:
        """
        Insert the record and its offence rows in one transaction.

        Raises DuplicateRecordError when (source, regulator_id) exists.
        """

    @abstractmethod
    def update_case_or_notice(self, record: ProcessedRecord) -> bool:
        """
        Refresh the mutable fields of an existing record.

        Returns False when no record with (source, regulator_id) exists.
        """

    @abstractmethod
    def find_or_create_legislation(
        self,
        key: LegislationKey,
        *,
        title: str,
        number: int | None,
        legislation_type: str,
    ) -> LegislationEntity:
        """Return the legislation for `key`, creating it on first sight."""

    @abstractmethod
    def create_match_review(
        self,
        *,
        offender_id: Any,
        source: str,
        regulator_id: str,
        candidates: Sequence[Mapping[str, Any]],
        reason: str,
    ) -> Any:
        """Queue an ambiguous registry match for manual review."""

    # Sessions

    @abstractmethod
    def create_session(
        self,
        *,
        source: str,
        enforcement_type: str,
        params: Mapping[str, Any],
        process_all_records: bool,
        current_position: int | None = None,
    ) -> ScrapeSessionState:
        """Insert a new `pending` session."""

    @abstractmethod
    def get_session(self, session_id: str) -> ScrapeSessionState:
        """Raises SessionNotFoundError when the session does not exist."""

    @abstractmethod
    def list_sessions(
        self,
        *,
        source: str | None = None,
        status: str | None = None,
        limit: int = 50,
    ) -> list[ScrapeSessionState]:
        """Newest sessions first."""

    @abstractmethod
    def update_session(self, session_id: str, **fields: Any) -> ScrapeSessionState:
        """
        Apply a partial update limited to SESSION_UPDATABLE_FIELDS.

        Terminal sessions are never modified.
        """

    @abstractmethod
    def increment_session_counters(
        self,
        session_id: str,
        deltas: Mapping[str, int],
        *,
        current_position: int | None = None,
    ) -> ScrapeSessionState:
        """
        Atomically add `deltas` to the session counters and return the
        resulting snapshot. `current_position` only moves forward.
        """

    @abstractmethod
    def transition_session(
        self,
        session_id: str,
        target: str,
        *,
        error_message: str | None = None,
    ) -> ScrapeSessionState:
        """
        Compare-and-set status change. Raises InvalidSessionTransition when
        the state machine does not allow it.
        """

    @abstractmethod
    def request_stop(self, session_id: str) -> ScrapeSessionState:
        """Flag the session for cooperative cancellation."""

    @abstractmethod
    def is_stop_requested(self, session_id: str) -> bool:
        pass

    @abstractmethod
    def append_recent_error(self, session_id: str, messages: Iterable[str], *, limit: int) -> None:
        """Append to the bounded recent-errors list, keeping the newest `limit`."""

    # Processing logs

    @abstractmethod
    def record_processing_log(self, entry: ProcessingLogEntry) -> None:
        """Store the audit row for one fetched batch."""

    @abstractmethod
    def list_processing_logs(self, session_id: str) -> list[ProcessingLogEntry]:
        """Audit rows for a session, oldest first."""


def validate_session_fields(fields: Mapping[str, Any]) -> None:
    unknown = set(fields) - SESSION_UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Unsupported session fields: {sorted(unknown)}.")
