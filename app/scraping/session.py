"""
Scrape session state machine.

    pending -> running -> {completed | failed | stopped}

Terminal states are final.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from app.scraping.errors import ScrapeError


class SessionStatus:
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    STOPPED = "stopped"


TERMINAL_STATUSES = frozenset({SessionStatus.COMPLETED, SessionStatus.FAILED, SessionStatus.STOPPED})

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    SessionStatus.PENDING: frozenset({SessionStatus.RUNNING}),
    SessionStatus.RUNNING: TERMINAL_STATUSES,
    SessionStatus.COMPLETED: frozenset(),
    SessionStatus.FAILED: frozenset(),
    SessionStatus.STOPPED: frozenset(),
}

COUNTER_FIELDS = (
    "pages_processed",
    "records_found",
    "records_processed",
    "records_created",
    "records_updated",
    "records_existing",
    "errors_count",
)


class InvalidSessionTransition(ScrapeError):
    """Raised when a status change is not allowed by the state machine."""

    def __init__(self, session_id: str, current: str, target: str) -> None:
        super().__init__(f"Session {session_id}: cannot transition from '{current}' to '{target}'.")
        self.session_id = session_id
        self.current = current
        self.target = target


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES


def can_transition(current: str, target: str) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def ensure_transition(session_id: str, current: str, target: str) -> None:
    if not can_transition(current, target):
        raise InvalidSessionTransition(session_id, current, target)


@dataclass(frozen=True)
class SessionCounters:
    pages_processed: int = 0
    records_found: int = 0
    records_processed: int = 0
    records_created: int = 0
    records_updated: int = 0
    records_existing: int = 0
    errors_count: int = 0

    def as_dict(self) -> dict[str, int]:
        return {name: getattr(self, name) for name in COUNTER_FIELDS}


@dataclass(frozen=True)
class ScrapeSessionState:
    """
    Read-only snapshot of one scrape session as held by the store.
    """

    session_id: str
    source: str
    enforcement_type: str
    params: dict[str, Any]
    status: str = SessionStatus.PENDING
    current_position: int | None = None
    counters: SessionCounters = field(default_factory=SessionCounters)
    process_all_records: bool = False
    stop_requested: bool = False
    recent_errors: list[str] = field(default_factory=list)
    error_message: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return is_terminal(self.status)


@dataclass(frozen=True)
class ProcessingLogEntry:
    """
    Audit row for one fetched batch: a list page for page-based sources or
    an index offset for date-range sources.
    """

    session_id: str
    source: str
    batch_or_page: int
    items_found: int = 0
    items_created: int = 0
    items_existing: int = 0
    items_failed: int = 0
    creation_errors: list[str] = field(default_factory=list)
    created_at: datetime | None = None
