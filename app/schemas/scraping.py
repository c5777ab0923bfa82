"""
Schemas for scrape run control and session status endpoints.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, Field


class StartRunRequest(BaseModel):
    source: str
    enforcement_type: str
    start_page: int | str | None = None
    max_pages: int | str | None = None
    database: str | None = None
    country: str | None = None
    date_from: date | str | None = None
    date_to: date | str | None = None
    categories: list[str] | None = None
    batch_size: int | str | None = None
    process_all_records: bool = False

    def strategy_params(self) -> dict[str, Any]:
        return self.model_dump(
            exclude={"source", "enforcement_type", "process_all_records"},
            exclude_none=True,
        )


class StopRunRequest(BaseModel):
    session_id: str


class SessionCountersResponse(BaseModel):
    pages_processed: int = 0
    records_found: int = 0
    records_processed: int = 0
    records_created: int = 0
    records_updated: int = 0
    records_existing: int = 0
    errors_count: int = 0


class SessionResponse(BaseModel):
    session_id: str
    source: str
    enforcement_type: str
    status: str
    params: dict[str, Any] = Field(default_factory=dict)
    current_position: int | None = None
    counters: SessionCountersResponse
    process_all_records: bool = False
    stop_requested: bool = False
    recent_errors: list[str] = Field(default_factory=list)
    error_message: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    progress: float | None = None
    display: dict[str, Any] | None = None


class SessionListResponse(BaseModel):
    sessions: list[SessionResponse] = Field(default_factory=list)


class ProgressEventResponse(BaseModel):
    session_id: str
    sequence: int
    phase: str
    percentage: float
    current_position: int | None = None
    total_or_unknown: int | None = None
    records_found: int = 0
    records_processed: int = 0
    records_created: int = 0
    records_existing: int = 0
    errors_count: int = 0
    terminal: bool = False


class ProgressEventListResponse(BaseModel):
    session_id: str
    events: list[ProgressEventResponse] = Field(default_factory=list)


class ProcessingLogResponse(BaseModel):
    batch_or_page: int
    source: str
    items_found: int = 0
    items_created: int = 0
    items_existing: int = 0
    items_failed: int = 0
    creation_errors: list[str] = Field(default_factory=list)
    created_at: datetime | None = None


class ProcessingLogListResponse(BaseModel):
    session_id: str
    logs: list[ProcessingLogResponse] = Field(default_factory=list)


class StrategyInfoResponse(BaseModel):
    source: str
    enforcement_type: str
    display_name: str
    cursor_kind: str


class StrategyListResponse(BaseModel):
    strategies: list[StrategyInfoResponse] = Field(default_factory=list)
