"""
app/schemas package marker.
"""

from app.schemas.scraping import (
    ProcessingLogListResponse,
    ProcessingLogResponse,
    ProgressEventListResponse,
    ProgressEventResponse,
    SessionCountersResponse,
    SessionListResponse,
    SessionResponse,
    StartRunRequest,
    StopRunRequest,
    StrategyInfoResponse,
    StrategyListResponse,
)

__all__ = [
    "ProcessingLogListResponse",
    "ProcessingLogResponse",
    "ProgressEventListResponse",
    "ProgressEventResponse",
    "SessionCountersResponse",
    "SessionListResponse",
    "SessionResponse",
    "StartRunRequest",
    "StopRunRequest",
    "StrategyInfoResponse",
    "StrategyListResponse",
]
