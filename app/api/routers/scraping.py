"""
Scrape run control and session status endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status

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
from app.scraping.errors import (
    ScrapingDisabledError,
    SessionNotFoundError,
    StrategyNotFoundError,
    ValidationError,
)
from app.scraping.session import InvalidSessionTransition, ScrapeSessionState
from app.services.scraping_service import (
    FastAPIBackgroundTaskExecutor,
    ScrapingService,
    get_scraping_service,
)

router = APIRouter(tags=["scraping"])


@router.post(
    "/scraping/runs",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=SessionResponse,
)
def start_scrape_run(
    request: StartRunRequest,
    background_tasks: BackgroundTasks,
    service: ScrapingService = Depends(get_scraping_service),
) -> SessionResponse:
    try:
        session = service.start_run(
            executor=FastAPIBackgroundTaskExecutor(background_tasks),
            source=request.source,
            enforcement_type=request.enforcement_type,
            params=request.strategy_params(),
            process_all_records=request.process_all_records,
        )
    except ScrapingDisabledError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    except StrategyNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    return _to_session_response(session)


@router.post(
    "/scraping/runs/stop",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=SessionResponse,
)
def stop_scrape_run(
    request: StopRunRequest,
    service: ScrapingService = Depends(get_scraping_service),
) -> SessionResponse:
    try:
        session = service.stop_run(request.session_id)
    except SessionNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except InvalidSessionTransition as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc

    return _to_session_response(session)


@router.get("/scraping/sessions", response_model=SessionListResponse)
def list_scrape_sessions(
    source: str | None = Query(default=None, description="Optional source filter"),
    status_filter: str | None = Query(default=None, alias="status", description="Optional status filter"),
    limit: int = Query(default=50, ge=1, le=500, description="Max sessions returned"),
    service: ScrapingService = Depends(get_scraping_service),
) -> SessionListResponse:
    sessions = service.list_sessions(source=source, status=status_filter, limit=limit)
    return SessionListResponse(sessions=[_to_session_response(session) for session in sessions])


@router.get("/scraping/sessions/{session_id}", response_model=SessionResponse)
def get_scrape_session(
    session_id: str,
    service: ScrapingService = Depends(get_scraping_service),
) -> SessionResponse:
    try:
        description = service.describe_session(session_id)
    except SessionNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    response = _to_session_response(description.session)
    response.progress = description.progress
    response.display = description.display
    return response


@router.get("/scraping/sessions/{session_id}/events", response_model=ProgressEventListResponse)
def get_scrape_session_events(
    session_id: str,
    after: int = Query(default=0, ge=0, description="Return events with a sequence greater than this"),
    service: ScrapingService = Depends(get_scraping_service),
) -> ProgressEventListResponse:
    try:
        events = service.events_after(session_id, after)
    except SessionNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    return ProgressEventListResponse(
        session_id=session_id,
        events=[ProgressEventResponse(**event.as_dict()) for event in events],
    )


@router.get("/scraping/sessions/{session_id}/logs", response_model=ProcessingLogListResponse)
def get_scrape_session_logs(
    session_id: str,
    service: ScrapingService = Depends(get_scraping_service),
) -> ProcessingLogListResponse:
    try:
        entries = service.list_processing_logs(session_id)
    except SessionNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    return ProcessingLogListResponse(
        session_id=session_id,
        logs=[
            ProcessingLogResponse(
                batch_or_page=entry.batch_or_page,
                source=entry.source,
                items_found=entry.items_found,
                items_created=entry.items_created,
                items_existing=entry.items_existing,
                items_failed=entry.items_failed,
                creation_errors=list(entry.creation_errors),
                created_at=entry.created_at,
            )
            for entry in entries
        ],
    )


@router.get("/scraping/strategies", response_model=StrategyListResponse)
def list_scrape_strategies(
    service: ScrapingService = Depends(get_scraping_service),
) -> StrategyListResponse:
    return StrategyListResponse(
        strategies=[StrategyInfoResponse(**entry) for entry in service.list_strategies()],
    )


def _to_session_response(session: ScrapeSessionState) -> SessionResponse:
    return SessionResponse(
        session_id=session.session_id,
        source=session.source,
        enforcement_type=session.enforcement_type,
        status=session.status,
        params=session.params,
        current_position=session.current_position,
        counters=SessionCountersResponse(**session.counters.as_dict()),
        process_all_records=session.process_all_records,
        stop_requested=session.stop_requested,
        recent_errors=list(session.recent_errors),
        error_message=session.error_message,
        created_at=session.created_at,
        updated_at=session.updated_at,
        started_at=session.started_at,
        completed_at=session.completed_at,
    )
