"""
Service for starting, stopping and inspecting enforcement scrape sessions.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Protocol

from fastapi import BackgroundTasks
from sqlalchemy.orm import Session

from app.config import get_companies_house_settings
from app.connectors.companies_house import get_companies_house_client
from app.dedup.offender import CompanyRegistry, OffenderResolver
from app.scraping.base import ScrapeStrategy
from app.scraping.config.loader import get_scraping_settings
from app.scraping.config.models import ScrapingSettings
from app.scraping.coordinator import ScrapeCoordinator, ScrapeRunResult
from app.scraping.errors import ScrapingDisabledError
from app.scraping.fetcher import PageFetcher
from app.scraping.logging_utils import describe_error, log_event
from app.scraping.progress import (
    CompositeProgressPublisher,
    InMemoryProgressBroker,
    LoggingProgressPublisher,
    NullProgressPublisher,
    ProgressEvent,
    ProgressPublisher,
)
from app.scraping.rate_limiter import RequestPacer
from app.scraping.registry import StrategyRegistry
from app.scraping.session import (
    InvalidSessionTransition,
    ProcessingLogEntry,
    ScrapeSessionState,
    SessionStatus,
)
from app.scraping.storage.base import EnforcementStore

logger = logging.getLogger(__name__)


class TriggerType:
    MANUAL = "manual"
    SCHEDULED = "scheduled"


class ScrapeTaskExecutor(Protocol):
    def submit(self, task: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        ...


class FastAPIBackgroundTaskExecutor:
    def __init__(self, background_tasks: BackgroundTasks) -> None:
        self._background_tasks = background_tasks

    def submit(self, task: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        self._background_tasks.add_task(task, *args, **kwargs)


class InlineTaskExecutor:
    """Runs the task in the calling thread. Used by the scheduler and CLI."""

    def submit(self, task: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        task(*args, **kwargs)


@dataclass(frozen=True)
class SessionDescription:
    session: ScrapeSessionState
    progress: float
    display: dict[str, Any]


class ScrapingService:
    """
    Creates sessions, dispatches the coordinator and reads back state.
    """

    def __init__(
        self,
        *,
        store: EnforcementStore | None = None,
        registry: StrategyRegistry | None = None,
        settings: ScrapingSettings | None = None,
        broker: InMemoryProgressBroker | None = None,
        registry_client: CompanyRegistry | None = None,
        session_factory: Callable[[], Session] | None = None,
    ) -> None:
        if store is None:
            from app.scraping.storage.sqlalchemy_storage import SQLAlchemyEnforcementStore

            if session_factory is None:
                from db.session import SessionLocal

                session_factory = SessionLocal
            store = SQLAlchemyEnforcementStore(session_factory=session_factory)

        self._store = store
        self._registry = registry or StrategyRegistry()
        self._settings = settings or get_scraping_settings()
        self._broker = broker or InMemoryProgressBroker()
        self._registry_client = registry_client

    @property
    def settings(self) -> ScrapingSettings:
        return self._settings

    def start_run(
        self,
        *,
        executor: ScrapeTaskExecutor,
        source: str,
        enforcement_type: str,
        params: Mapping[str, Any] | None = None,
        process_all_records: bool = False,
        trigger: str = TriggerType.MANUAL,
    ) -> ScrapeSessionState:
        self._ensure_enabled(trigger)

        strategy = self._build_strategy(source, enforcement_type, fetcher=PageFetcher(settings=self._settings))
        validated = strategy.validate_params(params or {})
        session = self._store.create_session(
            source=strategy.source_id,
            enforcement_type=strategy.enforcement_type,
            params=strategy.serialize_params(validated),
            process_all_records=process_all_records,
            current_position=strategy.initial_cursor(validated),
        )
        log_event(
            logger,
            logging.INFO,
            "scrape_session_created",
            session_id=session.session_id,
            source=session.source,
            enforcement_type=session.enforcement_type,
            trigger=trigger,
            params=session.params,
        )

        try:
            executor.submit(self.run_session, session.session_id)
        except Exception as exc:
            self._mark_session_failed(session.session_id, exc)
            raise

        return self._store.get_session(session.session_id)

    def stop_run(self, session_id: str) -> ScrapeSessionState:
        session = self._store.get_session(session_id)
        if session.is_terminal:
            raise InvalidSessionTransition(session_id, session.status, SessionStatus.STOPPED)
        session = self._store.request_stop(session_id)
        log_event(logger, logging.INFO, "scrape_stop_requested", session_id=session_id, status=session.status)
        return session

    def get_session(self, session_id: str) -> ScrapeSessionState:
        return self._store.get_session(session_id)

    def describe_session(self, session_id: str) -> SessionDescription:
        session = self._store.get_session(session_id)
        strategy = self._build_strategy(
            session.source,
            session.enforcement_type,
            fetcher=PageFetcher(settings=self._settings),
        )
        return SessionDescription(
            session=session,
            progress=round(strategy.reported_progress(session), 1),
            display=strategy.describe(session),
        )

    def list_sessions(
        self,
        *,
        source: str | None = None,
        status: str | None = None,
        limit: int = 50,
    ) -> list[ScrapeSessionState]:
        return self._store.list_sessions(source=source, status=status, limit=limit)

    def events_after(self, session_id: str, after: int = 0) -> list[ProgressEvent]:
        self._store.get_session(session_id)
        return self._broker.events_after(session_id, after)

    def list_processing_logs(self, session_id: str) -> list[ProcessingLogEntry]:
        return self._store.list_processing_logs(session_id)

    def list_strategies(self) -> list[dict[str, str]]:
        return self._registry.list_strategies()

    def run_session(self, session_id: str) -> ScrapeRunResult | None:
        try:
            session = self._store.get_session(session_id)
            pacer = RequestPacer(
                requests_per_minute=self._settings.requests_per_minute,
                pause_between_requests_seconds=self._settings.pause_between_requests_seconds,
            )
            fetcher = PageFetcher(settings=self._settings, pacer=pacer)
            strategy = self._build_strategy(session.source, session.enforcement_type, fetcher=fetcher)
            coordinator = ScrapeCoordinator(
                store=self._store,
                strategy=strategy,
                settings=self._settings,
                pacer=pacer,
                offender_resolver=self._build_offender_resolver(),
                publisher=self._build_publisher(),
            )
            return coordinator.run(session_id)
        except Exception as exc:
            self._mark_session_failed(session_id, exc)
            return None

    def _ensure_enabled(self, trigger: str) -> None:
        if trigger == TriggerType.SCHEDULED and not self._settings.scheduled_scraping_enabled:
            raise ScrapingDisabledError("Scheduled scraping is disabled.")
        if trigger == TriggerType.MANUAL and not self._settings.manual_scraping_enabled:
            raise ScrapingDisabledError("Manual scraping is disabled.")

    def _build_strategy(self, source: str, enforcement_type: str, *, fetcher: PageFetcher) -> ScrapeStrategy:
        return self._registry.create(source, enforcement_type, fetcher=fetcher, settings=self._settings)

    def _build_offender_resolver(self) -> OffenderResolver:
        client = self._registry_client
        if client is None:
            registry_settings = get_companies_house_settings()
            if registry_settings.enabled and registry_settings.api_key:
                client = get_companies_house_client()
        return OffenderResolver(
            registry=client,
            match_threshold=self._settings.match_threshold,
            search_page_size=get_companies_house_settings().search_page_size,
        )

    def _build_publisher(self) -> ProgressPublisher:
        if not self._settings.real_time_progress_enabled:
            return NullProgressPublisher()
        return CompositeProgressPublisher([self._broker, LoggingProgressPublisher()])

    def _mark_session_failed(self, session_id: str, exc: Exception) -> None:
        error_message = describe_error(exc)
        logger.exception("Scrape session failed id=%s error=%s", session_id, error_message)
        try:
            session = self._store.get_session(session_id)
            if session.is_terminal:
                return
            if session.status == SessionStatus.PENDING:
                self._store.transition_session(session_id, SessionStatus.RUNNING)
            self._store.append_recent_error(session_id, [error_message], limit=self._settings.max_recent_errors)
            self._store.transition_session(session_id, SessionStatus.FAILED, error_message=error_message[:2000])
        except Exception:
            logger.exception("Failed to persist failed scrape session state id=%s", session_id)


@lru_cache(maxsize=1)
def get_scraping_service() -> ScrapingService:
    return ScrapingService()
