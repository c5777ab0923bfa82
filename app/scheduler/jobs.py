"""
app/scheduler/jobs.py

APScheduler-based scheduler for periodic enforcement scraping.

Schedule (cron expressions from settings, UTC)
-----------------------------------------------
  daily_hse_cases   : SCRAPE_DAILY_CRON (default 02:00 every day),
                      HSE prosecutions, pages 1..SCRAPE_SCHEDULED_MAX_PAGES
  weekly_ea_cases   : SCRAPE_WEEKLY_CRON (default 01:00 every Sunday),
                      EA court cases over the trailing date window

Both jobs run the coordinator inline on the scheduler's worker thread, so a
slow run never overlaps with the next firing of the same job.

Lifecycle
----------
Call ``build_scheduler()`` once to get a configured ``BackgroundScheduler``.
Start it on app boot; shut it down gracefully on app shutdown.
The scheduler is wired into FastAPI via the ``lifespan`` context in main.py.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from app.domain.enforcement import EnforcementType, Source
from app.scraping.config.loader import get_scraping_settings
from app.scraping.errors import ScrapeError
from app.services.scraping_service import (
    InlineTaskExecutor,
    ScrapingService,
    TriggerType,
    get_scraping_service,
)

logger = logging.getLogger(__name__)


def _start_scheduled_run(
    service: ScrapingService,
    *,
    job_name: str,
    source: str,
    enforcement_type: str,
    params: dict[str, object],
) -> None:
    logger.info("Scheduler: %s starting", job_name)
    try:
        session = service.start_run(
            executor=InlineTaskExecutor(),
            source=source,
            enforcement_type=enforcement_type,
            params=params,
            trigger=TriggerType.SCHEDULED,
        )
    except ScrapeError as exc:
        logger.warning("Scheduler: %s not started: %s", job_name, exc)
        return

    logger.info(
        "Scheduler: %s complete session_id=%s status=%s created=%d existing=%d errors=%d",
        job_name,
        session.session_id,
        session.status,
        session.counters.records_created,
        session.counters.records_existing,
        session.counters.errors_count,
    )


# ---------------------------------------------------------------------------
# Job: Daily HSE cases
# ---------------------------------------------------------------------------


def run_daily_hse_cases(service: ScrapingService | None = None) -> None:
    """
    Walk the newest HSE prosecution pages. Early exit stops the walk once the
    run reaches records already stored.
    """
    service = service or get_scraping_service()
    _start_scheduled_run(
        service,
        job_name="daily_hse_cases",
        source=Source.HSE,
        enforcement_type=EnforcementType.CASE,
        params={"start_page": 1, "max_pages": service.settings.scheduled_max_pages},
    )


# ---------------------------------------------------------------------------
# Job: Weekly EA cases
# ---------------------------------------------------------------------------


def run_weekly_ea_cases(service: ScrapingService | None = None, *, today: date | None = None) -> None:
    service = service or get_scraping_service()
    date_to = today or date.today()
    date_from = date_to - timedelta(days=service.settings.scheduled_date_window_days)
    _start_scheduled_run(
        service,
        job_name="weekly_ea_cases",
        source=Source.EA,
        enforcement_type=EnforcementType.CASE,
        params={"date_from": date_from.isoformat(), "date_to": date_to.isoformat()},
    )


# ---------------------------------------------------------------------------
# Scheduler factory
# ---------------------------------------------------------------------------


def build_scheduler() -> BackgroundScheduler:
    """
    Build and register the periodic scrape jobs.

    Returns a configured but *not yet started* ``BackgroundScheduler``.
    The caller must call ``.start()`` and ``.shutdown(wait=True)`` at the
    appropriate lifecycle points.
    """
    settings = get_scraping_settings()
    scheduler = BackgroundScheduler(timezone="UTC")

    scheduler.add_job(
        run_daily_hse_cases,
        trigger=CronTrigger.from_crontab(settings.daily_scrape_cron, timezone="UTC"),
        id="daily_hse_cases",
        name="Daily HSE case scrape",
        replace_existing=True,
        max_instances=1,
        misfire_grace_time=3600,
    )
    scheduler.add_job(
        run_weekly_ea_cases,
        trigger=CronTrigger.from_crontab(settings.weekly_scrape_cron, timezone="UTC"),
        id="weekly_ea_cases",
        name="Weekly EA case scrape",
        replace_existing=True,
        max_instances=1,
        misfire_grace_time=3600,
    )

    return scheduler
