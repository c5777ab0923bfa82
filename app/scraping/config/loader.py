"""
Environment loader for enforcement scraping settings.
"""

from __future__ import annotations

import os
from functools import lru_cache

from db.config import load_env_files

from app.scraping.config.models import ScrapingSettings


def _get_bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None:
        return default
    stripped = raw.strip()
    return stripped if stripped else default


@lru_cache(maxsize=1)
def get_scraping_settings() -> ScrapingSettings:
    """
    Return cached scraper settings from environment variables.
    """

    load_env_files()
    defaults = ScrapingSettings()
    return ScrapingSettings(
        user_agent=_get_str_env("SCRAPE_USER_AGENT", defaults.user_agent),
        timeout_seconds=max(1.0, _get_float_env("SCRAPE_TIMEOUT_SECONDS", defaults.timeout_seconds)),
        max_retries=max(0, _get_int_env("SCRAPE_MAX_RETRIES", defaults.max_retries)),
        backoff_initial_seconds=max(
            0.1,
            _get_float_env("SCRAPE_BACKOFF_INITIAL_SECONDS", defaults.backoff_initial_seconds),
        ),
        backoff_multiplier=max(
            1.0,
            _get_float_env("SCRAPE_BACKOFF_MULTIPLIER", defaults.backoff_multiplier),
        ),
        requests_per_minute=max(
            1,
            _get_int_env("SCRAPE_REQUESTS_PER_MINUTE", defaults.requests_per_minute),
        ),
        pause_between_requests_seconds=max(
            0.0,
            _get_float_env("SCRAPE_PAUSE_BETWEEN_REQUESTS_SECONDS", defaults.pause_between_requests_seconds),
        ),
        consecutive_existing_threshold=max(
            1,
            _get_int_env("SCRAPE_CONSECUTIVE_EXISTING_THRESHOLD", defaults.consecutive_existing_threshold),
        ),
        max_pages_per_session=max(
            1,
            _get_int_env("SCRAPE_MAX_PAGES_PER_SESSION", defaults.max_pages_per_session),
        ),
        batch_size=max(1, _get_int_env("SCRAPE_BATCH_SIZE", defaults.batch_size)),
        max_recent_errors=max(1, _get_int_env("SCRAPE_MAX_RECENT_ERRORS", defaults.max_recent_errors)),
        match_threshold=min(
            1.0,
            max(0.5, _get_float_env("SCRAPE_MATCH_THRESHOLD", defaults.match_threshold)),
        ),
        manual_scraping_enabled=_get_bool_env("SCRAPE_MANUAL_ENABLED", defaults.manual_scraping_enabled),
        scheduled_scraping_enabled=_get_bool_env(
            "SCRAPE_SCHEDULED_ENABLED",
            defaults.scheduled_scraping_enabled,
        ),
        real_time_progress_enabled=_get_bool_env(
            "SCRAPE_PROGRESS_ENABLED",
            defaults.real_time_progress_enabled,
        ),
        daily_scrape_cron=_get_str_env("SCRAPE_DAILY_CRON", defaults.daily_scrape_cron),
        weekly_scrape_cron=_get_str_env("SCRAPE_WEEKLY_CRON", defaults.weekly_scrape_cron),
        scheduled_max_pages=max(1, _get_int_env("SCRAPE_SCHEDULED_MAX_PAGES", defaults.scheduled_max_pages)),
        scheduled_date_window_days=max(
            1,
            _get_int_env("SCRAPE_SCHEDULED_DATE_WINDOW_DAYS", defaults.scheduled_date_window_days),
        ),
    )
