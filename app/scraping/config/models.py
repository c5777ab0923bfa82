"""
Scraping configuration models.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ScrapingSettings:
    """
    Runtime settings for enforcement scraping.
    """

    user_agent: str = "EnforcementScraper/1.0 (+https://example.com/bot)"
    timeout_seconds: float = 30.0
    max_retries: int = 3
    backoff_initial_seconds: float = 0.5
    backoff_multiplier: float = 2.0
    requests_per_minute: int = 10
    pause_between_requests_seconds: float = 3.0
    consecutive_existing_threshold: int = 10
    max_pages_per_session: int = 100
    batch_size: int = 50
    max_recent_errors: int = 20
    match_threshold: float = 0.90
    manual_scraping_enabled: bool = True
    scheduled_scraping_enabled: bool = True
    real_time_progress_enabled: bool = True
    daily_scrape_cron: str = "0 2 * * *"
    weekly_scrape_cron: str = "0 1 * * 0"
    scheduled_max_pages: int = 5
    scheduled_date_window_days: int = 30
