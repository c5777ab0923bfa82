"""
Shared pytest fixtures. No network and no database are touched by the suite.
"""

from __future__ import annotations

import pytest

from app.scraping.config.models import ScrapingSettings
from app.scraping.fetcher import PageFetcher
from fakes import InMemoryEnforcementStore


@pytest.fixture()
def settings() -> ScrapingSettings:
    return ScrapingSettings(
        requests_per_minute=600,
        pause_between_requests_seconds=0.0,
        consecutive_existing_threshold=3,
        max_pages_per_session=20,
        batch_size=2,
        max_recent_errors=5,
    )


@pytest.fixture()
def store() -> InMemoryEnforcementStore:
    return InMemoryEnforcementStore()


@pytest.fixture()
def fetcher(settings: ScrapingSettings) -> PageFetcher:
    return PageFetcher(settings=settings)
