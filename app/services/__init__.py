"""
app/services package marker.
"""

from app.services.scraping_service import (
    FastAPIBackgroundTaskExecutor,
    InlineTaskExecutor,
    ScrapingService,
    get_scraping_service,
)

__all__ = [
    "FastAPIBackgroundTaskExecutor",
    "InlineTaskExecutor",
    "ScrapingService",
    "get_scraping_service",
]
