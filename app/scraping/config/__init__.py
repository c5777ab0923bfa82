"""
Config helpers for enforcement scraping.
"""

from app.scraping.config.loader import get_scraping_settings
from app.scraping.config.models import ScrapingSettings

__all__ = [
    "ScrapingSettings",
    "get_scraping_settings",
]
