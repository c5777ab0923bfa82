"""
Repository layer exports.
"""

from db.repositories.enforcement_repository import EnforcementRepository
from db.repositories.scrape_session_repository import ScrapeSessionRepository

__all__ = [
    "EnforcementRepository",
    "ScrapeSessionRepository",
]
