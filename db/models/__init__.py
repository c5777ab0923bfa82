"""
Model package exports.

Import every enforcement model here so metadata registration and Alembic
autogeneration see the full schema.
"""

from db.models.enforcement import EnforcementRecord, Legislation, Offence, Offender, OffenderMatchReview
from db.models.processing_log import ProcessingLog
from db.models.scrape_session import ScrapeSession

__all__ = [
    "EnforcementRecord",
    "Legislation",
    "Offence",
    "Offender",
    "OffenderMatchReview",
    "ProcessingLog",
    "ScrapeSession",
]
