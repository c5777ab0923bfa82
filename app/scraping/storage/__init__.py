"""
Storage layer exports.
"""

from app.scraping.storage.base import EnforcementStore
from app.scraping.storage.sqlalchemy_storage import SQLAlchemyEnforcementStore

__all__ = ["EnforcementStore", "SQLAlchemyEnforcementStore"]
