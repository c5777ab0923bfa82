"""
db/base.py

Declarative base, shared column types and the timestamp mixin for the
enforcement schema.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import DateTime, Numeric, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Fines and costs are stored in pounds with exact pence.
MONEY = Numeric(12, 2)


class Base(DeclarativeBase):
    """
    Declarative base for every enforcement and scrape-session model.
    """

    type_annotation_map: dict[type, Any] = {Decimal: MONEY}


class TimestampMixin:
    """
    Adds created_at and updated_at. updated_at is refreshed on every ORM
    UPDATE; bulk UPDATE statements in the repositories set it explicitly.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=lambda: datetime.now(timezone.utc),
    )
