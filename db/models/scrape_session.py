"""
db/models/scrape_session.py

Scrape session model: one orchestration run over a source cursor range.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, DateTime, Index, Integer, String, Text, text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class ScrapeSession(Base, TimestampMixin):
    __tablename__ = "scrape_sessions"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    source: Mapped[str] = mapped_column(String(16), nullable=False, comment="hse, ea")
    enforcement_type: Mapped[str] = mapped_column(String(16), nullable=False, comment="case, notice")
    status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default="pending",
        comment="pending, running, completed, failed, stopped",
    )
    params: Mapped[dict[str, Any]] = mapped_column(
        JSONB,
        nullable=False,
        default=dict,
        comment="Validated strategy parameters",
    )
    process_all_records: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    stop_requested: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    current_position: Mapped[int | None] = mapped_column(Integer, nullable=True)

    pages_processed: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    records_found: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    records_processed: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    records_created: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    records_updated: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    records_existing: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    errors_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))

    recent_errors: Mapped[list[str]] = mapped_column(
        JSONB,
        nullable=False,
        default=list,
        comment="Newest-last bounded list of error messages",
    )
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_scrape_sessions_status", "status"),
        Index("ix_scrape_sessions_created_at", "created_at"),
        Index("ix_scrape_sessions_source_status", "source", "status"),
    )
