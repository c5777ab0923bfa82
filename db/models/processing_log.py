"""
db/models/processing_log.py

Per-batch audit row written by the scrape coordinator.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, func, text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base


class ProcessingLog(Base):
    __tablename__ = "processing_logs"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    session_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("scrape_sessions.id", ondelete="CASCADE"),
        nullable=False,
    )
    source: Mapped[str] = mapped_column(String(16), nullable=False, comment="hse, ea")
    batch_or_page: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="List page for page-based sources, index offset for date-range sources",
    )
    items_found: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    items_created: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    items_existing: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    items_failed: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    creation_errors: Mapped[list[str]] = mapped_column(JSONB, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (Index("ix_processing_logs_session_id_created_at", "session_id", "created_at"),)
