"""
db/models/enforcement.py

Enforcement records, offenders, legislation and offence rows.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import MONEY, Base, TimestampMixin


class Offender(Base, TimestampMixin):
    __tablename__ = "offenders"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    normalized_name: Mapped[str] = mapped_column(String(255), nullable=False)
    postcode: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default="",
        server_default=text("''"),
        comment="Empty string when unknown so the uniqueness key stays comparable",
    )
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    town: Mapped[str | None] = mapped_column(String(120), nullable=True)
    county: Mapped[str | None] = mapped_column(String(120), nullable=True)
    local_authority: Mapped[str | None] = mapped_column(String(255), nullable=True)
    country: Mapped[str | None] = mapped_column(String(64), nullable=True)
    registration_number: Mapped[str | None] = mapped_column(String(16), nullable=True)
    main_activity: Mapped[str | None] = mapped_column(Text, nullable=True)
    industry: Mapped[str | None] = mapped_column(String(255), nullable=True)
    sic_code: Mapped[str | None] = mapped_column(String(32), nullable=True)
    business_type: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="individual, partnership, limited_company, plc, other",
    )
    total_cases: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    total_notices: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    total_fines: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0.00"), server_default=text("0"))

    __table_args__ = (
        UniqueConstraint("normalized_name", "postcode", name="uq_offenders_normalized_name_postcode"),
        Index("ix_offenders_registration_number", "registration_number"),
    )


class EnforcementRecord(Base, TimestampMixin):
    """
    One prosecution case or enforcement notice, unique per (source, regulator_id).
    """

    __tablename__ = "enforcement_records"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    source: Mapped[str] = mapped_column(String(16), nullable=False)
    enforcement_type: Mapped[str] = mapped_column(String(16), nullable=False)
    regulator_id: Mapped[str] = mapped_column(String(64), nullable=False)
    offender_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("offenders.id", ondelete="SET NULL"),
        nullable=True,
    )
    action_type: Mapped[str | None] = mapped_column(String(120), nullable=True)
    action_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    hearing_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    compliance_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    fine: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0.00"))
    costs: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0.00"))
    result: Mapped[str | None] = mapped_column(Text, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    regulator_function: Mapped[str | None] = mapped_column(String(255), nullable=True)
    provenance: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, default=dict)
    extra: Mapped[dict[str, Any] | None] = mapped_column(JSONB, nullable=True)

    offences: Mapped[list["Offence"]] = relationship(
        back_populates="record",
        cascade="all, delete-orphan",
        order_by="Offence.sequence_number",
    )

    __table_args__ = (
        UniqueConstraint("source", "regulator_id", name="uq_enforcement_records_source_regulator_id"),
        Index("ix_enforcement_records_offender_id", "offender_id"),
        Index("ix_enforcement_records_action_date", "action_date"),
        Index("ix_enforcement_records_source_type", "source", "enforcement_type"),
    )


class Legislation(Base, TimestampMixin):
    __tablename__ = "legislation"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    normalized_title: Mapped[str] = mapped_column(String(500), nullable=False)
    year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    legislation_type: Mapped[str] = mapped_column(String(16), nullable=False, comment="act, regulation, order")

    __table_args__ = (
        UniqueConstraint("normalized_title", "year", name="uq_legislation_normalized_title_year"),
    )


class Offence(Base):
    __tablename__ = "offences"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    record_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("enforcement_records.id", ondelete="CASCADE"),
        nullable=False,
    )
    legislation_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("legislation.id", ondelete="RESTRICT"),
        nullable=False,
    )
    sequence_number: Mapped[int] = mapped_column(Integer, nullable=False)
    legislation_part: Mapped[str | None] = mapped_column(String(255), nullable=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    original_text: Mapped[str] = mapped_column(Text, nullable=False)
    fine: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0.00"))
    costs: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0.00"))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("now()"),
    )

    record: Mapped[EnforcementRecord] = relationship(back_populates="offences")

    __table_args__ = (
        UniqueConstraint("record_id", "sequence_number", name="uq_offences_record_sequence"),
        Index("ix_offences_legislation_id", "legislation_id"),
    )


class OffenderMatchReview(Base, TimestampMixin):
    __tablename__ = "offender_match_reviews"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    offender_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("offenders.id", ondelete="CASCADE"),
        nullable=False,
    )
    source: Mapped[str] = mapped_column(String(16), nullable=False)
    regulator_id: Mapped[str] = mapped_column(String(64), nullable=False)
    candidates: Mapped[list[dict[str, Any]]] = mapped_column(JSONB, nullable=False, default=list)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default="pending",
        comment="pending, approved, rejected",
    )

    __table_args__ = (
        Index("ix_offender_match_reviews_status", "status"),
        Index("ix_offender_match_reviews_offender_id", "offender_id"),
    )
