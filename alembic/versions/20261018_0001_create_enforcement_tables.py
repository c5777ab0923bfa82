"""create scrape session and enforcement tables

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def _counter(name: str) -> sa.Column:
    return sa.Column(name, sa.Integer(), server_default=sa.text("0"), nullable=False)


def upgrade() -> None:
    op.create_table(
        "scrape_sessions",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("source", sa.String(length=16), nullable=False, comment="hse, ea"),
        sa.Column("enforcement_type", sa.String(length=16), nullable=False, comment="case, notice"),
        sa.Column(
            "status",
            sa.String(length=16),
            nullable=False,
            comment="pending, running, completed, failed, stopped",
        ),
        sa.Column(
            "params",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            comment="Validated strategy parameters",
        ),
        sa.Column("process_all_records", sa.Boolean(), nullable=False),
        sa.Column("stop_requested", sa.Boolean(), nullable=False),
        sa.Column("current_position", sa.Integer(), nullable=True),
        _counter("pages_processed"),
        _counter("records_found"),
        _counter("records_processed"),
        _counter("records_created"),
        _counter("records_updated"),
        _counter("records_existing"),
        _counter("errors_count"),
        sa.Column(
            "recent_errors",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            comment="Newest-last bounded list of error messages",
        ),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_scrape_sessions_status", "scrape_sessions", ["status"], unique=False)
    op.create_index("ix_scrape_sessions_created_at", "scrape_sessions", ["created_at"], unique=False)
    op.create_index("ix_scrape_sessions_source_status", "scrape_sessions", ["source", "status"], unique=False)

    op.create_table(
        "offenders",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("normalized_name", sa.String(length=255), nullable=False),
        sa.Column(
            "postcode",
            sa.String(length=16),
            server_default=sa.text("''"),
            nullable=False,
            comment="Empty string when unknown so the uniqueness key stays comparable",
        ),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("town", sa.String(length=120), nullable=True),
        sa.Column("county", sa.String(length=120), nullable=True),
        sa.Column("local_authority", sa.String(length=255), nullable=True),
        sa.Column("country", sa.String(length=64), nullable=True),
        sa.Column("registration_number", sa.String(length=16), nullable=True),
        sa.Column("main_activity", sa.Text(), nullable=True),
        sa.Column("industry", sa.String(length=255), nullable=True),
        sa.Column("sic_code", sa.String(length=32), nullable=True),
        sa.Column(
            "business_type",
            sa.String(length=32),
            nullable=False,
            comment="individual, partnership, limited_company, plc, other",
        ),
        _counter("total_cases"),
        _counter("total_notices"),
        sa.Column("total_fines", sa.Numeric(12, 2), server_default=sa.text("0"), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("normalized_name", "postcode", name="uq_offenders_normalized_name_postcode"),
    )
    op.create_index(
        "ix_offenders_registration_number",
        "offenders",
        ["registration_number"],
        unique=False,
    )

    op.create_table(
        "enforcement_records",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("source", sa.String(length=16), nullable=False),
        sa.Column("enforcement_type", sa.String(length=16), nullable=False),
        sa.Column("regulator_id", sa.String(length=64), nullable=False),
        sa.Column("offender_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("action_type", sa.String(length=120), nullable=True),
        sa.Column("action_date", sa.Date(), nullable=True),
        sa.Column("hearing_date", sa.Date(), nullable=True),
        sa.Column("compliance_date", sa.Date(), nullable=True),
        sa.Column("fine", sa.Numeric(12, 2), nullable=False),
        sa.Column("costs", sa.Numeric(12, 2), nullable=False),
        sa.Column("result", sa.Text(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("regulator_function", sa.String(length=255), nullable=True),
        sa.Column("provenance", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("extra", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["offender_id"], ["offenders.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("source", "regulator_id", name="uq_enforcement_records_source_regulator_id"),
    )
    op.create_index("ix_enforcement_records_offender_id", "enforcement_records", ["offender_id"], unique=False)
    op.create_index("ix_enforcement_records_action_date", "enforcement_records", ["action_date"], unique=False)
    op.create_index(
        "ix_enforcement_records_source_type",
        "enforcement_records",
        ["source", "enforcement_type"],
        unique=False,
    )

    op.create_table(
        "legislation",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("normalized_title", sa.String(length=500), nullable=False),
        sa.Column("year", sa.Integer(), nullable=True),
        sa.Column("number", sa.Integer(), nullable=True),
        sa.Column("legislation_type", sa.String(length=16), nullable=False, comment="act, regulation, order"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("normalized_title", "year", name="uq_legislation_normalized_title_year"),
    )

    op.create_table(
        "offences",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("record_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("legislation_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("sequence_number", sa.Integer(), nullable=False),
        sa.Column("legislation_part", sa.String(length=255), nullable=True),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("original_text", sa.Text(), nullable=False),
        sa.Column("fine", sa.Numeric(12, 2), nullable=False),
        sa.Column("costs", sa.Numeric(12, 2), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["record_id"], ["enforcement_records.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["legislation_id"], ["legislation.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("record_id", "sequence_number", name="uq_offences_record_sequence"),
    )
    op.create_index("ix_offences_legislation_id", "offences", ["legislation_id"], unique=False)

    op.create_table(
        "offender_match_reviews",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("offender_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("source", sa.String(length=16), nullable=False),
        sa.Column("regulator_id", sa.String(length=64), nullable=False),
        sa.Column("candidates", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, comment="pending, approved, rejected"),
        *_timestamps(),
        sa.ForeignKeyConstraint(["offender_id"], ["offenders.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_offender_match_reviews_status", "offender_match_reviews", ["status"], unique=False)
    op.create_index(
        "ix_offender_match_reviews_offender_id",
        "offender_match_reviews",
        ["offender_id"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_offender_match_reviews_offender_id", table_name="offender_match_reviews")
    op.drop_index("ix_offender_match_reviews_status", table_name="offender_match_reviews")
    op.drop_table("offender_match_reviews")
    op.drop_index("ix_offences_legislation_id", table_name="offences")
    op.drop_table("offences")
    op.drop_table("legislation")
    op.drop_index("ix_enforcement_records_source_type", table_name="enforcement_records")
    op.drop_index("ix_enforcement_records_action_date", table_name="enforcement_records")
    op.drop_index("ix_enforcement_records_offender_id", table_name="enforcement_records")
    op.drop_table("enforcement_records")
    op.drop_index("ix_offenders_registration_number", table_name="offenders")
    op.drop_table("offenders")
    op.drop_index("ix_scrape_sessions_source_status", table_name="scrape_sessions")
    op.drop_index("ix_scrape_sessions_created_at", table_name="scrape_sessions")
    op.drop_index("ix_scrape_sessions_status", table_name="scrape_sessions")
    op.drop_table("scrape_sessions")
