"""
Persistence for enforcement records, offenders, legislation and offences.

Inserts use PostgreSQL `INSERT ... ON CONFLICT DO NOTHING ... RETURNING` so a
uniqueness violation is reported as "no row" rather than an aborted
transaction.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping, Sequence
from decimal import Decimal
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.orm import Session

from db.models.enforcement import EnforcementRecord, Legislation, Offence, Offender, OffenderMatchReview

_RECORD_CONSTRAINT = "uq_enforcement_records_source_regulator_id"
_OFFENDER_CONSTRAINT = "uq_offenders_normalized_name_postcode"
_LEGISLATION_CONSTRAINT = "uq_legislation_normalized_title_year"


class EnforcementRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def existing_regulator_ids(self, source: str, regulator_ids: Sequence[str]) -> set[str]:
        if not regulator_ids:
            return set()
        stmt = select(EnforcementRecord.regulator_id).where(
            EnforcementRecord.source == source,
            EnforcementRecord.regulator_id.in_(list(regulator_ids)),
        )
        return set(self._session.scalars(stmt).all())

    def record_id_for(self, source: str, regulator_id: str) -> uuid.UUID | None:
        stmt = select(EnforcementRecord.id).where(
            EnforcementRecord.source == source,
            EnforcementRecord.regulator_id == regulator_id,
        )
        return self._session.scalars(stmt).one_or_none()

    def find_offender_id(self, normalized_name: str, postcode: str) -> uuid.UUID | None:
        stmt = select(Offender.id).where(
            Offender.normalized_name == normalized_name,
            Offender.postcode == postcode,
        )
        return self._session.scalars(stmt).one_or_none()

    def insert_offender(self, payload: Mapping[str, Any]) -> uuid.UUID | None:
        stmt = (
            insert(Offender)
            .values(**payload)
            .on_conflict_do_nothing(constraint=_OFFENDER_CONSTRAINT)
            .returning(Offender.id)
        )
        return self._session.scalars(stmt).one_or_none()

    def increment_offender_totals(
        self,
        offender_id: uuid.UUID,
        *,
        cases: int,
        notices: int,
        fines: Decimal,
    ) -> None:
        stmt = (
            update(Offender)
            .where(Offender.id == offender_id)
            .values(
                total_cases=Offender.total_cases + cases,
                total_notices=Offender.total_notices + notices,
                total_fines=Offender.total_fines + fines,
            )
        )
        self._session.execute(stmt)

    def insert_record(self, payload: Mapping[str, Any]) -> uuid.UUID | None:
        stmt = (
            insert(EnforcementRecord)
            .values(**payload)
            .on_conflict_do_nothing(constraint=_RECORD_CONSTRAINT)
            .returning(EnforcementRecord.id)
        )
        return self._session.scalars(stmt).one_or_none()

    def insert_offences(self, payloads: Sequence[Mapping[str, Any]]) -> int:
        if not payloads:
            return 0
        stmt = insert(Offence).values([dict(payload) for payload in payloads]).returning(Offence.id)
        return len(self._session.scalars(stmt).all())

    def update_record(self, source: str, regulator_id: str, values: Mapping[str, Any]) -> bool:
        stmt = (
            update(EnforcementRecord)
            .where(
                EnforcementRecord.source == source,
                EnforcementRecord.regulator_id == regulator_id,
            )
            .values(**values)
            .returning(EnforcementRecord.id)
        )
        return self._session.scalars(stmt).one_or_none() is not None

    def find_or_create_legislation(self, payload: Mapping[str, Any]) -> Legislation:
        stmt = (
            insert(Legislation)
            .values(**payload)
            .on_conflict_do_nothing(constraint=_LEGISLATION_CONSTRAINT)
            .returning(Legislation.id)
        )
        created_id = self._session.scalars(stmt).one_or_none()
        if created_id is not None:
            return self._session.get_one(Legislation, created_id)

        lookup = select(Legislation).where(Legislation.normalized_title == payload["normalized_title"])
        if payload.get("year") is None:
            lookup = lookup.where(Legislation.year.is_(None))
        else:
            lookup = lookup.where(Legislation.year == payload["year"])
        return self._session.scalars(lookup).one()

    def create_match_review(self, payload: Mapping[str, Any]) -> OffenderMatchReview:
        review = OffenderMatchReview(**payload)
        self._session.add(review)
        self._session.flush()
        return review
