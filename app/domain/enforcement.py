"""
app/domain/enforcement.py

Canonical enforcement record types shared by strategies, dedup and storage.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from typing import Any


class Source:
    HSE = "hse"
    EA = "ea"


class EnforcementType:
    CASE = "case"
    NOTICE = "notice"


class BusinessType:
    INDIVIDUAL = "individual"
    PARTNERSHIP = "partnership"
    LIMITED_COMPANY = "limited_company"
    PLC = "plc"
    OTHER = "other"


class LegislationType:
    ACT = "act"
    REGULATION = "regulation"
    ORDER = "order"


@dataclass(frozen=True)
class OffenderAttributes:
    """
    Offender fields extracted from one scraped record.
    """

    name: str
    address: str | None = None
    town: str | None = None
    county: str | None = None
    postcode: str | None = None
    local_authority: str | None = None
    country: str | None = None
    registration_number: str | None = None
    main_activity: str | None = None
    industry: str | None = None
    sic_code: str | None = None
    business_type: str = BusinessType.OTHER

    def with_registry_profile(
        self,
        *,
        canonical_name: str,
        registration_number: str,
        address_components: dict[str, str],
    ) -> "OffenderAttributes":
        return replace(
            self,
            name=canonical_name,
            registration_number=registration_number,
            address=address_components.get("address", self.address),
            town=address_components.get("town", self.town),
            county=address_components.get("county", self.county),
            postcode=address_components.get("postcode", self.postcode),
        )


@dataclass(frozen=True)
class Provenance:
    source_url: str | None
    scraped_at: datetime
    cursor_position: int | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "source_url": self.source_url,
            "scraped_at": self.scraped_at.isoformat(),
            "cursor_position": self.cursor_position,
        }


@dataclass(frozen=True)
class ProcessedRecord:
    """
    Canonical record produced by a strategy's process_record step.

    `regulator_id` is the dedup key within a source and is never empty.
    """

    source: str
    enforcement_type: str
    regulator_id: str
    offender: OffenderAttributes
    provenance: Provenance
    action_type: str | None = None
    action_date: date | None = None
    hearing_date: date | None = None
    compliance_date: date | None = None
    fine: Decimal = Decimal("0.00")
    costs: Decimal = Decimal("0.00")
    result: str | None = None
    description: str | None = None
    regulator_function: str | None = None
    breaches: list[str] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)
    enrichment_errors: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.regulator_id or not self.regulator_id.strip():
            raise ValueError("ProcessedRecord.regulator_id must be non-empty.")


@dataclass(frozen=True)
class ResolvedOffence:
    """
    One breach citation resolved to a legislation entity.
    """

    sequence_number: int
    legislation_id: Any
    legislation_title: str
    legislation_part: str | None
    description: str
    original_text: str
    fine: Decimal = Decimal("0.00")
    costs: Decimal = Decimal("0.00")


@dataclass(frozen=True)
class LegislationKey:
    normalized_title: str
    year: int | None


@dataclass(frozen=True)
class LegislationEntity:
    id: Any
    title: str
    year: int | None
    number: int | None
    legislation_type: str
