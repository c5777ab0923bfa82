"""
app/domain package marker.
"""

from app.domain.enforcement import (
    BusinessType,
    EnforcementType,
    LegislationEntity,
    LegislationKey,
    LegislationType,
    OffenderAttributes,
    ProcessedRecord,
    Provenance,
    ResolvedOffence,
    Source,
)

__all__ = [
    "BusinessType",
    "EnforcementType",
    "LegislationEntity",
    "LegislationKey",
    "LegislationType",
    "OffenderAttributes",
    "ProcessedRecord",
    "Provenance",
    "ResolvedOffence",
    "Source",
]
