"""
Existing-identifier pre-filter.

Avoids enrichment requests for records the store already holds. The store's
uniqueness constraint stays the final arbiter for concurrent runs.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from app.scraping.storage.base import EnforcementStore


@dataclass(frozen=True)
class PrefilterResult:
    existing: list[str] = field(default_factory=list)
    new: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.existing) + len(self.new)

    @property
    def existing_count(self) -> int:
        return len(self.existing)

    @property
    def new_count(self) -> int:
        return len(self.new)

    def as_dict(self) -> dict[str, Any]:
        return {
            "existing": list(self.existing),
            "new": list(self.new),
            "total": self.total,
            "existing_count": self.existing_count,
            "new_count": self.new_count,
        }


def check_existing(store: EnforcementStore, source: str, regulator_ids: Iterable[str]) -> PrefilterResult:
    """
    Partition `regulator_ids` into existing and new with one bulk lookup.

    Input order is preserved and repeated ids are counted once.
    """

    unique_ids = list(dict.fromkeys(str(value) for value in regulator_ids if value))
    if not unique_ids:
        return PrefilterResult()

    found = store.exists_by_external_id(source, unique_ids)
    existing = [value for value in unique_ids if value in found]
    new = [value for value in unique_ids if value not in found]
    return PrefilterResult(existing=existing, new=new)
