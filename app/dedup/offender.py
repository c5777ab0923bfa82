"""
Offender identity resolution against the company registry.

Business type is classified from the scraped name. Non-individuals are looked
up by registration number when one is known, otherwise by name search with
tiered acceptance:

    1 active candidate, similarity >= threshold, compatible type -> matched
    2-3 active candidates                                         -> needs_review
    anything else                                                 -> unmatched
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from difflib import SequenceMatcher
from typing import Any, Protocol

from app.connectors.companies_house import CompanyProfile, normalize_company_number
from app.domain.enforcement import BusinessType, OffenderAttributes
from app.scraping.errors import RegistryUnavailableError
from app.scraping.logging_utils import log_event

logger = logging.getLogger(__name__)

DEFAULT_MATCH_THRESHOLD = 0.90
DEFAULT_SEARCH_PAGE_SIZE = 5
MAX_REVIEW_CANDIDATES = 3

_PLC = re.compile(r"\b(?:PLC|Plc|plc|P\.L\.C\.?)(?:\W|$)")
_LIMITED = re.compile(r"\b(?:limited|ltd)\b", re.IGNORECASE)
_LLP = re.compile(r"\bllp\b", re.IGNORECASE)
_PARTNERSHIP = re.compile(r"\bpartnership\b|\s&\s", re.IGNORECASE)
_PERSONAL_TITLE = re.compile(r"^(?:mr|mrs|ms|miss|dr)\.?\s", re.IGNORECASE)
_PERSON_TOKEN = re.compile(r"^[A-Za-z][A-Za-z'\-]*\.?$")
_ORGANISATION_WORDS = frozenset(
    {
        "association",
        "authority",
        "builders",
        "centre",
        "church",
        "club",
        "co",
        "company",
        "construction",
        "contractors",
        "council",
        "estates",
        "farm",
        "farms",
        "group",
        "holdings",
        "hospital",
        "industries",
        "international",
        "motors",
        "nhs",
        "school",
        "services",
        "society",
        "sons",
        "trust",
        "uk",
        "university",
    }
)

_PUNCTUATION = re.compile(r"[\.,:;!@#$%^&*()]")
_LIMITED_SUFFIX = re.compile(r"\s(?:limited|ltd)$")
_PLC_SUFFIX = re.compile(r"\s(?:plc|p l c)$")
_LLP_SUFFIX = re.compile(r"\s(?:llp|l l p)$")
_WHITESPACE = re.compile(r"\s+")

COMPATIBLE_COMPANY_TYPES: dict[str, frozenset[str]] = {
    BusinessType.LIMITED_COMPANY: frozenset({"ltd", "private-limited-guarant-nsc", "private-unlimited"}),
    BusinessType.PLC: frozenset({"plc"}),
    BusinessType.PARTNERSHIP: frozenset({"llp", "limited-partnership"}),
}


class MatchOutcome:
    MATCHED = "matched"
    NEEDS_REVIEW = "needs_review"
    UNMATCHED = "unmatched"
    SKIPPED = "skipped"


class CompanyRegistry(Protocol):
    def lookup_by_number(self, number: str) -> CompanyProfile: ...

    def search_by_name(self, name: str, *, page_size: int | None = None) -> list[CompanyProfile]: ...


def _looks_like_person(name: str) -> bool:
    if _PERSONAL_TITLE.match(name):
        return True
    tokens = name.split()
    if not 2 <= len(tokens) <= 4:
        return False
    if any(token.lower().strip(".") in _ORGANISATION_WORDS for token in tokens):
        return False
    return all(_PERSON_TOKEN.match(token) for token in tokens)


def detect_business_type(name: str | None) -> str:
    if not name or not name.strip():
        return BusinessType.OTHER
    cleaned = name.strip()
    if _PLC.search(cleaned):
        return BusinessType.PLC
    if _LIMITED.search(cleaned):
        return BusinessType.LIMITED_COMPANY
    if _LLP.search(cleaned) or _PARTNERSHIP.search(cleaned):
        return BusinessType.PARTNERSHIP
    if _looks_like_person(cleaned):
        return BusinessType.INDIVIDUAL
    return BusinessType.OTHER


def normalize_company_name(name: str | None) -> str:
    """
    Lower-case, strip punctuation, unify ltd/limited, plc and llp suffixes.

    >>> normalize_company_name("Acme Widgets Ltd.")
    'acme widgets limited'
    """

    if not name:
        return ""
    normalized = _PUNCTUATION.sub(" ", name.lower())
    normalized = _WHITESPACE.sub(" ", normalized).strip()
    normalized = _LIMITED_SUFFIX.sub(" limited", normalized)
    normalized = _PLC_SUFFIX.sub(" plc", normalized)
    normalized = _LLP_SUFFIX.sub(" llp", normalized)
    return normalized


def name_similarity(left: str | None, right: str | None) -> float:
    a = normalize_company_name(left)
    b = normalize_company_name(right)
    if not a or not b:
        return 0.0
    return SequenceMatcher(None, a, b).ratio()


def is_type_compatible(business_type: str, company_type: str | None) -> bool:
    allowed = COMPATIBLE_COMPANY_TYPES.get(business_type)
    if allowed is None:
        return True
    return (company_type or "").lower() in allowed


def _candidate_summary(profile: CompanyProfile, similarity: float) -> dict[str, Any]:
    return {
        "company_name": profile.company_name,
        "company_number": profile.company_number,
        "company_type": profile.company_type,
        "company_status": profile.company_status,
        "address": profile.address_snippet,
        "similarity": round(similarity, 4),
    }


@dataclass(frozen=True)
class OffenderResolution:
    attributes: OffenderAttributes
    outcome: str
    profile: CompanyProfile | None = None
    similarity: float | None = None
    candidates: list[dict[str, Any]] = field(default_factory=list)
    registry_error: str | None = None

    @property
    def is_matched(self) -> bool:
        return self.outcome == MatchOutcome.MATCHED


class OffenderResolver:
    """
    Resolve scraped offender attributes to a registry profile where safe.

    Registry failures never propagate: they leave the offender unmatched with
    `registry_error` set to the failure reason.
    """

    def __init__(
        self,
        *,
        registry: CompanyRegistry | None,
        match_threshold: float = DEFAULT_MATCH_THRESHOLD,
        search_page_size: int = DEFAULT_SEARCH_PAGE_SIZE,
    ) -> None:
        self._registry = registry
        self._match_threshold = match_threshold
        self._search_page_size = search_page_size

    def resolve(self, attrs: OffenderAttributes) -> OffenderResolution:
        if attrs.business_type == BusinessType.INDIVIDUAL or self._registry is None:
            return OffenderResolution(attributes=attrs, outcome=MatchOutcome.SKIPPED)
        if len(normalize_company_name(attrs.name)) < 2:
            return OffenderResolution(attributes=attrs, outcome=MatchOutcome.UNMATCHED)

        try:
            if attrs.registration_number:
                by_number = self._resolve_by_number(attrs)
                if by_number is not None:
                    return by_number
            return self._resolve_by_name(attrs)
        except RegistryUnavailableError as exc:
            log_event(
                logger,
                logging.WARNING,
                "registry_unavailable",
                offender=attrs.name,
                reason=exc.reason,
            )
            return OffenderResolution(attributes=attrs, outcome=MatchOutcome.UNMATCHED, registry_error=exc.reason)

    def _resolve_by_number(self, attrs: OffenderAttributes) -> OffenderResolution | None:
        number = normalize_company_number(attrs.registration_number)
        if not number:
            return None
        try:
            profile = self._registry.lookup_by_number(number)
        except RegistryUnavailableError as exc:
            if exc.reason == "not_found":
                return None
            raise
        return self._accept(attrs, profile, name_similarity(attrs.name, profile.company_name))

    def _resolve_by_name(self, attrs: OffenderAttributes) -> OffenderResolution:
        results = self._registry.search_by_name(attrs.name, page_size=self._search_page_size)
        active = [profile for profile in results if profile.is_active]
        scored = [(profile, name_similarity(attrs.name, profile.company_name)) for profile in active]
        candidates = [_candidate_summary(profile, score) for profile, score in scored]

        if len(scored) == 1:
            profile, score = scored[0]
            if score >= self._match_threshold and is_type_compatible(attrs.business_type, profile.company_type):
                return self._accept(attrs, profile, score)
            return OffenderResolution(
                attributes=attrs,
                outcome=MatchOutcome.UNMATCHED,
                similarity=score,
                candidates=candidates,
            )

        if 2 <= len(scored) <= MAX_REVIEW_CANDIDATES:
            best = max(score for _, score in scored)
            log_event(
                logger,
                logging.INFO,
                "offender_match_needs_review",
                offender=attrs.name,
                candidates=len(scored),
                best_similarity=round(best, 4),
            )
            return OffenderResolution(
                attributes=attrs,
                outcome=MatchOutcome.NEEDS_REVIEW,
                similarity=best,
                candidates=candidates,
            )

        return OffenderResolution(attributes=attrs, outcome=MatchOutcome.UNMATCHED, candidates=candidates)

    @staticmethod
    def _accept(attrs: OffenderAttributes, profile: CompanyProfile, similarity: float) -> OffenderResolution:
        matched = attrs.with_registry_profile(
            canonical_name=profile.company_name or attrs.name,
            registration_number=profile.company_number,
            address_components=profile.address_components(),
        )
        log_event(
            logger,
            logging.INFO,
            "offender_matched",
            offender=attrs.name,
            company_number=profile.company_number,
            similarity=round(similarity, 4),
        )
        return OffenderResolution(
            attributes=matched,
            outcome=MatchOutcome.MATCHED,
            profile=profile,
            similarity=similarity,
            candidates=[_candidate_summary(profile, similarity)],
        )
