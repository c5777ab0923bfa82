"""
Breach citation parsing and legislation deduplication.

A citation reads "<title> <year> / <section>". Titles are cleaned, matched
against the curated catalogue and otherwise normalized so that differently
cased or worded citations of one instrument share a Legislation row keyed by
(normalized title, year).
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal

from app.dedup.legislation_catalogue import ACRONYMS, MISSING_YEARS, TITLE_FIXES, catalogue_lookup
from app.domain.enforcement import LegislationEntity, LegislationKey, LegislationType, ResolvedOffence
from app.scraping.logging_utils import log_event
from app.scraping.normalization.record_processor import CENT, ZERO
from app.scraping.storage.base import EnforcementStore

logger = logging.getLogger(__name__)

TITLE_YEAR_REGEX = re.compile(r"^(.*?)\s+(\d{4})$")
SMALL_WORDS = frozenset({"at", "of", "and", "the", "in", "on", "for", "with", "to", "by", "under", "from", "etc"})

SECTION_PATTERNS = (
    (re.compile(r"^regs?\.?\s*(\d+)", re.IGNORECASE), r"Regulation \1"),
    (re.compile(r"^(?:sect|sec|s)\.?\s*(\d+)", re.IGNORECASE), r"Section \1"),
    (re.compile(r"^regulations?\s+", re.IGNORECASE), "Regulation "),
    (re.compile(r"^sections?\s+", re.IGNORECASE), "Section "),
)

NORMALIZED_ABBREVIATIONS = (
    (re.compile(r"\bh&s\b", re.IGNORECASE), "Health and Safety"),
    (re.compile(r"\bcdm\b", re.IGNORECASE), "Construction (Design and Management)"),
    (re.compile(r"\bcoshh\b", re.IGNORECASE), "Control of Substances Hazardous to Health"),
    (re.compile(r"\bpuwer\b", re.IGNORECASE), "Provision and Use of Work Equipment"),
    (re.compile(r"\bdsear\b", re.IGNORECASE), "Dangerous Substances and Explosive Atmospheres"),
    (re.compile(r"\bloler\b", re.IGNORECASE), "Lifting Operations and Lifting Equipment"),
    (re.compile(r"\bcomah\b", re.IGNORECASE), "Control of Major Accident Hazards"),
)

_MULTI_SPACE = re.compile(r"[ ]{2,}")
_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class ParsedCitation:
    title: str
    year: int | None
    section: str | None
    original_text: str


@dataclass(frozen=True)
class BreachResolution:
    offences: list[ResolvedOffence] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


def clean_title(raw: str) -> str:
    title = raw.strip()
    title = re.sub(r"\bh&s\b", "Health and Safety", title, flags=re.IGNORECASE)
    title = title.replace("Regs", "Regulations")
    title = _MULTI_SPACE.sub(" ", title)
    title = title.replace("&", "and")
    title = title.replace("Equip", "Equipment").replace("Equipmentment", "Equipment")
    for pattern, replacement in TITLE_FIXES:
        title = re.sub(pattern, replacement, title)
    title = title.strip()
    return ACRONYMS.get(title.upper(), title)


def normalize_section(raw: str | None) -> str | None:
    if raw is None:
        return None
    section = raw.strip()
    if not section:
        return None
    for pattern, replacement in SECTION_PATTERNS:
        section = pattern.sub(replacement, section)
    return section


def _capitalize(word: str) -> str:
    for index, char in enumerate(word):
        if char.isalpha():
            return word[:index] + char.upper() + word[index + 1 :]
    return word


def normalize_title(title: str) -> str:
    """
    Title-case a legislation title, keeping joining words lower-case.

    >>> normalize_title("HEALTH AND SAFETY AT WORK ACT")
    'Health and Safety at Work Act'
    """

    words = title.strip().lower().split()
    cased = [
        word if index > 0 and word in SMALL_WORDS else _capitalize(word)
        for index, word in enumerate(words)
    ]
    normalized = " ".join(cased)
    normalized = re.sub(r"\b[Ee]tc\.?\b", "etc.", normalized).replace("etc..", "etc.")
    for pattern, replacement in NORMALIZED_ABBREVIATIONS:
        normalized = pattern.sub(replacement, normalized)
    return _WHITESPACE.sub(" ", normalized).strip()


def legislation_type_for(title: str) -> str:
    lowered = title.lower()
    if "regulation" in lowered:
        return LegislationType.REGULATION
    if "order" in lowered:
        return LegislationType.ORDER
    return LegislationType.ACT


def parse_citation(text: str | None) -> ParsedCitation | None:
    """
    Split a citation on its last "/" into title, year and section.

    Returns None for blank input. A citation without a year (after consulting
    MISSING_YEARS) is returned with `year=None`.
    """

    if text is None:
        return None
    stripped = text.strip()
    if stripped.endswith("/"):
        stripped = stripped.rstrip("/ ").strip()
    if not stripped:
        return None

    left, separator, right = stripped.rpartition("/")
    if not separator:
        left, right = stripped, ""
    left = left.strip()
    if not left:
        return None

    match = TITLE_YEAR_REGEX.match(left)
    if match:
        title = clean_title(match.group(1))
        year: int | None = int(match.group(2))
    else:
        title = clean_title(left)
        year = MISSING_YEARS.get(title)

    return ParsedCitation(title=title, year=year, section=normalize_section(right), original_text=text)


def resolve_legislation(store: EnforcementStore, citation: ParsedCitation) -> LegislationEntity:
    normalized = normalize_title(citation.title)
    entry = catalogue_lookup(citation.title, citation.year) or catalogue_lookup(normalized, citation.year)
    if entry is not None:
        title, year, number, legislation_type = entry.title, entry.year, entry.number, entry.legislation_type
    else:
        title, year, number = normalized, citation.year, None
        legislation_type = legislation_type_for(normalized)

    key = LegislationKey(normalized_title=normalize_title(title).lower(), year=year)
    return store.find_or_create_legislation(key, title=title, number=number, legislation_type=legislation_type)


def apportion(total: Decimal, count: int) -> list[Decimal]:
    """
    Split `total` evenly over `count` shares in whole pence.

    Remainder pence go one each to the final shares so the sum is exact.
    """

    if count <= 0:
        return []
    pence = int(total.quantize(CENT) * 100)
    base, remainder = divmod(pence, count)
    shares = [base] * count
    for offset in range(remainder):
        shares[count - 1 - offset] += 1
    return [Decimal(share).scaleb(-2).quantize(CENT) for share in shares]


def resolve_breaches(
    store: EnforcementStore,
    citations: Iterable[str],
    *,
    fine: Decimal = ZERO,
    costs: Decimal = ZERO,
) -> BreachResolution:
    """
    Resolve a record's breach citations into offence rows.

    Malformed citations are skipped; the remaining ones are numbered 1..n
    and share the record's fine and costs.
    """

    resolved: list[tuple[ParsedCitation, LegislationEntity]] = []
    skipped: list[str] = []
    for text in citations:
        citation = parse_citation(text)
        if citation is None or citation.year is None:
            skipped.append(text or "")
            log_event(logger, logging.INFO, "breach_citation_skipped", citation=text)
            continue
        resolved.append((citation, resolve_legislation(store, citation)))

    fines = apportion(fine, len(resolved))
    costs_shares = apportion(costs, len(resolved))
    offences = []
    for index, (citation, legislation) in enumerate(resolved):
        description = f"{legislation.title} - {citation.section}" if citation.section else legislation.title
        offences.append(
            ResolvedOffence(
                sequence_number=index + 1,
                legislation_id=legislation.id,
                legislation_title=legislation.title,
                legislation_part=citation.section,
                description=description,
                original_text=citation.original_text,
                fine=fines[index],
                costs=costs_shares[index],
            )
        )
    return BreachResolution(offences=offences, skipped=skipped)
