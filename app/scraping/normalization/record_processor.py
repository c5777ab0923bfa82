"""
Field-level normalization shared by all strategies' process_record steps.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from app.dedup.offender import detect_business_type
from app.domain.enforcement import OffenderAttributes

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

MONEY_REGEX = re.compile(r"\d[\d,]*(?:\.\d+)?")
DATE_PATTERNS = [
    "%d/%m/%Y",
    "%Y-%m-%d",
    "%d-%m-%Y",
    "%d %B %Y",
    "%d %b %Y",
]
_WHITESPACE = re.compile(r"\s+")


def parse_money(raw: str | None) -> Decimal:
    """
    Parse amounts like "£5,000" or "1,234.5" into a 2dp Decimal.

    Unparseable or empty values become 0.00; floats are never involved.
    """

    if raw is None:
        return ZERO
    match = MONEY_REGEX.search(str(raw))
    if match is None:
        return ZERO
    try:
        return Decimal(match.group(0).replace(",", "")).quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        return ZERO


def parse_date(raw: str | None) -> date | None:
    if raw is None:
        return None
    text = clean_text(raw)
    if not text:
        return None
    for pattern in DATE_PATTERNS:
        try:
            return datetime.strptime(text, pattern).date()
        except ValueError:
            continue
    return None


def clean_text(raw: str | None) -> str | None:
    """
    Collapse whitespace; empty strings become None.
    """

    if raw is None:
        return None
    text = _WHITESPACE.sub(" ", str(raw).replace("\xa0", " ")).strip()
    return text or None


def upcase_first_from_upcase_phrase(raw: str | None) -> str | None:
    """
    "FIELD OPERATIONS DIRECTORATE" -> "Field operations directorate".
    """

    text = clean_text(raw)
    if text is None:
        return None
    if text != text.upper():
        return text
    lowered = text.lower()
    return lowered[:1].upper() + lowered[1:]


def build_offender_attributes(
    *,
    name: str,
    address: str | None = None,
    town: str | None = None,
    county: str | None = None,
    postcode: str | None = None,
    local_authority: str | None = None,
    country: str | None = None,
    registration_number: str | None = None,
    main_activity: str | None = None,
    industry: str | None = None,
    sic_code: str | None = None,
) -> OffenderAttributes:
    cleaned_name = clean_text(name) or ""
    cleaned_postcode = clean_text(postcode)
    return OffenderAttributes(
        name=cleaned_name,
        address=clean_text(address),
        town=clean_text(town),
        county=clean_text(county),
        postcode=cleaned_postcode.upper() if cleaned_postcode else None,
        local_authority=clean_text(local_authority),
        country=clean_text(country),
        registration_number=clean_text(registration_number),
        main_activity=clean_text(main_activity),
        industry=clean_text(industry),
        sic_code=clean_text(sic_code),
        business_type=detect_business_type(cleaned_name),
    )


def split_breaches(raw: str | None) -> list[str]:
    """
    Split a "; "-joined breach cell into individual citations.
    """

    if raw is None:
        return []
    return [part.strip() for part in raw.split(";") if part.strip()]
