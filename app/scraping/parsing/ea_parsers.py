"""
BeautifulSoup parsers for the Environment Agency enforcement action register.
"""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from app.scraping.normalization.record_processor import ZERO, clean_text, parse_date, parse_money
from app.scraping.types import EaActionSummary

DETAIL_URL_BASE = "https://environment.data.gov.uk/"
RECORD_ID_REGEX = re.compile(r"registration/(\d+)")


@dataclass(frozen=True)
class EaActionDetail:
    company_registration_number: str | None = None
    industry_sector: str | None = None
    address: str | None = None
    town: str | None = None
    county: str | None = None
    postcode: str | None = None
    total_fine: Decimal = ZERO
    offence_description: str | None = None
    case_reference: str | None = None
    event_reference: str | None = None
    agency_function: str | None = None
    water_impact: str | None = None
    land_impact: str | None = None
    air_impact: str | None = None
    act: str | None = None
    section: str | None = None

    @property
    def breach_citation(self) -> str | None:
        if self.act and self.section:
            return f"{self.act} / {self.section}"
        return self.act


def extract_record_id(detail_url: str | None) -> str | None:
    """
    Take the numeric id from ".../registration/10000368?..." style URLs.

    URLs without one fall back to a short stable hash.
    """

    if not detail_url:
        return None
    match = RECORD_ID_REGEX.search(detail_url)
    if match:
        return match.group(1)
    return hashlib.sha256(detail_url.encode("utf-8")).hexdigest()[:8].upper()


def absolute_detail_url(href: str | None) -> str | None:
    if not href:
        return None
    cleaned = href.strip()
    if cleaned.startswith("http"):
        return cleaned
    return urljoin(DETAIL_URL_BASE, cleaned.lstrip("/"))


class EAPageParser:
    """
    Parsers for the EA results table (stage 1) and detail pages (stage 2).
    """

    @classmethod
    def parse_summary_table(
        cls,
        *,
        soup: BeautifulSoup,
        action_type: str,
        scraped_at: datetime,
    ) -> list[EaActionSummary]:
        records: list[EaActionSummary] = []
        for row in soup.select("table tbody tr"):
            summary = cls._summary_from_row(row, action_type=action_type, scraped_at=scraped_at)
            if summary is not None:
                records.append(summary)
        return records

    @classmethod
    def parse_detail(cls, *, soup: BeautifulSoup) -> EaActionDetail:
        fields = cls._definition_values(soup)
        return EaActionDetail(
            company_registration_number=fields.get("company no."),
            industry_sector=fields.get("industry sector"),
            address=fields.get("address"),
            town=fields.get("town"),
            county=fields.get("county"),
            postcode=fields.get("postcode"),
            total_fine=parse_money(fields.get("total fine")),
            offence_description=fields.get("offence"),
            case_reference=fields.get("case reference"),
            event_reference=fields.get("event reference"),
            agency_function=fields.get("agency function"),
            water_impact=fields.get("water impact"),
            land_impact=fields.get("land impact"),
            air_impact=fields.get("air impact"),
            act=fields.get("act"),
            section=fields.get("section"),
        )

    @staticmethod
    def _summary_from_row(row: Tag, *, action_type: str, scraped_at: datetime) -> EaActionSummary | None:
        cells = row.find_all("td")
        if len(cells) >= 3:
            name_cell, address_cell, date_cell = cells[0], cells[1], cells[2]
            address = clean_text(address_cell.get_text(" "))
        elif len(cells) == 2:
            name_cell, date_cell = cells
            address = None
        else:
            return None

        name = clean_text(name_cell.get_text(" "))
        action_date = parse_date(date_cell.get_text(" "))
        anchor = name_cell.find("a", href=True)
        detail_url = absolute_detail_url(str(anchor["href"])) if anchor is not None else None
        record_id = extract_record_id(detail_url)
        if not name or action_date is None or not detail_url or not record_id:
            return None

        return EaActionSummary(
            regulator_id=record_id,
            offender_name=name,
            address=address,
            action_date=action_date,
            action_type=action_type,
            detail_url=detail_url,
            scraped_at=scraped_at,
        )

    @staticmethod
    def _definition_values(soup: BeautifulSoup) -> dict[str, str]:
        values: dict[str, str] = {}
        for term in soup.find_all("dt"):
            label = clean_text(term.get_text(" "))
            definition = term.find_next_sibling("dd")
            if not label or definition is None:
                continue
            value = clean_text(definition.get_text(" "))
            key = label.rstrip(":").lower()
            if value and key not in values:
                values[key] = value

        # Table-based detail layouts
        for cells in (row.find_all(["td", "th"]) for row in soup.find_all("tr")):
            if len(cells) < 2:
                continue
            key = (clean_text(cells[0].get_text(" ")) or "").rstrip(":").lower()
            value = clean_text(cells[1].get_text(" "))
            if key and value and key not in values:
                values[key] = value
        return values
