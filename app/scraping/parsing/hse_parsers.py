"""
BeautifulSoup parsers for HSE case and notice register pages.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from bs4 import BeautifulSoup, Tag

from app.scraping.normalization.record_processor import (
    ZERO,
    clean_text,
    parse_date,
    parse_money,
    upcase_first_from_upcase_phrase,
)
from app.scraping.types import HseCaseRow, HseNoticeRow

SINGLE_BREACH_LINK = "Breach involved in this Case"
MULTIPLE_BREACHES_LINK = "Breaches involved in this Case"
RELATED_CASES_LINK = "Related Cases"

DETAIL_LABELS = {
    "HSE Directorate",
    "Main Activity",
    "Industry",
    "Local Authority",
    "Total Fine",
    "Total Costs Awarded to HSE",
    "Compliance Date",
    "Revised Compliance Date",
    "Description",
    "Result",
    "Address",
    "Postcode",
}


@dataclass(frozen=True)
class HseCaseDetails:
    regulator_function: str | None = None
    main_activity: str | None = None
    industry: str | None = None
    local_authority: str | None = None
    address: str | None = None
    postcode: str | None = None
    fine: Decimal = ZERO
    costs: Decimal = ZERO
    breach_link: str | None = None
    related_cases_link: str | None = None


@dataclass(frozen=True)
class HseNoticeDetails:
    regulator_function: str | None = None
    main_activity: str | None = None
    industry: str | None = None
    description: str | None = None
    result: str | None = None
    compliance_date: str | None = None
    revised_compliance_date: str | None = None


@dataclass(frozen=True)
class HseBreachList:
    breaches: list[str] = field(default_factory=list)
    hearing_date: str | None = None
    result: str | None = None


class HSEPageParser:
    """
    Deterministic parsers for HSE register HTML.
    """

    @classmethod
    def parse_case_list(cls, *, soup: BeautifulSoup, page_number: int, scraped_at: datetime) -> list[HseCaseRow]:
        rows: list[HseCaseRow] = []
        for cells in cls._table_rows(soup):
            if len(cells) != 5:
                continue
            regulator_id = cls._link_text(cells[0])
            name = clean_text(cells[1].get_text(" "))
            if not regulator_id or not name:
                continue
            rows.append(
                HseCaseRow(
                    regulator_id=regulator_id,
                    offender_name=name,
                    action_date=parse_date(cells[2].get_text(" ")),
                    local_authority=clean_text(cells[3].get_text(" ")),
                    main_activity=clean_text(cells[4].get_text(" ")),
                    page_number=page_number,
                    scraped_at=scraped_at,
                )
            )
        return rows

    @classmethod
    def parse_notice_list(
        cls,
        *,
        soup: BeautifulSoup,
        page_number: int,
        country: str,
        scraped_at: datetime,
    ) -> list[HseNoticeRow]:
        rows: list[HseNoticeRow] = []
        for cells in cls._table_rows(soup):
            if len(cells) != 6:
                continue
            regulator_id = cls._link_text(cells[0])
            name = clean_text(cells[1].get_text(" "))
            if not regulator_id or not name:
                continue
            rows.append(
                HseNoticeRow(
                    regulator_id=regulator_id,
                    offender_name=name,
                    notice_type=clean_text(cells[2].get_text(" ")),
                    issue_date=parse_date(cells[3].get_text(" ")),
                    local_authority=clean_text(cells[4].get_text(" ")),
                    sic_code=clean_text(cells[5].get_text(" ")),
                    country=country,
                    page_number=page_number,
                    scraped_at=scraped_at,
                )
            )
        return rows

    @classmethod
    def parse_case_details(cls, *, soup: BeautifulSoup) -> HseCaseDetails:
        labels = cls._label_values(soup)
        links = cls._links_by_text(soup)
        return HseCaseDetails(
            regulator_function=upcase_first_from_upcase_phrase(labels.get("HSE Directorate")),
            main_activity=labels.get("Main Activity"),
            industry=labels.get("Industry"),
            local_authority=labels.get("Local Authority"),
            address=labels.get("Address"),
            postcode=labels.get("Postcode"),
            fine=parse_money(labels.get("Total Fine")),
            costs=parse_money(labels.get("Total Costs Awarded to HSE")),
            breach_link=links.get(MULTIPLE_BREACHES_LINK) or links.get(SINGLE_BREACH_LINK),
            related_cases_link=links.get(RELATED_CASES_LINK),
        )

    @classmethod
    def parse_notice_details(cls, *, soup: BeautifulSoup) -> HseNoticeDetails:
        labels = cls._label_values(soup)
        return HseNoticeDetails(
            regulator_function=upcase_first_from_upcase_phrase(labels.get("HSE Directorate")),
            main_activity=labels.get("Main Activity"),
            industry=labels.get("Industry"),
            description=labels.get("Description"),
            result=labels.get("Result"),
            compliance_date=labels.get("Compliance Date"),
            revised_compliance_date=labels.get("Revised Compliance Date"),
        )

    @classmethod
    def parse_case_breach_list(cls, *, soup: BeautifulSoup) -> HseBreachList:
        """
        Case breach list rows have six cells: hearing date, result and the
        breach text sit in cells 3, 4 and 6.
        """

        breaches: list[str] = []
        hearing_date: str | None = None
        result: str | None = None
        for cells in cls._table_rows(soup):
            if len(cells) != 6:
                continue
            breach = clean_text(cells[5].get_text(" "))
            if not breach:
                continue
            breaches.append(breach)
            hearing_date = clean_text(cells[2].get_text(" ")) or hearing_date
            result = clean_text(cells[3].get_text(" ")) or result
        return HseBreachList(breaches=breaches, hearing_date=hearing_date, result=result)

    @classmethod
    def parse_notice_breach_list(cls, *, soup: BeautifulSoup) -> HseBreachList:
        breaches: list[str] = []
        for cells in cls._table_rows(soup):
            if len(cells) != 5:
                continue
            breach = clean_text(cells[3].get_text(" "))
            if breach:
                breaches.append(breach)
        return HseBreachList(breaches=breaches)

    @classmethod
    def parse_related_cases(cls, *, soup: BeautifulSoup) -> list[str]:
        related: list[str] = []
        for cells in cls._table_rows(soup):
            if len(cells) != 5:
                continue
            case_number = cls._link_text(cells[0])
            if case_number:
                related.append(case_number)
        return related

    @staticmethod
    def _table_rows(soup: BeautifulSoup) -> list[list[Tag]]:
        rows: list[list[Tag]] = []
        for row in soup.find_all("tr"):
            cells = row.find_all("td", recursive=False)
            if cells:
                rows.append(cells)
        return rows

    @staticmethod
    def _link_text(cell: Tag) -> str | None:
        anchor = cell.find("a")
        if anchor is None:
            return None
        return clean_text(anchor.get_text(" "))

    @classmethod
    def _label_values(cls, soup: BeautifulSoup) -> dict[str, str]:
        values: dict[str, str] = {}
        for cells in cls._table_rows(soup):
            texts = [clean_text(cell.get_text(" ")) for cell in cells]
            for index, text in enumerate(texts[:-1]):
                if text in DETAIL_LABELS and text not in values:
                    value = texts[index + 1]
                    if value and value not in DETAIL_LABELS:
                        values[text] = value
        return values

    @staticmethod
    def _links_by_text(soup: BeautifulSoup) -> dict[str, str]:
        links: dict[str, str] = {}
        for anchor in soup.find_all("a", href=True):
            text = clean_text(anchor.get_text(" "))
            if text and text not in links:
                links[text] = str(anchor["href"]).strip()
        return links
