"""
HSE prosecution case and enforcement notice strategies.

List pages are paged (`PN=`); each row is enriched in process_record from its
detail page and breach list.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any
from urllib.parse import quote, urljoin

from app.domain.enforcement import EnforcementType, ProcessedRecord, Provenance, Source
from app.scraping.errors import FetchError, ParseError
from app.scraping.logging_utils import describe_error, log_event
from app.scraping.normalization.record_processor import build_offender_attributes, parse_date
from app.scraping.parsing.hse_parsers import HseBreachList, HseCaseDetails, HseNoticeDetails, HSEPageParser
from app.scraping.strategies.page import PageStrategy
from app.scraping.strategies.params import coerce_choice
from app.scraping.types import HseCaseRow, HseNoticeRow, PageParams

logger = logging.getLogger(__name__)

HSE_BASE_URL = "https://resources.hse.gov.uk"
CASE_DATABASES = ("convictions", "appeals")
NOTICE_COUNTRIES = ("England", "Scotland", "Wales", "Northern Ireland")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def case_list_url(database: str, page: int) -> str:
    return (
        f"{HSE_BASE_URL}/{database}/case/case_list.asp"
        f"?PN={page}&ST=C&EO=LIKE&SN=F&SF=DN&SV=&SO=DODS"
    )


def case_detail_url(database: str, regulator_id: str) -> str:
    return f"{HSE_BASE_URL}/{database}/case/case_details.asp?SF=CN&SV={quote(regulator_id)}"


def notice_list_url(country: str, page: int) -> str:
    return (
        f"{HSE_BASE_URL}/notices/notices/notice_list.asp"
        f"?PN={page}&ST=N&CO=,AND&SN=F&EO==&SF=CTR&SV={quote(country)}&SO=DNIS"
    )


def notice_detail_url(regulator_id: str) -> str:
    return f"{HSE_BASE_URL}/notices/notices/notice_details.asp?SF=CN&SV={quote(regulator_id)}"


def notice_breach_url(regulator_id: str) -> str:
    return f"{HSE_BASE_URL}/notices/breach/breach_list.asp?ST=B&SN=F&EO==&SF=NN&SV={quote(regulator_id)}"


class HseCaseStrategy(PageStrategy[HseCaseRow]):
    source_id = Source.HSE
    enforcement_type = EnforcementType.CASE
    display_name = "HSE prosecution cases"

    def _build_params(self, raw_params: Mapping[str, Any], *, start_page: int, max_pages: int) -> PageParams:
        database = coerce_choice(raw_params, "database", allowed=CASE_DATABASES, default="convictions")
        return PageParams(start_page=start_page, max_pages=max_pages, database=database)

    def fetch_page(self, params: PageParams, page: int) -> tuple[str, list[HseCaseRow]]:
        url = case_list_url(params.database, page)
        soup = self.fetcher.get_soup(url)
        return url, HSEPageParser.parse_case_list(soup=soup, page_number=page, scraped_at=_utcnow())

    def process_record(self, raw: HseCaseRow, params: PageParams, *, cursor: int | None = None) -> ProcessedRecord:
        if not raw.regulator_id or not raw.offender_name:
            raise ParseError("Case row is missing its id or offender name.", regulator_id=raw.regulator_id)

        detail_url = case_detail_url(params.database, raw.regulator_id)
        enrichment_errors: list[str] = []
        details = HseCaseDetails()
        breach_list = HseBreachList()
        related: list[str] = []

        try:
            details = HSEPageParser.parse_case_details(soup=self.fetcher.get_soup(detail_url, paced=True))
        except FetchError as exc:
            enrichment_errors.append(self._enrichment_error("case_details", raw.regulator_id, exc))

        if details.breach_link:
            try:
                soup = self.fetcher.get_soup(urljoin(detail_url, details.breach_link), paced=True)
                breach_list = HSEPageParser.parse_case_breach_list(soup=soup)
            except FetchError as exc:
                enrichment_errors.append(self._enrichment_error("case_breaches", raw.regulator_id, exc))

        if details.related_cases_link:
            try:
                soup = self.fetcher.get_soup(urljoin(detail_url, details.related_cases_link), paced=True)
                related = [case for case in HSEPageParser.parse_related_cases(soup=soup) if case != raw.regulator_id]
            except FetchError as exc:
                enrichment_errors.append(self._enrichment_error("related_cases", raw.regulator_id, exc))

        offender = build_offender_attributes(
            name=raw.offender_name,
            address=details.address,
            postcode=details.postcode,
            local_authority=details.local_authority or raw.local_authority,
            main_activity=details.main_activity or raw.main_activity,
            industry=details.industry,
        )
        return ProcessedRecord(
            source=self.source_id,
            enforcement_type=self.enforcement_type,
            regulator_id=raw.regulator_id,
            offender=offender,
            provenance=Provenance(source_url=detail_url, scraped_at=raw.scraped_at, cursor_position=cursor),
            action_type="court_case",
            action_date=raw.action_date,
            hearing_date=parse_date(breach_list.hearing_date),
            fine=details.fine,
            costs=details.costs,
            result=breach_list.result,
            regulator_function=details.regulator_function,
            breaches=list(breach_list.breaches),
            extra={"database": params.database, "related_cases": related},
            enrichment_errors=enrichment_errors,
        )

    def _enrichment_error(self, stage: str, regulator_id: str, exc: Exception) -> str:
        log_event(
            logger,
            logging.WARNING,
            "record_enrichment_failed",
            source=self.source_id,
            stage=stage,
            regulator_id=regulator_id,
            error=str(exc),
        )
        return f"{stage} {regulator_id}: {describe_error(exc)}"


class HseNoticeStrategy(HseCaseStrategy):
    enforcement_type = EnforcementType.NOTICE
    display_name = "HSE enforcement notices"

    def _build_params(self, raw_params: Mapping[str, Any], *, start_page: int, max_pages: int) -> PageParams:
        country = coerce_choice(raw_params, "country", allowed=NOTICE_COUNTRIES, default="England")
        return PageParams(start_page=start_page, max_pages=max_pages, database="notices", country=country)

    def fetch_page(self, params: PageParams, page: int) -> tuple[str, list[HseNoticeRow]]:  # type: ignore[override]
        country = params.country or "England"
        url = notice_list_url(country, page)
        soup = self.fetcher.get_soup(url)
        return url, HSEPageParser.parse_notice_list(
            soup=soup,
            page_number=page,
            country=country,
            scraped_at=_utcnow(),
        )

    def process_record(  # type: ignore[override]
        self,
        raw: HseNoticeRow,
        params: PageParams,
        *,
        cursor: int | None = None,
    ) -> ProcessedRecord:
        if not raw.regulator_id or not raw.offender_name:
            raise ParseError("Notice row is missing its id or offender name.", regulator_id=raw.regulator_id)

        detail_url = notice_detail_url(raw.regulator_id)
        enrichment_errors: list[str] = []
        details = HseNoticeDetails()
        breach_list = HseBreachList()

        try:
            details = HSEPageParser.parse_notice_details(soup=self.fetcher.get_soup(detail_url, paced=True))
        except FetchError as exc:
            enrichment_errors.append(self._enrichment_error("notice_details", raw.regulator_id, exc))

        try:
            soup = self.fetcher.get_soup(notice_breach_url(raw.regulator_id), paced=True)
            breach_list = HSEPageParser.parse_notice_breach_list(soup=soup)
        except FetchError as exc:
            enrichment_errors.append(self._enrichment_error("notice_breaches", raw.regulator_id, exc))

        offender = build_offender_attributes(
            name=raw.offender_name,
            local_authority=raw.local_authority,
            country=raw.country,
            main_activity=details.main_activity,
            industry=details.industry,
            sic_code=raw.sic_code,
        )
        compliance = details.revised_compliance_date or details.compliance_date
        return ProcessedRecord(
            source=self.source_id,
            enforcement_type=self.enforcement_type,
            regulator_id=raw.regulator_id,
            offender=offender,
            provenance=Provenance(source_url=detail_url, scraped_at=raw.scraped_at, cursor_position=cursor),
            action_type=raw.notice_type,
            action_date=raw.issue_date,
            compliance_date=parse_date(compliance),
            result=details.result,
            description=details.description,
            regulator_function=details.regulator_function,
            breaches=list(breach_list.breaches),
            extra={"country": raw.country},
            enrichment_errors=enrichment_errors,
        )

    def serialize_params(self, params: PageParams) -> dict[str, Any]:
        payload = super().serialize_params(params)
        payload.pop("database", None)
        return payload
