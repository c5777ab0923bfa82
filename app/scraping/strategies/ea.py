"""
Environment Agency enforcement action strategies.

The register returns all results for one action type in a single response, so
these strategies work over a date window rather than pages.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from app.connectors.companies_house import normalize_company_number
from app.domain.enforcement import EnforcementType, ProcessedRecord, Provenance, Source
from app.scraping.errors import FetchError, ParseError
from app.scraping.logging_utils import describe_error, log_event
from app.scraping.normalization.record_processor import build_offender_attributes
from app.scraping.parsing.ea_parsers import EaActionDetail, EAPageParser
from app.scraping.strategies.date_range import DateRangeStrategy
from app.scraping.types import DateRangeParams, EaActionSummary

logger = logging.getLogger(__name__)

EA_REGISTER_URL = "https://environment.data.gov.uk/public-register/enforcement-action/registration"
ACTION_TYPE_BASE = "http://environment.data.gov.uk/public-register/enforcement-action/def/action-type/"
ACTION_TYPE_URIS = {
    "court_case": ACTION_TYPE_BASE + "court-case",
    "caution": ACTION_TYPE_BASE + "caution",
    "enforcement_notice": ACTION_TYPE_BASE + "enforcement-notice",
}


def index_query(params: DateRangeParams, category: str) -> dict[str, str]:
    return {
        "name-search": "",
        "actionType": ACTION_TYPE_URIS[category],
        "offenceType": "",
        "agencyFunction": "",
        "after": params.date_from.isoformat(),
        "before": params.date_to.isoformat(),
    }


class EaCaseStrategy(DateRangeStrategy):
    source_id = Source.EA
    enforcement_type = EnforcementType.CASE
    display_name = "EA court cases and cautions"
    allowed_categories = ("court_case", "caution")
    default_categories = ("court_case",)

    def fetch_category_index(self, params: DateRangeParams, category: str) -> tuple[str, list[EaActionSummary]]:
        query = index_query(params, category)
        soup = self.fetcher.get_soup(EA_REGISTER_URL, params=query)
        records = EAPageParser.parse_summary_table(
            soup=soup,
            action_type=category,
            scraped_at=datetime.now(timezone.utc),
        )
        return EA_REGISTER_URL, records

    def process_record(
        self,
        raw: EaActionSummary,
        params: DateRangeParams,
        *,
        cursor: int | None = None,
    ) -> ProcessedRecord:
        if not raw.regulator_id or not raw.offender_name:
            raise ParseError("Summary row is missing its id or offender name.", regulator_id=raw.regulator_id)

        enrichment_errors: list[str] = []
        detail = EaActionDetail()
        try:
            detail = EAPageParser.parse_detail(soup=self.fetcher.get_soup(raw.detail_url, paced=True))
        except FetchError as exc:
            log_event(
                logger,
                logging.WARNING,
                "record_enrichment_failed",
                source=self.source_id,
                stage="action_detail",
                regulator_id=raw.regulator_id,
                error=str(exc),
            )
            enrichment_errors.append(f"action_detail {raw.regulator_id}: {describe_error(exc)}")

        offender = build_offender_attributes(
            name=raw.offender_name,
            address=detail.address or raw.address,
            town=detail.town,
            county=detail.county,
            postcode=detail.postcode,
            registration_number=normalize_company_number(detail.company_registration_number),
            industry=detail.industry_sector,
        )
        citation = detail.breach_citation
        return ProcessedRecord(
            source=self.source_id,
            enforcement_type=self.enforcement_type,
            regulator_id=raw.regulator_id,
            offender=offender,
            provenance=Provenance(source_url=raw.detail_url, scraped_at=raw.scraped_at, cursor_position=cursor),
            action_type=raw.action_type,
            action_date=raw.action_date,
            fine=detail.total_fine,
            description=detail.offence_description,
            regulator_function=detail.agency_function,
            breaches=[citation] if citation else [],
            extra={
                "case_reference": detail.case_reference,
                "event_reference": detail.event_reference,
                "water_impact": detail.water_impact,
                "land_impact": detail.land_impact,
                "air_impact": detail.air_impact,
            },
            enrichment_errors=enrichment_errors,
        )


class EaNoticeStrategy(EaCaseStrategy):
    enforcement_type = EnforcementType.NOTICE
    display_name = "EA enforcement notices"
    allowed_categories = ("enforcement_notice",)
    default_categories = ("enforcement_notice",)

    def _resolve_categories(self, raw_params: Mapping[str, Any]) -> tuple[str, ...]:
        return self.default_categories
