"""
app/connectors/companies_house.py

Companies House registry client used for offender identity resolution.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any

import requests

from app.config import (
    CompaniesHouseSettings,
    ExternalHTTPSettings,
    get_companies_house_settings,
    get_external_http_settings,
)
from app.connectors.base import BaseConnector, ConnectorRequestError
from app.scraping.errors import RegistryUnavailableError

logger = logging.getLogger(__name__)

_ANNOTATION_PATTERN = re.compile(r"\s*\(opens in new tab\)", flags=re.IGNORECASE)
_NUMERIC_PATTERN = re.compile(r"^\d+$")

_STATUS_REASONS = {
    401: "unauthorized",
    403: "unauthorized",
    404: "not_found",
    429: "rate_limited",
}


def normalize_company_number(raw: str | None) -> str | None:
    """
    Clean a scraped registration number.

    Legacy 7-digit numbers are left-padded to 8 digits; prefixed numbers
    (SC, NI, OC, ...) are kept as-is.
    """

    if raw is None:
        return None
    cleaned = _ANNOTATION_PATTERN.sub("", raw).strip().upper()
    if not cleaned:
        return None
    if len(cleaned) == 7 and _NUMERIC_PATTERN.match(cleaned):
        return "0" + cleaned
    return cleaned


@dataclass(frozen=True)
class CompanyProfile:
    company_name: str
    company_number: str
    company_status: str | None = None
    company_type: str | None = None
    address_snippet: str | None = None
    registered_office_address: dict[str, str] = field(default_factory=dict)

    @property
    def is_active(self) -> bool:
        return (self.company_status or "").lower() == "active"

    def address_components(self) -> dict[str, str]:
        """
        Map the registered office onto offender address fields, dropping blanks.
        """

        address = self.registered_office_address
        components = {
            "address": address.get("address_line_1"),
            "town": address.get("locality"),
            "county": address.get("region"),
            "postcode": address.get("postal_code"),
        }
        return {key: value for key, value in components.items() if value}

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "CompanyProfile":
        office = payload.get("registered_office_address") or {}
        return cls(
            company_name=str(payload.get("company_name") or payload.get("title") or "").strip(),
            company_number=str(payload.get("company_number") or "").strip(),
            company_status=payload.get("company_status"),
            company_type=payload.get("company_type"),
            address_snippet=payload.get("address_snippet"),
            registered_office_address={
                str(key): str(value) for key, value in office.items() if isinstance(value, str)
            },
        )


class CompaniesHouseClient(BaseConnector):
    """
    Minimal Companies House REST client: profile lookup and name search.
    """

    retryable_status_codes = frozenset({500, 502, 503, 504})

    def __init__(
        self,
        *,
        settings: CompaniesHouseSettings,
        http_settings: ExternalHTTPSettings,
        session: requests.Session | None = None,
    ) -> None:
        super().__init__(source="companies_house", http_settings=http_settings, session=session)
        self._settings = settings

    def lookup_by_number(self, number: str) -> CompanyProfile:
        cleaned = normalize_company_number(number)
        if not cleaned:
            raise RegistryUnavailableError("not_found", f"Invalid company number: {number!r}")

        payload = self._get(f"{self._settings.base_url}/company/{cleaned}")
        return CompanyProfile.from_payload(payload)

    def search_by_name(self, name: str, *, page_size: int | None = None) -> list[CompanyProfile]:
        query = (name or "").strip()
        if not query:
            return []

        payload = self._get(
            f"{self._settings.base_url}/search/companies",
            params={
                "q": query,
                "items_per_page": page_size or self._settings.search_page_size,
                "start_index": 0,
            },
        )
        items = payload.get("items") or []
        return [CompanyProfile.from_payload(item) for item in items if isinstance(item, dict)]

    def _get(self, url: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        if not self._settings.enabled:
            raise RegistryUnavailableError("unavailable", "Companies House lookups are disabled.")
        if not self._settings.api_key:
            logger.error("COMPANIES_HOUSE_API_KEY is not set; registry lookups are unavailable")
            raise RegistryUnavailableError("missing_credentials")

        try:
            payload = self._request_json(
                method="GET",
                url=url,
                params=params,
                headers={"Accept": "application/json"},
                auth=(self._settings.api_key, ""),
            )
        except ConnectorRequestError as exc:
            reason = _STATUS_REASONS.get(exc.status_code or 0, "unavailable")
            raise RegistryUnavailableError(reason, f"Companies House request failed: {reason}") from exc

        if not isinstance(payload, dict):
            raise RegistryUnavailableError("unavailable", "Companies House returned an unexpected payload.")
        return payload


@lru_cache(maxsize=1)
def get_companies_house_client() -> CompaniesHouseClient:
    """
    Build and cache the registry client from environment settings.
    """

    return CompaniesHouseClient(
        settings=get_companies_house_settings(),
        http_settings=get_external_http_settings(),
    )
