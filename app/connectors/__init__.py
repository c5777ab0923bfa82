"""
app/connectors package marker.
"""

from app.connectors.base import BaseConnector, ConnectorRequestError
from app.connectors.companies_house import (
    CompaniesHouseClient,
    CompanyProfile,
    get_companies_house_client,
    normalize_company_number,
)

__all__ = [
    "BaseConnector",
    "CompaniesHouseClient",
    "CompanyProfile",
    "ConnectorRequestError",
    "get_companies_house_client",
    "normalize_company_number",
]
