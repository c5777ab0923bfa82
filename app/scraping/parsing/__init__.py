"""
HTML parsing layer for regulator register pages.
"""

from app.scraping.parsing.ea_parsers import EAPageParser, EaActionDetail, extract_record_id
from app.scraping.parsing.hse_parsers import HSEPageParser, HseBreachList, HseCaseDetails, HseNoticeDetails

__all__ = [
    "EAPageParser",
    "EaActionDetail",
    "HSEPageParser",
    "HseBreachList",
    "HseCaseDetails",
    "HseNoticeDetails",
    "extract_record_id",
]
