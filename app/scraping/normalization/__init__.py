"""
Normalization helpers for scraped enforcement data.
"""

from app.scraping.normalization.record_processor import (
    build_offender_attributes,
    clean_text,
    parse_date,
    parse_money,
    split_breaches,
    upcase_first_from_upcase_phrase,
)

__all__ = [
    "build_offender_attributes",
    "clean_text",
    "parse_date",
    "parse_money",
    "split_breaches",
    "upcase_first_from_upcase_phrase",
]
