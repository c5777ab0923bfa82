from app.scraping.strategies.date_range import DateRangeStrategy
from app.scraping.strategies.ea import EaCaseStrategy, EaNoticeStrategy
from app.scraping.strategies.hse import HseCaseStrategy, HseNoticeStrategy
from app.scraping.strategies.page import PageStrategy

__all__ = [
    "DateRangeStrategy",
    "EaCaseStrategy",
    "EaNoticeStrategy",
    "HseCaseStrategy",
    "HseNoticeStrategy",
    "PageStrategy",
]
