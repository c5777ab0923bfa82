"""
Strategy registry keyed by (source, enforcement_type).
"""

from __future__ import annotations

from collections.abc import Mapping

from app.scraping.base import ScrapeStrategy
from app.scraping.config.models import ScrapingSettings
from app.scraping.errors import StrategyNotFoundError
from app.scraping.fetcher import PageFetcher
from app.scraping.strategies import EaCaseStrategy, EaNoticeStrategy, HseCaseStrategy, HseNoticeStrategy

StrategyKey = tuple[str, str]

BUILTIN_STRATEGIES: tuple[type[ScrapeStrategy], ...] = (
    HseCaseStrategy,
    HseNoticeStrategy,
    EaCaseStrategy,
    EaNoticeStrategy,
)


class StrategyRegistry:
    """
    Static mapping from (source, enforcement_type) to a strategy class.
    """

    def __init__(self, registrations: Mapping[StrategyKey, type[ScrapeStrategy]] | None = None) -> None:
        if registrations is None:
            registrations = {
                (strategy_class.source_id, strategy_class.enforcement_type): strategy_class
                for strategy_class in BUILTIN_STRATEGIES
            }
        self._registrations: dict[StrategyKey, type[ScrapeStrategy]] = dict(registrations)

    def register(self, strategy_class: type[ScrapeStrategy]) -> None:
        key = (strategy_class.source_id, strategy_class.enforcement_type)
        self._registrations[key] = strategy_class

    def lookup(self, source: str, enforcement_type: str) -> type[ScrapeStrategy]:
        key = (str(source).strip().lower(), str(enforcement_type).strip().lower())
        resolved = self._registrations.get(key)
        if resolved is None:
            raise StrategyNotFoundError(source, enforcement_type)
        return resolved

    def create(
        self,
        source: str,
        enforcement_type: str,
        *,
        fetcher: PageFetcher,
        settings: ScrapingSettings,
    ) -> ScrapeStrategy:
        strategy_class = self.lookup(source, enforcement_type)
        return strategy_class(fetcher=fetcher, settings=settings)

    def list_strategies(self) -> list[dict[str, str]]:
        return [
            self._registrations[key].metadata()
            for key in sorted(self._registrations)
        ]
