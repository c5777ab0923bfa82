"""
HTTP page fetcher for regulator sources.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import requests
from bs4 import BeautifulSoup

from app.scraping.config.models import ScrapingSettings
from app.scraping.errors import FatalScrapeError, FetchError
from app.scraping.logging_utils import log_event
from app.scraping.rate_limiter import RequestPacer

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}
FATAL_STATUS_CODES = {401, 403, 407}


class PageFetcher:
    """
    Fetches HTML with timeout, bounded retries and exponential backoff.

    Transient failures (timeouts, connection errors, 429/5xx) are retried.
    Authentication failures raise FatalScrapeError; any other 4xx raises
    FetchError without retrying.
    """

    def __init__(
        self,
        *,
        settings: ScrapingSettings,
        session: requests.Session | None = None,
        pacer: RequestPacer | None = None,
    ) -> None:
        self.settings = settings
        self.session = session or requests.Session()
        self.pacer = pacer
        self.request_headers = {"User-Agent": settings.user_agent}

    def get_soup(self, url: str, *, params: dict[str, Any] | None = None, paced: bool = False) -> BeautifulSoup:
        response = self.get(url, params=params, paced=paced)
        return BeautifulSoup(response.text, "html.parser")

    def get(self, url: str, *, params: dict[str, Any] | None = None, paced: bool = False) -> requests.Response:
        if paced and self.pacer is not None:
            self.pacer.wait()
        response = self._request_with_retry(url, params=params)
        log_event(
            logger,
            logging.DEBUG,
            "page_fetched",
            url=url,
            status_code=response.status_code,
        )
        return response

    def _request_with_retry(self, url: str, *, params: dict[str, Any] | None = None) -> requests.Response:
        last_error: Exception | None = None
        last_status: int | None = None

        for attempt in range(self.settings.max_retries + 1):
            try:
                response = self.session.get(
                    url,
                    params=params,
                    headers=self.request_headers,
                    timeout=self.settings.timeout_seconds,
                    allow_redirects=True,
                )
                if response.status_code in RETRYABLE_STATUS_CODES:
                    raise requests.HTTPError(
                        f"Retryable status={response.status_code}",
                        response=response,
                    )
                response.raise_for_status()
                return response
            except (requests.Timeout, requests.ConnectionError, requests.HTTPError) as exc:
                last_error = exc
                last_status = None
                if isinstance(exc, requests.HTTPError):
                    status_code = exc.response.status_code if exc.response is not None else None
                    last_status = status_code
                    if status_code in FATAL_STATUS_CODES:
                        raise FatalScrapeError(
                            f"Source rejected credentials status={status_code} url={url}"
                        ) from exc
                    if status_code not in RETRYABLE_STATUS_CODES:
                        raise FetchError(
                            f"Non-retryable status={status_code} url={url}",
                            url=url,
                            status_code=status_code,
                        ) from exc

            if attempt >= self.settings.max_retries:
                break

            backoff_seconds = self.settings.backoff_initial_seconds * (
                self.settings.backoff_multiplier**attempt
            )
            log_event(
                logger,
                logging.WARNING,
                "page_fetch_retry",
                url=url,
                attempt=attempt + 1,
                max_retries=self.settings.max_retries,
                wait_seconds=round(backoff_seconds, 2),
            )
            time.sleep(backoff_seconds)

        raise FetchError(
            f"Failed to fetch {url} after retries: {last_error}",
            url=url,
            status_code=last_status,
        ) from last_error
