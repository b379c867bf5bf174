"""HTTP fetching of listing pages with retries, proxy support and block detection."""

from __future__ import annotations

import logging
import random
import time
from typing import Any, Callable

import requests
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_random_exponential,
)

from producthunt_scraper.config import CrawlSettings
from producthunt_scraper.errors import BlockedPageError, EndOfPagination, PageLoadError
from producthunt_scraper.logging_config import get_logger

LOGGER = get_logger(__name__)

BLOCK_STATUS_CODES = {403, 429}

DEFAULT_HEADERS = {
    "accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
    "accept-language": "en-US,en;q=0.9",
    "accept-encoding": "gzip, deflate",
    "cache-control": "max-age=0",
    "sec-ch-ua": '"Not_A Brand";v="8", "Chromium";v="120", "Google Chrome";v="120"',
    "sec-ch-ua-mobile": "?0",
    "sec-ch-ua-platform": '"Windows"',
    "sec-fetch-dest": "document",
    "sec-fetch-mode": "navigate",
    "sec-fetch-site": "none",
    "sec-fetch-user": "?1",
    "upgrade-insecure-requests": "1",
    "user-agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
}


def normalize_proxy_url(raw: str | None) -> str | None:
    """Return *raw* as a proxy URL, assuming ``http://`` when no scheme is given."""

    if not raw or not raw.strip():
        return None
    value = raw.strip()
    if "://" not in value:
        return f"http://{value}"
    return value


class HttpPageFetcher:
    """Fetch listing pages over HTTP.

    Transient failures are retried with randomised exponential backoff. Once
    the retry budget is spent the last ``PageLoadError`` is re-raised.
    """

    def __init__(
        self,
        *,
        timeout: float = 60.0,
        max_retries: int = 3,
        min_body_length: int = 1000,
        delay_bounds: tuple[float, float] = (1.0, 3.0),
        proxy_url: str | None = None,
        backoff: float = 0.5,
        session: Any = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.min_body_length = min_body_length
        self.delay_bounds = delay_bounds
        self.proxy_url = normalize_proxy_url(proxy_url)
        self.backoff = backoff
        self.session = session if session is not None else requests.Session()
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings: CrawlSettings, **kwargs: Any) -> "HttpPageFetcher":
        kwargs.setdefault("proxy_url", settings.proxy_url)
        return cls(
            timeout=settings.timeout_seconds,
            max_retries=settings.max_retries,
            min_body_length=settings.min_body_length,
            delay_bounds=settings.delay_bounds,
            **kwargs,
        )

    def __enter__(self) -> "HttpPageFetcher":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        self.session.close()

    def fetch(self, url: str, *, page: int = 1) -> str:
        retrying = Retrying(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_random_exponential(multiplier=self.backoff, max=10),
            retry=retry_if_exception_type(PageLoadError),
            before_sleep=before_sleep_log(LOGGER, logging.WARNING),
            reraise=True,
        )
        return retrying(self._fetch_once, url, page)

    def _pause(self) -> None:
        low, high = self.delay_bounds
        if high <= 0:
            return
        self._sleep(random.uniform(low, high))

    def _fetch_once(self, url: str, page: int) -> str:
        self._pause()
        proxies = {"http": self.proxy_url, "https": self.proxy_url} if self.proxy_url else None
        try:
            response = self.session.get(
                url,
                headers=DEFAULT_HEADERS,
                timeout=self.timeout,
                proxies=proxies,
            )
        except requests.RequestException as exc:
            raise PageLoadError(str(exc), url=url, page=page) from exc

        status = response.status_code
        if status == 404 and page > 1:
            raise EndOfPagination(url=url, page=page)
        if status in BLOCK_STATUS_CODES:
            raise BlockedPageError(f"HTTP {status} - possible block.", url=url, page=page, status_code=status)
        if status >= 400:
            raise PageLoadError(f"HTTP {status}.", url=url, page=page, status_code=status)

        body = response.text or ""
        if len(body) < self.min_body_length:
            raise BlockedPageError(url=url, page=page, status_code=status)
        LOGGER.debug("Fetched %s (%d chars)", url, len(body))
        return body


__all__ = ["DEFAULT_HEADERS", "HttpPageFetcher", "normalize_proxy_url"]
