"""Pagination loop that extracts, accumulates and decides when to stop."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Iterable, Protocol
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

from producthunt_scraper.aggregator import ProductStore, merge_records
from producthunt_scraper.config import CrawlSettings
from producthunt_scraper.errors import BlockedPageError, CrawlFailedError, EndOfPagination, PageLoadError
from producthunt_scraper.extractors.parser import EDGE_MARKER, PRODUCT_MARKER, iter_product_nodes
from producthunt_scraper.extractors.schemas import ProductNode, ProductRecord
from producthunt_scraper.logging_config import get_logger
from producthunt_scraper.normalizers import fallback_category_from_url, normalize_product

LOGGER = get_logger(__name__)

MAX_FALLBACK_PRODUCTS = 100


class StopReason(str, Enum):
    """Why a crawl run stopped paging."""

    FINISHED = "finished"
    TARGET_REACHED = "target_reached"
    NO_PRODUCTS_ON_PAGE = "no_products_on_page"
    NO_NEW_PRODUCTS = "no_new_products"
    MAX_PAGES_REACHED = "max_pages_reached"


class CrawlPhase(str, Enum):
    FETCHING = "fetching"
    EXTRACTING = "extracting"
    DECIDING = "deciding"
    STOPPED = "stopped"


class PageFetcher(Protocol):
    def fetch(self, url: str, *, page: int) -> str:
        """Return the body of *url* or raise ``PageLoadError``/``EndOfPagination``."""


@dataclass
class PaginationState:
    page: int = 1
    pages_processed: int = 0
    stop_reason: StopReason | None = None


@dataclass
class CrawlResult:
    """Final output of a run. ``stop_reason`` is ``None`` only for aborted runs."""

    records: list[ProductRecord] = field(default_factory=list)
    stop_reason: StopReason | None = None
    pages_processed: int = 0

    def to_output(self) -> list[dict]:
        return [record.to_output() for record in self.records]


def build_page_url(base_url: str, page: int) -> str:
    """Return the URL for *page*; page 1 is *base_url* itself."""

    if page <= 1:
        return base_url

    parsed = urlparse(base_url)
    if parsed.scheme and parsed.netloc:
        pairs: list[tuple[str, str]] = []
        placed = False
        for key, value in parse_qsl(parsed.query, keep_blank_values=True):
            if key != "page":
                pairs.append((key, value))
            elif not placed:
                pairs.append(("page", str(page)))
                placed = True
        if not placed:
            pairs.append(("page", str(page)))
        return urlunparse(parsed._replace(query=urlencode(pairs)))

    sep = "&" if "?" in base_url else "?"
    return f"{base_url}{sep}page={page}"


def _collapse(
    nodes: Iterable[ProductNode],
    *,
    fallback_category: str | None,
    now: datetime | None,
    limit: int | None = None,
) -> list[ProductRecord]:
    collapsed: dict[str, ProductRecord] = {}
    for node in nodes:
        record = normalize_product(node, fallback_category=fallback_category, now=now)
        if record is None:
            LOGGER.debug("Skipping product node without id/slug/name")
            continue
        existing = collapsed.get(record.id)
        collapsed[record.id] = record if existing is None else merge_records(existing, record)
        if limit is not None and len(collapsed) >= limit:
            break
    return list(collapsed.values())


def extract_products(
    body: str,
    *,
    page_url: str | None = None,
    now: datetime | None = None,
) -> list[ProductRecord]:
    """Extract id-unique canonical records from one page body.

    ``ProductEdge`` wrappers are preferred; bare ``Product`` objects are only
    scanned when no edge produced a record.
    """

    fallback = fallback_category_from_url(page_url)
    records = _collapse(iter_product_nodes(body, EDGE_MARKER), fallback_category=fallback, now=now)
    if records:
        return records

    LOGGER.info("No ProductEdge found, trying fallback extraction")
    nodes = iter_product_nodes(body, PRODUCT_MARKER)
    return _collapse(nodes, fallback_category=fallback, now=now, limit=MAX_FALLBACK_PRODUCTS)


class CrawlController:
    """Drives one crawl run: fetch, extract, decide, repeat until stopped.

    A controller owns its ``ProductStore`` and is meant to be used for a single
    run only.
    """

    def __init__(self, settings: CrawlSettings, fetcher: PageFetcher) -> None:
        self.settings = settings
        self.fetcher = fetcher
        self.store = ProductStore()
        self.state = PaginationState()
        self.phase = CrawlPhase.FETCHING
        self.current_url = build_page_url(settings.start_url, 1)
        self._body: str | None = None
        self._page_records: list[ProductRecord] = []
        self._stop_requested = False

    def request_stop(self) -> None:
        """Stop at the next decision point with reason ``finished``."""

        self._stop_requested = True

    def run(self) -> CrawlResult:
        LOGGER.info(
            "Crawl starting url=%s target=%d max_pages=%s",
            self.settings.start_url,
            self.settings.results_wanted,
            self.settings.max_pages or "unbounded",
        )
        while self.phase is not CrawlPhase.STOPPED:
            self.step()
        result = self.result()
        LOGGER.info(
            "Crawl stopped reason=%s pages=%d products=%d",
            result.stop_reason.value if result.stop_reason else None,
            result.pages_processed,
            len(result.records),
        )
        return result

    def step(self) -> None:
        if self.phase is CrawlPhase.FETCHING:
            self._fetch()
        elif self.phase is CrawlPhase.EXTRACTING:
            self._extract()
        elif self.phase is CrawlPhase.DECIDING:
            self._decide()

    def result(self) -> CrawlResult:
        return CrawlResult(
            records=self.store.records(limit=self.settings.results_wanted),
            stop_reason=self.state.stop_reason,
            pages_processed=self.state.pages_processed,
        )

    def _stop(self, reason: StopReason) -> None:
        self.state.stop_reason = reason
        self.phase = CrawlPhase.STOPPED

    def _fetch(self) -> None:
        page = self.state.page
        LOGGER.info("Processing page %d: %s", page, self.current_url)
        try:
            body = self.fetcher.fetch(self.current_url, page=page)
            if not body or len(body) < self.settings.min_body_length:
                raise BlockedPageError(url=self.current_url, page=page)
        except EndOfPagination:
            LOGGER.info("Page %d does not exist; pagination exhausted", page)
            self._stop(StopReason.FINISHED)
            return
        except PageLoadError as exc:
            LOGGER.error("Fetch failed: %s", exc)
            self.phase = CrawlPhase.STOPPED
            raise CrawlFailedError(exc, self.result()) from exc

        self._body = body
        self.phase = CrawlPhase.EXTRACTING

    def _extract(self) -> None:
        body = self._body or ""
        self._body = None
        self._page_records = extract_products(body, page_url=self.current_url)
        self.state.pages_processed += 1
        if not self._page_records:
            LOGGER.warning("No products found on page %d", self.state.page)
            self._stop(StopReason.NO_PRODUCTS_ON_PAGE)
            return
        self.phase = CrawlPhase.DECIDING

    def _decide(self) -> None:
        new_count = 0
        for record in self._page_records:
            if self.store.upsert(record):
                new_count += 1
        page = self.state.page
        LOGGER.info(
            "Page %d: %d products, %d new, %d total",
            page,
            len(self._page_records),
            new_count,
            len(self.store),
        )
        self._page_records = []

        max_pages = self.settings.max_pages
        if len(self.store) >= self.settings.results_wanted:
            self._stop(StopReason.TARGET_REACHED)
        elif new_count == 0:
            self._stop(StopReason.NO_NEW_PRODUCTS)
        elif max_pages and page >= max_pages:
            self._stop(StopReason.MAX_PAGES_REACHED)
        elif self._stop_requested:
            self._stop(StopReason.FINISHED)
        else:
            self.state.page = page + 1
            self.current_url = build_page_url(self.settings.start_url, self.state.page)
            self.phase = CrawlPhase.FETCHING


__all__ = [
    "CrawlController",
    "CrawlPhase",
    "CrawlResult",
    "PageFetcher",
    "PaginationState",
    "StopReason",
    "build_page_url",
    "extract_products",
]
