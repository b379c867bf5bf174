from __future__ import annotations

import json

import pytest

from producthunt_scraper.config import CrawlSettings
from producthunt_scraper.crawler import (
    CrawlController,
    CrawlPhase,
    StopReason,
    build_page_url,
    extract_products,
)
from producthunt_scraper.errors import BlockedPageError, CrawlFailedError, EndOfPagination, PageLoadError

BASE_URL = "https://www.producthunt.com/topics/productivity"
PADDING = "<!-- " + "x" * 1200 + " -->"


def _product(product_id: str, **fields) -> dict:
    payload = {
        "__typename": "Product",
        "id": product_id,
        "slug": f"product-{product_id}",
        "name": f"Product {product_id}",
        "tagline": f"Tagline {product_id}",
        "logoUuid": f"logo-{product_id}.png",
    }
    payload.update(fields)
    return payload


def _edge(product: dict) -> str:
    return json.dumps({"__typename": "ProductEdge", "node": product}, separators=(",", ":"))


def _page(*ids: str) -> str:
    edges = ",".join(_edge(_product(product_id)) for product_id in ids)
    return f"<html><head>{PADDING}</head><script>self.__data=[{edges}]</script></html>"


class DummyFetcher:
    def __init__(self, pages) -> None:
        self.pages = list(pages)
        self.calls: list[tuple[str, int]] = []

    def fetch(self, url: str, *, page: int) -> str:
        self.calls.append((url, page))
        item = self.pages[min(page, len(self.pages)) - 1]
        if isinstance(item, Exception):
            raise item
        return item


class EndlessFetcher:
    """Every page carries ten fresh ids."""

    def __init__(self) -> None:
        self.calls = 0

    def fetch(self, url: str, *, page: int) -> str:
        self.calls += 1
        return _page(*(f"{page}-{idx}" for idx in range(10)))


def _settings(**kwargs) -> CrawlSettings:
    kwargs.setdefault("start_url", BASE_URL)
    return CrawlSettings.create(**kwargs)


def test_scenario_a_edge_wrapped_product() -> None:
    body = (
        PADDING
        + '{"__typename":"ProductEdge","node":{"__typename":"Product","id":"1","slug":"a",'
        '"name":"A","tagline":"t","logoUuid":"u1"}}'
    )
    records = extract_products(body)
    assert len(records) == 1
    record = records[0]
    assert record.id == "1"
    assert record.url == "https://www.producthunt.com/products/a"
    assert record.image_url.endswith("u1?auto=format&fit=crop")


def test_scenario_c_no_new_products() -> None:
    fetcher = DummyFetcher([_page("1", "2", "3"), _page("1", "2", "3")])
    result = CrawlController(_settings(results_wanted=5, max_pages=0), fetcher).run()
    assert result.stop_reason is StopReason.NO_NEW_PRODUCTS
    assert [record.id for record in result.records] == ["1", "2", "3"]
    assert result.pages_processed == 2


def test_scenario_d_max_pages_reached() -> None:
    fetcher = DummyFetcher([_page(*(str(idx) for idx in range(10)))])
    result = CrawlController(_settings(results_wanted=20, max_pages=1), fetcher).run()
    assert result.stop_reason is StopReason.MAX_PAGES_REACHED
    assert len(result.records) == 10
    assert len(fetcher.calls) == 1


def test_scenario_b_merges_across_pages() -> None:
    first = _edge(_product("1", reviewsRating=None, reviewsCount=5))
    second = _edge(_product("1", reviewsRating=4.5, reviewsCount=None))
    pages = [
        f"{PADDING}<script>[{first},{_edge(_product('2'))}]</script>",
        f"{PADDING}<script>[{second},{_edge(_product('3'))}]</script>",
        _page("3"),
    ]
    result = CrawlController(_settings(results_wanted=20, max_pages=0), DummyFetcher(pages)).run()
    merged = next(record for record in result.records if record.id == "1")
    assert merged.rating == 4.5
    assert merged.reviews_count == 5
    assert result.stop_reason is StopReason.NO_NEW_PRODUCTS


def test_target_reached_truncates_output() -> None:
    fetcher = DummyFetcher([_page("1", "2", "3", "4"), _page("5", "6", "7", "8")])
    result = CrawlController(_settings(results_wanted=5, max_pages=0), fetcher).run()
    assert result.stop_reason is StopReason.TARGET_REACHED
    assert [record.id for record in result.records] == ["1", "2", "3", "4", "5"]


def test_empty_page_stops_with_no_products() -> None:
    fetcher = DummyFetcher([_page("1"), f"<html>{PADDING}</html>"])
    result = CrawlController(_settings(results_wanted=5, max_pages=0), fetcher).run()
    assert result.stop_reason is StopReason.NO_PRODUCTS_ON_PAGE
    assert [record.id for record in result.records] == ["1"]
    assert result.pages_processed == 2


def test_end_of_pagination_finishes() -> None:
    fetcher = DummyFetcher([_page("1", "2"), EndOfPagination(page=2)])
    result = CrawlController(_settings(results_wanted=5, max_pages=0), fetcher).run()
    assert result.stop_reason is StopReason.FINISHED
    assert len(result.records) == 2


def test_transport_failure_aborts_with_partial_result() -> None:
    fetcher = DummyFetcher([_page("1", "2"), PageLoadError(url="u", page=2)])
    controller = CrawlController(_settings(results_wanted=5, max_pages=0), fetcher)
    with pytest.raises(CrawlFailedError) as excinfo:
        controller.run()
    assert isinstance(excinfo.value.cause, PageLoadError)
    assert excinfo.value.result.stop_reason is None
    assert [record.id for record in excinfo.value.result.records] == ["1", "2"]
    assert controller.phase is CrawlPhase.STOPPED


def test_undersized_body_is_a_transport_failure() -> None:
    fetcher = DummyFetcher(["<html>blocked</html>"])
    with pytest.raises(CrawlFailedError) as excinfo:
        CrawlController(_settings(), fetcher).run()
    assert isinstance(excinfo.value.cause, BlockedPageError)
    assert excinfo.value.cause.possibly_blocked is True


def test_terminates_within_page_bound() -> None:
    fetcher = EndlessFetcher()
    result = CrawlController(_settings(results_wanted=1000, max_pages=3), fetcher).run()
    assert result.stop_reason is StopReason.MAX_PAGES_REACHED
    assert result.pages_processed == 3
    assert fetcher.calls == 3
    assert len(result.records) == 30


def test_requested_stop_finishes_at_decision_point() -> None:
    controller = CrawlController(_settings(results_wanted=1000, max_pages=0), EndlessFetcher())
    controller.step()
    controller.step()
    assert controller.phase is CrawlPhase.DECIDING
    controller.request_stop()
    result = controller.run()
    assert result.stop_reason is StopReason.FINISHED
    assert result.pages_processed == 1


def test_pages_are_requested_with_page_parameter() -> None:
    fetcher = DummyFetcher([_page("1"), _page("2"), _page("3")])
    CrawlController(_settings(results_wanted=20, max_pages=3), fetcher).run()
    assert fetcher.calls == [
        (BASE_URL, 1),
        (f"{BASE_URL}?page=2", 2),
        (f"{BASE_URL}?page=3", 3),
    ]


def test_fallback_category_comes_from_page_url() -> None:
    fetcher = DummyFetcher([_page("1")])
    result = CrawlController(_settings(results_wanted=1), fetcher).run()
    assert result.records[0].categories == ["productivity"]
    assert result.records[0].category_slugs == ["productivity"]


def test_duplicates_on_one_page_collapse() -> None:
    body = PADDING + _edge(_product("1", votesCount=None)) + _edge(_product("1", votesCount=9))
    records = extract_products(body)
    assert len(records) == 1
    assert records[0].upvotes == 9


def test_bare_products_used_when_no_edges() -> None:
    products = ",".join(
        json.dumps(_product(str(idx)), separators=(",", ":")) for idx in range(3)
    )
    body = f"{PADDING}<script>{{\"items\":[{products}]}}</script>"
    records = extract_products(body)
    assert [record.id for record in records] == ["0", "1", "2"]


def test_bare_products_ignored_when_edges_present() -> None:
    bare = json.dumps(_product("99"), separators=(",", ":"))
    body = PADDING + _edge(_product("1")) + bare
    assert [record.id for record in extract_products(body)] == ["1"]


def test_build_page_url() -> None:
    assert build_page_url(BASE_URL, 1) == BASE_URL
    assert build_page_url(BASE_URL, 2) == f"{BASE_URL}?page=2"
    assert build_page_url(f"{BASE_URL}?order=best", 3) == f"{BASE_URL}?order=best&page=3"
    assert build_page_url(f"{BASE_URL}?page=2&order=best", 4) == f"{BASE_URL}?page=4&order=best"
    assert build_page_url(f"{BASE_URL}?topic=ai&topic=dev", 2) == f"{BASE_URL}?topic=ai&topic=dev&page=2"
    assert (
        build_page_url(f"{BASE_URL}?topic=ai&page=2&topic=dev&page=9", 5)
        == f"{BASE_URL}?topic=ai&page=5&topic=dev"
    )
    assert build_page_url("/topics/ai", 2) == "/topics/ai?page=2"
    assert build_page_url("/topics/ai?x=1", 2) == "/topics/ai?x=1&page=2"
