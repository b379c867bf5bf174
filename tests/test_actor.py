from __future__ import annotations

import asyncio
import logging

import pytest

import producthunt_scraper.actor as actor_module
from producthunt_scraper.errors import CrawlFailedError, PageLoadError

EDGE = (
    '{"__typename":"ProductEdge","node":{"__typename":"Product","id":"%s",'
    '"slug":"p%s","name":"P%s","tagline":"t"}}'
)
PADDING = "x" * 1500


class FakeActor:
    def __init__(self, actor_input: dict | None) -> None:
        self.actor_input = actor_input
        self.pushed: list[dict] = []
        self.values: dict[str, object] = {}
        self.log = logging.getLogger("fake-actor")

    async def __aenter__(self) -> "FakeActor":
        return self

    async def __aexit__(self, *exc_info) -> None:
        return None

    async def get_input(self):
        return self.actor_input

    async def push_data(self, items) -> None:
        self.pushed.extend(items)

    async def set_value(self, key: str, value) -> None:
        self.values[key] = value

    async def create_proxy_configuration(self, *, actor_proxy_input):
        return None


class StubFetcher:
    pages: list = []

    @classmethod
    def from_settings(cls, settings, **kwargs):
        instance = cls()
        instance.proxy_url = kwargs.get("proxy_url")
        return instance

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        return None

    def fetch(self, url: str, *, page: int) -> str:
        item = self.pages[page - 1]
        if isinstance(item, Exception):
            raise item
        return item


def _page(*ids: int) -> str:
    return PADDING + "".join(EDGE % (i, i, i) for i in ids) + PADDING


def _install(monkeypatch: pytest.MonkeyPatch, actor_input: dict | None, pages: list) -> FakeActor:
    fake = FakeActor(actor_input)
    monkeypatch.setattr(actor_module, "Actor", fake)
    monkeypatch.setattr(actor_module, "HttpPageFetcher", StubFetcher)
    monkeypatch.setattr(StubFetcher, "pages", pages)
    return fake


def test_actor_pushes_records_and_summary(monkeypatch: pytest.MonkeyPatch) -> None:
    fake = _install(
        monkeypatch,
        {"category": "developer-tools", "results_wanted": 3, "max_pages": 2},
        [_page(1, 2), _page(3, 4)],
    )

    asyncio.run(actor_module.main())

    assert [item["id"] for item in fake.pushed] == ["1", "2", "3"]
    assert fake.values["OUTPUT"] == {
        "stop_reason": "target_reached",
        "pages_processed": 2,
        "count": 3,
    }


def test_actor_saves_partial_result_on_failure(monkeypatch: pytest.MonkeyPatch) -> None:
    fake = _install(
        monkeypatch,
        None,
        [_page(1, 2), PageLoadError("boom", url="u", page=2)],
    )

    with pytest.raises(CrawlFailedError):
        asyncio.run(actor_module.main())

    assert [item["id"] for item in fake.pushed] == ["1", "2"]
    assert fake.values["OUTPUT"]["stop_reason"] is None
    assert fake.values["OUTPUT"]["count"] == 2


def test_actor_without_proxy_input_uses_no_proxy() -> None:
    assert asyncio.run(actor_module._resolve_proxy_url(None)) is None
