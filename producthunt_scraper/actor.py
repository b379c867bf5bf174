"""Apify actor entry point.

Input mirrors the public actor schema: ``startUrl``, ``category``,
``results_wanted``, ``max_pages`` and ``proxyConfiguration``.
"""

from __future__ import annotations

import asyncio

from apify import Actor

from producthunt_scraper.config import CrawlSettings
from producthunt_scraper.crawler import CrawlController, CrawlResult
from producthunt_scraper.errors import CrawlFailedError
from producthunt_scraper.fetcher import HttpPageFetcher


async def _resolve_proxy_url(proxy_input: dict | None) -> str | None:
    if not proxy_input:
        return None
    proxy_configuration = await Actor.create_proxy_configuration(actor_proxy_input=proxy_input)
    if proxy_configuration is None:
        return None
    return await proxy_configuration.new_url()


async def _save(result: CrawlResult) -> None:
    if result.records:
        await Actor.push_data(result.to_output())
        Actor.log.info(f"Saved {len(result.records)} products to dataset")
    else:
        Actor.log.warning("No products extracted")

    await Actor.set_value(
        "OUTPUT",
        {
            "stop_reason": result.stop_reason.value if result.stop_reason else None,
            "pages_processed": result.pages_processed,
            "count": len(result.records),
        },
    )


async def main() -> None:
    async with Actor:
        actor_input = await Actor.get_input() or {}
        settings = CrawlSettings.from_actor_input(actor_input)

        Actor.log.info("Product Hunt Scraper")
        Actor.log.info(f"Source: {'Custom URL' if actor_input.get('startUrl') else 'Category'}")
        Actor.log.info(f"URL: {settings.start_url}")
        Actor.log.info(
            f"Target: {settings.results_wanted} products from "
            f"{settings.max_pages or 'unlimited'} page(s)"
        )

        proxy_url = await _resolve_proxy_url(actor_input.get("proxyConfiguration"))
        with HttpPageFetcher.from_settings(settings, proxy_url=proxy_url) as fetcher:
            controller = CrawlController(settings, fetcher)
            try:
                result = await asyncio.to_thread(controller.run)
            except CrawlFailedError as exc:
                Actor.log.error(f"Fatal error: {exc}")
                await _save(exc.result)
                raise

        Actor.log.info(f"Stopped: {result.stop_reason.value}")
        await _save(result)


if __name__ == "__main__":
    asyncio.run(main())
