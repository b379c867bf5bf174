"""Command-line interface entry point for the Product Hunt scraper."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Any, Iterable

from dotenv import load_dotenv

from producthunt_scraper.config import CrawlSettings, apply_env_overrides, load_config
from producthunt_scraper.crawler import CrawlController, CrawlResult
from producthunt_scraper.errors import CrawlFailedError
from producthunt_scraper.fetcher import HttpPageFetcher
from producthunt_scraper.logging_config import configure_logging, get_logger
from producthunt_scraper.storage.export import write_records

LOGGER = get_logger(__name__)

DEFAULT_CONFIG_PATH = Path("config.yml")


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments for the application."""

    parser = argparse.ArgumentParser(
        description="Scrape products from Product Hunt topic listing pages."
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help="YAML configuration file (default: config.yml).",
    )
    parser.add_argument("--start-url", dest="start_url", help="Listing URL to start from.")
    parser.add_argument(
        "--category",
        help="Topic slug used to build the start URL when --start-url is not given.",
    )
    parser.add_argument(
        "--results-wanted",
        dest="results_wanted",
        type=int,
        help="Number of products to collect (default: 20).",
    )
    parser.add_argument(
        "--max-pages",
        dest="max_pages",
        type=int,
        help="Maximum number of listing pages to visit; 0 means no limit.",
    )
    parser.add_argument("--proxy-url", dest="proxy_url", help="HTTP proxy URL.")
    parser.add_argument("--output", type=Path, help="Output file (.json or .csv).")
    parser.add_argument(
        "--no-delay",
        action="store_true",
        help="Disable the random pause between requests.",
    )
    return parser.parse_args(list(argv) if argv is not None else None)


def _apply_cli_overrides(config: dict[str, Any], args: argparse.Namespace) -> dict[str, Any]:
    crawl = config.setdefault("crawl", {})
    fetch = config.setdefault("fetch", {})
    output = config.setdefault("output", {})

    if args.start_url:
        crawl["start_url"] = args.start_url
    if args.category:
        crawl["category"] = args.category
        if not args.start_url:
            crawl["start_url"] = None
    if args.results_wanted is not None:
        crawl["results_wanted"] = args.results_wanted
    if args.max_pages is not None:
        crawl["max_pages"] = args.max_pages
    if args.proxy_url:
        fetch["proxy_url"] = args.proxy_url
    if args.no_delay:
        fetch["delay_min_seconds"] = 0
        fetch["delay_max_seconds"] = 0
    if args.output:
        output["path"] = str(args.output)
    return config


def resolve_settings(args: argparse.Namespace) -> tuple[CrawlSettings, dict[str, Any]]:
    config = apply_env_overrides(load_config(args.config))
    config = _apply_cli_overrides(config, args)
    return CrawlSettings.from_config(config), config


def _export(result: CrawlResult, config: dict[str, Any]) -> None:
    output_path = (config.get("output") or {}).get("path")
    if not output_path:
        return
    target = write_records(result.to_output(), output_path)
    LOGGER.info("Saved %d products to %s", len(result.records), target)


def run(argv: Iterable[str] | None = None) -> CrawlResult:
    args = parse_args(argv)
    load_dotenv()
    configure_logging(force=True)
    settings, config = resolve_settings(args)

    with HttpPageFetcher.from_settings(settings) as fetcher:
        controller = CrawlController(settings, fetcher)
        try:
            result = controller.run()
        except CrawlFailedError as exc:
            if exc.result.records:
                _export(exc.result, config)
            raise

    if not result.records:
        LOGGER.warning("No products extracted")
    _export(result, config)
    return result


def main() -> None:
    try:
        result = run()
    except CrawlFailedError as exc:
        LOGGER.error("%s", exc)
        raise SystemExit(1) from exc
    except KeyboardInterrupt:  # pragma: no cover - interactive safety
        LOGGER.info("Interrupted by user")
        return
    LOGGER.info("Done: %d products, stop reason %s", len(result.records), result.stop_reason.value)


if __name__ == "__main__":
    main()
