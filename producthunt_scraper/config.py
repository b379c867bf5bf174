"""Configuration loading and validation for crawl runs."""

from __future__ import annotations

import os
from copy import deepcopy
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import yaml

from producthunt_scraper.logging_config import get_logger

LOGGER = get_logger(__name__)

DEFAULT_CATEGORY = "productivity"
DEFAULT_RESULTS_WANTED = 20
DEFAULT_MAX_PAGES = 3
MAX_RESULTS_WANTED = 1000
MAX_PAGES_LIMIT = 500
START_URL_TEMPLATE = "https://www.producthunt.com/topics/{category}"

DEFAULT_CONFIG: dict[str, Any] = {
    "crawl": {
        "start_url": None,
        "category": DEFAULT_CATEGORY,
        "results_wanted": DEFAULT_RESULTS_WANTED,
        "max_pages": DEFAULT_MAX_PAGES,
    },
    "fetch": {
        "min_body_length": 1000,
        "max_retries": 3,
        "timeout_seconds": 60,
        "delay_min_seconds": 1.0,
        "delay_max_seconds": 3.0,
        "proxy_url": None,
    },
    "output": {"path": "outputs/products.json"},
}

# Environment variable -> (section, key)
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "PH_START_URL": ("crawl", "start_url"),
    "PH_CATEGORY": ("crawl", "category"),
    "PH_RESULTS_WANTED": ("crawl", "results_wanted"),
    "PH_MAX_PAGES": ("crawl", "max_pages"),
    "PH_PROXY_URL": ("fetch", "proxy_url"),
    "PH_OUTPUT_PATH": ("output", "path"),
}


def _as_int(value: Any, default: int) -> int:
    if isinstance(value, bool):
        return default
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        try:
            return int(float(str(value).strip()))
        except (TypeError, ValueError, OverflowError):
            return default


def _as_float(value: Any, default: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def clamp_results_wanted(value: Any) -> int:
    """Return a target record count within ``[1, MAX_RESULTS_WANTED]``."""

    number = _as_int(value, DEFAULT_RESULTS_WANTED)
    return max(1, min(MAX_RESULTS_WANTED, number))


def clamp_max_pages(value: Any) -> int:
    """Return a page bound within ``[0, MAX_PAGES_LIMIT]``; ``0`` means unbounded."""

    number = _as_int(value, DEFAULT_MAX_PAGES)
    return max(0, min(MAX_PAGES_LIMIT, number))


def build_start_url(category: str | None) -> str:
    slug = (category or "").strip().strip("/") or DEFAULT_CATEGORY
    return START_URL_TEMPLATE.format(category=slug)


@dataclass(frozen=True)
class CrawlSettings:
    """Validated settings for a single crawl run."""

    start_url: str
    results_wanted: int = DEFAULT_RESULTS_WANTED
    max_pages: int = DEFAULT_MAX_PAGES
    min_body_length: int = 1000
    max_retries: int = 3
    timeout_seconds: float = 60.0
    delay_bounds: tuple[float, float] = (1.0, 3.0)
    proxy_url: str | None = None

    @classmethod
    def create(
        cls,
        *,
        start_url: str | None = None,
        category: str | None = None,
        results_wanted: Any = DEFAULT_RESULTS_WANTED,
        max_pages: Any = DEFAULT_MAX_PAGES,
        min_body_length: Any = 1000,
        max_retries: Any = 3,
        timeout_seconds: Any = 60.0,
        delay_min_seconds: Any = 1.0,
        delay_max_seconds: Any = 3.0,
        proxy_url: str | None = None,
    ) -> "CrawlSettings":
        """Build settings, clamping out-of-range values instead of failing."""

        url = (start_url or "").strip() or build_start_url(category)
        low = max(0.0, _as_float(delay_min_seconds, 1.0))
        high = max(low, _as_float(delay_max_seconds, 3.0))
        return cls(
            start_url=url,
            results_wanted=clamp_results_wanted(results_wanted),
            max_pages=clamp_max_pages(max_pages),
            min_body_length=max(0, _as_int(min_body_length, 1000)),
            max_retries=max(1, _as_int(max_retries, 3)),
            timeout_seconds=max(1.0, _as_float(timeout_seconds, 60.0)),
            delay_bounds=(low, high),
            proxy_url=(proxy_url or "").strip() or None,
        )

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "CrawlSettings":
        crawl = config.get("crawl") or {}
        fetch = config.get("fetch") or {}
        return cls.create(
            start_url=crawl.get("start_url"),
            category=crawl.get("category"),
            results_wanted=crawl.get("results_wanted", DEFAULT_RESULTS_WANTED),
            max_pages=crawl.get("max_pages", DEFAULT_MAX_PAGES),
            min_body_length=fetch.get("min_body_length", 1000),
            max_retries=fetch.get("max_retries", 3),
            timeout_seconds=fetch.get("timeout_seconds", 60.0),
            delay_min_seconds=fetch.get("delay_min_seconds", 1.0),
            delay_max_seconds=fetch.get("delay_max_seconds", 3.0),
            proxy_url=fetch.get("proxy_url"),
        )

    @classmethod
    def from_actor_input(cls, actor_input: Mapping[str, Any]) -> "CrawlSettings":
        """Build settings from an Apify actor input object."""

        return cls.create(
            start_url=actor_input.get("startUrl"),
            category=actor_input.get("category"),
            results_wanted=actor_input.get("results_wanted", DEFAULT_RESULTS_WANTED),
            max_pages=actor_input.get("max_pages", DEFAULT_MAX_PAGES),
        )


def _deep_merge(default: Any, override: Any) -> Any:
    if not isinstance(default, dict) or not isinstance(override, dict):
        return deepcopy(override)

    merged: dict[str, Any] = deepcopy(default)
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = deepcopy(value)
    return merged


def apply_env_overrides(config: dict[str, Any], environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    """Return a copy of *config* with ``PH_*`` environment variables applied."""

    env = os.environ if environ is None else environ
    result = deepcopy(config)
    for env_name, (section, key) in ENV_OVERRIDES.items():
        raw = env.get(env_name)
        if raw is None or not raw.strip():
            continue
        result.setdefault(section, {})[key] = raw.strip()
    return result


def load_config(path: Path | None) -> dict[str, Any]:
    """Load a YAML config file merged over ``DEFAULT_CONFIG``."""

    data: Any = {}
    if path is not None:
        if path.exists():
            with path.open("r", encoding="utf-8") as handle:
                data = yaml.safe_load(handle) or {}
        else:
            LOGGER.warning("Configuration file %s not found; using defaults", path)

    if not isinstance(data, dict):
        LOGGER.warning("Configuration file %s is not a mapping; using defaults", path)
        data = {}

    return _deep_merge(DEFAULT_CONFIG, data) if data else deepcopy(DEFAULT_CONFIG)


__all__ = [
    "DEFAULT_CONFIG",
    "CrawlSettings",
    "apply_env_overrides",
    "build_start_url",
    "clamp_max_pages",
    "clamp_results_wanted",
    "load_config",
]
