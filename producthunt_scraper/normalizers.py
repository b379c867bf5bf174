"""Normalise decoded product nodes into canonical product records."""

from __future__ import annotations

import math
import re
from datetime import datetime, timezone
from typing import Any, Iterable
from urllib.parse import unquote, urlparse

from producthunt_scraper.extractors.schemas import ProductNode, ProductRecord

PRODUCT_HOST = "www.producthunt.com"
IMAGE_HOST = "ph-files.imgix.net"
PRODUCT_URL_TEMPLATE = "https://{host}/products/{slug}"
IMAGE_URL_TEMPLATE = "https://{host}/{logo_uuid}?auto=format&fit=crop"

# Ordered sources per canonical field; the first non-empty value wins.
TEXT_SOURCES: dict[str, tuple[str, ...]] = {
    "description": ("description", "tagline"),
    "tagline": ("tagline",),
    "logo_uuid": ("logo_uuid", "thumbnail_uuid"),
    "launch_post_id": ("latest_launch.id", "launch_post_id"),
    "launch_scheduled_at": ("latest_launch.scheduled_at", "launch_scheduled_at"),
}
NUMBER_SOURCES: dict[str, tuple[str, ...]] = {
    "upvotes": ("votes_count", "upvotes", "latest_launch.votes_count"),
    "rating": ("reviews_rating", "rating"),
    "reviews_count": ("reviews_count",),
    "detailed_reviews_count": ("detailed_reviews_count",),
    "founder_reviews_count": ("founder_reviews_count",),
    "founder_shoutouts": ("founder_shoutouts_count", "founder_shoutouts"),
    "followers_count": ("followers_count", "followers"),
    "posts_count": ("posts_count",),
}
FLAG_FIELDS: tuple[str, ...] = ("is_top_product", "is_subscribed", "is_no_longer_online")

_FALSE_VALUES = {"", "0", "false", "no", "off", "null", "none"}
_FALLBACK_PATH_RE = re.compile(r"^/(?:topics|categories)/([^/]+)")


def clean_text(value: Any) -> str | None:
    """Return *value* as stripped text, or ``None`` when it is empty or not scalar."""

    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return str(value)
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed or None


def coerce_number(value: Any) -> int | float | None:
    """Convert a native number or numeric string to a number; anything else is ``None``."""

    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if not isinstance(value, str):
        return None

    text = value.strip().replace(",", "")
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        pass
    try:
        number = float(text)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def coerce_flag(value: Any) -> bool:
    """Return ``True`` for any present truthy value; strings like ``"false"`` count as false."""

    if isinstance(value, str):
        return value.strip().lower() not in _FALSE_VALUES
    return bool(value)


def dedupe(values: Iterable[Any]) -> list[str]:
    """Return the non-empty text values in first-seen order without duplicates."""

    seen: set[str] = set()
    result: list[str] = []
    for value in values:
        text = clean_text(value)
        if text is None or text in seen:
            continue
        seen.add(text)
        result.append(text)
    return result


def is_absolute_url(value: str | None) -> bool:
    if not value or any(ch.isspace() for ch in value):
        return False
    parsed = urlparse(value)
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc)


def build_product_url(slug: str) -> str:
    return PRODUCT_URL_TEMPLATE.format(host=PRODUCT_HOST, slug=slug)


def build_image_url(logo_uuid: str | None) -> str | None:
    if not logo_uuid:
        return None
    return IMAGE_URL_TEMPLATE.format(host=IMAGE_HOST, logo_uuid=logo_uuid)


def fallback_category_from_url(url: str | None) -> str | None:
    """Derive a category slug from a ``/topics/<slug>`` or ``/categories/<slug>`` URL."""

    if not url:
        return None
    path = urlparse(url).path or ""
    match = _FALLBACK_PATH_RE.match(path)
    if not match:
        return None
    return clean_text(unquote(match.group(1)))


def _first(node: ProductNode, sources: tuple[str, ...], convert) -> Any:
    for source in sources:
        value = convert(node.lookup(source))
        if value is not None:
            return value
    return None


def _category_names(node: ProductNode) -> list[str]:
    names: list[Any] = [ref.name for ref in node.categories]
    if node.topics is not None:
        names.extend(edge.node.name for edge in node.topics.edges if edge.node is not None)
    if node.product_categories is not None:
        names.extend(ref.name for ref in node.product_categories.nodes)
    return dedupe(names)


def _tag_names(node: ProductNode) -> list[str]:
    names: list[Any] = []
    for tag in node.tags:
        names.append(tag.get("name") if isinstance(tag, dict) else tag)
    return dedupe(names)


def normalize_product(
    node: ProductNode,
    *,
    fallback_category: str | None = None,
    now: datetime | None = None,
) -> ProductRecord | None:
    """Map a decoded product node onto the canonical record.

    Returns ``None`` when ``id``, ``slug`` or ``name`` is missing or blank.
    ``fallback_category`` replaces empty category lists; ``now`` overrides the
    ``scraped_at`` timestamp.
    """

    product_id = clean_text(node.id)
    slug = clean_text(node.slug)
    name = clean_text(node.name)
    if not (product_id and slug and name):
        return None

    own_url = clean_text(node.url)
    url = own_url if is_absolute_url(own_url) else build_product_url(slug)

    fields: dict[str, Any] = {
        "id": product_id,
        "slug": slug,
        "name": name,
        "url": url,
    }
    for field_name, sources in TEXT_SOURCES.items():
        fields[field_name] = _first(node, sources, clean_text)
    for field_name, sources in NUMBER_SOURCES.items():
        fields[field_name] = _first(node, sources, coerce_number)
    for field_name in FLAG_FIELDS:
        fields[field_name] = coerce_flag(getattr(node, field_name))

    fields["image_url"] = build_image_url(fields["logo_uuid"])

    fallback = clean_text(fallback_category)
    categories = _category_names(node)
    category_slugs = dedupe(ref.slug for ref in node.categories)
    if not categories and fallback:
        categories = [fallback]
    if not category_slugs and fallback:
        category_slugs = [fallback]
    fields["categories"] = categories
    fields["category_slugs"] = category_slugs
    fields["tags"] = _tag_names(node)

    fields["scraped_at"] = now or datetime.now(timezone.utc)
    return ProductRecord(**fields)


__all__ = [
    "build_image_url",
    "build_product_url",
    "clean_text",
    "coerce_flag",
    "coerce_number",
    "dedupe",
    "fallback_category_from_url",
    "is_absolute_url",
    "normalize_product",
]
