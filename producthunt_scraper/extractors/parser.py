"""Decode extracted spans into ``ProductNode`` objects."""

from __future__ import annotations

import json
from typing import Any, Iterator

from pydantic import ValidationError

from producthunt_scraper.extractors.scanner import iter_object_spans
from producthunt_scraper.extractors.schemas import EDGE_TYPENAME, PRODUCT_TYPENAME, ProductNode
from producthunt_scraper.logging_config import get_logger

LOGGER = get_logger(__name__)

EDGE_MARKER = '{"__typename":"ProductEdge"'
PRODUCT_MARKER = '{"__typename":"Product"'


def _unwrap(payload: Any) -> dict[str, Any] | None:
    if not isinstance(payload, dict):
        return None
    if payload.get("__typename") == EDGE_TYPENAME:
        node = payload.get("node")
        return node if isinstance(node, dict) else None
    return payload


def decode_product_node(span: str) -> ProductNode | None:
    """Decode one balanced span, returning ``None`` when it is not a product."""

    try:
        payload = json.loads(span)
    except (json.JSONDecodeError, RecursionError):
        LOGGER.debug("Discarding undecodable candidate (%d chars)", len(span))
        return None

    node = _unwrap(payload)
    if node is None or node.get("__typename") != PRODUCT_TYPENAME:
        return None

    try:
        return ProductNode.model_validate(node)
    except ValidationError as exc:
        LOGGER.debug("Discarding product node that failed validation: %s", exc)
        return None


def iter_product_nodes(text: str, marker: str) -> Iterator[ProductNode]:
    """Yield every decodable product node anchored at *marker* in *text*."""

    for span in iter_object_spans(text, marker):
        node = decode_product_node(span)
        if node is not None:
            yield node


__all__ = [
    "EDGE_MARKER",
    "PRODUCT_MARKER",
    "decode_product_node",
    "iter_product_nodes",
]
