"""Extraction helpers for embedded product payloads."""

from producthunt_scraper.extractors.parser import (
    EDGE_MARKER,
    PRODUCT_MARKER,
    decode_product_node,
    iter_product_nodes,
)
from producthunt_scraper.extractors.scanner import (
    extract_object_at,
    find_all_occurrences,
)

__all__ = [
    "EDGE_MARKER",
    "PRODUCT_MARKER",
    "decode_product_node",
    "extract_object_at",
    "find_all_occurrences",
    "iter_product_nodes",
]
