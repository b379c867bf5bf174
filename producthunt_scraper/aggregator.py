"""Identity-keyed accumulation of product records across listing pages."""

from __future__ import annotations

from typing import Any, Iterator

from producthunt_scraper.extractors.schemas import SCALAR_FIELDS, SET_FIELDS, ProductRecord
from producthunt_scraper.normalizers import FLAG_FIELDS, dedupe


def _is_missing(value: Any) -> bool:
    return value is None or value == ""


def merge_records(existing: ProductRecord, incoming: ProductRecord) -> ProductRecord:
    """Combine two observations of the same product.

    Known scalar values on *existing* are kept; *incoming* only fills gaps.
    Flags stay set once any observation sets them. Set-valued fields are
    unioned with existing order first. ``scraped_at`` always takes the
    incoming observation's timestamp.
    """

    if existing.id != incoming.id:
        raise ValueError(f"Cannot merge records with different ids: {existing.id!r} != {incoming.id!r}")

    update: dict[str, Any] = {}
    for field_name in SCALAR_FIELDS:
        if field_name in FLAG_FIELDS:
            continue
        current = getattr(existing, field_name)
        candidate = getattr(incoming, field_name)
        if _is_missing(current) and not _is_missing(candidate):
            update[field_name] = candidate
    for field_name in FLAG_FIELDS:
        update[field_name] = bool(getattr(existing, field_name) or getattr(incoming, field_name))
    for field_name in SET_FIELDS:
        update[field_name] = dedupe([*getattr(existing, field_name), *getattr(incoming, field_name)])
    update["scraped_at"] = incoming.scraped_at
    return existing.model_copy(update=update)


class ProductStore:
    """Insertion-ordered mapping of product id to merged record.

    One store belongs to one crawl run. Entries are merged, never removed.
    """

    def __init__(self) -> None:
        self._records: dict[str, ProductRecord] = {}

    def upsert(self, record: ProductRecord) -> bool:
        """Insert or merge *record*; return ``True`` when its id was not known yet."""

        existing = self._records.get(record.id)
        if existing is None:
            self._records[record.id] = record
            return True
        self._records[record.id] = merge_records(existing, record)
        return False

    def get(self, product_id: str) -> ProductRecord | None:
        return self._records.get(product_id)

    def records(self, limit: int | None = None) -> list[ProductRecord]:
        values = list(self._records.values())
        return values if limit is None else values[: max(limit, 0)]

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, product_id: object) -> bool:
        return product_id in self._records

    def __iter__(self) -> Iterator[ProductRecord]:
        return iter(list(self._records.values()))


__all__ = ["ProductStore", "merge_records"]
