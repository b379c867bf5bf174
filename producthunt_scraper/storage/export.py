"""Atomic writers for exporting product records."""

from __future__ import annotations

import csv
import json
import os
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Any, Iterable

CSV_HEADER = [
    "id",
    "slug",
    "name",
    "description",
    "tagline",
    "url",
    "image_url",
    "logo_uuid",
    "upvotes",
    "rating",
    "reviews_count",
    "detailed_reviews_count",
    "founder_reviews_count",
    "founder_shoutouts",
    "followers_count",
    "posts_count",
    "launch_post_id",
    "launch_scheduled_at",
    "is_top_product",
    "is_subscribed",
    "is_no_longer_online",
    "categories",
    "category_slugs",
    "tags",
    "scraped_at",
]
LIST_SEPARATOR = "|"


def _row_to_values(row: dict[str, Any]) -> list[Any]:
    values: list[Any] = []
    for column in CSV_HEADER:
        value = row.get(column)
        if isinstance(value, list):
            value = LIST_SEPARATOR.join(str(item) for item in value)
        elif value is None:
            value = ""
        values.append(value)
    return values


def _atomic_write(path: Path, write) -> None:
    os.makedirs(path.parent, exist_ok=True)
    with NamedTemporaryFile(
        mode="w", newline="", encoding="utf-8", dir=str(path.parent), delete=False
    ) as handle:
        write(handle)
        handle.flush()
        os.fsync(handle.fileno())
        tmp_name = handle.name

    os.replace(tmp_name, path)


def write_csv(rows: Iterable[dict[str, Any]], csv_path: str | Path) -> None:
    def _write(handle) -> None:
        writer = csv.writer(handle)
        writer.writerow(CSV_HEADER)
        for row in rows:
            writer.writerow(_row_to_values(row))

    _atomic_write(Path(csv_path), _write)


def write_json(rows: Iterable[dict[str, Any]], json_path: str | Path) -> None:
    payload = list(rows)

    def _write(handle) -> None:
        json.dump(payload, handle, ensure_ascii=False, indent=2)
        handle.write("\n")

    _atomic_write(Path(json_path), _write)


def write_records(rows: Iterable[dict[str, Any]], path: str | Path) -> Path:
    """Write *rows* as CSV when *path* ends in ``.csv``, otherwise as JSON."""

    target = Path(path)
    if target.suffix.lower() == ".csv":
        write_csv(rows, target)
    else:
        write_json(rows, target)
    return target


__all__ = ["CSV_HEADER", "write_csv", "write_json", "write_records"]
