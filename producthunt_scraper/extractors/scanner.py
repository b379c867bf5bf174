"""Locate and cut balanced JSON object spans out of raw page text.

Server-rendered listing pages embed their data as JSON fragments inside
``<script>`` payloads. Rather than parsing the HTML we search for literal
anchor markers and then walk forward from each ``{`` until the braces balance,
keeping track of string literals so that braces inside strings are ignored.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterator


class ScanState(str, Enum):
    """Lexical mode of the balanced-object scanner."""

    OUTSIDE_STRING = "outside_string"
    IN_STRING = "in_string"
    ESCAPED = "escaped"


def find_all_occurrences(text: str, marker: str) -> list[int]:
    """Return every offset of *marker* in *text*, left to right, non-overlapping."""

    if not marker:
        return []

    offsets: list[int] = []
    idx = text.find(marker)
    while idx != -1:
        offsets.append(idx)
        idx = text.find(marker, idx + len(marker))
    return offsets


def _transition(state: ScanState, char: str) -> tuple[ScanState, int]:
    """Return the next state and the brace depth delta for *char*."""

    if state is ScanState.ESCAPED:
        return ScanState.IN_STRING, 0
    if state is ScanState.IN_STRING:
        if char == "\\":
            return ScanState.ESCAPED, 0
        if char == '"':
            return ScanState.OUTSIDE_STRING, 0
        return ScanState.IN_STRING, 0
    if char == '"':
        return ScanState.IN_STRING, 0
    if char == "{":
        return ScanState.OUTSIDE_STRING, 1
    if char == "}":
        return ScanState.OUTSIDE_STRING, -1
    return ScanState.OUTSIDE_STRING, 0


def extract_object_at(text: str, start: int) -> str | None:
    """Return the balanced ``{...}`` span starting at *start*, or ``None``.

    ``None`` is returned when ``text[start]`` is not ``{`` or when the text
    ends before the object closes. Unterminated candidates are never truncated.
    """

    if start < 0 or start >= len(text) or text[start] != "{":
        return None

    state = ScanState.OUTSIDE_STRING
    depth = 0
    for index in range(start, len(text)):
        state, delta = _transition(state, text[index])
        if not delta:
            continue
        depth += delta
        if depth == 0:
            return text[start : index + 1]
    return None


def iter_object_spans(text: str, marker: str) -> Iterator[str]:
    """Yield the balanced object span at each occurrence of *marker*.

    The marker is expected to begin with ``{``; occurrences whose object never
    closes are skipped.
    """

    for offset in find_all_occurrences(text, marker):
        span = extract_object_at(text, offset)
        if span is not None:
            yield span


__all__ = [
    "ScanState",
    "extract_object_at",
    "find_all_occurrences",
    "iter_object_spans",
]
