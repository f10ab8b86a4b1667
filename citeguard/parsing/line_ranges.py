"""Expand compact line-id notation ("1-3, 10-12, 20") into sorted integers."""

import logging
import re
from typing import Any, Iterable, Optional

logger = logging.getLogger(__name__)

MAX_LINE_RANGE = 1_000
MAX_TOTAL_LINE_IDS = 10_000

_SEPARATOR_RE = re.compile(r"[,;]")
_RANGE_RE = re.compile(r"^(\d{1,9})\s*[-–—]\s*(\d{1,9})$")
_NUMBER_RE = re.compile(r"^\d{1,9}$")


class RangeTooLargeError(ValueError):
    """A line range expands past the configured cap."""


# ── Public API ───────────────────────────────────────────────────────


def parse_line_ids(
    value: Any,
    max_range: int = MAX_LINE_RANGE,
    max_total: int = MAX_TOTAL_LINE_IDS,
) -> Optional[tuple[int, ...]]:
    """Return a strictly ascending, deduplicated tuple of line ids, or None.

    ``value`` may be a string (``"1-3, 10"``) or a list of ints / numeric
    strings. Raises RangeTooLargeError when a single range spans more than
    ``max_range`` lines or the whole value expands past ``max_total``.
    """
    if value is None:
        return None

    spans = []
    for start, end in _collect_spans(value):
        size = end - start + 1
        if size > max_range:
            raise RangeTooLargeError(
                f"line range {start}-{end} expands to {size} ids (cap {max_range})"
            )
        spans.append((start, end))
    if not spans:
        return None

    merged = _merge_spans(spans)
    total = sum(end - start + 1 for start, end in merged)
    if total > max_total:
        raise RangeTooLargeError(
            f"line_ids expand to {total} ids (cap {max_total})"
        )

    ids: list[int] = []
    for start, end in merged:
        ids.extend(range(start, end + 1))
    return tuple(ids)


# ── Helpers ──────────────────────────────────────────────────────────


def _merge_spans(spans: list[tuple[int, int]]) -> list[tuple[int, int]]:
    """Sort spans and join the ones that overlap or touch."""
    spans.sort()
    merged = [spans[0]]
    for start, end in spans[1:]:
        last_start, last_end = merged[-1]
        if start <= last_end + 1:
            merged[-1] = (last_start, max(last_end, end))
        else:
            merged.append((start, end))
    return merged


def _collect_spans(value: Any) -> Iterable[tuple[int, int]]:
    """Yield inclusive (start, end) spans; single ids are (n, n)."""
    if isinstance(value, bool):
        return
    if isinstance(value, int):
        if value >= 0:
            yield value, value
        return
    if isinstance(value, float):
        if value.is_integer() and value >= 0:
            yield int(value), int(value)
        return
    if isinstance(value, str):
        yield from _spans_from_text(value)
        return
    if isinstance(value, (list, tuple)):
        for item in value:
            # one level only: nested lists are not a line-id shape
            if isinstance(item, (list, tuple, dict)):
                continue
            yield from _collect_spans(item)
        return
    logger.debug("Ignoring line_ids of unsupported type %s", type(value).__name__)


def _spans_from_text(text: str) -> Iterable[tuple[int, int]]:
    text = text.strip().strip("[]")
    for token in _SEPARATOR_RE.split(text):
        token = token.strip()
        if not token:
            continue
        m = _RANGE_RE.match(token)
        if m:
            a, b = int(m.group(1)), int(m.group(2))
            yield (a, b) if a <= b else (b, a)
            continue
        for piece in token.split():
            if _NUMBER_RE.match(piece):
                n = int(piece)
                yield n, n
