"""Find inline <cite .../> and <cite ...>...</cite> fragments in generator output."""

import logging
import re
from bisect import bisect_left
from typing import Optional

from pydantic import BaseModel, Field

from citeguard.parsing.decoding import decode_attribute_value, normalize_attribute_name
from citeguard.parsing.models import ExtractionIssue, RawFragment

logger = logging.getLogger(__name__)

MAX_INPUT_LENGTH = 100_000

_MAX_ATTRIBUTES = 32
_OPEN_RE = re.compile(r"<cite(?=[\s/>])", re.IGNORECASE)
_CLOSE_RE = re.compile(r"</cite\s{0,16}>", re.IGNORECASE)
_QUOTE_RE = re.compile(r"['\"]")
_NAME_RE = re.compile(r"[A-Za-z_\\][A-Za-z0-9_\\\-]{0,63}")
_SPACE_RE = re.compile(r"\s{0,256}")
_SELF_CLOSE_RE = re.compile(r"/\s{0,16}>")


# ── Result Model ─────────────────────────────────────────────────────


class ScanResult(BaseModel):
    """Fragments recovered from inline tags plus anything that was skipped."""

    fragments: list[RawFragment] = Field(default_factory=list)
    issues: list[ExtractionIssue] = Field(default_factory=list)
    truncated: bool = False


# ── Public API ───────────────────────────────────────────────────────


def scan_cite_tags(text: str, max_length: int = MAX_INPUT_LENGTH) -> ScanResult:
    """Scan text for cite tags and return their decoded attributes.

    Text beyond ``max_length`` characters is ignored. Unterminated or
    unparsable tags are reported as ``malformed_fragment`` and skipped.
    """
    result = ScanResult()
    if not text:
        return result

    if len(text) > max_length:
        logger.warning("Input of %d chars truncated to %d before tag scan", len(text), max_length)
        text = text[:max_length]
        result.truncated = True
        result.issues.append(
            ExtractionIssue(
                kind="input_truncated",
                detail=f"input truncated to {max_length} characters",
            )
        )

    opens = [m.start() for m in _OPEN_RE.finditer(text)]
    if not opens:
        return result
    closes = [(m.start(), m.end()) for m in _CLOSE_RE.finditer(text)]
    close_starts = [start for start, _ in closes]
    quotes = _QuoteIndex(text)

    cursor = 0
    for open_pos in opens:
        if open_pos < cursor:
            continue

        parsed = _parse_open_tag(text, open_pos + len("<cite"), quotes)
        if parsed is None:
            _skip(result, open_pos, "unterminated or unparsable tag")
            continue
        attrs, tag_end, self_closing = parsed

        if not self_closing:
            i = bisect_left(close_starts, tag_end)
            if i == len(closes):
                _skip(result, open_pos, "missing </cite>")
                continue
            close_start, close_end = closes[i]
            j = bisect_left(opens, tag_end)
            if j < len(opens) and opens[j] < close_start:
                _skip(result, open_pos, "nested <cite> before </cite>")
                continue
            tag_end = close_end

        cursor = tag_end
        result.fragments.append(
            RawFragment(source="inline", ordinal=len(result.fragments) + 1, fields=attrs)
        )

    logger.debug(
        "Tag scan: %d fragments, %d skipped", len(result.fragments), len(result.issues)
    )
    return result


# ── Tag Parsing ──────────────────────────────────────────────────────


def _parse_open_tag(
    text: str, pos: int, quotes: "_QuoteIndex"
) -> Optional[tuple[dict[str, str], int, bool]]:
    """Read attributes after ``<cite``; return (attrs, end, self_closing) or None."""
    attrs: dict[str, str] = {}

    for _ in range(_MAX_ATTRIBUTES + 1):
        pos = _SPACE_RE.match(text, pos).end()

        m = _SELF_CLOSE_RE.match(text, pos)
        if m:
            return attrs, m.end(), True
        if text.startswith(">", pos):
            return attrs, pos + 1, False

        m = _NAME_RE.match(text, pos)
        if not m:
            return None
        name = normalize_attribute_name(m.group())

        pos = _SPACE_RE.match(text, m.end()).end()
        if not text.startswith("=", pos):
            return None
        pos = _SPACE_RE.match(text, pos + 1).end()

        quote = text[pos : pos + 1]
        if quote not in ("'", '"'):
            return None
        end = quotes.closing(quote, pos + 1)
        if end == -1:
            return None

        # First occurrence of a repeated attribute wins
        if name and name not in attrs:
            attrs[name] = decode_attribute_value(text[pos + 1 : end])
        pos = end + 1

    return None


def _skip(result: ScanResult, pos: int, reason: str) -> None:
    logger.debug("Skipping cite fragment at offset %d: %s", pos, reason)
    result.issues.append(
        ExtractionIssue(kind="malformed_fragment", detail=f"offset {pos}: {reason}")
    )


class _QuoteIndex:
    """Positions of quote characters, searchable by bisection.

    A quote closes a value when the backslashes directly before it, counted
    from the value start, are even in number.
    """

    def __init__(self, text: str):
        self._positions: dict[str, list[int]] = {"'": [], '"': []}
        self._runs: dict[str, list[int]] = {"'": [], '"': []}
        self._unescaped: dict[str, list[int]] = {"'": [], '"': []}

        for m in _QUOTE_RE.finditer(text):
            pos = m.start()
            quote = m.group()
            run = 0
            while pos - run - 1 >= 0 and text[pos - run - 1] == "\\":
                run += 1
            self._positions[quote].append(pos)
            self._runs[quote].append(run)
            if run % 2 == 0:
                self._unescaped[quote].append(pos)

    def closing(self, quote: str, start: int) -> int:
        """Index of the quote that ends a value opened just before ``start``, or -1."""
        positions = self._positions[quote]
        i = bisect_left(positions, start)
        if i == len(positions):
            return -1

        first = positions[i]
        # Only the first candidate can have its backslash run cut short by start
        local_run = min(self._runs[quote][i], first - start)
        if local_run % 2 == 0:
            return first

        unescaped = self._unescaped[quote]
        j = bisect_left(unescaped, first + 1)
        return unescaped[j] if j < len(unescaped) else -1
