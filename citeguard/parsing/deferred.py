"""Split & parse the deferred citation block that trails generator output.

Responses in the deferred format carry ``[N]`` markers in the prose and one
JSON array of citation objects after a start marker:

    The company grew 45% [1].

    <<<CITATION_DATA>>>
    [{"id": 1, "attachment_id": "abc", "full_phrase": "grew 45%", "key_span": "45%"}]
    <<<END_CITATION_DATA>>>

Everything before the start marker is the visible text. The block is parsed
strictly first, then once more after a repair pass for the usual generator
mistakes (code fences, trailing commas, truncated output).
"""

import json
import logging
import re
from typing import Any, Callable, Optional

from citeguard.core.config import DATA_END_MARKER, DATA_START_MARKER, ExtractionConfig
from citeguard.parsing.models import (
    Citation,
    DeferredBlock,
    ExtractionIssue,
    ParseAttempt,
    RawFragment,
)

logger = logging.getLogger(__name__)

_FENCE_OPEN_RE = re.compile(r"^```[A-Za-z]{0,16}[ \t]*\n?")
_MARKER_RE = re.compile(r"(?<![ \t])(?P<space>[ \t]*)\[(?P<id>\d{1,9})\]")
_MARKER_ID_RE = re.compile(r"\[(\d{1,9})\]")
_CLOSERS = {"[": "]", "{": "}"}


# ── Splitting ────────────────────────────────────────────────────────


def has_deferred_citations(text: Any, start_marker: str = DATA_START_MARKER) -> bool:
    """True when the text carries a deferred citation block."""
    return isinstance(text, str) and start_marker in text


def split_deferred_block(
    text: str,
    start_marker: str = DATA_START_MARKER,
    end_marker: str = DATA_END_MARKER,
) -> DeferredBlock:
    """Separate the visible text from the raw data block.

    Without a start marker the whole (trimmed) text is visible. Without an
    end marker the block runs to the end of the text.
    """
    start = text.find(start_marker)
    if start == -1:
        return DeferredBlock(visible_text=text.strip(), has_block=False)

    data_start = start + len(start_marker)
    end = text.find(end_marker, data_start)
    data_end = end if end != -1 else len(text)

    return DeferredBlock(
        visible_text=text[:start].strip(),
        has_block=True,
        data_block=text[data_start:data_end].strip(),
    )


def extract_visible_text(text: Any, config: Optional[ExtractionConfig] = None) -> str:
    """Visible portion of a response, with any citation data block removed."""
    if not isinstance(text, str):
        return ""
    if config is None:
        return split_deferred_block(text).visible_text
    return split_deferred_block(
        text, config.data_start_marker, config.data_end_marker
    ).visible_text


# ── JSON Repair ──────────────────────────────────────────────────────


def repair_json(text: str) -> str:
    """Fix common generator mistakes in a JSON document.

    Strips a surrounding code fence, removes trailing commas before closing
    brackets, closes an unterminated string, and appends whatever brackets
    or braces are still open, innermost first.
    """
    repaired = _FENCE_OPEN_RE.sub("", text.strip())
    if repaired.endswith("```"):
        repaired = repaired[:-3].rstrip()

    out: list[str] = []
    stack: list[str] = []
    open_counts = {"]": 0, "}": 0}
    in_string = False
    escaped = False

    for ch in repaired:
        if in_string:
            out.append(ch)
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
            out.append(ch)
        elif ch in _CLOSERS:
            closer = _CLOSERS[ch]
            stack.append(closer)
            open_counts[closer] += 1
            out.append(ch)
        elif ch in open_counts:
            if not open_counts[ch]:
                continue  # stray closer
            _drop_trailing_comma(out)
            while stack[-1] != ch:
                inner = stack.pop()
                open_counts[inner] -= 1
                out.append(inner)
            stack.pop()
            open_counts[ch] -= 1
            out.append(ch)
        else:
            out.append(ch)

    if in_string:
        if escaped:
            out.pop()
        out.append('"')
    while stack:
        _drop_trailing_comma(out)
        out.append(stack.pop())
    _drop_trailing_comma(out)
    return "".join(out)


def _drop_trailing_comma(out: list[str]) -> None:
    i = len(out) - 1
    while i >= 0 and out[i].isspace():
        i -= 1
    if i >= 0 and out[i] == ",":
        del out[i]


# ── Parsing ──────────────────────────────────────────────────────────


def parse_data_block(data: str) -> ParseAttempt:
    """Decode a data block strictly, then after repair; never raises."""
    if not data.strip():
        return ParseAttempt(outcome="strict", value=[])

    try:
        return _as_attempt("strict", json.loads(data))
    except (ValueError, RecursionError) as exc:
        logger.debug("Strict parse of citation block failed: %s", exc)

    try:
        return _as_attempt("repaired", json.loads(repair_json(data)))
    except (ValueError, RecursionError) as exc:
        logger.warning("Citation block could not be parsed after repair: %s", exc)
        return ParseAttempt(outcome="failed", error=f"Failed to parse citation JSON: {exc}")


def _as_attempt(outcome: str, value: Any) -> ParseAttempt:
    if isinstance(value, dict):
        value = [value]
    if not isinstance(value, list):
        raise ValueError(f"expected an array or object, got {type(value).__name__}")
    return ParseAttempt(outcome=outcome, value=value)


def parse_deferred_response(text: str, config: ExtractionConfig) -> DeferredBlock:
    """Split a response and turn each recovered object into a RawFragment.

    ``visible_text`` is always set, even when the block cannot be parsed.
    """
    block = split_deferred_block(text, config.data_start_marker, config.data_end_marker)
    if not block.has_block:
        return block

    data = block.data_block or ""
    if len(data) > config.max_input_length:
        logger.warning(
            "Citation block of %d chars truncated to %d", len(data), config.max_input_length
        )
        data = data[: config.max_input_length]
        block.issues.append(
            ExtractionIssue(
                kind="input_truncated",
                detail=f"citation block truncated to {config.max_input_length} characters",
            )
        )

    attempt = parse_data_block(data)
    block.attempt = attempt
    if not attempt.ok:
        block.issues.append(
            ExtractionIssue(kind="unparsable_data_block", detail=attempt.error or "")
        )
        return block

    for item in attempt.value or []:
        if not isinstance(item, dict):
            block.issues.append(
                ExtractionIssue(
                    kind="malformed_fragment",
                    detail=f"citation entry is {type(item).__name__}, not an object",
                )
            )
            continue
        block.fragments.append(
            RawFragment(source="deferred", ordinal=len(block.fragments) + 1, fields=item)
        )

    logger.debug(
        "Citation block parsed (%s): %d fragments", attempt.outcome, len(block.fragments)
    )
    return block


# ── Markers ──────────────────────────────────────────────────────────


def get_citation_marker_ids(text: str) -> list[int]:
    """Citation numbers of the ``[N]`` markers in order of appearance."""
    return [int(m.group(1)) for m in _MARKER_ID_RE.finditer(text)]


def replace_citation_markers(
    text: str,
    citations_by_number: Optional[dict[int, Citation]] = None,
    show_key_span: bool = False,
    replacer: Optional[Callable[[int, Optional[Citation]], str]] = None,
) -> str:
    """Replace ``[N]`` markers in text.

    A custom ``replacer`` wins; otherwise the citation's key span is shown
    when ``show_key_span`` is set, and the marker is removed in every other
    case (together with the spaces in front of it).
    """
    citations_by_number = citations_by_number or {}

    def _sub(m: re.Match) -> str:
        number = int(m.group("id"))
        citation = citations_by_number.get(number)
        if replacer is not None:
            replacement = replacer(number, citation)
        elif show_key_span and citation is not None and citation.key_span:
            replacement = citation.key_span
        else:
            replacement = ""
        return m.group("space") + replacement if replacement else ""

    return _MARKER_RE.sub(_sub, text)
