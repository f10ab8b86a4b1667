"""Canonicalize raw fragments from either wire format into Citation objects."""

import logging
import re
from typing import Any, Optional

from pydantic import BaseModel, Field, ValidationError

from citeguard.core.config import DEFAULT_CONFIG, ExtractionConfig
from citeguard.parsing.line_ranges import RangeTooLargeError, parse_line_ids
from citeguard.parsing.models import Citation, ExtractionIssue, RawFragment, Timestamps
from citeguard.parsing.page_keys import format_page_key, parse_page_key

logger = logging.getLogger(__name__)


# ── Field Allow-List ─────────────────────────────────────────────────

# Canonical spelling (lowercase, separators removed) -> field name.
# Nothing outside this table is ever copied into a Citation.
FIELD_ALIASES: dict[str, str] = {
    "attachmentid": "attachment_id",
    "fileid": "attachment_id",
    "url": "url",
    "sourceurl": "url",
    "fullphrase": "full_phrase",
    "keyspan": "key_span",
    "anchortext": "key_span",
    "pagekey": "page_key",
    "startpagekey": "page_key",
    "pageid": "page_key",
    "pagenumber": "page_number",
    "lineids": "line_ids",
    "timestamps": "timestamps",
    "starttime": "start_time",
    "endtime": "end_time",
    "citationnumber": "citation_number",
    "id": "citation_number",
    "marker": "citation_number",
    "reasoning": "reasoning",
}

RESERVED_NAMES = frozenset({"__proto__", "constructor", "prototype"})

_SEPARATOR_RE = re.compile(r"[^a-z0-9]")
_INT_RE = re.compile(r"^\s*\[?\s*(\d{1,9})\s*\]?\s*$")
_TIME_RANGE_RE = re.compile(r"^\s*([^\s-][^-]{0,31}?)\s*-\s*([^\s-][^-]{0,31}?)\s*$")


# ── Result Model ─────────────────────────────────────────────────────


class NormalizedFragment(BaseModel):
    """A normalized citation (or None when dropped) and what went wrong."""

    citation: Optional[Citation] = None
    issues: list[ExtractionIssue] = Field(default_factory=list)


# ── Public API ───────────────────────────────────────────────────────


def canonical_field_name(name: str) -> Optional[str]:
    """Map any spelling of a known field name to its canonical name."""
    return FIELD_ALIASES.get(_SEPARATOR_RE.sub("", name.lower()))


def is_reserved_name(name: str) -> bool:
    """Names that clash with structural keys of a host mapping."""
    stripped = name.strip()
    return stripped in RESERVED_NAMES or (stripped.startswith("__") and stripped.endswith("__"))


def normalize_fragment(
    fragment: RawFragment,
    config: ExtractionConfig = DEFAULT_CONFIG,
) -> NormalizedFragment:
    """Resolve aliases, interpret locations, and build a Citation.

    Fragments without a full phrase are dropped. Over-cap line ranges drop
    only ``line_ids``. Reserved field names are dropped and reported.
    """
    result = NormalizedFragment()
    fields = _select_fields(fragment.fields, result)

    citation_number = _as_int(fields.get("citation_number"))
    if citation_number is None:
        citation_number = fragment.ordinal

    full_phrase = _as_text(fields.get("full_phrase"))
    if full_phrase is None:
        result.issues.append(
            ExtractionIssue(
                kind="missing_required_field",
                detail="fragment has no full_phrase",
                citation_number=citation_number,
            )
        )
        return result

    page_number, start_page_key = _resolve_page(fields)

    line_ids = None
    try:
        line_ids = parse_line_ids(
            fields.get("line_ids"),
            max_range=config.max_line_range,
            max_total=config.max_total_line_ids,
        )
    except RangeTooLargeError as exc:
        logger.warning("Citation %s: dropping line_ids (%s)", citation_number, exc)
        result.issues.append(
            ExtractionIssue(kind="range_too_large", detail=str(exc), citation_number=citation_number)
        )

    try:
        result.citation = Citation(
            attachment_id=_as_text(fields.get("attachment_id")),
            url=_as_text(fields.get("url")),
            full_phrase=full_phrase,
            key_span=_as_text(fields.get("key_span")),
            page_number=page_number,
            start_page_key=start_page_key,
            timestamps=_resolve_timestamps(fields),
            line_ids=line_ids,
            citation_number=citation_number,
            reasoning=_as_text(fields.get("reasoning")),
        )
    except ValidationError as exc:
        result.issues.append(
            ExtractionIssue(
                kind="malformed_fragment",
                detail=f"citation failed validation: {exc.error_count()} errors",
                citation_number=citation_number,
            )
        )
    return result


# ── Helpers ──────────────────────────────────────────────────────────


def _select_fields(raw: dict[str, Any], result: NormalizedFragment) -> dict[str, Any]:
    """Copy allow-listed fields; the first spelling seen of a field wins."""
    fields: dict[str, Any] = {}
    for name, value in raw.items():
        if not isinstance(name, str):
            continue
        if is_reserved_name(name):
            logger.warning("Dropping reserved field name %r", name)
            result.issues.append(
                ExtractionIssue(kind="unsafe_field_name", detail=f"dropped field {name!r}")
            )
            continue
        canonical = canonical_field_name(name)
        if canonical is None:
            logger.debug("Ignoring unknown citation field %r", name)
            continue
        if canonical not in fields and value is not None:
            fields[canonical] = value
    return fields


def _resolve_page(fields: dict[str, Any]) -> tuple[Optional[int], Optional[str]]:
    parsed = parse_page_key(fields.get("page_key"))
    if parsed is not None:
        page_number, index = parsed
        return page_number, format_page_key(page_number, index)
    return _as_int(fields.get("page_number")), None


def _resolve_timestamps(fields: dict[str, Any]) -> Optional[Timestamps]:
    start: Optional[str] = None
    end: Optional[str] = None

    raw = fields.get("timestamps")
    if isinstance(raw, dict):
        for name, value in raw.items():
            if not isinstance(name, str):
                continue
            canonical = canonical_field_name(name)
            if canonical == "start_time" and start is None:
                start = _as_text(value)
            elif canonical == "end_time" and end is None:
                end = _as_text(value)
    elif isinstance(raw, str):
        m = _TIME_RANGE_RE.match(raw)
        if m:
            start, end = m.group(1), m.group(2)
        elif raw.strip():
            start = raw.strip()

    if start is None:
        start = _as_text(fields.get("start_time"))
    if end is None:
        end = _as_text(fields.get("end_time"))

    if start is None and end is None:
        return None
    return Timestamps(start_time=start, end_time=end)


def _as_text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list, bool)):
        return None
    if isinstance(value, str):
        return value if value.strip() else None
    if isinstance(value, (int, float)):
        return str(value)
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        m = _INT_RE.match(value)
        if m:
            return int(m.group(1))
    return None
