"""Single entry point: generator output in, keyed citation map out."""

import logging
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

from citeguard.core.config import DEFAULT_CONFIG, ExtractionConfig
from citeguard.parsing.deferred import has_deferred_citations, parse_deferred_response
from citeguard.parsing.models import Citation, ExtractionIssue, RawFragment
from citeguard.parsing.normalizer import normalize_fragment
from citeguard.parsing.tag_scanner import scan_cite_tags
from citeguard.verification.keys import generate_citation_key

logger = logging.getLogger(__name__)


# ── Result Model ─────────────────────────────────────────────────────


class ExtractionResult(BaseModel):
    """Everything one extraction call produces."""

    visible_text: str
    wire_format: Literal["inline", "deferred", "none"]
    citations: dict[str, Citation] = Field(default_factory=dict)
    issues: list[ExtractionIssue] = Field(default_factory=list)
    stats: dict = Field(default_factory=dict)

    @property
    def citations_by_number(self) -> dict[int, Citation]:
        """Citations keyed by ``[N]`` marker number; the first citation with a number wins."""
        by_number: dict[int, Citation] = {}
        for citation in self.citations.values():
            if citation.citation_number is not None:
                by_number.setdefault(citation.citation_number, citation)
        return by_number


# ── Public API ───────────────────────────────────────────────────────


def extract_citations(
    text: Any,
    config: Optional[ExtractionConfig] = None,
) -> ExtractionResult:
    """Extract every citation from raw generator output.

    The deferred block is used exclusively when its start marker is present;
    otherwise the text is scanned for inline cite tags. Malformed input never
    raises: bad fragments are dropped and listed in ``issues``.
    """
    config = config or DEFAULT_CONFIG

    if not isinstance(text, str):
        logger.warning("Expected text, got %s; nothing to extract", type(text).__name__)
        return ExtractionResult(visible_text="", wire_format="none", stats=_stats(0, 0, 0, 0))

    fragments: list[RawFragment]
    issues: list[ExtractionIssue]
    if has_deferred_citations(text, config.data_start_marker):
        block = parse_deferred_response(text, config)
        visible_text = block.visible_text
        fragments = block.fragments
        issues = list(block.issues)
        wire_format = "deferred"
    else:
        scan = scan_cite_tags(text, config.max_input_length)
        visible_text = text.strip()
        fragments = scan.fragments
        issues = list(scan.issues)
        malformed = any(issue.kind == "malformed_fragment" for issue in issues)
        wire_format = "inline" if fragments or malformed else "none"

    citations, dropped, duplicates = _build_citation_map(fragments, config, issues)

    result = ExtractionResult(
        visible_text=visible_text,
        wire_format=wire_format,
        citations=citations,
        issues=issues,
        stats=_stats(len(fragments), len(citations), dropped, duplicates),
    )
    logger.info(
        "Extraction complete: %d citations from %d fragments (%s, %d dropped, %d issues)",
        len(citations),
        len(fragments),
        wire_format,
        dropped,
        len(issues),
    )
    return result


def get_all_citations(
    text: Any,
    config: Optional[ExtractionConfig] = None,
) -> dict[str, Citation]:
    """Citation map only, keyed by citation key."""
    return extract_citations(text, config).citations


# ── Helpers ──────────────────────────────────────────────────────────


def _build_citation_map(
    fragments: list[RawFragment],
    config: ExtractionConfig,
    issues: list[ExtractionIssue],
) -> tuple[dict[str, Citation], int, int]:
    """Normalize and key each fragment; a later duplicate replaces an earlier one."""
    citations: dict[str, Citation] = {}
    dropped = 0
    duplicates = 0

    for fragment in fragments:
        normalized = normalize_fragment(fragment, config)
        issues.extend(normalized.issues)
        if normalized.citation is None:
            dropped += 1
            continue

        key = generate_citation_key(normalized.citation, config.key_length)
        if key in citations:
            duplicates += 1
            logger.debug("Duplicate citation key %s (fragment %d)", key, fragment.ordinal)
        citations[key] = normalized.citation

    return citations, dropped, duplicates


def _stats(fragments: int, citations: int, dropped: int, duplicates: int) -> dict:
    return {
        "fragments_found": fragments,
        "citations_total": citations,
        "fragments_dropped": dropped,
        "duplicate_keys": duplicates,
    }
