"""Map raw verification status tokens to semantic citation flags."""

import logging
from typing import Literal, Optional, Union

from citeguard.verification.models import CitationStatus, Verification

logger = logging.getLogger(__name__)

StatusKey = Literal["verified", "partial", "miss", "pending"]

# ── Status Taxonomy ──────────────────────────────────────────────────

VERIFIED_STATUSES = frozenset({"found", "found_phrase_missed_anchor_text"})

PARTIAL_STATUSES = frozenset(
    {
        "found_anchor_text_only",
        "found_on_other_page",
        "found_on_other_line",
        "partial_text_found",
        "first_word_found",
    }
)

MISS_STATUSES = frozenset({"not_found"})

PENDING_STATUSES = frozenset({"pending", "loading"})

SKIPPED_STATUSES = frozenset({"skipped"})

_PENDING = CitationStatus(is_pending=True)
_VERIFIED = CitationStatus(is_verified=True)
_PARTIAL = CitationStatus(is_verified=True, is_partial_match=True)
_MISS = CitationStatus(is_miss=True)
_NEUTRAL = CitationStatus()


# ── Classification ───────────────────────────────────────────────────


def classify_status(status: Optional[str]) -> CitationStatus:
    """Flags for a raw status token; None (or empty) means pending."""
    if not status:
        return _PENDING
    if status in PARTIAL_STATUSES:
        return _PARTIAL
    if status in VERIFIED_STATUSES:
        return _VERIFIED
    if status in MISS_STATUSES:
        return _MISS
    if status in PENDING_STATUSES:
        return _PENDING
    if status not in SKIPPED_STATUSES:
        logger.debug("Unknown verification status %r", status)
    return _NEUTRAL


def get_citation_status(
    verification: Union[Verification, str, None],
) -> CitationStatus:
    """Flags for a Verification, a raw status token, or nothing at all."""
    if isinstance(verification, Verification):
        return classify_status(verification.status)
    return classify_status(verification)


def resolve_status_key(status: CitationStatus) -> StatusKey:
    """Single display tier; partial is checked before verified."""
    if status.is_pending:
        return "pending"
    if status.is_partial_match:
        return "partial"
    if status.is_miss:
        return "miss"
    if status.is_verified:
        return "verified"
    return "pending"
