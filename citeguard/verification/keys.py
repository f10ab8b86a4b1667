"""Deterministic citation keys used to join citations with their verifications."""

import hashlib
import json

from citeguard.parsing.models import Citation

KEY_LENGTH = 16

# Fields that decide whether two citations are the same claim-to-source pair.
IDENTITY_FIELDS = (
    "attachment_id",
    "url",
    "full_phrase",
    "key_span",
    "page_number",
    "start_page_key",
    "line_ids",
    "timestamps",
)


def citation_identity(citation: Citation) -> dict:
    """Identity-bearing fields of a citation as plain JSON-compatible values."""
    data = citation.model_dump(include=set(IDENTITY_FIELDS))
    if data.get("line_ids") is not None:
        data["line_ids"] = list(data["line_ids"])
    return data


def generate_citation_key(citation: Citation, length: int = KEY_LENGTH) -> str:
    """SHA-256 of the canonical identity JSON, truncated to ``length`` hex chars."""
    blob = json.dumps(
        citation_identity(citation),
        sort_keys=True,
        ensure_ascii=False,
        separators=(",", ":"),
    ).encode("utf-8")
    return hashlib.sha256(blob).hexdigest()[:length]
