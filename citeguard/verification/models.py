"""Shared data models for verification results."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from citeguard.parsing.models import Timestamps


class Verification(BaseModel):
    """An externally produced verdict for one citation, joined by citation key."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    attachment_id: Optional[str] = None
    label: Optional[str] = None
    citation: Optional[dict[str, Any]] = None
    status: Optional[str] = None
    verified_page_number: Optional[int] = None
    verified_line_ids: Optional[list[int]] = None
    verified_timestamps: Optional[Timestamps] = None
    verified_full_phrase: Optional[str] = None
    verified_key_span: Optional[str] = None
    verified_match_snippet: Optional[str] = None
    verification_image_base64: Optional[str] = None
    verified_at: Optional[datetime] = None


class CitationStatus(BaseModel):
    """Semantic flags derived from a raw verification status."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    is_verified: bool = False
    is_partial_match: bool = False
    is_miss: bool = False
    is_pending: bool = False
