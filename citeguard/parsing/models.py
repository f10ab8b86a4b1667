"""Shared data models for citation parsing."""

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

IssueKind = Literal[
    "malformed_fragment",
    "unparsable_data_block",
    "range_too_large",
    "missing_required_field",
    "unsafe_field_name",
    "input_truncated",
]


# ── Citation ─────────────────────────────────────────────────────────


class Timestamps(BaseModel):
    """Start/end offsets for an audio or video citation."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    start_time: Optional[str] = None
    end_time: Optional[str] = None


class Citation(BaseModel):
    """A single claim-to-source reference extracted from generator output.

    Serializes with camelCase aliases (``model_dump(by_alias=True)``) so the
    output matches what rendering and verification consumers read.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    attachment_id: Optional[str] = None
    url: Optional[str] = None
    full_phrase: str = Field(min_length=1)
    key_span: Optional[str] = None
    page_number: Optional[int] = None
    start_page_key: Optional[str] = None
    timestamps: Optional[Timestamps] = None
    line_ids: Optional[tuple[int, ...]] = None
    citation_number: Optional[int] = None
    reasoning: Optional[str] = None


# ── Raw Fragments ────────────────────────────────────────────────────


class RawFragment(BaseModel):
    """Named fields recovered from one inline tag or one deferred-block object."""

    source: Literal["inline", "deferred"]
    ordinal: int = Field(ge=1, description="1-based position among recovered fragments")
    fields: dict[str, Any] = Field(default_factory=dict)


class ExtractionIssue(BaseModel):
    """A recoverable problem met while extracting citations."""

    kind: IssueKind
    detail: str
    citation_number: Optional[int] = None


# ── Deferred Block ───────────────────────────────────────────────────


class ParseAttempt(BaseModel):
    """Outcome of decoding a deferred data block.

    ``value`` is only set when ``outcome`` is ``strict`` or ``repaired``.
    """

    outcome: Literal["strict", "repaired", "failed"]
    value: Optional[list[Any]] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.outcome != "failed"


class DeferredBlock(BaseModel):
    """Visible text plus the raw citation data block that followed it."""

    visible_text: str
    has_block: bool
    data_block: Optional[str] = None
    attempt: Optional[ParseAttempt] = None
    fragments: list[RawFragment] = Field(default_factory=list)
    issues: list[ExtractionIssue] = Field(default_factory=list)
