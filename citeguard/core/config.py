"""Extraction config: YAML loader, Pydantic model, and config hashing."""

import hashlib
import json
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, model_validator

DATA_START_MARKER = "<<<CITATION_DATA>>>"
DATA_END_MARKER = "<<<END_CITATION_DATA>>>"


# ── Extraction Config ────────────────────────────────────────────────


class ExtractionConfig(BaseModel):
    """Limits and markers used by a single extraction call."""

    model_config = ConfigDict(frozen=True)

    max_input_length: int = Field(
        default=100_000, ge=1, description="Characters scanned for inline tags"
    )
    max_line_range: int = Field(
        default=1_000, ge=1, description="Largest expansion of a single 'a-b' range"
    )
    max_total_line_ids: int = Field(
        default=10_000, ge=1, description="Largest expansion of one line_ids value"
    )
    key_length: int = Field(default=16, ge=8, le=64)
    data_start_marker: str = Field(default=DATA_START_MARKER, min_length=1)
    data_end_marker: str = Field(default=DATA_END_MARKER, min_length=1)

    @model_validator(mode="after")
    def range_within_total(self) -> "ExtractionConfig":
        if self.max_line_range > self.max_total_line_ids:
            raise ValueError(
                f"max_line_range ({self.max_line_range}) must be <= "
                f"max_total_line_ids ({self.max_total_line_ids})"
            )
        if self.data_start_marker == self.data_end_marker:
            raise ValueError("data_start_marker and data_end_marker must differ")
        return self

    def config_hash(self) -> str:
        """SHA-256 of the config (canonical JSON)."""
        blob = json.dumps(self.model_dump(), sort_keys=True, default=str).encode()
        return hashlib.sha256(blob).hexdigest()


DEFAULT_CONFIG = ExtractionConfig()


# ── Loading ──────────────────────────────────────────────────────────


def load_extraction_config(path: str | Path) -> ExtractionConfig:
    """Load a YAML extraction config from disk and return a validated model."""
    path = Path(path)
    with open(path) as f:
        raw = yaml.safe_load(f) or {}
    return ExtractionConfig.model_validate(raw)
