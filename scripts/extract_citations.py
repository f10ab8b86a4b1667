#!/usr/bin/env python3
"""Extract citations from a saved generator response."""

import argparse
import json
import logging
import sys
from pathlib import Path

# Ensure project root is on sys.path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from citeguard.core.config import DEFAULT_CONFIG, load_extraction_config
from citeguard.pipeline.extractor import extract_citations
from citeguard.verification import attach_verifications
from citeguard.verification.models import Verification
from citeguard.verification.status import resolve_status_key

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("extract_citations")


# ── Runner ───────────────────────────────────────────────────────────


def run(
    input_path: str,
    config_path: str | None = None,
    verifications_path: str | None = None,
) -> dict:
    """Extract citations from a file and, optionally, join verifications."""
    config = load_extraction_config(config_path) if config_path else DEFAULT_CONFIG
    logger.info("Config hash: %s", config.config_hash()[:12])

    text = Path(input_path).read_text(encoding="utf-8")
    result = extract_citations(text, config)

    report = {
        "wire_format": result.wire_format,
        "visible_text": result.visible_text,
        "citations": {
            key: citation.model_dump(by_alias=True, exclude_none=True)
            for key, citation in result.citations.items()
        },
        "issues": [issue.model_dump(exclude_none=True) for issue in result.issues],
        "stats": result.stats,
    }

    if verifications_path:
        raw = json.loads(Path(verifications_path).read_text(encoding="utf-8"))
        verifications = {key: Verification.model_validate(v) for key, v in raw.items()}
        statuses = attach_verifications(result.citations, verifications)
        report["statuses"] = {
            key: {**status.model_dump(by_alias=True), "tier": resolve_status_key(status)}
            for key, status in statuses.items()
        }

    return report


# ── CLI ──────────────────────────────────────────────────────────────


def main():
    parser = argparse.ArgumentParser(description="Extract citations from generator output")
    parser.add_argument("--input", required=True, help="Path to the raw response text")
    parser.add_argument("--config", default=None, help="Path to an extraction config YAML file")
    parser.add_argument(
        "--verifications",
        default=None,
        help="Path to a JSON object of verification results keyed by citation key",
    )
    parser.add_argument("--output", default=None, help="Write JSON here instead of stdout")
    args = parser.parse_args()

    report = run(args.input, args.config, args.verifications)
    blob = json.dumps(report, indent=2, ensure_ascii=False)

    if args.output:
        Path(args.output).write_text(blob, encoding="utf-8")
        logger.info("Wrote %d citations to %s", len(report["citations"]), args.output)
    else:
        print(blob)


if __name__ == "__main__":
    main()
