"""Tests for citation key generation."""

import re

import pytest

from citeguard.parsing.models import Citation, Timestamps
from citeguard.verification.keys import citation_identity, generate_citation_key


# ── Factories ────────────────────────────────────────────────────────


def _cite(**kw):
    base = {
        "attachment_id": "att-1",
        "full_phrase": "Revenue grew 45% year over year",
        "key_span": "45%",
        "page_number": 2,
        "start_page_key": "page_number_2_index_1",
        "line_ids": (12, 13),
    }
    base.update(kw)
    return Citation(**base)


# ── Determinism ──────────────────────────────────────────────────────


def test_identical_citations_same_key():
    assert generate_citation_key(_cite()) == generate_citation_key(_cite())


def test_key_is_fixed_length_hex():
    key = generate_citation_key(_cite())
    assert len(key) == 16
    assert re.fullmatch(r"[0-9a-f]{16}", key)


def test_key_length_parameter():
    assert len(generate_citation_key(_cite(), length=32)) == 32


def test_longer_key_extends_shorter():
    assert generate_citation_key(_cite(), length=32).startswith(generate_citation_key(_cite()))


# ── Identity Fields ──────────────────────────────────────────────────


@pytest.mark.parametrize(
    "change",
    [
        {"attachment_id": "att-2"},
        {"url": "https://example.com/report"},
        {"full_phrase": "Revenue grew 46% year over year"},
        {"key_span": "year over year"},
        {"page_number": 3},
        {"start_page_key": "page_number_2_index_2"},
        {"line_ids": (12, 14)},
        {"line_ids": None},
        {"timestamps": Timestamps(start_time="00:00:01.000")},
    ],
)
def test_identity_change_changes_key(change):
    assert generate_citation_key(_cite(**change)) != generate_citation_key(_cite())


@pytest.mark.parametrize(
    "change",
    [{"reasoning": "states growth"}, {"citation_number": 9}],
)
def test_non_identity_change_keeps_key(change):
    assert generate_citation_key(_cite(**change)) == generate_citation_key(_cite())


def test_distinct_phrases_distinct_keys():
    keys = {generate_citation_key(_cite(full_phrase=f"phrase {i}")) for i in range(5000)}
    assert len(keys) == 5000


def test_identity_excludes_reasoning_and_number():
    identity = citation_identity(_cite(reasoning="r", citation_number=1))
    assert "reasoning" not in identity
    assert "citation_number" not in identity
    assert identity["line_ids"] == [12, 13]
