"""Tests for line-id range expansion."""

import time

import pytest

from citeguard.parsing.line_ranges import RangeTooLargeError, parse_line_ids


def _ascending(ids):
    return all(a < b for a, b in zip(ids, ids[1:]))


# ── Ranges & Lists ───────────────────────────────────────────────────


def test_mixed_ranges_and_singles():
    assert parse_line_ids("1-3, 10-12, 20") == (1, 2, 3, 10, 11, 12, 20)


def test_unsorted_singles_are_sorted():
    assert parse_line_ids("50, 30, 10, 40, 20") == (10, 20, 30, 40, 50)


def test_overlapping_ranges_deduplicated():
    ids = parse_line_ids("1-5, 3-7, 5")
    assert ids == (1, 2, 3, 4, 5, 6, 7)
    assert _ascending(ids)


def test_reversed_range():
    assert parse_line_ids("12-10") == (10, 11, 12)


def test_list_of_ints():
    assert parse_line_ids([5, 3, 3, 1]) == (1, 3, 5)


def test_list_with_range_strings():
    assert parse_line_ids(["2-4", 1]) == (1, 2, 3, 4)


def test_bracketed_string():
    assert parse_line_ids("[7, 8, 9]") == (7, 8, 9)


def test_booleans_and_negatives_ignored():
    assert parse_line_ids([True, -4, 2]) == (2,)


# ── Empty / Unusable ─────────────────────────────────────────────────


@pytest.mark.parametrize("value", [None, "", "abc", [], {"a": 1}])
def test_unusable_values_give_none(value):
    assert parse_line_ids(value) is None


# ── Caps ─────────────────────────────────────────────────────────────


def test_range_at_cap_allowed():
    ids = parse_line_ids("1-1000", max_range=1000)
    assert len(ids) == 1000
    assert ids[0] == 1 and ids[-1] == 1000


def test_range_over_cap_rejected():
    with pytest.raises(RangeTooLargeError):
        parse_line_ids("1-1001", max_range=1000)


def test_huge_range_rejected_quickly():
    t = time.perf_counter()
    with pytest.raises(RangeTooLargeError):
        parse_line_ids("1-100000", max_range=1000)
    assert time.perf_counter() - t < 0.5


def test_total_cap_rejected():
    with pytest.raises(RangeTooLargeError):
        parse_line_ids("1-10, 20-30", max_range=20, max_total=15)


def test_total_cap_counts_union_not_raw_sum():
    ids = parse_line_ids(", ".join(["1-1000"] * 11), max_range=1000, max_total=10_000)
    assert ids == tuple(range(1, 1001))


def test_overlapping_ranges_under_total_cap():
    ids = parse_line_ids("1-8, 4-12, 10-15", max_range=20, max_total=15)
    assert ids == tuple(range(1, 16))


def test_adjacent_ranges_merged():
    assert parse_line_ids("4-6, 1-3, 7") == (1, 2, 3, 4, 5, 6, 7)


def test_range_too_large_is_value_error():
    assert issubclass(RangeTooLargeError, ValueError)


# ── Ordering Property ────────────────────────────────────────────────


@pytest.mark.parametrize(
    "value",
    ["9, 1, 5-7, 3", "100-98, 1", [4, "2-3", 4, 1], "1,1,1,1"],
)
def test_output_strictly_ascending(value):
    ids = parse_line_ids(value)
    assert _ascending(ids)
    assert len(set(ids)) == len(ids)
