"""Tests for inline cite tag scanning."""

import time

from citeguard.parsing.tag_scanner import scan_cite_tags


def _fields(text, **kw):
    return [f.fields for f in scan_cite_tags(text, **kw).fragments]


# ── Self-Closing & Paired ────────────────────────────────────────────


def test_two_self_closing_tags():
    text = (
        "Revenue grew <cite attachment_id='a1' full_phrase='grew 45%' key_span='first' /> "
        "and margins held <cite attachment_id='a1' full_phrase='margins held' key_span='second' />."
    )
    fields = _fields(text)
    assert len(fields) == 2
    assert {f["key_span"] for f in fields} == {"first", "second"}


def test_paired_tag_content_discarded():
    text = "<cite full_phrase='the phrase' key_span='phrase'>visible words</cite>"
    fields = _fields(text)
    assert fields == [{"full_phrase": "the phrase", "key_span": "phrase"}]


def test_ordinals_follow_appearance():
    text = "<cite full_phrase='a' /><cite full_phrase='b' /><cite full_phrase='c' />"
    result = scan_cite_tags(text)
    assert [f.ordinal for f in result.fragments] == [1, 2, 3]
    assert all(f.source == "inline" for f in result.fragments)


def test_attribute_order_is_free():
    a = _fields("<cite key_span='k' full_phrase='p' attachment_id='x' />")[0]
    b = _fields("<cite attachment_id='x' full_phrase='p' key_span='k' />")[0]
    assert a == b


def test_double_quoted_values():
    fields = _fields('<cite full_phrase="the firm\'s revenue" key_span="revenue" />')
    assert fields[0]["full_phrase"] == "the firm's revenue"


# ── Escaping ─────────────────────────────────────────────────────────


def test_escaped_quote_in_value():
    fields = _fields(r"<cite full_phrase='it\'s growing' key_span='growing' />")
    assert fields[0]["full_phrase"] == "it's growing"


def test_value_ending_in_escaped_backslash():
    fields = _fields(r"<cite full_phrase='C:\\' key_span='k' />")
    assert fields[0]["full_phrase"] == "C:\\\\"
    assert fields[0]["key_span"] == "k"


def test_escaped_attribute_names():
    fields = _fields(r"<cite full\_phrase='abc' key\_span='a' />")
    assert fields[0] == {"full_phrase": "abc", "key_span": "a"}


def test_multiline_value():
    fields = _fields("<cite full_phrase='line one\nline two' />")
    assert fields[0]["full_phrase"] == "line one\nline two"


def test_entities_decoded():
    fields = _fields("<cite full_phrase='x &lt; y' />")
    assert fields[0]["full_phrase"] == "x < y"


def test_gt_inside_value_does_not_end_tag():
    fields = _fields("<cite full_phrase='a > b' key_span='b' />")
    assert fields[0] == {"full_phrase": "a > b", "key_span": "b"}


# ── Malformed Fragments ──────────────────────────────────────────────


def test_unterminated_value_skipped_and_scan_continues():
    text = '<cite full_phrase="never closed /> then <cite full_phrase=\'ok\' />'
    result = scan_cite_tags(text)
    assert [f.fields["full_phrase"] for f in result.fragments] == ["ok"]
    assert [i.kind for i in result.issues] == ["malformed_fragment"]


def test_paired_tag_without_close_skipped():
    result = scan_cite_tags("<cite full_phrase='a'> dangling text")
    assert result.fragments == []
    assert result.issues[0].kind == "malformed_fragment"


def test_unquoted_value_skipped():
    result = scan_cite_tags("<cite full_phrase=unquoted />")
    assert result.fragments == []
    assert len(result.issues) == 1


def test_too_many_attributes_skipped():
    attrs = " ".join(f"a{i}='x'" for i in range(40))
    result = scan_cite_tags(f"<cite full_phrase='p' {attrs} />")
    assert result.fragments == []


def test_similar_tag_names_ignored():
    result = scan_cite_tags("<citation full_phrase='x' /> <cited>")
    assert result.fragments == []
    assert result.issues == []


def test_no_tags():
    result = scan_cite_tags("plain text with no citations")
    assert result.fragments == []
    assert result.issues == []


def test_empty_text():
    assert scan_cite_tags("").fragments == []


# ── Input Bounding ───────────────────────────────────────────────────


def test_input_truncated_before_scan():
    text = "<cite full_phrase='a' />" + "x" * 200 + "<cite full_phrase='b' />"
    result = scan_cite_tags(text, max_length=100)
    assert [f.fields["full_phrase"] for f in result.fragments] == ["a"]
    assert result.truncated is True
    assert result.issues[0].kind == "input_truncated"


def test_adversarial_input_scans_quickly():
    chunks = [
        "<cite a='" * 5000,
        '<cite a="x\\" ' * 5000,
        "<cite full_phrase='p'>" * 5000,
    ]
    for chunk in chunks:
        t = time.perf_counter()
        scan_cite_tags(chunk)
        assert time.perf_counter() - t < 5.0


def test_many_valid_tags():
    text = "".join(f"<cite full_phrase='phrase {i}' />" for i in range(2000))
    assert len(scan_cite_tags(text, max_length=len(text)).fragments) == 2000
