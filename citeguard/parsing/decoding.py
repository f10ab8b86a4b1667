"""Decode quoted attribute values and attribute names from inline cite tags."""

import re
from html.entities import html5

_ESCAPED_QUOTE_RE = re.compile(r"\\(['\"])")
_NAME_ESCAPE_RE = re.compile(r"\\+")
_ENTITY_RE = re.compile(r"&(#[0-9]{1,7}|#[xX][0-9a-fA-F]{1,6}|[A-Za-z][A-Za-z0-9]{1,31});")


def decode_attribute_value(raw: str) -> str:
    """Unescape quotes and decode character entities in an attribute value.

    ``\\'`` and ``\\"`` become literal quotes; named and numeric entities
    (``&lt;``, ``&#39;``, ``&#x27;``) are decoded only when terminated by
    ``;``. Unknown entities, bare ``&name`` sequences, slashes, ``=`` and
    newlines are left as they are.
    """
    if not raw:
        return ""
    unescaped = _ESCAPED_QUOTE_RE.sub(r"\1", raw)
    if "&" not in unescaped:
        return unescaped
    return _ENTITY_RE.sub(_decode_entity, unescaped)


def normalize_attribute_name(name: str) -> str:
    """Strip markdown-escape backslashes from an attribute name (``full\\_phrase``)."""
    return _NAME_ESCAPE_RE.sub("", name).strip()


def _decode_entity(m: re.Match) -> str:
    body = m.group(1)
    if body.startswith("#"):
        code = int(body[2:], 16) if body[1] in "xX" else int(body[1:])
        # NUL, surrogates and out-of-range code points stay literal
        if code == 0 or 0xD800 <= code <= 0xDFFF or code > 0x10FFFF:
            return m.group()
        return chr(code)
    return html5.get(body + ";", m.group())
