"""Read page/sub-index pairs out of page-key tokens."""

import re
from typing import Any, Optional

# page_number_3_index_0, pageNumber_3_index_0, page_3_index_0
_PAGE_KEY_RE = re.compile(r"page[_a-z]{0,16}?(\d{1,9})_index_(\d{1,9})", re.IGNORECASE)


def parse_page_key(token: Any) -> Optional[tuple[int, int]]:
    """Return ``(page_number, index)`` from a page-key token, or None."""
    if not isinstance(token, str) or not token:
        return None
    cleaned = token.replace("\\", "")
    m = _PAGE_KEY_RE.search(cleaned)
    if not m:
        return None
    return int(m.group(1)), int(m.group(2))


def format_page_key(page_number: int, index: int) -> str:
    """Canonical page-key token."""
    return f"page_number_{page_number}_index_{index}"
