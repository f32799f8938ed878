"""
Header normalization.

Maps free-form input headers ("Menu Item Name", "item_id", "Description (AR)",
"Brand Name[ar-ae]") onto canonical field names. Unknown headers are kept as
they are so no input column is ever lost.
"""

from __future__ import annotations

import re
from typing import Any, Iterable, Mapping

from menu_studio.schema import HEADER_ALIASES, arabic_companion

LANG_SUFFIX_RE = re.compile(
    r"^(?P<base>.*?)\s*(?:\((?P<paren>en|ar|ar-ae)\)|\[(?P<bracket>en|ar|ar-ae)\])$",
    re.IGNORECASE,
)


def _match_key(header: str) -> str:
    return " ".join(header.strip().lower().split())


def normalize_header(header: Any) -> str:
    raw = "" if header is None else str(header)
    key = _match_key(raw)

    suffix = LANG_SUFFIX_RE.match(raw.strip())
    if suffix and suffix.group("base").strip():
        lang = (suffix.group("paren") or suffix.group("bracket")).lower()
        raw_base = suffix.group("base").strip()
        base = HEADER_ALIASES.get(_match_key(raw_base), raw_base)
        if lang.startswith("ar"):
            return arabic_companion(base)
        return base

    return HEADER_ALIASES.get(key, raw)


def normalize_headers(headers: Iterable[Any]) -> list[str]:
    """Canonical names for ``headers``, first occurrence order, duplicates collapsed."""
    seen: dict[str, None] = {}
    for header in headers:
        seen.setdefault(normalize_header(header), None)
    return list(seen)


def normalize_row(row: Mapping[Any, Any]) -> dict[str, Any]:
    normalized: dict[str, Any] = {}
    for key, value in row.items():
        # Last write wins when two headers resolve to the same field.
        normalized[normalize_header(key)] = value
    return normalized
