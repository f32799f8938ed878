"""
Image Resolver: normalized identity keys and lookup against an image store.

A store is any ``Mapping[str, str]`` from key (``img_<normalized>``) to an
image payload, usually a data-URI. ``DirectoryImageStore`` exposes a folder of
image files named after menu items in that shape.
"""

from __future__ import annotations

import base64
import mimetypes
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Iterator, Optional

from rapidfuzz import process
from rapidfuzz.distance import Levenshtein

KEY_PREFIX = "img_"
UNKNOWN_KEY = f"{KEY_PREFIX}unknown"
IMAGE_SUFFIXES = {".jpg", ".jpeg", ".png", ".webp", ".gif"}

MATCH_ID = "id"
MATCH_NAME = "name"
MATCH_FUZZY = "fuzzy"
MATCH_CONTAINS = "contains"

# Minimum length of the contained fragment for the containment fallback.
MIN_CONTAINED_LENGTH = 4


def image_key(text) -> str:
    """``"Crunchy BBQ-Burger!"`` -> ``"img_crunchy_bbq_burger"``."""
    if text is None or not str(text).strip():
        return UNKNOWN_KEY
    value = str(text).lower().strip()
    value = re.sub(r"[_-]", " ", value)
    value = re.sub(r"[^a-z0-9\s]", "", value)
    value = re.sub(r"\s+", "_", value.strip())
    return f"{KEY_PREFIX}{value}" if value else UNKNOWN_KEY


def sanitize_file_name(filename: str) -> str:
    """``"2._Crunchy_BBQ_Burger"`` -> ``"Crunchy BBQ Burger"``."""
    if not filename:
        return ""
    value = re.sub(r"^\d+[._-]*", "", filename)
    value = re.sub(r"[_-]", " ", value)
    value = re.sub(r"[^a-zA-Z0-9\s]", "", value)
    return re.sub(r"\s+", " ", value).strip()


def _stem(key: str) -> str:
    return key[len(KEY_PREFIX):] if key.startswith(KEY_PREFIX) else key


def _contains(haystack: str, needle: str) -> bool:
    return len(needle) >= MIN_CONTAINED_LENGTH and needle in haystack


class ImageResolver:
    def __init__(self, store: Mapping[str, str], fuzzy: bool = True, threshold: float = 0.75) -> None:
        self.store = store
        self.fuzzy = fuzzy
        self.threshold = threshold
        self._stems = {_stem(key): key for key in store if key != UNKNOWN_KEY}

    def lookup(self, item_id: str = "", name: str = "") -> Optional[tuple[str, str]]:
        """
        Return ``(key, strategy)`` for the first hit, or ``None``.

        Strategies run in order: exact id key, exact name key, fuzzy name
        similarity at or above ``threshold``, then substring containment of at
        least ``MIN_CONTAINED_LENGTH`` characters.
        """
        if item_id:
            key = image_key(item_id)
            if key != UNKNOWN_KEY and key in self.store:
                return key, MATCH_ID

        name_key = image_key(name)
        if name_key == UNKNOWN_KEY:
            return None
        if name_key in self.store:
            return name_key, MATCH_NAME

        wanted = _stem(name_key)
        if self.fuzzy and self._stems:
            best = process.extractOne(
                wanted,
                list(self._stems),
                scorer=Levenshtein.normalized_similarity,
                score_cutoff=self.threshold,
            )
            if best is not None:
                return self._stems[best[0]], MATCH_FUZZY

        for stem, key in self._stems.items():
            if _contains(stem, wanted) or _contains(wanted, stem):
                return key, MATCH_CONTAINS
        return None

    def resolve(self, item_id: str = "", name: str = "") -> Optional[str]:
        hit = self.lookup(item_id, name)
        return None if hit is None else self.store[hit[0]]


class DirectoryImageStore(Mapping):
    """Read-only store over image files; payloads are loaded on access."""

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)
        if not self.root.is_dir():
            raise ValueError(f"Image directory not found: {self.root}")
        self._paths: dict[str, Path] = {}
        for path in sorted(self.root.iterdir()):
            if not path.is_file() or path.suffix.lower() not in IMAGE_SUFFIXES:
                continue
            key = image_key(sanitize_file_name(path.stem))
            if key != UNKNOWN_KEY:
                self._paths.setdefault(key, path)

    def __getitem__(self, key: str) -> str:
        path = self._paths[key]
        mime = mimetypes.guess_type(path.name)[0] or "image/jpeg"
        encoded = base64.b64encode(path.read_bytes()).decode("ascii")
        return f"data:{mime};base64,{encoded}"

    def __iter__(self) -> Iterator[str]:
        return iter(self._paths)

    def __len__(self) -> int:
        return len(self._paths)
