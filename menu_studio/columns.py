"""
Column order synthesis.

Two passes: first compute one column list for the whole dataset, then project
every record onto it. Base columns keep first-seen order and each is followed
by its ``<Field>Arabic`` companion when the dataset has one. Companions without
a base, ``Price[XXX]`` columns and ``ImageSource`` go last, in first-seen order.
"""

from __future__ import annotations

from typing import Any, Iterable, Sequence

from menu_studio.schema import (
    IMAGE_SOURCE,
    PRICE_COLUMN_RE,
    MenuRecord,
    arabic_companion,
    companion_base,
    is_arabic_companion,
    is_blank,
)


def is_derived_column(column: str) -> bool:
    return column == IMAGE_SOURCE or PRICE_COLUMN_RE.match(column) is not None


def ordered_union(records: Iterable[MenuRecord], seed: Sequence[str] = ()) -> list[str]:
    """Every column in ``seed`` then in ``records``, first occurrence wins."""
    seen: dict[str, None] = dict.fromkeys(seed)
    for record in records:
        for column in record.columns():
            seen.setdefault(column, None)
    return list(seen)


def synthesize_columns(
    records: Sequence[MenuRecord],
    seed: Sequence[str] = (),
    populated_only: bool = False,
) -> list[str]:
    """
    The output column order for ``records``.

    With ``populated_only`` an Arabic companion is kept only when at least one
    record has a value in it. Running this on already ordered records returns
    the same order.
    """
    union = ordered_union(records, seed)
    present = set(union)
    if populated_only:
        populated = {column for record in records for column in record.columns() if not is_blank(record.get(column))}
        present = {
            column for column in present
            if not is_arabic_companion(column) or column in populated
        }

    ordered: list[str] = []
    tail: list[str] = []
    for column in union:
        if column not in present:
            continue
        if is_arabic_companion(column):
            if companion_base(column) in present:
                continue
            tail.append(column)
            continue
        if is_derived_column(column):
            tail.append(column)
            continue
        ordered.append(column)
        companion = arabic_companion(column)
        if companion in present:
            ordered.append(companion)
    return ordered + tail


def _cell(value: Any) -> Any:
    return "" if is_blank(value) and not isinstance(value, str) else value


def reindex(records: Iterable[MenuRecord], columns: Sequence[str]) -> None:
    """Project every record onto ``columns``; missing cells become ``""``."""
    for record in records:
        record.data = {column: _cell(record.data.get(column)) for column in columns}


def order_records(
    records: Sequence[MenuRecord],
    seed: Sequence[str] = (),
    populated_only: bool = False,
) -> list[str]:
    columns = synthesize_columns(records, seed, populated_only)
    reindex(records, columns)
    return columns
