from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from menu_studio.normalization import (
    apply_title_case,
    has_arabic_marker,
    split_price,
    strip_arabic_marker,
)
from menu_studio.schema import (
    ANOMALY_ID_COLLISION,
    ANOMALY_ORPHAN_TRANSLATION,
    AUTO_ID_PREFIX,
    BILINGUAL_FIELDS,
    ITEM_ID,
    NAME_FIELDS,
    TITLE_CASE_FIELDS,
    Anomaly,
    MenuRecord,
    TransformOptions,
    arabic_companion,
    is_blank,
)

ROW_PRIMARY = "primary"
ROW_CONTINUATION = "continuation"
ROW_BLANK = "blank"
ROW_SKIPPED = "skipped"


@dataclass
class ClassificationResult:
    records: list[MenuRecord] = field(default_factory=list)
    anomalies: list[Anomaly] = field(default_factory=list)
    arabic_translations_found: int = 0
    currencies: set[str] = field(default_factory=set)
    skipped_rows: int = 0


def display_row_number(index: int) -> int:
    """Spreadsheet row for the 0-based data row ``index`` (header is row 1)."""
    return index + 2


def primary_name(row: Mapping[str, Any]) -> Any:
    for name_field in NAME_FIELDS:
        value = row.get(name_field)
        if not is_blank(value):
            return value
    return ""


def classify_row(row: Mapping[str, Any]) -> str:
    if all(is_blank(value) for value in row.values()):
        return ROW_BLANK
    name = primary_name(row)
    if is_blank(row.get(ITEM_ID)) and has_arabic_marker(name):
        return ROW_CONTINUATION
    if not is_blank(row.get(ITEM_ID)) or not is_blank(name):
        return ROW_PRIMARY
    return ROW_SKIPPED


def absorb_translation_row(row: Mapping[str, Any], target: MenuRecord) -> list[str]:
    """Copy every ``[ar-ae]:``-marked bilingual value of ``row`` into ``target``'s companions."""
    written = []
    for bilingual in BILINGUAL_FIELDS:
        value = row.get(bilingual)
        if has_arabic_marker(value):
            cleaned = strip_arabic_marker(value)
            if cleaned:
                companion = arabic_companion(bilingual)
                target.set(companion, cleaned)
                written.append(companion)
    return written


def generate_item_id(index: int, taken: set[str]) -> str:
    """``auto-gen-<index>``, suffixed with ``-<n>`` when the input already uses that id."""
    candidate = f"{AUTO_ID_PREFIX}{index}"
    suffix = 0
    while candidate in taken:
        suffix += 1
        candidate = f"{AUTO_ID_PREFIX}{index}-{suffix}"
    taken.add(candidate)
    return candidate


def build_primary_record(
    row: Mapping[str, Any],
    index: int,
    options: TransformOptions,
    taken: set[str] | None = None,
) -> tuple[MenuRecord, str | None]:
    data = dict(row)
    if is_blank(data.get(ITEM_ID)):
        auto_id = generate_item_id(index, set() if taken is None else taken)
        if ITEM_ID in data:
            data[ITEM_ID] = auto_id
        else:
            data = {ITEM_ID: auto_id, **data}
    record = MenuRecord(data=data, row_number=display_row_number(index))

    if options.apply_title_case:
        for column in TITLE_CASE_FIELDS:
            if record.has(column):
                record.set(column, apply_title_case(record.get(column)))

    currency = None
    if options.split_price:
        currency = split_price(record, options.default_currency)
    return record, currency


def classify_rows(
    rows: Iterable[Mapping[str, Any]],
    options: TransformOptions | None = None,
) -> ClassificationResult:
    """
    Fold normalized rows into primary records.

    ``current`` is the record translation continuation rows attach to. It is
    replaced by every new primary record and cleared by a fully blank row, so a
    translation row following a blank row is reported as an orphan.
    """
    options = options or TransformOptions()
    result = ClassificationResult()
    current: MenuRecord | None = None
    rows = list(rows)
    taken = {str(row.get(ITEM_ID)).strip() for row in rows if not is_blank(row.get(ITEM_ID))}

    for index, row in enumerate(rows):
        kind = classify_row(row)

        if kind == ROW_BLANK:
            current = None
            continue

        if kind == ROW_CONTINUATION:
            if current is None:
                raw_value = str(primary_name(row))
                result.anomalies.append(
                    Anomaly(
                        kind=ANOMALY_ORPHAN_TRANSLATION,
                        message=f'Orphan Arabic translation found at row {display_row_number(index)}: "{raw_value}"',
                        row_number=display_row_number(index),
                        value=raw_value,
                    )
                )
                continue
            absorb_translation_row(row, current)
            result.arabic_translations_found += 1
            continue

        if kind == ROW_SKIPPED:
            result.skipped_rows += 1
            continue

        record, currency = build_primary_record(row, index, options, taken)
        expected_id = f"{AUTO_ID_PREFIX}{index}"
        if is_blank(row.get(ITEM_ID)) and record.get(ITEM_ID) != expected_id:
            result.anomalies.append(
                Anomaly(
                    kind=ANOMALY_ID_COLLISION,
                    message=(
                        f"Generated id {expected_id} for row {display_row_number(index)} is already used "
                        f"in the input; assigned {record.get(ITEM_ID)} instead"
                    ),
                    row_number=display_row_number(index),
                    value=str(record.get(ITEM_ID)),
                )
            )
        if currency:
            result.currencies.add(currency)
        result.records.append(record)
        current = record

    return result
