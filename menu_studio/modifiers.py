"""
Modifier flattening.

Modifier exports describe a two-level tree: a row with a ``ModifierGroupId``
opens a group (and usually carries its first modifier), rows with only a
``ModifierId`` add modifiers to that group, and ``[ar-ae]:`` rows carry the
Arabic names of the row above. The output is one flat record per modifier.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence

from menu_studio.classifier import display_row_number
from menu_studio.normalization import (
    apply_title_case,
    is_arabic,
    is_arabic_lang,
    parse_price,
    parse_translation,
)
from menu_studio.schema import (
    ANOMALY_ORPHAN_TRANSLATION,
    BILINGUAL_FIELDS,
    MODIFIER_GROUP_ID,
    MODIFIER_GROUP_NAME,
    MODIFIER_ID,
    MODIFIER_NAME,
    MODIFIER_PRICE,
    MODIFIER_PRICE_CURRENCY,
    Anomaly,
    MenuRecord,
    TransformOptions,
    arabic_companion,
    is_blank,
    price_column,
)

GROUP_FIELDS = (MODIFIER_GROUP_ID, MODIFIER_GROUP_NAME, arabic_companion(MODIFIER_GROUP_NAME))
PRICE_SOURCE_FIELDS = (MODIFIER_PRICE, MODIFIER_PRICE_CURRENCY)


@dataclass
class FlattenResult:
    records: list[MenuRecord] = field(default_factory=list)
    anomalies: list[Anomaly] = field(default_factory=list)
    currencies: set[str] = field(default_factory=set)
    arabic_translations_found: int = 0
    skipped_rows: int = 0


def is_modifier_translation_row(row: Mapping[str, Any]) -> bool:
    if not is_blank(row.get(MODIFIER_GROUP_ID)) or not is_blank(row.get(MODIFIER_ID)):
        return False
    return any(
        parse_translation(row.get(name)) is not None
        for name in (MODIFIER_GROUP_NAME, MODIFIER_NAME)
    )


def merge_translation_row(row: Mapping[str, Any], target: MenuRecord) -> bool:
    """Write Arabic ``[lang]:text`` values of ``row`` into ``target``. Other languages are ignored."""
    merged = False
    for name in BILINGUAL_FIELDS:
        parsed = parse_translation(row.get(name))
        if parsed is None:
            continue
        lang, text = parsed
        if is_arabic_lang(lang) and text:
            target.set(arabic_companion(name), text)
            merged = True
    return merged


def _move_arabic_to_companion(record: MenuRecord, name: str) -> None:
    value = record.text(name)
    if not is_arabic(value):
        return
    companion = arabic_companion(name)
    if not record.has(companion):
        record.set(companion, value)
    record.set(name, "")


def seed_modifier_record(
    row: Mapping[str, Any],
    index: int,
    options: TransformOptions,
    opens_group: bool,
) -> tuple[MenuRecord, Optional[str]]:
    data = {key: value for key, value in row.items() if not (options.split_price and key in PRICE_SOURCE_FIELDS)}
    if not opens_group:
        for name in GROUP_FIELDS:
            if name in data:
                data[name] = ""
    record = MenuRecord(data=data, row_number=display_row_number(index))

    for name in (MODIFIER_GROUP_NAME, MODIFIER_NAME):
        _move_arabic_to_companion(record, name)
        if options.apply_title_case and record.has(name):
            record.set(name, apply_title_case(record.get(name)))

    currency = None
    raw_price = row.get(MODIFIER_PRICE)
    if options.split_price and not is_blank(raw_price):
        parsed_currency, amount = parse_price(raw_price, options.default_currency)
        explicit = row.get(MODIFIER_PRICE_CURRENCY)
        currency = str(explicit).strip().upper() if not is_blank(explicit) else parsed_currency
        if amount is None:
            currency = None
        else:
            record.set(price_column(currency), amount)
    return record, currency


def flatten_modifiers(
    rows: Sequence[Mapping[str, Any]],
    options: TransformOptions | None = None,
) -> FlattenResult:
    """
    Fold normalized modifier rows into flat records.

    A group row with no modifier still yields one record holding only the
    group metadata. Rows with neither id that are not translation rows are
    skipped.
    """
    options = options or TransformOptions()
    result = FlattenResult()
    current: MenuRecord | None = None

    def flush() -> None:
        if current is not None and len(current):
            result.records.append(current.copy())

    for index, row in enumerate(rows):
        if all(is_blank(value) for value in row.values()):
            continue

        if is_modifier_translation_row(row):
            if current is None:
                raw_value = str(row.get(MODIFIER_NAME) or row.get(MODIFIER_GROUP_NAME) or "")
                result.anomalies.append(
                    Anomaly(
                        kind=ANOMALY_ORPHAN_TRANSLATION,
                        message=f'Orphan Arabic translation found at row {display_row_number(index)}: "{raw_value}"',
                        row_number=display_row_number(index),
                        value=raw_value,
                    )
                )
            elif merge_translation_row(row, current):
                result.arabic_translations_found += 1
            continue

        opens_group = not is_blank(row.get(MODIFIER_GROUP_ID))
        if not opens_group and is_blank(row.get(MODIFIER_ID)):
            result.skipped_rows += 1
            continue

        flush()
        current, currency = seed_modifier_record(row, index, options, opens_group)
        if currency:
            result.currencies.add(currency)

    flush()
    return result


def modifier_seed_columns(headers: Sequence[str], options: TransformOptions | None = None) -> list[str]:
    """Input header order minus the price columns folded into ``Price[XXX]``."""
    options = options or TransformOptions()
    if not options.split_price:
        return list(headers)
    return [header for header in headers if header not in PRICE_SOURCE_FIELDS]
