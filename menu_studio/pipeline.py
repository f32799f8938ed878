"""
Pipeline orchestration.

``transform_menu`` runs header normalization, row classification, language
reconciliation, optional enrichment and finally column ordering over one raw
row set. ``transform_modifiers`` does the same for modifier exports using the
flattening fold instead of the row classifier. Both always return whatever
they managed to produce; problems with the data are reported as anomalies.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence

from menu_studio.batching import BatchReport, ProgressCallback
from menu_studio.classifier import classify_rows
from menu_studio.columns import order_records
from menu_studio.enrichment import assign_images, estimate_calories
from menu_studio.headers import normalize_header, normalize_row
from menu_studio.images import ImageResolver
from menu_studio.modifiers import flatten_modifiers, modifier_seed_columns
from menu_studio.oracle import MODE_TO_ARABIC, MODE_TO_ENGLISH, CalorieEstimator, TranslationOracle
from menu_studio.reconciler import DIRECTION_BOTH, DIRECTION_NONE, detect_direction, ensure_arabic, ensure_english
from menu_studio.schema import (
    ANOMALY_EMPTY_DATASET,
    ANOMALY_ZERO_ITEMS,
    MODIFIER_TRANSLATABLE_FIELDS,
    TRANSLATABLE_FIELDS,
    Anomaly,
    MenuRecord,
    TransformOptions,
    TransformStats,
)

logger = logging.getLogger(__name__)

MODE_MENU = "menu"
MODE_MODIFIERS = "modifiers"


@dataclass
class TransformResult:
    mode: str
    records: list[MenuRecord] = field(default_factory=list)
    columns: list[str] = field(default_factory=list)
    stats: TransformStats = field(default_factory=TransformStats)

    def rows(self) -> list[dict[str, Any]]:
        return [dict(record.data) for record in self.records]

    @property
    def partial(self) -> bool:
        return bool(self.stats.anomalies or self.stats.failed_batches or self.stats.skipped_batches)


def normalize_input(raw_rows: Sequence[Mapping[Any, Any]]) -> tuple[list[dict[str, Any]], list[str]]:
    """Normalized rows plus the canonical header order seen across them."""
    headers: dict[str, None] = {}
    rows = []
    for raw in raw_rows:
        for key in raw:
            headers.setdefault(normalize_header(key), None)
        rows.append(normalize_row(raw))
    return rows, list(headers)


def _record_batches(stats: TransformStats, report: BatchReport) -> None:
    stats.failed_batches += report.failed
    stats.skipped_batches += report.skipped
    stats.rate_limited = stats.rate_limited or report.rate_limited


def resolve_direction(options: TransformOptions, records: Sequence[MenuRecord]) -> str:
    if options.auto_translate:
        return detect_direction(records)
    if options.translate_to_arabic and options.translate_to_english:
        return DIRECTION_BOTH
    if options.translate_to_arabic:
        return MODE_TO_ARABIC
    if options.translate_to_english:
        return MODE_TO_ENGLISH
    return DIRECTION_NONE


def reconcile_languages(
    records: Sequence[MenuRecord],
    options: TransformOptions,
    stats: TransformStats,
    oracle: Optional[TranslationOracle],
    fields: Sequence[str],
    progress: Optional[ProgressCallback] = None,
) -> None:
    direction = resolve_direction(options, records)
    stats.translation_direction = direction
    batching = {"batch_size": options.batch_size, "concurrency": options.concurrency, "progress": progress}

    if direction in (MODE_TO_ENGLISH, DIRECTION_BOTH):
        report = ensure_english(records, oracle, fields, **batching)
        stats.auto_translated_en_count += report.translated_records
        _record_batches(stats, report.batches)
        if report.batches.rate_limited:
            return

    if direction in (MODE_TO_ARABIC, DIRECTION_BOTH):
        report = ensure_arabic(records, oracle, fields, **batching)
        stats.already_arabic_count += report.already_arabic
        stats.auto_translated_count += report.translated_records
        _record_batches(stats, report.batches)


def _empty_result(mode: str, stats: TransformStats) -> TransformResult:
    stats.anomalies.append(Anomaly(kind=ANOMALY_EMPTY_DATASET, message="The uploaded file contains no data rows"))
    stats.anomalies.append(Anomaly(kind=ANOMALY_ZERO_ITEMS, message="No menu items were identified"))
    return TransformResult(mode=mode, stats=stats)


def transform_menu(
    raw_rows: Sequence[Mapping[Any, Any]],
    options: TransformOptions | None = None,
    *,
    oracle: Optional[TranslationOracle] = None,
    estimator: Optional[CalorieEstimator] = None,
    image_store: Optional[Mapping[str, str]] = None,
    progress: Optional[ProgressCallback] = None,
) -> TransformResult:
    options = options or TransformOptions()
    stats = TransformStats(total_raw_rows=len(raw_rows))
    if not raw_rows:
        return _empty_result(MODE_MENU, stats)

    rows, _ = normalize_input(raw_rows)
    classified = classify_rows(rows, options)
    records = classified.records
    stats.anomalies.extend(classified.anomalies)
    stats.arabic_translations_found = classified.arabic_translations_found
    stats.currencies_detected = sorted(classified.currencies)
    stats.total_items_processed = len(records)

    if not records:
        stats.anomalies.append(
            Anomaly(kind=ANOMALY_ZERO_ITEMS, message="No menu items were identified. Check that the file has an item name or id column.")
        )
        return TransformResult(mode=MODE_MENU, stats=stats)

    reconcile_languages(records, options, stats, oracle, TRANSLATABLE_FIELDS, progress)

    if options.estimate_calories and not stats.rate_limited:
        calories = estimate_calories(
            records,
            estimator,
            batch_size=options.calorie_batch_size,
            concurrency=options.concurrency,
            progress=progress,
        )
        stats.calories_estimated_count = calories.estimated
        _record_batches(stats, calories.batches)

    if options.sync_images and image_store is not None:
        resolver = ImageResolver(image_store, fuzzy=options.fuzzy_image_match, threshold=options.fuzzy_threshold)
        images = assign_images(records, resolver)
        stats.images_from_excel = images.from_excel
        stats.images_from_db = images.from_store
        stats.images_pending_generation = images.pending_generation

    # Must stay last: columns added after this point would not be exported.
    columns = order_records(records)
    logger.info("Transformed %d raw row(s) into %d item(s)", stats.total_raw_rows, stats.total_items_processed)
    return TransformResult(mode=MODE_MENU, records=records, columns=columns, stats=stats)


def transform_modifiers(
    raw_rows: Sequence[Mapping[Any, Any]],
    options: TransformOptions | None = None,
    *,
    oracle: Optional[TranslationOracle] = None,
    progress: Optional[ProgressCallback] = None,
) -> TransformResult:
    options = options or TransformOptions()
    stats = TransformStats(total_raw_rows=len(raw_rows))
    if not raw_rows:
        return _empty_result(MODE_MODIFIERS, stats)

    rows, headers = normalize_input(raw_rows)
    flattened = flatten_modifiers(rows, options)
    records = flattened.records
    stats.anomalies.extend(flattened.anomalies)
    stats.arabic_translations_found = flattened.arabic_translations_found
    stats.currencies_detected = sorted(flattened.currencies)
    stats.total_items_processed = len(records)

    if not records:
        stats.anomalies.append(
            Anomaly(kind=ANOMALY_ZERO_ITEMS, message="No modifiers were identified. Check the modifier group and modifier id columns.")
        )
        return TransformResult(mode=MODE_MODIFIERS, stats=stats)

    reconcile_languages(records, options, stats, oracle, MODIFIER_TRANSLATABLE_FIELDS, progress)

    columns = order_records(records, seed=modifier_seed_columns(headers, options), populated_only=True)
    logger.info("Flattened %d raw row(s) into %d modifier(s)", stats.total_raw_rows, stats.total_items_processed)
    return TransformResult(mode=MODE_MODIFIERS, records=records, columns=columns, stats=stats)
