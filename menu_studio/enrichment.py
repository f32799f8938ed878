from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from menu_studio.batching import BatchReport, ProgressCallback, ProgressTracker, chunked, run_batches
from menu_studio.images import ImageResolver
from menu_studio.oracle import CalorieEstimator
from menu_studio.reconciler import assign_request_ids
from menu_studio.schema import (
    CALORIES,
    CLASSIFICATION,
    DESCRIPTION,
    IMAGE_SOURCE,
    IMAGE_URL,
    INGREDIENT,
    ITEM_ID,
    NAME,
    MenuRecord,
)

logger = logging.getLogger(__name__)


@dataclass
class CalorieReport:
    estimated: int = 0
    batches: BatchReport = field(default_factory=BatchReport)


@dataclass
class ImageReport:
    from_excel: int = 0
    from_store: int = 0
    pending_generation: int = 0
    strategies: dict[str, int] = field(default_factory=dict)


def format_calories(value: float) -> str:
    return str(int(round(value))) if abs(value - round(value)) < 1e-9 else f"{value:g}"


def estimate_calories(
    records: Sequence[MenuRecord],
    estimator: Optional[CalorieEstimator],
    *,
    batch_size: int = 30,
    concurrency: int = 3,
    progress: Optional[ProgressCallback] = None,
) -> CalorieReport:
    """Fill empty ``Calories`` from the estimator. Records that already carry a value are left alone."""
    report = CalorieReport()
    pending = [
        (record, request_id)
        for record, request_id in zip(records, assign_request_ids(records))
        if not record.has(CALORIES)
    ]
    if not pending:
        return report
    if estimator is None:
        logger.warning("%d record(s) lack calories but no estimator is configured", len(pending))
        return report

    def worker(batch):
        items = [
            {
                "id": request_id,
                "name": record.text(NAME),
                "description": record.text(DESCRIPTION),
                "ingredients": record.text(INGREDIENT),
                "classification": record.text(CLASSIFICATION),
            }
            for record, request_id in batch
        ]
        return estimator.estimate_calories(items)

    def apply(batch, results):
        for record, request_id in batch:
            calories = results.get(request_id)
            if calories is None or record.has(CALORIES):
                continue
            record.set(CALORIES, format_calories(calories))
            report.estimated += 1

    report.batches = run_batches(
        chunked(pending, batch_size),
        worker,
        apply,
        concurrency=concurrency,
        progress=ProgressTracker("calories", len(pending), progress),
        batch_size=batch_size,
        label="calorie batch",
    )
    return report


def assign_images(records: Sequence[MenuRecord], resolver: ImageResolver) -> ImageReport:
    """
    Tag every record with an ``ImageSource``.

    Spreadsheet URLs win (``excel``), then the image store (``database``).
    Everything else is ``none`` and counted as waiting for generation.
    """
    report = ImageReport()
    for record in records:
        url = record.text(IMAGE_URL)
        if url.lower().startswith(("http://", "https://")):
            record.set(IMAGE_SOURCE, "excel")
            report.from_excel += 1
            continue

        hit = resolver.lookup(record.text(ITEM_ID), record.text(NAME))
        if hit is not None:
            key, strategy = hit
            record.set(IMAGE_URL, resolver.store[key])
            record.set(IMAGE_SOURCE, "database")
            report.from_store += 1
            report.strategies[strategy] = report.strategies.get(strategy, 0) + 1
            continue

        record.set(IMAGE_SOURCE, "none")
        report.pending_generation += 1

    logger.info(
        "Images: %d from spreadsheet, %d from store, %d pending generation",
        report.from_excel,
        report.from_store,
        report.pending_generation,
    )
    return report
