"""
Language reconciliation between bilingual fields and their Arabic companions.

Two directions are supported. ``ensure_arabic`` fills empty ``<Field>Arabic``
companions, copying source text that is already Arabic and sending the rest
to the Translation Oracle. ``ensure_english`` replaces Arabic base values with
English, moving the Arabic into the companion first when it is empty.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Optional, Sequence

from menu_studio.batching import BatchReport, ProgressCallback, ProgressTracker, chunked, run_batches
from menu_studio.normalization import is_arabic
from menu_studio.oracle import (
    MODE_TO_ARABIC,
    MODE_TO_ENGLISH,
    TranslationOracle,
    TranslationRequest,
)
from menu_studio.schema import BILINGUAL_FIELDS, NAME_FIELDS, TRANSLATABLE_FIELDS, MenuRecord, arabic_companion

logger = logging.getLogger(__name__)

DIRECTION_NONE = "none"
DIRECTION_BOTH = "both"
SAMPLE_SIZE = 10


@dataclass
class ReconcileReport:
    direction: str = DIRECTION_NONE
    already_arabic: int = 0
    translated_records: int = 0
    preserved: int = 0
    batches: BatchReport = field(default_factory=BatchReport)


def assign_request_ids(records: Sequence[MenuRecord]) -> list[str]:
    """
    Ids the oracle sees for ``records``.

    The record identity is used when it is unique among ``records``; otherwise
    the position (``#<index>``) keeps every request addressable.
    """
    identities = [record.identity() for record in records]
    counts = Counter(identities)
    return [
        identity if identity and counts[identity] == 1 else f"#{index}"
        for index, identity in enumerate(identities)
    ]


def _dispatch(
    pending: list[tuple[MenuRecord, TranslationRequest]],
    oracle: TranslationOracle,
    mode: str,
    apply,
    *,
    batch_size: int,
    concurrency: int,
    progress: Optional[ProgressCallback],
) -> BatchReport:
    if not pending:
        return BatchReport()
    tracker = ProgressTracker(mode, len(pending), progress)

    def worker(batch):
        return oracle.translate([request for _, request in batch], mode)

    return run_batches(
        chunked(pending, batch_size),
        worker,
        apply,
        concurrency=concurrency,
        progress=tracker,
        batch_size=batch_size,
        label="translation batch",
    )


def ensure_arabic(
    records: Sequence[MenuRecord],
    oracle: Optional[TranslationOracle],
    fields: Sequence[str] = TRANSLATABLE_FIELDS,
    *,
    batch_size: int = 25,
    concurrency: int = 3,
    progress: Optional[ProgressCallback] = None,
) -> ReconcileReport:
    report = ReconcileReport(direction=MODE_TO_ARABIC)

    # Source text that is already Arabic is copied for every bilingual field.
    for record in records:
        for name in BILINGUAL_FIELDS:
            companion = arabic_companion(name)
            source = record.text(name)
            if record.has(companion) or not source:
                continue
            if is_arabic(source):
                record.set(companion, source)
                report.already_arabic += 1

    pending: list[tuple[MenuRecord, TranslationRequest]] = []
    for record, request_id in zip(records, assign_request_ids(records)):
        wanted = {}
        for name in fields:
            source = record.text(name)
            if source and not record.has(arabic_companion(name)) and not is_arabic(source):
                wanted[name] = source
        if wanted:
            pending.append((record, TranslationRequest(id=request_id, fields=wanted)))

    if not pending:
        return report
    if oracle is None:
        logger.warning("%d record(s) need Arabic translation but no translator is configured", len(pending))
        return report

    def apply(batch, results):
        for record, request in batch:
            translated = results.get(request.id, {})
            wrote = False
            for name in request.fields:
                companion = arabic_companion(name)
                value = (translated.get(name) or "").strip()
                if value and record.text(name) and not record.has(companion):
                    record.set(companion, value)
                    wrote = True
            if wrote:
                report.translated_records += 1

    report.batches = _dispatch(
        pending,
        oracle,
        MODE_TO_ARABIC,
        apply,
        batch_size=batch_size,
        concurrency=concurrency,
        progress=progress,
    )
    return report


def ensure_english(
    records: Sequence[MenuRecord],
    oracle: Optional[TranslationOracle],
    fields: Sequence[str] = TRANSLATABLE_FIELDS,
    *,
    batch_size: int = 25,
    concurrency: int = 3,
    progress: Optional[ProgressCallback] = None,
) -> ReconcileReport:
    report = ReconcileReport(direction=MODE_TO_ENGLISH)

    pending: list[tuple[MenuRecord, TranslationRequest]] = []
    for record, request_id in zip(records, assign_request_ids(records)):
        wanted = {}
        for name in fields:
            source = record.text(name)
            companion_value = record.text(arabic_companion(name))
            if is_arabic(source):
                wanted[name] = source
            elif is_arabic(companion_value):
                wanted[name] = companion_value
        if wanted:
            pending.append((record, TranslationRequest(id=request_id, fields=wanted)))

    if not pending:
        return report
    if oracle is None:
        logger.warning("%d record(s) need English translation but no translator is configured", len(pending))
        return report

    def apply(batch, results):
        for record, request in batch:
            translated = results.get(request.id, {})
            wrote = False
            for name in request.fields:
                value = (translated.get(name) or "").strip()
                if not value:
                    continue
                companion = arabic_companion(name)
                source = record.text(name)
                if is_arabic(source) and not record.has(companion):
                    record.set(companion, source)
                    report.preserved += 1
                record.set(name, value)
                wrote = True
            if wrote:
                report.translated_records += 1

    report.batches = _dispatch(
        pending,
        oracle,
        MODE_TO_ENGLISH,
        apply,
        batch_size=batch_size,
        concurrency=concurrency,
        progress=progress,
    )
    return report


def detect_direction(records: Sequence[MenuRecord], sample_size: int = SAMPLE_SIZE) -> str:
    """
    Pick a translation direction from the first ``sample_size`` records.

    Mostly Arabic names mean the menu needs English; any non-Arabic name
    otherwise means it needs Arabic.
    """
    arabic = other = 0
    for record in records[:sample_size]:
        name = next((record.text(f) for f in NAME_FIELDS if record.text(f)), "")
        if is_arabic(name):
            arabic += 1
        elif name:
            other += 1

    if arabic > other:
        direction = MODE_TO_ENGLISH
    elif other > 0:
        direction = MODE_TO_ARABIC
    else:
        direction = DIRECTION_NONE
    logger.info("Detected translation direction %s (%d Arabic / %d other names sampled)", direction, arabic, other)
    return direction
