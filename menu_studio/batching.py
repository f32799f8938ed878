from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, TypeVar

from menu_studio.oracle import RateLimitError

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

ProgressCallback = Callable[[str, int, int], None]

_SKIPPED = object()


class ProgressTracker:
    """
    Monotonic progress reducer.

    Batches finish in any order; the reported value is the max of everything
    seen so far, so a late small batch never moves the bar backwards.
    """

    def __init__(self, stage: str, total: int, callback: Optional[ProgressCallback] = None) -> None:
        self.stage = stage
        self.total = total
        self.current = 0
        self._callback = callback
        self._lock = threading.Lock()

    def advance_to(self, value: int) -> None:
        with self._lock:
            value = min(value, self.total)
            if value <= self.current:
                return
            self.current = value
        if self._callback:
            self._callback(self.stage, value, self.total)


@dataclass
class BatchReport:
    total: int = 0
    completed: int = 0
    failed: int = 0
    skipped: int = 0
    rate_limited: bool = False

    def merge(self, other: "BatchReport") -> None:
        self.total += other.total
        self.completed += other.completed
        self.failed += other.failed
        self.skipped += other.skipped
        self.rate_limited = self.rate_limited or other.rate_limited


def chunked(items: Sequence[T], size: int) -> list[list[T]]:
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


def run_batches(
    batches: Sequence[list[T]],
    worker: Callable[[list[T]], R],
    apply: Callable[[list[T], R], None],
    *,
    concurrency: int = 3,
    progress: Optional[ProgressTracker] = None,
    batch_size: int | None = None,
    label: str = "batch",
) -> BatchReport:
    """
    Run ``worker`` over ``batches`` with at most ``concurrency`` in flight.

    ``apply`` runs on the calling thread as each batch completes, so record
    mutation never happens concurrently. A failing batch is logged and
    counted; a ``RateLimitError`` also stops batches that have not started yet.
    """
    report = BatchReport(total=len(batches))
    if not batches:
        return report

    halt = threading.Event()
    step = batch_size or max(len(batch) for batch in batches)

    def guarded(batch: list[T]):
        if halt.is_set():
            return _SKIPPED
        try:
            return worker(batch)
        except RateLimitError:
            halt.set()
            raise

    logger.debug("Starting %d %s(es) with concurrency %d", len(batches), label, concurrency)
    with ThreadPoolExecutor(max_workers=max(1, concurrency)) as executor:
        futures = {executor.submit(guarded, batch): index for index, batch in enumerate(batches)}
        for future in as_completed(futures):
            index = futures[future]
            try:
                result = future.result()
                if result is _SKIPPED:
                    report.skipped += 1
                    continue
                apply(batches[index], result)
                report.completed += 1
            except RateLimitError as exc:
                report.rate_limited = True
                report.failed += 1
                logger.warning("%s %d hit a rate limit; no further batches will start: %s", label.capitalize(), index + 1, exc)
            except Exception as exc:
                report.failed += 1
                logger.warning("%s %d failed: %s", label.capitalize(), index + 1, exc)
            if progress is not None:
                progress.advance_to((index + 1) * step)

    return report
