"""
Download Scheduler Service - Drives the card cache service across a key range.

Keys are processed sequentially, or in chunks of ``options.concurrency`` keys run
side by side. The request delay is applied between keys in sequential mode and
between chunks in concurrent mode. One key failing never stops the run.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from loguru import logger

from repositories.card_cache_repository import CardCacheRepository
from services.cache_analysis_service import CacheAnalysisService
from services.card_cache_service import CardCacheService, ProcessResult
from utils.download_options import DownloadOptions
from utils.managed_executor import ManagedExecutor
from utils.retry import DownloadCancelled, wait_or_cancel


@dataclass
class RunStatistics:
    """Counters for one scheduler run."""

    total: int = 0
    success: int = 0
    skipped: int = 0
    failed: int = 0
    images_downloaded: int = 0
    cancelled: bool = False

    @property
    def processed(self) -> int:
        """Keys that settled, as opposed to ``total`` keys targeted by the run."""
        return self.success + self.skipped + self.failed

    def record(self, result: ProcessResult | None, error: BaseException | None = None) -> None:
        if error is not None or result is None:
            self.failed += 1
        elif result.skipped:
            self.skipped += 1
        else:
            self.success += 1
            self.images_downloaded += result.count


def chunked(keys: list[int], size: int) -> list[list[int]]:
    return [keys[i : i + size] for i in range(0, len(keys), size)]


class DownloadSchedulerService:
    """Runs ``CardCacheService.process`` over many keys and aggregates the outcome."""

    def __init__(
        self,
        cache_service: CardCacheService,
        repository: CardCacheRepository,
        analysis_service: CacheAnalysisService | None = None,
        stop_event: threading.Event | None = None,
        on_key_done: Callable[[int, ProcessResult | None, BaseException | None], None]
        | None = None,
    ):
        self.cache_service = cache_service
        self.repository = repository
        self.analysis_service = analysis_service or CacheAnalysisService(repository)
        self.stop_event = stop_event or cache_service.stop_event
        self.on_key_done = on_key_done

    def run(self, start: int, end: int, options: DownloadOptions) -> RunStatistics:
        """Process every key of the closed interval ``[start, end]``."""
        logger.info(f"Downloading cards for #{start} to #{end}")
        return self.run_keys(range(start, end + 1), options)

    def download_missing(self, start: int, end: int, options: DownloadOptions) -> RunStatistics:
        """Process only incomplete and missing keys (plus empty ones when retrying failures)."""
        analysis = self.analysis_service.analyze(start, end)
        targets = analysis.targets(options.retry_failed)
        if not targets:
            logger.info("Every key in range is already handled; nothing to download")
        else:
            logger.info(f"Downloading {len(targets)} missing keys")
        return self.run_keys(targets, options)

    def run_keys(self, keys: Iterable[int], options: DownloadOptions) -> RunStatistics:
        keys = list(keys)
        stats = RunStatistics(total=len(keys))
        try:
            if options.concurrency > 1:
                logger.info(f"Concurrent mode: {options.concurrency} simultaneous downloads")
                self._run_concurrent(keys, options, stats)
            else:
                self._run_sequential(keys, options, stats)
        except DownloadCancelled:
            stats.cancelled = True
        finally:
            if self.stop_event.is_set():
                stats.cancelled = True
                logger.warning("Stop requested; no further keys were started")
            self.repository.save_global_metadata(self.repository.load_global_metadata())
        return stats

    def _run_sequential(self, keys: list[int], options: DownloadOptions, stats: RunStatistics) -> None:
        for position, key in enumerate(keys):
            if self.stop_event.is_set():
                return
            result, error = self._process_one(key, options)
            stats.record(result, error)
            if position < len(keys) - 1:
                wait_or_cancel(self.stop_event, options.delay_seconds)

    def _run_concurrent(self, keys: list[int], options: DownloadOptions, stats: RunStatistics) -> None:
        chunks = chunked(keys, options.concurrency)
        with ManagedExecutor(max_workers=options.concurrency, stop_event=self.stop_event) as executor:
            for position, chunk in enumerate(chunks):
                if executor.is_stopped():
                    return
                try:
                    settled = executor.run_batch(lambda key: self._process_one(key, options), chunk)
                except KeyboardInterrupt:
                    # Let in-flight workers see the stop before the pool joins them.
                    executor.stop()
                    raise
                for task in settled:
                    if task.ok:
                        result, error = task.result
                    else:
                        result, error = None, task.error
                    stats.record(result, error)
                if position < len(chunks) - 1:
                    wait_or_cancel(self.stop_event, options.delay_seconds)

    def _process_one(
        self, key: int, options: DownloadOptions
    ) -> tuple[ProcessResult | None, BaseException | None]:
        try:
            result = self.cache_service.process(key, options)
        except Exception as exc:
            logger.error(f"Failed for #{key}: {exc}")
            result, error = None, exc
        else:
            error = None
        if self.on_key_done:
            self.on_key_done(key, result, error)
        return result, error


def format_statistics(stats: RunStatistics) -> str:
    """Render the end-of-run summary table."""
    rows = [
        ("Keys targeted", stats.total),
        ("Keys processed", stats.processed),
        ("Succeeded", stats.success),
        ("Already cached", stats.skipped),
        ("Failed", stats.failed),
        ("Cards downloaded", stats.images_downloaded),
    ]
    width = max(len(label) for label, _ in rows)
    lines = [f"{label.ljust(width)} : {value}" for label, value in rows]
    if stats.cancelled:
        lines.append("Run interrupted before all keys were processed")
    return "\n".join(lines)


__all__ = [
    "DownloadSchedulerService",
    "RunStatistics",
    "chunked",
    "format_statistics",
]
