from __future__ import annotations

import threading
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from loguru import logger

__all__ = ["ManagedExecutor", "SettledTask"]

T = TypeVar("T")


@dataclass
class SettledTask(Generic[T]):
    """Outcome of one task: either a result or the exception it raised."""

    item: Any
    result: T | None = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ManagedExecutor:
    """Runs bounded batches of independent tasks in worker threads with a shared stop signal."""

    def __init__(self, max_workers: int = 1, stop_event: threading.Event | None = None) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.max_workers = max_workers
        self._stop_event = stop_event or threading.Event()
        self._pool: ThreadPoolExecutor | None = None
        self._lock = threading.Lock()

    @property
    def stop_event(self) -> threading.Event:
        return self._stop_event

    def _ensure_pool(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._pool is None:
                self._pool = ThreadPoolExecutor(
                    max_workers=self.max_workers, thread_name_prefix="tcg-cache"
                )
            return self._pool

    def run_batch(self, func: Callable[[Any], T], items: Iterable[Any]) -> list[SettledTask[T]]:
        """Start one task per item, wait for all of them to settle, isolate exceptions.

        Results come back in completion order.
        """
        items = list(items)
        if not items:
            return []
        pool = self._ensure_pool()
        futures = {pool.submit(func, item): item for item in items}
        settled: list[SettledTask[T]] = []
        for future in as_completed(futures):
            item = futures[future]
            try:
                settled.append(SettledTask(item=item, result=future.result()))
            except Exception as exc:
                logger.debug(f"Task for {item!r} raised {exc!r}")
                settled.append(SettledTask(item=item, error=exc))
        return settled

    def is_stopped(self) -> bool:
        """Check if executor has been stopped."""
        return self._stop_event.is_set()

    def stop(self) -> None:
        """Signal running tasks to wind down."""
        self._stop_event.set()

    def shutdown(self, wait: bool = True) -> None:
        """Release the worker threads, cancelling tasks that have not started."""
        logger.debug("Shutting down managed executor...")
        with self._lock:
            pool, self._pool = self._pool, None
        if pool is not None:
            pool.shutdown(wait=wait, cancel_futures=True)
        logger.debug("Managed executor shutdown complete")

    def __enter__(self) -> ManagedExecutor:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.shutdown()
