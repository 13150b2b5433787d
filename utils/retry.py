"""Retry-with-exponential-backoff policy shared by every outbound request."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from typing import TypeVar

from loguru import logger
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    stop_any,
    wait_exponential,
)

from utils.constants import RETRY_ATTEMPTS, RETRY_DELAY_MS

T = TypeVar("T")


class DownloadCancelled(RuntimeError):
    """Raised when the stop event is set while work is still pending."""


def wait_or_cancel(stop_event: threading.Event | None, seconds: float) -> None:
    """Sleep cooperatively; raise DownloadCancelled if the stop event fires."""
    if seconds <= 0:
        if stop_event is not None and stop_event.is_set():
            raise DownloadCancelled("Stop requested")
        return
    if stop_event is None:
        time.sleep(seconds)
        return
    if stop_event.wait(seconds):
        raise DownloadCancelled("Stop requested")


class RetryPolicy:
    """Run an operation, retrying selected errors with exponential backoff.

    The delay before attempt ``n + 1`` is ``base_delay_ms * 2 ** (n - 1)``.
    After ``attempts`` failures the last error is re-raised unchanged.
    """

    def __init__(
        self,
        attempts: int = RETRY_ATTEMPTS,
        base_delay_ms: int = RETRY_DELAY_MS,
        retry_on: tuple[type[BaseException], ...] = (Exception,),
        stop_event: threading.Event | None = None,
    ) -> None:
        if attempts < 1:
            raise ValueError("attempts must be at least 1")
        self.attempts = attempts
        self.base_delay_ms = base_delay_ms
        self.retry_on = retry_on
        self.stop_event = stop_event

    def backoff_ms(self, attempt: int) -> int:
        return self.base_delay_ms * 2 ** (attempt - 1)

    def _check_stop(self, retry_state: RetryCallState) -> bool:
        if self.stop_event is not None and self.stop_event.is_set():
            raise DownloadCancelled("Stop requested between attempts")
        return False

    def _sleep(self, seconds: float) -> None:
        wait_or_cancel(self.stop_event, seconds)

    def _log_retry(self, description: str) -> Callable[[RetryCallState], None]:
        def before_sleep(retry_state: RetryCallState) -> None:
            delay = retry_state.next_action.sleep if retry_state.next_action else 0
            logger.warning(
                f"Attempt {retry_state.attempt_number}/{self.attempts} of {description} failed "
                f"({retry_state.outcome.exception()}); retrying in {delay * 1000:.0f}ms"
            )

        return before_sleep

    def call(self, operation: Callable[[], T], description: str = "operation") -> T:
        if self.stop_event is not None and self.stop_event.is_set():
            raise DownloadCancelled(f"Stop requested before {description}")
        retrying = Retrying(
            retry=retry_if_exception_type(self.retry_on),
            stop=stop_any(self._check_stop, stop_after_attempt(self.attempts)),
            wait=wait_exponential(multiplier=self.base_delay_ms / 1000),
            sleep=self._sleep,
            before_sleep=self._log_retry(description),
            reraise=True,
        )
        return retrying(operation)


__all__ = ["DownloadCancelled", "RetryPolicy", "wait_or_cancel"]
