"""
Card Cache Service - Fills the cache for a single key.

For each key the service decides whether work is needed, asks the configured
card source for candidates, narrows them with ``select_diverse``, downloads the
chosen images and hands them to the repository.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from loguru import logger

from repositories.card_cache_repository import CardCacheRepository, utc_timestamp
from services.card_source_service import CardSource
from utils.card_models import CachedCard, CardCandidate
from utils.card_selection import select_diverse
from utils.constants import IMAGE_DELAY_MS
from utils.download_options import DownloadOptions
from utils.http_client import HttpTransport, UpstreamError
from utils.retry import DownloadCancelled, RetryPolicy, wait_or_cancel


@dataclass(frozen=True)
class ProcessResult:
    """What happened to one key."""

    skipped: bool
    count: int


class CardCacheService:
    """Downloads and persists the card images for one key at a time."""

    def __init__(
        self,
        repository: CardCacheRepository,
        source: CardSource,
        transport: HttpTransport,
        retry_policy: RetryPolicy | None = None,
        stop_event: threading.Event | None = None,
        image_delay_ms: int = IMAGE_DELAY_MS,
    ):
        """
        Initialize the card cache service.

        Args:
            repository: On-disk cache store
            source: Remote or bulk card source
            transport: HTTP transport used for image downloads
            retry_policy: Backoff policy for remote calls (defaults share ``stop_event``)
            stop_event: Set to stop retries and pauses promptly
            image_delay_ms: Pause between two image downloads of the same key
        """
        self.repository = repository
        self.source = source
        self.transport = transport
        self.stop_event = stop_event or threading.Event()
        self.retry_policy = retry_policy or RetryPolicy(
            retry_on=(UpstreamError,), stop_event=self.stop_event
        )
        self.image_delay_ms = image_delay_ms
        # key -> [lock, number of callers holding or waiting on it]
        self._key_locks: dict[int, list] = {}
        self._locks_guard = threading.Lock()

    @contextmanager
    def _key_lock(self, key: int) -> Iterator[None]:
        with self._locks_guard:
            entry = self._key_locks.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._locks_guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._key_locks[key]

    def process(self, key: int, options: DownloadOptions) -> ProcessResult:
        """
        Bring one key's cache entry up to date.

        Returns:
            ``ProcessResult(skipped=True, count=n)`` when the key was already complete,
            otherwise ``ProcessResult(skipped=False, count=images written)``

        Raises:
            UpstreamError: If the source kept failing; the key is marked empty first
            DownloadCancelled: If a stop was requested mid-way
        """
        with self._key_lock(key):
            return self._process_locked(key, options)

    def _process_locked(self, key: int, options: DownloadOptions) -> ProcessResult:
        if not options.force:
            status = self.repository.key_status(key)
            if status.is_complete:
                logger.debug(f"#{key} already cached ({status.file_count} cards)")
                return ProcessResult(skipped=True, count=status.file_count)

        candidates = self._fetch_candidates(key, options)
        if not candidates:
            logger.warning(f"No cards found for #{key}")
            self.repository.write_empty_marker(
                key, f"{self.source.empty_reason} at {utc_timestamp()}"
            )
            return ProcessResult(skipped=False, count=0)

        chosen = select_diverse(candidates, options.limit)
        images = self._download_images(key, chosen, options)
        written = self.repository.write_cards(key, images)
        logger.info(f"#{key}: {len(written)}/{len(chosen)} cards cached")
        return ProcessResult(skipped=False, count=len(written))

    def _fetch_candidates(self, key: int, options: DownloadOptions) -> list[CardCandidate]:
        if not self.source.retryable:
            return self.source.fetch_candidates(key, options.limit)

        try:
            return self.retry_policy.call(
                lambda: self.source.fetch_candidates(key, options.limit),
                description=f"card query for #{key}",
            )
        except DownloadCancelled:
            raise
        except UpstreamError as exc:
            self.repository.write_empty_marker(
                key, f"API failed at {utc_timestamp()}\nError: {exc}"
            )
            raise

    def _download_images(
        self, key: int, chosen: list[CardCandidate], options: DownloadOptions
    ) -> list[tuple[bytes, CachedCard]]:
        images: list[tuple[bytes, CachedCard]] = []
        total = len(chosen)
        for position, candidate in enumerate(chosen, start=1):
            label = f"  [{position}/{total}] {candidate.display_name}"
            image_url = candidate.image_url(options.image_size)
            if not image_url:
                logger.warning(f"{label} - no image URL")
                continue

            try:
                blob = self.retry_policy.call(
                    lambda url=image_url: self.transport.get_bytes(url),
                    description=f"image download for {candidate.card_id}",
                )
            except UpstreamError as exc:
                logger.error(f"{label} - download failed: {exc}")
            else:
                images.append((blob, CachedCard.from_candidate(candidate, image_url)))
                logger.info(f"{label} - {candidate.source_set_name}")

            if position < total:
                wait_or_cancel(self.stop_event, self.image_delay_ms / 1000)
        return images


__all__ = ["CardCacheService", "ProcessResult"]
