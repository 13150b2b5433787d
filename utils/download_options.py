"""Immutable per-command download configuration."""

from __future__ import annotations

from dataclasses import dataclass

from utils.constants import (
    DATA_SOURCE_REMOTE,
    DATA_SOURCES,
    DEFAULT_CONCURRENCY,
    DEFAULT_IMAGE_SIZE,
    IMAGE_SIZES,
    MAX_CARDS_PER_KEY,
    MAX_KEY,
    MIN_KEY,
    REQUEST_DELAY_MS,
)


@dataclass(frozen=True)
class DownloadOptions:
    """Options shared by every key processed in one command."""

    limit: int = MAX_CARDS_PER_KEY
    force: bool = False
    delay_ms: int = REQUEST_DELAY_MS
    concurrency: int = DEFAULT_CONCURRENCY
    retry_failed: bool = False
    data_source: str = DATA_SOURCE_REMOTE
    image_size: str = DEFAULT_IMAGE_SIZE

    def __post_init__(self) -> None:
        if self.limit < 1:
            raise ValueError(f"limit must be at least 1 (got {self.limit})")
        if self.delay_ms < 0:
            raise ValueError(f"delay must not be negative (got {self.delay_ms})")
        if self.concurrency < 1:
            raise ValueError(f"concurrency must be at least 1 (got {self.concurrency})")
        if self.data_source not in DATA_SOURCES:
            raise ValueError(f"unknown data source: {self.data_source}")
        if self.image_size not in IMAGE_SIZES:
            raise ValueError(f"unknown image size: {self.image_size}")

    @property
    def delay_seconds(self) -> float:
        return self.delay_ms / 1000


def parse_key_range(raw: str) -> tuple[int, int]:
    """Parse an ``N-M`` range into a closed interval within the key bounds."""
    parts = (raw or "").strip().split("-")
    if len(parts) != 2:
        raise ValueError(f"range must look like N-M (got {raw!r})")
    try:
        start, end = int(parts[0]), int(parts[1])
    except ValueError as exc:
        raise ValueError(f"range bounds must be integers (got {raw!r})") from exc
    if start < MIN_KEY or end > MAX_KEY:
        raise ValueError(f"range must stay within {MIN_KEY}-{MAX_KEY} (got {raw!r})")
    if start > end:
        raise ValueError(f"range start must not exceed its end (got {raw!r})")
    return start, end


__all__ = ["DownloadOptions", "parse_key_range"]
