"""
Cache Maintenance Service - Cleanup, integrity checks and statistics.

None of these operations touch the network; the download path never calls them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from loguru import logger
from PIL import Image, UnidentifiedImageError

from repositories.card_cache_repository import CardCacheRepository


@dataclass
class KeyVerification:
    """Integrity findings for one key directory."""

    key: int
    image_count: int
    metadata_count: int | None
    missing_files: list[str] = field(default_factory=list)
    unreadable_files: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        if self.missing_files or self.unreadable_files:
            return False
        return self.metadata_count is None or self.metadata_count == self.image_count


@dataclass
class VerifyReport:
    keys: list[KeyVerification] = field(default_factory=list)

    @property
    def total_keys(self) -> int:
        return len(self.keys)

    @property
    def total_images(self) -> int:
        return sum(entry.image_count for entry in self.keys)

    @property
    def problems(self) -> list[KeyVerification]:
        return [entry for entry in self.keys if not entry.ok]


@dataclass
class CacheStats:
    last_update: str | None
    version: str | None
    cached_keys: int
    total_images: int
    total_bytes: int

    @property
    def total_megabytes(self) -> float:
        return self.total_bytes / 1024 / 1024


class CacheMaintenanceService:
    """Housekeeping over the whole cache directory."""

    def __init__(self, repository: CardCacheRepository):
        self.repository = repository

    def clean_all(self) -> bool:
        """Delete every cached key and the global metadata."""
        removed = self.repository.remove_all()
        if removed:
            logger.info(f"Removed cache at {self.repository.root}")
        else:
            logger.info("No cache directory found")
        return removed

    def clean_empty(self) -> int:
        """Remove key directories that are empty or hold only an empty marker."""
        cleaned = 0
        for key in self.repository.list_keys():
            if self.repository.remove_if_empty_or_marked(key):
                cleaned += 1
                logger.info(f"Removed #{key:04d}")
        return cleaned

    def verify(self) -> VerifyReport:
        """Cross-check every key's images against its metadata and decode each image."""
        report = VerifyReport()
        for key in self.repository.list_keys():
            images = self.repository.image_paths(key)
            metadata = self.repository.load_metadata(key)
            entry = KeyVerification(
                key=key,
                image_count=len(images),
                metadata_count=len(metadata.get("cards", [])) if metadata else None,
            )
            if metadata:
                on_disk = {path.name for path in images}
                entry.missing_files = [
                    card.get("filename")
                    for card in metadata.get("cards", [])
                    if card.get("filename") not in on_disk
                ]
            entry.unreadable_files = [path.name for path in images if not _is_readable_image(path)]
            report.keys.append(entry)
            logger.debug(f"#{key:04d}: {entry.image_count} cards")
        return report

    def stats(self) -> CacheStats:
        metadata = self.repository.load_global_metadata()
        keys = self.repository.list_keys()
        total_images = 0
        total_bytes = 0
        for key in keys:
            for path in self.repository.image_paths(key):
                total_images += 1
                total_bytes += path.stat().st_size
        return CacheStats(
            last_update=metadata.get("lastUpdate"),
            version=metadata.get("version"),
            cached_keys=len(keys),
            total_images=total_images,
            total_bytes=total_bytes,
        )


def _is_readable_image(path: Path) -> bool:
    try:
        with Image.open(path) as img:
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as exc:
        logger.warning(f"Unreadable image {path}: {exc}")
        return False
    return True


def format_verify_report(report: VerifyReport) -> str:
    lines = [f"#{entry.key:04d}: {entry.image_count} cards" for entry in report.keys]
    for entry in report.problems:
        details = []
        if entry.metadata_count is not None and entry.metadata_count != entry.image_count:
            details.append(f"metadata lists {entry.metadata_count}, found {entry.image_count}")
        if entry.missing_files:
            details.append(f"missing {', '.join(entry.missing_files)}")
        if entry.unreadable_files:
            details.append(f"unreadable {', '.join(entry.unreadable_files)}")
        lines.append(f"Problem in #{entry.key:04d}: {'; '.join(details)}")
    lines.append(f"Total: {report.total_keys} keys, {report.total_images} cards")
    return "\n".join(lines)


def format_cache_stats(stats: CacheStats) -> str:
    rows = [
        ("Last update", stats.last_update or "Never"),
        ("Version", stats.version or "-"),
        ("Cached keys", stats.cached_keys),
        ("Cards downloaded", stats.total_images),
        ("Total size", f"{stats.total_megabytes:.2f} MB"),
    ]
    width = max(len(label) for label, _ in rows)
    return "\n".join(f"{label.ljust(width)} : {value}" for label, value in rows)


__all__ = [
    "CacheMaintenanceService",
    "CacheStats",
    "KeyVerification",
    "VerifyReport",
    "format_cache_stats",
    "format_verify_report",
]
