"""
Cache Analysis Service - Read-only classification of keys in a range.

Every key lands in exactly one bucket, decided from ``CardCacheRepository.key_status``:

- complete:   metadata present and at least one image
- empty:      an empty marker (no cards, or a previous API failure)
- incomplete: directory present but neither of the above (interrupted download)
- missing:    nothing on disk
"""

from __future__ import annotations

from dataclasses import dataclass, field

from loguru import logger

from repositories.card_cache_repository import CardCacheRepository

COMPLETE_DISPLAY_LIMIT = 20
MISSING_DISPLAY_LIMIT = 50
MISSING_PREVIEW_COUNT = 20


@dataclass
class CacheAnalysis:
    """Partition of a key range by cache state."""

    complete: list[int] = field(default_factory=list)
    incomplete: list[int] = field(default_factory=list)
    empty: list[int] = field(default_factory=list)
    missing: list[int] = field(default_factory=list)
    file_counts: dict[int, int] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return len(self.complete) + len(self.incomplete) + len(self.empty) + len(self.missing)

    @property
    def to_download(self) -> list[int]:
        return sorted(self.incomplete + self.empty + self.missing)

    def targets(self, retry_failed: bool) -> list[int]:
        """Keys an incremental run should process; complete keys are never included."""
        keys = self.incomplete + self.missing
        if retry_failed:
            keys = keys + self.empty
        return sorted(keys)


class CacheAnalysisService:
    """Classifies cache entries without network access or mutation."""

    def __init__(self, repository: CardCacheRepository):
        self.repository = repository

    def analyze(self, start: int, end: int) -> CacheAnalysis:
        analysis = CacheAnalysis()
        for key in range(start, end + 1):
            status = self.repository.key_status(key)
            if status.is_complete:
                analysis.complete.append(key)
                analysis.file_counts[key] = status.file_count
            elif status.has_empty_marker:
                analysis.empty.append(key)
            elif status.exists:
                analysis.incomplete.append(key)
            else:
                analysis.missing.append(key)
        logger.debug(
            f"Analyzed #{start}-#{end}: {len(analysis.complete)} complete, "
            f"{len(analysis.incomplete)} incomplete, {len(analysis.empty)} empty, "
            f"{len(analysis.missing)} missing"
        )
        return analysis


def _format_keys(keys: list[int]) -> str:
    return "#" + ", #".join(str(key) for key in keys)


def format_analysis(analysis: CacheAnalysis) -> str:
    """Render the analysis summary shown by ``--analyze``."""
    lines = [f"Complete ({len(analysis.complete)})"]
    if 0 < len(analysis.complete) <= COMPLETE_DISPLAY_LIMIT:
        lines.append(f"  {_format_keys(analysis.complete)}")

    lines.append(f"Incomplete ({len(analysis.incomplete)})")
    if analysis.incomplete:
        lines.append(f"  {_format_keys(analysis.incomplete)}")

    lines.append(f"Previous failures / empty ({len(analysis.empty)})")
    if analysis.empty:
        lines.append(f"  {_format_keys(analysis.empty)}")

    lines.append(f"Missing ({len(analysis.missing)})")
    if 0 < len(analysis.missing) <= MISSING_DISPLAY_LIMIT:
        lines.append(f"  {_format_keys(analysis.missing)}")
    elif len(analysis.missing) > MISSING_DISPLAY_LIMIT:
        preview = _format_keys(analysis.missing[:MISSING_PREVIEW_COUNT])
        remaining = len(analysis.missing) - MISSING_PREVIEW_COUNT
        lines.append(f"  {preview} ... and {remaining} more")

    lines.append(f"To download: {len(analysis.to_download)}/{analysis.total}")
    return "\n".join(lines)


__all__ = ["CacheAnalysis", "CacheAnalysisService", "format_analysis"]
