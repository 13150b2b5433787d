"""Tests for cache cleanup, verification and statistics."""

from __future__ import annotations

import io

from PIL import Image
from test_helpers import make_candidate

from services.cache_maintenance_service import (
    CacheMaintenanceService,
    format_cache_stats,
    format_verify_report,
)
from utils.card_models import CachedCard


def _png_bytes(color: str = "red") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (4, 4), color).save(buffer, format="PNG")
    return buffer.getvalue()


def _cached(card_id: str) -> CachedCard:
    card = make_candidate(card_id)
    return CachedCard.from_candidate(card, card.image_url())


def test_clean_empty_removes_only_empty_or_marked(repository):
    repository.key_dir(1).mkdir(parents=True)
    repository.write_empty_marker(2, "none")
    repository.write_cards(3, [(_png_bytes(), _cached("c1"))])

    cleaned = CacheMaintenanceService(repository).clean_empty()

    assert cleaned == 2
    assert repository.list_keys() == [3]


def test_clean_all(repository):
    repository.write_cards(3, [(_png_bytes(), _cached("c1"))])
    service = CacheMaintenanceService(repository)

    assert service.clean_all()
    assert not repository.root.exists()
    assert not service.clean_all()


def test_verify_reports_healthy_cache(repository):
    repository.write_cards(1, [(_png_bytes(), _cached("c1")), (_png_bytes("blue"), _cached("c2"))])

    report = CacheMaintenanceService(repository).verify()

    assert report.total_keys == 1
    assert report.total_images == 2
    assert report.problems == []
    assert "Total: 1 keys, 2 cards" in format_verify_report(report)


def test_verify_flags_missing_and_unreadable_files(repository):
    repository.write_cards(1, [(_png_bytes(), _cached("c1")), (b"not an image", _cached("c2"))])
    (repository.key_dir(1) / "01.png").unlink()

    report = CacheMaintenanceService(repository).verify()

    [entry] = report.problems
    assert entry.missing_files == ["01.png"]
    assert entry.unreadable_files == ["02.png"]
    assert entry.metadata_count == 2
    assert "Problem in #0001" in format_verify_report(report)


def test_stats_totals(repository):
    blob = _png_bytes()
    repository.write_cards(1, [(blob, _cached("c1"))])
    repository.write_cards(2, [(blob, _cached("c2")), (blob, _cached("c3"))])
    repository.save_global_metadata(repository.load_global_metadata())

    stats = CacheMaintenanceService(repository).stats()

    assert stats.cached_keys == 2
    assert stats.total_images == 3
    assert stats.total_bytes == 3 * len(blob)
    assert stats.version == "1.0"
    assert stats.last_update
    assert "Total size" in format_cache_stats(stats)


def test_stats_on_missing_cache(repository):
    stats = CacheMaintenanceService(repository).stats()

    assert (stats.cached_keys, stats.total_images, stats.total_bytes) == (0, 0, 0)
    assert "Never" in format_cache_stats(stats)
