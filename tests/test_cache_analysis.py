"""Tests for classifying cache state over a key range."""

from test_helpers import make_candidate

from services.cache_analysis_service import CacheAnalysisService, format_analysis
from utils.card_models import CachedCard


def _populate(repository):
    card = make_candidate("a-1")
    repository.write_cards(1, [(b"x", CachedCard.from_candidate(card, card.image_url()))])
    repository.write_empty_marker(2, "No cards found at then")
    repository.key_dir(3).mkdir(parents=True)
    (repository.key_dir(3) / "01.png").write_bytes(b"partial")


def test_analyze_partitions_range(repository):
    _populate(repository)

    analysis = CacheAnalysisService(repository).analyze(1, 5)

    assert analysis.complete == [1]
    assert analysis.empty == [2]
    assert analysis.incomplete == [3]
    assert analysis.missing == [4, 5]
    assert analysis.file_counts == {1: 1}
    buckets = analysis.complete + analysis.empty + analysis.incomplete + analysis.missing
    assert sorted(buckets) == [1, 2, 3, 4, 5]
    assert len(set(buckets)) == len(buckets)


def test_targets_respect_retry_failed(repository):
    _populate(repository)
    analysis = CacheAnalysisService(repository).analyze(1, 5)

    assert analysis.targets(retry_failed=False) == [3, 4, 5]
    assert analysis.targets(retry_failed=True) == [2, 3, 4, 5]
    assert analysis.to_download == [2, 3, 4, 5]


def test_analyze_does_not_modify_cache(repository):
    _populate(repository)
    before = sorted(p.relative_to(repository.root) for p in repository.root.rglob("*"))

    CacheAnalysisService(repository).analyze(1, 5)

    assert sorted(p.relative_to(repository.root) for p in repository.root.rglob("*")) == before


def test_format_analysis_truncates_long_missing_list(repository):
    analysis = CacheAnalysisService(repository).analyze(1, 60)

    text = format_analysis(analysis)

    assert "Missing (60)" in text
    assert "and 40 more" in text
    assert "To download: 60/60" in text
