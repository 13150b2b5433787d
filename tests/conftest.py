"""Root-level pytest fixtures for all tests."""

import pytest
from test_helpers import FakeTransport

from repositories.card_cache_repository import CardCacheRepository
from utils.http_client import UpstreamError
from utils.retry import RetryPolicy


@pytest.fixture
def repository(tmp_path) -> CardCacheRepository:
    """Cache store rooted in a temporary directory."""
    return CardCacheRepository(tmp_path / "tcg-cards")


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def fast_retry() -> RetryPolicy:
    """Retry policy without backoff sleeps."""
    return RetryPolicy(attempts=3, base_delay_ms=0, retry_on=(UpstreamError,))
