"""Shared fakes for the cache tests.

Nothing here touches the network: transports and sources are in-memory stand-ins.
"""

import sys
import threading
from pathlib import Path

# Add parent directory to sys.path to enable imports from repositories and services
parent_dir = Path(__file__).parent.parent
if str(parent_dir) not in sys.path:
    sys.path.insert(0, str(parent_dir))

# ruff: noqa: E402
from utils.card_models import CardCandidate
from utils.http_client import TransientUpstreamError


def make_candidate(card_id: str, set_id: str = "base1", **overrides) -> CardCandidate:
    """Build a candidate whose image URLs are derived from its id."""
    values = {
        "card_id": card_id,
        "display_name": overrides.pop("display_name", f"Card {card_id}"),
        "source_set_id": set_id,
        "source_set_name": overrides.pop("source_set_name", f"Set {set_id}"),
        "rarity": overrides.pop("rarity", "Common"),
        "image_small": overrides.pop("image_small", f"https://images.test/{card_id}.png"),
        "image_large": overrides.pop("image_large", f"https://images.test/{card_id}_hires.png"),
    }
    values.update(overrides)
    return CardCandidate(**values)


class FakeTransport:
    """Serves image bytes from memory and records every request."""

    def __init__(self, json_payloads=None, failing_urls=(), blobs=None):
        self.json_payloads = list(json_payloads or [])
        self.failing_urls = set(failing_urls)
        self.blobs = dict(blobs or {})
        self.json_calls: list[tuple[str, dict | None]] = []
        self.byte_calls: list[str] = []
        self._lock = threading.Lock()

    def get_json(self, url, params=None):
        with self._lock:
            self.json_calls.append((url, params))
            payload = self.json_payloads.pop(0) if self.json_payloads else {"data": []}
        if isinstance(payload, Exception):
            raise payload
        return payload

    def get_bytes(self, url):
        with self._lock:
            self.byte_calls.append(url)
        if url in self.failing_urls:
            raise TransientUpstreamError(f"HTTP 503: {url}", 503)
        return self.blobs.get(url, f"image:{url}".encode())


class FailingSource:
    """A retryable source whose every query fails."""

    retryable = True
    empty_reason = "No cards found"

    def __init__(self, error: Exception):
        self.error = error
        self.calls = 0

    def fetch_candidates(self, key, limit):
        self.calls += 1
        raise self.error


class CountingSource:
    """Wraps another source and counts lookups per key."""

    def __init__(self, inner):
        self.inner = inner
        self.retryable = inner.retryable
        self.empty_reason = inner.empty_reason
        self.calls: list[int] = []

    def fetch_candidates(self, key, limit):
        self.calls.append(key)
        return self.inner.fetch_candidates(key, limit)
