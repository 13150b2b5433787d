"""
Card Source Service - Where card candidates for a key come from.

Two interchangeable sources return the same ``CardCandidate`` shape:

- ``RemoteCardSource`` queries the pokemontcg.io API once per key.
- ``BulkCardSource`` reads from a ``BulkCardIndex`` built once from a local clone
  of the pokemon-tcg-data repository (see ``ensure_dataset_ready``).
"""

from __future__ import annotations

import json
import subprocess
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Protocol

from loguru import logger

from utils.card_models import CardCandidate
from utils.constants import (
    API_BASE_URL,
    CARD_SUPERTYPE,
    DATASET_CARDS_SUBDIR,
    DATASET_REPO_URL,
    DATASET_SETS_FILE,
    REMOTE_ORDER_BY,
    REMOTE_PAGE_SIZE,
)
from utils.http_client import HttpTransport, ParseError

UNKNOWN_SET = "Unknown"


class DatasetError(RuntimeError):
    """The bulk dataset could not be obtained or parsed."""


class CardSource(Protocol):
    """Anything that can list candidate cards for a key."""

    retryable: bool
    empty_reason: str

    def fetch_candidates(self, key: int, limit: int) -> list[CardCandidate]: ...


# ============= Remote API =============


class RemoteCardSource:
    """One filtered, newest-first query per key against the card API."""

    retryable = True
    empty_reason = "No cards found"

    def __init__(
        self,
        transport: HttpTransport,
        base_url: str = API_BASE_URL,
        page_size: int = REMOTE_PAGE_SIZE,
    ):
        self.transport = transport
        self.base_url = base_url.rstrip("/")
        self.page_size = page_size

    def build_params(self, key: int) -> dict[str, Any]:
        # Only the first page is read; the selector narrows it down to the limit.
        return {
            "q": f'nationalPokedexNumbers:{key} supertype:"{CARD_SUPERTYPE}"',
            "pageSize": self.page_size,
            "orderBy": REMOTE_ORDER_BY,
        }

    def fetch_candidates(self, key: int, limit: int) -> list[CardCandidate]:
        logger.info(f"Fetching cards for #{key}...")
        payload = self.transport.get_json(f"{self.base_url}/cards", self.build_params(key))
        if not isinstance(payload, dict):
            raise ParseError(f"Unexpected payload type for #{key}: {type(payload).__name__}")
        records = payload.get("data") or []
        return [candidate for candidate in map(candidate_from_api, records) if candidate]


def _mapping_field(record: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    """Nested object field of a card record; anything but an object reads as empty."""
    value = record.get(name)
    return value if isinstance(value, Mapping) else {}


def candidate_from_api(record: Mapping[str, Any]) -> CardCandidate | None:
    """Convert an API card record into a candidate; records without an id are dropped."""
    if not isinstance(record, Mapping):
        return None
    card_id = record.get("id")
    if not card_id:
        return None
    card_set = _mapping_field(record, "set")
    images = _mapping_field(record, "images")
    return CardCandidate(
        card_id=card_id,
        display_name=record.get("name") or "Unknown",
        source_set_id=card_set.get("id") or UNKNOWN_SET,
        source_set_name=card_set.get("name") or UNKNOWN_SET,
        rarity=record.get("rarity"),
        image_small=images.get("small"),
        image_large=images.get("large"),
    )


# ============= Bulk dataset =============


class BulkCardIndex:
    """In-memory mapping from key to candidates, built once from the dataset files."""

    def __init__(self, cards_by_key: Mapping[int, list[CardCandidate]] | None = None):
        self._cards_by_key: dict[int, list[CardCandidate]] = {
            key: list(cards) for key, cards in (cards_by_key or {}).items()
        }

    def get(self, key: int) -> list[CardCandidate]:
        return list(self._cards_by_key.get(key, ()))

    def __len__(self) -> int:
        return len(self._cards_by_key)

    def __contains__(self, key: object) -> bool:
        return key in self._cards_by_key

    @property
    def total_cards(self) -> int:
        return sum(len(cards) for cards in self._cards_by_key.values())

    @classmethod
    def from_dataset(cls, dataset_dir: Path) -> BulkCardIndex:
        """
        Parse every ``cards/en/*.json`` file of a pokemon-tcg-data checkout.

        Records with no national Pokédex numbers, or whose supertype is not
        Pokémon, are skipped. When ``sets/en.json`` is present, set names come
        from it and each key's candidates are ordered newest release first.

        Raises:
            DatasetError: If the cards directory is missing or a file is not valid JSON
        """
        cards_dir = Path(dataset_dir) / DATASET_CARDS_SUBDIR
        if not cards_dir.is_dir():
            raise DatasetError(f"Cards directory not found: {cards_dir}")

        sets = _load_set_catalog(Path(dataset_dir) / DATASET_SETS_FILE)
        json_files = sorted(cards_dir.glob("*.json"))
        logger.info(f"Parsing {len(json_files)} dataset files")

        cards_by_key: dict[int, list[CardCandidate]] = {}
        release_dates: dict[str, str] = {}
        for path in json_files:
            try:
                records = json.loads(path.read_text(encoding="utf-8"))
            except (json.JSONDecodeError, OSError) as exc:
                raise DatasetError(f"Failed to parse {path}: {exc}") from exc
            if not isinstance(records, list):
                logger.warning(f"Skipping {path.name}: expected a list of cards")
                continue

            for record in records:
                if not isinstance(record, dict):
                    continue
                numbers = record.get("nationalPokedexNumbers") or []
                if not numbers or record.get("supertype") != CARD_SUPERTYPE:
                    continue
                candidate = _candidate_from_dataset(record, path.stem, sets)
                if candidate is None:
                    continue
                release_dates[candidate.source_set_id] = sets.get(
                    candidate.source_set_id, {}
                ).get("releaseDate", "")
                for number in numbers:
                    cards_by_key.setdefault(int(number), []).append(candidate)

        if sets:
            for candidates in cards_by_key.values():
                candidates.sort(key=lambda c: release_dates.get(c.source_set_id, ""), reverse=True)

        index = cls(cards_by_key)
        logger.info(f"{len(index)} keys found with cards ({index.total_cards} entries)")
        return index


def _load_set_catalog(path: Path) -> dict[str, dict[str, Any]]:
    if not path.exists():
        return {}
    try:
        entries = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning(f"Ignoring set catalog {path}: {exc}")
        return {}
    if not isinstance(entries, list):
        logger.warning(f"Ignoring set catalog {path}: expected a list of sets")
        return {}
    return {entry["id"]: entry for entry in entries if isinstance(entry, dict) and entry.get("id")}


def _candidate_from_dataset(
    record: Mapping[str, Any], file_set_id: str, sets: Mapping[str, Mapping[str, Any]]
) -> CardCandidate | None:
    card_id = record.get("id")
    if not card_id:
        return None
    embedded_set = _mapping_field(record, "set")
    set_id = embedded_set.get("id") or file_set_id
    set_name = embedded_set.get("name") or sets.get(set_id, {}).get("name") or UNKNOWN_SET
    images = _mapping_field(record, "images")
    return CardCandidate(
        card_id=card_id,
        display_name=record.get("name") or "Unknown",
        source_set_id=set_id,
        source_set_name=set_name,
        rarity=record.get("rarity"),
        image_small=images.get("small"),
        image_large=images.get("large"),
    )


def clone_dataset(repo_url: str, dataset_dir: Path) -> None:
    logger.info(f"Cloning {repo_url} into {dataset_dir}")
    dataset_dir.parent.mkdir(parents=True, exist_ok=True)
    try:
        subprocess.run(
            ["git", "clone", "--depth", "1", repo_url, str(dataset_dir)],
            check=True,
            capture_output=True,
            text=True,
        )
    except FileNotFoundError as exc:
        raise DatasetError("git is not installed; cannot clone the dataset") from exc
    except subprocess.CalledProcessError as exc:
        raise DatasetError(f"Clone failed: {exc.stderr.strip() or exc}") from exc
    logger.info("Dataset cloned")


def ensure_dataset_ready(
    dataset_dir: Path, repo_url: str = DATASET_REPO_URL
) -> BulkCardIndex:
    """Clone the dataset if it is absent, then build and return its index.

    Safe to call repeatedly; an existing checkout is reused as is.
    """
    dataset_dir = Path(dataset_dir)
    if dataset_dir.exists():
        logger.info(f"Dataset already present at {dataset_dir}")
    else:
        clone_dataset(repo_url, dataset_dir)
    return BulkCardIndex.from_dataset(dataset_dir)


class BulkCardSource:
    """Pure lookups in a prepared ``BulkCardIndex``; never fails, never retried."""

    retryable = False
    empty_reason = "No cards found in dataset"

    def __init__(self, index: BulkCardIndex):
        self.index = index

    def fetch_candidates(self, key: int, limit: int) -> list[CardCandidate]:
        return self.index.get(key)


__all__ = [
    "BulkCardIndex",
    "BulkCardSource",
    "CardSource",
    "DatasetError",
    "RemoteCardSource",
    "candidate_from_api",
    "clone_dataset",
    "ensure_dataset_ready",
]
