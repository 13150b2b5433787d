"""
Card Cache Repository - On-disk store for cached card images.

Layout::

    <root>/<key:04d>/01.png, 02.png, ...   ordinal image files
    <root>/<key:04d>/metadata.json         per-key record (authoritative "complete" signal)
    <root>/<key:04d>/.empty                marker for keys that yielded nothing or failed
    <root>/metadata.json                   global record

A key is in at most one of the states complete / empty-marked / incomplete / absent.
Writing cards clears any marker; writing a marker clears stale metadata but keeps images.
"""

from __future__ import annotations

import json
import os
import shutil
import tempfile
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from loguru import logger

from utils.card_models import CachedCard
from utils.constants import (
    CACHE_VERSION,
    CARD_CACHE_DIR,
    EMPTY_MARKER_FILENAME,
    GLOBAL_METADATA_FILENAME,
    IMAGE_EXTENSION,
    IMAGE_ORDINAL_WIDTH,
    KEY_DIR_WIDTH,
    KEY_METADATA_FILENAME,
)


class ImageWriteError(OSError):
    """A single image blob could not be written to disk."""


def utc_timestamp() -> str:
    """Current UTC time as ISO-8601 with milliseconds and a ``Z`` suffix."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class KeyStatus:
    """Filesystem view of one key's directory."""

    exists: bool
    file_count: int
    has_metadata: bool
    has_empty_marker: bool

    @property
    def is_complete(self) -> bool:
        return self.has_metadata and self.file_count > 0


def default_global_metadata() -> dict[str, Any]:
    return {"pokemon": {}, "lastUpdate": None, "version": CACHE_VERSION}


class CardCacheRepository:
    """Repository for the per-key image directories and their metadata records."""

    def __init__(self, root: Path = CARD_CACHE_DIR):
        self.root = Path(root)

    # ============= Paths =============

    def key_dir(self, key: int) -> Path:
        return self.root / str(key).zfill(KEY_DIR_WIDTH)

    @property
    def global_metadata_path(self) -> Path:
        return self.root / GLOBAL_METADATA_FILENAME

    @staticmethod
    def image_filename(ordinal: int) -> str:
        return f"{str(ordinal).zfill(IMAGE_ORDINAL_WIDTH)}{IMAGE_EXTENSION}"

    # ============= Status =============

    def key_status(self, key: int) -> KeyStatus:
        """
        Inspect a key's directory without touching it.

        A missing directory is reported as not existing; any other OS error
        (permissions, a file where the directory should be) propagates.
        """
        directory = self.key_dir(key)
        try:
            names = os.listdir(directory)
        except FileNotFoundError:
            return KeyStatus(exists=False, file_count=0, has_metadata=False, has_empty_marker=False)

        return KeyStatus(
            exists=True,
            file_count=sum(1 for name in names if name.endswith(IMAGE_EXTENSION)),
            has_metadata=KEY_METADATA_FILENAME in names,
            has_empty_marker=EMPTY_MARKER_FILENAME in names,
        )

    def list_keys(self) -> list[int]:
        """Return every key that has a directory under the cache root."""
        if not self.root.is_dir():
            return []
        keys = [
            int(entry.name)
            for entry in self.root.iterdir()
            if entry.is_dir() and len(entry.name) == KEY_DIR_WIDTH and entry.name.isdigit()
        ]
        return sorted(keys)

    def image_paths(self, key: int) -> list[Path]:
        directory = self.key_dir(key)
        if not directory.is_dir():
            return []
        return sorted(p for p in directory.iterdir() if p.name.endswith(IMAGE_EXTENSION))

    # ============= Writes =============

    def write_cards(
        self, key: int, images: Sequence[tuple[bytes, CachedCard]]
    ) -> list[CachedCard]:
        """
        Replace a key's contents with the given images and write its metadata.

        Filenames are assigned in arrival order from ``01``; an image that fails to
        write is skipped without consuming an ordinal, so the metadata always lists
        exactly the files on disk. Metadata is written last and atomically.

        Returns:
            The cards that were written, with filenames.
        """
        directory = self.key_dir(key)
        directory.mkdir(parents=True, exist_ok=True)
        self._clear_key_contents(directory)

        written: list[CachedCard] = []
        for blob, card in images:
            filename = self.image_filename(len(written) + 1)
            try:
                self._write_blob(directory / filename, blob)
            except ImageWriteError as exc:
                logger.error(f"  Failed to save {card.display_name} for #{key}: {exc}")
                continue
            written.append(card.with_filename(filename))

        metadata = {
            "pokedexNumber": key,
            "cards": [card.to_dict() for card in written],
            "downloadedAt": utc_timestamp(),
        }
        self._write_json_atomic(directory / KEY_METADATA_FILENAME, metadata)
        return written

    def write_empty_marker(self, key: int, reason: str) -> None:
        """Mark a key as attempted-with-nothing-to-cache. Existing images are kept."""
        directory = self.key_dir(key)
        directory.mkdir(parents=True, exist_ok=True)
        (directory / EMPTY_MARKER_FILENAME).write_text(reason, encoding="utf-8")
        stale = directory / KEY_METADATA_FILENAME
        if stale.exists():
            logger.debug(f"Dropping stale metadata for #{key} after empty marker")
            stale.unlink()

    def _clear_key_contents(self, directory: Path) -> None:
        # Metadata goes first so an interrupted rewrite reads as incomplete, never complete.
        for name in (KEY_METADATA_FILENAME, EMPTY_MARKER_FILENAME):
            (directory / name).unlink(missing_ok=True)
        for path in directory.iterdir():
            if path.name.endswith(IMAGE_EXTENSION):
                path.unlink()

    @staticmethod
    def _write_blob(path: Path, blob: bytes) -> None:
        try:
            with path.open("wb") as fh:
                fh.write(blob)
        except OSError as exc:
            path.unlink(missing_ok=True)
            raise ImageWriteError(f"{path.name}: {exc}") from exc

    @staticmethod
    def _write_json_atomic(path: Path, data: dict[str, Any]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2, ensure_ascii=False)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    # ============= Reads =============

    def load_metadata(self, key: int) -> dict[str, Any] | None:
        path = self.key_dir(key) / KEY_METADATA_FILENAME
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            logger.warning(f"Invalid JSON at {path}: {exc}")
            return None

    def load_cards(self, key: int) -> list[CachedCard]:
        metadata = self.load_metadata(key) or {}
        return [CachedCard.from_dict(entry) for entry in metadata.get("cards", [])]

    def read_empty_reason(self, key: int) -> str | None:
        path = self.key_dir(key) / EMPTY_MARKER_FILENAME
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    # ============= Global metadata =============

    def load_global_metadata(self) -> dict[str, Any]:
        path = self.global_metadata_path
        if not path.exists():
            return default_global_metadata()
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning(f"Unreadable global metadata at {path}; starting fresh: {exc}")
            return default_global_metadata()
        if not isinstance(data, dict):
            return default_global_metadata()
        merged = default_global_metadata()
        merged.update(data)
        return merged

    def save_global_metadata(self, record: dict[str, Any]) -> dict[str, Any]:
        """Persist the global record with a fresh ``lastUpdate``."""
        updated = dict(record)
        updated["lastUpdate"] = utc_timestamp()
        self._write_json_atomic(self.global_metadata_path, updated)
        return updated

    # ============= Cleanup =============

    def remove_key(self, key: int) -> bool:
        directory = self.key_dir(key)
        if not directory.exists():
            return False
        shutil.rmtree(directory)
        return True

    def remove_if_empty_or_marked(self, key: int) -> bool:
        """Delete a key directory that holds nothing, or nothing but the empty marker."""
        directory = self.key_dir(key)
        if not directory.is_dir():
            return False
        names = os.listdir(directory)
        if names and names != [EMPTY_MARKER_FILENAME]:
            return False
        shutil.rmtree(directory)
        return True

    def remove_all(self) -> bool:
        if not self.root.exists():
            return False
        shutil.rmtree(self.root)
        return True


__all__ = [
    "CardCacheRepository",
    "ImageWriteError",
    "KeyStatus",
    "default_global_metadata",
    "utc_timestamp",
]
