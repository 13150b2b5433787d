"""Process-wide settings loaded from the optional JSON config file and environment."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from loguru import logger

from utils.constants import (
    API_BASE_URL,
    API_KEY_ENV_VAR,
    CARD_CACHE_DIR,
    CONFIG_FILE,
    DATASET_DIR,
    DATASET_REPO_URL,
    LOGS_DIR,
    REQUEST_TIMEOUT,
)


@dataclass(frozen=True)
class CacheSettings:
    """Locations and endpoints used by the cache manager."""

    cache_dir: Path = CARD_CACHE_DIR
    dataset_dir: Path = DATASET_DIR
    dataset_repo_url: str = DATASET_REPO_URL
    api_base_url: str = API_BASE_URL
    api_key: str | None = None
    request_timeout: float = REQUEST_TIMEOUT
    logs_dir: Path | None = LOGS_DIR


def _load_json_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with path.open("r", encoding="utf-8") as fh:
            data = json.load(fh)
    except json.JSONDecodeError as exc:
        logger.warning(f"Invalid {path} ({exc}); using default settings")
        return {}
    except OSError as exc:
        logger.warning(f"Failed to read {path}: {exc}")
        return {}
    if not isinstance(data, dict):
        logger.warning(f"Ignoring {path}: expected a JSON object")
        return {}
    return data


def load_settings(config_file: Path = CONFIG_FILE) -> CacheSettings:
    """
    Build CacheSettings from defaults, the JSON config file and the environment.

    Recognised config keys: ``cache_dir``, ``dataset_dir``, ``dataset_repo_url``,
    ``api_base_url``, ``api_key``, ``request_timeout``, ``logs_dir``.
    The ``POKEMONTCG_API_KEY`` environment variable overrides ``api_key``.
    """
    config = _load_json_file(config_file)
    defaults = CacheSettings()

    logs_dir = config.get("logs_dir", defaults.logs_dir)
    try:
        timeout = float(config.get("request_timeout", defaults.request_timeout))
    except (TypeError, ValueError):
        logger.warning("Invalid request_timeout in config; using default")
        timeout = defaults.request_timeout

    return CacheSettings(
        cache_dir=Path(config.get("cache_dir", defaults.cache_dir)).expanduser(),
        dataset_dir=Path(config.get("dataset_dir", defaults.dataset_dir)).expanduser(),
        dataset_repo_url=str(config.get("dataset_repo_url", defaults.dataset_repo_url)),
        api_base_url=str(config.get("api_base_url", defaults.api_base_url)).rstrip("/"),
        api_key=os.getenv(API_KEY_ENV_VAR) or config.get("api_key") or None,
        request_timeout=timeout,
        logs_dir=Path(logs_dir).expanduser() if logs_dir else None,
    )


__all__ = ["CacheSettings", "load_settings"]
