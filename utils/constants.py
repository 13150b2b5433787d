"""Constants file."""

import os
import sys
from pathlib import Path

APP_NAME = "TCG Card Cache"


def _default_base_dir() -> Path:
    """Return the writable base directory for config/cache/logging."""
    if getattr(sys, "frozen", False):
        local_appdata = os.getenv("LOCALAPPDATA")
        if local_appdata:
            return Path(local_appdata) / APP_NAME
        return Path.home() / ".tcg_card_cache"
    return Path(__file__).resolve().parent.parent


BASE_DATA_DIR = _default_base_dir()
CONFIG_DIR = BASE_DATA_DIR / "config"
LOGS_DIR = BASE_DATA_DIR / "logs"
CONFIG_FILE = CONFIG_DIR / "config.json"

# Cache layout
CARD_CACHE_DIR = BASE_DATA_DIR / "public" / "tcg-cards"
GLOBAL_METADATA_FILENAME = "metadata.json"
KEY_METADATA_FILENAME = "metadata.json"
EMPTY_MARKER_FILENAME = ".empty"
IMAGE_EXTENSION = ".png"
KEY_DIR_WIDTH = 4
IMAGE_ORDINAL_WIDTH = 2
CACHE_VERSION = "1.0"

# National Pokédex bounds
MIN_KEY = 1
MAX_KEY = 1025

# Remote card API
API_BASE_URL = "https://api.pokemontcg.io/v2"
API_KEY_ENV_VAR = "POKEMONTCG_API_KEY"
REMOTE_PAGE_SIZE = 50  # Server-side page cap; no pagination beyond the first page
REMOTE_ORDER_BY = "-set.releaseDate"
CARD_SUPERTYPE = "Pokémon"
REQUEST_TIMEOUT = 30  # Seconds

# Bulk dataset (local clone)
DATASET_REPO_URL = "https://github.com/PokemonTCG/pokemon-tcg-data.git"
DATASET_DIR = BASE_DATA_DIR / "pokemon-tcg-data"
DATASET_CARDS_SUBDIR = Path("cards") / "en"
DATASET_SETS_FILE = Path("sets") / "en.json"

# Download behaviour
MAX_CARDS_PER_KEY = 10
REQUEST_DELAY_MS = 500
IMAGE_DELAY_MS = 100
RETRY_ATTEMPTS = 3
RETRY_DELAY_MS = 2000
DEFAULT_CONCURRENCY = 1

IMAGE_SIZES = ("small", "large")
DEFAULT_IMAGE_SIZE = "small"

DATA_SOURCE_REMOTE = "remote"
DATA_SOURCE_BULK = "bulk"
DATA_SOURCES = (DATA_SOURCE_REMOTE, DATA_SOURCE_BULK)



__all__ = [
    "APP_NAME",
    "BASE_DATA_DIR",
    "CONFIG_DIR",
    "LOGS_DIR",
    "CONFIG_FILE",
    "CARD_CACHE_DIR",
    "GLOBAL_METADATA_FILENAME",
    "KEY_METADATA_FILENAME",
    "EMPTY_MARKER_FILENAME",
    "IMAGE_EXTENSION",
    "KEY_DIR_WIDTH",
    "IMAGE_ORDINAL_WIDTH",
    "CACHE_VERSION",
    "MIN_KEY",
    "MAX_KEY",
    "API_BASE_URL",
    "API_KEY_ENV_VAR",
    "REMOTE_PAGE_SIZE",
    "REMOTE_ORDER_BY",
    "CARD_SUPERTYPE",
    "REQUEST_TIMEOUT",
    "DATASET_REPO_URL",
    "DATASET_DIR",
    "DATASET_CARDS_SUBDIR",
    "DATASET_SETS_FILE",
    "MAX_CARDS_PER_KEY",
    "REQUEST_DELAY_MS",
    "IMAGE_DELAY_MS",
    "RETRY_ATTEMPTS",
    "RETRY_DELAY_MS",
    "DEFAULT_CONCURRENCY",
    "IMAGE_SIZES",
    "DEFAULT_IMAGE_SIZE",
    "DATA_SOURCE_REMOTE",
    "DATA_SOURCE_BULK",
    "DATA_SOURCES",
]
