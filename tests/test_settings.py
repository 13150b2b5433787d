"""Tests for settings loading and per-command download options."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from utils.download_options import DownloadOptions, parse_key_range
from utils.settings import CacheSettings, load_settings


def test_missing_config_uses_defaults(tmp_path: Path, monkeypatch):
    monkeypatch.delenv("POKEMONTCG_API_KEY", raising=False)

    settings = load_settings(tmp_path / "config.json")

    assert settings == CacheSettings()


def test_config_file_overrides(tmp_path: Path, monkeypatch):
    monkeypatch.delenv("POKEMONTCG_API_KEY", raising=False)
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps(
            {
                "cache_dir": str(tmp_path / "cards"),
                "api_base_url": "https://api.test/v2/",
                "api_key": "from-file",
                "request_timeout": "12.5",
                "logs_dir": None,
            }
        ),
        encoding="utf-8",
    )

    settings = load_settings(path)

    assert settings.cache_dir == tmp_path / "cards"
    assert settings.api_base_url == "https://api.test/v2"
    assert settings.api_key == "from-file"
    assert settings.request_timeout == 12.5
    assert settings.logs_dir is None


def test_env_api_key_wins(tmp_path: Path, monkeypatch):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"api_key": "from-file"}), encoding="utf-8")
    monkeypatch.setenv("POKEMONTCG_API_KEY", "from-env")

    assert load_settings(path).api_key == "from-env"


@pytest.mark.parametrize("content", ["{not json", "[1, 2]"])
def test_unusable_config_falls_back(tmp_path: Path, monkeypatch, content):
    monkeypatch.delenv("POKEMONTCG_API_KEY", raising=False)
    path = tmp_path / "config.json"
    path.write_text(content, encoding="utf-8")

    assert load_settings(path) == CacheSettings()


def test_invalid_timeout_uses_default(tmp_path: Path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"request_timeout": "soon"}), encoding="utf-8")

    assert load_settings(path).request_timeout == CacheSettings().request_timeout


def test_download_options_defaults():
    options = DownloadOptions()

    assert (options.limit, options.delay_ms, options.concurrency) == (10, 500, 1)
    assert options.delay_seconds == 0.5
    assert options.data_source == "remote"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"limit": 0},
        {"delay_ms": -1},
        {"concurrency": 0},
        {"data_source": "ftp"},
        {"image_size": "huge"},
    ],
)
def test_download_options_validation(kwargs):
    with pytest.raises(ValueError):
        DownloadOptions(**kwargs)


def test_parse_key_range():
    assert parse_key_range("1-151") == (1, 151)
    assert parse_key_range(" 25-25 ") == (25, 25)


@pytest.mark.parametrize("raw", ["", "151", "a-b", "0-10", "1-1026", "10-5", "1-2-3"])
def test_parse_key_range_rejects(raw):
    with pytest.raises(ValueError):
        parse_key_range(raw)
