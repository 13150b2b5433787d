"""Tests for the command-line entry point."""

from __future__ import annotations

import json

import pytest
from test_helpers import make_candidate

import main as cli
from repositories.card_cache_repository import CardCacheRepository
from services.card_source_service import BulkCardIndex, DatasetError
from utils.card_models import CachedCard


@pytest.fixture
def cli_env(tmp_path, monkeypatch):
    """Config without file logging, cache under tmp_path."""
    monkeypatch.delenv("POKEMONTCG_API_KEY", raising=False)
    config = tmp_path / "config.json"
    config.write_text(json.dumps({"logs_dir": None}), encoding="utf-8")
    cache_dir = tmp_path / "cards"
    return ["--config", str(config), "--output-dir", str(cache_dir)], CardCacheRepository(cache_dir)


def test_command_is_required(capsys):
    with pytest.raises(SystemExit) as excinfo:
        cli.main([])

    assert excinfo.value.code == 2


def test_invalid_range_is_usage_error(cli_env):
    base_args, _repository = cli_env

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--analyze", "--range", "10-5", *base_args])

    assert excinfo.value.code == 2


def test_download_requires_scope(cli_env):
    base_args, _repository = cli_env

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--download", *base_args])

    assert excinfo.value.code == 2


def test_invalid_limit_is_usage_error(cli_env):
    base_args, _repository = cli_env

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--download", "--range", "1-3", "--limit", "0", *base_args])

    assert excinfo.value.code == 2


def test_analyze_prints_summary(cli_env, capsys):
    base_args, repository = cli_env
    card = make_candidate("a-1")
    repository.write_cards(1, [(b"x", CachedCard.from_candidate(card, card.image_url()))])

    assert cli.main(["--analyze", "--range", "1-3", *base_args]) == 0

    out = capsys.readouterr().out
    assert "Complete (1)" in out
    assert "To download: 2/3" in out


def test_bulk_download_and_stats(cli_env, capsys, monkeypatch):
    base_args, repository = cli_env
    index = BulkCardIndex({1: [make_candidate("a-1", "a")]})
    monkeypatch.setattr(cli, "ensure_dataset_ready", lambda *_args: index)
    monkeypatch.setattr(
        cli.HttpTransport, "get_bytes", lambda self, url: f"image:{url}".encode()
    )

    code = cli.main(["--download", "--range", "1-2", "--use-github", "--delay", "0", *base_args])

    assert code == 0
    assert repository.key_status(1).is_complete
    assert repository.key_status(2).has_empty_marker
    assert "Succeeded" in capsys.readouterr().out

    assert cli.main(["--stats", *base_args]) == 0
    assert "Cards downloaded : 1" in capsys.readouterr().out


def test_dataset_error_exits_with_error(cli_env, monkeypatch):
    base_args, _repository = cli_env

    def unavailable(*_args):
        raise DatasetError("git is not installed")

    monkeypatch.setattr(cli, "ensure_dataset_ready", unavailable)

    assert cli.main(["--download", "--all", "--use-dataset", *base_args]) == 1


def test_clean_empty(cli_env, capsys):
    base_args, repository = cli_env
    repository.write_empty_marker(4, "none")

    assert cli.main(["--clean-empty", *base_args]) == 0

    assert "1 directories cleaned" in capsys.readouterr().out
    assert repository.list_keys() == []
