#!/usr/bin/env python3
"""Command-line entry point for the trading-card image cache.

Examples::

    python main.py --download --range 1-151 --use-github --concurrent 10
    python main.py --analyze --range 1-151
    python main.py --download-missing --range 1-151 --use-github --retry-failed
    python main.py --stats
"""

from __future__ import annotations

import argparse
import sys
import threading
from dataclasses import replace
from pathlib import Path

from loguru import logger

from repositories.card_cache_repository import CardCacheRepository
from services.cache_analysis_service import CacheAnalysisService, format_analysis
from services.cache_maintenance_service import (
    CacheMaintenanceService,
    format_cache_stats,
    format_verify_report,
)
from services.card_cache_service import CardCacheService
from services.card_source_service import (
    BulkCardSource,
    CardSource,
    DatasetError,
    RemoteCardSource,
    ensure_dataset_ready,
)
from services.download_scheduler_service import DownloadSchedulerService, format_statistics
from utils.constants import (
    CONFIG_FILE,
    DATA_SOURCE_BULK,
    DATA_SOURCE_REMOTE,
    DEFAULT_CONCURRENCY,
    DEFAULT_IMAGE_SIZE,
    IMAGE_SIZES,
    MAX_CARDS_PER_KEY,
    MAX_KEY,
    MIN_KEY,
    REQUEST_DELAY_MS,
)
from utils.download_options import DownloadOptions, parse_key_range
from utils.http_client import HttpTransport
from utils.logging_config import configure_logging
from utils.settings import CacheSettings, load_settings

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Build and maintain a local cache of Pokémon TCG card images.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Recommended workflow:\n"
            "  1. --download --range 1-151 --use-github --concurrent 10\n"
            "  2. --analyze --range 1-151\n"
            "  3. --download-missing --range 1-151 --use-github --retry-failed\n"
            "  4. --stats"
        ),
    )
    commands = parser.add_mutually_exclusive_group(required=True)
    commands.add_argument("--download", action="store_true", help="Download cards for the range")
    commands.add_argument(
        "--download-missing",
        action="store_true",
        help="Download only keys that are missing or incomplete",
    )
    commands.add_argument("--analyze", action="store_true", help="Show what the cache is missing")
    commands.add_argument("--clean", action="store_true", help="Delete every cached card")
    commands.add_argument(
        "--clean-empty",
        action="store_true",
        help="Delete empty key directories and failure markers",
    )
    commands.add_argument("--verify", action="store_true", help="Check cached files")
    commands.add_argument("--stats", action="store_true", help="Show cache statistics")

    scope = parser.add_mutually_exclusive_group()
    scope.add_argument("--range", metavar="N-M", help=f"Pokédex range (within {MIN_KEY}-{MAX_KEY})")
    scope.add_argument("--all", action="store_true", help=f"Every Pokédex number ({MIN_KEY}-{MAX_KEY})")

    parser.add_argument(
        "--limit", type=int, default=MAX_CARDS_PER_KEY, help="Max cards per key (default: %(default)s)"
    )
    parser.add_argument("--force", action="store_true", help="Re-download keys already cached")
    parser.add_argument(
        "--retry-failed", action="store_true", help="Retry keys marked as failed or empty"
    )
    parser.add_argument(
        "--delay",
        type=int,
        default=REQUEST_DELAY_MS,
        metavar="MS",
        help="Delay between requests in ms (default: %(default)s)",
    )
    parser.add_argument(
        "--concurrent",
        type=int,
        default=DEFAULT_CONCURRENCY,
        metavar="N",
        help="Simultaneous downloads (default: %(default)s)",
    )
    parser.add_argument(
        "--use-github",
        "--use-dataset",
        dest="use_dataset",
        action="store_true",
        help="Read cards from a local clone of pokemon-tcg-data instead of the API",
    )
    parser.add_argument(
        "--image-size",
        choices=IMAGE_SIZES,
        default=DEFAULT_IMAGE_SIZE,
        help="Card image size to store (default: %(default)s)",
    )
    parser.add_argument("--output-dir", type=Path, help="Cache directory")
    parser.add_argument("--dataset-dir", type=Path, help="Local pokemon-tcg-data checkout")
    parser.add_argument("--config", type=Path, default=CONFIG_FILE, help="JSON config file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def resolve_range(parser: argparse.ArgumentParser, args: argparse.Namespace) -> tuple[int, int]:
    if args.all:
        return MIN_KEY, MAX_KEY
    if not args.range:
        parser.error("this command requires --range N-M or --all")
    try:
        return parse_key_range(args.range)
    except ValueError as exc:
        parser.error(str(exc))
    raise AssertionError("unreachable")  # pragma: no cover


def build_options(parser: argparse.ArgumentParser, args: argparse.Namespace) -> DownloadOptions:
    try:
        return DownloadOptions(
            limit=args.limit,
            force=args.force,
            delay_ms=args.delay,
            concurrency=args.concurrent,
            retry_failed=args.retry_failed,
            data_source=DATA_SOURCE_BULK if args.use_dataset else DATA_SOURCE_REMOTE,
            image_size=args.image_size,
        )
    except ValueError as exc:
        parser.error(str(exc))
    raise AssertionError("unreachable")  # pragma: no cover


def build_transport(settings: CacheSettings) -> HttpTransport:
    headers = {"X-Api-Key": settings.api_key} if settings.api_key else None
    return HttpTransport(timeout=settings.request_timeout, headers=headers)


def build_source(
    options: DownloadOptions, settings: CacheSettings, transport: HttpTransport
) -> CardSource:
    if options.data_source == DATA_SOURCE_BULK:
        index = ensure_dataset_ready(settings.dataset_dir, settings.dataset_repo_url)
        return BulkCardSource(index)
    return RemoteCardSource(transport, base_url=settings.api_base_url)


def run_download(
    args: argparse.Namespace,
    key_range: tuple[int, int],
    options: DownloadOptions,
    settings: CacheSettings,
    repository: CardCacheRepository,
    stop_event: threading.Event,
) -> int:
    transport = build_transport(settings)
    source = build_source(options, settings, transport)
    cache_service = CardCacheService(repository, source, transport, stop_event=stop_event)
    scheduler = DownloadSchedulerService(cache_service, repository, stop_event=stop_event)

    start, end = key_range
    if args.download_missing:
        stats = scheduler.download_missing(start, end, options)
    else:
        stats = scheduler.run(start, end, options)
    print(format_statistics(stats))
    return EXIT_INTERRUPTED if stats.cancelled else EXIT_OK


def dispatch(
    parser: argparse.ArgumentParser,
    args: argparse.Namespace,
    settings: CacheSettings,
    stop_event: threading.Event,
) -> int:
    repository = CardCacheRepository(settings.cache_dir)
    maintenance = CacheMaintenanceService(repository)

    if args.clean:
        maintenance.clean_all()
        return EXIT_OK
    if args.clean_empty:
        cleaned = maintenance.clean_empty()
        print(f"{cleaned} directories cleaned")
        return EXIT_OK
    if args.verify:
        print(format_verify_report(maintenance.verify()))
        return EXIT_OK
    if args.stats:
        print(format_cache_stats(maintenance.stats()))
        return EXIT_OK

    key_range = resolve_range(parser, args)
    if args.analyze:
        analysis = CacheAnalysisService(repository).analyze(*key_range)
        print(format_analysis(analysis))
        return EXIT_OK

    options = build_options(parser, args)
    return run_download(args, key_range, options, settings, repository, stop_event)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = load_settings(args.config)
    if args.output_dir:
        settings = replace(settings, cache_dir=args.output_dir)
    if args.dataset_dir:
        settings = replace(settings, dataset_dir=args.dataset_dir)
    configure_logging(settings.logs_dir, verbose=args.verbose)

    stop_event = threading.Event()
    try:
        return dispatch(parser, args, settings, stop_event)
    except KeyboardInterrupt:
        stop_event.set()
        logger.warning("Interrupted by user")
        return EXIT_INTERRUPTED
    except DatasetError as exc:
        logger.error(f"Dataset unavailable: {exc}")
        return EXIT_ERROR
    except OSError as exc:
        logger.exception(f"Cache operation failed: {exc}")
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
