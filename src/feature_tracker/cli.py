"""Command-line entry point.

Usage:
    feature-tracker build-catalog                  # every configured product
    feature-tracker build-catalog --product vscode --output out.json
    feature-tracker backfill --features-dir data/features

build-catalog writes nothing for a product whose feed fails; the run
exits with status 1. backfill reads the configured product's catalog and
only rewrites milestone files it changed.
"""

from __future__ import annotations

import argparse
import asyncio
from pathlib import Path

import httpx

from feature_tracker.catalog import build_catalog, load_catalog, write_catalog
from feature_tracker.config import TrackerSettings, load_settings
from feature_tracker.logging_config import get_logger, setup_logging
from feature_tracker.resolver import backfill_directory
from feature_tracker.sources.github import GitHubReleaseFeed, ReleaseFeedError

logger = get_logger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config", "-c",
        type=str,
        help="Path to a YAML settings file (defaults to $TRACKER_CONFIG)",
    )

    parser = argparse.ArgumentParser(
        prog="feature-tracker",
        description="Build release catalogs and backfill milestone versions",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    build = sub.add_parser(
        "build-catalog",
        parents=[common],
        help="Build stable-release catalogs from GitHub",
    )
    build.add_argument(
        "--product", "-p",
        default="all",
        help="Product key to build, or 'all' (default)",
    )
    build.add_argument(
        "--output", "-o",
        type=str,
        help="Output path override (single product only)",
    )

    backfill = sub.add_parser(
        "backfill",
        parents=[common],
        help="Fill min_plugin_version on milestones",
    )
    backfill.add_argument("--features-dir", type=str, help="Directory of milestone JSON files")
    backfill.add_argument("--catalog", type=str, help="Catalog JSON to resolve against")
    backfill.add_argument("--surface", type=str, help="Surface whose milestones are filled")
    return parser


async def _build_catalogs(
    settings: TrackerSettings,
    product_keys: list[str],
    output: str | None,
) -> list[Path]:
    written: list[Path] = []
    for key in product_keys:
        product = settings.product(key)
        feed = GitHubReleaseFeed(
            product.owner,
            product.repo,
            token=settings.token,
            api_base=settings.api_base,
            user_agent=product.user_agent,
        )
        document = await build_catalog(
            feed,
            product,
            settings.window_days,
            web_base=settings.web_base,
            per_page=settings.per_page,
        )
        written.append(write_catalog(document, output or product.output))
    return written


def run_build_catalog(settings: TrackerSettings, product: str, output: str | None) -> int:
    keys = list(settings.products) if product == "all" else [product]
    if output and len(keys) != 1:
        logger.error("output_requires_single_product", products=keys)
        return 2
    try:
        for key in keys:
            settings.product(key)
        asyncio.run(_build_catalogs(settings, keys, output))
    except ReleaseFeedError as e:
        logger.error("catalog_build_failed", status_code=e.status_code, body=e.body)
        return 1
    except httpx.HTTPError as e:
        logger.error("catalog_build_failed", error=str(e), error_type=type(e).__name__)
        return 1
    except ValueError as e:
        logger.error("catalog_build_failed", error=str(e))
        return 1
    return 0


def run_backfill(
    settings: TrackerSettings,
    features_dir: str | None,
    catalog_path: str | None,
    surface: str | None,
) -> int:
    try:
        path = catalog_path or settings.product(settings.backfill_product).output
        catalog = load_catalog(path)
    except (FileNotFoundError, ValueError) as e:
        logger.error("backfill_failed", error=str(e))
        return 1

    updated = backfill_directory(
        features_dir or settings.features_dir,
        catalog.versions,
        surface or settings.backfill_surface,
    )
    logger.info("backfill_complete", catalog=str(path), files_updated=len(updated))
    return 0


def main(argv: list[str] | None = None) -> int:
    """CLI entry point; returns the process exit code."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    setup_logging()

    try:
        settings = load_settings(args.config)
    except ValueError as e:
        logger.error("config_invalid", error=str(e))
        return 1

    if args.command == "build-catalog":
        return run_build_catalog(settings, args.product, args.output)
    return run_backfill(settings, args.features_dir, args.catalog, args.surface)


if __name__ == "__main__":
    raise SystemExit(main())
