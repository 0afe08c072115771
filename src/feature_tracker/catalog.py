"""Catalog builder: GitHub releases -> stable version catalog.

The builder pages through a release feed newest-first and keeps stable
releases published on or after a cutoff. It flows like this:
1. cutoff = now - window_days
2. Fetch page N, drop drafts/prereleases and unparsable timestamps,
   keep records at or after the cutoff
3. Stop once the oldest (last) raw record on a page predates the cutoff,
   or the feed has no more pages
4. Normalize, deduplicate by version, sort ascending by release time

The window is a minimum lookback: the page that crosses the cutoff is
read in full, so nothing inside the window is missed, but nothing older
than that page is ever requested.
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterable
from datetime import UTC, datetime, timedelta
from pathlib import Path
from urllib.parse import quote

from feature_tracker.config import ProductConfig
from feature_tracker.dates import parse_timestamp
from feature_tracker.logging_config import get_logger
from feature_tracker.schemas import (
    SCHEMA_VERSION,
    CatalogDocument,
    CatalogEntry,
    Channel,
    ReleaseRecord,
)
from feature_tracker.sources.github import MAX_PER_PAGE, ReleaseFeedProtocol

logger = get_logger(__name__)

_VERSION_PREFIX = re.compile(r"^v", re.IGNORECASE)


# ---------------------------------------------------------------------------
# Pagination
# ---------------------------------------------------------------------------


async def collect_stable_releases(
    feed: ReleaseFeedProtocol,
    cutoff: datetime,
    per_page: int = MAX_PER_PAGE,
) -> list[ReleaseRecord]:
    """Collect stable releases published at or after the cutoff.

    Pages are requested one at a time; the stop decision for page N is
    made before page N+1 is requested.

    Args:
        feed: Newest-first release feed
        cutoff: Oldest publish time to keep (inclusive)
        per_page: Page size requested from the feed

    Returns:
        Matching release records in feed order (newest first)

    Raises:
        ReleaseFeedError: If any page request fails
    """
    kept: list[ReleaseRecord] = []
    page = 1

    while True:
        result = await feed.list_releases(page, per_page)
        if not result.releases:
            break

        for release in result.releases:
            if not release.is_stable:
                continue
            published = parse_timestamp(release.raw_timestamp)
            if published is not None and published >= cutoff:
                kept.append(release)

        # Feed is newest-first, so the last raw record is the oldest on the page
        oldest = parse_timestamp(result.releases[-1].raw_timestamp)
        reached_cutoff = oldest is not None and oldest < cutoff

        logger.debug(
            "release_page_fetched",
            page=page,
            releases=len(result.releases),
            kept_total=len(kept),
            reached_cutoff=reached_cutoff,
        )

        if reached_cutoff or not result.has_next:
            break
        page += 1

    return kept


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------


def normalize_version(tag: str) -> str:
    """Strip one leading "v" or "V" from a release tag."""
    return _VERSION_PREFIX.sub("", tag)


def normalize_release(
    release: ReleaseRecord,
    product: ProductConfig,
    web_base: str = "https://github.com",
) -> CatalogEntry:
    """Turn a release record into a catalog entry."""
    tag = release.tag
    anchor = release.html_url or (
        f"{web_base.rstrip('/')}/{product.owner}/{product.repo}"
        f"/releases/tag/{quote(tag, safe='')}"
    )
    return CatalogEntry(
        version=normalize_version(tag),
        tag=tag if product.keep_tag else None,
        released_at=parse_timestamp(release.raw_timestamp),
        channel=Channel.STABLE,
        anchors=[anchor],
    )


def dedupe_by_version(entries: Iterable[CatalogEntry]) -> list[CatalogEntry]:
    """Keep one entry per version.

    The first occurrence wins, unless it has no released_at and a later
    duplicate does.
    """
    by_version: dict[str, CatalogEntry] = {}
    for entry in entries:
        current = by_version.get(entry.version)
        if current is None:
            by_version[entry.version] = entry
        elif current.released_at is None and entry.released_at is not None:
            by_version[entry.version] = entry
    return list(by_version.values())


# ---------------------------------------------------------------------------
# Build / persist
# ---------------------------------------------------------------------------


async def build_catalog(
    feed: ReleaseFeedProtocol,
    product: ProductConfig,
    window_days: int,
    now: datetime | None = None,
    web_base: str = "https://github.com",
    per_page: int = MAX_PER_PAGE,
) -> CatalogDocument:
    """Build a catalog of stable releases covering at least window_days.

    Args:
        feed: Release feed for the product's repository
        product: Product whose releases are being catalogued
        window_days: Minimum trailing window to cover
        now: Reference time, current UTC time if not provided
        web_base: GitHub web host for synthesized anchors and the source URL
        per_page: Page size requested from the feed

    Returns:
        A validated CatalogDocument, ascending by released_at

    Raises:
        ReleaseFeedError: If the feed fails on any page
    """
    now = now or datetime.now(UTC)
    cutoff = now - timedelta(days=window_days)
    repo = f"{product.owner}/{product.repo}"

    logger.info(
        "catalog_build_started",
        repo=repo,
        window_days=window_days,
        cutoff=cutoff.isoformat(),
    )

    releases = await collect_stable_releases(feed, cutoff, per_page)

    # A bare "v" tag normalizes to nothing and cannot be keyed
    normalized = [
        normalize_release(r, product, web_base)
        for r in releases
        if normalize_version(r.tag)
    ]
    deduped = dedupe_by_version(normalized)
    versions = sorted(
        (e for e in deduped if e.released_at is not None),
        key=lambda e: e.released_at,
    )

    document = CatalogDocument(
        schema_version=SCHEMA_VERSION,
        ide=product.ide,
        source=f"{web_base.rstrip('/')}/{repo}/releases",
        last_updated_utc=now,
        notes=(
            "Generated from GitHub Releases. Stable-only (draft=false, "
            f"prerelease=false). Window: last {window_days} days."
        ),
        versions=versions,
    )

    logger.info(
        "catalog_build_complete",
        repo=repo,
        versions=len(versions),
        first=versions[0].released_at.isoformat() if versions else None,
        last=versions[-1].released_at.isoformat() if versions else None,
    )
    return document


def write_catalog(document: CatalogDocument, path: str | Path) -> Path:
    """Write a catalog as 2-space-indented JSON, creating parent directories."""
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    data = document.model_dump(mode="json", exclude_none=True)
    out.write_text(json.dumps(data, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    logger.info("catalog_written", path=str(out), versions=len(document.versions))
    return out


def load_catalog(path: str | Path) -> CatalogDocument:
    """Read a catalog back from disk.

    Entries whose released_at is missing or unparsable are dropped and the
    rest re-sorted, so hand-edited catalogs still satisfy the invariant.

    Raises:
        FileNotFoundError: If the catalog file does not exist
        ValueError: If the file is not valid JSON or fails validation
    """
    catalog_path = Path(path)
    try:
        raw = json.loads(catalog_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path}: {exc}") from exc

    if not isinstance(raw, dict):
        raise ValueError(f"Invalid catalog in {path}: expected a JSON object")

    usable = []
    for item in raw.get("versions") or []:
        if not isinstance(item, dict):
            continue
        released_at = parse_timestamp(item.get("released_at"))
        if released_at is None:
            logger.warning("catalog_entry_skipped", path=str(path), version=item.get("version"))
            continue
        usable.append({**item, "released_at": released_at})
    raw["versions"] = sorted(usable, key=lambda item: item["released_at"])

    try:
        return CatalogDocument.model_validate(raw)
    except Exception as exc:
        raise ValueError(f"Invalid catalog in {path}: {exc}") from exc
