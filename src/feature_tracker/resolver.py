"""Milestone version resolver.

Feature milestones record when a feature started rolling out but not
which plugin version shipped it. The resolver picks, from a catalog in
ascending release order, the latest version released no later than
start_date + 7 days. The 7-day slack covers the usual gap between a
release going out and the feature being announced.

When several releases land inside the window the latest one wins, not
the one nearest to start_date. Existing outputs depend on that choice.

The backfill pass only ever fills min_plugin_version where it is missing,
so running it again over the same files changes nothing.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from datetime import timedelta
from pathlib import Path
from typing import Any

from feature_tracker.dates import parse_timestamp
from feature_tracker.logging_config import get_logger
from feature_tracker.schemas import CatalogEntry

logger = get_logger(__name__)

RESOLVE_WINDOW = timedelta(days=7)


def resolve_version(entries: Sequence[CatalogEntry], start_date: object) -> str | None:
    """Map a milestone start date to a catalog version.

    Args:
        entries: Catalog entries, ascending by released_at
        start_date: ISO-8601 date or date-time of the milestone

    Returns:
        The version of the latest entry released at or before
        start_date + 7 days, or None if the date doesn't parse or no
        entry qualifies
    """
    start = parse_timestamp(start_date)
    if start is None:
        return None

    deadline = start + RESOLVE_WINDOW
    candidates = [
        e for e in entries if e.released_at is not None and e.released_at <= deadline
    ]
    if not candidates:
        return None
    return candidates[-1].version


def backfill_document(
    document: dict[str, Any],
    entries: Sequence[CatalogEntry],
    surface: str,
) -> bool:
    """Fill missing min_plugin_version values in a milestone document.

    Only milestones under the named surface are touched, and only those
    without a min_plugin_version. The document is mutated in place.

    Returns:
        True if at least one milestone was updated
    """
    changed = False
    for surface_entry in document.get("surfaces") or []:
        if surface_entry.get("surface") != surface:
            continue
        for milestone in surface_entry.get("milestones") or []:
            if milestone.get("min_plugin_version"):
                continue
            version = resolve_version(entries, milestone.get("start_date"))
            if version:
                milestone["min_plugin_version"] = version
                changed = True
                logger.debug(
                    "milestone_resolved",
                    start_date=milestone.get("start_date"),
                    version=version,
                )
    return changed


def backfill_directory(
    features_dir: str | Path,
    entries: Sequence[CatalogEntry],
    surface: str,
) -> list[Path]:
    """Run the backfill over every *.json file in a directory.

    Files are rewritten only when something changed.

    Returns:
        Paths of the files that were rewritten, in name order
    """
    updated: list[Path] = []
    for path in sorted(Path(features_dir).glob("*.json")):
        try:
            document = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("feature_file_skipped", path=str(path), reason=str(exc))
            continue
        if not isinstance(document, dict):
            logger.warning("feature_file_skipped", path=str(path), reason="not a JSON object")
            continue
        if backfill_document(document, entries, surface):
            path.write_text(
                json.dumps(document, indent=2, ensure_ascii=False) + "\n",
                encoding="utf-8",
            )
            logger.info("feature_file_updated", path=str(path))
            updated.append(path)
    return updated
