"""Pydantic models for release records and version catalogs.

Two families live here:
- ReleaseRecord / ReleasePage: what the release feed hands back. Kept
  loose on purpose (timestamps stay strings) so one bad record never
  fails a whole page.
- CatalogEntry / CatalogDocument: what gets persisted under
  data/lookups/. The document validator enforces the catalog invariant
  that the resolver relies on.

Milestone documents are not modelled: they belong to another tool and are
edited as plain dicts so unknown keys and key order survive a rewrite.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

SCHEMA_VERSION = "0.1"


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class Channel(str, Enum):
    """Release channel of a catalog entry.

    Only stable releases are persisted; drafts and prereleases are
    filtered out before normalization.
    """

    STABLE = "stable"


# ---------------------------------------------------------------------------
# Feed Schemas
# ---------------------------------------------------------------------------


class ReleaseRecord(BaseModel):
    """A single release as returned by the GitHub Releases API.

    Attributes:
        tag_name: Git tag of the release (e.g., "v1.2.3" or "1.102.1")
        name: Release title, used as the tag when tag_name is empty
        published_at: Raw publish timestamp, None for drafts
        created_at: Raw creation timestamp, fallback for published_at
        draft: Whether the release is an unpublished draft
        prerelease: Whether the release is flagged as a prerelease
        html_url: Canonical web URL of the release page
    """

    model_config = ConfigDict(extra="ignore")

    tag_name: str | None = None
    name: str | None = None
    published_at: str | None = None
    created_at: str | None = None
    draft: bool = False
    prerelease: bool = False
    html_url: str | None = None

    @property
    def tag(self) -> str:
        return self.tag_name or self.name or ""

    @property
    def raw_timestamp(self) -> str | None:
        return self.published_at or self.created_at

    @property
    def is_stable(self) -> bool:
        return not self.draft and not self.prerelease


class ReleasePage(BaseModel):
    """One page of the release feed, newest release first."""

    releases: list[ReleaseRecord] = Field(default_factory=list)
    has_next: bool = Field(False, description="Whether the feed has another page")


# ---------------------------------------------------------------------------
# Catalog Schemas
# ---------------------------------------------------------------------------


class CatalogEntry(BaseModel):
    """A stable release in a version catalog.

    Attributes:
        version: Tag with any leading "v" stripped; unique per catalog
        tag: Original tag, only recorded for products that keep it
        released_at: Publish time (UTC); required once persisted
        channel: Always "stable"
        anchors: Reference URIs for the originating release
    """

    version: str = Field(..., min_length=1, description="Normalized version")
    tag: str | None = Field(None, description="Original release tag")
    released_at: datetime | None = Field(None, description="Publish timestamp (UTC)")
    channel: Channel = Field(Channel.STABLE, description="Release channel")
    anchors: list[str] = Field(
        ..., min_length=1, description="Reference URIs for the release"
    )


class CatalogDocument(BaseModel):
    """A persisted version catalog, ascending by release time.

    Attributes:
        schema_version: Catalog format marker
        ide: Product display name, only set for IDE catalogs
        source: Web URL of the upstream releases listing
        last_updated_utc: When the catalog was generated
        notes: Human-readable description of the filters applied
        versions: Catalog entries, ascending by released_at
    """

    @model_validator(mode="after")
    def check_catalog_invariants(self) -> "CatalogDocument":
        """Ensure entries are timestamped, unique, and ascending."""
        seen: set[str] = set()
        previous: datetime | None = None
        for entry in self.versions:
            if entry.released_at is None:
                raise ValueError(
                    f"Catalog entry {entry.version!r} has no released_at. "
                    "Entries without a timestamp must be dropped before persisting."
                )
            if entry.version in seen:
                raise ValueError(f"Duplicate catalog version {entry.version!r}")
            if previous is not None and entry.released_at < previous:
                raise ValueError(
                    f"Catalog is not ascending by released_at at {entry.version!r}"
                )
            seen.add(entry.version)
            previous = entry.released_at
        return self

    schema_version: str = Field(SCHEMA_VERSION, description="Catalog format marker")
    ide: str | None = Field(None, description="Product display name")
    source: str = Field(..., description="Upstream releases listing URL")
    last_updated_utc: datetime = Field(..., description="Generation timestamp")
    notes: str = Field("", description="Filters and window used for the build")
    versions: list[CatalogEntry] = Field(
        default_factory=list, description="Entries, ascending by released_at"
    )
