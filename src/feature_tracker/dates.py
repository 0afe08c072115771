"""Lenient ISO-8601 parsing shared by the catalog builder and the resolver."""

from __future__ import annotations

from datetime import UTC, date, datetime


def parse_timestamp(value: object) -> datetime | None:
    """Parse an ISO-8601 date or date-time into an aware UTC datetime.

    A trailing "Z" means UTC and naive values are taken as UTC. Anything
    that does not parse (including None and empty strings) yields None
    rather than raising, so callers can skip the offending record.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)
