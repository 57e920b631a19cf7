"""Timestamp helpers for Health Auto Export payloads."""

from __future__ import annotations

from datetime import date, datetime, timezone

# "2025-12-23 21:56:37 +0800"
_EXPORT_FORMAT = "%Y-%m-%d %H:%M:%S %z"


def parse_export_timestamp(value: str) -> datetime:
    """Parse an export timestamp into an aware datetime.

    Accepts the exporter's ``YYYY-MM-DD HH:MM:SS +HHMM`` form and plain
    ISO 8601. Naive values are taken as UTC. Raises ValueError otherwise.
    """
    text = value.strip()
    try:
        parsed = datetime.strptime(text, _EXPORT_FORMAT)
    except ValueError:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def utc_day(value: datetime) -> date:
    """Calendar day of ``value`` in UTC, the key every record is filed under."""
    return value.astimezone(timezone.utc).date()
