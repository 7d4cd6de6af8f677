"""Timestamp helpers shared by the store, logs and scheduler."""

from __future__ import annotations

import re
from datetime import UTC, datetime, timedelta


def now_local() -> datetime:
    """Return the current local time, timezone-aware."""
    return datetime.now().astimezone()


def isoformat(dt: datetime | None = None) -> str:
    """ISO-8601 with seconds precision, like ``date -Iseconds``."""
    return (dt or now_local()).replace(microsecond=0).isoformat()


def parse_iso(value: str) -> datetime:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt


_SINCE_RE = re.compile(r"^\s*(\d+)\s*([hdw])\s*$", re.IGNORECASE)
_SINCE_UNITS = {"h": "hours", "d": "days", "w": "weeks"}


def parse_since(value: str) -> timedelta:
    """Parse a look-back window such as ``7d``, ``12h`` or ``2w``.

    Raises:
        ValueError: when *value* is not ``<int><h|d|w>``.
    """
    match = _SINCE_RE.match(value)
    if not match:
        raise ValueError(f"Invalid window {value!r}; expected e.g. 7d, 12h, 2w")
    amount, unit = int(match.group(1)), match.group(2).lower()
    return timedelta(**{_SINCE_UNITS[unit]: amount})
