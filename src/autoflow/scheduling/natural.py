"""Natural-language schedule shorthands."""

from __future__ import annotations

NATURAL_SCHEDULES: dict[str, str] = {
    "daily": "0 9 * * *",
    "everyday": "0 9 * * *",
    "hourly": "0 * * * *",
    "every hour": "0 * * * *",
    "weekly": "0 9 * * 1",
    "every week": "0 9 * * 1",
    "monthly": "0 9 1 * *",
    "every month": "0 9 1 * *",
    "midnight": "0 0 * * *",
    "noon": "0 12 * * *",
}


def to_cron(expression: str) -> str:
    """Map a shorthand to its cron expression; anything else passes through.

    >>> to_cron("daily")
    '0 9 * * *'
    >>> to_cron("*/5 * * * *")
    '*/5 * * * *'
    """
    return NATURAL_SCHEDULES.get(expression.strip().lower(), expression.strip())
