"""Tests for natural-language schedule shorthands."""

import pytest

from autoflow.scheduling.natural import to_cron


@pytest.mark.parametrize(
    "expression, expected",
    [
        ("daily", "0 9 * * *"),
        ("Daily", "0 9 * * *"),
        (" hourly ", "0 * * * *"),
        ("every week", "0 9 * * 1"),
        ("monthly", "0 9 1 * *"),
        ("midnight", "0 0 * * *"),
        ("noon", "0 12 * * *"),
    ],
)
def test_shorthands(expression, expected):
    assert to_cron(expression) == expected


@pytest.mark.parametrize("expression", ["*/5 * * * *", "30 2 * * 0", "@reboot"])
def test_cron_passes_through(expression):
    assert to_cron(expression) == expression
