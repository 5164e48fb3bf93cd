"""Tests for the default clock."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from tessera.clock import UtcClock


def test_utc_clock() -> None:
    now = UtcClock().now()

    assert now.tzinfo == UTC
    assert now.microsecond == 0
    assert abs(datetime.now(tz=UTC) - now) < timedelta(seconds=5)
