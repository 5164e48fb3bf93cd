"""Test fixtures."""

from __future__ import annotations

import os

import pytest

from tessera.builder import TokenBuilder

from .support.clock import FixedClock
from .support.constants import TEST_NOW, TEST_SECRET


@pytest.fixture(autouse=True)
def environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove any Tessera settings from the environment of the test run."""
    for name in list(os.environ):
        if name.startswith("TESSERA_"):
            monkeypatch.delenv(name)


@pytest.fixture
def clock() -> FixedClock:
    """Return a clock fixed at a known time."""
    return FixedClock(TEST_NOW)


@pytest.fixture
def builder(clock: FixedClock) -> TokenBuilder:
    """Return a builder using ``HS256`` with the test secret and clock."""
    return (
        TokenBuilder()
        .with_algorithm("HS256")
        .with_secret(TEST_SECRET)
        .with_clock(clock)
    )
