"""Default clock for claims validation."""

from __future__ import annotations

from datetime import datetime

from safir.datetime import current_datetime

__all__ = ["UtcClock"]


class UtcClock:
    """Clock returning the current time in UTC with second resolution.

    Token time claims are whole seconds, so microseconds are dropped to keep
    comparisons against them exact.
    """

    def now(self) -> datetime:
        return current_datetime()
