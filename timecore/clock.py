"""Injectable time source.

Domain code asks the clock for "now" instead of calling ``datetime.now()``,
so future-time invariants are deterministic under test.
"""

from __future__ import annotations

from datetime import UTC, date, datetime
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Interface for the current time."""

    def now(self) -> datetime:
        """Return the current timezone-aware time."""
        ...


class SystemClock:
    """Wall-clock time in UTC."""

    def now(self) -> datetime:
        return datetime.now(UTC)


class FixedClock:
    """Clock frozen at a given instant."""

    def __init__(self, at: datetime) -> None:
        if at.tzinfo is None:
            msg = "FixedClock requires a timezone-aware datetime"
            raise ValueError(msg)
        self._at = at

    def now(self) -> datetime:
        return self._at


_clock: Clock = SystemClock()


def get_clock() -> Clock:
    """Return the active clock."""
    return _clock


def set_clock(clock: Clock) -> None:
    """Override the clock (for testing or replay)."""
    global _clock
    _clock = clock


def now() -> datetime:
    return _clock.now()


def today() -> date:
    return _clock.now().astimezone(UTC).date()
