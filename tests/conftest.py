from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import pytest

from timecore import config
from timecore.clock import FixedClock, SystemClock, set_clock
from timecore.services.employee import InMemoryEmployeeDirectory, set_employee_directory

if TYPE_CHECKING:
    from collections.abc import Iterator

# Monday 2025-11-03, noon UTC. Every test sees this as "now".
NOW = datetime(2025, 11, 3, 12, 0, tzinfo=UTC)


@pytest.fixture(autouse=True)
def _fixed_clock() -> Iterator[FixedClock]:
    """Pin the library clock so future-time rules are deterministic."""
    clock = FixedClock(NOW)
    set_clock(clock)
    yield clock
    set_clock(SystemClock())


@pytest.fixture(autouse=True)
def _fresh_settings() -> Iterator[None]:
    """Drop cached settings so environment overrides in one test don't leak."""
    config._settings = None
    yield
    config._settings = None


@pytest.fixture(autouse=True)
def _fresh_employee_directory() -> Iterator[None]:
    set_employee_directory(InMemoryEmployeeDirectory())
    yield
    set_employee_directory(InMemoryEmployeeDirectory())
