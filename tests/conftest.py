from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from pathlib import Path

import pytest

from work_timer.storage import Storage

TEST_DAY = date(2025, 11, 6)


class FakeClock:
    """Deterministic stand-in for ``work_timer.clock.now``."""

    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> None:
        self.current += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2025, 11, 6, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def storage(tmp_path: Path) -> Storage:
    return Storage(tmp_path / "data")


@pytest.fixture
def other_storage(tmp_path: Path) -> Storage:
    """A second handle on the same directory, standing in for another process."""
    return Storage(tmp_path / "data")
