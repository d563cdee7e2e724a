"""Shared fixtures: a controllable clock."""

import pytest
from datetime import datetime, timedelta


class FakeClock:
    """Callable stand-in for datetime.now that only moves when told to."""

    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)

    def set(self, hour: int, minute: int = 0) -> None:
        self.current = self.current.replace(hour=hour, minute=minute, second=0)


@pytest.fixture
def clock():
    # Monday, midday
    return FakeClock(datetime(2024, 1, 1, 12, 0, 0))
