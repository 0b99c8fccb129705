"""
Pytest configuration and shared fixtures.
"""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from zoneinfo import ZoneInfo

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from core.database import KeyValueStore  # noqa: E402
from core.event_bus import EventBus  # noqa: E402
from models.events import ShiftEvent  # noqa: E402
from services.storage import ToolbarStorage  # noqa: E402

NEW_YORK = ZoneInfo("America/New_York")


class FrozenClock:
    """Callable clock returning a settable aware UTC datetime."""

    def __init__(self, now: datetime):
        self.now = now.astimezone(timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def set(self, now: datetime) -> None:
        self.now = now.astimezone(timezone.utc)

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeMonotonic:
    def __init__(self, start: float = 1000.0):
        self.value = start

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


def make_shift(title: str, start: datetime, hours: float = 1.0) -> ShiftEvent:
    return ShiftEvent(title=title, start=start, end=start + timedelta(hours=hours))


@pytest.fixture
def tz():
    return NEW_YORK


@pytest.fixture
def clock():
    """2025-11-07 10:00 in New York (15:00 UTC)."""
    return FrozenClock(datetime(2025, 11, 7, 10, 0, tzinfo=NEW_YORK))


@pytest.fixture
def monotonic():
    return FakeMonotonic()


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def store(tmp_path):
    kv = KeyValueStore(tmp_path / "toolbar.db")
    yield kv
    kv.close()


@pytest.fixture
def storage(store, tz, clock, monotonic):
    return ToolbarStorage(store, tz, clock, monotonic)
