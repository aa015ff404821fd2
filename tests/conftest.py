"""Pytest configuration and shared fixtures."""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


class FakeClock:
    """Manually advanced UTC clock for window tests."""

    def __init__(self, start: datetime = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float = 0, minutes: float = 0, hours: float = 0) -> None:
        self.now += timedelta(seconds=seconds, minutes=minutes, hours=hours)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    from src.settings import Settings

    return Settings(_env_file=None)


@pytest.fixture
def gateway(settings, clock):
    from src.control_plane.gateway import create_gateway

    gw = create_gateway(settings=settings, clock=clock)
    yield gw
    gw.close()
