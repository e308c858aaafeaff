from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from datetime import datetime, timedelta, timezone
import uuid

import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from config.settings import get_settings
from core import clock, database

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Stands in for clock.utcnow(); only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def frozen_clock(monkeypatch):
    fake = FrozenClock(T0)
    monkeypatch.setattr(clock, "utcnow", fake)
    return fake


@pytest.fixture
def mock_db(monkeypatch):
    db = AsyncMongoMockClient()["monitabits_test"]
    monkeypatch.setattr(database, "_db", db)
    return db


@pytest.fixture
def expiry_status(monkeypatch):
    """Switch the lockdown expiry variant for one test."""
    settings = get_settings()

    def _set(value: str):
        monkeypatch.setattr(settings, "LOCKDOWN_EXPIRY_STATUS", value)

    return _set


@pytest.fixture
def device_id():
    return str(uuid.uuid4())


@pytest.fixture
def client(mock_db, frozen_clock):
    from server import app
    return TestClient(app)


@pytest.fixture
def headers(device_id, frozen_clock):
    """Builds guard headers against the current fake time."""

    def _headers(skew: timedelta = timedelta(0), device: str | None = None) -> dict:
        return {
            "X-Device-Id": device or device_id,
            "X-Client-Time": (frozen_clock.now + skew).isoformat(),
        }

    return _headers
