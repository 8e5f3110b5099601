"""
Shared pytest fixtures for SessionKeeper tests.
"""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from sessionkeeper.main_app import create_app
from sessionkeeper.services.sessions import SessionStore


class FakeClock:
    """Controllable replacement for the store's wall clock."""

    def __init__(self, now: datetime | None = None):
        self.now = now or datetime.now(timezone.utc).replace(microsecond=0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return SessionStore(clock=clock)


@pytest.fixture
def app(store):
    return create_app(store=store, admin_enabled=True)


@pytest.fixture
def client(app):
    return TestClient(app)
