from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from app.config import Settings
from app.domain.store import TokenStore
from app.main import create_app

T0 = datetime(2026, 10, 19, 12, 0, 0, tzinfo=UTC)


class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> TokenStore:
    return TokenStore(clock=clock)


@pytest.fixture
def app(store: TokenStore):
    return create_app(store=store, settings=Settings())


@pytest.fixture
def client(app) -> TestClient:
    with TestClient(app) as c:
        yield c
