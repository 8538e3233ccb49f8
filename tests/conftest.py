"""Shared fixtures for stress target tests."""

from typing import List

import pytest
from fastapi.testclient import TestClient

from stresstarget import Settings, create_app
from stresstarget.load import MemoryHold


class RecordingSleep:
    """Stands in for asyncio.sleep; records delays instead of waiting."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def sleeper() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def settings() -> Settings:
    return Settings(seed=1234)


@pytest.fixture
def client(settings, sleeper) -> TestClient:
    return TestClient(create_app(settings, sleep=sleeper))


@pytest.fixture
def holds(monkeypatch) -> List[MemoryHold]:
    """Every MemoryHold the app acquires, in order."""
    acquired: List[MemoryHold] = []
    original = MemoryHold.acquire

    def tracking_acquire(self):
        acquired.append(self)
        return original(self)

    monkeypatch.setattr(MemoryHold, "acquire", tracking_acquire)
    return acquired
