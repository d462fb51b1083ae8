"""Shared fixtures for relay service tests."""

from __future__ import annotations

import os
from collections.abc import Iterator
from datetime import datetime, timedelta, timezone
from typing import Any
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from ca_common.config import Settings

from relay.hub import RelayHub
from relay.main import create_app


@pytest.fixture(autouse=True)
def _clean_env() -> Iterator[None]:
    """Keep CA_ variables from the host environment out of the tests."""
    env = {k: v for k, v in os.environ.items() if not k.startswith("CA_")}
    with patch.dict(os.environ, env, clear=True):
        yield


class FakeClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, 13, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + timedelta(seconds=1)
        return current


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def hub(clock: FakeClock) -> RelayHub:
    return RelayHub(capacity=100, clock=clock)


@pytest.fixture()
def make_socket():
    """Factory for fake connections exposing ``send_text``."""

    def _make() -> AsyncMock:
        ws = AsyncMock()
        ws.send_text = AsyncMock()
        return ws

    return _make


@pytest.fixture()
def water_payload() -> dict[str, Any]:
    return {"message": "ขอดื่มน้ำ", "keyword": "น้ำ", "time": "13:00:00"}


@pytest.fixture()
def dev_settings() -> Settings:
    return Settings(production=False)


@pytest.fixture()
def client(dev_settings: Settings) -> Iterator[TestClient]:
    with TestClient(create_app(dev_settings)) as c:
        yield c
