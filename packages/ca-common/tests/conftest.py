"""Shared fixtures for ca-common tests."""

from __future__ import annotations

import asyncio
from collections.abc import Callable

import pytest

from ca_common.models.envelope import EventName, encode


class FakeSocket:
    """In-memory stand-in for a ``websockets`` client connection."""

    def __init__(self) -> None:
        self.sent: list[str] = []
        self.closed = False
        self._inbox: asyncio.Queue[str | None] = asyncio.Queue()

    async def send(self, frame: str) -> None:
        self.sent.append(frame)

    async def close(self) -> None:
        self.closed = True
        self._inbox.put_nowait(None)

    def push(self, event: EventName | str, data=None) -> None:
        self._inbox.put_nowait(encode(event, data))

    def push_raw(self, raw: str) -> None:
        self._inbox.put_nowait(raw)

    def drop(self) -> None:
        """Simulate the server going away."""
        self._inbox.put_nowait(None)

    def __aiter__(self) -> FakeSocket:
        return self

    async def __anext__(self) -> str:
        item = await self._inbox.get()
        if item is None:
            raise StopAsyncIteration
        return item


class ScriptedConnector:
    """Connector returning queued outcomes: a socket, or an exception to raise."""

    def __init__(self, *outcomes: object) -> None:
        self.outcomes = list(outcomes)
        self.calls = 0

    async def __call__(self, url: str) -> FakeSocket:
        self.calls += 1
        outcome = self.outcomes.pop(0) if self.outcomes else OSError("connection refused")
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome  # type: ignore[return-value]


@pytest.fixture()
def fake_socket() -> Callable[[], FakeSocket]:
    return FakeSocket


@pytest.fixture()
def scripted() -> type[ScriptedConnector]:
    return ScriptedConnector


async def wait_until(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
    """Poll *predicate* on the event loop until it holds."""
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.005)


@pytest.fixture()
def until() -> Callable[..., object]:
    return wait_until
