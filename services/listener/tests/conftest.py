"""Shared fixtures for listener service tests."""

from __future__ import annotations

import pytest

from ca_common.errors import CaptureError
from ca_common.models.alert import AlertSubmission

from listener.capture import CaptureSource
from listener.session import ListeningSession


class FakeCaptureSource(CaptureSource):
    """Scriptable stand-in for a speech recognizer.

    Rejects ``start`` while running, like the real primitives, and counts
    overlapping start attempts.
    """

    name = "fake"

    def __init__(self) -> None:
        super().__init__()
        self.running = False
        self.start_calls = 0
        self.stop_calls = 0
        self.overlaps = 0
        self.fail_start: Exception | None = None

    def start(self) -> None:
        self.start_calls += 1
        if self.fail_start is not None:
            raise self.fail_start
        if self.running:
            self.overlaps += 1
            raise CaptureError("already started")
        self.running = True

    def stop(self) -> None:
        self.stop_calls += 1

    # ── platform simulation ──

    def activate(self) -> None:
        self.listener.on_start()

    def hear(self, text: str) -> None:
        self.listener.on_result(text)

    def fail(self, reason: str) -> None:
        self.listener.on_error(reason)

    def end(self) -> None:
        self.running = False
        self.listener.on_end()


class RecordingSink:
    """Collects submissions instead of sending them."""

    def __init__(self, accept: bool = True) -> None:
        self.accept = accept
        self.submissions: list[AlertSubmission] = []

    def submit(self, submission: AlertSubmission) -> bool:
        self.submissions.append(submission)
        return self.accept


RESTART_S = 0.02
CLEAR_S = 0.05


@pytest.fixture()
def source() -> FakeCaptureSource:
    return FakeCaptureSource()


@pytest.fixture()
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture()
def session(source: FakeCaptureSource, sink: RecordingSink) -> ListeningSession:
    return ListeningSession(
        source,
        sink,
        restart_delay_s=RESTART_S,
        command_clear_s=CLEAR_S,
        clock=lambda: "13:00:00",
    )
