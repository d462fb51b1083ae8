"""Shared fixtures for dashboard tests."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from dashboard.feed import AlertFeed
from dashboard.notifier import Notifier


@pytest.fixture()
def notifier() -> MagicMock:
    return MagicMock(spec=Notifier)


@pytest.fixture()
def feed(notifier: MagicMock) -> AlertFeed:
    return AlertFeed(notifier, alert_toast_s=0.03, test_toast_s=0.02)


def make_record(message: str = "ขอดื่มน้ำ", *, transcript: str | None = "ขอน้ำ", seq: int = 0) -> dict:
    record = {
        "message": message,
        "keyword": "น้ำ",
        "time": "13:00:00",
        "receivedAt": f"2026-01-01T13:00:{seq:02d}.000Z",
        "from": "conn-1",
    }
    if transcript is not None:
        record["transcript"] = transcript
    return record


@pytest.fixture()
def record_factory():
    return make_record
