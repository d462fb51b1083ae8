"""
Tests for the relay connection manager.

Validates fixed-delay reconnection with an attempt cap, fire-and-forget
sends that drop while disconnected, inbound event dispatch and teardown.
"""

from __future__ import annotations

import json
from unittest.mock import MagicMock

from structlog.testing import capture_logs

from ca_common.messaging.connection import (
    CONNECTED_BANNER,
    DEFAULT_DELAY_S,
    DEFAULT_MAX_ATTEMPTS,
    ConnectionManager,
)
from ca_common.models.alert import AlertSubmission
from ca_common.models.envelope import EventName

_SUBMISSION = AlertSubmission(message="ขอดื่มน้ำ", keyword="น้ำ", time="13:00:00", transcript="น้ำ")


def _manager(connector, **kwargs) -> ConnectionManager:
    kwargs.setdefault("delay_s", 0)
    return ConnectionManager("ws://relay.test/ws", connector=connector, **kwargs)


class TestDefaults:

    def test_policy_defaults(self) -> None:
        assert DEFAULT_MAX_ATTEMPTS == 5
        assert DEFAULT_DELAY_S == 1.0


class TestConnect:

    async def test_connects_and_shows_banner(self, scripted, fake_socket, until) -> None:
        sock = fake_socket()
        conn = _manager(scripted(sock))
        conn.status.delay_s = 0.02
        async with conn:
            await until(lambda: conn.connected)
            assert conn.error is None
            assert conn.status.value == CONNECTED_BANNER
            await until(lambda: conn.status.value is None)
            assert conn.connected

    async def test_retries_then_connects(self, scripted, fake_socket, until) -> None:
        connector = scripted(OSError("refused"), OSError("refused"), fake_socket())
        async with _manager(connector) as conn:
            await until(lambda: conn.connected)
            assert connector.calls == 3
            assert conn.error is None

    async def test_connect_error_is_displayed(self, scripted, until) -> None:
        connector = scripted(OSError("refused"))
        conn = _manager(connector, delay_s=10)
        async with conn:
            await until(lambda: conn.error is not None)
            assert "refused" in conn.error
            assert not conn.connected

    async def test_gives_up_after_cap(self, scripted, until) -> None:
        connector = scripted()
        conn = _manager(connector, max_attempts=3)
        conn.open()
        await conn.wait_closed()
        assert conn.gave_up
        assert connector.calls == 3
        assert not conn.connected
        assert "connection refused" in conn.error
        await conn.close()

    async def test_reconnects_after_drop(self, scripted, fake_socket, until) -> None:
        first, second = fake_socket(), fake_socket()
        connector = scripted(first, second)
        async with _manager(connector) as conn:
            await until(lambda: conn.connected)
            first.drop()
            await until(lambda: connector.calls == 2 and conn.connected)
            assert conn.submit(_SUBMISSION)
            await until(lambda: len(second.sent) == 1)
            assert first.sent == []


class TestSend:

    async def test_submit_sends_alert_frame(self, scripted, fake_socket, until) -> None:
        sock = fake_socket()
        async with _manager(scripted(sock)) as conn:
            await until(lambda: conn.connected)
            assert conn.submit(_SUBMISSION) is True
            await until(lambda: len(sock.sent) == 1)
        frame = json.loads(sock.sent[0])
        assert frame == {
            "event": "alert",
            "data": {"message": "ขอดื่มน้ำ", "keyword": "น้ำ", "time": "13:00:00", "transcript": "น้ำ"},
        }

    async def test_submit_dropped_when_disconnected(self, scripted) -> None:
        conn = _manager(scripted(), delay_s=10)
        assert conn.submit(_SUBMISSION) is False

    async def test_ping_frame(self, scripted, fake_socket, until) -> None:
        sock = fake_socket()
        async with _manager(scripted(sock)) as conn:
            await until(lambda: conn.connected)
            conn.ping()
            await until(lambda: len(sock.sent) == 1)
        assert json.loads(sock.sent[0]) == {"event": "ping"}


class TestInbound:

    async def test_events_dispatched(self, scripted, fake_socket, until) -> None:
        sock = fake_socket()
        on_init, on_alert = MagicMock(), MagicMock()
        async with _manager(scripted(sock)) as conn:
            conn.on(EventName.INIT, on_init)
            conn.on("alert", on_alert)
            await until(lambda: conn.connected)
            sock.push(EventName.INIT, [])
            sock.push(EventName.ALERT, {"message": "m"})
            await until(lambda: on_alert.called)
        on_init.assert_called_once_with([])
        on_alert.assert_called_once_with({"message": "m"})

    async def test_malformed_and_failing_handlers_contained(
        self, scripted, fake_socket, until
    ) -> None:
        sock = fake_socket()
        boom = MagicMock(side_effect=RuntimeError("boom"))
        after = MagicMock()
        async with _manager(scripted(sock)) as conn:
            conn.on(EventName.ALERT, boom)
            conn.on(EventName.PONG, after)
            await until(lambda: conn.connected)
            with capture_logs() as logs:
                sock.push_raw("{not json")
                sock.push(EventName.ALERT, {"message": "m"})
                sock.push(EventName.PONG)
                await until(lambda: after.called)
            assert conn.connected
            assert conn.submit(_SUBMISSION)
            await until(lambda: len(sock.sent) == 1)
        (failure,) = [e for e in logs if e["event"] == "relay_handler_failed"]
        assert failure["frame_event"] == "alert"


class TestClose:

    async def test_close_closes_socket(self, scripted, fake_socket, until) -> None:
        sock = fake_socket()
        conn = _manager(scripted(sock))
        conn.open()
        await until(lambda: conn.connected)
        await conn.close()
        assert sock.closed
        assert not conn.connected
        assert conn.submit(_SUBMISSION) is False

    async def test_close_cancels_pending_reconnects(self, scripted) -> None:
        connector = scripted()
        conn = _manager(connector, delay_s=10)
        conn.open()
        await conn.close()
        calls = connector.calls
        assert calls <= 1
        assert not conn.gave_up
