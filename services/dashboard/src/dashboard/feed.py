"""
Alert feed for the CareAlert dashboard.

Holds the caregiver's newest-first list of alerts and the transient toast
line.  The relay's ``init`` event replaces the feed; every ``alert`` event
is prepended and raised as a toast.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import structlog
from pydantic import ValidationError

from ca_common.models.alert import AlertRecord
from ca_common.timers import TimedIndicator
from ca_common.utils import isoformat_z, utc_now

from dashboard.notifier import LoggingNotifier, Notifier

logger = structlog.get_logger()

ALERT_TOAST_S: float = 3.5
TEST_TOAST_S: float = 2.5
TEST_ALERT_TEXT = "ทดสอบการแจ้งเตือน"


def toast_text(record: AlertRecord) -> str:
    """Render the toast line for *record*: ``message (transcript)``."""
    if record.transcript:
        return f"{record.message} ({record.transcript})"
    return record.message


class AlertFeed:
    """Newest-first alert list plus a self-clearing toast.

    Args:
        notifier: Receives every alert pushed by the relay.
        alert_toast_s: Lifetime of the toast raised by an alert.
        test_toast_s: Lifetime of the toast raised by :meth:`test_alert`.
        on_toast: Called with the toast text when it changes.
    """

    def __init__(
        self,
        notifier: Notifier | None = None,
        *,
        alert_toast_s: float = ALERT_TOAST_S,
        test_toast_s: float = TEST_TOAST_S,
        on_toast: Callable[[str | None], None] | None = None,
    ) -> None:
        self.notifier = notifier or LoggingNotifier()
        self.alert_toast_s = alert_toast_s
        self.test_toast_s = test_toast_s
        self.alerts: list[AlertRecord] = []
        self.toast: TimedIndicator[str] = TimedIndicator(alert_toast_s, on_change=on_toast)

    def __len__(self) -> int:
        return len(self.alerts)

    def handle_init(self, data: Any) -> None:
        """Replace the feed with the relay's recent-history snapshot."""
        if not isinstance(data, list):
            logger.warning("feed_init_malformed")
            return
        records = [r for r in (self._parse(item) for item in data) if r is not None]
        self.alerts = records
        logger.info("feed_initialized", alerts=len(records))

    def handle_alert(self, data: Any) -> None:
        """Prepend a live alert, raise its toast and notify the caregiver."""
        record = self._parse(data)
        if record is None:
            return
        self.alerts.insert(0, record)
        self.toast.show(toast_text(record), self.alert_toast_s)
        self.notifier.notify(record)

    def test_alert(self) -> None:
        """Exercise the notification path without involving the relay."""
        self.notifier.announce(TEST_ALERT_TEXT)
        self.toast.show(TEST_ALERT_TEXT, self.test_toast_s)

    def clear(self) -> None:
        """Empty the local feed.  The relay history is untouched."""
        self.alerts.clear()

    def close(self) -> None:
        self.toast.clear()

    @staticmethod
    def _parse(data: Any) -> AlertRecord | None:
        if not isinstance(data, dict):
            logger.warning("feed_alert_malformed")
            return None
        # Older relays may omit the stamps; fall back to local receipt time.
        payload = {"receivedAt": isoformat_z(utc_now()), "from": "", **data}
        try:
            return AlertRecord.model_validate(payload)
        except ValidationError as exc:
            logger.warning("feed_alert_malformed", errors=exc.error_count())
            return None
