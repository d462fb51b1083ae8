"""
Continuous listening session for the CareAlert listener.

Capture primitives of the speech-recognizer kind end on their own
(silence, timeouts, platform policy) and refuse a second ``start`` while
running.  :class:`ListeningSession` wraps one such source in an explicit
state machine so the rest of the system sees an always-on listener::

    IDLE → STARTING → LISTENING → (RECOGNIZED | ERRED) → ENDING → IDLE
                                                  teardown → TORN_DOWN

Guards
------
* ``start`` only leaves ``IDLE``; in any other state it is a no-op.
* Every end notification schedules the delayed restart, including one
  for a run that ended before it ever activated.  The timer re-checks
  liveness when it fires, so a run that activated meanwhile is left alone.
* Errors never restart inline; the restart always goes through the end
  notification, one pending restart timer at most.
* After teardown nothing is scheduled and late callbacks are ignored.

All timers are ``asyncio.TimerHandle`` objects owned by the session and
cancelled on overlap and on teardown.
"""

from __future__ import annotations

import asyncio
import enum
from collections.abc import Callable
from typing import Protocol

import structlog

from ca_common.errors import CaptureError, UnsupportedEnvironment
from ca_common.models.alert import AlertSubmission
from ca_common.models.trigger import Trigger
from ca_common.timers import TimedIndicator
from ca_common.utils import local_time_str

from listener.capture import CaptureSource
from listener.matcher import CommandMatcher, normalize

logger = structlog.get_logger()

RESTART_DELAY_S: float = 1.0
COMMAND_CLEAR_S: float = 3.0


class SessionState(str, enum.Enum):
    """Lifecycle states of a listening session."""

    IDLE = "idle"
    STARTING = "starting"
    LISTENING = "listening"
    RECOGNIZED = "recognized"
    ERRED = "erred"
    ENDING = "ending"
    TORN_DOWN = "torn_down"


class AlertSink(Protocol):
    """Anything that accepts fire-and-forget alert submissions."""

    def submit(self, submission: AlertSubmission) -> bool: ...


class ListeningSession:
    """Keep a capture source running indefinitely and turn speech into alerts.

    Args:
        source: The capture primitive to drive.
        sink: Where alert submissions go (normally a ``ConnectionManager``).
        matcher: Trigger matcher; defaults to the built-in table.
        restart_delay_s: Delay between an end notification and the restart.
        command_clear_s: How long the "last command" indicator stays up.
        clock: Returns the sender-local time string put in ``time``.

    Attributes:
        state: Current :class:`SessionState`.
        listening: Liveness flag; ``True`` while the source is capturing.
        error: Last error message shown to the user.
        last_command: Self-clearing "last command" indicator.
        liveness_transitions: How many times ``listening`` went ``True``.
    """

    def __init__(
        self,
        source: CaptureSource,
        sink: AlertSink,
        matcher: CommandMatcher | None = None,
        *,
        restart_delay_s: float = RESTART_DELAY_S,
        command_clear_s: float = COMMAND_CLEAR_S,
        clock: Callable[[], str] = local_time_str,
    ) -> None:
        self._source = source
        self._sink = sink
        self._matcher = matcher or CommandMatcher()
        self._clock = clock
        self.restart_delay_s = restart_delay_s
        self._restart_handle: asyncio.TimerHandle | None = None

        self.state = SessionState.IDLE
        self.listening = False
        self.error: str | None = None
        self.last_command: TimedIndicator[str] = TimedIndicator(command_clear_s)
        self.liveness_transitions = 0

        source.bind(self)

    @property
    def torn_down(self) -> bool:
        return self.state is SessionState.TORN_DOWN

    @property
    def restart_pending(self) -> bool:
        return self._restart_handle is not None

    # ── lifecycle ──

    def mount(self) -> None:
        """Start listening for the first time."""
        logger.info("listening_session_mounted", source=self._source.name)
        self.start()

    def start(self) -> None:
        """Begin a capture run unless one is already starting or running."""
        if self.state is not SessionState.IDLE:
            logger.debug("capture_start_skipped", state=self.state.value)
            return
        self.state = SessionState.STARTING
        try:
            self._source.start()
        except CaptureError as exc:
            # The source is still busy with a previous run; its end
            # notification will schedule the next attempt.
            logger.info("capture_start_rejected", reason=str(exc))
            self.state = SessionState.IDLE
        except UnsupportedEnvironment as exc:
            self.error = str(exc)
            logger.error("capture_unsupported", reason=str(exc))
            self.teardown()

    def teardown(self) -> None:
        """Stop capturing for good.  Idempotent."""
        if self.torn_down:
            return
        self.state = SessionState.TORN_DOWN
        self._cancel_restart()
        self.last_command.clear()
        self._set_listening(False)
        try:
            self._source.stop()
        except CaptureError as exc:
            logger.debug("capture_stop_failed", reason=str(exc))
        logger.info("listening_session_torn_down")

    # ── capture callbacks ──

    def on_start(self) -> None:
        if self.torn_down:
            return
        self.state = SessionState.LISTENING
        self._set_listening(True)
        logger.info("capture_listening")

    def on_result(self, text: str) -> None:
        if self.torn_down:
            return
        transcript = normalize(text)
        self.state = SessionState.RECOGNIZED
        matches = self._matcher.match(transcript)
        logger.info("capture_result", transcript=transcript, matches=len(matches))
        for trigger in matches:
            self._emit(trigger, transcript)
        if self.state is SessionState.RECOGNIZED:
            self.state = SessionState.LISTENING

    def on_error(self, reason: str) -> None:
        if self.torn_down:
            return
        self.state = SessionState.ERRED
        self.error = f"Capture error: {reason}. Please speak clearly or move somewhere quieter."
        logger.warning("capture_error", reason=reason)
        try:
            self._source.stop()
        except CaptureError as exc:
            logger.debug("capture_stop_failed", reason=str(exc))

    def on_end(self) -> None:
        if self.torn_down:
            return
        self.state = SessionState.ENDING
        self._set_listening(False)
        self._schedule_restart()

    # ── manual commands ──

    def trigger(self, keyword: str) -> bool:
        """Send the alert for *keyword* as if it had been spoken.

        Returns:
            ``True`` if *keyword* is in the trigger table.
        """
        found = self._matcher.lookup(keyword)
        if found is None:
            logger.warning("manual_trigger_unknown", keyword=keyword)
            return False
        self._emit(found, found.keyword)
        return True

    # ── internals ──

    def _emit(self, trigger: Trigger, transcript: str) -> None:
        self.last_command.show(trigger.label)
        submission = AlertSubmission(
            message=trigger.label,
            keyword=trigger.keyword,
            time=self._clock(),
            transcript=transcript,
        )
        sent = self._sink.submit(submission)
        logger.info("command_emitted", keyword=trigger.keyword, label=trigger.label, sent=sent)

    def _schedule_restart(self) -> None:
        self._cancel_restart()
        loop = asyncio.get_running_loop()
        self._restart_handle = loop.call_later(self.restart_delay_s, self._restart)

    def _cancel_restart(self) -> None:
        if self._restart_handle is not None:
            self._restart_handle.cancel()
            self._restart_handle = None

    def _restart(self) -> None:
        self._restart_handle = None
        if self.torn_down or self.listening or self.state is not SessionState.ENDING:
            return
        self.state = SessionState.IDLE
        self.start()

    def _set_listening(self, value: bool) -> None:
        if value and not self.listening:
            self.liveness_transitions += 1
        self.listening = value
