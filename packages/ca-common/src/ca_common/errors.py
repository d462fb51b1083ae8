"""
Error taxonomy for CareAlert.

Every error is contained at the component boundary where it occurs; none
of these is allowed to take down the relay or a listening session.
"""

from __future__ import annotations


class CareAlertError(Exception):
    """Base class for all CareAlert errors."""


class InvalidAlert(CareAlertError):
    """An inbound submission is missing ``message``, ``keyword`` or ``time``."""

    def __init__(self, reason: str = "Invalid alert data") -> None:
        super().__init__(reason)
        self.reason = reason


class TransportError(CareAlertError):
    """Connection-level failure between a client and the relay."""


class CaptureError(CareAlertError):
    """The listening primitive reported an error mid-session."""


class UnsupportedEnvironment(CareAlertError):
    """The capture or speech-output primitive is unavailable on this host."""
