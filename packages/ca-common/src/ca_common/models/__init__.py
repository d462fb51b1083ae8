"""
Shared Pydantic data models for CareAlert.

This package contains the cross-service models: alert submissions and
records, the WebSocket envelope, and the voice trigger table.
"""

from ca_common.models.alert import AlertRecord, AlertSubmission
from ca_common.models.envelope import Envelope, EventName, decode, encode
from ca_common.models.trigger import DEFAULT_TRIGGERS, Trigger, load_triggers

__all__ = [
    "DEFAULT_TRIGGERS",
    "AlertRecord",
    "AlertSubmission",
    "Envelope",
    "EventName",
    "Trigger",
    "decode",
    "encode",
    "load_triggers",
]
