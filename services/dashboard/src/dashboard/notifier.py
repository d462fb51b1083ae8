"""
Caregiver notification hooks for the CareAlert dashboard.

The dashboard hands every received alert to a :class:`Notifier`.  Sound
playback and speech output are host-specific and live outside this
package; the default implementation writes the alert to the log, at a
level chosen by the alert's urgency group.
"""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod

import structlog

from ca_common.models.alert import AlertRecord

logger = structlog.get_logger()


class Urgency(str, enum.Enum):
    """Urgency groups caregivers triage alerts by."""

    URGENT = "urgent"
    TOILET = "toilet"
    WATER = "water"
    FOOD = "food"
    OTHER = "other"


LABEL_URGENCY: dict[str, Urgency] = {
    "ขอความช่วยเหลือเร่งด่วน": Urgency.URGENT,
    "ขอความช่วยเหลือ (เจ็บ)": Urgency.URGENT,
    "ขอความช่วยเหลือ (ปวด)": Urgency.URGENT,
    "ขอเข้าห้องน้ำ (ปวดหนัก)": Urgency.TOILET,
    "ขอเข้าห้องน้ำ (ปวดเบา)": Urgency.TOILET,
    "ขอดื่มน้ำ": Urgency.WATER,
    "ขออาหาร/หิวข้าว": Urgency.FOOD,
}

_LOG_METHOD: dict[Urgency, str] = {
    Urgency.URGENT: "error",
    Urgency.TOILET: "warning",
    Urgency.WATER: "info",
    Urgency.FOOD: "info",
    Urgency.OTHER: "warning",
}


def urgency_for(record: AlertRecord) -> Urgency:
    """Group *record* by its label; unknown labels are ``OTHER``."""
    return LABEL_URGENCY.get(record.message, Urgency.OTHER)


class Notifier(ABC):
    """Base class for alert notification back-ends."""

    @abstractmethod
    def notify(self, record: AlertRecord) -> None:
        """Announce a freshly received alert."""

    @abstractmethod
    def announce(self, text: str) -> None:
        """Announce free text (used by the test alert)."""


class LoggingNotifier(Notifier):
    """Notifier that only logs."""

    def notify(self, record: AlertRecord) -> None:
        urgency = urgency_for(record)
        log = getattr(logger, _LOG_METHOD[urgency])
        log(
            "caregiver_alert",
            urgency=urgency.value,
            message=record.message,
            keyword=record.keyword,
            time=record.time,
            transcript=record.transcript,
            sender=record.from_,
        )

    def announce(self, text: str) -> None:
        logger.info("caregiver_announcement", text=text)
