"""
Voice trigger table for CareAlert.

A trigger maps a keyword substring to the alert label caregivers see.
Order matters: the listener scans triggers in table order and emits one
alert per matching entry.
"""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class Trigger(BaseModel):
    """A keyword → label pair.

    Attributes:
        keyword: Substring searched for in the (lower-cased) transcript.
        label: Alert message sent when the keyword is heard.
    """

    model_config = ConfigDict(frozen=True)

    keyword: str = Field(..., min_length=1)
    label: str = Field(..., min_length=1)


DEFAULT_TRIGGERS: tuple[Trigger, ...] = (
    Trigger(keyword="หนัก", label="ขอเข้าห้องน้ำ (ปวดหนัก)"),
    Trigger(keyword="เบา", label="ขอเข้าห้องน้ำ (ปวดเบา)"),
    Trigger(keyword="น้ำ", label="ขอดื่มน้ำ"),
    Trigger(keyword="ข้าว", label="ขออาหาร/หิวข้าว"),
    Trigger(keyword="ช่วยด้วย", label="ขอความช่วยเหลือเร่งด่วน"),
    Trigger(keyword="เจ็บ", label="ขอความช่วยเหลือ (เจ็บ)"),
    Trigger(keyword="ปวด", label="ขอความช่วยเหลือ (ปวด)"),
)

_TRIGGER_LIST = TypeAdapter(list[Trigger])


def load_triggers(path: str | Path) -> tuple[Trigger, ...]:
    """Load an ordered trigger table from a JSON file.

    The file holds a list of ``{"keyword": ..., "label": ...}`` objects.

    Raises:
        pydantic.ValidationError: If an entry is malformed.
        OSError: If the file cannot be read.
    """
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    return tuple(_TRIGGER_LIST.validate_python(raw))
