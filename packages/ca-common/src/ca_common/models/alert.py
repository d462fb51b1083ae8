"""
Alert data models for CareAlert.

Two trust levels are kept apart on purpose:

* :class:`AlertSubmission`: what a sender is allowed to supply.
* :class:`AlertRecord`: a submission the relay has accepted and stamped
  with ``receivedAt`` and ``from``.  Only the relay creates these.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_serializer, field_validator

from ca_common.errors import InvalidAlert
from ca_common.utils import isoformat_z


class AlertSubmission(BaseModel):
    """A sender-supplied alert, prior to server stamping.

    Unknown fields (including client-sent ``receivedAt`` / ``from``) are
    dropped on parse.

    Attributes:
        message: Human-readable alert label.
        keyword: Trigger token that was matched.
        time: Sender-local timestamp; format is not validated.
        transcript: Raw recognized text that produced the match.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    message: str = Field(..., description="Human-readable alert label.")
    keyword: str = Field(..., description="Trigger token that was matched.")
    time: str = Field(..., description="Sender-local timestamp.")
    transcript: str | None = Field(default=None, description="Raw recognized text.")

    @field_validator("message", "keyword", "time")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        return value

    @classmethod
    def parse_payload(cls, payload: Any) -> AlertSubmission:
        """Validate a raw inbound payload.

        Args:
            payload: Decoded JSON value received from a connection.

        Returns:
            The validated submission.

        Raises:
            InvalidAlert: If *payload* is not an object or a required field
                is missing or empty.
        """
        if not isinstance(payload, dict):
            raise InvalidAlert()
        try:
            return cls.model_validate(payload)
        except ValidationError as exc:
            raise InvalidAlert() from exc

    def to_wire(self) -> dict[str, Any]:
        """Serialise for the ``alert`` event sent by a client."""
        return self.model_dump(exclude_none=True)


class AlertRecord(BaseModel):
    """A validated alert stamped by the relay.  Immutable.

    Attributes:
        message: Human-readable alert label.
        keyword: Trigger token that was matched.
        time: Sender-local timestamp as supplied.
        transcript: Raw recognized text, if supplied.
        received_at: Relay acceptance time (UTC), wire name ``receivedAt``.
        from_: Originating connection id, wire name ``from``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    message: str
    keyword: str
    time: str
    transcript: str | None = None
    received_at: datetime = Field(..., alias="receivedAt")
    from_: str = Field(..., alias="from")

    @field_serializer("received_at")
    def _serialize_received_at(self, value: datetime) -> str:
        return isoformat_z(value)

    @classmethod
    def stamp(
        cls,
        submission: AlertSubmission,
        *,
        connection_id: str,
        received_at: datetime,
    ) -> AlertRecord:
        """Build a record from an accepted *submission*."""
        return cls(
            message=submission.message,
            keyword=submission.keyword,
            time=submission.time,
            transcript=submission.transcript,
            received_at=received_at,
            from_=connection_id,
        )

    def to_wire(self) -> dict[str, Any]:
        """Serialise with camelCase wire names, omitting an absent transcript."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
