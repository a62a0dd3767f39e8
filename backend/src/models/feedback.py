"""Feedback data models."""

import time
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def epoch_millis() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an ISO-8601 timestamp, assuming UTC when no offset is given.

    Returns None for missing or unparseable values.
    """
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


class FeedbackRecord(BaseModel):
    """Feedback record as written to the store by the upstream bot.

    Records are append-only and never modified after creation. The wire and
    storage form keeps the upstream camelCase keys plus the store metadata
    (``_rid``, ``_self``, ``_etag``, ``_attachments``, ``_ts``); unknown keys
    are carried through untouched.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    id: str = Field(..., min_length=1, description="Unique record identifier")
    user_id: str = Field("", alias="userId")
    user_name: str = Field("", alias="userName")
    user_email: str = Field("", alias="userEmail")
    feedback_text: str = Field("", alias="feedbackText")
    created_at: str = Field(..., alias="createdAt", description="ISO-8601 timestamp")

    # Store metadata
    rid: str | None = Field(None, alias="_rid")
    self_link: str | None = Field(None, alias="_self")
    etag: str | None = Field(None, alias="_etag")
    attachments: str | None = Field(None, alias="_attachments")
    ts: int | None = Field(
        None, alias="_ts", description="Store sequence number in epoch milliseconds"
    )

    @property
    def created_datetime(self) -> datetime | None:
        """createdAt as an aware datetime, or None if it cannot be parsed."""
        return parse_timestamp(self.created_at)

    @property
    def sequence(self) -> int | None:
        """Watermark value for this record.

        Uses the store sequence number, falling back to createdAt in epoch
        milliseconds for records written without one.
        """
        if self.ts is not None:
            return self.ts
        created = self.created_datetime
        if created is None:
            return None
        return int(created.timestamp() * 1000)

    def to_wire(self) -> dict[str, Any]:
        """Serialize with the upstream key names."""
        return self.model_dump(by_alias=True, exclude_none=True)


class StreamEventType(str, Enum):
    """Event shapes emitted on the feedback stream."""

    CONNECTED = "connected"
    NEW_FEEDBACK = "new_feedback"
    ERROR = "error"


class StreamEvent(BaseModel):
    """A single event on the feedback stream."""

    type: StreamEventType
    timestamp: int = Field(default_factory=epoch_millis)
    message: str | None = None
    data: list[FeedbackRecord] | None = None

    @classmethod
    def connected(cls) -> "StreamEvent":
        return cls(
            type=StreamEventType.CONNECTED, message="Connected to feedback stream"
        )

    @classmethod
    def new_feedback(cls, records: list[FeedbackRecord]) -> "StreamEvent":
        return cls(type=StreamEventType.NEW_FEEDBACK, data=list(records))

    @classmethod
    def error(cls, message: str) -> "StreamEvent":
        return cls(type=StreamEventType.ERROR, message=message)

    def to_wire(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"type": self.type.value}
        if self.message is not None:
            payload["message"] = self.message
        if self.data is not None:
            payload["data"] = [record.to_wire() for record in self.data]
        payload["timestamp"] = self.timestamp
        return payload
