"""Models representing a single chat turn and its attachments."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field, field_validator, model_validator

from .enums import EntryKind, MessageRole


def as_utc(value: datetime) -> datetime:
    """Treat naive timestamps as UTC so stored values always compare."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Attachment(BaseModel):
    """Reference to binary content shared in a conversation.

    The chat core never reads the bytes behind ``uri``; it only records
    where the presentation layer can find them (a file path, an object
    URL or a data URL preview) together with display metadata.
    """

    uri: str | None = None
    name: str | None = None
    size: int | None = Field(default=None, ge=0)
    mime_type: str | None = None


class Entry(BaseModel):
    """Represents a single turn in a conversation.

    Each entry is authored by exactly one role and records when it was
    created.  ``kind`` tells the presentation layer how the user produced
    it (typed text, a sticker, a voice recording or a shared file).
    ``is_streaming`` is only true for the assistant entry currently being
    filled by an in-flight completion; ``contains_code`` flags content in
    which a code fence has appeared.
    """

    id: str
    role: MessageRole
    kind: EntryKind = EntryKind.TEXT
    content: str = ""
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    attachment: Attachment | None = None
    transcript: str | None = None
    contains_code: bool = False
    is_streaming: bool = False

    @field_validator("timestamp")
    def _timestamp_is_aware(cls, value: datetime) -> datetime:
        return as_utc(value)

    @model_validator(mode="after")
    def _check_streaming_role(self) -> "Entry":
        if self.is_streaming and self.role != MessageRole.ASSISTANT:
            raise ValueError("only assistant entries can be streaming")
        return self
