"""Models representing a persisted conversation."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List

from pydantic import BaseModel, Field, field_validator

from .entry import Entry, as_utc

DEFAULT_TITLE = "New Chat"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Session(BaseModel):
    """Represents a titled conversation between a user and the assistant.

    ``entries`` holds the turns in conversation order and is never
    reordered.  ``title`` is derived from the first user entry; sessions
    that never received one keep :data:`DEFAULT_TITLE`.  ``updated_at``
    never moves backwards once the session has been stored.
    """

    id: str = Field(..., description="Unique identifier for the session.")
    title: str = Field(default=DEFAULT_TITLE, description="Human-readable session title.")
    entries: List[Entry] = Field(
        default_factory=list,
        description="Chronological list of entries in the session.",
    )
    created_at: datetime = Field(
        default_factory=_utc_now,
        description="Timestamp when the session was created (UTC).",
    )
    updated_at: datetime = Field(
        default_factory=_utc_now,
        description="Timestamp when the session was last updated (UTC).",
    )

    @field_validator("created_at", "updated_at")
    def _timestamps_are_aware(cls, value: datetime) -> datetime:
        return as_utc(value)

    @property
    def entry_count(self) -> int:
        return len(self.entries)

    def summary(self) -> "SessionSummary":
        """Return the list-view projection of this session."""
        preview = None
        for entry in reversed(self.entries):
            if entry.content:
                preview = entry.content[:200]
                break
        return SessionSummary(
            id=self.id,
            title=self.title,
            created_at=self.created_at,
            updated_at=self.updated_at,
            entry_count=self.entry_count,
            preview=preview,
        )


class SessionSummary(BaseModel):
    """Lightweight view of a session for history lists."""

    id: str
    title: str
    created_at: datetime
    updated_at: datetime
    entry_count: int = 0
    preview: str | None = None
