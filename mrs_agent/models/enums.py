"""Enumerations used across models."""

from enum import Enum


class MessageRole(str, Enum):
    """Enum for message roles in a conversation.

    ``USER`` denotes a human entry and ``ASSISTANT`` a reply produced by
    the model or by a canned acknowledgement.  ``SYSTEM`` only appears in
    completion requests, never in a stored entry.
    """

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class EntryKind(str, Enum):
    """Enum describing what a user authored for frontend rendering."""

    TEXT = "text"
    STICKER = "sticker"
    VOICE = "voice"
    FILE = "file"


class ConversationState(str, Enum):
    """Lifecycle state of the active conversation."""

    IDLE = "idle"
    AWAITING_COMPLETION = "awaiting_completion"
