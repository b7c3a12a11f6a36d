"""Prompt text and canned replies used by the conversation controller."""

from .replies import (  # noqa: F401
    STICKER_REPLY_TEMPLATES,
    ReplySelector,
    error_reply,
    file_acknowledgement,
    make_reply_selector,
    sticker_reply,
)
from .system import SYSTEM_PROMPT  # noqa: F401
