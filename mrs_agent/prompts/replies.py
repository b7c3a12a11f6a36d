"""Canned assistant replies for turns that never reach the model."""

from __future__ import annotations

import random
from typing import Callable, Sequence

STICKER_REPLY_TEMPLATES = (
    "Nice sticker! {glyph} I love the energy! 😊 What can I help you with today?",
    "{glyph} That's a great way to start our conversation! How can I assist you? ✨",
    "I see you're feeling {glyph}! What would you like to explore together? 🚀",
    "{glyph} Love it! Ready to dive into some interesting topics? 💡",
)

VOICE_ACKNOWLEDGEMENT = (
    "🎤 I received your voice message! While I can't process audio directly yet, "
    "if you could type your question, I'd be happy to help! 😊"
)

FILE_ACKNOWLEDGEMENT = (
    "📎 I can see you've shared \"{name}\"! While I can't directly process files yet, "
    "I can help you with questions about the content if you describe what you need "
    "assistance with! 🤔✨"
)

ERROR_REPLY = (
    "😔 I apologize, but Mr S Agent encountered an error while processing your request: "
    "{reason}. Please try again! 🔄"
)

ReplySelector = Callable[[Sequence[str]], str]


def make_reply_selector(seed: int | None = None) -> ReplySelector:
    """Return a selector picking one template at random.

    A fixed ``seed`` makes the sequence of picks reproducible.
    """
    rng = random.Random(seed)
    return rng.choice


def sticker_reply(glyph: str, selector: ReplySelector) -> str:
    return selector(STICKER_REPLY_TEMPLATES).format(glyph=glyph)


def file_acknowledgement(name: str) -> str:
    return FILE_ACKNOWLEDGEMENT.format(name=name)


def error_reply(reason: str) -> str:
    return ERROR_REPLY.format(reason=reason or "Unknown error occurred")
