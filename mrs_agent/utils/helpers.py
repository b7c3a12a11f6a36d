"""General helper functions used across the chat core."""

from __future__ import annotations

import math
import re
import time

from ..models.session import DEFAULT_TITLE

CODE_FENCE = "```"

IMAGE_TYPES = frozenset({"image/jpeg", "image/png", "image/gif", "image/webp"})
DOCUMENT_TYPES = frozenset(
    {
        "application/pdf",
        "text/plain",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    }
)
CODE_TYPES = frozenset(
    {
        "text/javascript",
        "text/typescript",
        "text/html",
        "text/css",
        "application/json",
        "text/markdown",
    }
)
_SUPPORTED_EXTENSIONS = re.compile(
    r"\.(txt|md|js|ts|jsx|tsx|html|css|json|py|java|cpp|c|php|rb|go|rs|swift|kt)$",
    re.IGNORECASE,
)
_SIZE_UNITS = ("Bytes", "KB", "MB", "GB")


def derive_title(text: str, word_limit: int = 4) -> str:
    """Build a session title from the leading words of ``text``.

    An ellipsis is appended when words were cut off.  Blank text yields
    the default title.
    """
    words = text.split()
    if not words:
        return DEFAULT_TITLE
    title = " ".join(words[:word_limit])
    if len(words) > word_limit:
        title += "..."
    return title


def contains_code(content: str) -> bool:
    return CODE_FENCE in content


def format_file_size(size: int) -> str:
    """Return a human-readable size such as ``"1.5 KB"``."""
    if size <= 0:
        return "0 Bytes"
    index = min(int(math.floor(math.log(size, 1024))), len(_SIZE_UNITS) - 1)
    value = round(size / math.pow(1024, index), 2)
    return f"{value:g} {_SIZE_UNITS[index]}"


def is_supported_file(name: str | None, mime_type: str | None) -> bool:
    """Return True for images, documents and code files."""
    if mime_type and mime_type in IMAGE_TYPES | DOCUMENT_TYPES | CODE_TYPES:
        return True
    return bool(name and _SUPPORTED_EXTENSIONS.search(name))


class IdGenerator:
    """Produce unique, increasing identifiers from the wall clock.

    Identifiers are millisecond timestamps rendered as strings.  When two
    are requested within the same millisecond the later one is bumped so
    ordering by identifier matches creation order.
    """

    def __init__(self) -> None:
        self._last = 0

    def __call__(self) -> str:
        candidate = time.time_ns() // 1_000_000
        if candidate <= self._last:
            candidate = self._last + 1
        self._last = candidate
        return str(candidate)
