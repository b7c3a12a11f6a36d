"""Error taxonomy and error handling utilities.

Every error raised by the chat core derives from :class:`ChatError` so
callers in the presentation layer can catch a single base class.  The
subclasses mirror the points where a turn can fail: caller input,
model selection, the initial HTTP request, the response stream, session
lookup and durable storage.
"""

from __future__ import annotations

from functools import wraps
from typing import Any, Callable, TypeVar

from loguru import logger

T = TypeVar("T")


class ChatError(Exception):
    """Base class for every failure raised by the chat core."""

    pass


class ValidationError(ChatError):
    """Raised when caller input is rejected before any state change."""

    pass


class NoWorkingModelError(ChatError):
    """Raised when every candidate model was rejected by the remote service."""

    def __init__(self, candidates: list[str] | tuple[str, ...] = ()) -> None:
        self.candidates = list(candidates)
        super().__init__("No working model found")


class TransportError(ChatError):
    """Raised when the initial completion request is rejected or cannot be sent.

    ``status_code`` is ``None`` when the request never reached the server
    (connection refused, DNS failure, timeout before a response).
    """

    def __init__(self, message: str, *, status_code: int | None = None, body: str = "") -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class StreamReadError(ChatError):
    """Raised when a response stream terminates abnormally mid-read."""

    pass


class NotFoundError(ChatError):
    """Raised when a session lookup misses."""

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__(f"Session {session_id} not found")


class PersistenceError(ChatError):
    """Raised by the storage layer when a durable read or write fails.

    Never fatal: callers log it and keep their in-memory state.
    """

    pass


def handle_persistence_error(func: Callable[..., T]) -> Callable[..., T | None]:
    """Decorator that logs a :class:`PersistenceError` and returns ``None``.

    Durable storage is advisory for the chat core, so a failed write must
    not interrupt the operation that triggered it.  Other exceptions
    propagate unchanged.
    """

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> T | None:
        try:
            return func(*args, **kwargs)
        except PersistenceError as exc:
            logger.warning("Persistence failed in {}: {}", func.__name__, exc)
            return None

    return wrapper
