"""Decoding of server-sent-event lines from a streaming completion.

Every line of the response body becomes a :class:`StreamEvent` with an
explicit kind, so the client loop and the tests can tell apart text to
forward, lines to tolerate and lines that end the stream.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"


class EventKind(str, Enum):
    CONTENT = "content"
    EMPTY = "empty"
    SKIP = "skip"
    DONE = "done"
    IGNORE = "ignore"
    FATAL = "fatal"


@dataclass(frozen=True, slots=True)
class StreamEvent:
    kind: EventKind
    text: str = ""
    raw: str = ""

    @property
    def is_terminal(self) -> bool:
        return self.kind in (EventKind.DONE, EventKind.FATAL)


def decode_event_line(line: str) -> StreamEvent:
    """Classify one line of an SSE body.

    - blank lines, ``:`` comments and non-``data`` fields are ``IGNORE``;
    - ``data: [DONE]`` is ``DONE``;
    - a ``data`` payload that is not valid JSON is ``SKIP`` (typically a
      line cut short by the transport);
    - a JSON payload with an ``error`` member is ``FATAL`` and carries
      the error message;
    - a JSON payload with ``choices[0].delta.content`` text is
      ``CONTENT``; any other JSON payload is ``EMPTY``.
    """
    stripped = line.strip()
    if not stripped.startswith(DATA_PREFIX):
        return StreamEvent(EventKind.IGNORE, raw=line)

    data = stripped[len(DATA_PREFIX) :].strip()
    if not data:
        return StreamEvent(EventKind.IGNORE, raw=line)
    if data == DONE_SENTINEL:
        return StreamEvent(EventKind.DONE, raw=line)

    try:
        payload = json.loads(data)
    except json.JSONDecodeError:
        return StreamEvent(EventKind.SKIP, raw=line)

    if not isinstance(payload, dict):
        return StreamEvent(EventKind.SKIP, raw=line)

    if payload.get("error"):
        return StreamEvent(EventKind.FATAL, text=_error_message(payload["error"]), raw=line)

    content = _delta_content(payload)
    if content:
        return StreamEvent(EventKind.CONTENT, text=content, raw=line)
    return StreamEvent(EventKind.EMPTY, raw=line)


def _delta_content(payload: dict[str, Any]) -> str:
    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices:
        return ""
    first = choices[0]
    if not isinstance(first, dict):
        return ""
    delta = first.get("delta")
    if not isinstance(delta, dict):
        return ""
    content = delta.get("content")
    return content if isinstance(content, str) else ""


def _error_message(error: Any) -> str:
    if isinstance(error, dict):
        return str(error.get("message") or error)
    return str(error)
