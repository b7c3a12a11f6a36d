from __future__ import annotations

import json

import pytest

from mrs_agent.services.stream_parser import EventKind, decode_event_line


def _data(payload: dict) -> str:
    return "data: " + json.dumps(payload)


def test_content_delta_is_decoded() -> None:
    event = decode_event_line(_data({"choices": [{"delta": {"content": "Hel"}}]}))

    assert event.kind is EventKind.CONTENT
    assert event.text == "Hel"
    assert not event.is_terminal


def test_done_sentinel_ends_stream_without_text() -> None:
    event = decode_event_line("data: [DONE]")

    assert event.kind is EventKind.DONE
    assert event.text == ""
    assert event.is_terminal


@pytest.mark.parametrize(
    "line",
    [
        'data: {"choices": [{"delta": {"content": "cut sho',
        "data: not json",
        "data: [1, 2, 3]",
    ],
)
def test_malformed_payloads_are_skipped(line: str) -> None:
    assert decode_event_line(line).kind is EventKind.SKIP


@pytest.mark.parametrize("line", ["", "   ", ": keep-alive", "event: message", "id: 7", "data:"])
def test_non_data_lines_are_ignored(line: str) -> None:
    assert decode_event_line(line).kind is EventKind.IGNORE


@pytest.mark.parametrize(
    "payload",
    [
        {"choices": [{"delta": {"role": "assistant"}}]},
        {"choices": [{"delta": {"content": ""}, "finish_reason": "stop"}]},
        {"choices": []},
        {"x_groq": {"id": "req_1"}},
    ],
)
def test_frames_without_text_are_empty(payload: dict) -> None:
    assert decode_event_line(_data(payload)).kind is EventKind.EMPTY


def test_error_payload_is_fatal() -> None:
    event = decode_event_line(_data({"error": {"message": "rate limit reached", "type": "tokens"}}))

    assert event.kind is EventKind.FATAL
    assert event.text == "rate limit reached"
    assert event.is_terminal


def test_data_prefix_without_space_is_accepted() -> None:
    event = decode_event_line('data:{"choices": [{"delta": {"content": "x"}}]}')

    assert event.kind is EventKind.CONTENT
    assert event.text == "x"
