from __future__ import annotations

import json
from typing import AsyncIterator

import httpx
import pytest

from conftest import sse_body
from mrs_agent.models.completion import CompletionRequest
from mrs_agent.models.enums import MessageRole
from mrs_agent.services.llm_service import LLMService
from mrs_agent.services.model_probe import ModelProbe
from mrs_agent.utils.error_handler import NoWorkingModelError, StreamReadError, TransportError


class BrokenStream(httpx.AsyncByteStream):
    """Body that yields some bytes and then loses the connection."""

    def __init__(self, first: bytes) -> None:
        self._first = first

    async def __aiter__(self) -> AsyncIterator[bytes]:
        yield self._first
        raise httpx.ReadError("connection reset by peer")


def _request(text: str = "Hello") -> CompletionRequest:
    return CompletionRequest.from_history("You are helpful.", [], text)


def _service(client: httpx.AsyncClient, llm_config) -> LLMService:
    return LLMService(client, ModelProbe(client, llm_config), llm_config)


def _probe_or(stream_response):
    """Answer probes with 200 and completions with ``stream_response``."""
    seen: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        seen.append(body)
        if not body["stream"]:
            return httpx.Response(200, json={"choices": [{"message": {"content": "Hi"}}]})
        return stream_response(request)

    return handler, seen


@pytest.mark.asyncio
async def test_chunks_are_delivered_in_order(make_client, llm_config) -> None:
    handler, seen = _probe_or(lambda request: httpx.Response(200, content=sse_body("Hel", "lo ", "world")))
    received: list[str] = []

    async with make_client(handler) as client:
        await _service(client, llm_config).stream_completion(_request(), received.append)

    assert received == ["Hel", "lo ", "world"]
    assert "".join(received) == "Hello world"

    completion = seen[-1]
    assert completion["stream"] is True
    assert completion["model"] == "model-a"
    assert completion["temperature"] == 0.7
    assert completion["max_tokens"] == 2048
    assert [message["role"] for message in completion["messages"]] == ["system", "user"]


@pytest.mark.asyncio
async def test_request_carries_bearer_token(llm_config) -> None:
    from mrs_agent.main import create_http_client

    auth_headers: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        auth_headers.append(request.headers.get("Authorization", ""))
        if not json.loads(request.content)["stream"]:
            return httpx.Response(200, json={})
        return httpx.Response(200, content=sse_body("ok"))

    client = create_http_client(llm_config, transport=httpx.MockTransport(handler))
    async with client:
        await _service(client, llm_config).stream_completion(_request(), lambda chunk: None)

    assert auth_headers == ["Bearer test-key", "Bearer test-key"]


@pytest.mark.asyncio
async def test_malformed_lines_are_tolerated(make_client, llm_config) -> None:
    body = (
        b'data: {"choices": [{"delta": {"role": "assistant"}}]}\n\n'
        b'data: {"choices": [{"delta": {"content": "A"}}]}\n\n'
        b'data: {"choices": [{"delta": {"cont\n\n'
        b": keep-alive\n\n"
        b'data: {"choices": [{"delta": {"content": "B"}}]}\n\n'
        b"data: [DONE]\n\n"
        b'data: {"choices": [{"delta": {"content": "after done"}}]}\n\n'
    )
    handler, _ = _probe_or(lambda request: httpx.Response(200, content=body))
    received: list[str] = []

    async with make_client(handler) as client:
        await _service(client, llm_config).stream_completion(_request(), received.append)

    assert received == ["A", "B"]


@pytest.mark.asyncio
async def test_stream_without_sentinel_ends_at_body_end(make_client, llm_config) -> None:
    handler, _ = _probe_or(lambda request: httpx.Response(200, content=sse_body("only", done=False)))
    received: list[str] = []

    async with make_client(handler) as client:
        await _service(client, llm_config).stream_completion(_request(), received.append)

    assert received == ["only"]


@pytest.mark.asyncio
async def test_rejected_request_raises_transport_error(make_client, llm_config) -> None:
    handler, _ = _probe_or(lambda request: httpx.Response(503, text="over capacity"))

    async with make_client(handler) as client:
        service = _service(client, llm_config)
        with pytest.raises(TransportError) as excinfo:
            await service.stream_completion(_request(), lambda chunk: None)

        assert excinfo.value.status_code == 503
        assert excinfo.value.body == "over capacity"
        assert "503" in str(excinfo.value)
        # Load-related rejections keep the probed model.
        assert service.model_probe.cached_model == "model-a"


@pytest.mark.asyncio
async def test_model_rejection_invalidates_cached_model(make_client, llm_config) -> None:
    error = {"error": {"message": "The model has been decommissioned", "code": "model_decommissioned"}}
    handler, _ = _probe_or(lambda request: httpx.Response(400, json=error))

    async with make_client(handler) as client:
        service = _service(client, llm_config)
        with pytest.raises(TransportError):
            await service.stream_completion(_request(), lambda chunk: None)

        assert service.model_probe.cached_model is None


@pytest.mark.asyncio
async def test_request_level_rejection_keeps_cached_model(make_client, llm_config) -> None:
    error = {"error": {"message": "Please reduce the length of the messages", "code": "context_length_exceeded"}}
    handler, _ = _probe_or(lambda request: httpx.Response(400, json=error))

    async with make_client(handler) as client:
        service = _service(client, llm_config)
        with pytest.raises(TransportError) as excinfo:
            await service.stream_completion(_request(), lambda chunk: None)

        assert excinfo.value.status_code == 400
        assert service.model_probe.cached_model == "model-a"


@pytest.mark.asyncio
async def test_malformed_url_raises_transport_error(make_client, llm_config) -> None:
    def stream_response(request: httpx.Request) -> httpx.Response:
        raise httpx.InvalidURL("Invalid port")

    handler, _ = _probe_or(stream_response)

    async with make_client(handler) as client:
        with pytest.raises(TransportError) as excinfo:
            await _service(client, llm_config).stream_completion(_request(), lambda chunk: None)

    assert excinfo.value.status_code is None


@pytest.mark.asyncio
async def test_unreachable_endpoint_raises_transport_error(make_client, llm_config) -> None:
    def stream_response(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    handler, _ = _probe_or(stream_response)

    async with make_client(handler) as client:
        with pytest.raises(TransportError) as excinfo:
            await _service(client, llm_config).stream_completion(_request(), lambda chunk: None)

    assert excinfo.value.status_code is None


@pytest.mark.asyncio
async def test_broken_stream_raises_after_partial_content(make_client, llm_config) -> None:
    first = b'data: {"choices": [{"delta": {"content": "partial"}}]}\n\n'
    handler, _ = _probe_or(lambda request: httpx.Response(200, stream=BrokenStream(first)))
    received: list[str] = []

    async with make_client(handler) as client:
        with pytest.raises(StreamReadError):
            await _service(client, llm_config).stream_completion(_request(), received.append)

    assert received == ["partial"]


@pytest.mark.asyncio
async def test_error_event_raises_stream_read_error(make_client, llm_config) -> None:
    body = sse_body("Hi", done=False) + b'data: {"error": {"message": "tokens per minute exceeded"}}\n\n'
    handler, _ = _probe_or(lambda request: httpx.Response(200, content=body))
    received: list[str] = []

    async with make_client(handler) as client:
        with pytest.raises(StreamReadError, match="tokens per minute exceeded"):
            await _service(client, llm_config).stream_completion(_request(), received.append)


@pytest.mark.asyncio
async def test_no_working_model_propagates(make_client, llm_config) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500)

    async with make_client(handler) as client:
        with pytest.raises(NoWorkingModelError):
            await _service(client, llm_config).stream_completion(_request(), lambda chunk: None)


@pytest.mark.asyncio
async def test_complete_returns_message_content(make_client, llm_config) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"choices": [{"message": {"content": "Full answer"}}]})

    async with make_client(handler) as client:
        assert await _service(client, llm_config).complete(_request()) == "Full answer"


@pytest.mark.asyncio
async def test_complete_without_content_uses_placeholder(make_client, llm_config) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"choices": []})

    async with make_client(handler) as client:
        assert await _service(client, llm_config).complete(_request()) == "No response received"


def test_request_translates_history() -> None:
    from mrs_agent.models.entry import Entry

    history = [
        Entry(id="1", role=MessageRole.USER, content="Hi"),
        Entry(id="2", role=MessageRole.ASSISTANT, content="Hello!"),
        Entry(id="3", role=MessageRole.ASSISTANT, content=""),
    ]
    request = CompletionRequest.from_history("system text", history, "How are you?")

    assert request.to_payload() == [
        {"role": "system", "content": "system text"},
        {"role": "user", "content": "Hi"},
        {"role": "assistant", "content": "Hello!"},
        {"role": "user", "content": "How are you?"},
    ]
