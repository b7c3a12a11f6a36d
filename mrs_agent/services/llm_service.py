"""Service encapsulating interactions with the language model.

Talks to an OpenAI-compatible ``/chat/completions`` endpoint (Groq by
default) over a shared :class:`httpx.AsyncClient`.  The model is chosen
by :class:`~mrs_agent.services.model_probe.ModelProbe`; this service only
builds requests and consumes responses.
"""

from __future__ import annotations

import json
from typing import Any, Callable

import httpx
from loguru import logger

from ..config.llm_config import LlmConfig
from ..models.completion import CompletionRequest
from ..utils.error_handler import StreamReadError, TransportError
from .model_probe import REQUEST_ERRORS, ModelProbe
from .stream_parser import EventKind, decode_event_line

# Error codes that point at the model itself rather than at the request
# or the service's load.
MODEL_REJECTION_CODES = frozenset({"model_not_found", "model_decommissioned"})

NO_RESPONSE_TEXT = "No response received"


class LLMService:
    """Issue chat completions with the probed model.

    Apart from the model cached by the injected :class:`ModelProbe` the
    service keeps no state between calls.
    """

    def __init__(self, client: httpx.AsyncClient, model_probe: ModelProbe, llm_config: LlmConfig) -> None:
        self._client = client
        self.model_probe = model_probe
        self.llm_config = llm_config

    async def stream_completion(self, request: CompletionRequest, on_chunk: Callable[[str], None]) -> None:
        """Stream a completion, calling ``on_chunk`` for each text fragment.

        Fragments are delivered in the order the server sent them.  The
        call returns once the ``[DONE]`` sentinel arrives or the body ends.

        Raises
        ------
        NoWorkingModelError
            If no candidate model is usable.
        TransportError
            If the request could not be sent or the endpoint rejected it.
        StreamReadError
            If the body ended abnormally or carried an error event.
        """
        model = await self.model_probe.resolve_model()
        payload = self._build_payload(request, model, stream=True)
        logger.debug("Streaming completion with model {} ({} messages)", model, len(request.messages))

        chunks = 0
        try:
            async with self._client.stream("POST", self.llm_config.completions_path, json=payload) as response:
                if not response.is_success:
                    body = (await response.aread()).decode("utf-8", errors="replace")
                    self._reject(model, response, body)
                try:
                    async for line in response.aiter_lines():
                        event = decode_event_line(line)
                        if event.kind is EventKind.CONTENT:
                            chunks += 1
                            on_chunk(event.text)
                        elif event.kind is EventKind.SKIP:
                            logger.debug("Skipping invalid JSON line: {!r}", event.raw)
                        elif event.kind is EventKind.FATAL:
                            raise StreamReadError(f"Stream reported an error: {event.text}")
                        elif event.kind is EventKind.DONE:
                            break
                except httpx.HTTPError as exc:
                    logger.error("Stream interrupted after {} chunks: {}", chunks, exc)
                    raise StreamReadError(f"Stream interrupted: {exc}") from exc
        except REQUEST_ERRORS as exc:
            logger.error("Completion request could not be sent: {}", exc)
            raise TransportError(f"API request failed: {exc}") from exc

        logger.debug("Stream completed successfully with {} chunks", chunks)

    async def complete(self, request: CompletionRequest) -> str:
        """Return a whole completion in one response."""
        model = await self.model_probe.resolve_model()
        payload = self._build_payload(request, model, stream=False)
        try:
            response = await self._client.post(self.llm_config.completions_path, json=payload)
        except REQUEST_ERRORS as exc:
            logger.error("Completion request could not be sent: {}", exc)
            raise TransportError(f"API request failed: {exc}") from exc

        if not response.is_success:
            self._reject(model, response, response.text)

        try:
            data = response.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError):
            logger.warning("Completion response had no message content")
            return NO_RESPONSE_TEXT
        return content or NO_RESPONSE_TEXT

    def _build_payload(self, request: CompletionRequest, model: str, *, stream: bool) -> dict[str, Any]:
        return {
            "messages": request.to_payload(),
            "model": model,
            "temperature": self.llm_config.temperature,
            "max_tokens": self.llm_config.max_tokens,
            "stream": stream,
        }

    def _reject(self, model: str, response: httpx.Response, body: str) -> None:
        logger.error("API error response {}: {}", response.status_code, body)
        if _error_code(body) in MODEL_REJECTION_CODES:
            self.model_probe.invalidate()
        raise TransportError(
            f"API request failed: {response.status_code} {response.reason_phrase} - {body}",
            status_code=response.status_code,
            body=body,
        )


def _error_code(body: str) -> str | None:
    """Return ``error.code`` from a JSON error body, if there is one."""
    try:
        payload = json.loads(body)
    except ValueError:
        return None
    if not isinstance(payload, dict) or not isinstance(payload.get("error"), dict):
        return None
    code = payload["error"].get("code")
    return code if isinstance(code, str) else None
