"""Composition root for the chat core.

:func:`build_runtime` wires configuration, logging, the shared HTTP
client, the model probe, the streaming service, the stores and the
conversation controller together.  A presentation layer builds one
runtime per process and closes it on shutdown::

    runtime = build_runtime()
    try:
        await runtime.controller.send_text("Hello!")
    finally:
        await runtime.aclose()
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

import httpx
from loguru import logger

from .config.app_config import AppConfig, get_app_config
from .config.llm_config import LlmConfig, get_llm_config
from .controllers.conversation_controller import ConversationController
from .memory.profile_store import ProfileStore
from .memory.session_store import SessionStore
from .memory.storage import JsonFileStorage, KeyValueStorage
from .prompts.replies import ReplySelector
from .services.llm_service import LLMService
from .services.model_probe import ModelProbe
from .utils.logger import setup_logging


@dataclass
class Runtime:
    """Everything a presentation layer talks to, built once."""

    controller: ConversationController
    session_store: SessionStore
    profile_store: ProfileStore
    model_probe: ModelProbe
    llm_service: LLMService
    http_client: httpx.AsyncClient

    async def aclose(self) -> None:
        """Write any pending session save and close the HTTP client."""
        self.controller.flush()
        await self.http_client.aclose()
        logger.info("Runtime closed")


def create_http_client(llm_config: LlmConfig, transport: httpx.AsyncBaseTransport | None = None) -> httpx.AsyncClient:
    """Return the client shared by the probe and the completion service."""
    headers = {"Content-Type": "application/json"}
    if llm_config.api_key:
        headers["Authorization"] = f"Bearer {llm_config.api_key}"
    return httpx.AsyncClient(
        base_url=llm_config.base_url,
        headers=headers,
        timeout=llm_config.timeout,
        transport=transport,
    )


def build_runtime(
    *,
    app_config: AppConfig | None = None,
    llm_config: LlmConfig | None = None,
    storage: KeyValueStorage | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    reply_selector: ReplySelector | None = None,
    on_update: Callable[[ConversationController], None] | None = None,
    configure_logging: bool = True,
) -> Runtime:
    """Create and wire a :class:`Runtime`.

    Parameters default to environment configuration, a
    :class:`JsonFileStorage` under ``DATA_DIR`` and a real network
    transport.
    """
    app_config = app_config or get_app_config()
    llm_config = llm_config or get_llm_config()
    if configure_logging:
        setup_logging(app_config)

    http_client = create_http_client(llm_config, transport)
    model_probe = ModelProbe(http_client, llm_config)
    if not model_probe.is_configured():
        logger.warning("GROQ_API_KEY environment variable not set")
    llm_service = LLMService(http_client, model_probe, llm_config)

    storage = storage if storage is not None else JsonFileStorage(app_config.data_dir)
    session_store = SessionStore(storage, limit=app_config.history_limit)
    profile_store = ProfileStore(storage)

    controller = ConversationController(
        llm_service,
        session_store,
        app_config=app_config,
        reply_selector=reply_selector,
        on_update=on_update,
    )
    logger.info("Chat runtime ready with {} stored sessions", len(session_store))
    return Runtime(
        controller=controller,
        session_store=session_store,
        profile_store=profile_store,
        model_probe=model_probe,
        llm_service=llm_service,
        http_client=http_client,
    )
