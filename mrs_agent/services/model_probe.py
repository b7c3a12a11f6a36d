"""Selection of a working model by probing the completion endpoint."""

from __future__ import annotations

import asyncio

import httpx
from loguru import logger

from ..config.llm_config import LlmConfig
from ..utils.error_handler import NoWorkingModelError

# InvalidURL (a malformed LLM_BASE_URL) is not an HTTPError subclass.
REQUEST_ERRORS = (httpx.HTTPError, httpx.InvalidURL)


class ModelProbe:
    """Find and remember the first candidate model the endpoint accepts.

    Candidates from :attr:`LlmConfig.candidate_models` are tried strictly
    in order with a tiny non-streaming request.  The first one answered
    with a 2xx status is cached on this instance and returned by every
    later :meth:`resolve_model` call without touching the network.  A
    candidate that fails is not retried within the same pass.

    One instance is created per process and shared by the services that
    need a model; it is passed in rather than looked up globally.
    """

    def __init__(self, client: httpx.AsyncClient, llm_config: LlmConfig) -> None:
        self._client = client
        self.llm_config = llm_config
        self._model: str | None = None
        self._lock = asyncio.Lock()

    @property
    def cached_model(self) -> str | None:
        return self._model

    def is_configured(self) -> bool:
        return bool(self.llm_config.api_key)

    async def resolve_model(self) -> str:
        """Return the working model, probing candidates on first use.

        Raises
        ------
        NoWorkingModelError
            If every candidate was rejected or unreachable.
        """
        if self._model is not None:
            return self._model

        async with self._lock:
            # Another coroutine may have finished probing while we waited.
            if self._model is not None:
                return self._model

            for model in self.llm_config.candidate_models:
                if await self._probe(model):
                    logger.info("Working model found: {}", model)
                    self._model = model
                    return model

        logger.error("No working model among {}", self.llm_config.candidate_models)
        raise NoWorkingModelError(self.llm_config.candidate_models)

    def invalidate(self) -> None:
        """Forget the cached model so the next resolution probes again."""
        if self._model is not None:
            logger.warning("Invalidating cached model {}", self._model)
        self._model = None

    async def test_connection(self) -> bool:
        """Return True if a working model can be resolved."""
        logger.info("Testing API connection and finding working model")
        try:
            model = await self.resolve_model()
        except NoWorkingModelError as exc:
            logger.error("Connection test failed: {}", exc)
            return False
        logger.info("Connection test succeeded with model {}", model)
        return True

    async def _probe(self, model: str) -> bool:
        logger.debug("Testing model: {}", model)
        payload = {
            "messages": [{"role": "user", "content": "Hi"}],
            "model": model,
            "temperature": self.llm_config.temperature,
            "max_tokens": self.llm_config.probe_max_tokens,
            "stream": False,
        }
        try:
            response = await self._client.post(self.llm_config.completions_path, json=payload)
        except REQUEST_ERRORS as exc:
            logger.warning("Model {} error: {}", model, exc)
            return False

        if response.is_success:
            return True
        logger.warning("Model {} failed with {}: {}", model, response.status_code, response.text)
        return False
