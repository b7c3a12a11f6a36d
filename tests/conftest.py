from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Callable

import httpx
import pytest

repo_root = Path(__file__).resolve().parents[1]
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from mrs_agent.config.app_config import AppConfig
from mrs_agent.config.llm_config import LlmConfig
from mrs_agent.memory.session_store import SessionStore
from mrs_agent.memory.storage import InMemoryStorage

BASE_URL = "https://llm.test/v1"


def sse_body(*chunks: str, done: bool = True) -> bytes:
    """Encode text chunks as a streaming completion body."""
    lines = [
        "data: " + json.dumps({"choices": [{"delta": {"content": chunk}}]})
        for chunk in chunks
    ]
    if done:
        lines.append("data: [DONE]")
    return ("\n\n".join(lines) + "\n\n").encode("utf-8")


@pytest.fixture
def llm_config() -> LlmConfig:
    return LlmConfig.model_validate(
        {
            "api_key": "test-key",
            "base_url": BASE_URL,
            "candidate_models": ["model-a", "model-b", "model-c"],
        }
    )


@pytest.fixture
def app_config() -> AppConfig:
    return AppConfig.model_validate(
        {
            "persist_debounce_seconds": 0.05,
            "reply_delay_seconds": 0,
        }
    )


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def session_store(storage: InMemoryStorage) -> SessionStore:
    return SessionStore(storage)


@pytest.fixture
def make_client() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.AsyncClient]:
    def factory(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(handler))

    return factory
