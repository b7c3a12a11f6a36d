"""Configuration package: application and language model settings."""

from .app_config import AppConfig, get_app_config  # noqa: F401
from .llm_config import LlmConfig, get_llm_config  # noqa: F401
