from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


DEFAULT_CANDIDATE_MODELS = [
    "llama-3.1-8b-instant",
    "llama-3.1-70b-versatile",
    "llama3-70b-8192",
    "gemma-7b-it",
    "gemma2-9b-it",
]


class LlmConfig(BaseSettings):
    """Configuration settings for the hosted chat-completion endpoint.

    ``candidate_models`` is the probing priority list: the first model the
    endpoint accepts is used for every completion in the process.  The
    variable ``LLM_CANDIDATE_MODELS`` takes a JSON array.
    """

    api_key: str = Field("", alias="GROQ_API_KEY")
    base_url: str = Field("https://api.groq.com/openai/v1", alias="LLM_BASE_URL")
    candidate_models: list[str] = Field(
        default_factory=lambda: list(DEFAULT_CANDIDATE_MODELS),
        alias="LLM_CANDIDATE_MODELS",
    )
    temperature: float = Field(0.7, alias="LLM_TEMPERATURE")
    max_tokens: int = Field(2048, alias="LLM_MAX_TOKENS")
    probe_max_tokens: int = Field(10, alias="LLM_PROBE_MAX_TOKENS")
    timeout: float = Field(30.0, alias="LLM_TIMEOUT")

    @field_validator("candidate_models")
    def validate_candidate_models(cls, value: list[str]) -> list[str]:
        models = [model.strip() for model in value if model and model.strip()]
        if not models:
            raise ValueError("LLM_CANDIDATE_MODELS must name at least one model")
        return models

    @field_validator("temperature")
    def validate_temperature(cls, value: float) -> float:
        if not 0.0 <= value <= 2.0:
            raise ValueError("LLM_TEMPERATURE must be between 0.0 and 2.0")
        return value

    @field_validator("timeout")
    def validate_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("LLM_TIMEOUT must be positive")
        return value

    @field_validator("max_tokens", "probe_max_tokens")
    def validate_max_tokens(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("token limits must be positive")
        return value

    @property
    def completions_path(self) -> str:
        return "/chat/completions"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)


@lru_cache()
def get_llm_config() -> LlmConfig:
    """Return a cached language model configuration."""

    return LlmConfig()
