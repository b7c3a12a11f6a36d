from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file
load_dotenv()


class AppConfig(BaseSettings):
    """Application configuration settings."""

    # Environment
    app_env: str = Field("development")
    app_debug: bool = Field(False)

    # Logging
    log_level: str = Field("INFO")
    log_file: Optional[str] = Field(None)

    # Local persistence
    data_dir: str = Field(".mrs_agent")
    history_limit: int = Field(50)

    # Conversation behaviour
    max_message_length: int = Field(4000)
    max_file_size: int = Field(10 * 1024 * 1024)
    persist_debounce_seconds: float = Field(1.0)
    reply_delay_seconds: float = Field(1.0)
    title_word_limit: int = Field(4)

    @field_validator("app_env")
    def validate_app_env(cls, value: str) -> str:
        if value not in ["development", "staging", "production"]:
            raise ValueError("APP_ENV must be development, staging, or production")
        return value

    @field_validator("log_level")
    def validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"]:
            raise ValueError("LOG_LEVEL must be a valid Loguru level")
        return level

    @field_validator("history_limit", "max_message_length", "max_file_size", "title_word_limit")
    def validate_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("limits must be positive")
        return value

    @field_validator("persist_debounce_seconds", "reply_delay_seconds")
    def validate_delay(cls, value: float) -> float:
        if value < 0:
            raise ValueError("delays must not be negative")
        return value

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache()
def get_app_config() -> AppConfig:
    """Return a cached application configuration instance."""

    return AppConfig()
