"""Application configuration from environment variables."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    environment: Literal["development", "test", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )
    port: int = Field(default=3333, alias="PORT")

    # Database
    database_url: str = Field(default="sqlite:///./hooklab.db", alias="DATABASE_URL")
    database_echo: bool = Field(default=False, alias="DATABASE_ECHO")

    # LLM (OpenAI-compatible chat completions)
    llm_api_key: str = Field(default="", alias="LLM_API_KEY")
    llm_api_endpoint: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta/openai",
        alias="LLM_API_ENDPOINT",
    )
    llm_model: str = Field(default="gemini-2.5-flash-lite", alias="LLM_MODEL")
    llm_timeout_seconds: float = Field(default=120.0, alias="LLM_TIMEOUT_SECONDS")

    # Fixtures
    webhook_signing_secret: str | None = Field(default=None, alias="WEBHOOK_SIGNING_SECRET")

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def reset_settings_cache() -> None:
    """Clear cached settings (useful in tests)."""
    get_settings.cache_clear()
