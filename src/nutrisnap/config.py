"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    supabase_documents_table: str = "user_documents"
    openai_api_key: str
    openai_model: str = "gpt-4o-mini"
    openai_reasoning_effort: str | None = None
    openai_store: bool = False
    inference_max_output_tokens: int = 2048
    inference_temperature: float = 0.3
    inference_timeout_seconds: float = 20.0
    parallel_classification: bool = False
    auth_timeout_seconds: float = 30.0
    persistence_debounce_seconds: float = 1.0
    default_timezone: str = "UTC"
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_bearer_token(raw: str | None) -> str | None:
    """Extract the token from an Authorization header value."""
    if raw is None:
        return None
    scheme, _, token = raw.strip().partition(" ")
    if scheme.lower() != "bearer":
        return None
    cleaned = token.strip()
    return cleaned or None
