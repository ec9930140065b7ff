"""Provider connection settings."""

from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models.config import DEFAULT_MODEL


class Settings(BaseSettings):
    """Provider connection settings from environment or direct initialization."""

    api_key: str = Field(
        default="",
        validation_alias=AliasChoices("PROMPTOPT_API_KEY", "OPENAI_API_KEY", "API_KEY", "api_key"),
    )
    model: str = Field(
        default=DEFAULT_MODEL,
        validation_alias=AliasChoices("PROMPTOPT_MODEL", "model"),
    )
    base_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("PROMPTOPT_BASE_URL", "OPENAI_BASE_URL", "base_url"),
    )
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    timeout_ms: int = Field(default=30000, ge=1000)
    max_retries: int = Field(default=2, ge=0, le=10)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


def get_settings() -> Settings:
    """Load settings from environment."""
    return Settings()
