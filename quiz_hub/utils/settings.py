"""Runtime settings read from the environment (and ``.env``), falling back to the constants."""

from __future__ import annotations

from typing import Literal

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from quiz_hub.constants.network_constants import (
    DEFAULT_HOST,
    DEFAULT_PORT,
    GENERATOR_TIMEOUT_SECONDS,
    OPENROUTER_MODEL,
    OPENROUTER_URL,
)
from quiz_hub.constants.quiz_constants import SESSION_TTL_SECONDS, SWEEP_INTERVAL_SECONDS

LogLevel = Literal["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"]


class SettingsError(Exception):
    """Raised when an environment variable holds an unusable value."""


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="ignore",
        frozen=True,
    )

    host: str = DEFAULT_HOST
    port: int = Field(default=DEFAULT_PORT, gt=0, le=65535)
    openrouter_api_key: str = ""
    openrouter_model: str = OPENROUTER_MODEL
    openrouter_url: str = OPENROUTER_URL
    generator_timeout_seconds: float = Field(default=GENERATOR_TIMEOUT_SECONDS, gt=0)
    session_ttl_seconds: int = Field(default=SESSION_TTL_SECONDS, gt=0, validation_alias="QUIZ_TTL_SECONDS")
    sweep_interval_seconds: int = Field(default=SWEEP_INTERVAL_SECONDS, gt=0)
    log_level: LogLevel = "INFO"

    @field_validator("log_level", mode="before")
    @classmethod
    def normalise_log_level(cls, value: object) -> object:
        return value.strip().upper() if isinstance(value, str) else value


def load_settings(env_file: str | None = ".env") -> Settings:
    """Build :class:`Settings`, reporting bad values as :class:`SettingsError`.

    Pass ``env_file=None`` to read the process environment only.
    """
    try:
        return Settings(_env_file=env_file)
    except ValidationError as exc:
        raise SettingsError(str(exc)) from exc
