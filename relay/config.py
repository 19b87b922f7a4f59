"""
Relay configuration with Pydantic Settings.

Settings are read once, from the process environment with a local .env file
as a fallback, and then passed explicitly to whoever needs them. Nothing in
the relay reads os.environ after startup. Real environment variables win
over the .env file.

A missing GEMINI_API_KEY is not an error at load time: the server still
starts, and every relay call answers with a ConfigError until an operator
fixes the deployment. Malformed values (a non-numeric port, a negative
timeout, an unknown log level) fail validation at startup instead.
"""

import logging
from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from relay.constants import (
    DEFAULT_HOST,
    DEFAULT_MODEL,
    DEFAULT_PORT,
    GEMINI_API_BASE,
    MAX_ATTEMPTS,
    REQUEST_TIMEOUT_S,
)

_log = logging.getLogger(__name__)

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class RelaySettings(BaseSettings):
    """
    Immutable relay configuration.

    Attributes:
        api_key:       Gemini API key (GEMINI_API_KEY), None when unset or blank.
        api_base:      Upstream base URL (GEMINI_API_BASE); the model name is appended.
        default_model: Model used when a FEN request does not name one (GEMINI_MODEL).
        max_attempts:  Upper bound on upstream attempts per request (RELAY_MAX_ATTEMPTS).
        timeout_s:     Per-attempt timeout for the outbound call (RELAY_TIMEOUT_SECONDS).
        host:          Bind address for the standalone server (HOST).
        port:          Bind port for the standalone server (PORT).
        log_level:     Root log level for the standalone server (LOG_LEVEL).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )

    api_key: str | None = Field(default=None, validation_alias="GEMINI_API_KEY")
    api_base: str = Field(default=GEMINI_API_BASE, validation_alias="GEMINI_API_BASE")
    default_model: str = Field(default=DEFAULT_MODEL, validation_alias="GEMINI_MODEL")
    max_attempts: int = Field(default=MAX_ATTEMPTS, ge=1, validation_alias="RELAY_MAX_ATTEMPTS")
    timeout_s: float = Field(default=REQUEST_TIMEOUT_S, gt=0, validation_alias="RELAY_TIMEOUT_SECONDS")
    host: str = Field(default=DEFAULT_HOST, validation_alias="HOST")
    port: int = Field(default=DEFAULT_PORT, gt=0, le=65_535, validation_alias="PORT")
    log_level: LogLevel = Field(default="INFO", validation_alias="LOG_LEVEL")

    @field_validator("api_key", mode="before")
    @classmethod
    def blank_key_is_missing(cls, v: str | None) -> str | None:
        if isinstance(v, str):
            return v.strip() or None
        return v

    @field_validator("default_model", mode="before")
    @classmethod
    def blank_model_is_default(cls, v: str) -> str:
        if isinstance(v, str):
            return v.strip() or DEFAULT_MODEL
        return v

    @field_validator("api_base")
    @classmethod
    def with_trailing_slash(cls, v: str) -> str:
        return v if v.endswith("/") else v + "/"

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_log_level(cls, v: str) -> str:
        return v.strip().upper() if isinstance(v, str) else v


@lru_cache(maxsize=1)
def get_settings() -> RelaySettings:
    """
    Process-wide settings, loaded on first use.

    Raises:
        pydantic.ValidationError: A variable is malformed or out of range.
    """
    settings = RelaySettings()
    if settings.api_key is None:
        _log.error("GEMINI_API_KEY environment variable is NOT set.")
    return settings
