"""Configuration management - loads environment variables into typed settings."""

import logging
from functools import lru_cache
from typing import Literal
from urllib.parse import urlparse

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from meal_analyzer import AnalyzerConfig
from meal_analyzer.core.prompts import (
    AUDIO_SYSTEM_PROMPT,
    IMAGE_SYSTEM_PROMPT,
    TEXT_SYSTEM_PROMPT,
)

_TRUE_STRINGS = ("1", "true", "yes")


def _as_bool(v: str) -> bool:
    return v.lower().strip() in _TRUE_STRINGS


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # AI Provider Configuration
    primary_provider: Literal["openai", "gemini"] = Field(
        default="openai",
        description="Backend tried first; the other one is used as fallback",
    )
    openai_api_key: str | None = Field(default=None, description="OpenAI API key (analysis and transcription)")
    openai_base_url: str = Field(default="https://api.openai.com", description="OpenAI API base URL")
    openai_model: str = Field(default="gpt-4o-mini", description="OpenAI chat model")
    openai_transcription_model: str = Field(default="whisper-1", description="OpenAI transcription model")
    gemini_api_key: str | None = Field(default=None, description="Google Gemini API key")
    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com",
        description="Gemini API base URL",
    )
    gemini_model: str = Field(default="gemini-1.5-flash", description="Gemini model")

    # Timeout Configuration
    upstream_timeout_s: float = Field(
        default=60.0,
        description="Total timeout for each upstream request (seconds)",
    )
    upstream_connect_timeout_s: float = Field(
        default=10.0,
        description="Connection timeout for upstream requests (seconds)",
    )

    # Hosted auth/database platform
    supabase_url: str | None = Field(
        default=None,
        description="Supabase project URL used for caller identity and food entry persistence",
    )
    supabase_anon_key: str | None = Field(default=None, description="Supabase anon (public) API key")
    persist_results: str = Field(
        default="1",
        description="Store successful dated analyses as food entries (1 = enabled, 0 = disabled)",
    )

    # Security Configuration
    allow_origins: str = Field(
        default="",
        description="CORS allowed origins (comma-separated list, empty = no CORS)",
    )

    # Audio Upload Configuration
    audio_max_upload_bytes: int = Field(
        default=25_000_000,
        description="Maximum accepted audio upload size (bytes)",
    )

    # Analysis Prompts
    image_system_prompt: str = Field(default=IMAGE_SYSTEM_PROMPT, description="System prompt for image analysis")
    audio_system_prompt: str = Field(default=AUDIO_SYSTEM_PROMPT, description="System prompt for transcript analysis")
    text_system_prompt: str = Field(default=TEXT_SYSTEM_PROMPT, description="System prompt for text analysis")

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Log level: DEBUG, INFO, WARNING, ERROR, CRITICAL",
    )

    @field_validator("upstream_timeout_s", "upstream_connect_timeout_s")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        """Validate timeout is positive."""
        if v <= 0:
            raise ValueError(f"Timeout must be positive, got {v}")
        return v

    @field_validator("audio_max_upload_bytes")
    @classmethod
    def validate_max_upload(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"audio_max_upload_bytes must be positive, got {v}")
        return v

    @field_validator("supabase_url", mode="before")
    @classmethod
    def blank_url_to_none(cls, v: str | None) -> str | None:
        if v is None or v == "":
            return None
        return v

    @field_validator("openai_base_url", "gemini_base_url", "supabase_url")
    @classmethod
    def validate_url(cls, v: str | None) -> str | None:
        """Validate URL format if provided."""
        if v is None:
            return None
        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https"):
            raise ValueError(f"URL must use http or https scheme, got {v}")
        if not parsed.netloc:
            raise ValueError(f"URL must have a valid host, got {v}")
        return v

    @field_validator("openai_api_key", "gemini_api_key", "supabase_anon_key")
    @classmethod
    def blank_key_to_none(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        return v.strip()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}, got {v}")
        return v.upper()

    @field_validator("persist_results")
    @classmethod
    def validate_boolean_string(cls, v: str) -> str:
        """Validate boolean string format."""
        v_lower = v.lower().strip()
        if v_lower not in ("0", "1", "true", "false", "yes", "no"):
            raise ValueError(f"Boolean field must be '0', '1', 'true', 'false', 'yes', or 'no', got {v}")
        return v

    @model_validator(mode="after")
    def validate_provider_keys(self) -> "Settings":
        """Validate that at least one AI backend can be called."""
        if not self.openai_api_key and not self.gemini_api_key:
            raise ValueError(
                "At least one of OPENAI_API_KEY or GEMINI_API_KEY must be set. "
                "Please set it in your .env file."
            )
        if self.supabase_url and not self.supabase_anon_key:
            raise ValueError(
                "SUPABASE_ANON_KEY is required when SUPABASE_URL is set. "
                "Please set SUPABASE_ANON_KEY in your .env file."
            )
        return self

    @property
    def allow_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        if not self.allow_origins:
            return []
        return [origin.strip() for origin in self.allow_origins.split(",") if origin.strip()]

    @property
    def persist_results_bool(self) -> bool:
        return _as_bool(self.persist_results)

    def get_log_level(self) -> int:
        """Convert log level string to logging constant."""
        return getattr(logging, self.log_level, logging.INFO)

    def to_analyzer_config(self) -> AnalyzerConfig:
        """Build the library configuration from these settings."""
        return AnalyzerConfig(
            primary_provider=self.primary_provider,
            openai_api_key=self.openai_api_key,
            openai_base_url=self.openai_base_url,
            openai_model=self.openai_model,
            openai_transcription_model=self.openai_transcription_model,
            gemini_api_key=self.gemini_api_key,
            gemini_base_url=self.gemini_base_url,
            gemini_model=self.gemini_model,
            timeout_s=self.upstream_timeout_s,
            connect_timeout_s=self.upstream_connect_timeout_s,
            audio_max_upload_bytes=self.audio_max_upload_bytes,
            image_system_prompt=self.image_system_prompt,
            audio_system_prompt=self.audio_system_prompt,
            text_system_prompt=self.text_system_prompt,
            persist_results=self.persist_results_bool,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get the application settings singleton.

    Settings are loaded from environment variables and .env file on first call.
    Subsequent calls return the cached instance.

    Raises:
        ValueError: If required settings are missing or invalid.

    Returns:
        Settings: The validated settings instance.
    """
    try:
        return Settings()
    except Exception as e:
        raise ValueError(
            f"Failed to load configuration: {e}\n"
            "Please check your .env file and ensure all required settings are present and valid."
        ) from e
