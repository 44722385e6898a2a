"""Simple configuration for core library usage."""

from dataclasses import dataclass

from meal_analyzer.core.prompts import (
    AUDIO_SYSTEM_PROMPT,
    IMAGE_SYSTEM_PROMPT,
    TEXT_SYSTEM_PROMPT,
)


@dataclass
class AnalyzerConfig:
    """Configuration for the meal analysis library.

    This is a simplified config suitable for library usage without
    environment variable loading.

    Args:
        primary_provider: Backend tried first, "openai" or "gemini"; the other one is the fallback
        openai_api_key: API key for OpenAI (chat completions and Whisper)
        openai_base_url: Base URL of the OpenAI API
        openai_model: Chat model used for image and text analysis
        openai_transcription_model: Model used for audio transcription
        gemini_api_key: API key for Google Gemini
        gemini_base_url: Base URL of the Gemini API
        gemini_model: Gemini model used for image and text analysis
        timeout_s: Total timeout for each upstream request in seconds
        connect_timeout_s: Connection timeout for each upstream request in seconds
        audio_max_upload_bytes: Maximum accepted audio size in bytes
        image_system_prompt: Instructions sent with image analysis requests
        audio_system_prompt: Instructions sent with transcript analysis requests
        text_system_prompt: Instructions sent with free-text analysis requests
        persist_results: Hand successful analyses to the record store
    """

    primary_provider: str = "openai"

    openai_api_key: str | None = None
    openai_base_url: str = "https://api.openai.com"
    openai_model: str = "gpt-4o-mini"
    openai_transcription_model: str = "whisper-1"

    gemini_api_key: str | None = None
    gemini_base_url: str = "https://generativelanguage.googleapis.com"
    gemini_model: str = "gemini-1.5-flash"

    timeout_s: float = 60.0
    connect_timeout_s: float = 10.0

    audio_max_upload_bytes: int = 25_000_000

    # Prompt settings
    image_system_prompt: str = IMAGE_SYSTEM_PROMPT
    audio_system_prompt: str = AUDIO_SYSTEM_PROMPT
    text_system_prompt: str = TEXT_SYSTEM_PROMPT

    persist_results: bool = True

    @property
    def secondary_provider(self) -> str:
        """Name of the fallback backend."""
        return "gemini" if self.primary_provider == "openai" else "openai"
