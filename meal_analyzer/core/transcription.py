"""Audio transcription sub-stage.

Only OpenAI (Whisper) transcribes audio; there is no fallback backend.
Any failure here is fatal for the audio request.
"""

import logging
from pathlib import PurePosixPath
from urllib.parse import urlparse

from meal_analyzer.core.client import fetch_bytes, post_multipart
from meal_analyzer.core.config import AnalyzerConfig
from meal_analyzer.core.exceptions import AudioProcessingError, TranscriptionError, UpstreamError
from meal_analyzer.core.models import AudioInput

logger = logging.getLogger(__name__)

DEFAULT_AUDIO_FILENAME = "audio.webm"


def _filename_from_url(url: str) -> str:
    name = PurePosixPath(urlparse(url).path).name
    return name if "." in name else DEFAULT_AUDIO_FILENAME


def check_audio_size(audio: AudioInput, config: AnalyzerConfig) -> None:
    """Reject audio larger than the configured upload limit."""
    if len(audio.data) > config.audio_max_upload_bytes:
        raise AudioProcessingError(
            f"Audio upload exceeds maximum size of {config.audio_max_upload_bytes} bytes",
            error_type="audio_too_large",
        )


async def load_audio(
    audio_ref: str | bytes, config: AnalyzerConfig, filename: str | None = None
) -> AudioInput:
    """Resolve an audio reference (inline bytes or URL) into audio bytes.

    Raises:
        TranscriptionError: If the remote audio cannot be downloaded.
    """
    if isinstance(audio_ref, bytes):
        return AudioInput(data=audio_ref, filename=filename or DEFAULT_AUDIO_FILENAME)

    try:
        data, content_type = await fetch_bytes(audio_ref, config)
    except UpstreamError as e:
        raise TranscriptionError(f"Failed to fetch audio file: {e.message}") from e

    return AudioInput(
        data=data,
        filename=filename or _filename_from_url(audio_ref),
        content_type=content_type or "application/octet-stream",
    )


class WhisperTranscriber:
    """Transcribes audio with the OpenAI audio transcription endpoint."""

    def __init__(self, config: AnalyzerConfig):
        self.config = config

    @property
    def endpoint(self) -> str:
        return f"{self.config.openai_base_url.rstrip('/')}/v1/audio/transcriptions"

    async def transcribe(self, audio: AudioInput) -> str:
        """
        Turn audio into transcript text.

        Raises:
            TranscriptionError: If the backend is not configured, unreachable,
                answers with an unexpected shape or with an empty transcript.
            AudioProcessingError: If the audio exceeds the upload size limit.
        """
        if not self.config.openai_api_key:
            raise TranscriptionError("Audio transcription requires an OpenAI API key")

        check_audio_size(audio, self.config)

        try:
            response = await post_multipart(
                self.endpoint,
                files={"file": (audio.filename, audio.data, audio.content_type)},
                data={"model": self.config.openai_transcription_model},
                config=self.config,
                headers={"Authorization": f"Bearer {self.config.openai_api_key}"},
                upstream="openai-transcription",
            )
        except UpstreamError as e:
            raise TranscriptionError(f"Transcription request failed: {e.message}") from e

        try:
            transcript = response.json()["text"]
        except (ValueError, KeyError, TypeError) as e:
            logger.error(f"Failed to parse transcription response: {e}")
            raise TranscriptionError("Transcription backend returned an unexpected response structure") from e

        if not isinstance(transcript, str) or not transcript.strip():
            raise TranscriptionError("No transcription text received")

        logger.info("Transcribed %d bytes of audio into %d characters", len(audio.data), len(transcript))
        return transcript.strip()
