"""Tests for audio loading and Whisper transcription."""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from meal_analyzer import AnalyzerConfig, AudioProcessingError, TranscriptionError, transcribe_audio
from meal_analyzer.core.models import AudioInput
from meal_analyzer.core.transcription import WhisperTranscriber, check_audio_size, load_audio


@pytest.fixture
def config():
    return AnalyzerConfig(openai_api_key="sk-test", openai_base_url="https://api.openai.test")


# --- load_audio ---


@pytest.mark.asyncio
async def test_load_audio_from_bytes(config):
    audio = await load_audio(b"RIFF", config, filename="note.wav")
    assert audio.data == b"RIFF"
    assert audio.filename == "note.wav"


@pytest.mark.asyncio
async def test_load_audio_bytes_default_filename(config):
    audio = await load_audio(b"RIFF", config)
    assert audio.filename == "audio.webm"


@pytest.mark.asyncio
async def test_load_audio_from_url(config):
    mock_response = httpx.Response(200, content=b"m4a bytes", headers={"content-type": "audio/mp4"})

    with patch("httpx.AsyncClient.get", new_callable=AsyncMock, return_value=mock_response):
        audio = await load_audio("https://cdn.test/voice/note.m4a?token=abc", config)

    assert audio.data == b"m4a bytes"
    assert audio.filename == "note.m4a"
    assert audio.content_type == "audio/mp4"


@pytest.mark.asyncio
async def test_load_audio_url_without_extension(config):
    with patch("httpx.AsyncClient.get", new_callable=AsyncMock, return_value=httpx.Response(200, content=b"x")):
        audio = await load_audio("https://cdn.test/voice/12345", config)

    assert audio.filename == "audio.webm"
    assert audio.content_type == "application/octet-stream"


@pytest.mark.asyncio
async def test_load_audio_fetch_failure(config):
    with patch("httpx.AsyncClient.get", new_callable=AsyncMock, return_value=httpx.Response(404)):
        with pytest.raises(TranscriptionError, match="Failed to fetch audio file"):
            await load_audio("https://cdn.test/gone.webm", config)


# --- WhisperTranscriber ---


@pytest.mark.asyncio
async def test_transcribe_success(config):
    mock_post = AsyncMock(return_value=httpx.Response(200, json={"text": "  I had a salad for lunch  "}))

    with patch("httpx.AsyncClient.post", mock_post):
        transcript = await WhisperTranscriber(config).transcribe(
            AudioInput(data=b"webm", filename="note.webm", content_type="audio/webm")
        )

    assert transcript == "I had a salad for lunch"
    assert mock_post.call_args[0][0] == "https://api.openai.test/v1/audio/transcriptions"
    kwargs = mock_post.call_args[1]
    assert kwargs["files"] == {"file": ("note.webm", b"webm", "audio/webm")}
    assert kwargs["data"] == {"model": "whisper-1"}
    assert kwargs["headers"]["Authorization"] == "Bearer sk-test"


@pytest.mark.asyncio
async def test_transcribe_requires_openai_key():
    transcriber = WhisperTranscriber(AnalyzerConfig(gemini_api_key="gm"))
    with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
        with pytest.raises(TranscriptionError, match="requires an OpenAI API key"):
            await transcriber.transcribe(AudioInput(data=b"x"))
    mock_post.assert_not_called()


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [{"text": ""}, {"text": "   "}, {"text": None}])
async def test_transcribe_empty_text(config, body):
    with patch("httpx.AsyncClient.post", new_callable=AsyncMock, return_value=httpx.Response(200, json=body)):
        with pytest.raises(TranscriptionError, match="No transcription text received"):
            await WhisperTranscriber(config).transcribe(AudioInput(data=b"x"))


@pytest.mark.asyncio
async def test_transcribe_unexpected_shape(config):
    with patch("httpx.AsyncClient.post", new_callable=AsyncMock, return_value=httpx.Response(200, json={"result": "hi"})):
        with pytest.raises(TranscriptionError, match="unexpected response structure"):
            await WhisperTranscriber(config).transcribe(AudioInput(data=b"x"))


@pytest.mark.asyncio
async def test_transcribe_upstream_error(config):
    with patch("httpx.AsyncClient.post", new_callable=AsyncMock, return_value=httpx.Response(500, text="oops")):
        with pytest.raises(TranscriptionError) as exc_info:
            await WhisperTranscriber(config).transcribe(AudioInput(data=b"x"))

    assert exc_info.value.error_type == "transcription_failed"
    assert exc_info.value.status_code == 500


@pytest.mark.asyncio
async def test_transcribe_audio_convenience(config):
    with patch("httpx.AsyncClient.post", new_callable=AsyncMock, return_value=httpx.Response(200, json={"text": "pizza"})):
        assert await transcribe_audio(b"audio", config, filename="x.ogg") == "pizza"


# --- Upload size gate ---


def test_check_audio_size_at_limit_passes():
    config = AnalyzerConfig(openai_api_key="sk-test", audio_max_upload_bytes=4)
    check_audio_size(AudioInput(data=b"1234"), config)


def test_check_audio_size_over_limit():
    config = AnalyzerConfig(openai_api_key="sk-test", audio_max_upload_bytes=4)
    with pytest.raises(AudioProcessingError) as exc_info:
        check_audio_size(AudioInput(data=b"12345"), config)

    assert exc_info.value.error_type == "audio_too_large"
    assert exc_info.value.status_code == 400
    assert "4 bytes" in exc_info.value.message


@pytest.mark.asyncio
async def test_transcribe_oversized_audio_never_uploads():
    config = AnalyzerConfig(openai_api_key="sk-test", audio_max_upload_bytes=10)
    with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
        with pytest.raises(AudioProcessingError, match="exceeds maximum size"):
            await WhisperTranscriber(config).transcribe(AudioInput(data=b"x" * 11))
    mock_post.assert_not_called()
