"""High-level operations API: the meal analysis pipeline.

One pipeline serves all three modalities::

    authorize -> (transcribe, audio only) -> fallback orchestrator -> normalizer -> persist

Image requests go to the image adapters. Audio requests are transcribed
first and then analyzed as text, exactly like text requests.
"""

import logging
from typing import Any

from meal_analyzer.core.config import AnalyzerConfig
from meal_analyzer.core.exceptions import ConfigurationError
from meal_analyzer.core.models import (
    AnalysisRequest,
    AnalysisResponse,
    AudioInput,
    ImageInput,
    Modality,
)
from meal_analyzer.core.normalizer import project
from meal_analyzer.core.orchestrator import FallbackOrchestrator
from meal_analyzer.core.persistence import RecordStore, persist_safely
from meal_analyzer.core.prompts import (
    Prompt,
    build_audio_prompt,
    build_image_prompt,
    build_text_prompt,
)
from meal_analyzer.core.providers import ProviderAdapter
from meal_analyzer.core.routing import has_credentials, select_providers
from meal_analyzer.core.transcription import WhisperTranscriber, load_audio
from meal_analyzer.core.validation import authorize, validate_request

logger = logging.getLogger(__name__)


class AnalysisPipeline:
    """Stateless, per-request analysis pipeline.

    Adapters, transcriber and record store default to the ones described by
    ``config`` and can be injected for testing or alternative backends.
    """

    def __init__(
        self,
        config: AnalyzerConfig,
        *,
        primary: ProviderAdapter | None = None,
        secondary: ProviderAdapter | None = None,
        transcriber: WhisperTranscriber | None = None,
        record_store: RecordStore | None = None,
    ):
        if primary is None or secondary is None:
            if not has_credentials(config):
                raise ConfigurationError(
                    "No AI provider configured. Set openai_api_key and/or gemini_api_key."
                )
            default_primary, default_secondary = select_providers(config)
            primary = primary or default_primary
            secondary = secondary or default_secondary

        self.config = config
        self.orchestrator = FallbackOrchestrator(primary, secondary)
        self.transcriber = transcriber or WhisperTranscriber(config)
        self.record_store = record_store

    async def _prepare(self, request: AnalysisRequest) -> tuple[ImageInput | str, Prompt, str | None]:
        """Build the adapter input and prompt; returns the transcript for audio."""
        if request.modality == Modality.IMAGE:
            return (
                ImageInput(url=str(request.payload_ref)),
                build_image_prompt(self.config.image_system_prompt),
                None,
            )

        if request.modality == Modality.AUDIO:
            audio: AudioInput = await load_audio(
                request.payload_ref, self.config, filename=request.audio_filename
            )
            transcript = await self.transcriber.transcribe(audio)
            return transcript, build_audio_prompt(self.config.audio_system_prompt, transcript), transcript

        text = str(request.payload_ref).strip()
        hint = request.meal_hint.value if request.meal_hint else None
        return text, build_text_prompt(self.config.text_system_prompt, text, hint), None

    async def run(self, request: AnalysisRequest, caller_id: str | None) -> AnalysisResponse:
        """
        Analyze one validated request on behalf of ``caller_id``.

        Raises:
            UnauthorizedError / ForbiddenError: Identity checks failed
            TranscriptionError: Audio could not be transcribed (audio only)
            AllProvidersFailedError: Both providers failed (incl. MalformedProviderOutputError)
        """
        authorize(request, caller_id)

        prepared, prompt, transcript = await self._prepare(request)

        # Transcribed audio is analyzed by the text adapters.
        adapter_modality = Modality.IMAGE if request.modality == Modality.IMAGE else Modality.TEXT
        result = await self.orchestrator.run(adapter_modality, prepared, prompt)

        response = project(
            result.payload,
            provider=result.provider,
            backend=result.raw.backend,
            raw=result.raw.text,
            meal_hint=request.meal_hint,
            transcript=transcript,
            fallback_text=str(prepared) if request.modality == Modality.TEXT else None,
        )
        logger.info(
            "%s analysis done by %s (%s): %d food item(s), %.0f kcal",
            request.modality.value,
            response.provider.value,
            response.backend,
            len(response.foods),
            response.nutrition.calories,
        )

        if self.record_store is not None and self.config.persist_results:
            await persist_safely(self.record_store, request, response)

        return response


async def analyze_meal(
    modality: Modality | str,
    payload: dict[str, Any],
    config: AnalyzerConfig,
    caller_id: str | None,
    record_store: RecordStore | None = None,
) -> AnalysisResponse:
    """Validate a raw payload and run it through the pipeline."""
    request = validate_request(Modality(modality), payload)
    pipeline = AnalysisPipeline(config, record_store=record_store)
    return await pipeline.run(request, caller_id)


async def transcribe_audio(
    audio_bytes: bytes,
    config: AnalyzerConfig,
    filename: str = "audio.webm",
) -> str:
    """Transcribe audio and return text transcript."""
    return await WhisperTranscriber(config).transcribe(AudioInput(data=audio_bytes, filename=filename))
