"""Provider adapters: one class per AI backend, one request builder per modality.

Every adapter exposes the same contract. ``analyze`` either returns a
:class:`RawResult` whose text is believed to contain a JSON object, or raises
:class:`ProviderError` with outcome ``networkError`` or ``emptyContent``.
Adapters never retry; falling back to the other backend is the
orchestrator's job.
"""

import base64
import logging
from abc import ABC, abstractmethod
from typing import Any

from meal_analyzer.core.client import fetch_bytes, post_json
from meal_analyzer.core.config import AnalyzerConfig
from meal_analyzer.core.exceptions import ProviderError, UpstreamError
from meal_analyzer.core.models import AttemptOutcome, ImageInput, Modality, RawResult
from meal_analyzer.core.prompts import Prompt

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_MIME = "image/jpeg"


class ProviderAdapter(ABC):
    """Shared interface of every AI backend."""

    name: str = ""

    def __init__(self, config: AnalyzerConfig):
        self.config = config

    @property
    @abstractmethod
    def api_key(self) -> str | None: ...

    @property
    @abstractmethod
    def endpoint(self) -> str: ...

    @abstractmethod
    def auth_headers(self) -> dict[str, str]: ...

    @abstractmethod
    async def build_request(
        self, modality: Modality, prepared_input: ImageInput | str, prompt: Prompt
    ) -> dict[str, Any]: ...

    @abstractmethod
    def extract_text(self, envelope: dict[str, Any]) -> str | None:
        """Pull the answer text out of this backend's response shape."""

    def _fail(self, message: str, outcome: AttemptOutcome) -> ProviderError:
        return ProviderError(f"{self.name}: {message}", provider=self.name, outcome=outcome)

    async def analyze(
        self, modality: Modality, prepared_input: ImageInput | str, prompt: Prompt
    ) -> RawResult:
        """Run one analysis call against this backend."""
        if not self.api_key:
            raise self._fail("API key not configured", AttemptOutcome.NETWORK_ERROR)

        try:
            body = await self.build_request(modality, prepared_input, prompt)
            response = await post_json(
                self.endpoint,
                body,
                self.config,
                headers=self.auth_headers(),
                upstream=self.name,
            )
        except UpstreamError as e:
            raise self._fail(e.message, AttemptOutcome.NETWORK_ERROR) from e

        try:
            envelope = response.json()
        except ValueError as e:
            raise self._fail("response body is not JSON", AttemptOutcome.EMPTY_CONTENT) from e

        text = self.extract_text(envelope) if isinstance(envelope, dict) else None
        if not text or not text.strip():
            raise self._fail("no content returned", AttemptOutcome.EMPTY_CONTENT)

        return RawResult(backend=self.name, text=text, envelope=envelope)


class OpenAIAdapter(ProviderAdapter):
    """OpenAI chat completions. Accepts remote image URLs directly."""

    name = "openai"

    @property
    def api_key(self) -> str | None:
        return self.config.openai_api_key

    @property
    def endpoint(self) -> str:
        return f"{self.config.openai_base_url.rstrip('/')}/v1/chat/completions"

    def auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}

    async def build_request(
        self, modality: Modality, prepared_input: ImageInput | str, prompt: Prompt
    ) -> dict[str, Any]:
        if modality == Modality.IMAGE:
            user_content: Any = [
                {"type": "text", "text": prompt.user},
                {"type": "image_url", "image_url": {"url": prepared_input.url}},
            ]
        else:
            user_content = prompt.user

        return {
            "model": self.config.openai_model,
            "messages": [
                {"role": "system", "content": prompt.system},
                {"role": "user", "content": user_content},
            ],
            "max_tokens": prompt.max_tokens,
            "temperature": prompt.temperature,
        }

    def extract_text(self, envelope: dict[str, Any]) -> str | None:
        try:
            content = envelope["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            return None
        return content if isinstance(content, str) else None


class GeminiAdapter(ProviderAdapter):
    """Google Gemini generateContent. Images must be sent inline as base64."""

    name = "gemini"

    @property
    def api_key(self) -> str | None:
        return self.config.gemini_api_key

    @property
    def endpoint(self) -> str:
        base = self.config.gemini_base_url.rstrip("/")
        return f"{base}/v1beta/models/{self.config.gemini_model}:generateContent"

    def auth_headers(self) -> dict[str, str]:
        return {"x-goog-api-key": self.api_key or ""}

    async def build_request(
        self, modality: Modality, prepared_input: ImageInput | str, prompt: Prompt
    ) -> dict[str, Any]:
        parts: list[dict[str, Any]] = [{"text": prompt.as_single_text()}]

        if modality == Modality.IMAGE:
            image_bytes, mime_type = await fetch_bytes(prepared_input.url, self.config)
            parts.append(
                {
                    "inline_data": {
                        "mime_type": mime_type or DEFAULT_IMAGE_MIME,
                        "data": base64.b64encode(image_bytes).decode("ascii"),
                    }
                }
            )

        return {
            "contents": [{"parts": parts}],
            "generationConfig": {
                "temperature": prompt.temperature,
                "maxOutputTokens": prompt.max_tokens,
            },
        }

    def extract_text(self, envelope: dict[str, Any]) -> str | None:
        try:
            parts = envelope["candidates"][0]["content"]["parts"]
        except (KeyError, IndexError, TypeError):
            return None
        if not isinstance(parts, list):
            return None
        texts = [p["text"] for p in parts if isinstance(p, dict) and isinstance(p.get("text"), str)]
        return "".join(texts) or None


ADAPTERS: dict[str, type[ProviderAdapter]] = {
    OpenAIAdapter.name: OpenAIAdapter,
    GeminiAdapter.name: GeminiAdapter,
}
