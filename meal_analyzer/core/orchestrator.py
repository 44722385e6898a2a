"""Fallback orchestration across the primary and secondary provider."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from meal_analyzer.core.exceptions import (
    AllProvidersFailedError,
    AnalyzerError,
    MalformedProviderOutputError,
    ProviderError,
)
from meal_analyzer.core.models import (
    AttemptOutcome,
    ImageInput,
    Modality,
    ProviderAttempt,
    ProviderTag,
    RawResult,
)
from meal_analyzer.core.normalizer import extract_json_object
from meal_analyzer.core.prompts import Prompt
from meal_analyzer.core.providers import ProviderAdapter

logger = logging.getLogger(__name__)


@dataclass
class OrchestratorResult:
    raw: RawResult
    provider: ProviderTag
    payload: dict[str, Any]
    attempts: list[ProviderAttempt] = field(default_factory=list)


class FallbackOrchestrator:
    """Try the primary adapter, then the secondary adapter exactly once.

    Calls are strictly sequential; the secondary is never called when the
    primary succeeds and no adapter is ever called twice. An attempt counts
    as successful only if its text yields a JSON object through ``extract``.
    """

    def __init__(
        self,
        primary: ProviderAdapter,
        secondary: ProviderAdapter,
        extract: Callable[[str], dict[str, Any]] = extract_json_object,
    ):
        self.primary = primary
        self.secondary = secondary
        self.extract = extract

    async def run(
        self, modality: Modality, prepared_input: ImageInput | str, prompt: Prompt
    ) -> OrchestratorResult:
        """
        Run the analysis with fallback.

        Raises:
            MalformedProviderOutputError: If every provider answered but none with usable JSON
            AllProvidersFailedError: If both providers failed for any other mix of reasons
        """
        attempts: list[ProviderAttempt] = []
        errors: list[AnalyzerError] = []

        for tag, adapter in ((ProviderTag.PRIMARY, self.primary), (ProviderTag.SECONDARY, self.secondary)):
            if attempts:
                logger.warning(
                    "%s analysis: %s provider failed, falling back to %s",
                    modality.value,
                    attempts[-1].backend,
                    adapter.name,
                )
            logger.info("%s analysis: trying %s provider (%s)", modality.value, tag.value, adapter.name)

            try:
                raw = await adapter.analyze(modality, prepared_input, prompt)
                payload = self.extract(raw.text)
            except ProviderError as e:
                attempts.append(ProviderAttempt(tag, adapter.name, e.outcome, e.message))
                errors.append(e)
                continue
            except MalformedProviderOutputError as e:
                attempts.append(ProviderAttempt(tag, adapter.name, AttemptOutcome.PARSE_ERROR, e.message))
                errors.append(e)
                continue

            attempts.append(ProviderAttempt(tag, adapter.name, AttemptOutcome.SUCCESS))
            logger.info("%s analysis: %s provider succeeded", modality.value, adapter.name)
            return OrchestratorResult(raw=raw, provider=tag, payload=payload, attempts=attempts)

        summary = "; ".join(f"{a.backend}={a.outcome.value}" for a in attempts)
        logger.error("%s analysis: all providers failed (%s)", modality.value, summary)

        if all(a.outcome == AttemptOutcome.PARSE_ERROR for a in attempts):
            raise MalformedProviderOutputError(
                "AI analysis failed: no provider returned a usable JSON answer", errors=errors
            )
        raise AllProvidersFailedError("AI analysis failed, please try again", errors=errors)
