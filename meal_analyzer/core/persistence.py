"""Persistence collaborator: stores finished analyses as food entries.

The pipeline calls a store at most once per successful analysis, after the
canonical response exists. Store failures are logged and never change the
response returned to the caller.
"""

import logging
from typing import Any, Protocol

import httpx

from meal_analyzer.core.config import AnalyzerConfig
from meal_analyzer.core.exceptions import PersistenceError
from meal_analyzer.core.models import AnalysisRequest, AnalysisResponse, Modality

logger = logging.getLogger(__name__)

FOOD_ENTRIES_TABLE = "food_entries"


class RecordStore(Protocol):
    async def persist_record(
        self,
        subject_user_id: str,
        date: str,
        fields: dict[str, Any],
        response: AnalysisResponse,
    ) -> None: ...


def record_fields(request: AnalysisRequest, response: AnalysisResponse) -> dict[str, Any]:
    """Build the food entry columns derived from the modality and the analysis."""
    photo_url = request.payload_ref if request.modality == Modality.IMAGE else None
    voice_url = None
    if request.modality == Modality.AUDIO and isinstance(request.payload_ref, str):
        voice_url = request.payload_ref

    if request.modality == Modality.AUDIO:
        note = response.transcript
    elif request.modality == Modality.TEXT:
        note = response.normalized_text
    else:
        note = None

    return {
        "meal": response.meal_type.value,
        "photo_url": photo_url,
        "voice_url": voice_url,
        "ai_raw": {
            "provider": response.provider.value,
            "backend": response.backend,
            "raw": response.raw,
        },
        "food_labels": [food.label for food in response.foods],
        "calories": response.nutrition.calories,
        "macros": response.nutrition.macros.model_dump(),
        "note": note,
        "journal_mode": False,
    }


class SupabaseRecordStore:
    """Insert food entries through the Supabase REST API on behalf of the caller."""

    def __init__(self, base_url: str, api_key: str, access_token: str, config: AnalyzerConfig):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.access_token = access_token
        self.config = config

    async def persist_record(
        self,
        subject_user_id: str,
        date: str,
        fields: dict[str, Any],
        response: AnalysisResponse,
    ) -> None:
        url = f"{self.base_url}/rest/v1/{FOOD_ENTRIES_TABLE}"
        row = {"user_id": subject_user_id, "date": date, **fields}
        timeout = httpx.Timeout(self.config.timeout_s, connect=self.config.connect_timeout_s)

        try:
            async with httpx.AsyncClient(timeout=timeout) as client:
                result = await client.post(
                    url,
                    json=row,
                    headers={
                        "apikey": self.api_key,
                        "Authorization": f"Bearer {self.access_token}",
                        "Prefer": "return=minimal",
                    },
                )
        except httpx.HTTPError as e:
            raise PersistenceError(f"Could not reach the database: {e}") from e

        if not result.is_success:
            raise PersistenceError(f"Database rejected the food entry (HTTP {result.status_code}): {result.text[:200]}")


class InMemoryRecordStore:
    """Keeps rows in a list. For local development and tests."""

    def __init__(self) -> None:
        self.rows: list[dict[str, Any]] = []

    async def persist_record(
        self,
        subject_user_id: str,
        date: str,
        fields: dict[str, Any],
        response: AnalysisResponse,
    ) -> None:
        self.rows.append({"user_id": subject_user_id, "date": date, **fields})


async def persist_safely(
    store: RecordStore, request: AnalysisRequest, response: AnalysisResponse
) -> bool:
    """Persist one analysis, logging instead of raising on failure.

    Returns:
        True if the store accepted the record, False otherwise
    """
    if request.date is None:
        logger.debug("No date on request; analysis not persisted")
        return False

    try:
        await store.persist_record(
            request.subject_user_id,
            request.date,
            record_fields(request, response),
            response,
        )
    except Exception as e:
        logger.error("Failed to persist %s analysis: %s", request.modality.value, e)
        return False

    logger.info("Persisted %s analysis for %s", request.modality.value, request.date)
    return True
