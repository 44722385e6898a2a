"""Turn free-form provider text into the canonical AnalysisResponse.

Extraction and parsing are all-or-nothing: text without a recoverable JSON
object raises :class:`MalformedProviderOutputError`. Projection is
best-effort per field: invalid food items are dropped, invalid nutrition
values default to zero, and an unusable meal type falls back to the
caller's hint or ``snack``.
"""

import json
import logging
import math
from typing import Any

from pydantic import ValidationError

from meal_analyzer.core.exceptions import MalformedProviderOutputError
from meal_analyzer.core.models import (
    AnalysisResponse,
    FoodItem,
    Macros,
    MealType,
    NutritionEstimate,
    ProviderTag,
)

logger = logging.getLogger(__name__)

DEFAULT_MEAL_TYPE = MealType.SNACK
MACRO_KEYS = ("protein", "carbs", "fat")


def iter_json_object_candidates(text: str) -> list[str]:
    """Return every balanced top-level ``{...}`` span in ``text``, in order.

    Braces inside JSON string literals are ignored, so prose, code fences or
    several objects around the payload do not confuse the scan.
    """
    candidates: list[str] = []
    in_str = False
    escaped = False
    depth = 0
    start_idx: int | None = None

    for i, ch in enumerate(text):
        if in_str:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_str = False
            continue

        if ch == '"':
            # Quotes only open a string inside an object; prose apostrophes and quotes are skipped.
            if depth > 0:
                in_str = True
            continue

        if ch == "{":
            if depth == 0:
                start_idx = i
            depth += 1
        elif ch == "}" and depth > 0:
            depth -= 1
            if depth == 0 and start_idx is not None:
                candidates.append(text[start_idx : i + 1])
                start_idx = None

    return candidates


def extract_json_object(text: str) -> dict[str, Any]:
    """Locate and parse the first JSON object embedded in provider text.

    Raises:
        MalformedProviderOutputError: If no balanced candidate parses as an object.
    """
    if not isinstance(text, str) or not text.strip():
        raise MalformedProviderOutputError("Provider returned no text")

    for candidate in iter_json_object_candidates(text):
        try:
            parsed = json.loads(candidate)
        except RecursionError as e:
            raise MalformedProviderOutputError("Provider output is nested too deeply to parse") from e
        except ValueError:
            continue
        if isinstance(parsed, dict):
            return parsed

    # A stray unbalanced brace in surrounding prose hides the payload from the
    # balanced scan; decode from each opening brace instead.
    decoder = json.JSONDecoder()
    start = text.find("{")
    while start != -1:
        try:
            parsed, _ = decoder.raw_decode(text, start)
        except RecursionError as e:
            raise MalformedProviderOutputError("Provider output is nested too deeply to parse") from e
        except ValueError:
            parsed = None
        if isinstance(parsed, dict):
            return parsed
        start = text.find("{", start + 1)

    raise MalformedProviderOutputError("Provider output does not contain a JSON object")


def _resolve_meal_type(payload: dict[str, Any], meal_hint: MealType | None) -> MealType:
    value = payload.get("meal", payload.get("mealType"))
    if isinstance(value, str):
        try:
            return MealType(value.strip().lower())
        except ValueError:
            logger.warning("Provider meal type %r is not recognized", value)
    if meal_hint is not None:
        return meal_hint
    return DEFAULT_MEAL_TYPE


def _project_foods(value: Any) -> list[FoodItem]:
    if value is None:
        return []
    if not isinstance(value, list):
        logger.warning("Provider 'foods' is not a list (%s); using no items", type(value).__name__)
        return []

    foods: list[FoodItem] = []
    for index, item in enumerate(value):
        try:
            foods.append(FoodItem.model_validate(item))
        except ValidationError as e:
            logger.warning(
                "PartialItemDropped: food item %d rejected (%d error(s)): %r",
                index,
                e.error_count(),
                item,
            )
    return foods


def _non_negative(value: Any, field_name: str) -> float:
    if value is None:
        return 0.0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        logger.warning("Nutrition field %s has non-numeric value %r; using 0", field_name, value)
        return 0.0
    try:
        number = float(value)
    except OverflowError:
        logger.warning("Nutrition field %s is too large to represent; using 0", field_name)
        return 0.0
    if not math.isfinite(number) or number < 0:
        logger.warning("Nutrition field %s has invalid value %r; using 0", field_name, value)
        return 0.0
    return number


def _project_nutrition(value: Any) -> NutritionEstimate:
    if not isinstance(value, dict):
        if value is not None:
            logger.warning("Provider 'nutrition' is not an object; using zeros")
        return NutritionEstimate()

    macros_value = value.get("macros")
    if not isinstance(macros_value, dict):
        macros_value = {}

    return NutritionEstimate(
        calories=_non_negative(value.get("calories"), "calories"),
        macros=Macros(**{key: _non_negative(macros_value.get(key), key) for key in MACRO_KEYS}),
    )


def _project_normalized_text(payload: dict[str, Any], fallback_text: str | None) -> str | None:
    value = payload.get("normalized_text", payload.get("normalizedText"))
    if isinstance(value, str) and value.strip():
        return value
    if fallback_text is not None:
        return fallback_text.strip() or None
    return None


def project(
    payload: dict[str, Any],
    *,
    provider: ProviderTag,
    backend: str,
    raw: str,
    meal_hint: MealType | None = None,
    transcript: str | None = None,
    fallback_text: str | None = None,
) -> AnalysisResponse:
    """Project a parsed provider object field by field into the canonical schema.

    Args:
        payload: JSON object extracted from the provider's text
        provider: Position of the answering provider
        backend: Name of the concrete service that answered
        raw: Provider text before extraction, kept for audit
        meal_hint: Caller-supplied meal type used when the provider's is unusable
        transcript: Audio transcript to attach (audio modality)
        fallback_text: Input text used as normalized text when the provider gives none
            (text modality); leave as None for other modalities
    """
    normalized_text = None
    if fallback_text is not None:
        normalized_text = _project_normalized_text(payload, fallback_text)

    return AnalysisResponse(
        meal_type=_resolve_meal_type(payload, meal_hint),
        foods=_project_foods(payload.get("foods")),
        nutrition=_project_nutrition(payload.get("nutrition")),
        transcript=transcript,
        normalized_text=normalized_text,
        provider=provider,
        backend=backend,
        raw=raw,
    )


def normalize(
    text: str,
    *,
    provider: ProviderTag,
    backend: str,
    meal_hint: MealType | None = None,
    transcript: str | None = None,
    fallback_text: str | None = None,
) -> AnalysisResponse:
    """Extract, parse and project provider text in one step."""
    payload = extract_json_object(text)
    return project(
        payload,
        provider=provider,
        backend=backend,
        raw=text,
        meal_hint=meal_hint,
        transcript=transcript,
        fallback_text=fallback_text,
    )
