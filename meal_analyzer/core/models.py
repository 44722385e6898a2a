"""Data model shared by every stage of the analysis pipeline."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Modality(str, Enum):
    """Kind of user input describing a meal."""

    IMAGE = "image"
    AUDIO = "audio"
    TEXT = "text"


class MealType(str, Enum):
    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"
    SNACK = "snack"


class ProviderTag(str, Enum):
    """Position of the answering provider in the fallback order."""

    PRIMARY = "primary"
    SECONDARY = "secondary"


class AttemptOutcome(str, Enum):
    SUCCESS = "success"
    NETWORK_ERROR = "networkError"
    EMPTY_CONTENT = "emptyContent"
    PARSE_ERROR = "parseError"


class FoodItem(BaseModel):
    """A single food detected by a provider.

    Values are never coerced; the normalizer drops any item that fails
    these constraints.
    """

    model_config = ConfigDict(strict=True, extra="ignore")

    label: str = Field(min_length=1, description="Food name")
    confidence: float = Field(ge=0.0, le=1.0, allow_inf_nan=False, description="Certainty in [0, 1]")
    quantity: str | None = Field(default=None, description="Estimated portion")

    @field_validator("label")
    @classmethod
    def validate_label(cls, v: str) -> str:
        """Reject labels made only of whitespace."""
        if not v.strip():
            raise ValueError("label must not be blank")
        return v

    @field_validator("confidence", mode="before")
    @classmethod
    def validate_confidence_type(cls, v: Any) -> Any:
        """Booleans are ints in Python; they are never a confidence score."""
        if isinstance(v, bool):
            raise ValueError("confidence must be a number")
        return v


class Macros(BaseModel):
    protein: float = Field(default=0.0, ge=0.0)
    carbs: float = Field(default=0.0, ge=0.0)
    fat: float = Field(default=0.0, ge=0.0)


class NutritionEstimate(BaseModel):
    calories: float = Field(default=0.0, ge=0.0)
    macros: Macros = Field(default_factory=Macros)


class AnalysisResponse(BaseModel):
    """Canonical output of every modality and provider combination."""

    model_config = ConfigDict(populate_by_name=True)

    meal_type: MealType = Field(alias="mealType")
    foods: list[FoodItem] = Field(default_factory=list)
    nutrition: NutritionEstimate = Field(default_factory=NutritionEstimate)
    transcript: str | None = Field(default=None, description="Audio transcript")
    normalized_text: str | None = Field(
        default=None, alias="normalizedText", description="Cleaned-up meal description"
    )
    provider: ProviderTag
    backend: str = Field(description="Concrete AI service that answered")
    raw: str = Field(min_length=1, description="Unmodified text returned by the winning provider")


@dataclass(frozen=True)
class AnalysisRequest:
    """A validated, per-call analysis request."""

    modality: Modality
    subject_user_id: str
    # URL for image/audio-by-URL, raw bytes for uploaded audio, the text itself for text.
    payload_ref: str | bytes
    date: str | None = None
    meal_hint: MealType | None = None
    audio_filename: str | None = None


@dataclass(frozen=True)
class ImageInput:
    url: str


@dataclass(frozen=True)
class AudioInput:
    data: bytes
    filename: str = "audio.webm"
    content_type: str = "application/octet-stream"


@dataclass
class RawResult:
    """What a provider adapter hands back on success."""

    backend: str
    text: str
    envelope: dict[str, Any] = field(default_factory=dict)


@dataclass
class ProviderAttempt:
    """Record of one adapter call, kept for fallback decisions and logging."""

    provider: ProviderTag
    backend: str
    outcome: AttemptOutcome
    detail: str = ""
