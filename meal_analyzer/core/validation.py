"""Request validation and authorization for the three analysis entry points."""

import re
import uuid
from datetime import date as date_type
from typing import Any
from urllib.parse import urlparse

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from meal_analyzer.core.exceptions import ForbiddenError, InvalidRequestError, UnauthorizedError
from meal_analyzer.core.models import AnalysisRequest, MealType, Modality

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _validate_http_url(v: str) -> str:
    parsed = urlparse(v)
    if parsed.scheme not in ("http", "https"):
        raise ValueError(f"URL must use http or https scheme, got {v}")
    if not parsed.netloc:
        raise ValueError(f"URL must have a valid host, got {v}")
    return v


def _validate_user_id(v: str) -> str:
    try:
        return str(uuid.UUID(v))
    except ValueError:
        raise ValueError("Invalid user ID format") from None


def _validate_date(v: str | None) -> str | None:
    if v is None:
        return None
    if not DATE_PATTERN.match(v):
        raise ValueError("date must use YYYY-MM-DD format")
    try:
        date_type.fromisoformat(v)
    except ValueError:
        raise ValueError(f"date is not a valid calendar date: {v}") from None
    return v


class _PayloadBase(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    user_id: str = Field(validation_alias=AliasChoices("userId", "user_id"))
    date: str | None = None
    meal: MealType | None = Field(default=None, validation_alias=AliasChoices("meal", "mealHint"))

    @field_validator("date", "meal", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        """Form submissions send missing optional fields as empty strings."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("user_id")
    @classmethod
    def validate_user_id(cls, v: str) -> str:
        return _validate_user_id(v)

    @field_validator("date")
    @classmethod
    def validate_date(cls, v: str | None) -> str | None:
        return _validate_date(v)


class ImageAnalysisPayload(_PayloadBase):
    """Body of an image analysis request. Date and meal hint are mandatory."""

    image_url: str = Field(validation_alias=AliasChoices("imageUrl", "image_url"))
    date: str
    meal: MealType = Field(validation_alias=AliasChoices("meal", "mealHint"))

    @field_validator("image_url")
    @classmethod
    def validate_image_url(cls, v: str) -> str:
        return _validate_http_url(v)


class AudioAnalysisPayload(_PayloadBase):
    """Body of an audio analysis request: an uploaded file or a reachable URL."""

    audio_url: str | None = Field(default=None, validation_alias=AliasChoices("audioUrl", "audio_url"))
    audio_bytes: bytes | None = Field(default=None, validation_alias=AliasChoices("audioBytes", "audio_bytes"))
    audio_filename: str | None = Field(
        default=None, validation_alias=AliasChoices("audioFilename", "audio_filename")
    )

    @field_validator("audio_bytes", mode="before")
    @classmethod
    def require_uploaded_bytes(cls, v: Any) -> Any:
        """Audio content only arrives as a multipart file; JSON bodies carry audioUrl."""
        if v is not None and not isinstance(v, (bytes, bytearray)):
            raise ValueError("audioBytes must be an uploaded audio file; send audioUrl in JSON bodies")
        return v

    @field_validator("audio_url")
    @classmethod
    def validate_audio_url(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return _validate_http_url(v)

    @model_validator(mode="after")
    def require_audio(self) -> "AudioAnalysisPayload":
        if not self.audio_bytes and not self.audio_url:
            raise ValueError("Either an audio file or audioUrl is required")
        return self


class TextAnalysisPayload(_PayloadBase):
    """Body of a free-text analysis request."""

    text: str

    @field_validator("text")
    @classmethod
    def validate_text(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("text must not be empty")
        return v


PAYLOAD_MODELS: dict[Modality, type[_PayloadBase]] = {
    Modality.IMAGE: ImageAnalysisPayload,
    Modality.AUDIO: AudioAnalysisPayload,
    Modality.TEXT: TextAnalysisPayload,
}


def _format_errors(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        location = ".".join(str(p) for p in err["loc"]) or "body"
        parts.append(f"{location}: {err['msg']}")
    return "; ".join(parts)


def validate_request(modality: Modality, payload: Any) -> AnalysisRequest:
    """
    Check the inbound payload shape for one modality.

    Args:
        modality: Which entry point received the payload
        payload: Decoded request body (JSON object or form fields)

    Returns:
        A validated AnalysisRequest

    Raises:
        InvalidRequestError: If required fields are missing or malformed
    """
    if not isinstance(payload, dict):
        raise InvalidRequestError("Request body must be a JSON object")

    try:
        parsed = PAYLOAD_MODELS[modality].model_validate(payload)
    except ValidationError as e:
        raise InvalidRequestError(f"Invalid request format: {_format_errors(e)}") from e

    if isinstance(parsed, ImageAnalysisPayload):
        ref: str | bytes = parsed.image_url
    elif isinstance(parsed, AudioAnalysisPayload):
        ref = parsed.audio_bytes if parsed.audio_bytes else parsed.audio_url
    else:
        ref = parsed.text

    return AnalysisRequest(
        modality=modality,
        subject_user_id=parsed.user_id,
        payload_ref=ref,
        date=parsed.date,
        meal_hint=parsed.meal,
        audio_filename=getattr(parsed, "audio_filename", None),
    )


def authorize(request: AnalysisRequest, caller_id: str | None) -> None:
    """
    Check that the authenticated caller is the subject of the request.

    Raises:
        UnauthorizedError: If there is no authenticated identity
        ForbiddenError: If the identity differs from the request's user id
    """
    if not caller_id:
        raise UnauthorizedError("Unauthorized")

    try:
        caller = str(uuid.UUID(caller_id))
    except ValueError:
        caller = caller_id

    if caller != request.subject_user_id:
        raise ForbiddenError("Forbidden")
