"""Tests for request validation and caller authorization."""

import pytest

from meal_analyzer import (
    ForbiddenError,
    InvalidRequestError,
    MealType,
    Modality,
    UnauthorizedError,
    validate_request,
)
from meal_analyzer.core.validation import authorize

USER_ID = "0b6c5b8e-3f5a-4a43-9a4c-2f1f7f5f6c11"
OTHER_ID = "f3c2b1a0-1111-4222-8333-944455556666"


# ---------------------------------------------------------------------------
# Image
# ---------------------------------------------------------------------------

class TestImagePayload:

    def test_valid(self):
        request = validate_request(
            Modality.IMAGE,
            {"imageUrl": "https://cdn.test/a.jpg", "userId": USER_ID, "date": "2024-05-01", "meal": "lunch"},
        )
        assert request.modality == Modality.IMAGE
        assert request.payload_ref == "https://cdn.test/a.jpg"
        assert request.subject_user_id == USER_ID
        assert request.date == "2024-05-01"
        assert request.meal_hint == MealType.LUNCH

    def test_meal_hint_alias(self):
        request = validate_request(
            Modality.IMAGE,
            {"imageUrl": "https://cdn.test/a.jpg", "userId": USER_ID, "date": "2024-05-01", "mealHint": "dinner"},
        )
        assert request.meal_hint == MealType.DINNER

    @pytest.mark.parametrize("missing", ["imageUrl", "userId", "date", "meal"])
    def test_missing_field(self, missing):
        payload = {"imageUrl": "https://cdn.test/a.jpg", "userId": USER_ID, "date": "2024-05-01", "meal": "lunch"}
        del payload[missing]
        with pytest.raises(InvalidRequestError, match="Invalid request format"):
            validate_request(Modality.IMAGE, payload)

    def test_non_http_url(self):
        with pytest.raises(InvalidRequestError, match="http or https"):
            validate_request(
                Modality.IMAGE,
                {"imageUrl": "file:///etc/passwd", "userId": USER_ID, "date": "2024-05-01", "meal": "lunch"},
            )

    def test_unknown_meal(self):
        with pytest.raises(InvalidRequestError):
            validate_request(
                Modality.IMAGE,
                {"imageUrl": "https://cdn.test/a.jpg", "userId": USER_ID, "date": "2024-05-01", "meal": "brunch"},
            )


# ---------------------------------------------------------------------------
# Audio
# ---------------------------------------------------------------------------

class TestAudioPayload:

    def test_audio_url(self):
        request = validate_request(Modality.AUDIO, {"audioUrl": "https://cdn.test/note.m4a", "userId": USER_ID})
        assert request.payload_ref == "https://cdn.test/note.m4a"
        assert request.date is None

    def test_audio_bytes_win_over_url(self):
        request = validate_request(
            Modality.AUDIO,
            {
                "audioBytes": b"RIFF",
                "audioFilename": "note.wav",
                "audioUrl": "https://cdn.test/note.m4a",
                "userId": USER_ID,
                "date": "2024-05-01",
            },
        )
        assert request.payload_ref == b"RIFF"
        assert request.audio_filename == "note.wav"

    def test_blank_form_fields_become_none(self):
        request = validate_request(Modality.AUDIO, {"audioBytes": b"RIFF", "userId": USER_ID, "date": ""})
        assert request.date is None

    def test_requires_audio(self):
        with pytest.raises(InvalidRequestError, match="Either an audio file or audioUrl is required"):
            validate_request(Modality.AUDIO, {"userId": USER_ID})

    @pytest.mark.parametrize("value", ["UklGRiQAAABXQVZF", ["R", "I"], 42])
    def test_audio_bytes_from_json_rejected(self, value):
        with pytest.raises(InvalidRequestError, match="audioBytes must be an uploaded audio file"):
            validate_request(Modality.AUDIO, {"audioBytes": value, "userId": USER_ID})


# ---------------------------------------------------------------------------
# Text
# ---------------------------------------------------------------------------

class TestTextPayload:

    def test_valid(self):
        request = validate_request(Modality.TEXT, {"text": "two eggs", "userId": USER_ID, "meal": "breakfast"})
        assert request.payload_ref == "two eggs"
        assert request.meal_hint == MealType.BREAKFAST
        assert request.date is None

    def test_blank_text(self):
        with pytest.raises(InvalidRequestError, match="text must not be empty"):
            validate_request(Modality.TEXT, {"text": "   ", "userId": USER_ID})

    def test_user_id_canonicalized(self):
        request = validate_request(Modality.TEXT, {"text": "x", "userId": USER_ID.upper()})
        assert request.subject_user_id == USER_ID

    def test_invalid_user_id(self):
        with pytest.raises(InvalidRequestError, match="Invalid user ID format"):
            validate_request(Modality.TEXT, {"text": "x", "userId": "not-a-uuid"})

    @pytest.mark.parametrize("value", ["01-05-2024", "2024-5-1", "2024-02-30"])
    def test_invalid_date(self, value):
        with pytest.raises(InvalidRequestError):
            validate_request(Modality.TEXT, {"text": "x", "userId": USER_ID, "date": value})

    def test_body_must_be_object(self):
        with pytest.raises(InvalidRequestError, match="must be a JSON object"):
            validate_request(Modality.TEXT, ["text"])


# ---------------------------------------------------------------------------
# authorize
# ---------------------------------------------------------------------------

class TestAuthorize:

    @pytest.fixture
    def request_for_user(self):
        return validate_request(Modality.TEXT, {"text": "x", "userId": USER_ID})

    def test_matching_caller(self, request_for_user):
        authorize(request_for_user, USER_ID)
        authorize(request_for_user, USER_ID.upper())

    @pytest.mark.parametrize("caller", [None, ""])
    def test_no_caller(self, request_for_user, caller):
        with pytest.raises(UnauthorizedError) as exc_info:
            authorize(request_for_user, caller)
        assert exc_info.value.status_code == 401

    def test_other_caller(self, request_for_user):
        with pytest.raises(ForbiddenError) as exc_info:
            authorize(request_for_user, OTHER_ID)
        assert exc_info.value.status_code == 403
