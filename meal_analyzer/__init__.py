"""Meal Analyzer - multi-provider AI meal analysis pipeline.

A Python library that turns a meal photo, a voice note or a free-text
description into one canonical, validated nutrition record, falling back
from the primary AI backend to the secondary one when needed.

Usage:
    >>> from meal_analyzer import AnalyzerConfig, analyze_meal
    >>>
    >>> config = AnalyzerConfig(openai_api_key="sk-...", gemini_api_key="...")
    >>> result = await analyze_meal(
    ...     "text",
    ...     {"text": "two eggs and toast", "userId": user_id, "meal": "breakfast"},
    ...     config,
    ...     caller_id=user_id,
    ... )
    >>> print(result.nutrition.calories)
"""

__version__ = "0.1.0"

# Public library API exports
from meal_analyzer.core.config import AnalyzerConfig
from meal_analyzer.core.models import (
    AnalysisRequest,
    AnalysisResponse,
    FoodItem,
    Macros,
    MealType,
    Modality,
    NutritionEstimate,
    ProviderTag,
)
from meal_analyzer.core.operations import (
    AnalysisPipeline,
    analyze_meal,
    transcribe_audio,
)
from meal_analyzer.core.validation import validate_request

# Export exceptions for library users
from meal_analyzer.core.exceptions import (
    AllProvidersFailedError,
    AnalyzerError,
    AudioProcessingError,
    ConfigurationError,
    ForbiddenError,
    InvalidRequestError,
    MalformedProviderOutputError,
    PersistenceError,
    TranscriptionError,
    UnauthorizedError,
)

__all__ = [
    "__version__",
    # Configuration
    "AnalyzerConfig",
    # Models
    "AnalysisRequest",
    "AnalysisResponse",
    "FoodItem",
    "Macros",
    "MealType",
    "Modality",
    "NutritionEstimate",
    "ProviderTag",
    # Operations
    "AnalysisPipeline",
    "analyze_meal",
    "transcribe_audio",
    "validate_request",
    # Exceptions
    "AnalyzerError",
    "AllProvidersFailedError",
    "AudioProcessingError",
    "ConfigurationError",
    "ForbiddenError",
    "InvalidRequestError",
    "MalformedProviderOutputError",
    "PersistenceError",
    "TranscriptionError",
    "UnauthorizedError",
]
