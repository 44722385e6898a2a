"""Example: Analyze a meal photo and a free-text description with the meal analyzer library."""

import asyncio
import os

from meal_analyzer import AnalyzerConfig, analyze_meal
from meal_analyzer.core.logging import setup_logging


async def main():
    """Analyze one meal photo and one typed description for the same user."""
    setup_logging("INFO")

    # OpenAI answers first, Gemini is used when OpenAI fails
    config = AnalyzerConfig(
        primary_provider="openai",
        openai_api_key=os.environ.get("OPENAI_API_KEY"),
        gemini_api_key=os.environ.get("GEMINI_API_KEY"),
    )

    user_id = "0b6c5b8e-3f5a-4a43-9a4c-2f1f7f5f6c11"

    print("Analyzing photo...")
    photo = await analyze_meal(
        "image",
        {
            "imageUrl": "https://example.com/path/to/lunch.jpg",
            "userId": user_id,
            "date": "2024-05-01",
            "meal": "lunch",
        },
        config,
        caller_id=user_id,
    )
    print(f"{photo.meal_type.value}: {[f.label for f in photo.foods]} ({photo.nutrition.calories:.0f} kcal)")
    print(f"Answered by the {photo.provider.value} provider ({photo.backend})")

    print("\nAnalyzing description...")
    text = await analyze_meal(
        "text",
        {"text": "two scrambled eggs, a slice of toast and black coffee", "userId": user_id, "meal": "breakfast"},
        config,
        caller_id=user_id,
    )
    print(text.model_dump_json(by_alias=True, exclude_none=True, indent=2))


if __name__ == "__main__":
    asyncio.run(main())
