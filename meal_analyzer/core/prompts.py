"""Prompt templates for each analysis modality."""

from dataclasses import dataclass

IMAGE_SYSTEM_PROMPT = """You are a nutrition expert. Analyze food images and answer with a single JSON object:
{
  "foods": [{"label": "food name", "confidence": 0.9, "quantity": "estimated portion"}],
  "nutrition": {"calories": 500, "macros": {"protein": 25, "carbs": 60, "fat": 15}}
}

Be accurate with calorie estimates and include confidence scores (0-1). Focus on the main food items visible. Return only valid JSON."""

AUDIO_SYSTEM_PROMPT = """You are a nutrition expert. Analyze voice transcripts about meals and answer with a single JSON object:
{
  "meal": "breakfast|lunch|dinner|snack",
  "foods": [{"label": "food name", "confidence": 0.9, "quantity": "estimated portion"}],
  "nutrition": {"calories": 500, "macros": {"protein": 25, "carbs": 60, "fat": 15}}
}

Determine the meal type from context clues (time, food types, etc.). Be accurate with food identification and calorie estimates. Return only valid JSON."""

TEXT_SYSTEM_PROMPT = """You are a nutrition expert. Given a free-form meal description, answer ONLY with a single JSON object:
{
  "meal": "breakfast|lunch|dinner|snack",
  "foods": [{"label": "food name", "confidence": 0.9, "quantity": "estimated portion"}],
  "nutrition": {"calories": number, "macros": {"protein": number, "carbs": number, "fat": number}},
  "normalized_text": "cleaned up summary"
}
Use the provided meal hint if it makes sense; otherwise infer the meal type from context. Confidence range is 0-1."""

IMAGE_USER_PROMPT = "Analyze this food image and provide nutrition information."


@dataclass(frozen=True)
class Prompt:
    """A rendered prompt plus the generation parameters that go with it."""

    system: str
    user: str
    temperature: float
    max_tokens: int

    def as_single_text(self) -> str:
        """Flatten system and user parts for backends without a system role."""
        return f"{self.system}\n\n{self.user}"


def build_image_prompt(system_prompt: str) -> Prompt:
    return Prompt(system=system_prompt, user=IMAGE_USER_PROMPT, temperature=0.3, max_tokens=500)


def build_audio_prompt(system_prompt: str, transcript: str) -> Prompt:
    return Prompt(
        system=system_prompt,
        user=f'Analyze this meal description: "{transcript}"',
        temperature=0.3,
        max_tokens=500,
    )


def build_text_prompt(system_prompt: str, text: str, meal_hint: str | None = None) -> Prompt:
    user = f"Meal hint: {meal_hint}. Description: {text}" if meal_hint else text
    return Prompt(system=system_prompt, user=user, temperature=0.2, max_tokens=600)
