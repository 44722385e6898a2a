"""Example: Transcribe a voice note and analyze the meal it describes."""

import asyncio
import os

from meal_analyzer import AnalysisPipeline, AnalyzerConfig, Modality, transcribe_audio, validate_request
from meal_analyzer.core.persistence import InMemoryRecordStore


async def main():
    """Transcribe a voice note, then run the full audio pipeline on it."""
    config = AnalyzerConfig(
        openai_api_key=os.environ.get("OPENAI_API_KEY"),
        gemini_api_key=os.environ.get("GEMINI_API_KEY"),
        audio_max_upload_bytes=25_000_000,  # Whisper upload limit
    )

    # Read audio file
    audio_path = "path/to/your/voice_note.webm"
    with open(audio_path, "rb") as f:
        audio_bytes = f.read()

    print("Transcribing audio...")
    transcript = await transcribe_audio(audio_bytes, config, filename="voice_note.webm")
    print(f"\nTranscript:\n{transcript}")

    # Full pipeline with a local store instead of the database
    user_id = "0b6c5b8e-3f5a-4a43-9a4c-2f1f7f5f6c11"
    store = InMemoryRecordStore()
    pipeline = AnalysisPipeline(config, record_store=store)
    request = validate_request(
        Modality.AUDIO,
        {"audioBytes": audio_bytes, "audioFilename": "voice_note.webm", "userId": user_id, "date": "2024-05-01"},
    )
    result = await pipeline.run(request, caller_id=user_id)

    print(f"\nMeal: {result.meal_type.value}, {result.nutrition.calories:.0f} kcal")
    print(f"Stored rows: {len(store.rows)}")


if __name__ == "__main__":
    asyncio.run(main())
