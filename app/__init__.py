"""HTTP service exposing the meal analysis pipeline."""

from meal_analyzer import __version__

__all__ = ["__version__"]
