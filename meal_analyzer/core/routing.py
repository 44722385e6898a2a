"""Backend routing logic - selects the primary and secondary provider adapters."""

from meal_analyzer.core.config import AnalyzerConfig
from meal_analyzer.core.exceptions import ConfigurationError
from meal_analyzer.core.providers import ADAPTERS, ProviderAdapter


def has_credentials(config: AnalyzerConfig) -> bool:
    """
    Check whether at least one AI backend can be called.

    Args:
        config: Analyzer configuration

    Returns:
        True if an API key is set for OpenAI or Gemini, False otherwise
    """
    return bool(config.openai_api_key or config.gemini_api_key)


def select_providers(config: AnalyzerConfig) -> tuple[ProviderAdapter, ProviderAdapter]:
    """
    Build the (primary, secondary) adapter pair from configuration.

    Args:
        config: Analyzer configuration

    Returns:
        Tuple of the adapter tried first and the adapter used as fallback

    Raises:
        ConfigurationError: If the primary provider name is unknown
    """
    primary_cls = ADAPTERS.get(config.primary_provider)
    if primary_cls is None:
        raise ConfigurationError(
            f"Unknown primary provider: {config.primary_provider}. "
            f"Expected one of: {', '.join(sorted(ADAPTERS))}"
        )

    secondary_cls = ADAPTERS[config.secondary_provider]
    return primary_cls(config), secondary_cls(config)
