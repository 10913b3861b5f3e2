"""Provider factory - builds an adapter from a provider id and model.

OpenAI, Groq and DeepSeek share the OpenAI-compatible protocol; Anthropic and
Google use their native SDKs.
"""

from spaceclaw.config.schema import Config
from spaceclaw.providers.anthropic_provider import AnthropicProvider
from spaceclaw.providers.base import LLMProvider
from spaceclaw.providers.gemini_provider import GeminiProvider
from spaceclaw.providers.openai_provider import (
    DEEPSEEK_API_BASE,
    GROQ_API_BASE,
    OpenAIProvider,
)

# Default timeout for API requests (seconds)
DEFAULT_TIMEOUT = 120

# Known providers and models; the first model of each entry is its default
PROVIDER_CATALOG: dict[str, dict[str, object]] = {
    "openai": {
        "name": "OpenAI",
        "models": ["gpt-4o", "gpt-4.1", "gpt-4.1-mini", "gpt-5.1", "gpt-5.2", "gpt-5.1-mini"],
    },
    "anthropic": {
        "name": "Anthropic",
        "models": ["claude-sonnet-4-5", "claude-sonnet-4"],
    },
    "google": {
        "name": "Google Gemini",
        "models": ["gemini-2.5-flash", "gemini-2.5-pro", "gemini-2.5-flash-lite"],
    },
    "groq": {
        "name": "Groq",
        "models": ["llama-3.3-70b-versatile", "llama-3.1-8b-instant", "mixtral-8x7b-32768"],
    },
    "deepseek": {
        "name": "DeepSeek",
        "models": ["deepseek-chat", "deepseek-reasoner"],
    },
}

# Default base URLs for OpenAI-compatible backends
COMPATIBLE_API_BASES: dict[str, str] = {
    "groq": GROQ_API_BASE,
    "deepseek": DEEPSEEK_API_BASE,
}


class ProviderConfigError(Exception):
    """Raised when provider configuration is invalid."""
    pass


def provider_display_name(provider_id: str) -> str:
    """Get the human-friendly name of a provider id (falls back to the id)."""
    entry = PROVIDER_CATALOG.get(provider_id)
    return str(entry["name"]) if entry else provider_id


def default_model_for(provider_id: str) -> str | None:
    """Get the first catalog model of a provider, if it is known."""
    entry = PROVIDER_CATALOG.get(provider_id)
    if not entry:
        return None
    models = entry["models"]
    return models[0] if models else None


def build_provider(provider_id: str, model: str, config: Config) -> LLMProvider:
    """
    Build a provider adapter.

    Args:
        provider_id: Catalog id ("openai", "anthropic", "google", "groq", "deepseek").
        model: Model id passed to the backend.
        config: The spaceclaw configuration (credentials, token limits).

    Returns:
        An LLM provider instance.

    Raises:
        ProviderConfigError: If the provider is unknown or its API key is missing.
    """
    if provider_id not in PROVIDER_CATALOG:
        raise ProviderConfigError(
            f'Unknown provider "{provider_id}". '
            f"Available: {', '.join(PROVIDER_CATALOG)}"
        )
    if not model:
        raise ProviderConfigError(f'No model given for provider "{provider_id}"')

    api_key = config.get_api_key(provider_id)
    provider_config = config.get_provider_config(provider_id)
    api_base = provider_config.api_base if provider_config else None
    max_tokens = config.agents.defaults.max_tokens

    if not api_key:
        raise ProviderConfigError(
            f"Provider '{provider_id}' requires API key. "
            f"Set providers.{provider_id}.apiKey in config."
        )

    if provider_id == "anthropic":
        return AnthropicProvider(
            api_key=api_key,
            api_base=api_base,
            default_model=model,
            timeout=DEFAULT_TIMEOUT,
            max_tokens=max_tokens,
        )

    if provider_id == "google":
        return GeminiProvider(
            api_key=api_key,
            api_base=api_base,
            default_model=model,
            timeout=DEFAULT_TIMEOUT,
            max_tokens=max_tokens,
        )

    return OpenAIProvider(
        api_key=api_key,
        api_base=api_base or COMPATIBLE_API_BASES.get(provider_id),
        default_model=model,
        timeout=DEFAULT_TIMEOUT,
        max_tokens=max_tokens,
        provider_id=provider_id,
        display_name=provider_display_name(provider_id),
    )
