"""LLM provider abstraction module."""

from spaceclaw.providers.base import LLMProvider, LLMResponse, ToolCallRequest, TransportError
from spaceclaw.providers.factory import PROVIDER_CATALOG, ProviderConfigError, build_provider
from spaceclaw.providers.registry import ProviderSelection

__all__ = [
    "LLMProvider",
    "LLMResponse",
    "ToolCallRequest",
    "TransportError",
    "PROVIDER_CATALOG",
    "ProviderConfigError",
    "build_provider",
    "ProviderSelection",
]
