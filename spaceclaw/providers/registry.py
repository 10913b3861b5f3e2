"""Active provider selection, persisted across restarts."""

from typing import Protocol

from loguru import logger

from spaceclaw.config.schema import Config
from spaceclaw.providers.base import LLMProvider
from spaceclaw.providers.factory import (
    PROVIDER_CATALOG,
    ProviderConfigError,
    build_provider,
    default_model_for,
    provider_display_name,
)

ACTIVE_LLM_KEY = "active_llm"


class SettingsStore(Protocol):
    """Key/value storage for the persisted selection."""

    def get_setting(self, key: str) -> str | None: ...

    def set_setting(self, key: str, value: str) -> None: ...


class ProviderSelection:
    """
    Holds the active provider adapter.

    The selection is stored as ``"<provider_id>:<model>"`` under the
    ``active_llm`` setting. Without a stored value the configured
    ``agents.defaults`` provider and model are used. The adapter itself is
    built lazily on first use.
    """

    def __init__(self, config: Config, settings: SettingsStore | None = None):
        self.config = config
        self.settings = settings
        self.provider_id, self.model = self._load_active()
        self._provider: LLMProvider | None = None

    def _load_active(self) -> tuple[str, str]:
        if self.settings is not None:
            stored = self.settings.get_setting(ACTIVE_LLM_KEY)
            if stored:
                provider_id, _, model = stored.partition(":")
                if provider_id and model:
                    return provider_id, model
        defaults = self.config.agents.defaults
        return defaults.provider, defaults.model

    @property
    def provider(self) -> LLMProvider:
        """Get the active adapter, building it on first access.

        Raises:
            ProviderConfigError: If the stored selection cannot be built.
        """
        if self._provider is None:
            self._provider = build_provider(self.provider_id, self.model, self.config)
            logger.info(f"LLM provider initialised: {self.provider_id} ({self.model})")
        return self._provider

    @property
    def label(self) -> str:
        """Display string such as ``"OpenAI · gpt-4o"``."""
        return f"{provider_display_name(self.provider_id)} · {self.model}"

    def switch(self, provider_id: str, model: str | None = None) -> LLMProvider:
        """
        Switch to a new provider and model and persist the choice.

        Args:
            provider_id: Catalog provider id.
            model: Model id; defaults to the provider's first catalog model.

        Returns:
            The newly built adapter.

        Raises:
            ProviderConfigError: If the provider is unknown or not configured.
                The previous selection stays active.
        """
        provider_id = provider_id.lower()
        if provider_id not in PROVIDER_CATALOG:
            raise ProviderConfigError(
                f'Unknown provider "{provider_id}". '
                f"Available: {', '.join(PROVIDER_CATALOG)}"
            )
        model = model or default_model_for(provider_id) or ""

        # Build eagerly so a missing key is reported before anything changes
        provider = build_provider(provider_id, model, self.config)

        self._provider = provider
        self.provider_id = provider_id
        self.model = model
        if self.settings is not None:
            self.settings.set_setting(ACTIVE_LLM_KEY, f"{provider_id}:{model}")
        logger.info(f"LLM provider switched to {self.label}")
        return provider
