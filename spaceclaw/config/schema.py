"""Configuration schema using Pydantic."""

from pathlib import Path

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AgentDefaults(BaseModel):
    """Default agent configuration."""
    provider: str = "openai"
    model: str = "gpt-4o"
    max_tokens: int = 4096
    max_tool_iterations: int = Field(default=10, ge=1)
    instructions_file: str | None = None  # Optional personality file appended to the prompt


class AgentsConfig(BaseModel):
    """Agent configuration."""
    defaults: AgentDefaults = AgentDefaults()


class ProviderConfig(BaseModel):
    """LLM provider configuration."""
    api_key: str = ""
    api_base: str | None = None


class ProvidersConfig(BaseModel):
    """Configuration for LLM providers."""
    openai: ProviderConfig = ProviderConfig()
    anthropic: ProviderConfig = ProviderConfig()
    google: ProviderConfig = ProviderConfig()
    groq: ProviderConfig = ProviderConfig()
    deepseek: ProviderConfig = ProviderConfig()


class MemoryConfig(BaseModel):
    """Configuration for conversation storage and long-term memory."""
    enabled: bool = True  # Semantic retrieval into the system prompt
    db_path: str = "~/.spaceclaw/memory.db"
    retrieval_k: int = Field(default=3, ge=1)
    retrieval_timeout: float = 5.0
    extraction_enabled: bool = True
    extraction_model: str = "gpt-4o-mini"
    embedding_provider: str = "auto"  # auto, openai, gemini, ollama


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = "INFO"


class Config(BaseSettings):
    """Root configuration for spaceclaw."""
    agents: AgentsConfig = AgentsConfig()
    providers: ProvidersConfig = ProvidersConfig()
    memory: MemoryConfig = MemoryConfig()
    logging: LoggingConfig = LoggingConfig()

    model_config = SettingsConfigDict(
        env_prefix="SPACECLAW_",
        env_nested_delimiter="__",
    )

    @property
    def db_path(self) -> Path:
        """Get expanded memory database path."""
        return Path(self.memory.db_path).expanduser()

    @property
    def instructions_path(self) -> Path:
        """Get the personality file path (defaults to ~/.spaceclaw/soul.md)."""
        configured = self.agents.defaults.instructions_file
        if configured:
            return Path(configured).expanduser()
        return Path.home() / ".spaceclaw" / "soul.md"

    def get_provider_config(self, provider_id: str) -> ProviderConfig | None:
        """Get the credentials block for a provider id, if one exists."""
        return getattr(self.providers, provider_id, None)

    def get_api_key(self, provider_id: str) -> str | None:
        """Get the API key for a provider id, or None when unset."""
        provider = self.get_provider_config(provider_id)
        if provider and provider.api_key:
            return provider.api_key
        return None
