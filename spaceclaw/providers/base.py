"""Base LLM provider interface and canonical response types.

Messages are plain dicts in the OpenAI chat-completions shape. Every provider
accepts that canonical list and translates it to its own wire format.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

NO_RESPONSE_TEXT = "(no response)"


class TransportError(Exception):
    """Raised when a provider backend call fails (network or API error)."""

    def __init__(self, provider_id: str, message: str):
        super().__init__(f"[{provider_id}] {message}")
        self.provider_id = provider_id


@dataclass
class ToolCallRequest:
    """A tool call requested by the model. ``arguments`` is raw JSON text."""

    id: str
    name: str
    arguments: str

    def to_message_dict(self) -> dict[str, Any]:
        """Render the call in the canonical assistant ``tool_calls`` shape."""
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments},
        }


@dataclass
class LLMResponse:
    """
    Response from an LLM provider.

    Exactly one of ``content`` / ``tool_calls`` is populated. The
    ``assistant_message`` is the canonical message to append to history.
    """

    content: str | None = None
    tool_calls: list[ToolCallRequest] = field(default_factory=list)
    assistant_message: dict[str, Any] = field(default_factory=dict)
    finish_reason: str = "stop"
    usage: dict[str, int] = field(default_factory=dict)

    @property
    def has_tool_calls(self) -> bool:
        """Check if response contains tool calls."""
        return len(self.tool_calls) > 0

    @classmethod
    def text(cls, content: str | None, **kwargs: Any) -> "LLMResponse":
        """Build a final text response, substituting a placeholder for empty text."""
        content = content or NO_RESPONSE_TEXT
        return cls(
            content=content,
            assistant_message={"role": "assistant", "content": content},
            **kwargs,
        )

    @classmethod
    def calls(
        cls,
        tool_calls: list[ToolCallRequest],
        text: str | None = None,
        **kwargs: Any,
    ) -> "LLMResponse":
        """Build a tool-call response; any accompanying text stays on the message only."""
        return cls(
            content=None,
            tool_calls=tool_calls,
            assistant_message={
                "role": "assistant",
                "content": text or None,
                "tool_calls": [tc.to_message_dict() for tc in tool_calls],
            },
            finish_reason=kwargs.pop("finish_reason", "tool_calls"),
            **kwargs,
        )


class LLMProvider(ABC):
    """
    Abstract base class for LLM providers.

    Implementations handle the specifics of each backend's API while
    exposing the single ``complete`` operation to the agent loop.
    """

    id: str = ""
    name: str = ""

    def __init__(
        self,
        api_key: str | None = None,
        api_base: str | None = None,
        default_model: str = "",
    ):
        self.api_key = api_key
        self.api_base = api_base
        self.default_model = default_model

    @abstractmethod
    async def complete(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
    ) -> LLMResponse:
        """
        Run one completion.

        Args:
            messages: Canonical message list, system message first.
            tools: Tool definitions in OpenAI function-calling format.

        Returns:
            LLMResponse with either content or tool calls.

        Raises:
            TransportError: If the backend call fails.
        """
        pass

    def get_default_model(self) -> str:
        """Get the model this provider was built with."""
        return self.default_model
