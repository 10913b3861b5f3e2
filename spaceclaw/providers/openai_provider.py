"""Native OpenAI provider implementation (also used for OpenAI-compatible APIs)."""

import logging
from typing import Any

from openai import AsyncOpenAI, APIError, APITimeoutError

from spaceclaw.providers.base import (
    LLMProvider,
    LLMResponse,
    ToolCallRequest,
    TransportError,
)

logger = logging.getLogger(__name__)

# Default timeout for API requests (seconds)
DEFAULT_TIMEOUT = 120

GROQ_API_BASE = "https://api.groq.com/openai/v1"
DEEPSEEK_API_BASE = "https://api.deepseek.com"


class OpenAIProvider(LLMProvider):
    """
    Native OpenAI provider with OpenAI-compatible API support.

    The canonical message shape is the OpenAI chat-completions shape, so
    messages and tool definitions are sent as-is. Covers OpenAI itself and
    compatible backends (Groq, DeepSeek, local servers) via ``api_base``.
    """

    id = "openai"
    name = "OpenAI"

    def __init__(
        self,
        api_key: str | None = None,
        api_base: str | None = None,
        default_model: str = "gpt-4o",
        timeout: int = DEFAULT_TIMEOUT,
        max_tokens: int = 4096,
        provider_id: str | None = None,
        display_name: str | None = None,
    ):
        """
        Initialize OpenAI provider.

        Args:
            api_key: OpenAI API key or compatible provider key.
            api_base: Custom base URL for compatible providers.
            default_model: Model to use for every completion.
            timeout: Request timeout in seconds.
            max_tokens: Maximum tokens in a response.
            provider_id: Override the provider id (e.g. "groq").
            display_name: Override the human-friendly name.
        """
        super().__init__(api_key, api_base, default_model)
        self.timeout = timeout
        self.max_tokens = max_tokens
        if provider_id:
            self.id = provider_id
        if display_name:
            self.name = display_name

        # Retries are a caller concern; the SDK default would retry twice.
        client_kwargs: dict[str, Any] = {
            "timeout": timeout,
            "max_retries": 0,
        }
        if api_key:
            client_kwargs["api_key"] = api_key
        if api_base:
            client_kwargs["base_url"] = api_base

        self.client = AsyncOpenAI(**client_kwargs)

    async def complete(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
    ) -> LLMResponse:
        """
        Send a chat completion request via the OpenAI API.

        Args:
            messages: Canonical message list.
            tools: Optional tool definitions in OpenAI format.

        Returns:
            LLMResponse with content or tool calls.
        """
        logger.debug("[%s] complete() model=%s msgs=%d", self.id, self.default_model, len(messages))

        request_kwargs: dict[str, Any] = {
            "model": self.default_model,
            "messages": messages,
            "max_tokens": self.max_tokens,
        }

        if tools:
            request_kwargs["tools"] = tools
            request_kwargs["tool_choice"] = "auto"

        try:
            response = await self.client.chat.completions.create(**request_kwargs)
        except APITimeoutError as e:
            logger.error("%s timeout error: %s", self.name, e)
            raise TransportError(self.id, f"API timeout after {self.timeout}s") from e
        except APIError as e:
            logger.error("%s API error: %s", self.name, e)
            raise TransportError(self.id, f"API error: {e.message}") from e

        return self._parse_response(response)

    def _parse_response(self, response: Any) -> LLMResponse:
        """
        Parse OpenAI response into our standard format.

        Args:
            response: Raw response from OpenAI API.

        Returns:
            LLMResponse with parsed content, tool calls, and metadata.

        Raises:
            TransportError: If the response carries no choices.
        """
        if not response.choices:
            raise TransportError(self.id, f"{self.name} returned no choices")

        choice = response.choices[0]
        message = choice.message

        usage = {}
        if getattr(response, "usage", None):
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }

        finish_reason = choice.finish_reason or "stop"

        if message.tool_calls:
            tool_calls = [
                ToolCallRequest(
                    id=tc.id,
                    name=tc.function.name,
                    arguments=tc.function.arguments or "{}",
                )
                for tc in message.tool_calls
            ]
            return LLMResponse.calls(
                tool_calls,
                text=message.content,
                finish_reason=finish_reason,
                usage=usage,
            )

        return LLMResponse.text(message.content, finish_reason=finish_reason, usage=usage)
