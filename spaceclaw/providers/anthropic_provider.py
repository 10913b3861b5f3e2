"""Native Anthropic provider implementation."""

import json
import logging
from typing import Any

from anthropic import AsyncAnthropic, APIError, APITimeoutError

from spaceclaw.providers.base import (
    LLMProvider,
    LLMResponse,
    ToolCallRequest,
    TransportError,
)

logger = logging.getLogger(__name__)

# Default timeout for API requests (seconds)
DEFAULT_TIMEOUT = 120


class AnthropicProvider(LLMProvider):
    """
    Native Anthropic provider.

    Translates canonical (OpenAI-shaped) messages to the Messages API:
    the system message moves to the ``system`` parameter, assistant tool
    calls become ``tool_use`` blocks and canonical ``tool`` messages become
    ``tool_result`` blocks inside a user message.
    """

    id = "anthropic"
    name = "Anthropic"

    def __init__(
        self,
        api_key: str | None = None,
        api_base: str | None = None,
        default_model: str = "claude-sonnet-4-5",
        timeout: int = DEFAULT_TIMEOUT,
        max_tokens: int = 4096,
    ):
        """
        Initialize Anthropic provider.

        Args:
            api_key: Anthropic API key.
            api_base: Custom base URL for compatible endpoints.
            default_model: Model to use for every completion.
            timeout: Request timeout in seconds.
            max_tokens: Maximum tokens in a response.
        """
        super().__init__(api_key, api_base, default_model)
        self.timeout = timeout
        self.max_tokens = max_tokens

        client_kwargs: dict[str, Any] = {
            "timeout": timeout,
            "max_retries": 0,
        }
        if api_key:
            client_kwargs["api_key"] = api_key
        if api_base:
            client_kwargs["base_url"] = api_base

        self.client = AsyncAnthropic(**client_kwargs)

    async def complete(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
    ) -> LLMResponse:
        """
        Send a chat completion request via the Anthropic API.

        Args:
            messages: Canonical message list.
            tools: Optional tool definitions in OpenAI format (auto-converted).

        Returns:
            LLMResponse with content or tool calls.
        """
        system, anthropic_messages = self._convert_messages_to_anthropic(messages)
        logger.debug(
            "[anthropic] complete() model=%s msgs=%d converted=%d",
            self.default_model, len(messages), len(anthropic_messages),
        )

        request_kwargs: dict[str, Any] = {
            "model": self.default_model,
            "messages": anthropic_messages,
            "max_tokens": self.max_tokens,
        }

        if system:
            request_kwargs["system"] = system

        if tools:
            request_kwargs["tools"] = self._convert_tools_to_anthropic(tools)

        try:
            response = await self.client.messages.create(**request_kwargs)
        except APITimeoutError as e:
            logger.error("Anthropic timeout error: %s", e)
            raise TransportError(self.id, f"API timeout after {self.timeout}s") from e
        except APIError as e:
            logger.error("Anthropic API error: %s", e)
            raise TransportError(self.id, f"API error: {e.message}") from e

        return self._parse_response(response)

    def _convert_tools_to_anthropic(self, tools: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """
        Convert OpenAI-style tools to Anthropic format.

        Args:
            tools: List of tool definitions in OpenAI format.

        Returns:
            List of tool definitions in Anthropic format.
        """
        anthropic_tools = []
        for tool in tools:
            func = tool["function"]
            anthropic_tools.append({
                "name": func["name"],
                "description": func.get("description", ""),
                "input_schema": func.get("parameters") or {"type": "object", "properties": {}},
            })
        return anthropic_tools

    def _convert_messages_to_anthropic(
        self, messages: list[dict[str, Any]]
    ) -> tuple[str, list[dict[str, Any]]]:
        """
        Convert canonical messages to Anthropic format.

        Args:
            messages: Canonical message list.

        Returns:
            Tuple of (system prompt, Anthropic message list).
        """
        system = ""
        anthropic_messages: list[dict[str, Any]] = []
        # Consecutive tool results are batched into one user message
        pending_tool_results: list[dict[str, Any]] = []

        for msg in messages:
            role = msg["role"]
            if role == "system":
                system = msg.get("content") or ""
                continue

            if pending_tool_results and role != "tool":
                anthropic_messages.append({"role": "user", "content": pending_tool_results})
                pending_tool_results = []

            if role == "user":
                content = msg.get("content")
                if not isinstance(content, str):
                    content = json.dumps(content)
                anthropic_messages.append({"role": "user", "content": content})

            elif role == "assistant":
                # Text must come BEFORE tool_use blocks
                blocks: list[dict[str, Any]] = []
                content = msg.get("content")
                if content:
                    blocks.append({"type": "text", "text": content})
                for tc in msg.get("tool_calls") or []:
                    blocks.append({
                        "type": "tool_use",
                        "id": tc["id"],
                        "name": tc["function"]["name"],
                        "input": _parse_tool_input(tc["function"].get("arguments")),
                    })
                if blocks:
                    anthropic_messages.append({"role": "assistant", "content": blocks})

            elif role == "tool":
                content = msg.get("content")
                pending_tool_results.append({
                    "type": "tool_result",
                    "tool_use_id": msg.get("tool_call_id") or "",
                    "content": content if isinstance(content, str) else json.dumps(content),
                })

        if pending_tool_results:
            anthropic_messages.append({"role": "user", "content": pending_tool_results})

        return system, anthropic_messages

    def _parse_response(self, response: Any) -> LLMResponse:
        """
        Parse Anthropic response into our standard format.

        Args:
            response: Raw response from Anthropic API.

        Returns:
            LLMResponse with parsed content, tool calls, and metadata.
        """
        tool_calls = [
            ToolCallRequest(
                id=block.id,
                name=block.name,
                arguments=json.dumps(block.input),
            )
            for block in response.content
            if block.type == "tool_use"
        ]
        text = "".join(b.text for b in response.content if b.type == "text")

        usage = {}
        if getattr(response, "usage", None):
            usage = {
                "prompt_tokens": response.usage.input_tokens,
                "completion_tokens": response.usage.output_tokens,
                "total_tokens": response.usage.input_tokens + response.usage.output_tokens,
            }

        finish_reason = response.stop_reason or "stop"

        if tool_calls:
            return LLMResponse.calls(tool_calls, text=text, finish_reason=finish_reason, usage=usage)
        return LLMResponse.text(text, finish_reason=finish_reason, usage=usage)


def _parse_tool_input(arguments: Any) -> dict[str, Any]:
    """Decode stored tool-call arguments into an Anthropic ``input`` object."""
    if isinstance(arguments, dict):
        return arguments
    if not arguments:
        return {}
    try:
        parsed = json.loads(arguments)
    except json.JSONDecodeError:
        return {}
    return parsed if isinstance(parsed, dict) else {}
