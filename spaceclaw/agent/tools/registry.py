"""Tool registry for dynamic tool management."""

import asyncio
import json
from typing import Any

from loguru import logger

from spaceclaw.agent.tools.base import ArgumentParseError, Tool
from spaceclaw.providers.base import ToolCallRequest


def parse_arguments(raw: str | None) -> dict[str, Any]:
    """
    Parse a raw tool-call argument blob.

    An empty blob means "no arguments".

    Raises:
        ArgumentParseError: If the blob is not a JSON object.
    """
    if raw is None or not raw.strip():
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ArgumentParseError(raw) from e
    if not isinstance(parsed, dict):
        raise ArgumentParseError(raw)
    return parsed


class ToolRegistry:
    """
    Registry for agent tools.

    Allows dynamic registration and dispatch of tools. Dispatch never
    raises: every failure becomes an ``Error...`` string the model can read.
    """

    def __init__(self):
        self._tools: dict[str, Tool] = {}

    def register(self, tool: Tool) -> None:
        """Register a tool, replacing any tool with the same name."""
        self._tools[tool.name] = tool

    def unregister(self, name: str) -> None:
        """Unregister a tool by name."""
        self._tools.pop(name, None)

    def get(self, name: str) -> Tool | None:
        """Get a tool by name."""
        return self._tools.get(name)

    def has(self, name: str) -> bool:
        """Check if a tool is registered."""
        return name in self._tools

    def get_definitions(self) -> list[dict[str, Any]]:
        """Get all tool definitions in OpenAI format."""
        return [tool.to_schema() for tool in self._tools.values()]

    async def dispatch(self, name: str, raw_args: str | None) -> str:
        """
        Execute a tool by name with its raw JSON arguments.

        Args:
            name: Tool name.
            raw_args: Argument blob exactly as the model produced it.

        Returns:
            Tool result, or an error string.
        """
        tool = self._tools.get(name)
        if not tool:
            logger.warning(f"Model requested unknown tool: {name}")
            return f'Error: unknown tool "{name}"'

        try:
            params = parse_arguments(raw_args)
        except ArgumentParseError as e:
            logger.warning(f"Bad arguments for {name}: {e}")
            return f"Error: {e}"

        errors = tool.validate_params(params)
        if errors:
            return f'Error: invalid arguments for "{name}": ' + "; ".join(errors)

        try:
            result = await tool.execute(**params)
            return result if isinstance(result, str) else json.dumps(result, default=str)
        except Exception as e:
            logger.error(f"Tool {name} failed: {e}")
            return f'Error executing "{name}": {e}'

    async def dispatch_all(self, calls: list[ToolCallRequest]) -> list[str]:
        """
        Execute a batch of tool calls concurrently.

        Returns:
            One result per call, in request order.
        """
        return list(await asyncio.gather(
            *(self.dispatch(call.name, call.arguments) for call in calls)
        ))

    @property
    def tool_names(self) -> list[str]:
        """Get list of registered tool names."""
        return list(self._tools.keys())

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools
