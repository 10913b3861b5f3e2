"""Echo tool: proves the tool-calling loop end to end."""

from typing import Any

from spaceclaw.agent.tools.base import Tool


class EchoTool(Tool):
    """Returns its input unchanged."""

    @property
    def name(self) -> str:
        return "echo"

    @property
    def description(self) -> str:
        return (
            "Echoes back whatever text you give it. "
            "Use this to test that the tool-calling loop is working."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "text": {"type": "string", "description": "The text to echo back."},
            },
            "required": ["text"],
            "additionalProperties": False,
        }

    async def execute(self, **kwargs: Any) -> str:
        return f"Echo: {kwargs.get('text', '')}"
