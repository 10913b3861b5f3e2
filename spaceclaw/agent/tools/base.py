"""Base class for agent tools."""

from abc import ABC, abstractmethod
from typing import Any

# JSON Schema primitive type -> accepted Python types
_JSON_TYPES: dict[str, tuple[type, ...]] = {
    "string": (str,),
    "integer": (int,),
    "number": (int, float),
    "boolean": (bool,),
    "array": (list,),
    "object": (dict,),
}


class ArgumentParseError(ValueError):
    """Raised when a tool call's raw arguments are not a JSON object."""

    def __init__(self, raw: str):
        super().__init__(f"could not parse arguments as JSON: {raw}")
        self.raw = raw


class Tool(ABC):
    """
    Abstract base class for agent tools.

    Tools are capabilities the model can invoke by name. The registry only
    ever sees ``name``, ``description``, ``parameters`` and ``execute``.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Tool name used in function calls."""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        """Description of what the tool does."""
        pass

    @property
    @abstractmethod
    def parameters(self) -> dict[str, Any]:
        """JSON Schema for tool parameters."""
        pass

    @abstractmethod
    async def execute(self, **kwargs: Any) -> str:
        """
        Execute the tool with given parameters.

        Args:
            **kwargs: Tool-specific parameters.

        Returns:
            String result of the tool execution.
        """
        pass

    def validate_params(self, params: dict[str, Any]) -> list[str]:
        """
        Check parameters against the tool's schema.

        Only the top level is checked: required names must be present and
        declared primitive types must match.

        Returns:
            List of problems; empty when the parameters are acceptable.
        """
        schema = self.parameters or {}
        properties = schema.get("properties") or {}
        errors = [
            f"missing required parameter '{key}'"
            for key in schema.get("required") or []
            if key not in params
        ]

        for key, value in params.items():
            expected = (properties.get(key) or {}).get("type")
            accepted = _JSON_TYPES.get(expected) if isinstance(expected, str) else None
            if accepted is None:
                continue
            # bool is an int subclass; keep "integer" strict
            if isinstance(value, bool) and expected in ("integer", "number"):
                errors.append(f"parameter '{key}' should be {expected}")
            elif not isinstance(value, accepted):
                errors.append(f"parameter '{key}' should be {expected}")

        return errors

    def to_schema(self) -> dict[str, Any]:
        """Convert tool to OpenAI function schema format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }
