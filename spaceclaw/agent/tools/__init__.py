"""Agent tools module."""

from spaceclaw.agent.tools.base import ArgumentParseError, Tool
from spaceclaw.agent.tools.echo import EchoTool
from spaceclaw.agent.tools.memory_tools import RecallTool, RememberTool
from spaceclaw.agent.tools.registry import ToolRegistry
from spaceclaw.agent.tools.soul import SoulReadTool, SoulUpdateTool

__all__ = [
    "ArgumentParseError",
    "Tool",
    "ToolRegistry",
    "EchoTool",
    "RememberTool",
    "RecallTool",
    "SoulReadTool",
    "SoulUpdateTool",
]
