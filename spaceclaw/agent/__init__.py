"""Agent core module."""

from spaceclaw.agent.context import ContextBuilder
from spaceclaw.agent.loop import AgentLoop, TurnResult

__all__ = ["AgentLoop", "ContextBuilder", "TurnResult"]
