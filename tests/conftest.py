"""Shared fixtures: a scripted provider and ready-made agent components."""

import copy
from pathlib import Path
from typing import Any

import pytest

from spaceclaw.agent.context import ContextBuilder
from spaceclaw.agent.loop import AgentLoop
from spaceclaw.agent.tools import EchoTool, ToolRegistry
from spaceclaw.providers.base import LLMProvider, LLMResponse, ToolCallRequest
from spaceclaw.session.store import ConversationStore


class StubProvider(LLMProvider):
    """Provider that replays scripted responses and records every request."""

    id = "stub"
    name = "Stub"

    def __init__(self, responses: list[LLMResponse | Exception] | None = None, repeat: LLMResponse | None = None):
        super().__init__(default_model="stub-model")
        self.responses = list(responses or [])
        self.repeat = repeat
        self.calls: list[dict[str, Any]] = []

    async def complete(self, messages, tools=None):
        self.calls.append({"messages": copy.deepcopy(messages), "tools": tools})
        if self.responses:
            item = self.responses.pop(0)
        elif self.repeat is not None:
            item = self.repeat
        else:
            raise AssertionError("StubProvider ran out of scripted responses")
        if isinstance(item, Exception):
            raise item
        return item


class StubSelection:
    """Stands in for ProviderSelection with a fixed provider."""

    def __init__(self, provider: LLMProvider):
        self.provider = provider
        self.label = f"{provider.name} · {provider.default_model}"


def tool_call(call_id: str, name: str, arguments: str = "{}") -> ToolCallRequest:
    return ToolCallRequest(id=call_id, name=name, arguments=arguments)


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "data" / "memory.db"


@pytest.fixture
def registry() -> ToolRegistry:
    tools = ToolRegistry()
    tools.register(EchoTool())
    return tools


@pytest.fixture
def store(db_path: Path) -> ConversationStore:
    return ConversationStore(db_path)


@pytest.fixture
def make_loop(registry: ToolRegistry, store: ConversationStore):
    """Factory building an AgentLoop around a StubProvider."""

    def _make(provider: StubProvider, max_iterations: int = 10, **kwargs: Any) -> AgentLoop:
        return AgentLoop(
            selection=StubSelection(provider),
            tools=kwargs.pop("tools", registry),
            context=kwargs.pop("context", ContextBuilder()),
            store=kwargs.pop("store", store),
            max_iterations=max_iterations,
            **kwargs,
        )

    return _make
