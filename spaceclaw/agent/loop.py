"""Agent loop: the core processing engine."""

import asyncio
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from spaceclaw.agent.context import ContextBuilder
from spaceclaw.agent.tools.registry import ToolRegistry
from spaceclaw.memory.extraction import FactExtractor
from spaceclaw.providers.base import NO_RESPONSE_TEXT, TransportError
from spaceclaw.providers.factory import ProviderConfigError
from spaceclaw.providers.registry import ProviderSelection
from spaceclaw.session.store import ConversationStore

MAX_ITERATIONS_REPLY = (
    "⚠️ I hit my maximum tool-call limit for this turn. "
    "Please try again or rephrase your request."
)
GENERIC_FAILURE_REPLY = "❌ Something went wrong. Please try again."


@dataclass
class TurnResult:
    """Outcome of one agent turn."""

    reply: str
    updated_history: list[dict[str, Any]] = field(default_factory=list)
    iterations: int = 0
    hit_iteration_cap: bool = False


class AgentLoop:
    """
    The agent loop is the core processing engine.

    It:
    1. Builds the prompt from history, profile facts and retrieved memories
    2. Calls the active LLM
    3. Executes requested tool calls and feeds the results back
    4. Repeats until the model answers or the iteration cap is hit
    """

    def __init__(
        self,
        selection: ProviderSelection,
        tools: ToolRegistry,
        context: ContextBuilder,
        store: ConversationStore | None = None,
        max_iterations: int = 10,
        fact_extractor: FactExtractor | None = None,
    ):
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        self.selection = selection
        self.tools = tools
        self.context = context
        self.store = store
        self.max_iterations = max_iterations
        self.fact_extractor = fact_extractor
        self._background: set[asyncio.Task] = set()

    async def run_turn(self, history: list[dict[str, Any]], user_text: str) -> TurnResult:
        """
        Run one full turn for a new user message.

        Args:
            history: Conversation so far, without a system message.
            user_text: The new user message.

        Returns:
            The reply and the updated history (system message excluded).

        Raises:
            TransportError: If a provider call fails.
            ProviderConfigError: If the active provider cannot be built.
        """
        messages = await self.context.build_messages(history, user_text)
        tool_definitions = self.tools.get_definitions() or None

        iteration = 0
        while iteration < self.max_iterations:
            iteration += 1
            provider = self.selection.provider
            logger.debug(f"Iteration {iteration}: {len(messages)} messages to {provider.id}")

            response = await provider.complete(messages, tool_definitions)
            messages.append(response.assistant_message)

            if not response.has_tool_calls:
                reply = response.content or NO_RESPONSE_TEXT
                logger.debug(f"Turn finished after {iteration} iteration(s) via {provider.id}")
                self._schedule_fact_extraction(user_text, reply)
                return TurnResult(
                    reply=reply,
                    updated_history=messages[1:],
                    iterations=iteration,
                )

            logger.info(f"Executing {len(response.tool_calls)} tool call(s)")
            results = await self.tools.dispatch_all(response.tool_calls)
            for call, result in zip(response.tool_calls, results):
                logger.debug(f"Tool {call.name} ({call.id}) -> {result[:200]}")
                self.context.add_tool_result(messages, call.id, result)

        logger.warning(f"Agent max iterations reached ({self.max_iterations})")
        return TurnResult(
            reply=MAX_ITERATIONS_REPLY,
            updated_history=messages[1:],
            iterations=iteration,
            hit_iteration_cap=True,
        )

    def _schedule_fact_extraction(self, user_text: str, reply: str) -> None:
        if self.fact_extractor is None:
            return
        task = asyncio.create_task(self._extract_facts(user_text, reply))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _extract_facts(self, user_text: str, reply: str) -> None:
        try:
            await self.fact_extractor.extract_and_save(user_text, reply)
        except Exception as e:
            logger.debug(f"Fact extraction failed (non-critical): {e}")

    async def handle_message(self, chat_id: str, text: str) -> str:
        """
        Process one message for a chat: load history, run a turn, save.

        Provider failures become a short apology and leave the stored history
        untouched.

        Raises:
            PersistenceError: If history cannot be loaded or saved.
        """
        if self.store is None:
            raise RuntimeError("handle_message requires a ConversationStore")

        history = self.store.load(chat_id)
        try:
            result = await self.run_turn(history, text)
        except TransportError as e:
            logger.error(f"Agent error for chat {chat_id}: {e}")
            return GENERIC_FAILURE_REPLY
        except ProviderConfigError as e:
            logger.error(f"Provider not configured: {e}")
            return f"❌ {e}"

        self.store.save(chat_id, result.updated_history)
        return result.reply

    def clear(self, chat_id: str) -> int:
        """Forget a chat's conversation history."""
        if self.store is None:
            raise RuntimeError("clear requires a ConversationStore")
        return self.store.clear(chat_id)

    async def drain(self) -> None:
        """Wait for pending background work (fact extraction, embedding upserts)."""
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
        if self.context.semantic is not None:
            await self.context.semantic.drain()
