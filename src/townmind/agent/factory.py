"""
Agent factory: the entry point used by chat handling, nightly batches and the API.

Usage::

    factory = AgentFactory()
    result = await factory.run(
        "NpcChat",
        "What do you think about the rain?",
        {"NPC_NAME": "Abigail", "SOUL": soul_json, "MEMORIES": memories},
    )
"""

import asyncio
import logging
from typing import (
    Dict,
    List,
)

from townmind.agent.llm_interface import (
    ChatModelClient,
    load_client,
)
from townmind.agent.react_agent import ReActAgent
from townmind.config import settings
from townmind.core.prompts import PromptManager
from townmind.core.schema import (
    AgentConfig,
    AgentResult,
)
from townmind.goap.blackboard import Blackboard
from townmind.tools import ToolRegistry
from townmind.tools.builtins import (
    final_answer_tool,
    new_task_tool,
)
from townmind.tools.game import (
    EmoteSink,
    MemorySink,
    play_emote_tool,
    remember_tool,
    set_goal_tool,
)

logger = logging.getLogger(__name__)


class AgentFactory:
    """
    Wires a prompt manager, a tool registry and a model client into ready-to-run agents.

    The factory owns its registry (and the registry's concurrency limiter) and its prompt
    manager; both live exactly as long as the factory.

    Parameters
    ----------
    blackboard:
        Enables ``set_goal``.
    enqueue_emote:
        ``(actor_id, emote_id)`` callback; enables ``play_emote``.
    record_memory:
        ``(actor_id, fact, importance)`` callback; enables ``remember``.
    """

    def __init__(
        self,
        prompt_manager: PromptManager | None = None,
        client: ChatModelClient | None = None,
        blackboard: Blackboard | None = None,
        max_concurrency: int | None = None,
        enqueue_emote: EmoteSink | None = None,
        record_memory: MemorySink | None = None,
    ) -> None:
        self.prompt_manager = prompt_manager or PromptManager.with_defaults()
        self.tool_registry = ToolRegistry(max_concurrency or settings.TOOL_MAX_CONCURRENCY)
        self.client = client or load_client()
        self.blackboard = blackboard

        if not getattr(self.client, "api_key", None) and settings.LLM_BACKEND == "openai":
            logger.warning("LLM_API_KEY is not set; model calls will likely be rejected.")

        self.tool_registry.register(
            new_task_tool(self.prompt_manager, self.tool_registry, self.client)
        )
        self.tool_registry.register(final_answer_tool())
        # Game tools only exist when the host supplies their sinks
        if blackboard is not None:
            self.tool_registry.register(set_goal_tool(blackboard))
        if enqueue_emote is not None:
            self.tool_registry.register(play_emote_tool(enqueue_emote))
        if record_memory is not None:
            self.tool_registry.register(remember_tool(record_memory))

        logger.info(
            "Agent factory ready: tools=%s modes=%s",
            self.tool_registry.names(),
            self.prompt_manager.modes(),
        )

    def create_agent(self) -> ReActAgent:
        """Create a fresh single-use agent for advanced usage (e.g. inspecting the conversation)."""
        return ReActAgent(self.prompt_manager, self.tool_registry, self.client)

    async def run(
        self,
        mode: str,
        objective: str,
        context: Dict[str, str] | None = None,
        max_iterations: int | None = None,
        allowed_tools: List[str] | None = None,
        cancel_event: asyncio.Event | None = None,
        timeout: float | None = None,
    ) -> AgentResult:
        """Run a one-shot agent with *mode* on *objective* and return its result."""
        config = AgentConfig(
            mode=mode,
            context=context or {},
            max_iterations=max_iterations or settings.AGENT_MAX_ITERATIONS,
            allowed_tools=allowed_tools,
        )
        return await self.create_agent().run(objective, config, cancel_event, timeout)

    async def aclose(self) -> None:
        await self.client.aclose()
