"""
Built-in tools that ship with the agent engine.

These are system-level tools available across all modes:

- ``new_task`` spawns a sub-agent in another mode and returns its final answer.
- ``final_answer`` passes an answer through unchanged; useful for structured-output modes.
"""

import asyncio
import logging
from typing import (
    Any,
    Dict,
)

from townmind.agent.llm_interface import ChatModelClient
from townmind.agent.react_agent import (
    AgentCancelledError,
    ReActAgent,
    current_agent_depth,
)
from townmind.config import settings
from townmind.core.prompts import PromptManager
from townmind.core.schema import AgentConfig
from townmind.tools import (
    ToolDefinition,
    ToolParameter,
    ToolRegistry,
)

logger = logging.getLogger(__name__)


def new_task_tool(
    prompt_manager: PromptManager,
    tool_registry: ToolRegistry,
    client: ChatModelClient,
    max_iterations: int | None = None,
    max_depth: int | None = None,
) -> ToolDefinition:
    """
    Build the ``new_task`` tool.

    The parent agent blocks on the call until the child agent completes.  The child shares the
    registry (and thus its concurrency limit) and model client, runs with a tighter iteration
    budget, and runs one level deeper than the agent that called the tool.  Spawning is refused
    once *max_depth* nested levels exist.
    """
    sub_iterations = max_iterations or settings.SUBAGENT_MAX_ITERATIONS
    depth_cap = settings.AGENT_MAX_DEPTH if max_depth is None else max_depth

    async def _execute(args: Dict[str, Any], cancel_event: asyncio.Event | None) -> str:
        mode = str(args.get("mode") or "NpcChat")
        objective = str(args.get("objective") or "")
        extra_context = args.get("context")

        if not prompt_manager.has_mode(mode):
            return f"Error: Unknown mode '{mode}'. Available modes: {', '.join(prompt_manager.modes())}"

        depth = current_agent_depth() + 1
        if depth > depth_cap:
            logger.warning("Refusing to spawn sub-agent at depth %d (cap=%d)", depth, depth_cap)
            return f"Error: Sub-agent depth limit ({depth_cap}) reached; answer without delegating."

        logger.info("Spawning sub-agent: mode=%s depth=%d", mode, depth)
        config = AgentConfig(mode=mode, max_iterations=sub_iterations, depth=depth)
        if extra_context:
            config.context["CONTEXT"] = str(extra_context)
            # Stock templates have no {CONTEXT} slot, so the child also sees it in the objective
            objective = f"{objective}\n\nContext:\n{extra_context}"

        try:
            result = await ReActAgent(prompt_manager, tool_registry, client).run(
                objective, config, cancel_event
            )
        except AgentCancelledError:
            return "Sub-agent was cancelled."
        except Exception as exc:  # pylint: disable=broad-except
            logger.error("Sub-agent crashed: %s", exc)
            return f"Sub-agent crashed: {exc}"

        if result.error is not None:
            logger.warning("Sub-agent error: %s", result.error)
            return f"Sub-agent encountered an error: {result.error}"

        logger.info("Sub-agent completed in %d iteration(s).", result.iterations_used)
        return result.final_answer

    return ToolDefinition(
        name="new_task",
        description=(
            "Spawn a sub-agent with a specific mode to handle a sub-task. "
            "The sub-agent will execute autonomously and return its final answer. "
            "Use this when the current task requires a different expertise or mode."
        ),
        parameters=[
            ToolParameter(
                name="mode",
                description="The mode/persona for the sub-agent (e.g., 'PersonaBuilder', 'MemoryCompactor').",
            ),
            ToolParameter(
                name="objective",
                description="The specific task or question for the sub-agent to accomplish.",
            ),
            ToolParameter(
                name="context",
                description="Optional additional context or data to pass to the sub-agent's prompt.",
                required=False,
            ),
        ],
        executor=_execute,
        limited=False,
    )


def _final_answer(args: Dict[str, Any], _cancel_event: asyncio.Event | None) -> str:
    return str(args.get("answer") or "")


def final_answer_tool() -> ToolDefinition:
    """Build the ``final_answer`` pass-through tool."""
    return ToolDefinition(
        name="final_answer",
        description=(
            "Use this tool to submit your final answer when you have completed the task. "
            "Pass the complete answer as the 'answer' parameter."
        ),
        parameters=[ToolParameter(name="answer", description="The final answer or result to return.")],
        executor=_final_answer,
    )
