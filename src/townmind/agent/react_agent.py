"""
ReAct agent engine: the Reason -> Act -> Observe loop.

An agent is a scoped service: it is created on demand, serves exactly one :meth:`ReActAgent.run`,
then is discarded.  Flow:

1. Build the system prompt from the mode template + context.
2. Send the user objective to the model.
3. If the model returns tool calls, execute them as one concurrent batch and feed the results back
   as ``tool`` turns.
4. Repeat 2-3 until the model answers without tool calls, or the iteration budget runs out.
"""

from __future__ import annotations

import asyncio
import contextvars
import logging
from typing import (
    Any,
    Awaitable,
    List,
    TypeVar,
)

from townmind.agent.llm_interface import (
    ChatModelClient,
    ModelCallError,
)
from townmind.common import truncate
from townmind.core.prompts import (
    PromptManager,
    UnknownModeError,
)
from townmind.core.schema import (
    TRUNCATED_PLACEHOLDER,
    AgentConfig,
    AgentResult,
    ChatTurn,
)
from townmind.tools import ToolRegistry

logger = logging.getLogger(__name__)

T = TypeVar("T")

_agent_depth: contextvars.ContextVar[int] = contextvars.ContextVar("agent_depth", default=0)
_agent_npc: contextvars.ContextVar[str | None] = contextvars.ContextVar("agent_npc", default=None)


def current_agent_depth() -> int:
    """Nesting level of the agent whose loop is running in the current context."""
    return _agent_depth.get()


def current_npc() -> str | None:
    """
    ``NPC_NAME`` of the innermost running agent that was given one.

    Sub-agents spawned without an ``NPC_NAME`` keep acting for their parent's NPC.
    """
    return _agent_npc.get()


class AgentCancelledError(RuntimeError):
    """Raised when a run is aborted through its cancellation event."""


class ReActAgent:
    """Single-use ReAct loop bound to a prompt manager, tool registry and model client."""

    def __init__(
        self,
        prompt_manager: PromptManager,
        tool_registry: ToolRegistry,
        client: ChatModelClient,
    ) -> None:
        self._prompts = prompt_manager
        self._tools = tool_registry
        self._client = client
        self._started = False
        self.conversation: List[ChatTurn] = []

    async def run(
        self,
        objective: str,
        config: AgentConfig | None = None,
        cancel_event: asyncio.Event | None = None,
        timeout: float | None = None,
    ) -> AgentResult:
        """
        Execute the loop for *objective*.

        Parameters
        ----------
        objective:
            The user turn that seeds the conversation.
        config:
            Mode, prompt context, iteration budget and tool filter.
        cancel_event:
            Setting it aborts the run at the next suspension point with
            :class:`AgentCancelledError`; in-flight model calls and tool batches are cancelled.
        timeout:
            Per model call timeout in seconds (client default when *None*).

        Raises
        ------
        AgentCancelledError
            If *cancel_event* is set before the run completes.
        RuntimeError
            If this instance has already been used.
        """
        if self._started:
            raise RuntimeError("ReActAgent instances serve a single run; create a new one.")
        self._started = True
        config = config or AgentConfig()

        token = _agent_depth.set(config.depth)
        npc = config.context.get("NPC_NAME")
        npc_token = _agent_npc.set(npc) if npc else None
        try:
            return await self._loop(objective, config, cancel_event, timeout)
        finally:
            if npc_token is not None:
                _agent_npc.reset(npc_token)
            _agent_depth.reset(token)

    async def _loop(
        self,
        objective: str,
        config: AgentConfig,
        cancel_event: asyncio.Event | None,
        timeout: float | None,
    ) -> AgentResult:
        logger.info(
            "Starting agent mode=%s depth=%d objective=\"%s\"",
            config.mode,
            config.depth,
            truncate(objective, 80),
        )

        try:
            system_prompt = self._prompts.build_system_prompt(config.mode, config.context)
        except UnknownModeError as exc:
            logger.error("%s", exc)
            return AgentResult(error=str(exc), iterations_used=0)

        messages = self.conversation
        messages.extend([ChatTurn.system(system_prompt), ChatTurn.user(objective)])
        tools = self._tools.api_schemas(config.allowed_tools) or None

        for i in range(config.max_iterations):
            self._check_cancelled(cancel_event)
            logger.debug("Iteration %d/%d", i + 1, config.max_iterations)

            try:
                reply = await self._until_cancelled(
                    self._client.complete(messages, tools, timeout=timeout), cancel_event
                )
            except ModelCallError as exc:
                logger.error("Model call failed on iteration %d: %s", i + 1, exc)
                return AgentResult(error=str(exc), iterations_used=i + 1)

            messages.append(reply)

            if reply.is_final:
                logger.info("Final answer after %d iteration(s).", i + 1)
                return AgentResult(final_answer=reply.content or "", iterations_used=i + 1)

            calls = reply.tool_calls or []
            logger.debug("Executing %d tool call(s): %s", len(calls), [c.tool_name for c in calls])
            self._check_cancelled(cancel_event)
            results = await self._until_cancelled(
                self._tools.execute_batch(calls, cancel_event), cancel_event
            )
            for tool_call_id, text in results:
                messages.append(ChatTurn.tool(tool_call_id, text))

        logger.warning("Max iterations (%d) reached. Truncating.", config.max_iterations)
        last = next(
            (m.content for m in reversed(messages) if m.role == "assistant" and m.content),
            None,
        )
        return AgentResult(
            final_answer=last or TRUNCATED_PLACEHOLDER,
            iterations_used=config.max_iterations,
            truncated=True,
        )

    # ------------------------------------------------------------------
    # Cancellation helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _check_cancelled(cancel_event: asyncio.Event | None) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise AgentCancelledError("Agent run was cancelled.")

    @staticmethod
    async def _until_cancelled(aw: Awaitable[T], cancel_event: asyncio.Event | None) -> T:
        """Await *aw*, abandoning it as soon as *cancel_event* fires."""
        if cancel_event is None:
            return await aw

        work: asyncio.Future[Any] = asyncio.ensure_future(aw)
        watcher = asyncio.ensure_future(cancel_event.wait())
        try:
            done, _ = await asyncio.wait({work, watcher}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            work.cancel()
            raise
        finally:
            watcher.cancel()

        if work in done:
            return work.result()

        work.cancel()
        await asyncio.wait({work})  # let the cancelled work unwind without re-raising
        raise AgentCancelledError("Agent run was cancelled.")
