"""Shared fakes for the agent tests."""

from __future__ import annotations

from typing import (
    Any,
    Callable,
    Dict,
    List,
    Sequence,
    Union,
)

import pytest

from townmind.agent.llm_interface import (
    ChatModelClient,
    ModelCallError,
)
from townmind.core.prompts import PromptManager
from townmind.core.schema import (
    ChatTurn,
    ToolCallRequest,
)
from townmind.tools import ToolRegistry

Reply = Union[ChatTurn, Exception, Callable[[List[ChatTurn]], ChatTurn]]


class ScriptedClient(ChatModelClient):
    """
    Model client replaying queued replies.

    Each queued item is a ``ChatTurn``, an exception to raise, or a callable receiving the
    conversation and returning a turn.  Once the queue is exhausted, *fallback* is used.
    """

    def __init__(self, replies: Sequence[Reply] = (), fallback: Reply | None = None) -> None:
        # No HTTP client needed
        self.api_key = "test-key"
        self.replies: List[Reply] = list(replies)
        self.fallback = fallback
        self.calls: List[Dict[str, Any]] = []

    async def aclose(self) -> None:
        return None

    async def complete(
        self,
        messages: Sequence[ChatTurn],
        tools: List[Dict[str, Any]] | None = None,
        timeout: float | None = None,
    ) -> ChatTurn:
        snapshot = list(messages)
        self.calls.append({"messages": snapshot, "tools": tools})
        if self.replies:
            reply = self.replies.pop(0)
        elif self.fallback is not None:
            reply = self.fallback
        else:
            raise ModelCallError("script exhausted")

        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return reply(snapshot)
        return reply


def tool_call(name: str, call_id: str = "call-1", **args: Any) -> ChatTurn:
    """Assistant turn requesting a single tool call."""
    return ChatTurn.assistant(None, [ToolCallRequest.create(call_id, name, args)])


@pytest.fixture
def prompts() -> PromptManager:
    manager = PromptManager.with_defaults()
    manager.register_mode("Plain", "You are {NPC_NAME}. Answer briefly.")
    return manager


@pytest.fixture
def registry() -> ToolRegistry:
    return ToolRegistry(max_concurrency=2)
