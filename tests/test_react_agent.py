"""Tests for the ReAct loop."""

from __future__ import annotations

import asyncio

import pytest
from conftest import (
    ScriptedClient,
    tool_call,
)

from townmind.agent.llm_interface import ModelCallError
from townmind.agent.react_agent import (
    AgentCancelledError,
    ReActAgent,
)
from townmind.core.schema import (
    TRUNCATED_PLACEHOLDER,
    AgentConfig,
    ChatTurn,
    ToolCallRequest,
)
from townmind.tools import (
    ToolDefinition,
    ToolParameter,
)


def _echo_tool() -> ToolDefinition:
    return ToolDefinition(
        name="echo",
        description="Echo the text back.",
        parameters=[ToolParameter(name="text")],
        executor=lambda args, _ev: args.get("text", ""),
    )


@pytest.mark.asyncio
async def test_plain_answer_in_one_iteration(prompts, registry):
    client = ScriptedClient([ChatTurn.assistant("I'm Abigail.")])
    agent = ReActAgent(prompts, registry, client)

    result = await agent.run(
        "What's your name?", AgentConfig(mode="Plain", context={"NPC_NAME": "Abigail"})
    )

    assert result.final_answer == "I'm Abigail."
    assert result.iterations_used == 1
    assert result.truncated is False
    assert result.error is None
    system, user = client.calls[0]["messages"][:2]
    assert system.role == "system" and system.content == "You are Abigail. Answer briefly."
    assert user.role == "user" and user.content == "What's your name?"


@pytest.mark.asyncio
async def test_unknown_tool_becomes_observation(prompts, registry):
    client = ScriptedClient([tool_call("foo", "call-foo"), ChatTurn.assistant("done")])
    agent = ReActAgent(prompts, registry, client)

    result = await agent.run("do something", AgentConfig(mode="Plain"))

    assert result.final_answer == "done"
    assert result.iterations_used == 2
    second_call = client.calls[1]["messages"]
    observation = second_call[-1]
    assert observation.role == "tool"
    assert observation.tool_call_id == "call-foo"
    assert observation.content == "Error: Unknown tool 'foo'"


@pytest.mark.asyncio
async def test_truncated_when_model_keeps_calling_tools(prompts, registry):
    registry.register(_echo_tool())
    client = ScriptedClient(fallback=tool_call("echo", text="again"))
    agent = ReActAgent(prompts, registry, client)

    result = await agent.run("loop forever", AgentConfig(mode="Plain", max_iterations=2))

    assert result.truncated is True
    assert result.iterations_used == 2
    assert result.final_answer == TRUNCATED_PLACEHOLDER
    assert len(client.calls) == 2


@pytest.mark.asyncio
async def test_truncated_returns_last_assistant_content(prompts, registry):
    registry.register(_echo_tool())
    reasoning = ChatTurn.assistant(
        "Thinking it over...", [ToolCallRequest.create("c1", "echo", {"text": "x"})]
    )
    client = ScriptedClient(fallback=reasoning)

    result = await ReActAgent(prompts, registry, client).run(
        "think", AgentConfig(mode="Plain", max_iterations=3)
    )

    assert result.truncated is True
    assert result.final_answer == "Thinking it over..."


@pytest.mark.parametrize("budget", [1, 3, 7])
@pytest.mark.asyncio
async def test_never_exceeds_iteration_budget(prompts, registry, budget):
    client = ScriptedClient(fallback=tool_call("missing"))

    result = await ReActAgent(prompts, registry, client).run(
        "go", AgentConfig(mode="Plain", max_iterations=budget)
    )

    assert len(client.calls) == budget
    assert result.iterations_used == budget


@pytest.mark.asyncio
async def test_model_failure_is_terminal(prompts, registry):
    registry.register(_echo_tool())
    client = ScriptedClient(
        [tool_call("echo", text="hi"), ModelCallError("LLM API returned status 503")]
    )

    result = await ReActAgent(prompts, registry, client).run("go", AgentConfig(mode="Plain"))

    assert result.error == "LLM API returned status 503"
    assert result.iterations_used == 2
    assert result.final_answer == ""
    assert len(client.calls) == 2


@pytest.mark.asyncio
async def test_unknown_mode_reported_without_model_call(prompts, registry):
    client = ScriptedClient([ChatTurn.assistant("never")])

    result = await ReActAgent(prompts, registry, client).run("go", AgentConfig(mode="Nope"))

    assert result.error is not None and "Nope" in result.error
    assert result.iterations_used == 0
    assert client.calls == []


@pytest.mark.asyncio
async def test_tool_results_fed_back_before_next_call(prompts, registry):
    registry.register(_echo_tool())
    batch = ChatTurn.assistant(
        None,
        [
            ToolCallRequest.create("a", "echo", {"text": "one"}),
            ToolCallRequest.create("b", "echo", {"text": "two"}),
        ],
    )
    client = ScriptedClient([batch, ChatTurn.assistant("ok")])

    await ReActAgent(prompts, registry, client).run("go", AgentConfig(mode="Plain"))

    observations = {m.tool_call_id: m.content for m in client.calls[1]["messages"] if m.role == "tool"}
    assert observations == {"a": "one", "b": "two"}


@pytest.mark.asyncio
async def test_allowed_tools_filter(prompts, registry):
    registry.register(_echo_tool())
    client = ScriptedClient([ChatTurn.assistant("a"), ChatTurn.assistant("b")])

    await ReActAgent(prompts, registry, client).run(
        "go", AgentConfig(mode="Plain", allowed_tools=["echo", "absent"])
    )
    await ReActAgent(prompts, registry, client).run(
        "go", AgentConfig(mode="Plain", allowed_tools=["absent"])
    )

    offered = client.calls[0]["tools"]
    assert [t["function"]["name"] for t in offered] == ["echo"]
    assert client.calls[1]["tools"] is None


@pytest.mark.asyncio
async def test_agent_is_single_use(prompts, registry):
    client = ScriptedClient([ChatTurn.assistant("a"), ChatTurn.assistant("b")])
    agent = ReActAgent(prompts, registry, client)
    await agent.run("first", AgentConfig(mode="Plain"))

    with pytest.raises(RuntimeError):
        await agent.run("second", AgentConfig(mode="Plain"))


@pytest.mark.asyncio
async def test_cancel_event_set_before_run(prompts, registry):
    client = ScriptedClient([ChatTurn.assistant("never")])
    cancel = asyncio.Event()
    cancel.set()

    with pytest.raises(AgentCancelledError):
        await ReActAgent(prompts, registry, client).run("go", AgentConfig(mode="Plain"), cancel)
    assert client.calls == []


@pytest.mark.asyncio
async def test_cancel_event_aborts_inflight_tool_batch(prompts, registry):
    started = asyncio.Event()
    finished = []

    async def slow(args, cancel_event):
        started.set()
        await asyncio.sleep(10)
        finished.append(True)
        return "late"

    registry.register(ToolDefinition(name="slow", description="Sleeps.", executor=slow))
    client = ScriptedClient([tool_call("slow"), ChatTurn.assistant("never")])
    cancel = asyncio.Event()

    async def trigger() -> None:
        await started.wait()
        cancel.set()

    trigger_task = asyncio.create_task(trigger())
    with pytest.raises(AgentCancelledError):
        await ReActAgent(prompts, registry, client).run("go", AgentConfig(mode="Plain"), cancel)
    await trigger_task

    assert finished == []
    assert len(client.calls) == 1


class _HangingClient(ScriptedClient):
    """Model client whose calls never return unless cancelled."""

    def __init__(self) -> None:
        super().__init__()
        self.started = asyncio.Event()
        self.was_cancelled = False

    async def complete(self, messages, tools=None, timeout=None):
        self.calls.append({"messages": list(messages), "tools": tools})
        self.started.set()
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            self.was_cancelled = True
            raise
        return ChatTurn.assistant("too late")


@pytest.mark.asyncio
async def test_cancel_event_aborts_inflight_model_call(prompts, registry):
    client = _HangingClient()
    cancel = asyncio.Event()

    async def trigger() -> None:
        await client.started.wait()
        cancel.set()

    trigger_task = asyncio.create_task(trigger())
    with pytest.raises(AgentCancelledError):
        await asyncio.wait_for(
            ReActAgent(prompts, registry, client).run("go", AgentConfig(mode="Plain"), cancel),
            timeout=5,
        )
    await trigger_task

    assert client.was_cancelled
    assert len(client.calls) == 1
