"""Interactive CLI: type an objective, get the agent's answer."""

from __future__ import annotations

import asyncio
import logging
from typing import (
    Dict,
    Tuple,
)

from townmind.agent.factory import AgentFactory
from townmind.common import (
    AnsiColors,
    colored_print,
)
from townmind.core.schema import AgentResult
from townmind.goap.blackboard import Blackboard
from townmind.goap.planner import GOAPPlanner

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# CLI Client
# ---------------------------------------------------------------------------
def get_user_message() -> Tuple[str, bool]:
    """
    Get a message from the user via standard input.

    Returns:
        Tuple of (user_input, success_flag)
        The success_flag is False if input couldn't be read (e.g., Ctrl+C)
    """
    try:
        user_input = input().strip()
        return user_input, True
    except (EOFError, KeyboardInterrupt):
        return "", False


def render_result(result: AgentResult) -> None:
    """Print a result, distinguishing failures and partial answers."""
    if result.error is not None:
        colored_print(f"⚠️ Agent error: {result.error}", AnsiColors.RED)
    elif result.truncated:
        colored_print(f"{result.final_answer}  (truncated)", AnsiColors.YELLOW)
    else:
        colored_print(result.final_answer, AnsiColors.GREEN)


def drain_goals(blackboard: Blackboard, planner: GOAPPlanner) -> None:
    """Plan every goal the agent queued and print the resulting action lists."""
    while (goal := blackboard.dequeue_goal()) is not None:
        actions = planner.plan_from_goal(blackboard, goal)
        if not actions:
            colored_print(f"No plan found for {goal.fact_key}={goal.fact_value}", AnsiColors.RED)
            continue
        steps = " -> ".join(a.name for a in actions)
        colored_print(f"Plan for {goal.fact_key}={goal.fact_value}: {steps}", AnsiColors.BLUE)


async def _session(mode: str, context: Dict[str, str]) -> None:
    blackboard = Blackboard()
    planner = GOAPPlanner()
    factory = AgentFactory(blackboard=blackboard)
    try:
        while True:
            colored_print("\n🧑 You: ", AnsiColors.BLUE, end="")
            user_msg, ok = await asyncio.to_thread(get_user_message)
            if not ok:
                break  # Exit if user input couldn't be retrieved (e.g., Ctrl+C)
            if user_msg.lower() in {"exit", "quit"}:
                break
            if not user_msg:
                continue

            result = await factory.run(mode, user_msg, context=context)
            logger.debug("Result: %s", result.model_dump())
            render_result(result)
            drain_goals(blackboard, planner)
    finally:
        await factory.aclose()


def run_cli(mode: str = "NpcChat", context: Dict[str, str] | None = None) -> None:
    """Run the interactive agent shell."""
    colored_print(f"🔮  townmind shell [{mode}] - type 'exit' to quit.", AnsiColors.YELLOW)
    asyncio.run(_session(mode, context or {}))
