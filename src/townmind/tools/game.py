"""
Game tools that bridge the agent with the NPC simulation.

The agent decides *what* an NPC should do; the GOAP planner decides *how*.  ``set_goal`` is the
link between the two: it writes a :class:`~townmind.goap.blackboard.Goal` to the blackboard, where
an external scheduler picks it up and plans it.  ``play_emote`` and ``remember`` act immediately
through callbacks supplied by the host game.

Every tool acts on the ``npc`` argument when given, else on the running agent's ``NPC_NAME``.
"""

import asyncio
import logging
from typing import (
    Any,
    Callable,
    Dict,
    Tuple,
)

from townmind.agent.react_agent import current_npc
from townmind.goap.actions import FactValue
from townmind.goap.blackboard import (
    Blackboard,
    Goal,
    GoalPriority,
)
from townmind.tools import (
    ToolDefinition,
    ToolParameter,
)

logger = logging.getLogger(__name__)

CURRENT_NPC = "__CURRENT_NPC__"


def parse_fact_value(raw: str) -> FactValue:
    """Interpret a textual fact value as bool, int, float or (fallback) string."""
    text = raw.strip()
    lowered = text.lower()
    if lowered in {"true", "false"}:
        return lowered == "true"
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return float(text)
    except ValueError:
        return text


def parse_goal_name(goal_name: str) -> Tuple[str, FactValue]:
    """
    Split ``"Key=Value"`` into ``(Key, parsed value)``.

    A bare ``"Key"`` means ``Key=true``.
    """
    key, sep, value = goal_name.partition("=")
    key = key.strip()
    if not key:
        raise ValueError("goal_name must name a fact, e.g. 'IsHungry=false'")
    return key, (parse_fact_value(value) if sep else True)


def parse_priority(raw: Any) -> GoalPriority:
    try:
        return GoalPriority(str(raw or "medium").strip().lower())
    except ValueError:
        return GoalPriority.MEDIUM


def resolve_actor(npc: Any, default_actor: str) -> str:
    """
    Pick the NPC a game tool acts on.

    Order: the explicit ``npc`` argument, the running agent's ``NPC_NAME``, then *default_actor*.
    """
    return str(npc or current_npc() or default_actor)


# ---------------------------------------------------------------------------
# set_goal
# ---------------------------------------------------------------------------
def set_goal_tool(blackboard: Blackboard, default_actor: str = CURRENT_NPC) -> ToolDefinition:
    """Build the ``set_goal`` tool writing into *blackboard*."""

    def _execute(args: Dict[str, Any], _cancel_event: asyncio.Event | None) -> str:
        goal_name = str(args.get("goal_name") or "")
        priority = parse_priority(args.get("priority"))
        reason = str(args.get("reason") or "")
        actor = resolve_actor(args.get("npc"), default_actor)

        key, value = parse_goal_name(goal_name)
        logger.info("set_goal: %s (npc=%s, priority=%s, reason=%s)", goal_name, actor, priority.value, reason)
        blackboard.enqueue_goal(
            Goal(actor_id=actor, fact_key=key, fact_value=value, priority=priority, reason=reason)
        )
        return (
            f"Goal '{goal_name}' has been set with {priority.value} priority. "
            "The NPC will begin working toward this goal."
        )

    return ToolDefinition(
        name="set_goal",
        description=(
            "Set a behavioral goal for the NPC. The GOAP planner will figure out "
            "a valid action sequence to achieve this goal. Use this when the NPC "
            "should DO something physical in the game world (walk, eat, buy, visit)."
        ),
        parameters=[
            ToolParameter(
                name="goal_name",
                description="The goal state to achieve (e.g., 'IsHungry=false', 'CurrentLocation=Saloon').",
            ),
            ToolParameter(
                name="priority",
                description="Priority level: 'low', 'medium', or 'high'. High priority goals interrupt current behavior.",
                required=False,
            ),
            ToolParameter(
                name="reason",
                description="Brief explanation of why this goal was chosen (for memory logging).",
                required=False,
            ),
            ToolParameter(
                name="npc",
                description="Name of the NPC the goal is for. Defaults to the NPC you are playing.",
                required=False,
            ),
        ],
        executor=_execute,
    )


# ---------------------------------------------------------------------------
# play_emote
# ---------------------------------------------------------------------------
EMOTE_IDS: Dict[str, int] = {
    "happy": 32,
    "sad": 28,
    "angry": 12,
    "love": 20,
    "heart": 20,
    "surprised": 16,
    "exclamation": 16,
    "thinking": 8,
    "question": 8,
}
DEFAULT_EMOTE = "happy"

EmoteSink = Callable[[str, int], None]
"""``(actor_id, emote_id)`` hand-off to the game's main-thread queue."""


def emote_id(name: str) -> int:
    """Game emote id for *name*; unknown names fall back to the happy emote."""
    return EMOTE_IDS.get(name.strip().lower(), EMOTE_IDS[DEFAULT_EMOTE])


def play_emote_tool(enqueue_emote: EmoteSink, default_actor: str = CURRENT_NPC) -> ToolDefinition:
    """Build the ``play_emote`` tool.  Emotes are immediate; no planning is involved."""

    def _execute(args: Dict[str, Any], _cancel_event: asyncio.Event | None) -> str:
        name = str(args.get("emote") or DEFAULT_EMOTE).strip().lower()
        emote = emote_id(name)
        actor = resolve_actor(args.get("npc"), default_actor)

        logger.debug("play_emote: %s (id=%d, npc=%s)", name, emote, actor)
        enqueue_emote(actor, emote)
        return f"Played '{name}' emote."

    return ToolDefinition(
        name="play_emote",
        description=(
            "Play an emote animation above the NPC's head. "
            "Use this to express emotions non-verbally during conversation."
        ),
        parameters=[
            ToolParameter(
                name="emote",
                description="The emote to play: 'happy', 'sad', 'angry', 'love', 'surprised', 'thinking'.",
            ),
            ToolParameter(
                name="npc",
                description="Name of the NPC to animate. Defaults to the NPC you are playing.",
                required=False,
            ),
        ],
        executor=_execute,
    )


# ---------------------------------------------------------------------------
# remember
# ---------------------------------------------------------------------------
MemorySink = Callable[[str, str, int], None]
"""``(actor_id, fact, importance)`` hand-off to the memory store."""


def parse_importance(raw: Any, default: int = 5) -> int:
    """Parse an importance rating and clamp it to 1..10; unparseable input counts as 0 (so 1)."""
    if raw is None or raw == "":
        value = default
    else:
        try:
            value = int(str(raw).strip())
        except ValueError:
            value = 0
    return max(1, min(10, value))


def remember_tool(record_memory: MemorySink, default_actor: str = CURRENT_NPC) -> ToolDefinition:
    """Build the ``remember`` tool that hands facts to *record_memory*."""

    def _execute(args: Dict[str, Any], _cancel_event: asyncio.Event | None) -> str:
        fact = str(args.get("fact") or "").strip()
        if not fact:
            raise ValueError("fact must not be empty")
        importance = parse_importance(args.get("importance"))
        actor = resolve_actor(args.get("npc"), default_actor)

        logger.debug('remember: "%s" (importance=%d, npc=%s)', fact, importance, actor)
        record_memory(actor, fact, importance)
        return f'Remembered: "{fact}" (importance={importance}/10)'

    return ToolDefinition(
        name="remember",
        description=(
            "Store an important fact in long-term memory. Use this when the player shares "
            "something the NPC should remember for future conversations."
        ),
        parameters=[
            ToolParameter(
                name="fact",
                description="The fact to remember (e.g., 'Player's favorite color is blue').",
            ),
            ToolParameter(
                name="importance",
                type="integer",
                description="Importance level 1-10. 10 = never forget, 1 = minor detail.",
                required=False,
            ),
            ToolParameter(
                name="npc",
                description="Name of the NPC who remembers. Defaults to the NPC you are playing.",
                required=False,
            ),
        ],
        executor=_execute,
    )
