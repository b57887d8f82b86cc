"""
The GOAP blackboard: a flat fact store shared between agents (writers, via the ``set_goal`` tool)
and the planner (reader).

Two layers of facts:

- world facts: global (``Saloon_IsOpen``, ``TimeOfDay``, ``Weather``)
- actor facts: per NPC (``IsHungry``, ``CurrentLocation``, ``Mood``)

plus a single FIFO queue of pending goals, drained by whatever schedules planning.

The blackboard does no locking.  Callers are expected to serialize access (one event loop or one
game thread).
"""

import logging
from collections import deque
from enum import Enum
from typing import (
    Deque,
    Dict,
    Optional,
    Tuple,
)

from pydantic import (
    BaseModel,
    Field,
)

from townmind.goap.actions import (
    FactValue,
    State,
)

logger = logging.getLogger(__name__)


class GoalPriority(str, Enum):
    """Informational priority; the queue itself is strictly FIFO."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Goal(BaseModel):
    """A goal for one actor: make ``fact_key`` equal ``fact_value``."""

    actor_id: str
    fact_key: str
    fact_value: FactValue = True
    priority: GoalPriority = GoalPriority.MEDIUM
    reason: str = ""


class Blackboard:
    """World/actor fact store plus the pending-goal queue."""

    def __init__(self) -> None:
        self._world: State = {}
        self._actors: Dict[Tuple[str, str], FactValue] = {}
        self._goals: Deque[Goal] = deque()

    # ------------------------------------------------------------------
    # World state
    # ------------------------------------------------------------------
    def set_world_fact(self, key: str, value: FactValue) -> None:
        self._world[key] = value
        logger.debug("World: %s = %s", key, value)

    def get_world_fact(self, key: str) -> Optional[FactValue]:
        return self._world.get(key)

    # ------------------------------------------------------------------
    # Actor state
    # ------------------------------------------------------------------
    def set_actor_fact(self, actor_id: str, key: str, value: FactValue) -> None:
        self._actors[(actor_id, key)] = value
        logger.debug("%s.%s = %s", actor_id, key, value)

    def get_actor_fact(self, actor_id: str, key: str) -> Optional[FactValue]:
        return self._actors.get((actor_id, key))

    def snapshot(self, actor_id: str) -> State:
        """Point-in-time copy of every fact stored for *actor_id*."""
        return {key: value for (actor, key), value in self._actors.items() if actor == actor_id}

    # ------------------------------------------------------------------
    # Goals
    # ------------------------------------------------------------------
    def enqueue_goal(self, goal: Goal) -> None:
        self._goals.append(goal)
        logger.info(
            "Goal enqueued: %s -> %s=%s (priority=%s)",
            goal.actor_id,
            goal.fact_key,
            goal.fact_value,
            goal.priority.value,
        )

    def dequeue_goal(self) -> Optional[Goal]:
        """Remove and return the oldest pending goal, or ``None`` if the queue is empty."""
        return self._goals.popleft() if self._goals else None

    @property
    def has_pending_goals(self) -> bool:
        return bool(self._goals)

    @property
    def pending_count(self) -> int:
        return len(self._goals)

    # ------------------------------------------------------------------
    # Lifecycle / game sync
    # ------------------------------------------------------------------
    def reset(self) -> None:
        """Forget every fact and pending goal (e.g. at the start of a new day)."""
        self._world.clear()
        self._actors.clear()
        self._goals.clear()

    def sync_from_game(self, time_of_day: int, season: str, weather: str, day_of_week: str) -> None:
        """
        Refresh world facts from the game clock.  Call once per tick or on relevant events.

        ``time_of_day`` uses the game's 24h integer clock (``1330`` is 1:30pm).
        """
        self._world["TimeOfDay"] = time_of_day
        self._world["Season"] = season
        self._world["Weather"] = weather
        self._world["DayOfWeek"] = day_of_week
        self._world["Saloon_IsOpen"] = 1200 <= time_of_day < 2400
        self._world["Clinic_IsOpen"] = day_of_week != "Wednesday" and 900 <= time_of_day < 1500
