"""
GOAP planner: given a current state and a goal state, find the cheapest sequence of actions that
reaches the goal.

The search is uniform-cost (Dijkstra, no heuristic) forward from the current state:

1. Pop the cheapest node from the open queue.
2. If its state satisfies the goal, return its actions.
3. Otherwise, for every action whose preconditions hold, push a child node with the action's
   effects applied and the cost accumulated.

Termination is guaranteed by a visited-state set, a depth limit on plan length and a hard budget
on the number of nodes popped.  Equal-cost nodes pop in insertion order, so plans are
reproducible for a fixed action ordering.
"""

import heapq
import itertools
import logging
from typing import (
    Iterator,
    List,
    Mapping,
    NamedTuple,
    Sequence,
    Tuple,
)

from townmind.config import settings
from townmind.goap.actions import (
    FactValue,
    GOAPAction,
    State,
    default_actions,
    format_state,
    state_key,
    state_satisfies,
)
from townmind.goap.blackboard import (
    Blackboard,
    Goal,
)

logger = logging.getLogger(__name__)

PLANNING_WORLD_FACTS: Tuple[str, ...] = ("Saloon_IsOpen", "Clinic_IsOpen")
"""World facts merged into an actor's snapshot by :meth:`GOAPPlanner.plan_from_goal`."""


class PlanNode(NamedTuple):
    """A search node; owned by a single search."""

    state: State
    actions: Tuple[GOAPAction, ...]
    cost: float


class PlanQueue:
    """Min-priority queue of plan nodes keyed by cost, FIFO among equal costs."""

    def __init__(self) -> None:
        self._heap: List[Tuple[float, int, PlanNode]] = []
        self._counter: Iterator[int] = itertools.count()

    def push(self, node: PlanNode) -> None:
        heapq.heappush(self._heap, (node.cost, next(self._counter), node))

    def pop(self) -> PlanNode:
        return heapq.heappop(self._heap)[2]

    def __len__(self) -> int:
        return len(self._heap)


class GOAPPlanner:
    """
    Uniform-cost planner over a fixed action library.

    Parameters
    ----------
    actions:
        The action library; defaults to :func:`~townmind.goap.actions.default_actions`.
    max_depth:
        Maximum number of actions in a candidate plan.
    max_iterations:
        Maximum number of nodes popped before giving up.
    """

    def __init__(
        self,
        actions: Sequence[GOAPAction] | None = None,
        max_depth: int | None = None,
        max_iterations: int | None = None,
    ) -> None:
        self.actions: Tuple[GOAPAction, ...] = tuple(
            default_actions() if actions is None else actions
        )
        self.max_depth = settings.PLANNER_MAX_DEPTH if max_depth is None else max_depth
        self.max_iterations = (
            settings.PLANNER_MAX_ITERATIONS if max_iterations is None else max_iterations
        )

    def plan(
        self,
        current_state: Mapping[str, FactValue],
        goal_state: Mapping[str, FactValue],
    ) -> List[GOAPAction]:
        """Return the cheapest action sequence reaching *goal_state*, or ``[]`` if none is found."""
        logger.debug(
            "Planning: current=%s -> goal=%s", format_state(current_state), format_state(goal_state)
        )

        open_queue = PlanQueue()
        open_queue.push(PlanNode(dict(current_state), (), 0.0))
        visited: set[str] = set()
        iterations = 0

        while open_queue and iterations < self.max_iterations:
            iterations += 1
            node = open_queue.pop()

            if state_satisfies(node.state, goal_state):
                logger.info(
                    "Plan found: %d action(s), cost=%.1f, iterations=%d",
                    len(node.actions),
                    node.cost,
                    iterations,
                )
                for action in node.actions:
                    logger.debug("  -> %s (cost=%s)", action.name, action.cost)
                return list(node.actions)

            key = state_key(node.state)
            if key in visited:
                continue
            visited.add(key)

            if len(node.actions) >= self.max_depth:
                continue

            for action in self.actions:
                if not action.preconditions_met(node.state):
                    continue
                open_queue.push(
                    PlanNode(
                        action.apply_effects(node.state),
                        node.actions + (action,),
                        node.cost + action.cost,
                    )
                )

        logger.warning("No plan found after %d iterations.", iterations)
        return []

    def plan_from_goal(self, blackboard: Blackboard, goal: Goal) -> List[GOAPAction]:
        """Plan for *goal* starting from the actor's blackboard snapshot plus planning world facts."""
        current_state = blackboard.snapshot(goal.actor_id)
        for fact in PLANNING_WORLD_FACTS:
            value = blackboard.get_world_fact(fact)
            if value is not None:
                current_state[fact] = value

        return self.plan(current_state, {goal.fact_key: goal.fact_value})
