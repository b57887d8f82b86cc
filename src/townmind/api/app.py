"""
Core API backend for townmind.

This module exposes the agent factory and the planner over HTTP for game-side collaborators:
- **GET /health**               - liveness probe for health checks.
- **GET /modes**                - registered prompt modes.
- **POST /agent**               - one-shot agent run: {"mode": "...", "objective": "...", ...}
- **POST /plan**                - plan from an explicit current/goal state.
- **POST /blackboard/facts**    - write a world or actor fact.
- **POST /blackboard/plan-next** - dequeue the next pending goal and plan it.
"""

import logging
from typing import (
    List,
    Sequence,
)

from fastapi import (
    Depends,
    FastAPI,
)

from townmind.agent.factory import AgentFactory
from townmind.api.models import (
    AgentRequest,
    FactRequest,
    FactResponse,
    PlannedAction,
    PlanRequest,
    PlanResponse,
)
from townmind.common import (
    AnsiColors,
    colored_print,
)
from townmind.config import settings
from townmind.core.schema import AgentResult
from townmind.goap.actions import (
    GOAPAction,
    plan_cost,
    plan_duration,
)
from townmind.goap.blackboard import Blackboard
from townmind.goap.planner import GOAPPlanner

logger = logging.getLogger(__name__)

app = FastAPI(title="townmind API", version="0.1.0", description="NPC agent + GOAP planner API")

# Long-lived collaborators, created on first use
_blackboard: Blackboard | None = None
_planner: GOAPPlanner | None = None
_factory: AgentFactory | None = None


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------
def get_blackboard() -> Blackboard:
    global _blackboard  # pylint: disable=global-statement
    if _blackboard is None:
        _blackboard = Blackboard()
    return _blackboard


def get_planner() -> GOAPPlanner:
    global _planner  # pylint: disable=global-statement
    if _planner is None:
        _planner = GOAPPlanner()
    return _planner


def get_factory() -> AgentFactory:
    global _factory  # pylint: disable=global-statement
    if _factory is None:
        _factory = AgentFactory(blackboard=get_blackboard())
    return _factory


def _plan_response(actions: Sequence[GOAPAction], **extra: object) -> PlanResponse:
    return PlanResponse(
        actions=[
            PlannedAction(name=a.name, cost=a.cost, duration_minutes=a.duration_minutes)
            for a in actions
        ],
        total_cost=plan_cost(actions),
        total_minutes=plan_duration(actions),
        **extra,  # type: ignore[arg-type]
    )


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
@app.get("/health", summary="Health check")
async def health() -> dict[str, str]:
    """Return a simple liveness payload."""
    return {"status": "ok"}


@app.get("/modes", response_model=List[str], summary="List prompt modes")
async def list_modes(factory: AgentFactory = Depends(get_factory)) -> List[str]:
    return factory.prompt_manager.modes()


@app.post("/agent", response_model=AgentResult, summary="Run an agent")
async def agent_endpoint(
    req: AgentRequest, factory: AgentFactory = Depends(get_factory)
) -> AgentResult:
    """Run one agent to completion.  Failures are reported in the result, not as HTTP errors."""
    result = await factory.run(
        req.mode,
        req.objective,
        context=req.context,
        max_iterations=req.max_iterations,
        allowed_tools=req.allowed_tools,
    )
    if result.error:
        logger.warning("Agent error (mode=%s): %s", req.mode, result.error)
    elif result.truncated:
        logger.warning("Agent truncated (mode=%s) after %d iterations", req.mode, result.iterations_used)
    return result


@app.post("/plan", response_model=PlanResponse, summary="Plan from explicit state")
async def plan_endpoint(
    req: PlanRequest, planner: GOAPPlanner = Depends(get_planner)
) -> PlanResponse:
    actions = planner.plan(req.current_state, req.goal_state)
    if not actions:
        logger.warning("No plan found for goal %s", req.goal_state)
    return _plan_response(actions, goal=req.goal_state)


@app.post("/blackboard/facts", response_model=FactResponse, summary="Write a fact")
async def write_fact(
    req: FactRequest, blackboard: Blackboard = Depends(get_blackboard)
) -> FactResponse:
    if req.actor_id is None:
        blackboard.set_world_fact(req.key, req.value)
        return FactResponse(scope="world", key=req.key, value=req.value)
    blackboard.set_actor_fact(req.actor_id, req.key, req.value)
    return FactResponse(scope="actor", key=req.key, value=req.value)


@app.post("/blackboard/plan-next", response_model=PlanResponse, summary="Plan the next goal")
async def plan_next(
    blackboard: Blackboard = Depends(get_blackboard),
    planner: GOAPPlanner = Depends(get_planner),
) -> PlanResponse:
    """Consume one pending goal.  The goal is not re-queued if planning fails."""
    goal = blackboard.dequeue_goal()
    if goal is None:
        return _plan_response([])

    actions = planner.plan_from_goal(blackboard, goal)
    if not actions:
        logger.warning("No plan found for %s: %s=%s", goal.actor_id, goal.fact_key, goal.fact_value)
    return _plan_response(actions, actor_id=goal.actor_id, goal={goal.fact_key: goal.fact_value})


# ---------------------------------------------------------------------------
# Public helper to launch the API (imported by main.py)
# ---------------------------------------------------------------------------
def run_api(
    host: str = "0.0.0.0", port: int = 8000, reload: bool = False, log_level: str | None = None
) -> None:
    """Start a uvicorn server hosting *app*.

    Parameters
    ----------
    host, port:
        Bind address for the HTTP server.
    reload:
        If *True*, enable auto-reload (useful in dev).
    log_level:
        Logging level to use (default from settings if not provided).
    """

    # Lazy import - keeps uvicorn an optional dependency at pkg-import time
    import uvicorn  # pylint: disable=import-outside-toplevel

    if log_level is None:  # Use the default from settings if not provided
        log_level = settings.LOG_LEVEL

    logger.info(
        "Starting townmind API at %s:%d (reload=%s, log_level=%s)", host, port, reload, log_level
    )
    colored_print(f"townmind API is running at http://localhost:{port}.", AnsiColors.GREEN)
    uvicorn.run(
        "townmind.api.app:app",
        host=host,
        port=port,
        reload=reload,
        log_level=log_level,
    )


# ---------------------------------------------------------------------------
# `python -m townmind.api.app` helper
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    run_api(reload=True)
