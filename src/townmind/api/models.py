"""
Pydantic models for townmind API requests and responses.
This module defines the request and response schemas used by the townmind API.
"""

from typing import (
    Dict,
    List,
    Literal,
    Optional,
)

from pydantic import (
    BaseModel,
    Field,
)

from townmind.goap.actions import FactValue


# ---------------------------------------------------------------------------
# Pydantic request / response schema
# ---------------------------------------------------------------------------
class AgentRequest(BaseModel):
    """One-shot agent invocation."""

    mode: str = Field("NpcChat", description="Registered prompt mode")
    objective: str = Field(..., description="User objective for the agent")
    context: Dict[str, str] = Field(default_factory=dict, description="Prompt placeholder values")
    max_iterations: Optional[int] = Field(None, ge=1)
    allowed_tools: Optional[List[str]] = None


class PlanRequest(BaseModel):
    """Plan from an explicit state."""

    current_state: Dict[str, FactValue] = Field(default_factory=dict)
    goal_state: Dict[str, FactValue]


class PlannedAction(BaseModel):
    name: str
    cost: float
    duration_minutes: int


class PlanResponse(BaseModel):
    """Planner output; an empty ``actions`` list means no plan was found."""

    actions: List[PlannedAction]
    total_cost: float
    total_minutes: int
    actor_id: Optional[str] = None
    goal: Optional[Dict[str, FactValue]] = None


class FactRequest(BaseModel):
    """Write one fact; ``actor_id`` omitted means a world fact."""

    key: str
    value: FactValue
    actor_id: Optional[str] = None


class FactResponse(BaseModel):
    scope: Literal["world", "actor"]
    key: str
    value: FactValue
