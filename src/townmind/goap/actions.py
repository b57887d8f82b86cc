"""
GOAP actions and the default action library.

An action is an atomic behaviour an NPC can perform.  It has preconditions (facts that must hold
before it starts) and effects (facts that hold after it completes).  The planner composes actions
into plans; it never mutates them.

Fact values are scalars: ``bool``, ``int``/``float`` or ``str``.  Comparison is by type tag and
value, so ``True`` does not match ``1`` and ``"1"`` does not match ``1``.
"""

from typing import (
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Union,
)

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
)

FactValue = Union[bool, int, float, str]
State = Dict[str, FactValue]


def fact_tag(value: FactValue) -> str:
    """Type tag used for fact equality and state keys."""
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    raise TypeError(f"unsupported fact value type: {type(value).__name__}")


def facts_equal(left: FactValue, right: FactValue) -> bool:
    """Structural equality between two fact values."""
    return fact_tag(left) == fact_tag(right) and left == right


def state_satisfies(state: Mapping[str, FactValue], required: Mapping[str, FactValue]) -> bool:
    """True if every ``(fact, value)`` in *required* is present and equal in *state*."""
    for key, value in required.items():
        if key not in state or not facts_equal(state[key], value):
            return False
    return True


def _canonical(value: FactValue) -> str:
    tag = fact_tag(value)
    # Numbers that compare equal must serialize identically (2 and 2.0)
    return f"{tag}:{float(value)!r}" if tag == "number" else f"{tag}:{value!r}"


def state_key(state: Mapping[str, FactValue]) -> str:
    """Canonical serialization of *state*, sorted by fact name."""
    return "|".join(f"{k}={_canonical(v)}" for k, v in sorted(state.items()))


def format_state(state: Mapping[str, FactValue]) -> str:
    return "{" + ", ".join(f"{k}={v}" for k, v in state.items()) + "}"


class GOAPAction(BaseModel):
    """An immutable precondition/effect action."""

    model_config = ConfigDict(frozen=True)

    name: str
    cost: float = Field(1.0, gt=0)
    preconditions: Dict[str, FactValue] = Field(default_factory=dict)
    effects: Dict[str, FactValue] = Field(default_factory=dict)
    duration_minutes: int = Field(10, ge=0)  # 0 = instant
    required_location: Optional[str] = None

    def preconditions_met(self, state: Mapping[str, FactValue]) -> bool:
        return state_satisfies(state, self.preconditions)

    def apply_effects(self, state: Mapping[str, FactValue]) -> State:
        """Return a new state with this action's effects applied."""
        new_state = dict(state)
        new_state.update(self.effects)
        return new_state


def plan_cost(actions: Iterable[GOAPAction]) -> float:
    return sum(a.cost for a in actions)


def plan_duration(actions: Iterable[GOAPAction]) -> int:
    """Total estimated game-minutes for *actions*."""
    return sum(a.duration_minutes for a in actions)


def default_actions() -> List[GOAPAction]:
    """Stock action library for town NPCs."""
    return [
        GOAPAction(
            name="WalkTo_Saloon",
            cost=2,
            preconditions={"Saloon_IsOpen": True},
            effects={"CurrentLocation": "Saloon"},
            duration_minutes=15,
        ),
        GOAPAction(
            name="WalkTo_Mountain",
            cost=3,
            effects={"CurrentLocation": "Mountain"},
            duration_minutes=20,
        ),
        GOAPAction(
            name="WalkTo_Beach",
            cost=3,
            effects={"CurrentLocation": "Beach"},
            duration_minutes=20,
        ),
        GOAPAction(
            name="WalkTo_Town",
            cost=1,
            effects={"CurrentLocation": "Town"},
            duration_minutes=10,
        ),
        GOAPAction(
            name="WalkTo_Home",
            cost=1,
            effects={"CurrentLocation": "Home"},
            duration_minutes=10,
        ),
        GOAPAction(
            name="BuyFood_Saloon",
            cost=2,
            preconditions={"CurrentLocation": "Saloon", "Saloon_IsOpen": True},
            effects={"HasFood": True},
            duration_minutes=5,
            required_location="Saloon",
        ),
        GOAPAction(
            name="Eat",
            cost=1,
            preconditions={"HasFood": True},
            effects={"IsHungry": False, "HasFood": False},
            duration_minutes=10,
        ),
        GOAPAction(
            name="SitAndBrood",
            cost=1,
            preconditions={"CurrentLocation": "Mountain"},
            effects={"Mood": "Calm", "IsAngry": False},
            duration_minutes=30,
            required_location="Mountain",
        ),
        GOAPAction(
            name="PlayPool",
            cost=2,
            preconditions={"CurrentLocation": "Saloon"},
            effects={"Mood": "Happy", "IsBored": False},
            duration_minutes=30,
            required_location="Saloon",
        ),
        GOAPAction(
            name="TalkTo_Friend",
            cost=1.5,
            effects={"IsLonely": False, "Mood": "Content"},
            duration_minutes=15,
        ),
        GOAPAction(
            name="GoToSleep",
            cost=0.5,
            preconditions={"CurrentLocation": "Home"},
            effects={"IsTired": False},
            duration_minutes=0,  # Ends the NPC's day
            required_location="Home",
        ),
    ]
