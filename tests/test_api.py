"""Tests for the HTTP API, with collaborators swapped through dependency overrides."""

import pytest
from conftest import (
    ScriptedClient,
    tool_call,
)
from fastapi.testclient import TestClient

from townmind.agent.factory import AgentFactory
from townmind.agent.llm_interface import ModelCallError
from townmind.api.app import (
    app,
    get_blackboard,
    get_factory,
    get_planner,
)
from townmind.core.schema import ChatTurn
from townmind.goap.blackboard import (
    Blackboard,
    Goal,
)
from townmind.goap.planner import GOAPPlanner


@pytest.fixture
def blackboard() -> Blackboard:
    return Blackboard()


@pytest.fixture
def model() -> ScriptedClient:
    return ScriptedClient()


@pytest.fixture
def client(blackboard, model):
    factory = AgentFactory(client=model, blackboard=blackboard)
    planner = GOAPPlanner()
    app.dependency_overrides[get_blackboard] = lambda: blackboard
    app.dependency_overrides[get_planner] = lambda: planner
    app.dependency_overrides[get_factory] = lambda: factory
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def test_health(client):
    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_modes(client):
    assert client.get("/modes").json() == ["PersonaBuilder", "NpcChat", "MemoryCompactor"]


def test_agent_run(client, model, blackboard):
    model.replies.extend(
        [
            tool_call("set_goal", goal_name="IsHungry=false", npc="Abigail"),
            ChatTurn.assistant("Time for lunch!"),
        ]
    )

    resp = client.post(
        "/agent",
        json={"mode": "NpcChat", "objective": "Hungry?", "context": {"NPC_NAME": "Abigail"}},
    )

    assert resp.status_code == 200
    assert resp.json() == {
        "final_answer": "Time for lunch!",
        "iterations_used": 2,
        "truncated": False,
        "error": None,
    }
    assert blackboard.pending_count == 1


def test_agent_errors_are_reported_in_the_body(client, model):
    model.replies.append(ModelCallError("LLM API returned status 503"))

    resp = client.post("/agent", json={"objective": "Hi"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["final_answer"] == ""
    assert body["error"] == "LLM API returned status 503"


def test_agent_request_validation(client):
    resp = client.post("/agent", json={"objective": "Hi", "max_iterations": 0})

    assert resp.status_code == 422


def test_plan_endpoint(client):
    resp = client.post(
        "/plan",
        json={
            "current_state": {"Saloon_IsOpen": True, "CurrentLocation": "Home"},
            "goal_state": {"IsHungry": False},
        },
    )

    assert resp.status_code == 200
    body = resp.json()
    assert [a["name"] for a in body["actions"]] == ["WalkTo_Saloon", "BuyFood_Saloon", "Eat"]
    assert body["total_cost"] == 5
    assert body["total_minutes"] == 30
    assert body["goal"] == {"IsHungry": False}


def test_plan_endpoint_unreachable(client):
    resp = client.post("/plan", json={"goal_state": {"HasFood": True}})

    assert resp.json()["actions"] == []
    assert resp.json()["total_cost"] == 0


def test_fact_writes(client, blackboard):
    world = client.post("/blackboard/facts", json={"key": "Saloon_IsOpen", "value": True})
    actor = client.post(
        "/blackboard/facts", json={"key": "Gold", "value": 12, "actor_id": "Sam"}
    )

    assert world.json() == {"scope": "world", "key": "Saloon_IsOpen", "value": True}
    assert actor.json() == {"scope": "actor", "key": "Gold", "value": 12}
    assert blackboard.get_world_fact("Saloon_IsOpen") is True
    assert blackboard.get_actor_fact("Sam", "Gold") == 12


def test_plan_next_consumes_one_goal(client, blackboard):
    blackboard.set_world_fact("Saloon_IsOpen", True)
    blackboard.enqueue_goal(Goal(actor_id="Sam", fact_key="IsHungry", fact_value=False))
    blackboard.enqueue_goal(Goal(actor_id="Leah", fact_key="IsTired", fact_value=False))

    first = client.post("/blackboard/plan-next").json()

    assert first["actor_id"] == "Sam"
    assert [a["name"] for a in first["actions"]] == ["WalkTo_Saloon", "BuyFood_Saloon", "Eat"]
    assert blackboard.pending_count == 1


def test_plan_next_with_empty_queue(client):
    body = client.post("/blackboard/plan-next").json()

    assert body["actions"] == []
    assert body["actor_id"] is None


def test_goal_set_by_agent_is_planned_for_its_npc(client, model, blackboard):
    blackboard.set_actor_fact("Abigail", "HasFood", True)
    model.replies.extend(
        [tool_call("set_goal", goal_name="IsHungry=false"), ChatTurn.assistant("Snack time.")]
    )

    client.post(
        "/agent", json={"mode": "NpcChat", "objective": "eat", "context": {"NPC_NAME": "Abigail"}}
    )
    body = client.post("/blackboard/plan-next").json()

    assert body["actor_id"] == "Abigail"
    assert [a["name"] for a in body["actions"]] == ["Eat"]
    assert body["goal"] == {"IsHungry": False}
