"""Tests for the blackboard fact store and goal queue."""

import pytest

from townmind.goap.blackboard import (
    Blackboard,
    Goal,
    GoalPriority,
)


@pytest.fixture
def blackboard() -> Blackboard:
    return Blackboard()


def test_facts_last_write_wins(blackboard):
    blackboard.set_world_fact("Weather", "Sun")
    blackboard.set_world_fact("Weather", "Rain")
    blackboard.set_actor_fact("Sam", "Mood", "Happy")
    blackboard.set_actor_fact("Sam", "Mood", "Calm")

    assert blackboard.get_world_fact("Weather") == "Rain"
    assert blackboard.get_actor_fact("Sam", "Mood") == "Calm"
    assert blackboard.get_actor_fact("Sam", "Missing") is None


def test_snapshot_is_a_copy_scoped_to_one_actor(blackboard):
    blackboard.set_actor_fact("Sam", "IsHungry", True)
    blackboard.set_actor_fact("Leah", "IsHungry", False)
    blackboard.set_world_fact("Saloon_IsOpen", True)

    snapshot = blackboard.snapshot("Sam")
    blackboard.set_actor_fact("Sam", "IsHungry", False)
    snapshot["Mood"] = "Happy"

    assert snapshot == {"IsHungry": True, "Mood": "Happy"}
    assert blackboard.snapshot("Sam") == {"IsHungry": False}
    assert blackboard.snapshot("Nobody") == {}


def test_goal_queue_is_fifo_across_actors(blackboard):
    blackboard.enqueue_goal(Goal(actor_id="Sam", fact_key="IsHungry", fact_value=False))
    blackboard.enqueue_goal(
        Goal(actor_id="Leah", fact_key="Mood", fact_value="Happy", priority=GoalPriority.HIGH)
    )
    blackboard.enqueue_goal(Goal(actor_id="Sam", fact_key="IsTired", fact_value=False))

    assert blackboard.pending_count == 3
    order = [blackboard.dequeue_goal().fact_key for _ in range(3)]
    assert order == ["IsHungry", "Mood", "IsTired"]
    assert not blackboard.has_pending_goals


def test_dequeue_on_empty_returns_none(blackboard):
    assert blackboard.dequeue_goal() is None


def test_goal_defaults():
    goal = Goal(actor_id="Sam", fact_key="IsTired")

    assert goal.fact_value is True
    assert goal.priority is GoalPriority.MEDIUM
    assert goal.reason == ""


@pytest.mark.parametrize(
    "time_of_day, day, saloon, clinic",
    [
        (800, "Monday", False, False),
        (900, "Monday", False, True),
        (1200, "Monday", True, True),
        (1459, "Wednesday", True, False),
        (1500, "Friday", True, False),
        (2350, "Sunday", True, False),
        (2400, "Sunday", False, False),
    ],
)
def test_sync_from_game_derives_opening_hours(blackboard, time_of_day, day, saloon, clinic):
    blackboard.sync_from_game(time_of_day, "summer", "Sun", day)

    assert blackboard.get_world_fact("Saloon_IsOpen") is saloon
    assert blackboard.get_world_fact("Clinic_IsOpen") is clinic
    assert blackboard.get_world_fact("TimeOfDay") == time_of_day
    assert blackboard.get_world_fact("DayOfWeek") == day


def test_reset_clears_everything(blackboard):
    blackboard.set_world_fact("Weather", "Snow")
    blackboard.set_actor_fact("Sam", "Mood", "Calm")
    blackboard.enqueue_goal(Goal(actor_id="Sam", fact_key="IsTired", fact_value=False))

    blackboard.reset()

    assert blackboard.get_world_fact("Weather") is None
    assert blackboard.snapshot("Sam") == {}
    assert blackboard.pending_count == 0
