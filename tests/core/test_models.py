"""Tests for the shared domain models."""

import pytest
from pydantic import ValidationError

from delvers_descent.core.errors import NodeNotFoundError
from delvers_descent.core.models import (
    DungeonMap,
    DungeonNode,
    EncounterReward,
    EncounterType,
    ProgressionData,
    Run,
    Shortcut,
    slugify,
)


def _make_node(node_id: str, depth: int, position: int = 0) -> DungeonNode:
    return DungeonNode(
        id=node_id,
        depth=depth,
        position=position,
        type=EncounterType.PUZZLE_CHAMBER,
        energy_cost=5,
        return_cost=5,
    )


class TestRun:
    def test_total_must_equal_parts(self):
        with pytest.raises(ValidationError, match="total_energy"):
            Run(
                id="r", date="2024-01-15", steps=100,
                base_energy=100, bonus_energy=0, total_energy=150,
                has_streak_bonus=False,
            )

    def test_negative_steps_rejected(self):
        with pytest.raises(ValidationError):
            Run(
                id="r", date="2024-01-15", steps=-1,
                base_energy=-1, bonus_energy=0, total_energy=-1,
                has_streak_bonus=False,
            )


class TestShortcut:
    def test_must_lead_upward(self):
        with pytest.raises(ValidationError, match="must lead upward"):
            Shortcut(id="s", from_depth=2, to_depth=3, energy_reduction=10)

    def test_same_depth_rejected(self):
        with pytest.raises(ValidationError):
            Shortcut(id="s", from_depth=2, to_depth=2, energy_reduction=10)


class TestProgressionData:
    def test_attempted_is_derived(self):
        data = ProgressionData(total_runs_completed=3, total_runs_busted=2)
        assert data.total_runs_attempted == 5

    def test_attempted_is_serialized(self):
        dumped = ProgressionData(total_runs_completed=1).model_dump(mode="json")
        assert dumped["total_runs_attempted"] == 1


class TestDungeonMap:
    def test_get_node_missing_raises(self):
        dungeon = DungeonMap(max_depth=1, nodes=[_make_node("a", 1)])
        with pytest.raises(NodeNotFoundError, match="Node b not found"):
            dungeon.get_node("b")

    def test_nodes_at_depth_sorted_by_position(self):
        dungeon = DungeonMap(
            max_depth=1,
            nodes=[_make_node("b", 1, 1), _make_node("a", 1, 0), _make_node("c", 2, 0)],
        )
        assert [n.id for n in dungeon.nodes_at_depth(1)] == ["a", "b"]


class TestRewards:
    def test_merge(self):
        merged = EncounterReward(energy=5, xp=10).merge(EncounterReward(energy=2, xp=1))
        assert merged.energy == 7
        assert merged.xp == 11


def test_slugify():
    assert slugify("Ancient Coin (Gold)") == "ancient_coin_gold"
