"""Tests for the active run state manager."""

import pytest

from delvers_descent.core.config import BalanceConfig
from delvers_descent.core.errors import (
    InsufficientEnergyError,
    InvalidMoveError,
    InventoryFullError,
    MapAlreadyGeneratedError,
    NoActiveRunError,
    NodeNotFoundError,
    PersistenceError,
    RunAlreadyActiveError,
)
from delvers_descent.core.models import (
    CollectedItem,
    DungeonMap,
    DungeonNode,
    EncounterItem,
    EncounterOutcome,
    EncounterReward,
    EncounterType,
    FailureConsequence,
    ItemType,
    OutcomeType,
    Run,
    RunStatus,
    Shortcut,
)
from delvers_descent.core.persistence import InMemoryStore
from delvers_descent.core.rng import GameRNG
from delvers_descent.economy.run_state import RUN_STATE_KEY, RunStateManager


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _node(node_id: str, depth: int, position: int, cost: int, connections=()) -> DungeonNode:
    return DungeonNode(
        id=node_id,
        depth=depth,
        position=position,
        type=EncounterType.PUZZLE_CHAMBER,
        energy_cost=cost,
        return_cost=depth * 5,
        is_revealed=depth == 1,
        connections=list(connections),
    )


def _make_map() -> DungeonMap:
    return DungeonMap(
        max_depth=3,
        nodes=[
            _node("a", 1, 0, 5, ["c"]),
            _node("b", 1, 1, 8, ["c", "d"]),
            _node("c", 2, 0, 10, ["e"]),
            _node("d", 2, 1, 10, ["e"]),
            _node("e", 3, 0, 12),
        ],
        shortcuts=[Shortcut(id="sc-2", from_depth=2, to_depth=0, energy_reduction=10)],
    )


def _make_run(run_id: str = "run-1", energy: int = 100) -> Run:
    return Run(
        id=run_id, date="2024-01-15", steps=energy,
        base_energy=energy, bonus_energy=0, total_energy=energy,
        has_streak_bonus=False,
    )


def _item(item_id: str, value: int = 10) -> CollectedItem:
    return CollectedItem(
        id=item_id, type=ItemType.TRADE_GOOD, set_id="silk_road", value=value, name=item_id,
    )


def _success(items=(), energy: int = 0, xp: int = 0, **kwargs) -> EncounterOutcome:
    return EncounterOutcome(
        type=OutcomeType.SUCCESS,
        message="ok",
        reward=EncounterReward(energy=energy, xp=xp, items=list(items)),
        **kwargs,
    )


def _failure(**kwargs) -> EncounterOutcome:
    return EncounterOutcome(
        type=OutcomeType.FAILURE,
        message="no",
        consequence=FailureConsequence(**kwargs),
    )


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def manager(store) -> RunStateManager:
    manager = RunStateManager(store, GameRNG(seed=42))
    manager.initialize_run(_make_run(), _make_map())
    return manager


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

class TestInitialize:
    def test_starts_at_surface(self, manager):
        state = manager.get_current_state()
        assert state.current_depth == 0
        assert state.current_node is None
        assert state.energy_remaining == 100
        assert manager.get_return_cost() == 0

    def test_same_run_cannot_regenerate_map(self, manager):
        with pytest.raises(MapAlreadyGeneratedError):
            manager.initialize_run(_make_run(), _make_map())

    def test_other_run_rejected(self, manager):
        with pytest.raises(RunAlreadyActiveError, match="run-1"):
            manager.initialize_run(_make_run("run-2"), _make_map())

    def test_no_active_run(self, store):
        manager = RunStateManager(store, GameRNG(seed=0))
        assert not manager.has_active_run()
        with pytest.raises(NoActiveRunError):
            manager.move_to_node("a")

    def test_state_persisted(self, store, manager):
        manager.move_to_node("a")
        reloaded = RunStateManager(store, GameRNG(seed=0))
        assert reloaded.get_current_state().current_node == "a"

    def test_corrupted_state_discarded(self, store):
        store.set(RUN_STATE_KEY, {"run_id": 3})
        assert not RunStateManager(store, GameRNG(seed=0)).has_active_run()


# ---------------------------------------------------------------------------
# Movement
# ---------------------------------------------------------------------------

class TestMovement:
    def test_surface_moves_are_depth_one(self, manager):
        assert [n.id for n in manager.get_available_moves()] == ["a", "b"]

    def test_move_pays_cost_and_reveals(self, manager):
        node = manager.move_to_node("b")
        state = manager.get_current_state()
        assert node.id == "b"
        assert state.energy_remaining == 92
        assert state.current_depth == 1
        assert state.visited_nodes == ["b"]
        revealed = {n.id for n in state.dungeon_map.nodes if n.is_revealed}
        assert {"c", "d"} <= revealed
        assert [n.id for n in manager.get_available_moves()] == ["c", "d"]

    def test_unreachable_node(self, manager):
        manager.move_to_node("a")
        with pytest.raises(InvalidMoveError, match="not reachable"):
            manager.move_to_node("d")

    def test_unknown_node(self, manager):
        with pytest.raises(NodeNotFoundError):
            manager.move_to_node("zzz")

    def test_insufficient_energy_leaves_state(self, store):
        manager = RunStateManager(store, GameRNG(seed=0))
        manager.initialize_run(_make_run(energy=6), _make_map())
        with pytest.raises(InsufficientEnergyError) as exc_info:
            manager.move_to_node("b")
        assert exc_info.value.required == 8
        assert manager.get_current_state().energy_remaining == 6

    def test_shortcut_discovered_on_reaching_depth(self, manager):
        manager.move_to_node("a")
        assert manager.get_current_state().discovered_shortcuts == []
        manager.move_to_node("c")
        state = manager.get_current_state()
        assert [s.id for s in state.discovered_shortcuts] == ["sc-2"]
        # The hop from depth 2 is free, so only depth 1 still costs anything.
        assert manager.get_return_cost() == 5

    def test_deepest_depth_tracks_max(self, manager):
        manager.move_to_node("a")
        manager.move_to_node("c")
        manager.move_to_node("e")
        state = manager.get_current_state()
        assert state.deepest_depth == 3
        assert state.energy_remaining == 100 - 5 - 10 - 12

    def test_failed_write_leaves_state(self, store, manager):
        class Broken(InMemoryStore):
            def set(self, key, value):
                raise PersistenceError(key, "boom")

        manager.store = Broken()
        with pytest.raises(PersistenceError):
            manager.move_to_node("a")
        assert manager.get_current_state().current_node is None


# ---------------------------------------------------------------------------
# Inventory and outcomes
# ---------------------------------------------------------------------------

class TestInventory:
    def test_capacity(self, store):
        manager = RunStateManager(
            store, GameRNG(seed=0), config=BalanceConfig(max_inventory_size=2)
        )
        manager.initialize_run(_make_run(), _make_map())
        manager.add_to_inventory(_item("x"))
        manager.add_to_inventory(_item("y"))
        with pytest.raises(InventoryFullError):
            manager.add_to_inventory(_item("z"))

    def test_remove_and_value(self, manager):
        manager.add_to_inventory(_item("x", 10))
        manager.add_to_inventory(_item("y", 15))
        assert manager.get_total_inventory_value() == 25
        assert manager.remove_from_inventory("x").id == "x"
        assert manager.remove_from_inventory("x") is None
        assert len(manager.get_inventory_items_by_set("silk_road")) == 1
        assert manager.get_inventory_items_by_type(ItemType.LEGENDARY) == []

    def test_energy_floor(self, manager):
        assert manager.update_energy(-1000) == 0

    def test_add_shortcut_once(self, manager):
        shortcut = Shortcut(id="s", from_depth=3, to_depth=1, energy_reduction=5)
        assert manager.add_shortcut(shortcut)
        assert not manager.add_shortcut(shortcut)


class TestApplyOutcome:
    def test_success_adds_reward(self, manager):
        manager.move_to_node("a")
        reward_item = EncounterItem(id="coin", name="Coin", set_id="silk_road", value=20)
        result = manager.apply_outcome(_success([reward_item, reward_item], energy=5, xp=30))

        state = manager.get_current_state()
        assert result.xp_gained == 30
        assert state.energy_remaining == 100
        assert state.xp_earned == 30
        ids = [i.id for i in state.inventory]
        assert len(ids) == 2
        assert len(set(ids)) == 2

    def test_overflow_dropped(self, store):
        manager = RunStateManager(
            store, GameRNG(seed=0), config=BalanceConfig(max_inventory_size=1)
        )
        manager.initialize_run(_make_run(), _make_map())
        manager.move_to_node("a")
        items = [EncounterItem(id=f"i{n}", name="Coin", set_id="s", value=1) for n in range(3)]
        result = manager.apply_outcome(_success(items))
        assert len(result.items_added) == 1
        assert result.items_dropped == 2

    def test_surrender_removes_cheapest(self, manager):
        manager.add_to_inventory(_item("cheap", 1))
        manager.add_to_inventory(_item("dear", 99))
        result = manager.apply_outcome(_success(items_surrendered=1))
        assert [i.id for i in result.items_lost] == ["cheap"]
        assert [i.id for i in manager.get_inventory()] == ["dear"]

    def test_free_return(self, manager):
        manager.move_to_node("a")
        manager.apply_outcome(_success(free_return=True))
        assert manager.get_return_cost() == 0
        manager.move_to_node("c")
        assert not manager.get_current_state().free_return

    def test_failure_energy_and_lockout(self, manager):
        manager.move_to_node("b")
        result = manager.apply_outcome(
            _failure(energy_loss=10, item_loss_risk=0.0, encounter_lockout=True)
        )
        state = manager.get_current_state()
        assert result.energy_delta == -10
        assert result.node_locked
        assert state.energy_remaining == 82
        assert "b" in state.locked_nodes

    def test_full_item_loss_risk(self, manager):
        for n in range(5):
            manager.add_to_inventory(_item(f"i{n}"))
        result = manager.apply_outcome(_failure(energy_loss=0, item_loss_risk=1.0))
        assert len(result.items_lost) == 5
        assert manager.get_inventory() == []

    def test_zero_item_loss_risk_keeps_items(self, manager):
        for n in range(5):
            manager.add_to_inventory(_item(f"i{n}"))
        manager.apply_outcome(_failure(energy_loss=3, item_loss_risk=0.0))
        assert len(manager.get_inventory()) == 5

    def test_processed_consequence_overrides(self, manager):
        result = manager.apply_outcome(
            _failure(energy_loss=1, item_loss_risk=0.0),
            FailureConsequence(energy_loss=7, item_loss_risk=0.0, forced_retreat=True),
        )
        assert result.energy_delta == -7
        assert result.forced_retreat

    def test_clear_active_run(self, store):
        manager = RunStateManager(store, GameRNG(seed=0))
        manager.initialize_run(_make_run(), _make_map())
        manager.move_to_node("a")
        manager.apply_outcome(_failure(energy_loss=0, item_loss_risk=0.0, encounter_lockout=True))
        manager.clear_active_run()
        assert not manager.has_active_run()


# ---------------------------------------------------------------------------
# Settlement
# ---------------------------------------------------------------------------

class TestSettlement:
    def test_cash_out_banks_items(self, manager):
        manager.move_to_node("a")
        manager.add_to_inventory(_item("x"))
        settlement = manager.cash_out()
        assert settlement.status == RunStatus.COMPLETED
        assert settlement.return_cost_paid == 5
        assert settlement.energy_remaining == 90
        assert settlement.energy_spent == 10
        assert [i.id for i in settlement.banked_items] == ["x"]
        assert not manager.has_active_run()

    def test_cash_out_unaffordable(self, manager):
        manager.move_to_node("a")
        manager.update_energy(-95)
        with pytest.raises(InsufficientEnergyError):
            manager.cash_out()
        assert manager.has_active_run()

    def test_bust_loses_items_keeps_xp(self, manager):
        manager.move_to_node("a")
        manager.apply_outcome(_success(xp=40))
        manager.add_to_inventory(_item("x"))
        settlement = manager.bust()
        assert settlement.status == RunStatus.BUSTED
        assert settlement.banked_items == []
        assert settlement.items_lost == 1
        assert settlement.xp_earned == 40
        assert settlement.deepest_depth == 1
        assert not manager.has_active_run()

    def test_settling_keeps_run_active(self, manager):
        manager.move_to_node("a")
        manager.add_to_inventory(_item("x"))
        cashed = manager.settle_cash_out()
        busted = manager.settle_bust()
        assert manager.has_active_run()
        assert cashed.status == RunStatus.COMPLETED
        assert busted.items_lost == 1
        assert cashed.run_date == busted.run_date == "2024-01-15"
        manager.clear_active_run()
        assert not manager.has_active_run()


class TestReporting:
    def test_statistics(self, manager):
        manager.move_to_node("a")
        manager.add_to_inventory(_item("x", 12))
        stats = manager.get_statistics()
        assert stats.energy_spent == 5
        assert stats.nodes_visited == 1
        assert stats.inventory_value == 12

    def test_validate_clean_state(self, manager):
        manager.move_to_node("a")
        assert manager.validate_state().is_valid

    def test_validate_duplicate_items(self, manager):
        manager.add_to_inventory(_item("x"))
        manager.add_to_inventory(_item("x"))
        result = manager.validate_state()
        assert not result.is_valid
        assert "Duplicate items found in inventory" in result.errors
