"""Active run state -- position, energy, inventory and discoveries.

The :class:`RunStateManager` owns the single :class:`RunState` of the run
being played and persists it after every change under
``active_run_state``.  Every mutation works on a copy, writes it and only
then replaces the in-memory state, so a failed write changes nothing.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from pydantic import BaseModel, ValidationError

from delvers_descent.core.config import DEFAULT_CONFIG, BalanceConfig
from delvers_descent.core.errors import (
    InsufficientEnergyError,
    InvalidMoveError,
    InventoryFullError,
    MapAlreadyGeneratedError,
    NoActiveRunError,
    RunAlreadyActiveError,
)
from delvers_descent.core.models import (
    CollectedItem,
    DungeonMap,
    DungeonNode,
    EncounterOutcome,
    FailureConsequence,
    ItemType,
    Run,
    RunState,
    RunStatus,
    Shortcut,
)
from delvers_descent.economy.energy import EnergyCalculator

if TYPE_CHECKING:
    from delvers_descent.core.persistence import KeyValueStore
    from delvers_descent.core.rng import GameRNG

logger = logging.getLogger(__name__)

RUN_STATE_KEY = "active_run_state"


class RunSettlement(BaseModel):
    """What a finished run hands back: banked items, depth and XP."""

    run_id: str
    status: RunStatus
    banked_items: list[CollectedItem]
    """Items kept; always empty for a busted run."""
    items_lost: int = 0
    energy_spent: int
    energy_remaining: int
    return_cost_paid: int = 0
    deepest_depth: int
    xp_earned: int
    shortcuts_discovered: list[Shortcut]
    run_date: str | None = None


class RunStateStatistics(BaseModel):
    energy_remaining: int
    energy_spent: int
    current_depth: int
    deepest_depth: int
    nodes_visited: int
    items_collected: int
    shortcuts_discovered: int
    inventory_value: int
    xp_earned: int


class StateValidation(BaseModel):
    is_valid: bool
    errors: list[str]


@dataclass
class OutcomeApplication:
    """Net effect of applying an encounter outcome to the run."""

    energy_delta: int = 0
    xp_gained: int = 0
    items_added: list[CollectedItem] = field(default_factory=list)
    items_lost: list[CollectedItem] = field(default_factory=list)
    items_dropped: int = 0
    """Reward items that did not fit in the inventory."""
    shortcut_added: Shortcut | None = None
    node_locked: bool = False
    forced_retreat: bool = False


class RunStateManager:
    """Owns the state of the active run.

    Parameters
    ----------
    store:
        Key-value store holding the serialized run state.
    rng:
        RNG used for item-loss rolls after failed encounters.
    energy:
        Calculator for return costs.  A default one is built if omitted.
    config:
        Balance config (inventory capacity).
    """

    def __init__(
        self,
        store: KeyValueStore,
        rng: GameRNG,
        energy: EnergyCalculator | None = None,
        config: BalanceConfig | None = None,
    ) -> None:
        self.store = store
        self.rng = rng
        self.config = config or DEFAULT_CONFIG
        self.energy = energy or EnergyCalculator(self.config)
        self._state: RunState | None = None
        self._loaded = False

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _load(self) -> RunState | None:
        if self._loaded:
            return self._state
        raw = self.store.get(RUN_STATE_KEY)
        state = None
        if raw is not None:
            try:
                state = RunState.model_validate(raw)
            except ValidationError as exc:
                logger.warning("Corrupted run state, discarding it: %s", exc)
        self._state = state
        self._loaded = True
        return self._state

    def _commit(self, state: RunState | None) -> None:
        payload = state.model_dump(mode="json") if state is not None else None
        self.store.set(RUN_STATE_KEY, payload)
        self._state = state
        self._loaded = True

    def _require(self) -> RunState:
        state = self._load()
        if state is None:
            raise NoActiveRunError("No active run")
        return state

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def has_active_run(self) -> bool:
        return self._load() is not None

    def get_current_state(self) -> RunState | None:
        """Return a deep copy of the active state, or None."""
        state = self._load()
        return state.model_copy(deep=True) if state is not None else None

    def get_inventory(self) -> list[CollectedItem]:
        state = self._load()
        return list(state.inventory) if state is not None else []

    def get_inventory_items_by_type(self, item_type: ItemType) -> list[CollectedItem]:
        return [i for i in self.get_inventory() if i.type == item_type]

    def get_inventory_items_by_set(self, set_id: str) -> list[CollectedItem]:
        return [i for i in self.get_inventory() if i.set_id == set_id]

    def get_total_inventory_value(self) -> int:
        return sum(i.value for i in self.get_inventory())

    def get_available_moves(self) -> list[DungeonNode]:
        """Nodes the player may enter next (locked nodes excluded)."""
        state = self._require()
        dungeon = state.dungeon_map
        if dungeon is None:
            return []
        if state.current_node is None:
            candidates = dungeon.nodes_at_depth(1)
        else:
            current = dungeon.get_node(state.current_node)
            candidates = [dungeon.get_node(nid) for nid in current.connections]
        return [n for n in candidates if n.id not in state.locked_nodes]

    def get_return_cost(self) -> int:
        state = self._require()
        if state.free_return:
            return 0
        return self.energy.calculate_return_cost(
            state.current_depth, state.discovered_shortcuts
        )

    def can_afford_return(self) -> bool:
        state = self._require()
        return self.energy.can_afford_return(state.energy_remaining, self.get_return_cost())

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize_run(self, run: Run, dungeon_map: DungeonMap) -> RunState:
        """Start playing *run* on *dungeon_map*.

        Raises
        ------
        MapAlreadyGeneratedError
            If *run* is already active; its map is fixed for the run.
        RunAlreadyActiveError
            If a different run is in progress.
        """
        current = self._load()
        if current is not None:
            if current.run_id == run.id:
                raise MapAlreadyGeneratedError(
                    f"Run {run.id} already has a dungeon map"
                )
            raise RunAlreadyActiveError(
                f"Cannot start {run.id} while {current.run_id} is active"
            )

        state = RunState(
            run_id=run.id,
            starting_energy=run.total_energy,
            energy_remaining=run.total_energy,
            dungeon_map=dungeon_map.model_copy(deep=True),
            start_time=time.time(),
            run_date=run.date,
        )
        self._commit(state)
        logger.info("Run %s started with %d energy", run.id, run.total_energy)
        return state.model_copy(deep=True)

    def move_to_node(self, node_id: str) -> DungeonNode:
        """Enter *node_id*, paying its energy cost.

        Raises
        ------
        NoActiveRunError
            If no run is active.
        NodeNotFoundError
            If the node is not on the map.
        InvalidMoveError
            If the node is locked or not connected to the current position.
        InsufficientEnergyError
            If the node costs more than the remaining energy.
        """
        state = self._require()
        if state.dungeon_map is None:
            raise InvalidMoveError("The active run has no dungeon map")
        node = state.dungeon_map.get_node(node_id)

        if node_id in state.locked_nodes:
            raise InvalidMoveError(f"Node {node_id} is locked")
        if node_id not in {n.id for n in self.get_available_moves()}:
            raise InvalidMoveError(
                f"Node {node_id} is not reachable from "
                f"{state.current_node or 'the surface'}"
            )
        if node.energy_cost > state.energy_remaining:
            raise InsufficientEnergyError(node.energy_cost, state.energy_remaining)

        updated = state.model_copy(deep=True)
        updated.current_node = node_id
        updated.current_depth = node.depth
        updated.deepest_depth = max(updated.deepest_depth, node.depth)
        updated.energy_remaining -= node.energy_cost
        updated.free_return = False
        if node_id not in updated.visited_nodes:
            updated.visited_nodes.append(node_id)

        dungeon = updated.dungeon_map
        entered = dungeon.get_node(node_id)
        entered.is_revealed = True
        for next_id in entered.connections:
            dungeon.get_node(next_id).is_revealed = True
        # Shortcuts leaving this depth become known once the depth is reached.
        known = {s.id for s in updated.discovered_shortcuts}
        for shortcut in dungeon.shortcuts:
            if shortcut.from_depth == node.depth and shortcut.id not in known:
                updated.discovered_shortcuts.append(shortcut)

        self._commit(updated)
        logger.debug(
            "Moved to %s (depth %d), %d energy left",
            node_id, node.depth, updated.energy_remaining,
        )
        return entered.model_copy()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_to_inventory(self, item: CollectedItem) -> None:
        state = self._require()
        if len(state.inventory) >= self.config.max_inventory_size:
            raise InventoryFullError("Inventory is full")
        updated = state.model_copy(deep=True)
        updated.inventory.append(item)
        self._commit(updated)

    def remove_from_inventory(self, item_id: str) -> CollectedItem | None:
        state = self._require()
        for index, item in enumerate(state.inventory):
            if item.id == item_id:
                updated = state.model_copy(deep=True)
                removed = updated.inventory.pop(index)
                self._commit(updated)
                return removed
        return None

    def update_energy(self, amount: int) -> int:
        """Add *amount* (may be negative) to remaining energy, floored at 0."""
        state = self._require()
        updated = state.model_copy(deep=True)
        updated.energy_remaining = max(0, updated.energy_remaining + amount)
        self._commit(updated)
        return updated.energy_remaining

    def add_shortcut(self, shortcut: Shortcut) -> bool:
        """Record *shortcut*; returns False if it was already known."""
        state = self._require()
        if any(s.id == shortcut.id for s in state.discovered_shortcuts):
            return False
        updated = state.model_copy(deep=True)
        updated.discovered_shortcuts.append(shortcut)
        self._commit(updated)
        return True

    def apply_outcome(
        self,
        outcome: EncounterOutcome,
        consequence: FailureConsequence | None = None,
    ) -> OutcomeApplication:
        """Apply an encounter outcome to the active run in a single write.

        Parameters
        ----------
        outcome:
            The terminal outcome.  Reward items are expected to carry
            final values and set ids already.
        consequence:
            Processed failure consequence.  Falls back to the outcome's own
            consequence when omitted.
        """
        state = self._require()
        updated = state.model_copy(deep=True)
        result = OutcomeApplication()

        if outcome.is_success:
            reward = outcome.reward
            if reward is not None:
                result.energy_delta = reward.energy
                result.xp_gained = reward.xp
                capacity = self.config.max_inventory_size
                for index, item in enumerate(reward.items):
                    if len(updated.inventory) >= capacity:
                        result.items_dropped += 1
                        continue
                    collected = item.to_collected().model_copy(
                        update={"id": f"{updated.current_node}-{item.id}-{index}"}
                    )
                    updated.inventory.append(collected)
                    result.items_added.append(collected)
                if result.items_dropped:
                    logger.warning(
                        "Inventory full, dropped %d reward items", result.items_dropped
                    )
            for _ in range(min(outcome.items_surrendered, len(updated.inventory))):
                cheapest = min(updated.inventory, key=lambda i: i.value)
                updated.inventory.remove(cheapest)
                result.items_lost.append(cheapest)
            if outcome.free_return:
                updated.free_return = True
        else:
            consequence = consequence or outcome.consequence
            if consequence is not None:
                result.energy_delta = -consequence.energy_loss
                kept: list[CollectedItem] = []
                for item in updated.inventory:
                    if consequence.item_loss_risk > 0 and self.rng.chance(consequence.item_loss_risk):
                        result.items_lost.append(item)
                    else:
                        kept.append(item)
                updated.inventory = kept
                result.forced_retreat = consequence.forced_retreat
                if consequence.encounter_lockout and updated.current_node is not None:
                    if updated.current_node not in updated.locked_nodes:
                        updated.locked_nodes.append(updated.current_node)
                    result.node_locked = True

        shortcut = outcome.discovered_shortcut
        if shortcut is not None and all(s.id != shortcut.id for s in updated.discovered_shortcuts):
            updated.discovered_shortcuts.append(shortcut)
            result.shortcut_added = shortcut

        updated.energy_remaining = max(0, updated.energy_remaining + result.energy_delta)
        updated.xp_earned += result.xp_gained
        self._commit(updated)
        return result

    # ------------------------------------------------------------------
    # Settlement
    # ------------------------------------------------------------------

    def settle_cash_out(self) -> RunSettlement:
        """Compute the cash-out settlement without ending the run.

        The active state stays stored until :meth:`clear_active_run`, so a
        caller can record the settlement elsewhere first and retry if that
        fails.

        Raises
        ------
        InsufficientEnergyError
            If the return cost exceeds the remaining energy.
        """
        state = self._require()
        return_cost = self.get_return_cost()
        if return_cost > state.energy_remaining:
            raise InsufficientEnergyError(return_cost, state.energy_remaining)

        remaining = state.energy_remaining - return_cost
        settlement = RunSettlement(
            run_id=state.run_id,
            status=RunStatus.COMPLETED,
            banked_items=list(state.inventory),
            energy_spent=state.starting_energy - remaining,
            energy_remaining=remaining,
            return_cost_paid=return_cost,
            deepest_depth=state.deepest_depth,
            xp_earned=state.xp_earned,
            shortcuts_discovered=list(state.discovered_shortcuts),
            run_date=state.run_date,
        )
        return settlement

    def settle_bust(self) -> RunSettlement:
        """Compute the bust settlement without ending the run."""
        state = self._require()
        return RunSettlement(
            run_id=state.run_id,
            status=RunStatus.BUSTED,
            banked_items=[],
            items_lost=len(state.inventory),
            energy_spent=state.starting_energy - state.energy_remaining,
            energy_remaining=state.energy_remaining,
            deepest_depth=state.deepest_depth,
            xp_earned=state.xp_earned,
            shortcuts_discovered=list(state.discovered_shortcuts),
            run_date=state.run_date,
        )

    def cash_out(self) -> RunSettlement:
        """Return to the surface, paying the return cost and banking items.

        Raises
        ------
        InsufficientEnergyError
            If the return cost exceeds the remaining energy.
        """
        settlement = self.settle_cash_out()
        self._commit(None)
        logger.info(
            "Run %s cashed out at depth %d with %d items",
            settlement.run_id, settlement.deepest_depth, len(settlement.banked_items),
        )
        return settlement

    def bust(self) -> RunSettlement:
        """End the run without returning: all items are lost, XP is kept."""
        settlement = self.settle_bust()
        self._commit(None)
        logger.info("Run %s busted at depth %d", settlement.run_id, settlement.deepest_depth)
        return settlement

    def clear_active_run(self) -> None:
        self._commit(None)

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def get_statistics(self) -> RunStateStatistics:
        state = self._load()
        if state is None:
            return RunStateStatistics(
                energy_remaining=0, energy_spent=0, current_depth=0,
                deepest_depth=0, nodes_visited=0, items_collected=0,
                shortcuts_discovered=0, inventory_value=0, xp_earned=0,
            )
        return RunStateStatistics(
            energy_remaining=state.energy_remaining,
            energy_spent=state.starting_energy - state.energy_remaining,
            current_depth=state.current_depth,
            deepest_depth=state.deepest_depth,
            nodes_visited=len(state.visited_nodes),
            items_collected=len(state.inventory),
            shortcuts_discovered=len(state.discovered_shortcuts),
            inventory_value=sum(i.value for i in state.inventory),
            xp_earned=state.xp_earned,
        )

    def validate_state(self) -> StateValidation:
        state = self._load()
        if state is None:
            return StateValidation(is_valid=True, errors=[])

        errors: list[str] = []
        if state.energy_remaining < 0:
            errors.append("Energy remaining cannot be negative")
        if state.current_depth < 0:
            errors.append("Current depth cannot be negative")
        if state.deepest_depth < state.current_depth:
            errors.append("Deepest depth is shallower than current depth")
        if len(state.inventory) > self.config.max_inventory_size:
            errors.append("Inventory size exceeds maximum limit")
        item_ids = [i.id for i in state.inventory]
        if len(item_ids) != len(set(item_ids)):
            errors.append("Duplicate items found in inventory")
        if len(state.visited_nodes) != len(set(state.visited_nodes)):
            errors.append("Duplicate visited nodes found")
        if state.dungeon_map is not None:
            for nid in state.visited_nodes:
                if not state.dungeon_map.has_node(nid):
                    errors.append(f"Visited node {nid} is not on the map")
        return StateValidation(is_valid=not errors, errors=errors)
