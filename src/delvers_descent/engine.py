"""Composition root -- one instance of every service around one store.

The :class:`DelversEngine` wires the economy, dungeon, encounter and
reward services together and drives the run lifecycle:

1. ``queue_step_history`` turns daily step records into queued runs,
2. ``start_run`` generates the run's map once and activates the run,
3. ``enter_node`` pays the node cost and starts its encounter,
4. the caller plays the encounter through its own actions,
5. ``finish_encounter`` resolves it and applies rewards or penalties,
6. ``cash_out`` banks the inventory, ``bust`` forfeits it; both feed
   progression and achievements before the run state is cleared.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from delvers_descent.core.config import DEFAULT_CONFIG, BalanceConfig
from delvers_descent.core.errors import (
    EncounterInProgressError,
    InvalidMoveError,
    NoActiveEncounterError,
    NoActiveRunError,
    RunNotFoundError,
)
from delvers_descent.core.models import (
    EncounterOutcome,
    EncounterRecord,
    Run,
    RunState,
    RunStatus,
)
from delvers_descent.core.persistence import InMemoryStore, KeyValueStore
from delvers_descent.core.rng import GameRNG
from delvers_descent.dungeon.map_gen import MapGenerator
from delvers_descent.economy.achievements import AchievementDef, AchievementManager
from delvers_descent.economy.collection import CollectionManager
from delvers_descent.economy.energy import EnergyCalculator, Recommendation
from delvers_descent.economy.progression import ProgressionManager
from delvers_descent.economy.run_queue import RunQueueManager
from delvers_descent.economy.run_state import (
    OutcomeApplication,
    RunSettlement,
    RunStateManager,
)
from delvers_descent.encounters.base import Encounter
from delvers_descent.encounters.resolver import EncounterResolver
from delvers_descent.feedback.collection_progress import (
    CollectionFeedback,
    get_collection_feedback,
)
from delvers_descent.rewards.calculator import RewardCalculator
from delvers_descent.rewards.collection_sets import CollectionSetDef
from delvers_descent.rewards.failure import (
    FailureConsequenceManager,
    ProcessedFailure,
    classify_failure,
)

logger = logging.getLogger(__name__)


@dataclass
class EncounterReport:
    """Everything that happened when an encounter was finished."""

    record: EncounterRecord
    outcome: EncounterOutcome
    """Outcome with processed reward items."""
    application: OutcomeApplication
    failure: ProcessedFailure | None = None
    settlement: RunSettlement | None = None
    """Set when the encounter ended the run (forced retreat or no energy)."""


@dataclass
class CashOutReport:
    settlement: RunSettlement
    newly_completed_sets: list[str]
    feedback: CollectionFeedback
    unlocked_achievements: list[AchievementDef] = field(default_factory=list)


class DelversEngine:
    """Explicitly constructed set of engine services.

    Parameters
    ----------
    store:
        Persistence backend shared by every manager.  Defaults to a fresh
        :class:`InMemoryStore`.
    rng:
        Master RNG; forked per sub-system.  Defaults to ``GameRNG(0)``.
    config:
        Balance config.  Defaults to ``DEFAULT_CONFIG``.
    """

    def __init__(
        self,
        store: KeyValueStore | None = None,
        rng: GameRNG | None = None,
        config: BalanceConfig | None = None,
    ) -> None:
        self.store = store if store is not None else InMemoryStore()
        self.rng = rng or GameRNG(0)
        self.config = config or DEFAULT_CONFIG

        self.energy = EnergyCalculator(self.config)
        self.progression = ProgressionManager(self.store)
        self.queue = RunQueueManager(self.store, self.progression, self.energy)
        self.run_state = RunStateManager(
            self.store, self.rng.fork("run_state"), self.energy, self.config
        )
        self.collection = CollectionManager(self.store)
        self.achievements = AchievementManager(self.store)
        self.map_generator = MapGenerator(self.rng.fork("map"), self.config, self.energy)
        self.resolver = EncounterResolver(self.rng.fork("encounters"), self.config)
        self.rewards = RewardCalculator(self.rng.fork("rewards"), self.config)
        self.failures = FailureConsequenceManager(self.config)

    # ------------------------------------------------------------------
    # Runs
    # ------------------------------------------------------------------

    def queue_step_history(self, history: Iterable[dict]) -> list[Run]:
        return self.queue.generate_runs_from_step_history(history)

    def start_run(self, run_id: str, max_depth: int | None = None) -> RunState:
        """Activate a queued run and generate its map.

        Raises
        ------
        RunNotFoundError
            If no queued run has *run_id*.
        InvalidMoveError
            If the run is not queued.
        RunAlreadyActiveError, MapAlreadyGeneratedError
            If a run is already being played.
        """
        run = self.queue.get_run_by_id(run_id)
        if run is None:
            raise RunNotFoundError(run_id)
        if run.status != RunStatus.QUEUED:
            raise InvalidMoveError(f"Run {run_id} is {run.status.value}, not queued")

        dungeon = self.map_generator.generate_full_map(max_depth)
        state = self.run_state.initialize_run(run, dungeon)
        self.queue.update_run_status(run_id, RunStatus.ACTIVE)
        self.failures.reset()
        # Encounter streams are keyed by run date so replays reproduce every roll.
        self.resolver = EncounterResolver(self.rng.fork(f"encounters:{run.date}"), self.config)
        return state

    def current_run(self) -> RunState:
        state = self.run_state.get_current_state()
        if state is None:
            raise NoActiveRunError("No active run")
        return state

    def get_recommendation(self) -> Recommendation:
        state = self.current_run()
        return self.energy.get_recommended_action(
            state.energy_remaining, self.run_state.get_return_cost(), state.current_depth
        )

    # ------------------------------------------------------------------
    # Encounters
    # ------------------------------------------------------------------

    def enter_node(self, node_id: str) -> Encounter:
        """Move into *node_id* and start its encounter."""
        active = self.resolver.get_active()
        if active is not None:
            raise EncounterInProgressError(
                f"Finish encounter {active.id} before moving on"
            )
        node = self.run_state.move_to_node(node_id)
        return self.resolver.start_encounter(
            node.type, node.id, node.depth, node.energy_cost
        )

    def finish_encounter(self) -> EncounterReport:
        """Resolve the active encounter and apply its outcome to the run.

        Successful rewards are processed by the reward calculator; failures
        go through the failure consequence manager.  A forced retreat ends
        the run: it is cashed out when the return is affordable and busted
        otherwise.  Running out of energy below the surface busts the run.
        """
        if self.resolver.get_current_encounter() is None:
            raise NoActiveEncounterError("No active encounter to finish")

        record = self.resolver.resolve_current()
        outcome = record.outcome
        failure: ProcessedFailure | None = None

        if outcome.is_success:
            if outcome.reward is not None:
                outcome = outcome.model_copy(
                    update={
                        "reward": self.rewards.process_reward(
                            outcome.reward, record.type, record.depth
                        )
                    }
                )
            self.failures.record_success(record.node_id)
            application = self.run_state.apply_outcome(outcome)
        else:
            failure = self.failures.process_failure_consequences(
                classify_failure(outcome.consequence),
                record.depth,
                record.node_id,
                node_energy_cost=record.energy_cost,
                encounter_consequence=outcome.consequence,
            )
            application = self.run_state.apply_outcome(outcome, failure.consequence)

        report = EncounterReport(
            record=record, outcome=outcome, application=application, failure=failure
        )

        state = self.current_run()
        if application.forced_retreat:
            logger.info("Forced retreat from %s", record.node_id)
            if self.run_state.can_afford_return():
                report.settlement = self.cash_out().settlement
            else:
                report.settlement = self.bust()
        elif state.energy_remaining <= 0 and not state.free_return:
            report.settlement = self.bust()
        return report

    # ------------------------------------------------------------------
    # Settlement
    # ------------------------------------------------------------------
    #
    # The active run state is cleared last.  Each earlier write is
    # idempotent per run, so when one of them fails the run stays active
    # and settling it again picks up where the failure left off.

    def _completed_set_defs(self) -> list[CollectionSetDef]:
        completed = set(self.collection.get_completed_sets())
        return [s for s in self.collection.get_collection_sets() if s.id in completed]

    def _close_queue_entry(self, run_id: str, status: RunStatus) -> None:
        if self.queue.get_run_by_id(run_id) is not None:
            self.queue.update_run_status(run_id, status)

    def cash_out(self) -> CashOutReport:
        """Return to the surface and bank the inventory into the collection."""
        if self.resolver.get_active() is not None:
            raise EncounterInProgressError("Finish the current encounter first")

        previous_total = self.collection.get_collection_progress().total_items
        settlement = self.run_state.settle_cash_out()
        self._close_queue_entry(settlement.run_id, RunStatus.COMPLETED)
        self.progression.process_run_completion(settlement.deepest_depth, settlement.run_id)
        newly_completed = self.collection.add_collected_items(
            settlement.banked_items, settlement.run_id
        )
        unlocked = self.achievements.record_settlement(settlement, self._completed_set_defs())
        self.run_state.clear_active_run()
        logger.info(
            "Run %s cashed out at depth %d with %d items",
            settlement.run_id, settlement.deepest_depth, len(settlement.banked_items),
        )

        feedback = get_collection_feedback(
            self.collection.get_collection_progress(),
            newly_completed,
            previous_total,
            self.config,
        )
        return CashOutReport(settlement, newly_completed, feedback, unlocked)

    def bust(self) -> RunSettlement:
        """Forfeit the run: items are lost, depth and XP still count."""
        settlement = self.run_state.settle_bust()
        self._close_queue_entry(settlement.run_id, RunStatus.BUSTED)
        self.progression.process_run_bust(settlement.deepest_depth, settlement.run_id)
        self.achievements.record_settlement(settlement, self._completed_set_defs())
        self.run_state.clear_active_run()
        if self.resolver.get_active() is not None:
            self.resolver.clear()
        logger.info("Run %s busted at depth %d", settlement.run_id, settlement.deepest_depth)
        return settlement
