"""Seeded run simulation for balance checks.

A :class:`DelvePolicy` makes every decision a player would: which node to
enter next, when to head home, and how to play each encounter.
:func:`simulate_runs` plays a batch of runs through a
:class:`~delvers_descent.engine.DelversEngine` and aggregates the results
into a :class:`SimulationSummary`; :func:`generate_text_report` renders it.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from delvers_descent.core.models import DungeonNode, RunStatus
from delvers_descent.core.rng import GameRNG
from delvers_descent.economy.energy import RecommendedAction
from delvers_descent.encounters.base import Encounter
from delvers_descent.encounters.discovery import DiscoverySite
from delvers_descent.encounters.hazard import Hazard
from delvers_descent.encounters.puzzle import PuzzleChamber
from delvers_descent.encounters.rest_site import RestSite
from delvers_descent.encounters.risk_event import RiskEvent
from delvers_descent.encounters.scoundrel import Card, CardKind, Scoundrel
from delvers_descent.encounters.trade import TradeOpportunity

if TYPE_CHECKING:
    from delvers_descent.engine import DelversEngine

logger = logging.getLogger(__name__)

_MAX_STEPS_PER_RUN = 200


# =====================================================================
# Policies
# =====================================================================


class DelvePolicy(ABC):
    """Decision maker for simulated runs."""

    @abstractmethod
    def choose_node(
        self,
        engine: DelversEngine,
        moves: list[DungeonNode],
    ) -> DungeonNode | None:
        """Pick the next node, or ``None`` to cash out."""

    @abstractmethod
    def play_encounter(self, encounter: Encounter) -> None:
        """Drive *encounter* until it can be resolved."""


class CautiousPolicy(DelvePolicy):
    """Follows the energy recommendation and plays encounters safely.

    Parameters
    ----------
    rng:
        RNG for tie-breaks and puzzle reveals.  Defaults to ``GameRNG(0)``.
    """

    def __init__(self, rng: GameRNG | None = None) -> None:
        self._rng = rng or GameRNG(seed=0)

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def choose_node(
        self,
        engine: DelversEngine,
        moves: list[DungeonNode],
    ) -> DungeonNode | None:
        state = engine.current_run()
        recommendation = engine.get_recommendation()
        if state.current_depth > 0 and recommendation.action == RecommendedAction.RETURN:
            return None

        affordable = []
        for node in moves:
            after = state.energy_remaining - node.energy_cost
            future_return = engine.energy.calculate_return_cost(
                node.depth, state.discovered_shortcuts
            )
            if after >= future_return:
                affordable.append(node)
        if not affordable:
            return None
        cheapest = min(n.energy_cost for n in affordable)
        return self._rng.random_choice([n for n in affordable if n.energy_cost == cheapest])

    # ------------------------------------------------------------------
    # Encounters
    # ------------------------------------------------------------------

    def play_encounter(self, encounter: Encounter) -> None:
        if isinstance(encounter, PuzzleChamber):
            self._play_puzzle(encounter)
        elif isinstance(encounter, TradeOpportunity):
            for option in sorted(encounter.available_options(), key=lambda o: o.cost_value):
                if encounter.is_complete():
                    break
                encounter.select_option(option.id)
        elif isinstance(encounter, DiscoverySite):
            encounter.select_path(max(encounter.paths.values(), key=lambda p: p.success_rate).id)
        elif isinstance(encounter, Hazard):
            encounter.select_path(max(encounter.paths.values(), key=lambda p: p.success_rate).id)
        elif isinstance(encounter, RiskEvent):
            encounter.select_choice("conservative")
        elif isinstance(encounter, RestSite):
            encounter.select_action(
                max(encounter.actions.values(), key=encounter.net_gain).id
            )
        elif isinstance(encounter, Scoundrel):
            self._play_scoundrel(encounter)

    def _play_puzzle(self, puzzle: PuzzleChamber) -> None:
        while not puzzle.is_complete():
            hidden = [t for row in puzzle.grid for t in row if not t.revealed]
            tile = self._rng.random_choice(hidden)
            puzzle.reveal_tile(tile.row, tile.col)

    def _play_scoundrel(self, game: Scoundrel) -> None:
        while not game.is_complete():
            room = game.room
            monster_total = sum(c.value for c in room if c.kind == CardKind.MONSTER)
            if game.can_skip_room() and monster_total >= game.life:
                game.skip_room()
                continue
            game.play_card(self._pick_card(game).id)

    @staticmethod
    def _pick_card(game: Scoundrel) -> Card:
        room = game.room
        potions = [c for c in room if c.kind == CardKind.POTION]
        weapons = [c for c in room if c.kind == CardKind.WEAPON]
        monsters = [c for c in room if c.kind == CardKind.MONSTER]

        if potions and game.life <= game.max_life // 2:
            return max(potions, key=lambda c: c.value)
        if weapons and (game.weapon is None or max(w.value for w in weapons) > game.weapon.value):
            return max(weapons, key=lambda c: c.value)
        if monsters:
            def damage(card: Card) -> int:
                if game.can_use_weapon_on(card):
                    return max(0, card.value - game.weapon.value)
                return card.value
            return min(monsters, key=lambda c: (damage(c), -c.value))
        return room[0]


# =====================================================================
# Running
# =====================================================================


@dataclass
class RunSummary:
    run_id: str
    status: RunStatus
    deepest_depth: int
    encounters: int
    failures: int
    items_banked: int
    xp_earned: int
    energy_spent: int


@dataclass
class SimulationSummary:
    runs: list[RunSummary] = field(default_factory=list)
    completed_sets: list[str] = field(default_factory=list)

    @property
    def total_runs(self) -> int:
        return len(self.runs)

    @property
    def busted(self) -> int:
        return sum(1 for r in self.runs if r.status == RunStatus.BUSTED)

    @property
    def bust_rate(self) -> float:
        return self.busted / self.total_runs if self.runs else 0.0

    @property
    def avg_depth(self) -> float:
        return sum(r.deepest_depth for r in self.runs) / self.total_runs if self.runs else 0.0

    @property
    def avg_items_banked(self) -> float:
        return sum(r.items_banked for r in self.runs) / self.total_runs if self.runs else 0.0

    @property
    def avg_xp(self) -> float:
        return sum(r.xp_earned for r in self.runs) / self.total_runs if self.runs else 0.0


def simulate_run(
    engine: DelversEngine,
    run_id: str,
    policy: DelvePolicy,
    max_depth: int | None = None,
) -> RunSummary:
    """Play a queued run to its end with *policy*."""
    engine.start_run(run_id, max_depth)
    encounters = 0
    failures = 0

    for _ in range(_MAX_STEPS_PER_RUN):
        moves = engine.run_state.get_available_moves()
        node = policy.choose_node(engine, moves)
        if node is None:
            break
        encounter = engine.enter_node(node.id)
        policy.play_encounter(encounter)
        report = engine.finish_encounter()
        encounters += 1
        if not report.outcome.is_success:
            failures += 1
        if report.settlement is not None:
            s = report.settlement
            return RunSummary(
                run_id, s.status, s.deepest_depth, encounters, failures,
                len(s.banked_items), s.xp_earned, s.energy_spent,
            )

    if engine.run_state.can_afford_return():
        s = engine.cash_out().settlement
    else:
        s = engine.bust()
    return RunSummary(
        run_id, s.status, s.deepest_depth, encounters, failures,
        len(s.banked_items), s.xp_earned, s.energy_spent,
    )


def simulate_runs(
    engine: DelversEngine,
    policy: DelvePolicy,
    max_depth: int | None = None,
) -> SimulationSummary:
    """Play every queued run, oldest first."""
    summary = SimulationSummary()
    while engine.queue.has_queued_runs():
        run = engine.queue.get_oldest_queued_run()
        result = simulate_run(engine, run.id, policy, max_depth)
        logger.debug("Run %s: %s at depth %d", run.id, result.status.value, result.deepest_depth)
        summary.runs.append(result)
    summary.completed_sets = engine.collection.get_completed_sets()
    return summary


def generate_text_report(summary: SimulationSummary, engine: DelversEngine) -> str:
    """Human-readable summary of a simulation batch."""
    progression = engine.progression.get_progression()
    progress = engine.collection.get_collection_progress()
    achievements = engine.achievements.get_statistics()
    lines: list[str] = []

    lines.append("=" * 60)
    lines.append("Delvers Descent Simulation Report")
    lines.append(f"Runs: {summary.total_runs:,}")
    lines.append("=" * 60)

    lines.append("")
    lines.append("## Runs")
    lines.append(f"  Bust rate:          {summary.bust_rate:.1%} ({summary.busted}/{summary.total_runs})")
    lines.append(f"  Avg deepest depth:  {summary.avg_depth:.1f}")
    lines.append(f"  Avg items banked:   {summary.avg_items_banked:.1f}")
    lines.append(f"  Avg XP:             {summary.avg_xp:.0f}")

    lines.append("")
    lines.append("## Progression")
    lines.append(f"  All-time deepest:   {progression.all_time_deepest_depth}")
    lines.append(f"  Completed / busted: {progression.total_runs_completed} / {progression.total_runs_busted}")

    lines.append("")
    lines.append("## Collection")
    lines.append(f"  Items:              {progress.total_items}/{progress.catalog_items}")
    lines.append(f"  Sets completed:     {len(progress.completed_sets)}/{progress.total_sets}")
    for set_id in progress.completed_sets:
        lines.append(f"    - {set_id}")

    lines.append("")
    lines.append("## Achievements")
    lines.append(f"  Unlocked:           {achievements.unlocked}/{achievements.total}")
    lines.append(f"  Longest streak:     {engine.achievements.longest_streak} days")
    for status in engine.achievements.get_unlocked_achievements():
        lines.append(f"    - {status.name}")

    lines.append("")
    lines.append("## Per Run")
    for r in summary.runs:
        lines.append(
            f"  {r.run_id:32s}  {r.status.value:9s}  depth={r.deepest_depth:2d}"
            f"  encounters={r.encounters:2d}  failures={r.failures:2d}"
            f"  items={r.items_banked:2d}  xp={r.xp_earned}"
        )
    return "\n".join(lines)
