"""Cross-run achievements unlocked by depth, risk, collections and streaks.

Every settled run is turned into a handful of :class:`AchievementEvent`
values.  Each :class:`AchievementDef` watches one event type and tracks
the best value seen so far; it unlocks once that value meets its target.
Progress, unlock times, claimed rewards and the daily streak are stored
under ``delvers_descent_achievements``.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import TYPE_CHECKING, Sequence

from pydantic import BaseModel, Field, ValidationError

from delvers_descent.core.models import ItemType, Rarity, RunStatus

if TYPE_CHECKING:
    from delvers_descent.core.persistence import KeyValueStore
    from delvers_descent.economy.run_state import RunSettlement
    from delvers_descent.rewards.collection_sets import CollectionSetDef

logger = logging.getLogger(__name__)

ACHIEVEMENTS_KEY = "delvers_descent_achievements"


class AchievementCategory(str, Enum):
    MILESTONE = "milestone"
    RISK = "risk"
    EFFICIENCY = "efficiency"
    EXPLORATION = "exploration"
    COLLECTION = "collection"
    STREAK = "streak"


class AchievementEventType(str, Enum):
    DEPTH_REACHED = "depth_reached"
    CASH_OUT_DEPTH = "cash_out_depth"
    ENERGY_REMAINING = "energy_remaining"
    """Energy left after a successful return."""
    EXCESS_ENERGY = "excess_energy"
    """Share of the run's energy left unspent after a successful return."""
    SHORTCUTS_FOUND = "shortcuts_found"
    SETS_COMPLETED = "sets_completed"
    LEGENDARY_SETS_COMPLETED = "legendary_sets_completed"
    STREAK = "streak"


@dataclass(frozen=True)
class AchievementEvent:
    type: AchievementEventType
    value: float


@dataclass(frozen=True)
class AchievementReward:
    xp: int = 0
    energy: int = 0
    title: str | None = None


@dataclass(frozen=True)
class AchievementDef:
    """Static definition of one achievement.

    ``at_most`` flips the comparison: the best value is the lowest one
    seen and the achievement unlocks when it is at or below ``target``.
    """

    id: str
    name: str
    description: str
    category: AchievementCategory
    rarity: Rarity
    event: AchievementEventType
    target: float
    reward: AchievementReward = AchievementReward()
    at_most: bool = False

    def is_met(self, value: float) -> bool:
        return value <= self.target if self.at_most else value >= self.target

    def best(self, current: float | None, value: float) -> float:
        if current is None:
            return value
        return min(current, value) if self.at_most else max(current, value)


def _milestone(depth: int, name: str, rarity: Rarity, xp: int, title: str | None = None) -> AchievementDef:
    return AchievementDef(
        f"milestone-depth-{depth}", name, f"Reach depth {depth}",
        AchievementCategory.MILESTONE, rarity, AchievementEventType.DEPTH_REACHED, depth,
        AchievementReward(xp=xp, title=title),
    )


def _streak(days: int, name: str, rarity: Rarity, energy: int) -> AchievementDef:
    return AchievementDef(
        f"streak-{days}-days", name, f"Delve on {days} consecutive days",
        AchievementCategory.STREAK, rarity, AchievementEventType.STREAK, days,
        AchievementReward(energy=energy),
    )


def _sets(count: int, achievement_id: str, name: str, rarity: Rarity, xp: int) -> AchievementDef:
    noun = "set" if count == 1 else "sets"
    return AchievementDef(
        achievement_id, name, f"Complete {count} collection {noun}",
        AchievementCategory.COLLECTION, rarity, AchievementEventType.SETS_COMPLETED, count,
        AchievementReward(xp=xp),
    )


ACHIEVEMENTS: tuple[AchievementDef, ...] = (
    _milestone(5, "Into the Depths", Rarity.COMMON, 100),
    _milestone(10, "Delver", Rarity.UNCOMMON, 250),
    _milestone(15, "Deep Delver", Rarity.RARE, 500),
    _milestone(20, "Master Delver", Rarity.EPIC, 1000),
    _milestone(25, "Legendary Delver", Rarity.LEGENDARY, 2500, title="Legendary Delver"),
    AchievementDef(
        "risk-cashout-deep", "Deep Withdrawal", "Cash out from depth 15 or deeper",
        AchievementCategory.RISK, Rarity.EPIC, AchievementEventType.CASH_OUT_DEPTH, 15,
        AchievementReward(xp=750),
    ),
    AchievementDef(
        "risk-survive-low-energy", "Running on Fumes",
        "Return safely with fewer than 5 energy left",
        AchievementCategory.RISK, Rarity.RARE, AchievementEventType.ENERGY_REMAINING, 4,
        AchievementReward(xp=300), at_most=True,
    ),
    AchievementDef(
        "efficiency-perfect-run", "Perfect Run",
        "Return with at most 10% of the run's energy unspent",
        AchievementCategory.EFFICIENCY, Rarity.RARE, AchievementEventType.EXCESS_ENERGY, 0.1,
        AchievementReward(xp=300), at_most=True,
    ),
    AchievementDef(
        "exploration-first-shortcut", "Pathfinder", "Discover a shortcut",
        AchievementCategory.EXPLORATION, Rarity.COMMON, AchievementEventType.SHORTCUTS_FOUND, 1,
        AchievementReward(xp=100),
    ),
    _sets(1, "collection-first-set", "Collector", Rarity.COMMON, 100),
    _sets(5, "collection-5-sets", "Curator", Rarity.RARE, 500),
    _sets(10, "collection-10-sets", "Archivist", Rarity.EPIC, 1000),
    AchievementDef(
        "collection-legendary", "Keeper of Legends", "Complete a legendary collection set",
        AchievementCategory.COLLECTION, Rarity.LEGENDARY,
        AchievementEventType.LEGENDARY_SETS_COMPLETED, 1,
        AchievementReward(xp=2000, title="Keeper of Legends"),
    ),
    _streak(3, "Consistent", Rarity.COMMON, 50),
    _streak(7, "Dedicated", Rarity.UNCOMMON, 150),
    _streak(14, "Committed", Rarity.RARE, 400),
    _streak(30, "Unbreakable", Rarity.LEGENDARY, 1000),
)


# -- persisted state ------------------------------------------------------------


class AchievementProgress(BaseModel):
    current: float | None = None
    """Best value seen; ``None`` until the first matching event."""
    unlocked_at: float | None = None
    claimed: bool = False


class AchievementState(BaseModel):
    progress: dict[str, AchievementProgress] = Field(default_factory=dict)
    current_streak: int = 0
    longest_streak: int = 0
    last_run_date: str | None = None
    last_settled_run_id: str | None = None


# -- views ----------------------------------------------------------------------


class AchievementStatus(BaseModel):
    id: str
    name: str
    description: str
    category: AchievementCategory
    rarity: Rarity
    current: float | None
    target: float
    percentage: float
    unlocked: bool
    unlocked_at: float | None = None


class UnlockStats(BaseModel):
    total: int = 0
    unlocked: int = 0


class AchievementStatistics(BaseModel):
    total: int
    unlocked: int
    completion_rate: float
    by_category: dict[AchievementCategory, UnlockStats]
    by_rarity: dict[Rarity, UnlockStats]


class AchievementRewards(BaseModel):
    xp: int = 0
    energy: int = 0
    titles: list[str] = Field(default_factory=list)

    def add(self, reward: AchievementReward) -> None:
        self.xp += reward.xp
        self.energy += reward.energy
        if reward.title is not None and reward.title not in self.titles:
            self.titles.append(reward.title)


def _percentage(definition: AchievementDef, progress: AchievementProgress) -> float:
    if progress.unlocked_at is not None:
        return 100.0
    if progress.current is None or definition.at_most:
        return 0.0
    return min(100.0, progress.current / definition.target * 100) if definition.target else 0.0


# ---------------------------------------------------------------------------
# Manager
# ---------------------------------------------------------------------------


class AchievementManager:
    """Tracks achievement progress across runs.

    Parameters
    ----------
    store:
        Key-value store for the achievement record.
    definitions:
        Achievements to track.  Defaults to ``ACHIEVEMENTS``.
    """

    def __init__(
        self,
        store: KeyValueStore,
        definitions: Sequence[AchievementDef] = ACHIEVEMENTS,
    ) -> None:
        self.store = store
        self.definitions = tuple(definitions)
        self._by_id = {d.id: d for d in self.definitions}
        self._state: AchievementState | None = None

    # -- persistence ---------------------------------------------------------

    def _load(self) -> AchievementState:
        if self._state is not None:
            return self._state
        raw = self.store.get(ACHIEVEMENTS_KEY)
        if raw is None:
            self._state = AchievementState()
            return self._state
        try:
            self._state = AchievementState.model_validate(raw)
        except ValidationError as exc:
            logger.warning("Corrupted achievement data, starting fresh: %s", exc)
            self._state = AchievementState()
        return self._state

    def _commit(self, updated: AchievementState) -> None:
        self.store.set(ACHIEVEMENTS_KEY, updated.model_dump(mode="json"))
        self._state = updated

    # -- events --------------------------------------------------------------

    def _apply(self, state: AchievementState, events: Sequence[AchievementEvent]) -> list[AchievementDef]:
        unlocked: list[AchievementDef] = []
        now = time.time()
        for event in events:
            for definition in self.definitions:
                if definition.event != event.type:
                    continue
                progress = state.progress.setdefault(definition.id, AchievementProgress())
                progress.current = definition.best(progress.current, event.value)
                if progress.unlocked_at is None and definition.is_met(progress.current):
                    progress.unlocked_at = now
                    unlocked.append(definition)
                    logger.info("Achievement unlocked: %s", definition.name)
        return unlocked

    def process_event(self, event: AchievementEvent) -> list[AchievementDef]:
        """Feed one event; returns the achievements it unlocked."""
        return self.process_events([event])

    def process_events(self, events: Sequence[AchievementEvent]) -> list[AchievementDef]:
        state = self._load().model_copy(deep=True)
        unlocked = self._apply(state, events)
        self._commit(state)
        return unlocked

    def _advance_streak(self, state: AchievementState, run_date: str) -> None:
        try:
            day = date.fromisoformat(run_date)
        except ValueError:
            logger.warning("Ignoring run date %r for streaks", run_date)
            return
        if state.last_run_date is None:
            state.current_streak = 1
        else:
            last = date.fromisoformat(state.last_run_date)
            if day <= last:
                return
            state.current_streak = state.current_streak + 1 if day - last == timedelta(days=1) else 1
        state.last_run_date = run_date
        state.longest_streak = max(state.longest_streak, state.current_streak)

    def record_settlement(
        self,
        settlement: RunSettlement,
        completed_sets: Sequence[CollectionSetDef] = (),
    ) -> list[AchievementDef]:
        """Turn a settled run into events and apply them in a single write.

        *completed_sets* is every set completed so far, not just the new
        ones.  Recording the same run twice changes nothing.
        """
        state = self._load().model_copy(deep=True)
        if state.last_settled_run_id == settlement.run_id:
            logger.debug("Run %s already recorded for achievements", settlement.run_id)
            return []

        events = [AchievementEvent(AchievementEventType.DEPTH_REACHED, settlement.deepest_depth)]
        if settlement.shortcuts_discovered:
            events.append(
                AchievementEvent(AchievementEventType.SHORTCUTS_FOUND, len(settlement.shortcuts_discovered))
            )
        # Surface-only runs never take a risk worth rewarding.
        if settlement.status == RunStatus.COMPLETED and settlement.deepest_depth > 0:
            events.append(AchievementEvent(AchievementEventType.CASH_OUT_DEPTH, settlement.deepest_depth))
            events.append(AchievementEvent(AchievementEventType.ENERGY_REMAINING, settlement.energy_remaining))
            starting = settlement.energy_spent + settlement.energy_remaining
            if starting > 0:
                events.append(
                    AchievementEvent(AchievementEventType.EXCESS_ENERGY, settlement.energy_remaining / starting)
                )
        if completed_sets:
            events.append(AchievementEvent(AchievementEventType.SETS_COMPLETED, len(completed_sets)))
            legendary = sum(1 for s in completed_sets if s.category == ItemType.LEGENDARY)
            if legendary:
                events.append(AchievementEvent(AchievementEventType.LEGENDARY_SETS_COMPLETED, legendary))
        if settlement.run_date is not None:
            self._advance_streak(state, settlement.run_date)
            events.append(AchievementEvent(AchievementEventType.STREAK, state.current_streak))

        unlocked = self._apply(state, events)
        state.last_settled_run_id = settlement.run_id
        self._commit(state)
        return unlocked

    def claim_rewards(self) -> AchievementRewards:
        """Collect rewards of unlocked achievements not yet claimed."""
        state = self._load().model_copy(deep=True)
        rewards = AchievementRewards()
        for definition in self.definitions:
            progress = state.progress.get(definition.id)
            if progress is None or progress.unlocked_at is None or progress.claimed:
                continue
            progress.claimed = True
            rewards.add(definition.reward)
        self._commit(state)
        return rewards

    def reset(self) -> None:
        self._commit(AchievementState())

    # -- queries -------------------------------------------------------------

    def _status(self, definition: AchievementDef) -> AchievementStatus:
        progress = self._load().progress.get(definition.id, AchievementProgress())
        return AchievementStatus(
            id=definition.id,
            name=definition.name,
            description=definition.description,
            category=definition.category,
            rarity=definition.rarity,
            current=progress.current,
            target=definition.target,
            percentage=_percentage(definition, progress),
            unlocked=progress.unlocked_at is not None,
            unlocked_at=progress.unlocked_at,
        )

    def get_achievements(self) -> list[AchievementStatus]:
        return [self._status(d) for d in self.definitions]

    def get_achievement(self, achievement_id: str) -> AchievementStatus | None:
        definition = self._by_id.get(achievement_id)
        return self._status(definition) if definition is not None else None

    def get_unlocked_achievements(self) -> list[AchievementStatus]:
        return [s for s in self.get_achievements() if s.unlocked]

    def get_locked_achievements(self) -> list[AchievementStatus]:
        return [s for s in self.get_achievements() if not s.unlocked]

    def get_achievements_by_category(self, category: AchievementCategory) -> list[AchievementStatus]:
        return [s for s in self.get_achievements() if s.category == category]

    @property
    def current_streak(self) -> int:
        return self._load().current_streak

    @property
    def longest_streak(self) -> int:
        return self._load().longest_streak

    def get_statistics(self) -> AchievementStatistics:
        by_category = {c: UnlockStats() for c in AchievementCategory}
        by_rarity: dict[Rarity, UnlockStats] = {}
        statuses = self.get_achievements()
        for status in statuses:
            for stats in (by_category[status.category], by_rarity.setdefault(status.rarity, UnlockStats())):
                stats.total += 1
                stats.unlocked += int(status.unlocked)
        unlocked = sum(1 for s in statuses if s.unlocked)
        return AchievementStatistics(
            total=len(statuses),
            unlocked=unlocked,
            completion_rate=unlocked / len(statuses) if statuses else 0.0,
            by_category=by_category,
            by_rarity=by_rarity,
        )

    def get_total_rewards(self) -> AchievementRewards:
        """Rewards of every unlocked achievement, claimed or not."""
        state = self._load()
        rewards = AchievementRewards()
        for definition in self.definitions:
            progress = state.progress.get(definition.id)
            if progress is not None and progress.unlocked_at is not None:
                rewards.add(definition.reward)
        return rewards
