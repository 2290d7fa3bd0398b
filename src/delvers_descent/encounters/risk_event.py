"""Risk event -- a gamble whose odds and stakes the player tunes.

Each event has a risk level (low, medium, high, extreme) fixing its base
success rate, rewards and failure penalties, all scaled by
``depth ** 1.2``.  The player then picks a choice that shifts the
success rate and multiplies the reward and the consequence:

================  ========  ======  ===========  ======
choice            rate mod  reward  consequence  energy
================  ========  ======  ===========  ======
conservative      +0.2      0.7     0.5          0
standard          0         1.0     1.0          0
aggressive        -0.2      1.5     1.5          0
high_stakes *     -0.3      2.0     1.8          5
all_or_nothing ** -0.4      3.0     2.5          10
================  ========  ======  ===========  ======

\\* high events only, \\** extreme events only.  Winning either of those
two choices has a chance to add the level's legendary reward.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from delvers_descent.core.config import BalanceConfig
from delvers_descent.core.errors import InvalidSelectionError
from delvers_descent.core.models import (
    EncounterItem,
    EncounterOutcome,
    EncounterReward,
    EncounterType,
    FailureConsequence,
    ItemType,
    Rarity,
    slugify,
)
from delvers_descent.core.rng import GameRNG
from delvers_descent.encounters.base import Encounter

LEGENDARY_CHANCE = 0.25
MIN_SUCCESS_RATE = 0.05
MAX_SUCCESS_RATE = 0.95


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    EXTREME = "extreme"


@dataclass(frozen=True)
class _Drop:
    name: str
    set_id: str
    value: int
    type: ItemType
    rarity: Rarity


@dataclass(frozen=True)
class _LevelProfile:
    success_rate: float
    energy: int
    xp: int
    drop: _Drop
    failure_energy: int
    item_loss_risk: float
    forced_retreat: bool = False
    lockout: bool = False
    legendary_energy: int = 0
    legendary_xp: int = 0
    legendary_drops: tuple[_Drop, ...] = field(default_factory=tuple)


_PROFILES = {
    RiskLevel.LOW: _LevelProfile(
        0.8, 10, 25,
        _Drop("Common Gem", "gem_merchant_set", 10, ItemType.TRADE_GOOD, Rarity.COMMON),
        5, 0.1,
    ),
    RiskLevel.MEDIUM: _LevelProfile(
        0.6, 20, 50,
        _Drop("Crystal Shard", "crystal_caverns_set", 25, ItemType.DISCOVERY, Rarity.UNCOMMON),
        15, 0.3,
    ),
    RiskLevel.HIGH: _LevelProfile(
        0.4, 35, 100,
        _Drop("Void Crystal", "shadow_realm_set", 50, ItemType.DISCOVERY, Rarity.EPIC),
        25, 0.5, forced_retreat=True,
        legendary_energy=50, legendary_xp=150,
        legendary_drops=(
            _Drop("Dragon Scale", "dragon_hoard_set", 100, ItemType.LEGENDARY, Rarity.LEGENDARY),
        ),
    ),
    RiskLevel.EXTREME: _LevelProfile(
        0.2, 60, 200,
        _Drop("Dragon Gem", "gem_merchant_set", 200, ItemType.TRADE_GOOD, Rarity.EPIC),
        40, 0.7, forced_retreat=True, lockout=True,
        legendary_energy=100, legendary_xp=300,
        legendary_drops=(
            _Drop("Phoenix Egg", "phoenix_nest_set", 500, ItemType.LEGENDARY, Rarity.LEGENDARY),
            _Drop("Eternal Ember", "eternal_flame_set", 300, ItemType.LEGENDARY, Rarity.LEGENDARY),
        ),
    ),
}


@dataclass
class RiskChoice:
    id: str
    name: str
    description: str
    success_rate_modifier: float
    reward_modifier: float
    consequence_modifier: float
    energy_cost: int = 0
    legendary_eligible: bool = False


def _choices_for(level: RiskLevel) -> list[RiskChoice]:
    choices = [
        RiskChoice("conservative", "Play It Safe", "Take the careful approach", 0.2, 0.7, 0.5),
        RiskChoice("standard", "Standard Approach", "Take the usual risk", 0.0, 1.0, 1.0),
        RiskChoice("aggressive", "Go Aggressive", "Push harder for a bigger payoff", -0.2, 1.5, 1.5),
    ]
    if level == RiskLevel.HIGH:
        choices.append(RiskChoice(
            "high_stakes", "High Stakes", "Bet heavily on a risky move",
            -0.3, 2.0, 1.8, energy_cost=5, legendary_eligible=True,
        ))
    if level == RiskLevel.EXTREME:
        choices.append(RiskChoice(
            "all_or_nothing", "All or Nothing", "Risk everything for legendary treasure",
            -0.4, 3.0, 2.5, energy_cost=10, legendary_eligible=True,
        ))
    return choices


def roll_risk_level(depth: int, rng: GameRNG) -> RiskLevel:
    """Deeper events skew toward higher risk levels."""
    d = max(1, depth)
    return rng.weighted_choice([
        (RiskLevel.LOW, max(0.1, 0.5 - 0.05 * d)),
        (RiskLevel.MEDIUM, 0.3),
        (RiskLevel.HIGH, 0.15 + 0.03 * d),
        (RiskLevel.EXTREME, 0.05 + 0.02 * d),
    ])


class RiskEvent(Encounter):
    """Tunable gamble encounter."""

    encounter_type = EncounterType.RISK_EVENT

    def __init__(
        self,
        depth: int,
        rng: GameRNG,
        config: BalanceConfig | None = None,
        risk_level: RiskLevel | None = None,
    ) -> None:
        super().__init__(depth, rng, config)
        self.risk_level = risk_level or roll_risk_level(depth, rng)
        self.profile = _PROFILES[self.risk_level]
        self.depth_multiplier = max(1, depth) ** 1.2
        self.choices = {c.id: c for c in _choices_for(self.risk_level)}
        self.selected: RiskChoice | None = None
        self.legendary_won = False

    def _snapshot(self) -> dict[str, Any]:
        return {
            "risk_level": self.risk_level.value,
            "base_success_rate": self.profile.success_rate,
            "choices": {
                cid: {
                    "name": c.name,
                    "success_rate": self.success_rate_for(c),
                    "reward_modifier": c.reward_modifier,
                    "consequence_modifier": c.consequence_modifier,
                    "energy_cost": c.energy_cost,
                }
                for cid, c in self.choices.items()
            },
            "selected_choice": self.selected.id if self.selected else None,
            "legendary_won": self.legendary_won,
        }

    def success_rate_for(self, choice: RiskChoice) -> float:
        rate = self.profile.success_rate + choice.success_rate_modifier
        return round(max(MIN_SUCCESS_RATE, min(MAX_SUCCESS_RATE, rate)), 4)

    def select_choice(self, choice_id: str) -> RiskChoice:
        self._ensure_active()
        choice = self.choices.get(choice_id)
        if choice is None:
            raise InvalidSelectionError(
                f"Invalid choice {choice_id} for {self.risk_level.value} risk event"
            )
        self.selected = choice
        return choice

    def _resolve(self) -> EncounterOutcome:
        if self.selected is None:
            raise InvalidSelectionError("No risk choice selected")
        choice = self.selected

        if not self.rng.chance(self.success_rate_for(choice)):
            return self._failure(
                f"The {self.risk_level.value} risk does not pay off.",
                self._consequence(choice),
            )

        reward = self._reward(choice)
        message = f"Your {choice.name.lower()} gamble pays off!"
        if choice.legendary_eligible and self.rng.chance(LEGENDARY_CHANCE):
            self.legendary_won = True
            reward = reward.merge(self._legendary_reward())
            message = "Legendary success! Fortune favours the bold."
        return self._success(message, reward)

    def _item(self, drop: _Drop, value: float) -> EncounterItem:
        return EncounterItem(
            id=slugify(drop.name),
            name=drop.name,
            rarity=drop.rarity,
            type=drop.type,
            set_id=drop.set_id,
            value=max(1, round(value)),
        )

    def _reward(self, choice: RiskChoice) -> EncounterReward:
        dm = self.depth_multiplier
        mod = choice.reward_modifier
        return EncounterReward(
            energy=round(self.profile.energy * dm * mod) - choice.energy_cost,
            items=[self._item(self.profile.drop, self.profile.drop.value * mod)],
            xp=round(self.profile.xp * dm * mod),
        )

    def _legendary_reward(self) -> EncounterReward:
        dm = self.depth_multiplier
        return EncounterReward(
            energy=round(self.profile.legendary_energy * dm),
            items=[self._item(d, d.value) for d in self.profile.legendary_drops],
            xp=round(self.profile.legendary_xp * dm),
        )

    def _consequence(self, choice: RiskChoice) -> FailureConsequence:
        mod = choice.consequence_modifier
        return FailureConsequence(
            energy_loss=round(self.profile.failure_energy * self.depth_multiplier * mod)
            + choice.energy_cost,
            item_loss_risk=min(1.0, self.profile.item_loss_risk * mod),
            forced_retreat=self.profile.forced_retreat,
            encounter_lockout=self.profile.lockout,
        )
