"""Hazard -- get past an obstacle by paying, detouring or gambling.

Every hazard offers three generic solution paths plus the paths specific
to its obstacle type.  Harder obstacles make the cheap paths less likely
to work while raising the stakes of the gamble.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
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
)
from delvers_descent.core.rng import GameRNG
from delvers_descent.encounters.base import Encounter

logger = logging.getLogger(__name__)


class ObstacleType(str, Enum):
    COLLAPSED_PASSAGE = "collapsed_passage"
    TREACHEROUS_BRIDGE = "treacherous_bridge"
    ANCIENT_GUARDIAN = "ancient_guardian"
    ENERGY_DRAIN = "energy_drain"
    MAZE_OF_MIRRORS = "maze_of_mirrors"


@dataclass
class SolutionPath:
    id: str
    name: str
    description: str
    energy_cost: int
    success_rate: float
    reward_modifier: float
    consequence_modifier: float


def _generic_paths(diff: float) -> list[SolutionPath]:
    return [
        SolutionPath(
            "pay_toll", "Pay Toll", "Spend energy to safely bypass the obstacle",
            round(10 * diff ** 0.8), 1.0, 0.8, 0.0,
        ),
        SolutionPath(
            "alternate_route", "Alternate Route", "Look for a safer way around",
            round(5 * diff ** 0.6), max(0.3, 0.9 - diff * 0.08), 1.0, 1.0,
        ),
        SolutionPath(
            "risky_gamble", "Risky Gamble", "Attempt a dangerous but potentially rewarding approach",
            0, max(0.1, 0.6 - diff * 0.06), 1.5 + diff * 0.1, 1.5 + diff * 0.1,
        ),
    ]


def _specific_paths(obstacle: ObstacleType, diff: float) -> list[SolutionPath]:
    if obstacle == ObstacleType.COLLAPSED_PASSAGE:
        return [SolutionPath(
            "excavate", "Excavate", "Carefully dig through the collapsed area",
            round(15 * diff ** 0.7), max(0.4, 0.8 - diff * 0.05), 1.2, 1.3,
        )]
    if obstacle == ObstacleType.TREACHEROUS_BRIDGE:
        return [SolutionPath(
            "repair_bridge", "Repair Bridge", "Attempt to stabilize the bridge structure",
            round(20 * diff ** 0.8), max(0.3, 0.7 - diff * 0.06), 1.3, 1.4,
        )]
    if obstacle == ObstacleType.ANCIENT_GUARDIAN:
        return [
            SolutionPath(
                "negotiate", "Negotiate", "Attempt to reason with the ancient being",
                0, max(0.2, 0.5 - diff * 0.04), 2.0, 2.0,
            ),
            SolutionPath(
                "outsmart", "Outsmart", "Use cunning to bypass the guardian",
                round(8 * diff ** 0.5), max(0.3, 0.6 - diff * 0.05), 1.4, 1.6,
            ),
        ]
    if obstacle == ObstacleType.ENERGY_DRAIN:
        return [SolutionPath(
            "resist_drain", "Resist Drain", "Focus your willpower to resist the draining effect",
            round(12 * diff ** 0.6), max(0.4, 0.8 - diff * 0.06), 1.1, 0.8,
        )]
    return [
        SolutionPath(
            "solve_puzzle", "Solve Puzzle", "Use logic to navigate the maze",
            round(6 * diff ** 0.4), max(0.5, 0.9 - diff * 0.04), 1.3, 1.2,
        ),
        SolutionPath(
            "break_mirrors", "Break Mirrors", "Force your way through by breaking mirrors",
            round(25 * diff ** 0.9), max(0.6, 0.95 - diff * 0.03), 0.9, 1.5,
        ),
    ]


class Hazard(Encounter):
    """Obstacle encounter.

    Parameters
    ----------
    depth:
        Dungeon depth.
    rng:
        RNG for obstacle rolls and the success check.
    config:
        Balance config.
    obstacle:
        Obstacle type; rolled when omitted.
    difficulty:
        Base difficulty 1-10 before depth scaling; rolled (1-5) when omitted.
    """

    encounter_type = EncounterType.HAZARD

    def __init__(
        self,
        depth: int,
        rng: GameRNG,
        config: BalanceConfig | None = None,
        obstacle: ObstacleType | None = None,
        difficulty: int | None = None,
    ) -> None:
        super().__init__(depth, rng, config)
        self.obstacle = obstacle or rng.random_choice(list(ObstacleType))
        base = difficulty if difficulty is not None else rng.random_int(1, 5)
        self.difficulty = max(1.0, min(10.0, base * max(1, depth) ** 0.3))
        self.depth_multiplier = max(1, depth) ** 1.1
        self.paths: dict[str, SolutionPath] = {
            p.id: p
            for p in [*_generic_paths(self.difficulty), *_specific_paths(self.obstacle, self.difficulty)]
        }
        self.selected: SolutionPath | None = None

    def _snapshot(self) -> dict[str, Any]:
        return {
            "obstacle": self.obstacle.value,
            "difficulty": round(self.difficulty, 2),
            "paths": {
                pid: {
                    "name": p.name,
                    "energy_cost": p.energy_cost,
                    "success_rate": round(p.success_rate, 3),
                    "reward_modifier": p.reward_modifier,
                    "consequence_modifier": p.consequence_modifier,
                }
                for pid, p in self.paths.items()
            },
            "selected_path": self.selected.id if self.selected else None,
        }

    def select_path(self, path_id: str) -> SolutionPath:
        self._ensure_active()
        path = self.paths.get(path_id)
        if path is None:
            raise InvalidSelectionError(
                f"Invalid path {path_id} for {self.obstacle.value}"
            )
        self.selected = path
        return path

    def _resolve(self) -> EncounterOutcome:
        if self.selected is None:
            raise InvalidSelectionError("No solution path selected")
        path = self.selected

        if self.rng.chance(path.success_rate):
            return self._success(
                f"{path.name} worked: you get past the {self.obstacle.value.replace('_', ' ')}.",
                self._reward(path),
            )

        logger.debug("Hazard %s beat path %s", self.obstacle.value, path.id)
        return self._failure(
            f"{path.name} failed against the {self.obstacle.value.replace('_', ' ')}.",
            self._consequence(path),
        )

    def _reward(self, path: SolutionPath) -> EncounterReward:
        dm = self.depth_multiplier
        return EncounterReward(
            energy=-path.energy_cost,
            items=[
                EncounterItem(
                    id="dark_fragment",
                    name="Dark Fragment",
                    rarity=Rarity.RARE,
                    type=ItemType.DISCOVERY,
                    set_id="shadow_realm_set",
                    value=max(1, round(10 * dm * path.reward_modifier)),
                    description="A shard of darkness left behind by the obstacle",
                )
            ],
            xp=round(30 * dm * path.reward_modifier),
        )

    def _consequence(self, path: SolutionPath) -> FailureConsequence:
        mod = path.consequence_modifier
        return FailureConsequence(
            energy_loss=round(12 * self.depth_multiplier * mod) + path.energy_cost,
            item_loss_risk=min(1.0, 0.2 * mod),
            forced_retreat=self.difficulty >= 7 or mod > 1.5,
            encounter_lockout=self.difficulty >= 8 or mod > 2.0,
        )
