"""Rest site -- recover energy and pick up intelligence.

Every site offers three base actions plus the actions of its site type.
Energy gain grows with the site's quality but never exceeds the site's
energy reserve.  Resting always succeeds.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from delvers_descent.core.config import BalanceConfig
from delvers_descent.core.errors import InvalidSelectionError
from delvers_descent.core.models import (
    EncounterOutcome,
    EncounterReward,
    EncounterType,
    Shortcut,
)
from delvers_descent.core.rng import GameRNG
from delvers_descent.encounters.base import Encounter


class RestSiteType(str, Enum):
    ANCIENT_SHRINE = "ancient_shrine"
    CRYSTAL_CAVE = "crystal_cave"
    MYSTIC_GROVE = "mystic_grove"
    ENERGY_WELL = "energy_well"
    GUARDIAN_SANCTUARY = "guardian_sanctuary"


# XP granted per piece of intelligence.
INTEL_XP = {"map_reveal": 5, "shortcut_hint": 10, "hazard_warning": 8}


@dataclass
class RestAction:
    id: str
    name: str
    description: str
    energy_cost: int
    energy_gain: int
    intel_chances: tuple[float, float, float] = (0.0, 0.0, 0.0)
    """Chance of map_reveal, shortcut_hint, hazard_warning."""


def _base_actions(q: float) -> list[RestAction]:
    return [
        RestAction("quick_rest", "Quick Rest", "Take a brief rest to recover some energy",
                   0, round(5 * q ** 0.5)),
        RestAction("thorough_rest", "Thorough Rest", "Take time to fully recover and gather information",
                   round(2 * q ** 0.3), round(10 * q ** 0.7), (q * 0.03, q * 0.02, q * 0.01)),
        RestAction("meditation", "Meditation", "Focus your mind to gain deeper insights",
                   round(5 * q ** 0.4), round(3 * q ** 0.6), (0.5, 0.4, 0.3)),
    ]


def _site_actions(site: RestSiteType, q: float) -> list[RestAction]:
    if site == RestSiteType.ANCIENT_SHRINE:
        return [
            RestAction("prayer", "Prayer", "Offer prayers to the ancient spirits",
                       0, round(8 * q ** 0.6), (0.3, 0.2, 0.1)),
            RestAction("offering", "Make Offering", "Leave an offering to gain favor",
                       round(3 * q ** 0.3), round(15 * q ** 0.8), (0.5, 0.3, 0.2)),
        ]
    if site == RestSiteType.CRYSTAL_CAVE:
        return [
            RestAction("crystal_harvest", "Harvest Crystals", "Gather energy from the crystals",
                       round(4 * q ** 0.4), round(12 * q ** 0.7)),
            RestAction("crystal_resonance", "Crystal Resonance", "Harmonize with the crystal frequencies",
                       round(6 * q ** 0.5), round(6 * q ** 0.6), (0.4, 0.3, 0.2)),
        ]
    if site == RestSiteType.MYSTIC_GROVE:
        return [
            RestAction("nature_bond", "Nature Bond", "Connect with the natural energies",
                       round(2 * q ** 0.3), round(7 * q ** 0.6), (0.3, 0.2, 0.3)),
        ]
    if site == RestSiteType.ENERGY_WELL:
        return [
            RestAction("well_draw", "Draw from Well", "Draw pure energy from the well",
                       round(q ** 0.2), round(20 * q ** 0.8)),
        ]
    return [
        RestAction("guardian_counsel", "Guardian Counsel", "Seek wisdom from the guardian",
                   round(5 * q ** 0.4), round(5 * q ** 0.5), (0.6, 0.5, 0.5)),
    ]


class RestSite(Encounter):
    """Energy recovery encounter.

    Parameters
    ----------
    depth:
        Dungeon depth.
    rng:
        RNG for site rolls and intelligence.
    config:
        Balance config.
    site_type:
        Site type; rolled when omitted.
    quality:
        Base quality 1-10 before depth scaling; rolled (3-8) when omitted.
    """

    encounter_type = EncounterType.REST_SITE

    def __init__(
        self,
        depth: int,
        rng: GameRNG,
        config: BalanceConfig | None = None,
        site_type: RestSiteType | None = None,
        quality: int | None = None,
    ) -> None:
        super().__init__(depth, rng, config)
        self.site_type = site_type or rng.random_choice(list(RestSiteType))
        base_quality = quality if quality is not None else rng.random_int(3, 8)
        d = max(1, depth)
        self.quality = max(1.0, min(10.0, base_quality * d ** 0.2))
        self.energy_reserve = round(50 * self.quality ** 0.8 * d)
        self.actions = {
            a.id: a
            for a in [*_base_actions(self.quality), *_site_actions(self.site_type, self.quality)]
        }
        self.selected: RestAction | None = None
        self.intel: list[str] = []

    def _snapshot(self) -> dict[str, Any]:
        return {
            "site_type": self.site_type.value,
            "quality": round(self.quality, 2),
            "energy_reserve": self.energy_reserve,
            "actions": {
                aid: {
                    "name": a.name,
                    "energy_cost": a.energy_cost,
                    "energy_gain": a.energy_gain,
                    "net_gain": self.net_gain(a),
                }
                for aid, a in self.actions.items()
            },
            "selected_action": self.selected.id if self.selected else None,
            "intel": list(self.intel),
        }

    def net_gain(self, action: RestAction) -> int:
        """Energy delta of *action*, capped by the site's reserve."""
        return min(action.energy_gain - action.energy_cost, self.energy_reserve)

    def select_action(self, action_id: str) -> RestAction:
        self._ensure_active()
        action = self.actions.get(action_id)
        if action is None:
            raise InvalidSelectionError(
                f"Invalid action {action_id} at {self.site_type.value}"
            )
        self.selected = action
        return action

    def _resolve(self) -> EncounterOutcome:
        if self.selected is None:
            raise InvalidSelectionError("No rest action selected")
        action = self.selected
        gain = self.net_gain(action)

        for intel_type, chance in zip(INTEL_XP, action.intel_chances):
            if self.rng.chance(min(1.0, chance)):
                self.intel.append(intel_type)

        shortcut = None
        if "shortcut_hint" in self.intel and self.depth >= 1:
            shortcut = Shortcut(
                id=f"rest-shortcut-depth{self.depth}",
                from_depth=self.depth,
                to_depth=self.depth - 1,
                energy_reduction=5,
            )

        message = f"Rest completed at the {self.site_type.value.replace('_', ' ')}."
        if gain > 0:
            message += f" You gained {gain} energy."
        if self.intel:
            message += " You discovered valuable information."

        reward = EncounterReward(
            energy=gain,
            xp=20 * self.depth + sum(INTEL_XP[i] for i in self.intel),
        )
        outcome = self._success(message, reward)
        return outcome.model_copy(update={"discovered_shortcut": shortcut})
