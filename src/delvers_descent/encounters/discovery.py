"""Discovery site -- choose how boldly to explore.

Three exploration paths trade safety for reward:

=========  =======  ======  ====================  ======
path       success  reward  collection set        risk
=========  =======  ======  ====================  ======
safe       0.9      40      ancient_ruins_set     low
risky      0.7      60      crystal_caverns_set   medium
dangerous  0.5      80      shadow_realm_set      high
=========  =======  ======  ====================  ======

Rewards and energy costs scale by ``1 + depth * 0.2``.  A successful
exploration also yields a lore fragment, a piece of map intelligence and,
with a path-dependent chance, a shortcut one level toward the surface.
"""

from __future__ import annotations

import logging
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
    Shortcut,
    slugify,
)
from delvers_descent.core.rng import GameRNG
from delvers_descent.encounters.base import Encounter
from delvers_descent.rewards.collection_sets import get_set

logger = logging.getLogger(__name__)


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


_RISK_MULTIPLIER = {RiskLevel.LOW: 0.5, RiskLevel.MEDIUM: 1.0, RiskLevel.HIGH: 1.5}


@dataclass
class ExplorationPath:
    id: str
    name: str
    description: str
    success_rate: float
    reward_value: int
    set_id: str
    energy_cost: int
    risk: RiskLevel
    shortcut_chance: float


@dataclass
class LoreDiscovery:
    title: str
    content: str
    region: str
    era: str
    significance: int


@dataclass
class MapIntelligence:
    type: str  # "shortcut", "path", "hazard", "treasure"
    description: str
    depth: int
    value: int


_PATHS = (
    ("safe", "Safe Path", "Follow the well-worn trail", 0.9, 40, "ancient_ruins_set", 5, RiskLevel.LOW, 0.1),
    ("risky", "Risky Path", "Explore the uncharted crystal formations", 0.7, 60, "crystal_caverns_set", 10, RiskLevel.MEDIUM, 0.25),
    ("dangerous", "Dangerous Path", "Descend into the shadows", 0.5, 80, "shadow_realm_set", 15, RiskLevel.HIGH, 0.5),
)

_LORE = (
    LoreDiscovery("Ancient Inscriptions", "Mysterious runes carved into the stone walls", "Forgotten Depths", "First Age", 7),
    LoreDiscovery("Crystal Resonance", "The crystals hum with an otherworldly frequency", "Crystal Depths", "Second Age", 6),
    LoreDiscovery("Shadow Whispers", "Voices echo from the darkness, speaking of ancient secrets", "Shadow Depths", "Third Age", 8),
    LoreDiscovery("Ethereal Echoes", "Fragments of memory float through the void", "Ethereal Depths", "Fourth Age", 5),
)

_INTEL_TYPES = ("shortcut", "path", "treasure", "hazard")


@dataclass
class DiscoveryLog:
    lore: list[LoreDiscovery] = field(default_factory=list)
    intelligence: list[MapIntelligence] = field(default_factory=list)


class DiscoverySite(Encounter):
    """Exploration encounter with three risk-graded paths."""

    encounter_type = EncounterType.DISCOVERY_SITE

    def __init__(
        self,
        depth: int,
        rng: GameRNG,
        config: BalanceConfig | None = None,
    ) -> None:
        super().__init__(depth, rng, config)
        scale = 1 + depth * 0.2
        self.paths: dict[str, ExplorationPath] = {
            pid: ExplorationPath(
                id=pid,
                name=name,
                description=desc,
                success_rate=rate,
                reward_value=round(value * scale),
                set_id=set_id,
                energy_cost=round(cost * scale),
                risk=risk,
                shortcut_chance=sc_chance,
            )
            for pid, name, desc, rate, value, set_id, cost, risk, sc_chance in _PATHS
        }
        self.selected: ExplorationPath | None = None
        self.log = DiscoveryLog()

    def _snapshot(self) -> dict[str, Any]:
        return {
            "paths": {
                pid: {
                    "name": p.name,
                    "success_rate": p.success_rate,
                    "reward_value": p.reward_value,
                    "energy_cost": p.energy_cost,
                    "risk": p.risk.value,
                }
                for pid, p in self.paths.items()
            },
            "selected_path": self.selected.id if self.selected else None,
            "lore": [lore.title for lore in self.log.lore],
            "intelligence": [intel.type for intel in self.log.intelligence],
        }

    def select_path(self, path_id: str) -> ExplorationPath:
        self._ensure_active()
        path = self.paths.get(path_id)
        if path is None:
            raise InvalidSelectionError(f"Invalid exploration path: {path_id}")
        self.selected = path
        return path

    def get_shortcut_information(self) -> Shortcut:
        """The shortcut this site can reveal: one level toward the surface."""
        return Shortcut(
            id=f"discovery-shortcut-depth{self.depth}",
            from_depth=self.depth,
            to_depth=max(0, self.depth - 1),
            energy_reduction=10,
        )

    def _resolve(self) -> EncounterOutcome:
        if self.selected is None:
            raise InvalidSelectionError("No exploration path selected")
        path = self.selected

        if not self.rng.chance(path.success_rate):
            logger.debug("Discovery path %s failed at depth %d", path.id, self.depth)
            return self._failure(
                f"The {path.name.lower()} collapses behind you.",
                self._consequence(path),
            )

        self.log.lore.append(self._roll_lore())
        self.log.intelligence.append(self._roll_intelligence())

        shortcut = None
        if self.depth >= 1 and self.rng.chance(path.shortcut_chance):
            shortcut = self.get_shortcut_information()

        reward = EncounterReward(
            energy=-path.energy_cost,
            items=[self._discovery_item(path)],
            xp=round(15 * self.depth * _RISK_MULTIPLIER[path.risk]) + 10,
        )
        outcome = self._success(
            f"Your exploration of the {path.name.lower()} pays off.",
            reward,
        )
        return outcome.model_copy(update={"discovered_shortcut": shortcut})

    def _consequence(self, path: ExplorationPath) -> FailureConsequence:
        mult = _RISK_MULTIPLIER[path.risk]
        return FailureConsequence(
            energy_loss=round((5 + 2 * self.depth) * mult) + path.energy_cost,
            item_loss_risk=min(1.0, (0.1 + 0.05 * self.depth) * mult),
            forced_retreat=path.risk == RiskLevel.HIGH,
        )

    def _discovery_item(self, path: ExplorationPath) -> EncounterItem:
        collection_set = get_set(path.set_id)
        name = self.rng.random_choice(list(collection_set.items))
        return EncounterItem(
            id=slugify(name),
            name=name,
            rarity=collection_set.rarity_of(name),
            type=ItemType.DISCOVERY,
            set_id=path.set_id,
            value=path.reward_value,
            description=f"A mysterious {name.lower()} discovered in the {collection_set.name.lower()}",
        )

    def _roll_lore(self) -> LoreDiscovery:
        template = self.rng.random_choice(_LORE)
        return LoreDiscovery(
            title=template.title,
            content=template.content,
            region=template.region,
            era=template.era,
            significance=round(template.significance * (1 + self.depth * 0.2)),
        )

    def _roll_intelligence(self) -> MapIntelligence:
        intel_type = self.rng.random_choice(_INTEL_TYPES)
        return MapIntelligence(
            type=intel_type,
            description=f"You learn of a {intel_type} near depth {self.depth + 1}",
            depth=self.depth + 1,
            value=round(10 * (1 + self.depth * 0.2)),
        )
