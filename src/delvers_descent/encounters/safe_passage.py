"""Safe passage -- a guaranteed free way back to the surface."""

from __future__ import annotations

from enum import Enum
from typing import Any

from delvers_descent.core.config import BalanceConfig
from delvers_descent.core.models import EncounterOutcome, EncounterType
from delvers_descent.core.rng import GameRNG
from delvers_descent.encounters.base import Encounter


class PassageType(str, Enum):
    ANCIENT_PORTAL = "ancient_portal"
    HIDDEN_TUNNEL = "hidden_tunnel"
    MAGICAL_GATEWAY = "magical_gateway"
    WIND_PASSAGE = "wind_passage"
    LIGHT_BEAM = "light_beam"


_MESSAGES = {
    PassageType.ANCIENT_PORTAL: (
        "You discover an ancient portal that shimmers with protective magic. "
        "You can return to the surface at no cost!"
    ),
    PassageType.HIDDEN_TUNNEL: (
        "A hidden tunnel reveals a safe passage back to the surface. No energy is required!"
    ),
    PassageType.MAGICAL_GATEWAY: (
        "A magical gateway opens before you, offering a free return to the surface."
    ),
    PassageType.WIND_PASSAGE: (
        "A gentle wind guides you through a safe passage. You can return without spending energy!"
    ),
    PassageType.LIGHT_BEAM: (
        "A beam of light illuminates a path to the surface. The journey is effortless!"
    ),
}


class SafePassage(Encounter):
    """Single-action encounter that always succeeds at no energy cost."""

    encounter_type = EncounterType.SAFE_PASSAGE
    energy_cost = 0

    def __init__(
        self,
        depth: int,
        rng: GameRNG,
        config: BalanceConfig | None = None,
        passage_type: PassageType | None = None,
    ) -> None:
        super().__init__(depth, rng, config)
        self.passage_type = passage_type or rng.random_choice(list(PassageType))

    def _snapshot(self) -> dict[str, Any]:
        return {
            "passage_type": self.passage_type.value,
            "energy_cost": self.energy_cost,
        }

    def _resolve(self) -> EncounterOutcome:
        return self._success(_MESSAGES[self.passage_type], free_return=True)
