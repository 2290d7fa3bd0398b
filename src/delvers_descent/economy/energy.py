"""Energy economy calculations.

Pure, stateless functions over depth, energy and shortcuts.  Every method
is total over its domain and never raises: callers validate
``depth >= 1`` and ``energy >= 0`` beforehand, otherwise results are
defined but meaningless.

Return cost curve
-----------------
Each level costs ``return_base_cost + (tier - 1) * return_tier_step``
where ``tier = ceil(level / levels_per_tier)``; the return cost from depth
*d* is the sum over levels ``1..d``.  With defaults that is 5 per level
for depths 1-5, 10 per level for 6-10, 15 for 11-15 and so on, so each
extra step down costs at least as much as the one before.

A shortcut from depth *f* to depth *t* replaces the climb from *f* to *t*
with a single hop costing ``max(0, level_cost(f) - energy_reduction)``.
The reported cost is the running maximum over depths ``1..d`` so it is
monotonically non-decreasing in depth for any fixed shortcut set.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Iterable

from pydantic import BaseModel

from delvers_descent.core.config import DEFAULT_CONFIG, BalanceConfig
from delvers_descent.core.models import EncounterType, Shortcut


class RecommendedAction(str, Enum):
    CONTINUE = "continue"
    RETURN = "return"
    REST = "rest"


class Recommendation(BaseModel):
    """Advisory next move; never blocks the player."""

    action: RecommendedAction
    reason: str
    risk_level: int


class EnergyValidation(BaseModel):
    is_valid: bool
    errors: list[str]


# Values beyond these are almost certainly a caller bug.
_MAX_REASONABLE_ENERGY = 100_000
_MAX_REASONABLE_RETURN_COST = 100_000


class EnergyCalculator:
    """Energy cost, safety and risk calculations.

    Parameters
    ----------
    config:
        Balance config supplying the curve constants.  Defaults to
        ``DEFAULT_CONFIG``.
    """

    def __init__(self, config: BalanceConfig | None = None) -> None:
        self.config = config or DEFAULT_CONFIG

    # ------------------------------------------------------------------
    # Return cost
    # ------------------------------------------------------------------

    def level_cost(self, level: int) -> int:
        """Return cost of climbing out of a single *level*."""
        if level <= 0:
            return 0
        cfg = self.config.energy
        tier = math.ceil(level / cfg.levels_per_tier)
        return cfg.return_base_cost + (tier - 1) * cfg.return_tier_step

    def calculate_return_cost(
        self,
        depth: int,
        shortcuts: Iterable[Shortcut] = (),
    ) -> int:
        """Energy needed to return to the surface from *depth*."""
        if depth <= 0:
            return 0

        # Best shortcut leaving each depth (largest saving wins).
        best: dict[int, Shortcut] = {}
        for sc in shortcuts:
            if sc.to_depth >= sc.from_depth or sc.to_depth < 0:
                continue
            current = best.get(sc.from_depth)
            if current is None or sc.energy_reduction > current.energy_reduction:
                best[sc.from_depth] = sc

        costs = [0]
        running_max = 0
        for level in range(1, depth + 1):
            step = self.level_cost(level)
            cost = costs[level - 1] + step
            sc = best.get(level)
            if sc is not None:
                hop = max(0, step - sc.energy_reduction) + costs[sc.to_depth]
                cost = min(cost, hop)
            costs.append(cost)
            running_max = max(running_max, cost)
        return running_max

    # ------------------------------------------------------------------
    # Safety and risk
    # ------------------------------------------------------------------

    def calculate_safety_margin(self, energy: int, return_cost: int) -> int:
        """Energy left after paying the return cost (may be negative)."""
        return energy - return_cost

    def can_afford_return(self, energy: int, return_cost: int) -> bool:
        return self.calculate_safety_margin(energy, return_cost) >= 0

    def calculate_risk_level(self, energy: int, return_cost: int) -> int:
        """Risk score 0-100; higher as the safety margin shrinks.

        100 when the return cannot be afforded at all, 0 when returning
        is free.
        """
        if energy <= 0:
            return 100
        margin = self.calculate_safety_margin(energy, return_cost)
        if margin < 0:
            return 100
        if return_cost <= 0:
            return 0
        risk = 100 - (margin / return_cost) * 100
        return round(min(100.0, max(0.0, risk)))

    def calculate_point_of_no_return(
        self,
        return_cost: int,
        safety_buffer: int | None = None,
    ) -> int:
        """Energy floor below which continuing is classified dangerous."""
        if safety_buffer is None:
            safety_buffer = self.config.energy.safety_buffer
        return return_cost + safety_buffer

    def is_safe_to_continue(
        self,
        energy: int,
        return_cost: int,
        safety_buffer: int | None = None,
    ) -> bool:
        return energy >= self.calculate_point_of_no_return(return_cost, safety_buffer)

    def get_recommended_action(
        self,
        energy: int,
        return_cost: int,
        depth: int,
    ) -> Recommendation:
        """Advise whether to continue, return or rest.

        Deterministic given the inputs; purely advisory.
        """
        risk = self.calculate_risk_level(energy, return_cost)
        margin = self.calculate_safety_margin(energy, return_cost)

        if risk >= 80:
            return Recommendation(
                action=RecommendedAction.RETURN,
                reason="Critical energy levels - return to surface immediately",
                risk_level=risk,
            )
        if risk >= 60:
            return Recommendation(
                action=RecommendedAction.RETURN,
                reason="High risk - consider returning to bank your rewards",
                risk_level=risk,
            )
        if margin < 20 and depth > 3:
            return Recommendation(
                action=RecommendedAction.RETURN,
                reason="Low safety margin at this depth - returning is wise",
                risk_level=risk,
            )
        if energy > return_cost * 2:
            return Recommendation(
                action=RecommendedAction.CONTINUE,
                reason="Plenty of energy - safe to explore deeper",
                risk_level=risk,
            )
        return Recommendation(
            action=RecommendedAction.REST,
            reason="Moderate risk - look for a rest site before going deeper",
            risk_level=risk,
        )

    def calculate_optimal_depth(
        self,
        energy: int,
        shortcuts: Iterable[Shortcut] = (),
    ) -> int:
        """Deepest depth whose return cost *energy* still covers (min 1)."""
        shortcuts = list(shortcuts)
        depth = 1
        while depth <= self.config.energy.optimal_depth_cap:
            if self.calculate_return_cost(depth, shortcuts) > energy:
                break
            depth += 1
        return max(1, depth - 1)

    # ------------------------------------------------------------------
    # Node and movement costs
    # ------------------------------------------------------------------

    def calculate_node_cost(self, depth: int, node_type: EncounterType | str) -> int:
        """Energy to enter a node of *node_type* at *depth*.

        Safe passages are always free.
        """
        node_type = EncounterType(node_type)
        if node_type == EncounterType.SAFE_PASSAGE:
            return 0
        cfg = self.config.energy
        modifier = cfg.node_type_modifiers.get(node_type, 0)
        raw = cfg.node_base_cost + max(0, depth - 1) * cfg.node_depth_step + modifier
        return max(cfg.node_min_cost, min(cfg.node_max_cost, raw))

    def calculate_backtrack_cost(self, from_depth: int, to_depth: int) -> int:
        levels = abs(from_depth - to_depth)
        return max(1, levels * self.config.energy.backtrack_cost_per_level)

    # ------------------------------------------------------------------
    # Run funding
    # ------------------------------------------------------------------

    def calculate_streak_bonus(self, steps: int) -> int:
        cfg = self.config.energy
        if steps < cfg.streak_threshold:
            return 0
        return math.floor(steps * cfg.streak_bonus_rate)

    def calculate_run_energy(self, steps: int, has_streak_bonus: bool) -> int:
        """Total energy for a run funded by *steps*."""
        if not has_streak_bonus:
            return steps
        return steps + math.floor(steps * self.config.energy.streak_bonus_rate)

    def calculate_total_energy_budget(
        self,
        base_energy: int,
        streak_bonus: int = 0,
        collection_bonus: int = 0,
    ) -> int:
        return max(0, base_energy + streak_bonus + collection_bonus)

    def calculate_energy_efficiency(self, energy_used: int, rewards_gained: int) -> int:
        """Reward value gained per 100 energy spent."""
        if energy_used <= 0:
            return 0
        return round(rewards_gained / energy_used * 100)

    def validate_energy_calculations(
        self,
        energy: int,
        return_cost: int,
    ) -> EnergyValidation:
        errors: list[str] = []
        if energy < 0:
            errors.append("Energy cannot be negative")
        if return_cost < 0:
            errors.append("Return cost cannot be negative")
        if energy > _MAX_REASONABLE_ENERGY:
            errors.append("Energy value seems unreasonably high")
        if return_cost > _MAX_REASONABLE_RETURN_COST:
            errors.append("Return cost seems unreasonably high")
        return EnergyValidation(is_valid=not errors, errors=errors)
