"""Energy status feedback -- healthy, low or critical."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel

from delvers_descent.core.config import DEFAULT_CONFIG, BalanceConfig


class EnergyStatus(str, Enum):
    HEALTHY = "healthy"
    LOW = "low"
    CRITICAL = "critical"


class EnergyAdvice(str, Enum):
    SAFE_TO_CONTINUE = "safe_to_continue"
    CONSIDER_RETREATING = "consider_retreating"


class EnergyStatusReport(BaseModel):
    status: EnergyStatus
    safety_margin: int
    energy_percentage: int
    message: str
    recommendation: EnergyAdvice
    can_continue: bool


def _percentage(part: int, whole: int) -> int:
    if whole <= 0:
        return 0
    return round(part / whole * 100)


def get_energy_status(
    energy: int,
    return_cost: int,
    max_energy: int,
    config: BalanceConfig | None = None,
) -> EnergyStatusReport:
    """Classify the player's energy against the cost of getting home.

    Critical when the return can no longer be covered or at most 10% of
    the run's energy is left; low when the margin is 10 or less or at
    most 30% is left; healthy otherwise.
    """
    cfg = (config or DEFAULT_CONFIG).feedback
    margin = energy - return_cost
    pct = _percentage(energy, max_energy)

    if margin <= 0 or pct <= cfg.critical_energy_ratio * 100:
        status = EnergyStatus.CRITICAL
        message = (
            f"Critical energy status: {pct}% remaining ({margin} safety margin). "
            "Immediate retreat recommended."
        )
    elif margin <= cfg.low_margin or pct <= cfg.low_energy_ratio * 100:
        status = EnergyStatus.LOW
        message = (
            f"Low energy status: {pct}% remaining ({margin} safety margin). "
            "Consider retreating soon."
        )
    else:
        status = EnergyStatus.HEALTHY
        message = (
            f"Healthy energy status: {pct}% remaining ({margin} safety margin). "
            "Safe to continue."
        )

    advice = (
        EnergyAdvice.CONSIDER_RETREATING
        if status == EnergyStatus.CRITICAL
        else EnergyAdvice.SAFE_TO_CONTINUE
    )
    return EnergyStatusReport(
        status=status,
        safety_margin=margin,
        energy_percentage=pct,
        message=message,
        recommendation=advice,
        can_continue=margin > 0,
    )
