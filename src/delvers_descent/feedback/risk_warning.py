"""Risk warnings shown before pushing deeper."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel

from delvers_descent.economy.energy import EnergyCalculator


class RiskSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class RiskWarning(BaseModel):
    should_show: bool
    severity: RiskSeverity
    safety_margin: int
    message: str
    urgency: int
    """Risk level 0-100 from the energy calculator."""


def determine_risk_severity(safety_margin: int, energy: int) -> RiskSeverity:
    """Severity by the share of current energy that is spare margin."""
    if energy <= 0:
        return RiskSeverity.CRITICAL
    margin_pct = safety_margin / energy * 100
    if margin_pct < 10:
        return RiskSeverity.CRITICAL
    if margin_pct < 25:
        return RiskSeverity.HIGH
    if margin_pct < 50:
        return RiskSeverity.MEDIUM
    return RiskSeverity.LOW


_MESSAGES = {
    RiskSeverity.CRITICAL: "Critical: {m} energy remaining! You may not have enough to return.",
    RiskSeverity.HIGH: "High Risk: Only {m} energy safety margin.",
    RiskSeverity.MEDIUM: "Moderate Risk: {m} energy safety margin.",
    RiskSeverity.LOW: "Safe: {m} energy safety margin.",
}


def get_risk_warning(
    energy: int,
    return_cost: int,
    calculator: EnergyCalculator | None = None,
) -> RiskWarning:
    calculator = calculator or EnergyCalculator()
    margin = max(0, calculator.calculate_safety_margin(energy, return_cost))
    severity = determine_risk_severity(margin, energy)
    return RiskWarning(
        should_show=severity in (RiskSeverity.HIGH, RiskSeverity.CRITICAL),
        severity=severity,
        safety_margin=margin,
        message=_MESSAGES[severity].format(m=margin),
        urgency=calculator.calculate_risk_level(energy, return_cost),
    )
