"""Failure consequences for encounters.

Every failed encounter is routed through :class:`FailureConsequenceManager`
so that no failure is silently dropped: each one costs at least the
node's entry energy, carries an item-loss *risk* (a probability, not a
guaranteed loss) and may force a retreat or lock the node.

Repeated failures escalate a severity multiplier (``1 + 0.2`` per
failure, capped at 3); each success eases it by 0.1 down to 1.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from pydantic import BaseModel

from delvers_descent.core.config import DEFAULT_CONFIG, BalanceConfig
from delvers_descent.core.models import FailureConsequence, FailureType

logger = logging.getLogger(__name__)

_RETREAT_TYPES = {FailureType.FORCED_RETREAT, FailureType.ENCOUNTER_LOCKOUT}


class ProcessedFailure(BaseModel):
    """A failure consequence together with its context."""

    failure_type: FailureType
    node_id: str
    depth: int
    consequence: FailureConsequence
    description: str
    severity: float
    """Severity multiplier that was applied."""


@dataclass
class FailureStatistics:
    total_failures: int
    total_successes: int
    failure_rate: float
    current_severity: float
    locked_nodes: int


def classify_failure(consequence: FailureConsequence | None) -> FailureType:
    """Pick the failure type implied by an encounter's own consequence."""
    if consequence is None:
        return FailureType.OBJECTIVE_FAILED
    if consequence.encounter_lockout:
        return FailureType.ENCOUNTER_LOCKOUT
    if consequence.forced_retreat:
        return FailureType.FORCED_RETREAT
    return FailureType.OBJECTIVE_FAILED


class FailureConsequenceManager:
    """Turns failures into energy, item-risk and lockout penalties.

    Parameters
    ----------
    config:
        Balance config.  Defaults to ``DEFAULT_CONFIG``.
    """

    def __init__(self, config: BalanceConfig | None = None) -> None:
        self.config = config or DEFAULT_CONFIG
        self.severity = 1.0
        self.total_failures = 0
        self.total_successes = 0
        self._failure_counts: dict[str, int] = {}
        self._locked: set[str] = set()

    # ------------------------------------------------------------------
    # Pure calculations
    # ------------------------------------------------------------------

    def calculate_energy_loss(
        self,
        failure_type: FailureType,
        depth: int,
        node_energy_cost: int = 0,
    ) -> int:
        cfg = self.config.failure
        base = cfg.bases[failure_type].energy_loss
        loss = round(base * (1 + max(0, depth) * cfg.depth_energy_rate) * self.severity)
        return max(loss, node_energy_cost)

    def calculate_item_loss_risk(self, failure_type: FailureType, depth: int) -> float:
        cfg = self.config.failure
        base = cfg.bases[failure_type].item_loss_risk
        risk = base * (1 + max(0, depth) * cfg.depth_risk_rate) * self.severity
        return min(1.0, risk)

    @staticmethod
    def should_force_retreat(failure_type: FailureType) -> bool:
        return failure_type in _RETREAT_TYPES

    @staticmethod
    def should_lockout(failure_type: FailureType) -> bool:
        return failure_type == FailureType.ENCOUNTER_LOCKOUT

    @staticmethod
    def describe(failure_type: FailureType, depth: int) -> str:
        descriptions = {
            FailureType.ENERGY_EXHAUSTED: (
                f"Ran out of energy at depth {depth}. Must retreat carefully."
            ),
            FailureType.OBJECTIVE_FAILED: (
                f"Failed to complete objective at depth {depth}. "
                "Lost valuable time and resources."
            ),
            FailureType.FORCED_RETREAT: (
                f"Forced to retreat from depth {depth}. Encountered dangerous obstacles."
            ),
            FailureType.ENCOUNTER_LOCKOUT: (
                f"Encounter at depth {depth} became inaccessible. "
                "Must find alternative route."
            ),
        }
        return descriptions[failure_type]

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------

    def process_failure_consequences(
        self,
        failure_type: FailureType,
        depth: int,
        node_id: str,
        node_energy_cost: int = 0,
        encounter_consequence: FailureConsequence | None = None,
    ) -> ProcessedFailure:
        """Compute the penalties for one failure and escalate severity.

        Parameters
        ----------
        failure_type:
            Kind of failure.
        depth:
            Depth of the failed node.
        node_id:
            Node that was failed; locked out on ``encounter_lockout``.
        node_energy_cost:
            Entry cost of the node.  Energy loss is never below it.
        encounter_consequence:
            The encounter's own consequence, if it produced one.  The
            harsher value of each field wins.
        """
        severity = self.severity
        energy_loss = self.calculate_energy_loss(failure_type, depth, node_energy_cost)
        item_risk = self.calculate_item_loss_risk(failure_type, depth)
        retreat = self.should_force_retreat(failure_type)
        lockout = self.should_lockout(failure_type)

        if encounter_consequence is not None:
            energy_loss = max(energy_loss, encounter_consequence.energy_loss)
            item_risk = max(item_risk, encounter_consequence.item_loss_risk)
            retreat = retreat or encounter_consequence.forced_retreat
            lockout = lockout or encounter_consequence.encounter_lockout

        if lockout:
            self._locked.add(node_id)

        self._record_failure(node_id)
        logger.info(
            "Failure %s at %s (depth %d): -%d energy, %.0f%% item risk",
            failure_type.value, node_id, depth, energy_loss, item_risk * 100,
        )
        return ProcessedFailure(
            failure_type=failure_type,
            node_id=node_id,
            depth=depth,
            consequence=FailureConsequence(
                energy_loss=energy_loss,
                item_loss_risk=min(1.0, item_risk),
                forced_retreat=retreat,
                encounter_lockout=lockout,
            ),
            description=self.describe(failure_type, depth),
            severity=severity,
        )

    def _record_failure(self, node_id: str) -> None:
        cfg = self.config.failure
        self._failure_counts[node_id] = self._failure_counts.get(node_id, 0) + 1
        self.total_failures += 1
        self.severity = min(cfg.severity_max, 1 + self.total_failures * cfg.severity_step)

    def record_success(self, node_id: str) -> None:
        self._failure_counts[node_id] = 0
        self.total_successes += 1
        self.severity = max(1.0, self.severity - self.config.failure.severity_recovery)

    # ------------------------------------------------------------------
    # Lockouts and statistics
    # ------------------------------------------------------------------

    def is_locked_out(self, node_id: str) -> bool:
        return node_id in self._locked

    def get_failure_count(self, node_id: str) -> int:
        return self._failure_counts.get(node_id, 0)

    def reset(self) -> None:
        """Forget all failures; called when a new run starts."""
        self.severity = 1.0
        self.total_failures = 0
        self.total_successes = 0
        self._failure_counts.clear()
        self._locked.clear()

    def get_failure_statistics(self) -> FailureStatistics:
        attempts = self.total_failures + self.total_successes
        return FailureStatistics(
            total_failures=self.total_failures,
            total_successes=self.total_successes,
            failure_rate=self.total_failures / attempts if attempts else 0.0,
            current_severity=self.severity,
            locked_nodes=len(self._locked),
        )
