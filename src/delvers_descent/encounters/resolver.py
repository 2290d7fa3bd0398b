"""Encounter lifecycle bookkeeping.

The :class:`EncounterResolver` owns at most one active encounter at a
time.  Starting an encounter creates both the resolver-side
:class:`EncounterRecord` and the variant state machine; completing it
stamps the record with the outcome and moves it to the history.
"""

from __future__ import annotations

import logging
import time

from delvers_descent.core.config import DEFAULT_CONFIG, BalanceConfig
from delvers_descent.core.errors import EncounterInProgressError, NoActiveEncounterError
from delvers_descent.core.models import (
    EncounterOutcome,
    EncounterRecord,
    EncounterStatus,
    EncounterType,
    OutcomeType,
)
from delvers_descent.core.rng import GameRNG
from delvers_descent.encounters.base import Encounter
from delvers_descent.encounters.factory import create_encounter

logger = logging.getLogger(__name__)


class EncounterResolver:
    """Starts, tracks and completes encounters.

    Parameters
    ----------
    rng:
        Parent RNG; every encounter gets its own fork keyed by the
        encounter id, so replaying a run reproduces each encounter.
    config:
        Balance config handed to each variant.
    """

    def __init__(self, rng: GameRNG, config: BalanceConfig | None = None) -> None:
        self.rng = rng
        self.config = config or DEFAULT_CONFIG
        self._active: EncounterRecord | None = None
        self._encounter: Encounter | None = None
        self._history: list[EncounterRecord] = []
        self._counter = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start_encounter(
        self,
        encounter_type: EncounterType | str,
        node_id: str,
        depth: int,
        energy_cost: int,
    ) -> Encounter:
        """Create the variant for a node and make it the active encounter.

        Raises
        ------
        EncounterInProgressError
            If another encounter is still active.
        UnsupportedEncounterError
            If *encounter_type* has no variant.
        """
        if self._active is not None:
            raise EncounterInProgressError(
                f"Encounter {self._active.id} is still in progress"
            )

        self._counter += 1
        encounter_id = f"encounter-{node_id}-{self._counter}"
        encounter = create_encounter(
            encounter_type, depth, self.rng.fork(encounter_id), self.config
        )
        self._encounter = encounter
        self._active = EncounterRecord(
            id=encounter_id,
            type=encounter.encounter_type,
            node_id=node_id,
            depth=depth,
            energy_cost=energy_cost,
            start_time=time.time(),
        )
        logger.info(
            "Started %s encounter %s at depth %d",
            encounter.encounter_type.value, encounter_id, depth,
        )
        return encounter

    def get_active(self) -> EncounterRecord | None:
        return self._active.model_copy() if self._active is not None else None

    def get_current_encounter(self) -> Encounter | None:
        return self._encounter

    def update_progress(self, progress: float) -> None:
        if self._active is None:
            raise NoActiveEncounterError("No active encounter to update")
        self._active.progress = max(0.0, min(1.0, progress))

    def complete_encounter(
        self,
        result: OutcomeType,
        outcome: EncounterOutcome,
    ) -> EncounterRecord:
        """Close the active encounter and move it to the history.

        Raises
        ------
        NoActiveEncounterError
            If no encounter is active.
        """
        if self._active is None:
            raise NoActiveEncounterError("No active encounter to complete")

        record = self._active.model_copy(
            update={
                "status": (
                    EncounterStatus.COMPLETED
                    if result == OutcomeType.SUCCESS
                    else EncounterStatus.FAILED
                ),
                "progress": 1.0,
                "outcome": outcome,
                "end_time": time.time(),
            }
        )
        self._history.append(record)
        self._active = None
        self._encounter = None
        logger.info("Encounter %s finished: %s", record.id, result.value)
        return record

    def resolve_current(self) -> EncounterRecord:
        """Resolve the active variant and complete it with its outcome."""
        if self._encounter is None:
            raise NoActiveEncounterError("No active encounter to resolve")
        outcome = self._encounter.resolve()
        return self.complete_encounter(outcome.type, outcome)

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def get_history(self) -> list[EncounterRecord]:
        return list(self._history)

    def clear(self) -> None:
        self._active = None
        self._encounter = None
        self._history = []
        self._counter = 0
