"""Base class shared by every encounter variant.

Each variant is a self-contained state machine owning its own mutable
state.  Callers interact through a narrow contract:

- ``get_state()`` -- a snapshot (deep copy) of the internal state,
- variant-specific actions (``reveal_tile``, ``select_option``,
  ``select_path``, ``select_choice``, ``play_card`` ...),
- ``resolve()`` -- returns the terminal :class:`EncounterOutcome` exactly
  once; a second call raises :class:`EncounterAlreadyResolvedError`.

Interactive variants (puzzle, trade, scoundrel) reach their terminal
outcome through their actions; ``resolve()`` then hands it over.
Choice variants compute the outcome inside ``resolve()``.
"""

from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from typing import Any, ClassVar

from delvers_descent.core.config import DEFAULT_CONFIG, BalanceConfig
from delvers_descent.core.errors import EncounterAlreadyResolvedError, InvalidSelectionError
from delvers_descent.core.models import (
    EncounterOutcome,
    EncounterReward,
    EncounterType,
    FailureConsequence,
    OutcomeType,
)
from delvers_descent.core.rng import GameRNG


class Encounter(ABC):
    """Common contract for encounter state machines.

    Parameters
    ----------
    depth:
        Dungeon depth of the node holding this encounter.
    rng:
        RNG owned by this encounter instance.
    config:
        Balance config.  Defaults to ``DEFAULT_CONFIG``.
    """

    encounter_type: ClassVar[EncounterType]

    def __init__(
        self,
        depth: int,
        rng: GameRNG,
        config: BalanceConfig | None = None,
    ) -> None:
        self.depth = depth
        self.rng = rng
        self.config = config or DEFAULT_CONFIG
        self._terminal: EncounterOutcome | None = None
        self._resolved = False

    # -- contract ------------------------------------------------------------

    @abstractmethod
    def _snapshot(self) -> dict[str, Any]:
        """Variant-specific state as plain data."""

    def get_state(self) -> dict[str, Any]:
        """Return a deep copy of the encounter state."""
        state = copy.deepcopy(self._snapshot())
        state["type"] = self.encounter_type.value
        state["depth"] = self.depth
        state["is_complete"] = self.is_complete()
        return state

    def is_complete(self) -> bool:
        return self._terminal is not None

    @property
    def outcome(self) -> EncounterOutcome | None:
        return self._terminal

    def progress(self) -> float:
        """Fraction of the encounter played, 0.0 to 1.0."""
        return 1.0 if self.is_complete() else 0.0

    def resolve(self) -> EncounterOutcome:
        """Return the terminal outcome.

        Raises
        ------
        EncounterAlreadyResolvedError
            If the encounter was already resolved.
        """
        if self._resolved:
            raise EncounterAlreadyResolvedError(
                f"{self.encounter_type.value} encounter already resolved"
            )
        outcome = self._terminal if self._terminal is not None else self._resolve()
        self._terminal = outcome
        self._resolved = True
        return outcome

    def _resolve(self) -> EncounterOutcome:
        raise InvalidSelectionError(
            f"{self.encounter_type.value} encounter is not finished"
        )

    # -- helpers for subclasses ----------------------------------------------

    def _ensure_active(self) -> None:
        if self._terminal is not None:
            raise EncounterAlreadyResolvedError(
                f"{self.encounter_type.value} encounter is already complete"
            )

    def _finish(self, outcome: EncounterOutcome) -> EncounterOutcome:
        self._terminal = outcome
        return outcome

    @staticmethod
    def _success(
        message: str,
        reward: EncounterReward | None = None,
        free_return: bool = False,
    ) -> EncounterOutcome:
        return EncounterOutcome(
            type=OutcomeType.SUCCESS,
            message=message,
            reward=reward if reward is not None else EncounterReward(),
            free_return=free_return,
        )

    @staticmethod
    def _failure(message: str, consequence: FailureConsequence) -> EncounterOutcome:
        return EncounterOutcome(
            type=OutcomeType.FAILURE,
            message=message,
            consequence=consequence,
        )
