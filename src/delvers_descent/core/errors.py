"""Named exceptions raised by the engine.

Three families, matching how callers are expected to react:

- **DomainRuleError** -- the caller asked for something the game rules do
  not allow (duplicate run date, reused trade option, double resolution).
  Recoverable: reject the action and show a message.
- **UnsupportedEncounterError** -- no state machine exists for an
  encounter type.  Kept separate so callers can render a "not yet
  supported" path.
- **PersistenceError** -- the key-value store failed to write.  In-memory
  state is left as it was before the failed call.

Expected gameplay outcomes (failing an encounter, busting a run) are
values, not exceptions.
"""

from __future__ import annotations


class DelversError(Exception):
    """Base class for every error raised by the engine."""


# ---------------------------------------------------------------------------
# Domain rule violations
# ---------------------------------------------------------------------------


class DomainRuleError(DelversError, ValueError):
    """A recoverable violation of a game rule."""


class DuplicateRunError(DomainRuleError):
    """A run already exists for the given calendar date."""

    def __init__(self, date: str) -> None:
        super().__init__(f"Run already exists for date {date}")
        self.date = date


class RunNotFoundError(DomainRuleError, KeyError):
    """No run with the given id exists in the queue."""

    def __init__(self, run_id: str) -> None:
        super().__init__(f"Run {run_id} not found")
        self.run_id = run_id

    def __str__(self) -> str:
        return self.args[0]


class NodeNotFoundError(DomainRuleError, KeyError):
    """No node with the given id exists on the map."""

    def __init__(self, node_id: str) -> None:
        super().__init__(f"Node {node_id} not found")
        self.node_id = node_id

    def __str__(self) -> str:
        return self.args[0]


class NoActiveRunError(DomainRuleError):
    """An operation needs an active run but none is in progress."""


class RunAlreadyActiveError(DomainRuleError):
    """A different run is already in progress."""


class InsufficientEnergyError(DomainRuleError):
    """Not enough energy to pay for the requested move."""

    def __init__(self, required: int, available: int) -> None:
        super().__init__(
            f"Insufficient energy: need {required}, have {available}"
        )
        self.required = required
        self.available = available


class InventoryFullError(DomainRuleError):
    """The run inventory has reached its capacity."""


class InvalidMoveError(DomainRuleError):
    """The target node is not reachable from the current position."""


class EncounterInProgressError(DomainRuleError):
    """Another encounter is already active."""


class NoActiveEncounterError(DomainRuleError):
    """An operation needs an active encounter but none is in progress."""


class EncounterAlreadyResolvedError(DomainRuleError):
    """The encounter has already reached its terminal outcome."""


class InvalidSelectionError(DomainRuleError):
    """The chosen option/path/choice/tile is not valid for the encounter."""


class OptionAlreadyUsedError(DomainRuleError):
    """A trade option was selected a second time in the same encounter."""

    def __init__(self, option_id: str) -> None:
        super().__init__(f"Option {option_id} already used")
        self.option_id = option_id


class MapAlreadyGeneratedError(DomainRuleError):
    """A map already exists for the active run and cannot be regenerated."""


# ---------------------------------------------------------------------------
# Unsupported variants
# ---------------------------------------------------------------------------


class UnsupportedEncounterError(DelversError, ValueError):
    """No encounter state machine exists for the requested type."""

    def __init__(self, encounter_type: str) -> None:
        super().__init__(f"Unsupported encounter type: {encounter_type}")
        self.encounter_type = encounter_type


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


class PersistenceError(DelversError, RuntimeError):
    """Writing to the key-value store failed."""

    def __init__(self, key: str, reason: str) -> None:
        super().__init__(f"Failed to persist '{key}': {reason}")
        self.key = key
