"""Core primitives: models, errors, configuration, RNG and persistence."""

from delvers_descent.core.config import DEFAULT_CONFIG, BalanceConfig
from delvers_descent.core.errors import (
    DelversError,
    DomainRuleError,
    DuplicateRunError,
    EncounterAlreadyResolvedError,
    EncounterInProgressError,
    InsufficientEnergyError,
    InvalidMoveError,
    InvalidSelectionError,
    InventoryFullError,
    MapAlreadyGeneratedError,
    NoActiveEncounterError,
    NoActiveRunError,
    NodeNotFoundError,
    OptionAlreadyUsedError,
    PersistenceError,
    RunAlreadyActiveError,
    RunNotFoundError,
    UnsupportedEncounterError,
)
from delvers_descent.core.models import (
    CollectedItem,
    DungeonMap,
    DungeonNode,
    EncounterItem,
    EncounterOutcome,
    EncounterRecord,
    EncounterReward,
    EncounterStatus,
    EncounterType,
    FailureConsequence,
    FailureType,
    ItemType,
    OutcomeType,
    ProgressionData,
    Rarity,
    Run,
    RunState,
    RunStatistics,
    RunStatus,
    Shortcut,
)
from delvers_descent.core.persistence import InMemoryStore, JsonFileStore, KeyValueStore
from delvers_descent.core.rng import GameRNG

__all__ = [
    # config
    "BalanceConfig",
    "DEFAULT_CONFIG",
    # rng
    "GameRNG",
    # persistence
    "KeyValueStore",
    "InMemoryStore",
    "JsonFileStore",
    # models
    "CollectedItem",
    "DungeonMap",
    "DungeonNode",
    "EncounterItem",
    "EncounterOutcome",
    "EncounterRecord",
    "EncounterReward",
    "EncounterStatus",
    "EncounterType",
    "FailureConsequence",
    "FailureType",
    "ItemType",
    "OutcomeType",
    "ProgressionData",
    "Rarity",
    "Run",
    "RunState",
    "RunStatistics",
    "RunStatus",
    "Shortcut",
    # errors
    "DelversError",
    "DomainRuleError",
    "DuplicateRunError",
    "EncounterAlreadyResolvedError",
    "EncounterInProgressError",
    "InsufficientEnergyError",
    "InvalidMoveError",
    "InvalidSelectionError",
    "InventoryFullError",
    "MapAlreadyGeneratedError",
    "NoActiveEncounterError",
    "NoActiveRunError",
    "NodeNotFoundError",
    "OptionAlreadyUsedError",
    "PersistenceError",
    "RunAlreadyActiveError",
    "RunNotFoundError",
    "UnsupportedEncounterError",
]
