"""Energy economy, run lifecycle, progression, collections and achievements."""

from delvers_descent.economy.achievements import (
    ACHIEVEMENTS,
    ACHIEVEMENTS_KEY,
    AchievementCategory,
    AchievementDef,
    AchievementEvent,
    AchievementEventType,
    AchievementManager,
    AchievementRewards,
    AchievementStatistics,
    AchievementStatus,
)
from delvers_descent.economy.collection import (
    CollectionManager,
    CollectionProgress,
    CollectionStatistics,
    SetProgress,
    TrackedItem,
)
from delvers_descent.economy.energy import (
    EnergyCalculator,
    EnergyValidation,
    Recommendation,
    RecommendedAction,
)
from delvers_descent.economy.progression import PROGRESSION_KEY, ProgressionManager
from delvers_descent.economy.run_queue import RUN_QUEUE_KEY, RunQueueManager
from delvers_descent.economy.run_state import (
    RUN_STATE_KEY,
    OutcomeApplication,
    RunSettlement,
    RunStateManager,
    RunStateStatistics,
    StateValidation,
)

__all__ = [
    # energy
    "EnergyCalculator",
    "EnergyValidation",
    "Recommendation",
    "RecommendedAction",
    # runs
    "RUN_QUEUE_KEY",
    "RunQueueManager",
    "RUN_STATE_KEY",
    "OutcomeApplication",
    "RunSettlement",
    "RunStateManager",
    "RunStateStatistics",
    "StateValidation",
    # progression
    "PROGRESSION_KEY",
    "ProgressionManager",
    # collection
    "CollectionManager",
    "CollectionProgress",
    "CollectionStatistics",
    "SetProgress",
    "TrackedItem",
    # achievements
    "ACHIEVEMENTS",
    "ACHIEVEMENTS_KEY",
    "AchievementCategory",
    "AchievementDef",
    "AchievementEvent",
    "AchievementEventType",
    "AchievementManager",
    "AchievementRewards",
    "AchievementStatistics",
    "AchievementStatus",
]
