"""Reward scaling, collection sets and failure consequences."""

from delvers_descent.rewards.calculator import RewardCalculator
from delvers_descent.rewards.collection_sets import (
    COLLECTION_SETS,
    CollectionSetDef,
    find_set_for_item,
    get_set,
    sets_for_category,
)
from delvers_descent.rewards.failure import (
    FailureConsequenceManager,
    FailureStatistics,
    ProcessedFailure,
    classify_failure,
)

__all__ = [
    "COLLECTION_SETS",
    "CollectionSetDef",
    "FailureConsequenceManager",
    "FailureStatistics",
    "ProcessedFailure",
    "RewardCalculator",
    "classify_failure",
    "find_set_for_item",
    "get_set",
    "sets_for_category",
]
