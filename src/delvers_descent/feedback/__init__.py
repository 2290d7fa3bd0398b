"""Advisory feedback: energy status, risk warnings and collection progress."""

from delvers_descent.feedback.collection_progress import (
    MILESTONES,
    CollectionFeedback,
    MilestoneFeedback,
    ProgressSummary,
    SetCompletionFeedback,
    get_collection_feedback,
    set_completion_feedback,
    summarize_progress,
)
from delvers_descent.feedback.energy_status import (
    EnergyAdvice,
    EnergyStatus,
    EnergyStatusReport,
    get_energy_status,
)
from delvers_descent.feedback.risk_warning import (
    RiskSeverity,
    RiskWarning,
    determine_risk_severity,
    get_risk_warning,
)

__all__ = [
    "EnergyAdvice",
    "EnergyStatus",
    "EnergyStatusReport",
    "get_energy_status",
    "RiskSeverity",
    "RiskWarning",
    "determine_risk_severity",
    "get_risk_warning",
    "MILESTONES",
    "CollectionFeedback",
    "MilestoneFeedback",
    "ProgressSummary",
    "SetCompletionFeedback",
    "get_collection_feedback",
    "set_completion_feedback",
    "summarize_progress",
]
