"""Collection progress summaries, set-completion and milestone messages."""

from __future__ import annotations

from typing import Sequence

from pydantic import BaseModel, Field

from delvers_descent.core.config import DEFAULT_CONFIG, BalanceConfig
from delvers_descent.economy.collection import CollectionProgress
from delvers_descent.rewards.collection_sets import get_set

# (items collected, milestone name)
MILESTONES: tuple[tuple[int, str], ...] = (
    (5, "Novice Collector"),
    (10, "Apprentice Collector"),
    (20, "Seasoned Collector"),
    (36, "Master Collector"),
)


class ProgressSummary(BaseModel):
    completion_percentage: int
    sets_progress: int
    message: str
    is_near_complete: bool
    is_just_starting: bool


class SetCompletionFeedback(BaseModel):
    set_id: str
    message: str
    bonus_unlocked: bool


class MilestoneFeedback(BaseModel):
    threshold: int
    name: str
    message: str


class CollectionFeedback(BaseModel):
    summary: ProgressSummary
    set_completions: list[SetCompletionFeedback] = Field(default_factory=list)
    milestones: list[MilestoneFeedback] = Field(default_factory=list)


def _percentage(part: int, whole: int) -> int:
    return round(part / whole * 100) if whole else 0


def summarize_progress(
    progress: CollectionProgress,
    config: BalanceConfig | None = None,
) -> ProgressSummary:
    cfg = (config or DEFAULT_CONFIG).feedback
    pct = _percentage(progress.total_items, progress.catalog_items)
    completed = len(progress.completed_sets)
    return ProgressSummary(
        completion_percentage=pct,
        sets_progress=_percentage(completed, progress.total_sets),
        message=(
            f"Collection progress: {progress.total_items}/{progress.catalog_items} items, "
            f"{completed}/{progress.total_sets} sets"
        ),
        is_near_complete=pct >= cfg.near_complete_ratio * 100,
        is_just_starting=pct == 0,
    )


def set_completion_feedback(set_id: str) -> SetCompletionFeedback:
    set_def = get_set(set_id)
    if set_def is None:
        return SetCompletionFeedback(
            set_id=set_id, message=f"Completed {set_id}!", bonus_unlocked=False
        )
    bonus = set_def.completion_bonus_xp > 0
    message = f"Completed {set_def.name} set! Collected all {len(set_def.items)} items."
    if bonus:
        message += " Bonus unlocked!"
    return SetCompletionFeedback(set_id=set_id, message=message, bonus_unlocked=bonus)


def get_collection_feedback(
    progress: CollectionProgress,
    newly_completed: Sequence[str] = (),
    previous_total: int | None = None,
    config: BalanceConfig | None = None,
) -> CollectionFeedback:
    """Build feedback for the current collection state.

    Parameters
    ----------
    progress:
        Current collection progress.
    newly_completed:
        Set ids completed by the latest banking, one message each.
    previous_total:
        Distinct items held before the latest banking.  Milestones crossed
        since then are reported; when omitted every reached milestone is.
    """
    milestones = []
    for threshold, name in MILESTONES:
        reached = progress.total_items >= threshold
        crossed = previous_total is None or previous_total < threshold
        if reached and crossed:
            milestones.append(
                MilestoneFeedback(
                    threshold=threshold,
                    name=name,
                    message=(
                        f"Collection milestone achieved: {name}! You've collected "
                        f"{progress.total_items} items (threshold: {threshold})."
                    ),
                )
            )
    return CollectionFeedback(
        summary=summarize_progress(progress, config),
        set_completions=[set_completion_feedback(s) for s in newly_completed],
        milestones=milestones,
    )
