"""Lifetime progression across every finished run."""

from __future__ import annotations

import logging

from pydantic import ValidationError

from delvers_descent.core.models import ProgressionData
from delvers_descent.core.persistence import KeyValueStore

logger = logging.getLogger(__name__)

PROGRESSION_KEY = "delvers_descent_progression"


class ProgressionManager:
    """Owns :class:`ProgressionData`.

    Data is loaded lazily on first access and saved after every mutation.
    Only the completed and busted counters are stored; the attempted total
    is derived from them so the three can never disagree.

    Parameters
    ----------
    store:
        Key-value store holding the progression record.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store
        self._data: ProgressionData | None = None

    # -- loading -------------------------------------------------------------

    def _load(self) -> ProgressionData:
        if self._data is not None:
            return self._data
        raw = self.store.get(PROGRESSION_KEY)
        if raw is None:
            self._data = ProgressionData()
            return self._data
        try:
            self._data = ProgressionData.model_validate(raw)
        except ValidationError as exc:
            logger.warning("Corrupted progression data, starting fresh: %s", exc)
            self._data = ProgressionData()
        return self._data

    def _commit(self, updated: ProgressionData) -> ProgressionData:
        # Persist first so a failed write leaves the in-memory copy intact.
        self.store.set(
            PROGRESSION_KEY,
            updated.model_dump(mode="json", exclude={"total_runs_attempted"}),
        )
        self._data = updated
        return updated

    # -- queries -------------------------------------------------------------

    def get_progression(self) -> ProgressionData:
        """Return a copy of the current progression."""
        return self._load().model_copy()

    @property
    def all_time_deepest_depth(self) -> int:
        return self._load().all_time_deepest_depth

    @property
    def total_runs_completed(self) -> int:
        return self._load().total_runs_completed

    @property
    def total_runs_busted(self) -> int:
        return self._load().total_runs_busted

    @property
    def total_runs_attempted(self) -> int:
        return self._load().total_runs_attempted

    # -- mutations -----------------------------------------------------------

    def _settle(self, depth: int, run_id: str | None, counter: str) -> ProgressionData:
        data = self._load()
        if run_id is not None and run_id == data.last_settled_run_id:
            logger.debug("Run %s already counted", run_id)
            return data.model_copy()
        updated = data.model_copy(
            update={
                "all_time_deepest_depth": max(data.all_time_deepest_depth, depth),
                counter: getattr(data, counter) + 1,
                "last_settled_run_id": run_id if run_id is not None else data.last_settled_run_id,
            }
        )
        return self._commit(updated)

    def process_run_completion(self, depth: int, run_id: str | None = None) -> ProgressionData:
        """Record a successfully banked run that reached *depth*.

        Passing *run_id* makes the call idempotent for that run.
        """
        updated = self._settle(depth, run_id, "total_runs_completed")
        logger.info("Run completed at depth %d (deepest %d)", depth, updated.all_time_deepest_depth)
        return updated

    def process_run_bust(self, depth: int, run_id: str | None = None) -> ProgressionData:
        """Record a busted run that reached *depth*."""
        updated = self._settle(depth, run_id, "total_runs_busted")
        logger.info("Run busted at depth %d (deepest %d)", depth, updated.all_time_deepest_depth)
        return updated

    def reset(self) -> None:
        """Clear all lifetime statistics."""
        self._commit(ProgressionData())
