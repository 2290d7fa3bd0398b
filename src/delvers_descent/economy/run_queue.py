"""Run queue -- the durable collection of runs waiting to be played.

Runs are created from daily step records, one per calendar date.  Once a
run is completed or busted it leaves the queue; its lifetime effect is
recorded by :class:`~delvers_descent.economy.progression.ProgressionManager`
instead, which is why :meth:`RunQueueManager.get_run_statistics` merges
both sources.
"""

from __future__ import annotations

import logging
import time
from typing import Iterable, TYPE_CHECKING

from pydantic import ValidationError

from delvers_descent.core.errors import DuplicateRunError, RunNotFoundError
from delvers_descent.core.models import Run, RunStatistics, RunStatus
from delvers_descent.economy.energy import EnergyCalculator

if TYPE_CHECKING:
    from delvers_descent.core.persistence import KeyValueStore
    from delvers_descent.economy.progression import ProgressionManager

logger = logging.getLogger(__name__)

RUN_QUEUE_KEY = "delving_runs"

_TERMINAL_STATUSES = {RunStatus.COMPLETED, RunStatus.BUSTED}


class RunQueueManager:
    """Creates, stores and transitions runs.

    Parameters
    ----------
    store:
        Key-value store holding the serialized run list.
    progression:
        Lifetime statistics; consulted for completed/busted totals.
    energy:
        Calculator used for run funding.  A default one is built if omitted.
    """

    def __init__(
        self,
        store: KeyValueStore,
        progression: ProgressionManager,
        energy: EnergyCalculator | None = None,
    ) -> None:
        self.store = store
        self.progression = progression
        self.energy = energy or EnergyCalculator()
        self._runs: list[Run] | None = None

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _load(self) -> list[Run]:
        if self._runs is not None:
            return self._runs
        raw = self.store.get(RUN_QUEUE_KEY)
        runs: list[Run] = []
        if raw is not None:
            if not isinstance(raw, list):
                logger.warning("Corrupted run queue (expected a list), starting empty")
            else:
                try:
                    runs = [Run.model_validate(item) for item in raw]
                except ValidationError as exc:
                    logger.warning("Corrupted run queue, starting empty: %s", exc)
                    runs = []
        self._runs = runs
        return self._runs

    def _commit(self, runs: list[Run]) -> None:
        # Write before swapping so a failed save leaves memory unchanged.
        self.store.set(RUN_QUEUE_KEY, [r.model_dump(mode="json") for r in runs])
        self._runs = runs

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def generate_run_from_steps(self, date: str, steps: int) -> Run:
        """Build (but do not queue) a run funded by *steps* on *date*."""
        bonus = self.energy.calculate_streak_bonus(steps)
        return Run(
            id=f"run-{date}-{int(time.time() * 1000)}",
            date=date,
            steps=steps,
            base_energy=steps,
            bonus_energy=bonus,
            total_energy=steps + bonus,
            has_streak_bonus=steps >= self.energy.config.energy.streak_threshold,
            status=RunStatus.QUEUED,
        )

    def add_run_to_queue(self, run: Run) -> None:
        """Queue *run*.

        Raises
        ------
        DuplicateRunError
            If a run for the same date is already queued.
        """
        runs = self._load()
        if any(r.date == run.date for r in runs):
            raise DuplicateRunError(run.date)
        self._commit([*runs, run])
        logger.info("Queued run %s (%d energy)", run.id, run.total_energy)

    def generate_runs_from_step_history(
        self,
        history: Iterable[dict],
    ) -> list[Run]:
        """Create and queue a run for every record whose date has none yet.

        Parameters
        ----------
        history:
            ``{"date": "YYYY-MM-DD", "steps": int}`` records.

        Returns
        -------
        list[Run]
            The runs that were added, in input order.
        """
        runs = self._load()
        existing = {r.date for r in runs}
        added: list[Run] = []
        for record in history:
            date = record["date"]
            if date in existing:
                continue
            added.append(self.generate_run_from_steps(date, int(record["steps"])))
            existing.add(date)
        if added:
            self._commit([*runs, *added])
            logger.info("Generated %d runs from step history", len(added))
        return added

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_all_runs(self) -> list[Run]:
        return list(self._load())

    def get_queued_runs(self) -> list[Run]:
        return self.get_runs_by_status(RunStatus.QUEUED)

    def get_runs_by_status(self, status: RunStatus) -> list[Run]:
        return [r for r in self._load() if r.status == status]

    def get_run_by_id(self, run_id: str) -> Run | None:
        for run in self._load():
            if run.id == run_id:
                return run
        return None

    def has_queued_runs(self) -> bool:
        return bool(self.get_queued_runs())

    def get_oldest_queued_run(self) -> Run | None:
        queued = self.get_queued_runs()
        return min(queued, key=lambda r: r.date) if queued else None

    def get_newest_queued_run(self) -> Run | None:
        queued = self.get_queued_runs()
        return max(queued, key=lambda r: r.date) if queued else None

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def update_run_status(self, run_id: str, status: RunStatus) -> Run:
        """Transition a run.

        Moving to ``completed`` or ``busted`` removes the run from the
        queue.  Callers pair that with a :class:`ProgressionManager`
        update.

        Raises
        ------
        RunNotFoundError
            If no run has *run_id*.
        """
        runs = self._load()
        index = next((i for i, r in enumerate(runs) if r.id == run_id), None)
        if index is None:
            raise RunNotFoundError(run_id)

        updated = runs[index].model_copy(update={"status": status})
        if status in _TERMINAL_STATUSES:
            new_runs = [r for r in runs if r.id != run_id]
        else:
            new_runs = [*runs[:index], updated, *runs[index + 1:]]
        self._commit(new_runs)
        logger.info("Run %s -> %s", run_id, status.value)
        return updated

    def remove_run(self, run_id: str) -> None:
        runs = self._load()
        if not any(r.id == run_id for r in runs):
            raise RunNotFoundError(run_id)
        self._commit([r for r in runs if r.id != run_id])

    def clear_all_runs(self) -> None:
        self._commit([])

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def get_run_statistics(self) -> RunStatistics:
        """Queue counts merged with lifetime completed/busted totals."""
        runs = self._load()
        queued = sum(1 for r in runs if r.status == RunStatus.QUEUED)
        active = sum(1 for r in runs if r.status == RunStatus.ACTIVE)
        completed = self.progression.total_runs_completed
        busted = self.progression.total_runs_busted
        total_steps = sum(r.steps for r in runs)
        return RunStatistics(
            total_runs=queued + active + completed + busted,
            queued_runs=queued,
            active_runs=active,
            completed_runs=completed,
            busted_runs=busted,
            total_steps=total_steps,
            average_steps=round(total_steps / len(runs), 2) if runs else 0.0,
        )
