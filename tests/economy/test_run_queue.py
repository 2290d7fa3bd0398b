"""Tests for the run queue."""

import pytest

from delvers_descent.core.errors import DuplicateRunError, PersistenceError, RunNotFoundError
from delvers_descent.core.models import RunStatus
from delvers_descent.core.persistence import InMemoryStore
from delvers_descent.economy.progression import ProgressionManager
from delvers_descent.economy.run_queue import RUN_QUEUE_KEY, RunQueueManager


class FailingStore(InMemoryStore):
    """Store whose writes start failing once ``fail`` is set."""

    def __init__(self) -> None:
        super().__init__()
        self.fail = False

    def set(self, key, value):
        if self.fail:
            raise PersistenceError(key, "disk full")
        super().set(key, value)


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def queue(store) -> RunQueueManager:
    return RunQueueManager(store, ProgressionManager(store))


class TestRunCreation:
    def test_streak_run(self, queue):
        run = queue.generate_run_from_steps("2024-01-15", 12000)
        assert run.base_energy == 12000
        assert run.bonus_energy == 2400
        assert run.total_energy == 14400
        assert run.has_streak_bonus
        assert run.status == RunStatus.QUEUED
        assert run.id.startswith("run-2024-01-15-")

    def test_below_threshold(self, queue):
        run = queue.generate_run_from_steps("2024-01-15", 8000)
        assert run.bonus_energy == 0
        assert run.total_energy == 8000
        assert not run.has_streak_bonus


class TestQueue:
    def test_duplicate_date_rejected(self, queue):
        queue.add_run_to_queue(queue.generate_run_from_steps("2024-01-15", 5000))
        with pytest.raises(DuplicateRunError, match="2024-01-15"):
            queue.add_run_to_queue(queue.generate_run_from_steps("2024-01-15", 9000))
        assert len(queue.get_all_runs()) == 1
        assert queue.get_all_runs()[0].steps == 5000

    def test_history_skips_existing_dates(self, queue):
        history = [
            {"date": "2024-01-02", "steps": 4000},
            {"date": "2024-01-01", "steps": 11000},
            {"date": "2024-01-02", "steps": 7000},
        ]
        added = queue.generate_runs_from_step_history(history)
        assert [r.date for r in added] == ["2024-01-02", "2024-01-01"]
        assert queue.generate_runs_from_step_history(history) == []

    def test_oldest_and_newest(self, queue):
        queue.generate_runs_from_step_history(
            [{"date": d, "steps": 1000} for d in ("2024-03-01", "2024-01-01", "2024-02-01")]
        )
        assert queue.get_oldest_queued_run().date == "2024-01-01"
        assert queue.get_newest_queued_run().date == "2024-03-01"

    def test_empty_queue(self, queue):
        assert not queue.has_queued_runs()
        assert queue.get_oldest_queued_run() is None

    def test_persisted_across_instances(self, store, queue):
        queue.add_run_to_queue(queue.generate_run_from_steps("2024-01-15", 5000))
        reloaded = RunQueueManager(store, ProgressionManager(store))
        assert [r.date for r in reloaded.get_all_runs()] == ["2024-01-15"]


class TestStatusTransitions:
    def test_active_stays_queued_list(self, queue):
        run = queue.generate_run_from_steps("2024-01-15", 5000)
        queue.add_run_to_queue(run)
        updated = queue.update_run_status(run.id, RunStatus.ACTIVE)
        assert updated.status == RunStatus.ACTIVE
        assert queue.get_runs_by_status(RunStatus.ACTIVE) == [updated]
        assert not queue.has_queued_runs()

    @pytest.mark.parametrize("status", [RunStatus.COMPLETED, RunStatus.BUSTED])
    def test_terminal_status_removes_run(self, queue, status):
        run = queue.generate_run_from_steps("2024-01-15", 5000)
        queue.add_run_to_queue(run)
        queue.update_run_status(run.id, status)
        assert queue.get_run_by_id(run.id) is None

    def test_unknown_run(self, queue):
        with pytest.raises(RunNotFoundError, match="missing"):
            queue.update_run_status("missing", RunStatus.ACTIVE)
        with pytest.raises(RunNotFoundError):
            queue.remove_run("missing")


class TestFailureAtomicity:
    def test_failed_write_leaves_memory_unchanged(self):
        store = FailingStore()
        queue = RunQueueManager(store, ProgressionManager(store))
        queue.add_run_to_queue(queue.generate_run_from_steps("2024-01-01", 1000))

        store.fail = True
        with pytest.raises(PersistenceError):
            queue.add_run_to_queue(queue.generate_run_from_steps("2024-01-02", 1000))
        assert [r.date for r in queue.get_all_runs()] == ["2024-01-01"]

    def test_corrupted_queue_loads_empty(self, store):
        store.set(RUN_QUEUE_KEY, [{"id": "broken"}])
        queue = RunQueueManager(store, ProgressionManager(store))
        assert queue.get_all_runs() == []

    def test_unparsable_queue_loads_empty(self, store):
        store.set_raw(RUN_QUEUE_KEY, "{{{")
        queue = RunQueueManager(store, ProgressionManager(store))
        assert queue.get_all_runs() == []


class TestStatistics:
    def test_counts_merge_progression(self, store):
        progression = ProgressionManager(store)
        queue = RunQueueManager(store, progression)
        queue.generate_runs_from_step_history(
            [{"date": "2024-01-01", "steps": 1000}, {"date": "2024-01-02", "steps": 3000}]
        )
        progression.process_run_completion(3)
        progression.process_run_bust(2)

        stats = queue.get_run_statistics()
        assert stats.queued_runs == 2
        assert stats.completed_runs == 1
        assert stats.busted_runs == 1
        assert stats.total_runs == 4
        assert stats.total_steps == 4000
        assert stats.average_steps == 2000.0

    def test_empty(self, queue):
        stats = queue.get_run_statistics()
        assert stats.total_runs == 0
        assert stats.average_steps == 0.0
