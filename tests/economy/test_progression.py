"""Tests for lifetime progression."""

import pytest

from delvers_descent.core.errors import PersistenceError
from delvers_descent.core.persistence import InMemoryStore
from delvers_descent.economy.progression import PROGRESSION_KEY, ProgressionManager


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


class TestProgression:
    def test_starts_empty(self, store):
        data = ProgressionManager(store).get_progression()
        assert data.all_time_deepest_depth == 0
        assert data.total_runs_attempted == 0

    def test_bust_counts_depth(self, store):
        manager = ProgressionManager(store)
        manager.process_run_bust(5)
        assert manager.all_time_deepest_depth == 5
        assert manager.total_runs_busted == 1
        assert manager.total_runs_completed == 0

    def test_deepest_depth_never_decreases(self, store):
        manager = ProgressionManager(store)
        for depth in (4, 2, 7, 1, 6):
            manager.process_run_completion(depth)
        assert manager.all_time_deepest_depth == 7

    def test_attempted_is_sum(self, store):
        manager = ProgressionManager(store)
        manager.process_run_completion(1)
        manager.process_run_bust(1)
        manager.process_run_bust(1)
        assert manager.total_runs_attempted == 3
        assert (
            manager.total_runs_attempted
            == manager.total_runs_completed + manager.total_runs_busted
        )

    def test_persisted(self, store):
        ProgressionManager(store).process_run_completion(3)
        assert ProgressionManager(store).all_time_deepest_depth == 3

    def test_get_progression_is_a_copy(self, store):
        manager = ProgressionManager(store)
        copy = manager.get_progression()
        copy.total_runs_busted = 99
        assert manager.total_runs_busted == 0

    def test_reset(self, store):
        manager = ProgressionManager(store)
        manager.process_run_completion(8)
        manager.reset()
        assert manager.all_time_deepest_depth == 0
        assert manager.total_runs_attempted == 0

    def test_corrupted_data_starts_fresh(self, store):
        store.set(PROGRESSION_KEY, {"all_time_deepest_depth": "deep"})
        assert ProgressionManager(store).all_time_deepest_depth == 0

    def test_derived_total_not_stored(self, store):
        ProgressionManager(store).process_run_bust(2)
        raw = store.get(PROGRESSION_KEY)
        assert "total_runs_attempted" not in raw
        assert raw["total_runs_busted"] == 1


class TestRunIdempotency:
    def test_same_run_counted_once(self, store):
        manager = ProgressionManager(store)
        manager.process_run_completion(4, "run-a")
        manager.process_run_completion(4, "run-a")
        assert manager.total_runs_completed == 1

    def test_marker_survives_reload(self, store):
        ProgressionManager(store).process_run_bust(3, "run-a")
        manager = ProgressionManager(store)
        manager.process_run_bust(3, "run-a")
        assert manager.total_runs_busted == 1

    def test_different_runs_both_count(self, store):
        manager = ProgressionManager(store)
        manager.process_run_completion(2, "run-a")
        manager.process_run_bust(6, "run-b")
        assert manager.total_runs_attempted == 2
        assert manager.all_time_deepest_depth == 6

    def test_runs_without_id_always_count(self, store):
        manager = ProgressionManager(store)
        manager.process_run_completion(1)
        manager.process_run_completion(1)
        assert manager.total_runs_completed == 2


class TestFailedWrites:
    @pytest.fixture
    def failing(self) -> FailingStore:
        return FailingStore()

    def _seeded(self, failing) -> ProgressionManager:
        manager = ProgressionManager(failing)
        manager.process_run_completion(3, "run-a")
        failing.fail = True
        return manager

    def test_completion_leaves_state_unchanged(self, failing):
        manager = self._seeded(failing)
        with pytest.raises(PersistenceError):
            manager.process_run_completion(9, "run-b")
        assert manager.all_time_deepest_depth == 3
        assert manager.total_runs_completed == 1
        assert manager.total_runs_busted == 0

    def test_bust_leaves_state_unchanged(self, failing):
        manager = self._seeded(failing)
        with pytest.raises(PersistenceError):
            manager.process_run_bust(9, "run-b")
        assert manager.all_time_deepest_depth == 3
        assert manager.total_runs_busted == 0
        assert manager.total_runs_attempted == 1

    def test_reload_sees_last_good_write(self, failing):
        manager = self._seeded(failing)
        with pytest.raises(PersistenceError):
            manager.process_run_bust(9, "run-b")
        failing.fail = False
        fresh = ProgressionManager(failing)
        assert fresh.all_time_deepest_depth == 3
        assert fresh.total_runs_attempted == 1

    def test_retry_after_failure_counts_once(self, failing):
        manager = self._seeded(failing)
        with pytest.raises(PersistenceError):
            manager.process_run_bust(9, "run-b")
        failing.fail = False
        manager.process_run_bust(9, "run-b")
        manager.process_run_bust(9, "run-b")
        assert manager.total_runs_busted == 1
        assert manager.all_time_deepest_depth == 9
