"""Tests for the encounter factory and resolver."""

import pytest

from delvers_descent.core.errors import (
    EncounterInProgressError,
    InvalidSelectionError,
    NoActiveEncounterError,
    UnsupportedEncounterError,
)
from delvers_descent.core.models import (
    EncounterOutcome,
    EncounterStatus,
    EncounterType,
    OutcomeType,
)
from delvers_descent.core.rng import GameRNG
from delvers_descent.encounters import ENCOUNTER_CLASSES, EncounterResolver, create_encounter
from delvers_descent.encounters.puzzle import PuzzleChamber, TileType


class TestFactory:
    def test_every_type_registered(self):
        assert set(ENCOUNTER_CLASSES) == set(EncounterType)

    @pytest.mark.parametrize("encounter_type", list(EncounterType))
    def test_creates_matching_variant(self, encounter_type):
        encounter = create_encounter(encounter_type, 2, GameRNG(seed=42))
        assert encounter.encounter_type == encounter_type
        assert encounter.depth == 2
        assert not encounter.is_complete()

    def test_accepts_string(self):
        assert isinstance(create_encounter("puzzle_chamber", 1, GameRNG(seed=0)), PuzzleChamber)

    def test_unknown_type(self):
        with pytest.raises(UnsupportedEncounterError, match="boss_fight"):
            create_encounter("boss_fight", 1, GameRNG(seed=0))


@pytest.fixture
def resolver() -> EncounterResolver:
    return EncounterResolver(GameRNG(seed=42))


class TestResolver:
    def test_start_creates_record(self, resolver):
        resolver.start_encounter(EncounterType.SAFE_PASSAGE, "depth1-node0", 1, 0)
        active = resolver.get_active()
        assert active.id == "encounter-depth1-node0-1"
        assert active.status == EncounterStatus.ACTIVE
        assert active.progress == 0.0

    def test_one_active_at_a_time(self, resolver):
        resolver.start_encounter(EncounterType.HAZARD, "a", 1, 5)
        with pytest.raises(EncounterInProgressError):
            resolver.start_encounter(EncounterType.HAZARD, "b", 1, 5)

    def test_resolve_current(self, resolver):
        resolver.start_encounter(EncounterType.SAFE_PASSAGE, "a", 3, 0)
        record = resolver.resolve_current()
        assert record.status == EncounterStatus.COMPLETED
        assert record.progress == 1.0
        assert record.outcome.free_return
        assert record.end_time is not None
        assert resolver.get_active() is None
        assert resolver.get_current_encounter() is None
        assert resolver.get_history() == [record]

    def test_failed_record(self, resolver):
        puzzle = resolver.start_encounter(EncounterType.PUZZLE_CHAMBER, "a", 1, 5)
        for tile in puzzle.find_tiles(TileType.NEUTRAL)[: puzzle.initial_reveals]:
            puzzle.reveal_tile(tile.row, tile.col)
        record = resolver.resolve_current()
        assert record.status == EncounterStatus.FAILED
        assert record.outcome.type == OutcomeType.FAILURE

    def test_unfinished_encounter_stays_active(self, resolver):
        resolver.start_encounter(EncounterType.PUZZLE_CHAMBER, "a", 1, 5)
        with pytest.raises(InvalidSelectionError):
            resolver.resolve_current()
        assert resolver.get_active() is not None

    def test_update_progress_clamped(self, resolver):
        resolver.start_encounter(EncounterType.HAZARD, "a", 1, 5)
        resolver.update_progress(1.7)
        assert resolver.get_active().progress == 1.0
        resolver.update_progress(-1)
        assert resolver.get_active().progress == 0.0

    def test_idle_operations_raise(self, resolver):
        with pytest.raises(NoActiveEncounterError):
            resolver.update_progress(0.5)
        with pytest.raises(NoActiveEncounterError):
            resolver.resolve_current()

    def test_get_active_is_a_copy(self, resolver):
        resolver.start_encounter(EncounterType.HAZARD, "a", 1, 5)
        resolver.get_active().progress = 0.9
        assert resolver.get_active().progress == 0.0

    def test_replay_is_deterministic(self):
        a = EncounterResolver(GameRNG(seed=7)).start_encounter(EncounterType.PUZZLE_CHAMBER, "n", 2, 5)
        b = EncounterResolver(GameRNG(seed=7)).start_encounter(EncounterType.PUZZLE_CHAMBER, "n", 2, 5)
        assert [t.type for row in a.grid for t in row] == [t.type for row in b.grid for t in row]

    def test_clear(self, resolver):
        resolver.start_encounter(EncounterType.SAFE_PASSAGE, "a", 1, 0)
        resolver.resolve_current()
        resolver.start_encounter(EncounterType.SAFE_PASSAGE, "b", 1, 0)
        resolver.clear()
        assert resolver.get_active() is None
        assert resolver.get_history() == []
        resolver.start_encounter(EncounterType.SAFE_PASSAGE, "c", 1, 0)
        assert resolver.get_active().id == "encounter-c-1"

    def test_complete_with_external_outcome(self, resolver):
        resolver.start_encounter(EncounterType.HAZARD, "a", 2, 9)
        outcome = EncounterOutcome(type=OutcomeType.FAILURE, message="Abandoned")
        record = resolver.complete_encounter(OutcomeType.FAILURE, outcome)
        assert record.status == EncounterStatus.FAILED
        assert record.outcome == outcome
        assert resolver.get_current_encounter() is None
        with pytest.raises(NoActiveEncounterError):
            resolver.complete_encounter(OutcomeType.FAILURE, outcome)
