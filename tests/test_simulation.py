"""Tests for seeded run simulation and the text report."""

import pytest

from delvers_descent.core.models import RunStatus
from delvers_descent.core.rng import GameRNG
from delvers_descent.engine import DelversEngine
from delvers_descent.simulation import (
    CautiousPolicy,
    DelvePolicy,
    SimulationSummary,
    generate_text_report,
    simulate_run,
    simulate_runs,
)

HISTORY = [
    {"date": f"2026-04-{day:02d}", "steps": steps}
    for day, steps in zip(range(1, 8), [4000, 6500, 9000, 12000, 15000, 7000, 20000])
]


class StayHomePolicy(DelvePolicy):
    """Never leaves the surface."""

    def choose_node(self, engine, moves):
        return None

    def play_encounter(self, encounter):
        raise AssertionError("No encounter should be entered")


def _simulate(seed: int) -> tuple[DelversEngine, SimulationSummary]:
    engine = DelversEngine(rng=GameRNG(seed=seed))
    engine.queue_step_history(HISTORY)
    summary = simulate_runs(engine, CautiousPolicy(GameRNG(seed=seed)))
    return engine, summary


@pytest.fixture(scope="module")
def simulated() -> tuple[DelversEngine, SimulationSummary]:
    return _simulate(42)


class TestSimulateRuns:
    def test_every_queued_run_is_played(self, simulated):
        engine, summary = simulated
        assert summary.total_runs == len(HISTORY)
        assert not engine.queue.has_queued_runs()
        assert not engine.run_state.has_active_run()
        for run in summary.runs:
            assert run.status in (RunStatus.COMPLETED, RunStatus.BUSTED)

    def test_progression_matches_runs(self, simulated):
        engine, summary = simulated
        progression = engine.progression.get_progression()
        assert progression.total_runs_completed == summary.total_runs - summary.busted
        assert progression.total_runs_busted == summary.busted
        assert progression.all_time_deepest_depth == max(r.deepest_depth for r in summary.runs)

    def test_runs_go_below_the_surface(self, simulated):
        _, summary = simulated
        assert summary.avg_depth > 0
        assert all(r.encounters >= r.failures for r in summary.runs)

    def test_busted_runs_bank_nothing(self, simulated):
        _, summary = simulated
        for run in summary.runs:
            if run.status == RunStatus.BUSTED:
                assert run.items_banked == 0

    def test_completed_sets_match_collection(self, simulated):
        engine, summary = simulated
        assert summary.completed_sets == engine.collection.get_completed_sets()

    def test_same_seed_same_results(self):
        def fingerprint(summary):
            return [
                (r.status, r.deepest_depth, r.encounters, r.failures, r.items_banked, r.xp_earned)
                for r in summary.runs
            ]

        _, first = _simulate(7)
        _, second = _simulate(7)
        assert fingerprint(first) == fingerprint(second)


class TestSimulateRun:
    def test_staying_home_cashes_out_at_surface(self):
        engine = DelversEngine(rng=GameRNG(seed=1))
        run = engine.queue_step_history(HISTORY[:1])[0]
        result = simulate_run(engine, run.id, StayHomePolicy())
        assert result.status == RunStatus.COMPLETED
        assert result.deepest_depth == 0
        assert result.encounters == 0
        assert result.energy_spent == 0

    def test_max_depth_respected(self):
        engine = DelversEngine(rng=GameRNG(seed=2))
        run = engine.queue_step_history(HISTORY[-1:])[0]
        result = simulate_run(engine, run.id, CautiousPolicy(GameRNG(seed=2)), max_depth=3)
        assert result.deepest_depth <= 3


class TestSummary:
    def test_empty_summary(self):
        summary = SimulationSummary()
        assert summary.total_runs == 0
        assert summary.bust_rate == 0.0
        assert summary.avg_depth == 0.0
        assert summary.avg_xp == 0.0


class TestReport:
    def test_sections(self, simulated):
        engine, summary = simulated
        report = generate_text_report(summary, engine)
        assert "Delvers Descent Simulation Report" in report
        for heading in ("## Runs", "## Progression", "## Collection", "## Achievements", "## Per Run"):
            assert heading in report
        assert f"Runs: {len(HISTORY)}" in report
        for run in summary.runs:
            assert run.run_id in report


class TestAchievements:
    def test_week_of_runs_builds_a_streak(self, simulated):
        engine, _ = simulated
        assert engine.achievements.current_streak == len(HISTORY)
        assert engine.achievements.get_achievement("streak-7-days").unlocked
