"""Tests for the EnergyCalculator."""

import pytest

from delvers_descent.core.models import EncounterType, Shortcut
from delvers_descent.economy.energy import EnergyCalculator, RecommendedAction


@pytest.fixture
def calc() -> EnergyCalculator:
    return EnergyCalculator()


# ---------------------------------------------------------------------------
# Return cost
# ---------------------------------------------------------------------------

class TestReturnCost:
    def test_surface_is_free(self, calc):
        assert calc.calculate_return_cost(0) == 0
        assert calc.calculate_return_cost(-3) == 0

    def test_first_tier(self, calc):
        assert [calc.calculate_return_cost(d) for d in range(1, 6)] == [5, 10, 15, 20, 25]

    def test_depth_ten(self, calc):
        assert calc.calculate_return_cost(10) == 75

    def test_monotone_in_depth(self, calc):
        for depth in range(1, 40):
            assert calc.calculate_return_cost(depth + 1) >= calc.calculate_return_cost(depth), (
                f"depth={depth}"
            )

    def test_shortcut_reduces_cost(self, calc):
        shortcut = Shortcut(id="s", from_depth=2, to_depth=1, energy_reduction=10)
        assert calc.calculate_return_cost(10, [shortcut]) == 70

    def test_shortcut_never_breaks_monotonicity(self, calc):
        shortcuts = [
            Shortcut(id="a", from_depth=6, to_depth=0, energy_reduction=30),
            Shortcut(id="b", from_depth=3, to_depth=1, energy_reduction=10),
        ]
        costs = [calc.calculate_return_cost(d, shortcuts) for d in range(0, 15)]
        assert costs == sorted(costs)

    def test_best_shortcut_per_depth_wins(self, calc):
        weak = Shortcut(id="w", from_depth=2, to_depth=1, energy_reduction=1)
        strong = Shortcut(id="s", from_depth=2, to_depth=1, energy_reduction=10)
        assert calc.calculate_return_cost(10, [weak, strong]) == 70


# ---------------------------------------------------------------------------
# Safety and risk
# ---------------------------------------------------------------------------

class TestSafety:
    def test_margin_identity(self, calc):
        for energy in (0, 10, 75, 200):
            for cost in (0, 5, 75):
                margin = calc.calculate_safety_margin(energy, cost)
                assert margin == energy - cost
                assert calc.can_afford_return(energy, cost) == (margin >= 0)

    def test_risk_bounds(self, calc):
        assert calc.calculate_risk_level(0, 10) == 100
        assert calc.calculate_risk_level(5, 10) == 100
        assert calc.calculate_risk_level(50, 0) == 0
        assert calc.calculate_risk_level(20, 10) == 0
        assert calc.calculate_risk_level(15, 10) == 50

    def test_point_of_no_return(self, calc):
        assert calc.calculate_point_of_no_return(20) == 30
        assert calc.calculate_point_of_no_return(20, safety_buffer=5) == 25
        assert calc.is_safe_to_continue(30, 20)
        assert not calc.is_safe_to_continue(29, 20)


class TestRecommendation:
    def test_critical_returns(self, calc):
        rec = calc.get_recommended_action(10, 10, depth=2)
        assert rec.action == RecommendedAction.RETURN
        assert rec.risk_level == 100

    def test_plenty_continues(self, calc):
        rec = calc.get_recommended_action(100, 10, depth=2)
        assert rec.action == RecommendedAction.CONTINUE

    def test_low_margin_deep_returns(self, calc):
        rec = calc.get_recommended_action(50, 35, depth=5)
        assert rec.action == RecommendedAction.RETURN
        assert rec.risk_level < 60

    def test_moderate_rests(self, calc):
        # risk 40, margin 30, energy not above twice the cost
        rec = calc.get_recommended_action(80, 50, depth=2)
        assert rec.action == RecommendedAction.REST

    def test_deterministic(self, calc):
        assert calc.get_recommended_action(60, 40, 4) == calc.get_recommended_action(60, 40, 4)


# ---------------------------------------------------------------------------
# Node costs and funding
# ---------------------------------------------------------------------------

class TestNodeCost:
    def test_safe_passage_is_free(self, calc):
        for depth in range(1, 12):
            assert calc.calculate_node_cost(depth, EncounterType.SAFE_PASSAGE) == 0

    def test_accepts_string_type(self, calc):
        assert calc.calculate_node_cost(1, "puzzle_chamber") == 5

    def test_clamped(self, calc):
        assert calc.calculate_node_cost(1, EncounterType.REST_SITE) == 3
        assert calc.calculate_node_cost(50, EncounterType.HAZARD) == 30

    def test_backtrack_minimum(self, calc):
        assert calc.calculate_backtrack_cost(3, 3) == 1
        assert calc.calculate_backtrack_cost(5, 2) == 6


class TestFunding:
    def test_streak_bonus_threshold(self, calc):
        assert calc.calculate_streak_bonus(9999) == 0
        assert calc.calculate_streak_bonus(12000) == 2400

    def test_run_energy(self, calc):
        assert calc.calculate_run_energy(10001, True) == 12001
        assert calc.calculate_run_energy(10001, False) == 10001

    def test_optimal_depth(self, calc):
        assert calc.calculate_optimal_depth(75) == 10
        assert calc.calculate_optimal_depth(0) == 1

    def test_efficiency(self, calc):
        assert calc.calculate_energy_efficiency(0, 100) == 0
        assert calc.calculate_energy_efficiency(50, 100) == 200

    def test_validation(self, calc):
        assert calc.validate_energy_calculations(10, 5).is_valid
        result = calc.validate_energy_calculations(-1, -1)
        assert not result.is_valid
        assert len(result.errors) == 2
