"""Tests for reward scaling and collection attachment."""

import pytest

from delvers_descent.core.models import EncounterItem, EncounterReward, EncounterType, ItemType, Rarity
from delvers_descent.core.rng import GameRNG
from delvers_descent.rewards.calculator import RewardCalculator
from delvers_descent.rewards.collection_sets import (
    COLLECTION_SETS,
    find_set_for_item,
    get_set,
    sets_for_category,
)


@pytest.fixture
def calc() -> RewardCalculator:
    return RewardCalculator(GameRNG(seed=42))


class TestCatalog:
    def test_twelve_sets_of_three(self):
        assert len(COLLECTION_SETS) == 12
        assert all(len(s.items) == 3 for s in COLLECTION_SETS)
        for category in ItemType:
            assert len(sets_for_category(category)) == 4

    def test_set_ids_unique(self):
        ids = [s.id for s in COLLECTION_SETS]
        assert len(ids) == len(set(ids))

    def test_rarity_by_position(self):
        silk = get_set("silk_road_set")
        assert silk.rarity_of("Silk Fabric") == Rarity.COMMON
        assert silk.rarity_of("Royal Silk") == Rarity.EPIC
        assert get_set("dragon_hoard_set").rarity_of("Dragon Scale") == Rarity.LEGENDARY

    def test_find_set_for_item(self):
        assert find_set_for_item("Elixir").id == "exotic_goods_set"
        assert find_set_for_item("Nothing") is None


class TestScaling:
    def test_depth_scaling(self, calc):
        assert calc.calculate_depth_scaling(0) == 1.0
        assert calc.calculate_depth_scaling(5) == pytest.approx(2.0)
        assert calc.scale_reward_by_depth(100, 5) == 200

    def test_variation_bounds(self, calc):
        for depth in range(0, 12):
            spread = calc.variation_spread(depth)
            expected = 100 * calc.calculate_depth_scaling(depth) * 1.5
            for _ in range(20):
                value = calc.calculate_final_reward(100, EncounterType.RISK_EVENT, depth)
                assert expected * (1 - spread) - 1 <= value <= expected * (1 + spread) + 1, (
                    f"depth={depth}"
                )

    def test_minimum_one(self, calc):
        assert calc.calculate_final_reward(0, EncounterType.HAZARD, 1) == 1

    def test_deterministic(self):
        a = RewardCalculator(GameRNG(seed=7))
        b = RewardCalculator(GameRNG(seed=7))
        assert [a.calculate_final_reward(50, EncounterType.PUZZLE_CHAMBER, d) for d in range(10)] == [
            b.calculate_final_reward(50, EncounterType.PUZZLE_CHAMBER, d) for d in range(10)
        ]


class TestCollectionItems:
    def test_generated_item_belongs_to_category(self, calc):
        for seed in range(30):
            calc = RewardCalculator(GameRNG(seed=seed))
            item = calc.generate_collection_reward(ItemType.DISCOVERY, 3)
            set_def = get_set(item.set_id)
            assert set_def.category == ItemType.DISCOVERY, f"seed={seed}"
            assert item.name in set_def.items, f"seed={seed}"

    def test_known_item_keeps_set(self, calc):
        item = EncounterItem(id="x", name="Fine Silk", set_id="silk_road_set", value=10)
        processed = calc.process_encounter_rewards([item], EncounterType.TRADE_OPPORTUNITY, 1)
        assert processed[0].set_id == "silk_road_set"
        assert processed[0].id == "fine_silk"

    def test_known_name_wrong_set_is_reassigned(self, calc):
        item = EncounterItem(id="x", name="Dragon Heart", set_id="bogus", value=10)
        processed = calc.process_encounter_rewards([item], EncounterType.PUZZLE_CHAMBER, 1)
        assert processed[0].set_id == "dragon_hoard_set"
        assert processed[0].type == ItemType.LEGENDARY

    def test_unknown_item_folded_into_encounter_category(self, calc):
        item = EncounterItem(id="x", name="Shiny Rock", set_id="bogus", value=10)
        processed = calc.process_encounter_rewards([item], EncounterType.RISK_EVENT, 2)
        set_def = get_set(processed[0].set_id)
        assert set_def.category == ItemType.LEGENDARY
        assert processed[0].name in set_def.items

    def test_process_reward_passes_energy_and_xp(self, calc):
        reward = EncounterReward(energy=4, xp=30, items=[])
        processed = calc.process_reward(reward, EncounterType.REST_SITE, 3)
        assert processed.energy == 4
        assert processed.xp == 30
        assert processed.items == []
