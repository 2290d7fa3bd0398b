"""Reward scaling and collection item generation.

Raw encounter rewards are scaled by depth and by an encounter-type
multiplier, then nudged by a random variation that widens with depth:

    final = base * (1 + depth * 0.2) * type_multiplier * (1 + v)
    v ~ U(-spread, +spread),  spread = 0.15 + 0.02 * depth

Each processed item is attached to a collection set so drops feed the
collection-progress system.
"""

from __future__ import annotations

from delvers_descent.core.config import DEFAULT_CONFIG, BalanceConfig
from delvers_descent.core.models import (
    EncounterItem,
    EncounterReward,
    EncounterType,
    ItemType,
    slugify,
)
from delvers_descent.core.rng import GameRNG
from delvers_descent.rewards.collection_sets import (
    CollectionSetDef,
    find_set_for_item,
    get_set,
    sets_for_category,
)

# Encounter type whose multiplier prices each collection category.
_CATEGORY_ENCOUNTER = {
    ItemType.TRADE_GOOD: EncounterType.TRADE_OPPORTUNITY,
    ItemType.DISCOVERY: EncounterType.DISCOVERY_SITE,
    ItemType.LEGENDARY: EncounterType.RISK_EVENT,
}

# Category that unassigned items from each encounter type fall into.
_ENCOUNTER_CATEGORY = {
    EncounterType.PUZZLE_CHAMBER: ItemType.DISCOVERY,
    EncounterType.TRADE_OPPORTUNITY: ItemType.TRADE_GOOD,
    EncounterType.DISCOVERY_SITE: ItemType.DISCOVERY,
    EncounterType.HAZARD: ItemType.DISCOVERY,
    EncounterType.RISK_EVENT: ItemType.LEGENDARY,
    EncounterType.REST_SITE: ItemType.DISCOVERY,
    EncounterType.SAFE_PASSAGE: ItemType.TRADE_GOOD,
    EncounterType.SCOUNDREL: ItemType.TRADE_GOOD,
}


class RewardCalculator:
    """Scales raw encounter rewards.

    Parameters
    ----------
    rng:
        RNG for value variation and collection item picks.
    config:
        Balance config.  Defaults to ``DEFAULT_CONFIG``.
    """

    def __init__(self, rng: GameRNG, config: BalanceConfig | None = None) -> None:
        self.rng = rng
        self.config = config or DEFAULT_CONFIG

    # ------------------------------------------------------------------
    # Scaling
    # ------------------------------------------------------------------

    def calculate_depth_scaling(self, depth: int) -> float:
        return 1 + max(0, depth) * self.config.rewards.depth_scaling_rate

    def scale_reward_by_depth(self, base_reward: float, depth: int) -> int:
        return round(base_reward * self.calculate_depth_scaling(depth))

    def type_multiplier(self, encounter_type: EncounterType) -> float:
        return self.config.rewards.type_multipliers.get(encounter_type, 1.0)

    def variation_spread(self, depth: int) -> float:
        cfg = self.config.rewards
        return cfg.variation_base + max(0, depth) * cfg.variation_per_depth

    def calculate_final_reward(
        self,
        base_reward: float,
        encounter_type: EncounterType,
        depth: int,
    ) -> int:
        """Scaled value of a single raw reward; always at least 1."""
        spread = self.variation_spread(depth)
        variation = self.rng.random_uniform(-spread, spread)
        value = (
            base_reward
            * self.calculate_depth_scaling(depth)
            * self.type_multiplier(encounter_type)
            * (1 + variation)
        )
        return round(max(1.0, value))

    # ------------------------------------------------------------------
    # Collection items
    # ------------------------------------------------------------------

    def get_collection_sets_for_type(self, item_type: ItemType) -> list[CollectionSetDef]:
        return sets_for_category(item_type)

    def generate_collection_reward(self, item_type: ItemType, depth: int) -> EncounterItem:
        """Roll a random collectible of *item_type* valued for *depth*."""
        collection_set = self.rng.random_choice(sets_for_category(item_type))
        name = self.rng.random_choice(list(collection_set.items))
        base = self.config.rewards.collection_base_values.get(item_type.value, 50)
        return EncounterItem(
            id=slugify(name),
            name=name,
            rarity=collection_set.rarity_of(name),
            type=item_type,
            set_id=collection_set.id,
            value=self.calculate_final_reward(base, _CATEGORY_ENCOUNTER[item_type], depth),
            description=f"Part of the {collection_set.name}",
        )

    def _attach_set(
        self,
        item: EncounterItem,
        encounter_type: EncounterType,
    ) -> EncounterItem:
        known = get_set(item.set_id)
        if known is not None and item.name in known.items:
            return item.model_copy(update={"type": known.category, "id": slugify(item.name)})

        owner = find_set_for_item(item.name)
        if owner is None:
            # Unknown item: fold it into a set of the encounter's category.
            category = _ENCOUNTER_CATEGORY[encounter_type]
            owner = self.rng.random_choice(sets_for_category(category))
            name = self.rng.random_choice(list(owner.items))
        else:
            name = item.name
        return item.model_copy(
            update={
                "id": slugify(name),
                "name": name,
                "type": owner.category,
                "set_id": owner.id,
                "rarity": owner.rarity_of(name),
            }
        )

    def process_encounter_rewards(
        self,
        items: list[EncounterItem],
        encounter_type: EncounterType,
        depth: int,
    ) -> list[EncounterItem]:
        """Rescale *items* and attach each to a collection set."""
        processed: list[EncounterItem] = []
        for item in items:
            attached = self._attach_set(item, encounter_type)
            processed.append(
                attached.model_copy(
                    update={
                        "value": self.calculate_final_reward(item.value, encounter_type, depth),
                    }
                )
            )
        return processed

    def process_reward(
        self,
        reward: EncounterReward,
        encounter_type: EncounterType,
        depth: int,
    ) -> EncounterReward:
        """Process the items of a whole reward; energy and xp pass through."""
        return EncounterReward(
            energy=reward.energy,
            items=self.process_encounter_rewards(reward.items, encounter_type, depth),
            xp=reward.xp,
        )
