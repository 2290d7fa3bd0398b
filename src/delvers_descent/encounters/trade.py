"""Trade opportunity -- pick two of three one-shot deals.

Options A (buy), B (sell) and C (exchange) each carry a fixed reward and
consequence, scaled by ``1 + depth * 0.2``.  Each option may be taken at
most once; the encounter completes after two trades (or once every
option is used) and pays out the rewards of all trades together.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from delvers_descent.core.config import BalanceConfig
from delvers_descent.core.errors import InvalidSelectionError, OptionAlreadyUsedError
from delvers_descent.core.models import (
    EncounterItem,
    EncounterOutcome,
    EncounterReward,
    EncounterType,
    ItemType,
    Rarity,
    slugify,
)
from delvers_descent.core.rng import GameRNG
from delvers_descent.encounters.base import Encounter
from delvers_descent.rewards.collection_sets import get_set

TRADES_TO_COMPLETE = 2


class TradeKind(str, Enum):
    BUY = "buy"
    SELL = "sell"
    EXCHANGE = "exchange"


class TradeCost(str, Enum):
    LOSE_ENERGY = "lose_energy"
    LOSE_ITEM = "lose_item"


@dataclass
class TradeOption:
    id: str
    kind: TradeKind
    description: str
    reward_value: int
    set_id: str
    cost_type: TradeCost
    cost_value: int


_BASE_OPTIONS = (
    ("A", TradeKind.BUY, "Buy silk from a wandering merchant", 50, "silk_road_set", TradeCost.LOSE_ENERGY, 10),
    ("B", TradeKind.SELL, "Sell supplies to a spice trader", 30, "spice_trade_set", TradeCost.LOSE_ITEM, 1),
    ("C", TradeKind.EXCHANGE, "Exchange trinkets with a gem cutter", 40, "gem_merchant_set", TradeCost.LOSE_ENERGY, 15),
)


@dataclass
class TradeResult:
    option_id: str
    item: EncounterItem
    energy_cost: int
    items_lost: int
    trades_made: int
    outcome: EncounterOutcome | None = None


class TradeOpportunity(Encounter):
    """Two-of-three trading encounter."""

    encounter_type = EncounterType.TRADE_OPPORTUNITY

    def __init__(
        self,
        depth: int,
        rng: GameRNG,
        config: BalanceConfig | None = None,
    ) -> None:
        super().__init__(depth, rng, config)
        multiplier = 1 + depth * 0.2
        self.options: dict[str, TradeOption] = {
            oid: TradeOption(
                id=oid,
                kind=kind,
                description=desc,
                reward_value=round(value * multiplier),
                set_id=set_id,
                cost_type=cost_type,
                cost_value=cost if cost_type == TradeCost.LOSE_ITEM else round(cost * multiplier),
            )
            for oid, kind, desc, value, set_id, cost_type, cost in _BASE_OPTIONS
        }
        self.used_options: list[str] = []
        self.items: list[EncounterItem] = []
        self.energy_spent = 0
        self.items_to_lose = 0

    def _snapshot(self) -> dict[str, Any]:
        return {
            "options": {
                oid: {
                    "kind": o.kind.value,
                    "description": o.description,
                    "reward_value": o.reward_value,
                    "set_id": o.set_id,
                    "cost_type": o.cost_type.value,
                    "cost_value": o.cost_value,
                }
                for oid, o in self.options.items()
            },
            "used_options": list(self.used_options),
            "energy_spent": self.energy_spent,
            "items_to_lose": self.items_to_lose,
        }

    def available_options(self) -> list[TradeOption]:
        return [o for oid, o in self.options.items() if oid not in self.used_options]

    def progress(self) -> float:
        return min(1.0, len(self.used_options) / TRADES_TO_COMPLETE)

    def select_option(self, option_id: str) -> TradeResult:
        """Make one trade.

        Raises
        ------
        EncounterAlreadyResolvedError
            If the trading is already over.
        InvalidSelectionError
            If *option_id* is not A, B or C.
        OptionAlreadyUsedError
            If the option was already taken in this encounter.
        """
        self._ensure_active()
        option = self.options.get(option_id)
        if option is None:
            raise InvalidSelectionError(f"Invalid trade option: {option_id}")
        if option_id in self.used_options:
            raise OptionAlreadyUsedError(option_id)

        self.used_options.append(option_id)
        item = self._make_item(option)
        self.items.append(item)

        energy_cost = option.cost_value if option.cost_type == TradeCost.LOSE_ENERGY else 0
        items_lost = option.cost_value if option.cost_type == TradeCost.LOSE_ITEM else 0
        self.energy_spent += energy_cost
        self.items_to_lose += items_lost

        result = TradeResult(
            option_id=option_id,
            item=item,
            energy_cost=energy_cost,
            items_lost=items_lost,
            trades_made=len(self.used_options),
        )
        if len(self.used_options) >= TRADES_TO_COMPLETE or not self.available_options():
            result.outcome = self._finish(self._complete())
        return result

    def _make_item(self, option: TradeOption) -> EncounterItem:
        collection_set = get_set(option.set_id)
        names = list(collection_set.items) if collection_set else ["Trade Good"]
        # Bigger deals at depth pull rarer goods.
        max_index = min(len(names) - 1, self.depth // 4)
        name = names[self.rng.random_int(0, max_index)]
        rarity = collection_set.rarity_of(name) if collection_set else Rarity.COMMON
        return EncounterItem(
            id=slugify(name),
            name=name,
            rarity=rarity,
            type=ItemType.TRADE_GOOD,
            set_id=option.set_id,
            value=option.reward_value,
            description=option.description,
        )

    def _complete(self) -> EncounterOutcome:
        # Energy costs are reported as a negative energy delta.
        reward = EncounterReward(
            energy=-self.energy_spent,
            items=list(self.items),
            xp=10 * self.depth * len(self.used_options),
        )
        outcome = self._success(
            f"Completed {len(self.used_options)} trades.",
            reward,
        )
        return outcome.model_copy(update={"items_surrendered": self.items_to_lose})
