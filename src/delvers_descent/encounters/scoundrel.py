"""Scoundrel -- a solitaire card dungeon played against a life pool.

Deck (44 cards, a standard deck minus red face cards and red aces):

- clubs and spades 2-14: **monsters**, dealing their value as damage,
- diamonds 2-10: **weapons**,
- hearts 2-10: **potions**, healing their value up to the starting life.

Play proceeds in rooms of four face-up cards.  The player either skips
the whole room (its cards go to the bottom of the deck; never two rooms
in a row and at most ``max_room_skips`` times) or plays three of its
cards, carrying the fourth into the next room.

Weapons degrade: once a weapon has slain a monster of value *V* it can
only be used against monsters of value *V* or lower.  Fighting with a
weapon deals ``max(0, monster - weapon)`` damage; fighting barehanded
deals the full monster value.  Only the first potion in a room heals.

The encounter ends when life reaches 0 (failure, score = minus the value
of every monster left) or when the dungeon is cleared (success, score =
remaining life, plus the potion's value if the last card was a potion
played at full life).  The score picks one of three reward tiers.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from delvers_descent.core.config import BalanceConfig
from delvers_descent.core.errors import InvalidSelectionError
from delvers_descent.core.models import (
    EncounterItem,
    EncounterOutcome,
    EncounterReward,
    EncounterType,
    FailureConsequence,
    ItemType,
    slugify,
)
from delvers_descent.core.rng import GameRNG
from delvers_descent.encounters.base import Encounter
from delvers_descent.rewards.collection_sets import sets_for_category

logger = logging.getLogger(__name__)


class Suit(str, Enum):
    CLUBS = "clubs"
    SPADES = "spades"
    DIAMONDS = "diamonds"
    HEARTS = "hearts"


class CardKind(str, Enum):
    MONSTER = "monster"
    WEAPON = "weapon"
    POTION = "potion"


_SUIT_CODES = {Suit.CLUBS: "C", Suit.SPADES: "S", Suit.DIAMONDS: "D", Suit.HEARTS: "H"}


@dataclass(frozen=True)
class Card:
    suit: Suit
    value: int

    @property
    def id(self) -> str:
        return f"{_SUIT_CODES[self.suit]}{self.value}"

    @property
    def kind(self) -> CardKind:
        if self.suit in (Suit.CLUBS, Suit.SPADES):
            return CardKind.MONSTER
        if self.suit == Suit.DIAMONDS:
            return CardKind.WEAPON
        return CardKind.POTION


def build_deck() -> list[Card]:
    """The 44-card scoundrel deck in a fixed order."""
    deck = [Card(suit, v) for suit in (Suit.CLUBS, Suit.SPADES) for v in range(2, 15)]
    deck += [Card(Suit.DIAMONDS, v) for v in range(2, 11)]
    deck += [Card(Suit.HEARTS, v) for v in range(2, 11)]
    return deck


@dataclass(frozen=True)
class RewardTier:
    tier: int
    min_score: int
    max_score: int | None
    xp: int
    item_count: int


REWARD_TIERS = (
    RewardTier(1, 0, 10, 50, 1),
    RewardTier(2, 11, 20, 100, 2),
    RewardTier(3, 21, None, 200, 3),
)


def reward_tier_for(score: int) -> RewardTier:
    """Tier for *score*; negative scores fall into tier 1."""
    for tier in REWARD_TIERS:
        if score >= tier.min_score and (tier.max_score is None or score <= tier.max_score):
            return tier
    return REWARD_TIERS[0]


@dataclass
class PlayResult:
    card: Card
    damage_taken: int = 0
    healed: int = 0
    used_weapon: bool = False
    life: int = 0
    outcome: EncounterOutcome | None = None


@dataclass
class _Table:
    deck: list[Card]
    room: list[Card] = field(default_factory=list)
    weapon: Card | None = None
    weapon_limit: int | None = None
    """Value of the last monster slain with the current weapon."""
    slain: list[Card] = field(default_factory=list)
    discard: list[Card] = field(default_factory=list)
    skips_used: int = 0
    last_room_skipped: bool = False
    played_this_room: int = 0
    potion_used_this_room: bool = False
    last_card: Card | None = None


class Scoundrel(Encounter):
    """Card-dungeon encounter.

    Parameters
    ----------
    depth:
        Dungeon depth; scales reward values and failure energy.
    rng:
        RNG for the deck shuffle and reward items.
    config:
        Balance config supplying life, room size and skip limits.
    """

    encounter_type = EncounterType.SCOUNDREL

    def __init__(
        self,
        depth: int,
        rng: GameRNG,
        config: BalanceConfig | None = None,
    ) -> None:
        super().__init__(depth, rng, config)
        rules = self.config.scoundrel
        self.max_life = rules.starting_life
        self.life = rules.starting_life
        self.room_size = rules.room_size
        self.max_skips = rules.max_room_skips
        deck = build_deck()
        rng.shuffle(deck)
        self.table = _Table(deck=deck)
        self.score: int | None = None
        self._deal()

    # -- queries -------------------------------------------------------------

    def _snapshot(self) -> dict[str, Any]:
        t = self.table
        return {
            "life": self.life,
            "max_life": self.max_life,
            "room": [c.id for c in t.room],
            "deck_remaining": len(t.deck),
            "weapon": t.weapon.id if t.weapon else None,
            "weapon_limit": t.weapon_limit,
            "slain_with_weapon": [c.id for c in t.slain],
            "skips_used": t.skips_used,
            "can_skip": self.can_skip_room(),
            "score": self.score,
        }

    @property
    def room(self) -> list[Card]:
        return list(self.table.room)

    @property
    def weapon(self) -> Card | None:
        return self.table.weapon

    def remaining_monster_value(self) -> int:
        return sum(
            c.value for c in [*self.table.deck, *self.table.room] if c.kind == CardKind.MONSTER
        )

    def can_use_weapon_on(self, monster: Card) -> bool:
        t = self.table
        if t.weapon is None:
            return False
        return t.weapon_limit is None or monster.value <= t.weapon_limit

    def can_skip_room(self) -> bool:
        t = self.table
        return (
            not self.is_complete()
            and t.played_this_room == 0
            and not t.last_room_skipped
            and t.skips_used < self.max_skips
            and len(t.deck) > 0
        )

    def progress(self) -> float:
        if self.is_complete():
            return 1.0
        total = 44
        left = len(self.table.deck) + len(self.table.room)
        return round((total - left) / total, 4)

    # -- actions -------------------------------------------------------------

    def skip_room(self) -> list[Card]:
        """Send the current room to the bottom of the deck and deal anew."""
        self._ensure_active()
        if not self.can_skip_room():
            raise InvalidSelectionError("This room cannot be skipped")
        t = self.table
        t.deck.extend(t.room)
        t.room = []
        t.skips_used += 1
        t.last_room_skipped = True
        self._deal()
        return self.room

    def play_card(self, card_id: str, use_weapon: bool = True) -> PlayResult:
        """Play the room card *card_id*.

        Parameters
        ----------
        card_id:
            Id of a card in the current room, e.g. ``"S12"``.
        use_weapon:
            For monsters: fight with the equipped weapon when allowed.
            Ignored for other cards.
        """
        self._ensure_active()
        t = self.table
        card = next((c for c in t.room if c.id == card_id), None)
        if card is None:
            raise InvalidSelectionError(f"Card {card_id} is not in the room")

        t.room.remove(card)
        t.played_this_room += 1
        t.last_card = card
        result = PlayResult(card=card)

        if card.kind == CardKind.WEAPON:
            if t.weapon is not None:
                t.discard.extend([t.weapon, *t.slain])
            t.weapon = card
            t.weapon_limit = None
            t.slain = []
        elif card.kind == CardKind.POTION:
            if not t.potion_used_this_room:
                before = self.life
                self.life = min(self.max_life, self.life + card.value)
                result.healed = self.life - before
                t.potion_used_this_room = True
            t.discard.append(card)
        else:
            result.damage_taken, result.used_weapon = self._fight(card, use_weapon)

        result.life = self.life
        result.outcome = self._after_play()
        return result

    def _fight(self, monster: Card, use_weapon: bool) -> tuple[int, bool]:
        t = self.table
        if use_weapon and self.can_use_weapon_on(monster):
            damage = max(0, monster.value - t.weapon.value)
            t.slain.append(monster)
            t.weapon_limit = monster.value
            used = True
        else:
            damage = monster.value
            t.discard.append(monster)
            used = False
        self.life = max(0, self.life - damage)
        return damage, used

    def _after_play(self) -> EncounterOutcome | None:
        t = self.table
        if self.life <= 0:
            self.score = -self.remaining_monster_value()
            return self._finish(self._lose())
        if not t.deck and not t.room:
            self.score = self._success_score()
            return self._finish(self._win())
        if t.deck and len(t.room) <= self.room_size - 3:
            self._deal()
        return None

    def _deal(self) -> None:
        t = self.table
        if t.room and len(t.room) < self.room_size:
            # Completed room: the carried card opens a fresh room.
            t.last_room_skipped = False
        while len(t.room) < self.room_size and t.deck:
            t.room.append(t.deck.pop(0))
        t.played_this_room = 0
        t.potion_used_this_room = False

    # -- scoring and outcomes ------------------------------------------------

    def _success_score(self) -> int:
        last = self.table.last_card
        if last is not None and last.kind == CardKind.POTION and self.life == self.max_life:
            return self.life + last.value
        return self.life

    def items_to_steal(self, score: int) -> int:
        if score >= 0:
            return 0
        return min(5, max(1, math.ceil(abs(score) / 10)))

    def failure_energy_loss(self, score: int) -> int:
        if score >= 0:
            return 0
        loss = math.ceil(abs(score) / 10) * 5 * max(1, self.depth) ** 1.2
        if self.life <= 2:
            loss += 5
        return round(loss)

    def _reward_items(self, tier: RewardTier) -> list[EncounterItem]:
        categories = [ItemType.TRADE_GOOD, ItemType.DISCOVERY, ItemType.LEGENDARY]
        if tier.item_count < 3:
            categories = categories[:2]
        base_values = self.config.rewards.collection_base_values
        items: list[EncounterItem] = []
        for i in range(tier.item_count):
            category = categories[i % len(categories)]
            collection_set = self.rng.random_choice(sets_for_category(category))
            name = self.rng.random_choice(list(collection_set.items))
            items.append(
                EncounterItem(
                    id=slugify(name),
                    name=name,
                    rarity=collection_set.rarity_of(name),
                    type=category,
                    set_id=collection_set.id,
                    value=round(base_values.get(category.value, 50) * (1 + self.depth * 0.2)),
                    description="Recovered from the card dungeon",
                )
            )
        return items

    def _win(self) -> EncounterOutcome:
        tier = reward_tier_for(self.score)
        logger.debug("Scoundrel cleared with score %d (tier %d)", self.score, tier.tier)
        return self._success(
            f"Dungeon cleared with {self.life} life remaining. Score: {self.score}.",
            EncounterReward(xp=tier.xp, items=self._reward_items(tier)),
        )

    def _lose(self) -> EncounterOutcome:
        steal = self.items_to_steal(self.score)
        return self._failure(
            f"You fall in the card dungeon. Score: {self.score}.",
            FailureConsequence(
                energy_loss=self.failure_energy_loss(self.score),
                item_loss_risk=min(1.0, 0.1 * steal),
            ),
        )
