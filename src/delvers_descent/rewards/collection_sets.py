"""Collection set catalog.

Every collectible item belongs to exactly one named set.  Items are
identified within a set by their slugified name, so picking up the same
item twice never advances completion.
"""

from __future__ import annotations

from dataclasses import dataclass

from delvers_descent.core.models import ItemType, Rarity, slugify


@dataclass(frozen=True)
class CollectionSetDef:
    """A named group of collectibles whose full assembly grants a bonus."""

    id: str
    name: str
    category: ItemType
    items: tuple[str, ...]
    completion_bonus_xp: int

    @property
    def item_ids(self) -> tuple[str, ...]:
        return tuple(slugify(name) for name in self.items)

    def rarity_of(self, item_name: str) -> Rarity:
        """Rarity by position in the set; legendary sets are all legendary."""
        if self.category == ItemType.LEGENDARY:
            return Rarity.LEGENDARY
        index = self.items.index(item_name)
        return (Rarity.COMMON, Rarity.RARE, Rarity.EPIC)[min(index, 2)]


def _trade(set_id: str, name: str, items: tuple[str, ...]) -> CollectionSetDef:
    return CollectionSetDef(set_id, name, ItemType.TRADE_GOOD, items, 100)


def _discovery(set_id: str, name: str, items: tuple[str, ...]) -> CollectionSetDef:
    return CollectionSetDef(set_id, name, ItemType.DISCOVERY, items, 150)


def _legendary(set_id: str, name: str, items: tuple[str, ...]) -> CollectionSetDef:
    return CollectionSetDef(set_id, name, ItemType.LEGENDARY, items, 300)


COLLECTION_SETS: tuple[CollectionSetDef, ...] = (
    # Trade goods
    _trade("silk_road_set", "Silk Road Collection", ("Silk Fabric", "Fine Silk", "Royal Silk")),
    _trade("spice_trade_set", "Spice Trade Collection", ("Spice Blend", "Rare Spice", "Legendary Spice")),
    _trade("gem_merchant_set", "Gem Merchant Collection", ("Common Gem", "Precious Gem", "Dragon Gem")),
    _trade("exotic_goods_set", "Exotic Goods Collection", ("Basic Potion", "Elixir", "Phoenix Elixir")),
    # Discoveries
    _discovery("ancient_ruins_set", "Ancient Ruins", ("Ancient Artifact", "Ruined Relic", "Lost Treasure")),
    _discovery("crystal_caverns_set", "Crystal Caverns", ("Crystal Shard", "Prismatic Gem", "Luminous Stone")),
    _discovery("shadow_realm_set", "Shadow Realm", ("Shadow Essence", "Dark Fragment", "Void Crystal")),
    _discovery("ethereal_plains_set", "Ethereal Plains", ("Ethereal Fragment", "Void Stone", "Mystic Orb")),
    # Legendaries
    _legendary("dragon_hoard_set", "Dragon's Hoard", ("Dragon Scale", "Dragon Heart", "Dragon Crown")),
    _legendary("phoenix_nest_set", "Phoenix Nest", ("Phoenix Feather", "Phoenix Ash", "Phoenix Egg")),
    _legendary("void_treasure_set", "Void Treasures", ("Void Shard", "Void Essence", "Void Crown")),
    _legendary("eternal_flame_set", "Eternal Flame", ("Eternal Ember", "Flame Core", "Inferno Stone")),
)

_BY_ID = {s.id: s for s in COLLECTION_SETS}


def get_set(set_id: str) -> CollectionSetDef | None:
    return _BY_ID.get(set_id)


def sets_for_category(category: ItemType) -> list[CollectionSetDef]:
    return [s for s in COLLECTION_SETS if s.category == category]


def find_set_for_item(item_name: str) -> CollectionSetDef | None:
    """First set containing an item called *item_name*."""
    for collection_set in COLLECTION_SETS:
        if item_name in collection_set.items:
            return collection_set
    return None
