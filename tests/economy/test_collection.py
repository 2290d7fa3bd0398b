"""Tests for cross-run collection tracking."""

import pytest

from delvers_descent.core.models import CollectedItem, ItemType
from delvers_descent.core.persistence import InMemoryStore
from delvers_descent.economy.collection import (
    COLLECTED_ITEMS_KEY,
    SET_COMPLETIONS_KEY,
    CollectionManager,
)
from delvers_descent.rewards.collection_sets import COLLECTION_SETS, get_set


def _item(name: str, set_id: str = "silk_road_set", value: int = 50, n: int = 0) -> CollectedItem:
    set_def = get_set(set_id)
    return CollectedItem(
        id=f"{name}-{n}",
        type=set_def.category if set_def else ItemType.TRADE_GOOD,
        set_id=set_id,
        value=value,
        name=name,
    )


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def collection(store) -> CollectionManager:
    return CollectionManager(store)


class TestAddItems:
    def test_first_item_tracked(self, collection):
        assert collection.add_collected_item(_item("Silk Fabric")) == []
        tracked = collection.get_collected_items()
        assert len(tracked) == 1
        assert tracked[0].item_id == "silk_fabric"
        assert tracked[0].times_collected == 1

    def test_duplicate_increments_count(self, collection):
        collection.add_collected_item(_item("Silk Fabric", value=40, n=1))
        collection.add_collected_item(_item("Silk Fabric", value=70, n=2))
        tracked = collection.get_collected_items()
        assert len(tracked) == 1
        assert tracked[0].times_collected == 2
        assert tracked[0].value == 70

    def test_completing_a_set(self, collection):
        names = get_set("silk_road_set").items
        newly = collection.add_collected_items([_item(name) for name in names])
        assert newly == ["silk_road_set"]
        assert collection.get_completed_sets() == ["silk_road_set"]

    def test_set_completes_only_once(self, collection):
        names = get_set("silk_road_set").items
        collection.add_collected_items([_item(name) for name in names])
        assert collection.add_collected_item(_item(names[0], n=9)) == []
        assert collection.get_completed_sets() == ["silk_road_set"]

    def test_duplicates_do_not_complete(self, collection):
        for n in range(5):
            collection.add_collected_item(_item("Silk Fabric", n=n))
        assert collection.get_completed_sets() == []

    def test_unknown_set_tracked_but_never_completes(self, collection):
        assert collection.add_collected_item(_item("Odd Pebble", set_id="nowhere")) == []
        assert len(collection.get_collected_items()) == 1

    def test_reset(self, collection):
        collection.add_collected_item(_item("Silk Fabric"))
        collection.reset()
        assert collection.get_collected_items() == []


class TestProgress:
    def test_set_progress(self, collection):
        collection.add_collected_item(_item("Fine Silk"))
        progress = collection.get_set_progress("silk_road_set")
        assert progress.collected == 1
        assert progress.total == 3
        assert progress.items == ["fine_silk"]
        assert progress.ratio == pytest.approx(1 / 3)

    def test_unknown_set_progress(self, collection):
        assert collection.get_set_progress("nowhere") is None

    def test_collection_progress(self, collection):
        for name in get_set("dragon_hoard_set").items:
            collection.add_collected_item(_item(name, set_id="dragon_hoard_set"))
        collection.add_collected_item(_item("Crystal Shard", set_id="crystal_caverns_set"))

        progress = collection.get_collection_progress()
        assert progress.total_items == 4
        assert progress.catalog_items == sum(len(s.items) for s in COLLECTION_SETS)
        assert progress.total_sets == len(COLLECTION_SETS)
        assert progress.completed_sets == ["dragon_hoard_set"]
        assert [p.set_id for p in progress.partial_sets] == ["crystal_caverns_set"]
        assert progress.by_category[ItemType.LEGENDARY].completed_sets == 1
        assert progress.by_category[ItemType.DISCOVERY].collected == 1
        assert progress.bonus_xp == 300

    def test_statistics(self, collection):
        collection.add_collected_item(_item("Silk Fabric", n=1))
        collection.add_collected_item(_item("Silk Fabric", n=2))
        stats = collection.get_collection_statistics()
        assert stats.total_items_collected == 2
        assert stats.sets_completed == 0
        assert stats.last_collection_update is not None


class TestPersistence:
    def test_reload(self, store, collection):
        for name in get_set("silk_road_set").items:
            collection.add_collected_item(_item(name))
        reloaded = CollectionManager(store)
        assert reloaded.get_completed_sets() == ["silk_road_set"]
        assert len(reloaded.get_collected_items()) == 3

    def test_corrupted_items_start_empty(self, store):
        store.set(COLLECTED_ITEMS_KEY, [{"item_id": 1}])
        assert CollectionManager(store).get_collected_items() == []

    def test_completions_rederived_from_items(self, store, collection):
        for name in get_set("silk_road_set").items:
            collection.add_collected_item(_item(name))
        store.set(SET_COMPLETIONS_KEY, "garbage")
        assert CollectionManager(store).get_completed_sets() == ["silk_road_set"]


class TestRunBanking:
    def test_items_tagged_with_run(self, collection):
        collection.add_collected_items([_item("Silk Fabric")], run_id="run-a")
        assert collection.get_collected_items()[0].banked_by == "run-a"

    def test_same_run_banks_once(self, collection):
        names = get_set("silk_road_set").items
        items = [_item(name) for name in names]
        assert collection.add_collected_items(items, run_id="run-a") == ["silk_road_set"]
        assert collection.add_collected_items(items, run_id="run-a") == []
        assert all(t.times_collected == 1 for t in collection.get_collected_items())

    def test_next_run_banks_again(self, collection):
        collection.add_collected_items([_item("Silk Fabric", n=1)], run_id="run-a")
        collection.add_collected_items([_item("Silk Fabric", n=2)], run_id="run-b")
        tracked = collection.get_collected_items()[0]
        assert tracked.times_collected == 2
        assert tracked.banked_by == "run-b"

    def test_single_items_write(self, store):
        writes = []
        original = store.set

        def counting_set(key, value):
            writes.append(key)
            original(key, value)

        store.set = counting_set
        CollectionManager(store).add_collected_items(
            [_item("Silk Fabric", n=1), _item("Fine Silk", n=2)], run_id="run-a"
        )
        assert writes.count(COLLECTED_ITEMS_KEY) == 1
