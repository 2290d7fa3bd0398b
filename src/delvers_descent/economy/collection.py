"""Cross-run collection of banked items and completed sets."""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Sequence

from pydantic import BaseModel, Field, ValidationError

from delvers_descent.core.models import CollectedItem, ItemType, slugify
from delvers_descent.rewards.collection_sets import COLLECTION_SETS, CollectionSetDef

if TYPE_CHECKING:
    from delvers_descent.core.persistence import KeyValueStore

logger = logging.getLogger(__name__)

COLLECTED_ITEMS_KEY = "collected_items"
SET_COMPLETIONS_KEY = "set_completions"


class TrackedItem(BaseModel):
    """One distinct collectible the player has banked at least once."""

    item_id: str
    """Slug of the item name; identity within its set."""
    set_id: str
    name: str
    type: ItemType
    value: int
    collected_at: float
    times_collected: int = 1
    banked_by: str | None = None
    """Run that last banked this item, if it came from a run."""


class SetProgress(BaseModel):
    set_id: str
    name: str
    collected: int
    total: int
    items: list[str]

    @property
    def ratio(self) -> float:
        return self.collected / self.total if self.total else 0.0


class CategoryProgress(BaseModel):
    total: int
    collected: int
    sets: int
    completed_sets: int


class CollectionProgress(BaseModel):
    total_items: int
    """Distinct items collected."""
    catalog_items: int
    """Distinct items in every set."""
    total_sets: int
    completed_sets: list[str]
    partial_sets: list[SetProgress]
    by_category: dict[ItemType, CategoryProgress]
    bonus_xp: int = 0
    """Sum of completion bonuses of completed sets."""


class CollectionStatistics(BaseModel):
    total_items_collected: int
    sets_completed: int
    collection_completion_rate: float
    favorite_sets: list[str] = Field(default_factory=list)
    last_collection_update: float | None = None


class CollectionManager:
    """Tracks banked collectibles and set completion.

    Parameters
    ----------
    store:
        Key-value store for the tracked items and completed set ids.
    collection_sets:
        Catalog to track against.  Defaults to ``COLLECTION_SETS``.
    """

    def __init__(
        self,
        store: KeyValueStore,
        collection_sets: Sequence[CollectionSetDef] = COLLECTION_SETS,
    ) -> None:
        self.store = store
        self.collection_sets = tuple(collection_sets)
        self._sets_by_id = {s.id: s for s in self.collection_sets}
        self._items: list[TrackedItem] | None = None
        self._completed: list[str] = []

    # -- persistence ---------------------------------------------------------

    def _load(self) -> list[TrackedItem]:
        if self._items is not None:
            return self._items
        items: list[TrackedItem] = []
        raw_items = self.store.get(COLLECTED_ITEMS_KEY)
        if isinstance(raw_items, list):
            try:
                items = [TrackedItem.model_validate(i) for i in raw_items]
            except ValidationError as exc:
                logger.warning("Corrupted collection items, starting empty: %s", exc)
                items = []
        elif raw_items is not None:
            logger.warning("Corrupted collection items (expected a list), starting empty")

        raw_completed = self.store.get(SET_COMPLETIONS_KEY)
        completed: list[str] = []
        if isinstance(raw_completed, list) and all(isinstance(s, str) for s in raw_completed):
            completed = list(raw_completed)
        elif raw_completed is not None:
            logger.warning("Corrupted set completions, recomputing from items")
        self._items = items
        # Completions are re-derived so they can never disagree with items.
        self._completed = [s for s in completed if s in self._sets_by_id]
        for set_def in self.collection_sets:
            if set_def.id not in self._completed and self._is_complete(set_def, items):
                self._completed.append(set_def.id)
        return self._items

    def _commit(self, items: list[TrackedItem], completed: list[str]) -> None:
        self.store.set(COLLECTED_ITEMS_KEY, [i.model_dump(mode="json") for i in items])
        # Items are the source of truth; completions are re-derived on load.
        self._items = items
        self._completed = completed
        self.store.set(SET_COMPLETIONS_KEY, list(completed))

    @staticmethod
    def _collected_ids(set_id: str, items: Sequence[TrackedItem]) -> set[str]:
        return {i.item_id for i in items if i.set_id == set_id}

    def _is_complete(self, set_def: CollectionSetDef, items: Sequence[TrackedItem]) -> bool:
        collected = self._collected_ids(set_def.id, items)
        return bool(collected) and all(iid in collected for iid in set_def.item_ids)

    # -- mutations -----------------------------------------------------------

    def _bank(
        self,
        items: list[TrackedItem],
        completed: list[str],
        item: CollectedItem,
        run_id: str | None,
    ) -> list[str]:
        item_id = slugify(item.name)
        for index, tracked in enumerate(items):
            if tracked.item_id == item_id and tracked.set_id == item.set_id:
                items[index] = tracked.model_copy(
                    update={
                        "times_collected": tracked.times_collected + 1,
                        "value": max(tracked.value, item.value),
                        "collected_at": time.time(),
                        "banked_by": run_id,
                    }
                )
                break
        else:
            items.append(
                TrackedItem(
                    item_id=item_id,
                    set_id=item.set_id,
                    name=item.name,
                    type=item.type,
                    value=item.value,
                    collected_at=time.time(),
                    banked_by=run_id,
                )
            )

        set_def = self._sets_by_id.get(item.set_id)
        if set_def is not None and set_def.id not in completed and self._is_complete(set_def, items):
            completed.append(set_def.id)
            return [set_def.id]
        return []

    def add_collected_item(self, item: CollectedItem) -> list[str]:
        """Bank *item*; returns the ids of sets this completed.

        Items of unknown sets are still tracked but never complete a set.
        """
        return self.add_collected_items([item])

    def add_collected_items(
        self,
        items: Sequence[CollectedItem],
        run_id: str | None = None,
    ) -> list[str]:
        """Bank *items* in a single write; returns the newly completed set ids.

        When *run_id* is given every touched entry is tagged with it, and a
        second call for the same run is a no-op.  This makes settling a run
        safe to retry after a later write failed.
        """
        tracked = [i.model_copy() for i in self._load()]
        if run_id is not None and any(t.banked_by == run_id for t in tracked):
            logger.debug("Items of run %s already banked", run_id)
            return []

        completed = list(self._completed)
        newly_completed: list[str] = []
        for item in items:
            newly_completed.extend(self._bank(tracked, completed, item, run_id))

        self._commit(tracked, completed)
        for set_id in newly_completed:
            logger.info("Collection set %s completed", set_id)
        return newly_completed

    def reset(self) -> None:
        self._commit([], [])

    # -- queries -------------------------------------------------------------

    def get_collected_items(self) -> list[TrackedItem]:
        return list(self._load())

    def get_completed_sets(self) -> list[str]:
        self._load()
        return list(self._completed)

    def get_collection_sets(self) -> list[CollectionSetDef]:
        return list(self.collection_sets)

    def get_set_progress(self, set_id: str) -> SetProgress | None:
        set_def = self._sets_by_id.get(set_id)
        if set_def is None:
            return None
        collected = self._collected_ids(set_id, self._load())
        return SetProgress(
            set_id=set_id,
            name=set_def.name,
            collected=len(collected & set(set_def.item_ids)),
            total=len(set_def.items),
            items=sorted(collected),
        )

    def get_collection_progress(self) -> CollectionProgress:
        items = self._load()
        completed: list[str] = []
        partial: list[SetProgress] = []
        for set_def in self.collection_sets:
            progress = self.get_set_progress(set_def.id)
            if progress.collected == progress.total and progress.total > 0:
                completed.append(set_def.id)
            elif progress.collected > 0:
                partial.append(progress)

        by_category: dict[ItemType, CategoryProgress] = {}
        for category in ItemType:
            sets = [s for s in self.collection_sets if s.category == category]
            by_category[category] = CategoryProgress(
                total=sum(len(s.items) for s in sets),
                collected=sum(
                    len(self._collected_ids(s.id, items) & set(s.item_ids)) for s in sets
                ),
                sets=len(sets),
                completed_sets=sum(1 for s in sets if s.id in completed),
            )

        return CollectionProgress(
            total_items=sum(c.collected for c in by_category.values()),
            catalog_items=sum(len(s.items) for s in self.collection_sets),
            total_sets=len(self.collection_sets),
            completed_sets=completed,
            partial_sets=partial,
            by_category=by_category,
            bonus_xp=sum(self._sets_by_id[s].completion_bonus_xp for s in completed),
        )

    def get_collection_statistics(self) -> CollectionStatistics:
        progress = self.get_collection_progress()
        items = self._load()
        return CollectionStatistics(
            total_items_collected=sum(i.times_collected for i in items),
            sets_completed=len(progress.completed_sets),
            collection_completion_rate=(
                len(progress.completed_sets) / progress.total_sets
                if progress.total_sets else 0.0
            ),
            favorite_sets=progress.completed_sets,
            last_collection_update=max((i.collected_at for i in items), default=None),
        )
