"""Pydantic v2 models for runs, maps, encounters and progression.

Everything that is persisted or handed across component boundaries lives
here.  Enum values are the wire-stable strings stored in persisted data,
so they must not change between versions.
"""

from __future__ import annotations

import re
from enum import Enum

from pydantic import BaseModel, Field, computed_field, model_validator

from delvers_descent.core.errors import NodeNotFoundError


# ---------------------------------------------------------------------------
# Vocabularies
# ---------------------------------------------------------------------------


class EncounterType(str, Enum):
    """Encounter variants a dungeon node can hold."""

    PUZZLE_CHAMBER = "puzzle_chamber"
    TRADE_OPPORTUNITY = "trade_opportunity"
    DISCOVERY_SITE = "discovery_site"
    HAZARD = "hazard"
    RISK_EVENT = "risk_event"
    REST_SITE = "rest_site"
    SAFE_PASSAGE = "safe_passage"
    SCOUNDREL = "scoundrel"


class RunStatus(str, Enum):
    QUEUED = "queued"
    ACTIVE = "active"
    COMPLETED = "completed"
    BUSTED = "busted"


class ItemType(str, Enum):
    """Collection category of an item."""

    TRADE_GOOD = "trade_good"
    DISCOVERY = "discovery"
    LEGENDARY = "legendary"


class Rarity(str, Enum):
    COMMON = "common"
    UNCOMMON = "uncommon"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"


class OutcomeType(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


class EncounterStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"


class FailureType(str, Enum):
    """Kinds of encounter failure, in increasing order of severity."""

    ENERGY_EXHAUSTED = "energy_exhausted"
    OBJECTIVE_FAILED = "objective_failed"
    FORCED_RETREAT = "forced_retreat"
    ENCOUNTER_LOCKOUT = "encounter_lockout"


def slugify(name: str) -> str:
    """Turn a display name into a stable snake_case identifier."""
    return re.sub(r"[^a-z0-9]+", "_", name.lower()).strip("_")


# ---------------------------------------------------------------------------
# Runs
# ---------------------------------------------------------------------------


class Run(BaseModel):
    """One day's delving attempt, funded by that day's steps."""

    id: str
    date: str
    """Calendar date, ``YYYY-MM-DD``."""
    steps: int = Field(ge=0)
    base_energy: int
    bonus_energy: int
    total_energy: int
    has_streak_bonus: bool
    status: RunStatus = RunStatus.QUEUED

    @model_validator(mode="after")
    def _check_energy_totals(self) -> Run:
        if self.total_energy != self.base_energy + self.bonus_energy:
            raise ValueError(
                f"total_energy {self.total_energy} != base_energy "
                f"{self.base_energy} + bonus_energy {self.bonus_energy}"
            )
        return self


class RunStatistics(BaseModel):
    """Aggregate run counts; completed/busted come from progression."""

    total_runs: int
    queued_runs: int
    active_runs: int
    completed_runs: int
    busted_runs: int
    total_steps: int
    """Steps across runs still held in the queue."""
    average_steps: float


class ProgressionData(BaseModel):
    """Lifetime statistics across every run ever finished."""

    all_time_deepest_depth: int = 0
    total_runs_completed: int = 0
    total_runs_busted: int = 0
    last_settled_run_id: str | None = None
    """Most recent run folded into the counters; a repeat is ignored."""

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_runs_attempted(self) -> int:
        """Always derived from the two counters, never stored."""
        return self.total_runs_completed + self.total_runs_busted


# ---------------------------------------------------------------------------
# Dungeon
# ---------------------------------------------------------------------------


class Shortcut(BaseModel):
    """A discovered reduction to the cost of returning between two depths."""

    id: str
    from_depth: int
    to_depth: int
    energy_reduction: int = Field(ge=0)
    is_permanent: bool = True

    @model_validator(mode="after")
    def _check_direction(self) -> Shortcut:
        if self.to_depth >= self.from_depth:
            raise ValueError(
                f"Shortcut {self.id} must lead upward "
                f"({self.from_depth} -> {self.to_depth})"
            )
        return self


class DungeonNode(BaseModel):
    """A single node in the layered dungeon graph."""

    id: str
    depth: int = Field(ge=1)
    position: int = Field(ge=0)
    type: EncounterType
    energy_cost: int
    """Energy spent to enter this node."""
    return_cost: int
    """Energy needed to return to the surface from this node's depth."""
    is_revealed: bool = False
    connections: list[str] = Field(default_factory=list)
    """Ids of nodes at ``depth + 1`` reachable from this node."""


class DungeonMap(BaseModel):
    """The complete node graph generated for one run."""

    max_depth: int
    nodes: list[DungeonNode] = Field(default_factory=list)
    shortcuts: list[Shortcut] = Field(default_factory=list)

    def get_node(self, node_id: str) -> DungeonNode:
        for node in self.nodes:
            if node.id == node_id:
                return node
        raise NodeNotFoundError(node_id)

    def has_node(self, node_id: str) -> bool:
        return any(node.id == node_id for node in self.nodes)

    def nodes_at_depth(self, depth: int) -> list[DungeonNode]:
        return sorted(
            (n for n in self.nodes if n.depth == depth),
            key=lambda n: n.position,
        )


# ---------------------------------------------------------------------------
# Items and rewards
# ---------------------------------------------------------------------------


class CollectedItem(BaseModel):
    """An item held in a run inventory, belonging to a collection set."""

    id: str
    type: ItemType
    set_id: str
    value: int
    name: str
    description: str = ""


class EncounterItem(BaseModel):
    """An item produced by an encounter, before it is banked."""

    id: str
    name: str
    quantity: int = 1
    rarity: Rarity = Rarity.COMMON
    type: ItemType = ItemType.TRADE_GOOD
    set_id: str
    value: int
    description: str = ""

    def to_collected(self) -> CollectedItem:
        return CollectedItem(
            id=self.id,
            type=self.type,
            set_id=self.set_id,
            value=self.value,
            name=self.name,
            description=self.description,
        )


class EncounterReward(BaseModel):
    energy: int = 0
    items: list[EncounterItem] = Field(default_factory=list)
    xp: int = 0

    def merge(self, other: EncounterReward) -> EncounterReward:
        """Return a new reward holding both rewards' contents."""
        return EncounterReward(
            energy=self.energy + other.energy,
            items=[*self.items, *other.items],
            xp=self.xp + other.xp,
        )


class FailureConsequence(BaseModel):
    """Penalties attached to a failed encounter."""

    energy_loss: int = Field(ge=0)
    item_loss_risk: float = Field(ge=0.0, le=1.0)
    """Probability that each held item is lost; not a guaranteed loss."""
    forced_retreat: bool = False
    encounter_lockout: bool = False


class EncounterOutcome(BaseModel):
    """Terminal result of an encounter."""

    type: OutcomeType
    message: str
    reward: EncounterReward | None = None
    consequence: FailureConsequence | None = None
    free_return: bool = False
    """Safe passage: the player may return to the surface at no cost."""
    items_surrendered: int = 0
    """Inventory items given up as the price of the encounter (trades)."""
    discovered_shortcut: Shortcut | None = None
    """Shortcut learned during the encounter, if any."""

    @property
    def is_success(self) -> bool:
        return self.type == OutcomeType.SUCCESS


class EncounterRecord(BaseModel):
    """Resolver-side bookkeeping for one encounter instance."""

    id: str
    type: EncounterType
    node_id: str
    depth: int
    energy_cost: int
    status: EncounterStatus = EncounterStatus.ACTIVE
    progress: float = 0.0
    outcome: EncounterOutcome | None = None
    start_time: float
    end_time: float | None = None


# ---------------------------------------------------------------------------
# Active run state
# ---------------------------------------------------------------------------


class RunState(BaseModel):
    """Mutable state of the run currently being played."""

    run_id: str
    starting_energy: int
    current_depth: int = 0
    """0 is the surface."""
    current_node: str | None = None
    energy_remaining: int
    inventory: list[CollectedItem] = Field(default_factory=list)
    visited_nodes: list[str] = Field(default_factory=list)
    discovered_shortcuts: list[Shortcut] = Field(default_factory=list)
    locked_nodes: list[str] = Field(default_factory=list)
    """Nodes the player may not re-enter after an encounter lockout."""
    xp_earned: int = 0
    deepest_depth: int = 0
    free_return: bool = False
    """A safe passage was found: the next return costs nothing."""
    run_date: str | None = None
    """Calendar date of the funding steps."""
    dungeon_map: DungeonMap | None = None
    start_time: float
