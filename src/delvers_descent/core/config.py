"""Balance configuration -- every tunable constant in one Pydantic model.

``DEFAULT_CONFIG`` is used by every component that is not handed an
explicit config.  A config can be round-tripped through JSON with
``BalanceConfig.save`` / ``BalanceConfig.load`` so designers can tweak
numbers without touching code.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError, model_validator

from delvers_descent.core.models import EncounterType, FailureType

logger = logging.getLogger(__name__)


class EnergyConfig(BaseModel):
    """Energy curve and run funding constants."""

    return_base_cost: int = 5
    """Return cost of a single level in the first tier."""
    return_tier_step: int = 5
    """Extra per-level return cost added for each tier below the first."""
    levels_per_tier: int = 5
    """Number of depths that share a tier."""

    node_base_cost: int = 5
    node_depth_step: int = 2
    """Extra node entry cost per depth below the first."""
    node_min_cost: int = 3
    node_max_cost: int = 30
    node_type_modifiers: dict[EncounterType, int] = Field(
        default_factory=lambda: {
            EncounterType.PUZZLE_CHAMBER: 0,
            EncounterType.TRADE_OPPORTUNITY: 0,
            EncounterType.DISCOVERY_SITE: 1,
            EncounterType.RISK_EVENT: 2,
            EncounterType.HAZARD: 3,
            EncounterType.REST_SITE: -3,
            EncounterType.SAFE_PASSAGE: -2,
            EncounterType.SCOUNDREL: 2,
        }
    )

    backtrack_cost_per_level: int = 2

    streak_threshold: int = 10_000
    """Daily steps needed for the streak bonus."""
    streak_bonus_rate: float = 0.2

    safety_buffer: int = 10
    """Default buffer for the point-of-no-return calculation."""
    optimal_depth_cap: int = 20


class MapConfig(BaseModel):
    """Dungeon layout constants."""

    nodes_per_depth: int = 3
    default_max_depth: int = 10
    base_type_weights: dict[EncounterType, float] = Field(
        default_factory=lambda: {
            EncounterType.PUZZLE_CHAMBER: 0.17,
            EncounterType.TRADE_OPPORTUNITY: 0.12,
            EncounterType.DISCOVERY_SITE: 0.15,
            EncounterType.RISK_EVENT: 0.12,
            EncounterType.HAZARD: 0.10,
            EncounterType.REST_SITE: 0.10,
            EncounterType.SAFE_PASSAGE: 0.08,
            EncounterType.SCOUNDREL: 0.16,
        }
    )
    harder_types: list[EncounterType] = Field(
        default_factory=lambda: [EncounterType.HAZARD, EncounterType.RISK_EVENT]
    )
    """Types whose weight grows with depth."""
    easier_types: list[EncounterType] = Field(
        default_factory=lambda: [
            EncounterType.PUZZLE_CHAMBER,
            EncounterType.DISCOVERY_SITE,
        ]
    )
    """Types whose weight shrinks with depth."""
    depth_weight_shift: float = 0.015
    """Weight moved per depth below the first, per shifted type."""
    min_type_weight: float = 0.02

    extra_connection_chance: float = 0.5
    """Chance that a node gets one extra forward edge."""
    shortcut_chance: float = 0.075
    shortcut_min_reduction: int = 10
    shortcut_max_reduction: int = 30


class RewardConfig(BaseModel):
    """Reward scaling constants."""

    depth_scaling_rate: float = 0.2
    type_multipliers: dict[EncounterType, float] = Field(
        default_factory=lambda: {
            EncounterType.PUZZLE_CHAMBER: 1.0,
            EncounterType.TRADE_OPPORTUNITY: 1.2,
            EncounterType.DISCOVERY_SITE: 1.1,
            EncounterType.RISK_EVENT: 1.5,
            EncounterType.HAZARD: 0.8,
            EncounterType.REST_SITE: 0.5,
            EncounterType.SAFE_PASSAGE: 0.6,
            EncounterType.SCOUNDREL: 1.2,
        }
    )
    variation_base: float = 0.15
    variation_per_depth: float = 0.02
    collection_base_values: dict[str, int] = Field(
        default_factory=lambda: {
            "trade_good": 50,
            "discovery": 75,
            "legendary": 150,
        }
    )


class FailureBase(BaseModel):
    energy_loss: int
    item_loss_risk: float


class FailureConfig(BaseModel):
    """Failure consequence constants."""

    bases: dict[FailureType, FailureBase] = Field(
        default_factory=lambda: {
            FailureType.ENERGY_EXHAUSTED: FailureBase(energy_loss=5, item_loss_risk=0.1),
            FailureType.OBJECTIVE_FAILED: FailureBase(energy_loss=10, item_loss_risk=0.2),
            FailureType.FORCED_RETREAT: FailureBase(energy_loss=15, item_loss_risk=0.3),
            FailureType.ENCOUNTER_LOCKOUT: FailureBase(energy_loss=20, item_loss_risk=0.4),
        }
    )
    depth_energy_rate: float = 0.1
    depth_risk_rate: float = 0.05
    severity_step: float = 0.2
    severity_max: float = 3.0
    severity_recovery: float = 0.1


class ScoundrelConfig(BaseModel):
    """Card-dungeon rules."""

    starting_life: int = 20
    room_size: int = 4
    max_room_skips: int = 3
    """Total skips allowed per encounter (never two rooms in a row)."""


class FeedbackConfig(BaseModel):
    """Thresholds for advisory feedback."""

    critical_energy_ratio: float = 0.1
    low_energy_ratio: float = 0.3
    low_margin: int = 10
    near_complete_ratio: float = 0.9


class BalanceConfig(BaseModel):
    """Top-level balance configuration."""

    energy: EnergyConfig = Field(default_factory=EnergyConfig)
    map: MapConfig = Field(default_factory=MapConfig)
    rewards: RewardConfig = Field(default_factory=RewardConfig)
    failure: FailureConfig = Field(default_factory=FailureConfig)
    scoundrel: ScoundrelConfig = Field(default_factory=ScoundrelConfig)
    feedback: FeedbackConfig = Field(default_factory=FeedbackConfig)
    max_inventory_size: int = 50

    @model_validator(mode="after")
    def _check_ranges(self) -> BalanceConfig:
        if self.map.nodes_per_depth < 1:
            raise ValueError("map.nodes_per_depth must be at least 1")
        if self.energy.levels_per_tier < 1:
            raise ValueError("energy.levels_per_tier must be at least 1")
        if self.energy.node_min_cost > self.energy.node_max_cost:
            raise ValueError("energy.node_min_cost exceeds node_max_cost")
        if self.scoundrel.room_size < 2:
            raise ValueError("scoundrel.room_size must be at least 2")
        return self

    # -- persistence ---------------------------------------------------------

    def save(self, path: Path) -> None:
        """Save the config to a JSON file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.model_dump(mode="json"), indent=2))

    @classmethod
    def load(cls, path: Path) -> BalanceConfig:
        """Load a config from JSON, falling back to defaults.

        A missing or unreadable file yields the default config; the
        problem is logged rather than raised.
        """
        if not path.exists():
            return cls()
        try:
            return cls.model_validate(json.loads(path.read_text()))
        except (OSError, json.JSONDecodeError, ValidationError) as exc:
            logger.warning("Ignoring invalid balance config %s: %s", path, exc)
            return cls()


DEFAULT_CONFIG = BalanceConfig()
