"""Map generator for dungeon runs.

Builds a layered directed acyclic graph.  Each depth holds a fixed slate
of nodes (``nodes_per_depth``); nodes at depth *d* connect only to nodes
at depth *d + 1*.  Encounter types are drawn from a weighted pool that
shifts with depth:

- hazard and risk_event gain weight every level,
- puzzle_chamber and discovery_site lose weight every level,
- the remaining types keep their base weight.

Wiring guarantees:

- every node below depth 1 has at least one incoming edge (no orphans),
- every node above the last depth has at least one outgoing edge,

so from any node there is always a path to the bottom of the map.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from pydantic import BaseModel

from delvers_descent.core.config import DEFAULT_CONFIG, BalanceConfig
from delvers_descent.core.models import DungeonMap, DungeonNode, EncounterType, Shortcut
from delvers_descent.core.rng import GameRNG
from delvers_descent.economy.energy import EnergyCalculator

logger = logging.getLogger(__name__)


def node_id(depth: int, position: int) -> str:
    return f"depth{depth}-node{position}"


class MapValidation(BaseModel):
    is_valid: bool
    errors: list[str]


@dataclass
class MapStatistics:
    """Summary numbers for a generated map."""

    total_nodes: int
    max_depth: int
    nodes_per_depth: dict[int, int] = field(default_factory=dict)
    type_counts: dict[str, int] = field(default_factory=dict)
    total_connections: int = 0
    average_connections: float = 0.0
    shortcut_count: int = 0


class MapGenerator:
    """Generates layered dungeon maps.

    Parameters
    ----------
    rng:
        RNG for type rolls, connections and shortcuts.
    config:
        Balance config.  Defaults to ``DEFAULT_CONFIG``.
    energy:
        Calculator for node entry and return costs.
    """

    def __init__(
        self,
        rng: GameRNG,
        config: BalanceConfig | None = None,
        energy: EnergyCalculator | None = None,
    ) -> None:
        self.rng = rng
        self.config = config or DEFAULT_CONFIG
        self.energy = energy or EnergyCalculator(self.config)

    # ------------------------------------------------------------------
    # Type distribution
    # ------------------------------------------------------------------

    def type_weights(self, depth: int) -> dict[EncounterType, float]:
        """Encounter type weights at *depth*."""
        cfg = self.config.map
        shift = cfg.depth_weight_shift * max(0, depth - 1)
        weights: dict[EncounterType, float] = {}
        for node_type, base in cfg.base_type_weights.items():
            if node_type in cfg.harder_types:
                weight = base + shift
            elif node_type in cfg.easier_types:
                weight = max(cfg.min_type_weight, base - shift)
            else:
                weight = base
            weights[node_type] = weight
        return weights

    def _roll_type(self, depth: int) -> EncounterType:
        weights = self.type_weights(depth)
        return self.rng.weighted_choice(list(weights.items()))

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def generate_depth_level(self, depth: int) -> list[DungeonNode]:
        """Generate the unconnected slate of nodes for one depth."""
        return_cost = self.energy.calculate_return_cost(depth)
        nodes: list[DungeonNode] = []
        for position in range(self.config.map.nodes_per_depth):
            node_type = self._roll_type(depth)
            nodes.append(
                DungeonNode(
                    id=node_id(depth, position),
                    depth=depth,
                    position=position,
                    type=node_type,
                    energy_cost=self.energy.calculate_node_cost(depth, node_type),
                    return_cost=return_cost,
                    is_revealed=depth == 1,
                )
            )
        return nodes

    def generate_full_map(self, max_depth: int | None = None) -> DungeonMap:
        """Generate every layer, wire them together and roll shortcuts."""
        if max_depth is None:
            max_depth = self.config.map.default_max_depth
        if max_depth < 1:
            raise ValueError(f"max_depth must be at least 1, got {max_depth}")

        layers = [self.generate_depth_level(d) for d in range(1, max_depth + 1)]
        for upper, lower in zip(layers, layers[1:]):
            self._connect_layers(upper, lower)

        nodes = [n for layer in layers for n in layer]
        shortcuts = self._generate_shortcuts(max_depth)
        logger.debug(
            "Generated map: %d nodes, %d depths, %d shortcuts",
            len(nodes), max_depth, len(shortcuts),
        )
        return DungeonMap(max_depth=max_depth, nodes=nodes, shortcuts=shortcuts)

    def _connect_layers(
        self,
        upper: list[DungeonNode],
        lower: list[DungeonNode],
    ) -> None:
        # Pass 1: every lower node gets a parent.
        for child in lower:
            parent = self.rng.random_choice(upper)
            if child.id not in parent.connections:
                parent.connections.append(child.id)

        # Pass 2: every upper node gets a child, plus maybe one extra.
        for parent in upper:
            if not parent.connections:
                parent.connections.append(self.rng.random_choice(lower).id)
            if self.rng.chance(self.config.map.extra_connection_chance):
                candidates = [c for c in lower if c.id not in parent.connections]
                if candidates:
                    parent.connections.append(self.rng.random_choice(candidates).id)

        for parent in upper:
            parent.connections.sort()

    def _generate_shortcuts(self, max_depth: int) -> list[Shortcut]:
        cfg = self.config.map
        shortcuts: list[Shortcut] = []
        for depth in range(2, max_depth + 1):
            if not self.rng.chance(cfg.shortcut_chance):
                continue
            shortcuts.append(
                Shortcut(
                    id=f"shortcut-depth{depth}",
                    from_depth=depth,
                    to_depth=self.rng.random_int(0, depth - 1),
                    energy_reduction=self.rng.random_int(
                        cfg.shortcut_min_reduction, cfg.shortcut_max_reduction,
                    ),
                    is_permanent=True,
                )
            )
        return shortcuts

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @staticmethod
    def get_nodes_at_depth(dungeon: DungeonMap, depth: int) -> list[DungeonNode]:
        return dungeon.nodes_at_depth(depth)

    @staticmethod
    def get_connected_nodes(dungeon: DungeonMap, from_id: str) -> list[DungeonNode]:
        """Nodes reachable in one step from *from_id*."""
        node = dungeon.get_node(from_id)
        return [dungeon.get_node(cid) for cid in node.connections if dungeon.has_node(cid)]

    @staticmethod
    def get_paths_to_depth(
        dungeon: DungeonMap,
        target_depth: int,
        start_id: str | None = None,
    ) -> list[list[str]]:
        """Every node-id path from *start_id* (or each depth-1 node) down to
        *target_depth*.
        """
        if start_id is None:
            starts = dungeon.nodes_at_depth(1)
        else:
            starts = [dungeon.get_node(start_id)]

        paths: list[list[str]] = []

        def walk(node: DungeonNode, path: list[str]) -> None:
            path = [*path, node.id]
            if node.depth == target_depth:
                paths.append(path)
                return
            if node.depth > target_depth:
                return
            for cid in node.connections:
                if dungeon.has_node(cid):
                    walk(dungeon.get_node(cid), path)

        for start in starts:
            walk(start, [])
        return paths

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    @staticmethod
    def validate_map(dungeon: DungeonMap) -> MapValidation:
        """Check the structural guarantees of a map."""
        errors: list[str] = []
        ids = [n.id for n in dungeon.nodes]
        seen: set[str] = set()
        for nid in ids:
            if nid in seen:
                errors.append(f"Duplicate node id: {nid}")
            seen.add(nid)

        by_id = {n.id: n for n in dungeon.nodes}
        depths = sorted({n.depth for n in dungeon.nodes})
        if not depths:
            errors.append("Map has no nodes")
        else:
            if depths != list(range(1, depths[-1] + 1)):
                errors.append(f"Depths are not contiguous from 1: {depths}")
            max_depth = depths[-1]

            incoming: dict[str, int] = {nid: 0 for nid in by_id}
            for node in dungeon.nodes:
                for cid in node.connections:
                    target = by_id.get(cid)
                    if target is None:
                        errors.append(f"Node {node.id} connects to unknown node {cid}")
                        continue
                    if target.depth != node.depth + 1:
                        errors.append(
                            f"Node {node.id} connects to {cid} at depth "
                            f"{target.depth} (expected {node.depth + 1})"
                        )
                    incoming[cid] += 1
                if node.depth < max_depth and not node.connections:
                    errors.append(f"Node {node.id} has no forward connection")

            for node in dungeon.nodes:
                if node.depth > 1 and incoming[node.id] == 0:
                    errors.append(f"Orphan node: {node.id}")

        return MapValidation(is_valid=not errors, errors=errors)

    @staticmethod
    def get_map_statistics(dungeon: DungeonMap) -> MapStatistics:
        stats = MapStatistics(
            total_nodes=len(dungeon.nodes),
            max_depth=max((n.depth for n in dungeon.nodes), default=0),
            shortcut_count=len(dungeon.shortcuts),
        )
        for node in dungeon.nodes:
            stats.nodes_per_depth[node.depth] = stats.nodes_per_depth.get(node.depth, 0) + 1
            stats.type_counts[node.type.value] = stats.type_counts.get(node.type.value, 0) + 1
            stats.total_connections += len(node.connections)
        if stats.total_nodes:
            stats.average_connections = round(stats.total_connections / stats.total_nodes, 2)
        return stats
