"""Puzzle chamber -- find the exit tile before the reveal budget runs out.

The chamber is a 5x6 grid of hidden tiles:

- **exit** (1): revealing it wins immediately.
- **trap**: costs one extra reveal on top of the one spent.
- **treasure**: refunds the reveal just spent.
- **bonus**: auto-reveals one random unrevealed 4-neighbour for free; if
  that neighbour is the exit, the chamber is won.
- **neutral**: nothing happens.

Deeper chambers hold more traps and fewer treasures but grant a slightly
larger reveal budget (10 to 12).  The outcome is decided purely by the
tiles revealed; :meth:`PuzzleChamber.success_probability` is advisory.
"""

from __future__ import annotations

from dataclasses import dataclass
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
    Rarity,
)
from delvers_descent.core.rng import GameRNG
from delvers_descent.encounters.base import Encounter

GRID_ROWS = 5
GRID_COLS = 6
MIN_REVEALS = 10
MAX_REVEALS = 12


class TileType(str, Enum):
    EXIT = "exit"
    TRAP = "trap"
    TREASURE = "treasure"
    BONUS = "bonus"
    NEUTRAL = "neutral"


@dataclass
class Tile:
    row: int
    col: int
    type: TileType
    revealed: bool = False


@dataclass
class RevealResult:
    """What happened on a single reveal."""

    row: int
    col: int
    tile_type: TileType
    reveals_remaining: int
    cascade: tuple[int, int] | None = None
    cascade_type: TileType | None = None
    outcome: EncounterOutcome | None = None


def reveal_budget(depth: int) -> int:
    return max(MIN_REVEALS, min(MAX_REVEALS, 10 + (depth - 1) // 2))


def tile_distribution(depth: int) -> dict[TileType, int]:
    """Tile counts for a chamber at *depth*."""
    d = max(1, depth)
    counts = {
        TileType.EXIT: 1,
        TileType.TRAP: 4 + min(d - 1, 3),
        TileType.TREASURE: max(1, 4 - min(d - 1, 2)),
        TileType.BONUS: 4,
    }
    counts[TileType.NEUTRAL] = GRID_ROWS * GRID_COLS - sum(counts.values())
    return counts


class PuzzleChamber(Encounter):
    """Tile-reveal puzzle."""

    encounter_type = EncounterType.PUZZLE_CHAMBER

    def __init__(
        self,
        depth: int,
        rng: GameRNG,
        config: BalanceConfig | None = None,
    ) -> None:
        super().__init__(depth, rng, config)
        self.initial_reveals = reveal_budget(depth)
        self.reveals_remaining = self.initial_reveals
        self.grid = self._generate_grid()

    def _generate_grid(self) -> list[list[Tile]]:
        types: list[TileType] = []
        for tile_type, count in tile_distribution(self.depth).items():
            types.extend([tile_type] * count)
        self.rng.shuffle(types)
        return [
            [Tile(row=r, col=c, type=types[r * GRID_COLS + c]) for c in range(GRID_COLS)]
            for r in range(GRID_ROWS)
        ]

    # -- queries -------------------------------------------------------------

    def _snapshot(self) -> dict[str, Any]:
        return {
            "reveals_remaining": self.reveals_remaining,
            "initial_reveals": self.initial_reveals,
            "grid": [
                [
                    {
                        "row": t.row,
                        "col": t.col,
                        "revealed": t.revealed,
                        "type": t.type.value if t.revealed else None,
                    }
                    for t in row
                ]
                for row in self.grid
            ],
        }

    def tile_at(self, row: int, col: int) -> Tile:
        if not (0 <= row < GRID_ROWS and 0 <= col < GRID_COLS):
            raise InvalidSelectionError(f"Tile ({row}, {col}) is out of bounds")
        return self.grid[row][col]

    def find_tiles(self, tile_type: TileType) -> list[Tile]:
        return [t for row in self.grid for t in row if t.type == tile_type]

    def revealed_count(self) -> int:
        return sum(1 for row in self.grid for t in row if t.revealed)

    def progress(self) -> float:
        if self.is_complete():
            return 1.0
        used = self.initial_reveals - self.reveals_remaining
        return min(1.0, max(0.0, used / self.initial_reveals))

    def success_probability(self) -> float:
        """Advisory chance of finding the exit, bounded to [0.7, 0.9]."""
        prob = (
            0.82
            - max(0, (self.depth - 1) * 0.02)
            + (self.reveals_remaining - 8) * 0.01
        )
        return round(max(0.7, min(0.9, prob)), 4)

    # -- actions -------------------------------------------------------------

    def reveal_tile(self, row: int, col: int) -> RevealResult:
        """Reveal one tile and apply its effect.

        Raises
        ------
        EncounterAlreadyResolvedError
            If the chamber is already won or lost.
        InvalidSelectionError
            If the tile is out of bounds or already revealed.
        """
        self._ensure_active()
        tile = self.tile_at(row, col)
        if tile.revealed:
            raise InvalidSelectionError(f"Tile ({row}, {col}) is already revealed")

        tile.revealed = True
        self.reveals_remaining -= 1
        result = RevealResult(row=row, col=col, tile_type=tile.type, reveals_remaining=0)

        if tile.type == TileType.EXIT:
            result.outcome = self._finish(self._win())
        elif tile.type == TileType.TREASURE:
            self.reveals_remaining += 1
        elif tile.type == TileType.TRAP:
            self.reveals_remaining = max(0, self.reveals_remaining - 1)
        elif tile.type == TileType.BONUS:
            neighbour = self._cascade_from(tile)
            if neighbour is not None:
                result.cascade = (neighbour.row, neighbour.col)
                result.cascade_type = neighbour.type
                if neighbour.type == TileType.EXIT:
                    result.outcome = self._finish(self._win())

        if result.outcome is None and self.reveals_remaining <= 0:
            result.outcome = self._finish(self._lose())

        result.reveals_remaining = self.reveals_remaining
        return result

    def _cascade_from(self, tile: Tile) -> Tile | None:
        neighbours = [
            self.grid[r][c]
            for r, c in (
                (tile.row - 1, tile.col),
                (tile.row + 1, tile.col),
                (tile.row, tile.col - 1),
                (tile.row, tile.col + 1),
            )
            if 0 <= r < GRID_ROWS and 0 <= c < GRID_COLS and not self.grid[r][c].revealed
        ]
        if not neighbours:
            return None
        chosen = self.rng.random_choice(neighbours)
        chosen.revealed = True
        return chosen

    # -- outcomes ------------------------------------------------------------

    def _win(self) -> EncounterOutcome:
        base = 50 + 25 * self.depth + 5 * self.reveals_remaining
        value = round(base * self.rng.random_uniform(0.8, 1.2))
        reward = EncounterReward(
            items=[
                EncounterItem(
                    id="prismatic_gem",
                    name="Prismatic Gem",
                    rarity=Rarity.RARE,
                    type=ItemType.DISCOVERY,
                    set_id="crystal_caverns_set",
                    value=value,
                    description="A gem pried from the chamber's exit seal",
                )
            ],
            xp=20 * self.depth,
        )
        return self._success(
            f"You found the exit with {self.reveals_remaining} reveals to spare!",
            reward,
        )

    def _lose(self) -> EncounterOutcome:
        return self._failure(
            "Out of reveals. The chamber seals shut before you find the exit.",
            FailureConsequence(
                energy_loss=5 + 2 * self.depth,
                item_loss_risk=0.1,
            ),
        )
