"""
Immutable 4x4 2048 board.

Every move returns a new Board, so boards can be shared and copied freely
(the replay augmentation derives several variants from one position).

Key rules:
- Merge-once rule: [2,2,2,2] -> [4,4,0,0], NOT [8,0,0,0]
- Invalid moves raise InvalidMoveError
- Tile spawn: 2 (90%) or 4 (10%) at a random empty cell after every move
- The game is over when no move changes the board
"""

from dataclasses import dataclass, field, replace
from typing import Callable, List, Optional, Sequence, Tuple

import torch

from game.moves import (
    ACTIONS,
    NUM_COLUMNS,
    NUM_ROWS,
    NUM_TILES,
    Tiles,
    compute_valid_mask,
    execute_move,
    reverse_rows,
    rotate_clockwise,
)


class InvalidMoveError(Exception):
    """Raised when an action causes no board change.

    Callers pick from Board.valid_actions() to avoid it.
    """
    pass


# Type alias for spawn function
# Args: indices of empty cells
# Returns: (position, value) where value is log2 encoded (1=2, 2=4)
SpawnFn = Callable[[List[int]], Tuple[int, int]]


def default_spawn_fn(empty_cells: List[int]) -> Tuple[int, int]:
    """Standard 2048 spawn: 2 (90%) or 4 (10%) at a random empty cell."""
    position = empty_cells[torch.randint(len(empty_cells), (1,)).item()]
    value = 1 if torch.rand(1).item() < 0.9 else 2
    return position, value


def _to_exponent(value: int) -> int:
    if value == 0:
        return 0
    if value < 2 or value & (value - 1) != 0:
        raise ValueError(f"Tile value must be 0 or a power of 2 >= 2, got {value}")
    return value.bit_length() - 1


@dataclass(frozen=True)
class Board:
    """A 4x4 2048 position.

    Attributes:
        tiles: 16 log2 exponents in row-major order (0 = empty)
        score: Sum of all tiles produced by merges so far
        spawn_fn: Tile spawner used by move() and new()
    """
    tiles: Tiles = (0,) * NUM_TILES
    score: int = 0
    spawn_fn: SpawnFn = field(default=default_spawn_fn, compare=False, repr=False)

    def __post_init__(self):
        if len(self.tiles) != NUM_TILES:
            raise ValueError(f"Board needs {NUM_TILES} tiles, got {len(self.tiles)}")

    @classmethod
    def new(cls, spawn_fn: Optional[SpawnFn] = None) -> "Board":
        """Empty board with two spawned tiles."""
        board = cls(spawn_fn=spawn_fn if spawn_fn is not None else default_spawn_fn)
        return board.spawn().spawn()

    @classmethod
    def from_values(
        cls,
        rows: Sequence[Sequence[int]],
        score: int = 0,
        spawn_fn: Optional[SpawnFn] = None,
    ) -> "Board":
        """Build a board from tile values, e.g. [[2, 0, 0, 4], ...]."""
        if len(rows) != NUM_ROWS or any(len(row) != NUM_COLUMNS for row in rows):
            raise ValueError(f"Board must be {NUM_ROWS}x{NUM_COLUMNS}")
        tiles = tuple(_to_exponent(value) for row in rows for value in row)
        return cls(
            tiles=tiles,
            score=score,
            spawn_fn=spawn_fn if spawn_fn is not None else default_spawn_fn,
        )

    def value_at(self, row: int, column: int) -> int:
        """Tile value at a cell, 0 when empty."""
        exponent = self.tiles[row * NUM_COLUMNS + column]
        return 1 << exponent if exponent > 0 else 0

    def values(self) -> List[List[int]]:
        return [
            [self.value_at(row, column) for column in range(NUM_COLUMNS)]
            for row in range(NUM_ROWS)
        ]

    def max_tile(self) -> int:
        exponent = max(self.tiles)
        return 1 << exponent if exponent > 0 else 0

    def empty_cells(self) -> List[int]:
        return [index for index, exponent in enumerate(self.tiles) if exponent == 0]

    def spawn(self) -> "Board":
        """Place one new tile on a random empty cell.

        Raises:
            ValueError: If the board is full
        """
        empty = self.empty_cells()
        if not empty:
            raise ValueError("Cannot spawn a tile on a full board")

        position, value = self.spawn_fn(empty)
        tiles = list(self.tiles)
        tiles[position] = value
        return replace(self, tiles=tuple(tiles))

    def can_move(self, action: int) -> bool:
        return execute_move(self.tiles, action)[2]

    def valid_actions(self) -> List[int]:
        """Actions that change the board, in [UP, DOWN, LEFT, RIGHT] order."""
        return [
            action for action, valid in zip(ACTIONS, compute_valid_mask(self.tiles))
            if valid
        ]

    def is_over(self) -> bool:
        if 0 in self.tiles:
            return False
        return not any(compute_valid_mask(self.tiles))

    def slide(self, action: int) -> "Board":
        """Apply an action without spawning.

        Raises:
            InvalidMoveError: If the action does not change the board
        """
        new_tiles, gained, valid = execute_move(self.tiles, action)
        if not valid:
            raise InvalidMoveError(f"Action {action} does not change the board")
        return replace(self, tiles=new_tiles, score=self.score + gained)

    def move(self, action: int) -> "Board":
        """Apply an action and spawn a new tile.

        Raises:
            InvalidMoveError: If the action does not change the board
        """
        return self.slide(action).spawn()

    def mirrored(self) -> "Board":
        """Horizontal mirror: (r, c) -> (r, 3 - c)."""
        return replace(self, tiles=reverse_rows(self.tiles))

    def rotated_clockwise(self) -> "Board":
        """Quarter turn clockwise: (r, c) -> (c, 3 - r)."""
        return replace(self, tiles=rotate_clockwise(self.tiles))

    def __str__(self) -> str:
        return "\n".join(
            " ".join(f"{value:>5}" for value in row) for row in self.values()
        )
