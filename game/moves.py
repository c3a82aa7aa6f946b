"""
Move execution logic for a single 4x4 2048 board.

Boards are flat tuples of 16 log2 exponents in row-major order
(0 = empty, 1 = 2, 2 = 4, ...).

All directions are normalized to LEFT via transformation, the cached line
transition is applied to every row, then the board is transformed back.
"""

from functools import lru_cache
from typing import List, Tuple


# Action constants
UP = 0
DOWN = 1
LEFT = 2
RIGHT = 3

ACTIONS = (UP, DOWN, LEFT, RIGHT)

NUM_ROWS = 4
NUM_COLUMNS = 4
NUM_TILES = NUM_ROWS * NUM_COLUMNS

Tiles = Tuple[int, ...]


@lru_cache(maxsize=None)
def line_transition_left(line: Tiles) -> Tuple[Tiles, int]:
    """Slide and merge one line towards index 0.

    Merge-once rule: a tile produced by a merge does not merge again in
    the same move, so [2, 2, 2, 2] becomes [4, 4, 0, 0], not [8, 0, 0, 0].

    Args:
        line: Four log2 exponents

    Returns:
        (new_line, score_delta): Resulting exponents and the sum of the
        merged tile values
    """
    compacted = [value for value in line if value > 0]
    merged: List[int] = []
    score = 0

    position = 0
    while position < len(compacted):
        value = compacted[position]
        if position + 1 < len(compacted) and compacted[position + 1] == value:
            merged.append(value + 1)
            score += 1 << (value + 1)
            position += 2
        else:
            merged.append(value)
            position += 1

    merged.extend([0] * (len(line) - len(merged)))
    return tuple(merged), score


def transpose(tiles: Tiles) -> Tiles:
    """Swap rows and columns."""
    return tuple(
        tiles[column * NUM_COLUMNS + row]
        for row in range(NUM_ROWS)
        for column in range(NUM_COLUMNS)
    )


def reverse_rows(tiles: Tiles) -> Tiles:
    """Reverse each row (horizontal mirror)."""
    return tuple(
        tiles[row * NUM_COLUMNS + (NUM_COLUMNS - 1 - column)]
        for row in range(NUM_ROWS)
        for column in range(NUM_COLUMNS)
    )


def rotate_clockwise(tiles: Tiles) -> Tiles:
    """Rotate a quarter turn clockwise: (r, c) moves to (c, 3 - r)."""
    return reverse_rows(transpose(tiles))


def _move_left(tiles: Tiles) -> Tuple[Tiles, int]:
    rows = []
    score = 0
    for row in range(NUM_ROWS):
        start = row * NUM_COLUMNS
        new_line, delta = line_transition_left(tiles[start:start + NUM_COLUMNS])
        rows.extend(new_line)
        score += delta
    return tuple(rows), score


def execute_move(tiles: Tiles, action: int) -> Tuple[Tiles, int, bool]:
    """Execute one action without spawning a tile.

    Action mapping:
    - LEFT (2): apply LEFT directly
    - RIGHT (3): reverse rows, apply LEFT, reverse rows
    - UP (0): transpose, apply LEFT, transpose
    - DOWN (1): transpose, reverse rows, apply LEFT, reverse rows, transpose

    Args:
        tiles: Board exponents
        action: Action integer (0-3)

    Returns:
        (new_tiles, score, valid): valid is False when nothing moved

    Raises:
        ValueError: If action is not one of UP, DOWN, LEFT, RIGHT
    """
    if action == UP:
        new_tiles, score = _move_left(transpose(tiles))
        new_tiles = transpose(new_tiles)
    elif action == DOWN:
        new_tiles, score = _move_left(reverse_rows(transpose(tiles)))
        new_tiles = transpose(reverse_rows(new_tiles))
    elif action == LEFT:
        new_tiles, score = _move_left(tiles)
    elif action == RIGHT:
        new_tiles, score = _move_left(reverse_rows(tiles))
        new_tiles = reverse_rows(new_tiles)
    else:
        raise ValueError(f"Unknown action {action}")

    return new_tiles, score, new_tiles != tiles


def compute_valid_mask(tiles: Tiles) -> List[bool]:
    """Valid action mask in [UP, DOWN, LEFT, RIGHT] order."""
    return [execute_move(tiles, action)[2] for action in ACTIONS]
