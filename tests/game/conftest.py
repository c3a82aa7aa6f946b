"""
Pytest fixtures for Board tests.

This module provides:
- Deterministic spawn function factories
- A Board factory from raw tile values
- Action constants
"""

from types import SimpleNamespace
from typing import List, Optional, Tuple

import pytest

from game.board import Board, SpawnFn
from game.moves import DOWN, LEFT, RIGHT, UP


@pytest.fixture
def make_spawn_fn():
    """Factory for spawn functions with predetermined outputs.

    Returns:
        Callable that creates spawn functions cycling through
        (position, value) pairs
    """
    def _make_spawn_fn(positions: List[int], values: List[int]) -> SpawnFn:
        call_count = [0]

        def spawn_fn(empty_cells: List[int]) -> Tuple[int, int]:
            idx = call_count[0] % len(positions)
            call_count[0] += 1
            return positions[idx], values[idx]

        return spawn_fn

    return _make_spawn_fn


@pytest.fixture
def first_empty_spawn():
    """Spawn a 2 on the lowest-index empty cell."""
    def spawn_fn(empty_cells: List[int]) -> Tuple[int, int]:
        return empty_cells[0], 1
    return spawn_fn


@pytest.fixture
def board_from_grid(first_empty_spawn):
    """Create a Board from a 4x4 grid of raw tile values.

    Returns:
        Callable that converts a grid to a Board spawning on the first
        empty cell unless another spawn function is given
    """
    def _board_from_grid(
        grid: List[List[int]],
        score: int = 0,
        spawn_fn: Optional[SpawnFn] = None,
    ) -> Board:
        return Board.from_values(grid, score=score, spawn_fn=spawn_fn or first_empty_spawn)

    return _board_from_grid


@pytest.fixture
def actions():
    """Action constants for readability."""
    return SimpleNamespace(UP=UP, DOWN=DOWN, LEFT=LEFT, RIGHT=RIGHT)
