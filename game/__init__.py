"""Game module for 2048 RL project."""

from game.board import Board, InvalidMoveError, SpawnFn

__all__ = ["Board", "InvalidMoveError", "SpawnFn"]
