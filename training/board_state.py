"""
2048 bindings for the generic DQN trainer.

Direction is the Action and BoardState the State. Features are a one-hot
encoding of every tile over 11 channels, from 2048 (channel 0) down to 2
(channel 10); empty cells and tiles above 2048 encode as all zeros.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from dqn.interfaces import Action, State
from game.board import Board, SpawnFn
from game.moves import DOWN, LEFT, NUM_TILES, RIGHT, UP


NUM_CHANNELS = 11


class Direction(Enum):
    """Move direction, valued by the game's action integers."""

    UP = UP
    DOWN = DOWN
    LEFT = LEFT
    RIGHT = RIGHT

    def index(self) -> int:
        return self.value

    def mirrored(self) -> "Direction":
        """Direction after a horizontal mirror: left and right swap."""
        return _MIRRORED[self]

    def rotated_clockwise(self) -> "Direction":
        """Direction after a clockwise quarter turn of the board."""
        return _ROTATED_CLOCKWISE[self]


# Enum and ABCMeta metaclasses do not combine, so register instead of inheriting
Action.register(Direction)

_MIRRORED = {
    Direction.UP: Direction.UP,
    Direction.DOWN: Direction.DOWN,
    Direction.LEFT: Direction.RIGHT,
    Direction.RIGHT: Direction.LEFT,
}

_ROTATED_CLOCKWISE = {
    Direction.UP: Direction.RIGHT,
    Direction.RIGHT: Direction.DOWN,
    Direction.DOWN: Direction.LEFT,
    Direction.LEFT: Direction.UP,
}


class BoardState(State):
    """A 2048 position as seen by the trainer."""

    NUM_FEATURES = NUM_TILES * NUM_CHANNELS
    NUM_ACTIONS = len(Direction)

    # Spawner for initial_state(); None uses the standard random spawn
    spawn_fn: Optional[SpawnFn] = None

    def __init__(self, board: Board):
        self.board = board

    @classmethod
    def initial_state(cls) -> "BoardState":
        return cls(Board.new(cls.spawn_fn))

    def possible_actions(self) -> List[Direction]:
        return [Direction(action) for action in self.board.valid_actions()]

    def advance(self, action: Direction) -> "BoardState":
        return type(self)(self.board.move(action.value))

    def is_terminal(self) -> bool:
        return self.board.is_over()

    def as_features(self) -> List[float]:
        features = [0.0] * self.NUM_FEATURES
        for position, exponent in enumerate(self.board.tiles):
            if 1 <= exponent <= NUM_CHANNELS:
                features[position * NUM_CHANNELS + NUM_CHANNELS - exponent] = 1.0
        return features

    def metadata(self) -> Dict[str, Any]:
        return {"score": self.board.score, "best_tile": self.board.max_tile()}

    def mirrored(self) -> "BoardState":
        return type(self)(self.board.mirrored())

    def rotated_clockwise(self) -> "BoardState":
        return type(self)(self.board.rotated_clockwise())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BoardState):
            return NotImplemented
        return self.board == other.board

    def __hash__(self) -> int:
        return hash(self.board)

    def __repr__(self) -> str:
        return f"BoardState(score={self.board.score}, tiles={self.board.tiles})"
