"""
Pytest fixtures for the 2048 training bindings.

Configs here are sized so a full episode with training takes well under
a second on CPU.
"""

from typing import List, Tuple

import pytest

from dqn.trainer import Hyperparameters
from game.board import Board
from training.board_state import BoardState
from training.config import LoggingConfig, NetworkConfig, TrainingConfig, WorkerConfig


def first_empty_spawn(empty_cells: List[int]) -> Tuple[int, int]:
    return empty_cells[0], 1


@pytest.fixture
def make_state():
    """Create a BoardState from a 4x4 grid of raw tile values."""
    def _make_state(grid, score: int = 0) -> BoardState:
        return BoardState(Board.from_values(grid, score=score, spawn_fn=first_empty_spawn))
    return _make_state


@pytest.fixture
def small_config():
    """Small TrainingConfig without an event log file."""
    return TrainingConfig(
        hyperparameters=Hyperparameters(
            batch_size=16,
            replay_buffer_capacity=512,
            training_frequency=4,
            network_sync_frequency=200,
            epsilon_decay_frames=50,
        ),
        network=NetworkConfig(hidden_layers=[32]),
        worker=WorkerConfig(idle_poll_seconds=0.01, queue_size=64),
        logging=LoggingConfig(event_log=None, log_frequency=1),
    )
