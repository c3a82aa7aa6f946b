"""
2048 training.

Binds the game to the generic DQN trainer (state, critic, augmenter,
stats, model) and runs it on a background worker thread.
"""

from training.board_state import BoardState, Direction
from training.config import TrainingConfig, load_config
from training.critic import ScoreCritic
from training.data_augmenter import IdentityAugmenter, SymmetryAugmenter
from training.game_model import GameNetwork, TorchModel
from training.stats_recorder import TrainingStats, TrainingStatsRecorder
from training.training_thread import TrainingWorker

__all__ = [
    "BoardState",
    "Direction",
    "TrainingConfig",
    "load_config",
    "ScoreCritic",
    "IdentityAugmenter",
    "SymmetryAugmenter",
    "GameNetwork",
    "TorchModel",
    "TrainingStats",
    "TrainingStatsRecorder",
    "TrainingWorker",
]
