"""
Generic Deep Q-Learning with Prioritized Experience Replay.

The trainer is written against the capability interfaces in
dqn.interfaces; a game plugs in by implementing them.
"""

from dqn.interfaces import Action, Critic, DataAugmenter, Model, State, StatsRecorder
from dqn.replay_buffer import ReplayBuffer, TrainingBatch, Transition
from dqn.sum_tree import SumTree
from dqn.trainer import Hyperparameters, Trainer

__all__ = [
    "Action",
    "Critic",
    "DataAugmenter",
    "Model",
    "State",
    "StatsRecorder",
    "ReplayBuffer",
    "TrainingBatch",
    "Transition",
    "SumTree",
    "Hyperparameters",
    "Trainer",
]
