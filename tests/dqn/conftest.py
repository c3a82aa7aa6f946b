"""
Pytest fixtures for the generic DQN core.

Provides a tiny deterministic game so trainer, buffer and serialization
tests do not depend on 2048:

- CountdownState: starts at LENGTH steps left, every action takes one step.
  Action 1 is only legal when the number of steps left is even.
- FixedValueModel: a Model whose Q-values are one learnable vector, so
  TD targets can be computed by hand.
"""

from pathlib import Path
from typing import Dict, List, Optional

import pytest
import torch
from torch import Tensor

from dqn.interfaces import Action, Critic, Model, State
from dqn.trainer import Hyperparameters, Trainer
from training.data_augmenter import IdentityAugmenter
from training.stats_recorder import TrainingStatsRecorder


class CountdownAction(Action):
    def __init__(self, value: int):
        self.value = value

    def index(self) -> int:
        return self.value

    def __eq__(self, other):
        return isinstance(other, CountdownAction) and other.value == self.value

    def __hash__(self):
        return hash(self.value)

    def __repr__(self):
        return f"CountdownAction({self.value})"


class CountdownState(State):
    LENGTH = 6
    NUM_FEATURES = LENGTH + 1
    NUM_ACTIONS = 2

    def __init__(self, steps_left: int = LENGTH, score: int = 0):
        self.steps_left = steps_left
        self.score = score

    @classmethod
    def initial_state(cls) -> "CountdownState":
        return cls()

    def possible_actions(self) -> List[CountdownAction]:
        if self.steps_left == 0:
            return []
        if self.steps_left % 2 == 0:
            return [CountdownAction(0), CountdownAction(1)]
        return [CountdownAction(0)]

    def advance(self, action: CountdownAction) -> "CountdownState":
        return CountdownState(self.steps_left - 1, self.score + 1 + action.index())

    def is_terminal(self) -> bool:
        return self.steps_left == 0

    def as_features(self) -> List[float]:
        features = [0.0] * self.NUM_FEATURES
        features[self.steps_left] = 1.0
        return features

    def metadata(self) -> Dict[str, int]:
        return {"score": self.score, "best_tile": self.steps_left}


class ConstantCritic(Critic):
    def __init__(self, value: float = 1.0):
        self.value = value

    def reward(self, state, action, next_state) -> float:
        return self.value


class FixedValueModel(Model):
    """Same Q-values for every state; records the losses it is given."""

    def __init__(self, values: List[float]):
        self.values = torch.tensor(values, dtype=torch.float32, requires_grad=True)
        self.losses: List[float] = []
        self.learning_rates: List[float] = []

    def forward(self, features: Tensor) -> Tensor:
        return self.values.unsqueeze(0).expand(features.shape[0], -1)

    def clone(self) -> "FixedValueModel":
        return FixedValueModel(self.values.detach().tolist())

    def apply_gradient_step(self, loss: Tensor, learning_rate: float) -> "FixedValueModel":
        self.losses.append(loss.item())
        self.learning_rates.append(learning_rate)
        return self

    def save(self, path: Path) -> None:
        torch.save({"values": self.values.detach()}, path)

    def load(self, path: Path) -> "FixedValueModel":
        return FixedValueModel(torch.load(path)["values"].tolist())


@pytest.fixture
def state_type():
    return CountdownState


@pytest.fixture
def action_type():
    return CountdownAction


@pytest.fixture
def fixed_value_model():
    """Factory for FixedValueModel."""
    return FixedValueModel


@pytest.fixture
def make_hyperparameters():
    """Hyperparameters sized for tests; keyword overrides allowed."""
    def _make(**overrides) -> Hyperparameters:
        values = dict(
            batch_size=4,
            replay_buffer_capacity=16,
            epsilon_decay_frames=10,
            training_frequency=1,
            network_sync_frequency=1000,
        )
        values.update(overrides)
        return Hyperparameters(**values)
    return _make


@pytest.fixture
def make_trainer(make_hyperparameters):
    """Trainer over CountdownState with a constant critic."""
    def _make(
        hyperparameters: Optional[Hyperparameters] = None,
        reward: float = 1.0,
        **kwargs,
    ) -> Trainer:
        return Trainer(
            hyperparameters=hyperparameters or make_hyperparameters(),
            state_type=CountdownState,
            critic=ConstantCritic(reward),
            data_augmenter=IdentityAugmenter(),
            stats_recorder=TrainingStatsRecorder(),
            **kwargs,
        )
    return _make
