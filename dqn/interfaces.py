"""
Capability interfaces consumed by the DQN trainer.

The trainer is generic over the game it learns. Each domain supplies one
concrete implementation of every interface below and hands them to the
Trainer at construction time:

- State / Action: the game being played
- Critic: scores a single state transition
- DataAugmenter: expands one observed step into stored transitions
- StatsRecorder: accumulates per-epoch statistics
- Model: the numeric value function (forward, clone, optimizer step)

The trainer only ever talks to these abstractions, never to the concrete
game rules or network weights.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Sequence

from torch import Tensor

if TYPE_CHECKING:
    from dqn.replay_buffer import Transition


class Action(ABC):
    """A move that can be applied to a State."""

    @abstractmethod
    def index(self) -> int:
        """Stable integer id in [0, State.NUM_ACTIONS)."""
        pass


class State(ABC):
    """A game position.

    States are values: advance() returns a new State and never mutates
    the receiver, so copies can be taken freely.

    Attributes:
        NUM_FEATURES: Length of as_features()
        NUM_ACTIONS: Number of distinct action indices
    """

    NUM_FEATURES: int = 0
    NUM_ACTIONS: int = 0

    @classmethod
    @abstractmethod
    def initial_state(cls) -> "State":
        """Start position of a fresh episode."""
        pass

    @abstractmethod
    def possible_actions(self) -> List[Action]:
        """Distinct actions that are legal from this state."""
        pass

    @abstractmethod
    def advance(self, action: Action) -> "State":
        """Apply an action and return the resulting state."""
        pass

    @abstractmethod
    def is_terminal(self) -> bool:
        """Whether the episode is over."""
        pass

    @abstractmethod
    def as_features(self) -> Sequence[float]:
        """Fixed-length numeric encoding fed to the model."""
        pass

    def metadata(self) -> Dict[str, Any]:
        """Domain statistics for reporting (score, best tile, ...)."""
        return {}


class Critic(ABC):
    """Reward function."""

    @abstractmethod
    def reward(self, state: State, action: Action, next_state: State) -> float:
        pass


class DataAugmenter(ABC):
    """Turns one observed step into one or more stored transitions."""

    @abstractmethod
    def augment(
        self,
        state: State,
        action: Action,
        reward: float,
        next_state: State,
    ) -> List["Transition"]:
        pass


class StatsRecorder(ABC):
    """Accumulates generic per-epoch training signals."""

    @abstractmethod
    def record_new_epoch(self, epoch_number: int) -> None:
        pass

    @abstractmethod
    def record_reward(self, reward: float) -> None:
        pass

    @abstractmethod
    def record_final_state(self, state: State, epoch_frames: int) -> None:
        pass

    @abstractmethod
    def record_replay_buffer_size(self, size: int) -> None:
        pass

    @abstractmethod
    def record_epsilon(self, epsilon: float) -> None:
        pass

    @abstractmethod
    def stats(self) -> Any:
        """Snapshot of the statistics of the most recent epoch."""
        pass


class Model(ABC):
    """Value function with an attached optimizer.

    The trainer treats the weights as opaque: it evaluates the model,
    builds a loss from the outputs and hands the loss back for one
    optimizer step.
    """

    @abstractmethod
    def forward(self, features: Tensor) -> Tensor:
        """Evaluate a batch.

        Args:
            features: (N, NUM_FEATURES) float tensor

        Returns:
            (N, NUM_ACTIONS) predicted action values
        """
        pass

    @abstractmethod
    def clone(self) -> "Model":
        """Deep copy of the weights, used as the target network."""
        pass

    @abstractmethod
    def apply_gradient_step(self, loss: Tensor, learning_rate: float) -> "Model":
        """Backpropagate the loss and take one optimizer step."""
        pass

    @abstractmethod
    def save(self, path: Path) -> None:
        pass

    @abstractmethod
    def load(self, path: Path) -> "Model":
        pass
