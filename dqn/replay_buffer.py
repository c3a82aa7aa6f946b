"""
Prioritized Experience Replay Buffer.

Ring buffer of flattened transitions paired 1:1 with a SumTree of
priorities. Slot i of the storage tensors and leaf i of the tree always
describe the same transition; both are written together in store().

Priority of a transition: p_i = (|TD_error_i| + epsilon)^alpha
Probability of sampling it: P(i) = p_i / sum(p_j)

New transitions get the largest priority seen so far, so every transition
is sampled at least once before its real TD error is known.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Union

import torch
from torch import Tensor

from dqn.interfaces import Action, DataAugmenter, State
from dqn.sum_tree import SumTree


# Names of the per-slot storage tensors, also used as chunk array names
TRANSITION_FIELDS = (
    "states",
    "actions",
    "rewards",
    "next_states",
    "invalid_action_masks",
    "is_terminal",
)


@dataclass
class Transition:
    """A single flattened transition.

    Attributes:
        state: (NUM_FEATURES,) float32 features of the state
        action: Action index
        reward: Critic reward
        next_state: (NUM_FEATURES,) float32 features of the next state
        invalid_action_mask: (NUM_ACTIONS,) True where the action is not
            legal from next_state
        is_terminal: 1.0 if next_state ends the episode, else 0.0
    """
    state: Tensor
    action: int
    reward: float
    next_state: Tensor
    invalid_action_mask: Tensor
    is_terminal: float

    @classmethod
    def from_states(
        cls,
        state: State,
        action: Action,
        reward: float,
        next_state: State,
    ) -> "Transition":
        """Flatten a live (state, action, reward, next_state) step."""
        invalid_action_mask = torch.ones(next_state.NUM_ACTIONS, dtype=torch.bool)
        for legal in next_state.possible_actions():
            invalid_action_mask[legal.index()] = False

        return cls(
            state=torch.as_tensor(state.as_features(), dtype=torch.float32),
            action=action.index(),
            reward=float(reward),
            next_state=torch.as_tensor(next_state.as_features(), dtype=torch.float32),
            invalid_action_mask=invalid_action_mask,
            is_terminal=1.0 if next_state.is_terminal() else 0.0,
        )


@dataclass
class TrainingBatch:
    """A prioritized sample of transitions.

    Attributes:
        states: (B, NUM_FEATURES) float32
        actions: (B,) long
        rewards: (B,) float32
        next_states: (B, NUM_FEATURES) float32
        invalid_action_masks: (B, NUM_ACTIONS) bool
        is_terminal: (B,) float32
        weights: (B,) float32 importance-sampling weights, max is 1
        indices: (B,) long buffer slots, needed for priority feedback
    """
    states: Tensor
    actions: Tensor
    rewards: Tensor
    next_states: Tensor
    invalid_action_masks: Tensor
    is_terminal: Tensor
    weights: Tensor
    indices: Tensor

    def __len__(self) -> int:
        return self.indices.shape[0]


class ReplayBuffer:
    """Prioritized ring buffer of transitions.

    Not thread-safe: the buffer and its tree are owned by a single
    training thread.
    """

    DEFAULT_PRIORITY = 1.0

    def __init__(
        self,
        augmenter: DataAugmenter,
        capacity: int,
        num_features: int,
        num_actions: int,
        device: torch.device = torch.device("cpu"),
    ):
        """Initialize an empty buffer.

        Args:
            augmenter: Expands each stored step into transitions
            capacity: Maximum number of transitions, power of two
            num_features: Length of a state feature vector
            num_actions: Number of action indices
            device: Device for the storage tensors

        Raises:
            ValueError: If capacity is not a power of two
        """
        self.augmenter = augmenter
        self.num_features = num_features
        self.num_actions = num_actions
        self.device = device

        self.tree = SumTree(capacity, device)
        self._capacity = capacity
        self._size = 0
        self._write_position = 0
        self.max_priority = self.DEFAULT_PRIORITY

        # Pre-allocate storage tensors
        self.states = torch.zeros(capacity, num_features, dtype=torch.float32, device=device)
        self.actions = torch.zeros(capacity, dtype=torch.long, device=device)
        self.rewards = torch.zeros(capacity, dtype=torch.float32, device=device)
        self.next_states = torch.zeros(capacity, num_features, dtype=torch.float32, device=device)
        self.invalid_action_masks = torch.zeros(
            capacity, num_actions, dtype=torch.bool, device=device
        )
        self.is_terminal = torch.zeros(capacity, dtype=torch.float32, device=device)

    @classmethod
    def from_transitions(
        cls,
        augmenter: DataAugmenter,
        capacity: int,
        write_position: int,
        transitions: Optional[Dict[str, Tensor]],
        num_features: int,
        num_actions: int,
        device: torch.device = torch.device("cpu"),
    ) -> "ReplayBuffer":
        """Rebuild a buffer from slot-ordered transition arrays.

        Priorities are not part of the arrays: every restored slot gets
        DEFAULT_PRIORITY.

        Args:
            augmenter: Augmenter for future stores
            capacity: Capacity of the original buffer
            write_position: Next slot the original buffer would write
            transitions: Tensors keyed by TRANSITION_FIELDS, slots 0..n-1,
                or None for an empty buffer
            num_features: Length of a state feature vector
            num_actions: Number of action indices
            device: Device for the storage tensors

        Raises:
            ValueError: If the arrays do not fit the capacity
        """
        size = transitions["actions"].shape[0] if transitions else 0
        if size > capacity:
            raise ValueError(
                f"Cannot restore {size} transitions into a buffer of capacity {capacity}"
            )
        if not 0 <= write_position < capacity:
            raise ValueError(
                f"Write position {write_position} out of range for capacity {capacity}"
            )

        buffer = cls(
            augmenter=augmenter,
            capacity=capacity,
            num_features=num_features,
            num_actions=num_actions,
            device=device,
        )
        buffer._size = size
        buffer._write_position = write_position

        if size > 0:
            for name in TRANSITION_FIELDS:
                storage = getattr(buffer, name)
                storage[:size] = transitions[name].to(device=device, dtype=storage.dtype)
            buffer.tree.update_batch(
                torch.arange(size, device=device),
                torch.full((size,), cls.DEFAULT_PRIORITY, dtype=torch.float64),
            )

        return buffer

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def size(self) -> int:
        return self._size

    @property
    def write_position(self) -> int:
        return self._write_position

    def __len__(self) -> int:
        return self._size

    def is_ready(self, min_size: int) -> bool:
        """Check if buffer has enough samples for training."""
        return self._size >= min_size

    def store(self, state: State, action: Action, reward: float, next_state: State) -> None:
        """Augment one environment step and store every resulting transition.

        Each transition lands at write_position, overwriting the oldest
        entry once the buffer is full, and receives max_priority.
        """
        slots: List[int] = []

        for transition in self.augmenter.augment(state, action, reward, next_state):
            slot = self._write_position
            self.states[slot] = transition.state.to(self.device)
            self.actions[slot] = transition.action
            self.rewards[slot] = transition.reward
            self.next_states[slot] = transition.next_state.to(self.device)
            self.invalid_action_masks[slot] = transition.invalid_action_mask.to(self.device)
            self.is_terminal[slot] = transition.is_terminal
            slots.append(slot)

            self._write_position = (self._write_position + 1) % self._capacity
            self._size = min(self._size + 1, self._capacity)

        if slots:
            self.tree.update_batch(
                torch.tensor(slots, dtype=torch.long, device=self.device),
                torch.full((len(slots),), self.max_priority, dtype=torch.float64),
            )

    def sample(self, batch_size: int, beta: float) -> TrainingBatch:
        """Sample a prioritized batch of transitions.

        Stratified proportional sampling: [0, total) is split into
        batch_size equal segments and one value is drawn uniformly from
        each, so high and low priority regions are both represented.

        Importance-sampling weights w_i = (N * P(i))^(-beta) are divided
        by the batch maximum so the largest weight is exactly 1.

        Args:
            batch_size: Number of transitions to sample
            beta: Importance-sampling exponent (0 = no correction)

        Returns:
            TrainingBatch with transitions, weights and slot indices

        Raises:
            ValueError: If the buffer is empty
        """
        total = self.tree.total()
        if self._size == 0 or total <= 0.0:
            raise ValueError("Cannot sample from an empty replay buffer")

        segment = total / batch_size
        strata = torch.arange(batch_size, dtype=torch.float64, device=self.device)
        values = (strata + torch.rand(batch_size, dtype=torch.float64, device=self.device)) * segment

        # Stay strictly below each segment's upper edge and below the root
        upper = torch.clamp((strata + 1.0) * segment, max=total)
        values = torch.minimum(values, torch.nextafter(upper, torch.zeros_like(upper)))

        indices, priorities = self.tree.sample_batch(values)

        probs = priorities / total
        weights = (self._size * probs) ** (-beta)
        weights = (weights / weights.max()).to(torch.float32)

        return TrainingBatch(
            states=self.states[indices],
            actions=self.actions[indices],
            rewards=self.rewards[indices],
            next_states=self.next_states[indices],
            invalid_action_masks=self.invalid_action_masks[indices],
            is_terminal=self.is_terminal[indices],
            weights=weights,
            indices=indices,
        )

    def update_priorities(
        self,
        indices: Union[Tensor, Sequence[int]],
        td_errors: Union[Tensor, Sequence[float]],
        alpha: float,
        epsilon: float,
    ) -> None:
        """Update priorities based on TD errors.

        Args:
            indices: Slots returned by sample()
            td_errors: TD error per slot (sign is ignored)
            alpha: Prioritization exponent (0 = uniform, 1 = full)
            epsilon: Small constant keeping every priority positive
        """
        indices = torch.as_tensor(indices, dtype=torch.long, device=self.device)
        td_errors = torch.as_tensor(td_errors).detach().to(self.device, torch.float64)
        if indices.numel() == 0:
            return

        priorities = (td_errors.abs() + epsilon) ** alpha
        self.tree.update_batch(indices, priorities)
        self.max_priority = max(self.max_priority, priorities.max().item())

    def transitions(self, start: int, end: int) -> Dict[str, Tensor]:
        """Slot-ordered slice of the stored transitions.

        The end bound is clamped to the current size.

        Args:
            start: First slot
            end: One past the last slot

        Returns:
            Tensors keyed by TRANSITION_FIELDS

        Raises:
            IndexError: If start is negative, past size, or after end
        """
        if start < 0 or start > self._size or start > end:
            raise IndexError(
                f"Invalid transition range [{start}, {end}) for buffer of size {self._size}"
            )
        end = min(end, self._size)

        return {name: getattr(self, name)[start:end] for name in TRANSITION_FIELDS}
