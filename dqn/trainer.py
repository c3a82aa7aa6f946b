"""
DQN Trainer with Prioritized Experience Replay.

Runs one episode per epoch:
- epsilon-greedy action selection restricted to legal actions
- every transition goes through the data augmenter into the replay buffer
- every training_frequency frames a prioritized batch is replayed
- every network_sync_frequency frames the target network is re-cloned

Training step:
- Q(s, a) from the online model for the taken actions
- bootstrap max_a' Q_target(s', a') over actions legal from s' only
- TD errors feed back into the replay priorities
- Huber loss weighted by importance-sampling weights
"""

from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Optional, Tuple, Type

import torch
import torch.nn.functional as F

from dqn.interfaces import Action, Critic, DataAugmenter, Model, State, StatsRecorder
from dqn.replay_buffer import ReplayBuffer


@dataclass
class Hyperparameters:
    """Training hyperparameters.

    Attributes:
        learning_rate: Optimizer step size
        discount_factor: Gamma for the bootstrap target
        batch_size: Transitions per training step
        replay_buffer_capacity: Replay capacity, power of two
        per_alpha: Prioritization exponent (0 = uniform, 1 = full)
        per_beta: Initial importance-sampling exponent
        per_beta_increment: Beta increase per epoch, capped at 1
        per_epsilon: Constant added to |TD error| before exponentiation
        initial_epsilon: Exploration rate at epoch 0
        min_epsilon: Exploration floor
        epsilon_decay_frames: Epochs over which epsilon decays linearly
        training_frequency: Frames between training steps
        network_sync_frequency: Frames between target network syncs
    """
    learning_rate: float = 0.00025
    discount_factor: float = 0.99
    batch_size: int = 8 * 1024
    replay_buffer_capacity: int = 2 ** 20
    per_alpha: float = 0.6
    per_beta: float = 0.4
    per_beta_increment: float = 0.001
    per_epsilon: float = 0.001
    initial_epsilon: float = 0.5
    min_epsilon: float = 0.0001
    epsilon_decay_frames: int = 7500
    training_frequency: int = 25
    network_sync_frequency: int = 10000

    def __post_init__(self):
        """Validate hyperparameters after initialization."""
        capacity = self.replay_buffer_capacity
        if capacity <= 0 or capacity & (capacity - 1) != 0:
            raise ValueError(
                f"replay_buffer_capacity must be a power of 2, got {capacity}"
            )
        if self.batch_size <= 0:
            raise ValueError("batch_size must be positive")
        if self.learning_rate <= 0:
            raise ValueError("learning_rate must be positive")
        if not 0.0 <= self.discount_factor <= 1.0:
            raise ValueError("discount_factor must be in [0, 1]")
        if self.per_alpha < 0:
            raise ValueError("per_alpha must be non-negative")
        if not 0.0 <= self.per_beta <= 1.0:
            raise ValueError("per_beta must be in [0, 1]")
        if self.per_beta_increment < 0:
            raise ValueError("per_beta_increment must be non-negative")
        # A zero priority could never be sampled again
        if self.per_epsilon <= 0:
            raise ValueError("per_epsilon must be positive")
        if not 0.0 <= self.min_epsilon <= self.initial_epsilon <= 1.0:
            raise ValueError("epsilon bounds must satisfy 0 <= min_epsilon <= initial_epsilon <= 1")
        if self.epsilon_decay_frames <= 0:
            raise ValueError("epsilon_decay_frames must be positive")
        if self.training_frequency <= 0:
            raise ValueError("training_frequency must be positive")
        if self.network_sync_frequency <= 0:
            raise ValueError("network_sync_frequency must be positive")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any], strict: bool = False) -> "Hyperparameters":
        """Build from a mapping.

        Args:
            raw: Field values, missing fields keep their defaults
            strict: Reject unknown keys instead of ignoring them

        Raises:
            ValueError: If a value fails validation, or a key is unknown
                in strict mode
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(key for key in raw if key not in known)
        if strict and unknown:
            raise ValueError(f"Unknown hyperparameters: {unknown}")
        return cls(**{key: value for key, value in raw.items() if key in known})


class Trainer:
    """Deep Q-Learning trainer with prioritized replay and a target network.

    The trainer owns the replay buffer and the target network. The online
    model is passed into run_epoch() and returned updated, so the caller
    keeps ownership of it between epochs.

    Attributes:
        hyperparameters: Training hyperparameters
        replay_buffer: Prioritized replay buffer
        epoch_number: Episodes started so far
        frame_number: Environment steps taken so far
        target_network: Snapshot of the online model, None until the
            first epoch starts
        last_training_metrics: Metrics of the latest training step
    """

    def __init__(
        self,
        hyperparameters: Hyperparameters,
        state_type: Type[State],
        critic: Critic,
        data_augmenter: DataAugmenter,
        stats_recorder: StatsRecorder,
        device: torch.device = torch.device("cpu"),
        replay_buffer: Optional[ReplayBuffer] = None,
        epoch_number: int = 0,
        frame_number: int = 0,
    ):
        """Initialize trainer.

        Args:
            hyperparameters: Training hyperparameters
            state_type: State class of the game (initial_state, sizes)
            critic: Reward function
            data_augmenter: Augmenter used by the replay buffer
            stats_recorder: Per-epoch statistics accumulator
            device: Device for replay storage and batches
            replay_buffer: Existing buffer (restored sessions)
            epoch_number: Starting epoch counter (restored sessions)
            frame_number: Starting frame counter (restored sessions)
        """
        self.hyperparameters = hyperparameters
        self.state_type = state_type
        self.critic = critic
        self.data_augmenter = data_augmenter
        self.stats_recorder = stats_recorder
        self.device = device

        if replay_buffer is None:
            replay_buffer = ReplayBuffer(
                augmenter=data_augmenter,
                capacity=hyperparameters.replay_buffer_capacity,
                num_features=state_type.NUM_FEATURES,
                num_actions=state_type.NUM_ACTIONS,
                device=device,
            )
        self.replay_buffer = replay_buffer

        self.epoch_number = epoch_number
        self.frame_number = frame_number
        self.target_network: Optional[Model] = None
        self.last_training_metrics: Optional[Dict[str, float]] = None

    def compute_epsilon(self, epoch_number: int) -> float:
        """Linear decay from initial_epsilon to a floor of min_epsilon."""
        config = self.hyperparameters
        decayed = (
            config.initial_epsilon
            * (config.epsilon_decay_frames - epoch_number)
            / config.epsilon_decay_frames
        )
        return max(config.min_epsilon, decayed)

    def compute_beta(self) -> float:
        """Importance-sampling exponent annealed towards 1 per epoch."""
        config = self.hyperparameters
        return min(1.0, config.per_beta + config.per_beta_increment * self.epoch_number)

    def run_epoch(self, model: Model) -> Tuple[Model, Any]:
        """Play one episode, training along the way.

        Args:
            model: Online model

        Returns:
            Tuple of (updated model, stats of the epoch)
        """
        config = self.hyperparameters

        state = self.state_type.initial_state()
        epoch_frames = 0
        self.epoch_number += 1
        epsilon = self.compute_epsilon(self.epoch_number)

        if self.target_network is None:
            self.target_network = model.clone()

        self.stats_recorder.record_new_epoch(self.epoch_number)
        self.stats_recorder.record_epsilon(epsilon)

        while not state.is_terminal():
            self.frame_number += 1
            epoch_frames += 1

            action = self.pick_action(state, model, epsilon)
            next_state = state.advance(action)
            reward = self.critic.reward(state, action, next_state)
            self.replay_buffer.store(state, action, reward, next_state)
            self.stats_recorder.record_reward(reward)
            state = next_state

            if (
                self.replay_buffer.size >= config.batch_size
                and self.frame_number % config.training_frequency == 0
            ):
                model = self.training_step(model)

            if self.frame_number % config.network_sync_frequency == 0:
                self.target_network = model.clone()

        self.stats_recorder.record_final_state(state, epoch_frames)
        self.stats_recorder.record_replay_buffer_size(self.replay_buffer.size)

        return model, self.stats_recorder.stats()

    def training_step(self, model: Model) -> Model:
        """Replay one prioritized batch and take an optimizer step.

        Args:
            model: Online model

        Returns:
            Updated online model

        Raises:
            RuntimeError: If called before run_epoch() created the target network
        """
        if self.target_network is None:
            raise RuntimeError("Target network should have been set by run_epoch()")

        config = self.hyperparameters
        beta = self.compute_beta()
        batch = self.replay_buffer.sample(config.batch_size, beta)

        # Current Q values of the taken actions
        q_values = model.forward(batch.states)
        weights = batch.weights.to(q_values.device)
        actions = batch.actions.to(q_values.device)
        current_q = q_values.gather(1, actions.unsqueeze(1)).squeeze(1)

        # Bootstrap over actions legal from the next state only
        with torch.no_grad():
            next_q = self.target_network.forward(batch.next_states).to(q_values.device)
            invalid = batch.invalid_action_masks.to(q_values.device)
            next_q = next_q.masked_fill(invalid, float("-inf")).max(dim=1).values
            # Terminal next states have no legal action at all
            next_q = torch.where(invalid.all(dim=1), torch.zeros_like(next_q), next_q)

            rewards = batch.rewards.to(q_values.device)
            is_terminal = batch.is_terminal.to(q_values.device)
            target_q = rewards + (1.0 - is_terminal) * config.discount_factor * next_q

        td_errors = (current_q - target_q).detach().abs()
        self.replay_buffer.update_priorities(
            batch.indices, td_errors, config.per_alpha, config.per_epsilon
        )

        elementwise_loss = F.smooth_l1_loss(current_q, target_q, reduction="none", beta=1.0)
        loss = (weights * elementwise_loss).mean()

        model = model.apply_gradient_step(loss, config.learning_rate)

        self.last_training_metrics = {
            "loss": loss.item(),
            "q_mean": current_q.detach().mean().item(),
            "td_error_mean": td_errors.mean().item(),
            "beta": beta,
        }

        return model

    def pick_action(self, state: State, model: Model, epsilon: float) -> Action:
        """Epsilon-greedy choice among the legal actions of a state."""
        if torch.rand(1).item() <= epsilon:
            return self.pick_random_action(state)
        return self.pick_best_action(state, model)

    def pick_random_action(self, state: State) -> Action:
        actions = state.possible_actions()
        return actions[torch.randint(len(actions), (1,)).item()]

    def pick_best_action(self, state: State, model: Model) -> Action:
        """Legal action with the highest predicted value, first one on ties."""
        features = torch.as_tensor(state.as_features(), dtype=torch.float32).unsqueeze(0)
        with torch.no_grad():
            values = model.forward(features.to(self.device)).squeeze(0).cpu()

        best_action = None
        best_value = float("-inf")
        for action in state.possible_actions():
            value = values[action.index()].item()
            if best_action is None or value > best_value:
                best_action = action
                best_value = value

        return best_action
