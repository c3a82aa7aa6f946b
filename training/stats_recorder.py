"""
Per-epoch training statistics.

The recorder only sees the generic signals the trainer emits. Game-specific
numbers (score, best tile) come from State.metadata() of the final state.
"""

import time
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from dqn.interfaces import State, StatsRecorder


@dataclass
class TrainingStats:
    """Snapshot of the most recent epoch.

    Attributes:
        epoch_count: Epochs started so far, including restored ones
        epochs_per_second: Inverse of the wall time of the last epoch
        frames_per_second: Environment steps per second in the last epoch
        cumulative_reward: Sum of critic rewards in the last epoch
        last_score: Score of the final state of the last epoch
        best_tile: Largest tile of the final state of the last epoch
        replay_buffer_size: Transitions stored after the last epoch
        epsilon: Exploration rate used in the last epoch
        epoch_frames: Environment steps taken in the last epoch
    """
    epoch_count: int = 0
    epochs_per_second: Optional[float] = None
    frames_per_second: Optional[float] = None
    cumulative_reward: float = 0.0
    last_score: int = 0
    best_tile: int = 0
    replay_buffer_size: int = 0
    epsilon: float = 0.0
    epoch_frames: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class TrainingStatsRecorder(StatsRecorder):
    """Accumulates TrainingStats for the epoch in progress."""

    def __init__(self, clock=time.perf_counter):
        """Initialize recorder.

        Args:
            clock: Monotonic time source in seconds (injectable for tests)
        """
        self._clock = clock
        self._epoch_started_at: Optional[float] = None
        self._stats = TrainingStats()

    def record_new_epoch(self, epoch_number: int) -> None:
        self._epoch_started_at = self._clock()
        self._stats = TrainingStats(
            epoch_count=epoch_number,
            replay_buffer_size=self._stats.replay_buffer_size,
        )

    def record_reward(self, reward: float) -> None:
        self._stats.cumulative_reward += reward

    def record_final_state(self, state: State, epoch_frames: int) -> None:
        metadata = state.metadata()
        self._stats.last_score = int(metadata.get("score", 0))
        self._stats.best_tile = int(metadata.get("best_tile", 0))
        self._stats.epoch_frames = epoch_frames

        if self._epoch_started_at is not None:
            elapsed = self._clock() - self._epoch_started_at
            if elapsed > 0:
                self._stats.epochs_per_second = 1.0 / elapsed
                self._stats.frames_per_second = epoch_frames / elapsed

    def record_replay_buffer_size(self, size: int) -> None:
        self._stats.replay_buffer_size = size

    def record_epsilon(self, epsilon: float) -> None:
        self._stats.epsilon = epsilon

    def stats(self) -> TrainingStats:
        """Copy of the current statistics."""
        return TrainingStats(**asdict(self._stats))
