"""Tests for per-epoch statistics."""

import pytest

from training.stats_recorder import TrainingStats, TrainingStatsRecorder


class FakeClock:
    """Returns queued times in order."""

    def __init__(self, *times):
        self.times = list(times)

    def __call__(self):
        return self.times.pop(0)


@pytest.fixture
def final_state(make_state):
    return make_state([[2, 1024, 0, 0]] + [[0] * 4] * 3, score=5000)


def test_initial_stats():
    stats = TrainingStatsRecorder().stats()
    assert stats == TrainingStats()
    assert stats.epochs_per_second is None


def test_epoch_stats(final_state):
    recorder = TrainingStatsRecorder(clock=FakeClock(10.0, 12.0))

    recorder.record_new_epoch(3)
    recorder.record_epsilon(0.2)
    recorder.record_reward(0.5)
    recorder.record_reward(-1.0)
    recorder.record_final_state(final_state, epoch_frames=100)
    recorder.record_replay_buffer_size(800)

    stats = recorder.stats()
    assert stats.epoch_count == 3
    assert stats.epsilon == 0.2
    assert stats.cumulative_reward == pytest.approx(-0.5)
    assert stats.last_score == 5000
    assert stats.best_tile == 1024
    assert stats.epoch_frames == 100
    assert stats.replay_buffer_size == 800
    assert stats.epochs_per_second == pytest.approx(0.5)
    assert stats.frames_per_second == pytest.approx(50.0)


def test_new_epoch_resets_but_keeps_buffer_size(final_state):
    recorder = TrainingStatsRecorder(clock=FakeClock(0.0, 1.0, 2.0))
    recorder.record_new_epoch(1)
    recorder.record_reward(3.0)
    recorder.record_final_state(final_state, epoch_frames=10)
    recorder.record_replay_buffer_size(80)

    recorder.record_new_epoch(2)

    stats = recorder.stats()
    assert stats.epoch_count == 2
    assert stats.cumulative_reward == 0.0
    assert stats.last_score == 0
    assert stats.frames_per_second is None
    assert stats.replay_buffer_size == 80


def test_zero_elapsed_time_leaves_rates_unset(final_state):
    recorder = TrainingStatsRecorder(clock=FakeClock(5.0, 5.0))
    recorder.record_new_epoch(1)
    recorder.record_final_state(final_state, epoch_frames=10)

    stats = recorder.stats()
    assert stats.epochs_per_second is None
    assert stats.frames_per_second is None


def test_stats_returns_a_copy():
    recorder = TrainingStatsRecorder()
    recorder.record_new_epoch(1)

    snapshot = recorder.stats()
    recorder.record_reward(1.0)

    assert snapshot.cumulative_reward == 0.0
    assert recorder.stats().cumulative_reward == 1.0


def test_to_dict():
    stats = TrainingStats(epoch_count=4, last_score=128)
    as_dict = stats.to_dict()
    assert as_dict["epoch_count"] == 4
    assert as_dict["last_score"] == 128
    assert set(as_dict) == {
        "epoch_count",
        "epochs_per_second",
        "frames_per_second",
        "cumulative_reward",
        "last_score",
        "best_tile",
        "replay_buffer_size",
        "epsilon",
        "epoch_frames",
    }
