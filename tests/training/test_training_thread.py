"""Tests for the background training worker."""

import queue

import numpy as np
import pytest

from dqn.serialization import SessionSerializer
from training.game_model import TorchModel
from training.observability import EventLog
from training.training_thread import TrainingWorker, build_model, build_trainer
from training.types import (
    CommandFailed,
    EpochFinished,
    LoadModel,
    LoadSession,
    ModelLoaded,
    ModelSaved,
    Pause,
    SaveModel,
    SaveSession,
    SessionLoaded,
    SessionSaved,
    Shutdown,
    Start,
    StateChanged,
    TrainingState,
)


def drain(worker):
    events = []
    while True:
        try:
            events.append(worker.events.get_nowait())
        except queue.Empty:
            return events


@pytest.fixture
def worker(small_config):
    return TrainingWorker(config=small_config)


class TestBuilders:
    """Test trainer and model wiring."""

    def test_build_trainer(self, small_config):
        trainer = build_trainer(small_config)
        assert trainer.hyperparameters is small_config.hyperparameters
        assert trainer.replay_buffer.capacity == 512
        assert type(trainer.data_augmenter).__name__ == "SymmetryAugmenter"

    def test_build_model(self, small_config):
        model = build_model(small_config)
        assert isinstance(model, TorchModel)
        assert model.network.hidden_layers == [32]


class TestCommands:
    """Test command handling on the calling thread."""

    def test_starts_idle(self, worker):
        assert worker.state == TrainingState.IDLE
        assert worker.event_log is None

    def test_start_and_pause(self, worker):
        worker.handle_command(Start())
        assert worker.state == TrainingState.TRAINING

        worker.handle_command(Pause())
        assert worker.state == TrainingState.IDLE

        assert drain(worker) == [
            StateChanged(TrainingState.TRAINING),
            StateChanged(TrainingState.IDLE),
        ]

    def test_shutdown_ends_run_loop(self, worker):
        worker.send(Shutdown())
        worker.run()
        assert drain(worker) == []

    def test_shutdown_stops_training(self, worker):
        worker.send(Start())
        worker.send(Shutdown())

        worker.run()

        # Pending commands are handled before the next epoch starts
        events = drain(worker)
        assert events == [StateChanged(TrainingState.TRAINING)]
        assert worker.trainer.epoch_number == 0

    def test_save_and_load_model(self, worker, tmp_path):
        path = tmp_path / "models" / "model.pt"

        worker.handle_command(SaveModel(path))
        worker.trainer.target_network = worker.model.clone()
        worker.handle_command(LoadModel(path))

        assert path.is_file()
        assert worker.trainer.target_network is None
        assert drain(worker) == [ModelSaved(path), ModelLoaded(path)]

    def test_load_missing_model_fails_softly(self, worker, tmp_path):
        command = LoadModel(tmp_path / "missing.pt")

        worker.handle_command(command)

        (event,) = drain(worker)
        assert isinstance(event, CommandFailed)
        assert event.command == command
        assert worker.state == TrainingState.IDLE

    def test_load_corrupt_model_fails_softly(self, worker, tmp_path):
        path = tmp_path / "corrupt.pt"
        path.write_bytes(b"garbage")
        model = worker.model

        worker.handle_command(LoadModel(path))

        (event,) = drain(worker)
        assert isinstance(event, CommandFailed)
        assert worker.model is model

    def test_save_and_load_session(self, worker, tmp_path):
        worker.model, _ = worker.trainer.run_epoch(worker.model)
        frames = worker.trainer.frame_number
        path = tmp_path / "session"

        worker.handle_command(SaveSession(path))
        worker.trainer = build_trainer(worker.config)
        worker.handle_command(LoadSession(path))

        assert drain(worker) == [SessionSaved(path), SessionLoaded(path)]
        assert worker.trainer.epoch_number == 1
        assert worker.trainer.frame_number == frames
        assert worker.trainer.replay_buffer.size == min(8 * frames, 512)

    def test_save_session_into_non_empty_directory(self, worker, tmp_path):
        (tmp_path / "existing.txt").write_text("data")

        worker.handle_command(SaveSession(tmp_path))

        (event,) = drain(worker)
        assert isinstance(event, CommandFailed)
        assert "not empty" in event.message

    def test_load_missing_session(self, worker, tmp_path):
        worker.handle_command(LoadSession(tmp_path / "missing"))

        (event,) = drain(worker)
        assert isinstance(event, CommandFailed)

    def test_failures_are_logged(self, small_config, tmp_path):
        event_log = EventLog(tmp_path / "events.jsonl")
        worker = TrainingWorker(config=small_config, event_log=event_log)

        worker.handle_command(Start())
        worker.handle_command(LoadSession(tmp_path / "missing"))

        events = event_log.read_events()
        assert [event["event"] for event in events] == ["state_changed", "command_failed"]
        assert events[0]["state"] == "training"


class TestWorkerThread:
    """Test the worker running on its own thread."""

    @pytest.mark.slow
    def test_trains_until_paused(self, worker, tmp_path):
        worker.start()
        assert worker.is_alive()
        with pytest.raises(RuntimeError):
            worker.start()

        worker.send(Start())
        assert worker.events.get(timeout=30) == StateChanged(TrainingState.TRAINING)

        event = worker.events.get(timeout=60)
        assert isinstance(event, EpochFinished)
        assert event.stats.epoch_count == 1
        assert event.stats.replay_buffer_size > 0

        worker.send(Pause())
        worker.send(SaveSession(tmp_path / "session"))
        remaining = worker.shutdown()

        assert not worker.is_alive()
        assert StateChanged(TrainingState.IDLE) in remaining
        assert SessionSaved(tmp_path / "session") in remaining
        assert (tmp_path / "session" / "session.json").is_file()

    def test_malformed_session_keeps_worker_alive(self, worker, tmp_path):
        worker.model, _ = worker.trainer.run_epoch(worker.model)
        path = tmp_path / "session"
        SessionSerializer().serialize(worker.trainer, worker.model, path)

        chunk = path / "replay_buffer" / "00001.chunk"
        with np.load(chunk) as archive:
            arrays = {name: archive[name] for name in archive.files}
        arrays["next_states"] = np.zeros((worker.trainer.replay_buffer.size, 3), dtype=np.float32)
        with open(chunk, "wb") as f:
            np.savez_compressed(f, **arrays)

        worker.start()
        worker.send(LoadSession(path))

        event = worker.events.get(timeout=30)
        assert isinstance(event, CommandFailed)
        assert event.command == LoadSession(path)
        assert worker.is_alive()

        worker.shutdown()
        assert not worker.is_alive()

    def test_shutdown_without_start(self, worker):
        assert worker.shutdown() == []
        assert not worker.is_alive()
