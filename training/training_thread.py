"""
Background training worker.

The worker thread exclusively owns the Trainer, its replay buffer and the
online model. Other threads talk to it only through two bounded queues:

- commands (Start, Pause, Save/Load Model, Save/Load Session, Shutdown)
- events (StateChanged, EpochFinished, CommandFailed, ...)

Commands are handled between epochs only. An episode in flight always runs
to its terminal state, so saving never races a training step.
"""

import queue
import threading
from pathlib import Path
from typing import List, Optional

from dqn.interfaces import DataAugmenter, Model
from dqn.serialization import SessionDeserializer, SessionError, SessionSerializer
from dqn.trainer import Trainer
from training.board_state import BoardState
from training.config import TrainingConfig
from training.critic import ScoreCritic
from training.data_augmenter import SymmetryAugmenter
from training.game_model import GameNetwork, TorchModel
from training.observability import EventLog
from training.stats_recorder import TrainingStatsRecorder
from training.types import (
    Command,
    CommandFailed,
    EpochFinished,
    Event,
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


def build_trainer(
    config: TrainingConfig,
    data_augmenter: Optional[DataAugmenter] = None,
) -> Trainer:
    """Trainer wired with the 2048 collaborators.

    The replay augmenter defaults to the 8-fold SymmetryAugmenter.
    """
    return Trainer(
        hyperparameters=config.hyperparameters,
        state_type=BoardState,
        critic=ScoreCritic(),
        data_augmenter=data_augmenter if data_augmenter is not None else SymmetryAugmenter(),
        stats_recorder=TrainingStatsRecorder(),
        device=config.torch_device,
    )


def build_model(config: TrainingConfig) -> TorchModel:
    network = GameNetwork(
        input_size=BoardState.NUM_FEATURES,
        hidden_layers=config.network.hidden_layers,
        output_size=BoardState.NUM_ACTIONS,
        activation=config.network.activation,
    )
    return TorchModel(
        network=network,
        learning_rate=config.hyperparameters.learning_rate,
        device=config.torch_device,
    )


class TrainingWorker:
    """Runs training epochs on a dedicated thread.

    Attributes:
        commands: Inbound command queue
        events: Outbound event queue
        state: Current TrainingState, only written by the worker thread
    """

    def __init__(
        self,
        config: Optional[TrainingConfig] = None,
        trainer: Optional[Trainer] = None,
        model: Optional[Model] = None,
        event_log: Optional[EventLog] = None,
    ):
        """Initialize worker.

        Args:
            config: Run configuration, defaults when None
            trainer: Trainer to drive, built from config when None
            model: Online model, built from config when None
            event_log: JSONL event log, built from config when None
        """
        self.config = config if config is not None else TrainingConfig()
        self.trainer = trainer if trainer is not None else build_trainer(self.config)
        self.model = model if model is not None else build_model(self.config)

        if event_log is None and self.config.logging.event_log:
            event_log = EventLog(self.config.logging.event_log)
        self.event_log = event_log

        self.commands: "queue.Queue[Command]" = queue.Queue(maxsize=self.config.worker.queue_size)
        self.events: "queue.Queue[Event]" = queue.Queue(maxsize=self.config.worker.queue_size)
        self.state = TrainingState.IDLE

        self._running = False
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        """Spawn the worker thread."""
        if self._thread is not None:
            raise RuntimeError("Training worker already started")
        self._thread = threading.Thread(target=self.run, name="training-worker", daemon=True)
        self._thread.start()

    def send(self, command: Command) -> None:
        self.commands.put(command)

    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def shutdown(self, timeout: float = 30.0) -> List[Event]:
        """Stop the worker thread.

        Events are drained while waiting so a full event queue cannot keep
        the worker from seeing the Shutdown command.

        Returns:
            Events that were still pending
        """
        self.send(Shutdown())
        drained: List[Event] = []
        if self._thread is None:
            return drained

        while self._thread.is_alive():
            try:
                drained.append(self.events.get(timeout=0.05))
            except queue.Empty:
                pass
            self._thread.join(timeout=0.05)
            timeout -= 0.1
            if timeout <= 0:
                break

        while True:
            try:
                drained.append(self.events.get_nowait())
            except queue.Empty:
                break
        return drained

    def run(self) -> None:
        """Worker loop: handle a command, then train one epoch if active."""
        self._running = True
        print("Training worker started")

        while self._running:
            if self.state == TrainingState.TRAINING:
                self._poll_command(block=False)
                if self._running and self.state == TrainingState.TRAINING:
                    self._run_epoch()
            else:
                self._poll_command(block=True)

        print("Training worker stopped")

    def _poll_command(self, block: bool) -> None:
        try:
            if block:
                command = self.commands.get(timeout=self.config.worker.idle_poll_seconds)
            else:
                command = self.commands.get_nowait()
        except queue.Empty:
            return

        print(f"Training worker received command {command}")
        self.handle_command(command)

    def handle_command(self, command: Command) -> None:
        """Apply one command. Save/load failures become CommandFailed events."""
        if isinstance(command, Shutdown):
            self._running = False
        elif isinstance(command, Start):
            self._set_state(TrainingState.TRAINING)
        elif isinstance(command, Pause):
            self._set_state(TrainingState.IDLE)
        else:
            try:
                self._handle_persistence(command)
            except (SessionError, OSError) as e:
                print(f"Command {command} failed: {e}")
                if self.event_log is not None:
                    self.event_log.command_failed(str(command), str(e))
                self._emit(CommandFailed(command=command, message=str(e)))

    def _handle_persistence(self, command: Command) -> None:
        if isinstance(command, SaveModel):
            Path(command.path).parent.mkdir(parents=True, exist_ok=True)
            self.model.save(command.path)
            self._emit(ModelSaved(command.path))
        elif isinstance(command, LoadModel):
            self.model = SessionDeserializer().deserialize_model(Path(command.path), self.model)
            # Next epoch re-clones the target from the loaded weights
            self.trainer.target_network = None
            self._emit(ModelLoaded(command.path))
        elif isinstance(command, SaveSession):
            SessionSerializer().serialize(self.trainer, self.model, command.path)
            print(f"Session saved to {command.path}")
            self._emit(SessionSaved(command.path))
        elif isinstance(command, LoadSession):
            self.trainer, self.model = SessionDeserializer().deserialize(
                command.path, self.trainer, self.model
            )
            print(
                f"Session loaded from {command.path} "
                f"(epoch {self.trainer.epoch_number}, "
                f"{self.trainer.replay_buffer.size} transitions)"
            )
            self._emit(SessionLoaded(command.path))
        else:
            raise ValueError(f"Unknown command {command!r}")

    def _set_state(self, state: TrainingState) -> None:
        self.state = state
        if self.event_log is not None:
            self.event_log.state_changed(state.value)
        self._emit(StateChanged(state))

    def _run_epoch(self) -> None:
        self.model, stats = self.trainer.run_epoch(self.model)

        if self.event_log is not None:
            self.event_log.epoch_finished(stats, self.trainer.last_training_metrics)
        if stats.epoch_count % self.config.logging.log_frequency == 0:
            print(
                f"Epoch {stats.epoch_count}: score={stats.last_score}, "
                f"best_tile={stats.best_tile}, reward={stats.cumulative_reward:.3f}, "
                f"epsilon={stats.epsilon:.4f}, buffer={stats.replay_buffer_size}"
            )

        self._emit(EpochFinished(stats))

    def _emit(self, event: Event) -> None:
        self.events.put(event)
