"""
Headless training entry point.

train() runs a fixed number of epochs on the calling thread, without the
worker and its queues, and optionally saves the model or the full session.
evaluate() plays greedy games with a trained model.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from dqn.interfaces import Model
from dqn.serialization import SessionDeserializer, SessionSerializer
from dqn.trainer import Trainer
from training.config import TrainingConfig, load_config
from training.observability import EventLog
from training.stats_recorder import TrainingStats
from training.training_thread import build_model, build_trainer


DEFAULT_EPOCHS = 1000


@dataclass
class TrainingResult:
    """Result of a training run.

    Attributes:
        trainer: Trainer after the last epoch
        model: Online model after the last epoch
        history: Stats of every epoch, oldest first
        checkpoints: Paths written (model file and/or session directory)
    """
    trainer: Trainer
    model: Model
    history: List[TrainingStats]
    checkpoints: List[str]

    @property
    def final_avg_score(self) -> float:
        if not self.history:
            return 0.0
        return sum(stats.last_score for stats in self.history) / len(self.history)


@dataclass
class EvalResult:
    """Result of evaluation run.

    Attributes:
        scores: Final score per game
        best_tiles: Largest tile per game
        avg_score: Average across all games
        max_score: Best score achieved
    """
    scores: List[int]
    best_tiles: List[int]
    avg_score: float
    max_score: int


def train(
    epochs: int,
    config: Union[TrainingConfig, str, Path, None] = None,
    resume_from: Optional[Union[str, Path]] = None,
    save_model_to: Optional[Union[str, Path]] = None,
    save_session_to: Optional[Union[str, Path]] = None,
    epoch_callback: Optional[Callable[[TrainingStats], Any]] = None,
) -> TrainingResult:
    """Train for a number of epochs.

    Args:
        epochs: Episodes to play
        config: TrainingConfig, or path to a YAML config (bundled default when None)
        resume_from: Session directory to continue from
        save_model_to: Model file written after the last epoch
        save_session_to: Empty directory receiving the session after the last epoch
        epoch_callback: Called with the stats of each epoch; a truthy return
            value stops training early

    Returns:
        TrainingResult with the final trainer, model and per-epoch stats

    Raises:
        ValueError: If epochs is not positive or the config is invalid
        SessionError: If resuming or saving the session fails
    """
    if epochs <= 0:
        raise ValueError("epochs must be positive")

    if not isinstance(config, TrainingConfig):
        config = load_config(config)

    print(f"Using device: {config.torch_device}")

    trainer = build_trainer(config)
    model = build_model(config)
    if resume_from is not None:
        trainer, model = SessionDeserializer().deserialize(resume_from, trainer, model)
        print(f"Resumed from {resume_from} at epoch {trainer.epoch_number}")

    event_log = EventLog(config.logging.event_log) if config.logging.event_log else None
    log_frequency = config.logging.log_frequency

    history: List[TrainingStats] = []
    checkpoints: List[str] = []

    print(f"Starting training for {epochs} epochs...")

    for _ in range(epochs):
        model, stats = trainer.run_epoch(model)
        history.append(stats)

        if event_log is not None:
            event_log.epoch_finished(stats, trainer.last_training_metrics)

        if stats.epoch_count % log_frequency == 0:
            loss = (trainer.last_training_metrics or {}).get("loss")
            loss_text = f"{loss:.4f}" if loss is not None else "-"
            print(f"Epoch {stats.epoch_count} | "
                  f"Score: {stats.last_score} | "
                  f"Best tile: {stats.best_tile} | "
                  f"Loss: {loss_text} | "
                  f"Epsilon: {stats.epsilon:.4f} | "
                  f"Buffer: {stats.replay_buffer_size}")

        if epoch_callback is not None and epoch_callback(stats):
            print(f"Stopping early after epoch {stats.epoch_count}")
            break

    if save_model_to is not None:
        Path(save_model_to).parent.mkdir(parents=True, exist_ok=True)
        model.save(Path(save_model_to))
        checkpoints.append(str(save_model_to))
        print(f"  Saved model: {save_model_to}")

    if save_session_to is not None:
        SessionSerializer().serialize(trainer, model, save_session_to)
        checkpoints.append(str(save_session_to))
        print(f"  Saved session: {save_session_to}")

    result = TrainingResult(
        trainer=trainer, model=model, history=history, checkpoints=checkpoints
    )
    print(f"\nTraining complete!")
    print(f"Total epochs: {trainer.epoch_number}")
    print(f"Avg score: {result.final_avg_score:.1f}")

    return result


def evaluate(trainer: Trainer, model: Model, num_games: int) -> EvalResult:
    """Play greedy games (no exploration, no storing, no training).

    Args:
        trainer: Trainer providing the state type and greedy action choice
        model: Model to evaluate
        num_games: How many games to run

    Returns:
        EvalResult with scores
    """
    scores: List[int] = []
    best_tiles: List[int] = []

    for _ in range(num_games):
        state = trainer.state_type.initial_state()
        while not state.is_terminal():
            state = state.advance(trainer.pick_best_action(state, model))

        metadata: Dict[str, Any] = state.metadata()
        scores.append(int(metadata.get("score", 0)))
        best_tiles.append(int(metadata.get("best_tile", 0)))

    return EvalResult(
        scores=scores,
        best_tiles=best_tiles,
        avg_score=sum(scores) / len(scores) if scores else 0.0,
        max_score=max(scores) if scores else 0,
    )


def main() -> None:
    """Train with the bundled configuration."""
    result = train(epochs=DEFAULT_EPOCHS)
    print(f"Best tile seen: {max(stats.best_tile for stats in result.history)}")


if __name__ == "__main__":
    main()
