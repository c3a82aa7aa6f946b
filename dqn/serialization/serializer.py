"""
Session Serializer.

Writes a training session to an empty directory:

    session/
      session.json          hyperparameters, buffer geometry, counters
      model/model.pt        written by the Model itself
      replay_buffer/
        00001.chunk         up to CHUNK_SIZE transitions each
        00002.chunk
        ...

Each chunk is an independently compressed numpy archive holding one array
per transition field, so memory use and file size stay bounded however
large the buffer is. Chunk names are zero-padded so lexicographic order is
slot order.
"""

import json
from pathlib import Path
from typing import Union

import numpy as np

from dqn.interfaces import Model
from dqn.replay_buffer import ReplayBuffer
from dqn.serialization.errors import SessionIOError, SessionPathNotEmptyError
from dqn.serialization.session_config import (
    CHUNK_EXTENSION,
    CHUNK_SIZE,
    MODEL_DIR_NAME,
    MODEL_FILE_NAME,
    REPLAY_BUFFER_DIR_NAME,
    SESSION_FILE_NAME,
    ReplayBufferInfo,
    SessionDocument,
    TrainingInfo,
)
from dqn.trainer import Trainer


def chunk_file_name(chunk_number: int) -> str:
    """Zero-padded chunk name, e.g. 1 -> '00001.chunk'."""
    return f"{chunk_number:05d}{CHUNK_EXTENSION}"


def is_path_empty(path: Path) -> bool:
    """True if path does not exist yet or is an empty directory.

    Raises:
        SessionIOError: If path exists but cannot be listed
    """
    if not path.exists():
        return True
    try:
        return next(path.iterdir(), None) is None
    except OSError as e:
        raise SessionIOError(path, e) from e


class SessionSerializer:
    """Persists a Trainer, its replay buffer and the online model."""

    def __init__(self, chunk_size: int = CHUNK_SIZE):
        """Initialize serializer.

        Args:
            chunk_size: Maximum transitions per chunk file
        """
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self.chunk_size = chunk_size

    def serialize(self, trainer: Trainer, model: Model, path: Union[str, Path]) -> None:
        """Write a full session.

        Args:
            trainer: Trainer to persist
            model: Online model
            path: Destination directory, created if missing

        Raises:
            SessionPathNotEmptyError: If the directory already has content
            SessionIOError: If any file cannot be written
        """
        path = Path(path)
        if not is_path_empty(path):
            raise SessionPathNotEmptyError(path)

        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise SessionIOError(path, e) from e

        self.serialize_document(trainer, path)
        self.serialize_model(model, path / MODEL_DIR_NAME)
        self.serialize_replay_buffer(trainer.replay_buffer, path / REPLAY_BUFFER_DIR_NAME)

    def serialize_document(self, trainer: Trainer, path: Path) -> None:
        buffer = trainer.replay_buffer
        document = SessionDocument(
            hyperparameters=trainer.hyperparameters,
            replay_buffer=ReplayBufferInfo(
                capacity=buffer.capacity,
                size=buffer.size,
                write_position=buffer.write_position,
            ),
            training_info=TrainingInfo(
                epoch_number=trainer.epoch_number,
                frame_number=trainer.frame_number,
            ),
        )

        file_path = path / SESSION_FILE_NAME
        try:
            with open(file_path, "w") as f:
                json.dump(document.to_dict(), f, indent=2)
        except OSError as e:
            raise SessionIOError(file_path, e) from e

    def serialize_model(self, model: Model, model_dir: Path) -> None:
        file_path = model_dir / MODEL_FILE_NAME
        try:
            model_dir.mkdir()
            model.save(file_path)
        except OSError as e:
            raise SessionIOError(file_path, e) from e

    def serialize_replay_buffer(self, replay_buffer: ReplayBuffer, buffer_dir: Path) -> int:
        """Write the buffer contents in slot order, one chunk at a time.

        Returns:
            Number of chunk files written
        """
        try:
            buffer_dir.mkdir()
        except OSError as e:
            raise SessionIOError(buffer_dir, e) from e

        chunk_start = 0
        chunk_number = 1

        while chunk_start < replay_buffer.size:
            chunk_end = chunk_start + self.chunk_size
            chunk = replay_buffer.transitions(chunk_start, chunk_end)
            arrays = {name: tensor.cpu().numpy() for name, tensor in chunk.items()}

            file_path = buffer_dir / chunk_file_name(chunk_number)
            try:
                with open(file_path, "wb") as f:
                    np.savez_compressed(f, **arrays)
            except OSError as e:
                raise SessionIOError(file_path, e) from e

            chunk_start = chunk_end
            chunk_number += 1

        return chunk_number - 1
