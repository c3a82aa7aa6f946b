"""
Session Deserializer.

Restores a Trainer, its replay buffer and the online model from a
directory written by SessionSerializer.

Chunk files are discovered by extension and read in lexicographic order,
which is slot order because chunk names are zero-padded.

Replay priorities are not persisted: every restored transition starts
at ReplayBuffer.DEFAULT_PRIORITY.
"""

import json
import pickle
import zipfile
from pathlib import Path
from typing import Dict, List, Tuple, Union

import numpy as np
import torch
from torch import Tensor

from dqn.interfaces import Model
from dqn.replay_buffer import TRANSITION_FIELDS, ReplayBuffer
from dqn.serialization.errors import SessionFormatError, SessionIOError
from dqn.serialization.session_config import (
    CHUNK_EXTENSION,
    MODEL_DIR_NAME,
    MODEL_FILE_NAME,
    REPLAY_BUFFER_DIR_NAME,
    SESSION_FILE_NAME,
    SessionDocument,
)
from dqn.trainer import Trainer


def get_chunk_list(buffer_dir: Path) -> List[Path]:
    """Sorted chunk files of a replay buffer directory.

    Raises:
        SessionIOError: If the directory cannot be listed
    """
    try:
        chunks = [
            entry for entry in buffer_dir.iterdir()
            if entry.is_file() and entry.suffix == CHUNK_EXTENSION
        ]
    except OSError as e:
        raise SessionIOError(buffer_dir, e) from e

    return sorted(chunks, key=lambda chunk: chunk.name)


def load_chunk(file_path: Path) -> Dict[str, Tensor]:
    """Decompress one chunk into tensors keyed by TRANSITION_FIELDS.

    Raises:
        SessionIOError: If the file cannot be read
        SessionFormatError: If the file is not a valid chunk
    """
    try:
        with open(file_path, "rb") as f:
            with np.load(f) as archive:
                missing = [name for name in TRANSITION_FIELDS if name not in archive.files]
                if missing:
                    raise SessionFormatError(file_path, f"missing arrays {missing}")
                return {name: torch.from_numpy(archive[name]) for name in TRANSITION_FIELDS}
    except (zipfile.BadZipFile, TypeError, ValueError) as e:
        raise SessionFormatError(file_path, str(e)) from e
    except OSError as e:
        raise SessionIOError(file_path, e) from e


def check_chunk(
    file_path: Path,
    chunk: Dict[str, Tensor],
    num_features: int,
    num_actions: int,
) -> None:
    """Check that every array of a chunk has the shape its field needs.

    Raises:
        SessionFormatError: If lengths disagree or a row width is wrong
    """
    length = chunk["actions"].shape[0] if chunk["actions"].dim() > 0 else None
    expected_shapes = {
        "states": (length, num_features),
        "actions": (length,),
        "rewards": (length,),
        "next_states": (length, num_features),
        "invalid_action_masks": (length, num_actions),
        "is_terminal": (length,),
    }
    for name, expected in expected_shapes.items():
        shape = tuple(chunk[name].shape)
        if length is None or shape != expected:
            raise SessionFormatError(
                file_path,
                f"array '{name}' has shape {shape}, expected {expected}",
            )


class SessionDeserializer:
    """Rebuilds a training session from disk."""

    def deserialize(
        self,
        path: Union[str, Path],
        trainer: Trainer,
        model: Model,
    ) -> Tuple[Trainer, Model]:
        """Restore a session.

        The collaborators (state type, critic, augmenter, stats recorder,
        device) are taken from the given trainer; everything else comes
        from disk.

        Args:
            path: Session directory
            trainer: Trainer providing the domain collaborators
            model: Model to load the saved weights into

        Returns:
            Tuple of (restored trainer, restored model)

        Raises:
            SessionIOError: If a file cannot be read
            SessionFormatError: If the content is inconsistent
        """
        path = Path(path)
        document = self.deserialize_document(path / SESSION_FILE_NAME)
        replay_buffer = self.deserialize_replay_buffer(
            path / REPLAY_BUFFER_DIR_NAME, document, trainer
        )
        # Last, so a failure above leaves the given model untouched
        model = self.deserialize_model(path / MODEL_DIR_NAME / MODEL_FILE_NAME, model)

        restored = Trainer(
            hyperparameters=document.hyperparameters,
            state_type=trainer.state_type,
            critic=trainer.critic,
            data_augmenter=trainer.data_augmenter,
            stats_recorder=trainer.stats_recorder,
            device=trainer.device,
            replay_buffer=replay_buffer,
            epoch_number=document.training_info.epoch_number,
            frame_number=document.training_info.frame_number,
        )
        return restored, model

    def deserialize_document(self, file_path: Path) -> SessionDocument:
        try:
            with open(file_path, "r") as f:
                raw = json.load(f)
        except json.JSONDecodeError as e:
            raise SessionFormatError(file_path, str(e)) from e
        except OSError as e:
            raise SessionIOError(file_path, e) from e

        try:
            return SessionDocument.from_dict(raw)
        except (KeyError, TypeError, ValueError) as e:
            raise SessionFormatError(file_path, f"{type(e).__name__}: {e}") from e

    def deserialize_model(self, file_path: Path, model: Model) -> Model:
        try:
            return model.load(file_path)
        except (KeyError, RuntimeError, pickle.UnpicklingError) as e:
            raise SessionFormatError(file_path, f"{type(e).__name__}: {e}") from e
        except OSError as e:
            raise SessionIOError(file_path, e) from e

    def deserialize_replay_buffer(
        self,
        buffer_dir: Path,
        document: SessionDocument,
        trainer: Trainer,
    ) -> ReplayBuffer:
        info = document.replay_buffer
        num_features = trainer.state_type.NUM_FEATURES
        num_actions = trainer.state_type.NUM_ACTIONS

        chunks = []
        for file_path in get_chunk_list(buffer_dir):
            chunk = load_chunk(file_path)
            check_chunk(file_path, chunk, num_features, num_actions)
            chunks.append(chunk)

        transitions = None
        restored_size = 0
        if chunks:
            transitions = {
                name: torch.cat([chunk[name] for chunk in chunks])
                for name in TRANSITION_FIELDS
            }
            restored_size = transitions["actions"].shape[0]

        if restored_size != info.size:
            raise SessionFormatError(
                buffer_dir,
                f"expected {info.size} transitions, found {restored_size}",
            )

        try:
            return ReplayBuffer.from_transitions(
                augmenter=trainer.data_augmenter,
                capacity=info.capacity,
                write_position=info.write_position,
                transitions=transitions,
                num_features=num_features,
                num_actions=num_actions,
                device=trainer.device,
            )
        except (RuntimeError, ValueError) as e:
            raise SessionFormatError(buffer_dir, str(e)) from e
