"""
Session document (session.json).

Layout:
    {
      "hyperparameters": {...},
      "replay_buffer": {"capacity": ..., "size": ..., "write_position": ...},
      "training_info": {"epoch_number": ..., "frame_number": ...}
    }
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict

from dqn.trainer import Hyperparameters


SESSION_FILE_NAME = "session.json"
MODEL_DIR_NAME = "model"
MODEL_FILE_NAME = "model.pt"
REPLAY_BUFFER_DIR_NAME = "replay_buffer"
CHUNK_EXTENSION = ".chunk"
CHUNK_SIZE = 2 ** 16


@dataclass
class ReplayBufferInfo:
    capacity: int
    size: int
    write_position: int


@dataclass
class TrainingInfo:
    epoch_number: int
    frame_number: int


@dataclass
class SessionDocument:
    """Everything about a session except model weights and transitions."""
    hyperparameters: Hyperparameters
    replay_buffer: ReplayBufferInfo
    training_info: TrainingInfo

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hyperparameters": self.hyperparameters.to_dict(),
            "replay_buffer": asdict(self.replay_buffer),
            "training_info": asdict(self.training_info),
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "SessionDocument":
        """Parse a loaded session.json.

        Raises:
            KeyError: If a section or field is missing
            ValueError: If hyperparameters fail validation
        """
        buffer_info = raw["replay_buffer"]
        training_info = raw["training_info"]

        return cls(
            hyperparameters=Hyperparameters.from_dict(raw["hyperparameters"]),
            replay_buffer=ReplayBufferInfo(
                capacity=int(buffer_info["capacity"]),
                size=int(buffer_info["size"]),
                write_position=int(buffer_info["write_position"]),
            ),
            training_info=TrainingInfo(
                epoch_number=int(training_info["epoch_number"]),
                frame_number=int(training_info["frame_number"]),
            ),
        )
