"""
Messages exchanged with the training worker.

Commands flow into the worker, events flow out. Both are plain immutable
values so they can cross the thread boundary through a queue.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Union

from training.stats_recorder import TrainingStats


class TrainingState(Enum):
    IDLE = "idle"
    TRAINING = "training"


# Commands

@dataclass(frozen=True)
class Start:
    pass


@dataclass(frozen=True)
class Pause:
    pass


@dataclass(frozen=True)
class SaveModel:
    path: Path


@dataclass(frozen=True)
class LoadModel:
    path: Path


@dataclass(frozen=True)
class SaveSession:
    path: Path


@dataclass(frozen=True)
class LoadSession:
    path: Path


@dataclass(frozen=True)
class Shutdown:
    """Ends the worker loop; the controlling side is going away."""
    pass


Command = Union[Start, Pause, SaveModel, LoadModel, SaveSession, LoadSession, Shutdown]


# Events

@dataclass(frozen=True)
class StateChanged:
    state: TrainingState


@dataclass(frozen=True)
class EpochFinished:
    stats: TrainingStats


@dataclass(frozen=True)
class CommandFailed:
    """A save or load command failed; training carries on."""
    command: Command
    message: str


@dataclass(frozen=True)
class ModelSaved:
    path: Path


@dataclass(frozen=True)
class ModelLoaded:
    path: Path


@dataclass(frozen=True)
class SessionSaved:
    path: Path


@dataclass(frozen=True)
class SessionLoaded:
    path: Path


Event = Union[
    StateChanged,
    EpochFinished,
    CommandFailed,
    ModelSaved,
    ModelLoaded,
    SessionSaved,
    SessionLoaded,
]
