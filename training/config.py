"""
Training Configuration.

Loads the YAML run configuration into validated dataclasses. The default
configuration ships next to this module as config.yaml.

Sections:
- hyperparameters: dqn.trainer.Hyperparameters fields
- network: hidden layer sizes and activation of the value network
- worker: background thread polling and queue sizes
- logging: JSONL event log location and console print frequency
- device: torch device name
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import torch
import yaml

from dqn.trainer import Hyperparameters


DEFAULT_CONFIG_PATH = Path(__file__).parent / "config.yaml"

VALID_ACTIVATIONS = frozenset(["relu", "tanh"])


@dataclass
class NetworkConfig:
    """Value network architecture.

    Attributes:
        hidden_layers: Hidden layer sizes
        activation: 'relu' or 'tanh'
    """
    hidden_layers: List[int] = field(default_factory=lambda: [256, 256])
    activation: str = "relu"

    def __post_init__(self):
        """Validate configuration after initialization."""
        if not self.hidden_layers or any(size <= 0 for size in self.hidden_layers):
            raise ValueError("hidden_layers must be a non-empty list of positive sizes")
        if self.activation not in VALID_ACTIVATIONS:
            raise ValueError(
                f"Invalid activation '{self.activation}'. "
                f"Must be one of: {sorted(VALID_ACTIVATIONS)}"
            )


@dataclass
class WorkerConfig:
    """Background training thread settings.

    Attributes:
        idle_poll_seconds: How long an idle worker waits for a command
        queue_size: Capacity of the command and event queues
    """
    idle_poll_seconds: float = 0.2
    queue_size: int = 64

    def __post_init__(self):
        """Validate configuration after initialization."""
        if self.idle_poll_seconds <= 0:
            raise ValueError("idle_poll_seconds must be positive")
        if self.queue_size <= 0:
            raise ValueError("queue_size must be positive")


@dataclass
class LoggingConfig:
    """Progress reporting.

    Attributes:
        event_log: JSONL file receiving one line per event, None disables it
        log_frequency: Print a progress line every N epochs
    """
    event_log: Optional[str] = "results/training_events.jsonl"
    log_frequency: int = 10

    def __post_init__(self):
        """Validate configuration after initialization."""
        if self.log_frequency <= 0:
            raise ValueError("log_frequency must be positive")


@dataclass
class TrainingConfig:
    """Complete run configuration."""
    hyperparameters: Hyperparameters = field(default_factory=Hyperparameters)
    network: NetworkConfig = field(default_factory=NetworkConfig)
    worker: WorkerConfig = field(default_factory=WorkerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    device: str = "cpu"

    @property
    def torch_device(self) -> torch.device:
        return torch.device(self.device)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "TrainingConfig":
        """Build from a parsed YAML mapping; missing sections use defaults.

        Raises:
            ValueError: If any value fails validation
        """
        return cls(
            hyperparameters=Hyperparameters.from_dict(
                raw.get("hyperparameters") or {}, strict=True
            ),
            network=NetworkConfig(**(raw.get("network") or {})),
            worker=WorkerConfig(**(raw.get("worker") or {})),
            logging=LoggingConfig(**(raw.get("logging") or {})),
            device=raw.get("device", "cpu"),
        )


def load_config(config_path: Union[str, Path, None] = None) -> TrainingConfig:
    """Load training configuration from YAML file.

    Args:
        config_path: Path to YAML configuration file, the bundled
            config.yaml when None

    Returns:
        TrainingConfig

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config is invalid
    """
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, "r") as f:
        raw = yaml.safe_load(f)

    if raw is None:
        raise ValueError("Config file is empty")
    if not isinstance(raw, dict):
        raise ValueError("Config file must contain a mapping")

    try:
        return TrainingConfig.from_dict(raw)
    except TypeError as e:
        # Unknown keys in a section
        raise ValueError(f"Invalid config {path}: {e}") from e
