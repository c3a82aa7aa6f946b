"""
Hyperparameter Search Spaces.

Defines search spaces for the tunable parameters of prioritized-replay DQN
training and turns a sampled point into a TrainingConfig.

Replay capacity is searched over powers of two only, as the sum tree
requires.
"""

from typing import Any, Dict, List, Optional

from optuna import Trial

from dqn.trainer import Hyperparameters
from training.config import LoggingConfig, NetworkConfig, TrainingConfig


def suggest_hyperparams(trial: Trial) -> Dict[str, Any]:
    """Suggest all hyperparameters for a trial.

    Args:
        trial: Optuna trial object

    Returns:
        Dictionary of hyperparameter values (Hyperparameters fields plus
        "hidden_layers")
    """
    params: Dict[str, Any] = {}

    # ===================
    # Training Hyperparameters
    # ===================
    params["learning_rate"] = trial.suggest_float(
        "learning_rate", 1e-5, 1e-2, log=True
    )
    params["batch_size"] = trial.suggest_categorical(
        "batch_size", [32, 64, 128, 256]
    )
    params["discount_factor"] = trial.suggest_float("discount_factor", 0.9, 0.999)
    params["training_frequency"] = trial.suggest_categorical(
        "training_frequency", [1, 4, 10, 25]
    )

    # ===================
    # Epsilon Schedule (per epoch)
    # ===================
    params["initial_epsilon"] = trial.suggest_float("initial_epsilon", 0.1, 1.0)
    params["min_epsilon"] = trial.suggest_float(
        "min_epsilon", 0.0001, 0.05, log=True
    )
    params["epsilon_decay_frames"] = trial.suggest_int(
        "epsilon_decay_frames", 100, 10000, step=100
    )

    # ===================
    # Target Network
    # ===================
    params["network_sync_frequency"] = trial.suggest_int(
        "network_sync_frequency", 100, 10000, step=100
    )

    # ===================
    # Prioritized Replay
    # ===================
    params["replay_buffer_capacity"] = 2 ** trial.suggest_int(
        "replay_buffer_capacity_log2", 14, 17
    )
    params["per_alpha"] = trial.suggest_float("per_alpha", 0.3, 0.9)
    params["per_beta"] = trial.suggest_float("per_beta", 0.2, 0.6)
    params["per_beta_increment"] = trial.suggest_float(
        "per_beta_increment", 1e-4, 1e-2, log=True
    )

    # ===================
    # Network Architecture
    # ===================
    n_layers = trial.suggest_int("n_hidden_layers", 1, 3)
    hidden_layers: List[int] = []
    for i in range(n_layers):
        layer_size = trial.suggest_categorical(
            f"hidden_size_{i}", [64, 128, 256, 512]
        )
        hidden_layers.append(layer_size)
    params["hidden_layers"] = hidden_layers

    return params


def get_default_params() -> Dict[str, Any]:
    """Small, fast defaults for testing."""
    return {
        "learning_rate": 0.00025,
        "batch_size": 64,
        "discount_factor": 0.99,
        "training_frequency": 4,
        "initial_epsilon": 0.5,
        "min_epsilon": 0.0001,
        "epsilon_decay_frames": 1000,
        "network_sync_frequency": 1000,
        "replay_buffer_capacity": 2 ** 14,
        "per_alpha": 0.6,
        "per_beta": 0.4,
        "per_beta_increment": 0.001,
        "hidden_layers": [256, 256],
    }


def build_training_config(
    params: Dict[str, Any],
    device: str = "cpu",
    event_log: Optional[str] = None,
) -> TrainingConfig:
    """Turn suggested params into a run configuration.

    Raises:
        ValueError: If a value fails validation
    """
    return TrainingConfig(
        hyperparameters=Hyperparameters.from_dict(params),
        network=NetworkConfig(hidden_layers=list(params.get("hidden_layers", [256, 256]))),
        logging=LoggingConfig(event_log=event_log),
        device=device,
    )
