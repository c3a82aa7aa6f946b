"""
Study Configuration.

Defines the configuration dataclass and the predefined studies for
prioritized-replay DQN tuning, one per replay augmentation.
"""

from dataclasses import dataclass
from typing import Dict, Literal, Optional


VALID_AUGMENTATIONS = frozenset(["symmetry", "identity"])


@dataclass
class StudyConfig:
    """Configuration for a single Optuna study.

    Attributes:
        study_name: Unique name for the study
        augmentation: "symmetry" (8 transitions per step) or "identity"
        n_trials: Number of trials per study
        epochs_per_trial: Training epochs (episodes) per trial
        report_interval: Epochs between intermediate reports to the pruner
        eval_games: Greedy games played for the final trial value
        n_parallel_trials: Parallel trial count
        storage_path: SQLite storage path, None for in-memory
    """
    study_name: str
    augmentation: Literal["symmetry", "identity"] = "symmetry"
    n_trials: int = 50
    epochs_per_trial: int = 2000
    report_interval: int = 100
    eval_games: int = 20
    n_parallel_trials: int = 1
    storage_path: Optional[str] = "sqlite:///data/optuna/per_dqn_tuning.db"

    def __post_init__(self):
        """Validate configuration after initialization."""
        if self.augmentation not in VALID_AUGMENTATIONS:
            raise ValueError(
                f"Invalid augmentation '{self.augmentation}'. "
                f"Must be one of: {sorted(VALID_AUGMENTATIONS)}"
            )
        if self.n_trials <= 0:
            raise ValueError("n_trials must be positive")
        if self.epochs_per_trial <= 0:
            raise ValueError("epochs_per_trial must be positive")
        if self.report_interval <= 0:
            raise ValueError("report_interval must be positive")
        if self.eval_games < 0:
            raise ValueError("eval_games must be non-negative")


STUDY_CONFIGS: Dict[str, StudyConfig] = {
    "per_dqn_symmetry": StudyConfig(
        study_name="per_dqn_symmetry",
        augmentation="symmetry",
    ),
    "per_dqn_identity": StudyConfig(
        study_name="per_dqn_identity",
        augmentation="identity",
    ),
}
