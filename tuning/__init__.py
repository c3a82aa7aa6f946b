"""
Hyperparameter Tuning Module.

Optuna integration for tuning prioritized-replay DQN on 2048. Each replay
augmentation gets its own study.
"""

from tuning.study_config import StudyConfig, STUDY_CONFIGS
from tuning.search_spaces import build_training_config, suggest_hyperparams

__all__ = [
    "StudyConfig",
    "STUDY_CONFIGS",
    "build_training_config",
    "suggest_hyperparams",
]
