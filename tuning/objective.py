"""
Optuna Objective Function.

Trains prioritized-replay DQN with the suggested hyperparameters and
returns the greedy evaluation score. The mean score of the last
report_interval epochs is reported to the pruner at every interval.
"""

from collections import deque
from typing import Callable, Deque

import optuna
import torch
from optuna import Trial

from training.data_augmenter import IdentityAugmenter, SymmetryAugmenter
from training.run import evaluate
from training.training_thread import build_model, build_trainer
from tuning.search_spaces import build_training_config, suggest_hyperparams
from tuning.study_config import StudyConfig


def create_objective(config: StudyConfig) -> Callable[[Trial], float]:
    """Create Optuna objective function for a study.

    Args:
        config: Study configuration

    Returns:
        Objective function that takes a Trial and returns float (avg score)
    """

    def objective(trial: Trial) -> float:
        """Train and return the final evaluation score.

        Args:
            trial: Optuna trial object

        Returns:
            Average greedy score, or the mean training score of the last
            interval when eval_games is 0
        """
        device = "cuda" if torch.cuda.is_available() else "cpu"

        params = suggest_hyperparams(trial)
        training_config = build_training_config(params, device=device)

        augmenter = (
            SymmetryAugmenter() if config.augmentation == "symmetry" else IdentityAugmenter()
        )
        trainer = build_trainer(training_config, data_augmenter=augmenter)
        model = build_model(training_config)

        recent_scores: Deque[int] = deque(maxlen=config.report_interval)

        for epoch in range(1, config.epochs_per_trial + 1):
            model, stats = trainer.run_epoch(model)
            recent_scores.append(stats.last_score)

            if epoch % config.report_interval == 0:
                trial.report(sum(recent_scores) / len(recent_scores), epoch)

                if trial.should_prune():
                    raise optuna.TrialPruned()

        if config.eval_games == 0:
            return sum(recent_scores) / len(recent_scores) if recent_scores else 0.0

        return evaluate(trainer, model, config.eval_games).avg_score

    return objective
