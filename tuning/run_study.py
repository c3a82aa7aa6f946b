"""
Run a single Optuna study.

Usage:
    python -m tuning.run_study

Studies use a MedianPruner(n_startup_trials=5, n_warmup_steps=10,
interval_steps=5) and a seeded TPESampler.
"""

from pathlib import Path
from typing import Optional

import optuna
from optuna.samplers import TPESampler

from tuning.objective import create_objective
from tuning.study_config import STUDY_CONFIGS, StudyConfig


DEFAULT_STUDY = "per_dqn_symmetry"


def create_study(config: StudyConfig, seed: int = 42) -> optuna.Study:
    """Create or load the study described by a config."""
    storage_path = config.storage_path

    # Ensure storage directory exists
    if storage_path is not None and storage_path.startswith("sqlite:///"):
        db_path = storage_path.replace("sqlite:///", "")
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    pruner = optuna.pruners.MedianPruner(
        n_startup_trials=5,
        n_warmup_steps=10,
        interval_steps=5
    )

    return optuna.create_study(
        study_name=config.study_name,
        storage=storage_path,
        direction="maximize",
        pruner=pruner,
        sampler=TPESampler(seed=seed),
        load_if_exists=True
    )


def run_study(
    config: StudyConfig,
    n_trials: Optional[int] = None,
    results_dir: Optional[Path] = Path("data/optuna/results"),
) -> optuna.Study:
    """Run a study and optionally write its best parameters to a text file.

    Args:
        config: Study configuration
        n_trials: Overrides config.n_trials
        results_dir: Where "<study>_best.txt" is written, None to skip

    Returns:
        The finished study
    """
    n_trials = n_trials if n_trials is not None else config.n_trials

    print(f"=" * 60)
    print(f"Study: {config.study_name}")
    print(f"Augmentation: {config.augmentation}")
    print(f"Trials: {n_trials}")
    print(f"Parallel jobs: {config.n_parallel_trials}")
    print(f"Epochs per trial: {config.epochs_per_trial}")
    print(f"Storage: {config.storage_path or 'in-memory'}")
    print(f"=" * 60)

    study = create_study(config)
    print(f"Loaded study with {len(study.trials)} existing trials")

    study.optimize(
        create_objective(config),
        n_trials=n_trials,
        n_jobs=config.n_parallel_trials,
    )

    completed = [t for t in study.trials if t.state == optuna.trial.TrialState.COMPLETE]
    print(f"\n" + "=" * 60)
    print(f"Study Complete: {config.study_name}")
    print(f"=" * 60)
    print(f"Number of finished trials: {len(study.trials)}")
    if not completed:
        print("No trial completed")
        return study

    print(f"Best trial: {study.best_trial.number}")
    print(f"Best value (avg score): {study.best_value:.2f}")
    print(f"\nBest hyperparameters:")
    for key, value in study.best_params.items():
        print(f"  {key}: {value}")

    if results_dir is not None:
        results_dir = Path(results_dir)
        results_dir.mkdir(parents=True, exist_ok=True)
        results_file = results_dir / f"{config.study_name}_best.txt"
        with open(results_file, "w") as f:
            f.write(f"Study: {config.study_name}\n")
            f.write(f"Best trial: {study.best_trial.number}\n")
            f.write(f"Best value: {study.best_value:.2f}\n")
            f.write(f"\nBest hyperparameters:\n")
            for key, value in study.best_params.items():
                f.write(f"  {key}: {value}\n")
        print(f"\nResults saved to: {results_file}")

    return study


def main():
    """Run the default study."""
    run_study(STUDY_CONFIGS[DEFAULT_STUDY])


if __name__ == "__main__":
    main()
