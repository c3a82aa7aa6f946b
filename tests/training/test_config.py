"""Tests for YAML run configuration."""

import pytest
import torch
import yaml

from training.config import (
    DEFAULT_CONFIG_PATH,
    LoggingConfig,
    NetworkConfig,
    TrainingConfig,
    WorkerConfig,
    load_config,
)


def write_yaml(tmp_path, content):
    path = tmp_path / "config.yaml"
    path.write_text(content if isinstance(content, str) else yaml.safe_dump(content))
    return path


class TestLoadConfig:
    """Test loading configuration files."""

    def test_bundled_default(self):
        assert DEFAULT_CONFIG_PATH.exists()

        config = load_config()

        assert config.hyperparameters.replay_buffer_capacity == 2 ** 20
        assert config.hyperparameters.batch_size == 8192
        assert config.hyperparameters.training_frequency == 25
        assert config.network.hidden_layers == [256, 256]
        assert config.worker.queue_size == 64
        assert config.logging.log_frequency == 10
        assert config.torch_device == torch.device("cpu")

    def test_partial_file_uses_defaults(self, tmp_path):
        path = write_yaml(tmp_path, {
            "hyperparameters": {"batch_size": 32, "replay_buffer_capacity": 1024},
            "network": {"hidden_layers": [64], "activation": "tanh"},
        })

        config = load_config(path)

        assert config.hyperparameters.batch_size == 32
        assert config.hyperparameters.replay_buffer_capacity == 1024
        assert config.hyperparameters.discount_factor == 0.99
        assert config.network.activation == "tanh"
        assert config.worker == WorkerConfig()
        assert config.logging == LoggingConfig()

    def test_accepts_string_path(self, tmp_path):
        path = write_yaml(tmp_path, {"device": "cpu"})
        assert load_config(str(path)).device == "cpu"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.yaml")

    def test_empty_file(self, tmp_path):
        with pytest.raises(ValueError, match="empty"):
            load_config(write_yaml(tmp_path, ""))

    def test_not_a_mapping(self, tmp_path):
        with pytest.raises(ValueError, match="mapping"):
            load_config(write_yaml(tmp_path, "- 1\n- 2\n"))

    def test_unknown_section_key(self, tmp_path):
        path = write_yaml(tmp_path, {"network": {"hidden_layers": [8], "dropout": 0.1}})
        with pytest.raises(ValueError):
            load_config(path)

    def test_unknown_hyperparameter_key(self, tmp_path):
        path = write_yaml(tmp_path, "hyperparameters:\n  batchsize: 32\n")
        with pytest.raises(ValueError, match="batchsize"):
            load_config(path)

    @pytest.mark.parametrize("raw", [
        {"hyperparameters": {"replay_buffer_capacity": 1000}},
        {"network": {"activation": "gelu"}},
        {"network": {"hidden_layers": []}},
        {"worker": {"queue_size": 0}},
        {"logging": {"log_frequency": 0}},
    ])
    def test_invalid_values(self, tmp_path, raw):
        with pytest.raises(ValueError):
            load_config(write_yaml(tmp_path, raw))


class TestConfigDataclasses:
    """Test dataclass defaults and validation."""

    def test_defaults(self):
        config = TrainingConfig()
        assert config.network == NetworkConfig()
        assert config.logging.event_log == "results/training_events.jsonl"
        assert config.worker.idle_poll_seconds == 0.2

    def test_event_log_can_be_disabled(self):
        assert LoggingConfig(event_log=None).event_log is None

    def test_idle_poll_must_be_positive(self):
        with pytest.raises(ValueError):
            WorkerConfig(idle_poll_seconds=0)
