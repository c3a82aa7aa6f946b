"""
Root pytest configuration for 2048 DQN project tests.

This module provides shared configuration and markers for all tests.
"""

import pytest
import torch


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow-running"
    )


@pytest.fixture(autouse=True)
def seed_torch():
    """Make torch randomness (sampling, spawns, init) repeatable per test."""
    torch.manual_seed(0)
