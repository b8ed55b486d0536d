"""Shared test fixtures for the ghspace test suite.

This module provides common fixtures and utilities used across all tests.
"""

import pytest
import tempfile
import shutil
from pathlib import Path
import os

import numpy as np

from ghspace.metric.space import FiniteMetricSpace
from ghspace.gh.gh_config import GHConfig
from ghspace.utils.logging import setup_logger, shutdown_logging
from ghspace.utils.profiling import get_profile_manager


@pytest.fixture(scope="session", autouse=True)
def test_environment():
    """Set up test environment."""
    os.environ["GHSPACE_TEST_MODE"] = "true"
    os.environ["GHSPACE_LOG_LEVEL"] = "DEBUG"

    yield

    if "GHSPACE_TEST_MODE" in os.environ:
        del os.environ["GHSPACE_TEST_MODE"]


@pytest.fixture(scope="function", autouse=True)
def cleanup_logging():
    """Clean up logging after each test."""
    yield
    shutdown_logging()


@pytest.fixture(scope="function", autouse=True)
def cleanup_profiling():
    """Clean up profiling after each test."""
    yield
    get_profile_manager().clear_results()


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    temp_dir = tempfile.mkdtemp()
    yield Path(temp_dir)
    shutil.rmtree(temp_dir)


@pytest.fixture
def logger():
    """Create a test logger."""
    logger = setup_logger("test", level="DEBUG")
    yield logger
    shutdown_logging()


@pytest.fixture
def two_point():
    """Two points at distance 1."""
    return FiniteMetricSpace([[0.0, 1.0], [1.0, 0.0]], labels=["a", "b"], name="two_point")


@pytest.fixture
def triangle():
    """Equilateral triangle with side 1."""
    return FiniteMetricSpace.uniform(3, 1.0, labels=["p", "q", "r"], name="triangle")


@pytest.fixture
def path_space():
    """Four points on a line at 0, 1, 3, 6."""
    return FiniteMetricSpace.from_points(np.array([[0.0], [1.0], [3.0], [6.0]]), name="path")


@pytest.fixture
def random_planar():
    """Factory for random planar point clouds."""
    def _make(n, seed=0, scale=1.0):
        rng = np.random.default_rng(seed)
        return FiniteMetricSpace.from_points(scale * rng.random((n, 2)), name=f"planar_{n}_{seed}")
    return _make


@pytest.fixture
def bounded_config():
    """Configuration with diameter and covering bounds for fingerprints."""
    return GHConfig(diameter_bound=2.0, covering_bound=12)


# Custom pytest plugins
def pytest_configure(config):
    """Configure pytest."""
    config.addinivalue_line(
        "markers",
        "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
