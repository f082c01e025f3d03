"""Shared fixtures for tessellation tests."""

import numpy as np
import pytest

WIDTH = 10.0
HEIGHT = 8.0


@pytest.fixture
def domain():
    return WIDTH, HEIGHT


@pytest.fixture
def five_points():
    """Centre point plus four points clustered around the wrapped corner."""
    return [[5, 4], [1, 1], [9, 1], [1, 7], [9, 7]]


@pytest.fixture
def irregular_points():
    """A generic configuration without symmetric or cocircular sites."""
    return [[1.3, 0.7], [4.1, 2.2], [8.6, 1.4], [2.4, 5.9], [6.2, 4.8],
            [9.1, 6.3], [3.7, 7.4], [7.3, 3.1]]


@pytest.fixture
def random_points():
    rng = np.random.default_rng(1234)
    return rng.uniform([0.0, 0.0], [WIDTH, HEIGHT], size=(15, 2))
