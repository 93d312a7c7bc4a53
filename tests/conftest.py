"""Shared fixtures for protoevo tests."""

import sys
from pathlib import Path

import numpy as np
import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from protoevo.constants import FEATURE_LEN, NUM_CLASSES, MAX_FEATURE_VAL
from protoevo.datasets.digits import Dataset, make_synthetic_pair


def one_hot_rows() -> np.ndarray:
    """Ten feature rows e_0..e_9: MAX_FEATURE_VAL at position i, zeros elsewhere."""
    rows = np.zeros((NUM_CLASSES, FEATURE_LEN), dtype=np.int64)
    rows[np.arange(NUM_CLASSES), np.arange(NUM_CLASSES)] = MAX_FEATURE_VAL
    return rows


@pytest.fixture
def one_hot_dataset():
    """Single block whose row i is e_i with label i."""
    return Dataset(one_hot_rows(), np.arange(NUM_CLASSES), name='one_hot')


@pytest.fixture
def synthetic_pair():
    """Two small block-aligned datasets sharing class templates."""
    return make_synthetic_pair(n_blocks=3, noise=1.0, seed=123)


@pytest.fixture
def rng():
    return np.random.default_rng(2024)
