"""Shared datasets for the PCA tests."""

import numpy as np
import pandas as pd
import pytest


def _correlated(n_samples: int, spread, seed: int) -> np.ndarray:
    """Data with a known, well separated covariance spectrum, randomly rotated."""
    rng = np.random.default_rng(seed)
    latent = rng.normal(size=(n_samples, len(spread))) * np.asarray(spread)
    rotation, _ = np.linalg.qr(rng.normal(size=(len(spread), len(spread))))
    return latent @ rotation.T + rng.normal(size=len(spread)) * 10


@pytest.fixture
def correlated_array():
    return _correlated(200, [5.0, 3.0, 2.0, 1.0], seed=0)


@pytest.fixture
def correlated_frame(correlated_array):
    return pd.DataFrame(
        correlated_array,
        columns=['temp', 'pressure', 'flow', 'level'],
        index=[f'S{i:03d}' for i in range(len(correlated_array))]
    )


@pytest.fixture
def diagonal_points():
    """Perfectly correlated two-column dataset."""
    return [[0.0, 0.0], [2.0, 2.0], [4.0, 4.0]]
