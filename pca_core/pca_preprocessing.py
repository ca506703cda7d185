"""
PCA Preprocessing - centering and autoscaling

Turns a raw numeric table into the CenteredMatrix the decomposition works
on. Scaling is always an explicit choice of the caller:

    scale=False  -> covariance PCA  (x - mean)
    scale=True   -> correlation PCA ((x - mean) / std, sample std)
"""

import logging
from typing import Optional, Sequence

import numpy as np

from .config import DEGENERATE_STD_TOLERANCE
from .exceptions import DegenerateColumn, ShapeMismatch
from .matrix_utils import ArrayLike, as_matrix, readonly
from .pca_results import CenteredMatrix

logger = logging.getLogger(__name__)


def prepare(
    dataset: ArrayLike,
    *,
    scale: bool,
    variable_names: Optional[Sequence[str]] = None,
    observation_names: Optional[Sequence[str]] = None,
    std_tolerance: float = DEGENERATE_STD_TOLERANCE
) -> CenteredMatrix:
    """
    Center (and optionally autoscale) a dataset.

    Parameters
    ----------
    dataset : pd.DataFrame, np.ndarray or sequence of rows
        Observations x variables. Never modified.
    scale : bool
        Divide each centered column by its sample standard deviation.
        Required keyword: covariance and correlation PCA give materially
        different components, so there is no default.
    variable_names, observation_names : sequence of str, optional
        Override the names taken from the dataset.
    std_tolerance : float, optional
        A column counts as constant when its standard deviation is at or
        below this fraction of its largest absolute value, so the cutoff
        follows the units the column is measured in.

    Returns
    -------
    CenteredMatrix

    Raises
    ------
    ShapeMismatch
        Ragged, empty or non-numeric input, or fewer than two observations.
    DegenerateColumn
        scale=True and at least one column is constant.
    """
    matrix, var_names, obs_names = as_matrix(dataset, variable_names, observation_names)
    n_obs, n_vars = matrix.shape

    if n_obs < 2:
        raise ShapeMismatch(
            f"Need at least 2 observations for PCA, got {n_obs}",
            expected=(2,), got=(n_obs,)
        )

    means = matrix.mean(axis=0)
    centered = matrix - means

    if scale:
        stds = centered.std(axis=0, ddof=1)
        magnitude = np.maximum(np.abs(matrix).max(axis=0), np.finfo(float).tiny)
        degenerate = stds <= std_tolerance * magnitude
        if np.any(degenerate):
            columns = [name for name, bad in zip(var_names, degenerate) if bad]
            raise DegenerateColumn(columns)
        centered = centered / stds
    else:
        stds = np.ones(n_vars)

    logger.debug(
        "Prepared %d x %d matrix (scale=%s)", n_obs, n_vars, scale
    )

    return CenteredMatrix(
        values=readonly(centered),
        means=readonly(means),
        scales=readonly(stds),
        scale=bool(scale),
        variable_names=tuple(var_names),
        observation_names=tuple(obs_names)
    )


def apply_preprocessing(
    dataset: ArrayLike,
    centered: CenteredMatrix,
    observation_names: Optional[Sequence[str]] = None
) -> CenteredMatrix:
    """
    Center/scale new observations with the statistics of a prepared matrix.

    Used to place new data in an existing model's space. A single
    observation is allowed here.

    Raises
    ------
    ShapeMismatch
        Column count differs from the prepared matrix.
    """
    if isinstance(dataset, CenteredMatrix):
        return dataset

    matrix, _, obs_names = as_matrix(dataset, observation_names=observation_names)
    if matrix.shape[1] != centered.n_variables:
        raise ShapeMismatch(
            f"Data has {matrix.shape[1]} variables, model was prepared with "
            f"{centered.n_variables}",
            expected=(centered.n_variables,), got=(matrix.shape[1],)
        )

    values = (matrix - centered.means) / centered.scales

    return CenteredMatrix(
        values=readonly(values),
        means=centered.means,
        scales=centered.scales,
        scale=centered.scale,
        variable_names=centered.variable_names,
        observation_names=tuple(obs_names)
    )


def undo_preprocessing(values: np.ndarray, centered: CenteredMatrix) -> np.ndarray:
    """Map centered/scaled values back to original units."""
    return np.asarray(values, dtype=float) * centered.scales + centered.means
