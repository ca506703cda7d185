"""
Projection into and out of principal component space.

project()      : data -> scores on the first k components
reconstruct()  : scores -> centered (or original-unit) data from k components
residuals()    : what a k-component model leaves unexplained

The number of components `k` is validated before any computation; an
out-of-range value is a caller error and raises InvalidComponentCount.
"""

import logging
from typing import Optional, Sequence, Union

import numpy as np
import pandas as pd

from .exceptions import InvalidComponentCount, ShapeMismatch
from .matrix_utils import ArrayLike, matmul
from .pca_preprocessing import apply_preprocessing, undo_preprocessing
from .pca_results import CenteredMatrix, PCAResult, component_names

logger = logging.getLogger(__name__)


def validate_component_count(k, available: int) -> int:
    """Return k as int if 1 <= k <= available, else raise InvalidComponentCount."""
    if isinstance(k, bool) or not isinstance(k, (int, np.integer)):
        raise InvalidComponentCount(k, available)
    if k < 1 or k > available:
        raise InvalidComponentCount(k, available)
    return int(k)


def project(
    dataset: Union[ArrayLike, CenteredMatrix],
    result: PCAResult,
    k: Optional[int] = None,
    observation_names: Optional[Sequence[str]] = None
) -> pd.DataFrame:
    """
    Project observations onto the first k principal components.

    Parameters
    ----------
    dataset : pd.DataFrame, np.ndarray, sequence of rows or CenteredMatrix
        Raw observations in the original variable units, centered and
        scaled here with the model's statistics. A CenteredMatrix is used
        as is.
    result : PCAResult
        Fitted model.
    k : int, optional
        Number of leading components. Default is all of them.

    Returns
    -------
    pd.DataFrame
        Scores (n_observations x k), columns PC1..PCk.

    Raises
    ------
    InvalidComponentCount
        k <= 0 or k > result.n_components.
    ShapeMismatch
        Variable count differs from the model.
    """
    if k is None:
        k = result.n_components
    k = validate_component_count(k, result.n_components)

    prepared = apply_preprocessing(dataset, result.centered, observation_names)
    if prepared.n_variables != result.n_variables:
        raise ShapeMismatch(
            f"Data has {prepared.n_variables} variables, model has {result.n_variables}",
            expected=(result.n_variables,), got=(prepared.n_variables,)
        )

    loadings = result.loading_matrix[:, :k]
    scores = matmul(np.asarray(prepared.values), loadings)

    return pd.DataFrame(
        scores,
        index=list(prepared.observation_names),
        columns=component_names(k)
    )


def reconstruct(
    scores: Union[pd.DataFrame, np.ndarray],
    result: PCAResult,
    k: Optional[int] = None,
    original_units: bool = False
) -> pd.DataFrame:
    """
    Map scores back to variable space using the first k components.

    X_hat = T[:, :k] @ P[:, :k]^T

    With k equal to the full component count of a full-rank model the
    reconstruction is exact up to rounding; with fewer components the
    discarded variance is lost.

    Parameters
    ----------
    scores : pd.DataFrame or np.ndarray
        (n_observations x m) scores with m >= k, as returned by project().
    result : PCAResult
        Fitted model.
    k : int, optional
        Number of leading components to use. Default is all columns of
        `scores`.
    original_units : bool, optional
        Undo scaling and centering so the output is in the units of the
        original data. Default False (centered/scaled units).

    Returns
    -------
    pd.DataFrame
        (n_observations x n_variables) reconstruction.

    Raises
    ------
    InvalidComponentCount
        k <= 0, k > result.n_components or k > number of score columns.
    """
    if isinstance(scores, pd.DataFrame):
        index = list(scores.index)
        scores_array = scores.to_numpy(dtype=float)
    else:
        scores_array = np.asarray(scores, dtype=float)
        if scores_array.ndim == 1:
            scores_array = scores_array.reshape(1, -1)
        index = None

    if scores_array.ndim != 2:
        raise ShapeMismatch(f"Scores must be 2-dimensional, got shape {scores_array.shape}",
                            got=scores_array.shape)

    available = min(result.n_components, scores_array.shape[1])
    if k is None:
        k = available
    if isinstance(k, (int, np.integer)) and not isinstance(k, bool) \
            and k > scores_array.shape[1] and k <= result.n_components:
        raise InvalidComponentCount(
            k, available,
            message=f"Requested {k} components but scores only have {scores_array.shape[1]} columns"
        )
    k = validate_component_count(k, result.n_components)

    X_hat = matmul(scores_array[:, :k], result.loading_matrix[:, :k].T)

    if original_units:
        X_hat = undo_preprocessing(X_hat, result.centered)

    return pd.DataFrame(X_hat, index=index, columns=result.variable_names)


def residuals(
    dataset: Union[ArrayLike, CenteredMatrix],
    result: PCAResult,
    k: int
) -> pd.DataFrame:
    """
    Residual matrix E = X - T_k P_k^T in centered/scaled units.

    The squared row sums are the Q residuals (SPE) of the observations.
    """
    k = validate_component_count(k, result.n_components)
    prepared = apply_preprocessing(dataset, result.centered)
    scores = project(prepared, result, k)
    X_hat = reconstruct(scores, result, k).to_numpy()
    E = np.asarray(prepared.values) - X_hat
    return pd.DataFrame(
        E,
        index=list(prepared.observation_names),
        columns=result.variable_names
    )
