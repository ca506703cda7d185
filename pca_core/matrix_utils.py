"""
Matrix and Vector Utilities

Shared numeric primitives for the PCA pipeline: input validation, means,
sample variance/covariance, correlation, matrix product and transpose.
All functions are pure and work in float64. Variance-type statistics use
the sample (n-1) denominator.
"""

import numpy as np
import pandas as pd
from typing import List, Optional, Sequence, Tuple, Union

from .exceptions import ShapeMismatch


ArrayLike = Union[pd.DataFrame, np.ndarray, Sequence[Sequence[float]]]


def as_matrix(
    data: ArrayLike,
    variable_names: Optional[Sequence[str]] = None,
    observation_names: Optional[Sequence[str]] = None
) -> Tuple[np.ndarray, List[str], List[str]]:
    """
    Convert a dataset into a float64 matrix plus variable/observation names.

    Parameters
    ----------
    data : pd.DataFrame, np.ndarray or sequence of sequences
        Rectangular numeric table (n_observations x n_variables).
    variable_names, observation_names : sequence of str, optional
        Override the names. DataFrame columns/index are used otherwise,
        falling back to 'Var1..Varp' and 'Obs1..Obsn'.

    Returns
    -------
    tuple
        (matrix, variable_names, observation_names). The matrix is a fresh
        copy; the caller's data is never aliased.

    Raises
    ------
    ShapeMismatch
        Ragged rows, non-numeric columns, wrong dimensionality, or names
        whose length does not match the table.
    ValueError
        Non-finite entries (NaN/inf).
    """
    if isinstance(data, pd.DataFrame):
        non_numeric = data.select_dtypes(exclude=[np.number]).columns
        if len(non_numeric) > 0:
            raise ShapeMismatch(
                f"DataFrame contains non-numeric columns: {list(non_numeric)}"
            )
        matrix = data.to_numpy(dtype=float, copy=True)
        default_vars = [str(c) for c in data.columns]
        default_obs = [str(i) for i in data.index]
    else:
        if not isinstance(data, np.ndarray):
            rows = list(data)
            try:
                lengths = {len(row) for row in rows}
            except TypeError as exc:
                raise ShapeMismatch("Each observation must be a sequence of measurements") from exc
            if len(lengths) > 1:
                raise ShapeMismatch(
                    f"Ragged input: rows have differing lengths {sorted(lengths)}"
                )
            data = rows
        try:
            matrix = np.array(data, dtype=float)
        except (TypeError, ValueError) as exc:
            raise ShapeMismatch(f"Input is not a rectangular numeric table: {exc}") from exc
        default_vars = None
        default_obs = None

    if matrix.ndim != 2:
        raise ShapeMismatch(
            f"Data must be 2-dimensional (observations x variables), got shape {matrix.shape}",
            got=matrix.shape
        )

    n_obs, n_vars = matrix.shape
    if n_obs == 0 or n_vars == 0:
        raise ShapeMismatch(f"Empty data matrix: {n_obs} observations, {n_vars} variables",
                            got=matrix.shape)

    if not np.all(np.isfinite(matrix)):
        raise ValueError("Data contains NaN or infinite values - clean the table before PCA")

    if variable_names is None:
        variable_names = default_vars or [f'Var{j+1}' for j in range(n_vars)]
    if observation_names is None:
        observation_names = default_obs or [f'Obs{i+1}' for i in range(n_obs)]

    variable_names = [str(v) for v in variable_names]
    observation_names = [str(o) for o in observation_names]

    if len(variable_names) != n_vars:
        raise ShapeMismatch(
            f"Got {len(variable_names)} variable names for {n_vars} columns",
            expected=(n_vars,), got=(len(variable_names),)
        )
    if len(observation_names) != n_obs:
        raise ShapeMismatch(
            f"Got {len(observation_names)} observation names for {n_obs} rows",
            expected=(n_obs,), got=(len(observation_names),)
        )

    return matrix, variable_names, observation_names


def _require_observations(matrix: np.ndarray, minimum: int = 2):
    if matrix.shape[0] < minimum:
        raise ShapeMismatch(
            f"Need at least {minimum} observations, got {matrix.shape[0]}",
            expected=(minimum,), got=(matrix.shape[0],)
        )


def mean(data: ArrayLike) -> np.ndarray:
    """Column means."""
    matrix, _, _ = as_matrix(data)
    return matrix.mean(axis=0)


def variance(data: ArrayLike) -> np.ndarray:
    """Sample variance of each column (ddof=1)."""
    matrix, _, _ = as_matrix(data)
    _require_observations(matrix)
    return matrix.var(axis=0, ddof=1)


def std(data: ArrayLike) -> np.ndarray:
    """Sample standard deviation of each column (ddof=1)."""
    return np.sqrt(variance(data))


def covariance(data: ArrayLike) -> np.ndarray:
    """
    Sample covariance matrix, (X - mean)^T (X - mean) / (n - 1).

    Returns a symmetric (p x p) array.
    """
    matrix, _, _ = as_matrix(data)
    _require_observations(matrix)
    centered = matrix - matrix.mean(axis=0)
    cov = matmul(transpose(centered), centered) / (matrix.shape[0] - 1)
    # Symmetrize away rounding asymmetry
    return (cov + cov.T) / 2.0


def correlation(data: ArrayLike) -> np.ndarray:
    """
    Pearson correlation matrix.

    Constant columns have undefined correlation and yield NaN in their
    row and column (diagonal included).
    """
    cov = covariance(data)
    sd = np.sqrt(np.diag(cov))
    with np.errstate(divide='ignore', invalid='ignore'):
        corr = cov / np.outer(sd, sd)
    corr[sd == 0, :] = np.nan
    corr[:, sd == 0] = np.nan
    return corr


def transpose(matrix: np.ndarray) -> np.ndarray:
    """Transpose of a 2-D array."""
    matrix = np.asarray(matrix, dtype=float)
    if matrix.ndim != 2:
        raise ShapeMismatch(f"transpose() needs a 2-D array, got shape {matrix.shape}",
                            got=matrix.shape)
    return matrix.T.copy()


def matmul(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """
    Matrix product a @ b with an explicit shape check.

    Raises ShapeMismatch when the inner dimensions differ.
    """
    a = np.asarray(a, dtype=float)
    b = np.asarray(b, dtype=float)
    if a.ndim != 2 or b.ndim != 2:
        raise ShapeMismatch(
            f"matmul() needs 2-D arrays, got shapes {a.shape} and {b.shape}",
            got=(a.shape, b.shape)
        )
    if a.shape[1] != b.shape[0]:
        raise ShapeMismatch(
            f"Cannot multiply {a.shape} by {b.shape}: inner dimensions differ",
            expected=(a.shape[1],), got=(b.shape[0],)
        )
    return a @ b


def column_norms(matrix: np.ndarray) -> np.ndarray:
    """Euclidean norm of each column."""
    return np.sqrt(np.sum(np.asarray(matrix, dtype=float) ** 2, axis=0))


def readonly(array: np.ndarray) -> np.ndarray:
    """Return a copy of `array` with the writeable flag cleared."""
    frozen = np.array(array, dtype=float, copy=True)
    frozen.setflags(write=False)
    return frozen
