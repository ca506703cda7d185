"""
PCA Statistical Functions

Diagnostics computed from a fitted PCAResult: Hotelling's T², Q residuals
(SPE) and per-variable variance explained. All take the number of model
components `k` explicitly and validate it before computing anything.
"""

import logging
from typing import Optional, Tuple, Union

import numpy as np
import pandas as pd
from scipy.stats import f, t

from .config import DEFAULT_CONFIDENCE_LEVEL
from .matrix_utils import ArrayLike
from .pca_projection import project, residuals, validate_component_count
from .pca_results import CenteredMatrix, PCAResult

logger = logging.getLogger(__name__)


def calculate_hotelling_t2(
    result: PCAResult,
    k: int,
    alpha: float = DEFAULT_CONFIDENCE_LEVEL,
    data: Optional[Union[ArrayLike, CenteredMatrix]] = None
) -> Tuple[np.ndarray, float]:
    """
    Calculate Hotelling's T² statistic on the first k components.

    T² measures the distance of each observation from the model centre in
    component space, each direction weighted by the inverse of its
    variance.

    Parameters
    ----------
    result : PCAResult
        Fitted model.
    k : int
        Number of components in the model.
    alpha : float, optional
        Confidence level for the critical limit. Default 0.95.
    data : array-like, optional
        New observations to evaluate. Default is the training data.

    Returns
    -------
    t2_values : np.ndarray
        T² per observation.
    t2_limit : float
        Critical value; inf when there are not more observations than
        components.

    Notes
    -----
    .. math::
        T^2_i = \\sum_{a=1}^{k} t_{ia}^2 / \\lambda_a

    with :math:`\\lambda_a` the sample variance of component a, and the limit

    .. math::
        T^2_{crit} = \\frac{(n-1) k}{n-k} F_{k, n-k, \\alpha}

    Null components (zero variance) are skipped since they carry no spread.

    References
    ----------
    .. [1] Jackson, J.E. (1991). A User's Guide to Principal Components.
    """
    k = validate_component_count(k, result.n_components)

    scores = project(result.centered if data is None else data, result, k).to_numpy()
    eigenvalues = result.eigenvalues[:k]
    active = eigenvalues > 0
    if not np.all(active):
        logger.debug("Skipping %d null component(s) in T²", int(np.sum(~active)))

    t2_values = np.sum(scores[:, active] ** 2 / eigenvalues[active], axis=1)

    n_samples = result.n_observations
    if n_samples <= k:
        t2_limit = np.inf
    else:
        f_value = f.ppf(alpha, k, n_samples - k)
        t2_limit = float((n_samples - 1) * k / (n_samples - k) * f_value)

    return t2_values, t2_limit


def calculate_q_residuals(
    result: PCAResult,
    k: int,
    alpha: float = DEFAULT_CONFIDENCE_LEVEL,
    data: Optional[Union[ArrayLike, CenteredMatrix]] = None
) -> Tuple[np.ndarray, float]:
    """
    Calculate Q residuals (SPE, squared prediction error) for a k-component model.

    Parameters
    ----------
    result : PCAResult
        Fitted model.
    k : int
        Number of components in the model.
    alpha : float, optional
        Confidence level for the critical limit. Default 0.95.
    data : array-like, optional
        New observations to evaluate. Default is the training data.

    Returns
    -------
    q_values : np.ndarray
        Q per observation: squared distance from the model plane.
    q_limit : float
        Critical value from a log-normal fit of the training Q values.

    Notes
    -----
    .. math::
        Q_i = \\sum_j (x_{ij} - \\hat{x}_{ij})^2

    Limit (log-normal approximation):

    .. math::
        Q_{crit} = 10^{\\mu_{log} + t_{\\alpha,n-1} \\sigma_{log}}

    where the log statistics come from the training observations.
    """
    k = validate_component_count(k, result.n_components)

    q_train = np.sum(residuals(result.centered, result, k).to_numpy() ** 2, axis=1)
    if data is None:
        q_values = q_train
    else:
        q_values = np.sum(residuals(data, result, k).to_numpy() ** 2, axis=1)

    q_log = np.log10(q_train + 1e-10)
    q_std_log = np.std(q_log, ddof=1)
    t_val = t.ppf(alpha, result.n_observations - 1)
    q_limit = float(10 ** (np.mean(q_log) + t_val * q_std_log))

    return q_values, q_limit


def calculate_variable_variance_explained(result: PCAResult, k: int) -> pd.DataFrame:
    """
    Fraction of each variable's (centered/scaled) variance reconstructed by k components.

    varexpl_j = 1 - Σ_i e_ij² / Σ_i x_ij²

    Variables are returned in their original order. Constant variables
    (no variance to explain) report 0.

    Returns
    -------
    pd.DataFrame
        Columns 'Variable' and 'Variance_Explained_Ratio' (0-1).
    """
    k = validate_component_count(k, result.n_components)

    X = np.asarray(result.centered.values)
    E = residuals(result.centered, result, k).to_numpy()

    unexplained = np.sum(E ** 2, axis=0)
    total = np.sum(X ** 2, axis=0)

    variance_explained = np.zeros(result.n_variables)
    nonzero = total > 1e-10
    variance_explained[nonzero] = 1 - unexplained[nonzero] / total[nonzero]

    # Rounding can push values a hair outside [0, 1]
    variance_explained = np.clip(variance_explained, 0, 1)

    return pd.DataFrame({
        'Variable': result.variable_names,
        'Variance_Explained_Ratio': variance_explained
    })
