"""
Immutable value types passed between the PCA pipeline stages.

CenteredMatrix  - output of the preprocessor
Component       - one principal axis (loading vector + explained variance)
PCAResult       - the complete outcome of one analysis run

Arrays held by these objects are read-only; tabular views are returned as
fresh pandas objects on every access so consumers cannot alter the result.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from .config import SIGN_CONVENTION


def component_names(n_components: int) -> List[str]:
    return [f'PC{i+1}' for i in range(n_components)]


def calculate_variance_metrics(
    eigenvalues: Union[np.ndarray, Sequence[float]],
    total_variance: Optional[float] = None
) -> Dict[str, object]:
    """
    Variance explained metrics for a set of component variances.

    Parameters
    ----------
    eigenvalues : array-like
        Component variances, in component order.
    total_variance : float, optional
        Variance of the data the components were fitted on. Defaults to the
        sum of `eigenvalues`, which is only the data's variance when the
        components span the whole variable space; pass it explicitly for a
        truncated model so the ratios stay fractions of the data's variance.

    Returns
    -------
    dict
        'explained_variance', 'explained_variance_ratio',
        'cumulative_variance' (ratios in 0-1) and 'total_variance'.
        Ratios are all zero when the total variance is not positive.
    """
    eigenvalues = np.array(eigenvalues, dtype=float)
    if eigenvalues.ndim != 1:
        raise ValueError(f"Eigenvalues must be one-dimensional, got shape {eigenvalues.shape}")

    total = float(eigenvalues.sum() if total_variance is None else total_variance)
    ratio = eigenvalues / total if total > 0 else np.zeros_like(eigenvalues)

    return {
        'explained_variance': eigenvalues,
        'explained_variance_ratio': ratio,
        'cumulative_variance': np.cumsum(ratio),
        'total_variance': total,
    }


@dataclass(frozen=True, eq=False)
class CenteredMatrix:
    """Column-centered (optionally autoscaled) data plus the statistics used."""
    values: np.ndarray
    means: np.ndarray
    scales: np.ndarray
    scale: bool
    variable_names: Tuple[str, ...]
    observation_names: Tuple[str, ...]

    @property
    def n_observations(self) -> int:
        return self.values.shape[0]

    @property
    def n_variables(self) -> int:
        return self.values.shape[1]

    @property
    def total_variance(self) -> float:
        """Sum of the sample variances of the prepared columns (trace of the covariance)."""
        if self.n_observations < 2:
            return 0.0
        return float(np.sum(self.values ** 2) / (self.n_observations - 1))

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            np.array(self.values),
            index=list(self.observation_names),
            columns=list(self.variable_names)
        )


@dataclass(frozen=True, eq=False)
class Component:
    """
    One principal axis.

    loadings           : unit-length direction, one weight per variable
    explained_variance : eigenvalue of the covariance matrix (>= 0)
    solver_index       : position the solver emitted it at, used as tie-break
    """
    loadings: np.ndarray
    explained_variance: float
    solver_index: int

    def with_sign(self, sign: float) -> 'Component':
        flipped = np.array(self.loadings) * sign
        flipped.setflags(write=False)
        return Component(flipped, self.explained_variance, self.solver_index)


@dataclass(frozen=True, eq=False)
class Decomposition:
    """Raw solver output: components in solver order, before normalization."""
    components: Tuple[Component, ...]
    method: str
    rank: int
    n_iterations: Tuple[int, ...] = ()


@dataclass(frozen=True, eq=False)
class PCAResult:
    """
    Outcome of compute_pca().

    Attributes
    ----------
    centered : CenteredMatrix
        Prepared data and the means/scales needed to project new data.
    components : tuple of Component
        Ordered by descending explained variance, signs normalized.
    score_values : np.ndarray
        (n_observations x n_components) read-only scores of the training data.
    method : str
        Decomposition route ('svd', 'eigh' or 'nipals').
    rank : int
        Numerical rank of the prepared matrix.
    n_iterations : tuple of int
        NIPALS iterations per component (empty for direct solvers).
    sign_convention : str
        Identifier of the sign/order rule the components were normalized with.
    """
    centered: CenteredMatrix
    components: Tuple[Component, ...]
    score_values: np.ndarray
    method: str
    rank: int
    n_iterations: Tuple[int, ...] = ()
    sign_convention: str = field(default=SIGN_CONVENTION)

    # === SHAPES & NAMES ===

    @property
    def n_components(self) -> int:
        return len(self.components)

    @property
    def n_observations(self) -> int:
        return self.centered.n_observations

    @property
    def n_variables(self) -> int:
        return self.centered.n_variables

    @property
    def variable_names(self) -> List[str]:
        return list(self.centered.variable_names)

    @property
    def observation_names(self) -> List[str]:
        return list(self.centered.observation_names)

    @property
    def component_names(self) -> List[str]:
        return component_names(self.n_components)

    @property
    def rank_deficient(self) -> bool:
        return self.rank < self.n_variables

    # === PREPROCESSING STATISTICS ===

    @property
    def means(self) -> np.ndarray:
        return self.centered.means

    @property
    def scales(self) -> np.ndarray:
        return self.centered.scales

    @property
    def scale(self) -> bool:
        return self.centered.scale

    # === LOADINGS & SCORES ===

    @property
    def loading_matrix(self) -> np.ndarray:
        """(n_variables x n_components) array, one column per component."""
        if not self.components:
            return np.zeros((self.n_variables, 0))
        return np.column_stack([c.loadings for c in self.components])

    @property
    def loadings(self) -> pd.DataFrame:
        return pd.DataFrame(
            self.loading_matrix,
            index=self.variable_names,
            columns=self.component_names
        )

    @property
    def scores(self) -> pd.DataFrame:
        return pd.DataFrame(
            np.array(self.score_values),
            index=self.observation_names,
            columns=self.component_names
        )

    # === VARIANCE ===

    @property
    def eigenvalues(self) -> np.ndarray:
        return np.array([c.explained_variance for c in self.components], dtype=float)

    @property
    def explained_variance(self) -> np.ndarray:
        """Alias for eigenvalues."""
        return self.eigenvalues

    @property
    def total_variance(self) -> float:
        return self.centered.total_variance

    def variance_metrics(self) -> Dict[str, object]:
        """Variance explained by the kept components, as fractions of the data's variance."""
        return calculate_variance_metrics(self.eigenvalues, self.total_variance)

    @property
    def explained_variance_ratio(self) -> np.ndarray:
        return self.variance_metrics()['explained_variance_ratio']

    @property
    def cumulative_variance(self) -> np.ndarray:
        return self.variance_metrics()['cumulative_variance']

    def summary(self) -> pd.DataFrame:
        """Eigenvalue table: one row per component."""
        metrics = self.variance_metrics()
        return pd.DataFrame({
            'Eigenvalue': metrics['explained_variance'],
            'Variance_%': metrics['explained_variance_ratio'] * 100,
            'Cumulative_%': metrics['cumulative_variance'] * 100,
        }, index=self.component_names)

    def to_dict(self) -> Dict[str, object]:
        """Plain-dict view, keyed like the classic PCA results dictionary."""
        return {
            'algorithm': self.method,
            'scores': self.scores,
            'loadings': self.loadings,
            'eigenvalues': self.eigenvalues,
            'explained_variance': self.explained_variance,
            'explained_variance_ratio': self.explained_variance_ratio,
            'cumulative_variance': self.cumulative_variance,
            'total_variance': self.total_variance,
            'scaling': self.scale,
            'means': np.array(self.means),
            'stds': np.array(self.scales),
            'n_iterations': list(self.n_iterations),
            'n_components': self.n_components,
            'n_samples': self.n_observations,
            'n_features': self.n_variables,
            'rank': self.rank,
        }
