"""
Sign & order normalization of principal components.

Eigen-solvers return components in solver-dependent order and with an
arbitrary sign. This module fixes both so identical input always gives
identical output, whichever solver produced it:

1. Order: descending explained variance; equal variances keep the order the
   solver emitted them in (stable sort on solver_index).
2. Sign: each loading vector is flipped so that its largest-magnitude
   coefficient is positive. When several coefficients tie for the largest
   magnitude (within SIGN_TIE_TOLERANCE) the first one in variable order
   decides.

The rule is identified by config.SIGN_CONVENTION; results normalized under a
different identifier must not be mixed with new ones.
"""

from typing import Iterable, Tuple

import numpy as np

from .config import SIGN_TIE_TOLERANCE
from .pca_results import Component


def sign_of_loadings(loadings: np.ndarray, tie_tolerance: float = SIGN_TIE_TOLERANCE) -> float:
    """
    Return +1.0 or -1.0: the factor that makes the dominant coefficient positive.

    A zero vector returns +1.0.
    """
    loadings = np.asarray(loadings, dtype=float)
    if loadings.size == 0:
        return 1.0
    magnitudes = np.abs(loadings)
    largest = magnitudes.max()
    if largest == 0:
        return 1.0
    # First coefficient within tolerance of the maximum magnitude
    pivot = int(np.flatnonzero(magnitudes >= largest - tie_tolerance)[0])
    return 1.0 if loadings[pivot] > 0 else -1.0


def order_components(components: Iterable[Component]) -> Tuple[Component, ...]:
    """Sort by descending explained variance, ties by ascending solver index."""
    return tuple(sorted(
        components,
        key=lambda c: (-c.explained_variance, c.solver_index)
    ))


def normalize_components(
    components: Iterable[Component],
    tie_tolerance: float = SIGN_TIE_TOLERANCE
) -> Tuple[Component, ...]:
    """
    Apply the deterministic order and sign convention.

    Parameters
    ----------
    components : iterable of Component
        Unordered output of pca_calculations.decompose().
    tie_tolerance : float, optional
        Magnitude tolerance for deciding the dominant loading.

    Returns
    -------
    tuple of Component
        Ordered, sign-normalized components. Inputs are not modified.
    """
    ordered = order_components(components)
    return tuple(
        c.with_sign(sign_of_loadings(c.loadings, tie_tolerance)) for c in ordered
    )
