"""
PCA Calculation Functions

Decomposition engine of the package. Three interchangeable routes produce
the same principal axes (up to sign):

- 'svd'    : singular value decomposition of the centered matrix (default,
             never forms X'X explicitly)
- 'eigh'   : symmetric eigendecomposition of the covariance matrix X'X/(n-1)
- 'nipals' : Nonlinear Iterative Partial Least Squares, one component at a
             time with deflation; bounded iteration count

Eigenvalues are always expressed as sample variances (divided by n-1), so
all three routes report the same explained variance.
"""

import logging
import warnings
from typing import List, Optional, Tuple

import numpy as np
from scipy.linalg import null_space

from .config import (
    AVAILABLE_METHODS,
    DEFAULT_METHOD,
    EIGENVALUE_TOLERANCE,
    NIPALS_MAX_ITER,
    NIPALS_TOLERANCE,
    RANK_TOLERANCE,
    SIGN_CONVENTION,
)
from .exceptions import InvalidComponentCount, NumericalDivergence, RankDeficient
from .matrix_utils import ArrayLike, column_norms, matmul, readonly, transpose
from .pca_normalization import normalize_components
from .pca_preprocessing import prepare
from .pca_results import CenteredMatrix, Component, Decomposition, PCAResult

logger = logging.getLogger(__name__)


# === SOLVER ROUTES ===

def _svd_route(X: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    n_samples = X.shape[0]
    try:
        _, singular_values, Vt = np.linalg.svd(X, full_matrices=False)
    except np.linalg.LinAlgError as exc:
        raise NumericalDivergence(f"SVD did not converge: {exc}") from exc
    eigenvalues = singular_values ** 2 / (n_samples - 1)
    return eigenvalues, Vt.T


def _eigh_route(X: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    n_samples = X.shape[0]
    cov = matmul(transpose(X), X) / (n_samples - 1)
    cov = (cov + cov.T) / 2.0
    try:
        eigenvalues, eigenvectors = np.linalg.eigh(cov)
    except np.linalg.LinAlgError as exc:
        raise NumericalDivergence(f"Eigendecomposition did not converge: {exc}") from exc
    return eigenvalues, eigenvectors


def nipals(
    X: np.ndarray,
    n_components: Optional[int] = None,
    max_iter: int = NIPALS_MAX_ITER,
    tol: float = NIPALS_TOLERANCE,
    rank_tol: float = RANK_TOLERANCE
) -> Tuple[np.ndarray, np.ndarray, List[int]]:
    """
    NIPALS PCA on an already centered (and possibly scaled) matrix.

    Extracts components one at a time until `n_components` are found or the
    residual carries no more variance.

    Parameters
    ----------
    X : np.ndarray
        Centered data matrix (n_samples x n_features).
    n_components : int, optional
        Maximum number of components. Default is n_features.
    max_iter : int, optional
        Maximum iterations per component.
    tol : float, optional
        Convergence threshold on the squared score change, relative to the
        squared score norm.
    rank_tol : float, optional
        Stop when the residual sum of squares falls below this fraction of
        the original one.

    Returns
    -------
    eigenvalues : np.ndarray
        (k,) sample variances t't / (n-1).
    loadings : np.ndarray
        (n_features x k) unit loading vectors.
    n_iterations : list of int
        Iterations used per component.

    Raises
    ------
    NumericalDivergence
        A component did not converge within max_iter iterations.

    Notes
    -----
    Per component:
    1. t = column of the residual with the largest sum of squares
    2. p = X't / (t't), normalized to ||p|| = 1, orthogonalized against
       previous loadings
    3. t = X p
    4. repeat 2-3 until ||t_old - t||^2 <= tol * ||t||^2
    5. deflate: X <- X - t p'
    """
    X_residual = np.array(X, dtype=float, copy=True)
    n_samples, n_features = X_residual.shape
    if n_components is None:
        n_components = n_features

    total_ss = np.sum(X_residual ** 2)
    eigenvalues = []
    loadings_list = []
    n_iterations = []

    for comp in range(n_components):
        residual_ss = np.sum(X_residual ** 2)
        if total_ss == 0 or residual_ss <= rank_tol * total_ss:
            logger.debug("NIPALS stopped after %d components: residual exhausted", comp)
            break

        # Deterministic start: strongest residual column
        th = X_residual[:, int(np.argmax(np.sum(X_residual ** 2, axis=0)))].copy()
        previous = np.column_stack(loadings_list) if loadings_list else None

        iteration = 0
        while True:
            iteration += 1

            tsize = th @ th
            ph = X_residual.T @ th / tsize
            if previous is not None:
                ph -= previous @ (previous.T @ ph)
            psize = np.linalg.norm(ph)
            if psize == 0:
                raise NumericalDivergence(
                    f"NIPALS loading for component {comp + 1} collapsed to zero",
                    iterations=iteration,
                    component=comp + 1
                )
            ph /= psize

            th_old = th
            th = X_residual @ ph

            diff_sq = np.sum((th_old - th) ** 2)
            if diff_sq <= tol * (th @ th):
                break
            if iteration >= max_iter:
                raise NumericalDivergence(
                    f"NIPALS did not converge for component {comp + 1} "
                    f"within {max_iter} iterations",
                    iterations=iteration,
                    component=comp + 1
                )

        logger.debug("NIPALS component %d converged in %d iterations", comp + 1, iteration)

        eigenvalues.append((th @ th) / (n_samples - 1))
        loadings_list.append(ph)
        n_iterations.append(iteration)

        X_residual = X_residual - np.outer(th, ph)

    if loadings_list:
        loadings = np.column_stack(loadings_list)
    else:
        loadings = np.zeros((n_features, 0))

    return np.asarray(eigenvalues, dtype=float), loadings, n_iterations


# === SPECTRUM CLEAN-UP ===

def clamp_eigenvalues(eigenvalues: np.ndarray, tolerance: float = EIGENVALUE_TOLERANCE) -> np.ndarray:
    """
    Clamp slightly negative eigenvalues to zero.

    Covariance matrices are positive semi-definite; small negative values are
    rounding error. A value more negative than tolerance * max|eigenvalue|
    means the solver produced garbage and raises NumericalDivergence.
    """
    eigenvalues = np.asarray(eigenvalues, dtype=float)
    if eigenvalues.size == 0:
        return eigenvalues
    if not np.all(np.isfinite(eigenvalues)):
        raise NumericalDivergence("Solver returned non-finite eigenvalues")
    magnitude = np.max(np.abs(eigenvalues))
    if np.any(eigenvalues < -tolerance * magnitude):
        raise NumericalDivergence(
            f"Covariance spectrum is not positive semi-definite "
            f"(min eigenvalue {eigenvalues.min():.3e})"
        )
    return np.maximum(eigenvalues, 0.0)


def numerical_rank(eigenvalues: np.ndarray, tolerance: float = RANK_TOLERANCE) -> int:
    """Number of eigenvalues above tolerance * max eigenvalue."""
    eigenvalues = np.asarray(eigenvalues, dtype=float)
    if eigenvalues.size == 0 or eigenvalues.max() <= 0:
        return 0
    return int(np.sum(eigenvalues > tolerance * eigenvalues.max()))


def _complete_basis(vectors: np.ndarray, n_features: int) -> np.ndarray:
    """Orthonormal directions spanning the complement of `vectors`' columns."""
    if vectors.shape[1] == 0:
        return np.eye(n_features)
    return null_space(vectors.T)


# === ENGINE ===

def decompose(
    centered: CenteredMatrix,
    method: str = DEFAULT_METHOD,
    *,
    drop_null_components: bool = False,
    max_iter: int = NIPALS_MAX_ITER,
    tol: float = NIPALS_TOLERANCE,
    eigenvalue_tolerance: float = EIGENVALUE_TOLERANCE,
    rank_tolerance: float = RANK_TOLERANCE
) -> Decomposition:
    """
    Compute the principal axes of a prepared matrix.

    Parameters
    ----------
    centered : CenteredMatrix
        Output of pca_preprocessing.prepare().
    method : str, optional
        'svd' (default), 'eigh' or 'nipals'.
    drop_null_components : bool, optional
        Return only the components with non-zero explained variance when the
        matrix is rank deficient. By default the null directions are kept
        (explained variance 0) so the basis spans all variables.
    max_iter, tol : optional
        NIPALS iteration bound and convergence threshold.
    eigenvalue_tolerance : float, optional
        Relative tolerance for clamping negative eigenvalues.
    rank_tolerance : float, optional
        Relative threshold below which an eigenvalue counts as zero.

    Returns
    -------
    Decomposition
        Unit-length components in solver order (not yet sign-normalized),
        plus the numerical rank and the NIPALS iteration counts.

    Raises
    ------
    ValueError
        Unknown method.
    NumericalDivergence
        Solver failure, non-convergence, or a non-PSD spectrum.

    Warns
    -----
    RankDeficient
        Rank of the prepared matrix is below the number of variables.
    """
    if method not in AVAILABLE_METHODS:
        raise ValueError(f"Unknown decomposition method '{method}'. Use one of {AVAILABLE_METHODS}")

    X = np.asarray(centered.values, dtype=float)
    n_samples, n_features = X.shape
    n_iterations: List[int] = []

    if method == 'svd':
        eigenvalues, vectors = _svd_route(X)
    elif method == 'eigh':
        eigenvalues, vectors = _eigh_route(X)
    else:
        eigenvalues, vectors, n_iterations = nipals(
            X, max_iter=max_iter, tol=tol, rank_tol=rank_tolerance
        )

    eigenvalues = clamp_eigenvalues(eigenvalues, eigenvalue_tolerance)

    norms = column_norms(vectors)
    norms[norms == 0] = 1.0
    vectors = vectors / norms

    # Solvers may return fewer than n_features directions (n < p for SVD,
    # early stop for NIPALS); fill the rest of the space with null directions
    if vectors.shape[1] < n_features:
        complement = _complete_basis(vectors, n_features)
        vectors = np.column_stack([vectors, complement])
        eigenvalues = np.concatenate([eigenvalues, np.zeros(complement.shape[1])])

    rank = numerical_rank(eigenvalues, rank_tolerance)
    null_mask = np.ones(len(eigenvalues), dtype=bool)
    if rank > 0:
        null_mask = eigenvalues <= rank_tolerance * eigenvalues.max()
    eigenvalues[null_mask] = 0.0

    if rank < n_features:
        message = (
            f"Prepared matrix has rank {rank} < {n_features} variables; "
            f"{n_features - rank} component(s) carry no variance"
        )
        logger.warning(message)
        warnings.warn(message, RankDeficient, stacklevel=2)

    components = []
    for idx in range(vectors.shape[1]):
        if drop_null_components and null_mask[idx]:
            continue
        components.append(Component(
            loadings=readonly(vectors[:, idx]),
            explained_variance=float(eigenvalues[idx]),
            solver_index=idx
        ))

    logger.debug(
        "Decomposed %d x %d matrix with %s: %d components, rank %d",
        n_samples, n_features, method, len(components), rank
    )

    return Decomposition(
        components=tuple(components),
        method=method,
        rank=rank,
        n_iterations=tuple(n_iterations)
    )


def compute_pca(
    X: ArrayLike,
    *,
    scale: bool,
    method: str = DEFAULT_METHOD,
    n_components: Optional[int] = None,
    drop_null_components: bool = False,
    variable_names: Optional[List[str]] = None,
    observation_names: Optional[List[str]] = None,
    **solver_options
) -> PCAResult:
    """
    Run the full PCA pipeline: prepare, decompose, normalize, score.

    Parameters
    ----------
    X : pd.DataFrame, np.ndarray or sequence of rows
        Input data (n_samples x n_features). Never modified.
    scale : bool
        Autoscale columns (correlation PCA) or only center them
        (covariance PCA). Required.
    method : str, optional
        'svd' (default), 'eigh' or 'nipals'.
    n_components : int, optional
        Keep only the leading components. Default keeps all.
    drop_null_components : bool, optional
        Discard zero-variance directions of a rank-deficient matrix.
    variable_names, observation_names : list of str, optional
        Override names taken from the data.
    **solver_options
        Forwarded to decompose() (max_iter, tol, eigenvalue_tolerance,
        rank_tolerance).

    Returns
    -------
    PCAResult

    Raises
    ------
    ShapeMismatch, DegenerateColumn
        From preprocessing.
    NumericalDivergence
        From the decomposition.
    InvalidComponentCount
        n_components outside [1, available components].

    Examples
    --------
    >>> import numpy as np
    >>> X = np.random.default_rng(0).normal(size=(100, 5))
    >>> result = compute_pca(X, scale=True)
    >>> result.scores.shape
    (100, 5)
    >>> result.summary()['Cumulative_%'].iloc[-1]  # doctest: +SKIP
    100.0
    """
    centered = prepare(
        X,
        scale=scale,
        variable_names=variable_names,
        observation_names=observation_names
    )

    decomposition = decompose(
        centered,
        method=method,
        drop_null_components=drop_null_components,
        **solver_options
    )

    components = normalize_components(decomposition.components)

    if n_components is not None:
        if isinstance(n_components, bool) or not isinstance(n_components, (int, np.integer)) \
                or not 1 <= n_components <= len(components):
            raise InvalidComponentCount(n_components, len(components))
        components = components[:n_components]

    if components:
        loading_matrix = np.column_stack([c.loadings for c in components])
    else:
        loading_matrix = np.zeros((centered.n_variables, 0))
    scores = np.asarray(centered.values) @ loading_matrix

    logger.debug(
        "PCA finished: method=%s scale=%s components=%d", method, scale, len(components)
    )

    return PCAResult(
        centered=centered,
        components=components,
        score_values=readonly(scores),
        method=method,
        rank=decomposition.rank,
        n_iterations=decomposition.n_iterations,
        sign_convention=SIGN_CONVENTION
    )

