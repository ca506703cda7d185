"""
PCA Core
========

Principal Component Analysis engine: centering/autoscaling, decomposition
(SVD, covariance eigendecomposition or NIPALS), deterministic sign and order
normalization, projection and reconstruction, and quality metrics.

Package Structure
-----------------
matrix_utils       : Numeric primitives (mean, variance, covariance, matmul)
pca_preprocessing  : Centering and autoscaling
pca_calculations   : Decomposition engine and the compute_pca() pipeline
pca_normalization  : Sign and order convention for components
pca_projection     : Projection into and out of component space
pca_quality        : Contributions and cosine-squared
pca_statistics     : Hotelling T², Q residuals, variance explained per variable
pca_results        : Immutable result types
exceptions         : Error types
config             : Package-level configuration constants

Quick Start
-----------
>>> from pca_core import compute_pca, project, reconstruct, variable_contributions
>>> import pandas as pd
>>>
>>> data = pd.DataFrame(...)
>>> result = compute_pca(data, scale=True)
>>>
>>> scores = project(data, result, k=2)
>>> approx = reconstruct(scores, result, k=2, original_units=True)
>>> contrib = variable_contributions(result)
"""

# Import configuration constants
from .config import (
    DEFAULT_METHOD,
    AVAILABLE_METHODS,
    NIPALS_MAX_ITER,
    NIPALS_TOLERANCE,
    EIGENVALUE_TOLERANCE,
    RANK_TOLERANCE,
    DEGENERATE_STD_TOLERANCE,
    SIGN_TIE_TOLERANCE,
    SIGN_CONVENTION,
    DEFAULT_CONFIDENCE_LEVEL
)

# Import error types
from .exceptions import (
    PCAError,
    ShapeMismatch,
    DegenerateColumn,
    NumericalDivergence,
    InvalidComponentCount,
    RankDeficient
)

# Import result types
from .pca_results import (
    CenteredMatrix,
    Component,
    Decomposition,
    PCAResult,
    calculate_variance_metrics
)

# Import pipeline stages
from .pca_preprocessing import prepare, apply_preprocessing
from .pca_calculations import (
    compute_pca,
    decompose,
    nipals,
    clamp_eigenvalues,
    numerical_rank
)
from .pca_normalization import normalize_components, sign_of_loadings
from .pca_projection import project, reconstruct, residuals

# Import quality metrics
from .pca_quality import (
    variable_contributions,
    observation_contributions,
    variable_cos2,
    observation_cos2,
    contribution,
    cos2
)

# Import statistical functions
from .pca_statistics import (
    calculate_hotelling_t2,
    calculate_q_residuals,
    calculate_variable_variance_explained
)

# Define public API
__all__ = [
    # Configuration constants
    'DEFAULT_METHOD',
    'AVAILABLE_METHODS',
    'NIPALS_MAX_ITER',
    'NIPALS_TOLERANCE',
    'EIGENVALUE_TOLERANCE',
    'RANK_TOLERANCE',
    'DEGENERATE_STD_TOLERANCE',
    'SIGN_TIE_TOLERANCE',
    'SIGN_CONVENTION',
    'DEFAULT_CONFIDENCE_LEVEL',

    # Errors
    'PCAError',
    'ShapeMismatch',
    'DegenerateColumn',
    'NumericalDivergence',
    'InvalidComponentCount',
    'RankDeficient',

    # Result types
    'CenteredMatrix',
    'Component',
    'Decomposition',
    'PCAResult',

    # Pipeline
    'prepare',
    'apply_preprocessing',
    'compute_pca',
    'decompose',
    'nipals',
    'clamp_eigenvalues',
    'numerical_rank',
    'calculate_variance_metrics',
    'normalize_components',
    'sign_of_loadings',
    'project',
    'reconstruct',
    'residuals',

    # Quality metrics
    'variable_contributions',
    'observation_contributions',
    'variable_cos2',
    'observation_cos2',
    'contribution',
    'cos2',

    # Statistical functions
    'calculate_hotelling_t2',
    'calculate_q_residuals',
    'calculate_variable_variance_explained',
]

# Package metadata
__version__ = '1.0.0'
__description__ = 'Principal Component Analysis engine'
