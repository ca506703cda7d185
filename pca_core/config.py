"""
Package-level configuration constants for pca_core.

Every constant here is a default; the functions that use one accept a
keyword argument of the same meaning so a single call can override it.
"""

# Decomposition route used by compute_pca() when none is given.
# One of 'svd', 'eigh', 'nipals'.
DEFAULT_METHOD = 'svd'
AVAILABLE_METHODS = ('svd', 'eigh', 'nipals')

# NIPALS iteration bound (per component) and convergence threshold on the
# squared score change relative to the squared score norm
NIPALS_MAX_ITER = 5000
NIPALS_TOLERANCE = 1e-20

# Eigenvalues in (-EIGENVALUE_TOLERANCE * max, 0) are rounding noise and are
# clamped to zero. Anything more negative is reported as divergence.
EIGENVALUE_TOLERANCE = 1e-9

# Eigenvalues <= RANK_TOLERANCE * max count as null directions
RANK_TOLERANCE = 1e-10

# A column whose sample std is at most this fraction of its largest absolute
# value is constant to working precision and cannot be autoscaled
DEGENERATE_STD_TOLERANCE = 1e-12

# Loadings within this distance of the largest magnitude tie for the sign rule
SIGN_TIE_TOLERANCE = 1e-9

# Bump whenever the sign/order rule in pca_normalization changes
SIGN_CONVENTION = 'max-abs-positive/v1'

DEFAULT_CONFIDENCE_LEVEL = 0.95
