"""
Error types raised by the PCA pipeline.

Caller mistakes derive from ValueError, solver failures from
ArithmeticError. Rank deficiency is not an error: it is reported with
warnings.warn() using the RankDeficient category.
"""

from typing import Optional, Sequence


class PCAError(Exception):
    """Base class for every error raised by pca_core."""


class ShapeMismatch(PCAError, ValueError):
    """Input is not a rectangular numeric table, or dimensions do not line up."""

    def __init__(self, message: str, expected: Optional[tuple] = None, got: Optional[tuple] = None):
        super().__init__(message)
        self.expected = expected
        self.got = got


class DegenerateColumn(PCAError, ValueError):
    """A zero-variance column cannot be scaled to unit variance."""

    def __init__(self, columns: Sequence[str]):
        self.columns = list(columns)
        super().__init__(
            f"Cannot scale constant column(s) with zero standard deviation: {self.columns}"
        )


class NumericalDivergence(PCAError, ArithmeticError):
    """The eigen-solver failed to converge or produced an invalid spectrum."""

    def __init__(self, message: str, iterations: Optional[int] = None, component: Optional[int] = None):
        super().__init__(message)
        self.iterations = iterations
        self.component = component


class InvalidComponentCount(PCAError, ValueError):
    """Requested number (or index) of components is out of range."""

    def __init__(self, requested, available: int, message: Optional[str] = None):
        self.requested = requested
        self.available = available
        super().__init__(
            message or f"Number of components must be between 1 and {available}, got {requested!r}"
        )


class RankDeficient(UserWarning):
    """Fewer independent directions than variables; null components carry no variance."""
