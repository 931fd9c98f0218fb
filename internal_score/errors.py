"""Exception types raised by the factor-weight learning engine."""

from __future__ import annotations


class InternalScoreError(Exception):
    """Base class for engine errors."""
    pass


class InsufficientDataError(InternalScoreError):
    """Raised when too few instruments survive collection to run any regression."""

    def __init__(self, data_points: int, required: int):
        self.data_points = data_points
        self.required = required
        super().__init__(
            f"Not enough data points for statistical analysis "
            f"({data_points} collected, need at least {required})"
        )


class IllConditionedSystemError(InternalScoreError, ArithmeticError):
    """Raised when Gaussian elimination meets a (numerically) zero pivot."""

    def __init__(self, column: int, pivot: float):
        self.column = column
        self.pivot = pivot
        super().__init__(
            f"Linear system is singular or ill-conditioned "
            f"(pivot {pivot:.3e} in column {column})"
        )
