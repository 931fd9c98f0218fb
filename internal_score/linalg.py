"""
Dense Linear System Solver
==========================

Gaussian elimination with partial pivoting, shared by the OLS and ridge fits.

For column ``i`` the row (at or below ``i``) with the largest ``|a_ki|`` is
swapped into the pivot position before the rows below are eliminated; the
upper-triangular system is then solved by back substitution.

A pivot whose magnitude is at most ``PIVOT_TOLERANCE`` times the largest
entry of ``A`` means the system is singular to working precision, and
``IllConditionedSystemError`` is raised rather than returning inf/NaN.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from .errors import IllConditionedSystemError

PIVOT_TOLERANCE = 1e-12


def solve_linear_system(A: Sequence[Sequence[float]], b: Sequence[float]) -> np.ndarray:
    """
    Solve ``A x = b`` for a dense square ``A``.

    Parameters
    ----------
    A : (n, n) array-like
    b : (n,) array-like

    Returns
    -------
    np.ndarray
        Solution vector of length n.  ``A`` and ``b`` are not modified.

    Raises
    ------
    ValueError
        If ``A`` is not square or ``b`` does not match it.
    IllConditionedSystemError
        If a pivot is numerically zero.
    """
    A = np.array(A, dtype=float)
    b = np.array(b, dtype=float)

    if A.ndim != 2 or A.shape[0] != A.shape[1]:
        raise ValueError(f"A must be square, got shape {A.shape}")
    n = A.shape[0]
    if b.shape != (n,):
        raise ValueError(f"b must have shape ({n},), got {b.shape}")
    if n == 0:
        return np.zeros(0)

    aug = np.hstack([A, b.reshape(-1, 1)])
    threshold = PIVOT_TOLERANCE * np.abs(A).max()

    # Forward elimination
    for i in range(n):
        pivot_row = i + int(np.argmax(np.abs(aug[i:, i])))
        if pivot_row != i:
            aug[[i, pivot_row]] = aug[[pivot_row, i]]

        pivot = aug[i, i]
        if abs(pivot) <= threshold or not np.isfinite(pivot):
            raise IllConditionedSystemError(column=i, pivot=float(pivot))

        for k in range(i + 1, n):
            factor = aug[k, i] / pivot
            if factor != 0.0:
                aug[k, i:] -= factor * aug[i, i:]

    # Back substitution
    x = np.zeros(n)
    for i in range(n - 1, -1, -1):
        x[i] = (aug[i, n] - aug[i, i + 1:n] @ x[i + 1:]) / aug[i, i]

    return x
