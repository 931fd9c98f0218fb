"""
Closed-Form Linear and Ridge Regression
=======================================

Both fits solve the intercept-augmented normal equations

    (XbᵀXb + P) β = Xbᵀy,    β = [intercept, coefficients...]

where ``Xb`` is ``X`` with a leading column of ones and ``P`` is diagonal
with ``P[0, 0] = 0`` (the intercept is never penalized) and ``P[j+1, j+1] =
penalty[j]``.  A zero penalty is ordinary least squares; a constant penalty
λ is ridge regression.

The ridge strength is chosen from ``RIDGE_LAMBDAS`` by in-sample R².  This
is not cross-validated.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .errors import IllConditionedSystemError
from .linalg import solve_linear_system

_LOGGER = logging.getLogger(__name__)

RIDGE_LAMBDAS: Tuple[float, ...] = (0.1, 1.0, 10.0)

# Jitter tried, in order, when the OLS normal equations are singular
OLS_FALLBACK_LAMBDAS: Tuple[float, ...] = (1e-8, 1e-6, 1e-4, 1e-2)


@dataclass(frozen=True, eq=False)
class RegressionModel:
    """A fitted linear model; ``regularization`` is None for plain OLS."""
    coefficients: np.ndarray
    intercept: float
    r2: float
    regularization: Optional[float] = None

    def predict(self, X: np.ndarray) -> np.ndarray:
        X = np.asarray(X, dtype=float)
        return self.intercept + X @ self.coefficients


def r_squared(y: np.ndarray, y_hat: np.ndarray) -> float:
    """
    Coefficient of determination ``1 - SSres / SStot``.

    A constant target has SStot == 0; that case returns 1.0 for a perfect
    fit and 0.0 otherwise.
    """
    y = np.asarray(y, dtype=float)
    y_hat = np.asarray(y_hat, dtype=float)
    ss_res = float(np.sum((y - y_hat) ** 2))
    ss_tot = float(np.sum((y - y.mean()) ** 2))
    if ss_tot == 0.0:
        return 1.0 if ss_res == 0.0 else 0.0
    return 1.0 - ss_res / ss_tot


def fit_regression(
    X: np.ndarray,
    y: np.ndarray,
    penalty: Optional[Sequence[float]] = None,
) -> Tuple[np.ndarray, float, float]:
    """
    Solve the penalized normal equations.

    Parameters
    ----------
    X : (n, p) array
    y : (n,) array
    penalty : (p,) array-like, optional
        Added to the coefficient diagonal of XᵀX.  ``None`` or zeros is OLS.

    Returns
    -------
    tuple of (coefficients, intercept, r2)

    Raises
    ------
    ValueError
        On empty or misaligned inputs.
    IllConditionedSystemError
        If the normal equations are singular.
    """
    X = np.asarray(X, dtype=float)
    y = np.asarray(y, dtype=float)
    if X.ndim != 2 or X.shape[0] == 0:
        raise ValueError(f"X must be a non-empty 2-D array, got shape {X.shape}")
    n, p = X.shape
    if y.shape != (n,):
        raise ValueError(f"y must have shape ({n},), got {y.shape}")

    pen = np.zeros(p) if penalty is None else np.asarray(penalty, dtype=float)
    if pen.shape != (p,):
        raise ValueError(f"penalty must have shape ({p},), got {pen.shape}")

    Xb = np.hstack([np.ones((n, 1)), X])
    XtX = Xb.T @ Xb
    XtX[np.arange(1, p + 1), np.arange(1, p + 1)] += pen
    Xty = Xb.T @ y

    beta = solve_linear_system(XtX, Xty)
    intercept = float(beta[0])
    coefficients = beta[1:]
    r2 = r_squared(y, intercept + X @ coefficients)
    return coefficients, intercept, r2


def fit_ols(X: np.ndarray, y: np.ndarray) -> RegressionModel:
    """
    Ordinary least squares via the normal equation.

    When XᵀX is singular (e.g. more features than samples, or a constant
    column) the fit is retried with the tiny ridge jitters in
    ``OLS_FALLBACK_LAMBDAS``; the jitter that succeeded is reported as the
    model's ``regularization``.
    """
    try:
        coefficients, intercept, r2 = fit_regression(X, y)
        return RegressionModel(coefficients, intercept, r2, None)
    except IllConditionedSystemError as exc:
        last_error = exc
        _LOGGER.warning("OLS normal equations singular (%s); retrying with jitter", exc)

    p = np.asarray(X).shape[1]
    for lam in OLS_FALLBACK_LAMBDAS:
        try:
            coefficients, intercept, r2 = fit_regression(X, y, np.full(p, lam))
        except IllConditionedSystemError as exc:
            last_error = exc
            continue
        _LOGGER.info("OLS solved with jitter lambda=%g", lam)
        return RegressionModel(coefficients, intercept, r2, lam)

    raise last_error


def fit_ridge(X: np.ndarray, y: np.ndarray, lam: float) -> RegressionModel:
    """Ridge regression with L2 strength ``lam`` on every coefficient."""
    if lam < 0:
        raise ValueError(f"lambda must be non-negative, got {lam}")
    p = np.asarray(X).shape[1]
    coefficients, intercept, r2 = fit_regression(X, y, np.full(p, float(lam)))
    return RegressionModel(coefficients, intercept, r2, float(lam))


def select_best_ridge(
    X: np.ndarray,
    y: np.ndarray,
    lambdas: Sequence[float] = RIDGE_LAMBDAS,
) -> Tuple[RegressionModel, List[RegressionModel]]:
    """
    Fit ridge for every λ and keep the highest in-sample R².

    Ties keep the earlier λ.

    Returns
    -------
    tuple of (best model, all candidate models in λ order)
    """
    if len(lambdas) == 0:
        raise ValueError("At least one lambda is required")

    candidates = []
    best: Optional[RegressionModel] = None
    for lam in lambdas:
        model = fit_ridge(X, y, lam)
        _LOGGER.debug("ridge lambda=%g: R^2=%.4f", lam, model.r2)
        candidates.append(model)
        if best is None or model.r2 > best.r2:
            best = model

    return best, candidates
