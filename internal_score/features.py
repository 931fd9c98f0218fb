"""
Feature Matrix Construction and Normalization
=============================================

Turns the collected ``InstrumentSnapshot`` records into the numeric inputs of
the regression trainer.

* ``build_feature_matrix`` keeps only rows with a finite value for every
  declared feature and for the target; there is no imputation.
* ``normalize_features`` z-scores each column with the population standard
  deviation.  Constant columns normalize to zeros.

Return fields are regression targets only and are rejected as features.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Iterable, Sequence, Tuple

import numpy as np

from .returns import RETURN_FIELDS

_LOGGER = logging.getLogger(__name__)

_STD_TOLERANCE = 1e-12

# Ordered feature list; the order fixes the coefficient layout.
FEATURE_NAMES: Tuple[str, ...] = (
    # Valuation
    "pe_ratio",
    "pb_ratio",
    "ps_ratio",
    "forward_pe",
    # Profitability
    "roe",
    "roa",
    "profit_margin",
    # Financial health
    "debt_to_equity",
    # Growth
    "revenue_growth_qoq",
    "earnings_growth_qoq",
    # Market
    "beta",
    "market_cap",
    "average_volume",
    "shares_outstanding",
    # Ownership
    "held_percent_insiders",
    "held_percent_institutions",
)


@dataclass(frozen=True)
class FeatureMatrix:
    """Design matrix, target vector and aligned tickers for one horizon."""
    feature_names: Tuple[str, ...]
    X: np.ndarray
    y: np.ndarray
    tickers: Tuple[str, ...]
    target: str

    @property
    def n_samples(self) -> int:
        return int(self.X.shape[0])

    @property
    def n_features(self) -> int:
        return len(self.feature_names)


@dataclass(frozen=True)
class NormalizationParams:
    """Per-feature mean and population standard deviation."""
    feature_names: Tuple[str, ...]
    means: np.ndarray
    stds: np.ndarray

    def transform(self, X: np.ndarray) -> np.ndarray:
        """Standardize new rows with the stored parameters."""
        X = np.asarray(X, dtype=float)
        if X.ndim != 2 or X.shape[1] != len(self.means):
            raise ValueError(
                f"Expected {len(self.means)} columns, got shape {X.shape}"
            )
        out = np.zeros_like(X)
        nonzero = self.stds > 0
        out[:, nonzero] = (X[:, nonzero] - self.means[nonzero]) / self.stds[nonzero]
        return out


def _finite(value: Any) -> bool:
    if value is None or isinstance(value, bool):
        return False
    try:
        return math.isfinite(value)
    except TypeError:
        return False


def build_feature_matrix(
    snapshots: Iterable[Any],
    target: str,
    feature_names: Sequence[str] = FEATURE_NAMES,
) -> FeatureMatrix:
    """
    Build the complete-case design matrix for one return horizon.

    Parameters
    ----------
    snapshots : iterable of InstrumentSnapshot
        Records exposing ``ticker``, the feature attributes and ``target``.
    target : str
        Return field used as ``y`` (e.g. ``"return90d"``).
    feature_names : sequence of str
        Ordered feature attributes; return fields are not allowed.

    Returns
    -------
    FeatureMatrix
        Rows whose target and every feature are finite numbers.

    Raises
    ------
    ValueError
        If the target is not a return field or a feature is one.
    """
    if target not in RETURN_FIELDS:
        raise ValueError(f"Unknown target {target!r}; expected one of {RETURN_FIELDS}")
    leaked = [name for name in feature_names if name in RETURN_FIELDS]
    if leaked:
        raise ValueError(f"Return fields cannot be used as features: {leaked}")

    names = tuple(feature_names)
    rows, targets, tickers = [], [], []

    for snap in snapshots:
        y_val = getattr(snap, target, None)
        if not _finite(y_val):
            continue

        features = []
        for name in names:
            value = getattr(snap, name, None)
            if not _finite(value):
                break
            features.append(float(value))
        else:
            rows.append(features)
            targets.append(float(y_val))
            tickers.append(snap.ticker)

    X = np.array(rows, dtype=float).reshape(len(rows), len(names))
    _LOGGER.debug("%s: %d complete rows over %d features", target, len(rows), len(names))

    return FeatureMatrix(
        feature_names=names,
        X=X,
        y=np.array(targets, dtype=float),
        tickers=tuple(tickers),
        target=target,
    )


def normalize_features(
    X: np.ndarray,
    feature_names: Sequence[str] = (),
) -> Tuple[np.ndarray, NormalizationParams]:
    """
    Z-score standardize each column of ``X``.

    Uses the population standard deviation (divide by N).  A column with
    zero standard deviation maps to all zeros.

    Returns
    -------
    tuple of (np.ndarray, NormalizationParams)
    """
    X = np.asarray(X, dtype=float)
    names = tuple(feature_names)

    if X.size == 0:
        n_cols = X.shape[1] if X.ndim == 2 else 0
        empty = np.zeros(0)
        return X.reshape(0, n_cols), NormalizationParams(names, empty, empty)

    means = X.mean(axis=0)
    stds = X.std(axis=0, ddof=0)
    # Rounding can leave a constant column with a tiny non-zero std
    stds[stds <= _STD_TOLERANCE * np.maximum(np.abs(means), 1.0)] = 0.0
    params = NormalizationParams(names, means, stds)

    return params.transform(X), params
