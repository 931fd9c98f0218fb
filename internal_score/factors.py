"""
Coefficient-to-Factor Mapping
=============================

Each feature belongs to exactly one of five economic factors through the
static ``FEATURE_FACTOR_MAP`` table.  A model's factor weights are the mean
absolute coefficient of each factor's features, normalized to sum to one.
When every coefficient is zero the weights fall back to 0.2 each.

Coefficients are only comparable across features because they are fitted on
z-scored inputs.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Dict, List, Mapping, Sequence, Tuple

import numpy as np


class Factor(Enum):
    """The five scoring factors."""
    VALUE = "value"
    QUALITY = "quality"
    GROWTH = "growth"
    MOMENTUM = "momentum"
    RISK = "risk"


FACTOR_NAMES: Tuple[str, ...] = tuple(f.value for f in Factor)

FEATURE_FACTOR_MAP: Mapping[str, Factor] = {
    # Value
    "pe_ratio": Factor.VALUE,
    "pb_ratio": Factor.VALUE,
    "ps_ratio": Factor.VALUE,
    "forward_pe": Factor.VALUE,
    # Quality
    "roe": Factor.QUALITY,
    "roa": Factor.QUALITY,
    "profit_margin": Factor.QUALITY,
    "held_percent_insiders": Factor.QUALITY,
    "held_percent_institutions": Factor.QUALITY,
    # Growth
    "revenue_growth_qoq": Factor.GROWTH,
    "earnings_growth_qoq": Factor.GROWTH,
    # Momentum
    "average_volume": Factor.MOMENTUM,
    # Risk
    "beta": Factor.RISK,
    "debt_to_equity": Factor.RISK,
    "market_cap": Factor.RISK,
    "shares_outstanding": Factor.RISK,
}

EQUAL_WEIGHT = 1.0 / len(Factor)


@dataclass(frozen=True)
class FactorWeights:
    """Non-negative factor weights summing to one."""
    value: float
    quality: float
    growth: float
    momentum: float
    risk: float

    @classmethod
    def equal(cls) -> "FactorWeights":
        return cls(*(EQUAL_WEIGHT for _ in Factor))

    @classmethod
    def from_mapping(cls, payload: Mapping[str, float]) -> "FactorWeights":
        return cls(**{name: float(payload.get(name) or 0.0) for name in FACTOR_NAMES})

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)

    def total(self) -> float:
        return sum(self.to_dict().values())


def factor_label(feature_name: str) -> str:
    """Display label of a feature's factor ("Value", ..., or "Unknown")."""
    factor = FEATURE_FACTOR_MAP.get(feature_name)
    return factor.value.capitalize() if factor else "Unknown"


def map_coefficients_to_factors(
    coefficients: Sequence[float],
    feature_names: Sequence[str],
) -> FactorWeights:
    """
    Aggregate coefficients into normalized factor weights.

    Parameters
    ----------
    coefficients : sequence of float
        Model coefficients aligned with ``feature_names``.
    feature_names : sequence of str
        Features absent from ``FEATURE_FACTOR_MAP`` are ignored.

    Returns
    -------
    FactorWeights
    """
    if len(coefficients) != len(feature_names):
        raise ValueError(
            f"{len(coefficients)} coefficients for {len(feature_names)} features"
        )

    sums = {f: 0.0 for f in Factor}
    counts = {f: 0 for f in Factor}
    for coef, name in zip(coefficients, feature_names):
        factor = FEATURE_FACTOR_MAP.get(name)
        if factor is None:
            continue
        sums[factor] += abs(float(coef))
        counts[factor] += 1

    importance = {f: (sums[f] / counts[f] if counts[f] else 0.0) for f in Factor}
    total = sum(importance.values())
    if total == 0.0:
        return FactorWeights.equal()

    return FactorWeights(**{f.value: importance[f] / total for f in Factor})


def rank_top_features(
    coefficients: Sequence[float],
    feature_names: Sequence[str],
    limit: int = 10,
) -> List[Dict[str, object]]:
    """
    Features ordered by descending coefficient magnitude.

    Returns
    -------
    list of dict
        Up to ``limit`` entries ``{"name", "coefficient", "factor"}`` where
        ``coefficient`` is the absolute value.
    """
    magnitudes = np.abs(np.asarray(coefficients, dtype=float))
    order = sorted(range(len(feature_names)), key=lambda i: -magnitudes[i])
    return [
        {
            "name": feature_names[i],
            "coefficient": float(magnitudes[i]),
            "factor": factor_label(feature_names[i]),
        }
        for i in order[:limit]
    ]
