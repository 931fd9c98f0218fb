"""
Factor-Weight Learning Orchestrator
===================================

Drives the full run:

1. Collect ``InstrumentSnapshot`` records (abort if fewer than
   ``MIN_DATA_POINTS``).
2. For each horizon in ``HORIZONS``: build the complete-case feature matrix,
   z-score it, fit OLS and the ridge grid, map coefficients to factor
   weights and rank the top features.  Horizons with fewer than
   ``MIN_HORIZON_SAMPLES`` rows, or whose normal equations cannot be solved,
   are skipped.
3. Read the previous latest snapshot, save the new one and compute the
   reference-horizon delta.
4. Recommend the 90-day ridge factor weights (30-day as fallback).

Usage
-----
>>> learner = FactorWeightLearner(
...     SQLiteDataStore("internal_score.db"),
...     JsonSnapshotRepository(".internal-score-history", "internal-score-analysis.json"),
... )
>>> result = learner.run()
>>> result.recommended
FactorWeights(value=0.21, quality=0.18, growth=0.25, momentum=0.12, risk=0.24)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

import numpy as np

from .collector import DataCollector, InstrumentSnapshot
from .database import DataStore
from .errors import IllConditionedSystemError, InsufficientDataError
from .factors import FactorWeights, map_coefficients_to_factors, rank_top_features
from .features import (
    FEATURE_NAMES,
    FeatureMatrix,
    NormalizationParams,
    build_feature_matrix,
    normalize_features,
)
from .history import (
    REFERENCE_HORIZON,
    AnalysisSnapshot,
    HorizonResult,
    SnapshotDelta,
    SnapshotRepository,
    compute_delta,
)
from .regression import RIDGE_LAMBDAS, RegressionModel, fit_ols, select_best_ridge
from .returns import RETURN_FIELDS

_LOGGER = logging.getLogger(__name__)

HORIZONS: Tuple[str, ...] = RETURN_FIELDS
MIN_DATA_POINTS = 10
MIN_HORIZON_SAMPLES = 5
TOP_FEATURES = 10
# Preset source, in order of preference
PRESET_HORIZONS: Tuple[str, ...] = ("return90d", "return30d")


@dataclass(frozen=True, eq=False)
class HorizonRun:
    """Everything fitted for one horizon."""
    horizon: str
    matrix: FeatureMatrix
    normalization: NormalizationParams
    ols: RegressionModel
    ridge: RegressionModel
    ridge_candidates: Tuple[RegressionModel, ...]
    result: HorizonResult


@dataclass
class LearningResult:
    """Outcome of one ``FactorWeightLearner.run``."""
    snapshot: AnalysisSnapshot
    runs: Dict[str, HorizonRun]
    previous: Optional[AnalysisSnapshot] = None
    delta: Optional[SnapshotDelta] = None
    recommended: Optional[FactorWeights] = None
    written: Tuple[Any, ...] = field(default_factory=tuple)


def analyze_horizon(
    snapshots: Sequence[InstrumentSnapshot],
    horizon: str,
    feature_names: Sequence[str] = FEATURE_NAMES,
    lambdas: Sequence[float] = RIDGE_LAMBDAS,
    min_samples: int = MIN_HORIZON_SAMPLES,
) -> Optional[HorizonRun]:
    """
    Fit OLS and ridge for one horizon.

    Returns None when fewer than ``min_samples`` complete rows exist.
    ``IllConditionedSystemError`` propagates to the caller.
    """
    matrix = build_feature_matrix(snapshots, horizon, feature_names)
    if matrix.n_samples < min_samples:
        _LOGGER.warning(
            "Not enough data for %s (only %d samples)", horizon, matrix.n_samples
        )
        return None

    _LOGGER.info(
        "%s: prepared %d samples with %d features",
        horizon, matrix.n_samples, matrix.n_features,
    )
    X_norm, params = normalize_features(matrix.X, matrix.feature_names)

    ols = fit_ols(X_norm, matrix.y)
    ridge, candidates = select_best_ridge(X_norm, matrix.y, lambdas)
    _LOGGER.info(
        "%s: OLS R^2=%.4f, best ridge lambda=%g R^2=%.4f",
        horizon, ols.r2, ridge.regularization, ridge.r2,
    )

    result = HorizonResult(
        samples=matrix.n_samples,
        features=matrix.n_features,
        linear_r2=ols.r2,
        linear_factors=map_coefficients_to_factors(ols.coefficients, matrix.feature_names),
        ridge_r2=ridge.r2,
        ridge_lambda=float(ridge.regularization),
        ridge_factors=map_coefficients_to_factors(ridge.coefficients, matrix.feature_names),
        top_features=tuple(
            rank_top_features(ridge.coefficients, matrix.feature_names, TOP_FEATURES)
        ),
    )
    return HorizonRun(
        horizon=horizon,
        matrix=matrix,
        normalization=params,
        ols=ols,
        ridge=ridge,
        ridge_candidates=tuple(candidates),
        result=result,
    )


def recommend_weights(snapshot: AnalysisSnapshot) -> Optional[FactorWeights]:
    """Ridge factor weights of the first available preset horizon."""
    for horizon in PRESET_HORIZONS:
        result = snapshot.horizons.get(horizon)
        if result is not None:
            return result.ridge_factors
    return None


class FactorWeightLearner:
    """
    Learns factor weights from stored metrics and realized returns.

    Parameters
    ----------
    store : DataStore
        Instrument metrics and price history.
    repository : SnapshotRepository
        Where snapshots are read from and written to.
    collector : DataCollector, optional
        Overrides the default collector built on ``store``.
    clock : callable, optional
        Returns the run timestamp; defaults to ``datetime.now``.
    """

    def __init__(
        self,
        store: DataStore,
        repository: SnapshotRepository,
        collector: Optional[DataCollector] = None,
        clock: Callable[[], datetime] = datetime.now,
        feature_names: Sequence[str] = FEATURE_NAMES,
        lambdas: Sequence[float] = RIDGE_LAMBDAS,
    ):
        self.store = store
        self.repository = repository
        self.collector = collector or DataCollector(store)
        self.clock = clock
        self.feature_names = tuple(feature_names)
        self.lambdas = tuple(lambdas)

    def analyze(self, snapshots: Sequence[InstrumentSnapshot]) -> Dict[str, HorizonRun]:
        """Run every horizon; skipped horizons are absent from the result."""
        runs: Dict[str, HorizonRun] = {}
        for horizon in HORIZONS:
            try:
                run = analyze_horizon(snapshots, horizon, self.feature_names, self.lambdas)
            except IllConditionedSystemError as exc:
                _LOGGER.error("Skipping %s: %s", horizon, exc)
                continue
            if run is not None:
                runs[horizon] = run
        return runs

    def run(self, as_of: Optional[datetime] = None) -> LearningResult:
        """
        Execute a full learning run and persist the snapshot.

        Raises
        ------
        InsufficientDataError
            If fewer than ``MIN_DATA_POINTS`` instruments were collected.
        """
        now = self.clock()
        snapshots = self.collector.collect(as_of=as_of or now)
        if len(snapshots) < MIN_DATA_POINTS:
            raise InsufficientDataError(len(snapshots), MIN_DATA_POINTS)

        runs = self.analyze(snapshots)

        previous = self.repository.load_latest()
        snapshot = AnalysisSnapshot(
            generated_at=now.isoformat(),
            generated_date=now.date().isoformat(),
            data_points=len(snapshots),
            horizons={h: r.result for h, r in runs.items()},
        )
        written = self.repository.save(snapshot)
        _LOGGER.info("Saved analysis snapshot for %s", snapshot.generated_date)

        return LearningResult(
            snapshot=snapshot,
            runs=runs,
            previous=previous,
            delta=compute_delta(previous, snapshot, REFERENCE_HORIZON),
            recommended=recommend_weights(snapshot),
            written=tuple(written),
        )


def coefficient_table(run: HorizonRun) -> Dict[str, np.ndarray]:
    """OLS and ridge coefficients keyed by model, aligned to the feature names."""
    table = {"ols": run.ols.coefficients}
    for model in run.ridge_candidates:
        table[f"ridge_{model.regularization:g}"] = model.coefficients
    return table
