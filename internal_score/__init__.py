"""
Internal Score Factor-Weight Learning Engine
============================================

Learns interpretable factor weights (value, quality, growth, momentum, risk)
from per-stock fundamentals and realized forward returns using closed-form
OLS and ridge regression.

Quick Start
-----------
>>> from internal_score import FactorWeightLearner, SQLiteDataStore, JsonSnapshotRepository
>>> learner = FactorWeightLearner(
...     SQLiteDataStore("internal_score.db"),
...     JsonSnapshotRepository(".internal-score-history", "internal-score-analysis.json"),
... )
>>> result = learner.run()
>>> result.recommended.to_dict()

Modules
-------
- returns : realized returns over 30/90/180/365-day horizons
- collector : per-instrument snapshot collection
- features : complete-case feature matrix and z-score normalization
- linalg : Gaussian elimination with partial pivoting
- regression : OLS and ridge regression over a fixed lambda grid
- factors : feature-to-factor mapping and factor weights
- history : analysis snapshots, JSON repository and run-over-run deltas
- engine : the orchestrator
- database : SQLite and in-memory data stores
- config : centralized configuration

Command Line
------------
    python -m internal_score run --db internal_score.db
    python -m internal_score show
"""

__version__ = "0.1.0"

from .errors import IllConditionedSystemError, InsufficientDataError, InternalScoreError
from .returns import RETURN_FIELDS, RETURN_HORIZONS, calculate_returns
from .features import (
    FEATURE_NAMES,
    FeatureMatrix,
    NormalizationParams,
    build_feature_matrix,
    normalize_features,
)
from .linalg import solve_linear_system
from .regression import (
    RIDGE_LAMBDAS,
    RegressionModel,
    fit_ols,
    fit_regression,
    fit_ridge,
    r_squared,
    select_best_ridge,
)
from .factors import (
    FACTOR_NAMES,
    FEATURE_FACTOR_MAP,
    Factor,
    FactorWeights,
    map_coefficients_to_factors,
    rank_top_features,
)
from .database import DataStore, InMemoryDataStore, Instrument, SQLiteDataStore
from .collector import DataCollector, InstrumentSnapshot
from .history import (
    AnalysisSnapshot,
    HorizonResult,
    JsonSnapshotRepository,
    SnapshotDelta,
    SnapshotRepository,
    compute_delta,
)
from .engine import FactorWeightLearner, HorizonRun, LearningResult, analyze_horizon

__all__ = [
    "__version__",
    "InternalScoreError",
    "InsufficientDataError",
    "IllConditionedSystemError",
    "RETURN_FIELDS",
    "RETURN_HORIZONS",
    "calculate_returns",
    "FEATURE_NAMES",
    "FeatureMatrix",
    "NormalizationParams",
    "build_feature_matrix",
    "normalize_features",
    "solve_linear_system",
    "RIDGE_LAMBDAS",
    "RegressionModel",
    "fit_ols",
    "fit_regression",
    "fit_ridge",
    "r_squared",
    "select_best_ridge",
    "FACTOR_NAMES",
    "FEATURE_FACTOR_MAP",
    "Factor",
    "FactorWeights",
    "map_coefficients_to_factors",
    "rank_top_features",
    "DataStore",
    "InMemoryDataStore",
    "Instrument",
    "SQLiteDataStore",
    "DataCollector",
    "InstrumentSnapshot",
    "AnalysisSnapshot",
    "HorizonResult",
    "JsonSnapshotRepository",
    "SnapshotDelta",
    "SnapshotRepository",
    "compute_delta",
    "FactorWeightLearner",
    "HorizonRun",
    "LearningResult",
    "analyze_horizon",
]
