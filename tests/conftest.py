"""
Pytest configuration and fixtures for the Internal Score engine tests.

This module provides shared fixtures and configuration for all tests.
"""

import pytest
import numpy as np
import pandas as pd
from datetime import datetime

# Ensure internal_score is importable
import sys
from pathlib import Path

# Add project root to path if running tests directly
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from internal_score.collector import InstrumentSnapshot
from internal_score.database import InMemoryDataStore
from internal_score.features import FEATURE_NAMES
from internal_score.history import JsonSnapshotRepository


AS_OF = datetime(2024, 6, 30)


def make_metrics(rng: np.random.RandomState) -> dict:
    """Random but plausible values for every feature."""
    return {name: float(rng.randn() * 10 + 20) for name in FEATURE_NAMES}


def make_prices(current: float, days: int, daily_drift: float, as_of=AS_OF) -> list:
    """Daily prices, most recent first, compounding ``daily_drift`` forward."""
    dates = pd.date_range(end=as_of, periods=days, freq="D")[::-1]
    return [
        (d.to_pydatetime(), current / (1 + daily_drift) ** i)
        for i, d in enumerate(dates)
    ]


@pytest.fixture
def as_of():
    return AS_OF


@pytest.fixture
def synthetic_snapshots():
    """Forty complete snapshots whose 90-day return depends on a few features."""
    rng = np.random.RandomState(42)
    snapshots = []
    for i in range(40):
        metrics = make_metrics(rng)
        ret90 = (
            0.8 * metrics["pe_ratio"]
            - 0.5 * metrics["roe"]
            + 0.3 * metrics["revenue_growth_qoq"]
            + rng.randn()
        )
        snapshots.append(
            InstrumentSnapshot(
                ticker=f"STK{i:03d}",
                return30d=ret90 / 3 + rng.randn(),
                return90d=ret90,
                **metrics,
            )
        )
    return snapshots


@pytest.fixture
def populated_store():
    """In-memory store with twelve complete instruments and 120 days of prices."""
    rng = np.random.RandomState(7)
    store = InMemoryDataStore()
    for i in range(12):
        drift = rng.uniform(-0.003, 0.004)
        store.add(
            f"TCK{i:02d}",
            metrics=make_metrics(rng),
            prices=make_prices(100.0 + i, 120, drift),
            quote={"current_price": 100.0 + i, "week52_high": 130.0, "week52_low": 80.0},
        )
    return store


@pytest.fixture
def repository(tmp_path):
    return JsonSnapshotRepository(
        history_dir=tmp_path / "history",
        latest_path=tmp_path / "internal-score-analysis.json",
    )
