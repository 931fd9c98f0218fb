"""
Analysis Snapshots and Run-over-Run Deltas
==========================================

Every run produces one ``AnalysisSnapshot`` which is written twice: to a
dated, immutable history file and to an overwritten "latest" file.  The
previous latest file is read before it is replaced so factor-weight changes
can be reported for the reference horizon.

JSON layout::

    {
      "generatedAt": "2024-06-30T12:00:00",
      "generatedDate": "2024-06-30",
      "dataPoints": 120,
      "return90d": {
        "samples": 85, "features": 16,
        "linearRegression": {"r2": ..., "factors": {...}},
        "ridgeRegression": {"r2": ..., "lambda": 1.0, "factors": {...}},
        "topFeatures": [{"name": ..., "coefficient": ..., "factor": ...}]
      }
    }

Horizons without enough samples are absent.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Protocol, Tuple, Union

from .factors import FACTOR_NAMES, FactorWeights
from .returns import RETURN_FIELDS

_LOGGER = logging.getLogger(__name__)

REFERENCE_HORIZON = "return90d"

HISTORY_PREFIX = "internal-score-"


@dataclass(frozen=True)
class HorizonResult:
    """Serializable regression summary for one return horizon."""
    samples: int
    features: int
    linear_r2: float
    linear_factors: FactorWeights
    ridge_r2: float
    ridge_lambda: float
    ridge_factors: FactorWeights
    top_features: Tuple[Dict[str, Any], ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "samples": self.samples,
            "features": self.features,
            "linearRegression": {
                "r2": self.linear_r2,
                "factors": self.linear_factors.to_dict(),
            },
            "ridgeRegression": {
                "r2": self.ridge_r2,
                "lambda": self.ridge_lambda,
                "factors": self.ridge_factors.to_dict(),
            },
            "topFeatures": [dict(f) for f in self.top_features],
        }

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "HorizonResult":
        linear = payload.get("linearRegression") or {}
        ridge = payload.get("ridgeRegression") or {}
        return cls(
            samples=int(payload.get("samples") or 0),
            features=int(payload.get("features") or 0),
            linear_r2=float(linear.get("r2") or 0.0),
            linear_factors=FactorWeights.from_mapping(linear.get("factors") or {}),
            ridge_r2=float(ridge.get("r2") or 0.0),
            ridge_lambda=float(ridge.get("lambda") or 0.0),
            ridge_factors=FactorWeights.from_mapping(ridge.get("factors") or {}),
            top_features=tuple(dict(f) for f in payload.get("topFeatures") or []),
        )


@dataclass(frozen=True)
class AnalysisSnapshot:
    """One run's output across all analysed horizons."""
    generated_at: str
    generated_date: str
    data_points: int
    horizons: Dict[str, HorizonResult] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "generatedAt": self.generated_at,
            "generatedDate": self.generated_date,
            "dataPoints": self.data_points,
        }
        for key in RETURN_FIELDS:
            if key in self.horizons:
                payload[key] = self.horizons[key].to_dict()
        return payload

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "AnalysisSnapshot":
        horizons = {
            key: HorizonResult.from_mapping(payload[key])
            for key in RETURN_FIELDS
            if isinstance(payload.get(key), Mapping)
        }
        return cls(
            generated_at=str(payload.get("generatedAt") or ""),
            generated_date=str(payload.get("generatedDate") or "Unknown"),
            data_points=int(payload.get("dataPoints") or 0),
            horizons=horizons,
        )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------

class SnapshotRepository(Protocol):
    """Storage for analysis snapshots."""

    def load_latest(self) -> Optional[AnalysisSnapshot]:
        ...

    def save(self, snapshot: AnalysisSnapshot) -> Tuple[Any, Any]:
        ...


class JsonSnapshotRepository:
    """
    Snapshot storage as JSON files.

    Parameters
    ----------
    history_dir : str or Path
        Directory for ``internal-score-YYYY-MM-DD.json`` files.
    latest_path : str or Path
        The overwritten latest-analysis file.
    """

    def __init__(self, history_dir: Union[str, Path], latest_path: Union[str, Path]):
        self.history_dir = Path(history_dir)
        self.latest_path = Path(latest_path)

    def history_path(self, generated_date: str) -> Path:
        return self.history_dir / f"{HISTORY_PREFIX}{generated_date}.json"

    def load_latest(self) -> Optional[AnalysisSnapshot]:
        """The previous latest snapshot, or None if missing or unreadable."""
        try:
            raw = self.latest_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as exc:
            _LOGGER.warning("Could not read previous results from %s: %s", self.latest_path, exc)
            return None

        try:
            payload = json.loads(raw)
        except json.JSONDecodeError:
            _LOGGER.warning("Could not load previous results from %s", self.latest_path)
            return None

        if not isinstance(payload, dict):
            _LOGGER.warning("Ignoring malformed previous results in %s", self.latest_path)
            return None

        try:
            return AnalysisSnapshot.from_mapping(payload)
        except (ValueError, TypeError, AttributeError) as exc:
            _LOGGER.warning(
                "Ignoring malformed previous results in %s: %s", self.latest_path, exc
            )
            return None

    def save(self, snapshot: AnalysisSnapshot) -> Tuple[Path, Path]:
        """Write the dated history file, then the latest file."""
        self.history_dir.mkdir(parents=True, exist_ok=True)
        self.latest_path.parent.mkdir(parents=True, exist_ok=True)

        text = snapshot.to_json()
        history_path = self.history_path(snapshot.generated_date)
        history_path.write_text(text, encoding="utf-8")
        self.latest_path.write_text(text, encoding="utf-8")
        return history_path, self.latest_path

    def list_history(self) -> List[Path]:
        if not self.history_dir.exists():
            return []
        return sorted(self.history_dir.glob(f"{HISTORY_PREFIX}*.json"))


# ---------------------------------------------------------------------------
# Deltas
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FactorDelta:
    previous: float
    current: float
    delta: float
    delta_pct: float


@dataclass(frozen=True)
class SnapshotDelta:
    """Change in the ridge results of one horizon between two runs."""
    horizon: str
    previous_date: str
    current_date: str
    factors: Dict[str, FactorDelta]
    previous_r2: float
    current_r2: float
    r2_delta: float
    previous_samples: int
    current_samples: int
    samples_delta: int


def _delta(previous: float, current: float) -> FactorDelta:
    delta = current - previous
    pct = delta / previous * 100.0 if previous != 0 else 0.0
    return FactorDelta(previous, current, delta, pct)


def compute_delta(
    previous: Optional[AnalysisSnapshot],
    current: AnalysisSnapshot,
    horizon: str = REFERENCE_HORIZON,
) -> Optional[SnapshotDelta]:
    """
    Compare the ridge results of ``horizon`` between two snapshots.

    Returns None when there is no previous snapshot or either side lacks the
    horizon.
    """
    if previous is None:
        return None
    prev = previous.horizons.get(horizon)
    curr = current.horizons.get(horizon)
    if prev is None or curr is None:
        return None

    prev_factors = prev.ridge_factors.to_dict()
    curr_factors = curr.ridge_factors.to_dict()
    return SnapshotDelta(
        horizon=horizon,
        previous_date=previous.generated_date,
        current_date=current.generated_date,
        factors={
            name: _delta(prev_factors[name], curr_factors[name]) for name in FACTOR_NAMES
        },
        previous_r2=prev.ridge_r2,
        current_r2=curr.ridge_r2,
        r2_delta=curr.ridge_r2 - prev.ridge_r2,
        previous_samples=prev.samples,
        current_samples=curr.samples,
        samples_delta=curr.samples - prev.samples,
    )
