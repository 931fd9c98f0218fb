"""Console reports for learning runs, deltas and the recommended preset."""

from __future__ import annotations

from typing import List, Optional

import pandas as pd

from .engine import HorizonRun, LearningResult, coefficient_table
from .factors import FACTOR_NAMES, FactorWeights
from .history import AnalysisSnapshot, HorizonResult, SnapshotDelta

RULE = "=" * 60


def horizon_title(horizon: str) -> str:
    """``"return90d"`` -> ``"90-day"``."""
    return horizon.replace("return", "").replace("d", "-day")


def format_factor_weights(weights: FactorWeights, title: str) -> str:
    lines = [f"📈 Factor Weights ({title}):"]
    for name, value in weights.to_dict().items():
        lines.append(f"   {name.capitalize() + ':':<10}{value * 100:.1f}%")
    return "\n".join(lines)


def format_horizon_result(horizon: str, result: HorizonResult) -> str:
    """Summary block for a stored horizon result."""
    lines = [
        RULE,
        f"📊 {horizon_title(horizon)} returns: {result.samples} samples, "
        f"{result.features} features",
        RULE,
        f"1️⃣  Linear Regression (OLS)   R² = {result.linear_r2:.4f}",
        f"2️⃣  Ridge Regression          R² = {result.ridge_r2:.4f} "
        f"(λ = {result.ridge_lambda:g})",
        "",
        format_factor_weights(result.linear_factors, "Linear Regression"),
        "",
        format_factor_weights(result.ridge_factors, "Ridge Regression"),
        "",
        "🔝 Top Features (with Factor Mapping):",
    ]
    for i, feat in enumerate(result.top_features, start=1):
        lines.append(f"   {i}. {feat['name']} [{feat['factor']}]: {feat['coefficient']:.4f}")
    return "\n".join(lines)


def coefficient_frame(run: HorizonRun) -> pd.DataFrame:
    """Coefficients of every fitted model, one row per feature."""
    return pd.DataFrame(coefficient_table(run), index=list(run.matrix.feature_names))


def format_horizon_run(run: HorizonRun, show_coefficients: bool = False) -> str:
    lines = [format_horizon_result(run.horizon, run.result)]
    lines.append("")
    for model in run.ridge_candidates:
        lines.append(f"   λ = {model.regularization:g}: R² = {model.r2:.4f}")
    if run.ols.regularization is not None:
        lines.append(
            f"   ⚠️  OLS normal equations were singular; solved with jitter "
            f"λ = {run.ols.regularization:g}"
        )
    if show_coefficients:
        lines.append("")
        lines.append(coefficient_frame(run).round(4).to_string())
    return "\n".join(lines)


def format_delta(delta: SnapshotDelta) -> str:
    lines = [
        RULE,
        "📊 FACTOR WEIGHT CHANGES (Delta Analysis)",
        RULE,
        f"Previous: {delta.previous_date}",
        f"Current:  {delta.current_date}",
        "",
        f"{horizon_title(delta.horizon)} Return Model:",
    ]
    for name in FACTOR_NAMES:
        d = delta.factors[name]
        arrow = "↑" if d.delta > 0 else "↓" if d.delta < 0 else "→"
        marker = "🟢" if d.delta > 0.01 else "🔴" if d.delta < -0.01 else "⚪"
        pct = f" ({d.delta_pct:+.1f}%)" if d.delta_pct != 0 else ""
        lines.append(
            f"   {marker} {name:<10} {d.previous * 100:.1f}% → {d.current * 100:.1f}%  "
            f"{arrow} {d.delta * 100:.1f}pp{pct}"
        )
    r2_arrow = "↑" if delta.r2_delta > 0 else "↓" if delta.r2_delta < 0 else "→"
    lines.append("")
    lines.append(
        f"   Model R²: {delta.previous_r2:.4f} → {delta.current_r2:.4f}  "
        f"{r2_arrow} {delta.r2_delta * 100:.2f}%"
    )
    lines.append(
        f"   Samples:  {delta.previous_samples} → {delta.current_samples}  "
        f"{delta.samples_delta:+d}"
    )
    return "\n".join(lines)


def format_preset(weights: FactorWeights) -> str:
    """Render the recommended "Internal Score" scoring theme preset."""
    factors = "\n".join(
        f"    {name}: {value:.3f}," for name, value in weights.to_dict().items()
    )
    return "\n".join([
        RULE,
        '🎯 RECOMMENDED "INTERNAL SCORE" THEME PRESET',
        RULE,
        "",
        "Based on statistical analysis, the optimal factor weights are:",
        "",
        "const internalScore: ScoringTheme = {",
        "  id: 'internal-score',",
        "  name: 'Internal Score',",
        "  description: 'Data-driven weights optimized for realized returns "
        "using Ridge Regression',",
        "  emoji: '🎯',",
        "  factors: {",
        factors,
        "  },",
        "};",
    ])


def format_snapshot(snapshot: AnalysisSnapshot) -> str:
    lines = [
        f"🔬 Internal Score analysis generated {snapshot.generated_at or snapshot.generated_date}",
        f"   Data points: {snapshot.data_points}",
    ]
    if not snapshot.horizons:
        lines.append("   No horizon had enough samples.")
    for horizon, result in snapshot.horizons.items():
        lines.append("")
        lines.append(format_horizon_result(horizon, result))
    return "\n".join(lines)


def format_learning_result(result: LearningResult, show_coefficients: bool = False) -> str:
    """Full console report of a run."""
    parts: List[str] = [
        "🔬 Internal Score Statistical Analysis",
        f"📈 Collected {result.snapshot.data_points} complete data points",
    ]
    for run in result.runs.values():
        parts.append(format_horizon_run(run, show_coefficients))

    if result.written:
        parts.append("💾 Results saved to:\n" + "\n".join(f"   {p}" for p in result.written))
    if result.delta is not None:
        parts.append(format_delta(result.delta))

    recommended: Optional[FactorWeights] = result.recommended
    if recommended is not None:
        parts.append(format_preset(recommended))
    return "\n\n".join(parts)
