"""Tests for internal_score.factors: coefficient-to-factor mapping."""

import numpy as np
import pytest

from internal_score.factors import (
    FACTOR_NAMES,
    FEATURE_FACTOR_MAP,
    Factor,
    FactorWeights,
    factor_label,
    map_coefficients_to_factors,
    rank_top_features,
)
from internal_score.features import FEATURE_NAMES


class TestFactorTable:
    def test_every_feature_has_one_factor(self):
        assert set(FEATURE_FACTOR_MAP) == set(FEATURE_NAMES)
        assert all(isinstance(f, Factor) for f in FEATURE_FACTOR_MAP.values())

    def test_known_assignments(self):
        assert FEATURE_FACTOR_MAP["forward_pe"] is Factor.VALUE
        assert FEATURE_FACTOR_MAP["held_percent_insiders"] is Factor.QUALITY
        assert FEATURE_FACTOR_MAP["earnings_growth_qoq"] is Factor.GROWTH
        assert FEATURE_FACTOR_MAP["average_volume"] is Factor.MOMENTUM
        assert FEATURE_FACTOR_MAP["debt_to_equity"] is Factor.RISK

    def test_factor_order(self):
        assert FACTOR_NAMES == ("value", "quality", "growth", "momentum", "risk")


class TestMapCoefficientsToFactors:
    def test_sums_to_one_and_non_negative(self):
        rng = np.random.RandomState(0)
        for _ in range(20):
            coefs = rng.randn(len(FEATURE_NAMES)) * 5
            weights = map_coefficients_to_factors(coefs, FEATURE_NAMES)
            values = np.array(list(weights.to_dict().values()))
            assert abs(values.sum() - 1.0) < 1e-6
            assert np.all(values >= 0)

    def test_mean_absolute_coefficient_per_factor(self):
        names = ["pe_ratio", "pb_ratio", "roe", "beta"]
        weights = map_coefficients_to_factors([2.0, -4.0, 1.0, -3.0], names)
        # value = (2+4)/2 = 3, quality = 1, risk = 3; growth/momentum have no features
        total = 3.0 + 1.0 + 3.0
        assert weights.value == pytest.approx(3.0 / total)
        assert weights.quality == pytest.approx(1.0 / total)
        assert weights.risk == pytest.approx(3.0 / total)
        assert weights.growth == 0.0
        assert weights.momentum == 0.0

    def test_zero_coefficients_fall_back_to_equal_weights(self):
        weights = map_coefficients_to_factors(np.zeros(len(FEATURE_NAMES)), FEATURE_NAMES)
        assert weights == FactorWeights(0.2, 0.2, 0.2, 0.2, 0.2)

    def test_unmapped_features_are_ignored(self):
        weights = map_coefficients_to_factors([100.0, 1.0], ["mystery", "roe"])
        assert weights.quality == pytest.approx(1.0)

    def test_length_mismatch_rejected(self):
        with pytest.raises(ValueError):
            map_coefficients_to_factors([1.0], ["roe", "roa"])


class TestFactorWeights:
    def test_round_trip_mapping(self):
        weights = FactorWeights(0.1, 0.2, 0.3, 0.15, 0.25)
        assert FactorWeights.from_mapping(weights.to_dict()) == weights
        assert weights.total() == pytest.approx(1.0)

    def test_from_mapping_missing_keys_default_to_zero(self):
        weights = FactorWeights.from_mapping({"value": 1.0})
        assert weights.quality == 0.0
        assert weights.value == 1.0


class TestRankTopFeatures:
    def test_sorted_by_magnitude_and_limited(self):
        coefs = np.arange(len(FEATURE_NAMES), dtype=float) * np.array(
            [(-1) ** i for i in range(len(FEATURE_NAMES))]
        )
        top = rank_top_features(coefs, FEATURE_NAMES)

        assert len(top) == 10
        magnitudes = [entry["coefficient"] for entry in top]
        assert magnitudes == sorted(magnitudes, reverse=True)
        assert all(m >= 0 for m in magnitudes)
        assert top[0]["name"] == FEATURE_NAMES[-1]

    def test_entries_carry_factor_label(self):
        top = rank_top_features([0.5, -2.0], ["roe", "beta"])
        assert top == [
            {"name": "beta", "coefficient": 2.0, "factor": "Risk"},
            {"name": "roe", "coefficient": 0.5, "factor": "Quality"},
        ]

    def test_unknown_feature_label(self):
        assert factor_label("mystery") == "Unknown"
        assert factor_label("average_volume") == "Momentum"

    def test_fewer_features_than_limit(self):
        assert len(rank_top_features([1.0, 2.0], ["roe", "roa"], limit=10)) == 2
