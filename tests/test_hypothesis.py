"""Tests for slope/intercept weights and the Wald test of w'β."""

import math

import numpy as np
import pandas as pd
import pytest

from probe_interactions.exceptions import NumericalError
from probe_interactions.families import Distribution, critical_value
from probe_interactions.hypothesis import (
    combination_moments,
    intercept_weights,
    linear_hypothesis,
    slope_weights,
)
from probe_interactions.terms import detect_terms

NAMES = ["Intercept", "x", "m", "c", "x:m", "x:c"]


def _make_cov(seed=0, names=NAMES):
    """Random symmetric positive-definite covariance labelled by *names*."""
    rng = np.random.default_rng(seed)
    a = rng.standard_normal((len(names), len(names)))
    cov = a @ a.T / len(names) + 0.1 * np.eye(len(names))
    return pd.DataFrame(cov, index=names, columns=names)


def _make_coefs(names=NAMES):
    return pd.Series(np.linspace(0.5, 2.0, len(names)), index=names)


class TestSlopeWeights:
    def test_two_way(self):
        tm = detect_terms(NAMES, "x", "m")
        w = slope_weights(tm, {"m": 2.5}, {"c": 1.5})
        assert w == {"x": 1.0, "x:m": 2.5, "x:c": 1.5}

    def test_uncentered_covariate_drops(self):
        tm = detect_terms(NAMES, "x", "m")
        w = slope_weights(tm, {"m": 2.5})
        assert "x:c" not in w

    def test_three_way(self):
        names = ["Intercept", "x", "m", "w", "x:m", "x:w", "m:w", "x:m:w"]
        tm = detect_terms(names, "x", "m", "w")
        w = slope_weights(tm, {"m": 2.0, "w": -1.0})
        assert w == {"x": 1.0, "x:m": 2.0, "x:w": -1.0, "x:m:w": -2.0}

    def test_factor_moderator(self):
        names = ["Intercept", "x", "g[T.b]", "g[T.c]", "x:g[T.b]", "x:g[T.c]"]
        tm = detect_terms(names, "x", "g")
        assert slope_weights(tm, {"g": "a"}) == {"x": 1.0}
        assert slope_weights(tm, {"g": "c"}) == {"x": 1.0, "x:g[T.c]": 1.0}


class TestInterceptWeights:
    def test_covariates_at_offsets(self):
        tm = detect_terms(NAMES, "x", "m")
        w = intercept_weights(tm, {"m": 2.0}, {"c": 3.0})
        # x sits at 0, so every term containing x vanishes.
        assert w == {"Intercept": 1.0, "m": 2.0, "c": 3.0}

    def test_centered_focal(self):
        tm = detect_terms(NAMES, "x", "m")
        w = intercept_weights(tm, {"m": 2.0}, {"x": 0.5, "c": 0.0})
        assert w == {"Intercept": 1.0, "x": 0.5, "m": 2.0, "x:m": 1.0}


class TestLinearHypothesis:
    def test_slope_identity(self):
        """estimate = b_x + v·b_xm and var = V_xx + 2v·V_x,xm + v²·V_xm,xm."""
        names = ["Intercept", "x", "m", "x:m"]
        coefs = _make_coefs(names)
        cov = _make_cov(3, names)
        tm = detect_terms(names, "x", "m")
        dist = Distribution.t(50)
        for v in (-2.0, 0.0, 0.7, 4.0):
            eff = linear_hypothesis(slope_weights(tm, {"m": v}), coefs, cov, dist)
            expected = coefs["x"] + v * coefs["x:m"]
            var = cov.loc["x", "x"] + 2 * v * cov.loc["x", "x:m"] + v * v * cov.loc["x:m", "x:m"]
            assert eff.estimate == pytest.approx(expected)
            assert eff.std_error == pytest.approx(math.sqrt(var))

    def test_interval_and_statistic(self):
        coefs = _make_coefs()
        cov = _make_cov()
        dist = Distribution.t(30)
        eff = linear_hypothesis({"x": 1.0, "x:m": 2.0}, coefs, cov, dist, 0.90)
        crit = critical_value(dist, 0.90)
        assert eff.statistic == pytest.approx(eff.estimate / eff.std_error)
        assert eff.ci_lower == pytest.approx(eff.estimate - crit * eff.std_error)
        assert eff.ci_upper == pytest.approx(eff.estimate + crit * eff.std_error)
        assert eff.confidence_level == 0.90
        assert 0.0 <= eff.p_value <= 1.0

    def test_tags_attached(self):
        eff = linear_hypothesis(
            {"x": 1.0},
            _make_coefs(),
            _make_cov(),
            Distribution.normal(),
            kind="intercept",
            modx_value=1.0,
            modx_label="Mean",
        )
        assert eff.kind == "intercept"
        assert eff.modx_label == "Mean"

    def test_negative_variance_raises(self):
        names = ["x", "x:m"]
        coefs = pd.Series([1.0, 1.0], index=names)
        cov = pd.DataFrame([[1.0, 2.0], [2.0, 1.0]], index=names, columns=names)
        # w = (1, -1): 1 - 4 + 1 = -2
        with pytest.raises(NumericalError, match="negative variance"):
            linear_hypothesis({"x": 1.0, "x:m": -1.0}, coefs, cov, Distribution.normal())

    def test_zero_variance(self):
        names = ["x"]
        coefs = pd.Series([2.0], index=names)
        cov = pd.DataFrame([[0.0]], index=names, columns=names)
        eff = linear_hypothesis({"x": 1.0}, coefs, cov, Distribution.normal())
        assert eff.std_error == 0.0
        assert math.isinf(eff.statistic)
        assert eff.p_value == 0.0

    def test_combination_moments_empty(self):
        assert combination_moments({}, _make_coefs(), _make_cov()) == (0.0, 0.0)
