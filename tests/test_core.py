"""End-to-end tests for sim_slopes."""

import numpy as np
import pandas as pd
import pytest
import statsmodels.api as sm
import statsmodels.formula.api as smf

from probe_interactions import sim_slopes
from probe_interactions.exceptions import ConfigError
from probe_interactions.families import Distribution
from probe_interactions.models import ModelSummary

# ------------------------------------------------------------------ #
# Fixtures
# ------------------------------------------------------------------ #


def _make_two_way_data(n=250, seed=42):
    rng = np.random.default_rng(seed)
    x = rng.normal(1.0, 1.0, n)
    m = rng.normal(5.0, 2.0, n)
    c = rng.normal(-2.0, 1.0, n)
    y = 1.0 + 0.5 * x + 0.3 * m + 0.4 * x * m + 0.2 * c + rng.normal(0.0, 1.0, n)
    return pd.DataFrame({"y": y, "x": x, "m": m, "c": c})


def _make_three_way_data(n=400, seed=8):
    rng = np.random.default_rng(seed)
    df = pd.DataFrame(
        {"x": rng.normal(0, 1, n), "m": rng.normal(2, 1, n), "w": rng.normal(-1, 1, n)}
    )
    df["y"] = (
        0.2 * df.x + 0.3 * df.x * df.m - 0.2 * df.x * df.w + 0.1 * df.x * df.m * df.w
        + rng.normal(0, 1, n)
    )
    return df


def _make_factor_data(n=300, seed=4):
    rng = np.random.default_rng(seed)
    g = rng.choice(["a", "b", "c"], n)
    x = rng.normal(0, 1, n)
    effect = np.select([g == "a", g == "b"], [0.2, 1.0], 2.0)
    y = effect * x + rng.normal(0, 1, n)
    return pd.DataFrame({"y": y, "x": x, "g": g})


# Income, Illiteracy and Murder columns of R's ``state.x77`` (1970s US
# Census and FBI figures), one row per state.
_STATES = [
    ("Alabama", 3624, 2.1, 15.1),
    ("Alaska", 6315, 1.5, 11.3),
    ("Arizona", 4530, 1.8, 7.8),
    ("Arkansas", 3378, 1.9, 10.1),
    ("California", 5114, 1.1, 10.3),
    ("Colorado", 4884, 0.7, 6.8),
    ("Connecticut", 5348, 1.1, 3.1),
    ("Delaware", 4809, 0.9, 6.2),
    ("Florida", 4815, 1.3, 10.7),
    ("Georgia", 4091, 2.0, 13.9),
    ("Hawaii", 4963, 1.9, 6.2),
    ("Idaho", 4119, 0.6, 5.3),
    ("Illinois", 5107, 0.9, 10.3),
    ("Indiana", 4458, 0.7, 7.1),
    ("Iowa", 4628, 0.5, 2.3),
    ("Kansas", 4669, 0.6, 4.5),
    ("Kentucky", 3712, 1.6, 10.6),
    ("Louisiana", 3545, 2.8, 13.2),
    ("Maine", 3694, 0.7, 2.7),
    ("Maryland", 5299, 0.9, 8.5),
    ("Massachusetts", 4755, 1.1, 3.3),
    ("Michigan", 4751, 0.9, 11.1),
    ("Minnesota", 4675, 0.6, 2.3),
    ("Mississippi", 3098, 2.4, 12.5),
    ("Missouri", 4254, 0.8, 9.3),
    ("Montana", 4347, 0.6, 5.0),
    ("Nebraska", 4508, 0.6, 2.9),
    ("Nevada", 5149, 0.5, 11.5),
    ("New Hampshire", 4281, 0.7, 3.3),
    ("New Jersey", 5237, 1.1, 5.2),
    ("New Mexico", 3601, 2.2, 9.7),
    ("New York", 4903, 1.4, 10.9),
    ("North Carolina", 3875, 1.8, 11.1),
    ("North Dakota", 5087, 0.8, 1.4),
    ("Ohio", 4561, 0.8, 7.4),
    ("Oklahoma", 3983, 1.1, 6.4),
    ("Oregon", 4660, 0.6, 4.2),
    ("Pennsylvania", 4449, 1.0, 6.1),
    ("Rhode Island", 4558, 1.3, 2.4),
    ("South Carolina", 3635, 2.3, 11.6),
    ("South Dakota", 4167, 0.5, 1.7),
    ("Tennessee", 3821, 1.7, 11.0),
    ("Texas", 4188, 2.2, 12.2),
    ("Utah", 4022, 0.6, 4.5),
    ("Vermont", 3907, 0.6, 5.5),
    ("Virginia", 4701, 1.4, 9.5),
    ("Washington", 4864, 0.6, 4.3),
    ("West Virginia", 3617, 1.4, 6.7),
    ("Wisconsin", 4468, 0.7, 3.0),
    ("Wyoming", 4566, 0.6, 6.9),
]


def _states_frame():
    return pd.DataFrame(_STATES, columns=["State", "Income", "Illiteracy", "Murder"])


@pytest.fixture()
def two_way_fit():
    return smf.ols("y ~ x * m + c", data=_make_two_way_data()).fit()


def _slope_contrast(fit, weights):
    return np.array([weights.get(name, 0.0) for name in fit.params.index])


# ------------------------------------------------------------------ #
# Two-way analyses
# ------------------------------------------------------------------ #


class TestTwoWay:
    def test_default_grid(self, two_way_fit):
        result = sim_slopes(two_way_fit, "x", "m")
        assert len(result.slopes) == 3
        assert [s.modx_label for s in result.slopes] == ["- 1 SD", "Mean", "+ 1 SD"]
        assert len(result.jn) == 1
        assert result.intercepts == ()
        assert result.distribution == Distribution.t(two_way_fit.df_resid)

    def test_slopes_match_statsmodels(self, two_way_fit):
        result = sim_slopes(two_way_fit, "x", "m")
        params = two_way_fit.params
        for s in result.slopes:
            assert s.estimate == pytest.approx(params["x"] + s.modx_value * params["x:m"])
            contrast = _slope_contrast(two_way_fit, {"x": 1.0, "x:m": s.modx_value})
            test = two_way_fit.t_test(contrast)
            assert s.std_error == pytest.approx(float(np.squeeze(test.sd)))
            assert s.p_value == pytest.approx(float(np.squeeze(test.pvalue)))

    def test_slopes_increase_with_moderator(self, two_way_fit):
        est = [s.estimate for s in sim_slopes(two_way_fit, "x", "m").slopes]
        assert est == sorted(est)

    def test_explicit_values(self, two_way_fit):
        result = sim_slopes(two_way_fit, "x", "m", modx_values=[2, 8])
        assert [s.modx_value for s in result.slopes] == [2.0, 8.0]

    def test_confidence_level(self, two_way_fit):
        wide = sim_slopes(two_way_fit, "x", "m", confidence_level=0.99).slopes[0]
        narrow = sim_slopes(two_way_fit, "x", "m", confidence_level=0.90).slopes[0]
        assert wide.ci_upper - wide.ci_lower > narrow.ci_upper - narrow.ci_lower

    def test_idempotent(self, two_way_fit):
        first = sim_slopes(two_way_fit, "x", "m", cond_int=True)
        second = sim_slopes(two_way_fit, "x", "m", cond_int=True)
        assert first.to_dict() == second.to_dict()

    def test_skip_johnson_neyman(self, two_way_fit):
        assert sim_slopes(two_way_fit, "x", "m", johnson_neyman=False).jn == ()

    def test_to_frame(self, two_way_fit):
        frame = sim_slopes(two_way_fit, "x", "m").to_frame()
        assert frame.shape == (3, 8)


class TestConditionalIntercepts:
    def test_covariates_at_means(self, two_way_fit):
        df = _make_two_way_data()
        result = sim_slopes(two_way_fit, "x", "m", cond_int=True)
        params = two_way_fit.params
        for eff in result.intercepts:
            expected = (
                params["Intercept"] + params["m"] * eff.modx_value + params["c"] * df["c"].mean()
            )
            assert eff.kind == "intercept"
            assert eff.estimate == pytest.approx(expected)

    def test_centered_data_recovers_intercept(self):
        df = _make_two_way_data()
        for col in ("x", "m", "c"):
            df[col] = df[col] - df[col].mean()
        fit = smf.ols("y ~ x * m + c", data=df).fit()
        result = sim_slopes(fit, "x", "m", centered="all", cond_int=True, modx_values=[0.0])
        assert result.intercepts[0].estimate == pytest.approx(fit.params["Intercept"], abs=1e-8)
        assert result.intercepts[0].std_error == pytest.approx(fit.bse["Intercept"], rel=1e-6)

    def test_no_centering(self, two_way_fit):
        result = sim_slopes(
            two_way_fit, "x", "m", centered="none", cond_int=True, modx_values=[0.0]
        )
        assert result.intercepts[0].estimate == pytest.approx(two_way_fit.params["Intercept"])
        assert result.centering.centered == ()

    def test_requires_intercept(self):
        summary = ModelSummary.build({"x": 1.0, "m": 0.1, "x:m": 0.2}, np.eye(3) * 0.01)
        with pytest.raises(ConfigError, match="no intercept"):
            sim_slopes(summary, "x", "m", modx_values=[0.0, 1.0], cond_int=True)


class TestScale:
    def test_slopes_per_sd(self, two_way_fit):
        df = _make_two_way_data()
        raw = sim_slopes(two_way_fit, "x", "m")
        scaled = sim_slopes(two_way_fit, "x", "m", scale=True)
        sd_x = df["x"].std(ddof=1)
        assert scaled.scaled
        for r, s in zip(raw.slopes, scaled.slopes):
            assert s.estimate == pytest.approx(r.estimate * sd_x)
            assert s.statistic == pytest.approx(r.statistic)


# ------------------------------------------------------------------ #
# Three-way and factor moderators
# ------------------------------------------------------------------ #


class TestThreeWay:
    def test_cartesian_ordering(self):
        fit = smf.ols("y ~ x * m * w", data=_make_three_way_data()).fit()
        result = sim_slopes(fit, "x", "m", "w")
        assert len(result.slopes) == 9
        assert len(result.jn) == 3
        mod2_labels = [s.mod2_label for s in result.slopes]
        assert mod2_labels == ["- 1 SD"] * 3 + ["Mean"] * 3 + ["+ 1 SD"] * 3
        assert [s.modx_label for s in result.slopes[:3]] == ["- 1 SD", "Mean", "+ 1 SD"]
        assert [j.mod2_label for j in result.jn] == ["- 1 SD", "Mean", "+ 1 SD"]

    def test_slope_formula(self):
        fit = smf.ols("y ~ x * m * w", data=_make_three_way_data()).fit()
        p = fit.params
        result = sim_slopes(fit, "x", "m", "w", modx_values=[1.0], mod2_values=[-2.0, 0.5])
        for s in result.slopes:
            v, v2 = s.modx_value, s.mod2_value
            expected = p["x"] + v * p["x:m"] + v2 * p["x:w"] + v * v2 * p["x:m:w"]
            assert s.estimate == pytest.approx(expected)

    def test_fdr_per_second_moderator_value(self):
        fit = smf.ols("y ~ x * m * w", data=_make_three_way_data()).fit()
        result = sim_slopes(fit, "x", "m", "w", control_fdr=True)
        nominal = sim_slopes(fit, "x", "m", "w").jn[0].critical_value
        assert all(j.fdr_corrected for j in result.jn)
        assert all(j.critical_value >= nominal for j in result.jn)

    def test_missing_triple_interaction(self):
        df = _make_three_way_data()
        fit = smf.ols("y ~ x * m + x * w", data=df).fit()
        with pytest.raises(ConfigError, match="interaction"):
            sim_slopes(fit, "x", "m", "w")


class TestFactorModerator:
    def test_levels_and_estimates(self):
        fit = smf.ols("y ~ x * C(g)", data=_make_factor_data()).fit()
        result = sim_slopes(fit, "x", "g")
        assert [s.modx_label for s in result.slopes] == ["a", "b", "c"]
        p = fit.params
        assert result.slopes[0].estimate == pytest.approx(p["x"])
        assert result.slopes[1].estimate == pytest.approx(p["x"] + p["x:C(g)[T.b]"])
        assert result.slopes[2].estimate == pytest.approx(p["x"] + p["x:C(g)[T.c]"])
        assert result.jn == ()

    def test_without_data_uses_reference(self):
        fit = smf.ols("y ~ x * C(g)", data=_make_factor_data()).fit()
        summary = ModelSummary.build(fit.params, fit.cov_params(), df_resid=fit.df_resid)
        result = sim_slopes(summary, "x", "g")
        assert [s.modx_label for s in result.slopes] == ["(reference)", "b", "c"]
        assert result.slopes[0].estimate == pytest.approx(fit.params["x"])


# ------------------------------------------------------------------ #
# Model families, robust covariance, errors
# ------------------------------------------------------------------ #


class TestModels:
    def test_logistic_uses_z(self):
        rng = np.random.default_rng(9)
        n = 500
        df = pd.DataFrame({"x": rng.normal(0, 1, n), "m": rng.normal(0, 1, n)})
        eta = -0.2 + 0.8 * df.x + 0.3 * df.m + 0.6 * df.x * df.m
        df["y"] = rng.binomial(1, 1.0 / (1.0 + np.exp(-eta)))
        fit = smf.glm("y ~ x * m", data=df, family=sm.families.Binomial()).fit()
        result = sim_slopes(fit, "x", "m")
        assert result.distribution == Distribution.normal()
        assert result.distribution.stat_label == "z"

    def test_robust_changes_standard_errors(self, two_way_fit):
        classic = sim_slopes(two_way_fit, "x", "m")
        robust = sim_slopes(two_way_fit, "x", "m", robust=True)
        rcov = np.asarray(two_way_fit.get_robustcov_results(cov_type="HC3").cov_params())
        for c, r in zip(classic.slopes, robust.slopes):
            assert c.estimate == pytest.approx(r.estimate)
            w = _slope_contrast(two_way_fit, {"x": 1.0, "x:m": r.modx_value})
            assert r.std_error == pytest.approx(np.sqrt(w @ rcov @ w))

    def test_hand_built_summary(self):
        summary = ModelSummary.build(
            {"Intercept": 0.0, "x": 0.5, "m": 0.1, "x:m": 0.25},
            np.diag([0.1, 0.01, 0.01, 0.0025]),
            family="normal",
        )
        result = sim_slopes(summary, "x", "m", modx_values=[-1.0, 0.0, 1.0])
        assert [s.estimate for s in result.slopes] == pytest.approx([0.25, 0.5, 0.75])
        assert result.jn[0].observed_range is None


class TestStates:
    @pytest.fixture()
    def states_fit(self):
        return smf.ols("Income ~ Illiteracy * Murder", data=_states_frame()).fit()

    def test_default_rows(self, states_fit):
        result = sim_slopes(states_fit, "Illiteracy", "Murder")
        assert len(result.slopes) == 3
        murder = _states_frame().Murder
        assert result.slopes[1].modx_value == pytest.approx(murder.mean())
        assert result.slopes[2].modx_value - result.slopes[1].modx_value == pytest.approx(
            murder.std()
        )

    def test_johnson_neyman_boundary(self, states_fit):
        jn = sim_slopes(states_fit, "Illiteracy", "Murder").jn[0]
        assert jn.observed_range == pytest.approx((1.4, 15.1))
        in_range = [b for b in jn.bounds if 1.4 <= b <= 15.1]
        assert in_range == [pytest.approx(9.12, abs=0.05)]
        assert jn.is_significant_at(12.0)
        assert jn.is_significant_at(15.1)
        assert not jn.is_significant_at(5.0)


class TestEstimationSample:
    def test_moderator_summaries_skip_dropped_rows(self):
        df = _make_two_way_data()
        df.loc[df.m > 6.0, "y"] = np.nan
        fit = smf.ols("y ~ x * m + c", data=df).fit()
        used = df.dropna()
        result = sim_slopes(fit, "x", "m")
        mean_slope, upper_slope = result.slopes[1], result.slopes[2]
        assert mean_slope.modx_value == pytest.approx(used.m.mean())
        assert upper_slope.modx_value - mean_slope.modx_value == pytest.approx(used.m.std())
        assert result.jn[0].observed_range == pytest.approx((used.m.min(), used.m.max()))

    def test_centering_uses_estimation_rows(self):
        df = _make_two_way_data()
        df.loc[df.c > -1.5, "y"] = np.nan
        fit = smf.ols("y ~ x * m + c", data=df).fit()
        result = sim_slopes(fit, "x", "m")
        assert result.centering.offsets["c"] == pytest.approx(df.dropna().c.mean())


class TestArrayApi:
    def test_explicit_terms(self):
        df = _make_two_way_data()
        exog = sm.add_constant(pd.DataFrame({"x": df.x, "m": df.m, "x_by_m": df.x * df.m}))
        fit = sm.OLS(df.y, exog).fit()
        result = sim_slopes(fit, "x", "m", terms={"x_by_m": ("x", "m")})
        assert len(result.slopes) == 3
        assert result.slopes[1].modx_value == pytest.approx(df.m.mean())
        for s in result.slopes:
            contrast = _slope_contrast(fit, {"x": 1.0, "x_by_m": s.modx_value})
            test = fit.t_test(contrast)
            assert s.estimate == pytest.approx(float(np.squeeze(test.effect)))
            assert s.std_error == pytest.approx(float(np.squeeze(test.sd)))

    def test_matches_formula_fit(self):
        df = _make_two_way_data()
        exog = sm.add_constant(pd.DataFrame({"x": df.x, "m": df.m, "x_by_m": df.x * df.m}))
        array_fit = sm.OLS(df.y, exog).fit()
        formula_fit = smf.ols("y ~ x * m", data=df).fit()
        by_array = sim_slopes(array_fit, "x", "m", terms={"x_by_m": ("x", "m")})
        by_formula = sim_slopes(formula_fit, "x", "m")
        assert by_array.jn[0].bounds == pytest.approx(by_formula.jn[0].bounds)

    def test_without_terms_fails(self):
        df = _make_two_way_data()
        exog = sm.add_constant(pd.DataFrame({"x": df.x, "m": df.m, "x_by_m": df.x * df.m}))
        fit = sm.OLS(df.y, exog).fit()
        with pytest.raises(ConfigError, match="interaction"):
            sim_slopes(fit, "x", "m")


class TestErrors:
    def test_missing_interaction(self):
        fit = smf.ols("y ~ x + m", data=_make_two_way_data()).fit()
        with pytest.raises(ConfigError, match="interaction"):
            sim_slopes(fit, "x", "m")

    def test_unknown_variable(self, two_way_fit):
        with pytest.raises(ConfigError, match="does not appear"):
            sim_slopes(two_way_fit, "z", "m")

    def test_bad_confidence_level(self, two_way_fit):
        with pytest.raises(ConfigError, match="confidence_level"):
            sim_slopes(two_way_fit, "x", "m", confidence_level=95)

    def test_robust_with_summary(self):
        summary = ModelSummary.build({"x": 1.0, "m": 0.1, "x:m": 0.2}, np.eye(3))
        with pytest.raises(ConfigError, match="robust"):
            sim_slopes(summary, "x", "m", modx_values=[0.0], robust=True)
