"""Tests for moderator value selection."""

import numpy as np
import pandas as pd
import pytest

from probe_interactions.exceptions import ConfigError, DataError
from probe_interactions.moderators import (
    factor_levels,
    is_categorical,
    select_moderator_values,
)


def _make_column(n=200, seed=42):
    rng = np.random.default_rng(seed)
    return pd.Series(rng.normal(5.0, 2.0, n), name="m")


class TestContinuousModes:
    def test_mean_sd(self):
        col = _make_column()
        grid = select_moderator_values(col)
        mean, sd = col.mean(), col.std(ddof=1)
        assert grid.values == pytest.approx((mean - sd, mean, mean + sd))
        assert grid.labels == ("- 1 SD", "Mean", "+ 1 SD")
        assert not grid.is_factor
        assert grid.variable == "m"

    def test_plus_minus(self):
        col = _make_column()
        grid = select_moderator_values(col, "plus-minus")
        assert len(grid) == 2
        assert grid.labels == ("- 1 SD", "+ 1 SD")

    def test_terciles_ordered(self):
        col = _make_column()
        grid = select_moderator_values(col, "terciles")
        assert len(grid) == 3
        assert grid.values[0] < grid.values[1] < grid.values[2]

    def test_explicit_values_preserve_order(self):
        grid = select_moderator_values(_make_column(), [3, 1, 2])
        assert grid.values == (3.0, 1.0, 2.0)
        assert grid.labels == ("3", "1", "2")

    def test_missing_values_dropped(self):
        col = pd.Series([1.0, 2.0, np.nan, 3.0], name="m")
        grid = select_moderator_values(col)
        assert grid.values[1] == pytest.approx(2.0)

    def test_iteration_yields_pairs(self):
        grid = select_moderator_values(_make_column(), [0.0, 1.0])
        assert list(grid) == [(0.0, "0"), (1.0, "1")]

    def test_unknown_mode(self):
        with pytest.raises(ConfigError, match="Unknown moderator value mode"):
            select_moderator_values(_make_column(), "quartiles")

    def test_zero_sd(self):
        with pytest.raises(DataError, match="fewer than 2 distinct"):
            select_moderator_values(pd.Series([3.0, 3.0, 3.0], name="m"))

    def test_no_column_needs_explicit_values(self):
        with pytest.raises(ConfigError, match="explicit values"):
            select_moderator_values(None, "mean-sd", variable="m")
        grid = select_moderator_values(None, [1, 2], variable="m")
        assert grid.values == (1.0, 2.0)


class TestFactorModerators:
    def test_levels_sorted(self):
        col = pd.Series(["b", "a", "c", "a"], name="g")
        grid = select_moderator_values(col)
        assert grid.is_factor
        assert grid.values == ("a", "b", "c")
        assert grid.labels == ("a", "b", "c")

    def test_categorical_order_respected(self):
        col = pd.Series(
            pd.Categorical(["lo", "hi", "mid"], categories=["lo", "mid", "hi"]), name="g"
        )
        assert factor_levels(col) == ("lo", "mid", "hi")

    def test_mode_ignored(self):
        col = pd.Series(["x", "y"], name="g")
        assert select_moderator_values(col, "terciles").values == ("x", "y")

    def test_explicit_subset(self):
        col = pd.Series(["a", "b", "c"], name="g")
        grid = select_moderator_values(col, ["c", "a"])
        assert grid.values == ("c", "a")

    def test_explicit_unknown_level(self):
        col = pd.Series(["a", "b"], name="g")
        with pytest.raises(ConfigError, match="not levels"):
            select_moderator_values(col, ["z"])

    def test_single_level(self):
        with pytest.raises(DataError, match="fewer than 2 levels"):
            select_moderator_values(pd.Series(["a", "a"], name="g"))

    def test_is_categorical(self):
        assert is_categorical(pd.Series(["a"]))
        assert is_categorical(pd.Series([True, False]))
        assert not is_categorical(pd.Series([1.0, 2.0]))
