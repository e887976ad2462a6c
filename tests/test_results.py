"""Tests for result records: dict access, serialisation, tabulation."""

import json
import math

import numpy as np
import pandas as pd
import pytest

from probe_interactions._results import (
    CenteringPlan,
    ConditionalEffect,
    JNInterval,
    SimpleSlopesResult,
)
from probe_interactions.families import Distribution


def _make_effect(value, label, p=0.01, **extra):
    return ConditionalEffect(
        estimate=np.float64(1.5),
        std_error=0.5,
        statistic=3.0,
        p_value=p,
        ci_lower=0.5,
        ci_upper=2.5,
        modx_value=value,
        modx_label=label,
        **extra,
    )


def _make_interval(region, bounds):
    return JNInterval(
        modx="m",
        bounds=bounds,
        significant_region=region,
        critical_value=1.96,
        alpha=0.05,
        fdr_corrected=False,
        observed_range=(0.0, 10.0),
    )


class TestDictAccess:
    def test_getitem(self):
        eff = _make_effect(1.0, "Mean")
        assert eff["estimate"] == 1.5
        with pytest.raises(KeyError):
            eff["nope"]

    def test_get_and_contains(self):
        eff = _make_effect(1.0, "Mean")
        assert eff.get("nope", 7) == 7
        assert "p_value" in eff
        assert 3 not in eff

    def test_frozen(self):
        eff = _make_effect(1.0, "Mean")
        with pytest.raises(AttributeError):
            eff.estimate = 2.0

    def test_is_significant(self):
        assert _make_effect(1.0, "Mean", p=0.01).is_significant()
        assert not _make_effect(1.0, "Mean", p=0.2).is_significant()


class TestToDict:
    def test_native_types(self):
        d = _make_effect(1.0, "Mean").to_dict()
        assert type(d["estimate"]) is float
        json.dumps(d)

    def test_nested_result(self):
        plan = CenteringPlan(offsets={"c": np.float64(1.0)}, scales={}, policy="all-but-focal",
                             centered=("c",))
        bands = pd.DataFrame({"modx": [0.0, 1.0], "significant": np.array([False, True])})
        jn = JNInterval(
            modx="m", bounds=(0.5,), significant_region="above", critical_value=1.96,
            alpha=0.05, fdr_corrected=False, observed_range=(0.0, 1.0), bands=bands,
        )
        result = SimpleSlopesResult(
            pred="x", modx="m", mod2=None,
            slopes=(_make_effect(0.0, "0"),), intercepts=(), jn=(jn,),
            centering=plan, distribution=Distribution.t(20), confidence_level=0.95,
        )
        d = result.to_dict()
        assert d["distribution"] == "t(20)"
        assert d["jn"][0]["bands"][1] == {"modx": 1.0, "significant": True}
        assert d["centering"]["offsets"] == {"c": 1.0}
        json.dumps(d)


class TestJNInterval:
    def test_inside(self):
        jn = _make_interval("inside", (2.0, 4.0))
        assert jn.inside
        assert (jn.lower, jn.upper) == (2.0, 4.0)
        assert jn.is_significant_at(3.0)
        assert not jn.is_significant_at(5.0)

    def test_outside(self):
        jn = _make_interval("outside", (2.0, 4.0))
        assert not jn.inside
        assert jn.is_significant_at(1.0)
        assert jn.is_significant_at(5.0)
        assert not jn.is_significant_at(3.0)

    def test_above(self):
        jn = _make_interval("above", (2.0,))
        assert jn.lower == 2.0
        assert jn.upper == math.inf
        assert jn.is_significant_at(3.0)
        assert not jn.is_significant_at(1.0)

    def test_below(self):
        jn = _make_interval("below", (2.0,))
        assert jn.lower == -math.inf
        assert jn.upper == 2.0

    def test_always_never(self):
        assert _make_interval("always", ()).is_significant_at(1e9)
        assert not _make_interval("never", ()).is_significant_at(0.0)


class TestToFrame:
    def _make_result(self, mod2=None):
        extra = {"mod2_value": 1.0, "mod2_label": "Mean"} if mod2 else {}
        slopes = (_make_effect(0.0, "- 1 SD", **extra), _make_effect(1.0, "+ 1 SD", **extra))
        return SimpleSlopesResult(
            pred="x", modx="m", mod2=mod2, slopes=slopes, intercepts=(), jn=(),
            centering=CenteringPlan({}, {}, "none", ()),
            distribution=Distribution.normal(), confidence_level=0.95,
        )

    def test_columns_two_way(self):
        frame = self._make_result().to_frame()
        assert list(frame.columns)[:2] == ["modx_value", "modx_label"]
        assert len(frame) == 2

    def test_columns_three_way(self):
        frame = self._make_result("w").to_frame()
        assert list(frame.columns)[:2] == ["mod2_value", "mod2_label"]

    def test_empty_intercepts(self):
        assert self._make_result().to_frame("intercept").empty

    def test_bad_kind(self):
        with pytest.raises(ValueError, match="kind"):
            self._make_result().to_frame("curve")
