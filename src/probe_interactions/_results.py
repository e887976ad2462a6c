"""Typed result records returned by the probing functions.

Four frozen dataclasses carry every output of the engine:

* :class:`ConditionalEffect` — one conditional slope or intercept at
  one moderator value (or value pair), with its Wald test.
* :class:`JNInterval` — the Johnson-Neyman boundaries for one fixed
  second-moderator value (or the only one, in two-way analyses).
* :class:`CenteringPlan` — which variables were held at which values.
* :class:`SimpleSlopesResult` — everything ``sim_slopes`` computed.

Each record reads like an object (``effect.estimate``) and like a
mapping (``result["slopes"]``, ``result.get("jn")``, ``"mod2" in
result``), and ``.to_dict()`` flattens it, nested records and pandas
frames included, into JSON-ready Python types.

Records are created fresh on every call and never mutated.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, fields
from typing import TYPE_CHECKING, Any, ClassVar

import numpy as np
import pandas as pd

if TYPE_CHECKING:
    from .families import Distribution

# ------------------------------------------------------------------ #
# Serialisation helper
# ------------------------------------------------------------------ #


def _numpy_to_python(obj: Any) -> Any:
    """Recursively replace NumPy/pandas values with built-in types.

    DataFrames become lists of row dicts, arrays become lists, nested
    records become dicts.  Containers keep their type.
    """
    if isinstance(obj, _DictAccessMixin):
        return obj.to_dict()
    if isinstance(obj, pd.DataFrame):
        return [_numpy_to_python(row) for row in obj.to_dict(orient="records")]
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    if isinstance(obj, np.generic):
        return obj.item()
    if isinstance(obj, dict):
        return {key: _numpy_to_python(value) for key, value in obj.items()}
    if isinstance(obj, (list, tuple)):
        return type(obj)(_numpy_to_python(item) for item in obj)
    return obj


# ------------------------------------------------------------------ #
# Mapping-style access
# ------------------------------------------------------------------ #


class _DictAccessMixin:
    """Bracket access, ``get``, ``in`` and ``to_dict`` for record dataclasses.

    ``_SERIALIZERS`` maps a field name to a function applied to that
    field's value before ``to_dict`` converts it.
    """

    _SERIALIZERS: ClassVar[dict[str, Any]] = {"distribution": str}

    def __getitem__(self, key: str) -> Any:
        if not hasattr(self, key):
            raise KeyError(key)
        return getattr(self, key)

    def get(self, key: str, default: Any = None) -> Any:
        return getattr(self, key, default)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and hasattr(self, key)

    def to_dict(self) -> dict[str, Any]:
        """Plain-Python dictionary of every dataclass field."""
        out: dict[str, Any] = {}
        for f in fields(self):  # type: ignore[arg-type]
            value = getattr(self, f.name)
            convert = self._SERIALIZERS.get(f.name)
            if convert is not None and value is not None:
                value = convert(value)
            out[f.name] = _numpy_to_python(value)
        return out


# ------------------------------------------------------------------ #
# ConditionalEffect
# ------------------------------------------------------------------ #


@dataclass(frozen=True)
class ConditionalEffect(_DictAccessMixin):
    """A conditional slope or intercept with its Wald test.

    Produced by :func:`~probe_interactions.hypothesis.linear_hypothesis`
    and tagged by the engine with the moderator value(s) it belongs to.
    """

    estimate: float
    """Point estimate of the linear combination."""

    std_error: float
    """Standard error, ``sqrt(w' Σ w)``."""

    statistic: float
    """``estimate / std_error``."""

    p_value: float
    """Two-tailed p-value under the model's reference distribution."""

    ci_lower: float
    """Lower confidence bound."""

    ci_upper: float
    """Upper confidence bound."""

    confidence_level: float = 0.95
    """Confidence level of ``(ci_lower, ci_upper)``."""

    kind: str = "slope"
    """``"slope"`` or ``"intercept"``."""

    modx_value: Any = None
    """Moderator value (float, or category label for factors)."""

    modx_label: str | None = None
    """Human label for the moderator value (e.g. ``"+ 1 SD"``)."""

    mod2_value: Any = None
    """Second-moderator value in three-way analyses."""

    mod2_label: str | None = None
    """Human label for the second-moderator value."""

    def is_significant(self, alpha: float = 0.05) -> bool:
        """``True`` when ``p_value < alpha``."""
        return bool(self.p_value < alpha)


# ------------------------------------------------------------------ #
# JNInterval
# ------------------------------------------------------------------ #


@dataclass(frozen=True)
class JNInterval(_DictAccessMixin):
    """Johnson-Neyman interval for one conditional-slope curve.

    ``significant_region`` describes where the focal predictor's slope
    is significant relative to ``bounds``:

    * ``"inside"`` — between the two bounds
    * ``"outside"`` — below the lower or above the upper bound
    * ``"above"`` / ``"below"`` — one bound; above or below it
    * ``"always"`` / ``"never"`` — no bound; the whole real line
    """

    modx: str
    """Moderator the interval is expressed in."""

    bounds: tuple[float, ...]
    """Zero, one or two boundary values, ascending."""

    significant_region: str
    """Where the slope is significant relative to ``bounds``."""

    critical_value: float
    """Critical statistic the bounds solve for."""

    alpha: float
    """Nominal two-tailed significance level."""

    fdr_corrected: bool
    """Whether ``critical_value`` is the FDR-adjusted one."""

    observed_range: tuple[float, float] | None
    """``(min, max)`` of the observed moderator, when data are known."""

    bounds_outside_range: tuple[bool, ...] = ()
    """Per-bound flag: bound lies outside ``observed_range``."""

    mod2: str | None = None
    """Second moderator held fixed, if any."""

    mod2_value: Any = None
    """Value the second moderator is held at."""

    mod2_label: str | None = None
    """Human label for ``mod2_value``."""

    bands: pd.DataFrame | None = field(default=None, repr=False, compare=False)
    """Conditional slope and confidence band over a moderator grid."""

    @property
    def lower(self) -> float:
        """Lower bound (``-inf`` when there is none)."""
        if len(self.bounds) == 2:
            return self.bounds[0]
        if len(self.bounds) == 1 and self.significant_region == "above":
            return self.bounds[0]
        return -math.inf

    @property
    def upper(self) -> float:
        """Upper bound (``inf`` when there is none)."""
        if len(self.bounds) == 2:
            return self.bounds[1]
        if len(self.bounds) == 1 and self.significant_region == "below":
            return self.bounds[0]
        return math.inf

    @property
    def inside(self) -> bool:
        """``True`` when significance holds on ``[lower, upper]``."""
        return self.significant_region in ("inside", "above", "below", "always")

    def is_significant_at(self, value: float) -> bool:
        """Whether the slope is significant at moderator *value*."""
        region = self.significant_region
        if region == "always":
            return True
        if region == "never":
            return False
        if region == "above":
            return value > self.bounds[0]
        if region == "below":
            return value < self.bounds[0]
        lo, hi = self.bounds
        if region == "inside":
            return lo < value < hi
        return value < lo or value > hi


# ------------------------------------------------------------------ #
# CenteringPlan
# ------------------------------------------------------------------ #


@dataclass(frozen=True)
class CenteringPlan(_DictAccessMixin):
    """Values at which non-moderator variables are held.

    ``offsets`` maps each numeric variable to its centering value (its
    mean, or ``0`` when the policy leaves it uncentered).  ``scales``
    holds standard deviations when standardization was requested.
    """

    offsets: dict[str, float]
    """Variable → value it is held at."""

    scales: dict[str, float]
    """Variable → SD divisor (empty unless standardizing)."""

    policy: str
    """Centering policy: ``"none"``, ``"all-but-focal"``, ``"all"``, ``"named-subset"``."""

    centered: tuple[str, ...]
    """Variables actually centered at their mean."""

    def held_constant_note(self) -> str:
        """Text for plot annotations, e.g. ``"held constant at mean: a, b"``."""
        if not self.centered:
            return "No variables were mean-centered."
        return "Mean-centered (held constant at mean): " + ", ".join(self.centered)


# ------------------------------------------------------------------ #
# SimpleSlopesResult
# ------------------------------------------------------------------ #


@dataclass(frozen=True)
class SimpleSlopesResult(_DictAccessMixin):
    """Everything computed by :func:`~probe_interactions.core.sim_slopes`."""

    pred: str
    """Focal predictor."""

    modx: str
    """Primary moderator."""

    mod2: str | None
    """Second moderator, or ``None``."""

    slopes: tuple[ConditionalEffect, ...]
    """Conditional slopes, ordered by mod2 value then modx value."""

    intercepts: tuple[ConditionalEffect, ...]
    """Conditional intercepts (empty unless requested)."""

    jn: tuple[JNInterval, ...]
    """Johnson-Neyman intervals, one per mod2 value (or one)."""

    centering: CenteringPlan
    """Centering plan used for conditional intercepts."""

    distribution: Distribution
    """Reference distribution for statistics and intervals."""

    confidence_level: float
    """Confidence level of every interval."""

    scaled: bool = False
    """Whether slopes are per SD of the focal predictor."""

    def to_frame(self, kind: str = "slope") -> pd.DataFrame:
        """Tabulate slopes (``kind="slope"``) or intercepts as a DataFrame."""
        if kind not in ("slope", "intercept"):
            raise ValueError(f"kind must be 'slope' or 'intercept', got {kind!r}")
        records = self.slopes if kind == "slope" else self.intercepts
        columns = ["modx_value", "modx_label"]
        if self.mod2 is not None:
            columns = ["mod2_value", "mod2_label"] + columns
        columns += ["estimate", "std_error", "statistic", "p_value", "ci_lower", "ci_upper"]
        rows = [{c: getattr(r, c) for c in columns} for r in records]
        return pd.DataFrame(rows, columns=columns)


__all__ = [
    "ConditionalEffect",
    "JNInterval",
    "CenteringPlan",
    "SimpleSlopesResult",
]
