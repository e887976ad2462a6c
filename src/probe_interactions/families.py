"""Reference distributions for Wald-type tests of conditional effects.

Every conditional slope or intercept is a linear combination of model
coefficients, so its test statistic is ``estimate / SE``.  Which
reference distribution that statistic follows depends only on how the
model was fitted:

* **t(df)** — Gaussian-error models whose residual variance is
  estimated (OLS, WLS).  ``df`` is the residual degrees of freedom.
* **normal** — asymptotic families (logistic, Poisson, any GLM or
  M-estimator reported with z statistics).

Rather than branching on the concrete fitted-model type, the engine
carries a small tagged variant, :class:`Distribution`, and consumes it
through exactly two functions: :func:`critical_value` and
:func:`two_tailed_p`.  A t distribution with infinite degrees of
freedom collapses to the normal.

The ``resolve_distribution`` helper maps user-facing strings
(``"t"``, ``"gaussian-t"``, ``"normal"``, ``"z"``, ...) to instances,
mirroring the way the family registry resolves names elsewhere.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

import numpy as np
from scipy import stats

from .exceptions import ConfigError

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------ #
# Distribution variant
# ------------------------------------------------------------------ #


@dataclass(frozen=True)
class Distribution:
    """Tagged reference distribution: ``t(df)`` or ``normal``.

    Attributes:
        kind: ``"t"`` or ``"normal"``.
        df: Degrees of freedom.  ``math.inf`` for the normal.
    """

    kind: str
    df: float = math.inf

    def __post_init__(self) -> None:
        if self.kind not in ("t", "normal"):
            raise ConfigError(
                f"Distribution kind must be 't' or 'normal', got {self.kind!r}"
            )
        if self.kind == "t" and not (self.df > 0):
            raise ConfigError(
                f"t distribution needs positive degrees of freedom, got {self.df!r}"
            )

    @classmethod
    def t(cls, df: float) -> Distribution:
        """Student t with *df* degrees of freedom (normal if infinite)."""
        if math.isinf(df):
            return cls.normal()
        return cls("t", float(df))

    @classmethod
    def normal(cls) -> Distribution:
        """Standard normal (asymptotic) reference distribution."""
        return cls("normal", math.inf)

    @property
    def stat_label(self) -> str:
        """Symbol for the test statistic in result tables."""
        return "t" if self.kind == "t" else "z"

    def __str__(self) -> str:
        if self.kind == "t":
            df = int(self.df) if float(self.df).is_integer() else self.df
            return f"t({df})"
        return "normal"


# ------------------------------------------------------------------ #
# Critical values and p-values
# ------------------------------------------------------------------ #


def critical_value(dist: Distribution, confidence_level: float) -> float:
    """Two-tailed critical value at *confidence_level*.

    ``critical_value(d, 0.95)`` is the 97.5th percentile of *d*, i.e.
    the statistic at which a two-tailed test at alpha = 0.05 rejects.

    Raises:
        ConfigError: If *confidence_level* is not in ``(0, 1)``.
    """
    if not 0.0 < confidence_level < 1.0:
        raise ConfigError(
            f"confidence_level must be between 0 and 1, got {confidence_level!r}"
        )
    q = 1.0 - (1.0 - confidence_level) / 2.0
    if dist.kind == "t":
        return float(stats.t.ppf(q, dist.df))
    return float(stats.norm.ppf(q))


def quantile_for_p(dist: Distribution, p: float) -> float:
    """Absolute statistic whose two-tailed p-value equals *p*."""
    if dist.kind == "t":
        return float(stats.t.isf(p / 2.0, dist.df))
    return float(stats.norm.isf(p / 2.0))


def two_tailed_p(dist: Distribution, statistic: float | np.ndarray) -> float | np.ndarray:
    """Two-tailed p-value(s) for *statistic* under *dist*.

    Uses the survival function so that p-values far in the tail do not
    underflow to exactly zero through ``1 - cdf``.
    """
    abs_stat = np.abs(statistic)
    if dist.kind == "t":
        p = 2.0 * stats.t.sf(abs_stat, dist.df)
    else:
        p = 2.0 * stats.norm.sf(abs_stat)
    if np.ndim(p) == 0:
        return float(p)
    return p


# ------------------------------------------------------------------ #
# Resolution
# ------------------------------------------------------------------ #

_ALIASES: dict[str, str] = {
    "t": "t",
    "gaussian-t": "t",
    "gaussian": "t",
    "student": "t",
    "normal": "normal",
    "asymptotic-normal": "normal",
    "z": "normal",
}


def resolve_distribution(
    family: str | Distribution,
    df: float | None = None,
) -> Distribution:
    """Resolve a family tag or instance to a :class:`Distribution`.

    Instances are returned as-is.  String tags are case-insensitive.

    Args:
        family: ``"t"``/``"gaussian-t"`` or ``"normal"``/``"z"``/
            ``"asymptotic-normal"``, or a ``Distribution``.
        df: Residual degrees of freedom, required for t tags.  ``None``
            or ``math.inf`` with a t tag yields the normal.

    Raises:
        ConfigError: If the tag is unknown.
    """
    if isinstance(family, Distribution):
        return family
    key = _ALIASES.get(str(family).strip().lower())
    if key is None:
        available = ", ".join(sorted(_ALIASES))
        raise ConfigError(
            f"Unknown distribution family {family!r}.  Available: {available}."
        )
    if key == "normal":
        return Distribution.normal()
    if df is None or math.isinf(df):
        logger.debug("t family with infinite df resolved to the normal distribution")
        return Distribution.normal()
    return Distribution.t(df)


__all__ = [
    "Distribution",
    "critical_value",
    "quantile_for_p",
    "two_tailed_p",
    "resolve_distribution",
]
