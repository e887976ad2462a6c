"""Wald tests of linear combinations of model coefficients.

Every quantity this package reports is a linear combination ``w'β``
of the fitted coefficients:

* The **conditional slope** of focal predictor X at moderator value v
  is the partial derivative of the linear predictor with respect to X.
  For ``y ~ X * M`` that is ``β_X + v·β_{X:M}``; for ``y ~ X * M * W``
  with W held at v₂ it is
  ``β_X + v·β_{X:M} + v₂·β_{X:W} + v·v₂·β_{X:M:W}``.
* The **conditional intercept** is the linear predictor itself at the
  same point with X at zero (or at its mean, when X is centered).

Given the weight vector w, the delta method is exact:

    Var(w'β) = w' Σ w

so the standard error, test statistic, p-value and confidence interval
all follow in closed form.  :func:`slope_weights` and
:func:`intercept_weights` build w from a :class:`~.terms.TermMap`;
:func:`linear_hypothesis` evaluates it.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

import numpy as np
import pandas as pd

from ._config import _resolve_tol
from ._results import ConditionalEffect
from .exceptions import NumericalError
from .families import Distribution, critical_value, two_tailed_p
from .terms import TermMap, term_value

# ------------------------------------------------------------------ #
# Weight construction
# ------------------------------------------------------------------ #


def slope_weights(
    terms: TermMap,
    point: Mapping[str, Any],
    offsets: Mapping[str, float] | None = None,
) -> dict[str, float]:
    """Weights defining the focal predictor's slope at *point*.

    Each coefficient whose term contains the focal predictor receives
    the product of its *other* factors evaluated at *point*; numeric
    variables absent from *point* sit at their *offsets* value.

    Args:
        terms: Parsed model structure.
        point: Moderator assignments, e.g. ``{"m": 1.5, "w": "b"}``.
        offsets: Centering values for the remaining numeric variables.

    Returns:
        Coefficient name → weight, for the non-zero weights only.
    """
    weights: dict[str, float] = {}
    for name in terms.focal_terms():
        others = [f for f in terms.terms[name] if f.variable != terms.pred]
        w = term_value(others, point, offsets)
        if w != 0.0:
            weights[name] = w
    return weights


def intercept_weights(
    terms: TermMap,
    point: Mapping[str, Any],
    offsets: Mapping[str, float] | None = None,
) -> dict[str, float]:
    """Weights defining the conditional intercept at *point*.

    The intercept is the linear predictor with the focal predictor at
    its own offset (``0`` unless it was centered) and the moderators at
    *point*: 1 on the model intercept plus every other term evaluated
    at that location.
    """
    offsets = dict(offsets or {})
    full_point = dict(point)
    full_point.setdefault(terms.pred, offsets.get(terms.pred, 0.0))
    weights: dict[str, float] = {}
    for name, factors in terms.terms.items():
        w = term_value(factors, full_point, offsets)
        if w != 0.0:
            weights[name] = w
    return weights


# ------------------------------------------------------------------ #
# Evaluation
# ------------------------------------------------------------------ #


def combination_moments(
    weights: Mapping[str, float],
    coefficients: pd.Series,
    covariance: pd.DataFrame,
) -> tuple[float, float]:
    """Return ``(w'β, w'Σw)`` restricted to the weighted terms."""
    names = list(weights)
    if not names:
        return 0.0, 0.0
    w = np.array([weights[n] for n in names], dtype=float)
    beta = coefficients.loc[names].to_numpy(dtype=float)
    sigma = covariance.loc[names, names].to_numpy(dtype=float)
    return float(w @ beta), float(w @ sigma @ w)


def _checked_se(variance: float, scale: float, tol: float) -> float:
    """Square root of *variance*, refusing genuinely negative values.

    Values in ``[-tol·scale, 0)`` are floating-point noise and clamp to
    zero; anything below means the covariance is not PSD.
    """
    if not math.isfinite(variance):
        raise NumericalError(f"Variance of linear combination is not finite ({variance!r}).")
    if variance < 0.0:
        if variance < -tol * max(1.0, scale):
            raise NumericalError(
                f"Linear combination has negative variance ({variance:.6g}); "
                f"the coefficient covariance matrix is not positive semidefinite."
            )
        return 0.0
    return math.sqrt(variance)


def linear_hypothesis(
    weights: Mapping[str, float],
    coefficients: pd.Series,
    covariance: pd.DataFrame,
    distribution: Distribution,
    confidence_level: float = 0.95,
    tol: float | None = None,
    **tags: Any,
) -> ConditionalEffect:
    """Estimate and test the linear combination ``w'β``.

    Args:
        weights: Coefficient name → multiplier.  Names absent from the
            mapping have weight zero.
        coefficients: Coefficient estimates.
        covariance: Coefficient covariance matrix.
        distribution: Reference distribution for the statistic.
        confidence_level: Width of the returned interval.
        tol: Relative tolerance for negative-variance detection;
            defaults to :func:`~probe_interactions.get_tolerance`.
        **tags: Extra :class:`ConditionalEffect` fields such as
            ``kind``, ``modx_value`` and ``modx_label``.

    Returns:
        A :class:`ConditionalEffect`.

    Raises:
        NumericalError: If the variance is negative beyond tolerance
            or not finite.
    """
    tol = _resolve_tol(tol)
    estimate, variance = combination_moments(weights, coefficients, covariance)

    # Scale for the tolerance: the largest diagonal contribution.
    names = list(weights)
    if names:
        w = np.array([weights[n] for n in names], dtype=float)
        diag = np.diag(covariance.loc[names, names].to_numpy(dtype=float))
        scale = float(np.max(np.abs(w * w * diag)))
    else:
        scale = 0.0
    se = _checked_se(variance, scale, tol)

    if se > 0.0:
        statistic = estimate / se
    elif estimate == 0.0:
        statistic = math.nan
    else:
        statistic = math.copysign(math.inf, estimate)
    p_value = math.nan if math.isnan(statistic) else float(two_tailed_p(distribution, statistic))

    crit = critical_value(distribution, confidence_level)
    return ConditionalEffect(
        estimate=estimate,
        std_error=se,
        statistic=statistic,
        p_value=p_value,
        ci_lower=estimate - crit * se,
        ci_upper=estimate + crit * se,
        confidence_level=confidence_level,
        **tags,
    )


__all__ = [
    "slope_weights",
    "intercept_weights",
    "combination_moments",
    "linear_hypothesis",
]
