"""Johnson-Neyman intervals for conditional slopes.

Instead of probing a few moderator values, the Johnson-Neyman technique
(Johnson & Neyman, 1936; Bauer & Curran, 2005) solves for the exact
moderator values at which the focal predictor's conditional slope
crosses the significance threshold.

The slope weights are affine in the moderator value v, w(v) = w₀ + v·w₁,
so with b₁ = w₀'β, b₂ = w₁'β, V₁₁ = w₀'Σw₀, V₁₂ = w₀'Σw₁, V₂₂ = w₁'Σw₁:

    estimate(v) = b₁ + b₂·v
    var(v)      = V₁₁ + 2v·V₁₂ + v²·V₂₂

The slope is significant where estimate(v)² > c²·var(v), and the
boundary solves the quadratic

    (b₁² − c²V₁₁) + 2v(b₁b₂ − c²V₁₂) + v²(b₂² − c²V₂₂) = 0

where c is the two-tailed critical value (optionally FDR adjusted, see
:mod:`probe_interactions.fdr`).  In a three-way model the second
moderator is held fixed, which only changes w₀ and w₁; the same
solve is repeated once per fixed value.

Outcomes:

* no real root (negative discriminant, or a vanishing quadratic and
  linear term) — significant everywhere or nowhere; decided by the
  statistic at the moderator mean;
* one root (vanishing leading coefficient) — significant above or
  below it;
* two roots — significant inside or outside them, decided by the
  statistic at the midpoint and confirmed just outside.

References:
    Johnson, P. O. & Neyman, J. (1936). Tests of certain linear
    hypotheses and their application to some educational problems.
    *Statistical Research Memoirs*, 1, 57–93.

    Bauer, D. J. & Curran, P. J. (2005). Probing interactions in fixed
    and multilevel regression: Inferential and graphical techniques.
    *Multivariate Behavioral Research*, 40(3), 373–400.
"""

from __future__ import annotations

import logging
import math
import warnings
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import numpy as np
import pandas as pd

from ._compat import DataFrameLike
from ._config import _resolve_tol
from ._results import JNInterval
from .centering import build_centering_plan
from .exceptions import ConfigError, NumericalError
from .families import Distribution, critical_value
from .fdr import fdr_critical_value
from .hypothesis import _checked_se, slope_weights
from .models import InteractionModel, as_interaction_model
from .moderators import is_categorical
from .terms import TermMap, TermSpec, detect_terms

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------ #
# Slope moments as functions of the moderator
# ------------------------------------------------------------------ #


@dataclass(frozen=True)
class SlopeMoments:
    """Coefficients of ``estimate(v)`` and ``var(v)`` in the moderator v."""

    b1: float
    b2: float
    v11: float
    v12: float
    v22: float

    def estimate(self, v: float | np.ndarray) -> float | np.ndarray:
        return self.b1 + self.b2 * v

    def variance(self, v: float | np.ndarray) -> float | np.ndarray:
        return self.v11 + 2.0 * v * self.v12 + v * v * self.v22

    @property
    def scale(self) -> float:
        return max(abs(self.v11), abs(self.v22), abs(self.v12))


def slope_moments(
    terms: TermMap,
    coefficients: pd.Series,
    covariance: pd.DataFrame,
    fixed: dict[str, Any] | None = None,
    offsets: dict[str, float] | None = None,
) -> SlopeMoments:
    """Affine decomposition of the focal slope along the moderator.

    Args:
        terms: Parsed model structure.
        coefficients: Coefficient estimates.
        covariance: Coefficient covariance.
        fixed: Values of other moderators held fixed (e.g. ``{mod2: v2}``).
        offsets: Centering offsets for the remaining variables.
    """
    fixed = dict(fixed or {})
    w0 = slope_weights(terms, {**fixed, terms.modx: 0.0}, offsets)
    w_at_1 = slope_weights(terms, {**fixed, terms.modx: 1.0}, offsets)
    w1 = {k: w_at_1.get(k, 0.0) - w0.get(k, 0.0) for k in set(w0) | set(w_at_1)}
    w1 = {k: v for k, v in w1.items() if v != 0.0}

    names = list(dict.fromkeys([*w0, *w1]))
    a = np.array([w0.get(n, 0.0) for n in names])
    b = np.array([w1.get(n, 0.0) for n in names])
    beta = coefficients.loc[names].to_numpy(dtype=float)
    sigma = covariance.loc[names, names].to_numpy(dtype=float)
    return SlopeMoments(
        b1=float(a @ beta),
        b2=float(b @ beta),
        v11=float(a @ sigma @ a),
        v12=float(a @ sigma @ b),
        v22=float(b @ sigma @ b),
    )


def _statistic(moments: SlopeMoments, v: float, tol: float) -> float:
    se = _checked_se(float(moments.variance(v)), moments.scale * max(1.0, v * v), tol)
    est = float(moments.estimate(v))
    if se == 0.0:
        return math.nan if est == 0.0 else math.copysign(math.inf, est)
    return est / se


def _is_sig(moments: SlopeMoments, v: float, crit: float, tol: float) -> bool:
    t = _statistic(moments, v, tol)
    return bool(abs(t) > crit)


# ------------------------------------------------------------------ #
# Quadratic solve and classification
# ------------------------------------------------------------------ #


def solve_jn_quadratic(
    moments: SlopeMoments,
    crit: float,
    tol: float | None = None,
) -> tuple[float, ...]:
    """Real roots of ``estimate(v)² − crit²·var(v) = 0``, ascending.

    Returns zero, one or two roots.  A leading coefficient that is zero
    relative to its parts degrades to a linear solve.

    Raises:
        NumericalError: If a root is not finite.
    """
    tol = _resolve_tol(tol)
    c2 = crit * crit
    qa = moments.b2**2 - c2 * moments.v22
    qb = 2.0 * (moments.b1 * moments.b2 - c2 * moments.v12)
    qc = moments.b1**2 - c2 * moments.v11
    tiny = np.finfo(float).tiny

    if abs(qa) <= tol * max(moments.b2**2, c2 * abs(moments.v22), tiny):
        linear_scale = max(abs(2.0 * moments.b1 * moments.b2), abs(2.0 * c2 * moments.v12))
        if abs(qb) <= tol * max(linear_scale, tiny):
            return ()
        roots: tuple[float, ...] = (-qc / qb,)
    else:
        disc = qb * qb - 4.0 * qa * qc
        if disc < 0.0:
            if disc < -tol * max(qb * qb, abs(4.0 * qa * qc), tiny):
                return ()
            disc = 0.0
        # Citardauq form avoids cancellation when qb² >> 4·qa·qc.
        q = -0.5 * (qb + math.copysign(math.sqrt(disc), qb))
        if q == 0.0:
            r1 = r2 = 0.0
        else:
            r1, r2 = q / qa, qc / q
        roots = tuple(sorted((r1, r2)))

    if not all(math.isfinite(r) for r in roots):
        raise NumericalError(f"Johnson-Neyman solve produced non-finite roots {roots}.")
    return roots


def _classify(
    moments: SlopeMoments,
    roots: tuple[float, ...],
    crit: float,
    reference: float,
    step: float,
    tol: float,
) -> str:
    """Where the slope is significant relative to *roots*."""
    if not roots:
        return "always" if _is_sig(moments, reference, crit, tol) else "never"
    if len(roots) == 1:
        (r,) = roots
        above = _is_sig(moments, r + step, crit, tol)
        below = _is_sig(moments, r - step, crit, tol)
        if above == below:
            raise NumericalError(
                f"Significance does not change sign across the boundary {r:.6g}."
            )
        return "above" if above else "below"

    lo, hi = roots
    outside = _is_sig(moments, hi + max(step, hi - lo), crit, tol)
    if hi - lo <= tol * max(1.0, abs(hi)):
        return "outside" if outside else "inside"
    inside = _is_sig(moments, 0.5 * (lo + hi), crit, tol)
    if inside == outside:
        raise NumericalError(
            f"Inconsistent Johnson-Neyman classification between {lo:.6g} and {hi:.6g}."
        )
    return "inside" if inside else "outside"


# ------------------------------------------------------------------ #
# Confidence bands
# ------------------------------------------------------------------ #


def slope_bands(
    moments: SlopeMoments,
    grid: np.ndarray,
    crit: float,
    tol: float | None = None,
) -> pd.DataFrame:
    """Conditional slope with a ±crit·SE band over *grid*.

    The band uses the same critical value as the interval, so
    ``significant`` flips exactly at the Johnson-Neyman boundaries.

    Returns:
        DataFrame with columns ``modx``, ``slope``, ``std_error``,
        ``lower``, ``upper``, ``significant``.
    """
    tol = _resolve_tol(tol)
    grid = np.asarray(grid, dtype=float)
    est = np.asarray(moments.estimate(grid), dtype=float)
    var = np.asarray(moments.variance(grid), dtype=float)
    floor = -tol * moments.scale * np.maximum(1.0, grid * grid)
    if np.any(var < np.minimum(floor, 0.0)) or not np.all(np.isfinite(var)):
        raise NumericalError("Conditional slope variance is negative over the moderator grid.")
    se = np.sqrt(np.clip(var, 0.0, None))
    with np.errstate(divide="ignore", invalid="ignore"):
        stat = np.where(se > 0, est / np.where(se > 0, se, 1.0), np.sign(est) * np.inf)
    return pd.DataFrame(
        {
            "modx": grid,
            "slope": est,
            "std_error": se,
            "lower": est - crit * se,
            "upper": est + crit * se,
            "significant": np.abs(stat) > crit,
        }
    )


# ------------------------------------------------------------------ #
# Interval assembly (shared with sim_slopes)
# ------------------------------------------------------------------ #


def _observed_moderator(data: pd.DataFrame | None, modx: str) -> np.ndarray | None:
    if data is None or modx not in data.columns:
        return None
    column = data[modx]
    if is_categorical(column):
        raise ConfigError(
            f"Johnson-Neyman intervals need a continuous moderator; {modx!r} is categorical."
        )
    values = pd.to_numeric(column, errors="coerce").dropna().to_numpy(dtype=float)
    return values if values.size else None


def _interval_for_terms(
    model: InteractionModel,
    terms: TermMap,
    offsets: dict[str, float],
    *,
    mod2_value: Any = None,
    mod2_label: str | None = None,
    alpha: float = 0.05,
    control_fdr: bool = False,
    fdr_method: str = "bh",
    fdr_tolerant: bool = False,
    mod_range: Sequence[float] | None = None,
    n_grid: int = 200,
    tol: float | None = None,
) -> JNInterval:
    """Solve one Johnson-Neyman interval for an already-parsed model."""
    tol = _resolve_tol(tol)
    if terms.is_factor(terms.modx):
        raise ConfigError(
            f"Johnson-Neyman intervals need a continuous moderator; "
            f"{terms.modx!r} enters the model as a factor."
        )
    if not 0.0 < alpha < 1.0:
        raise ConfigError(f"alpha must be between 0 and 1, got {alpha!r}")
    if mod_range is not None:
        mod_range = (float(mod_range[0]), float(mod_range[1]))
        if not mod_range[0] < mod_range[1]:
            raise ConfigError(f"mod_range must be increasing, got {mod_range}")

    fixed = {terms.mod2: mod2_value} if terms.mod2 is not None else {}
    moments = slope_moments(terms, model.coefficients, model.covariance, fixed, offsets)
    dist: Distribution = model.distribution

    observed = _observed_moderator(model.data, terms.modx)
    observed_range = (
        (float(observed.min()), float(observed.max())) if observed is not None else None
    )
    span = mod_range or observed_range

    crit = critical_value(dist, 1.0 - alpha)
    fdr_used = False
    if control_fdr:
        if observed is not None:
            points = np.unique(observed)
        elif span is not None:
            points = np.linspace(span[0], span[1], n_grid)
        else:
            points = np.array([])
        try:
            est = np.asarray(moments.estimate(points), dtype=float)
            se = np.sqrt(np.clip(np.asarray(moments.variance(points), dtype=float), 0.0, None))
            crit = fdr_critical_value(est, se, dist, alpha=alpha, method=fdr_method)
            fdr_used = True
        except ConfigError as exc:
            if not fdr_tolerant:
                raise
            warnings.warn(
                f"FDR correction unavailable ({exc}); using the uncorrected "
                f"critical value.",
                UserWarning,
                stacklevel=3,
            )

    if observed is not None:
        reference = float(np.mean(observed))
        step = float(np.std(observed)) or 1.0
    elif span is not None:
        reference = 0.5 * (span[0] + span[1])
        step = 0.25 * (span[1] - span[0])
    else:
        reference, step = 0.0, 1.0

    roots = solve_jn_quadratic(moments, crit, tol)
    step = max(step, max((abs(r) for r in roots), default=0.0) * 1e-3)
    region = _classify(moments, roots, crit, reference, step, tol)

    if observed_range is not None:
        flags = tuple(not (observed_range[0] <= r <= observed_range[1]) for r in roots)
    else:
        flags = tuple(False for _ in roots)
    if roots and all(flags):
        warnings.warn(
            f"All Johnson-Neyman bounds for {terms.modx!r} "
            f"({', '.join(f'{r:.4g}' for r in roots)}) lie outside the observed "
            f"range [{observed_range[0]:.4g}, {observed_range[1]:.4g}].",
            UserWarning,
            stacklevel=3,
        )

    bands = None
    if span is not None and n_grid >= 2:
        bands = slope_bands(moments, np.linspace(span[0], span[1], n_grid), crit, tol)

    logger.debug(
        "Johnson-Neyman for %r (fixed %s): roots=%s region=%s crit=%.4f",
        terms.modx,
        fixed,
        roots,
        region,
        crit,
    )
    return JNInterval(
        modx=terms.modx,
        bounds=roots,
        significant_region=region,
        critical_value=crit,
        alpha=alpha,
        fdr_corrected=fdr_used,
        observed_range=observed_range,
        bounds_outside_range=flags,
        mod2=terms.mod2,
        mod2_value=mod2_value,
        mod2_label=mod2_label,
        bands=bands,
    )


# ------------------------------------------------------------------ #
# Public entry point
# ------------------------------------------------------------------ #


def johnson_neyman(
    model: Any,
    pred: str,
    modx: str,
    *,
    mod2: str | None = None,
    mod2_value: Any = None,
    alpha: float = 0.05,
    control_fdr: bool = False,
    fdr_method: str = "bh",
    fdr_tolerant: bool = False,
    mod_range: Sequence[float] | None = None,
    centered: str | Sequence[str] = "all-but-focal",
    n_grid: int = 200,
    robust: bool | str = False,
    data: DataFrameLike | None = None,
    terms: TermSpec | None = None,
    tol: float | None = None,
) -> JNInterval:
    """Johnson-Neyman interval for the slope of *pred* across *modx*.

    Args:
        model: An :class:`~probe_interactions.models.InteractionModel`
            or a fitted statsmodels results object.
        pred: Focal predictor (numeric).
        modx: Continuous moderator.
        mod2: Optional second moderator, held at *mod2_value*.
        mod2_value: Value (or factor level) of *mod2*; required when
            *mod2* is given.
        alpha: Two-tailed significance level.
        control_fdr: Replace the critical value with the
            Esarey & Sumner (2017) FDR-adjusted one.
        fdr_method: ``"bh"`` or ``"by"`` (or a registered name).
        fdr_tolerant: Fall back to the nominal critical value, with a
            warning, when the FDR correction cannot be computed.
        mod_range: ``(low, high)`` range for the confidence bands (and
            the FDR grid when no data are available).  Defaults to the
            observed moderator range.
        centered: Centering policy for covariates interacting with
            *pred* (see :func:`~probe_interactions.centering.build_centering_plan`).
        n_grid: Number of points in the confidence bands.
        robust: Robust covariance for statsmodels results (``True``
            for HC3, or a ``cov_type`` string).
        data: Raw observed columns overriding those on *model*.
        terms: Coefficient name → variables it multiplies, for models
            whose coefficient names are not patsy-style.
        tol: Numerical tolerance override.

    Returns:
        A :class:`~probe_interactions.JNInterval`.

    Raises:
        ConfigError: Unknown variables, missing interaction terms, a
            categorical moderator, or invalid options.
        NumericalError: Negative variance or non-finite roots.
    """
    summary = as_interaction_model(model, robust=robust, data=data, terms=terms)
    term_map = detect_terms(
        summary.coefficients.index,
        pred,
        modx,
        mod2,
        intercept_name=summary.intercept_name,
        explicit_terms=getattr(summary, "terms", None),
    )
    if mod2 is not None and mod2_value is None:
        raise ConfigError(
            f"mod2={mod2!r} given without mod2_value; use sim_slopes() to solve "
            f"at every value of the second moderator."
        )
    plan = build_centering_plan(term_map, summary.data, centered)
    label = None if mod2_value is None else str(mod2_value)
    return _interval_for_terms(
        summary,
        term_map,
        plan.offsets,
        mod2_value=mod2_value,
        mod2_label=label,
        alpha=alpha,
        control_fdr=control_fdr,
        fdr_method=fdr_method,
        fdr_tolerant=fdr_tolerant,
        mod_range=mod_range,
        n_grid=n_grid,
        tol=tol,
    )


__all__ = [
    "SlopeMoments",
    "slope_moments",
    "solve_jn_quadratic",
    "slope_bands",
    "johnson_neyman",
]
