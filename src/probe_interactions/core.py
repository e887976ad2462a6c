"""Simple slopes analysis.

A significant interaction coefficient says *that* the focal
predictor's effect depends on the moderator, not *how*.  Simple slopes
analysis (Aiken & West, 1991) answers the "how" by reporting the
conditional slope of the focal predictor X at representative values of
the moderator M:

    ∂ŷ/∂X |_{M=v} = β_X + v·β_{X:M}

with its standard error from the coefficient covariance matrix.  With a
second moderator W the slopes are reported at every combination of M
and W values:

    ∂ŷ/∂X |_{M=v, W=v₂} = β_X + v·β_{X:M} + v₂·β_{X:W} + v·v₂·β_{X:M:W}

Pipeline
~~~~~~~~
1. Adapt the model to an :class:`~.models.InteractionModel` and parse
   its coefficient names (:func:`~.terms.detect_terms`).
2. Build the :class:`~._results.CenteringPlan` — where covariates are
   held for conditional intercepts and covariate interactions.
3. Select the moderator grid(s) (:func:`~.moderators.select_moderator_values`).
   The second moderator always gets its own full grid.
4. For every grid point, test the slope (and optionally the intercept)
   via :func:`~.hypothesis.linear_hypothesis`.
5. For a continuous moderator, solve the Johnson-Neyman interval once
   per second-moderator value (:mod:`~.johnson_neyman`).

Everything is a pure function of the inputs: calling twice gives
identical results.

References:
    Aiken, L. S. & West, S. G. (1991). *Multiple Regression: Testing
    and Interpreting Interactions*.  Sage.

    Preacher, K. J., Curran, P. J. & Bauer, D. J. (2006).
    Computational tools for probing interactions in multiple linear
    regression, multilevel modeling, and latent curve analysis.
    *Journal of Educational and Behavioral Statistics*, 31(4), 437–448.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from ._compat import DataFrameLike, _get_column
from ._results import ConditionalEffect, JNInterval, SimpleSlopesResult
from .centering import build_centering_plan
from .exceptions import ConfigError
from .families import critical_value
from .hypothesis import intercept_weights, linear_hypothesis, slope_weights
from .johnson_neyman import _interval_for_terms
from .models import InteractionModel, as_interaction_model
from .moderators import ModeratorGrid, select_moderator_values
from .terms import TermMap, TermSpec, detect_terms

logger = logging.getLogger(__name__)

_REFERENCE_LABEL = "(reference)"


def _grid_for(
    summary: InteractionModel,
    terms: TermMap,
    variable: str,
    values: str | Sequence[Any] | None,
) -> ModeratorGrid:
    """Moderator grid for *variable*, from data when available.

    A factor moderator without observed data is probed at its
    reference level (all dummies zero) plus every level named in the
    coefficients.
    """
    factor = terms.is_factor(variable)
    data = summary.data
    if data is not None:
        column = _get_column(data, variable)
        return select_moderator_values(column, values, variable=variable, is_factor=factor or None)
    if factor and (values is None or isinstance(values, str)):
        levels = (_REFERENCE_LABEL, *terms.factor_levels[variable])
        return ModeratorGrid(variable, levels, levels, is_factor=True)
    return select_moderator_values(None, values, variable=variable, is_factor=factor)


def sim_slopes(
    model: Any,
    pred: str,
    modx: str,
    mod2: str | None = None,
    *,
    modx_values: str | Sequence[Any] | None = None,
    mod2_values: str | Sequence[Any] | None = None,
    centered: str | Sequence[str] = "all-but-focal",
    scale: bool = False,
    confidence_level: float = 0.95,
    cond_int: bool = False,
    robust: bool | str = False,
    johnson_neyman: bool = True,
    jn_alpha: float = 0.05,
    control_fdr: bool = False,
    fdr_method: str = "bh",
    data: DataFrameLike | None = None,
    terms: TermSpec | None = None,
    tol: float | None = None,
) -> SimpleSlopesResult:
    """Conditional slopes of *pred* at values of *modx* (and *mod2*).

    Args:
        model: An :class:`~probe_interactions.models.InteractionModel`
            or a fitted statsmodels results object.
        pred: Focal predictor (numeric).
        modx: Primary moderator (numeric or categorical).
        mod2: Optional second moderator for three-way interactions.
        modx_values: ``"mean-sd"`` (default), ``"plus-minus"``,
            ``"terciles"`` or an explicit sequence.  Ignored for
            factor moderators unless a sequence of levels is given.
        mod2_values: Same options for *mod2*.
        centered: ``"all-but-focal"`` (default), ``"all"``, ``"none"``,
            or a sequence of variable names to center.
        scale: Report slopes per standard deviation of *pred*.
        confidence_level: Width of every confidence interval.
        cond_int: Also report conditional intercepts.
        robust: Robust covariance for statsmodels results (``True``
            for HC3, or a ``cov_type`` string).
        johnson_neyman: Attach Johnson-Neyman intervals (continuous
            *modx* only).
        jn_alpha: Significance level of the intervals.
        control_fdr: FDR-adjust the interval critical value, per
            fixed value of *mod2*.
        fdr_method: FDR procedure name (``"bh"`` or ``"by"``).
        data: Raw observed columns overriding those on *model*.
        terms: Coefficient name → variables it multiplies, for models
            whose coefficient names are not patsy-style.
        tol: Numerical tolerance override.

    Returns:
        A :class:`~probe_interactions.SimpleSlopesResult` whose
        ``slopes`` are ordered by *mod2* value, then *modx* value.

    Raises:
        ConfigError: Unknown variables, missing interaction terms or
            incompatible options.
        DataError: Degenerate moderator data.
        NumericalError: Negative variances or non-finite roots.
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
    # Validates the level before any work is done.
    critical_value(summary.distribution, confidence_level)

    plan = build_centering_plan(term_map, summary.data, centered, scale)
    modx_grid = _grid_for(summary, term_map, modx, modx_values)
    mod2_grid = (
        _grid_for(summary, term_map, mod2, mod2_values) if mod2 is not None else None
    )

    slope_factor = plan.scales.get(pred, 1.0) if scale else 1.0
    coefs, cov, dist = summary.coefficients, summary.covariance, summary.distribution
    outer = list(mod2_grid) if mod2_grid is not None else [(None, None)]

    slopes: list[ConditionalEffect] = []
    intercepts: list[ConditionalEffect] = []
    for v2, label2 in outer:
        for v, label in modx_grid:
            point = {modx: v}
            if mod2 is not None:
                point[mod2] = v2
            tags = {
                "modx_value": v,
                "modx_label": label,
                "mod2_value": v2,
                "mod2_label": label2,
            }
            weights = slope_weights(term_map, point, plan.offsets)
            if slope_factor != 1.0:
                weights = {k: w * slope_factor for k, w in weights.items()}
            slopes.append(
                linear_hypothesis(
                    weights, coefs, cov, dist, confidence_level, tol, kind="slope", **tags
                )
            )
            if cond_int:
                if term_map.intercept is None:
                    raise ConfigError(
                        "cond_int=True but the model has no intercept coefficient."
                    )
                intercepts.append(
                    linear_hypothesis(
                        intercept_weights(term_map, point, plan.offsets),
                        coefs,
                        cov,
                        dist,
                        confidence_level,
                        tol,
                        kind="intercept",
                        **tags,
                    )
                )

    intervals: list[JNInterval] = []
    if johnson_neyman:
        if modx_grid.is_factor:
            logger.debug("Skipping Johnson-Neyman: moderator %r is categorical", modx)
        else:
            for v2, label2 in outer:
                intervals.append(
                    _interval_for_terms(
                        summary,
                        term_map,
                        plan.offsets,
                        mod2_value=v2,
                        mod2_label=label2,
                        alpha=jn_alpha,
                        control_fdr=control_fdr,
                        fdr_method=fdr_method,
                        tol=tol,
                    )
                )

    logger.debug(
        "sim_slopes(%r by %r%s): %d slopes, %d intercepts, %d J-N intervals",
        pred,
        modx,
        f" by {mod2!r}" if mod2 else "",
        len(slopes),
        len(intercepts),
        len(intervals),
    )
    return SimpleSlopesResult(
        pred=pred,
        modx=modx,
        mod2=mod2,
        slopes=tuple(slopes),
        intercepts=tuple(intercepts),
        jn=tuple(intervals),
        centering=plan,
        distribution=dist,
        confidence_level=confidence_level,
        scaled=bool(scale),
    )


__all__ = ["sim_slopes"]
