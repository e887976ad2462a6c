"""False-discovery-rate adjusted critical values for Johnson-Neyman.

Scanning a continuous moderator for the region where a conditional
slope is significant implicitly performs one test per moderator value.
Esarey & Sumner (2017) show that using the nominal critical value
(1.96, or the t equivalent) across that continuum inflates the rate of
false positives, and propose replacing it with a critical value that
controls the false discovery rate.

Procedure
---------
1. Evaluate the marginal effect and its SE at every distinct observed
   moderator value — these are the m implied comparisons.
2. Compute their two-tailed p-values and run a step-up FDR procedure
   (Benjamini & Hochberg, 1995, or Benjamini & Yekutieli, 2001) via
   :func:`statsmodels.stats.multitest.multipletests`.
3. The adjusted critical p-value p* is the largest raw p-value still
   rejected.  When nothing is rejected, p* is the most stringent step
   of the procedure (α/m for BH).
4. The critical statistic is the quantile whose two-tailed p-value is
   p*, floored at the nominal critical value.

Because every step-up threshold is at most α, the result is never
smaller than the nominal critical value, and the computation is fully
deterministic.

Methods are pluggable: :func:`register_fdr_method` maps a name to a
callable ``(p_values, alpha) -> critical_p``.

References:
    Esarey, J. & Sumner, J. L. (2017). Marginal effects in interaction
    models: Determining and controlling the false positive rate.
    *Comparative Political Studies*, 51(9), 1144–1176.

    Benjamini, Y. & Hochberg, Y. (1995). Controlling the false
    discovery rate: a practical and powerful approach to multiple
    testing.  *Journal of the Royal Statistical Society B*, 57(1),
    289–300.

    Benjamini, Y. & Yekutieli, D. (2001). The control of the false
    discovery rate in multiple testing under dependency.  *Annals of
    Statistics*, 29(4), 1165–1188.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

import numpy as np
from statsmodels.stats.multitest import multipletests

from .exceptions import ConfigError
from .families import Distribution, critical_value, quantile_for_p, two_tailed_p

logger = logging.getLogger(__name__)

FDRMethod = Callable[[np.ndarray, float], float]


# ------------------------------------------------------------------ #
# Step-up procedures
# ------------------------------------------------------------------ #


def _step_up(p_values: np.ndarray, alpha: float, sm_method: str, first_step: float) -> float:
    reject, _, _, _ = multipletests(p_values, alpha=alpha, method=sm_method)
    if np.any(reject):
        return float(np.max(p_values[reject]))
    return first_step


def _benjamini_hochberg(p_values: np.ndarray, alpha: float) -> float:
    m = p_values.size
    return _step_up(p_values, alpha, "fdr_bh", alpha / m)


def _benjamini_yekutieli(p_values: np.ndarray, alpha: float) -> float:
    m = p_values.size
    c_m = float(np.sum(1.0 / np.arange(1, m + 1)))
    return _step_up(p_values, alpha, "fdr_by", alpha / (m * c_m))


_FDR_METHODS: dict[str, FDRMethod] = {
    "bh": _benjamini_hochberg,
    "by": _benjamini_yekutieli,
}
"""Registry mapping method names to critical-p callables."""


def register_fdr_method(name: str, func: FDRMethod) -> None:
    """Register a callable ``(p_values, alpha) -> critical_p`` as *name*.

    The callable receives the raw two-tailed p-values of the implied
    comparisons and must return a critical p-value in ``(0, alpha]``.

    Raises:
        TypeError: If *func* is not callable.
    """
    if not callable(func):
        raise TypeError(f"{func!r} is not callable.")
    _FDR_METHODS[name] = func


# ------------------------------------------------------------------ #
# Public entry point
# ------------------------------------------------------------------ #


def fdr_critical_value(
    estimates: np.ndarray,
    std_errors: np.ndarray,
    distribution: Distribution,
    alpha: float = 0.05,
    method: str = "bh",
) -> float:
    """FDR-controlling critical statistic across the implied comparisons.

    Args:
        estimates: Conditional slopes at each distinct moderator value.
        std_errors: Their standard errors (same length).
        distribution: Reference distribution of the statistic.
        alpha: Nominal false discovery rate.
        method: Registered method name (``"bh"`` or ``"by"``).

    Returns:
        A critical statistic ``>=`` the nominal two-tailed critical
        value at *alpha*.

    Raises:
        ConfigError: Unknown method, *alpha* outside ``(0, 1)``, fewer
            than two comparisons, mismatched lengths, or non-finite or
            non-positive standard errors.
    """
    if method not in _FDR_METHODS:
        raise ConfigError(
            f"Unknown FDR method {method!r}. Available: {sorted(_FDR_METHODS)}"
        )
    if not 0.0 < alpha < 1.0:
        raise ConfigError(f"alpha must be between 0 and 1, got {alpha!r}")

    est = np.asarray(estimates, dtype=float).ravel()
    se = np.asarray(std_errors, dtype=float).ravel()
    if est.shape != se.shape:
        raise ConfigError(
            f"estimates and std_errors differ in length ({est.size} vs {se.size})."
        )
    if est.size < 2:
        raise ConfigError(
            "FDR correction needs at least 2 distinct moderator values; "
            f"got {est.size}."
        )
    if not (np.all(np.isfinite(est)) and np.all(np.isfinite(se)) and np.all(se > 0)):
        raise ConfigError(
            "FDR correction needs finite estimates and strictly positive "
            "standard errors at every moderator value."
        )

    p_values = np.asarray(two_tailed_p(distribution, est / se), dtype=float)
    p_crit = _FDR_METHODS[method](p_values, alpha)
    if not 0.0 < p_crit <= alpha:
        raise ConfigError(
            f"FDR method {method!r} returned critical p {p_crit!r} outside (0, {alpha}]."
        )

    nominal = critical_value(distribution, 1.0 - alpha)
    adjusted = max(nominal, quantile_for_p(distribution, p_crit))
    logger.debug(
        "FDR (%s) over %d comparisons: critical p %.4g, critical value %.4f "
        "(nominal %.4f)",
        method,
        est.size,
        p_crit,
        adjusted,
        nominal,
    )
    return adjusted


__all__ = ["fdr_critical_value", "register_fdr_method"]
