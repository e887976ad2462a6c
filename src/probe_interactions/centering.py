"""Centering plans: where the non-moderator variables are held.

A conditional intercept, and any slope term in which the focal
predictor interacts with a covariate, depends on the values the other
variables are held at.  Rather than refitting on centered data, the
engine evaluates the fitted linear predictor at the centering point,
which is algebraically identical for the linear combinations it
reports.

Policies:

* ``"none"`` — every variable held at zero.
* ``"all-but-focal"`` (default) — numeric covariates held at their
  means; the focal predictor at zero.
* ``"all"`` — the focal predictor is also held at its mean.
* a sequence of names — only those variables are centered.

Moderators never receive an offset: they are evaluated at each grid
value instead.  Factor variables are never centered (dummies stay at
the reference level).
"""

from __future__ import annotations

import logging
import warnings
from collections.abc import Sequence

import numpy as np
import pandas as pd

from ._results import CenteringPlan
from .exceptions import ConfigError
from .moderators import is_categorical
from .terms import TermMap

logger = logging.getLogger(__name__)

_POLICIES = ("none", "all-but-focal", "all")


def _numeric_column(data: pd.DataFrame | None, name: str) -> np.ndarray | None:
    if data is None or name not in data.columns:
        return None
    column = data[name]
    if is_categorical(column):
        return None
    return pd.to_numeric(column, errors="coerce").dropna().to_numpy(dtype=float)


def build_centering_plan(
    terms: TermMap,
    data: pd.DataFrame | None,
    centered: str | Sequence[str] = "all-but-focal",
    scale: bool = False,
) -> CenteringPlan:
    """Compute the :class:`CenteringPlan` for one analysis call.

    Args:
        terms: Parsed model structure (defines the variables).
        data: Raw observed columns, or ``None``.
        centered: Policy string or a sequence of variable names.
        scale: Record SD divisors for every numeric variable.

    Returns:
        A frozen :class:`CenteringPlan`.

    Raises:
        ConfigError: Unknown policy, a named variable that is not a
            numeric model variable, or ``scale=True`` with a factor
            moderator.

    Warns:
        UserWarning: When a variable the policy asks to center has no
            numeric column in *data*; it is held at zero instead.
    """
    moderators = {terms.modx} | ({terms.mod2} if terms.mod2 else set())
    numeric = [v for v in terms.numeric_variables() if v not in moderators]

    if isinstance(centered, str):
        if centered not in _POLICIES:
            raise ConfigError(
                f"centered must be one of {list(_POLICIES)} or a sequence of "
                f"variable names, got {centered!r}"
            )
        policy = centered
        if policy == "none":
            wanted: list[str] = []
        elif policy == "all":
            wanted = list(numeric)
        else:
            wanted = [v for v in numeric if v != terms.pred]
    else:
        policy = "named-subset"
        wanted = list(dict.fromkeys(centered))
        unknown = [v for v in wanted if v not in terms.variables]
        if unknown:
            raise ConfigError(f"Cannot center {unknown}: not variables of the model.")
        factors = [v for v in wanted if terms.is_factor(v)]
        if factors:
            raise ConfigError(f"Factor variables are never centered: {factors}.")
        wanted = [v for v in wanted if v not in moderators]

    offsets = {v: 0.0 for v in numeric}
    done: list[str] = []
    missing: list[str] = []
    for v in wanted:
        values = _numeric_column(data, v)
        if values is None or values.size == 0:
            missing.append(v)
            continue
        offsets[v] = float(np.mean(values))
        done.append(v)
    if missing:
        warnings.warn(
            f"No numeric observed data for {missing}; held at 0 instead of "
            f"their means.",
            UserWarning,
            stacklevel=3,
        )

    scales: dict[str, float] = {}
    if scale:
        factor_mods = [m for m in moderators if terms.is_factor(m)]
        if factor_mods:
            raise ConfigError(
                f"Cannot standardize factor moderator(s) {factor_mods}; "
                f"factor variables are never scaled."
            )
        for v in [terms.pred, *sorted(moderators), *numeric]:
            if v in scales:
                continue
            values = _numeric_column(data, v)
            if values is None or values.size < 2:
                raise ConfigError(
                    f"scale=True needs observed numeric data for {v!r}."
                )
            scales[v] = float(np.std(values, ddof=1))

    logger.debug("Centering plan (%s): offsets=%s scales=%s", policy, offsets, scales)
    return CenteringPlan(
        offsets=offsets,
        scales=scales,
        policy=policy,
        centered=tuple(done),
    )


__all__ = ["build_centering_plan"]
