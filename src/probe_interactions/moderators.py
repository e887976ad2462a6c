"""Moderator values at which conditional effects are evaluated.

Continuous moderators are probed at a handful of representative values
derived from the observed column; categorical moderators at every
level.

Selection modes (continuous moderators):

* ``"mean-sd"`` (default) — mean − SD, mean, mean + SD, labelled
  ``"- 1 SD"``, ``"Mean"``, ``"+ 1 SD"`` (Aiken & West, 1991).
* ``"plus-minus"`` — mean − SD and mean + SD only.
* ``"terciles"`` — the median of each third of the sorted data.
* an explicit sequence — used verbatim, order preserved.

SD is the sample (``n - 1``) standard deviation.  Missing values are
dropped before summarising.  Categorical columns (pandas ``category``,
object, string or bool dtype) always yield their levels in defined
order — categorical ``categories`` order, else sorted — and the mode
string is ignored; factors are never centered or scaled.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import numpy as np
import pandas as pd
from pandas.api.types import is_bool_dtype, is_numeric_dtype

from .exceptions import ConfigError, DataError

logger = logging.getLogger(__name__)

_MODES = ("mean-sd", "plus-minus", "terciles")


@dataclass(frozen=True)
class ModeratorGrid:
    """Ordered moderator values with their display labels."""

    variable: str
    values: tuple[Any, ...]
    labels: tuple[str, ...]
    is_factor: bool = False

    def __len__(self) -> int:
        return len(self.values)

    def __iter__(self):
        return iter(zip(self.values, self.labels))


def is_categorical(column: pd.Series) -> bool:
    """``True`` for category, object, string and bool columns."""
    if isinstance(column.dtype, pd.CategoricalDtype) or is_bool_dtype(column):
        return True
    return not is_numeric_dtype(column)


def factor_levels(column: pd.Series) -> tuple[Any, ...]:
    """Levels of *column* in their defined order."""
    if isinstance(column.dtype, pd.CategoricalDtype):
        return tuple(column.cat.categories)
    return tuple(sorted(column.dropna().unique(), key=lambda v: (str(type(v)), v)))


def _format_value(value: float) -> str:
    return f"{value:.4g}"


def _continuous_summary(column: pd.Series, variable: str) -> np.ndarray:
    values = pd.to_numeric(column, errors="coerce").dropna().to_numpy(dtype=float)
    if np.unique(values).size < 2:
        raise DataError(
            f"Moderator {variable!r} has fewer than 2 distinct observed values; "
            f"conditional values would be degenerate."
        )
    sd = float(np.std(values, ddof=1))
    if not sd > 0.0:
        raise DataError(f"Moderator {variable!r} has zero standard deviation.")
    return values


def select_moderator_values(
    column: pd.Series | None,
    mode: str | Sequence[Any] | None = "mean-sd",
    variable: str | None = None,
    is_factor: bool | None = None,
) -> ModeratorGrid:
    """Build the :class:`ModeratorGrid` for one moderator.

    Args:
        column: Observed moderator column, or ``None`` when only
            explicit values are available.
        mode: ``"mean-sd"``, ``"plus-minus"``, ``"terciles"``, an
            explicit sequence of values, or ``None`` (default mode).
        variable: Moderator name for labels and messages (defaults to
            ``column.name``).
        is_factor: Force factor (``True``) or continuous (``False``)
            handling; inferred from the dtype when ``None``.

    Returns:
        A :class:`ModeratorGrid`.

    Raises:
        ConfigError: Unknown mode, explicit factor levels not present in
            the data, or a summary mode without observed data.
        DataError: Zero SD, fewer than 2 distinct values, or a factor
            with fewer than 2 levels.
    """
    name = variable if variable is not None else str(getattr(column, "name", "moderator"))
    if mode is None:
        mode = "mean-sd"
    explicit = not isinstance(mode, str)
    if not explicit and mode not in _MODES:
        raise ConfigError(f"Unknown moderator value mode {mode!r}. Choose from: {list(_MODES)}")

    if column is None:
        if not explicit:
            raise ConfigError(
                f"No observed data for moderator {name!r}; pass explicit values "
                f"instead of mode {mode!r}."
            )
        vals = tuple(mode)
        factor = bool(is_factor)
        if not factor:
            vals = tuple(float(v) for v in vals)
        labels = tuple(str(v) if factor else _format_value(v) for v in vals)
        return ModeratorGrid(name, vals, labels, is_factor=factor)

    factor = is_categorical(column) if is_factor is None else is_factor
    if factor:
        levels = factor_levels(column)
        if len(levels) < 2:
            raise DataError(
                f"Categorical moderator {name!r} has fewer than 2 levels: {list(levels)}"
            )
        if explicit:
            by_label = {str(lv): lv for lv in levels}
            unknown = [v for v in mode if str(v) not in by_label]
            if unknown:
                raise ConfigError(
                    f"Values {unknown} are not levels of {name!r}: {list(by_label)}"
                )
            levels = tuple(by_label[str(v)] for v in mode)
        else:
            logger.debug("Moderator %r is categorical; mode %r ignored", name, mode)
        return ModeratorGrid(name, levels, tuple(str(lv) for lv in levels), is_factor=True)

    if explicit:
        vals = tuple(float(v) for v in mode)
        return ModeratorGrid(name, vals, tuple(_format_value(v) for v in vals))

    data = _continuous_summary(column, name)
    mean = float(np.mean(data))
    sd = float(np.std(data, ddof=1))
    if mode == "mean-sd":
        vals = (mean - sd, mean, mean + sd)
        labels = ("- 1 SD", "Mean", "+ 1 SD")
    elif mode == "plus-minus":
        vals = (mean - sd, mean + sd)
        labels = ("- 1 SD", "+ 1 SD")
    else:
        if data.size < 3:
            raise DataError(f"Moderator {name!r} needs at least 3 observations for terciles.")
        thirds = np.array_split(np.sort(data), 3)
        vals = tuple(float(np.median(t)) for t in thirds)
        labels = ("Lower tercile median", "Middle tercile median", "Upper tercile median")
    return ModeratorGrid(name, vals, labels)


__all__ = ["ModeratorGrid", "select_moderator_values", "is_categorical", "factor_levels"]
