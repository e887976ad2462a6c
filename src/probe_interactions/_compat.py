"""Observed-data inputs: pandas, or Polars when it is installed.

The engine only ever reads observed columns to compute means, standard
deviations and factor levels, and it does so through pandas.  Frames
handed to a public entry point (``data=`` or ``ModelSummary.build``)
are normalised here once, at the boundary: Polars ``DataFrame`` and
``LazyFrame`` objects are converted to pandas, pandas frames pass
through unchanged.

Polars is an optional extra (``pip install probe-interactions[polars]``).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, TypeAlias

import pandas as pd

from .exceptions import ConfigError

if TYPE_CHECKING:
    import polars as pl

    DataFrameLike: TypeAlias = pd.DataFrame | pl.DataFrame | pl.LazyFrame
else:
    DataFrameLike: TypeAlias = pd.DataFrame

try:
    import polars as pl

    _HAS_POLARS = True
except ImportError:
    _HAS_POLARS = False


def _ensure_pandas_df(obj: DataFrameLike, *, name: str = "data") -> pd.DataFrame:
    """Return *obj* as a pandas DataFrame.

    Args:
        obj: pandas DataFrame (returned as-is), Polars DataFrame, or
            Polars LazyFrame (collected first).
        name: Argument name quoted in the error message.

    Raises:
        TypeError: For any other input type.
    """
    if isinstance(obj, pd.DataFrame):
        return obj
    if _HAS_POLARS and isinstance(obj, (pl.DataFrame, pl.LazyFrame)):
        frame = obj.collect() if isinstance(obj, pl.LazyFrame) else obj
        return frame.to_pandas()

    accepted = "a pandas DataFrame"
    if _HAS_POLARS:
        accepted += " or Polars DataFrame/LazyFrame"
    raise TypeError(f"'{name}' must be {accepted}, got {type(obj).__name__}.")


def _get_column(frame: pd.DataFrame, name: str) -> pd.Series:
    """Return column *name* of *frame*, raising ``ConfigError`` if absent."""
    if name in frame.columns:
        return frame[name]
    available = ", ".join(map(str, frame.columns))
    raise ConfigError(
        f"Variable {name!r} not found in the observed data. "
        f"Available columns: {available}."
    )
