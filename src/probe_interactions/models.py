"""Fitted-model capability interface and the statsmodels adapter.

The probing engine never fits anything.  It needs exactly four
artifacts from an already-fitted regression:

1. the coefficient vector (term name → estimate),
2. the coefficient covariance matrix (term × term),
3. the reference distribution (t with residual df, or normal),
4. the raw observed columns, used only for means, SDs and factor
   levels.

:class:`InteractionModel` formalises that as a ``Protocol`` so that OLS,
GLM, survey-weighted or hand-assembled summaries are all probed the
same way, without branching on concrete result types.
:class:`ModelSummary` is the concrete frozen implementation, and
:func:`from_statsmodels` builds one from a statsmodels results object.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

import numpy as np
import pandas as pd

from ._compat import DataFrameLike, _ensure_pandas_df
from .exceptions import ConfigError, NumericalError
from .families import Distribution, resolve_distribution
from .terms import TermSpec, normalize_terms

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------ #
# InteractionModel protocol
# ------------------------------------------------------------------ #


@runtime_checkable
class InteractionModel(Protocol):
    """Interface every probed model must satisfy.

    Attributes:
        coefficients: Estimates indexed by term name.
        covariance: Coefficient covariance, rows and columns indexed
            by the same term names.
        distribution: Reference distribution for Wald tests.
        data: Raw observed columns (``None`` if unavailable).
        intercept_name: Name of the intercept coefficient, if any.
    """

    @property
    def coefficients(self) -> pd.Series: ...

    @property
    def covariance(self) -> pd.DataFrame: ...

    @property
    def distribution(self) -> Distribution: ...

    @property
    def data(self) -> pd.DataFrame | None: ...

    @property
    def intercept_name(self) -> str | None: ...


# ------------------------------------------------------------------ #
# ModelSummary
# ------------------------------------------------------------------ #


@dataclass(frozen=True)
class ModelSummary:
    """Read-only snapshot of a fitted model's linear-algebra artifacts.

    Validated on construction: the covariance must be square, labelled
    with exactly the coefficient names, finite, and symmetric.

    ``terms`` optionally spells out which variables each coefficient
    multiplies, for coefficient names that are not patsy-style (see
    :func:`~.terms.detect_terms`).

    Use :meth:`build` to construct from plain mappings and a family tag.
    """

    coefficients: pd.Series
    covariance: pd.DataFrame
    distribution: Distribution
    data: pd.DataFrame | None = None
    intercept_name: str | None = None
    terms: TermSpec | None = None

    def __post_init__(self) -> None:
        names = list(self.coefficients.index)
        if len(set(names)) != len(names):
            raise ConfigError("Coefficient names must be unique.")
        cov = self.covariance
        if cov.shape != (len(names), len(names)):
            raise ConfigError(
                f"Covariance matrix has shape {cov.shape}; expected "
                f"({len(names)}, {len(names)}) to match the coefficients."
            )
        if set(cov.index) != set(names) or set(cov.columns) != set(names):
            missing = sorted(set(names) - set(cov.index) - set(cov.columns))
            raise ConfigError(
                "Covariance matrix labels must match the coefficient names"
                + (f"; missing {missing}." if missing else ".")
            )
        values = cov.loc[names, names].to_numpy(dtype=float)
        if not np.all(np.isfinite(values)) or not np.all(
            np.isfinite(self.coefficients.to_numpy(dtype=float))
        ):
            raise NumericalError("Coefficients and covariance must be finite.")
        scale = max(1.0, float(np.max(np.abs(values))))
        if not np.allclose(values, values.T, rtol=1e-8, atol=1e-12 * scale):
            raise NumericalError("Covariance matrix is not symmetric.")
        if self.terms is not None:
            normalize_terms(self.terms, names)

    @classmethod
    def build(
        cls,
        coefficients: Mapping[str, float] | pd.Series,
        covariance: Mapping[tuple[str, str], float] | pd.DataFrame | np.ndarray,
        family: str | Distribution = "t",
        df_resid: float | None = None,
        data: DataFrameLike | None = None,
        intercept_name: str | None = None,
        terms: TermSpec | None = None,
    ) -> ModelSummary:
        """Assemble a summary from plain Python containers.

        Args:
            coefficients: Term name → estimate (order is preserved).
            covariance: A labelled DataFrame, a NumPy array in
                coefficient order, or a mapping ``(name_i, name_j) →
                covariance``.  Mappings may list only one triangle.
            family: Distribution tag (``"t"``, ``"normal"``, ...) or a
                ``Distribution``.
            df_resid: Residual degrees of freedom for t families;
                ``None``/``math.inf`` for asymptotic ones.
            data: Raw observed columns (pandas or Polars).
            intercept_name: Explicit intercept coefficient name.
            terms: Coefficient name → variables it multiplies, for
                names that are not patsy-style.
        """
        coefs = pd.Series(coefficients, dtype=float)
        names = list(coefs.index)
        if isinstance(covariance, pd.DataFrame):
            cov = covariance.astype(float)
        elif isinstance(covariance, np.ndarray):
            cov = pd.DataFrame(covariance, index=names, columns=names, dtype=float)
        else:
            cov = pd.DataFrame(np.zeros((len(names), len(names))), index=names, columns=names)
            for (a, b), value in covariance.items():
                if a not in cov.index or b not in cov.index:
                    raise ConfigError(
                        f"Covariance entry ({a!r}, {b!r}) names an unknown coefficient."
                    )
                cov.loc[a, b] = value
                cov.loc[b, a] = value
        frame = _ensure_pandas_df(data) if data is not None else None
        return cls(
            coefficients=coefs,
            covariance=cov,
            distribution=resolve_distribution(family, df_resid),
            data=frame,
            intercept_name=intercept_name,
            terms=terms,
        )

    @property
    def df_resid(self) -> float:
        """Residual degrees of freedom (``inf`` for asymptotic families)."""
        return self.distribution.df

    def with_data(self, data: DataFrameLike) -> ModelSummary:
        """Return a copy carrying *data* as the observed columns."""
        return ModelSummary(
            coefficients=self.coefficients,
            covariance=self.covariance,
            distribution=self.distribution,
            data=_ensure_pandas_df(data),
            intercept_name=self.intercept_name,
            terms=self.terms,
        )


# ------------------------------------------------------------------ #
# statsmodels adapter
# ------------------------------------------------------------------ #

_DEFAULT_ROBUST = "HC3"


def _observed_frame(results: Any) -> pd.DataFrame | None:
    """Raw observed columns from a statsmodels results object.

    Formula-API models keep the caller's whole frame on
    ``model.data.frame``, including rows dropped for missing values;
    only the estimation rows (``model.data.row_labels``) are returned.
    Array-API models only have the design matrix, whose columns are
    named after the coefficients (so main effects resolve by name).
    """
    model = getattr(results, "model", None)
    mdata = getattr(model, "data", None)
    frame = getattr(mdata, "frame", None)
    if isinstance(frame, pd.DataFrame):
        row_labels = getattr(mdata, "row_labels", None)
        if row_labels is not None and len(row_labels) < len(frame):
            logger.debug(
                "Restricting observed frame to %d of %d rows used in estimation",
                len(row_labels),
                len(frame),
            )
            frame = frame.loc[pd.Index(row_labels)]
        return frame
    exog = getattr(model, "exog", None)
    names = getattr(model, "exog_names", None)
    if exog is not None and names is not None:
        return pd.DataFrame(np.asarray(exog), columns=list(names))
    return None


def from_statsmodels(
    results: Any,
    robust: bool | str = False,
    data: DataFrameLike | None = None,
    terms: TermSpec | None = None,
) -> ModelSummary:
    """Adapt a fitted statsmodels results object to :class:`ModelSummary`.

    The reference distribution follows the results' own ``use_t`` flag:
    t with ``df_resid`` degrees of freedom when set (OLS, WLS), normal
    otherwise (GLM, Logit, Poisson).

    Args:
        results: A statsmodels results instance (anything with
            ``params`` and ``cov_params()``).
        robust: ``False`` for the model's own covariance, ``True`` for
            HC3, or a statsmodels ``cov_type`` string (``"HC0"`` …
            ``"HC3"``).  Requires ``get_robustcov_results``.
        data: Raw observed columns overriding the ones stored on the
            model.
        terms: Coefficient name → variables it multiplies, for design
            columns that are not patsy-style (``{"x_by_m": ("x", "m")}``).

    Raises:
        ConfigError: If *results* lacks the required attributes or a
            robust covariance was requested for a results type that
            does not support it.
    """
    if not hasattr(results, "params") or not hasattr(results, "cov_params"):
        raise ConfigError(
            f"Expected a fitted statsmodels results object, got {type(results).__name__}."
        )

    if robust:
        cov_type = _DEFAULT_ROBUST if robust is True else str(robust)
        if not hasattr(results, "get_robustcov_results"):
            raise ConfigError(
                f"Robust covariance {cov_type!r} is not available for "
                f"{type(results).__name__}; refit with cov_type= instead."
            )
        logger.debug("Requesting %s covariance from statsmodels", cov_type)
        robust_results = results.get_robustcov_results(cov_type=cov_type)
        cov_values = np.asarray(robust_results.cov_params())
    else:
        cov_values = np.asarray(results.cov_params())

    params = results.params
    if isinstance(params, pd.Series):
        names = [str(n) for n in params.index]
        coef_values = params.to_numpy(dtype=float)
    else:
        names = [str(n) for n in results.model.exog_names]
        coef_values = np.asarray(params, dtype=float)

    use_t = bool(getattr(results, "use_t", False))
    df_resid = float(getattr(results, "df_resid", math.inf))
    dist = Distribution.t(df_resid) if use_t else Distribution.normal()

    frame = _ensure_pandas_df(data) if data is not None else _observed_frame(results)
    logger.debug(
        "Adapted %s: %d coefficients, distribution %s",
        type(results).__name__,
        len(names),
        dist,
    )
    return ModelSummary(
        coefficients=pd.Series(coef_values, index=names),
        covariance=pd.DataFrame(cov_values, index=names, columns=names),
        distribution=dist,
        data=frame,
        terms=terms,
    )


def as_interaction_model(
    model: Any,
    robust: bool | str = False,
    data: DataFrameLike | None = None,
    terms: TermSpec | None = None,
) -> InteractionModel:
    """Coerce *model* to something satisfying :class:`InteractionModel`.

    ``InteractionModel`` instances pass through (``data`` and ``terms``
    replace their own when given); anything else goes through
    :func:`from_statsmodels`.

    Raises:
        ConfigError: If *robust* is requested for a model that already
            fixes its covariance.
    """
    if isinstance(model, InteractionModel):
        if robust:
            raise ConfigError(
                "robust covariance can only be requested for statsmodels "
                "results; pass the robust covariance in the summary instead."
            )
        if data is None and terms is None:
            return model
        return ModelSummary(
            coefficients=model.coefficients,
            covariance=model.covariance,
            distribution=model.distribution,
            data=_ensure_pandas_df(data) if data is not None else model.data,
            intercept_name=model.intercept_name,
            terms=terms if terms is not None else getattr(model, "terms", None),
        )
    return from_statsmodels(model, robust=robust, data=data, terms=terms)


__all__ = [
    "InteractionModel",
    "ModelSummary",
    "from_statsmodels",
    "as_interaction_model",
]
