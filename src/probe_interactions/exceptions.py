"""Exception hierarchy for interaction probing.

Three failure kinds, all raised synchronously and never retried:

* :class:`ConfigError` — the caller asked for something the fitted
  model cannot answer (unknown predictor, missing interaction term,
  incompatible options).
* :class:`DataError` — the observed data are degenerate (zero-variance
  moderator, fewer than two distinct values).
* :class:`NumericalError` — the linear algebra went wrong (negative
  variance from a non-PSD covariance, non-finite quadratic roots).

``ConfigError`` and ``DataError`` subclass :class:`ValueError` so that
callers already catching ``ValueError`` keep working.
"""

from __future__ import annotations


class ProbeError(Exception):
    """Base class for every error raised by ``probe_interactions``."""


class ConfigError(ProbeError, ValueError):
    """Requested analysis does not match the fitted model or options."""


class DataError(ProbeError, ValueError):
    """Observed data are too degenerate to define conditional values."""


class NumericalError(ProbeError, ArithmeticError):
    """Covariance or root-finding produced an invalid numeric result."""


__all__ = ["ProbeError", "ConfigError", "DataError", "NumericalError"]
