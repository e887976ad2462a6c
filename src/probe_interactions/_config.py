"""Numerical tolerance configuration for the probe_interactions package.

Controls the tolerance used when deciding that a variance is "negative
beyond floating-point noise" or that the leading coefficient of the
Johnson-Neyman quadratic is effectively zero.

Resolution order (first match wins):
    1. Programmatic override via :func:`set_tolerance`.
    2. The ``PROBE_INTERACTIONS_TOL`` environment variable.
    3. The built-in default, ``1e-10``.

Every numeric entry point also accepts an explicit ``tol=`` argument,
which takes precedence over all three.

Examples:
    Loosen the tolerance from the shell::

        export PROBE_INTERACTIONS_TOL=1e-8

    Programmatically::

        import probe_interactions
        probe_interactions.set_tolerance(1e-8)

    Restore the default resolution order::

        probe_interactions.set_tolerance("auto")
"""

from __future__ import annotations

import logging
import os

logger = logging.getLogger(__name__)

_DEFAULT_TOLERANCE = 1e-10

# Sentinel indicating "no programmatic override has been set".
_tolerance_override: float | None = None


def get_tolerance() -> float:
    """Return the active numerical tolerance.

    Resolution order:
        1. Value set by :func:`set_tolerance`.
        2. ``PROBE_INTERACTIONS_TOL`` environment variable.
        3. ``1e-10``.

    Returns:
        A strictly positive float.
    """
    # 1. Programmatic override
    if _tolerance_override is not None:
        return _tolerance_override

    # 2. Environment variable
    env = os.environ.get("PROBE_INTERACTIONS_TOL", "").strip()
    if env:
        try:
            value = float(env)
        except ValueError:
            logger.debug("Ignoring non-numeric PROBE_INTERACTIONS_TOL=%r", env)
        else:
            if value > 0:
                return value
            logger.debug("Ignoring non-positive PROBE_INTERACTIONS_TOL=%r", env)

    # 3. Default
    return _DEFAULT_TOLERANCE


def set_tolerance(value: float | str) -> None:
    """Override the numerical tolerance.

    Args:
        value: A strictly positive float, or ``"auto"`` (case-insensitive)
            to restore the default resolution order.

    Raises:
        ValueError: If *value* is not positive or not ``"auto"``.
    """
    global _tolerance_override
    if isinstance(value, str):
        if value.strip().lower() != "auto":
            raise ValueError(
                f"Unknown tolerance setting '{value}'. Pass a positive float or 'auto'."
            )
        _tolerance_override = None
        return
    value = float(value)
    if not value > 0:
        raise ValueError(f"Tolerance must be strictly positive, got {value!r}")
    _tolerance_override = value


def _resolve_tol(tol: float | None) -> float:
    """Return *tol* when given explicitly, else the configured tolerance."""
    if tol is None:
        return get_tolerance()
    if not tol > 0:
        raise ValueError(f"tol must be strictly positive, got {tol!r}")
    return float(tol)
