"""Coefficient-name parsing and interaction-term detection.

A fitted model only exposes its coefficients by name.  To build the
linear combination "slope of X when M = v" the engine must know which
names are the focal main effect, which are interaction products, and
which involve factor dummies.  This module recovers that structure
from patsy-style names, the convention used by
``statsmodels.formula.api``:

======================  ====================================
Coefficient name        Parsed factors
======================  ====================================
``Intercept``           (intercept)
``x``                   ``(x, None)``
``x:m``                 ``(x, None), (m, None)``
``x:m:w``               ``(x, None), (m, None), (w, None)``
``C(g)[T.b]``           ``(g, "b")``
``x:g[T.b]``            ``(x, None), (g, "b")``
``Q("HS Grad")``        ``(HS Grad, None)``
======================  ====================================

A term is treated as the product of its factors; a factor with a level
is a 0/1 dummy for that level.  Only treatment (dummy) coding is
understood; models whose columns are not named this way (array-API
fits with a hand-built ``x_by_m`` column, say) pass the structure
explicitly through ``explicit_terms``.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, NamedTuple

from .exceptions import ConfigError

logger = logging.getLogger(__name__)

_INTERCEPT_NAMES = frozenset({"Intercept", "const", "(Intercept)"})

# ``C(var, ...)`` wrapper produced by patsy for categorical coding.
_C_WRAPPER = re.compile(r"^C\((?P<inner>.*)\)$", re.DOTALL)
# ``Q("name")`` / ``Q('name')`` quoting wrapper.
_Q_WRAPPER = re.compile(r"""^Q\(\s*(['"])(?P<name>.*)\1\s*\)$""", re.DOTALL)
# Level prefixes of patsy's Sum, Diff and Helmert codings, and Poly's
# ``.Linear``-style labels.  Their columns are not 0/1 dummies.
_CONTRAST_LEVEL = re.compile(r"^(?:[SDH]\.|\.)")


class Factor(NamedTuple):
    """One multiplicand of a coefficient term.

    ``level`` is ``None`` for a numeric variable and the category label
    for a factor dummy.
    """

    variable: str
    level: str | None = None


# ------------------------------------------------------------------ #
# Parsing
# ------------------------------------------------------------------ #


def _split_top_level(text: str, sep: str) -> list[str]:
    """Split *text* on *sep* outside of (), [] and quotes."""
    parts: list[str] = []
    depth = 0
    quote: str | None = None
    start = 0
    for i, ch in enumerate(text):
        if quote is not None:
            if ch == quote:
                quote = None
            continue
        if ch in ("'", '"'):
            quote = ch
        elif ch in "([":
            depth += 1
        elif ch in ")]":
            depth -= 1
        elif ch == sep and depth == 0:
            parts.append(text[start:i])
            start = i + 1
    parts.append(text[start:])
    return [p.strip() for p in parts]


def _clean_variable(name: str) -> str:
    """Strip patsy's ``C(...)`` and ``Q("...")`` wrappers from *name*."""
    name = name.strip()
    m = _C_WRAPPER.match(name)
    if m:
        # First positional argument is the variable; the rest is coding.
        name = _split_top_level(m.group("inner"), ",")[0]
    m = _Q_WRAPPER.match(name)
    if m:
        name = m.group("name")
    return name


def _parse_factor(text: str) -> Factor:
    # A trailing ``[...]`` at depth zero is the level designator.
    if text.endswith("]"):
        depth = 0
        for i in range(len(text) - 1, -1, -1):
            if text[i] == "]":
                depth += 1
            elif text[i] == "[":
                depth -= 1
                if depth == 0:
                    variable, level = text[:i], text[i + 1 : -1]
                    if level.startswith("T."):
                        level = level[2:]
                    elif _CONTRAST_LEVEL.match(level):
                        raise ConfigError(
                            f"Coefficient {text!r} uses a non-treatment contrast "
                            f"coding; refit with treatment coding (the default "
                            f"C(...)) or pass explicit_terms."
                        )
                    return Factor(_clean_variable(variable), level)
    return Factor(_clean_variable(text))


def parse_term(name: str) -> tuple[Factor, ...]:
    """Parse a coefficient name into its factors.

    Returns an empty tuple for the intercept.

    Raises:
        ConfigError: If a dummy uses Sum, Diff, Helmert or Poly coding.

    Examples:
        >>> parse_term("x:C(g)[T.b]")
        (Factor(variable='x', level=None), Factor(variable='g', level='b'))
    """
    if name in _INTERCEPT_NAMES:
        return ()
    return tuple(_parse_factor(part) for part in _split_top_level(name, ":"))


def term_value(
    factors: Iterable[Factor],
    point: Mapping[str, Any],
    offsets: Mapping[str, float] | None = None,
) -> float:
    """Value of the product term *factors* at *point*.

    Numeric variables take their value from *point*, falling back to
    *offsets* (the centering value, ``0`` when absent).  Factor dummies
    are ``1`` when *point* assigns the matching level and ``0``
    otherwise, including when the variable is absent from *point*
    (held at its reference level).
    """
    offsets = offsets or {}
    value = 1.0
    for f in factors:
        if f.level is None:
            if f.variable in point:
                value *= float(point[f.variable])
            else:
                value *= float(offsets.get(f.variable, 0.0))
        else:
            if f.variable not in point or str(point[f.variable]) != f.level:
                return 0.0
    return value


# ------------------------------------------------------------------ #
# Detection
# ------------------------------------------------------------------ #


@dataclass(frozen=True)
class TermMap:
    """Structure of a fitted model's coefficient names.

    Attributes:
        pred: Focal predictor (always numeric).
        modx: Primary moderator.
        mod2: Second moderator, or ``None`` for two-way analyses.
        intercept: Name of the intercept coefficient, or ``None``.
        terms: Coefficient name → parsed factors, in model order.
        factor_levels: Variable → dummy levels seen in coefficient
            names (non-reference levels only).
    """

    pred: str
    modx: str
    mod2: str | None
    intercept: str | None
    terms: dict[str, tuple[Factor, ...]]
    factor_levels: dict[str, tuple[str, ...]] = field(default_factory=dict)

    @property
    def variables(self) -> tuple[str, ...]:
        """Every variable appearing in some coefficient, in model order."""
        seen: dict[str, None] = {}
        for factors in self.terms.values():
            for f in factors:
                seen.setdefault(f.variable, None)
        return tuple(seen)

    def is_factor(self, variable: str) -> bool:
        """``True`` when *variable* enters the model through dummies."""
        return variable in self.factor_levels

    def numeric_variables(self) -> tuple[str, ...]:
        """Variables entering the model as numeric columns."""
        return tuple(v for v in self.variables if not self.is_factor(v))

    def focal_terms(self) -> list[str]:
        """Coefficient names whose term contains the focal predictor."""
        return [
            name
            for name, factors in self.terms.items()
            if any(f.variable == self.pred for f in factors)
        ]

    def interaction_terms(self) -> list[str]:
        """Focal-predictor terms that involve at least one moderator."""
        mods = {self.modx} | ({self.mod2} if self.mod2 else set())
        return [
            name
            for name in self.focal_terms()
            if any(f.variable in mods for f in self.terms[name])
        ]


TermSpec = Mapping[str, Iterable["str | Factor"]]
"""Coefficient name → the variables (or :class:`Factor` dummies) it multiplies."""


def normalize_terms(spec: TermSpec, names: Iterable[str]) -> dict[str, tuple[Factor, ...]]:
    """Validate an explicit term mapping against the coefficient *names*.

    Plain strings become numeric factors; an empty entry marks the
    intercept.

    Raises:
        ConfigError: If a key is not a coefficient name or an entry is
            neither a string nor a :class:`Factor`.
    """
    known = set(names)
    out: dict[str, tuple[Factor, ...]] = {}
    for name, entries in spec.items():
        if name not in known:
            raise ConfigError(
                f"Explicit term {name!r} is not a model coefficient."
            )
        if isinstance(entries, (str, Factor)):
            entries = (entries,)
        factors = []
        for entry in entries:
            if isinstance(entry, Factor):
                factors.append(entry)
            elif isinstance(entry, str):
                factors.append(Factor(entry))
            else:
                raise ConfigError(
                    f"Term {name!r}: expected variable names or Factor "
                    f"instances, got {type(entry).__name__}."
                )
        out[name] = tuple(factors)
    return out


def _has_term(
    terms: Mapping[str, tuple[Factor, ...]],
    variables: set[str],
) -> bool:
    """True if some coefficient's variable set is exactly *variables*."""
    return any({f.variable for f in factors} == variables for factors in terms.values())


def detect_terms(
    names: Iterable[str],
    pred: str,
    modx: str,
    mod2: str | None = None,
    intercept_name: str | None = None,
    explicit_terms: TermSpec | None = None,
) -> TermMap:
    """Build a :class:`TermMap` and check the required interactions exist.

    Args:
        names: Coefficient names in model order.
        pred: Focal predictor.
        modx: Primary moderator.
        mod2: Optional second moderator.
        intercept_name: Explicit intercept coefficient name.  When
            ``None``, ``"Intercept"``, ``"const"`` and ``"(Intercept)"``
            are recognised.
        explicit_terms: Coefficient name → variables it multiplies,
            e.g. ``{"x_by_m": ("x", "m")}``.  Listed names skip name
            parsing; the rest are parsed as usual.

    Raises:
        ConfigError: If a variable is unknown, the focal predictor is a
            factor, the variables are not distinct, or the
            ``pred × modx`` (and, for three-way analyses, ``pred × mod2``
            and ``pred × modx × mod2``) interaction is missing.
    """
    names = list(names)
    involved = [v for v in (pred, modx, mod2) if v is not None]
    if len(set(involved)) != len(involved):
        raise ConfigError(
            f"pred, modx and mod2 must be distinct variables, got {involved}"
        )
    explicit = normalize_terms(explicit_terms, names) if explicit_terms else {}

    intercept: str | None = None
    terms: dict[str, tuple[Factor, ...]] = {}
    levels: dict[str, list[str]] = {}
    for name in names:
        if name in explicit:
            factors = explicit[name]
            if not factors:
                intercept = name
        elif name == intercept_name or (intercept_name is None and name in _INTERCEPT_NAMES):
            intercept = name
            terms[name] = ()
            continue
        else:
            factors = parse_term(name)
        terms[name] = factors
        for f in factors:
            if f.level is not None:
                bucket = levels.setdefault(f.variable, [])
                if f.level not in bucket:
                    bucket.append(f.level)

    known = {f.variable for factors in terms.values() for f in factors}
    for role, var in (("pred", pred), ("modx", modx), ("mod2", mod2)):
        if var is not None and var not in known:
            raise ConfigError(
                f"{role}={var!r} does not appear in any model coefficient. "
                f"Model variables: {', '.join(sorted(known))}."
            )
    if pred in levels:
        raise ConfigError(
            f"Focal predictor {pred!r} is categorical; conditional slopes "
            f"require a numeric focal predictor."
        )

    required = [{pred, modx}]
    if mod2 is not None:
        required += [{pred, mod2}, {pred, modx, mod2}]
    for combo in required:
        if not _has_term(terms, combo):
            label = " x ".join(v for v in (pred, modx, mod2) if v in combo)
            raise ConfigError(
                f"The model has no {label} interaction term; cannot probe "
                f"the effect of {pred!r} across {modx!r}."
            )

    term_map = TermMap(
        pred=pred,
        modx=modx,
        mod2=mod2,
        intercept=intercept,
        terms=terms,
        factor_levels={k: tuple(v) for k, v in levels.items()},
    )
    logger.debug(
        "Detected %d focal terms for %r: %s",
        len(term_map.focal_terms()),
        pred,
        term_map.focal_terms(),
    )
    return term_map


__all__ = [
    "Factor",
    "TermMap",
    "TermSpec",
    "parse_term",
    "term_value",
    "normalize_terms",
    "detect_terms",
]
