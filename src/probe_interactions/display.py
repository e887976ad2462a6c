"""Formatted ASCII table display for simple slopes and Johnson-Neyman output.

The layout mirrors the statsmodels summary style used across the
package: an 80-column frame, a header panel describing the analysis,
and a body with one row per conditional effect.  Johnson-Neyman
intervals are printed as a sentence ("When M is OUTSIDE the interval
[a, b], the slope of X is p < .05") followed by the observed range, so
that boundaries far outside the data are easy to spot.
"""

from __future__ import annotations

import math
import textwrap
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ._results import ConditionalEffect, JNInterval, SimpleSlopesResult

_WIDTH = 80


def _truncate(name: str, max_len: int) -> str:
    """Truncate *name* to *max_len*, appending ``'...'`` if needed."""
    if len(name) <= max_len:
        return name
    return name[: max_len - 3] + "..."


def _wrap(text: str, width: int = _WIDTH, indent: int = 2) -> str:
    """Word-wrap *text*, indenting only the continuation lines."""
    return textwrap.fill(text, width=width, initial_indent="", subsequent_indent=" " * indent)


def _fmt_p(p: float) -> str:
    if math.isnan(p):
        return "N/A"
    if p < 0.0001:
        return f"{p:.2e}"
    return f"{p:.4f}"


def _stars(p: float) -> str:
    if math.isnan(p):
        return ""
    if p < 0.001:
        return "***"
    if p < 0.01:
        return "**"
    if p < 0.05:
        return "*"
    return ""


def _fmt_bound(value: float, digits: int) -> str:
    if math.isinf(value):
        return "-Inf" if value < 0 else "Inf"
    return f"{value:.{digits}f}"


def _jn_sentence(jn: JNInterval, pred: str | None, digits: int) -> str:
    """One-sentence description of where the slope is significant."""
    subject = f"the slope of {pred}" if pred else "the slope"
    p_text = f"p < {jn.alpha:g}"
    region = jn.significant_region
    if region == "always":
        return (
            f"The Johnson-Neyman interval could not be found: {subject} "
            f"is {p_text} for all values of {jn.modx}."
        )
    if region == "never":
        return (
            f"The Johnson-Neyman interval could not be found: {subject} "
            f"is never {p_text}."
        )
    if region in ("above", "below"):
        side = "ABOVE" if region == "above" else "BELOW"
        bound = _fmt_bound(jn.bounds[0], digits)
        return f"When {jn.modx} is {side} {bound}, {subject} is {p_text}."
    lo, hi = jn.bounds
    word = "INSIDE" if region == "inside" else "OUTSIDE"
    return (
        f"When {jn.modx} is {word} the interval "
        f"[{_fmt_bound(lo, digits)}, {_fmt_bound(hi, digits)}], {subject} is {p_text}."
    )


def print_johnson_neyman(
    jn: JNInterval,
    *,
    pred: str | None = None,
    digits: int = 2,
) -> None:
    """Print one Johnson-Neyman interval with its observed-range note.

    Args:
        jn: Interval returned by :func:`~probe_interactions.johnson_neyman`.
        pred: Focal predictor name used in the sentence.
        digits: Decimal places for the bounds and the observed range.
    """
    title = "JOHNSON-NEYMAN INTERVAL"
    if jn.mod2 is not None:
        title += f" ({jn.mod2} = {jn.mod2_label})"
    print(title)
    print()
    print(_wrap(_jn_sentence(jn, pred, digits)))
    if jn.observed_range is not None:
        lo, hi = jn.observed_range
        print()
        print(
            _wrap(
                f"Note: The range of observed values of {jn.modx} is "
                f"[{lo:.{digits}f}, {hi:.{digits}f}]"
            )
        )
    if jn.fdr_corrected:
        print(
            _wrap(
                f"Interval calculated using false discovery rate adjusted "
                f"critical value {jn.critical_value:.2f}"
            )
        )


def _effect_rows(
    effects: tuple[ConditionalEffect, ...],
    modx: str,
    stat_label: str,
    ci_pct: str,
) -> list[str]:
    lines = [
        f"{_truncate('Value of ' + modx, 20):<21}{'Est.':>9}{'S.E.':>9}"
        f"{ci_pct + ' lo':>10}{ci_pct + ' hi':>10}{stat_label + ' val.':>9}{'p':>11}",
        "-" * _WIDTH,
    ]
    for e in effects:
        label = e.modx_label if e.modx_label is not None else str(e.modx_value)
        if isinstance(e.modx_value, float) and e.modx_label not in (None, str(e.modx_value)):
            label = f"{e.modx_value:.2f} ({e.modx_label})"
        lines.append(
            f"{_truncate(label, 21):<21}{e.estimate:>9.2f}{e.std_error:>9.2f}"
            f"{e.ci_lower:>10.2f}{e.ci_upper:>10.2f}{e.statistic:>9.2f}"
            f"{_fmt_p(e.p_value):>8} {_stars(e.p_value):<3}"
        )
    return lines


def print_simple_slopes_table(
    result: SimpleSlopesResult,
    *,
    title: str = "Simple Slopes Analysis",
    digits: int = 2,
) -> None:
    """Print a :class:`~probe_interactions.SimpleSlopesResult`.

    One block per second-moderator value (one block for two-way
    analyses), each with its Johnson-Neyman interval, slope table and,
    when computed, conditional-intercept table.

    Args:
        result: Output of :func:`~probe_interactions.sim_slopes`.
        title: Title for the output table.
        digits: Decimal places for the Johnson-Neyman bounds and the
            observed range.  Table cells keep two decimals so the
            columns stay aligned within 80 characters.
    """
    print("=" * _WIDTH)
    for line in textwrap.wrap(title, width=_WIDTH - 2):
        print(f"{line:^{_WIDTH}}")
    print("=" * _WIDTH)

    col1, col2 = 40, 38
    print(
        f"{'Focal predictor:':<18}{_truncate(result.pred, col1 - 18):<{col1 - 18}}"
        f"{'Distribution:':>{col2 - 14}} {str(result.distribution):>13}"
    )
    print(
        f"{'Moderator:':<18}{_truncate(result.modx, col1 - 18):<{col1 - 18}}"
        f"{'Centering:':>{col2 - 14}} {result.centering.policy:>13}"
    )
    if result.mod2 is not None:
        print(
            f"{'Second moderator:':<18}"
            f"{_truncate(result.mod2, col1 - 18):<{col1 - 18}}"
        )

    stat_label = result.distribution.stat_label
    ci_pct = f"{result.confidence_level * 100:g}%"
    keys = list(dict.fromkeys((e.mod2_value, e.mod2_label) for e in result.slopes))
    jn_by_value = {(j.mod2_value, j.mod2_label): j for j in result.jn}

    for key in keys:
        print("-" * _WIDTH)
        if result.mod2 is not None:
            print(f"While {result.mod2} (2nd moderator) = {key[1]}")
            print()
        jn = jn_by_value.get(key)
        if jn is not None:
            print_johnson_neyman(jn, pred=result.pred, digits=digits)
            print("-" * _WIDTH)
        print(f"SIMPLE SLOPES OF {result.pred}" + (" (per SD)" if result.scaled else ""))
        for line in _effect_rows(
            tuple(e for e in result.slopes if (e.mod2_value, e.mod2_label) == key),
            result.modx,
            stat_label,
            ci_pct,
        ):
            print(line)
        if result.intercepts:
            print()
            print("CONDITIONAL INTERCEPTS")
            for line in _effect_rows(
                tuple(e for e in result.intercepts if (e.mod2_value, e.mod2_label) == key),
                result.modx,
                stat_label,
                ci_pct,
            ):
                print(line)

    print("=" * _WIDTH)
    print(_wrap(result.centering.held_constant_note()))
    print("(***) p < 0.001   (**) p < 0.01   (*) p < 0.05")


__all__ = ["print_simple_slopes_table", "print_johnson_neyman"]
