"""probe_interactions — Simple slopes and Johnson-Neyman intervals.

Probes interaction effects in already-fitted regression models:
conditional slopes of a focal predictor at chosen moderator values
(two- and three-way interactions), Johnson-Neyman intervals giving the
exact moderator range where the slope is significant, and the
Esarey & Sumner (2017) false-discovery-rate adjusted critical value for
those intervals.  Works from a model's coefficient vector and
covariance matrix alone; statsmodels results are adapted directly.

Public API:
    .. autosummary::
        sim_slopes
        johnson_neyman
        fdr_critical_value
        register_fdr_method
        linear_hypothesis
        slope_weights
        intercept_weights
        select_moderator_values
        build_centering_plan
        detect_terms
        from_statsmodels
        print_simple_slopes_table
        print_johnson_neyman
        get_tolerance
        set_tolerance
        Distribution
        InteractionModel
        ModelSummary
        ModeratorGrid
        TermMap
        Factor
        ConditionalEffect
        JNInterval
        CenteringPlan
        SimpleSlopesResult
        ConfigError
        DataError
        NumericalError
"""

from ._config import get_tolerance, set_tolerance
from ._results import CenteringPlan, ConditionalEffect, JNInterval, SimpleSlopesResult
from .centering import build_centering_plan
from .core import sim_slopes
from .display import print_johnson_neyman, print_simple_slopes_table
from .exceptions import ConfigError, DataError, NumericalError, ProbeError
from .families import Distribution, critical_value, resolve_distribution, two_tailed_p
from .fdr import fdr_critical_value, register_fdr_method
from .hypothesis import intercept_weights, linear_hypothesis, slope_weights
from .johnson_neyman import johnson_neyman, slope_bands, solve_jn_quadratic
from .models import InteractionModel, ModelSummary, from_statsmodels
from .moderators import ModeratorGrid, select_moderator_values
from .terms import Factor, TermMap, detect_terms

__all__ = [
    "sim_slopes",
    "johnson_neyman",
    "solve_jn_quadratic",
    "slope_bands",
    "fdr_critical_value",
    "register_fdr_method",
    "linear_hypothesis",
    "slope_weights",
    "intercept_weights",
    "select_moderator_values",
    "build_centering_plan",
    "detect_terms",
    "from_statsmodels",
    "print_simple_slopes_table",
    "print_johnson_neyman",
    "get_tolerance",
    "set_tolerance",
    "Distribution",
    "critical_value",
    "two_tailed_p",
    "resolve_distribution",
    "InteractionModel",
    "ModelSummary",
    "ModeratorGrid",
    "Factor",
    "TermMap",
    "ConditionalEffect",
    "JNInterval",
    "CenteringPlan",
    "SimpleSlopesResult",
    "ProbeError",
    "ConfigError",
    "DataError",
    "NumericalError",
]

__version__ = "0.1.0"
