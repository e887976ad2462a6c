"""
Example 2: Interaction in Logistic Regression (Binary Outcome)
Spector & Mazzeo (1980) grade data (``statsmodels.datasets.spector``)

Demonstrates:
- Probing a GLM: statistics follow the standard normal (z) reference
  distribution, read from the results' ``use_t`` flag
- Slopes on the log-odds scale across a continuous moderator
- ``modx_values="terciles"`` and explicit moderator values
- A categorical moderator (``PSI``) probed at each level, with the
  Johnson-Neyman step skipped

Dataset
-------
32 students.  ``GRADE`` is 1 if the student's grade improved.  ``GPA``
is the entering grade point average, ``TUCE`` a pre-test score, and
``PSI`` whether the student was taught with the personalised system of
instruction.
"""

import warnings

import statsmodels.api as sm
import statsmodels.formula.api as smf

from probe_interactions import print_simple_slopes_table, sim_slopes

# ============================================================================
# Load data
# ============================================================================

spector = sm.datasets.spector.load_pandas().data
spector["PSI_group"] = spector["PSI"].map({0.0: "traditional", 1.0: "PSI"})

# ============================================================================
# Continuous moderator: GPA by TUCE
# ============================================================================

logit_fit = smf.glm(
    "GRADE ~ GPA * TUCE + PSI", data=spector, family=sm.families.Binomial()
).fit()

with warnings.catch_warnings(record=True) as caught:
    warnings.simplefilter("always")
    result = sim_slopes(logit_fit, "GPA", "TUCE", modx_values="terciles")
for w in caught:
    print(f"Warning: {w.message}")
print_simple_slopes_table(result, title="Slopes of GPA (log-odds) by TUCE terciles")

explicit = sim_slopes(logit_fit, "GPA", "TUCE", modx_values=[15, 20, 25], johnson_neyman=False)
print(explicit.to_frame())

# ============================================================================
# Categorical moderator: GPA by teaching method
# ============================================================================

factor_fit = smf.glm(
    "GRADE ~ GPA * C(PSI_group) + TUCE", data=spector, family=sm.families.Binomial()
).fit()
by_group = sim_slopes(factor_fit, "GPA", "PSI_group")
print_simple_slopes_table(by_group, title="Slopes of GPA (log-odds) by teaching method")
