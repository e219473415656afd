"""MSWD and chi-square p-values shared by all aggregation routines.

Zero degrees of freedom is handled explicitly: the MSWD is undefined (NaN)
and the p-value is 1 by convention.
"""

from __future__ import annotations

import math

import numpy as np
from scipy.stats import chi2 as chi2_dist

from ..errors import InvalidInputError
from ..results import FitStatistics


def _check_dof(dof: int) -> int:
    if int(dof) != dof or dof < 0:
        raise InvalidInputError(
            f"Degrees of freedom must be a non-negative integer, got {dof!r}"
        )
    return int(dof)


def mswd(residuals, dof: int) -> float:
    """Mean of the squared weighted deviates.

    Args:
        residuals (numpy.ndarray): Standardized (weighted) residuals.
        dof (int): Degrees of freedom.

    Returns:
        float: ``sum(residuals**2) / dof``, or NaN when ``dof == 0``.
    """
    dof = _check_dof(dof)
    if dof == 0:
        return math.nan
    r = np.asarray(residuals, dtype=float).reshape(-1)
    return float(np.sum(r**2)) / dof


def p_value(mswd_value: float, dof: int) -> float:
    """Upper-tail chi-square probability of ``mswd_value * dof``."""
    dof = _check_dof(dof)
    if dof == 0:
        return 1.0
    if math.isnan(mswd_value) or mswd_value < 0:
        raise InvalidInputError(f"MSWD must be non-negative, got {mswd_value!r}")
    if math.isinf(mswd_value):
        return 0.0
    return float(min(max(chi2_dist.sf(mswd_value * dof, dof), 0.0), 1.0))


def fit_statistics(chi2: float, dof: int) -> FitStatistics:
    """Bundle a chi-square value with its MSWD and p-value."""
    dof = _check_dof(dof)
    chi2 = float(chi2)
    if chi2 < 0:
        raise InvalidInputError(f"Chi-square must be non-negative, got {chi2!r}")
    if dof == 0:
        return FitStatistics(chi2=chi2, dof=0, mswd=math.nan, p_value=1.0)
    value = chi2 / dof
    return FitStatistics(chi2=chi2, dof=dof, mswd=value, p_value=p_value(value, dof))
