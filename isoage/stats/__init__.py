"""
Statistical utilities for age computations.

This subpackage provides the numerical routines every geochronometer shares.
All functions operate on arrays and primitive types; no isotope-specific
logic is included.

Modules:
    propagation:
        First-order (delta-method) propagation of a covariance matrix
        through a function, with closed-form or central-difference
        Jacobians.

    weighted_mean:
        Generalized least-squares mean of correlated vectors.

    regression:
        Ordinary least squares and errors-in-variables line fits
        (weighted least squares, York iteration, maximum likelihood).

    mswd:
        MSWD and chi-square p-values with explicit zero degrees of freedom.

Design Principle:
    This subpackage has no dependencies on geochron/. It provides pure
    numerical utilities that can be independently tested.
"""

from .mswd import fit_statistics, mswd, p_value
from .propagation import (
    as_covariance,
    numerical_jacobian,
    propagate,
    propagate_numerically,
)
from .regression import METHODS, ordinary_least_squares, york
from .weighted_mean import gls_mean

__all__ = [
    "as_covariance",
    "fit_statistics",
    "gls_mean",
    "METHODS",
    "mswd",
    "numerical_jacobian",
    "ordinary_least_squares",
    "p_value",
    "propagate",
    "propagate_numerically",
    "york",
]
