"""Intercepts of a discordia line with the concordia curve.

Wetherill space (x = 207Pb/235U, y = 206Pb/238U)::

    h(t) = a + b (e^{λ235 t} − 1) − (e^{λ238 t} − 1)

Tera-Wasserburg space (x = 238U/206Pb, y = 207Pb/206Pb), after multiplying
the curve equation through by ``e^{λ238 t} − 1``::

    H(t) = (e^{λ235 t} − 1) / U − a (e^{λ238 t} − 1) − b

Both functions have at most one stationary point, so every intercept is
bracketed on one side of it and located with Brent's method.
"""

from __future__ import annotations

import logging
import math
import warnings
from typing import Callable, List, Optional, Tuple

import numpy as np
from scipy.optimize import brentq

from ..constants import (
    AGE_FLOOR,
    DEFAULT_DECAY_CONSTANTS,
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_REL_STEP,
    MAX_AGE,
    MIN_INTERCEPT_AGE,
    DecayConstants,
)
from ..errors import InvalidInputError, NonConvergenceWarning
from ..results import AgeEstimate, RegressionFit
from ..stats.propagation import propagate_numerically

logger = logging.getLogger(__name__)


def _bracketed_roots(
    func: Callable[[float], float],
    lo: float,
    hi: float,
    turning_point: Optional[float],
    max_iter: int,
) -> Tuple[List[float], bool]:
    edges = [lo, hi]
    if turning_point is not None and lo < turning_point < hi:
        edges = [lo, turning_point, hi]
    roots: List[float] = []
    converged = True
    for p, q in zip(edges[:-1], edges[1:]):
        fp, fq = func(p), func(q)
        if fp * fq > 0:
            continue
        if fp == 0:
            root = p
        elif fq == 0:
            root = q
        else:
            root, info = brentq(
                func, p, q, xtol=1e-13, maxiter=max_iter, full_output=True, disp=False
            )
            converged = converged and bool(info.converged)
        if not any(math.isclose(root, r, rel_tol=1e-12, abs_tol=1e-12) for r in roots):
            roots.append(float(root))
    return roots, converged


def wetherill_intercepts(
    a: float,
    b: float,
    l235: float,
    l238: float,
    max_iter: int = DEFAULT_MAX_ITERATIONS,
) -> Tuple[List[float], bool]:
    """Ages (ascending) where ``y = a + b x`` crosses Wetherill concordia."""

    def h(t: float) -> float:
        return a + b * math.expm1(l235 * t) - math.expm1(l238 * t)

    turning = None
    if b > 0:
        turning = math.log(l238 / (b * l235)) / (l235 - l238)
    return _bracketed_roots(h, MIN_INTERCEPT_AGE, MAX_AGE, turning, max_iter)


def tera_wasserburg_intercepts(
    a: float,
    b: float,
    l235: float,
    l238: float,
    u238u235: float,
    max_iter: int = DEFAULT_MAX_ITERATIONS,
) -> Tuple[List[float], bool]:
    """Ages (ascending) where ``y = a + b x`` crosses Tera-Wasserburg concordia."""

    def h(t: float) -> float:
        return math.expm1(l235 * t) / u238u235 - a * math.expm1(l238 * t) - b

    turning = None
    if a > 0:
        turning = math.log(a * l238 * u238u235 / l235) / (l235 - l238)
    return _bracketed_roots(h, AGE_FLOOR, MAX_AGE, turning, max_iter)


def discordia_intercepts(
    fit: RegressionFit,
    wetherill: bool = True,
    dcu: bool = True,
    constants: DecayConstants = DEFAULT_DECAY_CONSTANTS,
    max_iter: int = DEFAULT_MAX_ITERATIONS,
    rel_step: float = DEFAULT_REL_STEP,
) -> AgeEstimate:
    """Concordia intercepts of a fitted discordia line.

    Returns:
        AgeEstimate: In Wetherill space the lower and upper intercept ages
        (a single age if only one intercept lies in the search range). In
        Tera-Wasserburg space the lower intercept age and the common-Pb
        207Pb/206Pb ratio (the line's y-intercept). The covariance is
        propagated from the fit covariance and, if ``dcu``, the decay
        constants.

    Raises:
        InvalidInputError: If the line does not intersect concordia.
    """
    l5, l8 = constants.U235, constants.U238
    u = constants.U238U235
    flags: list = []

    def roots(v: np.ndarray) -> List[float]:
        if wetherill:
            found, ok = wetherill_intercepts(v[0], v[1], v[2], v[3], max_iter)
        else:
            found, ok = tera_wasserburg_intercepts(v[0], v[1], v[2], v[3], u, max_iter)
        flags.append(ok)
        return found

    x = np.array([fit.intercept, fit.slope, l5.value, l8.value])
    found = roots(x)
    if not found:
        raise InvalidInputError("The discordia line does not intersect concordia.")
    count = len(found) if wetherill else 1

    def func(v: np.ndarray) -> np.ndarray:
        ages = roots(v)
        if len(ages) < count:
            raise InvalidInputError(
                "Discordia intercept vanishes within the numerical step; "
                "the line is tangent to concordia."
            )
        if wetherill:
            return np.array(ages[:count])
        return np.array([ages[0], v[0]])

    cov = np.zeros((4, 4))
    cov[:2, :2] = fit.cov
    if dcu:
        cov[2, 2] = l5.variance
        cov[3, 3] = l8.variance
    value, out_cov = propagate_numerically(func, x, cov, rel_step=rel_step)
    converged = all(flags)
    if not converged:
        warnings.warn(
            "Discordia intercept search did not converge.",
            NonConvergenceWarning,
            stacklevel=2,
        )
    logger.debug("Discordia intercepts: %s", value)
    return AgeEstimate.build(value, out_cov, stats=fit.stats, converged=converged)
