"""U-Pb single-analysis ages and the concordia curve.

Decay laws (t in Ma, λ in Ma⁻¹, U = present-day 238U/235U)::

    206Pb/238U = exp(λ238 t) − 1
    207Pb/235U = exp(λ235 t) − 1
    207Pb/206Pb = (exp(λ235 t) − 1) / (U (exp(λ238 t) − 1))

The first two invert in closed form. The 207Pb/206Pb age is found with Brent's
method; its partial derivatives follow from the implicit function theorem.
"""

from __future__ import annotations

import logging
import math
import warnings
from typing import Tuple

import numpy as np
from scipy.optimize import brentq

from ..constants import (
    AGE_FLOOR,
    DEFAULT_DECAY_CONSTANTS,
    DEFAULT_MAX_ITERATIONS,
    MAX_AGE,
    DecayConstant,
    DecayConstants,
)
from ..errors import InvalidInputError, NonConvergenceWarning
from ..measurements import Pb206U238, Pb207Pb206, Pb207U235
from ..results import AgeEstimate
from ..stats.propagation import propagate

logger = logging.getLogger(__name__)


def _parent_daughter_age(
    ratio: float, se: float, lam: DecayConstant, dcu: bool
) -> AgeEstimate:
    t = math.log1p(ratio) / lam.value
    if se == 0:
        return AgeEstimate.build(t, 0.0)

    def func(v: np.ndarray) -> float:
        return math.log1p(v[0]) / v[1]

    def jacobian(v: np.ndarray) -> np.ndarray:
        return np.array([1.0 / (v[1] * (1.0 + v[0])), -math.log1p(v[0]) / v[1] ** 2])

    var_lam = lam.variance if dcu else 0.0
    t, var = propagate(func, jacobian, [ratio, lam.value], [se**2, var_lam])
    return AgeEstimate.build(t, var)


def pb206u238_age(
    m: Pb206U238, dcu: bool = True, constants: DecayConstants = DEFAULT_DECAY_CONSTANTS
) -> AgeEstimate:
    """206Pb/238U age (Ma) and its variance."""
    return _parent_daughter_age(m.ratio, m.se, constants.U238, dcu)


def pb207u235_age(
    m: Pb207U235, dcu: bool = True, constants: DecayConstants = DEFAULT_DECAY_CONSTANTS
) -> AgeEstimate:
    """207Pb/235U age (Ma) and its variance."""
    return _parent_daughter_age(m.ratio, m.se, constants.U235, dcu)


def pb76_ratio(t: float, l235: float, l238: float, u238u235: float) -> float:
    """Radiogenic 207Pb/206Pb ratio at age ``t``."""
    return math.expm1(l235 * t) / (u238u235 * math.expm1(l238 * t))


def pb76_partials(
    t: float, l235: float, l238: float, u238u235: float
) -> Tuple[float, float, float]:
    """Derivatives of the 207Pb/206Pb ratio with respect to t, λ235 and λ238."""
    e5 = math.expm1(l235 * t)
    e8 = math.expm1(l238 * t)
    dfdt = (l235 * (e5 + 1.0) * e8 - l238 * (e8 + 1.0) * e5) / (u238u235 * e8**2)
    dfdl5 = t * (e5 + 1.0) / (u238u235 * e8)
    dfdl8 = -t * (e8 + 1.0) * e5 / (u238u235 * e8**2)
    return dfdt, dfdl5, dfdl8


def solve_pb76_age(
    ratio: float,
    l235: float,
    l238: float,
    u238u235: float,
    max_iter: int = DEFAULT_MAX_ITERATIONS,
) -> Tuple[float, bool]:
    """Invert the 207Pb/206Pb decay law on ``t >= 0``.

    A ratio below the zero-age radiogenic ratio (analytical scatter of a
    young analysis) gives the boundary age 0.

    Returns:
        tuple: ``(age, converged)``.

    Raises:
        InvalidInputError: If ``ratio`` is older than ``MAX_AGE``.
    """
    lo = pb76_ratio(AGE_FLOOR, l235, l238, u238u235)
    hi = pb76_ratio(MAX_AGE, l235, l238, u238u235)
    if ratio < lo:
        logger.debug("207Pb/206Pb ratio %.6g below the zero-age ratio; age 0", ratio)
        return 0.0, True
    if ratio > hi:
        raise InvalidInputError(
            f"207Pb/206Pb ratio {ratio!r} exceeds the ratio at {MAX_AGE:g} Ma "
            f"({hi:.6g})."
        )
    t, info = brentq(
        lambda tt: pb76_ratio(tt, l235, l238, u238u235) - ratio,
        AGE_FLOOR,
        MAX_AGE,
        xtol=1e-12,
        maxiter=max_iter,
        full_output=True,
        disp=False,
    )
    logger.debug("207Pb/206Pb age %.6f Ma after %d iterations", t, info.iterations)
    return float(t), bool(info.converged)


def pb207pb206_age(
    m: Pb207Pb206,
    dcu: bool = True,
    constants: DecayConstants = DEFAULT_DECAY_CONSTANTS,
    max_iter: int = DEFAULT_MAX_ITERATIONS,
) -> AgeEstimate:
    """207Pb/206Pb age (Ma) and its variance."""
    u = constants.U238U235
    l5, l8 = constants.U235, constants.U238
    t, converged = solve_pb76_age(m.ratio, l5.value, l8.value, u, max_iter)
    if not converged:
        warnings.warn(
            f"207Pb/206Pb age did not converge within {max_iter} iterations.",
            NonConvergenceWarning,
            stacklevel=2,
        )
    if m.se == 0:
        return AgeEstimate.build(t, 0.0, converged=converged)

    # The zero-age limit of the decay law is 0/0; take the slope at AGE_FLOOR.
    t_slope = max(t, AGE_FLOOR)

    def jacobian(v: np.ndarray) -> np.ndarray:
        dfdt, dfdl5, dfdl8 = pb76_partials(t_slope, v[1], v[2], u)
        return np.array([1.0 / dfdt, -dfdl5 / dfdt, -dfdl8 / dfdt])

    variances = [m.se**2, l5.variance if dcu else 0.0, l8.variance if dcu else 0.0]
    _, var = propagate(lambda v: t, jacobian, [m.ratio, l5.value, l8.value], variances)
    return AgeEstimate.build(t, var, converged=converged)


def wetherill_curve(
    t: float, l235: float, l238: float
) -> Tuple[np.ndarray, np.ndarray]:
    """Concordia point (207Pb/235U, 206Pb/238U) at ``t`` and its t-derivative."""
    point = np.array([math.expm1(l235 * t), math.expm1(l238 * t)])
    slope = np.array([l235 * math.exp(l235 * t), l238 * math.exp(l238 * t)])
    return point, slope


def tera_wasserburg_curve(
    t: float, l235: float, l238: float, u238u235: float
) -> Tuple[np.ndarray, np.ndarray]:
    """Concordia point (238U/206Pb, 207Pb/206Pb) at ``t`` and its t-derivative."""
    e8 = math.expm1(l238 * t)
    point = np.array([1.0 / e8, pb76_ratio(t, l235, l238, u238u235)])
    slope = np.array(
        [-l238 * (e8 + 1.0) / e8**2, pb76_partials(t, l235, l238, u238u235)[0]]
    )
    return point, slope


def concordia_curve(
    t: float, l235: float, l238: float, u238u235: float, wetherill: bool = True
) -> Tuple[np.ndarray, np.ndarray]:
    if wetherill:
        return wetherill_curve(t, l235, l238)
    return tera_wasserburg_curve(t, l235, l238, u238u235)
