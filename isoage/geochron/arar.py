"""40Ar/39Ar ages and isochrons.

The age equation is ``t = ln(1 + J R) / λ40K`` where ``R`` is the radiogenic
40Ar*/39Ar ratio and ``J`` the irradiation parameter. ``R``, ``J`` and
``λ40K`` enter the propagation as three independent inputs.
"""

from __future__ import annotations

import math

import numpy as np

from ..constants import DEFAULT_DECAY_CONSTANTS, DecayConstants
from ..errors import InvalidInputError
from ..measurements import Ar40Ar39
from ..results import AgeEstimate, IsochronResult
from ..stats.propagation import propagate
from ..stats.regression import york


def _age(v: np.ndarray) -> float:
    ratio, j, lam = v
    return math.log1p(j * ratio) / lam


def _partials(v: np.ndarray) -> np.ndarray:
    ratio, j, lam = v
    denom = lam * (1.0 + j * ratio)
    return np.array([j / denom, ratio / denom, -math.log1p(j * ratio) / lam**2])


def arar_age_from_ratio(
    ratio: float,
    var_ratio: float,
    J: float,
    sJ: float,
    dcu: bool = True,
    constants: DecayConstants = DEFAULT_DECAY_CONSTANTS,
) -> AgeEstimate:
    """Ar-Ar age of a 40Ar*/39Ar ratio with a known variance."""
    if 1.0 + J * ratio <= 0:
        raise InvalidInputError("40Ar*/39Ar ratio gives a non-physical age.")
    lam = constants.K40
    variances = [var_ratio, sJ**2, lam.variance if dcu else 0.0]
    t, var = propagate(_age, _partials, [ratio, J, lam.value], variances)
    return AgeEstimate.build(t, var)


def ar40ar39_age(
    m: Ar40Ar39, dcu: bool = True, constants: DecayConstants = DEFAULT_DECAY_CONSTANTS
) -> AgeEstimate:
    """40Ar/39Ar age (Ma) and its variance."""
    if m.se == 0 and m.sJ == 0:
        t = _age(np.array([m.ratio, m.J, constants.K40.value]))
        return AgeEstimate.build(t, 0.0)
    return arar_age_from_ratio(m.ratio, m.se**2, m.J, m.sJ, dcu, constants)


def arar_isochron(
    Ar39Ar36,
    s39_36,
    Ar40Ar36,
    s40_36,
    rho=None,
    J: float = 1.0,
    sJ: float = 0.0,
    dcu: bool = True,
    method: str = "york",
    constants: DecayConstants = DEFAULT_DECAY_CONSTANTS,
) -> IsochronResult:
    """Normal isochron through 39Ar/36Ar vs 40Ar/36Ar.

    The intercept is the initial 40Ar/36Ar ratio and the slope the
    radiogenic 40Ar*/39Ar ratio, which is converted into an age with ``J``.

    Returns:
        IsochronResult: The line fit, the initial ratio ``y0`` and the age.
    """
    if not J > 0 or sJ < 0:
        raise InvalidInputError("J must be positive with a non-negative error.")
    fit = york(Ar39Ar36, Ar40Ar36, s39_36, s40_36, rho=rho, method=method)
    y0 = AgeEstimate.build(fit.intercept, fit.cov[0, 0], converged=fit.converged)
    age = arar_age_from_ratio(fit.slope, fit.cov[1, 1], J, sJ, dcu, constants)
    age = AgeEstimate.build(
        age.value, age.cov, stats=fit.stats, converged=fit.converged
    )
    return IsochronResult(fit=fit, y0=y0, age=age)
