"""Weighted mean U-Pb compositions and concordia ages.

The concordia age of a composition ``x`` with covariance ``Σ`` minimizes::

    S(t) = (x − c(t))ᵀ Σ⁻¹ (x − c(t))

where ``c(t)`` is the Wetherill or Tera-Wasserburg concordia curve. The
minimum is found as a root of ``dS/dt`` bracketed on a log-spaced age grid.
``S`` at the minimum is the chi-square of concordance (one degree of
freedom).
"""

from __future__ import annotations

import logging
import math
import warnings
from typing import Sequence, Tuple

import numpy as np
from scipy.optimize import brentq

from ..constants import (
    DEFAULT_DECAY_CONSTANTS,
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_REL_STEP,
    MAX_AGE,
    DecayConstants,
)
from ..errors import InvalidInputError, NonConvergenceWarning, SingularSystemError
from ..measurements import UPbAnalysis
from ..results import AgeEstimate, FitStatistics, WeightedMeanResult
from ..stats.mswd import fit_statistics
from ..stats.propagation import propagate_numerically
from ..stats.weighted_mean import gls_mean
from .upb import concordia_curve

logger = logging.getLogger(__name__)

_GRID = np.geomspace(1e-3, MAX_AGE, 300)
_CONCORDANT = 1e-16


def _metric(x: np.ndarray, cov: np.ndarray) -> Tuple[np.ndarray, bool]:
    """Inverse covariance, or a relative metric for exact compositions."""
    if np.all(cov == 0):
        return np.diag(1.0 / x**2), True
    try:
        return np.linalg.inv(cov), False
    except np.linalg.LinAlgError as exc:
        raise SingularSystemError("Composition covariance is singular.") from exc


def _fit_age(
    x: np.ndarray,
    omega: np.ndarray,
    l235: float,
    l238: float,
    u238u235: float,
    wetherill: bool,
    max_iter: int,
) -> Tuple[float, bool]:
    def misfit(t: float) -> float:
        point, _ = concordia_curve(t, l235, l238, u238u235, wetherill)
        r = x - point
        return float(r @ omega @ r)

    def descent(t: float) -> float:
        point, slope = concordia_curve(t, l235, l238, u238u235, wetherill)
        return float(slope @ omega @ (x - point))

    g = np.array([descent(t) for t in _GRID])
    # S(t) has a local minimum where dS/dt = -2 g changes sign from - to +.
    brackets = np.nonzero((g[:-1] > 0) & (g[1:] <= 0))[0]
    if brackets.size == 0:
        s = np.array([misfit(t) for t in _GRID])
        best = float(_GRID[int(np.argmin(s))])
        logger.debug("No concordia minimum bracketed; best grid age %.6g Ma", best)
        return best, False

    best_t, best_s, converged = math.nan, math.inf, True
    for i in brackets:
        t, info = brentq(
            descent,
            _GRID[i],
            _GRID[i + 1],
            xtol=1e-13,
            maxiter=max_iter,
            full_output=True,
            disp=False,
        )
        s = misfit(t)
        if s < best_s:
            best_t, best_s, converged = float(t), s, bool(info.converged)
    return best_t, converged


def concordia_age(
    x,
    cov,
    wetherill: bool = True,
    dcu: bool = True,
    constants: DecayConstants = DEFAULT_DECAY_CONSTANTS,
    max_iter: int = DEFAULT_MAX_ITERATIONS,
    rel_step: float = DEFAULT_REL_STEP,
) -> Tuple[AgeEstimate, FitStatistics]:
    """Concordia age of one composition and its concordance statistic.

    Args:
        x: Composition, (207Pb/235U, 206Pb/238U) if ``wetherill`` else
            (238U/206Pb, 207Pb/206Pb).
        cov: Its 2x2 covariance.
        wetherill (bool, optional): Coordinate system of ``x``.
        dcu (bool, optional): Include decay constant uncertainties.

    Returns:
        tuple: ``(age, concordance)``.

    Note:
        For an exact composition (zero covariance) the age is fitted with a
        relative metric and has zero variance; the concordance chi-square is
        0 if the point lies on concordia, infinite otherwise.

        If no minimum of the misfit is bracketed (for example a composition
        older than ``MAX_AGE``) the best grid age is returned with
        ``converged=False`` and a variance from the curvature of the misfit
        at that age, ``1 / (sᵀ Σ⁻¹ s)`` with ``s = dc/dt``. Decay constant
        uncertainties are not included in that fallback variance.
    """
    x = np.asarray(x, dtype=float).reshape(-1)
    cov = np.asarray(cov, dtype=float)
    if x.size != 2 or cov.shape != (2, 2):
        raise InvalidInputError(
            "A U-Pb composition has two ratios and a 2x2 covariance."
        )
    if np.any(x <= 0):
        raise InvalidInputError("U-Pb ratios must be positive.")
    omega, exact = _metric(x, cov)
    l5, l8 = constants.U235, constants.U238
    u = constants.U238U235
    flags: list = []

    def func(v: np.ndarray) -> float:
        t, ok = _fit_age(v[:2], omega, v[2], v[3], u, wetherill, max_iter)
        flags.append(ok)
        return t

    inputs = [x[0], x[1], l5.value, l8.value]
    if exact:
        t, var = func(np.array(inputs)), 0.0
    else:
        full_cov = np.zeros((4, 4))
        full_cov[:2, :2] = cov
        if dcu:
            full_cov[2, 2] = l5.variance
            full_cov[3, 3] = l8.variance
        t, var = propagate_numerically(func, inputs, full_cov, rel_step)
    converged = all(flags)
    point, slope = concordia_curve(t, l5.value, l8.value, u, wetherill)
    if not converged:
        warnings.warn(
            "Concordia age did not converge; returning the best grid estimate.",
            NonConvergenceWarning,
            stacklevel=2,
        )
        if not exact:
            # Gauss-Newton curvature of S(t) at the grid estimate.
            var = 1.0 / float(slope @ omega @ slope)

    r = x - point
    chi2 = float(r @ omega @ r)
    if exact and chi2 > _CONCORDANT:
        concordance = FitStatistics(chi2=math.inf, dof=1, mswd=math.inf, p_value=0.0)
    else:
        concordance = fit_statistics(0.0 if exact else max(chi2, 0.0), 1)
    age = AgeEstimate.build(t, var, stats=concordance, converged=converged)
    return age, concordance


def mean_composition(
    analyses: Sequence[UPbAnalysis],
    wetherill: bool = True,
    constants: DecayConstants = DEFAULT_DECAY_CONSTANTS,
) -> Tuple[AgeEstimate, FitStatistics]:
    """Maximum likelihood common composition and its equivalence statistic."""
    comps = [a.composition(wetherill, constants) for a in analyses]
    mean, cov, chi2, dof = gls_mean([c[0] for c in comps], [c[1] for c in comps])
    stats = fit_statistics(chi2, dof)
    return AgeEstimate.build(mean, cov, stats=stats), stats


def concordia_weighted_mean(
    analyses: Sequence[UPbAnalysis],
    wetherill: bool = True,
    dcu: bool = True,
    constants: DecayConstants = DEFAULT_DECAY_CONSTANTS,
    max_iter: int = DEFAULT_MAX_ITERATIONS,
) -> WeightedMeanResult:
    """Mean composition of ``analyses`` and its concordia age.

    Equivalence has ``2 (n - 1)`` degrees of freedom and concordance one.
    """
    composition, equivalence = mean_composition(analyses, wetherill, constants)
    age, concordance = concordia_age(
        composition.value,
        composition.cov,
        wetherill=wetherill,
        dcu=dcu,
        constants=constants,
        max_iter=max_iter,
    )
    return WeightedMeanResult(
        composition=composition,
        equivalence=equivalence,
        age=age,
        concordance=concordance,
        wetherill=wetherill,
    )
