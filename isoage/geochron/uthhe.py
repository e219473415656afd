"""U-Th-(Sm)-He ages and central ages.

Helium production has no closed-form inverse::

    He = 8·238U·(e^{λ238 t} − 1) + 7·235U·(e^{λ235 t} − 1)
       + 6·Th·(e^{λ232 t} − 1) + f147·Sm·(e^{λ147 t} − 1)

so the age is found with Brent's method on ``t >= 0`` and its uncertainty is
propagated with a central-difference Jacobian. Total U is split into 238U and
235U with the present-day 238U/235U ratio; ``f147`` is the atomic abundance of
147Sm in natural samarium.
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
    DecayConstants,
)
from ..errors import InvalidInputError, NonConvergenceWarning
from ..measurements import UThHe
from ..results import AgeEstimate, CentralAgeResult
from ..stats.mswd import fit_statistics
from ..stats.propagation import propagate, propagate_numerically
from ..stats.weighted_mean import gls_mean

logger = logging.getLogger(__name__)

_MAX_BRACKET_DOUBLINGS = 64


def he_production(
    t: float,
    U: float,
    Th: float,
    Sm: float,
    lambdas: Sequence[float],
    u238u235: float,
    f147: float,
) -> float:
    """Helium produced after ``t`` Ma by the given parent amounts.

    ``lambdas`` holds (λ238, λ235, λ232, λ147).
    """
    l238, l235, l232, l147 = lambdas
    u238 = U * u238u235 / (1.0 + u238u235)
    u235 = U / (1.0 + u238u235)
    return (
        8.0 * u238 * math.expm1(l238 * t)
        + 7.0 * u235 * math.expm1(l235 * t)
        + 6.0 * Th * math.expm1(l232 * t)
        + f147 * Sm * math.expm1(l147 * t)
    )


def solve_uthhe_age(
    U: float,
    Th: float,
    He: float,
    Sm: float,
    lambdas: Sequence[float],
    u238u235: float,
    f147: float,
    max_iter: int = DEFAULT_MAX_ITERATIONS,
) -> Tuple[float, bool]:
    """Root of ``He_predicted(t) − He = 0`` on ``t >= 0``.

    Returns:
        tuple: ``(age, converged)``.

    Raises:
        InvalidInputError: If no non-negative age reproduces ``He``.
    """
    if He <= 0:
        return 0.0, True

    def misfit(t: float) -> float:
        return he_production(t, U, Th, Sm, lambdas, u238u235, f147) - He

    hi = 100.0
    for _ in range(_MAX_BRACKET_DOUBLINGS):
        if misfit(hi) >= 0:
            break
        hi *= 2.0
    else:
        raise InvalidInputError("No finite age reproduces the measured He content.")

    t, info = brentq(
        misfit, 0.0, hi, xtol=1e-14, maxiter=max_iter, full_output=True, disp=False
    )
    logger.debug("U-Th-He age %.6f Ma after %d iterations", t, info.iterations)
    return float(t), bool(info.converged)


def _lambdas(constants: DecayConstants) -> Tuple[np.ndarray, np.ndarray]:
    lams = (constants.U238, constants.U235, constants.Th232, constants.Sm147)
    return np.array([l.value for l in lams]), np.array([l.variance for l in lams])


def _age_of_inputs(constants: DecayConstants, max_iter: int, converged: list):
    """Age as a function of (U, Th, He, Sm, λ238, λ235, λ232, λ147)."""

    def func(v: np.ndarray) -> float:
        t, ok = solve_uthhe_age(
            v[0],
            v[1],
            v[2],
            v[3],
            v[4:8],
            constants.U238U235,
            constants.Sm147_abundance,
            max_iter,
        )
        converged.append(ok)
        return t

    return func


def uthhe_age(
    m: UThHe,
    dcu: bool = True,
    constants: DecayConstants = DEFAULT_DECAY_CONSTANTS,
    max_iter: int = DEFAULT_MAX_ITERATIONS,
    rel_step: float = DEFAULT_REL_STEP,
) -> AgeEstimate:
    """U-Th-(Sm)-He age (Ma) and its variance."""
    lam_values, lam_vars = _lambdas(constants)
    x = np.concatenate([m.values(), lam_values])
    var_x = np.concatenate([m.variances(), lam_vars if dcu else np.zeros(4)])
    flags: list = []
    func = _age_of_inputs(constants, max_iter, flags)

    if np.any(m.variances() > 0):
        # Amounts are non-negative; He = 0 sits on the edge of the age domain.
        t, var = propagate_numerically(
            func, x, var_x, rel_step=rel_step, lower=np.zeros(x.size)
        )
    else:
        t, var = func(x), 0.0
    converged = all(flags)
    if not converged:
        warnings.warn(
            f"U-Th-He age did not converge within {max_iter} iterations.",
            NonConvergenceWarning,
            stacklevel=2,
        )
    return AgeEstimate.build(t, var, converged=converged)


def log_ratio_composition(m: UThHe, with_sm: bool) -> Tuple[np.ndarray, np.ndarray]:
    """ln(U/He), ln(Th/He) (and ln(Sm/He)) with their covariance."""
    if m.U <= 0 or m.Th <= 0 or m.He <= 0 or (with_sm and not (m.Sm or 0) > 0):
        raise InvalidInputError(
            "Log-ratio compositions need positive U, Th, He (and Sm)."
        )
    dim = 3 if with_sm else 2
    x = m.values() if with_sm else m.values()[:3]
    var = m.variances() if with_sm else m.variances()[:3]

    def func(v: np.ndarray) -> np.ndarray:
        out = [math.log(v[0] / v[2]), math.log(v[1] / v[2])]
        if with_sm:
            out.append(math.log(v[3] / v[2]))
        return np.array(out)

    def jacobian(v: np.ndarray) -> np.ndarray:
        jac = np.zeros((dim, v.size))
        jac[0, 0] = 1.0 / v[0]
        jac[1, 1] = 1.0 / v[1]
        jac[:, 2] = -1.0 / v[2]
        if with_sm:
            jac[2, 3] = 1.0 / v[3]
        return jac

    return propagate(func, jacobian, x, var)


def central_age(
    analyses: Sequence[UThHe],
    dcu: bool = True,
    constants: DecayConstants = DEFAULT_DECAY_CONSTANTS,
    max_iter: int = DEFAULT_MAX_ITERATIONS,
    rel_step: float = DEFAULT_REL_STEP,
) -> CentralAgeResult:
    """Weighted mean log-ratio composition and the age it implies.

    Sm is used only when every analysis reports it. When the MSWD exceeds
    one, the covariance of the mean is inflated by the MSWD to account for
    overdispersion between grains.
    """
    with_sm = all(m.has_sm for m in analyses)
    comps = [log_ratio_composition(m, with_sm) for m in analyses]
    mean, cov, chi2, dof = gls_mean([c[0] for c in comps], [c[1] for c in comps])
    stats = fit_statistics(chi2, dof)
    if stats.defined and stats.mswd > 1:
        cov = cov * stats.mswd

    lam_values, lam_vars = _lambdas(constants)
    flags: list = []
    age_of = _age_of_inputs(constants, max_iter, flags)
    k = mean.size

    def func(v: np.ndarray) -> float:
        sm = math.exp(v[2]) if with_sm else 0.0
        x = np.array([math.exp(v[0]), math.exp(v[1]), 1.0, sm])
        return age_of(np.concatenate([x, v[k:]]))

    x = np.concatenate([mean, lam_values])
    full_cov = np.zeros((k + 4, k + 4))
    full_cov[:k, :k] = cov
    if dcu:
        full_cov[k:, k:] = np.diag(lam_vars)
    t, var = propagate_numerically(func, x, full_cov, rel_step=rel_step)
    if not all(flags):
        warnings.warn(
            f"Central age did not converge within {max_iter} iterations.",
            NonConvergenceWarning,
            stacklevel=2,
        )
    age = AgeEstimate.build(t, var, stats=stats, converged=all(flags))
    return CentralAgeResult(
        composition=AgeEstimate.build(mean, cov, stats=stats),
        equivalence=stats,
        age=age,
    )
