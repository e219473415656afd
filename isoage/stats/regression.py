"""Straight-line fits through points with correlated x/y uncertainties.

This module supports:
- ordinary least squares, used as the starting slope of every weighted fit,
- a closed-form weighted fit that treats x/y errors as uncorrelated,
- the York et al. (2004) iteration for correlated errors, and
- a direct maximum-likelihood minimization of the same objective.

The iterative and maximum-likelihood estimators share the York error
formulas; the closed-form estimator reduces to them when x errors vanish.
All of them return the exact line for error-free collinear points.

References:
    York, D., Evensen, N. M., Martínez, M. L., & De Basabe Delgado, J.
    (2004). Unified equations for the slope, intercept, and standard errors
    of the best straight line. American Journal of Physics, 72(3), 367-375.
"""

from __future__ import annotations

import logging
import math
import warnings
from typing import Dict, Tuple

import numpy as np
from scipy.optimize import minimize_scalar

from ..constants import DEFAULT_MAX_ITERATIONS, DEFAULT_TOLERANCE
from ..errors import InvalidInputError, NonConvergenceWarning, SingularSystemError
from ..results import FitStatistics, RegressionFit
from .mswd import fit_statistics

logger = logging.getLogger(__name__)

METHODS = ("uncorrelated", "york", "ml")


def ordinary_least_squares(
    x: np.ndarray, y: np.ndarray, min_points: int = 2
) -> Dict[str, float]:
    """Fit an unweighted least-squares straight line.

    Args:
        x (numpy.ndarray): Independent variable.
        y (numpy.ndarray): Dependent variable.
        min_points (int, optional): Minimum number of paired observations.
            Defaults to ``2``.

    Returns:
        dict[str, float]: ``b`` (slope), ``a`` (intercept), ``n``, ``sse``
        (sum of squared residuals) and ``ssxx``.

    Raises:
        InvalidInputError: If there are too few points.
        SingularSystemError: If all x values coincide.
    """
    x_arr = np.asarray(x, dtype=float)
    y_arr = np.asarray(y, dtype=float)
    n = int(len(x_arr))
    if n < min_points:
        raise InvalidInputError("Insufficient data for regression.")

    xbar = float(np.mean(x_arr))
    ssxx = float(np.sum((x_arr - xbar) ** 2))
    if ssxx <= 0:
        raise SingularSystemError("Insufficient x variance for regression.")
    b, a = (float(c) for c in np.polyfit(x_arr, y_arr, 1))
    resid = y_arr - (a + b * x_arr)

    return {
        "b": b,
        "a": a,
        "n": n,
        "sse": float(np.sum(resid**2)),
        "ssxx": ssxx,
    }


def _prepare(x, y, sx, sy, rho) -> Tuple[np.ndarray, ...]:
    arrays = [np.asarray(v, dtype=float).reshape(-1) for v in (x, y, sx, sy)]
    n = arrays[0].size
    if rho is None:
        r = np.zeros(n)
    else:
        r = np.broadcast_to(np.asarray(rho, dtype=float), (n,)).copy()
    arrays.append(r)
    if any(a.size != n for a in arrays):
        raise InvalidInputError("x, y, sx, sy and rho must have the same length.")
    if n < 2:
        raise InvalidInputError("At least two points are required for a line fit.")
    if not all(np.all(np.isfinite(a)) for a in arrays):
        raise InvalidInputError("Regression input contains non-finite values.")
    xa, ya, sxa, sya, ra = arrays
    if np.any(sxa < 0) or np.any(sya < 0):
        raise InvalidInputError("Standard errors must be non-negative.")
    if np.any(np.abs(ra) > 1):
        raise InvalidInputError("Error correlations must lie in [-1, 1].")
    return xa, ya, sxa**2, sya**2, ra * sxa * sya


def _weights(b: float, vx: np.ndarray, vy: np.ndarray, cxy: np.ndarray) -> np.ndarray:
    denom = vy + b**2 * vx - 2.0 * b * cxy
    if np.any(denom <= 0):
        raise SingularSystemError(
            "A point has zero effective variance along the fitted slope."
        )
    return 1.0 / denom


def _intercept(b: float, x: np.ndarray, y: np.ndarray, w: np.ndarray) -> float:
    return float(np.sum(w * (y - b * x)) / np.sum(w))


def _york_errors(
    b: float,
    x: np.ndarray,
    y: np.ndarray,
    vx: np.ndarray,
    vy: np.ndarray,
    cxy: np.ndarray,
) -> Tuple[float, np.ndarray, float]:
    """Intercept, (intercept, slope) covariance and chi-square at slope ``b``."""
    w = _weights(b, vx, vy, cxy)
    sum_w = float(np.sum(w))
    xbar = float(np.sum(w * x)) / sum_w
    ybar = float(np.sum(w * y)) / sum_w
    a = ybar - b * xbar
    u = x - xbar
    v = y - ybar
    beta = w * (u * vy + b * v * vx - (b * u + v) * cxy)
    x_adj = xbar + beta
    x_adj_bar = float(np.sum(w * x_adj)) / sum_w
    spread = float(np.sum(w * (x_adj - x_adj_bar) ** 2))
    if spread <= 0:
        raise SingularSystemError("Adjusted x values have no spread.")
    var_b = 1.0 / spread
    var_a = 1.0 / sum_w + x_adj_bar**2 * var_b
    cov_ab = -x_adj_bar * var_b
    cov = np.array([[var_a, cov_ab], [cov_ab, var_b]])
    chi2 = float(np.sum(w * (y - a - b * x) ** 2))
    return a, cov, chi2


def _york_step(b: float, x, y, vx, vy, cxy) -> float:
    w = _weights(b, vx, vy, cxy)
    sum_w = float(np.sum(w))
    u = x - float(np.sum(w * x)) / sum_w
    v = y - float(np.sum(w * y)) / sum_w
    beta = w * (u * vy + b * v * vx - (b * u + v) * cxy)
    denom = float(np.sum(w * beta * u))
    if denom == 0:
        raise SingularSystemError("York iteration encountered a zero denominator.")
    return float(np.sum(w * beta * v)) / denom


def _exact_fit(x: np.ndarray, y: np.ndarray, method: str) -> RegressionFit:
    ols = ordinary_least_squares(x, y)
    n = len(x)
    scale = max(float(np.max(np.abs(y))), 1.0)
    dof = n - 2
    # Points without uncertainty either lie on one line or cannot be fitted.
    if dof == 0 or ols["sse"] <= n * (1e-9 * scale) ** 2:
        stats = fit_statistics(0.0, dof)
    else:
        stats = FitStatistics(chi2=math.inf, dof=dof, mswd=math.inf, p_value=0.0)
    return RegressionFit(
        intercept=ols["a"],
        slope=ols["b"],
        cov=np.zeros((2, 2)),
        stats=stats,
        method=method,
    )


def _weighted_least_squares(
    x: np.ndarray, y: np.ndarray, w: np.ndarray
) -> Tuple[float, float, np.ndarray, float]:
    sum_w = float(np.sum(w))
    xbar = float(np.sum(w * x)) / sum_w
    ybar = float(np.sum(w * y)) / sum_w
    sxx = float(np.sum(w * (x - xbar) ** 2))
    if sxx <= 0:
        raise SingularSystemError("Insufficient x variance for regression.")
    b = float(np.sum(w * (x - xbar) * (y - ybar))) / sxx
    a = ybar - b * xbar
    var_b = 1.0 / sxx
    cov = np.array(
        [[1.0 / sum_w + xbar**2 * var_b, -xbar * var_b], [-xbar * var_b, var_b]]
    )
    chi2 = float(np.sum(w * (y - a - b * x) ** 2))
    return a, b, cov, chi2


def york(
    x,
    y,
    sx,
    sy,
    rho=None,
    method: str = "york",
    tol: float = DEFAULT_TOLERANCE,
    max_iter: int = DEFAULT_MAX_ITERATIONS,
) -> RegressionFit:
    """Fit ``y = a + b x`` through points with x/y errors.

    Args:
        x (numpy.ndarray): x values.
        y (numpy.ndarray): y values.
        sx (numpy.ndarray): Standard errors of ``x``.
        sy (numpy.ndarray): Standard errors of ``y``.
        rho (numpy.ndarray, optional): Error correlations between ``x`` and
            ``y`` of each point. Defaults to zero.
        method (str, optional): ``"uncorrelated"`` (closed-form weighted
            least squares at the OLS slope, ignoring ``rho``), ``"york"``
            (iterative, correlated errors) or ``"ml"`` (direct likelihood
            maximization). Defaults to ``"york"``.
        tol (float, optional): Relative slope tolerance for ``"york"`` and
            ``"ml"``.
        max_iter (int, optional): Iteration cap for ``"york"`` and ``"ml"``.

    Returns:
        RegressionFit: Intercept, slope, their covariance and the MSWD with
        ``n - 2`` degrees of freedom. ``converged`` is False (and a
        :class:`NonConvergenceWarning` is issued) if the iteration cap was
        reached first.

    Raises:
        InvalidInputError: On malformed input or an unknown method.
        SingularSystemError: If weights cannot be formed (a mix of exact and
            uncertain points, or no x spread).

    Note:
        When every point has zero uncertainty the fit is exact: ordinary
        least squares with zero covariance and MSWD 0 for collinear points.
    """
    if method not in METHODS:
        raise InvalidInputError(f"method must be one of {METHODS}, got {method!r}")
    xa, ya, vx, vy, cxy = _prepare(x, y, sx, sy, rho)
    n = xa.size
    dof = n - 2

    if np.all(vx == 0) and np.all(vy == 0):
        return _exact_fit(xa, ya, method)

    b = ordinary_least_squares(xa, ya)["b"]

    if method == "uncorrelated":
        w = _weights(b, vx, vy, np.zeros_like(cxy))
        a, b, cov, chi2 = _weighted_least_squares(xa, ya, w)
        return RegressionFit(
            intercept=a,
            slope=b,
            cov=cov,
            stats=fit_statistics(chi2, dof),
            method=method,
        )

    if method == "york":
        converged = False
        n_iter = 0
        for n_iter in range(1, max_iter + 1):
            b_new = _york_step(b, xa, ya, vx, vy, cxy)
            change = abs(b_new - b)
            b = b_new
            if change <= tol * max(abs(b), np.finfo(float).tiny):
                converged = True
                break
        logger.debug("York fit: slope=%.10g after %d iterations", b, n_iter)
    else:
        b, converged, n_iter = _maximize_likelihood(
            b, xa, ya, vx, vy, cxy, tol, max_iter
        )

    if not converged:
        warnings.warn(
            f"Line fit ({method}) did not converge within {max_iter} iterations; "
            f"returning the last slope estimate ({b:.6g}).",
            NonConvergenceWarning,
            stacklevel=2,
        )

    a, cov, chi2 = _york_errors(b, xa, ya, vx, vy, cxy)
    return RegressionFit(
        intercept=a,
        slope=b,
        cov=cov,
        stats=fit_statistics(chi2, dof),
        method=method,
        converged=converged,
        n_iter=n_iter,
    )


def _maximize_likelihood(
    b0: float, x, y, vx, vy, cxy, tol: float, max_iter: int
) -> Tuple[float, bool, int]:
    """Minimize the York objective ``S(b)`` over the slope."""

    def objective(b: float) -> float:
        w = _weights(b, vx, vy, cxy)
        a = _intercept(b, x, y, w)
        return float(np.sum(w * (y - a - b * x) ** 2))

    width = max(abs(b0), 1.0)
    res = minimize_scalar(
        objective,
        bracket=(b0 - 0.1 * width, b0 + 0.1 * width),
        method="brent",
        tol=max(tol, 1e-15),
        options={"maxiter": max_iter},
    )
    logger.debug("ML line fit: slope=%.10g after %d iterations", res.x, res.nit)
    return float(res.x), bool(res.success), int(res.nit)
