"""Generalized least-squares mean of correlated vectors.

Given ``n`` analyses ``x_i`` with known covariances ``Σ_i``, the maximum
likelihood common composition is::

    μ = (Σ Σ_i⁻¹)⁻¹ (Σ Σ_i⁻¹ x_i),    cov(μ) = (Σ Σ_i⁻¹)⁻¹

and the residual chi-square ``Σ (x_i − μ)ᵀ Σ_i⁻¹ (x_i − μ)`` has
``d (n − 1)`` degrees of freedom for ``d``-dimensional analyses.
"""

from __future__ import annotations

import logging
from typing import Sequence, Tuple

import numpy as np

from ..errors import InvalidInputError, SingularSystemError

logger = logging.getLogger(__name__)


def _stack(vectors: Sequence, covs: Sequence) -> Tuple[np.ndarray, np.ndarray]:
    x = np.asarray(vectors, dtype=float)
    if x.ndim == 1:
        x = x[:, None]
    if x.ndim != 2 or x.shape[0] == 0:
        raise InvalidInputError("At least one analysis vector is required.")
    n, d = x.shape
    s = np.asarray(covs, dtype=float)
    if s.ndim == 1 and d == 1:
        s = s[:, None, None]
    if s.shape != (n, d, d):
        raise InvalidInputError(
            f"Expected {n} covariance matrices of shape {d}x{d}, got {s.shape}."
        )
    if not (np.all(np.isfinite(x)) and np.all(np.isfinite(s))):
        raise InvalidInputError("Analyses contain non-finite values.")
    if np.any(np.diagonal(s, axis1=1, axis2=2) < 0):
        raise InvalidInputError("Variances must be non-negative.")
    return x, s


def gls_mean(
    vectors: Sequence, covs: Sequence
) -> Tuple[np.ndarray, np.ndarray, float, int]:
    """Weighted mean of correlated vectors.

    Args:
        vectors: ``n x d`` array of analyses.
        covs: ``n x d x d`` array of their covariance matrices.

    Returns:
        tuple: ``(mean, cov, chi2, dof)``.

    Raises:
        InvalidInputError: On shape mismatch, non-finite values or negative
            variances.
        SingularSystemError: If a covariance matrix (or the summed
            information matrix) cannot be inverted. Analyses that all have
            zero covariance and identical values are the exception: they
            give an exact mean with zero covariance and zero chi-square.
    """
    x, s = _stack(vectors, covs)
    n, d = x.shape
    dof = d * (n - 1)

    exact = np.all(s == 0, axis=(1, 2))
    if np.all(exact):
        if np.all(x == x[0]):
            return x[0].copy(), np.zeros((d, d)), 0.0, dof
        raise SingularSystemError(
            "Analyses without uncertainty have different compositions."
        )
    if np.any(exact):
        raise SingularSystemError(
            "Cannot combine analyses with and without uncertainty."
        )

    info = np.zeros((d, d))
    weighted = np.zeros(d)
    weights = []
    # Reduction runs in input order so results are bit-reproducible.
    for i in range(n):
        try:
            w = np.linalg.inv(s[i])
        except np.linalg.LinAlgError as exc:
            raise SingularSystemError(
                f"Covariance matrix of analysis {i} is singular."
            ) from exc
        weights.append(w)
        info += w
        weighted += w @ x[i]

    try:
        cov = np.linalg.inv(info)
    except np.linalg.LinAlgError as exc:
        raise SingularSystemError("Information matrix is singular.") from exc
    cov = 0.5 * (cov + cov.T)
    mean = cov @ weighted

    chi2 = 0.0
    for i in range(n):
        r = x[i] - mean
        chi2 += float(r @ weights[i] @ r)
    logger.debug("GLS mean of %d analyses: chi2=%.6g, dof=%d", n, chi2, dof)
    return mean, cov, max(chi2, 0.0), dof
