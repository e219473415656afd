"""First-order (delta-method) uncertainty propagation.

The propagator only performs the sandwich product ``J · Σ · Jᵀ``. Callers
supply the partial derivatives, either in closed form or through
:func:`numerical_jacobian` for functions that are only defined implicitly
(for example an age found by root finding).
"""

from __future__ import annotations

from typing import Callable, Tuple, Union

import numpy as np

from ..constants import DEFAULT_REL_STEP
from ..errors import InvalidInputError

ArrayLike = Union[float, np.ndarray]


def as_covariance(cov, n: int) -> np.ndarray:
    """Return ``cov`` as an ``n x n`` matrix.

    Args:
        cov: Either a length-``n`` vector of variances (independent inputs)
            or an ``n x n`` covariance matrix.
        n: Number of inputs.

    Raises:
        InvalidInputError: If the shape does not match or a variance is
            negative or non-finite.
    """
    arr = np.asarray(cov, dtype=float)
    if arr.ndim == 0 and n == 1:
        arr = arr.reshape(1)
    if arr.ndim == 1:
        if arr.size != n:
            raise InvalidInputError(
                f"Expected {n} variances, got {arr.size}."
            )
        arr = np.diag(arr)
    elif arr.shape != (n, n):
        raise InvalidInputError(
            f"Covariance matrix must be {n}x{n}, got shape {arr.shape}."
        )
    if not np.all(np.isfinite(arr)):
        raise InvalidInputError("Covariance matrix contains non-finite values.")
    if np.any(np.diag(arr) < 0):
        raise InvalidInputError("Variances must be non-negative.")
    return arr


def propagate(
    func: Callable[[np.ndarray], ArrayLike],
    jacobian: Callable[[np.ndarray], ArrayLike],
    x,
    cov,
) -> Tuple[ArrayLike, ArrayLike]:
    """Propagate the covariance of ``x`` through ``func``.

    Args:
        func: Function of the input vector returning a scalar or a vector.
        jacobian: Function returning the partial derivatives of ``func`` at
            ``x``: a gradient vector for scalar ``func``, an ``m x n``
            matrix for vector ``func``.
        x: Input vector of length ``n``.
        cov: Variances (length ``n``) or ``n x n`` covariance of ``x``.

    Returns:
        tuple: ``(func(x), variance)`` for scalar outputs, ``(func(x),
        covariance)`` for vector outputs. The covariance is symmetric.
    """
    x_arr = np.atleast_1d(np.asarray(x, dtype=float))
    sigma = as_covariance(cov, x_arr.size)
    y = func(x_arr)
    jac = np.asarray(jacobian(x_arr), dtype=float)

    if np.ndim(y) == 0:
        grad = jac.reshape(-1)
        if grad.size != x_arr.size:
            raise InvalidInputError(
                f"Gradient has {grad.size} entries for {x_arr.size} inputs."
            )
        return float(y), float(grad @ sigma @ grad)

    y_arr = np.asarray(y, dtype=float).reshape(-1)
    jac = jac.reshape(y_arr.size, x_arr.size)
    out = jac @ sigma @ jac.T
    return y_arr, 0.5 * (out + out.T)


def numerical_jacobian(
    func: Callable[[np.ndarray], ArrayLike],
    x,
    rel_step: float = DEFAULT_REL_STEP,
    lower=None,
) -> np.ndarray:
    """Central-difference Jacobian of ``func`` at ``x``.

    The step for input ``i`` is ``rel_step * |x_i|``, or ``rel_step`` when
    ``x_i`` is zero. Where the backward step would cross ``lower[i]`` (the
    edge of the domain of ``func``) a forward difference is used instead.

    Returns:
        numpy.ndarray: Gradient (length ``n``) for scalar ``func``, otherwise
        an ``m x n`` matrix.
    """
    x_arr = np.atleast_1d(np.asarray(x, dtype=float))
    bounds = None if lower is None else np.broadcast_to(
        np.asarray(lower, dtype=float), x_arr.shape
    )
    centre = None
    columns = []
    for i in range(x_arr.size):
        h = rel_step * abs(x_arr[i]) if x_arr[i] != 0 else rel_step
        up = x_arr.copy()
        up[i] += h
        f_up = np.asarray(func(up), dtype=float)
        if bounds is not None and x_arr[i] - h < bounds[i]:
            if centre is None:
                centre = np.asarray(func(x_arr), dtype=float)
            columns.append((f_up - centre) / h)
            continue
        down = x_arr.copy()
        down[i] -= h
        columns.append((f_up - np.asarray(func(down), dtype=float)) / (2.0 * h))

    if all(np.ndim(c) == 0 for c in columns):
        return np.array([float(c) for c in columns])
    return np.column_stack([np.reshape(c, -1) for c in columns])


def propagate_numerically(
    func: Callable[[np.ndarray], ArrayLike],
    x,
    cov,
    rel_step: float = DEFAULT_REL_STEP,
    lower=None,
) -> Tuple[ArrayLike, ArrayLike]:
    """Propagate using a central-difference Jacobian of ``func``.

    ``lower`` optionally bounds the inputs from below (see
    :func:`numerical_jacobian`).
    """
    return propagate(
        func,
        lambda xx: numerical_jacobian(func, xx, rel_step=rel_step, lower=lower),
        x,
        cov,
    )
