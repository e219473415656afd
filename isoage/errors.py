"""Exception and warning types raised by the age engine."""

from __future__ import annotations

from typing import Any, Optional


class IsoageError(Exception):
    """Base class for errors raised by isoage."""


class InvalidInputError(IsoageError, ValueError):
    """Wrong dimensionality, negative variance or a non-physical ratio."""


class SingularSystemError(IsoageError, ArithmeticError):
    """A covariance or normal-equations matrix could not be inverted."""


class UndefinedStatisticError(IsoageError):
    """A goodness-of-fit statistic has zero degrees of freedom.

    The computation itself succeeded; ``result`` holds everything that could
    be computed, with the undefined statistic marked as such.
    """

    def __init__(self, message: str, result: Optional[Any] = None):
        super().__init__(message)
        self.result = result


class NonConvergenceWarning(UserWarning):
    """An iterative solver stopped at its iteration cap before converging."""
