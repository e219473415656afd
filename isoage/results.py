"""Value objects returned by the age engine.

Every result is a frozen dataclass produced fresh by one computation. Scalar
estimates carry a float value and a float variance; vector estimates carry a
1-D array and a symmetric covariance matrix.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Union

import numpy as np

Number = Union[float, np.ndarray]


@dataclass(frozen=True)
class FitStatistics:
    """Chi-square goodness of fit summary.

    Attributes:
        chi2: Sum of squared weighted deviates.
        dof: Degrees of freedom.
        mswd: ``chi2 / dof``; NaN when ``dof == 0``.
        p_value: Upper-tail chi-square probability; 1.0 when ``dof == 0``.
    """

    chi2: float
    dof: int
    mswd: float
    p_value: float

    @property
    def defined(self) -> bool:
        return self.dof > 0


@dataclass(frozen=True)
class AgeEstimate:
    """Point estimate with its (co)variance.

    Also used for compositions (mean isotope ratios), which share the same
    value-plus-covariance shape.
    """

    value: Number
    cov: Number
    stats: Optional[FitStatistics] = None
    converged: bool = True

    @classmethod
    def build(
        cls,
        value: Number,
        cov: Number,
        stats: Optional[FitStatistics] = None,
        converged: bool = True,
    ) -> "AgeEstimate":
        """Normalize shapes, symmetrize and clip round-off negative variances."""
        if np.ndim(value) == 0:
            var = float(np.asarray(cov, dtype=float).reshape(-1)[0])
            return cls(float(value), max(var, 0.0), stats, converged)
        vec = np.asarray(value, dtype=float).reshape(-1)
        mat = np.asarray(cov, dtype=float).reshape(vec.size, vec.size)
        mat = 0.5 * (mat + mat.T)
        diag = np.clip(np.diag(mat), 0.0, None)
        np.fill_diagonal(mat, diag)
        return cls(vec, mat, stats, converged)

    @property
    def is_scalar(self) -> bool:
        return np.ndim(self.value) == 0

    @property
    def se(self) -> Number:
        if self.is_scalar:
            return math.sqrt(self.cov)
        return np.sqrt(np.diag(self.cov))

    @property
    def variance(self) -> Number:
        if self.is_scalar:
            return self.cov
        return np.diag(self.cov).copy()


@dataclass(frozen=True)
class RegressionFit:
    """Straight line ``y = intercept + slope * x`` with its covariance.

    ``cov`` is ordered (intercept, slope).
    """

    intercept: float
    slope: float
    cov: np.ndarray
    stats: FitStatistics
    method: str
    converged: bool = True
    n_iter: int = 0

    @property
    def se_intercept(self) -> float:
        return math.sqrt(max(float(self.cov[0, 0]), 0.0))

    @property
    def se_slope(self) -> float:
        return math.sqrt(max(float(self.cov[1, 1]), 0.0))

    @property
    def cov_intercept_slope(self) -> float:
        return float(self.cov[0, 1])

    @property
    def mswd(self) -> float:
        return self.stats.mswd

    @property
    def p_value(self) -> float:
        return self.stats.p_value

    def as_estimate(self) -> AgeEstimate:
        return AgeEstimate.build(
            np.array([self.intercept, self.slope]), self.cov, self.stats, self.converged
        )


@dataclass(frozen=True)
class WeightedMeanResult:
    """Mean U-Pb composition and the concordia age derived from it."""

    composition: AgeEstimate
    equivalence: FitStatistics
    age: AgeEstimate
    concordance: FitStatistics
    wetherill: bool = True

    @property
    def mswd_equivalence(self) -> float:
        return self.equivalence.mswd

    @property
    def p_equivalence(self) -> float:
        return self.equivalence.p_value

    @property
    def mswd_concordance(self) -> float:
        return self.concordance.mswd

    @property
    def p_concordance(self) -> float:
        return self.concordance.p_value


@dataclass(frozen=True)
class CentralAgeResult:
    """Mean log-ratio U-Th(-Sm)-He composition and its age."""

    composition: AgeEstimate
    equivalence: FitStatistics
    age: AgeEstimate

    @property
    def covariance(self) -> np.ndarray:
        return self.composition.cov

    @property
    def mswd(self) -> float:
        return self.equivalence.mswd

    @property
    def p_value(self) -> float:
        return self.equivalence.p_value


@dataclass(frozen=True)
class IsochronResult:
    """Isochron line with its initial ratio and age."""

    fit: RegressionFit
    y0: AgeEstimate
    age: AgeEstimate
