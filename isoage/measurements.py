"""Typed measurements, one constructor per geochronometer.

Each class validates its own inputs, so a measurement that exists is
dimensionally correct and physically meaningful. Standard errors default to
zero, which turns a measurement into an exact point value.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional, Tuple, Type

import numpy as np

from .constants import DEFAULT_DECAY_CONSTANTS, DecayConstants
from .errors import InvalidInputError
from .stats.propagation import propagate


def _check(name: str, value: float, se: float, positive: bool = False) -> None:
    if not (math.isfinite(value) and math.isfinite(se)):
        raise InvalidInputError(f"{name} and its error must be finite.")
    if se < 0:
        raise InvalidInputError(f"Standard error of {name} must be >= 0, got {se!r}")
    if positive and value <= 0:
        raise InvalidInputError(f"{name} must be positive, got {value!r}")
    if value < 0:
        raise InvalidInputError(f"{name} must be non-negative, got {value!r}")


@dataclass(frozen=True)
class Pb207U235:
    """Radiogenic 207Pb/235U ratio."""

    ratio: float
    se: float = 0.0

    def __post_init__(self) -> None:
        _check("Pb207/U235", self.ratio, self.se)


@dataclass(frozen=True)
class Pb206U238:
    """Radiogenic 206Pb/238U ratio."""

    ratio: float
    se: float = 0.0

    def __post_init__(self) -> None:
        _check("Pb206/U238", self.ratio, self.se)


@dataclass(frozen=True)
class Pb207Pb206:
    """Radiogenic 207Pb/206Pb ratio."""

    ratio: float
    se: float = 0.0

    def __post_init__(self) -> None:
        _check("Pb207/Pb206", self.ratio, self.se, positive=True)


@dataclass(frozen=True)
class Ar40Ar39:
    """Radiogenic 40Ar*/39Ar ratio with the irradiation J-factor."""

    ratio: float
    se: float
    J: float
    sJ: float = 0.0

    def __post_init__(self) -> None:
        _check("Ar40/Ar39", self.ratio, self.se)
        _check("J", self.J, self.sJ, positive=True)


@dataclass(frozen=True)
class UThHe:
    """U, Th, He (and optionally Sm) amounts of one aliquot.

    All four amounts must be expressed in the same molar units (e.g. nmol/g)
    so that He production can be compared atom for atom.
    """

    U: float
    sU: float
    Th: float
    sTh: float
    He: float
    sHe: float
    Sm: Optional[float] = None
    sSm: float = 0.0

    def __post_init__(self) -> None:
        _check("U", self.U, self.sU)
        _check("Th", self.Th, self.sTh)
        _check("He", self.He, self.sHe)
        if self.Sm is None:
            if self.sSm != 0:
                raise InvalidInputError("sSm given without Sm.")
        else:
            _check("Sm", self.Sm, self.sSm)
        if self.U + self.Th + (self.Sm or 0.0) <= 0 and self.He > 0:
            raise InvalidInputError("He without any parent nuclide is non-physical.")

    @property
    def has_sm(self) -> bool:
        return self.Sm is not None

    def values(self) -> np.ndarray:
        """(U, Th, He, Sm) with Sm = 0 when absent."""
        return np.array([self.U, self.Th, self.He, self.Sm or 0.0])

    def variances(self) -> np.ndarray:
        return np.array([self.sU, self.sTh, self.sHe, self.sSm]) ** 2


@dataclass(frozen=True)
class UPbAnalysis:
    """Paired Wetherill ratios of one U-Pb analysis.

    Attributes:
        Pb207U235: 207Pb/235U ratio.
        s75: Its standard error.
        Pb206U238: 206Pb/238U ratio.
        s68: Its standard error.
        rho: Error correlation between the two ratios.
    """

    Pb207U235: float
    s75: float
    Pb206U238: float
    s68: float
    rho: float = 0.0

    def __post_init__(self) -> None:
        _check("Pb207/U235", self.Pb207U235, self.s75, positive=True)
        _check("Pb206/U238", self.Pb206U238, self.s68, positive=True)
        if not -1.0 <= self.rho <= 1.0:
            raise InvalidInputError(
                f"Error correlation must lie in [-1, 1], got {self.rho!r}"
            )

    @classmethod
    def from_tera_wasserburg(
        cls,
        U238Pb206: float,
        s86: float,
        Pb207Pb206: float,
        s76: float,
        rho: float = 0.0,
        constants: DecayConstants = DEFAULT_DECAY_CONSTANTS,
    ) -> "UPbAnalysis":
        """Build an analysis from 238U/206Pb and 207Pb/206Pb ratios."""
        _check("U238/Pb206", U238Pb206, s86, positive=True)
        _check("Pb207/Pb206", Pb207Pb206, s76, positive=True)
        if not -1.0 <= rho <= 1.0:
            raise InvalidInputError(
                f"Error correlation must lie in [-1, 1], got {rho!r}"
            )
        u = constants.U238U235
        cov = np.array([[s86**2, rho * s86 * s76], [rho * s86 * s76, s76**2]])

        def to_wetherill(v: np.ndarray) -> np.ndarray:
            return np.array([v[1] * u / v[0], 1.0 / v[0]])

        def jacobian(v: np.ndarray) -> np.ndarray:
            return np.array(
                [[-v[1] * u / v[0] ** 2, u / v[0]], [-1.0 / v[0] ** 2, 0.0]]
            )

        x, c = propagate(to_wetherill, jacobian, [U238Pb206, Pb207Pb206], cov)
        s75, s68 = math.sqrt(c[0, 0]), math.sqrt(c[1, 1])
        r = c[0, 1] / (s75 * s68) if s75 > 0 and s68 > 0 else 0.0
        return cls(float(x[0]), s75, float(x[1]), s68, float(np.clip(r, -1.0, 1.0)))

    def wetherill(self) -> Tuple[np.ndarray, np.ndarray]:
        """(207Pb/235U, 206Pb/238U) and their covariance."""
        c = self.rho * self.s75 * self.s68
        return (
            np.array([self.Pb207U235, self.Pb206U238]),
            np.array([[self.s75**2, c], [c, self.s68**2]]),
        )

    def tera_wasserburg(
        self, constants: DecayConstants = DEFAULT_DECAY_CONSTANTS
    ) -> Tuple[np.ndarray, np.ndarray]:
        """(238U/206Pb, 207Pb/206Pb) and their covariance."""
        u = constants.U238U235
        x, cov = self.wetherill()

        def to_tw(v: np.ndarray) -> np.ndarray:
            return np.array([1.0 / v[1], v[0] / (u * v[1])])

        def jacobian(v: np.ndarray) -> np.ndarray:
            return np.array(
                [[0.0, -1.0 / v[1] ** 2], [1.0 / (u * v[1]), -v[0] / (u * v[1] ** 2)]]
            )

        return propagate(to_tw, jacobian, x, cov)

    def composition(
        self,
        wetherill: bool = True,
        constants: DecayConstants = DEFAULT_DECAY_CONSTANTS,
    ) -> Tuple[np.ndarray, np.ndarray]:
        return self.wetherill() if wetherill else self.tera_wasserburg(constants)


@dataclass(frozen=True)
class AnalysisSet:
    """Ordered, non-empty collection of analyses of a single type."""

    analyses: Tuple

    def __post_init__(self) -> None:
        items = tuple(self.analyses)
        object.__setattr__(self, "analyses", items)
        if not items:
            raise InvalidInputError("An analysis set needs at least one analysis.")
        kinds = {type(a) for a in items}
        if len(kinds) > 1:
            names = sorted(k.__name__ for k in kinds)
            raise InvalidInputError(f"Analysis set mixes measurement types: {names}")

    @classmethod
    def of(cls, analyses: Iterable, kind: Optional[Type] = None) -> "AnalysisSet":
        """Coerce ``analyses`` into a set, optionally checking its type."""
        out = analyses if isinstance(analyses, cls) else cls(tuple(analyses))
        if kind is not None and out.kind is not kind:
            raise InvalidInputError(
                f"Expected {kind.__name__} analyses, got {out.kind.__name__}."
            )
        return out

    @property
    def kind(self) -> Type:
        return type(self.analyses[0])

    def __len__(self) -> int:
        return len(self.analyses)

    def __iter__(self) -> Iterator:
        return iter(self.analyses)

    def __getitem__(self, index):
        return self.analyses[index]
