"""Decay constants and solver defaults.

All decay constants are expressed per million years so that every age in the
package is in Ma. The table is an immutable value passed explicitly to each
computation; nothing in the package reads process-wide state.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from .errors import InvalidInputError

DEFAULT_TOLERANCE: float = 1e-10
DEFAULT_MAX_ITERATIONS: int = 200
DEFAULT_REL_STEP: float = 1e-6

# Ages are searched in [AGE_FLOOR, MAX_AGE] Ma unless stated otherwise.
AGE_FLOOR: float = 1e-6
MAX_AGE: float = 10000.0
MIN_INTERCEPT_AGE: float = -1000.0


@dataclass(frozen=True)
class DecayConstant:
    """A decay constant (Ma^-1) and its standard error."""

    value: float
    se: float = 0.0

    def __post_init__(self) -> None:
        if not self.value > 0:
            raise InvalidInputError(
                f"Decay constant must be positive, got {self.value!r}"
            )
        if not self.se >= 0:
            raise InvalidInputError(
                f"Decay constant error must be >= 0, got {self.se!r}"
            )

    @property
    def variance(self) -> float:
        return float(self.se) ** 2


@dataclass(frozen=True)
class DecayConstants:
    """Reference data consumed by the age formulas.

    Attributes:
        U238: 238U decay constant (Jaffey et al., 1971).
        U235: 235U decay constant (Jaffey et al., 1971).
        Th232: 232Th decay constant (Le Roux & Glendenin, 1963).
        Sm147: 147Sm decay constant (Lugmair & Marti, 1978).
        K40: total 40K decay constant (Steiger & Jäger, 1977).
        U238U235: present-day 238U/235U ratio (Hiess et al., 2012).
        Sm147_abundance: atomic fraction of 147Sm in natural Sm.
    """

    U238: DecayConstant = DecayConstant(1.55125e-4, 8.3e-8)
    U235: DecayConstant = DecayConstant(9.8485e-4, 6.7e-7)
    Th232: DecayConstant = DecayConstant(4.9475e-5, 3.55e-8)
    Sm147: DecayConstant = DecayConstant(6.54e-6, 5.0e-8)
    K40: DecayConstant = DecayConstant(5.543e-4, 1.0e-6)
    U238U235: float = 137.818
    Sm147_abundance: float = 0.1499

    def with_values(self, **changes) -> "DecayConstants":
        """Return a copy with some entries replaced."""
        return replace(self, **changes)


DEFAULT_DECAY_CONSTANTS = DecayConstants()
