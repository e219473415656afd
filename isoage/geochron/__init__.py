"""
Geochronometer-specific age equations.

Modules:
    upb:
        207Pb/235U, 206Pb/238U and 207Pb/206Pb ages; the concordia curve in
        Wetherill and Tera-Wasserburg coordinates.

    concordia:
        Weighted mean U-Pb compositions and concordia ages.

    discordia:
        Intercepts of a discordia line with concordia.

    arar:
        40Ar/39Ar ages and isochrons.

    uthhe:
        U-Th-(Sm)-He ages and central ages.
"""

from .arar import ar40ar39_age, arar_isochron
from .concordia import concordia_age, concordia_weighted_mean, mean_composition
from .discordia import discordia_intercepts
from .upb import pb206u238_age, pb207pb206_age, pb207u235_age
from .uthhe import central_age, uthhe_age

__all__ = [
    "ar40ar39_age",
    "arar_isochron",
    "central_age",
    "concordia_age",
    "concordia_weighted_mean",
    "discordia_intercepts",
    "mean_composition",
    "pb206u238_age",
    "pb207pb206_age",
    "pb207u235_age",
    "uthhe_age",
]
