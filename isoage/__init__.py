"""
A Python package for computing radiometric ages and their uncertainties.

Computes single-analysis ages, weighted mean and concordia ages, isochrons,
discordia intercepts and central ages, with MSWD and p-values that quantify
whether analyses are statistically equivalent.

Modules:
    - measurements: Typed measurement constructors per geochronometer.
    - analysis: Public entry points and per-analysis age tables.
    - constants: Decay constants and solver defaults.
    - results: Value objects returned by every computation.
    - stats: Uncertainty propagation, weighted means, regression and MSWD.
    - geochron: U-Pb, Ar-Ar and U-Th-He age equations.
"""

__version__ = "1.0.0"

from .analysis import (
    arar_age_table,
    arar_isochron,
    central_age,
    discordia_age,
    discordia_intercepts,
    regress,
    single_age,
    uthhe_age_table,
    upb_age_table,
    weighted_mean,
)
from .constants import DEFAULT_DECAY_CONSTANTS, DecayConstant, DecayConstants
from .errors import (
    InvalidInputError,
    IsoageError,
    NonConvergenceWarning,
    SingularSystemError,
    UndefinedStatisticError,
)
from .measurements import (
    AnalysisSet,
    Ar40Ar39,
    Pb206U238,
    Pb207Pb206,
    Pb207U235,
    UPbAnalysis,
    UThHe,
)
from .results import (
    AgeEstimate,
    CentralAgeResult,
    FitStatistics,
    IsochronResult,
    RegressionFit,
    WeightedMeanResult,
)

__all__ = [
    # Entry points
    "single_age",
    "weighted_mean",
    "regress",
    "discordia_intercepts",
    "discordia_age",
    "central_age",
    "arar_isochron",
    "upb_age_table",
    "arar_age_table",
    "uthhe_age_table",
    # Measurements
    "AnalysisSet",
    "Ar40Ar39",
    "Pb206U238",
    "Pb207Pb206",
    "Pb207U235",
    "UPbAnalysis",
    "UThHe",
    # Results
    "AgeEstimate",
    "CentralAgeResult",
    "FitStatistics",
    "IsochronResult",
    "RegressionFit",
    "WeightedMeanResult",
    # Configuration
    "DecayConstant",
    "DecayConstants",
    "DEFAULT_DECAY_CONSTANTS",
    # Errors
    "IsoageError",
    "InvalidInputError",
    "SingularSystemError",
    "UndefinedStatisticError",
    "NonConvergenceWarning",
]
