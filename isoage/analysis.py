"""
Radiometric age computation entry points.

This module turns typed measurements into ages and aggregates analyses into
combined estimates:
- Single-analysis ages with first-order uncertainty propagation
  (207Pb/235U, 206Pb/238U, 207Pb/206Pb, concordia, 40Ar/39Ar, U-Th-(Sm)-He).
- Weighted mean U-Pb compositions with concordia ages and the MSWD of
  equivalence and concordance.
- Errors-in-variables line fits (isochrons, discordia lines) and the
  concordia intercepts of a discordia line.
- U-Th-He central ages from weighted mean log-ratio compositions.
- Per-analysis age tables as pandas DataFrames.

Every function is pure: decay constants are passed in explicitly
(``DEFAULT_DECAY_CONSTANTS`` by default) and nothing is cached between calls.
The ``dcu`` flag adds decay constant uncertainties to the propagated error.
"""

from __future__ import annotations

import logging
from functools import singledispatch
from typing import Iterable

import numpy as np
import pandas as pd

from .constants import (
    DEFAULT_DECAY_CONSTANTS,
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_REL_STEP,
    DEFAULT_TOLERANCE,
    DecayConstants,
)
from .errors import InvalidInputError, UndefinedStatisticError
from .geochron import arar, concordia, discordia, upb, uthhe
from .measurements import (
    Ar40Ar39,
    AnalysisSet,
    Pb206U238,
    Pb207Pb206,
    Pb207U235,
    UPbAnalysis,
    UThHe,
)
from .results import (
    AgeEstimate,
    CentralAgeResult,
    IsochronResult,
    RegressionFit,
    WeightedMeanResult,
)
from .schema import COLUMNS
from .stats.regression import york

logger = logging.getLogger(__name__)


@singledispatch
def single_age(
    measurement,
    dcu: bool = True,
    constants: DecayConstants = DEFAULT_DECAY_CONSTANTS,
) -> AgeEstimate:
    """Age (Ma) of one measurement with its propagated variance.

    Args:
        measurement: One of :class:`Pb207U235`, :class:`Pb206U238`,
            :class:`Pb207Pb206`, :class:`UPbAnalysis` (concordia age),
            :class:`Ar40Ar39` or :class:`UThHe`.
        dcu (bool, optional): Include decay constant uncertainties.
            Defaults to True.
        constants (DecayConstants, optional): Decay constant table.

    Returns:
        AgeEstimate: Scalar age and variance. A measurement with zero
        standard errors gives an exactly zero variance.

    Raises:
        InvalidInputError: For unsupported objects or non-physical ratios.
    """
    raise InvalidInputError(
        f"No age formula for measurements of type {type(measurement).__name__}."
    )


@single_age.register
def _(measurement: Pb207U235, dcu=True, constants=DEFAULT_DECAY_CONSTANTS):
    return upb.pb207u235_age(measurement, dcu=dcu, constants=constants)


@single_age.register
def _(measurement: Pb206U238, dcu=True, constants=DEFAULT_DECAY_CONSTANTS):
    return upb.pb206u238_age(measurement, dcu=dcu, constants=constants)


@single_age.register
def _(measurement: Pb207Pb206, dcu=True, constants=DEFAULT_DECAY_CONSTANTS):
    return upb.pb207pb206_age(measurement, dcu=dcu, constants=constants)


@single_age.register
def _(measurement: UPbAnalysis, dcu=True, constants=DEFAULT_DECAY_CONSTANTS):
    x, cov = measurement.wetherill()
    age, _ = concordia.concordia_age(x, cov, dcu=dcu, constants=constants)
    return age


@single_age.register
def _(measurement: Ar40Ar39, dcu=True, constants=DEFAULT_DECAY_CONSTANTS):
    return arar.ar40ar39_age(measurement, dcu=dcu, constants=constants)


@single_age.register
def _(measurement: UThHe, dcu=True, constants=DEFAULT_DECAY_CONSTANTS):
    return uthhe.uthhe_age(measurement, dcu=dcu, constants=constants)


def weighted_mean(
    analyses: Iterable[UPbAnalysis],
    wetherill: bool = True,
    dcu: bool = True,
    constants: DecayConstants = DEFAULT_DECAY_CONSTANTS,
    max_iter: int = DEFAULT_MAX_ITERATIONS,
) -> WeightedMeanResult:
    """Weighted mean U-Pb composition and its concordia age.

    Args:
        analyses: U-Pb analyses (an :class:`AnalysisSet` or any iterable).
        wetherill (bool, optional): Average in Wetherill space if True,
            Tera-Wasserburg space otherwise.
        dcu (bool, optional): Include decay constant uncertainties in the
            concordia age.

    Returns:
        WeightedMeanResult: Composition, equivalence statistics with
        ``2 (n - 1)`` degrees of freedom, concordia age and concordance
        statistics with one degree of freedom.

    Raises:
        UndefinedStatisticError: For a single analysis, where the MSWD of
            equivalence is undefined. The complete result is attached as
            ``exc.result``.
        SingularSystemError: If the analyses cannot be combined.
    """
    data = AnalysisSet.of(analyses, UPbAnalysis)
    result = concordia.concordia_weighted_mean(
        data.analyses,
        wetherill=wetherill,
        dcu=dcu,
        constants=constants,
        max_iter=max_iter,
    )
    if not result.equivalence.defined:
        raise UndefinedStatisticError(
            "MSWD of equivalence is undefined for a single analysis.", result=result
        )
    return result


def regress(
    x,
    y,
    sx,
    sy,
    rho=None,
    method: str = "york",
    tol: float = DEFAULT_TOLERANCE,
    max_iter: int = DEFAULT_MAX_ITERATIONS,
) -> RegressionFit:
    """Straight-line fit through points with correlated x/y errors.

    See :func:`isoage.stats.regression.york` for the available methods.
    """
    return york(x, y, sx, sy, rho=rho, method=method, tol=tol, max_iter=max_iter)


def discordia_intercepts(
    fit: RegressionFit,
    wetherill: bool = True,
    dcu: bool = True,
    constants: DecayConstants = DEFAULT_DECAY_CONSTANTS,
    max_iter: int = DEFAULT_MAX_ITERATIONS,
    rel_step: float = DEFAULT_REL_STEP,
) -> AgeEstimate:
    """Concordia intercepts of a discordia line.

    See :func:`isoage.geochron.discordia.discordia_intercepts`.
    """
    return discordia.discordia_intercepts(
        fit,
        wetherill=wetherill,
        dcu=dcu,
        constants=constants,
        max_iter=max_iter,
        rel_step=rel_step,
    )


def discordia_age(
    analyses: Iterable[UPbAnalysis],
    wetherill: bool = True,
    dcu: bool = True,
    method: str = "york",
    constants: DecayConstants = DEFAULT_DECAY_CONSTANTS,
    max_iter: int = DEFAULT_MAX_ITERATIONS,
) -> AgeEstimate:
    """Regress a discordia line through U-Pb analyses and intersect concordia.

    Returns:
        AgeEstimate: Intercepts as described in
        :func:`discordia_intercepts`; ``stats`` carries the regression MSWD
        with ``n - 2`` degrees of freedom.
    """
    data = AnalysisSet.of(analyses, UPbAnalysis)
    comps = [a.composition(wetherill, constants) for a in data]
    xy = np.array([c[0] for c in comps])
    covs = np.array([c[1] for c in comps])
    sx = np.sqrt(covs[:, 0, 0])
    sy = np.sqrt(covs[:, 1, 1])
    denom = sx * sy
    rho = np.divide(covs[:, 0, 1], denom, out=np.zeros(len(data)), where=denom > 0)
    rho = np.clip(rho, -1.0, 1.0)
    fit = york(xy[:, 0], xy[:, 1], sx, sy, rho=rho, method=method, max_iter=max_iter)
    logger.debug("Discordia line: a=%.6g, b=%.6g", fit.intercept, fit.slope)
    return discordia.discordia_intercepts(
        fit, wetherill=wetherill, dcu=dcu, constants=constants, max_iter=max_iter
    )


def central_age(
    analyses: Iterable[UThHe],
    dcu: bool = True,
    constants: DecayConstants = DEFAULT_DECAY_CONSTANTS,
    max_iter: int = DEFAULT_MAX_ITERATIONS,
) -> CentralAgeResult:
    """U-Th-(Sm)-He central age of a set of aliquots.

    Raises:
        UndefinedStatisticError: For a single aliquot. The complete result
            is attached as ``exc.result``.
    """
    data = AnalysisSet.of(analyses, UThHe)
    result = uthhe.central_age(
        data.analyses, dcu=dcu, constants=constants, max_iter=max_iter
    )
    if not result.equivalence.defined:
        raise UndefinedStatisticError(
            "MSWD is undefined for the central age of a single aliquot.", result=result
        )
    return result


def arar_isochron(
    Ar39Ar36,
    s39_36,
    Ar40Ar36,
    s40_36,
    rho=None,
    J: float = 1.0,
    sJ: float = 0.0,
    dcu: bool = True,
    method: str = "york",
    constants: DecayConstants = DEFAULT_DECAY_CONSTANTS,
) -> IsochronResult:
    """40Ar/39Ar isochron age (see :func:`isoage.geochron.arar.arar_isochron`)."""
    return arar.arar_isochron(
        Ar39Ar36,
        s39_36,
        Ar40Ar36,
        s40_36,
        rho=rho,
        J=J,
        sJ=sJ,
        dcu=dcu,
        method=method,
        constants=constants,
    )


def upb_age_table(
    analyses: Iterable[UPbAnalysis],
    dcu: bool = True,
    constants: DecayConstants = DEFAULT_DECAY_CONSTANTS,
) -> pd.DataFrame:
    """207Pb/235U, 206Pb/238U, 207Pb/206Pb and concordia ages per analysis."""
    data = AnalysisSet.of(analyses, UPbAnalysis)
    rows = []
    for i, a in enumerate(data):
        t75 = upb.pb207u235_age(Pb207U235(a.Pb207U235, a.s75), dcu, constants)
        t68 = upb.pb206u238_age(Pb206U238(a.Pb206U238, a.s68), dcu, constants)
        tw, tw_cov = a.tera_wasserburg(constants)
        t76 = upb.pb207pb206_age(
            Pb207Pb206(float(tw[1]), float(np.sqrt(tw_cov[1, 1]))), dcu, constants
        )
        x, cov = a.wetherill()
        tconc, conc = concordia.concordia_age(x, cov, dcu=dcu, constants=constants)
        rows.append(
            {
                COLUMNS.analysis: i,
                COLUMNS.t75: t75.value,
                COLUMNS.s75: t75.se,
                COLUMNS.t68: t68.value,
                COLUMNS.s68: t68.se,
                COLUMNS.t76: t76.value,
                COLUMNS.s76: t76.se,
                COLUMNS.tconc: tconc.value,
                COLUMNS.sconc: tconc.se,
                COLUMNS.mswd_conc: conc.mswd,
                COLUMNS.p_conc: conc.p_value,
                COLUMNS.converged: t76.converged and tconc.converged,
            }
        )
    return pd.DataFrame(rows)


def _single_age_table(data: AnalysisSet, dcu: bool, constants) -> pd.DataFrame:
    rows = []
    for i, m in enumerate(data):
        age = single_age(m, dcu=dcu, constants=constants)
        rows.append(
            {
                COLUMNS.analysis: i,
                COLUMNS.age: age.value,
                COLUMNS.s_age: age.se,
                COLUMNS.converged: age.converged,
            }
        )
    return pd.DataFrame(rows)


def arar_age_table(
    analyses: Iterable[Ar40Ar39],
    dcu: bool = True,
    constants: DecayConstants = DEFAULT_DECAY_CONSTANTS,
) -> pd.DataFrame:
    """40Ar/39Ar age and standard error per analysis."""
    return _single_age_table(AnalysisSet.of(analyses, Ar40Ar39), dcu, constants)


def uthhe_age_table(
    analyses: Iterable[UThHe],
    dcu: bool = True,
    constants: DecayConstants = DEFAULT_DECAY_CONSTANTS,
) -> pd.DataFrame:
    """U-Th-(Sm)-He age and standard error per aliquot."""
    return _single_age_table(AnalysisSet.of(analyses, UThHe), dcu, constants)
