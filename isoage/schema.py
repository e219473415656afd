"""Define standardized column names for per-analysis age tables."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class AgeColumns:
    """Container for standardized column labels.

    These column names are used by every age table built in
    :mod:`isoage.analysis`, so downstream code can select columns without
    knowing which geochronometer produced the table.

    Attributes:
        analysis: Zero-based position of the analysis in its input set.
        t75, s75: 207Pb/235U age and its standard error (Ma).
        t68, s68: 206Pb/238U age and its standard error (Ma).
        t76, s76: 207Pb/206Pb age and its standard error (Ma).
        tconc, sconc: Single-analysis concordia age and its standard
            error (Ma).
        mswd_conc, p_conc: Concordance MSWD and p-value of that age
            (one degree of freedom).
        age, s_age: Age and standard error for chronometers with a single
            age per analysis (Ar-Ar, U-Th-He).
        converged: Whether every root finder involved converged.
    """

    analysis: str = "Analysis"
    t75: str = "t 207Pb/235U (Ma)"
    s75: str = "s[t 207Pb/235U] (Ma)"
    t68: str = "t 206Pb/238U (Ma)"
    s68: str = "s[t 206Pb/238U] (Ma)"
    t76: str = "t 207Pb/206Pb (Ma)"
    s76: str = "s[t 207Pb/206Pb] (Ma)"
    tconc: str = "t concordia (Ma)"
    sconc: str = "s[t concordia] (Ma)"
    mswd_conc: str = "MSWD concordance"
    p_conc: str = "p(concordance)"
    age: str = "t (Ma)"
    s_age: str = "s[t] (Ma)"
    converged: str = "Converged"


COLUMNS = AgeColumns()
