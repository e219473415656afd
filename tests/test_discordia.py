import math

import numpy as np
import pytest

from conftest import concordant_ratios
from isoage.analysis import discordia_age, regress
from isoage.errors import InvalidInputError, NonConvergenceWarning
from isoage.geochron.discordia import discordia_intercepts
from isoage.geochron.upb import pb76_ratio
from isoage.measurements import UPbAnalysis
from isoage.results import RegressionFit
from isoage.stats.mswd import fit_statistics


def chord(t1, t2):
    """Wetherill points at two concordant ages and their midpoint."""
    p1 = np.array(concordant_ratios(t1))
    p2 = np.array(concordant_ratios(t2))
    return np.array([p1, 0.5 * (p1 + p2), p2])


def line(a, b, cov=None):
    return RegressionFit(
        intercept=a,
        slope=b,
        cov=np.zeros((2, 2)) if cov is None else cov,
        stats=fit_statistics(0.0, 0),
        method="york",
    )


def test_wetherill_intercepts_recover_chord_ages():
    pts = chord(100.0, 1000.0)
    fit = regress(pts[:, 0], pts[:, 1], np.zeros(3), np.zeros(3))
    assert fit.mswd == 0.0
    ages = discordia_intercepts(fit)
    assert ages.value.shape == (2,)
    assert math.isclose(ages.value[0], 100.0, rel_tol=1e-6)
    assert math.isclose(ages.value[1], 1000.0, rel_tol=1e-6)


def test_intercept_errors_come_from_fit_and_decay_constants():
    pts = chord(100.0, 1000.0)
    b = (pts[2, 1] - pts[0, 1]) / (pts[2, 0] - pts[0, 0])
    a = pts[0, 1] - b * pts[0, 0]
    exact = discordia_intercepts(line(a, b), dcu=False)
    assert np.array_equal(exact.cov, np.zeros((2, 2)))
    cov = np.array([[1e-8, -1e-9], [-1e-9, 1e-8]])
    uncertain = discordia_intercepts(line(a, b, cov), dcu=False)
    with_dcu = discordia_intercepts(line(a, b, cov), dcu=True)
    assert np.all(uncertain.se > 0)
    assert np.all(with_dcu.se > uncertain.se)
    assert np.allclose(uncertain.cov, uncertain.cov.T)


def test_intercept_iteration_cap_is_reported():
    pts = chord(100.0, 1000.0)
    b = (pts[2, 1] - pts[0, 1]) / (pts[2, 0] - pts[0, 0])
    a = pts[0, 1] - b * pts[0, 0]
    cov = np.array([[1e-8, -1e-9], [-1e-9, 1e-8]])
    with pytest.warns(NonConvergenceWarning):
        ages = discordia_intercepts(line(a, b, cov), max_iter=1)
    assert ages.converged is False
    assert ages.value.shape == (2,)
    assert np.all(np.isfinite(ages.value))
    assert ages.value[0] < ages.value[1]


def test_tera_wasserburg_lower_intercept_and_common_lead(constants):
    l5, l8 = constants.U235.value, constants.U238.value
    t = 500.0
    x = 1.0 / math.expm1(l8 * t)
    y = pb76_ratio(t, l5, l8, constants.U238U235)
    a = 0.85
    b = (y - a) / x
    result = discordia_intercepts(line(a, b), wetherill=False)
    assert math.isclose(result.value[0], 500.0, rel_tol=1e-6)
    assert math.isclose(result.value[1], 0.85)


def test_line_missing_concordia_is_rejected():
    with pytest.raises(InvalidInputError):
        discordia_intercepts(line(10.0, 0.0))


def test_discordia_age_from_analyses():
    pts = chord(300.0, 2000.0)
    fractions = [0.0, 0.25, 0.5, 0.75, 1.0]
    analyses = []
    for f in fractions:
        x, y = pts[0] + f * (pts[2] - pts[0])
        analyses.append(UPbAnalysis(x, 0.005 * x, y, 0.005 * y, rho=0.5))
    result = discordia_age(analyses)
    assert math.isclose(result.value[0], 300.0, rel_tol=1e-6)
    assert math.isclose(result.value[1], 2000.0, rel_tol=1e-6)
    assert result.stats.dof == 3
    assert np.all(result.se > 0)
