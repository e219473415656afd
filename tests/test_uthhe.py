import math

import numpy as np
import pytest

from isoage.errors import (
    InvalidInputError,
    NonConvergenceWarning,
    UndefinedStatisticError,
)
from isoage.geochron.uthhe import (
    central_age,
    he_production,
    log_ratio_composition,
    solve_uthhe_age,
    uthhe_age,
)
from isoage.measurements import UThHe
from isoage.stats.weighted_mean import gls_mean


def lambdas(constants):
    return [
        constants.U238.value,
        constants.U235.value,
        constants.Th232.value,
        constants.Sm147.value,
    ]


def helium(t, U, Th, Sm, constants):
    return he_production(
        t, U, Th, Sm, lambdas(constants), constants.U238U235, constants.Sm147_abundance
    )


@pytest.fixture
def aliquot(constants):
    he = helium(50.0, 10.0, 20.0, 0.0, constants)
    return UThHe(10.0, 0.1, 20.0, 0.2, he, 0.01 * he)


def test_age_inverts_helium_production(constants):
    for t in (0.5, 50.0, 500.0, 4000.0):
        he = helium(t, 10.0, 25.0, 100.0, constants)
        age, ok = solve_uthhe_age(
            10.0, 25.0, he, 100.0, lambdas(constants), constants.U238U235,
            constants.Sm147_abundance,
        )
        assert ok
        assert math.isclose(age, t, rel_tol=1e-9)


def test_zero_errors_give_zero_age_error(constants):
    he = helium(50.0, 10.0, 20.0, 0.0, constants)
    age = uthhe_age(UThHe(10.0, 0.0, 20.0, 0.0, he, 0.0))
    assert math.isclose(age.value, 50.0, rel_tol=1e-9)
    assert age.se == 0.0


def test_samarium_contributes_helium(constants):
    he = helium(50.0, 10.0, 20.0, 500.0, constants)
    with_sm = uthhe_age(UThHe(10.0, 0.1, 20.0, 0.2, he, 0.01 * he, 500.0, 5.0))
    without = uthhe_age(UThHe(10.0, 0.1, 20.0, 0.2, he, 0.01 * he))
    assert math.isclose(with_sm.value, 50.0, rel_tol=1e-9)
    assert without.value > with_sm.value


def test_scaling_errors_scales_age_error(constants):
    he = helium(50.0, 10.0, 20.0, 0.0, constants)
    a = uthhe_age(UThHe(10.0, 0.1, 20.0, 0.2, he, 0.01 * he), dcu=False)
    b = uthhe_age(UThHe(10.0, 0.2, 20.0, 0.4, he, 0.02 * he), dcu=False)
    assert math.isclose(b.se, 2.0 * a.se, rel_tol=1e-9)


def test_no_helium_means_zero_age():
    age = uthhe_age(UThHe(10.0, 0.1, 20.0, 0.2, 0.0, 0.0))
    assert age.value == 0.0


def test_helium_error_at_zero_helium(constants):
    # dt/dHe at t = 0 is the inverse of the initial He production rate.
    u = constants.U238U235
    rate = (
        8.0 * 10.0 * u / (1.0 + u) * constants.U238.value
        + 7.0 * 10.0 / (1.0 + u) * constants.U235.value
        + 6.0 * 20.0 * constants.Th232.value
    )
    age = uthhe_age(UThHe(10.0, 0.0, 20.0, 0.0, 0.0, 0.01), dcu=False)
    assert age.value == 0.0
    assert math.isclose(age.se, 0.01 / rate, rel_tol=1e-4)


@pytest.mark.parametrize("s", [0.0, 0.01])
def test_iteration_cap_is_reported(constants, s):
    he = helium(50.0, 10.0, 20.0, 0.0, constants)
    with pytest.warns(NonConvergenceWarning):
        age = uthhe_age(UThHe(10.0, s, 20.0, s, he, s * he), max_iter=1)
    assert age.converged is False
    assert math.isfinite(age.value) and age.value > 0


def test_helium_without_parents_is_rejected():
    with pytest.raises(InvalidInputError):
        UThHe(0.0, 0.0, 0.0, 0.0, 1.0, 0.1)


def test_log_ratio_partials(aliquot):
    x, cov = log_ratio_composition(aliquot, with_sm=False)
    assert np.allclose(x, [math.log(aliquot.U / aliquot.He), math.log(aliquot.Th / aliquot.He)])
    rel_he = (aliquot.sHe / aliquot.He) ** 2
    expected = np.array(
        [[(0.1 / 10.0) ** 2 + rel_he, rel_he], [rel_he, (0.2 / 20.0) ** 2 + rel_he]]
    )
    assert np.allclose(cov, expected)


class TestCentralAge:
    """Central ages of replicate aliquots."""

    def test_identical_aliquots(self, aliquot):
        result = central_age([aliquot, aliquot])
        assert math.isclose(result.age.value, 50.0, rel_tol=1e-8)
        assert math.isclose(result.mswd, 0.0, abs_tol=1e-12)
        assert math.isclose(result.p_value, 1.0)
        assert result.equivalence.dof == 2
        # Replicates halve the variance of the mean composition.
        _, cov = log_ratio_composition(aliquot, with_sm=False)
        assert np.allclose(result.covariance, cov / 2.0)

    def test_overdispersion_inflates_covariance(self, constants):
        young = helium(40.0, 10.0, 20.0, 0.0, constants)
        old = helium(60.0, 10.0, 20.0, 0.0, constants)
        analyses = [
            UThHe(10.0, 0.1, 20.0, 0.2, young, 0.01 * young),
            UThHe(10.0, 0.1, 20.0, 0.2, old, 0.01 * old),
        ]
        result = central_age(analyses)
        comps = [log_ratio_composition(m, with_sm=False) for m in analyses]
        _, cov, _, _ = gls_mean([c[0] for c in comps], [c[1] for c in comps])
        assert result.mswd > 1
        assert np.allclose(result.covariance, cov * result.mswd)
        assert 40.0 < result.age.value < 60.0

    def test_single_aliquot_has_undefined_mswd(self, aliquot):
        result = central_age([aliquot])
        assert result.equivalence.dof == 0
        assert math.isnan(result.mswd)
        assert math.isclose(result.age.value, 50.0, rel_tol=1e-8)

    def test_entry_point_raises_for_single_aliquot(self, aliquot):
        from isoage.analysis import central_age as central_age_entry

        with pytest.raises(UndefinedStatisticError) as excinfo:
            central_age_entry([aliquot])
        assert math.isclose(excinfo.value.result.age.value, 50.0, rel_tol=1e-8)
