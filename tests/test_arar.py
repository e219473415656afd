import math

import numpy as np
import pytest

from isoage.errors import InvalidInputError
from isoage.geochron.arar import ar40ar39_age, arar_isochron
from isoage.measurements import Ar40Ar39
from isoage.stats.propagation import propagate_numerically

J = 0.01


def radiogenic_ratio(t, constants):
    return math.expm1(constants.K40.value * t) / J


def test_age_inverts_decay_law(constants):
    age = ar40ar39_age(Ar40Ar39(radiogenic_ratio(100.0, constants), 0.1, J, 1e-5))
    assert math.isclose(age.value, 100.0, rel_tol=1e-12)


@pytest.mark.parametrize("dcu", [True, False])
def test_zero_errors_give_zero_age_error(constants, dcu):
    age = ar40ar39_age(Ar40Ar39(radiogenic_ratio(50.0, constants), 0.0, J), dcu=dcu)
    assert age.se == 0.0


def test_partials_agree_with_central_differences(constants):
    ratio = radiogenic_ratio(300.0, constants)
    lam = constants.K40
    age = ar40ar39_age(Ar40Ar39(ratio, 0.2, J, 2e-5))
    _, var = propagate_numerically(
        lambda v: math.log1p(v[0] * v[1]) / v[2],
        [ratio, J, lam.value],
        [0.04, 4e-10, lam.variance],
    )
    assert math.isclose(age.variance, var, rel_tol=1e-6)


def test_scaling_errors_scales_age_error(constants):
    ratio = radiogenic_ratio(300.0, constants)
    a = ar40ar39_age(Ar40Ar39(ratio, 0.2, J, 2e-5), dcu=False)
    b = ar40ar39_age(Ar40Ar39(ratio, 0.6, J, 6e-5), dcu=False)
    assert math.isclose(b.se, 3.0 * a.se, rel_tol=1e-12)


def test_non_positive_j_is_rejected():
    with pytest.raises(InvalidInputError):
        Ar40Ar39(10.0, 0.1, 0.0)


class TestIsochron:
    """Normal 40Ar/36Ar vs 39Ar/36Ar isochrons."""

    def test_recovers_initial_ratio_and_age(self, constants):
        slope = radiogenic_ratio(100.0, constants)
        x = np.array([10.0, 50.0, 100.0, 200.0, 400.0])
        y = 295.5 + slope * x
        result = arar_isochron(x, 0.01 * x, y, 0.01 * y, rho=0.5, J=J, sJ=1e-5)
        assert math.isclose(result.y0.value, 295.5, rel_tol=1e-6)
        assert math.isclose(result.age.value, 100.0, rel_tol=1e-6)
        assert result.age.se > 0
        assert result.age.stats.dof == 3
        assert result.fit.converged

    def test_invalid_j(self):
        with pytest.raises(InvalidInputError):
            arar_isochron([1, 2, 3], [0.1] * 3, [1, 2, 3], [0.1] * 3, J=-1.0)
