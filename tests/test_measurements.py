import math

import numpy as np
import pytest

from conftest import concordant_ratios
from isoage.constants import DecayConstant
from isoage.errors import InvalidInputError
from isoage.measurements import AnalysisSet, Ar40Ar39, UPbAnalysis, UThHe


def test_tera_wasserburg_conversion_is_consistent(constants):
    r75, r68 = concordant_ratios(1200.0)
    a = UPbAnalysis(r75, 0.01 * r75, r68, 0.008 * r68, rho=0.7)
    tw, cov = a.tera_wasserburg(constants)
    assert math.isclose(tw[0], 1.0 / r68)
    assert math.isclose(tw[1], r75 / (constants.U238U235 * r68))
    b = UPbAnalysis.from_tera_wasserburg(
        tw[0], math.sqrt(cov[0, 0]), tw[1], math.sqrt(cov[1, 1]),
        rho=cov[0, 1] / math.sqrt(cov[0, 0] * cov[1, 1]),
    )
    assert math.isclose(b.Pb207U235, r75, rel_tol=1e-12)
    assert math.isclose(b.Pb206U238, r68, rel_tol=1e-12)
    assert math.isclose(b.s75, a.s75, rel_tol=1e-9)
    assert math.isclose(b.rho, a.rho, rel_tol=1e-9)


def test_wetherill_covariance():
    a = UPbAnalysis(1.0, 0.01, 0.1, 0.001, rho=0.5)
    x, cov = a.wetherill()
    assert np.allclose(x, [1.0, 0.1])
    assert np.allclose(cov, [[1e-4, 5e-6], [5e-6, 1e-6]])


@pytest.mark.parametrize(
    "build",
    [
        lambda: UPbAnalysis(1.0, 0.01, 0.1, 0.001, rho=1.5),
        lambda: UPbAnalysis(0.0, 0.01, 0.1, 0.001),
        lambda: UPbAnalysis(1.0, math.nan, 0.1, 0.001),
        lambda: Ar40Ar39(10.0, -0.1, 0.01),
        lambda: UThHe(10.0, 0.1, 20.0, 0.2, 1.0, 0.01, None, 0.5),
        lambda: UThHe(-1.0, 0.1, 20.0, 0.2, 1.0, 0.01),
        lambda: DecayConstant(-1.0),
    ],
)
def test_invalid_measurements(build):
    with pytest.raises(InvalidInputError):
        build()


class TestAnalysisSet:
    def test_ordered_and_indexable(self):
        a = UThHe(10.0, 0.1, 20.0, 0.2, 1.0, 0.01)
        b = UThHe(11.0, 0.1, 21.0, 0.2, 1.1, 0.01)
        data = AnalysisSet.of([a, b])
        assert len(data) == 2
        assert data[0] is a
        assert list(data) == [a, b]
        assert data.kind is UThHe

    def test_empty_set(self):
        with pytest.raises(InvalidInputError):
            AnalysisSet(())

    def test_mixed_types(self):
        with pytest.raises(InvalidInputError):
            AnalysisSet.of(
                [UThHe(10.0, 0.1, 20.0, 0.2, 1.0, 0.01), Ar40Ar39(10.0, 0.1, 0.01)]
            )

    def test_expected_kind(self):
        with pytest.raises(InvalidInputError):
            AnalysisSet.of([Ar40Ar39(10.0, 0.1, 0.01)], UPbAnalysis)
