import math

import numpy as np
import pandas as pd
import pytest

import isoage
from conftest import concordant_ratios
from isoage.analysis import (
    arar_age_table,
    single_age,
    upb_age_table,
    uthhe_age_table,
)
from isoage.errors import InvalidInputError
from isoage.geochron.upb import pb76_ratio
from isoage.measurements import (
    Ar40Ar39,
    Pb206U238,
    Pb207Pb206,
    Pb207U235,
    UPbAnalysis,
    UThHe,
)
from isoage.schema import COLUMNS


class TestSingleAge:
    """Single dispatch over the measurement types."""

    def test_dispatch_per_measurement_type(self, constants):
        r75, r68 = concordant_ratios(1000.0)
        r76 = pb76_ratio(
            1000.0, constants.U235.value, constants.U238.value, constants.U238U235
        )
        for m in (
            Pb207U235(r75, 0.01),
            Pb206U238(r68, 0.001),
            Pb207Pb206(r76, 0.0005),
            UPbAnalysis(r75, 0.01, r68, 0.001, 0.5),
        ):
            age = single_age(m)
            assert math.isclose(age.value, 1000.0, rel_tol=1e-8)
            assert age.se > 0

    @pytest.mark.parametrize("dcu", [True, False])
    def test_zero_standard_errors(self, constants, dcu):
        r75, r68 = concordant_ratios(250.0)
        ratio = math.expm1(constants.K40.value * 250.0) / 0.01
        for m in (
            Pb207U235(r75),
            Pb206U238(r68),
            UPbAnalysis(r75, 0.0, r68, 0.0),
            Ar40Ar39(ratio, 0.0, 0.01),
            UThHe(10.0, 0.0, 20.0, 0.0, 1.0, 0.0),
        ):
            assert single_age(m, dcu=dcu).se == 0.0

    def test_custom_decay_constants(self, constants):
        _, r68 = concordant_ratios(1000.0)
        slower = constants.with_values(
            U238=isoage.DecayConstant(constants.U238.value / 2.0, 0.0)
        )
        age = single_age(Pb206U238(r68, 0.001), constants=slower)
        assert math.isclose(age.value, 2000.0, rel_tol=1e-12)

    def test_unsupported_measurement(self):
        with pytest.raises(InvalidInputError):
            single_age((0.1, 0.01))


class TestAgeTables:
    """Per-analysis age tables."""

    def test_upb_table(self, concordant_1000):
        df = upb_age_table([concordant_1000, concordant_1000])
        assert isinstance(df, pd.DataFrame)
        assert len(df) == 2
        for col in (COLUMNS.t75, COLUMNS.t68, COLUMNS.t76, COLUMNS.tconc):
            assert np.allclose(df[col], 1000.0, rtol=1e-8)
        assert (df[COLUMNS.sconc] > 0).all()
        assert df[COLUMNS.converged].all()
        assert list(df[COLUMNS.analysis]) == [0, 1]

    def test_upb_table_young_grains(self):
        # Scatter puts the second 207Pb/206Pb ratio below its zero-age value.
        r75, r68 = concordant_ratios(10.0)
        df = upb_age_table(
            [
                UPbAnalysis(r75, 0.01 * r75, r68, 0.01 * r68),
                UPbAnalysis(0.99 * r75, 0.01 * r75, r68, 0.01 * r68),
            ]
        )
        assert len(df) == 2
        assert np.allclose(df[COLUMNS.t68], 10.0, rtol=1e-8)
        assert df[COLUMNS.t76].iloc[1] == 0.0
        assert np.all(np.isfinite(df[COLUMNS.s76]))
        assert (df[COLUMNS.s76] > 0).all()
        assert df[COLUMNS.converged].all()

    def test_arar_table(self, constants):
        ratio = math.expm1(constants.K40.value * 100.0) / 0.01
        df = arar_age_table([Ar40Ar39(ratio, 0.1, 0.01), Ar40Ar39(ratio, 0.2, 0.01)])
        assert set(df.columns) >= {COLUMNS.age, COLUMNS.s_age, COLUMNS.converged}
        assert np.allclose(df[COLUMNS.age], 100.0, rtol=1e-12)
        assert df[COLUMNS.s_age].iloc[1] > df[COLUMNS.s_age].iloc[0]

    def test_uthhe_table(self):
        df = uthhe_age_table([UThHe(10.0, 0.1, 20.0, 0.2, 1.0, 0.01)])
        assert len(df) == 1
        assert df[COLUMNS.age].iloc[0] > 0

    def test_table_rejects_wrong_measurement_type(self, concordant_1000):
        with pytest.raises(InvalidInputError):
            arar_age_table([concordant_1000])


def test_public_api_exports():
    for name in isoage.__all__:
        assert hasattr(isoage, name)
