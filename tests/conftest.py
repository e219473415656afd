"""Pytest configuration for repository-relative imports."""

import math
import os
import sys

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from isoage.constants import DEFAULT_DECAY_CONSTANTS  # noqa: E402
from isoage.measurements import UPbAnalysis  # noqa: E402


def concordant_ratios(t, constants=DEFAULT_DECAY_CONSTANTS):
    """Wetherill (207Pb/235U, 206Pb/238U) ratios of a concordant age."""
    return (
        math.expm1(constants.U235.value * t),
        math.expm1(constants.U238.value * t),
    )


@pytest.fixture
def constants():
    return DEFAULT_DECAY_CONSTANTS


@pytest.fixture
def concordant_1000():
    """Concordant 1000 Ma analysis with 0.5% errors."""
    x, y = concordant_ratios(1000.0)
    return UPbAnalysis(x, 0.005 * x, y, 0.005 * y, rho=0.8)


@pytest.fixture
def pearson_york():
    """Pearson's data with York's weights (York et al., 2004)."""
    x = [0.0, 0.9, 1.8, 2.6, 3.3, 4.4, 5.2, 6.1, 6.5, 7.4]
    y = [5.9, 5.4, 4.4, 4.6, 3.5, 3.7, 2.8, 2.8, 2.4, 1.5]
    wx = [1000.0, 1000.0, 500.0, 800.0, 200.0, 80.0, 60.0, 20.0, 1.8, 1.0]
    wy = [1.0, 1.8, 4.0, 8.0, 20.0, 20.0, 70.0, 70.0, 100.0, 500.0]
    sx = [1.0 / math.sqrt(w) for w in wx]
    sy = [1.0 / math.sqrt(w) for w in wy]
    return x, y, sx, sy
