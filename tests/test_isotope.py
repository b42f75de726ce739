"""Tests for the buoyant density / molecular weight / atom excess model."""

import numpy as np
import pytest

from htsip.errors import UnsupportedIsotope
from htsip.qsip.isotope import (
    NATURAL_ABUNDANCE, calc_Gi, calc_Mheavymax, calc_Mlight, calc_atom_excess, check_isotope,
)


class TestGi:

    def test_intercept_gives_zero(self):
        assert calc_Gi(1.646057) == 0.0

    def test_formula(self):
        assert calc_Gi(1.70) == pytest.approx((1.70 - 1.646057) / 0.083506)

    def test_vectorised(self):
        w = np.array([1.69, 1.70, 1.71])
        gi = calc_Gi(w)
        assert gi.shape == (3,)
        assert np.all(np.diff(gi) > 0)
        assert gi[1] == calc_Gi(1.70)

    def test_nan_passthrough(self):
        assert np.isnan(calc_Gi(np.nan))


class TestMolecularWeights:

    def test_mlight(self):
        assert calc_Mlight(0.5) == pytest.approx(0.496 * 0.5 + 307.691)

    def test_mheavymax_13c(self):
        assert calc_Mheavymax(308.0, "13C", Gi=0.5) == pytest.approx(-0.4987282 * 0.5 + 9.974564 + 308.0)

    def test_mheavymax_18o_ignores_gi(self):
        assert calc_Mheavymax(308.0, "18O", Gi=0.5) == pytest.approx(12.07747 + 308.0)
        assert calc_Mheavymax(308.0, "18O") == pytest.approx(12.07747 + 308.0)

    def test_isotope_case_insensitive(self):
        assert calc_Mheavymax(308.0, "13c", Gi=0.4) == calc_Mheavymax(308.0, "13C", Gi=0.4)

    def test_unsupported_isotope(self):
        with pytest.raises(UnsupportedIsotope):
            calc_Mheavymax(308.0, "15N", Gi=0.5)


class TestAtomExcess:

    @pytest.mark.parametrize("isotope", ["13C", "18O"])
    def test_no_shift_is_zero(self, isotope):
        assert calc_atom_excess(308.0, 308.0, 318.0, isotope) == 0.0

    @pytest.mark.parametrize("isotope", ["13C", "18O"])
    def test_full_label(self, isotope):
        a = calc_atom_excess(318.0, 308.0, 318.0, isotope)
        assert a == pytest.approx(1 - NATURAL_ABUNDANCE[isotope])

    def test_natural_abundance_constants(self):
        assert NATURAL_ABUNDANCE["13C"] == 0.01111233
        assert NATURAL_ABUNDANCE["18O"] == 0.002000429

    def test_vectorised(self):
        a = calc_atom_excess(np.array([308.0, 313.0]), np.array([308.0, 308.0]),
                             np.array([318.0, 318.0]), "13C")
        assert a[0] == 0.0
        assert a[1] == pytest.approx(0.5 * (1 - 0.01111233))

    def test_unsupported_isotope(self):
        with pytest.raises(UnsupportedIsotope):
            calc_atom_excess(310.0, 308.0, 318.0, "2H")

    def test_check_isotope_normalises(self):
        assert check_isotope("18o") == "18O"
