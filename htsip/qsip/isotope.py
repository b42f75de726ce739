#!/usr/bin/env python3
"""DNA buoyant density -> G+C content -> molecular weight -> atom fraction excess.

Formulas and calibration constants from Hungate et al. 2015
(Appl. Environ. Microbiol. 81:7570). The constants are literature values and
are applied as-is.
"""
from __future__ import annotations

import numpy as np

from ..errors import UnsupportedIsotope

# Gi = (W - GC_INTERCEPT) / GC_SLOPE
GC_INTERCEPT = 1.646057
GC_SLOPE = 0.083506

# Mlight = MW_GC_SLOPE * Gi + MW_GC_INTERCEPT
MW_GC_SLOPE = 0.496
MW_GC_INTERCEPT = 307.691

# natural abundance of the heavy isotope
NATURAL_ABUNDANCE = {
    "13C": 0.01111233,
    "18O": 0.002000429,
}


def check_isotope(isotope: str) -> str:
    iso = str(isotope).upper()
    if iso not in NATURAL_ABUNDANCE:
        raise UnsupportedIsotope(isotope)
    return iso


def _out(x):
    x = np.asarray(x, dtype=float)
    return float(x) if x.ndim == 0 else x


def calc_Gi(Wlight):
    """Fractional G+C content implied by unlabeled buoyant density."""
    return _out((np.asarray(Wlight, dtype=float) - GC_INTERCEPT) / GC_SLOPE)


def calc_Mlight(Gi):
    """Molecular weight (g/mol per nucleotide) of unlabeled DNA with G+C content Gi."""
    return _out(MW_GC_SLOPE * np.asarray(Gi, dtype=float) + MW_GC_INTERCEPT)


def calc_Mheavymax(Mlight, isotope: str = "13C", Gi=np.nan):
    """Theoretical maximum molecular weight of fully labeled DNA."""
    iso = check_isotope(isotope)
    Mlight = np.asarray(Mlight, dtype=float)
    if iso == "13C":
        return _out(-0.4987282 * np.asarray(Gi, dtype=float) + 9.974564 + Mlight)
    return _out(12.07747 + Mlight)


def calc_atom_excess(Mlab, Mlight, Mheavymax, isotope: str = "13C"):
    """Atom fraction excess (A) of the heavy isotope."""
    x = NATURAL_ABUNDANCE[check_isotope(isotope)]
    Mlab = np.asarray(Mlab, dtype=float)
    Mlight = np.asarray(Mlight, dtype=float)
    Mheavymax = np.asarray(Mheavymax, dtype=float)
    with np.errstate(divide="ignore", invalid="ignore"):
        A = (Mlab - Mlight) / (Mheavymax - Mlight) * (1 - x)
    return _out(A)
