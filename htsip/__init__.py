"""htsip: analysis of high-throughput sequencing data from stable isotope probing (SIP).

Two independent analyses of gradient-fractionated amplicon data:

- **BD shift**: beta diversity between each labeled treatment fraction and the
  unlabeled control fractions it overlaps in buoyant density, weighted by the
  percent overlap.
- **qSIP**: per-taxon atom fraction excess from abundance-weighted buoyant
  densities (Hungate et al. 2015), with bootstrap confidence intervals.
"""
from .errors import HTSIPError, MissingColumn, EmptyPartition, NoOverlap, UnsupportedIsotope
from .io_utils import abundance_long, classify_control
from .gradient import (
    build_bd_windows, percent_overlap, fraction_overlap,
    beta_distance, parse_dist, overlap_wmean_dist, bd_shift, bd_shift_many,
)
from .qsip import (
    calc_Gi, calc_Mlight, calc_Mheavymax, calc_atom_excess,
    QSIPResult, qsip_atom_excess, qsip_bootstrap,
)

__version__ = "0.1.0"

__all__ = [
    "HTSIPError", "MissingColumn", "EmptyPartition", "NoOverlap", "UnsupportedIsotope",
    "abundance_long", "classify_control",
    "build_bd_windows", "percent_overlap", "fraction_overlap",
    "beta_distance", "parse_dist", "overlap_wmean_dist", "bd_shift", "bd_shift_many",
    "calc_Gi", "calc_Mlight", "calc_Mheavymax", "calc_atom_excess",
    "QSIPResult", "qsip_atom_excess", "qsip_bootstrap",
]
