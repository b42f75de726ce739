"""Quantitative SIP: per-taxon atom fraction excess and bootstrap CIs."""
from .isotope import calc_Gi, calc_Mlight, calc_Mheavymax, calc_atom_excess
from .atom_excess import QSIPResult, qsip_atom_excess, calc_W, calc_A
from .bootstrap import qsip_bootstrap, bootstrap_replicates

__all__ = [
    "calc_Gi", "calc_Mlight", "calc_Mheavymax", "calc_atom_excess",
    "QSIPResult", "qsip_atom_excess", "calc_W", "calc_A",
    "qsip_bootstrap", "bootstrap_replicates",
]
