"""BD shift: overlap-weighted beta diversity across gradient fractions."""
from .bd_windows import build_bd_windows
from .overlap import percent_overlap, fraction_overlap
from .beta_distances import beta_distance, parse_dist
from .bd_shift import join_overlap_dist, overlap_wmean_dist, bd_shift, bd_shift_many

__all__ = [
    "build_bd_windows",
    "percent_overlap", "fraction_overlap",
    "beta_distance", "parse_dist",
    "join_overlap_dist", "overlap_wmean_dist", "bd_shift", "bd_shift_many",
]
