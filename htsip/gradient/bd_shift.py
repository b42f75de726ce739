#!/usr/bin/env python3
"""BD shift: overlap-weighted beta diversity between labeled treatment fractions
and the unlabeled control fractions covering the same buoyant density span.

For every treatment fraction, the distance to each overlapping control fraction
is weighted by the percent of the treatment window that control window covers.
A large weighted mean distance means the treatment fraction community differs
from the control communities of the same density stratum, i.e. a BD shift.
"""
from __future__ import annotations

import logging
from typing import Dict, Mapping, Optional, Tuple

import numpy as np
import pandas as pd

from ..errors import require_columns
from ..io_utils import ControlSpec
from .bd_windows import build_bd_windows
from .beta_distances import DistanceLike, beta_distance, parse_dist
from .overlap import fraction_overlap

logger = logging.getLogger(__name__)

SHIFT_COLUMNS = ["treatment_sample_id", "BD_min", "weighted_mean_distance", "n_overlapping_fractions"]


def _nan_propagating_sum(s: pd.Series) -> float:
    return float(s.to_numpy(dtype=float).sum())


def join_overlap_dist(df_dist: pd.DataFrame, overlaps: pd.DataFrame) -> pd.DataFrame:
    """Inner join of long distances onto overlapping (control, treatment) pairs."""
    require_columns(df_dist, ["sample_x", "sample_y", "distance"], "distance table")
    joined = df_dist.merge(overlaps,
                           left_on=["sample_x", "sample_y"],
                           right_on=["control_sample_id", "treatment_sample_id"],
                           how="inner")
    n_lost = len(overlaps) - len(joined)
    if joined.empty:
        raise ValueError("Distance matrix shares no sample pairs with the overlapping fractions")
    if n_lost > 0:
        logger.warning("%d overlapping fraction pairs have no distance and were dropped", n_lost)
    return joined


def overlap_wmean_dist(joined: pd.DataFrame) -> pd.DataFrame:
    """Percent-overlap weighted mean distance per treatment fraction."""
    require_columns(joined, ["treatment_sample_id", "treatment_BD_min", "distance", "percent_overlap"],
                    "joined distance/overlap table")
    tmp = joined.assign(_wd=joined["distance"] * joined["percent_overlap"])
    g = tmp.groupby(["treatment_sample_id", "treatment_BD_min"], sort=False)
    out = g.agg(_wd=("_wd", _nan_propagating_sum),
                _w=("percent_overlap", _nan_propagating_sum),
                n_overlapping_fractions=("distance", "size")).reset_index()
    with np.errstate(divide="ignore", invalid="ignore"):
        out["weighted_mean_distance"] = out["_wd"] / out["_w"]
    out = out.rename(columns={"treatment_BD_min": "BD_min"})
    out["n_overlapping_fractions"] = out["n_overlapping_fractions"].astype(int)
    out = out.sort_values(["BD_min", "treatment_sample_id"], kind="mergesort").reset_index(drop=True)
    return out[SHIFT_COLUMNS]


def bd_shift(metadata: pd.DataFrame,
             distance: Optional[DistanceLike] = None,
             control: ControlSpec = "IS_CONTROL",
             counts: Optional[pd.DataFrame] = None,
             metric: str = "braycurtis",
             density_col: str = "Buoyant_density",
             fraction_col: str = "Fraction",
             sample_col: Optional[str] = None,
             **metric_kwargs) -> pd.DataFrame:
    """BD shift of every treatment fraction relative to the control gradient.

    Either `distance` (square matrix / skbio DistanceMatrix over the metadata
    sample ids) or `counts` (samples x taxa) must be given; with `counts` the
    distances are computed with scikit-bio using `metric`.
    """
    windows = build_bd_windows(metadata, control=control, density_col=density_col,
                               fraction_col=fraction_col, sample_col=sample_col)
    overlaps = fraction_overlap(windows)
    if distance is None:
        if counts is None:
            raise ValueError("Either a distance matrix or a count table is required")
        distance = beta_distance(counts, metric=metric, **metric_kwargs)
    df_dist = parse_dist(distance)
    joined = join_overlap_dist(df_dist, overlaps)
    res = overlap_wmean_dist(joined)
    logger.info("BD shift: %d treatment fractions, %d overlapping pairs", len(res), len(joined))
    return res


def bd_shift_many(subsets: Mapping[str, Tuple[pd.DataFrame, DistanceLike]],
                  label_col: str = "subset", **kwargs) -> pd.DataFrame:
    """Run `bd_shift` on each labeled (metadata, distance) subset and stack the results."""
    parts: Dict[str, pd.DataFrame] = {}
    for label, (meta, dist) in subsets.items():
        logger.info("BD shift for subset %s", label)
        parts[label] = bd_shift(meta, dist, **kwargs)
    if not parts:
        return pd.DataFrame(columns=[label_col] + SHIFT_COLUMNS)
    out = pd.concat(parts, names=[label_col, None]).reset_index(level=0).reset_index(drop=True)
    return out[[label_col] + SHIFT_COLUMNS]
