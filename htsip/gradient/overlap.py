#!/usr/bin/env python3
"""Percent overlap between control and treatment fraction BD windows."""
from __future__ import annotations

import logging

import numpy as np
import pandas as pd

from ..errors import EmptyPartition, NoOverlap, require_columns

logger = logging.getLogger(__name__)

OVERLAP_COLUMNS = [
    "control_sample_id", "treatment_sample_id",
    "control_BD_min", "control_BD_max",
    "treatment_BD_min", "treatment_BD_max",
    "percent_overlap",
]


def percent_overlap(x_start, x_end, y_start, y_end):
    """Percent of range X covered by range Y.

    Works elementwise on scalars or arrays. A zero-width X range has no
    overlap.

    >>> percent_overlap(0, 1, 0, 0.5)
    50.0
    >>> percent_overlap(0, 0.5, 0, 1)
    100.0
    """
    x_start = np.asarray(x_start, dtype=float)
    x_end = np.asarray(x_end, dtype=float)
    x_len = np.abs(x_end - x_start)
    overlap = np.minimum(x_end, y_end) - np.maximum(x_start, y_start)
    overlap = np.where(overlap <= 0, 0.0, overlap)
    with np.errstate(divide="ignore", invalid="ignore"):
        perc = np.where(x_len > 0, overlap / np.where(x_len > 0, x_len, 1.0) * 100, 0.0)
    if perc.ndim == 0:
        return float(perc)
    return perc


def fraction_overlap(windows: pd.DataFrame) -> pd.DataFrame:
    """All overlapping (control, treatment) window pairs.

    Overlap is relative to the treatment window. Pairs that do not overlap
    are dropped.
    """
    require_columns(windows, ["sample_id", "is_control", "BD_min", "BD_max"], "BD windows")
    is_control = windows["is_control"].astype(bool)
    cont = windows.loc[is_control, ["sample_id", "BD_min", "BD_max"]]
    treat = windows.loc[~is_control, ["sample_id", "BD_min", "BD_max"]]
    if cont.empty:
        raise EmptyPartition("control")
    if treat.empty:
        raise EmptyPartition("treatment")

    pairs = cont.add_prefix("control_").merge(treat.add_prefix("treatment_"), how="cross")
    pairs["percent_overlap"] = percent_overlap(pairs["treatment_BD_min"].to_numpy(),
                                               pairs["treatment_BD_max"].to_numpy(),
                                               pairs["control_BD_min"].to_numpy(),
                                               pairs["control_BD_max"].to_numpy())
    pairs = pairs[pairs["percent_overlap"] > 0].reset_index(drop=True)
    if pairs.empty:
        raise NoOverlap(len(cont), len(treat))
    logger.debug("%d of %d control x treatment window pairs overlap", len(pairs), len(cont) * len(treat))
    return pairs[OVERLAP_COLUMNS]
