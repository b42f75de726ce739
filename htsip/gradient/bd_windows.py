#!/usr/bin/env python3
"""Buoyant density (BD) windows for gradient fractions.

Each fraction "owns" the density span from its own BD up to the BD of the next
fraction of the same gradient class (control or treatment). The last fraction
of each class has no successor; it, and any other window whose range comes out
non-positive, gets BD_min + median(positive ranges) as its upper bound.
"""
from __future__ import annotations

import logging
from typing import Optional

import numpy as np
import pandas as pd

from ..errors import require_columns
from ..io_utils import ControlSpec, classify_control

logger = logging.getLogger(__name__)

WINDOW_COLUMNS = ["sample_id", "is_control", "BD_min", "BD_max", "BD_range"]


def max_BD_range(BD_range: pd.Series, BD_min: pd.Series, BD_max: pd.Series, BD_to_set: float) -> pd.Series:
    """New BD_max: BD_min + BD_to_set where the range is non-positive."""
    return BD_max.where(BD_range > 0, BD_min + BD_to_set)


def build_bd_windows(metadata: pd.DataFrame,
                     control: ControlSpec = "IS_CONTROL",
                     density_col: str = "Buoyant_density",
                     fraction_col: str = "Fraction",
                     sample_col: Optional[str] = None) -> pd.DataFrame:
    """Format sample metadata into per-fraction BD windows.

    Parameters
    ----------
    metadata : one row per gradient fraction. Sample ids are the index unless
        `sample_col` names a column holding them.
    control : column name, pandas expression or per-row booleans identifying
        the unlabeled control fractions (see ``io_utils.classify_control``).

    Returns a new table with columns ``sample_id, is_control, BD_min, BD_max,
    BD_range`` sorted by BD_min.
    """
    require_columns(metadata, [density_col, fraction_col], "sample metadata")
    if sample_col is not None:
        require_columns(metadata, [sample_col], "sample metadata")
        ids = metadata[sample_col].astype(str).to_numpy()
    else:
        ids = metadata.index.astype(str).to_numpy()
    if len(set(ids)) != len(ids):
        raise ValueError("Sample ids in metadata are not unique")

    is_control = classify_control(metadata, control, "sample metadata")
    bd = pd.to_numeric(metadata[density_col], errors="coerce").to_numpy(dtype=float)
    frac = pd.to_numeric(metadata[fraction_col], errors="coerce")
    if np.isnan(bd).any():
        bad = ids[np.isnan(bd)]
        raise ValueError(f"Non-numeric or missing buoyant density for {len(bad)} samples, e.g. {list(bad[:3])}")
    if frac.isna().any():
        logger.warning("%d samples have a non-numeric fraction index", int(frac.isna().sum()))

    df = pd.DataFrame({"sample_id": ids, "is_control": is_control.to_numpy(), "BD_min": bd})
    df = df.sort_values("BD_min", kind="mergesort").reset_index(drop=True)

    # window ends at the next fraction of the same gradient class
    nxt = df.groupby("is_control", sort=False)["BD_min"].shift(-1)
    df["BD_max"] = nxt.fillna(df["BD_min"])
    df["BD_range"] = df["BD_max"] - df["BD_min"]

    positive = df.loc[df["BD_range"] > 0, "BD_range"]
    n_degenerate = int((df["BD_range"] <= 0).sum())
    if positive.empty:
        logger.warning("No fraction has a positive BD range; %d windows left zero-width", n_degenerate)
    elif n_degenerate:
        median_range = float(positive.median())
        logger.debug("Setting %d degenerate BD windows to median range %.5g", n_degenerate, median_range)
        df["BD_max"] = max_BD_range(df["BD_range"], df["BD_min"], df["BD_max"], median_range)
        df["BD_range"] = df["BD_max"] - df["BD_min"]

    return df[WINDOW_COLUMNS]
