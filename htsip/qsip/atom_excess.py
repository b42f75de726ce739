#!/usr/bin/env python3
"""qSIP atom fraction excess per taxon (Hungate et al. 2015).

Workflow:
- W: abundance-weighted mean buoyant density of a taxon in one gradient
  (weights = counts), per control/treatment replicate
- Wm: mean W over the replicate gradients; Wlight (control) and Wlab (treatment)
- Z = Wlab - Wlight, the taxon's buoyant density shift
- A: atom fraction excess derived from Z through the G+C / molecular weight model

A taxon without W on one side gets NaN for Z and A: not enough replicate
coverage, not zero incorporation.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Union

import numpy as np
import pandas as pd

from ..errors import require_columns
from ..io_utils import ControlSpec, classify_control
from .isotope import check_isotope, calc_Gi, calc_Mheavymax, calc_Mlight, calc_atom_excess

logger = logging.getLogger(__name__)

W_COLUMNS = ["taxon_id", "is_control", "replicate_id", "W"]
A_COLUMNS = ["taxon_id", "Wlight", "Wlab", "Z", "Gi", "Mlight", "Mheavymax", "Mlab", "A"]

SINGLE_REPLICATE = "all"


@dataclass(frozen=True)
class QSIPResult:
    """W-table (per taxon x replicate gradient) and A-table (per taxon)."""
    W: pd.DataFrame
    A: pd.DataFrame


def qsip_format(table: pd.DataFrame,
                control: ControlSpec = "IS_CONTROL",
                replicate_col: Optional[str] = None,
                taxon_col: str = "taxon",
                count_col: str = "Count",
                density_col: str = "Buoyant_density") -> pd.DataFrame:
    """Select and coerce the columns the W computation needs."""
    cols = [taxon_col, count_col, density_col] + ([replicate_col] if replicate_col else [])
    require_columns(table, cols, "taxon abundance table")
    is_control = classify_control(table, control, "taxon abundance table")
    return pd.DataFrame({
        "taxon_id": table[taxon_col].to_numpy(),
        "is_control": is_control.to_numpy(),
        "replicate_id": table[replicate_col].to_numpy() if replicate_col else SINGLE_REPLICATE,
        "Buoyant_density": pd.to_numeric(table[density_col], errors="coerce").to_numpy(dtype=float),
        "Count": pd.to_numeric(table[count_col], errors="coerce").to_numpy(dtype=float),
    })


def calc_W(df_fmt: pd.DataFrame) -> pd.DataFrame:
    """Count-weighted mean buoyant density per (taxon, control flag, replicate).

    Rows with a missing density or count do not contribute; a group whose
    weights sum to zero gets W = NaN.
    """
    ok = df_fmt["Buoyant_density"].notna() & df_fmt["Count"].notna()
    tmp = df_fmt[["taxon_id", "is_control", "replicate_id"]].assign(
        _wx=np.where(ok, df_fmt["Buoyant_density"] * df_fmt["Count"], 0.0),
        _w=np.where(ok, df_fmt["Count"], 0.0),
    )
    g = tmp.groupby(["taxon_id", "is_control", "replicate_id"], sort=True, as_index=False, dropna=False)
    out = g[["_wx", "_w"]].sum()
    out["W"] = (out["_wx"] / out["_w"].where(out["_w"] != 0)).astype(float)
    return out[W_COLUMNS]


def _side(wm: pd.DataFrame, is_control: bool) -> pd.Series:
    part = wm[wm["is_control"] == is_control]
    return pd.Series(part["Wm"].to_numpy(), index=part["taxon_id"].to_numpy())


def calc_A(df_W: pd.DataFrame, isotope: str = "13C") -> pd.DataFrame:
    """Buoyant density shift (Z) and atom fraction excess (A) per taxon."""
    check_isotope(isotope)
    require_columns(df_W, ["taxon_id", "is_control", "W"], "W table")
    w = df_W[["taxon_id", "is_control", "W"]].assign(is_control=df_W["is_control"].astype(bool))

    # mean W over replicate gradients
    wm = w.groupby(["taxon_id", "is_control"], as_index=False, sort=True).agg(Wm=("W", "mean"))

    # one row per taxon, control side -> Wlight, treatment side -> Wlab
    taxa = pd.Series(wm["taxon_id"].unique()).sort_values(kind="mergesort").reset_index(drop=True)
    df = pd.DataFrame({"taxon_id": taxa})
    df["Wlight"] = df["taxon_id"].map(_side(wm, True)).astype(float)
    df["Wlab"] = df["taxon_id"].map(_side(wm, False)).astype(float)
    df["Z"] = df["Wlab"] - df["Wlight"]

    df["Gi"] = calc_Gi(df["Wlight"].to_numpy())
    df["Mlight"] = calc_Mlight(df["Gi"].to_numpy())
    df["Mheavymax"] = calc_Mheavymax(df["Mlight"].to_numpy(), isotope=isotope, Gi=df["Gi"].to_numpy())
    df["Mlab"] = (df["Z"] / df["Wlight"] + 1) * df["Mlight"]
    df["A"] = calc_atom_excess(df["Mlab"].to_numpy(), df["Mlight"].to_numpy(),
                               df["Mheavymax"].to_numpy(), isotope=isotope)
    return df[A_COLUMNS]


def qsip_atom_excess(table: Optional[pd.DataFrame] = None,
                     control: ControlSpec = "IS_CONTROL",
                     replicate_col: Optional[str] = None,
                     isotope: str = "13C",
                     W: Optional[pd.DataFrame] = None,
                     taxon_col: str = "taxon",
                     count_col: str = "Count",
                     density_col: str = "Buoyant_density") -> Union[QSIPResult, pd.DataFrame]:
    """Atom fraction excess with the qSIP method.

    Parameters
    ----------
    table : long taxon abundance table, one row per (taxon, sample), with the
        sample's buoyant density, control flag and replicate gradient joined in
        (see ``io_utils.abundance_long``). Ignored when `W` is given.
    control : column name, pandas expression or per-row booleans marking
        unlabeled control rows.
    replicate_col : column identifying the replicate gradient of each sample.
        None treats all samples of a side as one gradient.
    isotope : '13C' or '18O'.
    W : precomputed W-table (taxon_id, is_control, W). When given, only the
        A-table is returned; this is the path used by bootstrap replicates.

    Returns
    -------
    QSIPResult(W, A) when computed from `table`, else the A-table.
    """
    check_isotope(isotope)
    if W is not None:
        return calc_A(W, isotope=isotope)
    if table is None:
        raise ValueError("Either a taxon abundance table or a W table is required")

    df_fmt = qsip_format(table, control=control, replicate_col=replicate_col,
                         taxon_col=taxon_col, count_col=count_col, density_col=density_col)
    df_W = calc_W(df_fmt)
    df_A = calc_A(df_W, isotope=isotope)
    n_missing = int(df_A["A"].isna().sum())
    if n_missing:
        logger.info("%d of %d taxa lack W for control or treatment; A left missing", n_missing, len(df_A))
    logger.info("qSIP atom excess computed for %d taxa (%s)", len(df_A), str(isotope).upper())
    return QSIPResult(W=df_W, A=df_A)
