#!/usr/bin/env python3
"""Beta-diversity distances between gradient fraction communities.

`beta_distance` computes a distance matrix with scikit-bio; `parse_dist`
flattens any square distance matrix into long (sample_x, sample_y, distance)
rows without self-pairs. Both orderings of each pair are kept.
"""
from __future__ import annotations

from typing import Optional, Sequence, Union

import numpy as np
import pandas as pd
from scipy.spatial.distance import squareform
from skbio import DistanceMatrix
from skbio.diversity import beta_diversity

DIST_COLUMNS = ["sample_x", "sample_y", "distance"]

DistanceLike = Union[DistanceMatrix, pd.DataFrame, np.ndarray, Sequence[float]]


def beta_distance(counts: pd.DataFrame, metric: str = "braycurtis",
                  samples_as_columns: bool = False, **kwargs) -> DistanceMatrix:
    """Pairwise beta diversity between samples.

    counts : samples x taxa table, or taxa x samples with samples_as_columns=True.
    kwargs are passed to ``skbio.diversity.beta_diversity`` (e.g. ``tree`` and
    ``taxa`` for weighted UniFrac).
    """
    mat = counts.T if samples_as_columns else counts
    mat = mat.apply(pd.to_numeric, errors="coerce").fillna(0.0)
    return beta_diversity(metric, mat.values, ids=mat.index.astype(str).tolist(), **kwargs)


def as_square_frame(d: DistanceLike, ids: Optional[Sequence[str]] = None) -> pd.DataFrame:
    if isinstance(d, DistanceMatrix):
        df = d.to_data_frame()
    elif isinstance(d, pd.DataFrame):
        df = d.copy()
        if ids is not None:
            df.index = list(ids)
            df.columns = list(ids)
    else:
        arr = np.asarray(d, dtype=float)
        if arr.ndim == 1:
            # condensed upper triangle, as returned by pdist / R dist
            arr = squareform(arr, checks=False)
        if ids is None:
            raise ValueError("Sample ids are required for array distance input")
        df = pd.DataFrame(arr, index=list(ids), columns=list(ids))

    df.index = df.index.astype(str)
    df.columns = df.columns.astype(str)
    if df.shape[0] != df.shape[1]:
        raise ValueError(f"Distance matrix is not square: {df.shape}")
    if set(df.index) != set(df.columns):
        raise ValueError("Distance matrix row and column ids differ")
    df = df.loc[:, df.index].apply(pd.to_numeric, errors="coerce")
    vals = df.to_numpy(dtype=float)
    if not np.allclose(vals, vals.T, equal_nan=True):
        raise ValueError("Distance matrix is not symmetric")
    if (vals < 0).any():
        raise ValueError("Distance matrix has negative entries")
    return df


def parse_dist(d: DistanceLike, ids: Optional[Sequence[str]] = None) -> pd.DataFrame:
    """Long-form distances: one row per ordered pair (x, y), x != y."""
    df = as_square_frame(d, ids)
    df.index.name = "sample_x"
    long = df.reset_index().melt(id_vars="sample_x", var_name="sample_y", value_name="distance")
    long = long[long["sample_x"] != long["sample_y"]].reset_index(drop=True)
    return long[DIST_COLUMNS]
