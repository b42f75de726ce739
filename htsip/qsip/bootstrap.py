#!/usr/bin/env python3
"""Bootstrap confidence intervals for qSIP atom fraction excess.

Each replicate resamples, with replacement and independently for control and
treatment, the per-gradient W values of every taxon, then recomputes A.
Replicate i draws from its own generator spawned from one SeedSequence, so the
output depends on the seed only, not on the number of workers or the order in
which replicates finish.
"""
from __future__ import annotations

import logging
from concurrent.futures import ProcessPoolExecutor
from functools import partial
from typing import List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from ..errors import require_columns
from .atom_excess import QSIPResult, calc_A
from .isotope import check_isotope

logger = logging.getLogger(__name__)

# (taxon_id, control W values, treatment W values)
TaxonW = Tuple[object, np.ndarray, np.ndarray]


def group_W(df_W: pd.DataFrame) -> List[TaxonW]:
    require_columns(df_W, ["taxon_id", "is_control", "W"], "W table")
    df_W = df_W.reset_index(drop=True)
    is_control = df_W["is_control"].astype(bool)
    out: List[TaxonW] = []
    for taxon, idx in df_W.groupby("taxon_id", sort=True).groups.items():
        ctrl = is_control.loc[idx].to_numpy()
        w = df_W.loc[idx, "W"].to_numpy(dtype=float)
        out.append((taxon, w[ctrl], w[~ctrl]))
    return out


def _draw(values: np.ndarray, n: int, rng: np.random.Generator) -> np.ndarray:
    if len(values) > 1:
        return rng.choice(values, size=n, replace=True)
    # a single observation is repeated; no observation stays empty
    return np.repeat(values, n)


def sample_W(W_light: np.ndarray, W_lab: np.ndarray, n_sample: Sequence[int],
             rng: np.random.Generator) -> Tuple[np.ndarray, np.ndarray]:
    """Draw n_sample[0] control and n_sample[1] treatment W values with replacement."""
    n_light, n_lab = n_sample
    return _draw(np.asarray(W_light, dtype=float), n_light, rng), _draw(np.asarray(W_lab, dtype=float), n_lab, rng)


def bootstrap_replicate(groups: Sequence[TaxonW], n_sample: Sequence[int], isotope: str,
                        seed: np.random.SeedSequence, bootstrap_id: int) -> pd.DataFrame:
    """A-table of one bootstrap replicate."""
    rng = np.random.default_rng(seed)
    taxa, flags, ws = [], [], []
    for taxon, w_light, w_lab in groups:
        light, lab = sample_W(w_light, w_lab, n_sample, rng)
        taxa.extend([taxon] * (len(light) + len(lab)))
        flags.extend([True] * len(light) + [False] * len(lab))
        ws.append(light)
        ws.append(lab)
    df_W = pd.DataFrame({
        "taxon_id": taxa,
        "is_control": np.asarray(flags, dtype=bool),
        "W": np.concatenate(ws) if ws else np.empty(0),
    })
    df_A = calc_A(df_W, isotope=isotope)
    df_A["bootstrap_id"] = bootstrap_id
    return df_A


def _check_n_sample(n_sample: Sequence[int]) -> Tuple[int, int]:
    if len(n_sample) != 2:
        raise ValueError(f"n_sample must be (n_control, n_treatment), got {n_sample!r}")
    n_light, n_lab = int(n_sample[0]), int(n_sample[1])
    if n_light < 0 or n_lab < 0:
        raise ValueError(f"n_sample values must be >= 0, got {n_sample!r}")
    return n_light, n_lab


def bootstrap_replicates(atomx: QSIPResult, isotope: str = "13C", n_sample: Sequence[int] = (3, 3),
                         n_boot: int = 10, seed: Optional[int] = None, workers: Optional[int] = 1) -> pd.DataFrame:
    """All replicate A-tables stacked, tagged with `bootstrap_id` (1..n_boot)."""
    check_isotope(isotope)
    n_sample = _check_n_sample(n_sample)
    if int(n_boot) < 1:
        raise ValueError(f"n_boot must be >= 1, got {n_boot}")
    groups = group_W(atomx.W)
    ss = np.random.SeedSequence(seed)
    if seed is None:
        logger.info("Bootstrap seed entropy: %d", ss.entropy)
    seeds = ss.spawn(int(n_boot))
    ids = list(range(1, int(n_boot) + 1))
    run = partial(bootstrap_replicate, groups, n_sample, isotope)

    if workers is not None and int(workers) > 1:
        logger.info("Running %d bootstrap replicates on %d workers", n_boot, workers)
        chunksize = max(1, int(n_boot) // (4 * int(workers)))
        with ProcessPoolExecutor(max_workers=int(workers)) as pool:
            reps = list(pool.map(run, seeds, ids, chunksize=chunksize))
    else:
        logger.info("Running %d bootstrap replicates", n_boot)
        reps = [run(s, i) for s, i in zip(seeds, ids)]
    return pd.concat(reps, ignore_index=True)


def qsip_bootstrap(atomx: QSIPResult, isotope: str = "13C", n_sample: Sequence[int] = (3, 3),
                   n_boot: int = 10, a: float = 0.1, seed: Optional[int] = None,
                   workers: Optional[int] = 1) -> pd.DataFrame:
    """Bootstrap CIs for atom fraction excess.

    Parameters
    ----------
    atomx : result of ``qsip_atom_excess`` computed from an abundance table.
    n_sample : (control, treatment) number of W values drawn per taxon and replicate.
    n_boot : number of bootstrap replicates.
    a : significance level; the interval spans the a/2 and 1 - a/2 quantiles.
    seed : seed for the replicate random streams.
    workers : number of worker processes; 1 (or None) runs sequentially.

    Returns
    -------
    The A-table of `atomx` with ``A_CI_low`` and ``A_CI_high`` columns.
    """
    if not 0 < a < 1:
        raise ValueError(f"a must be in (0, 1), got {a}")
    df_boot = bootstrap_replicates(atomx, isotope=isotope, n_sample=n_sample,
                                   n_boot=n_boot, seed=seed, workers=workers)
    g = df_boot.groupby("taxon_id", sort=True)["A"]
    ci = pd.DataFrame({
        "A_CI_low": g.quantile(a / 2),
        "A_CI_high": g.quantile(1 - a / 2),
    }).reset_index()
    out = atomx.A.merge(ci, on="taxon_id", how="inner")
    n_nan = int(out["A_CI_low"].isna().sum())
    if n_nan:
        logger.info("%d taxa have no finite bootstrap A values", n_nan)
    return out
