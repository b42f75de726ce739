#!/usr/bin/env python3
"""io_utils.py

Shared helpers: logging setup, table readers/writers, TOML config handling,
control/treatment classification of sample rows and the long-form taxon
abundance table used by qSIP.

Expected inputs:
- sample metadata: one row per gradient fraction, indexed (or keyed) by sample id,
  with at least a buoyant density and a fraction column
- counts: taxa x samples count matrix (rows = taxa, columns = sample ids)
"""
from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Optional, Sequence, Union

import numpy as np
import pandas as pd

try:
    import tomllib as _toml  # py311+
except ModuleNotFoundError:
    import tomli as _toml  # type: ignore[import-not-found]  # py<311

from .errors import MissingColumn

CONTROL_COL = "IS_CONTROL"

# control classification: column name, pandas expression, or per-row booleans
ControlSpec = Union[str, Sequence[bool], pd.Series]

_BOOL_TOKENS = {"true": True, "t": True, "1": True, "yes": True,
                "false": False, "f": False, "0": False, "no": False}


def setup_logging(level: str = "INFO") -> logging.Logger:
    lvl = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=lvl, format="%(asctime)s %(levelname)s %(message)s", datefmt="%H:%M:%S")
    return logging.getLogger("htsip")


def ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def parse_csv_list(s: Optional[str], cast=float) -> Optional[List[Any]]:
    if not s:
        return None
    out = []
    for part in str(s).split(","):
        part = part.strip()
        if part:
            out.append(cast(part))
    return out or None


def read_table_any(path: str, index_col: Optional[Union[int, str]] = None) -> pd.DataFrame:
    if not os.path.exists(path):
        raise FileNotFoundError(path)
    if path.lower().endswith((".tsv", ".txt")):
        return pd.read_csv(path, sep="\t", index_col=index_col)
    if path.lower().endswith(".csv"):
        return pd.read_csv(path, index_col=index_col)
    if path.lower().endswith((".xlsx", ".xls")):
        try:
            return pd.read_excel(path, index_col=index_col)
        except ImportError as e:
            raise RuntimeError(f"Reading Excel requires openpyxl/xlrd: {e}") from e
    raise ValueError(f"Unsupported file type: {path}")


def write_tsv(df: pd.DataFrame, path: str) -> str:
    parent = os.path.dirname(path)
    if parent:
        ensure_dir(parent)
    df.to_csv(path, sep="\t", index=False, na_rep="")
    return path


def load_toml_config(path: str) -> Dict[str, Any]:
    with open(path, "rb") as f:
        return _toml.load(f)


def config_to_argv(cfg: Dict[str, Any], flag_keys: Sequence[str] = (), listy: Sequence[str] = ()) -> List[str]:
    """Turn a TOML mapping of long-option names into CLI pieces.

    Boolean flags are emitted only when true; list values for keys in `listy`
    are joined as CSV so argparse still does the type/choice handling.
    """
    cli: List[str] = []
    for k, v in cfg.items():
        name = k.replace("_", "-")
        key = f"--{name}"
        if name in flag_keys:
            if bool(v):
                cli.append(key)
            continue
        if isinstance(v, list):
            if name not in listy:
                raise ValueError(f"Config key {k!r} does not accept a list")
            v = ",".join(str(x) for x in v)
        cli.extend([key, str(v)])
    return cli


def classify_control(df: pd.DataFrame, control: ControlSpec, where: str = "metadata") -> pd.Series:
    """Boolean Series (aligned to df.index): True for unlabeled control rows.

    `control` is either the name of an existing column, a pandas expression
    evaluated against the table (e.g. ``"Substrate == '12C-Con'"``), or a
    sequence of booleans with one entry per row.
    """
    if isinstance(control, str):
        if control in df.columns:
            vals = df[control]
        else:
            try:
                vals = df.eval(control)
            except pd.errors.UndefinedVariableError as e:
                raise MissingColumn([str(e)], where) from e
        if not isinstance(vals, pd.Series):
            vals = pd.Series(vals, index=df.index)
    elif isinstance(control, pd.Series) and df.index.isin(control.index).all():
        vals = control.reindex(df.index)
    else:
        arr = np.asarray(control)
        if len(arr) != len(df):
            raise ValueError(f"Control classification has {len(arr)} entries for {len(df)} rows")
        vals = pd.Series(arr, index=df.index)
    if vals.dtype != bool:
        if vals.isna().any():
            raise ValueError("Control classification contains missing values")
        if not pd.api.types.is_numeric_dtype(vals):
            tokens = vals.astype(str).str.strip().str.lower()
            unknown = sorted(set(tokens) - set(_BOOL_TOKENS))
            if unknown:
                raise ValueError(f"Control classification values are not boolean: {unknown[:5]}")
            vals = tokens.map(_BOOL_TOKENS)
        vals = vals.astype(bool)
    return vals.rename(CONTROL_COL)


def abundance_long(counts: pd.DataFrame, metadata: Optional[pd.DataFrame] = None,
                   taxon_col: str = "taxon", sample_col: str = "sample",
                   count_col: str = "Count", sample_cols_keep: Optional[Sequence[str]] = None) -> pd.DataFrame:
    """Melt a taxa x samples count matrix into (taxon, sample, Count) rows and
    join the sample metadata onto each row."""
    mat = counts.apply(pd.to_numeric, errors="coerce")
    mat.index = mat.index.rename(taxon_col)
    long = mat.reset_index().melt(id_vars=taxon_col, var_name=sample_col, value_name=count_col)
    long[taxon_col] = long[taxon_col].astype(str)
    long[sample_col] = long[sample_col].astype(str)
    if metadata is None:
        return long
    meta = metadata.copy()
    if sample_cols_keep is not None:
        missing = [c for c in sample_cols_keep if c not in meta.columns]
        if missing:
            raise MissingColumn(missing, "sample metadata")
        meta = meta[list(sample_cols_keep)]
    meta.index = meta.index.astype(str)
    meta.index.name = sample_col
    overlap = set(meta.columns) & {taxon_col, count_col}
    if overlap:
        raise ValueError(f"Sample metadata columns clash with abundance columns: {sorted(overlap)}")
    unknown = sorted(set(long[sample_col]) - set(meta.index))
    if unknown:
        raise ValueError(f"{len(unknown)} samples in counts have no metadata, e.g. {unknown[:3]}")
    return long.merge(meta.reset_index(), on=sample_col, how="left")
