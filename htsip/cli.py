#!/usr/bin/env python3
"""Command line entry point.

  htsip bd-shift --metadata META.tsv --distance DIST.tsv --control-expr "Substrate == '12C-Con'" --out bd_shift.tsv
  htsip qsip --table LONG.tsv --control-col IS_CONTROL --replicate-col Replicate --n-boot 1000 --out-dir results/qsip

Any long option can also be given in a TOML file passed with --config
(keys are option names, '_' or '-'); options on the command line win.
"""
from __future__ import annotations

import argparse
import os
import sys
from typing import List, Optional, Sequence

from .errors import HTSIPError
from .gradient.bd_shift import bd_shift
from .io_utils import (
    abundance_long, config_to_argv, ensure_dir, load_toml_config,
    parse_csv_list, read_table_any, setup_logging, write_tsv,
)
from .qsip.atom_excess import qsip_atom_excess
from .qsip.bootstrap import qsip_bootstrap

COMMANDS = ("bd-shift", "qsip")
FLAG_KEYS = ("samples-as-columns",)
LISTY = ("n-sample",)


def _common(p: argparse.ArgumentParser) -> None:
    p.add_argument("--config", help="TOML config file mapping long-option names to values")
    p.add_argument("--log-level", default="INFO")
    grp = p.add_mutually_exclusive_group()
    grp.add_argument("--control-expr", default=None,
                     help="pandas expression selecting unlabeled control samples, e.g. \"Substrate == '12C-Con'\"")
    grp.add_argument("--control-col", default=None, help="Boolean column marking unlabeled control samples")
    p.add_argument("--density-col", default="Buoyant_density")


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="htsip", description="Stable isotope probing analyses of gradient fraction sequencing data")
    sub = ap.add_subparsers(dest="command", required=True)

    bd = sub.add_parser("bd-shift", help="Overlap-weighted beta diversity between treatment and control fractions")
    _common(bd)
    bd.add_argument("--metadata", help="Sample metadata CSV/TSV/XLSX (first column = sample id)")
    bd.add_argument("--distance", help="Square distance matrix CSV/TSV (first column = sample id)")
    bd.add_argument("--counts", help="Samples x taxa count table, used when --distance is not given")
    bd.add_argument("--samples-as-columns", action="store_true", help="--counts is taxa x samples")
    bd.add_argument("--metric", default="braycurtis", help="scikit-bio beta diversity metric for --counts")
    bd.add_argument("--fraction-col", default="Fraction")
    bd.add_argument("--out", default="results/bd_shift.tsv")

    q = sub.add_parser("qsip", help="qSIP atom fraction excess with bootstrap CIs")
    _common(q)
    q.add_argument("--table", help="Long abundance table: taxon, sample, count and sample metadata columns")
    q.add_argument("--counts", help="Taxa x samples count table (with --metadata, instead of --table)")
    q.add_argument("--metadata", help="Sample metadata (first column = sample id), joined onto --counts")
    q.add_argument("--taxon-col", default="taxon")
    q.add_argument("--count-col", default="Count")
    q.add_argument("--replicate-col", default=None)
    q.add_argument("--isotope", default="13C", type=str.upper, choices=["13C", "18O"])
    q.add_argument("--n-boot", type=int, default=0, help="Bootstrap replicates (0 = no CIs)")
    q.add_argument("--n-sample", default="3,3", help="Control,treatment resample sizes")
    q.add_argument("--a", type=float, default=0.1, help="Significance level of the bootstrap CI")
    q.add_argument("--seed", type=int, default=None)
    q.add_argument("--workers", type=int, default=1)
    q.add_argument("--out-dir", default="results/qsip")
    return ap


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    argv = list(sys.argv[1:] if argv is None else argv)
    ap = build_parser()

    # first pass only looks for --config
    pre = argparse.ArgumentParser(add_help=False)
    pre.add_argument("--config")
    known, _unknown = pre.parse_known_args(argv)
    if known.config:
        cfg = load_toml_config(known.config)
        cli = config_to_argv(cfg, flag_keys=FLAG_KEYS, listy=LISTY)
        pos = next((i for i, tok in enumerate(argv) if tok in COMMANDS), None)
        if pos is None:
            ap.error(f"a command is required: {', '.join(COMMANDS)}")
        # config values first so command line options override them
        argv = argv[:pos + 1] + cli + argv[pos + 1:]
    return ap.parse_args(argv)


def _control(args: argparse.Namespace, ap_error) -> str:
    if args.control_expr:
        return args.control_expr
    if args.control_col:
        return args.control_col
    ap_error("one of --control-expr or --control-col is required")


def run_bd_shift(args: argparse.Namespace, logger, ap_error) -> List[str]:
    if not args.metadata:
        ap_error("--metadata is required")
    if not args.distance and not args.counts:
        ap_error("one of --distance or --counts is required")
    control = _control(args, ap_error)
    meta = read_table_any(args.metadata, index_col=0)
    distance = read_table_any(args.distance, index_col=0) if args.distance else None
    counts = read_table_any(args.counts, index_col=0) if args.counts and distance is None else None
    res = bd_shift(meta, distance, control=control, counts=counts, metric=args.metric,
                   density_col=args.density_col, fraction_col=args.fraction_col,
                   samples_as_columns=args.samples_as_columns)
    logger.info("Writing %s", args.out)
    return [write_tsv(res, args.out)]


def run_qsip(args: argparse.Namespace, logger, ap_error) -> List[str]:
    control = _control(args, ap_error)
    if args.table:
        table = read_table_any(args.table)
    elif args.counts and args.metadata:
        table = abundance_long(read_table_any(args.counts, index_col=0),
                               read_table_any(args.metadata, index_col=0),
                               taxon_col=args.taxon_col, count_col=args.count_col)
    else:
        ap_error("either --table or both --counts and --metadata are required")
    n_sample = parse_csv_list(args.n_sample, cast=int)
    if not n_sample or len(n_sample) != 2:
        ap_error(f"--n-sample needs two comma-separated integers, got {args.n_sample!r}")

    atomx = qsip_atom_excess(table, control=control, replicate_col=args.replicate_col,
                             isotope=args.isotope, taxon_col=args.taxon_col,
                             count_col=args.count_col, density_col=args.density_col)
    ensure_dir(args.out_dir)
    written = [write_tsv(atomx.W, os.path.join(args.out_dir, "qsip_W.tsv"))]
    if args.n_boot > 0:
        df_A = qsip_bootstrap(atomx, isotope=args.isotope, n_sample=n_sample, n_boot=args.n_boot,
                              a=args.a, seed=args.seed, workers=args.workers)
    else:
        df_A = atomx.A
    written.append(write_tsv(df_A, os.path.join(args.out_dir, "qsip_A.tsv")))
    logger.info("Wrote outputs to: %s", args.out_dir)
    return written


def main(argv: Optional[Sequence[str]] = None) -> int:
    ap = build_parser()
    args = parse_args(argv)
    logger = setup_logging(args.log_level)
    try:
        if args.command == "bd-shift":
            run_bd_shift(args, logger, ap.error)
        else:
            run_qsip(args, logger, ap.error)
    except HTSIPError as e:
        logger.error("%s", e)
        return 2
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
