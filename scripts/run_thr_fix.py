#!/usr/bin/env python3
"""
Reconcile threonine growth replicates from a master production table.

Each (strain, IPTG, time) sample merges its replicate rows; bad zeroes and single range
outliers are invalidated, unresolved ranges and time-point anomalies are flagged "?",
and rows marked Suspect in the input are reported as "Y".

Usage:
  python scripts/run_thr_fix.py --table data/raw/master.tsv [--config meta/config.yml]
      [--alert 1.2] [--trigger 1.2] [--mean SIGMA2] [--good] [--time 24] [--iptg] [--plot]
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = REPO_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from thr_growth_pipeline.config import load_growth_config  # noqa: E402
from thr_growth_pipeline.loader import load_production_table  # noqa: E402
from thr_growth_pipeline.means import MEAN_TYPES  # noqa: E402
from thr_growth_pipeline.meta_paths import get_meta_paths  # noqa: E402
from thr_growth_pipeline.summary import run_growth_fix, write_growth_outputs  # noqa: E402

META = get_meta_paths(REPO_ROOT)


def _resolve_from_repo_root(path: Path, repo_root: Path) -> Path:
    return path if path.is_absolute() else (repo_root / path)


def main() -> None:
    p = argparse.ArgumentParser(description="Reconcile threonine growth replicates.")
    p.add_argument("--table", type=Path, required=True, help="Master production TSV.")
    p.add_argument(
        "--out_dir",
        type=Path,
        default=META.processed_dir,
        help="Output root; results go to {out_dir}/{run_id}/.",
    )
    p.add_argument("--run_id", type=str, default=None, help="Run ID (default: table file stem).")
    p.add_argument("--config", type=Path, default=META.config, help="Path to config.yml (optional).")
    p.add_argument("--alert", type=float, default=None, help="Maximum reliable production range.")
    p.add_argument("--trigger", type=float, default=None, help="Threshold for anomalous time points.")
    p.add_argument("--min_density", type=float, default=None, help="Minimum acceptable optical density.")
    p.add_argument(
        "--mean",
        type=str,
        default=None,
        choices=sorted(MEAN_TYPES),
        help="Algorithm for the mean of multi-valued samples.",
    )
    p.add_argument("--good", action="store_true", help="Only output good samples (skip Suspect rows).")
    p.add_argument("--time", type=float, default=-1.0, help="Keep only this time point (negative = all).")
    p.add_argument("--iptg", action="store_true", help="Only output IPTG-positive samples.")
    p.add_argument("--plot", action="store_true", help="Write replicate_spread__{run_id}.png.")
    p.add_argument("--debug", action="store_true", help="Verbose output.")
    args = p.parse_args()

    table_path = _resolve_from_repo_root(args.table, REPO_ROOT)
    config_path = _resolve_from_repo_root(args.config, REPO_ROOT)
    if not table_path.is_file():
        raise FileNotFoundError(f"--table not found: {table_path}")

    config = load_growth_config(config_path if config_path.is_file() else None)
    config = config.with_overrides(
        alert_range=args.alert,
        trigger_threshold=args.trigger,
        min_density=args.min_density,
        mean_type=args.mean,
    )
    run_id = str(args.run_id).strip() if args.run_id else table_path.stem
    out_dir = _resolve_from_repo_root(args.out_dir, REPO_ROOT) / run_id

    if args.debug:
        print("Config:", config_path if config_path.is_file() else "(defaults)")
        print(
            f"min_density={config.min_density}, alert_range={config.alert_range}, "
            f"trigger_threshold={config.trigger_threshold}, mean_type={config.mean_type}"
        )

    print(f"Reading {table_path}")
    df, stats = load_production_table(table_path)
    print(
        f"{stats.bad_num_rows} rows were missing growth or production numbers, "
        f"{stats.blank_rows} blank-strain rows were skipped, "
        f"{stats.suspect_rows} input rows were suspect, and {stats.kept_rows} were good."
    )
    print(f"{stats.zero_prod_rows} good rows had no production.")

    result = run_growth_fix(
        df,
        config,
        time_filter=args.time,
        iptg_only=bool(args.iptg),
        include_bad=not bool(args.good),
    )
    c = result.counts
    print(f"{c.good} good samples, {c.alert_failed} failed the alert check, {c.questionable} were questionable.")
    print(
        f"{result.n_threshold_flagged} samples failed the threshold test "
        f"for threshold {config.trigger_threshold}."
    )
    print(f"{len(result.events)} replicates were excluded as outliers.")

    paths = write_growth_outputs(
        result,
        run_id,
        out_dir,
        config=config,
        input_paths_for_manifest=[table_path] + ([config_path] if config_path.is_file() else []),
        git_root=REPO_ROOT,
    )
    if args.plot:
        from thr_growth_pipeline.plotting import plot_replicate_spread

        paths["plot"] = plot_replicate_spread(result.growth_map.values(), out_dir / f"replicate_spread__{run_id}.png")

    for name, path in paths.items():
        print(f"Saved ({name}): {path}")


if __name__ == "__main__":
    main()
