# src/thr_growth_pipeline/summary.py
"""
Strain × time aggregation of threonine replicates: QC passes, summary table, run manifest.

Input: tidy replicate table from loader.tidy_production_table (strain, time, iptg,
       production, density, experiment, well, suspect).
Output: thr_fix__{run_id}.tsv (one row per sample), outlier_events__{run_id}.csv
        (one row per invalidated replicate) and run_manifest__{run_id}.json.
"""
from __future__ import annotations

import hashlib
import json
import math
import subprocess
import warnings
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from .config import GrowthConfig
from .growth_data import GrowthData, sort_growth_data


GrowthKey = Tuple[str, bool, float]
GrowthMap = Dict[GrowthKey, GrowthData]

REQUIRED_COLUMNS = ["strain", "time", "production", "density", "experiment", "well"]
SUMMARY_COLUMNS = [
    "num",
    "old_strain",
    "iptg",
    "time",
    "thr_production",
    "growth",
    "bad",
    "thr_normalized",
    "thr_rate",
    "origins",
    "raw_productions",
    "n",
    "n_valid",
    "range",
]
OUTLIER_EVENT_COLUMNS = [
    "old_strain",
    "iptg",
    "time",
    "origin",
    "production",
    "density",
    "method",
    "group_n",
    "group_n_valid",
]


@dataclass
class FilterCounts:
    good: int = 0
    alert_failed: int = 0
    questionable: int = 0


@dataclass
class GrowthFixResult:
    growth_map: GrowthMap
    bad_map: GrowthMap
    counts: FilterCounts
    events: pd.DataFrame
    n_threshold_flagged: int
    summary: pd.DataFrame = field(default_factory=pd.DataFrame)


def build_growth_map(df: pd.DataFrame, config: GrowthConfig) -> Tuple[GrowthMap, GrowthMap]:
    """
    Merge replicate rows into one GrowthData per (strain, iptg, time), in file order.

    Rows flagged suspect go to the second (bad) map. Rows without a finite time are skipped.
    """
    for c in REQUIRED_COLUMNS:
        if c not in df.columns:
            raise ValueError(f"Replicate table must contain {c}, got: {list(df.columns)}")

    times = pd.to_numeric(df["time"], errors="coerce")
    n_no_time = int((~np.isfinite(times.to_numpy(dtype=float))).sum())
    if n_no_time:
        warnings.warn(f"Skipping {n_no_time} replicate rows without a numeric time point.", UserWarning)

    has_iptg = "iptg" in df.columns
    has_suspect = "suspect" in df.columns
    good: GrowthMap = {}
    bad: GrowthMap = {}
    for (_, row), t in zip(df.iterrows(), times):
        if not np.isfinite(t):
            continue
        strain = str(row["strain"])
        iptg = bool(row["iptg"]) if has_iptg else False
        key: GrowthKey = (strain, iptg, float(t))
        target = bad if (has_suspect and bool(row["suspect"])) else good
        growth = target.get(key)
        if growth is None:
            growth = GrowthData(strain, float(t), config)
            target[key] = growth
        growth.merge(
            float(row["production"]),
            float(row["density"]),
            str(row["experiment"]),
            str(row["well"]),
        )
    return good, bad


def _event_rows(key: GrowthKey, growth: GrowthData, before: List[bool], method: str) -> List[Dict[str, Any]]:
    rows: List[Dict[str, Any]] = []
    for was, rep in zip(before, growth.replicates):
        if was and not rep.valid:
            rows.append(
                {
                    "old_strain": growth.old_strain,
                    "iptg": bool(key[1]),
                    "time": growth.time_point,
                    "origin": rep.origin,
                    "production": rep.production,
                    "density": rep.density,
                    "method": method,
                    "group_n": len(growth),
                    "group_n_valid": growth.n_valid,
                }
            )
    return rows


def apply_growth_filters(growth_map: GrowthMap, config: GrowthConfig) -> Tuple[FilterCounts, pd.DataFrame]:
    """
    Run bad-zero removal, then range-outlier removal, on every record.

    Both passes use config.alert_range. A range that cannot be resolved marks the record
    suspicious. Returns counts and one event row per invalidated replicate.
    """
    counts = FilterCounts()
    events: List[Dict[str, Any]] = []
    for key, growth in growth_map.items():
        before = growth.mask()
        growth.remove_bad_zeroes(config.alert_range)
        events.extend(_event_rows(key, growth, before, "bad_zero"))

        before = growth.mask()
        ok = growth.remove_outlier(config.alert_range)
        events.extend(_event_rows(key, growth, before, "range_outlier"))

        if not ok:
            growth.mark_suspicious()
            counts.alert_failed += 1
        elif growth.suspicious:
            counts.questionable += 1
        else:
            counts.good += 1
    return counts, pd.DataFrame(events, columns=OUTLIER_EVENT_COLUMNS)


def flag_threshold_anomalies(growth_map: GrowthMap, trigger_threshold: float) -> int:
    """
    Flag strains whose best time point towers over the rest.

    Only strains (strain, iptg) with three or more time points are checked; the top-ranked
    record is marked suspicious when its production beats the runner-up by more than
    trigger_threshold. Returns the number of records flagged.
    """
    by_strain: Dict[Tuple[str, bool], List[GrowthData]] = {}
    for (strain, iptg, _t), growth in growth_map.items():
        by_strain.setdefault((strain, iptg), []).append(growth)
    flagged = 0
    for records in by_strain.values():
        if len(records) < 3:
            continue
        ranked = sort_growth_data(records)
        first, second = ranked[0], ranked[1]
        if first.production() - second.production() > float(trigger_threshold):
            first.mark_suspicious()
            flagged += 1
    return flagged


def _summary_row(num: int, key: GrowthKey, growth: GrowthData, flag: str) -> Dict[str, Any]:
    return {
        "num": num,
        "old_strain": growth.old_strain,
        "iptg": bool(key[1]),
        "time": growth.time_point,
        "thr_production": growth.production(),
        "growth": growth.density(),
        "bad": flag,
        "thr_normalized": growth.normalized_production(),
        "thr_rate": growth.production_rate(),
        "origins": growth.origins(),
        "raw_productions": growth.production_list(),
        "n": len(growth),
        "n_valid": growth.n_valid,
        "range": growth.production_range(),
    }


def build_growth_summary(growth_map: GrowthMap, bad_map: Optional[GrowthMap] = None) -> pd.DataFrame:
    """
    One row per sample, good samples first (sorted by strain, iptg, time).

    bad is "" for good samples, "?" for suspicious ones and "Y" for rows from bad_map.
    Bad-map samples are only reported when the same key also exists among the good samples.
    """
    rows: List[Dict[str, Any]] = []
    num = 0
    for key in sorted(growth_map):
        growth = growth_map[key]
        num += 1
        rows.append(_summary_row(num, key, growth, "?" if growth.suspicious else ""))
    if bad_map:
        for key in sorted(bad_map):
            if key not in growth_map:
                continue
            num += 1
            rows.append(_summary_row(num, key, bad_map[key], "Y"))
    return pd.DataFrame(rows, columns=SUMMARY_COLUMNS)


def run_growth_fix(
    df: pd.DataFrame,
    config: GrowthConfig,
    *,
    time_filter: Optional[float] = None,
    iptg_only: bool = False,
    include_bad: bool = True,
) -> GrowthFixResult:
    """
    Whole reconciliation: filter rows, merge, QC passes, threshold check, summary.

    time_filter keeps a single time point (None or negative = all); iptg_only keeps induced rows.
    """
    work = df
    if iptg_only and "iptg" in work.columns:
        work = work.loc[work["iptg"].astype(bool)]
    if time_filter is not None and float(time_filter) >= 0.0:
        work = work.loc[pd.to_numeric(work["time"], errors="coerce") == float(time_filter)]

    good, bad = build_growth_map(work, config)
    counts, events = apply_growth_filters(good, config)
    n_flagged = flag_threshold_anomalies(good, config.trigger_threshold)
    summary = build_growth_summary(good, bad if include_bad else None)
    return GrowthFixResult(
        growth_map=good,
        bad_map=bad,
        counts=counts,
        events=events,
        n_threshold_flagged=n_flagged,
        summary=summary,
    )


def _file_sha256(path: Path) -> str:
    h = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(1 << 20), b""):
            h.update(chunk)
    return h.hexdigest()


def _git_commit(repo_root: Optional[Path] = None) -> Optional[str]:
    try:
        out = subprocess.run(
            ["git", "rev-parse", "HEAD"],
            cwd=Path(repo_root or Path.cwd()),
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (OSError, subprocess.SubprocessError):
        return None
    if out.returncode == 0 and out.stdout.strip():
        return out.stdout.strip()
    return None


def build_run_manifest_dict(
    run_id: str,
    input_paths: List[Path],
    *,
    git_root: Optional[Path] = None,
    extra: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Manifest dict: run_id, timestamp, git commit, input file hashes/mtime/size."""
    manifest: Dict[str, Any] = {
        "run_id": run_id,
        "timestamp_iso": datetime.now(timezone.utc).isoformat(),
        "git_commit": _git_commit(git_root),
        "input_files": [],
    }
    for p in (Path(x) for x in input_paths):
        if not p.is_file():
            manifest["input_files"].append({"path": str(p), "error": "file not found"})
            continue
        stat = p.stat()
        manifest["input_files"].append({
            "path": str(p.resolve()),
            "sha256": _file_sha256(p),
            "mtime_iso": datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc).isoformat(),
            "size_bytes": stat.st_size,
        })
    if extra:
        manifest["extra"] = extra
    return manifest


def _clean_for_json(obj: Any) -> Any:
    """Recursively replace float/numpy NaN/Inf with None so JSON is valid."""
    if isinstance(obj, dict):
        return {k: _clean_for_json(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_clean_for_json(x) for x in obj]
    if isinstance(obj, np.generic):
        obj = obj.item()
    if isinstance(obj, float) and (math.isnan(obj) or math.isinf(obj)):
        return None
    return obj


def write_growth_outputs(
    result: GrowthFixResult,
    run_id: str,
    out_dir: Path,
    *,
    config: GrowthConfig,
    input_paths_for_manifest: Optional[List[Path]] = None,
    git_root: Optional[Path] = None,
) -> Dict[str, Path]:
    """
    Write summary TSV, outlier events CSV and run manifest JSON under out_dir.
    Returns the written paths keyed by "summary", "events", "manifest".
    """
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    paths = {
        "summary": out_dir / f"thr_fix__{run_id}.tsv",
        "events": out_dir / f"outlier_events__{run_id}.csv",
        "manifest": out_dir / f"run_manifest__{run_id}.json",
    }
    result.summary.to_csv(paths["summary"], sep="\t", index=False, na_rep="")
    result.events.to_csv(paths["events"], index=False, na_rep="")

    extra = {
        "output_files": sorted(p.name for p in paths.values()),
        "config": {
            "min_density": config.min_density,
            "alert_range": config.alert_range,
            "trigger_threshold": config.trigger_threshold,
            "mean_type": config.mean_type,
        },
        "counts": {
            "good": result.counts.good,
            "alert_failed": result.counts.alert_failed,
            "questionable": result.counts.questionable,
            "threshold_flagged": result.n_threshold_flagged,
            "excluded_replicates": int(len(result.events)),
        },
    }
    manifest = build_run_manifest_dict(
        run_id,
        input_paths_for_manifest or [],
        git_root=git_root,
        extra=extra,
    )
    with open(paths["manifest"], "w", encoding="utf-8") as f:
        json.dump(_clean_for_json(manifest), f, indent=2, ensure_ascii=False)
    return paths
