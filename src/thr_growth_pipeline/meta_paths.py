"""
Central definitions for user-editable meta file paths.

Scripts should use get_meta_paths(repo_root) so that moving files only requires
changing this module.

Layout:
  meta/
    config.yml     - growth QC config (min_density, alert_range, trigger_threshold, mean_type)
  data/
    raw/           - master production tables (*.tsv)
    processed/     - per-run outputs: {run_id}/thr_fix__{run_id}.tsv, events, manifest
"""
from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace


def get_meta_paths(repo_root: Path) -> SimpleNamespace:
    """Return paths to user-editable meta files and data folders under repo_root."""
    root = Path(repo_root)
    meta = root / "meta"
    return SimpleNamespace(
        config=meta / "config.yml",
        raw_dir=root / "data" / "raw",
        processed_dir=root / "data" / "processed",
    )
