from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Tuple

import numpy as np
import pandas as pd


REQUIRED_COLUMNS = ["strain_lower", "time", "Thr", "Growth", "experiment", "Sample_y"]
OUTPUT_COLUMNS = ["strain", "time", "iptg", "production", "density", "experiment", "well", "suspect"]
# IPTG is not added before this many hours, so earlier rows are never induced.
IPTG_START_HOURS = 5.0

_TRUE_FLAGS = {"y", "yes", "t", "true", "1"}


@dataclass
class LoadStats:
    input_rows: int = 0
    bad_num_rows: int = 0
    blank_rows: int = 0
    suspect_rows: int = 0
    kept_rows: int = 0
    zero_prod_rows: int = 0


def parse_flag(v: Any) -> bool:
    if v is None or (isinstance(v, float) and pd.isna(v)):
        return False
    return str(v).strip().lower() in _TRUE_FLAGS


def read_production_table(path: Path) -> pd.DataFrame:
    """Read the raw master TSV as strings (blank cells stay "")."""
    p = Path(path)
    if not p.is_file():
        raise FileNotFoundError(f"Production table not found: {p}")
    df = pd.read_csv(p, sep="\t", dtype=str, keep_default_na=False)
    df.columns = [str(c).strip() for c in df.columns]
    return df


def tidy_production_table(raw: pd.DataFrame) -> Tuple[pd.DataFrame, LoadStats]:
    """
    Normalize the master table into one row per replicate.

    - rows with blank Thr or Growth are dropped
    - blank strain cells repeat the previous strain; blank iptg cells repeat the previous flag
    - strains starting with "Blank" are dropped
    Returns (tidy, stats) with columns OUTPUT_COLUMNS.
    """
    missing = [c for c in REQUIRED_COLUMNS if c not in raw.columns]
    if missing:
        raise ValueError(f"Production table must contain {missing}, got: {list(raw.columns)}")

    stats = LoadStats(input_rows=int(len(raw)))
    work = raw.copy()
    for c in work.columns:
        work[c] = work[c].fillna("").astype(str).str.strip()

    has_num = work["Thr"].ne("") & work["Growth"].ne("")
    stats.bad_num_rows = int((~has_num).sum())
    work = work.loc[has_num].copy()

    work["strain"] = work["strain_lower"].replace("", np.nan).ffill().fillna("")
    is_blank = work["strain"].str.lower().str.startswith("blank")
    stats.blank_rows = int(is_blank.sum())
    work = work.loc[~is_blank].copy()

    if "iptg" in work.columns:
        filled = work["iptg"].replace("", np.nan).ffill().fillna("")
        work["iptg_flag"] = filled.map(parse_flag).astype(bool)
    else:
        work["iptg_flag"] = False

    work["time"] = pd.to_numeric(work["time"], errors="coerce")
    work["iptg"] = work["iptg_flag"] & (work["time"] >= IPTG_START_HOURS)
    work["production"] = pd.to_numeric(work["Thr"], errors="coerce")
    work["density"] = pd.to_numeric(work["Growth"], errors="coerce")
    # well labels are reported as written (A01 stays A01)
    work["well"] = work["Sample_y"]
    if "Suspect" in work.columns:
        work["suspect"] = work["Suspect"].map(parse_flag).astype(bool)
    else:
        work["suspect"] = False

    stats.suspect_rows = int(work["suspect"].sum())
    stats.kept_rows = int((~work["suspect"]).sum())
    stats.zero_prod_rows = int(((~work["suspect"]) & work["production"].eq(0.0)).sum())

    out = work[OUTPUT_COLUMNS].reset_index(drop=True)
    return out, stats


def load_production_table(path: Path) -> Tuple[pd.DataFrame, LoadStats]:
    return tidy_production_table(read_production_table(path))
