# src/thr_growth_pipeline/plotting.py
"""
Diagnostic plot of replicate spread per sample.
"""
from __future__ import annotations

from pathlib import Path
from typing import Iterable, List

import numpy as np
import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402

from .growth_data import GrowthData, sort_growth_data  # noqa: E402


# 1-column width ≈ 90mm ≈ 3.5 in
PAPER_FIGSIZE_SINGLE = (3.5, 2.6)


def apply_paper_style() -> dict:
    """
    Return matplotlib rcParams dict for paper-grade figures.

    Usage:
        with plt.rc_context(apply_paper_style()):
            fig, ax = plt.subplots(figsize=PAPER_FIGSIZE_SINGLE)
    """
    return {
        "font.family": "sans-serif",
        "font.sans-serif": ["Arial", "Helvetica", "Liberation Sans", "DejaVu Sans"],
        "font.size": 7,
        "axes.titlesize": 8,
        "axes.labelsize": 7,
        "xtick.labelsize": 6,
        "ytick.labelsize": 6,
        "legend.fontsize": 6,
        "lines.linewidth": 0.7,
        "lines.markersize": 3,
        "axes.linewidth": 0.6,
        "axes.edgecolor": "0.3",
        "axes.labelcolor": "0.15",
        "axes.grid": False,
        "xtick.direction": "out",
        "ytick.direction": "out",
        "legend.frameon": True,
        "legend.framealpha": 0.9,
        "legend.edgecolor": "0.7",
        "figure.facecolor": "white",
        "savefig.dpi": 600,
        "savefig.facecolor": "white",
        "savefig.bbox": "tight",
        "savefig.pad_inches": 0.02,
    }


def paper_savefig(fig, path, **kwargs):
    """Save figure as 600 dpi PNG with a tight bbox."""
    defaults = {
        "dpi": 600,
        "bbox_inches": "tight",
        "pad_inches": 0.02,
        "facecolor": "white",
        "edgecolor": "white",
    }
    defaults.update(kwargs)
    fig.savefig(path, **defaults)


def _sample_label(growth: GrowthData) -> str:
    label = f"{growth.old_strain} {growth.time_point:g}h"
    return f"{label} ?" if growth.suspicious else label


def plot_replicate_spread(records: Iterable[GrowthData], out_path: Path) -> Path:
    """
    Strip plot of every replicate's production per sample, in ranking order.

    Valid replicates are filled, invalidated ones hollow; the aggregate production is a
    horizontal tick. Suspicious samples get a trailing "?" in the axis label.
    """
    ranked: List[GrowthData] = sort_growth_data(records)
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)

    width = max(PAPER_FIGSIZE_SINGLE[0], 0.25 * len(ranked) + 1.0)
    with plt.rc_context(apply_paper_style()):
        fig, ax = plt.subplots(figsize=(width, PAPER_FIGSIZE_SINGLE[1]))
        try:
            for x, growth in enumerate(ranked):
                prod = np.array([r.production for r in growth.replicates], dtype=float)
                valid = np.array([r.valid for r in growth.replicates], dtype=bool)
                ax.scatter(np.full(int(valid.sum()), x), prod[valid], s=8, color="#1f77b4", zorder=3)
                ax.scatter(
                    np.full(int((~valid).sum()), x),
                    prod[~valid],
                    s=8,
                    facecolors="none",
                    edgecolors="#d62728",
                    zorder=3,
                )
                ax.hlines(growth.production(), x - 0.3, x + 0.3, colors="0.2", linewidth=0.8, zorder=2)
            ax.set_xticks(range(len(ranked)))
            ax.set_xticklabels([_sample_label(g) for g in ranked], rotation=90)
            ax.set_ylabel("Threonine (g/L)")
            ax.set_xlim(-0.7, max(len(ranked), 1) - 0.3)
            fig.tight_layout()
            paper_savefig(fig, out_path)
        finally:
            plt.close(fig)
    return out_path
