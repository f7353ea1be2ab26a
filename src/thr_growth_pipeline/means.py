# src/thr_growth_pipeline/means.py
"""
Robust mean strategies for replicate aggregation.

Each strategy computes an error-corrected mean over the values whose mask bit is True.
Indices with a False mask bit are ignored entirely.

Empty-mask contract (all strategies): when no index is valid the result is 0.0.
"""
from __future__ import annotations

from typing import Callable, Dict, Sequence

import numpy as np


class MeanComputer:
    """Base class: subclasses implement _mean_of() over the already-filtered values."""

    name = "BASE"

    def good_mean(self, values: Sequence[float], mask: Sequence[bool]) -> float:
        vals = np.asarray(values, dtype=float)
        keep = np.asarray(mask, dtype=bool)
        if vals.shape != keep.shape:
            raise ValueError(f"values and mask must have the same length, got {vals.shape} and {keep.shape}")
        good = vals[keep]
        if good.size == 0:
            return 0.0
        if good.size == 1:
            return float(good[0])
        return float(self._mean_of(good))

    def _mean_of(self, vals: np.ndarray) -> float:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class SigmaMeanComputer(MeanComputer):
    """
    Drop values more than n_sigma deviations from the raw mean, then average what is left.

    The deviation is sqrt((sum(x**2) - mean**2) / n), not the population standard deviation.
    """

    def __init__(self, n_sigma: float = 2.0):
        self.n_sigma = float(n_sigma)
        self.name = f"SIGMA{self.n_sigma:g}"

    def _mean_of(self, vals: np.ndarray) -> float:
        mu = float(np.mean(vals))
        sd = float(np.sqrt((np.sum(vals * vals) - mu * mu) / vals.size))
        lo = mu - self.n_sigma * sd
        hi = mu + self.n_sigma * sd
        inside = vals[(vals >= lo) & (vals <= hi)]
        # sd is never below the population deviation, so inside is only empty for n_sigma < 1
        if inside.size == 0:
            return mu
        return float(np.mean(inside))

    def __repr__(self) -> str:
        return f"SigmaMeanComputer(n_sigma={self.n_sigma:g})"


class MiddleMeanComputer(MeanComputer):
    """Average after removing one minimum and one maximum value."""

    name = "MIDDLE"

    def _mean_of(self, vals: np.ndarray) -> float:
        if vals.size == 2:
            return float((vals[0] + vals[1]) / 2.0)
        lo = float(np.min(vals))
        hi = float(np.max(vals))
        total = float(np.sum(vals))
        if lo == hi:
            # all identical; nothing to trim
            return total / vals.size
        return (total - lo - hi) / (vals.size - 2)


class TrimeanMeanComputer(MeanComputer):
    """Tukey trimean: weighted average of the median and the two quartiles."""

    name = "TRIMEAN"

    def _mean_of(self, vals: np.ndarray) -> float:
        n = int(vals.size)
        if n == 2:
            return float((vals[0] + vals[1]) / 2.0)
        s = np.sort(vals)
        q2 = (s[(n - 1) >> 1] + s[n >> 1]) / 2.0
        q1 = (s[(n - 2) >> 2] + s[n >> 2]) / 2.0
        n3 = n * 3
        q3 = (s[(n3 - 1) >> 2] + s[(n3 + 1) >> 2]) / 2.0
        return float(q2 / 2.0 + (q1 + q3) / 4.0)


MEAN_TYPES: Dict[str, Callable[[], MeanComputer]] = {
    "SIGMA2": lambda: SigmaMeanComputer(2.0),
    "SIGMA1": lambda: SigmaMeanComputer(1.0),
    "MIDDLE": MiddleMeanComputer,
    "TRIMEAN": TrimeanMeanComputer,
}


def create_mean_computer(mean_type: str) -> MeanComputer:
    """Build the strategy registered under mean_type (case-insensitive)."""
    key = str(mean_type).strip().upper()
    factory = MEAN_TYPES.get(key)
    if factory is None:
        raise ValueError(f"Unknown mean type {mean_type!r}; expected one of {sorted(MEAN_TYPES)}")
    return factory()
