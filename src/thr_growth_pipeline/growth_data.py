# src/thr_growth_pipeline/growth_data.py
"""
Replicate bookkeeping for one threonine sample (strain × time point).

A GrowthData holds every observed replicate (production, density, origin) in insertion
order, each with its own validity flag. Validity starts from the density check at merge
time and is only ever cleared afterwards, by remove_bad_zeroes() and remove_outlier().

Records sort by production (high to low), then time point (low to high), then strain ID.
Equality and hashing use (old_strain, time_point) only.
"""
from __future__ import annotations

import math
import warnings
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

import numpy as np

from .config import DEFAULT_CONFIG, GrowthConfig


@dataclass
class Replicate:
    production: float
    density: float
    origin: str
    valid: bool = True


class GrowthData:
    def __init__(self, old_strain: str, time_point: float, config: Optional[GrowthConfig] = None):
        self.old_strain = str(old_strain)
        self.time_point = float(time_point)
        self.config = config if config is not None else DEFAULT_CONFIG
        self.replicates: List[Replicate] = []
        self._suspicious = False
        # Memoized production mean. Frozen at first read: later mask changes do NOT refresh it.
        self._production_key: Optional[float] = None

    def __repr__(self) -> str:
        return (
            f"GrowthData({self.old_strain!r}, {self.time_point:g}, "
            f"n={len(self.replicates)}, n_valid={self.n_valid}, suspicious={self._suspicious})"
        )

    def __len__(self) -> int:
        return len(self.replicates)

    # --- loading ---------------------------------------------------------

    def merge(self, prod: float, dens: float, experiment: str, well: str) -> None:
        """Append one replicate; it starts valid only if its density passes the config check."""
        dens = float(dens)
        self.replicates.append(
            Replicate(
                production=float(prod),
                density=dens,
                origin=f"{experiment}:{well}",
                valid=self.config.check_density(dens),
            )
        )

    # --- mask helpers ------------------------------------------------------

    def mask(self) -> List[bool]:
        return [r.valid for r in self.replicates]

    @property
    def n_valid(self) -> int:
        return sum(1 for r in self.replicates if r.valid)

    def _productions(self) -> List[float]:
        return [r.production for r in self.replicates]

    def _valid_productions(self) -> List[Tuple[int, float]]:
        return [(i, r.production) for i, r in enumerate(self.replicates) if r.valid]

    # --- filtering ---------------------------------------------------------

    def remove_bad_zeroes(self, threshold: float) -> None:
        """
        Invalidate a lone zero-production replicate when every other valid replicate
        produced more than threshold (likely a failed well, not a true negative).

        Marks the record suspicious if nothing valid remains afterwards.
        """
        lo = math.inf
        n_nonzero = 0
        n_zero = 0
        zero_idx = -1
        for i, val in self._valid_productions():
            if val > 0.0:
                n_nonzero += 1
                if val < lo:
                    lo = val
            elif val == 0.0:
                n_zero += 1
                zero_idx = i
        if n_nonzero > 0 and lo > threshold and n_zero == 1:
            self.replicates[zero_idx].valid = False
        if not any(r.valid for r in self.replicates):
            self._suspicious = True

    def remove_outlier(self, alert_range: float) -> bool:
        """
        Resolve a single dominant outlier when the valid spread exceeds alert_range.

        Returns True if the spread is acceptable (possibly after invalidating one replicate),
        False if it could not be resolved. Needs at least 3 valid replicates to resolve.
        """
        valid = self._valid_productions()
        lo, hi = math.inf, -math.inf
        lo_idx = hi_idx = -1
        for i, val in valid:
            if val < lo:
                lo, lo_idx = val, i
            if val > hi:
                hi, hi_idx = val, i
        if hi - lo <= alert_range:
            return True
        if len(valid) < 3:
            return False
        very_low = sum(1 for _, val in valid if hi - val > alert_range)
        very_high = sum(1 for _, val in valid if val - lo > alert_range)
        if very_high == 1 and very_low > 1:
            self.replicates[hi_idx].valid = False
            return True
        if very_low == 1 and very_high > 1:
            self.replicates[lo_idx].valid = False
            return True
        return False

    # --- suspicious flag ---------------------------------------------------

    @property
    def suspicious(self) -> bool:
        return self._suspicious

    def mark_suspicious(self) -> None:
        self._suspicious = True

    # --- aggregates --------------------------------------------------------

    def production(self) -> float:
        """
        Robust mean production (g/L) over valid replicates.

        Computed on the first call and cached; call only after filtering is done.
        """
        if self._production_key is None:
            self._production_key = self.config.mean_computer.good_mean(self._productions(), self.mask())
        return self._production_key

    def density(self) -> float:
        return self.config.mean_computer.good_mean([r.density for r in self.replicates], self.mask())

    def normalized_production(self) -> float:
        """Mean of production / density over valid replicates with a finite density; 0.0 if none."""
        usable = [r for r in self.replicates if r.valid and math.isfinite(r.density)]
        if not usable:
            return 0.0
        prod = np.array([r.production for r in usable], dtype=float)
        dens = np.array([r.density for r in usable], dtype=float)
        with np.errstate(divide="ignore", invalid="ignore"):
            ratios = prod / dens
        return self.config.mean_computer.good_mean(ratios, [True] * len(usable))

    def production_rate(self) -> float:
        mean = self.config.mean_computer.good_mean(self._productions(), self.mask())
        if self.time_point == 0.0:
            warnings.warn(
                f"Time point is 0 for strain {self.old_strain!r}; production rate is not finite.",
                UserWarning,
            )
        with np.errstate(divide="ignore", invalid="ignore"):
            return float(np.float64(mean) / np.float64(self.time_point))

    def production_range(self) -> float:
        vals = [val for _, val in self._valid_productions()]
        if not vals:
            return 0.0
        lo, hi = min(vals), max(vals)
        return hi - lo if lo < hi else 0.0

    def origins(self) -> str:
        """Every replicate's experiment:well label, invalid ones included."""
        return ", ".join(r.origin for r in self.replicates)

    def production_list(self) -> str:
        return ",".join(f"{r.production:6.4f}".strip() for r in self.replicates)

    # --- ranking -----------------------------------------------------------

    def ranking_key(self) -> tuple:
        prod = self.production()
        # NaN ranks ahead of every number
        if math.isnan(prod):
            return (0, 0.0, self.time_point, self.old_strain)
        return (1, -prod, self.time_point, self.old_strain)

    def __lt__(self, other: "GrowthData") -> bool:
        if not isinstance(other, GrowthData):
            return NotImplemented
        return self.ranking_key() < other.ranking_key()

    def __gt__(self, other: "GrowthData") -> bool:
        if not isinstance(other, GrowthData):
            return NotImplemented
        return self.ranking_key() > other.ranking_key()

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if not isinstance(other, GrowthData):
            return NotImplemented
        return self.old_strain == other.old_strain and self.time_point == other.time_point

    def __hash__(self) -> int:
        return hash((self.old_strain, self.time_point))


def sort_growth_data(records: Iterable[GrowthData]) -> List[GrowthData]:
    """Report order: production descending, time point ascending, strain ascending."""
    return sorted(records, key=lambda g: g.ranking_key())
