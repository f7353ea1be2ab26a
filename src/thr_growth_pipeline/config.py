# src/thr_growth_pipeline/config.py
"""
Tunables for replicate QC, loaded once at start-up and passed explicitly.

Config file (meta/config.yml) may hold the keys at the root or under a `growth:` section:

  growth:
    min_density: 0.1        # densities below this disqualify a replicate at merge time
    alert_range: 1.2        # maximum acceptable production spread
    trigger_threshold: 1.2  # time-point anomaly gap
    mean_type: SIGMA2       # SIGMA2 | SIGMA1 | MIDDLE | TRIMEAN
"""
from __future__ import annotations

import math
import warnings
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .means import MeanComputer, create_mean_computer


DEFAULT_MIN_DENSITY = 0.1
DEFAULT_ALERT_RANGE = 1.2
DEFAULT_TRIGGER_THRESHOLD = 1.2
DEFAULT_MEAN_TYPE = "SIGMA2"


def load_yaml(path: Path) -> Dict[str, Any]:
    with Path(path).open("r", encoding="utf-8") as f:
        obj = yaml.safe_load(f)
    if obj is None:
        return {}
    if not isinstance(obj, dict):
        raise ValueError(f"YAML root must be a mapping: {path}")
    return obj


@dataclass(frozen=True)
class GrowthConfig:
    min_density: float = DEFAULT_MIN_DENSITY
    alert_range: float = DEFAULT_ALERT_RANGE
    trigger_threshold: float = DEFAULT_TRIGGER_THRESHOLD
    mean_type: str = DEFAULT_MEAN_TYPE

    def __post_init__(self) -> None:
        for name in ("min_density", "alert_range", "trigger_threshold"):
            v = getattr(self, name)
            try:
                fv = float(v)
            except (TypeError, ValueError):
                raise ValueError(f"{name} must be numeric, got {v!r}") from None
            if not math.isfinite(fv) or fv < 0.0:
                raise ValueError(f"{name} must be a finite non-negative value, got {v!r}")
            object.__setattr__(self, name, fv)
        key = str(self.mean_type).strip().upper()
        object.__setattr__(self, "mean_type", key)
        object.__setattr__(self, "_mean_computer", create_mean_computer(key))

    @property
    def mean_computer(self) -> MeanComputer:
        return self._mean_computer  # type: ignore[attr-defined]

    def check_density(self, dens: float) -> bool:
        """NaN means not measured and is accepted; otherwise require dens >= min_density."""
        d = float(dens)
        return math.isnan(d) or d >= self.min_density

    def with_overrides(self, **kwargs: Any) -> "GrowthConfig":
        """Return a copy with the non-None keyword values replaced."""
        changes = {k: v for k, v in kwargs.items() if v is not None}
        return replace(self, **changes) if changes else self

    @classmethod
    def from_mapping(cls, cfg: Optional[Dict[str, Any]]) -> "GrowthConfig":
        cfg = dict(cfg or {})
        has_section = "growth" in cfg
        section = (cfg["growth"] or {}) if has_section else cfg
        if not isinstance(section, dict):
            raise ValueError(f"'growth' config section must be a mapping, got {type(section).__name__}")
        known = {f.name for f in fields(cls)}
        unknown = sorted(k for k in section if k not in known)
        # Root-level configs share the file with other sections, so only a growth: section is strict.
        if unknown and has_section:
            warnings.warn(f"Ignoring unknown growth config keys: {unknown}", UserWarning)
        return cls(**{k: section[k] for k in known if k in section and section[k] is not None})


DEFAULT_CONFIG = GrowthConfig()


def load_growth_config(path: Optional[Path]) -> GrowthConfig:
    """Read GrowthConfig from YAML; a missing path (None) gives the defaults."""
    if path is None:
        return DEFAULT_CONFIG
    p = Path(path)
    if not p.is_file():
        raise FileNotFoundError(f"Config not found: {p}")
    return GrowthConfig.from_mapping(load_yaml(p))
