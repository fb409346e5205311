from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import numpy as np
import yaml

from .console import RankConsole
from .constants import GeV, cm2, in_units

SEPARATOR = "-" * 60

REQUIRED_KEYS = (
    "ID",
    "constraints_mass_min",
    "constraints_mass_max",
    "constraints_masses",
    "constraints_certainty_level",
    "sample_size",
    "cross_section_min",
    "cross_section_max",
    "cross_sections",
    "compute_halo_constraints",
)


class ConfigError(ValueError):
    """Missing or invalid configuration setting."""


def _require(cfg: dict[str, Any], key: str) -> Any:
    if key not in cfg or cfg[key] is None:
        raise ConfigError(f"No '{key}' setting in configuration file.")
    return cfg[key]


def _as_float(cfg: dict[str, Any], key: str) -> float:
    raw = _require(cfg, key)
    try:
        # PyYAML reads "1e-36" (no decimal point) as a string.
        val = float(str(raw).replace("_", ""))
    except ValueError as exc:
        raise ConfigError(f"Setting '{key}' must be a number, got {raw!r}.") from exc
    if not np.isfinite(val):
        raise ConfigError(f"Setting '{key}' must be finite.")
    return val


def _as_count(cfg: dict[str, Any], key: str) -> int:
    val = _as_float(cfg, key)
    if val < 1 or val != int(val):
        raise ConfigError(f"Setting '{key}' must be a positive integer.")
    return int(val)


def _as_bool(cfg: dict[str, Any], key: str) -> bool:
    raw = _require(cfg, key)
    if not isinstance(raw, bool):
        raise ConfigError(f"Setting '{key}' must be true or false.")
    return raw


@dataclass(frozen=True)
class ScanConfig:
    """Scan settings in natural units (masses in GeV, cross sections in GeV^-2)."""

    run_id: str
    mass_min: float
    mass_max: float
    n_masses: int
    certainty_level: float
    sample_size: int
    cross_section_min: float
    cross_section_max: float
    cross_sections: int
    compute_halo_constraints: bool
    reflection_masses: int
    certainty_levels: tuple[float, ...]
    results_root: Path = Path("results")
    benchmark: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, cfg: dict[str, Any], *, base_dir: Path | None = None) -> "ScanConfig":
        if not isinstance(cfg, dict):
            raise ConfigError("Configuration file must contain a mapping.")
        run_id = str(_require(cfg, "ID"))
        mass_min = _as_float(cfg, "constraints_mass_min") * GeV
        mass_max = _as_float(cfg, "constraints_mass_max") * GeV
        n_masses = _as_count(cfg, "constraints_masses")
        certainty_level = _as_float(cfg, "constraints_certainty_level")
        sample_size = _as_count(cfg, "sample_size")
        cs_min = _as_float(cfg, "cross_section_min") * cm2
        cs_max = _as_float(cfg, "cross_section_max") * cm2
        cross_sections = _as_count(cfg, "cross_sections")
        halo = _as_bool(cfg, "compute_halo_constraints")

        if not (0.0 < mass_min <= mass_max):
            raise ConfigError("Require 0 < constraints_mass_min <= constraints_mass_max.")
        if not (0.0 < cs_min < cs_max):
            raise ConfigError("Require 0 < cross_section_min < cross_section_max.")
        if cross_sections < 2:
            raise ConfigError("Setting 'cross_sections' must be at least 2.")
        if not (0.0 < certainty_level < 1.0):
            raise ConfigError("Setting 'constraints_certainty_level' must be in (0,1).")

        reflection_masses = _as_count(cfg, "reflection_masses") if "reflection_masses" in cfg else n_masses
        levels_raw = cfg.get("certainty_levels") or [certainty_level]
        try:
            levels = tuple(float(x) for x in levels_raw)
        except (TypeError, ValueError) as exc:
            raise ConfigError("Setting 'certainty_levels' must be a list of numbers.") from exc
        if any(not (0.0 < cl < 1.0) for cl in levels):
            raise ConfigError("Setting 'certainty_levels' entries must be in (0,1).")

        root = Path(str(cfg.get("results_root", "results")))
        if base_dir is not None and not root.is_absolute():
            root = Path(base_dir) / root
        benchmark = cfg.get("benchmark") or {}
        if not isinstance(benchmark, dict):
            raise ConfigError("Setting 'benchmark' must be a mapping.")

        return cls(
            run_id=run_id,
            mass_min=mass_min,
            mass_max=mass_max,
            n_masses=n_masses,
            certainty_level=certainty_level,
            sample_size=sample_size,
            cross_section_min=cs_min,
            cross_section_max=cs_max,
            cross_sections=cross_sections,
            compute_halo_constraints=halo,
            reflection_masses=reflection_masses,
            certainty_levels=levels,
            results_root=root,
            benchmark=dict(benchmark),
        )

    @property
    def results_dir(self) -> Path:
        return self.results_root / self.run_id

    def summary_lines(self) -> list[str]:
        return [
            SEPARATOR,
            f"Run ID:\t\t\t\t{self.run_id}",
            f"\tMass range [GeV]:\t\t[{in_units(self.mass_min, GeV):.3g}, {in_units(self.mass_max, GeV):.3g}]",
            f"\tMass steps:\t\t\t{self.n_masses}",
            f"\tCertainty level:\t\t{self.certainty_level:.3g}",
            "Parameter scan",
            f"\tSample size:\t\t\t{self.sample_size}",
            f"\tCross section (min) [cm^2]:\t{in_units(self.cross_section_min, cm2):.3g}",
            f"\tCross section (max) [cm^2]:\t{in_units(self.cross_section_max, cm2):.3g}",
            f"\tCross section steps:\t\t{self.cross_sections}",
            f"\tHalo constraints:\t\t{self.compute_halo_constraints}",
            SEPARATOR,
        ]

    def print_summary(self, rank: int = 0) -> None:
        RankConsole(rank).lines(self.summary_lines())


def load_config(path: Path) -> ScanConfig:
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}")
    with path.open(encoding="utf-8") as f:
        raw = yaml.safe_load(f)
    return ScanConfig.from_mapping(raw, base_dir=path.resolve().parent)
