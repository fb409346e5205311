from __future__ import annotations

from pathlib import Path
from typing import Any

import numpy as np
from scipy.optimize import brentq

from .console import RankConsole
from .constants import GeV, cm2, in_units
from .evaluator import DMParticle, Detector, Evaluator, SolarModel, particle_state
from .grid import log_space
from .scan import certainty_label
from .tables import export_table, format_row

LOG_COUPLING_TOL = 1.0e-2


class SolarReflectionLimit:
    """Grid-free upper limits: one bracketed root find in log-coupling per mass."""

    def __init__(
        self,
        sample_size: int,
        mass_min: float,
        mass_max: float,
        n_masses: int,
        coupling_min: float,
        coupling_max: float,
        certainty_level: float,
        label: str = "Reflection",
    ) -> None:
        if int(sample_size) <= 0:
            raise ValueError("sample_size must be positive.")
        if not (0.0 < float(coupling_min) < float(coupling_max)):
            raise ValueError("Require 0 < coupling_min < coupling_max.")
        if not (0.0 < float(certainty_level) < 1.0):
            raise ValueError("certainty_level must be in (0,1).")
        self.sample_size = int(sample_size)
        self.coupling_min = float(coupling_min)
        self.coupling_max = float(coupling_max)
        self.certainty_level = float(certainty_level)
        self.label = str(label)
        self.masses = log_space(mass_min, mass_max, n_masses)
        self.limits: list[float] = []

    @classmethod
    def from_config(cls, cfg: Any, label: str = "Reflection") -> "SolarReflectionLimit":
        return cls(
            cfg.sample_size,
            cfg.mass_min,
            cfg.mass_max,
            cfg.reflection_masses,
            cfg.cross_section_min,
            cfg.cross_section_max,
            cfg.certainty_level,
            label=label,
        )

    @property
    def filename(self) -> str:
        return f"{self.label}_Limit_{certainty_label(self.certainty_level)}.txt"

    def upper_limit(
        self,
        mass: float,
        dm: DMParticle,
        detector: Detector,
        solar_model: SolarModel,
        halo_model: Any,
        *,
        evaluator: Evaluator,
        rank: int = 0,
    ) -> float:
        console = RankConsole(rank)
        target = detector.target_particles
        threshold = 1.0 - self.certainty_level

        def residual(log_coupling: float) -> float:
            dm.set_interaction_parameter(float(np.exp(log_coupling)), target)
            p = float(evaluator(dm, detector, solar_model, halo_model, self.sample_size))
            console.log(f"p = {p:.3g}")
            return p - threshold

        with particle_state(dm, detector):
            dm.set_mass(float(mass))
            log_limit = brentq(
                residual,
                float(np.log(self.coupling_min)),
                float(np.log(self.coupling_max)),
                xtol=LOG_COUPLING_TOL,
            )
        return float(np.exp(log_limit))

    def compute_limit_curve(
        self,
        out_dir: Path,
        dm: DMParticle,
        detector: Detector,
        solar_model: SolarModel,
        halo_model: Any,
        *,
        evaluator: Evaluator,
        rank: int = 0,
    ) -> np.ndarray:
        """Limit at every mass (ascending), appended to the curve file as each one finishes."""
        console = RankConsole(rank)
        self.limits = []
        f = None
        if console.is_root:
            path = Path(out_dir) / self.filename
            path.parent.mkdir(parents=True, exist_ok=True)
            f = path.open("w", encoding="ascii")
        try:
            for mass in self.masses:
                limit = self.upper_limit(
                    float(mass), dm, detector, solar_model, halo_model, evaluator=evaluator, rank=rank
                )
                self.limits.append(limit)
                row = format_row([in_units(mass, GeV), in_units(limit, cm2)])
                console.log(row)
                if f is not None:
                    f.write(row + "\n")
                    f.flush()
        finally:
            if f is not None:
                f.close()
        return self.limit_table()

    def limit_table(self) -> np.ndarray:
        n = len(self.limits)
        return np.column_stack([self.masses[:n], np.asarray(self.limits, dtype=float)]).reshape(-1, 2)

    def export_curve(self, out_dir: Path, rank: int = 0) -> None:
        if int(rank) != 0:
            return
        export_table(Path(out_dir) / self.filename, self.limit_table(), units=(GeV, cm2))
