from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Sequence

import numpy as np
from scipy.interpolate import PchipInterpolator
from scipy.optimize import brentq

from .console import RankConsole
from .constants import GeV, cm2
from .evaluator import DMParticle, Detector, Evaluator, SolarModel, particle_state
from .grid import EXCLUSION_THRESHOLD, PValueGrid, log_space
from .tables import export_table, import_table

P_VALUES_FILE = "p_values.txt"
P_GRID_FILE = "p_grid.txt"

NO_EXCLUSION_YET = "no_exclusion_yet"
EXCLUDING = "excluding"
MISS_AFTER_EXCLUSION = "miss_after_exclusion"


def certainty_label(certainty_level: float) -> int:
    return int(round(100.0 * float(certainty_level)))


@dataclass
class RowPruning:
    """Decides when a descending mass loop over one coupling row may stop.

    ``last_excluded`` is a mass-loop step (0 = heaviest mass) and carries over
    from the previous row, so a row that has not excluded anything yet stops once
    it runs more than one step past the previous row's exclusion band.
    """

    n_masses: int
    state: str = NO_EXCLUSION_YET
    last_excluded: int = field(default=-1)

    def __post_init__(self) -> None:
        if self.last_excluded < 0:
            self.last_excluded = int(self.n_masses)

    @property
    def row_exclusion(self) -> bool:
        return self.state != NO_EXCLUSION_YET

    def start_row(self) -> None:
        self.state = NO_EXCLUSION_YET

    def observe(self, step: int, p: float) -> bool:
        """Record the p-value at ``step``; return False when the row should stop."""
        if p < EXCLUSION_THRESHOLD:
            self.state = EXCLUDING
            self.last_excluded = int(step)
            return True
        if self.state == EXCLUDING:
            self.state = MISS_AFTER_EXCLUSION
            return False
        return not (step > self.last_excluded + 1)


class ParameterScan:
    """Adaptive scan of a (mass, coupling) grid for excluded parameter points."""

    def __init__(self, masses: Sequence[float], couplings: Sequence[float], sample_size: int) -> None:
        sample_size = int(sample_size)
        if sample_size <= 0:
            raise ValueError("sample_size must be positive.")
        self.grid = PValueGrid(masses=np.asarray(masses, dtype=float), couplings=np.asarray(couplings, dtype=float))
        self.sample_size = sample_size
        self.evaluations = 0

    @classmethod
    def from_config(cls, cfg: Any) -> "ParameterScan":
        masses = log_space(cfg.mass_min, cfg.mass_max, cfg.n_masses)
        couplings = log_space(cfg.cross_section_min, cfg.cross_section_max, cfg.cross_sections)
        return cls(masses, couplings, cfg.sample_size)

    @property
    def masses(self) -> np.ndarray:
        return self.grid.masses

    @property
    def couplings(self) -> np.ndarray:
        return self.grid.couplings

    @property
    def p_value_grid(self) -> np.ndarray:
        return self.grid.values

    def perform_scan(
        self,
        dm: DMParticle,
        detector: Detector,
        solar_model: SolarModel,
        halo_model: Any,
        *,
        evaluator: Evaluator,
        rank: int = 0,
    ) -> int:
        """Fill the grid from the strongest coupling down; return the number of evaluations.

        The particle's mass and interaction parameter are restored on exit.
        """
        console = RankConsole(rank)
        target = detector.target_particles
        n_couplings, n_masses = self.grid.shape
        pruning = RowPruning(n_masses)
        counter = 0
        with particle_state(dm, detector):
            for i in range(n_couplings):
                index_coupling = n_couplings - 1 - i
                dm.set_interaction_parameter(float(self.couplings[index_coupling]), target)
                pruning.start_row()
                for j in range(n_masses):
                    index_mass = n_masses - 1 - j
                    dm.set_mass(float(self.masses[index_mass]))
                    counter += 1
                    console.log()
                    console.log(f"{counter})")
                    self.print_grid(rank, current=(index_coupling, index_mass))
                    p = float(evaluator(dm, detector, solar_model, halo_model, self.sample_size))
                    self.grid.store(index_coupling, index_mass, p)
                    console.log(f"p-value = {p:.3g}")
                    if not pruning.observe(j, p):
                        break
                if not pruning.row_exclusion:
                    break
        self.evaluations += counter
        return counter

    def limit_curve(self, certainty_level: float) -> np.ndarray:
        """Interpolated (mass, coupling) boundary where p crosses ``1 - certainty_level``.

        Masses whose strongest sampled coupling does not exclude are skipped. Root
        finding errors for unbracketed crossings propagate.
        """
        threshold = 1.0 - float(certainty_level)
        couplings = self.couplings
        limit: list[tuple[float, float]] = []
        for im, mass in enumerate(self.masses):
            if not self.p_value_grid[-1, im] < threshold:
                continue
            interpolation = PchipInterpolator(couplings, self.p_value_grid[:, im] - threshold)
            coupling_limit = brentq(
                lambda c: float(interpolation(c)),
                float(couplings[0]),
                float(couplings[-1]),
                xtol=0.01 * float(couplings[0]),
            )
            limit.append((float(mass), float(coupling_limit)))
        return np.asarray(limit, dtype=float).reshape(-1, 2)

    def export_p_values(self, out_dir: Path, rank: int = 0) -> None:
        if int(rank) != 0:
            return
        out_dir = Path(out_dir)
        export_table(out_dir / P_VALUES_FILE, self.grid.to_table(), units=(GeV, cm2, 1.0))
        export_table(out_dir / P_GRID_FILE, self.p_value_grid)

    def import_p_values(self, out_dir: Path) -> None:
        """Load ``p_values.txt``; the mass axis must already match the exported one.

        Couplings are rebuilt from the cm^2 column, so they can differ from the
        exported axis by one ulp. The p-values are read back unchanged.
        """
        table = import_table(Path(out_dir) / P_VALUES_FILE, units=(GeV, cm2, 1.0))
        self.grid = PValueGrid.from_table(table, self.masses)

    def export_limits(
        self,
        out_dir: Path,
        rank: int = 0,
        certainty_levels: Sequence[float] = (0.95,),
    ) -> dict[int, np.ndarray]:
        curves: dict[int, np.ndarray] = {}
        for certainty_level in certainty_levels:
            limit = self.limit_curve(certainty_level)
            cl = certainty_label(certainty_level)
            curves[cl] = limit
            if int(rank) == 0:
                export_table(Path(out_dir) / f"Limit_{cl}.txt", limit, units=(GeV, cm2))
        return curves

    def print_grid(self, rank: int = 0, current: tuple[int, int] | None = None) -> None:
        RankConsole(rank).lines(self.grid.render(current))
