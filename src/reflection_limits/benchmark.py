from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import numpy as np
from scipy.stats import maxwell, poisson

from .constants import GeV, cm2, keV, km_sec

TARGET_NUCLEI = "nuclei"


@dataclass
class BenchmarkParticle:
    """Dark matter particle with one interaction parameter per target type."""

    mass: float
    interaction: dict[str, float] = field(default_factory=dict)

    def set_mass(self, mass: float) -> None:
        mass = float(mass)
        if not (np.isfinite(mass) and mass > 0.0):
            raise ValueError("Particle mass must be positive and finite.")
        self.mass = mass

    def get_interaction_parameter(self, target: str) -> float:
        return float(self.interaction.get(str(target), 0.0))

    def set_interaction_parameter(self, value: float, target: str) -> None:
        self.interaction[str(target)] = float(value)


@dataclass(frozen=True)
class StandardHaloModel:
    """Maxwellian galactic speed distribution truncated at the escape speed."""

    v0: float = 220.0 * km_sec
    v_esc: float = 544.0 * km_sec

    def sample_speeds(self, n: int, rng: np.random.Generator) -> np.ndarray:
        scale = float(self.v0) / np.sqrt(2.0)
        u_max = float(maxwell.cdf(self.v_esc, scale=scale))
        u = rng.uniform(0.0, u_max, size=int(n))
        return maxwell.ppf(u, scale=scale)


@dataclass
class BenchmarkSolarModel:
    """Sun as a reflector whose reflection probability grows with the cross section.

    Data generation is refused unless the scattering rate was interpolated at the
    particle's current mass and interaction parameter.
    """

    target_particles: str = TARGET_NUCLEI
    cross_section_ref: float = 1.0e-36 * cm2
    surface_escape_speed: float = 618.0 * km_sec
    core_temperature: float = 1.36 * keV
    rate_point: tuple[float, float] | None = None
    rate_resolution: tuple[int, int] | None = None
    interpolations: int = 0

    def interpolate_total_dm_scattering_rate(self, dm: Any, n_radius: int, n_speed: int) -> None:
        self.rate_point = (float(dm.mass), float(dm.get_interaction_parameter(self.target_particles)))
        self.rate_resolution = (int(n_radius), int(n_speed))
        self.interpolations += 1

    def require_current_rate(self, dm: Any) -> None:
        point = (float(dm.mass), float(dm.get_interaction_parameter(self.target_particles)))
        if self.rate_point != point:
            raise RuntimeError("Scattering rate was not interpolated for the current DM mass and coupling.")

    def reflection_probability(self, dm: Any) -> float:
        coupling = float(dm.get_interaction_parameter(self.target_particles))
        return float(-np.expm1(-coupling / float(self.cross_section_ref)))

    def reflected_speeds(self, speeds: np.ndarray, mass: float) -> np.ndarray:
        # Gravitational infall plus a thermal kick from the core.
        v2 = np.asarray(speeds, dtype=float) ** 2 + self.surface_escape_speed**2
        return np.sqrt(v2 + 3.0 * self.core_temperature / float(mass))


@dataclass(frozen=True)
class BenchmarkDataSet:
    speeds: np.ndarray
    u_min: float
    sample_size: int
    reflection_probability: float

    @property
    def fraction_above_threshold(self) -> float:
        if self.speeds.size == 0:
            return 0.0
        return float(np.mean(self.speeds > self.u_min))


@dataclass(frozen=True)
class ReflectionSpectrum:
    """Reflected flux reaching the detector, relative to the full halo flux."""

    mass: float
    flux_fraction: float


@dataclass(frozen=True)
class BenchmarkSimulator:
    """Monte Carlo stand-in for the solar reflection simulation.

    A fixed seed gives common random numbers at every grid point, so the p-value
    varies smoothly with the parameters. ``halo_only`` skips the Sun entirely.
    """

    seed: int = 2718
    halo_only: bool = False

    def generate_data(
        self,
        sample_size: int,
        u_min: float,
        dm: Any,
        solar_model: BenchmarkSolarModel,
        halo_model: StandardHaloModel,
    ) -> BenchmarkDataSet:
        rng = np.random.default_rng(int(self.seed))
        speeds = halo_model.sample_speeds(int(sample_size), rng)
        if self.halo_only:
            return BenchmarkDataSet(speeds=speeds, u_min=float(u_min), sample_size=int(sample_size), reflection_probability=1.0)
        solar_model.require_current_rate(dm)
        return BenchmarkDataSet(
            speeds=solar_model.reflected_speeds(speeds, dm.mass),
            u_min=float(u_min),
            sample_size=int(sample_size),
            reflection_probability=solar_model.reflection_probability(dm),
        )

    def reflection_spectrum(
        self,
        data: BenchmarkDataSet,
        solar_model: BenchmarkSolarModel,
        halo_model: StandardHaloModel,
        mass: float,
    ) -> ReflectionSpectrum:
        return ReflectionSpectrum(mass=float(mass), flux_fraction=data.reflection_probability * data.fraction_above_threshold)


@dataclass(frozen=True)
class BenchmarkDetector:
    """Counting experiment with a recoil threshold and a Poisson p-value."""

    target_particles: str = TARGET_NUCLEI
    target_mass: float = 0.938 * GeV
    energy_threshold: float = 0.1 * keV
    exposure_events: float = 1.0e4
    coupling_ref: float = 1.0e-36 * cm2
    observed_events: int = 0
    background_events: float = 0.0

    def minimum_dm_speed(self, dm: Any) -> float:
        mu = dm.mass * self.target_mass / (dm.mass + self.target_mass)
        return float(np.sqrt(self.target_mass * self.energy_threshold / (2.0 * mu * mu)))

    def expected_signal(self, dm: Any, spectrum: ReflectionSpectrum) -> float:
        coupling = float(dm.get_interaction_parameter(self.target_particles))
        return float(self.exposure_events * coupling / self.coupling_ref * spectrum.flux_fraction)

    def p_value(self, dm: Any, spectrum: ReflectionSpectrum) -> float:
        mu = self.background_events + self.expected_signal(dm, spectrum)
        return float(poisson.cdf(int(self.observed_events), mu))


def benchmark_backend(cfg: dict[str, Any] | None = None) -> tuple[BenchmarkDetector, BenchmarkSolarModel, StandardHaloModel, BenchmarkSimulator]:
    """Build the benchmark collaborators from an optional ``benchmark:`` config mapping."""
    cfg = dict(cfg or {})
    detector = BenchmarkDetector(
        energy_threshold=float(cfg.get("energy_threshold_keV", 0.1)) * keV,
        exposure_events=float(cfg.get("exposure_events", 1.0e4)),
        observed_events=int(cfg.get("observed_events", 0)),
        background_events=float(cfg.get("background_events", 0.0)),
    )
    solar_model = BenchmarkSolarModel(cross_section_ref=float(cfg.get("solar_cross_section_ref_cm2", 1.0e-36)) * cm2)
    halo_model = StandardHaloModel(
        v0=float(cfg.get("v0_km_sec", 220.0)) * km_sec,
        v_esc=float(cfg.get("v_esc_km_sec", 544.0)) * km_sec,
    )
    simulator = BenchmarkSimulator(seed=int(cfg.get("seed", 2718)))
    return detector, solar_model, halo_model, simulator
