from __future__ import annotations

import contextlib
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Protocol

RATE_INTERPOLATION_RADII = 1000
RATE_INTERPOLATION_SPEEDS = 50


class DMParticle(Protocol):
    mass: float

    def set_mass(self, mass: float) -> None: ...

    def get_interaction_parameter(self, target: str) -> float: ...

    def set_interaction_parameter(self, value: float, target: str) -> None: ...


class Detector(Protocol):
    target_particles: str

    def minimum_dm_speed(self, dm: DMParticle) -> float: ...

    def p_value(self, dm: DMParticle, spectrum: Any) -> float: ...


class SolarModel(Protocol):
    def interpolate_total_dm_scattering_rate(self, dm: DMParticle, n_radius: int, n_speed: int) -> None: ...


# (dm, detector, solar_model, halo_model, sample_size) -> p-value in [0, 1]
Evaluator = Callable[[DMParticle, Detector, SolarModel, Any, int], float]


@contextlib.contextmanager
def particle_state(dm: DMParticle, detector: Detector) -> Iterator[DMParticle]:
    """Restore the particle's mass and interaction parameter on every exit path."""
    target = detector.target_particles
    mass_original = float(dm.mass)
    coupling_original = float(dm.get_interaction_parameter(target))
    try:
        yield dm
    finally:
        dm.set_mass(mass_original)
        dm.set_interaction_parameter(coupling_original, target)


@dataclass(frozen=True)
class ReflectionEvaluator:
    """p-value of a (mass, coupling) point from a fresh reflection simulation.

    ``generate_data(sample_size, u_min, dm, solar_model, halo_model)`` returns a
    simulated data set, ``reflection_spectrum(data, solar_model, halo_model, mass)``
    turns it into the spectrum the detector tests.
    """

    generate_data: Callable[..., Any]
    reflection_spectrum: Callable[..., Any]
    n_radius: int = RATE_INTERPOLATION_RADII
    n_speed: int = RATE_INTERPOLATION_SPEEDS

    def __call__(
        self,
        dm: DMParticle,
        detector: Detector,
        solar_model: SolarModel,
        halo_model: Any,
        sample_size: int,
    ) -> float:
        # The scattering rate depends on the current mass and coupling.
        solar_model.interpolate_total_dm_scattering_rate(dm, int(self.n_radius), int(self.n_speed))
        u_min = float(detector.minimum_dm_speed(dm))
        data = self.generate_data(int(sample_size), u_min, dm, solar_model, halo_model)
        spectrum = self.reflection_spectrum(data, solar_model, halo_model, float(dm.mass))
        return float(detector.p_value(dm, spectrum))
