from __future__ import annotations

from dataclasses import dataclass, field

from reflection_limits.benchmark import BenchmarkParticle

TARGET = "nuclei"


@dataclass
class StubDetector:
    target_particles: str = TARGET


@dataclass
class RecordingEvaluator:
    """Evaluator returning ``p_of(mass, coupling)`` and logging every call."""

    p_of: object
    calls: list[tuple[float, float]] = field(default_factory=list)

    def __call__(self, dm, detector, solar_model, halo_model, sample_size) -> float:
        coupling = dm.get_interaction_parameter(detector.target_particles)
        self.calls.append((float(dm.mass), float(coupling)))
        return float(self.p_of(dm.mass, coupling))


def make_particle(mass: float = 3.0, coupling: float = 5.0e-39) -> BenchmarkParticle:
    dm = BenchmarkParticle(mass=mass)
    dm.set_interaction_parameter(coupling, TARGET)
    return dm


BASE_CONFIG = {
    "ID": "unit_test",
    "constraints_mass_min": 0.1,
    "constraints_mass_max": 10.0,
    "constraints_masses": 5,
    "constraints_certainty_level": 0.95,
    "sample_size": 100,
    "cross_section_min": "1e-40",
    "cross_section_max": 1.0e-36,
    "cross_sections": 9,
    "compute_halo_constraints": False,
}
