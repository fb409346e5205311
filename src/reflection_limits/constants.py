from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class NaturalUnits:
    """Natural units with hbar = c = 1 and energies measured in GeV.

    Masses are stored in GeV, cross sections (couplings) in GeV^-2 and speeds as
    fractions of c. Tables on disk use GeV and cm^2.
    """

    hbar_c_GeV_cm: float = 1.973269804e-14
    c_cm_per_s: float = 2.99792458e10

    @property
    def GeV(self) -> float:
        return 1.0

    @property
    def MeV(self) -> float:
        return 1.0e-3

    @property
    def keV(self) -> float:
        return 1.0e-6

    @property
    def cm(self) -> float:
        return float(1.0 / self.hbar_c_GeV_cm)

    @property
    def cm2(self) -> float:
        return float(self.cm * self.cm)

    @property
    def km_sec(self) -> float:
        return float(1.0e5 / self.c_cm_per_s)


UNITS = NaturalUnits()

GeV = UNITS.GeV
MeV = UNITS.MeV
keV = UNITS.keV
cm = UNITS.cm
cm2 = UNITS.cm2
km_sec = UNITS.km_sec


def in_units(value: float, unit: float) -> float:
    return float(value) / float(unit)
