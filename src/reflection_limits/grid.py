from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

P_VALUE_FLOOR = 1.0e-100
EXCLUSION_THRESHOLD = 0.1

GLYPH_UNEXPLORED = "·"
GLYPH_CURRENT = "¤"
GLYPH_EXCLUDED = "█"
GLYPH_ALLOWED = "░"


def log_space(lo: float, hi: float, n: int) -> np.ndarray:
    """Geometrically spaced points from lo to hi (both included)."""
    lo = float(lo)
    hi = float(hi)
    n = int(n)
    if n <= 0:
        raise ValueError("log_space needs at least one point.")
    if not (np.isfinite(lo) and np.isfinite(hi) and lo > 0.0 and hi > 0.0):
        raise ValueError("log_space bounds must be positive and finite.")
    if n == 1:
        return np.array([lo], dtype=float)
    out = np.geomspace(lo, hi, n)
    # geomspace can drift in the last ulp; pin the endpoints.
    out[0] = lo
    out[-1] = hi
    return out


def clamp_p_value(p: float) -> float:
    p = float(p)
    return 0.0 if p < P_VALUE_FLOOR else p


def _as_axis(values, name: str) -> np.ndarray:
    x = np.sort(np.asarray(values, dtype=float).ravel())
    if x.size == 0:
        raise ValueError(f"{name} axis must not be empty.")
    if np.any(~np.isfinite(x)) or np.any(x <= 0.0):
        raise ValueError(f"{name} axis must be positive and finite.")
    return x


@dataclass
class PValueGrid:
    """Dense p-value table indexed ``values[coupling_index, mass_index]``.

    Both axes are stored ascending. Cells that were never evaluated keep the
    initial value 1.0 (not excluded).
    """

    masses: np.ndarray
    couplings: np.ndarray
    values: np.ndarray | None = field(default=None)

    def __post_init__(self) -> None:
        self.masses = _as_axis(self.masses, "mass")
        self.couplings = _as_axis(self.couplings, "coupling")
        if self.values is None:
            self.values = np.ones((self.couplings.size, self.masses.size), dtype=float)
        else:
            v = np.array(self.values, dtype=float)
            if v.shape != self.shape:
                raise ValueError("p-value table shape must be (n_couplings, n_masses).")
            self.values = v

    @property
    def shape(self) -> tuple[int, int]:
        return int(self.couplings.size), int(self.masses.size)

    @property
    def n_masses(self) -> int:
        return int(self.masses.size)

    @property
    def n_couplings(self) -> int:
        return int(self.couplings.size)

    def store(self, index_coupling: int, index_mass: int, p: float) -> float:
        p = clamp_p_value(p)
        self.values[index_coupling, index_mass] = p
        return p

    def to_table(self) -> np.ndarray:
        """Flat (mass, coupling, p) rows, mass-major with couplings ascending."""
        mm, cc = np.meshgrid(self.masses, self.couplings, indexing="ij")
        return np.column_stack([mm.ravel(), cc.ravel(), self.values.T.ravel()])

    @classmethod
    def from_table(cls, table: np.ndarray, masses: np.ndarray) -> "PValueGrid":
        """Rebuild a grid from a mass-major table on a caller-provided mass axis.

        Only the coupling axis is read from the table.
        """
        table = np.asarray(table, dtype=float)
        if table.ndim != 2 or table.shape[1] < 3:
            raise ValueError("p-value table needs (mass, coupling, p) columns.")
        masses = _as_axis(masses, "mass")
        n_rows = int(table.shape[0])
        if n_rows % masses.size != 0:
            raise ValueError(
                f"p-value table has {n_rows} rows, not a multiple of {masses.size} masses."
            )
        n_couplings = n_rows // masses.size
        couplings = np.unique(table[:, 1])
        if couplings.size != n_couplings:
            raise ValueError(
                f"p-value table lists {couplings.size} distinct couplings, expected {n_couplings}."
            )
        values = table[:, 2].reshape(masses.size, n_couplings).T
        return cls(masses=masses, couplings=couplings, values=values)

    def render(self, current: tuple[int, int] | None = None) -> list[str]:
        """Text picture of the grid, strongest coupling on top, masses left to right.

        With ``current=(index_coupling, index_mass)`` the cell being evaluated is
        marked and cells the descending scan has not reached yet are blanked.
        """
        lines: list[str] = []
        for row in range(self.n_couplings):
            ic = self.n_couplings - 1 - row
            chars = []
            for im in range(self.n_masses):
                if current is not None and (ic, im) == tuple(current):
                    chars.append(GLYPH_CURRENT)
                elif current is not None and (ic < current[0] or (ic == current[0] and im < current[1])):
                    chars.append(GLYPH_UNEXPLORED)
                elif self.values[ic, im] > EXCLUSION_THRESHOLD:
                    chars.append(GLYPH_ALLOWED)
                else:
                    chars.append(GLYPH_EXCLUDED)
            lines.append("\t" + "".join(chars))
        return lines
