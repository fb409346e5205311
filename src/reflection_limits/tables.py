from __future__ import annotations

from pathlib import Path
from typing import Sequence

import numpy as np


def _column_units(units: Sequence[float] | None, n_cols: int) -> np.ndarray:
    if units is None:
        return np.ones(n_cols, dtype=float)
    u = np.asarray(units, dtype=float)
    if u.shape != (n_cols,):
        raise ValueError(f"Expected {n_cols} column units, got {u.size}.")
    if np.any(~np.isfinite(u)) or np.any(u == 0.0):
        raise ValueError("Column units must be finite and non-zero.")
    return u


def export_table(path: Path, table, units: Sequence[float] | None = None) -> None:
    """Write a whitespace-delimited table, dividing column k by ``units[k]``."""
    path = Path(path)
    data = np.atleast_2d(np.asarray(table, dtype=float))
    if data.size == 0:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("", encoding="ascii")
        return
    data = data / _column_units(units, data.shape[1])[None, :]
    path.parent.mkdir(parents=True, exist_ok=True)
    np.savetxt(path, data, fmt="%.17g", delimiter="\t")


def import_table(path: Path, units: Sequence[float] | None = None) -> np.ndarray:
    """Read a table written by :func:`export_table`, multiplying column k by ``units[k]``."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Missing table file: {path}")
    data = np.loadtxt(path, dtype=float, ndmin=2)
    if data.size == 0:
        return data
    return data * _column_units(units, data.shape[1])[None, :]


def format_row(values: Sequence[float]) -> str:
    return "\t".join(f"{float(v):.17g}" for v in values)
