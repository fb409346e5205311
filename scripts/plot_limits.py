#!/usr/bin/env python3
from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Prefer local source tree when available (important when another editable install is active).
_REPO_SRC = Path(__file__).resolve().parents[1] / "src"
if _REPO_SRC.is_dir():
    _src = str(_REPO_SRC)
    if _src not in sys.path:
        sys.path.insert(0, _src)

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np

from reflection_limits.grid import EXCLUSION_THRESHOLD
from reflection_limits.tables import import_table


def _plot_limits(*, curves: dict[str, np.ndarray], grid: np.ndarray | None, out_path: Path) -> None:
    plt.figure(figsize=(7.2, 5.0))
    if grid is not None and grid.size:
        excluded = grid[grid[:, 2] <= EXCLUSION_THRESHOLD]
        allowed = grid[(grid[:, 2] > EXCLUSION_THRESHOLD) & (grid[:, 2] < 1.0)]
        plt.scatter(excluded[:, 0], excluded[:, 1], s=10, marker="s", color="0.35", label="Scanned, excluded")
        plt.scatter(allowed[:, 0], allowed[:, 1], s=10, marker="s", color="0.8", label="Scanned, allowed")
    for name, curve in sorted(curves.items()):
        if curve.size == 0:
            continue
        plt.plot(curve[:, 0], curve[:, 1], linewidth=1.8, label=name.replace("_", " "))
    plt.xscale("log")
    plt.yscale("log")
    plt.xlabel(r"$m_\chi$ [GeV]")
    plt.ylabel(r"$\sigma$ [cm$^2$]")
    plt.title("Exclusion limits")
    plt.legend(loc="best")
    plt.tight_layout()
    plt.savefig(out_path, dpi=180)
    plt.close()


def main() -> int:
    ap = argparse.ArgumentParser(description="Plot limit curves (and the scanned grid) of one results directory.")
    ap.add_argument("results_dir", help="Directory holding Limit_*.txt / Reflection_Limit_*.txt files.")
    ap.add_argument("--out", default="", help="Output image (default: <results_dir>/limits.png).")
    args = ap.parse_args()

    results_dir = Path(args.results_dir)
    curves: dict[str, np.ndarray] = {}
    for path in sorted(results_dir.glob("*Limit_*.txt")):
        curves[path.stem] = import_table(path)
    if not curves:
        print(f"[plot] no limit files in {results_dir}", file=sys.stderr)
        return 1
    grid_path = results_dir / "p_values.txt"
    grid = import_table(grid_path) if grid_path.exists() else None

    out_path = Path(args.out) if args.out else results_dir / "limits.png"
    _plot_limits(curves=curves, grid=grid, out_path=out_path)
    print(f"[plot] wrote {out_path}", flush=True)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
