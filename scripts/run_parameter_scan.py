#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

# Prefer local source tree when available (important when another editable install is active).
_REPO_SRC = Path(__file__).resolve().parents[1] / "src"
if _REPO_SRC.is_dir():
    _src = str(_REPO_SRC)
    if _src not in sys.path:
        sys.path.insert(0, _src)

from reflection_limits.benchmark import BenchmarkParticle, benchmark_backend
from reflection_limits.config import ConfigError, load_config
from reflection_limits.console import RankConsole, resolve_rank
from reflection_limits.constants import GeV, cm2, in_units
from reflection_limits.evaluator import ReflectionEvaluator
from reflection_limits.scan import ParameterScan


def _utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _write_json_atomic(path: Path, payload: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(payload, indent=2, sort_keys=True) + "\n", encoding="utf-8")
    tmp.replace(path)


def main() -> int:
    ap = argparse.ArgumentParser(description="Adaptive (mass, cross section) scan and interpolated exclusion limits.")
    ap.add_argument("config", help="YAML configuration file.")
    ap.add_argument("--rank", type=int, default=None, help="Process rank (default: from MPI environment, else 0).")
    ap.add_argument(
        "--import-p-values",
        action="store_true",
        help="Skip the scan and reuse results/<ID>/p_values.txt from an earlier run.",
    )
    args = ap.parse_args()

    rank = resolve_rank(args.rank)
    try:
        cfg = load_config(Path(args.config))
    except ConfigError as e:
        print(str(e), file=sys.stderr)
        return 1

    console = RankConsole(rank)
    cfg.print_summary(rank)
    out_dir = cfg.results_dir
    if console.is_root:
        out_dir.mkdir(parents=True, exist_ok=True)

    scan = ParameterScan.from_config(cfg)
    t0 = time.time()
    if args.import_p_values:
        scan.import_p_values(out_dir)
        console.log(f"[scan] imported p-values from {out_dir}")
    else:
        detector, solar_model, halo_model, simulator = benchmark_backend(cfg.benchmark)
        dm = BenchmarkParticle(mass=float(scan.masses[0]))
        dm.set_interaction_parameter(float(scan.couplings[0]), detector.target_particles)
        evaluator = ReflectionEvaluator(simulator.generate_data, simulator.reflection_spectrum)
        scan.perform_scan(dm, detector, solar_model, halo_model, evaluator=evaluator, rank=rank)
        scan.export_p_values(out_dir, rank)
    console.log()
    scan.print_grid(rank)

    curves = scan.export_limits(out_dir, rank, cfg.certainty_levels)
    if console.is_root:
        _write_json_atomic(
            out_dir / "scan_summary.json",
            {
                "created_utc": _utc_now(),
                "run_id": cfg.run_id,
                "imported": bool(args.import_p_values),
                "evaluations": int(scan.evaluations),
                "grid_cells": int(scan.p_value_grid.size),
                "elapsed_s": float(time.time() - t0),
                "masses_GeV": [in_units(m, GeV) for m in scan.masses],
                "couplings_cm2": [in_units(c, cm2) for c in scan.couplings],
                "limit_points": {str(cl): int(curve.shape[0]) for cl, curve in curves.items()},
            },
        )
        console.log(f"[scan] wrote {out_dir}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
