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

from reflection_limits.benchmark import BenchmarkParticle, BenchmarkSimulator, benchmark_backend
from reflection_limits.config import ConfigError, load_config
from reflection_limits.console import RankConsole, resolve_rank
from reflection_limits.direct_limit import SolarReflectionLimit
from reflection_limits.evaluator import ReflectionEvaluator


def main() -> int:
    ap = argparse.ArgumentParser(description="Direct upper limits on the cross section from solar reflection.")
    ap.add_argument("config", help="YAML configuration file.")
    ap.add_argument("--rank", type=int, default=None, help="Process rank (default: from MPI environment, else 0).")
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

    detector, solar_model, halo_model, simulator = benchmark_backend(cfg.benchmark)
    dm = BenchmarkParticle(mass=cfg.mass_min)
    dm.set_interaction_parameter(cfg.cross_section_min, detector.target_particles)

    searches = [("Reflection", simulator)]
    if cfg.compute_halo_constraints:
        searches.append(("Halo", BenchmarkSimulator(seed=simulator.seed, halo_only=True)))

    for label, sim in searches:
        console.log(f"[limit] {label} limit at CL = {cfg.certainty_level:.3g}")
        search = SolarReflectionLimit.from_config(cfg, label=label)
        evaluator = ReflectionEvaluator(sim.generate_data, sim.reflection_spectrum)
        search.compute_limit_curve(out_dir, dm, detector, solar_model, halo_model, evaluator=evaluator, rank=rank)
        search.export_curve(out_dir, rank)
        console.log(f"[limit] wrote {out_dir / search.filename}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
