from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from typing import Mapping, TextIO

RANK_ENV_VARS = ("OMPI_COMM_WORLD_RANK", "PMI_RANK", "SLURM_PROCID")


def resolve_rank(rank: int | None = None, environ: Mapping[str, str] | None = None) -> int:
    """Explicit rank if given, else the one exported by the MPI launcher, else 0."""
    if rank is not None:
        return int(rank)
    env = os.environ if environ is None else environ
    for key in RANK_ENV_VARS:
        val = env.get(key)
        if val is not None and str(val).strip().isdigit():
            return int(val)
    return 0


@dataclass(frozen=True)
class RankConsole:
    """Console output owned by a single process of a multi-process run.

    Only rank 0 writes; every other rank executes the same code silently.
    """

    rank: int = 0
    stream: TextIO | None = None

    @property
    def is_root(self) -> bool:
        return int(self.rank) == 0

    def log(self, msg: str = "") -> None:
        if not self.is_root:
            return
        # Keep output visible in nohup+run.log when stdout is redirected.
        print(msg, file=self.stream if self.stream is not None else sys.stdout, flush=True)

    def lines(self, lines: list[str]) -> None:
        for line in lines:
            self.log(line)
