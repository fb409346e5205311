from __future__ import annotations

import sys
from pathlib import Path


def _ensure_local_paths_first() -> None:
    """Import the package from this checkout and the shared test helpers from tests/."""
    here = Path(__file__).resolve().parent
    for path in (here, here.parent / "src"):
        if path.is_dir():
            s = str(path)
            if s not in sys.path:
                sys.path.insert(0, s)


_ensure_local_paths_first()
