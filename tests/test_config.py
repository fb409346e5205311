from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest
import yaml

from helpers import BASE_CONFIG
from reflection_limits.config import REQUIRED_KEYS, ConfigError, ScanConfig, load_config
from reflection_limits.console import resolve_rank
from reflection_limits.constants import GeV, cm2
from reflection_limits.direct_limit import SolarReflectionLimit
from reflection_limits.scan import ParameterScan

BASE = BASE_CONFIG


def _write(tmp_path: Path, cfg: dict) -> Path:
    path = tmp_path / "run.yaml"
    path.write_text(yaml.safe_dump(cfg, sort_keys=False), encoding="utf-8")
    return path


def test_load_config_converts_to_natural_units(tmp_path) -> None:
    cfg = load_config(_write(tmp_path, BASE))
    assert cfg.run_id == "unit_test"
    assert cfg.sample_size == 100
    assert cfg.cross_section_min == pytest.approx(1.0e-40 * cm2)
    assert cfg.cross_section_max == pytest.approx(1.0e-36 * cm2)
    assert cfg.mass_min == pytest.approx(0.1 * GeV)
    assert cfg.reflection_masses == 5
    assert cfg.certainty_levels == (0.95,)
    assert cfg.results_dir == tmp_path.resolve() / "results" / "unit_test"


def test_scan_and_direct_search_from_config() -> None:
    cfg = ScanConfig.from_mapping({**BASE, "reflection_masses": 3})
    scan = ParameterScan.from_config(cfg)
    assert scan.p_value_grid.shape == (9, 5)
    assert scan.couplings[0] == pytest.approx(1.0e-40 * cm2)
    assert np.all(scan.p_value_grid == 1.0)

    search = SolarReflectionLimit.from_config(cfg)
    assert search.masses.size == 3
    assert search.filename == "Reflection_Limit_95.txt"


@pytest.mark.parametrize("key", REQUIRED_KEYS)
def test_missing_setting_names_the_key(key: str) -> None:
    cfg = {k: v for k, v in BASE.items() if k != key}
    with pytest.raises(ConfigError, match=f"No '{key}' setting in configuration file."):
        ScanConfig.from_mapping(cfg)


def test_invalid_values_are_rejected() -> None:
    with pytest.raises(ConfigError):
        ScanConfig.from_mapping({**BASE, "cross_section_min": 1.0e-30})
    with pytest.raises(ConfigError):
        ScanConfig.from_mapping({**BASE, "sample_size": 0})
    with pytest.raises(ConfigError):
        ScanConfig.from_mapping({**BASE, "constraints_certainty_level": 1.5})
    with pytest.raises(ConfigError):
        ScanConfig.from_mapping({**BASE, "compute_halo_constraints": "yes please"})


def test_summary_is_printed_on_rank_zero_only(capsys) -> None:
    cfg = ScanConfig.from_mapping(BASE)
    cfg.print_summary(rank=1)
    assert capsys.readouterr().out == ""
    cfg.print_summary(rank=0)
    out = capsys.readouterr().out
    assert "Sample size:" in out
    assert "1e-40" in out


def test_resolve_rank_prefers_explicit_value() -> None:
    assert resolve_rank(2, environ={"OMPI_COMM_WORLD_RANK": "5"}) == 2
    assert resolve_rank(None, environ={"PMI_RANK": "3"}) == 3
    assert resolve_rank(None, environ={}) == 0


def test_single_cross_section_step_is_rejected() -> None:
    with pytest.raises(ConfigError, match="cross_sections"):
        ScanConfig.from_mapping({**BASE, "cross_sections": 1})
