from __future__ import annotations

import importlib.util
import sys
from pathlib import Path

import pytest
import yaml

from helpers import BASE_CONFIG

SCRIPTS = Path(__file__).resolve().parents[1] / "scripts"


def _load_script(name: str):
    spec = importlib.util.spec_from_file_location(name, SCRIPTS / f"{name}.py")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.mark.parametrize("name", ["run_parameter_scan", "run_reflection_limit"])
def test_missing_setting_exits_with_one_line_error(name: str, tmp_path, monkeypatch, capsys) -> None:
    cfg = {k: v for k, v in BASE_CONFIG.items() if k != "sample_size"}
    path = tmp_path / "run.yaml"
    path.write_text(yaml.safe_dump(cfg, sort_keys=False), encoding="utf-8")
    script = _load_script(name)

    monkeypatch.setattr(sys, "argv", [name, str(path), "--rank", "0"])
    assert script.main() == 1
    captured = capsys.readouterr()
    assert captured.err == "No 'sample_size' setting in configuration file.\n"
    assert captured.out == ""
    assert not (tmp_path / "results").exists()
