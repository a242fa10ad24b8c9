"""Tests for the command line entry point against the simulated backend."""

import json

import pytest
import yaml

from lapatronic.main import EXIT_CONFIG, build_parser, main


@pytest.fixture()
def sim_config(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({
        "control": {"low_threshold": 0.25, "high_threshold": 0.75},
        "devices": {
            "backend": "simulated",
            "simulated": {
                "capacity": 1000,
                "initial_energy": 400,
                "load_eu_per_s": 0,
                "charge_eu_per_s": 0,
            },
        },
    }))
    return str(path)


def test_parser_defaults():
    args = build_parser().parse_args([])
    assert args.command is None
    assert args.config is None
    assert args.simulate is False


def test_dry_run_prints_summary(sim_config, capsys):
    assert main(["--config", sim_config, "run", "--dry-run"]) == 0
    out = capsys.readouterr().out
    assert "Low threshold: 25%" in out
    assert "High threshold: 75%" in out
    assert "Dry run mode" in out


def test_test_energy_json(sim_config, capsys):
    assert main(["--config", sim_config, "test-energy", "--json"]) == 0
    reports = json.loads(capsys.readouterr().out)
    working = [r for r in reports if r["working"]]
    assert [r["strategy"] for r in working] == ["getEUStored/getEUCapacity"]
    assert working[0]["percent"] == pytest.approx(0.4, abs=0.01)


def test_test_energy_text_shows_rates(sim_config, capsys):
    assert main(["--config", sim_config, "test-energy"]) == 0
    out = capsys.readouterr().out
    assert "[WORKING] getEUStored/getEUCapacity" in out
    assert "Input/Output rates" in out


def test_inspect_lists_accessors(sim_config, capsys):
    assert main(["--config", sim_config, "inspect"]) == 0
    out = capsys.readouterr().out
    assert "getEUStored()" in out
    assert "getEUCapacity()" in out


def test_debug_energy(sim_config, capsys):
    assert main(["--config", sim_config, "debug-energy"]) == 0
    assert "Final result:" in capsys.readouterr().out


def test_missing_config_exit_code(tmp_path, capsys):
    assert main(["--config", str(tmp_path / "missing.yaml"), "run", "--dry-run"]) == EXIT_CONFIG
    assert "not found" in capsys.readouterr().err


def test_non_mapping_section_exit_code(tmp_path, capsys):
    path = tmp_path / "config.yaml"
    path.write_text("control: [1, 2]\n")
    assert main(["--config", str(path), "run", "--dry-run"]) == EXIT_CONFIG
    assert "must be a mapping" in capsys.readouterr().err
