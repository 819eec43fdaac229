"""Tests for iot_ledger_sim.__main__ - CLI entry point."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from iot_ledger_sim.__main__ import (
    _SAMPLE_CONFIG,
    _cmd_init_config,
    _cmd_list_scenarios,
    _cmd_list_templates,
    main,
)

# -----------------------------------------------------------------------
# main() dispatch
# -----------------------------------------------------------------------


class TestMainDispatch:
    """CLI argument parsing and sub-command dispatch."""

    def test_no_args_prints_help(self, capsys: pytest.CaptureFixture[str]) -> None:
        main([])
        out = capsys.readouterr().out
        assert "usage" in out.lower() or "commands" in out.lower()

    def test_help_flag(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["--help"])
        assert exc_info.value.code == 0

    def test_init_config_stdout(self, capsys: pytest.CaptureFixture[str]) -> None:
        main(["init-config"])
        out = capsys.readouterr().out
        assert "simulation:" in out
        assert "devices:" in out

    def test_backward_compat_injects_run(self) -> None:
        """When first arg is a flag (not a subcommand), 'run' is injected."""
        with patch("iot_ledger_sim.__main__._cmd_run") as mock_run:
            main(["--scenario", "custom", "--duration", "0.1"])
            mock_run.assert_called_once()
            assert mock_run.call_args.args[0].scenario == "custom"

    def test_run_subcommand_dispatches(self) -> None:
        with patch("iot_ledger_sim.__main__._cmd_run") as mock_run:
            main(["run", "--scenario", "industrial", "--duration", "0.1"])
            mock_run.assert_called_once()

    def test_config_and_scenario_exclusive(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["run", "--config", "x.yaml", "--scenario", "custom"])
        assert exc_info.value.code == 2


# -----------------------------------------------------------------------
# list-templates / list-scenarios
# -----------------------------------------------------------------------


class TestListings:
    def test_templates(self, capsys: pytest.CaptureFixture[str]) -> None:
        _cmd_list_templates()
        out = capsys.readouterr().out
        for name in ("weather_station", "security_sensor", "air_quality", "smart_meter"):
            assert name in out
        assert "monotonic" in out
        assert "Sensor" in out

    def test_scenarios(self, capsys: pytest.CaptureFixture[str]) -> None:
        _cmd_list_scenarios()
        out = capsys.readouterr().out
        assert "Scenario" in out
        assert "smart_home" in out
        assert "industrial" in out


# -----------------------------------------------------------------------
# init-config
# -----------------------------------------------------------------------


class TestInitConfig:
    """_cmd_init_config output."""

    def test_to_stdout(self, capsys: pytest.CaptureFixture[str]) -> None:
        _cmd_init_config(None)
        out = capsys.readouterr().out
        assert out.strip() == _SAMPLE_CONFIG.strip()

    def test_to_file(self, tmp_path: Path) -> None:
        outfile = tmp_path / "sub" / "config.yaml"
        _cmd_init_config(str(outfile))
        assert outfile.exists()
        assert "ledger:" in outfile.read_text()

    def test_sample_config_loads(self, tmp_path: Path) -> None:
        from iot_ledger_sim.config import load_yaml_config

        outfile = tmp_path / "config.yaml"
        _cmd_init_config(str(outfile))
        cfg = load_yaml_config(outfile)
        assert len(cfg.devices) == 3
        assert cfg.ledger["type"] == "memory"


# -----------------------------------------------------------------------
# run / status commands
# -----------------------------------------------------------------------


class TestRunCommand:
    """_cmd_run with scenarios and config files (in-memory ledger)."""

    def test_run_scenario_json(self, capsys: pytest.CaptureFixture[str]) -> None:
        main(["run", "--scenario", "custom", "--duration", "0.2", "--interval", "0.1", "--seed", "3", "--json"])
        data = json.loads(capsys.readouterr().out)
        assert data["state"] == "completed"
        assert data["reason"] == "duration-reached"
        assert data["counters"]["ticks"] == 2
        assert {d["device_id"] for d in data["devices"]} == {"custom-device-1", "custom-device-2"}
        assert all(d["registered"] for d in data["devices"])

    def test_run_prints_summary(self, capsys: pytest.CaptureFixture[str]) -> None:
        main(["--scenario", "smart_home", "--duration", "0.1", "--interval", "0.1"])
        out = capsys.readouterr().out
        assert "=== Simulation Summary ===" in out
        assert "living-room-weather" in out

    def test_run_config_file(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        cfg_file = tmp_path / "sim.yaml"
        cfg_file.write_text("""\
simulation:
  seed: 5
identities: ["0x1", "0x2"]
custom_templates:
  - name: toggle
    sensors:
      relay: {kind: discrete, values: [idle, busy], probability: 1.0}
devices:
  - {id: relay-1, template: toggle, location: Shed, identity: 1}
""")
        main(["run", "--config", str(cfg_file), "--duration", "0.1", "--interval", "0.1", "--json"])
        data = json.loads(capsys.readouterr().out)
        device = data["devices"][0]
        assert device["identity"] == "0x2"
        assert device["update_count"] == 1

    def test_unknown_scenario_exits(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["run", "--scenario", "moon_base"])
        assert exc_info.value.code == 1
        assert "Unknown scenario" in capsys.readouterr().out

    def test_missing_config_exits(self, tmp_path: Path) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["run", "--config", str(tmp_path / "missing.yaml")])
        assert exc_info.value.code == 1

    def test_unknown_template_exits(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        cfg_file = tmp_path / "sim.yaml"
        cfg_file.write_text("devices:\n  - {id: x, template: toaster}\n")
        with pytest.raises(SystemExit) as exc_info:
            main(["run", "--config", str(cfg_file), "--duration", "0.1"])
        assert exc_info.value.code == 1
        assert "toaster" in capsys.readouterr().out

    def test_unknown_ledger_type_exits(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        cfg_file = tmp_path / "sim.yaml"
        cfg_file.write_text("ledger: {type: fabric}\ndevices:\n  - {id: x, template: smart_meter}\n")
        with pytest.raises(SystemExit) as exc_info:
            main(["run", "--config", str(cfg_file), "--duration", "0.1"])
        assert exc_info.value.code == 1
        assert "Unknown ledger type 'fabric'" in capsys.readouterr().out


class TestStatusCommand:
    def test_status(self, capsys: pytest.CaptureFixture[str]) -> None:
        main(["status", "--scenario", "custom"])
        out = capsys.readouterr().out
        assert "=== Network Status ===" in out
        assert "Total devices on network: 0" in out
        assert "custom-device-1" in out
        assert "not registered" in out
