"""
Tests for the command line interface.
"""

import json

from energyexporter import __version__
from energyexporter.app.cli import create_parser, get_log_level, main


class TestParser:

    def test_log_level_flags(self):
        assert get_log_level(0, True) == "ERROR"
        assert get_log_level(2, False) == "DEBUG"
        assert get_log_level(1, False) == "INFO"

    def test_test_command_arguments(self):
        args = create_parser().parse_args(["test", "battery", "{}"])
        assert args.command == "test"
        assert args.device_type == "battery"


class TestCommands:
    """Tests for CLI commands run in-process."""

    def test_version(self, capsys):
        assert main(["version"]) == 0
        assert __version__ in capsys.readouterr().out

    def test_schema_list(self, capsys):
        assert main(["schema", "list"]) == 0
        out = capsys.readouterr().out
        assert "battery (SolarEdgeBattery) -> solaredge_battery" in out
        assert "  - voltage [discovery: V, voltage, measurement] [gauge]" in out
        assert "  - last_event\n" in out

    def test_check_without_outputs(self, capsys):
        assert main(["-q", "check"]) == 0
        out = capsys.readouterr().out
        assert "battery: 24 metrics" in out
        assert "No output is enabled" in out

    def test_test_command(self, capsys):
        record = json.dumps({"device_identifier": "1", "voltage": 398.2, "status": 3})
        assert main(["-q", "test", "battery", record]) == 0

        out = capsys.readouterr().out
        assert "energy/solaredge_battery/1/voltage = 398.2" in out
        assert "energy/solaredge_battery/1/status = Charging" in out
        assert "homeassistant/sensor/solaredge_battery_1/voltage/config" in out

    def test_test_command_from_file(self, capsys, tmp_path):
        path = tmp_path / "battery.json"
        path.write_text(json.dumps({"device_identifier": "7", "power": -597.3}))

        assert main(["-q", "test", "battery", f"@{path}"]) == 0
        assert "energy/solaredge_battery/7/power = -597.3" in capsys.readouterr().out

    def test_unknown_device_type(self, capsys):
        assert main(["-q", "test", "inverter", "{}"]) == 1
        assert "Unknown device type 'inverter'" in capsys.readouterr().out

    def test_invalid_json(self, capsys):
        assert main(["-q", "test", "battery", "{not json"]) == 1
        assert "Invalid JSON input" in capsys.readouterr().out

    def test_invalid_record(self, capsys):
        assert main(["-q", "test", "battery", '{"voltage": 398.2}']) == 1
        assert "device_identifier" in capsys.readouterr().err
