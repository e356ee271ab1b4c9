"""Tests for the command line entry point and snapshot schema."""
from __future__ import annotations

import json
import logging
import sys
from unittest.mock import patch

from colorlog import ColoredFormatter
import pytest

from inventory_tap.collector import (
    STATUS_DISABLED,
    STATUS_ERROR,
    STATUS_FAULT,
    STATUS_TIMEOUT,
    ProbeOutcome,
)
from inventory_tap.logging_utils import TRACE_LEVEL, configure_logging, resolve_log_level
from inventory_tap.main import build_parser, format_outcome, main
from inventory_tap.models import (
    BatteryInfo,
    CpuInfo,
    EnvironmentInfo,
    EventEntry,
    EventLogInfo,
    FirewallInfo,
    PowerInfo,
    SecurityInfo,
    Snapshot,
    TpmInfo,
    UpdateItem,
)
from inventory_tap.schema import validate_snapshot


def _outcomes():
    return {
        "cpu": ProbeOutcome("cpu", record=CpuInfo(name="Test CPU", cores=4)),
        "gpu": ProbeOutcome("gpu", status=STATUS_ERROR, error="Access is denied"),
        "process": ProbeOutcome("process", status=STATUS_DISABLED),
    }


class TestParser:
    def test_defaults(self):
        args = build_parser().parse_args([])
        assert args.config is None
        assert args.log_level == "WARNING"
        assert args.verbose == 0
        assert args.json is False
        assert args.dump_json is None

    def test_custom(self):
        args = build_parser().parse_args(
            ["--config", "inventory.cfg", "--log-level", "DEBUG", "-vv", "--json",
             "--dump-json", "out.json"]
        )
        assert args.config == "inventory.cfg"
        assert args.log_level == "DEBUG"
        assert args.verbose == 2
        assert args.json is True
        assert args.dump_json == "out.json"


class TestFormatOutcome:
    def test_record(self):
        text = format_outcome(ProbeOutcome("cpu", record=CpuInfo(name="Test CPU")))
        assert json.loads(text)["name"] == "Test CPU"
        assert "\n  " in text

    @pytest.mark.parametrize(
        "status,error,expected",
        [
            (STATUS_ERROR, "WMI unavailable", '"Error: WMI unavailable"'),
            (STATUS_FAULT, "KeyError: 'x'", "\"Task panicked: KeyError: 'x'\""),
            (STATUS_TIMEOUT, "Timed out", '"Timed out"'),
            (STATUS_DISABLED, None, '"Disabled"'),
        ],
    )
    def test_failures(self, status, error, expected):
        assert format_outcome(ProbeOutcome("gpu", status=status, error=error)) == expected


class TestSchema:
    def test_empty_snapshot(self):
        assert validate_snapshot(Snapshot().to_dict()) == []

    def test_populated_snapshot(self):
        snapshot = Snapshot(
            cpu=CpuInfo(name="Test CPU", cores=4, architecture="x64"),
            power=PowerInfo(plan="Balanced", battery=BatteryInfo(name="Battery")),
            security=SecurityInfo(
                secure_boot=True,
                tpm=TpmInfo(present=True),
                firewall=FirewallInfo(domain_enabled=True, domain_inbound="Block"),
                pending_updates=[UpdateItem(title="Update", kb_article_ids=["KB1"])],
            ),
            environment=EnvironmentInfo(variables={"OS": "Windows_NT"}),
            event_log=EventLogInfo(
                system_events=[EventEntry(level="Error", source="Disk", event_id="7")]
            ),
        )
        assert validate_snapshot(snapshot.to_dict()) == []

    def test_violations_are_reported(self):
        data = Snapshot().to_dict()
        data["cpu"] = CpuInfo(architecture="SPARC").__dict__
        data["unexpected"] = 1
        del data["gpu"]
        errors = validate_snapshot(data)
        assert any(error.startswith("cpu:") for error in errors)
        assert any(error.startswith("<root>:") and "unexpected" in error for error in errors)
        assert any("'gpu' is a required property" in error for error in errors)


@pytest.mark.integration
@patch("inventory_tap.main.configure_logging")
@patch("inventory_tap.main.InventoryCollector")
class TestMain:
    def test_console_output(self, mock_collector, mock_logging, capsys):
        mock_collector.return_value.collect_outcomes.return_value = _outcomes()
        assert main([]) == 0
        out = capsys.readouterr().out
        assert 'CPU: {\n  "name": "Test CPU"' in out
        assert 'GPU: "Error: Access is denied"' in out
        assert 'Process (Top 30): "Disabled"' in out
        assert "Finished after" in out

    def test_json_output(self, mock_collector, mock_logging, capsys):
        mock_collector.return_value.collect_outcomes.return_value = _outcomes()
        assert main(["--json"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["cpu"]["cores"] == 4
        assert data["gpu"] is None
        assert data["process"] is None
        assert set(data) == set(Snapshot.categories())

    def test_dump_json(self, mock_collector, mock_logging, tmp_path, capsys):
        mock_collector.return_value.collect_outcomes.return_value = _outcomes()
        target = tmp_path / "snapshot.json"
        assert main(["--dump-json", str(target)]) == 0
        data = json.loads(target.read_text(encoding="utf-8"))
        assert data["cpu"]["name"] == "Test CPU"
        assert "Finished after" in capsys.readouterr().out

    def test_config_file(self, mock_collector, mock_logging, tmp_path, capsys):
        path = tmp_path / "inventory.cfg"
        path.write_text("[limits]\nprocess_limit = 5\n", encoding="utf-8")
        mock_collector.return_value.collect_outcomes.return_value = _outcomes()
        main(["--config", str(path)])
        config = mock_collector.call_args[0][0]
        assert config.limits.process_limit == 5
        assert "Process (Top 5)" in capsys.readouterr().out

    def test_verbose_sets_debug(self, mock_collector, mock_logging, capsys):
        mock_collector.return_value.collect_outcomes.return_value = {}
        main(["-v"])
        mock_logging.assert_called_once_with(10)


class TestLogLevel:
    @pytest.mark.parametrize(
        "verbosity,fallback,expected",
        [(0, "warning", 30), (0, "INFO", 20), (0, "bogus", 30), (1, "ERROR", 10), (2, "INFO", TRACE_LEVEL)],
    )
    def test_resolve(self, verbosity, fallback, expected):
        assert resolve_log_level(verbosity, fallback) == expected


@patch("logging.basicConfig")
def test_configure_logging(mock_basic_config):
    configure_logging(logging.DEBUG)
    kwargs = mock_basic_config.call_args.kwargs
    assert kwargs["level"] == logging.DEBUG
    assert kwargs["force"] is True
    (handler,) = kwargs["handlers"]
    assert handler.stream is sys.stderr
    assert isinstance(handler.formatter, ColoredFormatter)
    assert logging.getLevelName(TRACE_LEVEL) == "TRACE"
