"""Tests for CFG configuration loading."""
from __future__ import annotations

from pathlib import Path

import pytest

from inventory_tap.config import AppConfig, load_config

EXAMPLE_CONFIG = Path(__file__).resolve().parents[1] / "config" / "example.cfg"


@pytest.fixture
def write_config(tmp_path):
    def _write(content):
        path = tmp_path / "inventory.cfg"
        path.write_text(content, encoding="utf-8")
        return path

    return _write


def test_defaults_without_file():
    config = load_config(None)
    assert config == AppConfig()
    assert config.collector.powershell_path == "powershell"
    assert config.collector.probe_timeout_s is None
    assert config.limits.process_limit == 30
    assert config.limits.event_log_hours == 24


def test_example_config_matches_defaults():
    assert load_config(EXAMPLE_CONFIG) == AppConfig()


def test_custom_values(write_config):
    path = write_config(
        """[collector]
powershell_path = C:\\Program Files\\PowerShell\\7\\pwsh.exe
max_workers = 4
probe_timeout_s = 12.5  ; seconds
disabled_probes = event_log, scheduled_task,

[limits]
process_limit = 10
hotfix_limit = 5
"""
    )
    config = load_config(path)
    assert config.collector.powershell_path == "C:\\Program Files\\PowerShell\\7\\pwsh.exe"
    assert config.collector.max_workers == 4
    assert config.collector.probe_timeout_s == 12.5
    assert config.collector.disabled_probes == ["event_log", "scheduled_task"]
    assert config.collector.schtasks_path == "schtasks"
    assert config.limits.process_limit == 10
    assert config.limits.hotfix_limit == 5
    assert config.limits.event_log_count == 15


def test_missing_sections(write_config):
    assert load_config(write_config("")) == AppConfig()


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "absent.cfg")


def test_invalid_number(write_config):
    path = write_config("[limits]\nprocess_limit = many\n")
    with pytest.raises(ValueError):
        load_config(path)
