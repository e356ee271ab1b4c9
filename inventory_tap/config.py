from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
import configparser


@dataclass(frozen=True)
class CollectorConfig:
    powershell_path: str = "powershell"
    schtasks_path: str = "schtasks"
    powercfg_path: str = "powercfg"
    wevtutil_path: str = "wevtutil"
    max_workers: int | None = None
    # No deadline when unset: collect() waits for every probe.
    probe_timeout_s: float | None = None
    disabled_probes: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class LimitsConfig:
    process_limit: int = 30
    hotfix_limit: int = 25
    event_log_count: int = 15
    event_log_hours: int = 24


@dataclass(frozen=True)
class AppConfig:
    collector: CollectorConfig = field(default_factory=CollectorConfig)
    limits: LimitsConfig = field(default_factory=LimitsConfig)


def _get_optional(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value if value else None


def _get_list(value: str | None) -> list[str]:
    if value is None:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def _get_optional_int(value: str | None) -> int | None:
    value = _get_optional(value)
    return int(value) if value is not None else None


def _get_optional_float(value: str | None) -> float | None:
    value = _get_optional(value)
    return float(value) if value is not None else None


def load_config(path: str | Path | None = None) -> AppConfig:
    if path is None:
        return AppConfig()

    parser = configparser.ConfigParser(inline_comment_prefixes=(";", "#"))
    read_files = parser.read(path)
    if not read_files:
        raise FileNotFoundError(f"Config file not found: {path}")

    # Use parser.get with fallback to handle missing sections
    collector = CollectorConfig(
        powershell_path=parser.get("collector", "powershell_path", fallback="powershell"),
        schtasks_path=parser.get("collector", "schtasks_path", fallback="schtasks"),
        powercfg_path=parser.get("collector", "powercfg_path", fallback="powercfg"),
        wevtutil_path=parser.get("collector", "wevtutil_path", fallback="wevtutil"),
        max_workers=_get_optional_int(
            parser.get("collector", "max_workers", fallback=None)
        ),
        probe_timeout_s=_get_optional_float(
            parser.get("collector", "probe_timeout_s", fallback=None)
        ),
        disabled_probes=_get_list(
            parser.get("collector", "disabled_probes", fallback=None)
        ),
    )

    limits = LimitsConfig(
        process_limit=parser.getint("limits", "process_limit", fallback=30),
        hotfix_limit=parser.getint("limits", "hotfix_limit", fallback=25),
        event_log_count=parser.getint("limits", "event_log_count", fallback=15),
        event_log_hours=parser.getint("limits", "event_log_hours", fallback=24),
    )

    return AppConfig(collector=collector, limits=limits)
