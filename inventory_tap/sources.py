from __future__ import annotations

from typing import Any

from inventory_tap.commands import PowerShell, run_command
from inventory_tap.config import CollectorConfig
from inventory_tap.display import DisplayMode, enumerate_display_modes
from inventory_tap.registry import Registry, RegistryKey
from inventory_tap.variant import Variant
from inventory_tap.wmi import CIMV2, WmiSession


class Sources:
    """Backing sources available to probes.

    Every call opens and releases its own handle (a PowerShell process, a
    registry key, a subprocess), so one instance can be shared by concurrently
    running probes without locking.
    """

    def __init__(self, config: CollectorConfig | None = None) -> None:
        config = config or CollectorConfig()
        self.powershell = PowerShell(config.powershell_path)
        self.registry = Registry()

    def query(self, wql: str, namespace: str = CIMV2) -> list[dict[str, Variant]]:
        return WmiSession(namespace, self.powershell).query(wql)

    def open_key(self, hive: str, path: str) -> RegistryKey:
        return self.registry.open(hive, path)

    def key_exists(self, hive: str, path: str) -> bool:
        return self.registry.exists(hive, path)

    def run(self, command: list[str]) -> str:
        return run_command(command)

    def powershell_json(self, script: str) -> Any:
        return self.powershell.run_json(script)

    def display_modes(self) -> list[DisplayMode | None]:
        return enumerate_display_modes()
