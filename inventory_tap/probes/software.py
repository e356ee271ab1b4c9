from __future__ import annotations

import psutil

from inventory_tap.errors import InventoryError
from inventory_tap.models import (
    BYTES_PER_MB,
    EnvironmentInfo,
    Hotfix,
    HotfixInfo,
    InstalledProgram,
    ProcessEntry,
    ProcessInfo,
    Service,
    ServiceInfo,
    SoftwareInfo,
    StartupInfo,
    StartupItem,
)
from inventory_tap.probes.base import Probe
from inventory_tap.registry import HKCU, HKLM
from inventory_tap.variant import Row, Target, extract, optional, required

_PROCESS_ATTRS = ["pid", "name", "exe", "cmdline", "cpu_times", "memory_info"]


class ProcessProbe(Probe):
    """Largest processes by resident memory."""

    category = "process"

    def fetch(self) -> ProcessInfo:
        entries = [
            _process_entry(proc.info)
            for proc in psutil.process_iter(attrs=_PROCESS_ATTRS, ad_value=None)
        ]
        # sorted() is stable, so equal sizes keep enumeration order
        entries = sorted(entries, key=lambda entry: entry.memory_mb, reverse=True)
        return ProcessInfo(processes=entries[: self.config.limits.process_limit])


def _process_entry(info: dict) -> ProcessEntry:
    cpu_times = info.get("cpu_times")
    memory = info.get("memory_info")
    return ProcessEntry(
        name=info.get("name") or "",
        pid=info.get("pid") or 0,
        cpu_seconds=int(cpu_times.user + cpu_times.system) if cpu_times else 0,
        memory_mb=memory.rss / BYTES_PER_MB if memory else 0.0,
        exe_path=info.get("exe") or "",
        command=" ".join(info.get("cmdline") or []),
    )


_SERVICE_FIELDS = {
    "name": required("Name", Target.STRING),
    "display_name": optional("DisplayName", Target.STRING),
    "state": optional("State", Target.STRING),
    "start_mode": optional("StartMode", Target.STRING),
    "account": optional("StartName", Target.STRING),
    "path": optional("PathName", Target.STRING),
    "description": optional("Description", Target.STRING),
}


class ServiceProbe(Probe):
    category = "service"

    def fetch(self) -> ServiceInfo:
        rows = self._query("SELECT * FROM Win32_Service")
        return ServiceInfo(
            services=self._rows(rows, lambda row: Service(**extract(row, _SERVICE_FIELDS)))
        )


_STARTUP_FIELDS = {
    "name": optional("Name", Target.STRING),
    "command": optional("Command", Target.STRING),
    "location": optional("Location", Target.STRING),
    "user": optional("User", Target.STRING),
}


class StartupProbe(Probe):
    category = "startup"

    def fetch(self) -> StartupInfo:
        rows = self._query("SELECT * FROM Win32_StartupCommand")
        return StartupInfo(
            items=self._rows(rows, lambda row: StartupItem(**extract(row, _STARTUP_FIELDS)))
        )


UNINSTALL_PATHS = [
    (HKLM, r"SOFTWARE\Microsoft\Windows\CurrentVersion\Uninstall"),
    (HKLM, r"SOFTWARE\WOW6432Node\Microsoft\Windows\CurrentVersion\Uninstall"),
    (HKCU, r"SOFTWARE\Microsoft\Windows\CurrentVersion\Uninstall"),
]

_PROGRAM_FIELDS = {
    "name": required("DisplayName", Target.STRING),
    "version": optional("DisplayVersion", Target.STRING),
    "publisher": optional("Publisher", Target.STRING),
    "install_date": optional("InstallDate", Target.STRING),
}

_PROGRAM_FILTER_FIELDS = {
    "system_component": optional("SystemComponent", Target.U32),
    "parent": optional("ParentKeyName", Target.STRING),
}


class SoftwareProbe(Probe):
    """Installed programs from the machine and per-user uninstall keys."""

    category = "software"

    def fetch(self) -> SoftwareInfo:
        seen: set[str] = set()
        programs: list[InstalledProgram] = []
        for hive, path in UNINSTALL_PATHS:
            for program in self._programs(hive, path):
                if program.name in seen:
                    continue
                seen.add(program.name)
                programs.append(program)
        programs.sort(key=lambda program: program.name.lower())
        return SoftwareInfo(programs=programs)

    def _programs(self, hive: str, path: str) -> list[InstalledProgram]:
        records: list[Row] = []
        try:
            with self.sources.open_key(hive, path) as key:
                for name in key.subkey_names():
                    try:
                        with key.subkey(name) as subkey:
                            records.append(subkey.record())
                    except InventoryError as exc:
                        self.logger.debug("Skipping uninstall entry %s: %s", name, exc)
        except InventoryError as exc:
            self.logger.debug("Skipping uninstall key %s\\%s: %s", hive, path, exc)
            return []

        programs = []
        for record in records:
            flags = extract(record, _PROGRAM_FILTER_FIELDS)
            # Components and updates that belong to another product
            if flags["system_component"] == 1 or flags["parent"]:
                continue
            programs.extend(
                self._rows([record], lambda row: InstalledProgram(**extract(row, _PROGRAM_FIELDS)))
            )
        return programs


_HOTFIX_FIELDS = {
    "hotfix_id": optional("HotFixID", Target.STRING),
    "description": optional("Description", Target.STRING),
    "installed_by": optional("InstalledBy", Target.STRING),
    "installed_on": optional("InstalledOn", Target.STRING),
}


class HotfixProbe(Probe):
    category = "hotfix"

    def fetch(self) -> HotfixInfo:
        rows = self._query("SELECT * FROM Win32_QuickFixEngineering")
        hotfixes = self._rows(rows, lambda row: Hotfix(**extract(row, _HOTFIX_FIELDS)))
        return HotfixInfo(hotfixes=hotfixes[: self.config.limits.hotfix_limit])


ENVIRONMENT_KEY = r"SYSTEM\CurrentControlSet\Control\Session Manager\Environment"


class EnvironmentProbe(Probe):
    category = "environment"

    def fetch(self) -> EnvironmentInfo:
        with self.sources.open_key(HKLM, ENVIRONMENT_KEY) as key:
            record = key.record()
        return EnvironmentInfo(
            variables={
                name: optional(name, Target.STRING).read(record)
                for name in sorted(record)
            }
        )
