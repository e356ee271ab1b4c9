"""Inventory probes, one per snapshot category."""

from inventory_tap.probes.accounts import UsersGroupsProbe
from inventory_tap.probes.base import Probe
from inventory_tap.probes.computer import ComputerProbe
from inventory_tap.probes.events import EventLogProbe, ScheduledTaskProbe
from inventory_tap.probes.hardware import (
    AudioProbe,
    CpuProbe,
    DiskProbe,
    GpuProbe,
    MemoryProbe,
    MonitorProbe,
    UsbProbe,
)
from inventory_tap.probes.network import NetworkProbe
from inventory_tap.probes.power import PowerProbe
from inventory_tap.probes.security import SecurityProbe
from inventory_tap.probes.software import (
    EnvironmentProbe,
    HotfixProbe,
    ProcessProbe,
    ServiceProbe,
    SoftwareProbe,
    StartupProbe,
)

# Snapshot field order
ALL_PROBES: list[type[Probe]] = [
    ComputerProbe,
    CpuProbe,
    GpuProbe,
    MemoryProbe,
    DiskProbe,
    NetworkProbe,
    MonitorProbe,
    AudioProbe,
    UsbProbe,
    PowerProbe,
    SecurityProbe,
    ProcessProbe,
    ServiceProbe,
    StartupProbe,
    SoftwareProbe,
    HotfixProbe,
    UsersGroupsProbe,
    EnvironmentProbe,
    EventLogProbe,
    ScheduledTaskProbe,
]

__all__ = [
    "ALL_PROBES",
    "AudioProbe",
    "ComputerProbe",
    "CpuProbe",
    "DiskProbe",
    "EnvironmentProbe",
    "EventLogProbe",
    "GpuProbe",
    "HotfixProbe",
    "MemoryProbe",
    "MonitorProbe",
    "NetworkProbe",
    "PowerProbe",
    "Probe",
    "ProcessProbe",
    "ScheduledTaskProbe",
    "SecurityProbe",
    "ServiceProbe",
    "SoftwareProbe",
    "StartupProbe",
    "UsbProbe",
    "UsersGroupsProbe",
]
