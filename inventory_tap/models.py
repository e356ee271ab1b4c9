from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any

BYTES_PER_GB = 1024**3
BYTES_PER_MB = 1024**2


def bytes_to_gb(value: int) -> float:
    return value / BYTES_PER_GB


# --- computer ------------------------------------------------------------------


@dataclass(frozen=True)
class OSInfo:
    name: str = ""
    version: str = ""
    build_lab: str = ""
    architecture: str = ""
    install_date: str = ""
    last_boot_date: str = ""
    uptime: int = 0
    timezone: str = ""


@dataclass(frozen=True)
class BIOSInfo:
    manufacturer: str = ""
    version: str = ""
    release_date: str = ""


@dataclass(frozen=True)
class ComputerInfo:
    name: str = ""
    domain: str = ""
    manufacturer: str = ""
    system_type: str = ""
    operating_system: OSInfo = field(default_factory=OSInfo)
    bios: BIOSInfo = field(default_factory=BIOSInfo)


# --- hardware ------------------------------------------------------------------


@dataclass(frozen=True)
class CpuInfo:
    name: str = ""
    cores: int = 0
    logical_processors: int = 0
    max_clock_mhz: int = 0
    current_clock_mhz: int = 0
    socket: str = ""
    l2_cache_kb: int = 0
    l3_cache_kb: int = 0
    architecture: str = "Unknown"
    virtualization: bool = False
    status: str = ""
    load_pct: int = 0


@dataclass(frozen=True)
class GpuAdapter:
    name: str = ""
    driver_version: str = ""
    driver_date: str = ""
    adapter_ram_mb: int = 0
    resolution: str = "N/A"
    refresh_rate: int = 0
    status: str = ""
    availability: str = "Other"


@dataclass(frozen=True)
class GpuInfo:
    adapters: list[GpuAdapter] = field(default_factory=list)


@dataclass(frozen=True)
class MemorySlot:
    bank_label: str = ""
    capacity_gb: float = 0.0
    speed_mhz: int = 0
    memory_type: str = "Unknown"
    form_factor: str = "Unknown"
    manufacturer: str = ""
    part_number: str = ""


@dataclass(frozen=True)
class MemoryInfo:
    slots: list[MemorySlot] = field(default_factory=list)
    total_slots: int = 0
    max_capacity_gb: int = 0


@dataclass(frozen=True)
class PhysicalDisk:
    model: str = ""
    serial_number: str = ""
    interface_type: str = ""
    media_type: str = ""
    disk_type: str = "Unknown"
    size_gb: float = 0.0
    status: str = ""


@dataclass(frozen=True)
class LogicalDisk:
    device_id: str = ""
    volume_name: str = ""
    file_system: str = ""
    total_gb: float = 0.0
    free_gb: float = 0.0
    used_gb: float = 0.0
    usage_pct: float = 0.0


@dataclass(frozen=True)
class DiskInfo:
    physical_disks: list[PhysicalDisk] = field(default_factory=list)
    logical_disks: list[LogicalDisk] = field(default_factory=list)


@dataclass(frozen=True)
class NetworkAdapter:
    name: str = ""
    description: str = ""
    mac_address: str = ""
    speed: str = "N/A"
    ipv4_addresses: list[str] = field(default_factory=list)
    ipv6_addresses: list[str] = field(default_factory=list)
    dns_servers: list[str] = field(default_factory=list)
    dhcp_enabled: bool = False
    gateway: str = ""


@dataclass(frozen=True)
class NetworkInfo:
    adapters: list[NetworkAdapter] = field(default_factory=list)


@dataclass(frozen=True)
class Monitor:
    manufacturer: str = ""
    name: str = ""
    serial_number: str = ""
    year_of_manufacture: int = 0
    resolution: str = "N/A"
    refresh_rate: int = 0


@dataclass(frozen=True)
class MonitorInfo:
    monitors: list[Monitor] = field(default_factory=list)


@dataclass(frozen=True)
class AudioDevice:
    name: str = ""
    manufacturer: str = ""
    status: str = ""
    device_id: str = ""


@dataclass(frozen=True)
class AudioInfo:
    devices: list[AudioDevice] = field(default_factory=list)


@dataclass(frozen=True)
class UsbDevice:
    name: str = ""
    device_id: str = ""
    manufacturer: str = ""
    status: str = ""


@dataclass(frozen=True)
class UsbInfo:
    devices: list[UsbDevice] = field(default_factory=list)


@dataclass(frozen=True)
class BatteryInfo:
    name: str = ""
    status: str = ""
    charge_pct: str = ""
    run_time_mins: str = ""
    design_capacity: str = "Unknown"
    full_charge_capacity: str = "Unknown"
    chemistry: str = "Other"


@dataclass(frozen=True)
class PowerInfo:
    plan: str = "Unknown"
    battery: BatteryInfo | None = None


# --- security ------------------------------------------------------------------


@dataclass(frozen=True)
class TpmInfo:
    present: bool = False
    ready: bool = False
    enabled: bool = False
    activated: bool = False
    version: str = "Unknown"
    manufacturer: str = "Unknown"


@dataclass(frozen=True)
class FirewallInfo:
    domain_enabled: bool | None = None
    domain_inbound: str | None = None
    domain_outbound: str | None = None
    private_enabled: bool | None = None
    private_inbound: str | None = None
    private_outbound: str | None = None
    public_enabled: bool | None = None
    public_inbound: str | None = None
    public_outbound: str | None = None


@dataclass(frozen=True)
class UpdateItem:
    title: str = ""
    kb_article_ids: list[str] = field(default_factory=list)
    severity: str | None = None
    is_downloaded: bool = False
    is_mandatory: bool = False
    categories: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class SecurityInfo:
    secure_boot: bool | None = None
    tpm: TpmInfo | None = None
    antivirus: str | None = None
    firewall: FirewallInfo | None = None
    uac: bool = False
    rdp_enabled: bool = False
    bit_locker: bool | None = None
    pending_updates: list[UpdateItem] | None = None


# --- software ------------------------------------------------------------------


@dataclass(frozen=True)
class ProcessEntry:
    """One process. ``cpu_seconds`` is user plus system CPU time consumed, not
    wall-clock time since the process started."""

    name: str = ""
    pid: int = 0
    cpu_seconds: int = 0
    memory_mb: float = 0.0
    exe_path: str = ""
    command: str = ""


@dataclass(frozen=True)
class ProcessInfo:
    processes: list[ProcessEntry] = field(default_factory=list)


@dataclass(frozen=True)
class Service:
    name: str = ""
    display_name: str = ""
    state: str = ""
    start_mode: str = ""
    account: str = ""
    path: str = ""
    description: str = ""


@dataclass(frozen=True)
class ServiceInfo:
    services: list[Service] = field(default_factory=list)


@dataclass(frozen=True)
class StartupItem:
    name: str = ""
    command: str = ""
    location: str = ""
    user: str = ""


@dataclass(frozen=True)
class StartupInfo:
    items: list[StartupItem] = field(default_factory=list)


@dataclass(frozen=True)
class InstalledProgram:
    name: str = ""
    version: str = ""
    publisher: str = ""
    install_date: str = ""


@dataclass(frozen=True)
class SoftwareInfo:
    programs: list[InstalledProgram] = field(default_factory=list)


@dataclass(frozen=True)
class Hotfix:
    hotfix_id: str = ""
    description: str = ""
    installed_by: str = ""
    installed_on: str = ""


@dataclass(frozen=True)
class HotfixInfo:
    hotfixes: list[Hotfix] = field(default_factory=list)


@dataclass(frozen=True)
class LocalUser:
    name: str = ""
    disabled: bool = False
    description: str = ""


@dataclass(frozen=True)
class LocalGroup:
    name: str = ""
    description: str = ""
    members: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class UsersGroupsInfo:
    users: list[LocalUser] = field(default_factory=list)
    groups: list[LocalGroup] = field(default_factory=list)


@dataclass(frozen=True)
class EnvironmentInfo:
    variables: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class EventEntry:
    level: str = ""
    source: str = ""
    event_id: str = ""
    time_created: str = ""
    message: str = ""


@dataclass(frozen=True)
class EventLogInfo:
    system_events: list[EventEntry] = field(default_factory=list)
    application_events: list[EventEntry] = field(default_factory=list)


@dataclass(frozen=True)
class ScheduledTask:
    name: str = ""
    path: str = ""
    state: str = ""
    last_run: str = ""
    next_run: str = ""
    result: str = ""
    author: str = ""


@dataclass(frozen=True)
class ScheduledTaskInfo:
    tasks: list[ScheduledTask] = field(default_factory=list)


# --- snapshot ------------------------------------------------------------------


@dataclass(frozen=True)
class Snapshot:
    """One collection pass; a category is ``None`` when its probe failed."""

    computer: ComputerInfo | None = None
    cpu: CpuInfo | None = None
    gpu: GpuInfo | None = None
    memory: MemoryInfo | None = None
    disk: DiskInfo | None = None
    network: NetworkInfo | None = None
    monitor: MonitorInfo | None = None
    audio: AudioInfo | None = None
    usb: UsbInfo | None = None
    power: PowerInfo | None = None
    security: SecurityInfo | None = None
    process: ProcessInfo | None = None
    service: ServiceInfo | None = None
    startup: StartupInfo | None = None
    software: SoftwareInfo | None = None
    hotfix: HotfixInfo | None = None
    users_groups: UsersGroupsInfo | None = None
    environment: EnvironmentInfo | None = None
    event_log: EventLogInfo | None = None
    scheduled_task: ScheduledTaskInfo | None = None

    @classmethod
    def categories(cls) -> list[str]:
        return [f.name for f in fields(cls)]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
