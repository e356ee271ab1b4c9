from __future__ import annotations

from inventory_tap.errors import InventoryError
from inventory_tap.models import (
    BYTES_PER_MB,
    AudioDevice,
    AudioInfo,
    CpuInfo,
    DiskInfo,
    GpuAdapter,
    GpuInfo,
    LogicalDisk,
    MemoryInfo,
    MemorySlot,
    Monitor,
    MonitorInfo,
    PhysicalDisk,
    UsbDevice,
    UsbInfo,
    bytes_to_gb,
)
from inventory_tap.parsers import dmtf_date
from inventory_tap.probes.base import Probe
from inventory_tap.reconcile import (
    DiskTypeMaps,
    assign_display_modes,
    disk_type_maps,
    resolve_disk_type,
    resolve_vram_bytes,
)
from inventory_tap.registry import HKLM
from inventory_tap.variant import (
    Row,
    Target,
    decode_char_array,
    extract,
    get_u16,
    optional,
)
from inventory_tap.wmi import STORAGE, WMI

CPU_ARCHITECTURES = {0: "x86", 5: "ARM", 6: "ia64", 9: "x64", 12: "ARM64"}

_CPU_FIELDS = {
    "name": optional("Name", Target.STRING),
    "cores": optional("NumberOfCores", Target.U32),
    "logical_processors": optional("NumberOfLogicalProcessors", Target.U32),
    "max_clock_mhz": optional("MaxClockSpeed", Target.U32),
    "current_clock_mhz": optional("CurrentClockSpeed", Target.U32),
    "socket": optional("SocketDesignation", Target.STRING),
    "l2_cache_kb": optional("L2CacheSize", Target.U32),
    "l3_cache_kb": optional("L3CacheSize", Target.U32),
    "virtualization": optional("VirtualizationFirmwareEnabled", Target.BOOL),
    "status": optional("Status", Target.STRING),
    "load_pct": optional("LoadPercentage", Target.U16),
}


class CpuProbe(Probe):
    category = "cpu"

    def fetch(self) -> CpuInfo:
        row = self._first(self._query("SELECT * FROM Win32_Processor"), "CPU info")
        arch_code = optional("Architecture", Target.U16, default=9).read(row)
        return CpuInfo(
            architecture=CPU_ARCHITECTURES.get(arch_code, "Unknown"),
            **extract(row, _CPU_FIELDS),
        )


# Display adapter device class
DISPLAY_CLASS_KEY = (
    r"SYSTEM\CurrentControlSet\Control\Class\{4d36e968-e325-11ce-bfc1-08002be10318}"
)
VRAM_VALUE = "HardwareInformation.qwMemorySize"

GPU_AVAILABILITY = {
    2: "Unknown",
    3: "Running/Full Power",
    4: "Warning",
    5: "In Test",
    8: "Off Line",
}

_GPU_FIELDS = {
    "name": optional("Name", Target.STRING),
    "driver_version": optional("DriverVersion", Target.STRING),
    "driver_date": optional("DriverDate", Target.STRING),
    "adapter_ram": optional("AdapterRAM", Target.U64),
    "h_res": optional("CurrentHorizontalResolution", Target.U32),
    "v_res": optional("CurrentVerticalResolution", Target.U32),
    "refresh_rate": optional("CurrentRefreshRate", Target.U32),
    "status": optional("Status", Target.STRING),
    "availability": optional("Availability", Target.U16),
}


class GpuProbe(Probe):
    category = "gpu"

    def fetch(self) -> GpuInfo:
        rows = self._query("SELECT * FROM Win32_VideoController")
        registry_vram = self._registry_vram()
        return GpuInfo(adapters=self._rows(rows, lambda row: self._adapter(row, registry_vram)))

    def _adapter(self, row: Row, registry_vram: dict[str, int]) -> GpuAdapter:
        values = extract(row, _GPU_FIELDS)
        if values["h_res"] > 0 and values["v_res"] > 0:
            resolution = f"{values['h_res']}x{values['v_res']}"
        else:
            resolution = "N/A"
        vram = resolve_vram_bytes(values["name"], registry_vram, values["adapter_ram"])
        return GpuAdapter(
            name=values["name"],
            driver_version=values["driver_version"],
            driver_date=dmtf_date(values["driver_date"]),
            adapter_ram_mb=vram // BYTES_PER_MB,
            resolution=resolution,
            refresh_rate=values["refresh_rate"],
            status=values["status"],
            availability=GPU_AVAILABILITY.get(values["availability"], "Other"),
        )

    def _registry_vram(self) -> dict[str, int]:
        """DriverDesc -> qwMemorySize from the display class key.

        AdapterRAM is a uint32 and caps at 4 GiB; the registry QWORD does not.
        """
        vram: dict[str, int] = {}
        try:
            with self.sources.open_key(HKLM, DISPLAY_CLASS_KEY) as class_key:
                for name in class_key.subkey_names():
                    try:
                        with class_key.subkey(name) as subkey:
                            values = extract(
                                subkey.record(),
                                {
                                    "desc": optional("DriverDesc", Target.STRING),
                                    "size": optional(VRAM_VALUE, Target.U64),
                                },
                            )
                    except InventoryError:
                        continue
                    if values["desc"] and values["size"] > 0:
                        vram[values["desc"]] = values["size"]
        except InventoryError as exc:
            self.logger.debug("Registry VRAM lookup unavailable: %s", exc)
        return vram


MEMORY_TYPES = {20: "DDR", 21: "DDR2", 24: "DDR3", 26: "DDR4", 34: "DDR5"}
FORM_FACTORS = {8: "DIMM", 12: "SO-DIMM"}

_SLOT_FIELDS = {
    "bank_label": optional("BankLabel", Target.STRING),
    "capacity": optional("Capacity", Target.U64),
    "speed_mhz": optional("Speed", Target.U32),
    "type_code": optional("SMBIOSMemoryType", Target.U16),
    "form_factor": optional("FormFactor", Target.U16),
    "manufacturer": optional("Manufacturer", Target.STRING),
    "part_number": optional("PartNumber", Target.STRING),
}


class MemoryProbe(Probe):
    category = "memory"

    def fetch(self) -> MemoryInfo:
        array_rows = self._query("SELECT * FROM Win32_PhysicalMemoryArray")
        array = extract(
            array_rows[0] if array_rows else {},
            {
                "total_slots": optional("MemoryDevices", Target.U32),
                "max_capacity_kb": optional("MaxCapacity", Target.U64),
            },
        )
        rows = self._query("SELECT * FROM Win32_PhysicalMemory")
        return MemoryInfo(
            slots=self._rows(rows, self._slot),
            total_slots=array["total_slots"],
            max_capacity_gb=array["max_capacity_kb"] // (1024 * 1024),
        )

    def _slot(self, row: Row) -> MemorySlot:
        values = extract(row, _SLOT_FIELDS)
        return MemorySlot(
            bank_label=values["bank_label"],
            capacity_gb=bytes_to_gb(values["capacity"]),
            speed_mhz=values["speed_mhz"],
            memory_type=MEMORY_TYPES.get(values["type_code"], "Unknown"),
            form_factor=FORM_FACTORS.get(values["form_factor"], "Unknown"),
            manufacturer=values["manufacturer"],
            part_number=values["part_number"].strip(),
        )


_PHYSICAL_DISK_FIELDS = {
    "model": optional("Model", Target.STRING),
    "serial": optional("SerialNumber", Target.STRING),
    "interface_type": optional("InterfaceType", Target.STRING),
    "media_type": optional("MediaType", Target.STRING),
    "size": optional("Size", Target.U64),
    "status": optional("Status", Target.STRING),
}

_LOGICAL_DISK_FIELDS = {
    "device_id": optional("DeviceID", Target.STRING),
    "volume_name": optional("VolumeName", Target.STRING),
    "file_system": optional("FileSystem", Target.STRING),
    "size": optional("Size", Target.U64),
    "free": optional("FreeSpace", Target.U64),
}


class DiskProbe(Probe):
    category = "disk"

    def fetch(self) -> DiskInfo:
        maps = self._disk_type_maps()
        physical = self._query("SELECT * FROM Win32_DiskDrive")
        # DriveType 3: local fixed disks
        logical = self._query("SELECT * FROM Win32_LogicalDisk WHERE DriveType=3")
        return DiskInfo(
            physical_disks=self._rows(physical, lambda row: self._physical(row, maps)),
            logical_disks=self._rows(logical, self._logical),
        )

    def _disk_type_maps(self) -> DiskTypeMaps:
        try:
            rows = self._query(
                "SELECT MediaType, SerialNumber, DeviceId FROM MSFT_PhysicalDisk",
                STORAGE,
            )
        except InventoryError as exc:
            self.logger.debug("MSFT_PhysicalDisk unavailable, using heuristics: %s", exc)
            return DiskTypeMaps()
        return disk_type_maps(rows)

    def _physical(self, row: Row, maps: DiskTypeMaps) -> PhysicalDisk:
        values = extract(row, _PHYSICAL_DISK_FIELDS)
        index = optional("Index", Target.U32, default=-1).read(row)
        serial = values["serial"].strip()
        return PhysicalDisk(
            model=values["model"],
            serial_number=serial,
            interface_type=values["interface_type"],
            media_type=values["media_type"],
            disk_type=resolve_disk_type(
                serial, index if index >= 0 else None, values["model"], maps
            ),
            size_gb=bytes_to_gb(values["size"]),
            status=values["status"],
        )

    def _logical(self, row: Row) -> LogicalDisk:
        values = extract(row, _LOGICAL_DISK_FIELDS)
        total = values["size"]
        free = values["free"]
        used = total - free
        return LogicalDisk(
            device_id=values["device_id"],
            volume_name=values["volume_name"],
            file_system=values["file_system"],
            total_gb=bytes_to_gb(total),
            free_gb=bytes_to_gb(free),
            used_gb=bytes_to_gb(used),
            usage_pct=(used / total) * 100 if total else 0.0,
        )


class MonitorProbe(Probe):
    category = "monitor"

    def fetch(self) -> MonitorInfo:
        rows = self._query("SELECT * FROM WmiMonitorID", WMI)
        try:
            modes = self.sources.display_modes()
        except InventoryError as exc:
            self.logger.debug("Display enumeration failed: %s", exc)
            modes = []
        assigned = assign_display_modes(len(rows), modes)
        return MonitorInfo(
            monitors=[self._monitor(row, mode) for row, mode in zip(rows, assigned)]
        )

    def _monitor(self, row: Row, mode) -> Monitor:
        try:
            year = get_u16(row, "YearOfManufacture")
        except InventoryError:
            year = 0
        return Monitor(
            manufacturer=decode_char_array(row.get("ManufacturerName")),
            name=decode_char_array(row.get("UserFriendlyName")),
            serial_number=decode_char_array(row.get("SerialNumberID")),
            year_of_manufacture=year,
            resolution=mode.resolution if mode else "N/A",
            refresh_rate=mode.refresh_hz if mode else 0,
        )


_DEVICE_FIELDS = {
    "name": optional("Name", Target.STRING),
    "manufacturer": optional("Manufacturer", Target.STRING),
    "status": optional("Status", Target.STRING),
    "device_id": optional("DeviceID", Target.STRING),
}


class AudioProbe(Probe):
    category = "audio"

    def fetch(self) -> AudioInfo:
        rows = self._query("SELECT * FROM Win32_SoundDevice")
        return AudioInfo(
            devices=self._rows(rows, lambda row: AudioDevice(**extract(row, _DEVICE_FIELDS)))
        )


USB_HUB_NAMES = ("Root Hub", "Generic Hub", "USB Composite Device")

_USB_FIELDS = {
    "name": optional("Name", Target.STRING),
    "device_id": optional("PNPDeviceID", Target.STRING),
    "manufacturer": optional("Manufacturer", Target.STRING),
    "status": optional("Status", Target.STRING),
}


class UsbProbe(Probe):
    category = "usb"

    def fetch(self) -> UsbInfo:
        rows = self._query(
            "SELECT Name, PNPDeviceID, Manufacturer, Status FROM Win32_PnPEntity "
            "WHERE PNPDeviceID LIKE 'USB%'"
        )
        devices = self._rows(rows, lambda row: UsbDevice(**extract(row, _USB_FIELDS)))
        return UsbInfo(
            devices=[
                device
                for device in devices
                if not any(hub in device.name for hub in USB_HUB_NAMES)
            ]
        )
