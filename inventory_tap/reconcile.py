from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Callable, Iterable, Sequence, TypeVar

from inventory_tap.display import DisplayMode
from inventory_tap.errors import InventoryError
from inventory_tap.variant import Row, Target, extract, optional

logger = logging.getLogger(__name__)

T = TypeVar("T")

# MSFT_PhysicalDisk.MediaType
MEDIA_TYPES = {3: "HDD", 4: "SSD", 5: "SCM"}
UNKNOWN_DISK_TYPE = "Unknown"

_MSFT_DISK_FIELDS = {
    "media_type": optional("MediaType", Target.U16),
    "serial": optional("SerialNumber", Target.STRING),
    "device_id": optional("DeviceId", Target.STRING),
}


@dataclass
class DiskTypeMaps:
    by_serial: dict[str, str] = field(default_factory=dict)
    by_index: dict[str, str] = field(default_factory=dict)


def disk_type_maps(rows: Iterable[Row]) -> DiskTypeMaps:
    """Index ``MSFT_PhysicalDisk`` rows by trimmed serial number and device id."""
    maps = DiskTypeMaps()
    for row in rows:
        values = extract(row, _MSFT_DISK_FIELDS)
        disk_type = MEDIA_TYPES.get(values["media_type"], UNKNOWN_DISK_TYPE)
        serial = values["serial"].strip()
        if serial:
            maps.by_serial[serial] = disk_type
        device_id = values["device_id"].strip()
        if device_id:
            maps.by_index[device_id] = disk_type
    return maps


def guess_disk_type(model: str) -> str:
    upper = model.upper()
    if "SSD" in upper or "NVME" in upper or "NVM" in upper:
        return "SSD"
    return UNKNOWN_DISK_TYPE


def resolve_disk_type(serial: str, index: int | None, model: str, maps: DiskTypeMaps) -> str:
    """Serial match, then device index match, then the model-name heuristic."""
    serial = serial.strip()
    if serial and serial in maps.by_serial:
        return maps.by_serial[serial]
    if index is not None and str(index) in maps.by_index:
        return maps.by_index[str(index)]
    return guess_disk_type(model)


def resolve_vram_bytes(name: str, registry_vram: dict[str, int], adapter_ram: int) -> int:
    """Registry 64-bit size keyed by exact adapter description, else WMI AdapterRAM."""
    vram = registry_vram.get(name, 0)
    if vram > 0:
        return vram
    return adapter_ram


def assign_display_modes(
    monitor_count: int, modes: Sequence[DisplayMode | None]
) -> list[DisplayMode | None]:
    """Pair monitors with active displays by position.

    A monitor with no active display at its own index gets ``None``, as does
    one whose display settings could not be read.
    """
    if len(modes) != monitor_count:
        logger.debug(
            "Monitor count %d does not match %d active displays",
            monitor_count,
            len(modes),
        )
    return [modes[index] if index < len(modes) else None for index in range(monitor_count)]


def fallback_chain(
    name: str, attempts: Sequence[tuple[str, Callable[[], T | None]]]
) -> T | None:
    """Return the first non-``None`` result from ``attempts``.

    Sources are tried in order of decreasing fidelity; one that raises an
    ``InventoryError`` (unavailable, access denied, unreadable field) is
    skipped. ``None`` means every source was exhausted.
    """
    for source, attempt in attempts:
        try:
            result = attempt()
        except InventoryError as exc:
            logger.debug("%s: %s unavailable (%s)", name, source, exc)
            continue
        if result is not None:
            logger.debug("%s resolved from %s", name, source)
            return result
    logger.debug("%s: no source available", name)
    return None
