from __future__ import annotations

from datetime import datetime, timezone

from inventory_tap.errors import InventoryError
from inventory_tap.models import BIOSInfo, ComputerInfo, OSInfo
from inventory_tap.parsers import dmtf_date, parse_dmtf_datetime
from inventory_tap.probes.base import Probe
from inventory_tap.registry import HKLM
from inventory_tap.variant import Row, Target, extract, get_string, optional, required

CURRENT_VERSION_KEY = r"SOFTWARE\Microsoft\Windows NT\CurrentVersion"

_SYSTEM_FIELDS = {
    "name": required("Name", Target.STRING),
    "part_of_domain": optional("PartOfDomain", Target.BOOL),
    "domain": optional("Domain", Target.STRING),
    "workgroup": optional("Workgroup", Target.STRING),
    "manufacturer": optional("Manufacturer", Target.STRING),
    "system_type": optional("SystemType", Target.STRING),
}

_OS_FIELDS = {
    "name": optional("Caption", Target.STRING),
    "version": optional("Version", Target.STRING),
    "architecture": optional("OSArchitecture", Target.STRING),
    "install_date": optional("InstallDate", Target.STRING),
    "last_boot": optional("LastBootUpTime", Target.STRING),
}

_BIOS_FIELDS = {
    "manufacturer": optional("Manufacturer", Target.STRING),
    "version": optional("SMBIOSBIOSVersion", Target.STRING),
    "release_date": optional("ReleaseDate", Target.STRING),
}


def _iso(text: str) -> str:
    parsed = parse_dmtf_datetime(text)
    return parsed.isoformat() if parsed else ""


class ComputerProbe(Probe):
    category = "computer"

    def fetch(self) -> ComputerInfo:
        system = extract(
            self._first(self._query("SELECT * FROM Win32_ComputerSystem"), "computer system"),
            _SYSTEM_FIELDS,
        )
        if system["part_of_domain"]:
            domain = system["domain"]
        else:
            domain = f"{system['workgroup']} (Workgroup)"

        return ComputerInfo(
            name=system["name"],
            domain=domain,
            manufacturer=system["manufacturer"],
            system_type=system["system_type"],
            operating_system=self._fetch_os(),
            bios=self._fetch_bios(),
        )

    def _fetch_os(self) -> OSInfo:
        os_row = self._first(
            self._query("SELECT * FROM Win32_OperatingSystem"), "operating system"
        )
        values = extract(os_row, _OS_FIELDS)
        current = self._current_version()

        # DisplayVersion (e.g. "23H2") is only in the registry
        version = _string_or_empty(current, "DisplayVersion") or values["version"]
        build_lab = _string_or_empty(current, "BuildLabEx") or "N/A"

        last_boot = parse_dmtf_datetime(values["last_boot"])
        uptime = 0
        if last_boot is not None:
            uptime = max(0, int((datetime.now(timezone.utc) - last_boot).total_seconds()))

        return OSInfo(
            name=values["name"],
            version=version,
            build_lab=build_lab,
            architecture=values["architecture"],
            install_date=_iso(values["install_date"]),
            last_boot_date=last_boot.isoformat() if last_boot else "",
            uptime=uptime,
            timezone=self._fetch_timezone(),
        )

    def _current_version(self) -> Row:
        try:
            with self.sources.open_key(HKLM, CURRENT_VERSION_KEY) as key:
                return key.record()
        except InventoryError as exc:
            self.logger.debug("CurrentVersion registry key unavailable: %s", exc)
            return {}

    def _fetch_timezone(self) -> str:
        try:
            rows = self._query("SELECT Caption FROM Win32_TimeZone")
        except InventoryError as exc:
            self.logger.debug("Time zone query failed: %s", exc)
            return ""
        return _string_or_empty(rows[0], "Caption") if rows else ""

    def _fetch_bios(self) -> BIOSInfo:
        try:
            rows = self._query("SELECT * FROM Win32_BIOS")
        except InventoryError as exc:
            self.logger.debug("BIOS query failed: %s", exc)
            return BIOSInfo()
        if not rows:
            return BIOSInfo()
        values = extract(rows[0], _BIOS_FIELDS)
        return BIOSInfo(
            manufacturer=values["manufacturer"],
            version=values["version"],
            release_date=dmtf_date(values["release_date"]),
        )


def _string_or_empty(row: Row, key: str) -> str:
    try:
        return get_string(row, key)
    except InventoryError:
        return ""
