from __future__ import annotations

from inventory_tap.models import NetworkAdapter, NetworkInfo
from inventory_tap.probes.base import Probe
from inventory_tap.variant import Row, Target, extract, optional, required, string_array

_ADAPTER_FIELDS = {
    "index": required("Index", Target.U32),
    "connection_id": optional("NetConnectionID", Target.STRING),
    "name": optional("Name", Target.STRING),
    "speed": optional("Speed", Target.U64),
    "mac_address": optional("MACAddress", Target.STRING),
}

_CONFIG_FIELDS = {
    "index": required("Index", Target.U32),
    "description": optional("Description", Target.STRING),
    "mac_address": optional("MACAddress", Target.STRING),
    "dhcp_enabled": optional("DHCPEnabled", Target.BOOL),
}


def format_speed(bits_per_second: int) -> str:
    if bits_per_second >= 1_000_000_000:
        return f"{bits_per_second / 1_000_000_000:.1f} Gbps"
    if bits_per_second >= 1_000_000:
        return f"{bits_per_second / 1_000_000:.0f} Mbps"
    if bits_per_second >= 1_000:
        return f"{bits_per_second / 1_000:.0f} Kbps"
    if bits_per_second > 0:
        return f"{bits_per_second} bps"
    return "N/A"


class NetworkProbe(Probe):
    """IP-enabled adapters, joined with their physical adapter by index."""

    category = "network"

    def fetch(self) -> NetworkInfo:
        adapters: dict[int, dict] = {}
        for values in self._rows(
            self._query("SELECT * FROM Win32_NetworkAdapter WHERE NetEnabled=True"),
            lambda row: extract(row, _ADAPTER_FIELDS),
        ):
            adapters[values["index"]] = values

        configs = self._query(
            "SELECT * FROM Win32_NetworkAdapterConfiguration WHERE IPEnabled=True"
        )
        return NetworkInfo(
            adapters=self._rows(configs, lambda row: self._adapter(row, adapters))
        )

    def _adapter(self, row: Row, adapters: dict[int, dict]) -> NetworkAdapter:
        values = extract(row, _CONFIG_FIELDS)
        physical = adapters.get(values["index"], {})

        ipv4: list[str] = []
        ipv6: list[str] = []
        for address in string_array(row.get("IPAddress")):
            (ipv6 if ":" in address else ipv4).append(address)
        gateways = string_array(row.get("DefaultIPGateway"))

        return NetworkAdapter(
            name=physical.get("connection_id") or physical.get("name") or values["description"],
            description=values["description"],
            mac_address=physical.get("mac_address") or values["mac_address"],
            speed=format_speed(physical.get("speed", 0)),
            ipv4_addresses=ipv4,
            ipv6_addresses=ipv6,
            dns_servers=string_array(row.get("DNSServerSearchOrder")),
            dhcp_enabled=values["dhcp_enabled"],
            gateway=gateways[0] if gateways else "",
        )
