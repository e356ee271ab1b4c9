from __future__ import annotations

import logging
from typing import Any

from inventory_tap.commands import PowerShell
from inventory_tap.errors import SourceUnavailable
from inventory_tap.variant import Variant

CIMV2 = r"root\cimv2"
WMI = r"root\wmi"
STORAGE = r"root\Microsoft\Windows\Storage"
SECURITY_CENTER = r"root\SecurityCenter2"
STANDARD_CIMV2 = r"root\StandardCimv2"
TPM = r"root\cimv2\security\microsofttpm"
VOLUME_ENCRYPTION = r"root\cimv2\security\microsoftvolumeencryption"

# Each instance becomes {"<property>": {"t": "<CimType>", "v": <value>}} so the
# CIM type survives the trip through JSON. DateTime values are rendered as DMTF
# strings, references and embedded instances as their string form.
_QUERY_SCRIPT = (
    "$ErrorActionPreference = 'Stop'; "
    "$rows = @(Get-CimInstance -Namespace '{namespace}' -Query '{query}' | "
    "ForEach-Object {{ $row = @{{}}; "
    "foreach ($p in $_.CimInstanceProperties) {{ $v = $p.Value; "
    "if ($v -is [datetime]) {{ $v = [Management.ManagementDateTimeConverter]::ToDmtfDateTime($v) }} "
    "elseif ($v -is [Microsoft.Management.Infrastructure.CimInstance]) {{ $v = [string]$v }}; "
    "$row[$p.Name] = @{{ t = $p.CimType.ToString(); v = $v }} }}; $row }}); "
    "ConvertTo-Json -InputObject $rows -Depth 5 -Compress"
)


def _quote(text: str) -> str:
    return text.replace("'", "''")


def decode_rows(data: Any) -> list[dict[str, Variant]]:
    """Turn decoded PowerShell JSON into rows of tagged values."""
    if data is None:
        return []
    # ConvertTo-Json unwraps single-element arrays on some hosts
    if isinstance(data, dict):
        data = [data]
    rows: list[dict[str, Variant]] = []
    for entry in data:
        if not isinstance(entry, dict):
            continue
        row: dict[str, Variant] = {}
        for name, cell in entry.items():
            if isinstance(cell, dict) and "t" in cell:
                row[name] = Variant.from_cim(cell.get("t"), cell.get("v"))
            else:
                row[name] = Variant.infer(cell)
        rows.append(row)
    return rows


class WmiSession:
    """Read-only WQL access to one WMI namespace."""

    def __init__(self, namespace: str = CIMV2, powershell: PowerShell | None = None) -> None:
        self.namespace = namespace
        self.powershell = powershell or PowerShell()
        self.logger = logging.getLogger(self.__class__.__name__)

    def query(self, wql: str) -> list[dict[str, Variant]]:
        self.logger.debug("WQL [%s]: %s", self.namespace, wql)
        script = _QUERY_SCRIPT.format(
            namespace=_quote(self.namespace), query=_quote(wql)
        )
        try:
            data = self.powershell.run_json(script)
        except SourceUnavailable as exc:
            self.logger.debug("WMI query failed [%s]: %s", self.namespace, exc)
            raise
        return decode_rows(data)
