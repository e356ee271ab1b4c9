from __future__ import annotations

from typing import Any

from inventory_tap.errors import InventoryError, KeyNotFound
from inventory_tap.models import FirewallInfo, SecurityInfo, TpmInfo, UpdateItem
from inventory_tap.probes.base import Probe
from inventory_tap.reconcile import fallback_chain
from inventory_tap.registry import HKLM
from inventory_tap.variant import Row, Target, extract, get_string, optional, required
from inventory_tap.wmi import SECURITY_CENTER, STANDARD_CIMV2, TPM, VOLUME_ENCRYPTION

TPM_SERVICE_KEY = r"SYSTEM\CurrentControlSet\Services\TPM"
TPM_KEY = r"SOFTWARE\Microsoft\Tpm"
SECURE_BOOT_KEY = r"SYSTEM\CurrentControlSet\Control\SecureBoot\State"
FIREWALL_POLICY_KEY = (
    r"SYSTEM\CurrentControlSet\Services\SharedAccess\Parameters\FirewallPolicy"
)
DEFENDER_KEY = r"SOFTWARE\Microsoft\Windows Defender"
REBOOT_REQUIRED_KEY = (
    r"SOFTWARE\Microsoft\Windows\CurrentVersion\WindowsUpdate\Auto Update\RebootRequired"
)
POLICIES_SYSTEM_KEY = r"SOFTWARE\Microsoft\Windows\CurrentVersion\Policies\System"
TERMINAL_SERVER_KEY = r"SYSTEM\CurrentControlSet\Control\Terminal Server"

# productState bits of SecurityCenter2 AntiVirusProduct
AV_ENABLED = 0x1000
AV_UP_TO_DATE = 0x0800

# MSFT_NetFirewallProfile.Name -> FirewallInfo field prefix
FIREWALL_PROFILES = {"Domain": "domain", "Private": "private", "Public": "public"}
# registry subkey -> FirewallInfo field prefix
FIREWALL_PROFILE_KEYS = {
    "DomainProfile": "domain",
    "StandardProfile": "private",
    "PublicProfile": "public",
}
# MSFT_NetFirewallProfile.Enabled is a GpoBoolean
FIREWALL_ENABLED = {0: False, 1: True}
FIREWALL_ACTIONS = {0: "Not Configured", 2: "Allow", 4: "Block"}

# System.Volume.BitLockerProtection values that mean the volume is protected
BITLOCKER_PROTECTED = {1, 3, 6}

_SECURE_BOOT_SCRIPT = "Confirm-SecureBootUEFI | ConvertTo-Json -Compress"

_BITLOCKER_SHELL_SCRIPT = (
    "$shell = New-Object -ComObject Shell.Application; "
    "$shell.NameSpace($env:SystemDrive + '\\').Self."
    "ExtendedProperty('System.Volume.BitLockerProtection') | ConvertTo-Json -Compress"
)

_PENDING_UPDATES_SCRIPT = (
    "$ErrorActionPreference = 'Stop'; "
    "$searcher = (New-Object -ComObject Microsoft.Update.Session).CreateUpdateSearcher(); "
    "$searcher.Online = $false; "
    "$result = $searcher.Search('IsInstalled=0 AND IsHidden=0'); "
    "$items = @(foreach ($u in $result.Updates) { [pscustomobject]@{ "
    "title = $u.Title; "
    "kb = @($u.KBArticleIDs | ForEach-Object { 'KB' + $_ }); "
    "severity = $u.MsrcSeverity; "
    "downloaded = [bool]$u.IsDownloaded; "
    "mandatory = [bool]$u.IsMandatory; "
    "categories = @($u.Categories | ForEach-Object { $_.Name }) } }); "
    "ConvertTo-Json -InputObject $items -Depth 4 -Compress"
)

_TPM_WMI_FIELDS = {
    "ready": optional("IsReady_InitialValue", Target.BOOL),
    "enabled": optional("IsEnabled_InitialValue", Target.BOOL),
    "activated": optional("IsActivated_InitialValue", Target.BOOL),
    "spec_version": optional("SpecVersion", Target.STRING),
    "manufacturer": optional("ManufacturerIdTxt", Target.STRING, default="Unknown"),
}

_TPM_REGISTRY_FIELDS = {
    "spec_version": optional("SpecVersion", Target.STRING),
    "manufacturer_version": optional("ManufacturerVersion", Target.STRING),
    "manufacturer": optional("ManufacturerDisplayName", Target.STRING, default="Unknown"),
    "ready": optional("IsReady", Target.U32),
}

_FIREWALL_PROFILE_FIELDS = {
    "name": required("Name", Target.STRING),
    "enabled": optional("Enabled", Target.U16, default=2),
    "inbound": optional("DefaultInboundAction", Target.U16),
    "outbound": optional("DefaultOutboundAction", Target.U16),
}

_FIREWALL_KEY_FIELDS = {
    "enabled": optional("EnableFirewall", Target.U32),
    "inbound": optional("DefaultInboundAction", Target.U32, default=1),
    "outbound": optional("DefaultOutboundAction", Target.U32),
}


def _spec_version(text: str) -> str:
    """First entry of a ``"2.0, 0, 1.59"`` style SpecVersion."""
    return text.split(",")[0].strip()


def _flag(value: bool) -> str:
    return "true" if value else "false"


class SecurityProbe(Probe):
    """Security posture assembled from privilege-gated fallback chains.

    Each item tries its administrator-only source first and falls back to a
    registry source readable by any user. An item whose sources are all
    unavailable is ``None``; the probe itself never fails.
    """

    category = "security"

    def fetch(self) -> SecurityInfo:
        return SecurityInfo(
            secure_boot=fallback_chain(
                "secure boot",
                [
                    ("Confirm-SecureBootUEFI", self._secure_boot_powershell),
                    ("registry", self._secure_boot_registry),
                ],
            ),
            tpm=fallback_chain(
                "TPM",
                [("Win32_Tpm", self._tpm_wmi), ("registry", self._tpm_registry)],
            ),
            antivirus=fallback_chain(
                "antivirus",
                [
                    ("SecurityCenter2", self._antivirus_wmi),
                    ("registry", self._antivirus_registry),
                ],
            ),
            firewall=fallback_chain(
                "firewall",
                [
                    ("MSFT_NetFirewallProfile", self._firewall_wmi),
                    ("registry", self._firewall_registry),
                ],
            ),
            uac=self._registry_flag(POLICIES_SYSTEM_KEY, "EnableLUA", 0) == 1,
            rdp_enabled=self._registry_flag(TERMINAL_SERVER_KEY, "fDenyTSConnections", 1) == 0,
            bit_locker=fallback_chain(
                "BitLocker",
                [
                    ("Win32_EncryptableVolume", self._bitlocker_wmi),
                    ("Shell property", self._bitlocker_shell),
                ],
            ),
            pending_updates=fallback_chain(
                "pending updates",
                [
                    ("Windows Update Agent", self._updates_agent),
                    ("registry", self._updates_registry),
                ],
            ),
        )

    def _key_record(self, path: str) -> Row:
        with self.sources.open_key(HKLM, path) as key:
            return key.record()

    def _registry_flag(self, path: str, name: str, default: int) -> int:
        try:
            row = self._key_record(path)
        except InventoryError as exc:
            self.logger.debug("%s unavailable: %s", path, exc)
            return default
        return optional(name, Target.U32, default=default).read(row)

    # --- secure boot ---

    def _secure_boot_powershell(self) -> bool | None:
        value = self.sources.powershell_json(_SECURE_BOOT_SCRIPT)
        return value if isinstance(value, bool) else None

    def _secure_boot_registry(self) -> bool:
        return optional("UEFISecureBootEnabled", Target.U32).read(
            self._key_record(SECURE_BOOT_KEY)
        ) == 1

    # --- TPM ---

    def _tpm_wmi(self) -> TpmInfo | None:
        rows = self._query("SELECT * FROM Win32_Tpm", TPM)
        if not rows:
            return None
        values = extract(rows[0], _TPM_WMI_FIELDS)
        return TpmInfo(
            present=True,
            ready=values["ready"],
            enabled=values["enabled"],
            activated=values["activated"],
            version=_spec_version(values["spec_version"]) or "Unknown",
            manufacturer=values["manufacturer"],
        )

    def _tpm_registry(self) -> TpmInfo | None:
        if not self.sources.key_exists(HKLM, TPM_SERVICE_KEY):
            return None
        try:
            values = extract(self._key_record(TPM_KEY), _TPM_REGISTRY_FIELDS)
        except KeyNotFound:
            values = extract({}, _TPM_REGISTRY_FIELDS)
        version = _spec_version(values["spec_version"]) or values["manufacturer_version"]
        ready = values["ready"] == 1
        # A registered TPM service means the device is enabled
        return TpmInfo(
            present=True,
            ready=ready,
            enabled=True,
            activated=ready,
            version=version or "Unknown",
            manufacturer=values["manufacturer"],
        )

    # --- antivirus ---

    def _antivirus_wmi(self) -> str | None:
        rows = self._query(
            "SELECT displayName, productState FROM AntiVirusProduct", SECURITY_CENTER
        )
        products = self._rows(rows, _antivirus_product)
        return "; ".join(products) if products else None

    def _antivirus_registry(self) -> str | None:
        row = self._key_record(DEFENDER_KEY)
        disabled = optional("DisableAntiSpyware", Target.U32).read(row) == 1
        return f"Windows Defender (Enabled: {_flag(not disabled)}, Up-to-date: unknown)"

    # --- firewall ---

    def _firewall_wmi(self) -> FirewallInfo | None:
        rows = self._query(
            "SELECT Name, Enabled, DefaultInboundAction, DefaultOutboundAction "
            "FROM MSFT_NetFirewallProfile",
            STANDARD_CIMV2,
        )
        profiles: dict[str, Any] = {}
        for values in self._rows(rows, lambda row: extract(row, _FIREWALL_PROFILE_FIELDS)):
            prefix = FIREWALL_PROFILES.get(values["name"])
            if prefix is None:
                continue
            profiles[f"{prefix}_enabled"] = FIREWALL_ENABLED.get(values["enabled"])
            profiles[f"{prefix}_inbound"] = FIREWALL_ACTIONS.get(values["inbound"])
            profiles[f"{prefix}_outbound"] = FIREWALL_ACTIONS.get(values["outbound"])
        return FirewallInfo(**profiles) if profiles else None

    def _firewall_registry(self) -> FirewallInfo | None:
        profiles: dict[str, Any] = {}
        for subkey, prefix in FIREWALL_PROFILE_KEYS.items():
            try:
                row = self._key_record(f"{FIREWALL_POLICY_KEY}\\{subkey}")
            except KeyNotFound:
                continue
            values = extract(row, _FIREWALL_KEY_FIELDS)
            profiles[f"{prefix}_enabled"] = values["enabled"] == 1
            profiles[f"{prefix}_inbound"] = "Block" if values["inbound"] == 1 else "Allow"
            profiles[f"{prefix}_outbound"] = "Block" if values["outbound"] == 1 else "Allow"
        return FirewallInfo(**profiles) if profiles else None

    # --- BitLocker ---

    def _bitlocker_wmi(self) -> bool | None:
        rows = self._query(
            "SELECT ProtectionStatus FROM Win32_EncryptableVolume", VOLUME_ENCRYPTION
        )
        if not rows:
            return None
        statuses = [optional("ProtectionStatus", Target.U32).read(row) for row in rows]
        return any(status == 1 for status in statuses)

    def _bitlocker_shell(self) -> bool | None:
        value = self.sources.powershell_json(_BITLOCKER_SHELL_SCRIPT)
        if not isinstance(value, int) or isinstance(value, bool):
            return None
        return value in BITLOCKER_PROTECTED

    # --- pending updates ---

    def _updates_agent(self) -> list[UpdateItem] | None:
        data = self.sources.powershell_json(_PENDING_UPDATES_SCRIPT)
        if data is None:
            return None
        if isinstance(data, dict):
            data = [data]
        return [_update_item(entry) for entry in data if isinstance(entry, dict)]

    def _updates_registry(self) -> list[UpdateItem]:
        """Updates already downloaded and waiting for a restart."""
        row = self._key_record(REBOOT_REQUIRED_KEY)
        return [UpdateItem(title=name, is_downloaded=True) for name in sorted(row)]


def _antivirus_product(row: Row) -> str:
    name = get_string(row, "displayName")
    state = required("productState", Target.U32).read(row)
    return (
        f"{name} (Enabled: {_flag(bool(state & AV_ENABLED))}, "
        f"Up-to-date: {_flag(bool(state & AV_UP_TO_DATE))})"
    )


def _string_list(value: Any) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        value = [value]
    return [str(item) for item in value]


def _update_item(entry: dict[str, Any]) -> UpdateItem:
    return UpdateItem(
        title=str(entry.get("title") or ""),
        kb_article_ids=_string_list(entry.get("kb")),
        severity=entry.get("severity") or None,
        is_downloaded=bool(entry.get("downloaded")),
        is_mandatory=bool(entry.get("mandatory")),
        categories=_string_list(entry.get("categories")),
    )
