from __future__ import annotations

import importlib
import logging
from types import ModuleType
from typing import Any, Iterator

from inventory_tap.errors import KeyNotFound, PrivilegeInsufficient, SourceUnavailable
from inventory_tap.variant import Kind, Variant

HKLM = "HKEY_LOCAL_MACHINE"
HKCU = "HKEY_CURRENT_USER"

# winreg value type codes
REG_NONE = 0
REG_SZ = 1
REG_EXPAND_SZ = 2
REG_BINARY = 3
REG_DWORD = 4
REG_DWORD_BIG_ENDIAN = 5
REG_MULTI_SZ = 7
REG_QWORD = 11

logger = logging.getLogger(__name__)


def to_variant(value: Any, reg_type: int) -> Variant:
    """Tag a raw winreg value with the kind implied by its registry type."""
    if value is None or reg_type == REG_NONE:
        return Variant(Kind.NULL)
    if reg_type in (REG_SZ, REG_EXPAND_SZ):
        return Variant(Kind.STRING, str(value))
    if reg_type in (REG_DWORD, REG_DWORD_BIG_ENDIAN):
        return Variant(Kind.UI4, int(value))
    if reg_type == REG_QWORD:
        return Variant(Kind.UI8, int(value))
    if reg_type == REG_MULTI_SZ:
        return Variant(Kind.ARRAY, [Variant(Kind.STRING, str(item)) for item in value])
    if reg_type == REG_BINARY:
        return Variant(Kind.ARRAY, [Variant(Kind.UI1, byte) for byte in bytes(value)])
    return Variant.infer(value)


def _load_winreg() -> ModuleType:
    try:
        return importlib.import_module("winreg")
    except ImportError as exc:
        raise SourceUnavailable("winreg is available only on Windows") from exc


class RegistryKey:
    """An open registry key; usable as a context manager."""

    def __init__(self, winreg: ModuleType, handle: Any, path: str) -> None:
        self._winreg = winreg
        self._handle = handle
        self.path = path

    def __enter__(self) -> RegistryKey:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        if self._handle is not None:
            self._handle.Close()
            self._handle = None

    def subkey(self, name: str) -> RegistryKey:
        return _open(self._winreg, self._handle, name, f"{self.path}\\{name}")

    def subkey_names(self) -> Iterator[str]:
        index = 0
        while True:
            try:
                yield self._winreg.EnumKey(self._handle, index)
            except OSError:
                return
            index += 1

    def record(self) -> dict[str, Variant]:
        """All values of this key as a row of tagged values."""
        row: dict[str, Variant] = {}
        index = 0
        while True:
            try:
                name, value, reg_type = self._winreg.EnumValue(self._handle, index)
            except OSError:
                break
            row[name] = to_variant(value, reg_type)
            index += 1
        return row


def _open(winreg: ModuleType, parent: Any, path: str, display: str) -> RegistryKey:
    try:
        handle = winreg.OpenKey(parent, path, 0, winreg.KEY_READ)
    except FileNotFoundError as exc:
        raise KeyNotFound(f"Registry key not found: {display}") from exc
    except PermissionError as exc:
        raise PrivilegeInsufficient(f"Access denied: {display}") from exc
    except OSError as exc:
        raise SourceUnavailable(f"Cannot open registry key {display}: {exc}") from exc
    return RegistryKey(winreg, handle, display)


class Registry:
    def open(self, hive: str, path: str) -> RegistryKey:
        winreg = _load_winreg()
        root = getattr(winreg, hive)
        logger.debug("Opening registry key %s\\%s", hive, path)
        return _open(winreg, root, path, f"{hive}\\{path}")

    def exists(self, hive: str, path: str) -> bool:
        try:
            with self.open(hive, path):
                return True
        except KeyNotFound:
            return False
