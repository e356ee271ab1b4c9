from __future__ import annotations

import ctypes
from dataclasses import dataclass
import logging

from inventory_tap.errors import SourceUnavailable

logger = logging.getLogger(__name__)

DISPLAY_DEVICE_ACTIVE = 0x00000001
ENUM_CURRENT_SETTINGS = -1
UNAVAILABLE = "N/A"

DWORD = ctypes.c_uint32
WORD = ctypes.c_uint16
SHORT = ctypes.c_int16


@dataclass(frozen=True)
class DisplayMode:
    width: int
    height: int
    refresh_hz: int

    @property
    def resolution(self) -> str:
        if self.width > 0 and self.height > 0:
            return f"{self.width}x{self.height}"
        return UNAVAILABLE


class POINTL(ctypes.Structure):
    _fields_ = [("x", ctypes.c_int32), ("y", ctypes.c_int32)]


class DISPLAY_DEVICEW(ctypes.Structure):
    _fields_ = [
        ("cb", DWORD),
        ("DeviceName", ctypes.c_wchar * 32),
        ("DeviceString", ctypes.c_wchar * 128),
        ("StateFlags", DWORD),
        ("DeviceID", ctypes.c_wchar * 128),
        ("DeviceKey", ctypes.c_wchar * 128),
    ]


class DEVMODEW(ctypes.Structure):
    # Display variant of the printer/display union.
    _fields_ = [
        ("dmDeviceName", ctypes.c_wchar * 32),
        ("dmSpecVersion", WORD),
        ("dmDriverVersion", WORD),
        ("dmSize", WORD),
        ("dmDriverExtra", WORD),
        ("dmFields", DWORD),
        ("dmPosition", POINTL),
        ("dmDisplayOrientation", DWORD),
        ("dmDisplayFixedOutput", DWORD),
        ("dmColor", SHORT),
        ("dmDuplex", SHORT),
        ("dmYResolution", SHORT),
        ("dmTTOption", SHORT),
        ("dmCollate", SHORT),
        ("dmFormName", ctypes.c_wchar * 32),
        ("dmLogPixels", WORD),
        ("dmBitsPerPel", DWORD),
        ("dmPelsWidth", DWORD),
        ("dmPelsHeight", DWORD),
        ("dmDisplayFlags", DWORD),
        ("dmDisplayFrequency", DWORD),
        ("dmICMMethod", DWORD),
        ("dmICMIntent", DWORD),
        ("dmMediaType", DWORD),
        ("dmDitherType", DWORD),
        ("dmReserved1", DWORD),
        ("dmReserved2", DWORD),
        ("dmPanningWidth", DWORD),
        ("dmPanningHeight", DWORD),
    ]


def enumerate_display_modes() -> list[DisplayMode | None]:
    """Current mode of every active display, in OS enumeration order.

    An entry is ``None`` when the display is active but its current settings
    could not be read, so positions stay aligned with the active displays.
    """
    windll = getattr(ctypes, "windll", None)
    if windll is None:
        raise SourceUnavailable("Display enumeration is available only on Windows")
    user32 = windll.user32

    modes: list[DisplayMode | None] = []
    dev_num = 0
    while True:
        device = DISPLAY_DEVICEW()
        device.cb = ctypes.sizeof(DISPLAY_DEVICEW)
        if not user32.EnumDisplayDevicesW(None, dev_num, ctypes.byref(device), 0):
            break
        dev_num += 1
        if not device.StateFlags & DISPLAY_DEVICE_ACTIVE:
            continue

        devmode = DEVMODEW()
        devmode.dmSize = ctypes.sizeof(DEVMODEW)
        if user32.EnumDisplaySettingsW(
            device.DeviceName, ENUM_CURRENT_SETTINGS, ctypes.byref(devmode)
        ):
            modes.append(
                DisplayMode(
                    width=devmode.dmPelsWidth,
                    height=devmode.dmPelsHeight,
                    refresh_hz=devmode.dmDisplayFrequency,
                )
            )
        else:
            logger.debug("EnumDisplaySettingsW failed for %s", device.DeviceName)
            modes.append(None)
    return modes
