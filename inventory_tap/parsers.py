from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
import re

from inventory_tap.errors import ParseFailure

# --- quoted CSV (schtasks /FO CSV) -------------------------------------------


def parse_csv_line(line: str) -> list[str]:
    """Split one line of quoted CSV.

    Fields are comma separated and may be wrapped in double quotes; inside
    quotes ``""`` is a literal quote and commas do not end the field.
    """
    fields: list[str] = []
    current: list[str] = []
    in_quotes = False
    i = 0
    while i < len(line):
        ch = line[i]
        if ch == '"':
            if not in_quotes:
                in_quotes = True
            elif i + 1 < len(line) and line[i + 1] == '"':
                current.append('"')
                i += 1
            else:
                in_quotes = False
        elif ch == "," and not in_quotes:
            fields.append("".join(current))
            current = []
        else:
            current.append(ch)
        i += 1
    fields.append("".join(current))
    return fields


class HeaderIndex:
    """Column positions resolved once from a header row.

    Names match by substring, so decorated headers such as ``"TaskName "`` or
    localized prefixes still resolve.
    """

    def __init__(self, headers: list[str]) -> None:
        self.headers = headers
        self._cache: dict[str, int | None] = {}

    def position(self, name: str) -> int | None:
        if name not in self._cache:
            self._cache[name] = next(
                (idx for idx, header in enumerate(self.headers) if name in header),
                None,
            )
        return self._cache[name]

    def value(self, cols: list[str], name: str) -> str:
        idx = self.position(name)
        if idx is None or idx >= len(cols):
            return ""
        return cols[idx]

    def is_header(self, cols: list[str]) -> bool:
        return cols == self.headers


# --- wevtutil XML --------------------------------------------------------------

EVENT_LEVELS = {"1": "Critical", "2": "Error", "3": "Warning"}


@dataclass(frozen=True)
class ScannedEvent:
    level: str
    source: str
    event_id: str
    time_created: str
    message: str


def split_events(xml: str) -> list[str]:
    return [block for block in xml.split("<Event xmlns=") if block.strip()]


def _open_tag(tag: str) -> re.Pattern[str]:
    return re.compile(rf"<{re.escape(tag)}(?=[\s/>])")


def element_text(block: str, tag: str) -> str | None:
    """Inner text of the first ``<tag>`` element, trimmed; ``None`` when empty."""
    match = _open_tag(tag).search(block)
    if match is None:
        return None
    tag_end = block.find(">", match.end())
    if tag_end == -1 or block[tag_end - 1] == "/":
        return None
    close = block.find(f"</{tag}>", tag_end + 1)
    if close == -1:
        return None
    value = block[tag_end + 1 : close].strip()
    return value or None


def element_attr(block: str, tag: str, attr: str) -> str | None:
    """Value of ``attr`` on the first ``<tag>`` element (single or double quoted)."""
    match = _open_tag(tag).search(block)
    if match is None:
        return None
    tag_end = block.find(">", match.end())
    if tag_end == -1:
        return None
    attr_match = re.search(
        rf"(?<![\w:-]){re.escape(attr)}\s*=\s*(['\"])(.*?)\1",
        block[match.end() : tag_end],
    )
    if attr_match is None:
        return None
    return attr_match.group(2)


def parse_event_block(block: str) -> ScannedEvent:
    level = element_text(block, "Level")
    if not level:
        raise ParseFailure("Event block has no level")
    return ScannedEvent(
        level=EVENT_LEVELS.get(level, level),
        source=element_attr(block, "Provider", "Name") or "",
        event_id=element_text(block, "EventID") or "",
        time_created=element_attr(block, "TimeCreated", "SystemTime") or "",
        message=element_text(block, "Data") or "",
    )


# --- powercfg ------------------------------------------------------------------

_SCHEME_LINE = re.compile(
    r"[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}"
    r".*\((?P<name>[^()]*)\)"
)


def parse_power_scheme(output: str) -> str:
    """Name of the active scheme from ``powercfg /getactivescheme`` output."""
    for line in output.splitlines():
        match = _SCHEME_LINE.search(line)
        if match and match.group("name").strip():
            return match.group("name").strip()
    return "Unknown"


# --- DMTF datetimes (WMI) ------------------------------------------------------

_DMTF = re.compile(
    r"(?P<stamp>\d{14})(?:\.(?P<micro>\d{1,6}))?(?P<sign>[+-])?(?P<offset>\d{1,3})?"
)


def parse_dmtf_datetime(text: str) -> datetime | None:
    """Parse ``yyyymmddHHMMSS.ffffff+UUU`` (offset in minutes) into an aware datetime."""
    match = _DMTF.match(text.strip()) if text else None
    if match is None:
        return None
    try:
        stamp = datetime.strptime(match.group("stamp"), "%Y%m%d%H%M%S")
    except ValueError:
        return None
    micro = match.group("micro")
    if micro:
        stamp = stamp.replace(microsecond=int(micro.ljust(6, "0")))
    offset = int(match.group("offset") or 0)
    if match.group("sign") == "-":
        offset = -offset
    return stamp.replace(tzinfo=timezone(timedelta(minutes=offset)))


def dmtf_date(text: str) -> str:
    """``YYYY-MM-DD`` from the first eight digits of a DMTF or ``yyyymmdd`` value."""
    if not text or len(text) < 8 or not text[:8].isdigit():
        return text or ""
    try:
        return date(int(text[:4]), int(text[4:6]), int(text[6:8])).isoformat()
    except ValueError:
        return text
