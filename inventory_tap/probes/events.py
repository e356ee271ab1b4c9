from __future__ import annotations

from datetime import datetime, timedelta, timezone

from inventory_tap.errors import InventoryError, ParseFailure
from inventory_tap.models import EventEntry, EventLogInfo, ScheduledTask, ScheduledTaskInfo
from inventory_tap.parsers import HeaderIndex, parse_csv_line, parse_event_block, split_events
from inventory_tap.probes.base import Probe

# Critical, Error and Warning only
_EVENT_QUERY = (
    "*[System[(Level>=1 and Level<=3) and TimeCreated[@SystemTime>='{since}']]]"
)


class EventLogProbe(Probe):
    """Recent critical, error and warning events from the System and Application logs."""

    category = "event_log"

    def fetch(self) -> EventLogInfo:
        limits = self.config.limits
        since = datetime.now(timezone.utc) - timedelta(hours=limits.event_log_hours)
        since_text = since.strftime("%Y-%m-%dT%H:%M:%S")
        return EventLogInfo(
            system_events=self._events("System", since_text),
            application_events=self._events("Application", since_text),
        )

    def _events(self, log: str, since: str) -> list[EventEntry]:
        command = [
            self.config.collector.wevtutil_path,
            "qe",
            log,
            f"/q:{_EVENT_QUERY.format(since=since)}",
            f"/c:{self.config.limits.event_log_count}",
            "/rd:true",
            "/f:xml",
        ]
        try:
            output = self.sources.run(command)
        except InventoryError as exc:
            self.logger.debug("Cannot read %s event log: %s", log, exc)
            return []
        return parse_events(output)


def parse_events(xml: str) -> list[EventEntry]:
    events = []
    for block in split_events(xml):
        try:
            scanned = parse_event_block(block)
        except ParseFailure:
            continue
        events.append(
            EventEntry(
                level=scanned.level,
                source=scanned.source,
                event_id=scanned.event_id,
                time_created=scanned.time_created,
                message=scanned.message,
            )
        )
    return events


class ScheduledTaskProbe(Probe):
    """Non-Microsoft scheduled tasks from ``schtasks /Query /FO CSV /V``."""

    category = "scheduled_task"

    def fetch(self) -> ScheduledTaskInfo:
        output = self.sources.run(
            [self.config.collector.schtasks_path, "/Query", "/FO", "CSV", "/V"]
        )
        return ScheduledTaskInfo(tasks=parse_scheduled_tasks(output))


def parse_scheduled_tasks(output: str) -> list[ScheduledTask]:
    lines = [line for line in output.splitlines() if line.strip()]
    if not lines:
        return []

    index = HeaderIndex(parse_csv_line(lines[0]))
    name_idx = index.position("TaskName")
    if name_idx is None:
        name_idx = 0

    tasks = []
    for line in lines[1:]:
        cols = parse_csv_line(line)
        # schtasks repeats the header before each task folder
        if index.is_header(cols) or len(cols) <= name_idx:
            continue
        path = cols[name_idx]
        if path.startswith("\\Microsoft\\"):
            continue
        tasks.append(
            ScheduledTask(
                name=path.rsplit("\\", 1)[-1],
                path=path,
                state=index.value(cols, "Status"),
                last_run=index.value(cols, "Last Run Time"),
                next_run=index.value(cols, "Next Run Time"),
                result=index.value(cols, "Last Result"),
                author=index.value(cols, "Author"),
            )
        )
    return tasks
