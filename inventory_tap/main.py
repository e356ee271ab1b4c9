from __future__ import annotations

import argparse
from dataclasses import asdict, is_dataclass
import json
import logging
import time

from inventory_tap.collector import (
    STATUS_DISABLED,
    STATUS_ERROR,
    STATUS_FAULT,
    STATUS_TIMEOUT,
    InventoryCollector,
    ProbeOutcome,
    snapshot_from_outcomes,
)
from inventory_tap.config import load_config
from inventory_tap.logging_utils import configure_logging, resolve_log_level
from inventory_tap.schema import validate_snapshot

CATEGORY_LABELS = {
    "computer": "Computer",
    "cpu": "CPU",
    "gpu": "GPU",
    "memory": "Memory",
    "disk": "Disk",
    "network": "Network",
    "monitor": "Monitor",
    "audio": "Audio",
    "usb": "USB",
    "power": "Power",
    "security": "Security",
    "process": "Process (Top {process_limit})",
    "service": "Services",
    "startup": "Startup",
    "software": "Software",
    "hotfix": "Hotfixes",
    "users_groups": "Users & Groups",
    "environment": "Environment",
    "event_log": "Event Log",
    "scheduled_task": "Scheduled Tasks",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Windows hardware, software and security inventory")
    parser.add_argument(
        "--config",
        default=None,
        help="Path to CFG configuration file (built-in defaults when omitted)",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Enable debug logging (-v) or trace logging (-vv)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the whole snapshot as one JSON document",
    )
    parser.add_argument(
        "--dump-json",
        help="Write the JSON snapshot to a file",
    )
    return parser


def format_outcome(outcome: ProbeOutcome) -> str:
    """Console rendering of one category: pretty JSON, or a quoted failure label."""
    if outcome.status == STATUS_ERROR:
        return json.dumps(f"Error: {outcome.error}")
    if outcome.status == STATUS_FAULT:
        return json.dumps(f"Task panicked: {outcome.error}")
    if outcome.status == STATUS_TIMEOUT:
        return json.dumps("Timed out")
    if outcome.status == STATUS_DISABLED:
        return json.dumps("Disabled")
    record = asdict(outcome.record) if is_dataclass(outcome.record) else outcome.record
    return json.dumps(record, indent=2)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    level = resolve_log_level(args.verbose, args.log_level)
    configure_logging(level)
    logger = logging.getLogger("inventory_tap")
    config = load_config(args.config)

    started = time.perf_counter()
    collector = InventoryCollector(config)
    outcomes = collector.collect_outcomes()
    snapshot = snapshot_from_outcomes(outcomes)
    data = snapshot.to_dict()

    schema_errors = validate_snapshot(data)
    if schema_errors:
        logger.warning("Schema validation failed with %s errors.", len(schema_errors))
        logger.debug("Schema errors: %s", schema_errors)
    else:
        logger.info("Schema validation passed.")

    if args.dump_json:
        with open(args.dump_json, "w", encoding="utf-8") as handle:
            json.dump(data, handle, indent=2)
        logger.info("Snapshot written to %s", args.dump_json)

    if args.json:
        print(json.dumps(data, indent=2))
        return 0

    for category, outcome in outcomes.items():
        label = CATEGORY_LABELS.get(category, category).format(
            process_limit=config.limits.process_limit
        )
        print(f"{label}: {format_outcome(outcome)}")
    print(f"Finished after {time.perf_counter() - started:.2f}s")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
