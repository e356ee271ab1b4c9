"""Point-in-time hardware, software and security inventory for Windows."""

from inventory_tap.collector import InventoryCollector, ProbeOutcome
from inventory_tap.config import AppConfig, load_config
from inventory_tap.models import Snapshot
from inventory_tap.schema import validate_snapshot

__all__ = [
    "AppConfig",
    "InventoryCollector",
    "ProbeOutcome",
    "Snapshot",
    "load_config",
    "validate_snapshot",
]
