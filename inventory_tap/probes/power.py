from __future__ import annotations

from inventory_tap.errors import InventoryError
from inventory_tap.models import BatteryInfo, PowerInfo
from inventory_tap.parsers import parse_power_scheme
from inventory_tap.probes.base import Probe
from inventory_tap.variant import Row, Target, extract, optional, required

BATTERY_CHEMISTRY = {
    1: "Other",
    2: "Unknown",
    3: "Lead Acid",
    4: "Nickel Cadmium",
    5: "Nickel Metal Hydride",
    6: "Lithium-ion",
}

_BATTERY_FIELDS = {
    "name": required("Name", Target.STRING),
    "status": required("Status", Target.STRING),
    "charge": required("EstimatedChargeRemaining", Target.U16),
    "run_time": required("EstimatedRunTime", Target.U32),
    "design_capacity": optional("DesignCapacity", Target.U32, default="Unknown"),
    "full_charge_capacity": optional("FullChargeCapacity", Target.U32, default="Unknown"),
    "chemistry": optional("Chemistry", Target.U16, default=1),
}


class PowerProbe(Probe):
    category = "power"

    def fetch(self) -> PowerInfo:
        output = self.sources.run([self.config.collector.powercfg_path, "/getactivescheme"])
        return PowerInfo(plan=parse_power_scheme(output), battery=self._battery())

    def _battery(self) -> BatteryInfo | None:
        """First ``Win32_Battery`` row; desktops have none."""
        try:
            rows = self._query("SELECT * FROM Win32_Battery")
            if not rows:
                return None
            return _battery_info(rows[0])
        except InventoryError as exc:
            self.logger.debug("No battery information: %s", exc)
            return None


def _battery_info(row: Row) -> BatteryInfo:
    values = extract(row, _BATTERY_FIELDS)
    return BatteryInfo(
        name=values["name"],
        status=values["status"],
        charge_pct=str(values["charge"]),
        run_time_mins=str(values["run_time"]),
        design_capacity=str(values["design_capacity"]),
        full_charge_capacity=str(values["full_charge_capacity"]),
        chemistry=BATTERY_CHEMISTRY.get(values["chemistry"], "Other"),
    )
