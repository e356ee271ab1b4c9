from __future__ import annotations

import re

from inventory_tap.errors import InventoryError
from inventory_tap.models import LocalGroup, LocalUser, UsersGroupsInfo
from inventory_tap.probes.base import Probe
from inventory_tap.variant import Target, extract, optional, required

# Key property of a rendered CIM reference, e.g.
# Win32_Group (Domain = "HOST", Name = "Administrators")
_NAME_KEY = re.compile(r'\bName\s*=\s*"([^"]*)"')

_USER_FIELDS = {
    "name": required("Name", Target.STRING),
    "disabled": optional("Disabled", Target.BOOL),
    "description": optional("Description", Target.STRING),
}

_GROUP_FIELDS = {
    "name": required("Name", Target.STRING),
    "description": optional("Description", Target.STRING),
}

_MEMBERSHIP_FIELDS = {
    "group": required("GroupComponent", Target.STRING),
    "member": required("PartComponent", Target.STRING),
}


def reference_name(reference: str) -> str:
    matches = _NAME_KEY.findall(reference)
    return matches[-1] if matches else ""


class UsersGroupsProbe(Probe):
    category = "users_groups"

    def fetch(self) -> UsersGroupsInfo:
        users = self._rows(
            self._query("SELECT * FROM Win32_UserAccount WHERE LocalAccount=True"),
            lambda row: LocalUser(**extract(row, _USER_FIELDS)),
        )
        group_rows = self._query(
            "SELECT Name, Description FROM Win32_Group WHERE LocalAccount=True"
        )
        members = self._group_members()
        groups = self._rows(
            group_rows,
            lambda row: self._group(extract(row, _GROUP_FIELDS), members),
        )
        return UsersGroupsInfo(users=users, groups=groups)

    def _group(self, values: dict, members: dict[str, list[str]]) -> LocalGroup:
        return LocalGroup(
            name=values["name"],
            description=values["description"],
            members=members.get(values["name"], []),
        )

    def _group_members(self) -> dict[str, list[str]]:
        try:
            rows = self._query("SELECT GroupComponent, PartComponent FROM Win32_GroupUser")
        except InventoryError as exc:
            self.logger.debug("Group membership unavailable: %s", exc)
            return {}
        members: dict[str, list[str]] = {}
        for values in self._rows(rows, lambda row: extract(row, _MEMBERSHIP_FIELDS)):
            group = reference_name(values["group"])
            member = reference_name(values["member"])
            if group and member:
                members.setdefault(group, []).append(member)
        return members
