from __future__ import annotations

import json
import logging
import subprocess
from typing import Any

from inventory_tap.errors import PrivilegeInsufficient, SourceUnavailable
from inventory_tap.logging_utils import TRACE_LEVEL

logger = logging.getLogger(__name__)

# Markers printed by Windows tools and WMI when the caller lacks rights.
_ACCESS_DENIED_MARKERS = (
    "access denied",
    "access is denied",
    "0x80041003",
    "0x80070005",
    "requires elevation",
    "administrator privilege",
)


def _is_access_denied(stderr: str) -> bool:
    lowered = stderr.lower()
    return any(marker in lowered for marker in _ACCESS_DENIED_MARKERS)


def run_command(command: list[str]) -> str:
    """Run ``command`` and return its stdout.

    A command that cannot be started, or that fails without printing anything
    to stdout, raises ``SourceUnavailable`` (``PrivilegeInsufficient`` when its
    stderr reports an access-denied condition).
    """
    try:
        result = subprocess.run(
            command,
            check=False,
            text=True,
            errors="replace",
            capture_output=True,
        )
    except FileNotFoundError as exc:
        logger.debug("Command not found: %s", command[0])
        raise SourceUnavailable(f"Command not found: {command[0]}") from exc
    except OSError as exc:
        logger.debug("Command could not be started: %s (%s)", command[0], exc)
        raise SourceUnavailable(f"Command could not be started: {command[0]}") from exc

    stdout = result.stdout or ""
    stderr = result.stderr or ""
    if result.returncode != 0:
        logger.debug(
            "Command failed (%s): %s", result.returncode, " ".join(command)
        )
        if stderr:
            logger.log(TRACE_LEVEL, "stderr: %s", stderr.strip())
        if not stdout.strip():
            if _is_access_denied(stderr):
                raise PrivilegeInsufficient(f"{command[0]}: access denied")
            raise SourceUnavailable(
                f"{command[0]} exited with status {result.returncode}"
            )
    if stdout:
        logger.log(TRACE_LEVEL, "stdout: %s", stdout.strip())
    return stdout


class PowerShell:
    def __init__(self, executable: str = "powershell") -> None:
        self.executable = executable

    def run(self, script: str) -> str:
        return run_command(
            [self.executable, "-NoProfile", "-NonInteractive", "-Command", script]
        )

    def run_json(self, script: str) -> Any:
        """Run ``script`` and decode its stdout as JSON (``None`` when empty)."""
        output = self.run(script)
        if not output.strip():
            return None
        try:
            return json.loads(output)
        except json.JSONDecodeError as exc:
            logger.debug("Failed to parse PowerShell JSON output.")
            raise SourceUnavailable("PowerShell returned malformed JSON") from exc
