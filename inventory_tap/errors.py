from __future__ import annotations


class InventoryError(Exception):
    """Base class for every error raised by inventory_tap."""


class ProbeError(InventoryError):
    """A probe could not produce its record at all."""


class SourceUnavailable(ProbeError):
    """A backing source (WMI session, registry key, subprocess) could not be opened or queried."""


class KeyNotFound(SourceUnavailable):
    """A registry key does not exist."""


class PrivilegeInsufficient(SourceUnavailable):
    """The source exists but refused access to the current user."""


class ExtractError(InventoryError):
    def __init__(self, key: str, message: str) -> None:
        super().__init__(message)
        self.key = key


class KeyMissing(ExtractError):
    def __init__(self, key: str) -> None:
        super().__init__(key, f"Key '{key}' not found")


class TypeMismatch(ExtractError):
    def __init__(self, key: str, expected: str, actual: str) -> None:
        super().__init__(
            key, f"Value for key '{key}' is {actual}, not {expected}-compatible"
        )
        self.expected = expected
        self.actual = actual


class ParseFailure(InventoryError):
    """A single row or record of free-text output could not be parsed."""
