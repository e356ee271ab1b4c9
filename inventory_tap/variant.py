from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import re
from typing import Any, Mapping

from inventory_tap.errors import ExtractError, KeyMissing, TypeMismatch


class Kind(Enum):
    STRING = "string"
    BOOL = "bool"
    UI1 = "uint8"
    I1 = "sint8"
    UI2 = "uint16"
    I2 = "sint16"
    UI4 = "uint32"
    I4 = "sint32"
    UI8 = "uint64"
    I8 = "sint64"
    R4 = "real32"
    R8 = "real64"
    ARRAY = "array"
    NULL = "null"


class Target(Enum):
    STRING = "string"
    BOOL = "bool"
    U16 = "u16"
    U32 = "u32"
    U64 = "u64"


# CIM type names as printed by PowerShell's CimType.ToString().
_CIM_KINDS: dict[str, Kind] = {
    "Boolean": Kind.BOOL,
    "UInt8": Kind.UI1,
    "SInt8": Kind.I1,
    "UInt16": Kind.UI2,
    "SInt16": Kind.I2,
    "UInt32": Kind.UI4,
    "SInt32": Kind.I4,
    "UInt64": Kind.UI8,
    "SInt64": Kind.I8,
    "Real32": Kind.R4,
    "Real64": Kind.R8,
    "Char16": Kind.STRING,
    "DateTime": Kind.STRING,
    "String": Kind.STRING,
    "Reference": Kind.STRING,
    "Instance": Kind.STRING,
}

_INTEGER_KINDS = frozenset(
    {Kind.UI1, Kind.I1, Kind.UI2, Kind.I2, Kind.UI4, Kind.I4, Kind.UI8, Kind.I8}
)

_ACCEPTED: dict[Target, frozenset[Kind]] = {
    Target.STRING: frozenset({Kind.STRING}),
    Target.BOOL: frozenset({Kind.BOOL}),
    Target.U16: frozenset({Kind.UI1, Kind.I1, Kind.UI2, Kind.I2}),
    Target.U32: frozenset(
        {Kind.UI1, Kind.I1, Kind.UI2, Kind.I2, Kind.UI4, Kind.I4}
    ),
    Target.U64: _INTEGER_KINDS | {Kind.STRING},
}

_WIDTHS: dict[Target, int] = {Target.U16: 16, Target.U32: 32, Target.U64: 64}

_DEFAULTS: dict[Target, Any] = {
    Target.STRING: "",
    Target.BOOL: False,
    Target.U16: 0,
    Target.U32: 0,
    Target.U64: 0,
}

_DIGITS = re.compile(r"[0-9]+")
_SIGNED_DIGITS = re.compile(r"-?[0-9]+")


@dataclass(frozen=True)
class Variant:
    """A tagged value from a WMI row or a registry key."""

    kind: Kind
    value: Any = None

    @classmethod
    def from_cim(cls, cim_type: str | None, value: Any) -> Variant:
        if value is None:
            return cls(Kind.NULL)
        if not cim_type:
            return cls.infer(value)
        if cim_type.endswith("Array"):
            element_kind = _CIM_KINDS.get(cim_type[: -len("Array")])
            items = value if isinstance(value, list) else [value]
            if element_kind is None:
                return cls(Kind.ARRAY, [cls.infer(item) for item in items])
            return cls(
                Kind.ARRAY, [cls._coerce(element_kind, item) for item in items]
            )
        kind = _CIM_KINDS.get(cim_type)
        if kind is None:
            return cls.infer(value)
        return cls._coerce(kind, value)

    @classmethod
    def infer(cls, value: Any) -> Variant:
        """Tag an untyped JSON or Python value."""
        if value is None:
            return cls(Kind.NULL)
        if isinstance(value, bool):
            return cls(Kind.BOOL, value)
        if isinstance(value, int):
            return cls(Kind.UI8 if value >= 0 else Kind.I8, value)
        if isinstance(value, float):
            return cls(Kind.R8, value)
        if isinstance(value, (list, tuple)):
            return cls(Kind.ARRAY, [cls.infer(item) for item in value])
        return cls(Kind.STRING, str(value))

    @classmethod
    def _coerce(cls, kind: Kind, value: Any) -> Variant:
        if value is None:
            return cls(Kind.NULL)
        if kind is Kind.STRING and not isinstance(value, str):
            value = chr(value) if isinstance(value, int) else str(value)
        elif kind in _INTEGER_KINDS and isinstance(value, str):
            # Some hosts serialize 64-bit integers as JSON strings
            text = value.strip()
            if not _SIGNED_DIGITS.fullmatch(text):
                return cls(Kind.STRING, value)
            value = int(text)
        return cls(kind, value)


Row = Mapping[str, Variant]


def get(row: Row, key: str, target: Target) -> Any:
    """Read ``key`` from ``row`` as ``target``.

    Raises ``KeyMissing`` when the key is absent and ``TypeMismatch`` when the
    tagged value cannot be converted. Integer requests widen safely: a value
    tagged with a narrower (or non-negative signed) kind satisfies a wider
    unsigned request. Only 64-bit requests accept a digit-only string, since
    some providers encode large counters as text.
    """
    variant = row.get(key)
    if variant is None:
        raise KeyMissing(key)
    if variant.kind not in _ACCEPTED[target]:
        raise TypeMismatch(key, target.value, variant.kind.value)
    if target in (Target.STRING, Target.BOOL):
        return variant.value

    value = variant.value
    if variant.kind is Kind.STRING:
        text = value.strip()
        if not _DIGITS.fullmatch(text):
            raise TypeMismatch(key, target.value, "non-numeric string")
        value = int(text)
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeMismatch(key, target.value, type(value).__name__)
    if value < 0 or value >= 1 << _WIDTHS[target]:
        raise TypeMismatch(key, target.value, f"out-of-range {value}")
    return value


def get_string(row: Row, key: str) -> str:
    return get(row, key, Target.STRING)


def get_bool(row: Row, key: str) -> bool:
    return get(row, key, Target.BOOL)


def get_u16(row: Row, key: str) -> int:
    return get(row, key, Target.U16)


def get_u32(row: Row, key: str) -> int:
    return get(row, key, Target.U32)


def get_u64(row: Row, key: str) -> int:
    return get(row, key, Target.U64)


@dataclass(frozen=True)
class Field:
    """Extraction policy for one record field.

    Optional fields resolve any ``ExtractError`` to ``default`` (or the
    target's zero value); required fields let it propagate.
    """

    key: str
    target: Target
    default: Any = None
    required: bool = False

    def read(self, row: Row) -> Any:
        try:
            return get(row, self.key, self.target)
        except ExtractError:
            if self.required:
                raise
            if self.default is None:
                return _DEFAULTS[self.target]
            return self.default


def optional(key: str, target: Target, default: Any = None) -> Field:
    return Field(key, target, default=default)


def required(key: str, target: Target) -> Field:
    return Field(key, target, required=True)


def extract(row: Row, fields: Mapping[str, Field]) -> dict[str, Any]:
    return {name: field.read(row) for name, field in fields.items()}


def string_array(variant: Variant | None) -> list[str]:
    if variant is None or variant.kind is not Kind.ARRAY:
        return []
    return [
        item.value for item in variant.value if item.kind is Kind.STRING
    ]


def decode_char_array(variant: Variant | None) -> str:
    """Decode an array of integer code units, stopping at the first zero.

    EDID-derived WMI descriptors pad with zeros; each element is treated as one
    Unicode code point rather than a byte of some assumed code page.
    """
    if variant is None or variant.kind is not Kind.ARRAY:
        return ""
    chars: list[str] = []
    for item in variant.value:
        if item.kind not in _INTEGER_KINDS:
            continue
        code = item.value
        if code == 0:
            break
        if 0 < code < 0x110000:
            chars.append(chr(code))
    return "".join(chars).strip()
