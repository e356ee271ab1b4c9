"""Tests for tagged values and typed field extraction."""
from __future__ import annotations

import pytest

from inventory_tap.errors import ExtractError, KeyMissing, TypeMismatch
from inventory_tap.variant import (
    Field,
    Kind,
    Target,
    Variant,
    decode_char_array,
    extract,
    get,
    get_bool,
    get_string,
    get_u16,
    get_u32,
    get_u64,
    optional,
    required,
    string_array,
)


class TestVariantFromCim:
    def test_scalar_types(self):
        assert Variant.from_cim("UInt16", 3) == Variant(Kind.UI2, 3)
        assert Variant.from_cim("Boolean", True) == Variant(Kind.BOOL, True)
        assert Variant.from_cim("String", "x") == Variant(Kind.STRING, "x")

    def test_null_value(self):
        assert Variant.from_cim("UInt32", None).kind is Kind.NULL

    def test_datetime_and_reference_are_strings(self):
        assert Variant.from_cim("DateTime", "20240101000000.000000+000").kind is Kind.STRING
        assert Variant.from_cim("Reference", 'Win32_Group (Name = "x")').kind is Kind.STRING

    def test_array_types(self):
        variant = Variant.from_cim("UInt16Array", [77, 0])
        assert variant.kind is Kind.ARRAY
        assert variant.value == [Variant(Kind.UI2, 77), Variant(Kind.UI2, 0)]

    def test_single_element_array_is_wrapped(self):
        variant = Variant.from_cim("StringArray", "10.0.0.1")
        assert string_array(variant) == ["10.0.0.1"]

    def test_unknown_type_is_inferred(self):
        assert Variant.from_cim("Mystery", 5) == Variant(Kind.UI8, 5)
        assert Variant.from_cim(None, -5) == Variant(Kind.I8, -5)


class TestGet:
    def test_u64_accepts_digit_string(self):
        row = {"Size": Variant(Kind.STRING, "12345")}
        assert get_u64(row, "Size") == 12345

    def test_u64_rejects_bool(self):
        row = {"Size": Variant(Kind.BOOL, True)}
        with pytest.raises(TypeMismatch):
            get_u64(row, "Size")

    def test_missing_key(self):
        with pytest.raises(KeyMissing) as excinfo:
            get_u64({}, "Size")
        assert excinfo.value.key == "Size"
        assert "Size" in str(excinfo.value)

    def test_u32_rejects_digit_string(self):
        row = {"Speed": Variant(Kind.STRING, "3200")}
        with pytest.raises(TypeMismatch):
            get_u32(row, "Speed")

    def test_u64_rejects_non_numeric_string(self):
        row = {"Size": Variant(Kind.STRING, "12a")}
        with pytest.raises(TypeMismatch):
            get_u64(row, "Size")

    def test_u64_rejects_string_beyond_64_bits(self):
        row = {"Size": Variant(Kind.STRING, str(1 << 64))}
        with pytest.raises(TypeMismatch):
            get_u64(row, "Size")

    def test_narrow_kinds_widen(self):
        row = {"a": Variant(Kind.UI1, 7), "b": Variant(Kind.UI2, 300)}
        assert get_u32(row, "a") == 7
        assert get_u64(row, "b") == 300

    def test_wide_kind_does_not_narrow(self):
        row = {"a": Variant(Kind.UI4, 7)}
        with pytest.raises(TypeMismatch):
            get_u16(row, "a")

    def test_signed_values_must_be_non_negative(self):
        assert get_u32({"a": Variant(Kind.I4, 12)}, "a") == 12
        with pytest.raises(TypeMismatch):
            get_u32({"a": Variant(Kind.I4, -1)}, "a")

    def test_signed_value_must_fit_target(self):
        with pytest.raises(TypeMismatch):
            get_u16({"a": Variant(Kind.I2, 70000)}, "a")

    def test_null_is_type_mismatch(self):
        with pytest.raises(TypeMismatch):
            get_string({"a": Variant(Kind.NULL)}, "a")

    def test_string_and_bool(self):
        row = {"s": Variant(Kind.STRING, "x"), "b": Variant(Kind.BOOL, False)}
        assert get_string(row, "s") == "x"
        assert get_bool(row, "b") is False
        with pytest.raises(TypeMismatch):
            get_bool(row, "s")

    def test_only_extract_errors_are_raised(self):
        row = {"r": Variant(Kind.R8, 1.5), "arr": Variant(Kind.ARRAY, [])}
        for key in ("r", "arr", "missing"):
            for target in Target:
                try:
                    get(row, key, target)
                except ExtractError:
                    pass


class TestFieldPolicy:
    def test_optional_uses_target_default(self):
        assert optional("Name", Target.STRING).read({}) == ""
        assert optional("Flag", Target.BOOL).read({}) is False
        assert optional("Count", Target.U32).read({}) == 0

    def test_optional_uses_declared_default(self):
        assert optional("Arch", Target.U16, default=9).read({}) == 9

    def test_optional_default_on_type_mismatch(self):
        row = {"Count": Variant(Kind.STRING, "n/a")}
        assert optional("Count", Target.U32, default=4).read(row) == 4

    def test_required_propagates(self):
        with pytest.raises(KeyMissing):
            required("Name", Target.STRING).read({})

    def test_extract(self):
        row = {"Name": Variant(Kind.STRING, "disk0")}
        fields = {
            "name": required("Name", Target.STRING),
            "size": optional("Size", Target.U64),
        }
        assert extract(row, fields) == {"name": "disk0", "size": 0}

    def test_field_is_declarative(self):
        field = Field("Name", Target.STRING, required=True)
        assert field.required
        assert field.default is None


class TestArrays:
    def test_string_array_skips_non_strings(self):
        variant = Variant(Kind.ARRAY, [Variant(Kind.STRING, "a"), Variant(Kind.UI1, 1)])
        assert string_array(variant) == ["a"]

    def test_string_array_of_non_array(self):
        assert string_array(Variant(Kind.STRING, "a")) == []
        assert string_array(None) == []

    def test_decode_char_array_stops_at_zero(self):
        variant = Variant.from_cim("UInt16Array", [68, 69, 76, 0, 88, 89])
        assert decode_char_array(variant) == "DEL"

    def test_decode_char_array_keeps_non_ascii_code_points(self):
        variant = Variant.from_cim("UInt16Array", [0x00C9, 0x4E2D, 0])
        assert decode_char_array(variant) == "É中"

    def test_decode_char_array_trims(self):
        variant = Variant.from_cim("UInt16Array", [32, 65, 32, 32])
        assert decode_char_array(variant) == "A"

    def test_decode_char_array_missing(self):
        assert decode_char_array(None) == ""
