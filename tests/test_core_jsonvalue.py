"""Tests for redeye.core.jsonvalue: tagged JSON values."""

from __future__ import annotations

import math

import pytest

from redeye.core.jsonvalue import TypedValue, TypedValueError, ValueKind, encode_mapping
from redeye.core.types import MonitorSpecificConfig


class TestDecodePreference:
    @pytest.mark.parametrize(
        "raw, kind",
        [
            ("1", ValueKind.STRING),
            (1, ValueKind.INTEGER),
            (1.5, ValueKind.FLOAT),
            (True, ValueKind.BOOLEAN),
            (False, ValueKind.BOOLEAN),
            ([], ValueKind.ARRAY),
            ({}, ValueKind.MAPPING),
            (None, ValueKind.NULL),
        ],
    )
    def test_first_matching_variant_wins(self, raw, kind) -> None:
        assert TypedValue.decode(raw).kind is kind

    def test_bool_is_never_an_integer(self) -> None:
        tv = TypedValue.decode(True)
        assert tv.kind is ValueKind.BOOLEAN
        assert tv.as_int() is None
        assert tv.as_bool() is True

    def test_whole_float_stays_float(self) -> None:
        assert TypedValue.decode(1.0).kind is ValueKind.FLOAT
        assert TypedValue.from_json("1.0").kind is ValueKind.FLOAT
        assert TypedValue.from_json("1").kind is ValueKind.INTEGER

    def test_nested_values_are_tagged(self) -> None:
        tv = TypedValue.decode({"paths": ["~/Documents", 3, None]})
        assert tv.kind is ValueKind.MAPPING
        items = tv.as_dict()["paths"].as_list()
        assert [item.kind for item in items] == [
            ValueKind.STRING, ValueKind.INTEGER, ValueKind.NULL,
        ]

    def test_tuple_decodes_as_array(self) -> None:
        tv = TypedValue.decode(("a", "b"))
        assert tv.kind is ValueKind.ARRAY
        assert tv.encode() == ["a", "b"]

    def test_already_typed_value_passes_through(self) -> None:
        tv = TypedValue.decode("x")
        assert TypedValue.decode(tv) is tv


class TestRoundTrip:
    def test_encode_returns_original_json(self) -> None:
        raw = {"enableBrowserURLCapture": False, "debounce": 0.25, "paths": ["/tmp", "~/x"], "n": None}
        assert TypedValue.decode(raw).encode() == raw

    def test_json_text_round_trip(self) -> None:
        tv = TypedValue.decode({"b": [1, 2.5, "three"], "a": {"nested": True}})
        assert TypedValue.from_json(tv.to_json()) == tv

    def test_to_json_sorts_keys(self) -> None:
        assert TypedValue.decode({"b": 1, "a": 2}).to_json() == '{"a": 2, "b": 1}'


class TestDecodeErrors:
    @pytest.mark.parametrize("raw", [object(), {1, 2}, b"bytes", math.nan, math.inf])
    def test_unsupported_values_raise(self, raw) -> None:
        with pytest.raises(TypedValueError):
            TypedValue.decode(raw)

    def test_non_string_mapping_key_raises(self) -> None:
        with pytest.raises(TypedValueError, match="keys must be strings"):
            TypedValue.decode({1: "x"})

    def test_error_is_deterministic(self) -> None:
        messages = []
        for _ in range(2):
            with pytest.raises(TypedValueError) as info:
                TypedValue.decode([1, object()])
            messages.append(str(info.value))
        assert messages[0] == messages[1]

    def test_invalid_json_text(self) -> None:
        with pytest.raises(TypedValueError, match="Invalid JSON"):
            TypedValue.from_json("{not json")

    def test_typed_value_error_is_value_error(self) -> None:
        assert issubclass(TypedValueError, ValueError)


class TestAccessors:
    def test_as_float_widens_integers(self) -> None:
        assert TypedValue.decode(2).as_float() == 2.0

    def test_mismatched_accessor_returns_none(self) -> None:
        tv = TypedValue.decode(7)
        assert tv.as_str() is None
        assert tv.as_list() is None
        assert tv.as_dict() is None

    def test_null_helper(self) -> None:
        assert TypedValue.null() == TypedValue.decode(None)


class TestMappings:
    def test_decode_mapping_none(self) -> None:
        assert TypedValue.decode_mapping(None) is None

    def test_decode_mapping_rejects_non_mapping(self) -> None:
        with pytest.raises(TypedValueError, match="Expected a mapping"):
            TypedValue.decode_mapping(["not", "a", "mapping"])  # type: ignore[arg-type]

    def test_encode_mapping(self) -> None:
        decoded = TypedValue.decode_mapping({"a": [1], "b": "x"})
        assert encode_mapping(decoded) == {"a": [1], "b": "x"}
        assert encode_mapping(None) is None


class TestPydanticIntegration:
    def test_model_field_decodes_and_dumps_plain_json(self) -> None:
        cfg = MonitorSpecificConfig(is_enabled=True, parameters={"paths": ["~/Documents"]})
        assert cfg.parameters["paths"].kind is ValueKind.ARRAY
        assert cfg.model_dump(mode="json", by_alias=True) == {
            "isEnabled": True,
            "parameters": {"paths": ["~/Documents"]},
        }
