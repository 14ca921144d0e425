"""Tests for structured_output/hydrator.py — coercion, argument assembly, nested items."""

from __future__ import annotations

import math

import pytest

from structured_output.errors import ConstructionError, HydrationError
from structured_output.hydrator import (
    MISSING,
    ConstructorParameter,
    assemble_arguments,
    coerce_boolean,
    coerce_number,
    coerce_string,
    constructor_parameters,
    hydrate,
    parameters_from_declaration,
    parse_recipe,
    shallow_copy,
)


def _no_types(name):
    return None


class Record:
    def __init__(self, **fields):
        self.__dict__.update(fields)


def _kw(schema):
    """Keyword-only parameters with defaults for every schema property."""
    return [
        ConstructorParameter(name, has_default=True, keyword_only=True)
        for name in schema["properties"]
    ]


# ---------------------------------------------------------------------------
# Scalar coercion
# ---------------------------------------------------------------------------


class TestCoerceNumber:
    @pytest.mark.parametrize("raw,expected", [
        (3, 3), (2.5, 2.5), ("21.5", 21.5), ("3", 3), (" 7 ", 7), ("-1e3", -1000.0),
    ])
    def test_accepted(self, raw, expected):
        assert coerce_number(raw) == expected

    def test_integer_string_stays_int(self):
        assert isinstance(coerce_number("3"), int)

    @pytest.mark.parametrize("raw", [True, False, "", "abc", None, [1], {"a": 1}, "nan", "inf", math.inf])
    def test_rejected(self, raw):
        assert coerce_number(raw) is MISSING

    def test_integer_mode(self):
        assert coerce_number("4.0", integer=True) == 4
        assert isinstance(coerce_number(4.0, integer=True), int)
        assert coerce_number("4.5", integer=True) is MISSING


class TestCoerceBoolean:
    @pytest.mark.parametrize("raw,expected", [
        (True, True), (False, False),
        ("true", True), ("TRUE", True), ("1", True),
        ("false", False), ("False", False), ("0", False),
        (1, True), (0, False),
    ])
    def test_accepted(self, raw, expected):
        assert coerce_boolean(raw) is expected

    @pytest.mark.parametrize("raw", ["yes", "", 2, None, [True]])
    def test_rejected(self, raw):
        assert coerce_boolean(raw) is MISSING


class TestCoerceString:
    def test_string_passes(self):
        assert coerce_string("x") == "x"

    def test_non_string_missing(self):
        assert coerce_string(5) is MISSING


class TestParseRecipe:
    def test_text(self):
        assert parse_recipe('{"a": 1}') == {"a": 1}

    def test_bytes(self):
        assert parse_recipe(b'[1, 2]') == [1, 2]

    def test_bad_json(self, caplog):
        assert parse_recipe("not-json") is MISSING
        assert "invalid JSON" in caplog.text

    def test_deeply_nested_json(self):
        assert parse_recipe("[" * 100_000 + "]" * 100_000) is MISSING

    def test_parsed_value_untouched(self):
        value = {"a": 1}
        assert parse_recipe(value) is value


# ---------------------------------------------------------------------------
# Constructor metadata
# ---------------------------------------------------------------------------


class TestConstructorParameters:
    def test_reads_signature(self):
        class Sample:
            def __init__(self, a, b=1, *args, c, d=2, **kwargs):
                pass

        assert constructor_parameters(Sample) == [
            ConstructorParameter("a"),
            ConstructorParameter("b", has_default=True),
            ConstructorParameter("c", keyword_only=True),
            ConstructorParameter("d", has_default=True, keyword_only=True),
        ]

    def test_varargs_only_is_none(self):
        assert constructor_parameters(lambda *args, **kwargs: None) is None

    def test_declaration(self):
        params = parameters_from_declaration(["a", {"name": "b", "optional": True}])
        assert params == [ConstructorParameter("a"), ConstructorParameter("b", has_default=True)]

    def test_bad_declaration(self):
        with pytest.raises(TypeError):
            parameters_from_declaration([42])


class TestAssembleArguments:
    def test_all_present_positional(self):
        params = [ConstructorParameter("a"), ConstructorParameter("b")]
        assert assemble_arguments(params, {"a": 1, "b": 2}) == ([1, 2], {})

    def test_missing_without_default_is_none(self):
        params = [ConstructorParameter("a"), ConstructorParameter("b")]
        assert assemble_arguments(params, {"a": 1, "b": MISSING}) == ([1, None], {})

    def test_gap_switches_to_keywords(self):
        params = [
            ConstructorParameter("a"),
            ConstructorParameter("b", has_default=True),
            ConstructorParameter("c", has_default=True),
        ]
        assert assemble_arguments(params, {"a": 1, "b": MISSING, "c": 3}) == ([1], {"c": 3})

    def test_keyword_only(self):
        params = [ConstructorParameter("a"), ConstructorParameter("k", keyword_only=True)]
        assert assemble_arguments(params, {"a": 1, "k": 2}) == ([1], {"k": 2})


# ---------------------------------------------------------------------------
# hydrate()
# ---------------------------------------------------------------------------


POINT_SCHEMA = {
    "type": "object",
    "name": "Point",
    "properties": {"x": {"type": "number"}, "y": {"type": "number"}, "label": {"type": "string"}},
    "required": ["x", "y"],
}


class Point:
    def __init__(self, x, y, label="origin"):
        self.x = x
        self.y = y
        self.label = label


class TestHydrate:
    def test_builds_instance(self):
        point = hydrate('{"x": "1.5", "y": 2}', POINT_SCHEMA, _no_types, factory=Point,
                        constructor_params=constructor_parameters(Point))
        assert (point.x, point.y, point.label) == (1.5, 2, "origin")

    def test_fallback_params_follow_schema_order(self):
        calls = []

        def factory(*args):
            calls.append(args)
            return args

        hydrate({"x": 1, "y": 2}, POINT_SCHEMA, _no_types, factory=factory)
        assert calls == [(1, 2, None)]

    def test_non_object_recipe_is_none(self):
        assert hydrate("42", POINT_SCHEMA, _no_types, factory=Point) is None

    def test_none_schema_is_none(self):
        assert hydrate({"x": 1}, None, _no_types, factory=Point) is None

    def test_missing_required_number_raises(self):
        with pytest.raises(HydrationError) as exc_info:
            hydrate({"x": 1}, POINT_SCHEMA, _no_types, factory=Point)
        assert exc_info.value.property_name == "y"
        assert exc_info.value.type_name == "Point"

    def test_null_required_value_raises(self):
        with pytest.raises(HydrationError):
            hydrate({"x": 1, "y": None}, POINT_SCHEMA, _no_types, factory=Point)

    def test_constructor_exception_logged(self, caplog):
        def boom(*args):
            raise RuntimeError("nope")

        assert hydrate({"x": 1, "y": 2}, POINT_SCHEMA, _no_types, factory=boom) is None
        assert "Failed to construct Point" in caplog.text
        assert "RuntimeError" in caplog.text

    def test_constructor_exception_strict(self):
        def boom(*args):
            raise RuntimeError("nope")

        with pytest.raises(ConstructionError, match="RuntimeError"):
            hydrate({"x": 1, "y": 2}, POINT_SCHEMA, _no_types, factory=boom, strict=True)

    def test_inline_object_property(self):
        schema = {
            "type": "object",
            "name": "Box",
            "properties": {
                "size": {
                    "type": "object",
                    "properties": {"w": {"type": "number"}, "h": {"type": "number"}},
                    "required": ["w"],
                },
            },
            "required": ["size"],
        }
        box = hydrate({"size": {"w": "3", "h": "bad", "extra": 1}}, schema, _no_types, factory=Record, constructor_params=_kw(schema))
        assert box.size == {"w": 3, "extra": 1}

    def test_untyped_property_passes_through(self):
        schema = {"type": "object", "name": "Any", "properties": {"blob": {}}, "required": []}
        record = hydrate({"blob": [1, {"a": 2}]}, schema, _no_types, factory=Record, constructor_params=_kw(schema))
        assert record.blob == [1, {"a": 2}]

    def test_positional_items(self):
        schema = {
            "type": "object",
            "name": "Pair",
            "properties": {"pair": {"type": "array", "items": [{"type": "string"}, {"type": "number"}]}},
            "required": ["pair"],
        }
        record = hydrate({"pair": ["a", "2"]}, schema, _no_types, factory=Record, constructor_params=_kw(schema))
        assert record.pair == ["a", 2]

    def test_optional_array_with_bad_item_is_absent(self):
        schema = {
            "type": "object",
            "name": "Tagged",
            "properties": {"tags": {"type": "array", "items": {"type": "number"}}},
            "required": [],
        }
        record = hydrate({"tags": [1, "x"]}, schema, _no_types, factory=Record, constructor_params=_kw(schema))
        assert not hasattr(record, "tags")

    def test_required_array_with_bad_item_raises(self):
        schema = {
            "type": "object",
            "name": "Tagged",
            "properties": {"tags": {"type": "array", "items": {"type": "number"}}},
            "required": ["tags"],
        }
        with pytest.raises(HydrationError, match=r"tags\[1\]"):
            hydrate({"tags": [1, "x"]}, schema, _no_types, factory=Record, constructor_params=_kw(schema))


ITEM_SCHEMA = {"type": "object", "name": "Item", "properties": {"sku": {"type": "string"}}}

ORDER_SCHEMA = {
    "type": "object",
    "name": "Order",
    "properties": {"items": {"type": "array", "items": ITEM_SCHEMA}},
    "required": ["items"],
}


class Item:
    def __init__(self, sku):
        raise AssertionError("constructor must not run for a shallow copy")


class TestNestedItems:
    def test_item_without_hydrator_is_shallow_copied(self):
        order = hydrate(
            {"items": [{"sku": "A1"}, {"sku": "B2"}]}, ORDER_SCHEMA,
            lambda name: Item if name == "Item" else None, factory=Record,
            constructor_params=_kw(ORDER_SCHEMA),
        )
        assert [type(i) for i in order.items] == [Item, Item]
        assert [i.sku for i in order.items] == ["A1", "B2"]

    def test_shallow_copy_of_non_mapping_returns_item(self):
        assert shallow_copy(Item, "raw") == "raw"

    def test_item_hydrator_returning_none_keeps_raw_item(self):
        class Failing:
            def hydrate(self, item, strict=False):
                return None

        order = hydrate({"items": [{"sku": "A1"}]}, ORDER_SCHEMA, lambda name: Failing(), factory=Record, constructor_params=_kw(ORDER_SCHEMA))
        assert order.items == [{"sku": "A1"}]

    def test_unknown_item_type_raises(self):
        with pytest.raises(HydrationError, match="Item"):
            hydrate({"items": [{"sku": "A1"}]}, ORDER_SCHEMA, _no_types, factory=Record, constructor_params=_kw(ORDER_SCHEMA))

    def test_unresolvable_named_object_property_is_absent(self):
        schema = {
            "type": "object",
            "name": "Holder",
            "properties": {"item": ITEM_SCHEMA},
            "required": [],
        }
        holder = hydrate({"item": {"sku": "A1"}}, schema, _no_types, factory=Record, constructor_params=_kw(schema))
        assert not hasattr(holder, "item")
